"""
소프트웨어 이미지 리샘플러(swscale) 모듈입니다.

역할:
- 원본 프레임을 다른 해상도/픽셀 포맷의 대상 프레임으로 변환
- 대상 프레임은 미리 할당되어 있어야 하며 PTS는 보존
- 프레임 간 상태가 없으므로 컨텍스트를 재사용 가능

사용 예시:
    >>> sws = new_sws_ctx(src_ctx, dst_ctx, SwsAlgorithm.BICUBIC)
    >>> dst = Frame.alloc(320, 200, "yuv420p")
    >>> sws.scale(src_frame, dst)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from av.error import FFmpegError
from av.video.reformatter import VideoReformatter

from src.codec.adapter import Frame
from src.codec.errors import ScaleFailedError

logger = logging.getLogger(__name__)


class SwsAlgorithm(str, Enum):
    """리샘플링 알고리즘 (SWS_* 플래그 이름)"""
    FAST_BILINEAR = "FAST_BILINEAR"
    BILINEAR = "BILINEAR"
    BICUBIC = "BICUBIC"
    POINT = "POINT"  # nearest neighbor
    AREA = "AREA"
    GAUSS = "GAUSS"
    SINC = "SINC"
    LANCZOS = "LANCZOS"
    SPLINE = "SPLINE"

    NEAREST = "POINT"


class SwsContext:
    """
    원본/대상 지오메트리(width, height, pix_fmt)를 고정한 변환 컨텍스트입니다.

    원본/대상 컨텍스트는 width, height, pix_fmt 속성만 있으면 됩니다
    (일반적으로 CodecContext).
    """

    def __init__(self, src_ctx: Any, dst_ctx: Any, algorithm: SwsAlgorithm) -> None:
        self.src_width = int(src_ctx.width)
        self.src_height = int(src_ctx.height)
        self.src_pix_fmt = src_ctx.pix_fmt
        self.dst_width = int(dst_ctx.width)
        self.dst_height = int(dst_ctx.height)
        self.dst_pix_fmt = dst_ctx.pix_fmt
        self.algorithm = SwsAlgorithm(algorithm)

        if min(self.src_width, self.src_height, self.dst_width, self.dst_height) <= 0:
            raise ScaleFailedError(
                f"스케일 해상도가 올바르지 않습니다: "
                f"{self.src_width}x{self.src_height} → {self.dst_width}x{self.dst_height}"
            )
        if not self.src_pix_fmt or not self.dst_pix_fmt:
            raise ScaleFailedError("스케일 원본/대상 픽셀 포맷이 지정되지 않았습니다")

        self._reformatter = VideoReformatter()

        logger.debug(
            f"스케일러 생성: {self.src_width}x{self.src_height} {self.src_pix_fmt} → "
            f"{self.dst_width}x{self.dst_height} {self.dst_pix_fmt}, "
            f"algorithm={self.algorithm.value}"
        )

    def scale(self, src: Frame, dst: Frame) -> Frame:
        """
        src를 변환하여 dst의 픽셀 버퍼를 교체합니다.

        파라미터:
            src: 원본 지오메트리와 일치하는 프레임
            dst: 대상 지오메트리로 미리 할당된 프레임

        반환값:
            Frame: dst (체이닝용)

        에러:
            ScaleFailedError: 지오메트리 불일치, 미할당 대상, 네이티브 변환 실패
        """
        if src.is_freed or dst.is_freed:
            raise ScaleFailedError("해제된 프레임은 변환할 수 없습니다")

        self._check_geometry(
            "원본", src, self.src_width, self.src_height, self.src_pix_fmt
        )
        self._check_geometry(
            "대상", dst, self.dst_width, self.dst_height, self.dst_pix_fmt
        )

        try:
            scaled = self._reformatter.reformat(
                src.native,
                width=self.dst_width,
                height=self.dst_height,
                format=self.dst_pix_fmt,
                interpolation=self.algorithm.value,
            )
        except (FFmpegError, ValueError) as exc:
            raise ScaleFailedError(
                f"스케일 변환 실패: {self.src_width}x{self.src_height} → "
                f"{self.dst_width}x{self.dst_height}",
                str(exc),
            ) from exc

        if scaled is src.native:
            # 변환이 필요 없으면 reformat이 원본을 그대로 돌려주므로 사본을 만듦
            scaled = src.clone().native

        dst.replace_buffer(scaled)
        return dst

    @staticmethod
    def _check_geometry(label: str, frame: Frame, width: int, height: int, pix_fmt: str) -> None:
        if (frame.width, frame.height, frame.pix_fmt) != (width, height, pix_fmt):
            raise ScaleFailedError(
                f"{label} 프레임 지오메트리 불일치: "
                f"expected={width}x{height} {pix_fmt}, "
                f"actual={frame.width}x{frame.height} {frame.pix_fmt}"
            )


def new_sws_ctx(src_ctx: Any, dst_ctx: Any, algorithm: SwsAlgorithm = SwsAlgorithm.BICUBIC) -> SwsContext:
    """원본/대상 컨텍스트와 알고리즘으로 스케일러를 생성합니다."""
    return SwsContext(src_ctx, dst_ctx, algorithm)
