"""
합성 비디오 프레임 소스 모듈입니다.

역할:
- 고정 해상도/픽셀 포맷의 유한 지연(lazy) 프레임 시퀀스 생성
- 프레임마다 새 픽셀 버퍼를 할당 (소비자는 버퍼를 공유하지 않음)
- 생성된 프레임의 PTS는 설정하지 않음 (TS_NONE)

테스트 패턴 (프레임 i, 좌표 x/y, 모두 mod 256):
    Y  = x + y + 3i
    Cb = 128 + y + 2i
    Cr = 64 + x + 5i

사용 예시:
    >>> for frame in gen_synthetic_video(320, 200, PixelFormat.YUV420P, count=25):
    ...     print(frame.width, frame.height)
"""

from __future__ import annotations

import logging
from typing import Iterator

import numpy as np

from src.codec import TS_NONE, PixelFormat
from src.codec.adapter import Frame

logger = logging.getLogger(__name__)

# 합성 소스 기본 길이 (프레임 수)
DEFAULT_FRAME_COUNT = 25


def gen_synthetic_video(
    width: int,
    height: int,
    pix_fmt: str = PixelFormat.YUV420P,
    count: int = DEFAULT_FRAME_COUNT,
) -> Iterator[Frame]:
    """
    움직이는 그라디언트 테스트 패턴 프레임을 count개 생성합니다.

    제너레이터를 다시 호출하면 처음부터 새 시퀀스를 만듭니다.

    파라미터:
        width: 프레임 가로 픽셀 수 (짝수)
        height: 프레임 세로 픽셀 수 (짝수)
        pix_fmt: 출력 픽셀 포맷 (YUV420P 이외의 포맷은 변환하여 생성)
        count: 생성할 프레임 수

    반환값:
        Iterator[Frame]: PTS가 설정되지 않은 프레임 시퀀스

    에러:
        ValueError: 해상도가 양의 짝수가 아니거나 count가 음수일 때
    """
    if width <= 0 or height <= 0 or width % 2 or height % 2:
        raise ValueError(f"해상도는 양의 짝수여야 합니다: {width}x{height}")
    if count < 0:
        raise ValueError(f"프레임 수는 0 이상이어야 합니다: {count}")

    return _generate(width, height, pix_fmt, count)


def _generate(width: int, height: int, pix_fmt: str, count: int) -> Iterator[Frame]:
    logger.debug(f"합성 소스 시작: {width}x{height} {pix_fmt}, {count} frames")

    # 좌표 격자는 한 번만 계산
    luma_y, luma_x = np.mgrid[0:height, 0:width]
    chroma_y, chroma_x = np.mgrid[0:height // 2, 0:width // 2]

    for index in range(count):
        frame = Frame.from_ndarray(
            _make_yuv420p(luma_x, luma_y, chroma_x, chroma_y, index, width),
            PixelFormat.YUV420P,
        )
        if pix_fmt != PixelFormat.YUV420P:
            frame = Frame(frame.native.reformat(format=pix_fmt))
        frame.set_pts(TS_NONE)
        yield frame

    logger.debug(f"합성 소스 종료: {count} frames")


def _make_yuv420p(
    luma_x: np.ndarray,
    luma_y: np.ndarray,
    chroma_x: np.ndarray,
    chroma_y: np.ndarray,
    index: int,
    width: int,
) -> np.ndarray:
    """
    한 프레임의 YUV420P 평면을 (height * 3 / 2, width) 배열로 만듭니다.

    레이아웃: Y 평면 뒤에 U, V 평면을 이어 붙인 뒤 width 단위로 재배열
    """
    y_plane = ((luma_x + luma_y + index * 3) % 256).astype(np.uint8)
    u_plane = ((128 + chroma_y + index * 2) % 256).astype(np.uint8)
    v_plane = ((64 + chroma_x + index * 5) % 256).astype(np.uint8)

    flat = np.concatenate([y_plane.ravel(), u_plane.ravel(), v_plane.ravel()])
    return flat.reshape(-1, width)
