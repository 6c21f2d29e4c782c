"""
스케일 후 단일 출력 인코딩 흐름 모듈입니다.

역할:
- 원본 해상도의 합성 프레임을 대상 해상도로 스케일 (기본 640x480 → 320x200, BICUBIC)
- 스케일된 프레임을 MPEG4/MP4 출력 하나로 인코딩 (GOP 10, 최대 B-frame 1)
- 기록된 패킷 타임라인(PTS/DTS/크기)을 결과로 반환하여 DTS 단조성 검증에 사용

사용 예시:
    >>> pipeline = ScaleEncodePipeline(AppConfig())
    >>> result = pipeline.run()
    >>> result.dts_monotonic()
    True
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from src.codec.adapter import CodecContext, Frame, new_codec_ctx, new_encoder, new_frame
from src.config.schema import AppConfig, EncoderConfig
from src.encoder import ScaleResult, codec_label
from src.encoder.session import EncodeSession
from src.logging.structured_logger import output_logger
from src.metrics.metrics_store import EncodeMetricsStore
from src.scaler import SwsAlgorithm, new_sws_ctx
from src.source import gen_synthetic_video


class ScaleEncodePipeline:
    """
    스케일러 → 인코딩 세션 단일 출력 흐름입니다.

    원본 지오메트리는 열지 않은 코덱 컨텍스트로 표현하고,
    대상 지오메트리는 세션의 인코딩 컨텍스트를 그대로 사용합니다.
    """

    def __init__(self, config: AppConfig, metrics: Optional[EncodeMetricsStore] = None) -> None:
        self._config = config
        self._metrics = metrics

        scale = config.scale
        filename = Path(scale.filename)
        if config.fanout.output_dir and not filename.is_absolute():
            filename = Path(config.fanout.output_dir) / filename
        self.filename = str(filename)
        self._log = output_logger(__name__, self.filename)

        # 대상 인코더: 공통 인코더 설정에 스케일 대상 해상도와 GOP/B-frame 적용
        self.settings: EncoderConfig = config.encoder.model_copy(
            update={
                "width": scale.dst_width,
                "height": scale.dst_height,
                "gop_size": scale.gop_size,
                "max_b_frames": scale.max_b_frames,
            }
        )

    def run(self, source: Optional[Iterable[Frame]] = None) -> ScaleResult:
        """
        소스를 스케일하여 인코딩합니다.

        파라미터:
            source: 원본 해상도 프레임 시퀀스 (None이면 합성 소스 사용)

        반환값:
            ScaleResult: 프레임/패킷 수와 기록된 패킷 타임라인

        에러:
            CodecError 하위 클래스 (ScaleFailedError 포함): 실패 시 리소스 해제 후 전파
        """
        scale = self._config.scale
        codec = scale.get_codec_key()
        if source is None:
            source = gen_synthetic_video(
                scale.src_width,
                scale.src_height,
                self._config.source.pixel_format,
                self._config.source.frame_count,
            )

        if self._metrics is not None:
            self._metrics.register_output(self.filename, codec_label(codec))

        src_ctx = self._source_ctx(codec)
        session = EncodeSession(
            self.filename, codec, self.settings, metrics=self._metrics, record_timeline=True
        )
        try:
            with session:
                session.open()
                sws = new_sws_ctx(src_ctx, session.codec_ctx, SwsAlgorithm[scale.algorithm])
                dst_frame = new_frame(self.settings.width, self.settings.height, self.settings.pixel_format)

                for index, frame in enumerate(source):
                    frame.set_pts(index)
                    sws.scale(frame, dst_frame)
                    session.encode(dst_frame)

                session.flush()
        finally:
            src_ctx.close()

        self._log.info(
            f"스케일 인코딩 완료: {scale.src_width}x{scale.src_height} → "
            f"{scale.dst_width}x{scale.dst_height} ({scale.algorithm}), "
            f"{session.frames_read} frames, {session.packets_written} packets",
        )
        return ScaleResult(
            filename=self.filename,
            frames_read=session.frames_read,
            packets_written=session.packets_written,
            packets=list(session.timeline),
        )

    def _source_ctx(self, codec) -> CodecContext:
        """원본 지오메트리만 설정한 (열지 않는) 코덱 컨텍스트를 만듭니다."""
        scale = self._config.scale
        return new_codec_ctx(new_encoder(codec)) \
            .set_width(scale.src_width) \
            .set_height(scale.src_height) \
            .set_pix_fmt(self._config.source.pixel_format)
