"""
멀티 출력 인코더 진입점

역할:
- 설정 로드 (YAML + MFE_ 환경변수, 커맨드라인 오버라이드)
- fanout 모드: 합성 소스 1개 → 출력 N개 (기본 MPEG1/MPEG2/MPEG4) 병렬 인코딩
- scale 모드: 640x480 합성 소스 → BICUBIC 스케일 → 320x200 MPEG4/MP4 인코딩
- 실패한 출력마다 파일명, 에러 종류, 네이티브 메시지를 로그로 남기고 종료 코드 1 반환

실행 예시:
    기본 3개 출력 (sample-enc-mpeg1.mpg, sample-enc-mpeg2.mpg, sample-enc-mpeg4.mp4):
        python main.py

    프레임 수와 출력 디렉토리 지정:
        python main.py --frames 100 --output-dir output

    스케일 흐름:
        python main.py --mode scale
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from src.codec.adapter import init_codec_library
from src.codec.errors import CodecError
from src.config.config_manager import ConfigLoadError, ConfigManager
from src.config.schema import AppConfig
from src.encoder import EncodeFanoutError, codec_label
from src.encoder.fanout import FanoutCoordinator, build_output_specs
from src.encoder.scale_pipeline import ScaleEncodePipeline
from src.logging import get_session_id, output_logger, setup_logging
from src.metrics.metrics_store import EncodeMetricsStore
from src.source import gen_synthetic_video

logger = logging.getLogger(__name__)

# 기본 설정 파일 경로 (없으면 기본값 사용)
DEFAULT_CONFIG_PATH = "config.yaml"


class EncodeApp:
    """
    설정에 따라 fanout/scale 흐름을 실행하는 오케스트레이터입니다.

    흐름 구조 (fanout):
        [gen_synthetic_video]
              │ 동일 프레임 참조 브로드캐스트
              ├──▶ FrameChannel ──▶ EncoderWorker ──▶ sample-enc-mpeg1.mpg
              ├──▶ FrameChannel ──▶ EncoderWorker ──▶ sample-enc-mpeg2.mpg
              └──▶ FrameChannel ──▶ EncoderWorker ──▶ sample-enc-mpeg4.mp4
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._metrics_store = EncodeMetricsStore()

    @property
    def metrics(self) -> EncodeMetricsStore:
        return self._metrics_store

    def run(self, mode: str = "fanout") -> int:
        """선택한 흐름을 실행하고 종료 코드(성공 0, 실패 1)를 반환합니다."""
        if mode == "scale":
            return self.run_scale()
        return self.run_fanout()

    def run_fanout(self) -> int:
        config = self._config
        self._ensure_output_dir()

        specs = build_output_specs(config)
        coordinator = FanoutCoordinator(specs, config.encoder, metrics=self._metrics_store)
        source = gen_synthetic_video(
            config.source.width,
            config.source.height,
            config.source.pixel_format,
            config.source.frame_count,
        )

        try:
            results = coordinator.run(source)
        except EncodeFanoutError as exc:
            for result in exc.results:
                if result.error is None:
                    logger.info(
                        f"출력 성공: [{result.filename}] codec={codec_label(result.codec)}, "
                        f"{result.frames_read} frames, {result.packets_written} written"
                    )
            for error in exc.errors:
                output_logger(__name__, error.filename).error(
                    f"출력 실패: [{error.filename}] kind={error.kind}, "
                    f"native={error.native_message or '-'}, error={error.cause}",
                )
            return 1

        if not self._metrics_store.is_broadcast_complete():
            logger.warning("출력별 전달 프레임 수가 일치하지 않습니다")

        logger.info(
            f"팬아웃 완료: {len(results)} outputs, "
            f"{coordinator.frames_broadcast} frames broadcast"
        )
        return 0

    def run_scale(self) -> int:
        self._ensure_output_dir()
        pipeline = ScaleEncodePipeline(self._config, metrics=self._metrics_store)
        try:
            result = pipeline.run()
        except CodecError as exc:
            output_logger(__name__, pipeline.filename).error(
                f"출력 실패: [{pipeline.filename}] kind={exc.kind}, "
                f"native={exc.native_message or '-'}, error={exc}",
            )
            return 1

        if not result.dts_monotonic():
            logger.warning(f"DTS가 단조 증가하지 않습니다: {result.filename}")
        return 0

    def _ensure_output_dir(self) -> None:
        output_dir = self._config.fanout.output_dir
        if output_dir:
            Path(output_dir).mkdir(parents=True, exist_ok=True)


# =============================================================================
# 진입점
# =============================================================================

def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """커맨드라인 인자를 파싱합니다."""
    parser = argparse.ArgumentParser(
        description="멀티 출력 인코더: 합성 영상 1개를 여러 컨테이너/코덱으로 동시 인코딩"
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG_PATH,
        help=f"설정 파일 경로 (기본: {DEFAULT_CONFIG_PATH}, 없으면 기본값 사용)",
    )
    parser.add_argument(
        "--mode", choices=["fanout", "scale"], default="fanout",
        help="실행 흐름 (기본: fanout)",
    )
    parser.add_argument(
        "--frames", type=int, help="합성 소스 프레임 수 (source.frame_count 오버라이드)"
    )
    parser.add_argument(
        "--output-dir", help="출력 파일 디렉토리 (fanout.output_dir 오버라이드)"
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="로그 레벨 (system.log_level 오버라이드)",
    )
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> AppConfig:
    """설정 파일(또는 기본값)을 로드하고 커맨드라인 오버라이드를 적용합니다."""
    manager = ConfigManager()
    if args.config == DEFAULT_CONFIG_PATH and not Path(args.config).exists():
        config = manager.load_defaults()
    else:
        config = manager.load(args.config)

    # Pydantic 모델을 dict로 풀어 오버라이드 후 재검증
    config_dict = config.model_dump()
    if args.frames is not None:
        config_dict["source"]["frame_count"] = args.frames
    if args.output_dir is not None:
        config_dict["fanout"]["output_dir"] = args.output_dir
    if args.log_level is not None:
        config_dict["system"]["log_level"] = args.log_level
    return AppConfig(**config_dict)


def main(argv: Optional[list[str]] = None) -> int:
    """메인 함수입니다. 종료 코드를 반환합니다."""
    args = _parse_args(argv)

    try:
        config = _load_config(args)
    except (ConfigLoadError, ValueError) as exc:
        print(f"설정 로드 실패: {exc}", file=sys.stderr)
        return 1

    setup_logging(config)
    init_codec_library(config.system.native_log_level)

    logger.info(
        f"멀티 출력 인코더 시작: mode={args.mode}, frames={config.source.frame_count}, "
        f"session={get_session_id()}"
    )
    exit_code = EncodeApp(config).run(args.mode)
    logger.info(f"멀티 출력 인코더 종료: exit_code={exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
