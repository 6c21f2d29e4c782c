"""
팬아웃 코디네이터 모듈입니다.

역할:
- OutputSpec마다 인코더 워커 1개를 생성하고 시작
- 프레임 소스의 각 프레임을 모든 워커 채널에 동기적으로 브로드캐스트
  (현재 프레임을 모든 워커에 넘기기 전에는 다음 프레임으로 진행하지 않음)
- 소스 소진(또는 소스 예외) 시 모든 채널을 정확히 1회 닫고 모든 워커를 join
- 하나 이상의 워커가 실패하면 전체 결과를 담은 EncodeFanoutError를 발생

사용 예시:
    >>> coordinator = FanoutCoordinator(build_output_specs(config), config.encoder)
    >>> results = coordinator.run(gen_synthetic_video(320, 200))
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable, Optional

from src.codec.adapter import Frame
from src.config.schema import AppConfig, EncoderConfig
from src.encoder import EncodeFanoutError, OutputSpec, WorkerResult, codec_label
from src.encoder.channel import FrameChannel
from src.encoder.worker import EncoderWorker
from src.metrics.metrics_store import EncodeMetricsStore

logger = logging.getLogger(__name__)


def build_output_specs(config: AppConfig) -> list[OutputSpec]:
    """
    설정의 fanout 섹션으로 OutputSpec 목록을 만듭니다.

    상대 경로 파일명은 fanout.output_dir 기준으로 해석합니다.
    """
    fanout = config.fanout
    output_dir = Path(fanout.output_dir) if fanout.output_dir else None

    specs: list[OutputSpec] = []
    for output in fanout.outputs:
        path = Path(output.filename)
        if output_dir is not None and not path.is_absolute():
            path = output_dir / path
        specs.append(
            OutputSpec(
                filename=str(path),
                codec=output.get_codec_key(),
                queue=FrameChannel(maxsize=fanout.queue_size),
            )
        )
    return specs


class FanoutCoordinator:
    """
    단일 생산자 → N개 인코더 워커 팬아웃을 조율합니다.

    run()은 한 번만 호출할 수 있습니다 (채널은 실행마다 새로 만들어야 함).
    """

    def __init__(
        self,
        outputs: list[OutputSpec],
        settings: Optional[EncoderConfig] = None,
        metrics: Optional[EncodeMetricsStore] = None,
    ) -> None:
        if not outputs:
            raise ValueError("출력이 하나 이상 필요합니다")
        self.outputs = list(outputs)
        self._settings = settings or EncoderConfig()
        self._metrics = metrics
        self._workers: list[EncoderWorker] = []
        self._started: bool = False
        self.frames_broadcast: int = 0

    @property
    def workers(self) -> list[EncoderWorker]:
        return list(self._workers)

    def run(self, source: Iterable[Frame]) -> list[WorkerResult]:
        """
        소스를 모든 출력으로 인코딩합니다.

        파라미터:
            source: 프레임 시퀀스 (지연 생성 가능)

        반환값:
            list[WorkerResult]: outputs 순서의 워커 결과

        에러:
            EncodeFanoutError: 하나 이상의 워커가 실패했을 때 (모든 워커 join 후 발생)
            Exception: 소스 자체가 던진 예외 (모든 워커 join 후 그대로 전파)
        """
        if self._started:
            raise RuntimeError("FanoutCoordinator.run()은 한 번만 호출할 수 있습니다")
        self._started = True

        # 1. 워커 생성 및 시작
        for spec in self.outputs:
            if self._metrics is not None:
                self._metrics.register_output(spec.filename, codec_label(spec.codec))
            worker = EncoderWorker(spec, self._settings, metrics=self._metrics)
            worker.start()
            self._workers.append(worker)

        logger.info(
            f"팬아웃 시작: {len(self.outputs)} outputs "
            f"({', '.join(spec.filename for spec in self.outputs)})"
        )
        start = time.monotonic()

        # 2~4. 동기 브로드캐스트 후 모든 채널 종료, 소스 예외가 있어도 모든 워커 join
        try:
            for frame in source:
                self._broadcast(frame)
        finally:
            for spec in self.outputs:
                spec.queue.close()
            results = [worker.join() for worker in self._workers]

        elapsed = time.monotonic() - start
        logger.info(
            f"팬아웃 종료: {self.frames_broadcast} frames → {len(results)} outputs, "
            f"elapsed={elapsed:.2f}s"
        )

        if any(result.error is not None for result in results):
            raise EncodeFanoutError(results)
        return results

    def _broadcast(self, frame: Frame) -> None:
        """같은 프레임 참조를 모든 워커 채널에 전달합니다 (느린 워커에서 대기)."""
        for spec in self.outputs:
            spec.queue.send(frame)
            if self._metrics is not None:
                self._metrics.record_delivered(spec.filename)
        self.frames_broadcast += 1
