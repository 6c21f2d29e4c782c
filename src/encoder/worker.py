"""
인코더 워커 모듈입니다.

역할:
- OutputSpec 하나당 전용 스레드에서 EncodeSession을 실행
- 채널이 닫힐 때까지 프레임을 꺼내 인코딩하고, 종료 시 flush → 트레일러 기록
- 실패해도 예외를 던지지 않고 파일명이 태깅된 WorkerError를 결과에 담아 반환
- 실패 시 채널을 분리(detach)하여 생산자가 다른 워커에게 계속 전달할 수 있게 함

사용 예시:
    >>> worker = EncoderWorker(spec, EncoderConfig())
    >>> worker.start()
    >>> ...  # 코디네이터가 spec.queue로 프레임 전달 후 close()
    >>> result = worker.join()
"""

from __future__ import annotations

import threading
from typing import Optional

from src.config.schema import EncoderConfig
from src.encoder import OutputSpec, WorkerError, WorkerResult, codec_label
from src.encoder.session import EncodeSession
from src.logging.structured_logger import output_logger
from src.metrics.metrics_store import EncodeMetricsStore


class EncoderWorker:
    """
    출력 하나를 인코딩하는 워커입니다.

    run()은 호출한 스레드에서 동기적으로 실행되고,
    start()/join()은 전용 데몬 스레드에서 run()을 실행합니다.
    """

    def __init__(
        self,
        spec: OutputSpec,
        settings: Optional[EncoderConfig] = None,
        metrics: Optional[EncodeMetricsStore] = None,
    ) -> None:
        self.spec = spec
        self._settings = settings or EncoderConfig()
        self._metrics = metrics
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[WorkerResult] = None
        self._log = output_logger(__name__, spec.filename)

    @property
    def result(self) -> Optional[WorkerResult]:
        return self._result

    def start(self) -> None:
        """워커 스레드를 시작합니다."""
        if self._thread is not None:
            raise RuntimeError(f"워커는 한 번만 시작할 수 있습니다: {self.spec.filename}")
        self._thread = threading.Thread(
            target=self.run,
            name=f"encoder-{self.spec.filename}",
            daemon=True,
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> Optional[WorkerResult]:
        """
        워커 스레드 종료를 기다리고 결과를 반환합니다.

        timeout 안에 끝나지 않으면 None을 반환합니다.
        """
        if self._thread is None:
            raise RuntimeError(f"시작되지 않은 워커입니다: {self.spec.filename}")
        self._thread.join(timeout)
        if self._thread.is_alive():
            return None
        return self._result

    def run(self) -> WorkerResult:
        """
        세션을 열고 채널이 닫힐 때까지 인코딩한 뒤 결과를 반환합니다.

        예외를 던지지 않습니다. 실패는 WorkerResult.error로 보고됩니다.
        """
        spec = self.spec
        session = EncodeSession(spec.filename, spec.codec, self._settings, metrics=self._metrics)
        error: Optional[WorkerError] = None

        try:
            with session:
                session.open()
                for frame in spec.queue:
                    session.encode(frame)
                session.flush()
        except Exception as exc:
            error = WorkerError(spec.filename, exc)
            # 생산자가 이 워커 때문에 막히지 않도록 이후 프레임은 버림
            spec.queue.detach()
            self._log.error(
                f"워커 실패: [{spec.filename}] kind={error.kind}, "
                f"native={error.native_message}, error={exc}",
            )

        self._result = WorkerResult(
            filename=spec.filename,
            codec=spec.codec,
            frames_read=session.frames_read,
            packets_written=session.packets_written,
            error=error,
        )
        self._log.debug(
            f"워커 종료: {spec.filename}, codec={codec_label(spec.codec)}, "
            f"ok={self._result.ok}",
        )
        return self._result
