"""
공유 인코딩 메트릭 저장소 모듈입니다.

역할:
- 코디네이터와 모든 인코더 워커가 공유하는 thread-safe 메트릭 저장소
- 출력별 상태, 전달/수신 프레임 수, 기록 패킷 수/바이트, 마지막 에러를 중앙 관리
- 실행 종료 후 브로드캐스트 완전성(출력별 전달 프레임 수 일치)을 확인

사용 예시:
    >>> store = EncodeMetricsStore()
    >>> store.register_output("out.mp4", "mpeg4")
    >>> store.record_packet("out.mp4", size=1024)
    >>> stats = store.get_output_stats("out.mp4")
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from src.metrics import OutputStats


class EncodeMetricsStore:
    """
    출력별 인코딩 메트릭을 중앙에서 관리하는 thread-safe 저장소입니다.

    모든 공개 메서드는 RLock으로 보호되어 멀티스레드 환경에서 안전합니다.
    조회 메서드는 항상 복사본을 반환합니다.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        # 출력 파일명 → OutputStats (등록 순서 유지)
        self._outputs: dict[str, OutputStats] = {}

    # =========================================================================
    # 등록 / 상태
    # =========================================================================

    def register_output(self, filename: str, codec: str) -> None:
        """출력을 등록합니다. 이미 등록된 출력이면 통계를 초기화합니다."""
        with self._lock:
            self._outputs[filename] = OutputStats(
                filename=filename, codec=codec, updated_at_ns=time.time_ns()
            )

    def update_state(self, filename: str, state: str) -> None:
        """출력의 세션 상태(idle, open, header, encoding, ...)를 업데이트합니다."""
        with self._lock:
            stats = self._get_or_create(filename)
            stats.state = state
            stats.updated_at_ns = time.time_ns()

    def record_error(self, filename: str, kind: str, message: str) -> None:
        """출력의 마지막 에러를 기록하고 상태를 failed로 바꿉니다."""
        with self._lock:
            stats = self._get_or_create(filename)
            stats.state = "failed"
            stats.error_kind = kind
            stats.last_error = message
            stats.updated_at_ns = time.time_ns()

    # =========================================================================
    # 카운터
    # =========================================================================

    def record_delivered(self, filename: str) -> None:
        """코디네이터가 출력 채널에 프레임을 전달했음을 기록합니다."""
        with self._lock:
            stats = self._get_or_create(filename)
            stats.frames_delivered += 1
            stats.updated_at_ns = time.time_ns()

    def record_frame(self, filename: str) -> None:
        """워커가 프레임 하나를 인코더에 넣었음을 기록합니다."""
        with self._lock:
            stats = self._get_or_create(filename)
            stats.frames_read += 1
            stats.updated_at_ns = time.time_ns()

    def record_packet(self, filename: str, size: int) -> None:
        """워커가 패킷 하나를 기록했음을 기록합니다."""
        with self._lock:
            stats = self._get_or_create(filename)
            stats.packets_written += 1
            stats.bytes_written += int(size)
            stats.updated_at_ns = time.time_ns()

    # =========================================================================
    # 조회
    # =========================================================================

    def get_output_stats(self, filename: str) -> Optional[OutputStats]:
        """출력 통계의 복사본을 반환합니다. 등록되지 않은 출력이면 None."""
        with self._lock:
            stats = self._outputs.get(filename)
            return None if stats is None else stats.copy()

    def get_all_stats(self) -> list[OutputStats]:
        """등록 순서대로 모든 출력 통계의 복사본을 반환합니다."""
        with self._lock:
            return [stats.copy() for stats in self._outputs.values()]

    def is_broadcast_complete(self) -> bool:
        """모든 출력에 같은 수의 프레임이 전달되었는지 반환합니다."""
        with self._lock:
            delivered = {stats.frames_delivered for stats in self._outputs.values()}
            return len(delivered) <= 1

    def reset(self) -> None:
        """모든 출력 통계를 삭제합니다."""
        with self._lock:
            self._outputs.clear()

    def _get_or_create(self, filename: str) -> OutputStats:
        stats = self._outputs.get(filename)
        if stats is None:
            stats = OutputStats(filename=filename)
            self._outputs[filename] = stats
        return stats
