"""
코디네이터 → 워커 프레임 채널 모듈입니다.

역할:
- 단일 생산자/단일 소비자 프레임 참조 채널 (queue.Queue 기반, 복사 없음)
- close()는 정확히 1회만 허용하며, 소비자는 채널 종료를 스트림 끝으로 인식
- 실패한 워커가 채널을 detach하면 생산자는 막히지 않고 이후 프레임을 버림

사용 예시:
    >>> channel = FrameChannel(maxsize=1)
    >>> channel.send(frame)       # 생산자 (가득 차면 대기)
    >>> channel.close()
    >>> for frame in channel:     # 소비자 (close 시 종료)
    ...     encode(frame)
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Iterator

logger = logging.getLogger(__name__)

# 채널 종료 표식
_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """이미 닫힌 채널에 send/close를 호출했을 때 발생하는 예외입니다."""
    pass


class FrameChannel:
    """
    한 워커 전용 프레임 채널입니다.

    maxsize=0이면 무제한, 양수면 가득 찼을 때 send()가 대기합니다
    (느린 워커가 생산자를 늦추는 협조적 역압).
    """

    def __init__(self, maxsize: int = 1) -> None:
        if maxsize < 0:
            raise ValueError(f"채널 크기는 0 이상이어야 합니다: {maxsize}")
        self.maxsize = maxsize
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._closed: bool = False
        self._detached: bool = False
        self._sent_count: int = 0
        self._received_count: int = 0

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def sent_count(self) -> int:
        """생산자가 전달한 프레임 수 (detach 이후 버린 프레임 포함)"""
        return self._sent_count

    @property
    def received_count(self) -> int:
        """소비자가 꺼낸 프레임 수"""
        return self._received_count

    # -------------------------------------------------------------------------
    # 생산자 측
    # -------------------------------------------------------------------------

    def send(self, frame: Any) -> None:
        """
        프레임 참조를 채널에 넣습니다. 채널이 가득 차면 공간이 생길 때까지 대기합니다.

        에러:
            ChannelClosedError: 이미 닫힌 채널일 때
        """
        with self._lock:
            if self._closed:
                raise ChannelClosedError("닫힌 채널에는 프레임을 보낼 수 없습니다")
            self._sent_count += 1
            if self._detached:
                return

        # 잠금 밖에서 대기해야 detach()가 대기 중인 send를 풀어줄 수 있음
        while True:
            try:
                self._queue.put(frame, timeout=0.1)
                return
            except queue.Full:
                if self._detached:
                    return

    def close(self) -> None:
        """
        스트림 끝을 알립니다. 정확히 1회만 호출할 수 있습니다.

        에러:
            ChannelClosedError: 두 번째 호출일 때
        """
        with self._lock:
            if self._closed:
                raise ChannelClosedError("채널은 한 번만 닫을 수 있습니다")
            self._closed = True
            if self._detached:
                return

        while True:
            try:
                self._queue.put(_CLOSED, timeout=0.1)
                return
            except queue.Full:
                if self._detached:
                    return

    # -------------------------------------------------------------------------
    # 소비자 측
    # -------------------------------------------------------------------------

    def __iter__(self) -> Iterator[Any]:
        """채널이 닫힐 때까지 프레임을 순서대로 꺼냅니다."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            self._received_count += 1
            yield item

    def detach(self) -> None:
        """
        소비자가 더 이상 읽지 않음을 알립니다.

        대기 중인 프레임을 버리고, 이후 send()는 대기 없이 버려집니다.
        """
        with self._lock:
            self._detached = True

        dropped = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not _CLOSED:
                dropped += 1

        if dropped:
            logger.debug(f"채널 분리: 대기 중이던 프레임 {dropped}개 폐기")
