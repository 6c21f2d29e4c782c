"""
멀티 출력 인코더 팬아웃 패키지

공통 데이터 타입:
- OutputSpec: 출력(싱크) 하나의 선언적 설명 (파일명, 코덱 키, 프레임 채널)
- WorkerResult: 워커 1회 실행 결과
- WorkerError: 파일명이 태깅된 워커 실패
- EncodeFanoutError: 코디네이터 1회 실행의 합쳐진(joined) 실패
- PacketRecord / ScaleResult: 스케일 흐름의 패킷 타임라인과 결과
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from src.codec import TS_NONE, CodecId, CodecKey
from src.codec.errors import CodecError
from src.encoder.channel import FrameChannel


def codec_label(codec: CodecKey) -> str:
    """로그/메트릭용 코덱 키 문자열 (CodecId는 멤버 이름, 문자열은 그대로)"""
    return codec.name if isinstance(codec, CodecId) else str(codec)


@dataclass
class OutputSpec:
    """
    출력 하나의 선언적 설명입니다.

    필드:
        filename: 출력 파일 경로 (확장자로 컨테이너 결정)
        codec: CodecId 또는 인코더 short-name
        queue: 코디네이터 → 워커 프레임 채널 (단일 생산자/단일 소비자)
    """
    filename: str
    codec: CodecKey
    queue: FrameChannel = field(default_factory=FrameChannel)


class WorkerError(RuntimeError):
    """
    출력 하나의 워커 실패입니다. 파일명과 원인 예외를 함께 보관합니다.

    속성:
        filename: 실패한 출력 파일 경로
        cause: 원인 예외
        kind: 에러 종류 (CodecError가 아니면 예외 클래스 이름)
        native_message: 네이티브 라이브러리 메시지 (없으면 None)
    """

    def __init__(self, filename: str, cause: BaseException) -> None:
        self.filename = filename
        self.cause = cause
        if isinstance(cause, CodecError):
            self.kind = cause.kind
            self.native_message = cause.native_message
        else:
            self.kind = type(cause).__name__
            self.native_message = None
        super().__init__(f"[{filename}] {self.kind}: {cause}")


@dataclass
class WorkerResult:
    """
    워커 1회 실행 결과입니다.

    필드:
        filename: 출력 파일 경로
        codec: 코덱 키
        frames_read: 인코더에 넣은 프레임 수
        packets_written: 기록한 패킷 수 (flush 포함)
        error: 실패했으면 WorkerError, 성공했으면 None
    """
    filename: str
    codec: CodecKey
    frames_read: int = 0
    packets_written: int = 0
    error: Optional[WorkerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EncodeFanoutError(RuntimeError):
    """
    하나 이상의 워커가 실패한 코디네이터 실행입니다.

    모든 워커의 결과(성공 포함)를 results로, 실패만 errors로 노출합니다.
    """

    def __init__(self, results: list[WorkerResult]) -> None:
        self.results = list(results)
        self.errors = [result.error for result in self.results if result.error is not None]
        failed = ", ".join(error.filename for error in self.errors)
        super().__init__(f"{len(self.errors)}/{len(self.results)} 출력 인코딩 실패: {failed}")


@dataclass(frozen=True)
class PacketRecord:
    """기록된 패킷 하나의 타임라인 항목 (스트림 타임베이스 기준)"""
    pts: int
    dts: int
    size: int


@dataclass
class ScaleResult:
    """
    스케일 흐름 1회 실행 결과입니다.

    필드:
        filename: 출력 파일 경로
        frames_read: 인코더에 넣은 프레임 수
        packets_written: 기록한 패킷 수
        packets: 기록 순서대로의 패킷 타임라인
    """
    filename: str
    frames_read: int = 0
    packets_written: int = 0
    packets: list[PacketRecord] = field(default_factory=list)

    def dts_monotonic(self) -> bool:
        """기록된 DTS가 단조 비감소인지 반환합니다 (TS_NONE 제외)."""
        timeline = [record.dts for record in self.packets if record.dts != TS_NONE]
        return all(prev <= curr for prev, curr in zip(timeline, timeline[1:]))


__all__ = [
    "EncodeFanoutError",
    "FrameChannel",
    "OutputSpec",
    "PacketRecord",
    "ScaleResult",
    "WorkerError",
    "WorkerResult",
    "codec_label",
]
