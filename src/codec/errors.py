"""
코덱 어댑터 예외 모듈입니다.

역할:
- 네이티브 코덱/먹서/스케일러 호출 실패를 에러 종류(kind)별 예외로 구분
- 원본 네이티브 메시지를 보존하여 사용자에게 노출

모든 예외는 CodecError를 상속하며, kind 속성으로 종류를 식별합니다.
"""

from __future__ import annotations

from typing import Optional


class CodecError(RuntimeError):
    """
    코덱 어댑터 예외의 기본 클래스입니다.

    속성:
        kind: 에러 종류 이름 (예: "CodecNotFound")
        native_message: 네이티브 라이브러리가 반환한 원본 메시지
    """

    kind: str = "CodecError"

    def __init__(self, message: str, native_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.native_message = native_message or ""

    def __str__(self) -> str:
        base = super().__str__()
        if self.native_message:
            return f"{base} ({self.native_message})"
        return base


class CodecNotFoundError(CodecError):
    """요청한 키에 등록된 인코더가 없을 때 발생합니다."""
    kind = "CodecNotFound"


class AllocFailedError(CodecError):
    """네이티브 리소스 할당이 실패했을 때 발생합니다."""
    kind = "AllocFailed"


class CodecOpenError(CodecError):
    """코덱 컨텍스트 열기가 실패했거나 이미 열려 있을 때 발생합니다."""
    kind = "CodecOpen"


class MuxerUnknownError(CodecError):
    """파일 확장자로 컨테이너 포맷을 결정할 수 없을 때 발생합니다."""
    kind = "MuxerUnknown"


class IOOpenError(CodecError):
    """출력 파일을 열 수 없을 때 발생합니다."""
    kind = "IOOpen"


class StreamAllocError(CodecError):
    """출력 컨텍스트에 스트림을 추가할 수 없을 때 발생합니다."""
    kind = "StreamAlloc"


class HeaderWriteError(CodecError):
    """컨테이너 헤더 기록이 실패했을 때 발생합니다."""
    kind = "HeaderWrite"


class EncodeFailedError(CodecError):
    """프레임 인코딩이 실패했을 때 발생합니다."""
    kind = "EncodeFailed"


class PacketWriteError(CodecError):
    """패킷(또는 트레일러) 기록이 실패했을 때 발생합니다."""
    kind = "PacketWrite"


class ScaleFailedError(CodecError):
    """해상도/포맷 변환이 실패했을 때 발생합니다."""
    kind = "ScaleFailed"
