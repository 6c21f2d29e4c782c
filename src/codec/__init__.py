"""
코덱 어댑터 패키지

공통 데이터 타입 및 상수:
- CodecId: 심볼릭 코덱 식별자 (값 = FFmpeg 인코더 short-name)
- CodecKey: CodecId 또는 short-name 문자열 (tagged union)
- TimeBase: 유리수 타임베이스 {num, den}
- TS_NONE: "타임스탬프 없음" 센티널 (AV_NOPTS_VALUE)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Optional, Union

# AV_NOPTS_VALUE: int64 최소값
TS_NONE: int = -(2 ** 63)

# AVFMT_GLOBALHEADER (libavformat/avformat.h)
AVFMT_GLOBALHEADER: int = 0x0040


class CodecId(str, Enum):
    """심볼릭 코덱 식별자입니다. 값은 FFmpeg 인코더 이름입니다."""
    MPEG1VIDEO = "mpeg1video"
    MPEG2VIDEO = "mpeg2video"
    MPEG4 = "mpeg4"
    H264 = "libx264"

    @classmethod
    def from_name(cls, name: str) -> Optional[CodecId]:
        """인코더 이름(또는 멤버 이름)에 해당하는 CodecId를 반환합니다. 없으면 None."""
        for member in cls:
            if member.value == name or member.name == name.upper():
                return member
        return None


CodecKey = Union[CodecId, str]


class PixelFormat:
    """픽셀 포맷 상수 (FFmpeg 이름)"""
    YUV420P = "yuv420p"
    YUV422P = "yuv422p"
    RGB24 = "rgb24"
    GRAY = "gray"


class MbDecision:
    """매크로블록 결정 모드 (FF_MB_DECISION_*)"""
    SIMPLE = 0
    BITS = 1
    RD = 2


class Profile:
    """코덱 프로파일 상수 (AV_PROFILE_*)"""
    MPEG4_SIMPLE = 0
    MPEG4_ADVANCED_SIMPLE = 15


class CodecFlag:
    """코덱 플래그 (AVCodecContext "flags" 옵션 상수 이름)"""
    GLOBAL_HEADER = "global_header"
    QSCALE = "qscale"
    CLOSED_GOP = "cgop"


@dataclass(frozen=True)
class TimeBase:
    """
    틱 하나의 길이를 초 단위 유리수로 표현하는 타임베이스입니다.

    필드:
        num: 분자
        den: 분모 (0이 될 수 없음)
    """
    num: int
    den: int

    def __post_init__(self) -> None:
        if self.den == 0:
            raise ValueError(f"타임베이스 분모는 0이 될 수 없습니다: {self.num}/{self.den}")

    @classmethod
    def parse(cls, text: str) -> TimeBase:
        """"1/25" 형식 문자열을 TimeBase로 변환합니다."""
        parts = text.strip().split("/")
        if len(parts) != 2:
            raise ValueError(f"타임베이스 형식이 올바르지 않습니다 (예: '1/25'): '{text}'")
        return cls(int(parts[0]), int(parts[1]))

    @classmethod
    def from_fraction(cls, value: Fraction) -> TimeBase:
        return cls(value.numerator, value.denominator)

    def to_fraction(self) -> Fraction:
        return Fraction(self.num, self.den)

    def __str__(self) -> str:
        return f"{self.num}/{self.den}"
