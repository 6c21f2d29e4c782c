"""
멀티 출력 인코더 설정 스키마 정의 모듈입니다.

역할:
- Pydantic v2 BaseModel 기반으로 config.yaml의 전체 구조를 타입 안전하게 정의
- 각 섹션(system, source, encoder, fanout, scale)을 독립적인 중첩 모델로 분리
- 필드별 기본값, 허용 범위, 유효성 검증(validator)을 포함

사용 예시:
    >>> from src.config.schema import AppConfig
    >>> config = AppConfig(**yaml_data)
    >>> print(config.encoder.bit_rate)
    400000
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from src.codec import CodecId, CodecKey, TimeBase

# 모듈 로거 설정
logger = logging.getLogger(__name__)

# 허용 로그 레벨 (Python logging)
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# 허용 FFmpeg 로그 레벨 (av.logging 상수 이름)
_NATIVE_LOG_LEVELS = ("QUIET", "PANIC", "FATAL", "ERROR", "WARNING", "INFO", "VERBOSE", "DEBUG")

# 허용 스케일 알고리즘 (SwsAlgorithm 이름)
_SCALE_ALGORITHMS = (
    "FAST_BILINEAR", "BILINEAR", "BICUBIC", "POINT", "NEAREST",
    "AREA", "GAUSS", "SINC", "LANCZOS", "SPLINE",
)


def parse_codec_key(value: str) -> CodecKey:
    """
    설정 문자열을 코덱 키로 변환합니다.

    "MPEG1VIDEO" 같은 CodecId 멤버 이름이나 "mpeg4" 같은 알려진 인코더 이름은
    CodecId로, 그 밖의 문자열은 short-name 그대로 반환합니다.
    """
    codec_id = CodecId.from_name(value)
    return codec_id if codec_id is not None else value


def _validate_even_dimension(name: str, value: int) -> int:
    if value <= 0 or value % 2:
        raise ValueError(f"{name}는 양의 짝수여야 합니다. 입력값: {value}")
    return value


# =============================================================================
# system 섹션: 시스템 전역 설정
# =============================================================================

class SystemConfig(BaseModel):
    """
    시스템 전역 설정을 정의하는 모델입니다.

    역할:
    - 로깅 레벨 및 포맷 지정
    - FFmpeg 네이티브 로그 레벨 지정
    - 세션 식별자 관리
    """
    # 로그 출력 레벨
    log_level: str = Field(default="INFO", description="로그 레벨 (DEBUG | INFO | WARNING | ERROR)")
    # 로그 출력 포맷
    log_format: str = Field(default="text", description="로그 포맷 (json | text)")
    # 로그 파일 저장 디렉토리 경로
    log_dir: str = Field(default="output/logs", description="로그 저장 디렉토리")
    # 세션 고유 식별자 (빈 문자열이면 UUID로 자동 생성)
    session_id: str = Field(default="", description="세션 ID (비어있으면 UUID 자동생성)")
    # FFmpeg 로그 레벨
    native_log_level: str = Field(default="ERROR", description="FFmpeg 로그 레벨")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """로그 레벨이 유효한 Python 로깅 레벨인지 검증합니다."""
        # 대소문자 구분 없이 비교 후 대문자로 정규화
        upper_value = value.upper()
        if upper_value not in _LOG_LEVELS:
            error_message = f"log_level은 {_LOG_LEVELS} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """로그 포맷이 지원되는 형식인지 검증합니다."""
        allowed_formats = ("json", "text")
        if value not in allowed_formats:
            error_message = f"log_format은 {allowed_formats} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return value

    @field_validator("native_log_level")
    @classmethod
    def validate_native_log_level(cls, value: str) -> str:
        """FFmpeg 로그 레벨 이름을 검증합니다."""
        upper_value = value.upper()
        if upper_value not in _NATIVE_LOG_LEVELS:
            error_message = (
                f"native_log_level은 {_NATIVE_LOG_LEVELS} 중 하나여야 합니다. 입력값: '{value}'"
            )
            raise ValueError(error_message)
        return upper_value


# =============================================================================
# source 섹션: 합성 프레임 소스 설정
# =============================================================================

class SourceConfig(BaseModel):
    """
    합성 프레임 소스 설정입니다.

    역할:
    - 원본 해상도와 픽셀 포맷 지정
    - 생성할 프레임 수(소스 길이) 지정
    """
    width: int = Field(default=320, description="원본 가로 픽셀 수")
    height: int = Field(default=200, description="원본 세로 픽셀 수")
    pixel_format: str = Field(default="yuv420p", description="원본 픽셀 포맷")
    # 합성 소스 길이 (프레임 수)
    frame_count: int = Field(default=25, description="생성할 프레임 수")

    @field_validator("width", "height")
    @classmethod
    def validate_dimension(cls, value: int, info) -> int:
        """해상도가 양의 짝수인지 검증합니다 (YUV420P 크로마 서브샘플링)."""
        return _validate_even_dimension(info.field_name, value)

    @field_validator("frame_count")
    @classmethod
    def validate_frame_count(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"frame_count는 0 이상이어야 합니다. 입력값: {value}")
        return value


# =============================================================================
# encoder 섹션: 출력별 인코더 공통 설정
# =============================================================================

class EncoderConfig(BaseModel):
    """
    각 출력의 인코더에 공통으로 적용되는 설정입니다.

    역할:
    - 비트레이트, 해상도, 타임베이스, 픽셀 포맷 지정
    - 선택적 GOP 크기 및 최대 B-frame 수 지정
    - 종료 시 인코더 flush(drain) 여부
    """
    # 목표 비트레이트 (bps)
    bit_rate: int = Field(default=400000, description="목표 비트레이트 (bps)")
    width: int = Field(default=320, description="인코딩 가로 픽셀 수")
    height: int = Field(default=200, description="인코딩 세로 픽셀 수")
    # 인코더 타임베이스 ("분자/분모")
    time_base: str = Field(default="1/25", description="인코더 타임베이스 (예: 1/25)")
    pixel_format: str = Field(default="yuv420p", description="인코딩 픽셀 포맷")
    # None이면 인코더 기본값 사용
    gop_size: Optional[int] = Field(default=None, description="GOP 크기 (키프레임 간격)")
    max_b_frames: Optional[int] = Field(default=None, description="최대 연속 B-frame 수")
    # 종료 시 null 프레임으로 재정렬 버퍼 비우기
    flush: bool = Field(default=True, description="종료 시 인코더 flush 여부")

    @field_validator("bit_rate")
    @classmethod
    def validate_bit_rate(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"bit_rate는 양수여야 합니다. 입력값: {value}")
        return value

    @field_validator("width", "height")
    @classmethod
    def validate_dimension(cls, value: int, info) -> int:
        return _validate_even_dimension(info.field_name, value)

    @field_validator("time_base")
    @classmethod
    def validate_time_base(cls, value: str) -> str:
        """타임베이스 문자열이 양의 유리수인지 검증합니다."""
        try:
            parsed = TimeBase.parse(value)
        except ValueError as exc:
            raise ValueError(f"time_base 형식이 올바르지 않습니다. 입력값: '{value}'") from exc
        if parsed.num <= 0 or parsed.den <= 0:
            raise ValueError(f"time_base는 양수여야 합니다. 입력값: '{value}'")
        return str(parsed)

    @field_validator("gop_size", "max_b_frames")
    @classmethod
    def validate_non_negative(cls, value: Optional[int], info) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError(f"{info.field_name}는 0 이상이어야 합니다. 입력값: {value}")
        return value

    def get_time_base(self) -> TimeBase:
        return TimeBase.parse(self.time_base)


# =============================================================================
# fanout 섹션: 출력 목록 및 채널 설정
# =============================================================================

class OutputConfig(BaseModel):
    """
    출력 하나(싱크)의 선언적 설정입니다.

    역할:
    - 출력 파일명 지정 (확장자로 컨테이너 결정)
    - 코덱 지정 (CodecId 이름 또는 인코더 short-name)
    """
    filename: str = Field(description="출력 파일 경로")
    codec: str = Field(description="코덱 (MPEG1VIDEO | MPEG2VIDEO | MPEG4 | 인코더 이름)")

    @field_validator("filename", "codec")
    @classmethod
    def validate_not_empty(cls, value: str, info) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name}는 비어 있을 수 없습니다")
        return value

    def get_codec_key(self) -> CodecKey:
        return parse_codec_key(self.codec)


def _default_outputs() -> list[OutputConfig]:
    return [
        OutputConfig(filename="sample-enc-mpeg1.mpg", codec="MPEG1VIDEO"),
        OutputConfig(filename="sample-enc-mpeg2.mpg", codec="MPEG2VIDEO"),
        OutputConfig(filename="sample-enc-mpeg4.mp4", codec="MPEG4"),
    ]


class FanoutConfig(BaseModel):
    """
    팬아웃 코디네이터 설정입니다.

    역할:
    - 출력 목록 정의
    - 워커별 프레임 채널 크기 제한 (0 = 무제한)
    - 출력 파일 기준 디렉토리
    """
    outputs: list[OutputConfig] = Field(default_factory=_default_outputs, description="출력 목록")
    # 워커 채널 최대 프레임 수 (작을수록 공유 프레임 수명이 짧아짐)
    queue_size: int = Field(default=1, description="워커 채널 크기 (0=무제한)")
    # 상대 경로 출력 파일의 기준 디렉토리 (빈 문자열이면 현재 디렉토리)
    output_dir: str = Field(default="", description="출력 디렉토리")

    @field_validator("queue_size")
    @classmethod
    def validate_queue_size(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"queue_size는 0 이상이어야 합니다. 입력값: {value}")
        return value

    @field_validator("outputs")
    @classmethod
    def validate_outputs(cls, value: list[OutputConfig]) -> list[OutputConfig]:
        """출력 파일명이 중복되지 않는지 검증합니다."""
        filenames = [output.filename for output in value]
        duplicates = sorted({name for name in filenames if filenames.count(name) > 1})
        if duplicates:
            raise ValueError(f"출력 파일명이 중복되었습니다: {duplicates}")
        return value


# =============================================================================
# scale 섹션: 스케일 후 인코딩 흐름 설정
# =============================================================================

class ScaleConfig(BaseModel):
    """
    스케일 + 단일 출력 인코딩 흐름 설정입니다.

    역할:
    - 원본/대상 해상도 및 스케일 알고리즘 지정
    - 대상 인코더의 GOP, B-frame 설정
    """
    src_width: int = Field(default=640, description="원본 가로 픽셀 수")
    src_height: int = Field(default=480, description="원본 세로 픽셀 수")
    dst_width: int = Field(default=320, description="대상 가로 픽셀 수")
    dst_height: int = Field(default=200, description="대상 세로 픽셀 수")
    algorithm: str = Field(default="BICUBIC", description="스케일 알고리즘")
    filename: str = Field(default="sample-scale-mpeg4.mp4", description="출력 파일 경로")
    codec: str = Field(default="mpeg4", description="코덱")
    gop_size: int = Field(default=10, description="GOP 크기")
    max_b_frames: int = Field(default=1, description="최대 연속 B-frame 수")

    @field_validator("src_width", "src_height", "dst_width", "dst_height")
    @classmethod
    def validate_dimension(cls, value: int, info) -> int:
        return _validate_even_dimension(info.field_name, value)

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, value: str) -> str:
        upper_value = value.upper()
        if upper_value not in _SCALE_ALGORITHMS:
            raise ValueError(f"algorithm은 {_SCALE_ALGORITHMS} 중 하나여야 합니다. 입력값: '{value}'")
        return upper_value

    def get_codec_key(self) -> CodecKey:
        return parse_codec_key(self.codec)


# =============================================================================
# 최상위 AppConfig: 모든 섹션을 통합하는 루트 모델
# =============================================================================

class AppConfig(BaseModel):
    """
    애플리케이션 전체 설정을 통합하는 최상위 모델입니다.

    역할:
    - config.yaml의 모든 섹션을 하나의 타입 안전한 객체로 통합
    - 각 섹션이 누락된 경우 기본값으로 자동 생성

    사용 예시:
        >>> config = AppConfig()
        >>> [o.filename for o in config.fanout.outputs]
        ['sample-enc-mpeg1.mpg', 'sample-enc-mpeg2.mpg', 'sample-enc-mpeg4.mp4']
    """
    system: SystemConfig = Field(default_factory=SystemConfig, description="시스템 설정")
    source: SourceConfig = Field(default_factory=SourceConfig, description="프레임 소스 설정")
    encoder: EncoderConfig = Field(default_factory=EncoderConfig, description="인코더 설정")
    fanout: FanoutConfig = Field(default_factory=FanoutConfig, description="팬아웃 설정")
    scale: ScaleConfig = Field(default_factory=ScaleConfig, description="스케일 흐름 설정")
