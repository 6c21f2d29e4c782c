"""
네이티브 코덱 라이브러리(PyAV/FFmpeg) 어댑터 모듈입니다.

역할:
- 인코더 디스크립터, 코덱 컨텍스트, 출력 컨텍스트, 스트림, 프레임, 패킷을
  불투명 핸들로 래핑
- PyAV 예외를 에러 종류별 CodecError 하위 클래스로 변환
- 리소스 수명(할당 → 설정 → 열기 → 사용 → 해제) 상태 추적
- 프로세스 전역 네이티브 초기화를 one-shot 가드로 1회만 수행

상태 전이:
    CodecContext:  configurable → open → closed
    OutputContext: allocated → header → closed (close는 정확히 1회 수행)

사용 예시:
    >>> encoder = new_encoder(CodecId.MPEG4)
    >>> ctx = new_codec_ctx(encoder).set_width(320).set_height(200)
    >>> output = new_output_ctx("out.mp4")
    >>> stream = output.new_stream(encoder)
    >>> ctx.open()
    >>> stream.set_codec_ctx(ctx)
    >>> output.write_header()
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Optional

import av
import numpy as np
from av.error import FFmpegError

from src.codec import AVFMT_GLOBALHEADER, TS_NONE, CodecId, CodecKey, TimeBase
from src.codec.errors import (
    AllocFailedError,
    CodecNotFoundError,
    CodecOpenError,
    EncodeFailedError,
    HeaderWriteError,
    IOOpenError,
    MuxerUnknownError,
    PacketWriteError,
    StreamAllocError,
)
from src.codec.rescale import rescale_q

logger = logging.getLogger(__name__)

# start_time 단위 (AV_TIME_BASE = 1,000,000 → 마이크로초)
_AV_TIME_BASE = TimeBase(1, 1_000_000)

# =============================================================================
# 전역 초기화
# =============================================================================

_init_lock = threading.Lock()
_initialized: bool = False


def init_codec_library(log_level: str = "ERROR") -> bool:
    """
    네이티브 라이브러리 전역 설정을 프로세스당 1회만 수행합니다.

    FFmpeg 로그 레벨을 지정합니다. 종료 시 정리는 필요하지 않습니다.

    파라미터:
        log_level: FFmpeg 로그 레벨 이름 (QUIET | PANIC | FATAL | ERROR | WARNING | INFO | VERBOSE | DEBUG)

    반환값:
        bool: 이번 호출에서 초기화를 수행했으면 True, 이미 초기화되어 있으면 False
    """
    global _initialized

    with _init_lock:
        if _initialized:
            return False

        native_level = getattr(av.logging, log_level.upper(), av.logging.ERROR)
        av.logging.set_level(native_level)
        _initialized = True

    logger.info(f"코덱 라이브러리 초기화 완료: PyAV {av.__version__}, native_log_level={log_level}")
    return True


# =============================================================================
# 인코더 디스크립터
# =============================================================================

class Encoder:
    """
    등록된 인코더를 가리키는 디스크립터입니다.

    속성:
        name: FFmpeg 인코더 이름 (예: "mpeg4")
        long_name: 인코더 설명
        codec_id: 해석된 CodecId (알려진 코덱이 아니면 None)
    """

    def __init__(self, codec: av.Codec, codec_id: Optional[CodecId]) -> None:
        self._codec = codec
        self.codec_id = codec_id

    @property
    def name(self) -> str:
        return self._codec.name

    @property
    def long_name(self) -> str:
        return self._codec.long_name

    @property
    def native(self) -> av.Codec:
        return self._codec

    def __repr__(self) -> str:
        return f"Encoder(name={self.name!r}, codec_id={self.codec_id})"


def new_encoder(key: CodecKey) -> Encoder:
    """
    코덱 키(CodecId 또는 short-name 문자열)로 인코더를 해석합니다.

    문자열 키가 알려진 CodecId 값과 일치하면 해당 CodecId로 해석하므로,
    코덱별 분기는 항상 해석된 식별자로 비교할 수 있습니다.

    파라미터:
        key: CodecId 또는 인코더 short-name

    반환값:
        Encoder: 인코더 디스크립터

    에러:
        CodecNotFoundError: 해당 키로 등록된 인코더가 없을 때
        TypeError: key가 CodecId도 문자열도 아닐 때
    """
    if isinstance(key, CodecId):
        name = key.value
    elif isinstance(key, str):
        name = key
    else:
        raise TypeError(f"코덱 키는 CodecId 또는 str이어야 합니다: {type(key).__name__}")

    try:
        codec = av.Codec(name, "w")
    except (ValueError, FFmpegError) as exc:
        raise CodecNotFoundError(f"인코더를 찾을 수 없습니다: '{name}'", str(exc)) from exc

    codec_id = key if isinstance(key, CodecId) else CodecId.from_name(codec.name)
    return Encoder(codec, codec_id)


# =============================================================================
# 코덱 컨텍스트
# =============================================================================

class CodecContext:
    """
    설정 가능한 인코더 인스턴스입니다.

    setter는 모두 self를 반환하여 체이닝할 수 있습니다.
    open() 이후의 setter 호출은 RuntimeError로 거부됩니다.

    profile, 매크로블록 결정 모드, 플래그는 AVOption으로 전달되며
    open() 시점에 네이티브 컨텍스트에 적용됩니다.
    """

    def __init__(self, encoder: Encoder) -> None:
        self._encoder = encoder
        try:
            self._ctx = av.CodecContext.create(encoder.native, "w")
        except (MemoryError, FFmpegError) as exc:
            raise AllocFailedError(
                f"코덱 컨텍스트 할당 실패: {encoder.name}", str(exc)
            ) from exc

        # 스트림 바인딩 시 복사할 속성 (적용 순서 유지)
        self._params: dict[str, Any] = {}
        self._profile: Optional[int] = None
        self._mb_decision: Optional[int] = None
        self._flags: list[str] = []
        self._state: str = "configurable"
        self._flushed: bool = False

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    @property
    def encoder(self) -> Encoder:
        return self._encoder

    @property
    def codec_id(self) -> Optional[CodecId]:
        return self._encoder.codec_id

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == "open"

    @property
    def is_closed(self) -> bool:
        return self._state == "closed"

    @property
    def width(self) -> int:
        return self._params.get("width", 0)

    @property
    def height(self) -> int:
        return self._params.get("height", 0)

    @property
    def pix_fmt(self) -> Optional[str]:
        return self._params.get("pix_fmt")

    @property
    def bit_rate(self) -> int:
        return self._params.get("bit_rate", 0)

    @property
    def gop_size(self) -> Optional[int]:
        return self._params.get("gop_size")

    @property
    def max_b_frames(self) -> Optional[int]:
        return self._params.get("max_b_frames")

    @property
    def profile(self) -> Optional[int]:
        return self._profile

    @property
    def mb_decision(self) -> Optional[int]:
        return self._mb_decision

    @property
    def flags(self) -> list[str]:
        return list(self._flags)

    @property
    def time_base(self) -> TimeBase:
        time_base = self._params.get("time_base")
        if time_base is None:
            raise ValueError(f"타임베이스가 설정되지 않았습니다: {self._encoder.name}")
        return TimeBase.from_fraction(time_base)

    # -------------------------------------------------------------------------
    # 설정 (fluent setter)
    # -------------------------------------------------------------------------

    def set_bit_rate(self, bit_rate: int) -> CodecContext:
        return self._set("bit_rate", int(bit_rate))

    def set_width(self, width: int) -> CodecContext:
        return self._set("width", int(width))

    def set_height(self, height: int) -> CodecContext:
        return self._set("height", int(height))

    def set_pix_fmt(self, pix_fmt: str) -> CodecContext:
        return self._set("pix_fmt", pix_fmt)

    def set_time_base(self, time_base: TimeBase) -> CodecContext:
        self._set("time_base", time_base.to_fraction())
        # MPEG 계열 인코더는 framerate로 frame_rate_code를 결정
        return self._set("framerate", 1 / time_base.to_fraction())

    def set_gop_size(self, gop_size: int) -> CodecContext:
        return self._set("gop_size", int(gop_size))

    def set_max_b_frames(self, max_b_frames: int) -> CodecContext:
        return self._set("max_b_frames", int(max_b_frames))

    def set_profile(self, profile: int) -> CodecContext:
        self._ensure_configurable()
        self._profile = int(profile)
        return self

    def set_mb_decision(self, mb_decision: int) -> CodecContext:
        self._ensure_configurable()
        self._mb_decision = int(mb_decision)
        return self

    def set_flag(self, flag: str) -> CodecContext:
        self._ensure_configurable()
        if flag not in self._flags:
            self._flags.append(flag)
        return self

    # -------------------------------------------------------------------------
    # 수명 주기
    # -------------------------------------------------------------------------

    def open(self, options: Optional[dict[str, Any]] = None) -> None:
        """
        컨텍스트를 Configurable → Open 상태로 전이합니다.

        파라미터:
            options: 추가 AVOption (예: {"qscale": "3"})

        에러:
            CodecOpenError: 이미 열려 있거나, 닫혔거나, 네이티브 열기가 실패했을 때
        """
        if self._state != "configurable":
            raise CodecOpenError(
                f"코덱 컨텍스트를 열 수 없는 상태입니다: state={self._state}, "
                f"codec={self._encoder.name}"
            )

        native_options = self._native_options()
        native_options.update({key: str(value) for key, value in (options or {}).items()})
        self._ctx.options.update(native_options)

        try:
            self._ctx.open()
        except (FFmpegError, ValueError) as exc:
            raise CodecOpenError(
                f"코덱 컨텍스트 열기 실패: {self._encoder.name}", str(exc)
            ) from exc

        self._state = "open"
        logger.debug(
            f"코덱 컨텍스트 열기 완료: codec={self._encoder.name}, "
            f"{self.width}x{self.height}, pix_fmt={self.pix_fmt}, "
            f"time_base={self._params.get('time_base')}, options={native_options}"
        )

    def flush(self) -> list[Packet]:
        """
        인코더 내부 버퍼(B-frame 재정렬 등)를 비우고 남은 패킷을 반환합니다.

        두 번째 호출부터는 빈 리스트를 반환합니다.
        """
        if self._flushed:
            return []
        self._flushed = True
        return self._encode(None)

    def close(self) -> None:
        """네이티브 컨텍스트 참조를 해제합니다. 여러 번 호출해도 안전합니다."""
        if self._state == "closed":
            return
        self._state = "closed"
        self._ctx = None

    # -------------------------------------------------------------------------
    # 내부 메서드
    # -------------------------------------------------------------------------

    def _ensure_configurable(self) -> None:
        if self._state != "configurable":
            raise RuntimeError(
                f"open() 이후에는 코덱 설정을 변경할 수 없습니다: codec={self._encoder.name}"
            )

    def _set(self, name: str, value: Any) -> CodecContext:
        self._ensure_configurable()
        setattr(self._ctx, name, value)
        self._params[name] = value
        return self

    def _native_options(self) -> dict[str, str]:
        """profile/mbd/flags 설정을 AVOption 딕셔너리로 변환합니다."""
        options: dict[str, str] = {}
        if self._profile is not None:
            options["profile"] = str(self._profile)
        if self._mb_decision is not None:
            options["mbd"] = str(self._mb_decision)
        if self._flags:
            options["flags"] = "".join(f"+{flag}" for flag in self._flags)
        return options

    def _copy_parameters(self, target: av.CodecContext) -> None:
        """인코더 파라미터를 다른 네이티브 컨텍스트(스트림 측)로 복사합니다."""
        for name, value in self._params.items():
            setattr(target, name, value)
        target.options.update(self._native_options())

    def _encode(self, av_frame: Optional[av.VideoFrame]) -> list[Packet]:
        if self._state != "open":
            raise EncodeFailedError(
                f"열리지 않은 코덱 컨텍스트로 인코딩할 수 없습니다: state={self._state}"
            )
        try:
            av_packets = self._ctx.encode(av_frame)
        except (FFmpegError, ValueError, EOFError) as exc:
            raise EncodeFailedError(
                f"인코딩 실패: codec={self._encoder.name}", str(exc)
            ) from exc
        return [Packet(av_packet) for av_packet in av_packets]


def new_codec_ctx(encoder: Encoder) -> CodecContext:
    """인코더 디스크립터로부터 설정 가능한 새 코덱 컨텍스트를 할당합니다."""
    return CodecContext(encoder)


# =============================================================================
# 스트림
# =============================================================================

class Stream:
    """
    출력 컨텍스트 안의 엘리멘터리 스트림입니다.

    바인딩된 코덱 컨텍스트는 소유하지 않는 참조로만 보관합니다.
    타임베이스는 헤더 기록 시 먹서가 확정합니다.
    """

    def __init__(self, av_stream: av.stream.Stream, encoder: Encoder) -> None:
        self._stream = av_stream
        self._encoder = encoder
        self._codec_ctx: Optional[CodecContext] = None
        self._released: bool = False

    @property
    def index(self) -> int:
        return self._stream.index

    @property
    def time_base(self) -> TimeBase:
        time_base = self._stream.time_base
        if time_base is None:
            raise ValueError(f"스트림 타임베이스가 아직 결정되지 않았습니다: index={self.index}")
        return TimeBase.from_fraction(time_base)

    @property
    def native(self) -> av.stream.Stream:
        return self._stream

    @property
    def is_released(self) -> bool:
        return self._released

    def set_codec_ctx(self, ctx: CodecContext) -> None:
        """
        열린 코덱 컨텍스트의 파라미터를 스트림에 바인딩합니다.

        에러:
            CodecOpenError: 컨텍스트가 열려 있지 않을 때
            StreamAllocError: 파라미터 복사가 실패했을 때
        """
        if not ctx.is_open:
            raise CodecOpenError(
                f"스트림에는 열린 코덱 컨텍스트만 바인딩할 수 있습니다: state={ctx.state}"
            )
        try:
            ctx._copy_parameters(self._stream.codec_context)
            self._stream.time_base = ctx.time_base.to_fraction()
        except (ValueError, AttributeError, FFmpegError) as exc:
            raise StreamAllocError(
                f"스트림 파라미터 바인딩 실패: index={self.index}", str(exc)
            ) from exc
        self._codec_ctx = ctx

    def get_codec_ctx(self) -> Optional[CodecContext]:
        return self._codec_ctx

    def release(self) -> None:
        """코덱 컨텍스트 참조를 끊습니다. 컨텍스트보다 먼저 해제해야 합니다."""
        self._codec_ctx = None
        self._released = True


# =============================================================================
# 출력 컨텍스트
# =============================================================================

class OutputContext:
    """
    파일명에 바인딩된 컨테이너 먹서입니다.

    컨테이너 포맷은 파일 확장자로 결정됩니다.
    헤더는 정확히 한 번 기록되고, close_output()은 최초 1회만 실제로 수행됩니다.
    """

    def __init__(self, filename: str) -> None:
        self.filename = str(filename)
        try:
            self._container = av.open(self.filename, mode="w")
        except OSError as exc:
            raise IOOpenError(f"출력 파일을 열 수 없습니다: {self.filename}", str(exc)) from exc
        except (ValueError, FFmpegError) as exc:
            raise MuxerUnknownError(
                f"컨테이너 포맷을 결정할 수 없습니다: {self.filename}", str(exc)
            ) from exc

        # 파일 I/O는 헤더 기록 시점에 열리므로 출력 디렉토리를 미리 확인
        parent = os.path.dirname(os.path.abspath(self.filename))
        if not os.path.isdir(parent) or not os.access(parent, os.W_OK):
            self._container.close()
            raise IOOpenError(
                f"출력 파일을 열 수 없습니다: {self.filename}",
                f"directory not writable: {parent}",
            )

        self._streams: list[Stream] = []
        self._start_time: int = 0
        self._header_written: bool = False
        self._closed: bool = False
        self._close_count: int = 0

    @property
    def format_name(self) -> str:
        return self._container.format.name

    @property
    def streams(self) -> list[Stream]:
        return list(self._streams)

    @property
    def header_written(self) -> bool:
        return self._header_written

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def close_count(self) -> int:
        return self._close_count

    @property
    def start_time(self) -> int:
        return self._start_time

    def is_global_header(self) -> bool:
        """컨테이너가 코덱 extradata를 out-of-band 전역 헤더로 요구하는지 반환합니다."""
        return bool(int(self._container.format.flags) & AVFMT_GLOBALHEADER)

    def new_stream(self, encoder: Encoder, options: Optional[dict[str, str]] = None) -> Stream:
        """
        인코더에 대응하는 새 스트림을 추가합니다.

        에러:
            StreamAllocError: 헤더 기록 이후이거나 네이티브 추가가 실패했을 때
        """
        if self._header_written or self._closed:
            raise StreamAllocError(f"헤더 기록 이후에는 스트림을 추가할 수 없습니다: {self.filename}")
        try:
            if options:
                av_stream = self._container.add_stream(encoder.name, options=dict(options))
            else:
                av_stream = self._container.add_stream(encoder.name)
        except (ValueError, FFmpegError) as exc:
            raise StreamAllocError(
                f"스트림 생성 실패: {self.filename} ({encoder.long_name})", str(exc)
            ) from exc

        stream = Stream(av_stream, encoder)
        self._streams.append(stream)
        return stream

    def set_start_time(self, start_time: int) -> None:
        """
        출력 시작 시각(마이크로초)을 지정합니다. 헤더 기록 전에만 호출할 수 있습니다.

        0이 아닌 값은 기록되는 모든 PTS/DTS에 오프셋으로 더해집니다.
        """
        if self._header_written:
            raise RuntimeError(f"헤더 기록 이후에는 시작 시각을 바꿀 수 없습니다: {self.filename}")
        self._start_time = int(start_time)

    def write_header(self) -> None:
        """
        컨테이너 헤더를 기록합니다. 이 시점에 스트림 타임베이스가 확정됩니다.

        에러:
            HeaderWriteError: 이미 기록했거나, 스트림이 없거나, 네이티브 기록이 실패했을 때
        """
        if self._closed:
            raise HeaderWriteError(f"닫힌 출력 컨텍스트입니다: {self.filename}")
        if self._header_written:
            raise HeaderWriteError(f"헤더는 한 번만 기록할 수 있습니다: {self.filename}")
        if not self._streams:
            raise HeaderWriteError(f"스트림이 없는 출력에는 헤더를 기록할 수 없습니다: {self.filename}")

        try:
            self._container.start_encoding()
        except OSError as exc:
            raise IOOpenError(f"출력 파일을 열 수 없습니다: {self.filename}", str(exc)) from exc
        except (FFmpegError, ValueError) as exc:
            raise HeaderWriteError(f"헤더 기록 실패: {self.filename}", str(exc)) from exc

        self._header_written = True
        logger.debug(
            f"헤더 기록 완료: {self.filename}, format={self.format_name}, "
            f"stream_time_bases={[str(s.time_base) for s in self._streams]}"
        )

    def write_packet(self, packet: Packet) -> None:
        """
        스트림 타임베이스로 변환된 패킷을 기록합니다.

        에러:
            PacketWriteError: 헤더 전/닫힌 후 호출, 잘못된 스트림 인덱스, 네이티브 기록 실패
        """
        if not self._header_written:
            raise PacketWriteError(f"헤더 기록 전에는 패킷을 기록할 수 없습니다: {self.filename}")
        if self._closed:
            raise PacketWriteError(f"닫힌 출력 컨텍스트입니다: {self.filename}")
        if not 0 <= packet.stream_index < len(self._streams):
            raise PacketWriteError(
                f"잘못된 스트림 인덱스: {packet.stream_index} (streams={len(self._streams)})"
            )

        stream = self._streams[packet.stream_index]
        if self._start_time:
            offset = rescale_q(self._start_time, _AV_TIME_BASE, stream.time_base)
            if packet.pts != TS_NONE:
                packet.set_pts(packet.pts + offset)
            if packet.dts != TS_NONE:
                packet.set_dts(packet.dts + offset)

        try:
            packet._bind(stream)
            self._container.mux(packet.native)
        except (FFmpegError, ValueError, OSError) as exc:
            raise PacketWriteError(
                f"패킷 기록 실패: {self.filename}, pts={packet.pts}, dts={packet.dts}", str(exc)
            ) from exc

    def close_output(self) -> None:
        """
        트레일러를 기록하고 I/O를 해제합니다. 두 번째 호출부터는 아무 일도 하지 않습니다.

        에러:
            PacketWriteError: 트레일러 기록/파일 닫기가 실패했을 때
        """
        if self._closed:
            return
        self._closed = True
        self._close_count += 1

        try:
            self._container.close()
        except (FFmpegError, ValueError, OSError) as exc:
            raise PacketWriteError(f"트레일러 기록 실패: {self.filename}", str(exc)) from exc


def new_output_ctx(filename: str) -> OutputContext:
    """파일 확장자로 컨테이너를 결정하여 출력 컨텍스트를 생성합니다."""
    return OutputContext(filename)


# =============================================================================
# 프레임
# =============================================================================

class Frame:
    """
    원시 영상 프레임입니다.

    픽셀 버퍼는 어댑터가 소유합니다. 공유 프레임의 PTS를 바꾸기 전에는
    반드시 clone()으로 독립 사본을 만들어야 합니다.
    """

    def __init__(self, av_frame: av.VideoFrame) -> None:
        self._frame: Optional[av.VideoFrame] = av_frame

    @classmethod
    def alloc(cls, width: int, height: int, pix_fmt: str) -> Frame:
        """지정한 해상도/포맷의 이미지 버퍼를 할당한 빈 프레임을 만듭니다."""
        try:
            av_frame = av.VideoFrame(width, height, pix_fmt)
        except (ValueError, FFmpegError, MemoryError) as exc:
            raise AllocFailedError(
                f"프레임 버퍼 할당 실패: {width}x{height} {pix_fmt}", str(exc)
            ) from exc
        return cls(av_frame)

    @classmethod
    def from_ndarray(cls, array: np.ndarray, pix_fmt: str) -> Frame:
        return cls(av.VideoFrame.from_ndarray(array, format=pix_fmt))

    @property
    def native(self) -> av.VideoFrame:
        if self._frame is None:
            raise RuntimeError("해제된 프레임입니다")
        return self._frame

    @property
    def is_freed(self) -> bool:
        return self._frame is None

    @property
    def width(self) -> int:
        return self.native.width

    @property
    def height(self) -> int:
        return self.native.height

    @property
    def pix_fmt(self) -> str:
        return self.native.format.name

    @property
    def pts(self) -> int:
        pts = self.native.pts
        return TS_NONE if pts is None else pts

    def set_pts(self, pts: int) -> Frame:
        self.native.pts = None if pts == TS_NONE else int(pts)
        return self

    def clone(self) -> Frame:
        """픽셀 버퍼까지 복사한 독립 프레임을 반환합니다."""
        source = self.native
        copied = av.VideoFrame(source.width, source.height, source.format.name)
        try:
            for source_plane, copied_plane in zip(source.planes, copied.planes):
                copied_plane.update(source_plane)
        except ValueError:
            # 라인 정렬(linesize)이 다르면 ndarray 경유로 복사
            copied = av.VideoFrame.from_ndarray(source.to_ndarray(), format=source.format.name)
        copied.pts = source.pts
        if source.time_base is not None:
            copied.time_base = source.time_base
        return Frame(copied)

    def encode(self, ctx: CodecContext) -> list[Packet]:
        """
        프레임을 인코딩합니다.

        반환값:
            list[Packet]: 이번 입력으로 준비된 패킷들 (비어 있으면 아직 출력 없음)

        에러:
            EncodeFailedError: 네이티브 인코딩 실패
        """
        av_frame = self.native
        av_frame.time_base = ctx.time_base.to_fraction()
        return ctx._encode(av_frame)

    def replace_buffer(self, av_frame: av.VideoFrame) -> None:
        """픽셀 버퍼를 교체합니다. 기존 PTS는 유지합니다."""
        pts = self.pts
        self._frame = av_frame
        self.set_pts(pts)

    def to_ndarray(self) -> np.ndarray:
        return self.native.to_ndarray()

    def free(self) -> None:
        self._frame = None


def new_frame(width: int, height: int, pix_fmt: str) -> Frame:
    return Frame.alloc(width, height, pix_fmt)


# =============================================================================
# 패킷
# =============================================================================

class Packet:
    """
    인코딩된 출력 단위입니다.

    PTS/DTS가 없으면 TS_NONE으로 표현합니다. 생성 직후에는 인코더 타임베이스이며,
    기록 전에 스트림 타임베이스로 리스케일해야 합니다.
    """

    def __init__(self, av_packet: av.Packet, stream_index: int = 0) -> None:
        self._packet = av_packet
        self.stream_index = stream_index

    @classmethod
    def from_bytes(cls, payload: bytes, pts: int = TS_NONE, dts: int = TS_NONE) -> Packet:
        packet = cls(av.Packet(payload))
        return packet.set_pts(pts).set_dts(dts)

    @property
    def native(self) -> av.Packet:
        return self._packet

    @property
    def pts(self) -> int:
        pts = self._packet.pts
        return TS_NONE if pts is None else pts

    @property
    def dts(self) -> int:
        dts = self._packet.dts
        return TS_NONE if dts is None else dts

    @property
    def size(self) -> int:
        return self._packet.size

    @property
    def is_keyframe(self) -> bool:
        return bool(self._packet.is_keyframe)

    def set_pts(self, pts: int) -> Packet:
        self._packet.pts = None if pts == TS_NONE else int(pts)
        return self

    def set_dts(self, dts: int) -> Packet:
        self._packet.dts = None if dts == TS_NONE else int(dts)
        return self

    def _bind(self, stream: Stream) -> None:
        # 타임스탬프는 이미 스트림 타임베이스이므로 mux 시 재변환되지 않도록 맞춤
        self._packet.stream = stream.native
        self._packet.time_base = stream.time_base.to_fraction()

    def __repr__(self) -> str:
        return f"Packet(pts={self.pts}, dts={self.dts}, size={self.size}, stream_index={self.stream_index})"
