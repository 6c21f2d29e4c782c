"""
출력 하나의 인코딩 세션(상태 머신) 모듈입니다.

역할:
- 인코더 해석 → 코덱 컨텍스트 설정 → 출력/스트림 바인딩 → 헤더 기록
- 프레임마다 복제 → PTS 스탬프 → 인코딩 → 타임베이스 리스케일 → 패킷 기록
- 종료 시 인코더 flush(재정렬 버퍼 비우기) 후 트레일러 기록 및 리소스 해제
- 모든 종료 경로(에러 포함)에서 스트림 → 코덱 컨텍스트 순서로 해제

상태 전이:
    idle → open → header → encoding → flushing → closed
    (어느 단계에서든 실패 시 failed, 이후 close()로 리소스만 해제)

사용 예시:
    >>> with EncodeSession("out.mp4", CodecId.MPEG4, EncoderConfig()) as session:
    ...     session.open()
    ...     for frame in frames:
    ...         session.encode(frame)
    ...     session.flush()
"""

from __future__ import annotations

from typing import Optional

from src.codec import TS_NONE, CodecFlag, CodecId, CodecKey, MbDecision, Profile
from src.codec.adapter import (
    CodecContext,
    Frame,
    OutputContext,
    Packet,
    Stream,
    new_codec_ctx,
    new_encoder,
    new_output_ctx,
)
from src.codec.errors import CodecError
from src.codec.rescale import rescale_q
from src.config.schema import EncoderConfig
from src.encoder import PacketRecord, codec_label
from src.logging.structured_logger import output_logger
from src.metrics.metrics_store import EncodeMetricsStore


class EncodeSession:
    """
    출력 파일 하나를 담당하는 인코딩 세션입니다.

    세션이 할당한 코덱 컨텍스트, 출력 컨텍스트, 스트림, 복제 프레임은
    모두 세션이 소유하며 close()에서 해제됩니다.
    """

    def __init__(
        self,
        filename: str,
        codec: CodecKey,
        settings: Optional[EncoderConfig] = None,
        metrics: Optional[EncodeMetricsStore] = None,
        record_timeline: bool = False,
    ) -> None:
        """
        파라미터:
            filename: 출력 파일 경로
            codec: CodecId 또는 인코더 short-name
            settings: 인코더 설정 (None이면 기본값)
            metrics: 공유 메트릭 저장소 (선택)
            record_timeline: True이면 기록한 패킷의 PTS/DTS/크기를 timeline에 보관
        """
        self.filename = str(filename)
        self.codec = codec
        self._settings = settings or EncoderConfig()
        self._metrics = metrics
        self._record_timeline = record_timeline
        self._log = output_logger(__name__, self.filename)

        self._ctx: Optional[CodecContext] = None
        self._output: Optional[OutputContext] = None
        self._stream: Optional[Stream] = None

        self.state: str = "idle"
        self.frames_read: int = 0
        self.packets_written: int = 0
        self.timeline: list[PacketRecord] = []

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    @property
    def codec_ctx(self) -> Optional[CodecContext]:
        return self._ctx

    @property
    def output(self) -> Optional[OutputContext]:
        return self._output

    @property
    def stream(self) -> Optional[Stream]:
        return self._stream

    # -------------------------------------------------------------------------
    # 수명 주기
    # -------------------------------------------------------------------------

    def open(self) -> None:
        """
        인코더 초기화부터 헤더 기록까지 수행합니다 (idle → header).

        실패하면 지금까지 할당한 리소스를 해제하고 상태를 failed로 둔 뒤 예외를 다시 던집니다.

        에러:
            CodecNotFoundError, AllocFailedError, MuxerUnknownError, IOOpenError,
            StreamAllocError, CodecOpenError, HeaderWriteError
        """
        if self.state != "idle":
            raise RuntimeError(f"세션은 한 번만 열 수 있습니다: state={self.state}, file={self.filename}")

        try:
            # 1. 인코더 해석 및 코덱 컨텍스트 설정
            encoder = new_encoder(self.codec)
            self._ctx = self._configure(new_codec_ctx(encoder))

            # 2. 출력 바인딩 (전역 헤더 플래그는 open 전에 설정)
            self._output = new_output_ctx(self.filename)
            if self._output.is_global_header():
                self._ctx.set_flag(CodecFlag.GLOBAL_HEADER)

            # 3. 스트림 생성
            self._stream = self._output.new_stream(encoder)

            # 4. 코덱 열기
            self._ctx.open()

            # 5. 스트림 바인딩
            self._stream.set_codec_ctx(self._ctx)
            self._set_state("open")

            # 6. 헤더 기록
            self._output.set_start_time(0)
            self._output.write_header()
            self._set_state("header")
        except Exception as exc:
            self._fail(exc)
            self._release()
            raise

        self._log.info(
            f"세션 시작: {self.filename}, codec={encoder.name}, "
            f"{self._ctx.width}x{self._ctx.height} {self._ctx.pix_fmt}, "
            f"time_base={self._ctx.time_base} → stream {self._stream.time_base}"
        )

    def encode(self, frame: Frame) -> int:
        """
        공유 프레임 하나를 복제하여 인코딩하고, 준비된 패킷을 기록합니다.

        원본 프레임은 변경하지 않습니다. 복제본의 PTS는 지금까지 읽은 프레임 수입니다.

        반환값:
            int: 이번 호출로 기록한 패킷 수

        에러:
            EncodeFailedError, PacketWriteError
        """
        if self.state not in ("header", "encoding"):
            raise RuntimeError(f"헤더 기록 전에는 인코딩할 수 없습니다: state={self.state}")
        self._set_state("encoding")

        clone = frame.clone()
        try:
            clone.set_pts(self.frames_read)
            packets = clone.encode(self._ctx)
            self.frames_read += 1
            if self._metrics is not None:
                self._metrics.record_frame(self.filename)
            for packet in packets:
                self.write_packet(packet)
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            clone.free()

        return len(packets)

    def write_packet(self, packet: Packet) -> None:
        """
        인코더 타임베이스의 패킷을 스트림 타임베이스로 리스케일하여 기록합니다.

        TS_NONE인 PTS/DTS는 리스케일하지 않고 그대로 기록합니다.
        """
        src = self._ctx.time_base
        dst = self._stream.time_base
        if packet.pts != TS_NONE:
            packet.set_pts(rescale_q(packet.pts, src, dst))
        if packet.dts != TS_NONE:
            packet.set_dts(rescale_q(packet.dts, src, dst))
        packet.stream_index = self._stream.index

        self._output.write_packet(packet)
        self.packets_written += 1

        if self._record_timeline:
            self.timeline.append(PacketRecord(pts=packet.pts, dts=packet.dts, size=packet.size))
        if self._metrics is not None:
            self._metrics.record_packet(self.filename, packet.size)

    def flush(self) -> int:
        """
        null 프레임으로 인코더 재정렬 버퍼를 비우고 남은 패킷을 기록합니다.

        설정에서 flush가 꺼져 있으면 아무 일도 하지 않습니다.

        반환값:
            int: flush로 기록한 패킷 수
        """
        if self.state not in ("header", "encoding"):
            raise RuntimeError(f"열린 세션만 flush할 수 있습니다: state={self.state}")
        if not self._settings.flush:
            return 0

        self._set_state("flushing")
        try:
            packets = self._ctx.flush()
            for packet in packets:
                self.write_packet(packet)
        except Exception as exc:
            self._fail(exc)
            raise

        if packets:
            self._log.debug(f"flush: {len(packets)} packets 기록")
        return len(packets)

    def close(self) -> None:
        """
        트레일러를 기록하고 출력 → 스트림 → 코덱 컨텍스트 순서로 해제합니다.

        여러 번 호출해도 안전합니다. 트레일러 기록 실패는 리소스 해제 후 전파됩니다.
        """
        if self.state == "closed":
            return

        failed = self.state == "failed"
        try:
            self._release()
        except CodecError as exc:
            self._fail(exc)
            raise
        finally:
            if not failed and self.state != "failed":
                self._set_state("closed")

        if self.state == "failed":
            self._log.debug(
                f"세션 해제 (실패 상태): {self.frames_read} frames, {self.packets_written} written"
            )
            return
        self._log.info(
            f"done [{self.filename}], {self.frames_read} frames, {self.packets_written} written"
        )

    def __enter__(self) -> EncodeSession:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_value is None:
            self.close()
            return
        try:
            self.close()
        except CodecError as close_exc:
            # 원래 예외를 가리지 않도록 정리 실패는 로그만 남김
            self._log.warning(f"세션 정리 실패: {self.filename}, {close_exc}")

    # -------------------------------------------------------------------------
    # 내부 메서드
    # -------------------------------------------------------------------------

    def _configure(self, ctx: CodecContext) -> CodecContext:
        """공통 인코더 설정과 코덱별 추가 설정을 적용합니다."""
        settings = self._settings
        ctx.set_bit_rate(settings.bit_rate) \
            .set_width(settings.width) \
            .set_height(settings.height) \
            .set_time_base(settings.get_time_base()) \
            .set_pix_fmt(settings.pixel_format)

        if settings.gop_size is not None:
            ctx.set_gop_size(settings.gop_size)
        if settings.max_b_frames is not None:
            ctx.set_max_b_frames(settings.max_b_frames)

        # 코덱별 분기는 해석된 식별자로 비교
        if ctx.codec_id is CodecId.MPEG1VIDEO:
            ctx.set_mb_decision(MbDecision.RD)
        elif ctx.codec_id is CodecId.MPEG4:
            ctx.set_profile(Profile.MPEG4_SIMPLE)

        return ctx

    def _release(self) -> None:
        output, stream, ctx = self._output, self._stream, self._ctx
        self._output = self._stream = self._ctx = None
        try:
            if output is not None:
                output.close_output()
        finally:
            if stream is not None:
                stream.release()
            if ctx is not None:
                ctx.close()

    def _set_state(self, state: str) -> None:
        self.state = state
        if self._metrics is not None:
            self._metrics.update_state(self.filename, state)

    def _fail(self, exc: BaseException) -> None:
        self.state = "failed"
        if self._metrics is not None:
            kind = exc.kind if isinstance(exc, CodecError) else type(exc).__name__
            self._metrics.record_error(self.filename, kind, str(exc))
        self._log.debug(f"세션 실패: {self.filename}, {type(exc).__name__}: {exc}")

    def __repr__(self) -> str:
        return (
            f"EncodeSession(filename={self.filename!r}, codec={codec_label(self.codec)}, "
            f"state={self.state}, frames_read={self.frames_read}, "
            f"packets_written={self.packets_written})"
        )
