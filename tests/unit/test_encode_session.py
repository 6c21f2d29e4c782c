"""
EncodeSession 단위 테스트 (가짜 코덱 백엔드 사용)

검증 조건:
- open 순서: 코덱 설정 → 출력 → (전역 헤더 플래그) → 스트림 → 코덱 open → 바인딩 → 헤더
- 코덱별 분기: MPEG1VIDEO는 MB decision RD, MPEG4는 simple profile
- 공유 프레임은 복제 후 PTS 스탬프, 원본은 변경하지 않음
- 패킷 PTS/DTS는 스트림 타임베이스로 리스케일, TS_NONE은 그대로
- 모든 종료 경로에서 출력 → 스트림 → 코덱 컨텍스트 순서로 해제
"""

from __future__ import annotations

import logging

import pytest

from src.codec import TS_NONE, CodecFlag, CodecId, MbDecision, Profile, TimeBase
from src.codec.adapter import Packet
from src.codec.errors import CodecNotFoundError, EncodeFailedError, HeaderWriteError
from src.config.schema import EncoderConfig
from src.encoder.session import EncodeSession
from src.metrics.metrics_store import EncodeMetricsStore


def _open_session(filename="out.mpg", codec=CodecId.MPEG2VIDEO, **kwargs) -> EncodeSession:
    session = EncodeSession(filename, codec, **kwargs)
    session.open()
    return session


# =========================================================================
# open 단계
# =========================================================================

class TestSessionOpen:
    def test_open_reaches_header_state(self, fake_backend):
        session = _open_session()
        assert session.state == "header"
        output = fake_backend.outputs["out.mpg"]
        output.set_start_time.assert_called_once_with(0)
        output.write_header.assert_called_once()

    def test_open_order(self, fake_backend):
        _open_session("out.mpg")
        assert fake_backend.events == [
            "ctx.open:mpeg2video",
            "stream.bind:out.mpg",
            "output.header:out.mpg",
        ]

    def test_default_encoder_settings(self, fake_backend):
        _open_session()
        ctx = fake_backend.contexts[0]
        ctx.set_bit_rate.assert_called_once_with(400000)
        ctx.set_width.assert_called_once_with(320)
        ctx.set_height.assert_called_once_with(200)
        ctx.set_time_base.assert_called_once_with(TimeBase(1, 25))
        ctx.set_pix_fmt.assert_called_once_with("yuv420p")
        ctx.set_gop_size.assert_not_called()
        ctx.set_max_b_frames.assert_not_called()

    def test_optional_gop_and_b_frames(self, fake_backend):
        _open_session(settings=EncoderConfig(gop_size=10, max_b_frames=1))
        ctx = fake_backend.contexts[0]
        ctx.set_gop_size.assert_called_once_with(10)
        ctx.set_max_b_frames.assert_called_once_with(1)

    def test_mpeg1_sets_rd_mb_decision(self, fake_backend):
        _open_session(codec=CodecId.MPEG1VIDEO)
        ctx = fake_backend.contexts[0]
        ctx.set_mb_decision.assert_called_once_with(MbDecision.RD)
        ctx.set_profile.assert_not_called()

    def test_mpeg1_by_short_name_sets_rd_mb_decision(self, fake_backend):
        """문자열 키도 해석된 식별자로 비교되어야 한다."""
        _open_session(codec="mpeg1video")
        fake_backend.contexts[0].set_mb_decision.assert_called_once_with(MbDecision.RD)

    def test_mpeg4_sets_simple_profile(self, fake_backend):
        _open_session("out.mp4", codec=CodecId.MPEG4)
        ctx = fake_backend.contexts[0]
        ctx.set_profile.assert_called_once_with(Profile.MPEG4_SIMPLE)
        ctx.set_mb_decision.assert_not_called()

    def test_mpeg2_has_no_extras(self, fake_backend):
        _open_session(codec=CodecId.MPEG2VIDEO)
        ctx = fake_backend.contexts[0]
        ctx.set_profile.assert_not_called()
        ctx.set_mb_decision.assert_not_called()

    def test_global_header_flag_set_for_mp4(self, fake_backend):
        _open_session("out.mp4", codec=CodecId.MPEG4)
        fake_backend.contexts[0].set_flag.assert_called_once_with(CodecFlag.GLOBAL_HEADER)

    def test_no_global_header_flag_for_mpeg_ps(self, fake_backend):
        _open_session("out.mpg")
        fake_backend.contexts[0].set_flag.assert_not_called()

    def test_open_twice_rejected(self, fake_backend):
        session = _open_session()
        with pytest.raises(RuntimeError):
            session.open()

    def test_unknown_codec_creates_no_output(self, fake_backend):
        session = EncodeSession("never.mp4", "nonesuch")
        with pytest.raises(CodecNotFoundError):
            session.open()
        assert session.state == "failed"
        assert fake_backend.outputs == {}

    def test_header_failure_releases_resources(self, fake_backend):
        def failing_output(filename):
            output = fake_backend.new_output_ctx(filename)
            output.write_header.side_effect = HeaderWriteError("헤더 실패", "I/O error")
            return output

        from unittest.mock import patch
        with patch("src.encoder.session.new_output_ctx", side_effect=failing_output):
            session = EncodeSession("out.mpg", CodecId.MPEG2VIDEO)
            with pytest.raises(HeaderWriteError):
                session.open()

        output = fake_backend.outputs["out.mpg"]
        output.close_output.assert_called_once()
        output.new_stream.return_value.release.assert_called_once()
        fake_backend.contexts[0].close.assert_called_once()
        assert session.state == "failed"


# =========================================================================
# 인코딩 / 리스케일
# =========================================================================

class TestSessionEncode:
    def test_encode_clones_and_stamps_index_pts(self, fake_backend):
        session = _open_session()
        frame = fake_backend.make_frame()
        for _ in range(3):
            session.encode(frame)

        stamped = [clone.set_pts.call_args.args[0] for clone in frame.clones]
        assert stamped == [0, 1, 2]
        frame.set_pts.assert_not_called()
        assert all(clone.free.called for clone in frame.clones)
        assert session.frames_read == 3
        assert session.packets_written == 3
        assert session.state == "encoding"

    def test_packets_rescaled_to_stream_time_base(self, fake_backend):
        session = _open_session()
        frame = fake_backend.make_frame()
        for _ in range(3):
            session.encode(frame)

        output = fake_backend.outputs["out.mpg"]
        written = [call.args[0] for call in output.write_packet.call_args_list]
        # 1/25 → 1/90000: 1틱 = 3600
        assert [packet.pts for packet in written] == [0, 3600, 7200]
        assert [packet.dts for packet in written] == [0, 3600, 7200]

    def test_ts_none_pts_is_not_rescaled(self, fake_backend):
        session = _open_session()
        packet = Packet.from_bytes(b"\x00" * 4, pts=TS_NONE, dts=3)
        session.write_packet(packet)

        written = fake_backend.outputs["out.mpg"].write_packet.call_args.args[0]
        assert written.pts == TS_NONE
        assert written.dts == 10800

    def test_ts_none_dts_is_not_rescaled(self, fake_backend):
        session = _open_session()
        session.write_packet(Packet.from_bytes(b"\x00", pts=2, dts=TS_NONE))
        written = fake_backend.outputs["out.mpg"].write_packet.call_args.args[0]
        assert (written.pts, written.dts) == (7200, TS_NONE)

    def test_not_ready_encode_writes_nothing(self, fake_backend):
        session = _open_session()
        frame = fake_backend.make_frame()
        frame.clone.side_effect = None
        frame.clone.return_value.encode.side_effect = None
        frame.clone.return_value.encode.return_value = []
        assert session.encode(frame) == 0
        assert session.frames_read == 1
        assert session.packets_written == 0

    def test_encode_before_open_rejected(self, fake_backend):
        session = EncodeSession("out.mpg", CodecId.MPEG2VIDEO)
        with pytest.raises(RuntimeError):
            session.encode(fake_backend.make_frame())

    def test_encode_failure_frees_clone_and_fails(self, fake_backend):
        session = _open_session()
        frame = fake_backend.make_frame()
        frame.clone.side_effect = None
        frame.clone.return_value.encode.side_effect = EncodeFailedError("인코딩 실패")
        with pytest.raises(EncodeFailedError):
            session.encode(frame)
        frame.clone.return_value.free.assert_called_once()
        assert session.state == "failed"

    def test_timeline_recorded_when_enabled(self, fake_backend):
        session = _open_session(record_timeline=True)
        session.encode(fake_backend.make_frame())
        assert len(session.timeline) == 1
        assert session.timeline[0].size == 8


# =========================================================================
# flush / close
# =========================================================================

class TestSessionFlushClose:
    def test_flush_writes_drained_packets(self, fake_backend):
        session = _open_session()
        ctx = fake_backend.contexts[0]
        ctx.flush.return_value = [Packet.from_bytes(b"\x00", pts=1, dts=0)]
        assert session.flush() == 1
        assert session.packets_written == 1
        assert session.state == "flushing"

    def test_flush_disabled(self, fake_backend):
        session = _open_session(settings=EncoderConfig(flush=False))
        assert session.flush() == 0
        fake_backend.contexts[0].flush.assert_not_called()

    def test_close_releases_in_order(self, fake_backend):
        session = _open_session()
        session.close()
        assert fake_backend.events[-3:] == [
            "output.close:out.mpg",
            "stream.release:out.mpg",
            "ctx.close:mpeg2video",
        ]
        assert session.state == "closed"

    def test_close_is_idempotent(self, fake_backend):
        session = _open_session()
        session.close()
        session.close()
        fake_backend.outputs["out.mpg"].close_output.assert_called_once()

    def test_context_manager_closes_on_error(self, fake_backend):
        with pytest.raises(ValueError):
            with _open_session() as session:
                raise ValueError("중단")
        fake_backend.outputs["out.mpg"].close_output.assert_called_once()
        assert session.codec_ctx is None

    def test_done_log_line(self, fake_backend, caplog):
        caplog.set_level(logging.INFO, logger="src.encoder.session")
        with _open_session() as session:
            session.encode(fake_backend.make_frame())
        assert "done [out.mpg], 1 frames, 1 written" in caplog.text
        session_records = [r for r in caplog.records if r.name == "src.encoder.session"]
        assert session_records
        assert all(record.output == "out.mpg" for record in session_records)

    def test_failed_session_skips_done_log_line(self, fake_backend, caplog):
        caplog.set_level(logging.INFO, logger="src.encoder.session")
        frame = fake_backend.make_frame()
        frame.clone.side_effect = None
        frame.clone.return_value.encode.side_effect = EncodeFailedError("인코딩 실패", "Invalid data")

        with pytest.raises(EncodeFailedError):
            with _open_session() as session:
                session.encode(frame)

        assert session.state == "failed"
        assert "done [" not in caplog.text
        fake_backend.outputs["out.mpg"].close_output.assert_called_once()

    def test_unknown_codec_skips_done_log_line(self, fake_backend, caplog):
        caplog.set_level(logging.INFO, logger="src.encoder.session")
        with pytest.raises(CodecNotFoundError):
            with EncodeSession("bad.mp4", "nonesuch") as session:
                session.open()
        assert "done [" not in caplog.text


# =========================================================================
# 메트릭 연동
# =========================================================================

class TestSessionMetrics:
    def test_counters_and_state_recorded(self, fake_backend):
        store = EncodeMetricsStore()
        store.register_output("out.mpg", "MPEG2VIDEO")
        with _open_session(metrics=store) as session:
            session.encode(fake_backend.make_frame())
            session.encode(fake_backend.make_frame())
        stats = store.get_output_stats("out.mpg")
        assert stats.frames_read == 2
        assert stats.packets_written == 2
        assert stats.bytes_written == 16
        assert stats.state == "closed"

    def test_error_recorded(self, fake_backend):
        store = EncodeMetricsStore()
        with pytest.raises(CodecNotFoundError):
            EncodeSession("x.mp4", "nonesuch", metrics=store).open()
        stats = store.get_output_stats("x.mp4")
        assert stats.state == "failed"
        assert stats.error_kind == "CodecNotFound"
