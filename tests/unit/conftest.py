"""
인코더 계층 단위 테스트 공용 픽스처

네이티브 라이브러리 없이 EncodeSession/EncoderWorker/FanoutCoordinator를 검증하기 위해
src.encoder.session 모듈의 어댑터 팩토리(new_encoder, new_codec_ctx, new_output_ctx)를
MagicMock 기반 가짜 백엔드로 교체합니다.
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import pytest

from src.codec import CodecId, TimeBase
from src.codec.adapter import Packet
from src.codec.errors import CodecNotFoundError

_CTX_SETTERS = (
    "set_bit_rate", "set_width", "set_height", "set_pix_fmt", "set_time_base",
    "set_gop_size", "set_max_b_frames", "set_profile", "set_mb_decision", "set_flag",
)


class FakeCodecBackend:
    """
    어댑터 팩토리를 흉내 내는 가짜 백엔드입니다.

    - "nonesuch" 코덱 또는 unknown_codecs에 등록된 이름은 CodecNotFoundError
    - .mp4 출력은 전역 헤더가 필요한 컨테이너로 취급
    - 스트림 타임베이스는 1/90000, 인코더 타임베이스는 1/25
    """

    def __init__(self) -> None:
        self.unknown_codecs: set[str] = {"nonesuch"}
        self.contexts: list[MagicMock] = []
        self.outputs: dict[str, MagicMock] = {}
        self.events: list[str] = []
        self._lock = threading.Lock()

    def new_encoder(self, key):
        name = key.value if isinstance(key, CodecId) else key
        if name in self.unknown_codecs:
            raise CodecNotFoundError(f"인코더를 찾을 수 없습니다: '{name}'", "Encoder not found")
        encoder = MagicMock(name=f"encoder-{name}")
        encoder.name = name
        encoder.codec_id = key if isinstance(key, CodecId) else CodecId.from_name(name)
        return encoder

    def new_codec_ctx(self, encoder):
        ctx = MagicMock(name=f"ctx-{encoder.name}")
        for setter in _CTX_SETTERS:
            getattr(ctx, setter).return_value = ctx
        ctx.codec_id = encoder.codec_id
        ctx.time_base = TimeBase(1, 25)
        ctx.width, ctx.height, ctx.pix_fmt = 320, 200, "yuv420p"
        ctx.flush.return_value = []
        ctx.open.side_effect = lambda *args, **kwargs: self._record(f"ctx.open:{encoder.name}")
        ctx.close.side_effect = lambda: self._record(f"ctx.close:{encoder.name}")
        with self._lock:
            self.contexts.append(ctx)
        return ctx

    def new_output_ctx(self, filename):
        output = MagicMock(name=f"output-{filename}")
        output.is_global_header.return_value = filename.endswith(".mp4")
        stream = MagicMock(name=f"stream-{filename}")
        stream.index = 0
        stream.time_base = TimeBase(1, 90000)
        stream.set_codec_ctx.side_effect = lambda ctx: self._record(f"stream.bind:{filename}")
        stream.release.side_effect = lambda: self._record(f"stream.release:{filename}")
        output.new_stream.return_value = stream
        output.write_header.side_effect = lambda: self._record(f"output.header:{filename}")
        output.close_output.side_effect = lambda: self._record(f"output.close:{filename}")
        with self._lock:
            self.outputs[filename] = output
        return output

    @staticmethod
    def make_frame() -> MagicMock:
        return make_fake_frame()

    def _record(self, event: str) -> None:
        with self._lock:
            self.events.append(event)


def make_fake_frame() -> MagicMock:
    """
    clone()마다 새 복제본을 만드는 가짜 프레임입니다.

    복제본의 encode()는 스탬프된 PTS를 PTS/DTS로 갖는 패킷 1개를 반환합니다.
    """
    frame = MagicMock(name="frame")
    frame.clones = []

    def clone():
        copied = MagicMock(name="clone")
        stamped = {}

        def set_pts(pts):
            stamped["pts"] = pts
            return copied

        copied.set_pts.side_effect = set_pts
        copied.encode.side_effect = lambda ctx: [
            Packet.from_bytes(b"\x00" * 8, pts=stamped["pts"], dts=stamped["pts"])
        ]
        frame.clones.append(copied)
        return copied

    frame.clone.side_effect = clone
    return frame


@pytest.fixture
def fake_backend():
    """src.encoder.session의 어댑터 팩토리를 가짜 백엔드로 교체합니다."""
    backend = FakeCodecBackend()
    with patch("src.encoder.session.new_encoder", side_effect=backend.new_encoder), \
            patch("src.encoder.session.new_codec_ctx", side_effect=backend.new_codec_ctx), \
            patch("src.encoder.session.new_output_ctx", side_effect=backend.new_output_ctx):
        yield backend
