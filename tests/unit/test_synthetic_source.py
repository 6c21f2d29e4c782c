"""
합성 프레임 소스 단위 테스트

검증 조건:
- 지정한 개수/해상도/포맷의 프레임 생성
- 프레임마다 독립된 픽셀 버퍼, PTS 미설정(TS_NONE)
- 제너레이터 재호출 시 같은 시퀀스 재생성
- 잘못된 해상도/개수는 즉시 ValueError
"""

from __future__ import annotations

import numpy as np
import pytest

from src.codec import TS_NONE, PixelFormat
from src.source import DEFAULT_FRAME_COUNT, gen_synthetic_video


class TestSyntheticVideo:
    def test_default_count(self):
        frames = list(gen_synthetic_video(64, 48))
        assert len(frames) == DEFAULT_FRAME_COUNT

    def test_geometry(self):
        frame = next(iter(gen_synthetic_video(320, 200, PixelFormat.YUV420P, count=1)))
        assert (frame.width, frame.height, frame.pix_fmt) == (320, 200, "yuv420p")

    def test_pts_unset(self):
        assert all(frame.pts == TS_NONE for frame in gen_synthetic_video(32, 32, count=3))

    def test_fresh_buffer_per_frame(self):
        first, second = list(gen_synthetic_video(32, 32, count=2))
        assert first.native is not second.native
        # 움직이는 패턴이므로 프레임 내용도 다름
        assert not np.array_equal(first.to_ndarray(), second.to_ndarray())

    def test_luma_pattern(self):
        frame = list(gen_synthetic_video(32, 16, count=2))[1]
        luma = frame.native.planes[0]
        data = np.frombuffer(luma, dtype=np.uint8).reshape(-1, luma.line_size)[:16, :32]
        # Y = x + y + 3i (i=1)
        assert data[0, 0] == 3
        assert data[2, 5] == (5 + 2 + 3) % 256

    def test_restartable(self):
        first_run = [frame.to_ndarray() for frame in gen_synthetic_video(32, 32, count=3)]
        second_run = [frame.to_ndarray() for frame in gen_synthetic_video(32, 32, count=3)]
        for a, b in zip(first_run, second_run):
            np.testing.assert_array_equal(a, b)

    def test_other_pixel_format(self):
        frame = next(iter(gen_synthetic_video(32, 32, PixelFormat.RGB24, count=1)))
        assert frame.pix_fmt == "rgb24"

    def test_zero_count(self):
        assert list(gen_synthetic_video(32, 32, count=0)) == []

    @pytest.mark.parametrize("width,height", [(0, 32), (31, 32), (32, -2), (32, 33)])
    def test_invalid_dimensions(self, width, height):
        with pytest.raises(ValueError):
            gen_synthetic_video(width, height)

    def test_negative_count(self):
        with pytest.raises(ValueError):
            gen_synthetic_video(32, 32, count=-1)
