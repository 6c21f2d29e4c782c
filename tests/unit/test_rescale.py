"""
타임스탬프 리스케일 단위 테스트

검증 조건:
- TS_NONE은 어떤 타임베이스 조합에서도 그대로 통과
- 유한 값은 정확한 유리수 결과와의 차이가 1 이하
- 동률은 0에서 먼 쪽으로 반올림 (AV_ROUND_NEAR_INF)
"""

from __future__ import annotations

import random
from fractions import Fraction

import pytest

from src.codec import TS_NONE, TimeBase
from src.codec.rescale import rescale_q


# =========================================================================
# 기본 변환
# =========================================================================

class TestRescaleBasic:
    def test_encoder_to_mpeg_ps_time_base(self):
        assert rescale_q(3, TimeBase(1, 25), TimeBase(1, 90000)) == 10800

    def test_encoder_to_mp4_time_base(self):
        assert rescale_q(25, TimeBase(1, 25), TimeBase(1, 12800)) == 12800

    def test_zero_stays_zero(self):
        assert rescale_q(0, TimeBase(1, 25), TimeBase(1, 90000)) == 0

    def test_same_time_base_is_identity(self):
        assert rescale_q(12345, TimeBase(1, 25), TimeBase(1, 25)) == 12345

    def test_downscale_rounds_to_nearest(self):
        # 10800 / 3600 = 3
        assert rescale_q(10800, TimeBase(1, 90000), TimeBase(1, 25)) == 3
        # 1/3 → 0, 2/3 → 1
        assert rescale_q(1, TimeBase(1, 3), TimeBase(1, 1)) == 0
        assert rescale_q(2, TimeBase(1, 3), TimeBase(1, 1)) == 1

    def test_negative_values(self):
        assert rescale_q(-3, TimeBase(1, 25), TimeBase(1, 90000)) == -10800


# =========================================================================
# 반올림 규칙
# =========================================================================

class TestRescaleRounding:
    def test_half_rounds_away_from_zero_positive(self):
        # 1 * (1/2) / (1/1) = 0.5 → 1
        assert rescale_q(1, TimeBase(1, 2), TimeBase(1, 1)) == 1

    def test_half_rounds_away_from_zero_negative(self):
        # -0.5 → -1
        assert rescale_q(-1, TimeBase(1, 2), TimeBase(1, 1)) == -1

    def test_one_and_half(self):
        assert rescale_q(3, TimeBase(1, 2), TimeBase(1, 1)) == 2
        assert rescale_q(-3, TimeBase(1, 2), TimeBase(1, 1)) == -2


# =========================================================================
# 센티널
# =========================================================================

class TestRescaleSentinel:
    @pytest.mark.parametrize("src,dst", [
        (TimeBase(1, 25), TimeBase(1, 90000)),
        (TimeBase(1, 90000), TimeBase(1, 25)),
        (TimeBase(1001, 30000), TimeBase(1, 12800)),
    ])
    def test_ts_none_passes_through(self, src, dst):
        assert rescale_q(TS_NONE, src, dst) == TS_NONE

    def test_zero_destination_raises(self):
        with pytest.raises(ValueError):
            rescale_q(1, TimeBase(1, 25), TimeBase(0, 1))


# =========================================================================
# 오차 범위 법칙
# =========================================================================

class TestRescaleErrorBound:
    def test_within_one_of_exact_value(self):
        """임의의 값/타임베이스 조합에서 정확한 값과의 차이가 1 이하여야 한다."""
        rng = random.Random(20240101)
        for _ in range(500):
            value = rng.randint(-10**12, 10**12)
            a, b = rng.randint(1, 1001), rng.randint(1, 90000)
            c, d = rng.randint(1, 1001), rng.randint(1, 90000)
            exact = Fraction(value * a * d, b * c)
            result = rescale_q(value, TimeBase(a, b), TimeBase(c, d))
            assert abs(result - exact) <= 1

    def test_large_values_do_not_overflow(self):
        value = 2 ** 62
        result = rescale_q(value, TimeBase(1, 25), TimeBase(1, 90000))
        assert result == value * 3600
