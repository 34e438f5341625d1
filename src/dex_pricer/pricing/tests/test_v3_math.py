"""Tests for tick and liquidity math."""
import math

import pytest

from ..v3_math import (
    DIRECT_POWER_MAX_TICK,
    MAX_TICK,
    MIN_TICK,
    Q96,
    get_sqrt_ratio_at_tick,
    price_from_tick,
    price_ratio_direct,
    price_ratio_log,
    tick_to_price_ratio,
    virtual_amounts,
)


class TestTickToPrice:

    @pytest.mark.parametrize("tick", [-1000, -999, -500, -1, 0, 1, 250, 999, 1000])
    def test_direct_and_log_forms_agree(self, tick):
        assert price_ratio_log(tick) == pytest.approx(price_ratio_direct(tick), rel=1e-9)

    def test_log_form_used_beyond_threshold(self):
        tick = DIRECT_POWER_MAX_TICK + 1
        assert tick_to_price_ratio(tick) == price_ratio_log(tick)
        assert tick_to_price_ratio(DIRECT_POWER_MAX_TICK) == price_ratio_direct(DIRECT_POWER_MAX_TICK)

    @pytest.mark.parametrize("tick", [-200000, 200000, MIN_TICK, MAX_TICK])
    def test_large_ticks_stay_finite(self, tick):
        ratio = tick_to_price_ratio(tick)
        assert math.isfinite(ratio)
        assert ratio > 0

    def test_tick_zero_is_parity(self):
        assert price_from_tick(0, 18, 18) == 1.0

    def test_reference_pool_tick(self):
        # WETH (18) as token0, USDC (6) as token1
        price = price_from_tick(-200768, 18, 6)
        assert price == pytest.approx(1911, rel=0.01)

    def test_decimal_adjustment(self):
        assert price_from_tick(0, 18, 6) == pytest.approx(1e12)
        assert price_from_tick(0, 6, 18) == pytest.approx(1e-12)

    def test_monotonic_in_tick(self):
        assert price_from_tick(10, 18, 18) > price_from_tick(9, 18, 18)


class TestSqrtRatio:

    def test_tick_zero(self):
        assert get_sqrt_ratio_at_tick(0) == Q96

    def test_range_bounds(self):
        assert get_sqrt_ratio_at_tick(MIN_TICK) == 4295128739
        assert get_sqrt_ratio_at_tick(MAX_TICK) == 1461446703485210103287273052203988822378723970342

    def test_out_of_range_raises(self):
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MAX_TICK + 1)

    def test_matches_float_price(self):
        sqrt_price = get_sqrt_ratio_at_tick(6932) / Q96
        assert sqrt_price**2 == pytest.approx(tick_to_price_ratio(6932), rel=1e-6)


class TestVirtualAmounts:

    def test_unit_price(self):
        assert virtual_amounts(10**18, Q96) == (10**18, 10**18)

    def test_missing_inputs(self):
        assert virtual_amounts(0, Q96) == (0, 0)
        assert virtual_amounts(10**18, 0) == (0, 0)

    def test_wide_liquidity_stays_exact(self):
        liquidity = 2**127 + 1
        amount0, amount1 = virtual_amounts(liquidity, Q96)
        assert amount0 == amount1 == liquidity
