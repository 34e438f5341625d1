"""Tests for main pool selection and price/liquidity derivation."""
import pytest

from ..calculator import PriceCalculator, calculate_market_cap, select_main_pool
from ..pool_types import PoolInfo, TokenMetadata
from ..v3_math import Q96

WETH = "0x4200000000000000000000000000000000000006"
LOW_TOKEN = "0x" + "11" * 20   # sorts before WETH, so it is token0
HIGH_TOKEN = "0x" + "aa" * 20  # sorts after WETH, so it is token1
REFERENCE_PRICE = 2000.0


def make_pool(address, token, liquidity, tick=0, sqrt_price_x96=Q96, fee=3000):
    token0, token1 = sorted((token, WETH))
    return PoolInfo(
        pool_address=address,
        token0=token0,
        token1=token1,
        fee=fee,
        dex="uniswap_v3",
        liquidity=liquidity,
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
    )


@pytest.fixture
def calculator():
    return PriceCalculator(WETH, 18)


class TestSelectMainPool:

    def test_largest_liquidity_wins(self):
        small = make_pool("0x01", LOW_TOKEN, "100")
        large = make_pool("0x02", LOW_TOKEN, "500000")
        assert select_main_pool([small, large]) is large

    def test_compares_as_integers(self):
        nine = make_pool("0x01", LOW_TOKEN, "9")
        ten = make_pool("0x02", LOW_TOKEN, "10")
        assert select_main_pool([nine, ten]) is ten

    def test_first_wins_ties(self):
        first = make_pool("0x01", LOW_TOKEN, 5)
        second = make_pool("0x02", LOW_TOKEN, 5)
        assert select_main_pool([first, second]) is first

    def test_empty(self):
        assert select_main_pool([]) is None

    def test_empty_pools_are_never_selected(self):
        empty = make_pool("0x01", LOW_TOKEN, 0, tick=200000)
        no_tick = make_pool("0x02", LOW_TOKEN, 10**18, tick=None)
        assert select_main_pool([empty, no_tick]) is None

    def test_empty_pool_loses_to_any_liquidity(self):
        empty = make_pool("0x01", LOW_TOKEN, "0", tick=200000)
        tiny = make_pool("0x02", LOW_TOKEN, "1")
        assert select_main_pool([empty, tiny]) is tiny


class TestMarketCap:

    def test_normalizes_supply(self):
        assert calculate_market_cap(str(10**24), 18, 2.5) == pytest.approx(2.5e6)

    def test_zero_supply(self):
        assert calculate_market_cap("0", 18, 2.5) == 0.0


class TestPriceCalculator:

    def test_token0_price(self, calculator):
        pool = make_pool("0x01", LOW_TOKEN, 10**18, tick=0)
        assert calculator.token_price_in_reference(LOW_TOKEN, pool, 18) == pytest.approx(1.0)

    def test_token1_price_is_inverted(self, calculator):
        # 1.0001^6932 is about 2, so one HIGH_TOKEN is about half a WETH
        pool = make_pool("0x01", HIGH_TOKEN, 10**18, tick=6932)
        price = calculator.token_price_in_reference(HIGH_TOKEN, pool, 18)
        assert price == pytest.approx(0.5, rel=1e-3)

    def test_missing_tick_prices_at_zero(self, calculator):
        pool = make_pool("0x01", LOW_TOKEN, 10**18, tick=None)
        assert calculator.token_price_in_reference(LOW_TOKEN, pool, 18) == 0.0

    def test_liquidity_usd_at_unit_price(self, calculator):
        pool = make_pool("0x01", LOW_TOKEN, 10**18, tick=0)
        value = calculator.liquidity_usd(LOW_TOKEN, pool, 18, REFERENCE_PRICE, REFERENCE_PRICE)
        assert value == pytest.approx(4000.0)

    def test_liquidity_usd_derives_sqrt_price_from_tick(self, calculator):
        pool = make_pool("0x01", LOW_TOKEN, 10**18, tick=0, sqrt_price_x96=0)
        value = calculator.liquidity_usd(LOW_TOKEN, pool, 18, REFERENCE_PRICE, REFERENCE_PRICE)
        assert value == pytest.approx(4000.0)

    def test_calculate_uses_main_pool(self, calculator):
        metadata = TokenMetadata(LOW_TOKEN, "Low", "LOW", 18, str(10**24))
        pools = [
            make_pool("0x01", LOW_TOKEN, "100", tick=6932),
            make_pool("0x02", LOW_TOKEN, "500000", tick=0),
        ]

        record = calculator.calculate(LOW_TOKEN, metadata, pools, REFERENCE_PRICE)

        assert record.main_pool_address == "0x02"
        assert record.main_pool_tick == 0
        assert record.pool_count == 2
        assert record.price_usd == pytest.approx(REFERENCE_PRICE)
        assert record.market_cap == pytest.approx(REFERENCE_PRICE * 1e6)
        assert record.source == "onchain"
        assert record.last_updated is not None

    def test_token_without_pools_gets_zero_record(self, calculator):
        metadata = TokenMetadata(LOW_TOKEN, "Low", "LOW", 18, "1000")

        record = calculator.calculate(LOW_TOKEN, metadata, [], REFERENCE_PRICE)

        assert record.pool_count == 0
        assert record.price_usd == 0.0
        assert record.liquidity_usd == 0.0
        assert record.market_cap == 0.0
        assert record.symbol == "LOW"

    def test_token_whose_only_pool_is_empty_gets_zero_price(self, calculator):
        metadata = TokenMetadata(LOW_TOKEN, "Junk", "JUNK", 18, str(10**27))
        pool = make_pool("0x01", LOW_TOKEN, 0, tick=200000)

        record = calculator.calculate(LOW_TOKEN, metadata, [pool], 2000.0)

        assert record.pool_count == 1
        assert record.price_usd == 0.0
        assert record.market_cap == 0.0
        assert record.liquidity_usd == 0.0
        assert record.main_pool_address == ""

    def test_pools_not_containing_token_are_ignored(self, calculator):
        metadata = TokenMetadata(LOW_TOKEN)
        foreign = make_pool("0x03", HIGH_TOKEN, 10**20)

        record = calculator.calculate(LOW_TOKEN, metadata, [foreign], REFERENCE_PRICE)

        assert record.pool_count == 0

    def test_out_of_range_tick_yields_zero_price(self, calculator):
        metadata = TokenMetadata(LOW_TOKEN, decimals=18, total_supply="1")
        pool = make_pool("0x01", LOW_TOKEN, 10**18, tick=10**7, sqrt_price_x96=0)

        record = calculator.calculate(LOW_TOKEN, metadata, [pool], REFERENCE_PRICE)

        assert record.price_usd == 0.0
        assert record.market_cap == 0.0

    def test_calculate_batch_keeps_order(self, calculator):
        metadata = {
            HIGH_TOKEN: TokenMetadata(HIGH_TOKEN),
            LOW_TOKEN: TokenMetadata(LOW_TOKEN),
        }
        pool = make_pool("0x01", LOW_TOKEN, 10**18)

        records = calculator.calculate_batch(
            metadata, {LOW_TOKEN: ["0x01", "0xmissing"]}, {"0x01": pool}, REFERENCE_PRICE
        )

        assert [r.contract_address for r in records] == [HIGH_TOKEN, LOW_TOKEN]
        assert records[0].pool_count == 0
        assert records[1].pool_count == 1
