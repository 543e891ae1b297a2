"""Tests for round-trip opportunity evaluation."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from dexarb.core.errors import ConfigurationError, NoRouteError, TokenResolutionError, UpstreamError
from dexarb.core.evaluator import OpportunityEvaluator
from dexarb.core.types import OpportunityStatus
from dexarb.venues.price_oracle import StaticPriceOracle

from sample_data import GWEI, USDC, WETH, FakeQuoteProvider, make_gas_pricer


def make_evaluator(leg1="4000", leg2="1.01", threshold="30", gas_price=50 * GWEI, price="4000"):
    quotes = FakeQuoteProvider({"VENUE_A": leg1, "VENUE_B": leg2})
    gas_pricer, gas_client = make_gas_pricer(gas_price)
    evaluator = OpportunityEvaluator(
        quotes, gas_pricer, StaticPriceOracle(Decimal(price)),
        min_profit_threshold=Decimal(threshold),
    )
    return evaluator, quotes, gas_client


class TestRoundTripArithmetic:
    """Gross profit, ROI, gas and net profit of one round trip."""

    async def test_profitable_round_trip(self):
        """1 WETH -> 4000 USDC -> 1.01 WETH at threshold 30 is profitable."""
        evaluator, _, _ = make_evaluator()

        opp = await evaluator.evaluate(WETH.address, USDC.address, Decimal("1"))

        assert opp is not None
        assert opp.amount_out_leg1 == Decimal("4000")
        assert opp.amount_out_leg2 == Decimal("1.01")
        assert opp.gross_profit == Decimal("0.01")
        assert opp.roi == Decimal("1")
        assert opp.is_profitable is True
        assert opp.status == OpportunityStatus.SIMULATED

    async def test_losing_round_trip(self):
        """1 WETH -> 4000 USDC -> 0.999 WETH is not profitable."""
        evaluator, _, _ = make_evaluator(leg2="0.999")

        opp = await evaluator.evaluate(WETH.address, USDC.address, "1")

        assert opp.gross_profit == Decimal("-0.001")
        assert opp.roi == Decimal("-0.1")
        assert opp.is_profitable is False
        assert opp.net_profit < 0

    async def test_gas_cost(self):
        """300000 gas units at 50 gwei cost 0.015 native, priced at the oracle rate."""
        evaluator, _, _ = make_evaluator()

        opp = await evaluator.evaluate(WETH.address, USDC.address, "1")

        assert opp.gas_units == 300_000
        assert opp.gas_price_wei == 50 * GWEI
        assert opp.gas_cost_native == Decimal("0.015")
        assert opp.gas_cost_fiat == Decimal("60")
        # 0.01 * 4000 - 60
        assert opp.net_profit == Decimal("-20")

    async def test_roi_equal_to_threshold_is_not_profitable(self):
        """The threshold comparison is strict."""
        evaluator, _, _ = make_evaluator(threshold="100")

        opp = await evaluator.evaluate(WETH.address, USDC.address, "1")

        assert opp.roi == evaluator.roi_threshold
        assert opp.is_profitable is False

    async def test_zero_threshold(self):
        """A positive ROI clears a zero threshold; break-even does not."""
        evaluator, _, _ = make_evaluator(threshold="0")
        assert (await evaluator.evaluate(WETH.address, USDC.address, "1")).is_profitable

        evaluator, _, _ = make_evaluator(leg2="1", threshold="0")
        assert not (await evaluator.evaluate(WETH.address, USDC.address, "1")).is_profitable

    async def test_venue_names_fees_and_routes(self):
        """Buy and sell venues carry display names; fees and routes come from the quotes."""
        evaluator, _, _ = make_evaluator()

        opp = await evaluator.evaluate(WETH.address, USDC.address, "1")

        assert opp.buy_venue == "UNISWAP_V3"
        assert opp.sell_venue == "SUSHISWAP_V3"
        assert opp.fee_leg1 == Decimal("0.003")
        assert opp.route_leg1 == "WETH -> USDC"
        assert opp.route_leg2 == "USDC -> WETH"
        assert opp.price_impact_leg1 is None
        assert opp.buy_price == Decimal("4000")
        assert opp.sell_price == Decimal("1.01")


class TestLegOrdering:
    """Leg 2 sells exactly what leg 1 produced."""

    async def test_leg2_input_is_leg1_output(self):
        """Leg 2 quotes the reverse pair for the full leg-1 output."""
        evaluator, quotes, _ = make_evaluator(leg1="3987.654321")

        await evaluator.evaluate(WETH.address, USDC.address, "1")

        assert len(quotes.calls) == 2
        leg1_call, leg2_call = quotes.calls
        assert leg1_call == (WETH, USDC, Decimal("1"), "VENUE_A")
        assert leg2_call == (USDC, WETH, Decimal("3987.654321"), "VENUE_B")


class TestFailures:
    """Cycle failures produce no opportunity."""

    @pytest.mark.parametrize("amount", ["0", "-1", Decimal("-0.5")])
    async def test_non_positive_amount_rejected_before_any_call(self, amount):
        """Non-positive amounts raise ValueError without touching any venue."""
        evaluator, quotes, gas_client = make_evaluator()

        with pytest.raises(ValueError):
            await evaluator.evaluate(WETH.address, USDC.address, amount)

        assert quotes.calls == []
        assert gas_client.calls == 0

    async def test_leg1_failure_returns_none(self):
        """No leg-2 quote is requested when leg 1 has no route."""
        evaluator, quotes, _ = make_evaluator(leg1=NoRouteError("no pool"))

        assert await evaluator.evaluate(WETH.address, USDC.address, "1") is None
        assert len(quotes.calls) == 1

    async def test_leg2_failure_returns_none(self):
        evaluator, quotes, _ = make_evaluator(leg2=UpstreamError("quoter down"))

        assert await evaluator.evaluate(WETH.address, USDC.address, "1") is None
        assert len(quotes.calls) == 2

    async def test_token_resolution_failure_returns_none(self):
        evaluator, _, _ = make_evaluator(leg1=TokenResolutionError("bad token"))

        assert await evaluator.evaluate(WETH.address, USDC.address, "1") is None

    async def test_gas_failure_returns_none(self):
        evaluator, _, _ = make_evaluator(gas_price=RuntimeError("node down"))

        assert await evaluator.evaluate(WETH.address, USDC.address, "1") is None

    async def test_price_failure_returns_none(self):
        evaluator, _, _ = make_evaluator()
        evaluator.price_oracle = AsyncMock()
        evaluator.price_oracle.current_price.side_effect = UpstreamError("feed stale")

        assert await evaluator.evaluate(WETH.address, USDC.address, "1") is None

    async def test_assess_raises_typed_error(self):
        """assess() surfaces the failure class instead of None."""
        evaluator, _, _ = make_evaluator(leg2=NoRouteError("no pool"))

        with pytest.raises(NoRouteError):
            await evaluator.assess(WETH.address, USDC.address, "1")


class TestConstruction:
    """Evaluator wiring."""

    def test_unknown_venue_rejected(self):
        quotes = FakeQuoteProvider({"VENUE_A": "1", "VENUE_B": "1"})
        gas_pricer, _ = make_gas_pricer()

        with pytest.raises(ConfigurationError):
            OpportunityEvaluator(quotes, gas_pricer, StaticPriceOracle(Decimal("1")), venue_b="VENUE_C")

    def test_roi_threshold(self):
        """min_profit_threshold 30 means an ROI above 0.3 percentage points."""
        evaluator, _, _ = make_evaluator(threshold="30")
        assert evaluator.roi_threshold == Decimal("0.3")
