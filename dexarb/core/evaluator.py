"""Round-trip opportunity evaluation across two DEX venues."""

import asyncio
from decimal import Decimal
from typing import Optional

from loguru import logger

from ..venues.base import BaseQuoteProvider, TokenRef
from ..venues.gas import GasPricer
from ..venues.price_oracle import PriceOracle
from .errors import CYCLE_ERRORS, ConfigurationError
from .types import GasEstimate, Opportunity, Quote, TokenDescriptor
from .utils import from_base_units, to_decimal


class OpportunityEvaluator:
    """Composes two venue quotes, gas and a fiat price into an Opportunity.

    Leg 1 sells ``amount_in`` of token_in on venue A. Leg 2 sells the whole
    leg-1 output back into token_in on venue B, so the round trip ends in the
    asset it started with and gross profit is directly comparable to the input.
    """

    def __init__(self, quotes: BaseQuoteProvider, gas_pricer: GasPricer, price_oracle: PriceOracle,
                 venue_a: str = "VENUE_A", venue_b: str = "VENUE_B",
                 min_profit_threshold: Decimal = Decimal("30"), native_decimals: int = 18):
        for venue in (venue_a, venue_b):
            if not quotes.has_venue(venue):
                raise ConfigurationError(f"Unknown venue: {venue}")
        self.quotes = quotes
        self.gas_pricer = gas_pricer
        self.price_oracle = price_oracle
        self.venue_a = venue_a
        self.venue_b = venue_b
        self.min_profit_threshold = Decimal(min_profit_threshold)
        self.native_decimals = native_decimals

    @classmethod
    def from_config(cls, config, quotes: BaseQuoteProvider, gas_pricer: GasPricer,
                    price_oracle: PriceOracle) -> "OpportunityEvaluator":
        """Wire an evaluator from the evaluator and chain config sections."""
        return cls(
            quotes, gas_pricer, price_oracle,
            venue_a=config.evaluator.venue_a,
            venue_b=config.evaluator.venue_b,
            min_profit_threshold=config.evaluator.min_profit_threshold,
            native_decimals=config.chain.native_decimals,
        )

    @property
    def roi_threshold(self) -> Decimal:
        """Threshold in ROI percentage points."""
        return self.min_profit_threshold / 100

    async def evaluate(self, token_in: TokenRef, token_out: TokenRef, amount_in) -> Optional[Opportunity]:
        """Evaluate one round trip; None when any quote, gas or price call fails.

        Non-positive amounts raise ValueError before any network call.
        """
        amount = self._validate_amount(amount_in)
        try:
            return await self._assess(token_in, token_out, amount)
        except CYCLE_ERRORS as e:
            logger.warning(f"No opportunity for {self._label(token_in, token_out, amount)}: "
                           f"{type(e).__name__}: {e}")
            return None

    async def assess(self, token_in: TokenRef, token_out: TokenRef, amount_in) -> Opportunity:
        """Like evaluate() but raises the typed cycle error instead of returning None."""
        amount = self._validate_amount(amount_in)
        return await self._assess(token_in, token_out, amount)

    @staticmethod
    def _validate_amount(amount_in) -> Decimal:
        amount = to_decimal(amount_in)
        if amount <= 0:
            raise ValueError(f"amount_in must be positive, got {amount}")
        return amount

    async def _assess(self, token_in: TokenRef, token_out: TokenRef, amount_in: Decimal) -> Opportunity:
        # Gas has no ordering dependency on the quotes
        gas_task = asyncio.ensure_future(self.gas_pricer.current_gas_estimate())
        try:
            leg1 = await self.quotes.quote(token_in, token_out, amount_in, self.venue_a)
            leg1_out = from_base_units(leg1.amount_out, leg1.token_out.decimals)
            leg2 = await self.quotes.quote(leg1.token_out, leg1.token_in, leg1_out, self.venue_b)
            gas = await gas_task
        finally:
            if not gas_task.done():
                gas_task.cancel()
            elif not gas_task.cancelled():
                gas_task.exception()  # mark retrieved when a quote failed first

        native_price = await self.price_oracle.current_price()
        return self._compose(amount_in, leg1, leg2, gas, native_price)

    def _compose(self, amount_in: Decimal, leg1: Quote, leg2: Quote, gas: GasEstimate,
                 native_price: Decimal) -> Opportunity:
        amount_out_leg1 = from_base_units(leg1.amount_out, leg1.token_out.decimals)
        amount_out_leg2 = from_base_units(leg2.amount_out, leg2.token_out.decimals)

        gas_units = leg1.gas_units + leg2.gas_units
        gas_cost_native = from_base_units(gas_units * gas.value, self.native_decimals)
        gas_cost_fiat = gas_cost_native * native_price

        gross_profit = amount_out_leg2 - amount_in
        roi = gross_profit / amount_in * 100
        net_profit = gross_profit * native_price - gas_cost_fiat
        is_profitable = roi > self.roi_threshold

        logger.debug(
            f"{leg1.token_in.symbol}->{leg1.token_out.symbol}->{leg2.token_out.symbol}: "
            f"in={amount_in} leg1={amount_out_leg1} leg2={amount_out_leg2} "
            f"gross={gross_profit} roi={roi:.4f}% gas={gas_cost_fiat:.4f} net={net_profit:.4f}"
        )

        return Opportunity(
            token_in=leg1.token_in.address,
            token_out=leg1.token_out.address,
            token_in_symbol=leg1.token_in.symbol,
            token_out_symbol=leg1.token_out.symbol,
            buy_venue=self.quotes.venue_name(self.venue_a),
            sell_venue=self.quotes.venue_name(self.venue_b),
            amount_in=amount_in,
            amount_out_leg1=amount_out_leg1,
            amount_out_leg2=amount_out_leg2,
            gross_profit=gross_profit,
            gas_units=gas_units,
            gas_price_wei=gas.value,
            gas_cost_native=gas_cost_native,
            gas_cost_fiat=gas_cost_fiat,
            native_price_fiat=native_price,
            net_profit=net_profit,
            roi=roi,
            is_profitable=is_profitable,
            route_leg1=leg1.route,
            route_leg2=leg2.route,
            fee_leg1=leg1.fee_fraction,
            fee_leg2=leg2.fee_fraction,
            price_impact_leg1=leg1.price_impact,
            price_impact_leg2=leg2.price_impact,
        )

    @staticmethod
    def _label(token_in: TokenRef, token_out: TokenRef, amount: Decimal) -> str:
        def name(token: TokenRef) -> str:
            return token.symbol if isinstance(token, TokenDescriptor) else str(token)[:10]
        return f"{amount} {name(token_in)}->{name(token_out)}"
