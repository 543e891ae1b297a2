"""Sample tokens, fakes and builders for testing the arbitrage monitor."""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional

from web3.exceptions import ContractLogicError

from dexarb.config import GasConfig
from dexarb.core.types import Opportunity, Quote, TokenDescriptor
from dexarb.core.utils import from_base_units, to_base_units
from dexarb.venues.base import BaseQuoteProvider
from dexarb.venues.gas import GasPricer
from dexarb.venues.tokens import KNOWN_TOKENS

WETH = KNOWN_TOKENS["0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"]
USDC = KNOWN_TOKENS["0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"]
DAI = KNOWN_TOKENS["0x6b175474e89094c44da98b954eedeac495271d0f"]

# Not in the static table
UNI_ADDRESS = "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"

GWEI = 10 ** 9


class FakeQuoteProvider(BaseQuoteProvider):
    """Scripted venue: each venue id maps to a display amount out or an exception."""

    def __init__(self, outcomes: Dict[str, object], gas_units: int = 150_000,
                 names: Optional[Dict[str, str]] = None):
        super().__init__("fake", {})
        self.outcomes = outcomes
        self.gas_units = gas_units
        self.names = names or {"VENUE_A": "UNISWAP_V3", "VENUE_B": "SUSHISWAP_V3"}
        self.calls: List[tuple] = []

    def venues(self) -> Dict[str, str]:
        return dict(self.names)

    async def quote(self, token_in, token_out, amount_in, venue) -> Quote:
        token_in = self._token(token_in)
        token_out = self._token(token_out)
        self.calls.append((token_in, token_out, Decimal(amount_in), venue))

        outcome = self.outcomes[venue]
        if isinstance(outcome, BaseException):
            raise outcome
        return Quote(
            venue=venue,
            token_in=token_in,
            token_out=token_out,
            amount_in=to_base_units(Decimal(amount_in), token_in.decimals),
            amount_out=to_base_units(Decimal(outcome), token_out.decimals),
            gas_units=self.gas_units,
            path=(token_in.symbol, token_out.symbol),
            fees=(3000,),
        )

    @staticmethod
    def _token(token) -> TokenDescriptor:
        if isinstance(token, TokenDescriptor):
            return token
        return KNOWN_TOKENS[token.lower()]


class FakeGasClient:
    """Stands in for ChainClient.gas_price."""

    def __init__(self, price_wei=50 * GWEI):
        self.price_wei = price_wei
        self.calls = 0

    async def gas_price(self) -> int:
        self.calls += 1
        if isinstance(self.price_wei, BaseException):
            raise self.price_wei
        return self.price_wei


def make_gas_pricer(price_wei=50 * GWEI, multiplier="1", max_gwei="100"):
    """GasPricer over a fake node; multiplier 1 leaves the raw price unchanged."""
    client = FakeGasClient(price_wei)
    return GasPricer(client, GasConfig(price_multiplier=Decimal(multiplier),
                                       max_gas_price_gwei=Decimal(max_gwei))), client


class PendingCall:
    """Result of ``contract.functions.x(...)``; awaiting ``call()`` yields the outcome."""

    def __init__(self, outcome, delay: float = 0.0):
        self.outcome = outcome
        self.delay = delay

    async def call(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.outcome is None:
            raise ContractLogicError("execution reverted")
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


class FakeQuoter:
    """QuoterV2 double. Outcomes keyed by fee (single hop) or fee pair (two hops)."""

    def __init__(self, single=None, multi=None, gas_estimate: int = 120_000, delay: float = 0.0):
        self.functions = self
        self.single = single or {}
        self.multi = multi or {}
        self.gas_estimate = gas_estimate
        self.delay = delay
        self.single_params: List[tuple] = []
        self.multi_params: List[tuple] = []

    def quoteExactInputSingle(self, params):
        self.single_params.append(params)
        return PendingCall(self._result(self.single.get(params[3])), self.delay)

    def quoteExactInput(self, path: bytes, amount_in: int):
        self.multi_params.append((path, amount_in))
        fees = (int.from_bytes(path[20:23], "big"), int.from_bytes(path[43:46], "big"))
        return PendingCall(self._result(self.multi.get(fees)), self.delay)

    def _result(self, outcome):
        if outcome is None or isinstance(outcome, BaseException):
            return outcome
        return (outcome, 0, 0, self.gas_estimate)


def make_opportunity(token_in: TokenDescriptor = WETH, token_out: TokenDescriptor = USDC,
                     leg1_out: str = "4000", leg2_out: str = "1.01", roi_threshold: str = "0.3",
                     timestamp: Optional[int] = None, **overrides) -> Opportunity:
    """Opportunity with the arithmetic of a 1 unit round trip at 4000 USD and 0.015 ETH gas."""
    amount_in = Decimal("1")
    leg2 = Decimal(leg2_out)
    gross = leg2 - amount_in
    roi = gross / amount_in * 100
    gas_native = from_base_units(300_000 * 50 * GWEI, 18)
    price = Decimal("4000")
    fields = dict(
        token_in=token_in.address,
        token_out=token_out.address,
        token_in_symbol=token_in.symbol,
        token_out_symbol=token_out.symbol,
        buy_venue="UNISWAP_V3",
        sell_venue="SUSHISWAP_V3",
        amount_in=amount_in,
        amount_out_leg1=Decimal(leg1_out),
        amount_out_leg2=leg2,
        gross_profit=gross,
        gas_units=300_000,
        gas_price_wei=50 * GWEI,
        gas_cost_native=gas_native,
        gas_cost_fiat=gas_native * price,
        native_price_fiat=price,
        net_profit=gross * price - gas_native * price,
        roi=roi,
        is_profitable=roi > Decimal(roi_threshold),
        route_leg1=f"{token_in.symbol} -> {token_out.symbol}",
        route_leg2=f"{token_out.symbol} -> {token_in.symbol}",
        fee_leg1=Decimal("0.003"),
        fee_leg2=Decimal("0.003"),
    )
    if timestamp is not None:
        fields["timestamp"] = timestamp
    fields.update(overrides)
    return Opportunity(**fields)
