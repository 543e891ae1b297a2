"""Uniswap-V3-style venues quoted through on-chain QuoterV2 contracts."""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..config import VenueConfig
from ..core.errors import ConfigurationError, NoRouteError, UpstreamError
from ..core.types import Quote, TokenDescriptor
from ..core.utils import to_base_units, to_decimal
from .abi import QUOTER_V2_ABI
from .base import BaseQuoteProvider, TokenRef
from .tokens import TokenRegistry

# Reverts mean "no pool / no liquidity" for that candidate
_NO_ROUTE_ERRORS = (ContractLogicError, BadFunctionCallOutput)


def encode_path(addresses: Sequence[str], fees: Sequence[int]) -> bytes:
    """Encode a V3 multi-hop path: token (20 bytes) | fee (3 bytes) | token ..."""
    if len(addresses) < 2 or len(fees) != len(addresses) - 1:
        raise ValueError("path needs n tokens and n-1 fees")
    encoded = b""
    for i, fee in enumerate(fees):
        encoded += bytes.fromhex(addresses[i][2:])
        encoded += int(fee).to_bytes(3, "big")
    encoded += bytes.fromhex(addresses[-1][2:])
    return encoded


class UniswapV3QuoteProvider(BaseQuoteProvider):
    """Best exact-input quote across fee tiers and connector hops of a venue."""

    def __init__(self, client, tokens: TokenRegistry, venues: Dict[str, VenueConfig],
                 quote_timeout_sec: float = 10.0, slippage_tolerance_bps: int = 50):
        super().__init__("uniswap_v3", {"quote_timeout_sec": quote_timeout_sec,
                                        "slippage_tolerance_bps": slippage_tolerance_bps})
        if not venues:
            raise ConfigurationError("No venues configured")
        self.client = client
        self.tokens = tokens
        self._venues = dict(venues)
        self.quote_timeout_sec = quote_timeout_sec
        self.slippage_tolerance_bps = slippage_tolerance_bps

    def venues(self) -> Dict[str, str]:
        return {venue_id: cfg.name for venue_id, cfg in self._venues.items()}

    def _venue(self, venue: str) -> VenueConfig:
        if venue not in self._venues:
            raise ConfigurationError(f"Unsupported venue: {venue}")
        return self._venues[venue]

    async def quote(self, token_in: TokenRef, token_out: TokenRef,
                    amount_in: Decimal, venue: str) -> Quote:
        venue_cfg = self._venue(venue)
        amount = to_decimal(amount_in)
        if amount <= 0:
            raise ValueError(f"amount_in must be positive, got {amount}")

        try:
            return await asyncio.wait_for(
                self._find_best_quote(token_in, token_out, amount, venue, venue_cfg),
                timeout=self.quote_timeout_sec,
            )
        except asyncio.TimeoutError:
            raise UpstreamError(f"{venue_cfg.name} quote timed out after {self.quote_timeout_sec}s")

    async def _resolve(self, token: TokenRef) -> TokenDescriptor:
        if isinstance(token, TokenDescriptor):
            return token
        return await self.tokens.resolve(token)

    async def _find_best_quote(self, token_in: TokenRef, token_out: TokenRef, amount: Decimal,
                               venue: str, venue_cfg: VenueConfig) -> Quote:
        tin = await self._resolve(token_in)
        tout = await self._resolve(token_out)
        if tin == tout:
            raise NoRouteError(f"{tin.symbol} -> {tout.symbol} is not a swap")

        amount_base = to_base_units(amount, tin.decimals)
        if amount_base == 0:
            raise NoRouteError(f"{amount} {tin.symbol} is below token precision")

        candidates = await self._candidate_paths(tin, tout, venue_cfg)
        quoter = self.client.contract(venue_cfg.quoter, QUOTER_V2_ABI)
        results = await asyncio.gather(
            *(self._quote_path(quoter, path, fees, amount_base) for path, fees in candidates),
            return_exceptions=True,
        )

        best: Optional[Tuple[int, int, Tuple[TokenDescriptor, ...], Tuple[int, ...]]] = None
        upstream_errors: List[BaseException] = []
        for (path, fees), result in zip(candidates, results):
            if isinstance(result, BaseException):
                upstream_errors.append(result)
                continue
            if result is None:
                continue
            amount_out, gas_units = result
            if amount_out > 0 and (best is None or amount_out > best[0]):
                best = (amount_out, gas_units, path, fees)

        if best is None:
            if upstream_errors:
                raise UpstreamError(f"{venue_cfg.name} quoter failed: {upstream_errors[0]}")
            raise NoRouteError(f"No route found for {tin.symbol} -> {tout.symbol} on {venue_cfg.name}")

        amount_out, gas_units, path, fees = best
        quote = Quote(
            venue=venue,
            token_in=tin,
            token_out=tout,
            amount_in=amount_base,
            amount_out=amount_out,
            gas_units=gas_units,
            path=tuple(t.symbol for t in path),
            fees=fees,
            min_amount_out=amount_out * (10_000 - self.slippage_tolerance_bps) // 10_000,
        )
        logger.debug(f"{venue_cfg.name}: {amount} {tin.symbol} -> {amount_out} base units "
                     f"via {quote.route} (fees {fees}, gas {gas_units})")
        return quote

    async def _candidate_paths(self, tin: TokenDescriptor, tout: TokenDescriptor,
                               venue_cfg: VenueConfig):
        """Direct pools at every fee tier, then two-hop paths through connectors."""
        candidates = [((tin, tout), (fee,)) for fee in venue_cfg.fee_tiers]
        for connector_address in venue_cfg.connectors:
            connector = await self.tokens.resolve(connector_address)
            if connector in (tin, tout):
                continue
            for fee_a in venue_cfg.fee_tiers:
                for fee_b in venue_cfg.fee_tiers:
                    candidates.append(((tin, connector, tout), (fee_a, fee_b)))
        return candidates

    async def _quote_path(self, quoter, path: Tuple[TokenDescriptor, ...], fees: Tuple[int, ...],
                          amount_base: int) -> Optional[Tuple[int, int]]:
        """Return (amount_out, gas_units), None when the path reverts."""
        addresses = [AsyncWeb3.to_checksum_address(t.address) for t in path]
        try:
            if len(path) == 2:
                result = await quoter.functions.quoteExactInputSingle(
                    (addresses[0], addresses[1], amount_base, fees[0], 0)
                ).call()
            else:
                result = await quoter.functions.quoteExactInput(
                    encode_path(addresses, fees), amount_base
                ).call()
        except _NO_ROUTE_ERRORS:
            return None
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise UpstreamError(f"quoter call failed: {e}") from e

        amount_out, gas_estimate = int(result[0]), int(result[3])
        return amount_out, gas_estimate
