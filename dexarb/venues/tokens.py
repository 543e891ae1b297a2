"""Token metadata resolution."""

import asyncio
from typing import Dict, List, Optional

from loguru import logger
from web3 import AsyncWeb3

from ..core.errors import TokenResolutionError
from ..core.types import TokenDescriptor
from .abi import ERC20_ABI

# Ethereum mainnet tokens that never need an on-chain read
KNOWN_TOKENS: Dict[str, TokenDescriptor] = {
    t.address.lower(): t for t in (
        TokenDescriptor("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", "WETH", 18, "Wrapped Ether"),
        TokenDescriptor("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "USDC", 6, "USD Coin"),
        TokenDescriptor("0xdAC17F958D2ee523a2206206994597C13D831ec7", "USDT", 6, "Tether USD"),
        TokenDescriptor("0x6B175474E89094C44Da98b954EedeAC495271d0F", "DAI", 18, "Dai Stablecoin"),
        TokenDescriptor("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", "WBTC", 8, "Wrapped BTC"),
    )
}


def known_tokens() -> List[TokenDescriptor]:
    """Tokens of the static table."""
    return list(KNOWN_TOKENS.values())


class TokenRegistry:
    """Resolves addresses to descriptors, once per address."""

    def __init__(self, client, extra_tokens: Optional[List[TokenDescriptor]] = None):
        self.client = client
        self._cache: Dict[str, TokenDescriptor] = dict(KNOWN_TOKENS)
        for token in extra_tokens or []:
            self._cache[token.address.lower()] = token

    def cached(self, address: str) -> Optional[TokenDescriptor]:
        """Descriptor if already known, without network access."""
        return self._cache.get(address.lower())

    async def resolve(self, address: str) -> TokenDescriptor:
        """Resolve a token address, reading ERC-20 metadata on a cache miss."""
        if not isinstance(address, str) or not AsyncWeb3.is_address(address):
            raise TokenResolutionError(f"Invalid token address: {address!r}")

        token = self._cache.get(address.lower())
        if token:
            return token

        token = await self._read_onchain(address)
        self._cache[address.lower()] = token
        logger.info(f"Resolved token {token.symbol} ({token.decimals} decimals) at {address}")
        return token

    async def _read_onchain(self, address: str) -> TokenDescriptor:
        try:
            contract = self.client.contract(address, ERC20_ABI)
            symbol, decimals, name = await asyncio.gather(
                contract.functions.symbol().call(),
                contract.functions.decimals().call(),
                contract.functions.name().call(),
            )
            return TokenDescriptor(
                address=AsyncWeb3.to_checksum_address(address),
                symbol=str(symbol),
                decimals=int(decimals),
                name=str(name),
            )
        except Exception as e:
            logger.error(f"Error fetching token details for {address}: {e}")
            raise TokenResolutionError(f"Failed to get token details for {address}: {e}") from e
