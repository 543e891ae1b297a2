"""Process-wide read-only connection to an EVM JSON-RPC endpoint."""

from typing import Any, List, Optional

from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3

from ..config import ChainConfig
from ..core.errors import ConfigurationError, UpstreamError


class ChainClient:
    """Owns the AsyncWeb3 instance; components receive it by reference.

    Use ``async with ChainClient(cfg) as client`` to guarantee release.
    """

    def __init__(self, config: ChainConfig):
        if not config.rpc_url:
            raise ConfigurationError("chain.rpc_url is not configured")
        self.config = config
        self.w3: Optional[AsyncWeb3] = None

    async def connect(self) -> "ChainClient":
        """Create the provider and verify the endpoint answers."""
        if self.w3 is not None:
            logger.info("Using existing RPC connection")
            return self

        self.w3 = AsyncWeb3(AsyncHTTPProvider(
            self.config.rpc_url.strip(),
            request_kwargs={"timeout": self.config.request_timeout_sec},
        ))
        try:
            chain_id = await self.w3.eth.chain_id
        except Exception as e:
            await self.disconnect()
            raise UpstreamError(f"RPC endpoint unreachable: {e}") from e

        if chain_id != self.config.chain_id:
            await self.disconnect()
            raise ConfigurationError(
                f"RPC chain id {chain_id} does not match configured chain id {self.config.chain_id}"
            )
        logger.info(f"Connected to chain {chain_id}")
        return self

    async def disconnect(self):
        """Close pooled HTTP sessions."""
        if self.w3 is None:
            return
        try:
            await self.w3.provider.disconnect()
        finally:
            self.w3 = None
            logger.info("RPC connection closed")

    async def __aenter__(self) -> "ChainClient":
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb):
        await self.disconnect()

    @property
    def web3(self) -> AsyncWeb3:
        if self.w3 is None:
            raise UpstreamError("RPC client is not connected")
        return self.w3

    def contract(self, address: str, abi: List[Any]):
        """Bind a contract at ``address``."""
        return self.web3.eth.contract(address=AsyncWeb3.to_checksum_address(address), abi=abi)

    async def gas_price(self) -> int:
        """Network suggested gas price in wei."""
        return int(await self.web3.eth.gas_price)
