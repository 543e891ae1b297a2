"""Native asset fiat price sources."""

import time
from abc import ABC, abstractmethod
from decimal import Decimal

from loguru import logger

from ..config import PriceOracleConfig
from ..core.errors import ConfigurationError, UpstreamError
from .abi import CHAINLINK_AGGREGATOR_ABI


class PriceOracle(ABC):
    """Fiat price of the network's native asset."""

    @abstractmethod
    async def current_price(self) -> Decimal:
        """Current price; raises UpstreamError when unavailable."""
        pass


class StaticPriceOracle(PriceOracle):
    """Fixed price. For tests and offline runs only."""

    def __init__(self, price: Decimal):
        if price <= 0:
            raise ConfigurationError("Static price must be positive")
        self.price = Decimal(price)

    async def current_price(self) -> Decimal:
        return self.price


class ChainlinkPriceOracle(PriceOracle):
    """Reads ``latestRoundData`` from a Chainlink aggregator."""

    def __init__(self, client, feed_address: str, max_age_sec: float = 3600.0):
        self.client = client
        self.feed_address = feed_address
        self.max_age_sec = max_age_sec
        self._decimals = None

    async def current_price(self) -> Decimal:
        try:
            feed = self.client.contract(self.feed_address, CHAINLINK_AGGREGATOR_ABI)
            if self._decimals is None:
                self._decimals = int(await feed.functions.decimals().call())
            round_data = await feed.functions.latestRoundData().call()
        except Exception as e:
            logger.error(f"Error reading price feed {self.feed_address}: {e}")
            raise UpstreamError(f"Price feed unavailable: {e}") from e

        answer = int(round_data[1])
        if answer <= 0:
            raise UpstreamError(f"Price feed returned non-positive answer {answer}")

        age = time.time() - int(round_data[3])
        if age > self.max_age_sec:
            logger.warning(f"Price feed {self.feed_address} is stale: last update {age:.0f}s ago")
            raise UpstreamError(f"Price feed answer is {age:.0f}s old (max {self.max_age_sec:.0f}s)")
        return Decimal(answer).scaleb(-self._decimals)


def create_price_oracle(config: PriceOracleConfig, client=None) -> PriceOracle:
    """Build the configured oracle."""
    if config.source == "static":
        logger.warning(f"Using static native price {config.static_price}; not suitable for production")
        return StaticPriceOracle(config.static_price)
    if client is None:
        raise ConfigurationError("Chainlink price oracle requires an RPC client")
    return ChainlinkPriceOracle(client, config.feed_address, config.max_age_sec)
