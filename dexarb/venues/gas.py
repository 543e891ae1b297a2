"""Gas price estimation with multiplier and hard cap."""

from decimal import Decimal, ROUND_DOWN

from loguru import logger

from ..config import GasConfig
from ..core.errors import ConfigurationError, UpstreamError
from ..core.types import GasEstimate
from ..core.utils import gwei_to_wei


def adjust_gas_price(raw_price: int, multiplier: Decimal, max_price: int) -> int:
    """Scale the observed price and clamp to the cap: min(raw * multiplier, cap)."""
    adjusted = int((Decimal(raw_price) * multiplier).to_integral_value(rounding=ROUND_DOWN))
    if raw_price > 0:
        adjusted = max(adjusted, 1)
    return min(adjusted, max_price)


class GasPricer:
    """Current network gas price, adjusted and capped."""

    def __init__(self, client, config: GasConfig):
        self.client = client
        self.multiplier = config.price_multiplier
        self.max_price = gwei_to_wei(config.max_gas_price_gwei)
        if self.max_price < 1:
            raise ConfigurationError(f"Gas price cap {config.max_gas_price_gwei} gwei is below 1 wei")

    async def current_gas_estimate(self) -> GasEstimate:
        """Fetch, scale and clamp the network gas price."""
        try:
            raw_price = await self.client.gas_price()
        except Exception as e:
            logger.error(f"Error getting gas price: {e}")
            raise UpstreamError(f"Failed to get gas price: {e}") from e

        if raw_price <= 0:
            raise UpstreamError(f"Node reported non-positive gas price {raw_price}")

        value = adjust_gas_price(raw_price, self.multiplier, self.max_price)
        if value == self.max_price:
            logger.debug(f"Gas price capped at {self.max_price} wei (raw {raw_price} wei)")
        return GasEstimate(
            raw_price=raw_price,
            multiplier=self.multiplier,
            max_price=self.max_price,
            value=value,
        )
