"""Base quote provider interface for round-trip DEX arbitrage."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Union

from ..core.types import Quote, TokenDescriptor

TokenRef = Union[TokenDescriptor, str]


class BaseQuoteProvider(ABC):
    """Asks a venue for the best exchange path of an exact-input swap."""

    def __init__(self, name: str, config: Dict):
        self.name = name
        self.config = config

    @abstractmethod
    async def quote(self, token_in: TokenRef, token_out: TokenRef,
                    amount_in: Decimal, venue: str) -> Quote:
        """Quote ``amount_in`` (display units) of token_in for token_out on ``venue``.

        Raises NoRouteError, TokenResolutionError or UpstreamError.
        """
        pass

    @abstractmethod
    def venues(self) -> Dict[str, str]:
        """Configured venue ids mapped to display names."""
        pass

    def has_venue(self, venue: str) -> bool:
        """Check whether a venue id is configured."""
        return venue in self.venues()

    def venue_name(self, venue: str) -> str:
        """Display name of a venue id."""
        return self.venues().get(venue, venue)
