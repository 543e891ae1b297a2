#!/usr/bin/env python3
"""
Shared types and data structures for the arbitrage monitor.
This file breaks circular imports between modules.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Validity window for the routing calculation behind a quote (seconds)
QUOTE_VALIDITY_SEC = 1800


class OpportunityStatus(Enum):
    """Lifecycle status of a persisted opportunity."""
    SIMULATED = "simulated"
    EXECUTED = "executed"
    FAILED = "failed"


class MonitorState(Enum):
    """State of the monitor loop within one tick."""
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


class CycleStatus(Enum):
    """Outcome class of one target evaluation."""
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class TokenDescriptor:
    """Identity of a tradable ERC-20 asset."""
    address: str
    symbol: str
    decimals: int
    name: str

    def __post_init__(self):
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"Token decimals out of range: {self.decimals}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, TokenDescriptor):
            return NotImplemented
        return self.address.lower() == other.address.lower()

    def __hash__(self) -> int:
        return hash(self.address.lower())

    def same_address(self, address: str) -> bool:
        """Case-insensitive address comparison."""
        return self.address.lower() == address.lower()


@dataclass(frozen=True)
class Quote:
    """Result of asking one venue for an exchange rate."""
    venue: str
    token_in: TokenDescriptor
    token_out: TokenDescriptor
    amount_in: int
    amount_out: int
    gas_units: int
    path: Tuple[str, ...]
    fees: Tuple[int, ...] = ()
    min_amount_out: int = 0
    price_impact: Optional[Decimal] = None
    deadline: int = 0

    def __post_init__(self):
        if self.amount_out < 0:
            raise ValueError("Quote amount_out must be non-negative")
        if self.gas_units < 0:
            raise ValueError("Quote gas_units must be non-negative")
        if self.deadline == 0:
            object.__setattr__(self, "deadline", int(time.time()) + QUOTE_VALIDITY_SEC)

    @property
    def route(self) -> str:
        """Human readable path."""
        return " -> ".join(self.path)

    @property
    def fee_fraction(self) -> Decimal:
        """Total pool fee of the path as a fraction (3000 -> 0.003)."""
        return sum((Decimal(fee) / Decimal(1_000_000) for fee in self.fees), Decimal(0))


@dataclass(frozen=True)
class GasEstimate:
    """Adjusted gas price snapshot, all values in wei."""
    raw_price: int
    multiplier: Decimal
    max_price: int
    value: int

    @property
    def value_gwei(self) -> Decimal:
        """Adjusted price in gwei."""
        return Decimal(self.value).scaleb(-9)


@dataclass(frozen=True)
class Opportunity:
    """Evaluated outcome of one round trip. Never mutated after creation."""
    token_in: str
    token_out: str
    token_in_symbol: str
    token_out_symbol: str
    buy_venue: str
    sell_venue: str

    amount_in: Decimal
    amount_out_leg1: Decimal
    amount_out_leg2: Decimal

    gross_profit: Decimal
    gas_units: int
    gas_price_wei: int
    gas_cost_native: Decimal
    gas_cost_fiat: Decimal
    native_price_fiat: Decimal
    net_profit: Decimal
    roi: Decimal
    is_profitable: bool

    route_leg1: str
    route_leg2: str
    fee_leg1: Decimal = Decimal(0)
    fee_leg2: Decimal = Decimal(0)
    price_impact_leg1: Optional[Decimal] = None
    price_impact_leg2: Optional[Decimal] = None
    status: OpportunityStatus = OpportunityStatus.SIMULATED
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def buy_price(self) -> Decimal:
        """Leg-1 output per unit of input."""
        return self.amount_out_leg1 / self.amount_in

    @property
    def sell_price(self) -> Decimal:
        """Leg-2 output per unit of input."""
        return self.amount_out_leg2 / self.amount_in

    def to_dict(self) -> Dict[str, Any]:
        """JSON friendly representation; decimals rendered as strings."""
        return {
            "tokenIn": self.token_in,
            "tokenOut": self.token_out,
            "tokenInSymbol": self.token_in_symbol,
            "tokenOutSymbol": self.token_out_symbol,
            "buyDex": self.buy_venue,
            "sellDex": self.sell_venue,
            "amountIn": str(self.amount_in),
            "amountOutLeg1": str(self.amount_out_leg1),
            "amountOutLeg2": str(self.amount_out_leg2),
            "profit": str(self.gross_profit),
            "roi": str(self.roi),
            "gasUnits": self.gas_units,
            "gasPriceWei": str(self.gas_price_wei),
            "gasCostEth": str(self.gas_cost_native),
            "gasCostUsd": str(self.gas_cost_fiat),
            "nativePriceUsd": str(self.native_price_fiat),
            "netProfit": str(self.net_profit),
            "routes": {"leg1": self.route_leg1, "leg2": self.route_leg2},
            "priceImpact": {
                "leg1": None if self.price_impact_leg1 is None else str(self.price_impact_leg1),
                "leg2": None if self.price_impact_leg2 is None else str(self.price_impact_leg2),
            },
            "isProfitable": self.is_profitable,
            "status": self.status.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class CycleResult:
    """Structured outcome of evaluating one target in one tick."""
    target: str
    status: CycleStatus
    opportunity: Optional[Opportunity] = None
    error: Optional[str] = None
    record_id: Optional[int] = None


@dataclass
class CycleReport:
    """Everything one monitor tick produced."""
    tick: int
    started_at: float
    finished_at: float = 0.0
    timed_out: bool = False
    results: List[CycleResult] = field(default_factory=list)

    @property
    def duration_ms(self) -> int:
        return int((self.finished_at - self.started_at) * 1000)

    def count(self, status: CycleStatus) -> int:
        return sum(1 for r in self.results if r.status == status)
