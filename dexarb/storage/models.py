"""Data models for persisted arbitrage opportunities."""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.types import Opportunity


@dataclass
class OpportunityRecord:
    """One row of the opportunities table."""
    id: Optional[int] = None
    timestamp: int = 0
    token_in: str = ""
    token_out: str = ""
    buy_dex: str = ""
    sell_dex: str = ""
    buy_price: str = "0"
    sell_price: str = "0"
    amount_in: str = "0"
    expected_amount_out: str = "0"
    buy_fee: str = "0"
    sell_fee: str = "0"
    gas_cost_eth: str = "0"
    gas_cost_usd: str = "0"
    gross_profit: str = "0"
    net_profit: str = "0"
    roi: str = "0"
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None
    status: str = "simulated"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_opportunity(cls, opportunity: Opportunity,
                         metadata: Optional[Dict[str, Any]] = None) -> "OpportunityRecord":
        """Flatten an evaluated opportunity into the persisted schema."""
        meta = {
            "routes": {"leg1": opportunity.route_leg1, "leg2": opportunity.route_leg2},
            "isProfitable": opportunity.is_profitable,
            "tokenInSymbol": opportunity.token_in_symbol,
            "tokenOutSymbol": opportunity.token_out_symbol,
            "amountOutLeg1": str(opportunity.amount_out_leg1),
            "gasUnits": opportunity.gas_units,
            "gasPriceWei": str(opportunity.gas_price_wei),
            "nativePriceUsd": str(opportunity.native_price_fiat),
        }
        meta.update(metadata or {})
        return cls(
            timestamp=opportunity.timestamp,
            token_in=opportunity.token_in,
            token_out=opportunity.token_out,
            buy_dex=opportunity.buy_venue,
            sell_dex=opportunity.sell_venue,
            buy_price=str(opportunity.buy_price),
            sell_price=str(opportunity.sell_price),
            amount_in=str(opportunity.amount_in),
            expected_amount_out=str(opportunity.amount_out_leg2),
            buy_fee=str(opportunity.fee_leg1),
            sell_fee=str(opportunity.fee_leg2),
            gas_cost_eth=str(opportunity.gas_cost_native),
            gas_cost_usd=str(opportunity.gas_cost_fiat),
            gross_profit=str(opportunity.gross_profit),
            net_profit=str(opportunity.net_profit),
            roi=str(opportunity.roi),
            status=opportunity.status.value,
            metadata=meta,
        )

    @classmethod
    def from_row(cls, row) -> "OpportunityRecord":
        """Build from a sqlite3.Row."""
        data = dict(row)
        data["metadata"] = json.loads(data["metadata"]) if data.get("metadata") else {}
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc).isoformat(),
            "tokenIn": self.token_in,
            "tokenOut": self.token_out,
            "buyDex": self.buy_dex,
            "sellDex": self.sell_dex,
            "buyPrice": self.buy_price,
            "sellPrice": self.sell_price,
            "amountIn": self.amount_in,
            "expectedAmountOut": self.expected_amount_out,
            "buyFee": self.buy_fee,
            "sellFee": self.sell_fee,
            "gasCostEth": self.gas_cost_eth,
            "gasCostUsd": self.gas_cost_usd,
            "grossProfit": self.gross_profit,
            "netProfit": self.net_profit,
            "roi": self.roi,
            "blockNumber": self.block_number,
            "txHash": self.tx_hash,
            "status": self.status,
            "metadata": self.metadata,
        }


@dataclass
class Page:
    """One page of a reverse-chronological query."""
    data: List[OpportunityRecord]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [record.to_dict() for record in self.data],
            "meta": {
                "total": self.total,
                "page": self.page,
                "limit": self.limit,
                "pages": self.pages,
            },
        }
