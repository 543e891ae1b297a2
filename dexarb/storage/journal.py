"""Opportunity journaling and reporting."""

from typing import Any, Dict, Optional

from loguru import logger

from ..core.types import Opportunity
from .db import Database
from .models import OpportunityRecord


class OpportunityJournal:
    """Sink for evaluated opportunities: persist, then push to live clients."""

    def __init__(self, database: Database, broadcaster=None):
        self.database = database
        self.broadcaster = broadcaster

    async def persist(self, opportunity: Opportunity, metadata: Optional[Dict[str, Any]] = None) -> int:
        """Store an opportunity and return its record id. Write failures propagate."""
        record = OpportunityRecord.from_opportunity(opportunity, metadata)
        try:
            record_id = await self.database.insert_opportunity(record)
        except Exception as e:
            logger.error(f"Failed to journal opportunity {opportunity.token_in_symbol}->"
                         f"{opportunity.token_out_symbol}: {e}")
            raise
        logger.info(f"Journaled opportunity #{record_id}: {opportunity.token_in_symbol}->"
                    f"{opportunity.token_out_symbol} roi={opportunity.roi:.4f}%")
        return record_id

    async def broadcast(self, opportunity: Opportunity) -> int:
        """Best-effort push to connected clients. Returns the number reached."""
        if self.broadcaster is None:
            return 0
        try:
            return await self.broadcaster.broadcast(opportunity)
        except Exception as e:
            logger.warning(f"Failed to broadcast opportunity: {e}")
            return 0

    async def generate_report(self, days: int) -> str:
        """Generate opportunity report for last N days."""
        performance = await self.database.get_performance_summary(days)
        records = await self.database.get_recent_opportunities(10)
        summary = performance.get('summary', {})

        report = f"""
=== OPPORTUNITY REPORT (Last {days} days) ===
Summary:
- Evaluated: {summary.get('total_opportunities', 0)}
- Profitable: {summary.get('profitable', 0)}
- Best ROI: {summary.get('best_roi', 0):.4f}%
- Average ROI: {summary.get('avg_roi', 0):.4f}%
- Total Net Profit: ${summary.get('total_net_profit', 0):.2f}

Recent Opportunities:
"""
        for record in records:
            symbol_in = record.metadata.get("tokenInSymbol", record.token_in[:10])
            symbol_out = record.metadata.get("tokenOutSymbol", record.token_out[:10])
            report += (f"- #{record.id} {symbol_in}->{symbol_out} "
                       f"{record.buy_dex}/{record.sell_dex}: roi {float(record.roi):.4f}% "
                       f"net ${float(record.net_profit):.2f}\n")
        return report

    async def get_performance_summary(self, days: int) -> Dict[str, Any]:
        """Get opportunity summary for last N days."""
        return await self.database.get_performance_summary(days)
