"""Database operations for the round-trip arbitrage monitor."""

import json
import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from ..core.types import OpportunityStatus
from .models import OpportunityRecord, Page

MAX_PAGE_SIZE = 100

_COLUMNS = (
    "timestamp", "token_in", "token_out", "buy_dex", "sell_dex", "buy_price", "sell_price",
    "amount_in", "expected_amount_out", "buy_fee", "sell_fee", "gas_cost_eth", "gas_cost_usd",
    "gross_profit", "net_profit", "roi", "block_number", "tx_hash", "status", "metadata",
)


class Database:
    """SQLite database interface.

    Explicitly owned: create one, ``connect()`` it (or use ``async with``) and
    pass it to whoever needs it.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.connection: Optional[sqlite3.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    async def connect(self):
        """Connect to database."""
        if self.connection:
            logger.info("Using existing database connection")
            return
        try:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.connection = sqlite3.connect(self.db_path)
            self.connection.row_factory = sqlite3.Row
            await self._create_tables()
            logger.info(f"Connected to database: {self.db_path}")
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def disconnect(self):
        """Disconnect from database."""
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info("Disconnected from database")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.disconnect()

    def _require_connection(self) -> sqlite3.Connection:
        if not self.connection:
            raise RuntimeError("Database is not connected")
        return self.connection

    async def _create_tables(self):
        """Create database tables if they don't exist."""
        cursor = self._require_connection().cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS opportunities (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL,
                token_in TEXT NOT NULL,
                token_out TEXT NOT NULL,
                buy_dex TEXT NOT NULL,
                sell_dex TEXT NOT NULL,
                buy_price TEXT NOT NULL,
                sell_price TEXT NOT NULL,
                amount_in TEXT NOT NULL,
                expected_amount_out TEXT NOT NULL,
                buy_fee TEXT NOT NULL,
                sell_fee TEXT NOT NULL,
                gas_cost_eth TEXT NOT NULL,
                gas_cost_usd TEXT NOT NULL,
                gross_profit TEXT NOT NULL,
                net_profit TEXT NOT NULL,
                roi TEXT NOT NULL,
                block_number INTEGER,
                tx_hash TEXT,
                status TEXT NOT NULL DEFAULT 'simulated',
                metadata TEXT
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_opp_tokens ON opportunities (token_in, token_out)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_opp_status ON opportunities (status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_opp_timestamp ON opportunities (timestamp DESC)")
        self.connection.commit()
        logger.debug("Database tables created/verified")

    async def insert_opportunity(self, record: OpportunityRecord) -> int:
        """Insert opportunity record and return its id."""
        connection = self._require_connection()
        if record.status not in {s.value for s in OpportunityStatus}:
            raise ValueError(f"Invalid status {record.status!r}")

        values = [getattr(record, column) for column in _COLUMNS]
        values[-1] = json.dumps(record.metadata)
        if not record.timestamp:
            values[0] = int(time.time() * 1000)

        try:
            cursor = connection.execute(
                f"INSERT INTO opportunities ({', '.join(_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in _COLUMNS)})",
                values,
            )
            connection.commit()
            return cursor.lastrowid
        except sqlite3.Error as e:
            logger.error(f"Failed to insert opportunity: {e}")
            raise

    async def get_opportunity(self, record_id: int) -> Optional[OpportunityRecord]:
        """Fetch one record by id."""
        row = self._require_connection().execute(
            "SELECT * FROM opportunities WHERE id = ?", (record_id,)
        ).fetchone()
        return OpportunityRecord.from_row(row) if row else None

    async def query_opportunities(self, token: Optional[str] = None, status: Optional[str] = None,
                                  page: int = 1, limit: int = 10) -> Page:
        """Newest first, filtered by token (either leg) and status, paginated."""
        if page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        clauses: List[str] = []
        params: List[Any] = []
        if token:
            clauses.append("(lower(token_in) = ? OR lower(token_out) = ?)")
            params.extend([token.lower(), token.lower()])
        if status:
            clauses.append("status = ?")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        connection = self._require_connection()
        total = connection.execute(f"SELECT COUNT(*) FROM opportunities {where}", params).fetchone()[0]
        rows = connection.execute(
            f"SELECT * FROM opportunities {where} ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
            params + [limit, (page - 1) * limit],
        ).fetchall()
        return Page(data=[OpportunityRecord.from_row(r) for r in rows], total=total, page=page, limit=limit)

    async def get_recent_opportunities(self, limit: int = 100) -> List[OpportunityRecord]:
        """Get recent arbitrage opportunities."""
        rows = self._require_connection().execute(
            "SELECT * FROM opportunities ORDER BY timestamp DESC, id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [OpportunityRecord.from_row(r) for r in rows]

    async def get_performance_summary(self, days: int) -> Dict[str, Any]:
        """Get opportunity summary for last N days."""
        cutoff_time = int(time.time() * 1000) - (days * 24 * 60 * 60 * 1000)
        rows = self._require_connection().execute(
            "SELECT roi, net_profit, metadata FROM opportunities WHERE timestamp > ?", (cutoff_time,)
        ).fetchall()

        rois = [float(r["roi"]) for r in rows]
        profitable = sum(1 for r in rows if json.loads(r["metadata"] or "{}").get("isProfitable"))
        return {
            'summary': {
                'total_opportunities': len(rows),
                'profitable': profitable,
                'best_roi': max(rois) if rois else 0.0,
                'avg_roi': sum(rois) / len(rois) if rois else 0.0,
                'total_net_profit': sum(float(r["net_profit"]) for r in rows),
            }
        }
