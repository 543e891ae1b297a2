"""Tests for the HTTP API."""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
from aiohttp import test_utils

from dexarb.api.server import create_app
from dexarb.storage.db import Database
from dexarb.storage.journal import OpportunityJournal
from dexarb.storage.models import OpportunityRecord

from sample_data import DAI, USDC, WETH, make_opportunity


@pytest.fixture
async def db(tmp_path):
    database = Database(str(tmp_path / "arb.sqlite"))
    await database.connect()
    yield database
    await database.disconnect()


@pytest.fixture
def evaluator():
    evaluator = Mock()
    evaluator.evaluate = AsyncMock(return_value=make_opportunity())
    return evaluator


@pytest.fixture
async def client(db, evaluator):
    app = create_app(evaluator, OpportunityJournal(db))
    async with test_utils.TestClient(test_utils.TestServer(app)) as test_client:
        yield test_client


def check_body(**overrides):
    body = {"tokenIn": WETH.address, "tokenOut": USDC.address, "amountIn": "1"}
    body.update(overrides)
    return body


class TestHealthAndTokens:
    """Static endpoints."""

    async def test_health(self, client):
        resp = await client.get("/api/health")

        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "ok"

    async def test_tokens(self, client):
        resp = await client.get("/api/arbitrage/tokens")

        data = (await resp.json())["data"]
        assert [t["symbol"] for t in data] == ["WETH", "USDC", "USDT", "DAI", "WBTC"]
        assert data[1]["decimals"] == 6


class TestCheck:
    """POST /api/arbitrage/check."""

    async def test_found_is_persisted(self, client, db, evaluator):
        resp = await client.post("/api/arbitrage/check", json=check_body())

        assert resp.status == 200
        body = await resp.json()
        assert body["message"] == "Arbitrage opportunity found"
        assert body["data"]["buyDex"] == "UNISWAP_V3"
        assert body["data"]["roi"] == "1.00"
        evaluator.evaluate.assert_awaited_once_with(WETH.address, USDC.address, Decimal("1"))

        record = await db.get_opportunity(body["data"]["id"])
        assert record is not None
        assert record.metadata["source"] == "api"

    async def test_not_found(self, client, db, evaluator):
        evaluator.evaluate.return_value = None

        resp = await client.post("/api/arbitrage/check", json=check_body())

        assert resp.status == 404
        assert (await resp.json()) == {"message": "No arbitrage opportunity found"}
        assert (await db.query_opportunities()).total == 0

    @pytest.mark.parametrize("overrides", [
        {"tokenIn": ""},
        {"tokenIn": None},
        {"tokenOut": "not-an-address"},
        {"amountIn": ""},
        {"amountIn": 1},
        {"amountIn": "abc"},
        {"amountIn": "0"},
        {"amountIn": "-2"},
        {"amountIn": "NaN"},
    ])
    async def test_validation(self, client, evaluator, overrides):
        resp = await client.post("/api/arbitrage/check", json=check_body(**overrides))

        assert resp.status == 400
        assert "error" in await resp.json()
        evaluator.evaluate.assert_not_awaited()

    async def test_non_json_body(self, client):
        resp = await client.post("/api/arbitrage/check", data="tokenIn=x")

        assert resp.status == 400

    async def test_unexpected_error_hides_detail(self, client, evaluator):
        evaluator.evaluate.side_effect = RuntimeError("secret internals")

        resp = await client.post("/api/arbitrage/check", json=check_body())

        assert resp.status == 500
        assert (await resp.json()) == {"error": "Failed to check for arbitrage"}


class TestOpportunities:
    """History endpoints."""

    async def _seed(self, db, count):
        ids = []
        for i in range(count):
            opp = make_opportunity(timestamp=1_700_000_000_000 + i)
            ids.append(await db.insert_opportunity(OpportunityRecord.from_opportunity(opp)))
        return ids

    async def test_paged_listing(self, client, db):
        await self._seed(db, 25)

        resp = await client.get("/api/arbitrage/opportunities", params={"page": "2", "limit": "10"})

        assert resp.status == 200
        body = await resp.json()
        assert body["meta"] == {"total": 25, "page": 2, "limit": 10, "pages": 3}
        assert len(body["data"]) == 10

    async def test_token_filter(self, client, db):
        await db.insert_opportunity(OpportunityRecord.from_opportunity(make_opportunity(WETH, DAI)))
        await self._seed(db, 2)

        resp = await client.get("/api/arbitrage/opportunities", params={"token": DAI.address})

        body = await resp.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["tokenOut"] == DAI.address

    @pytest.mark.parametrize("params", [
        {"page": "0"}, {"page": "x"}, {"limit": "0"}, {"limit": "500"}, {"status": "pending"},
    ])
    async def test_invalid_query(self, client, params):
        resp = await client.get("/api/arbitrage/opportunities", params=params)

        assert resp.status == 400

    async def test_get_by_id(self, client, db):
        ids = await self._seed(db, 1)

        resp = await client.get(f"/api/arbitrage/opportunities/{ids[0]}")

        assert resp.status == 200
        body = await resp.json()
        assert body["id"] == ids[0]
        assert body["status"] == "simulated"

    async def test_missing_id(self, client):
        resp = await client.get("/api/arbitrage/opportunities/999")

        assert resp.status == 404

    async def test_non_integer_id(self, client):
        resp = await client.get("/api/arbitrage/opportunities/abc")

        assert resp.status == 400
