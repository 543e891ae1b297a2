"""HTTP API: on-demand checks and opportunity history."""

import time
from typing import Optional

from aiohttp import web
from loguru import logger
from web3 import AsyncWeb3

from ..config import ServerConfig
from ..core.evaluator import OpportunityEvaluator
from ..core.types import OpportunityStatus
from ..core.utils import to_decimal
from ..storage.db import MAX_PAGE_SIZE
from ..storage.journal import OpportunityJournal
from ..venues.tokens import known_tokens

EVALUATOR_KEY = web.AppKey("evaluator", OpportunityEvaluator)
JOURNAL_KEY = web.AppKey("journal", OpportunityJournal)
STARTED_AT_KEY = web.AppKey("started_at", float)


class RequestValidationError(ValueError):
    """Invalid request parameters; answered with 400."""
    pass


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


def _int_param(request: web.Request, name: str, default: int, minimum: int = 1,
               maximum: Optional[int] = None) -> int:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RequestValidationError(f"{name} must be an integer") from None
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        raise RequestValidationError(f"{name} must be {bounds}")
    return value


def _address_field(body: dict, name: str, label: str) -> str:
    value = body.get(name)
    if not isinstance(value, str) or not value.strip():
        raise RequestValidationError(f"{label} address is required")
    value = value.strip()
    if not AsyncWeb3.is_address(value):
        raise RequestValidationError(f"{label} address is invalid")
    return value


async def health(request: web.Request) -> web.Response:
    started_at = request.app[STARTED_AT_KEY]
    return web.json_response({
        "status": "ok",
        "timestamp": int(time.time() * 1000),
        "uptime_sec": round(time.time() - started_at, 3),
    })


async def list_opportunities(request: web.Request) -> web.Response:
    try:
        page = _int_param(request, "page", 1)
        limit = _int_param(request, "limit", 10, maximum=MAX_PAGE_SIZE)
        status = request.query.get("status") or None
        if status is not None and status not in {s.value for s in OpportunityStatus}:
            raise RequestValidationError(f"status must be one of {[s.value for s in OpportunityStatus]}")
    except RequestValidationError as e:
        return _bad_request(str(e))

    token = request.query.get("token") or None
    try:
        result = await request.app[JOURNAL_KEY].database.query_opportunities(
            token=token, status=status, page=page, limit=limit)
    except Exception as e:
        logger.error(f"Error fetching opportunities: {e}")
        return web.json_response({"error": "Failed to fetch opportunities"}, status=500)
    return web.json_response(result.to_dict())


async def get_opportunity(request: web.Request) -> web.Response:
    raw_id = request.match_info["id"]
    try:
        record_id = int(raw_id)
    except ValueError:
        return _bad_request("Invalid opportunity ID")

    try:
        record = await request.app[JOURNAL_KEY].database.get_opportunity(record_id)
    except Exception as e:
        logger.error(f"Error fetching opportunity {raw_id}: {e}")
        return web.json_response({"error": "Failed to fetch opportunity"}, status=500)
    if record is None:
        return web.json_response({"error": "Opportunity not found"}, status=404)
    return web.json_response(record.to_dict())


async def check_opportunity(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except ValueError:
        return _bad_request("Request body must be JSON")
    if not isinstance(body, dict):
        return _bad_request("Request body must be a JSON object")

    try:
        token_in = _address_field(body, "tokenIn", "Token In")
        token_out = _address_field(body, "tokenOut", "Token Out")
        raw_amount = body.get("amountIn")
        if not isinstance(raw_amount, str) or not raw_amount.strip():
            raise RequestValidationError("Amount In is required")
        try:
            amount_in = to_decimal(raw_amount.strip())
        except ValueError:
            raise RequestValidationError("Amount In must be a decimal number") from None
        if amount_in <= 0:
            raise RequestValidationError("Amount In must be positive")
    except RequestValidationError as e:
        return _bad_request(str(e))

    journal = request.app[JOURNAL_KEY]
    try:
        opportunity = await request.app[EVALUATOR_KEY].evaluate(token_in, token_out, amount_in)
        if opportunity is None:
            return web.json_response({"message": "No arbitrage opportunity found"}, status=404)

        record_id = await journal.persist(opportunity, {"source": "api"})
    except Exception as e:
        logger.error(f"Error checking for arbitrage: {type(e).__name__}: {e}")
        return web.json_response({"error": "Failed to check for arbitrage"}, status=500)

    await journal.broadcast(opportunity)
    data = opportunity.to_dict()
    data["id"] = record_id
    return web.json_response({"message": "Arbitrage opportunity found", "data": data})


async def list_tokens(request: web.Request) -> web.Response:
    return web.json_response({
        "data": [
            {"symbol": t.symbol, "address": t.address, "decimals": t.decimals, "name": t.name}
            for t in known_tokens()
        ]
    })


def create_app(evaluator: OpportunityEvaluator, journal: OpportunityJournal) -> web.Application:
    """Build the aiohttp application."""
    app = web.Application()
    app[EVALUATOR_KEY] = evaluator
    app[JOURNAL_KEY] = journal
    app[STARTED_AT_KEY] = time.time()
    app.router.add_get("/api/health", health)
    app.router.add_get("/api/arbitrage/opportunities", list_opportunities)
    app.router.add_get("/api/arbitrage/opportunities/{id}", get_opportunity)
    app.router.add_post("/api/arbitrage/check", check_opportunity)
    app.router.add_get("/api/arbitrage/tokens", list_tokens)
    return app


class StatusServer:
    """Runs the API application on its own TCP site."""

    def __init__(self, config: ServerConfig, evaluator: OpportunityEvaluator, journal: OpportunityJournal):
        self.config = config
        self.app = create_app(evaluator, journal)
        self._runner: Optional[web.AppRunner] = None

    async def start(self):
        if self._runner is not None:
            return
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()
        logger.info(f"HTTP API listening on http://{self.config.host}:{self.config.port}")

    async def stop(self):
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.info("HTTP API stopped")
