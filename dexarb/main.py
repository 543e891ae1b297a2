"""Main entry point for the round-trip DEX arbitrage monitor."""

import asyncio
import signal
import sys

import click
from loguru import logger

# uvloop is not available on Windows
try:
    import uvloop
    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False

from .alerts.broadcast import OpportunityBroadcaster
from .api.server import StatusServer
from .config import Config, LoggingConfig, get_config
from .core.errors import ArbitrageError, ConfigurationError
from .core.evaluator import OpportunityEvaluator
from .core.monitor import ArbitrageMonitor
from .core.utils import format_percentage, format_usd, to_decimal
from .storage.db import Database
from .storage.journal import OpportunityJournal
from .venues.client import ChainClient
from .venues.gas import GasPricer
from .venues.price_oracle import create_price_oracle
from .venues.tokens import TokenRegistry
from .venues.uniswap_v3 import UniswapV3QuoteProvider

STDERR_FORMAT = ("<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
                 "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(config: LoggingConfig, quiet: bool = False):
    """Configure loguru sinks: stderr at the configured level plus a DEBUG file."""
    logger.remove()
    logger.add(sys.stderr, level="WARNING" if quiet else config.level, format=STDERR_FORMAT)
    if config.file and not quiet:
        logger.add(config.file, level="DEBUG", format=FILE_FORMAT, rotation="10 MB", retention=5)


class ArbitrageMonitorApp:
    """Owns every component of a running monitor and their lifecycles."""

    def __init__(self, config: Config):
        self.config = config
        self.client = ChainClient(config.chain)
        self.tokens = TokenRegistry(self.client)
        self.quotes = UniswapV3QuoteProvider(
            self.client, self.tokens, config.venues,
            quote_timeout_sec=config.evaluator.quote_timeout_sec,
            slippage_tolerance_bps=config.evaluator.slippage_tolerance_bps,
        )
        self.gas_pricer = GasPricer(self.client, config.gas)
        self.price_oracle = create_price_oracle(config.price_oracle, self.client)
        self.evaluator = OpportunityEvaluator.from_config(config, self.quotes, self.gas_pricer, self.price_oracle)

        self.database = Database(config.storage.db_path)
        self.broadcaster = OpportunityBroadcaster(config.broadcast) if config.broadcast.enabled else None
        self.journal = OpportunityJournal(self.database, self.broadcaster)
        self.server = (StatusServer(config.server, self.evaluator, self.journal)
                       if config.server.enable_status_http else None)
        self.monitor = ArbitrageMonitor.from_config(config, self.evaluator, self.journal)

        logger.info("Round-trip arbitrage monitor initialized")
        logger.info(f"Venues: {self.quotes.venue_name(config.evaluator.venue_a)} -> "
                    f"{self.quotes.venue_name(config.evaluator.venue_b)}")
        logger.info(f"Min profit threshold: {config.evaluator.min_profit_threshold}")
        logger.info(f"Gas: x{config.gas.price_multiplier}, cap {config.gas.max_gas_price_gwei} gwei")
        logger.info(f"Targets: {[t.label for t in config.monitor.targets]}")

    async def connect(self):
        """Open the chain connection and the database."""
        await self.client.connect()
        await self.database.connect()

    async def start(self):
        """Run the monitor until stopped, with the HTTP API and broadcaster alongside."""
        try:
            await self.connect()
            if self.broadcaster:
                await self.broadcaster.start()
            if self.server:
                await self.server.start()
            self._install_signal_handlers()
            await self.monitor.start()
        finally:
            await self.shutdown()

    async def check(self, token_in: str, token_out: str, amount_in):
        """Evaluate one round trip and journal it."""
        try:
            await self.connect()
            opportunity = await self.evaluator.evaluate(token_in, token_out, amount_in)
            if opportunity is not None:
                await self.journal.persist(opportunity, {"source": "cli"})
            return opportunity
        finally:
            await self.shutdown()

    def stop(self):
        self.monitor.stop()

    async def shutdown(self):
        """Stop every component; failures are logged so the rest still close."""
        for name, component in (("HTTP API", self.server), ("broadcaster", self.broadcaster)):
            if component is None:
                continue
            try:
                await component.stop()
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}")
        try:
            await self.database.disconnect()
            await self.client.disconnect()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    def _install_signal_handlers(self):
        if sys.platform == "win32":
            return
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self._signal_handler, signum)

    def _signal_handler(self, signum):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        self.stop()


def _load_config(config_path: str) -> Config:
    try:
        return get_config(config_path)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


def _print_opportunity(opportunity):
    status = "PROFITABLE" if opportunity.is_profitable else "not profitable"
    click.echo(f"""
=== ROUND TRIP {opportunity.token_in_symbol} -> {opportunity.token_out_symbol} -> {opportunity.token_in_symbol} ===
Buy on:   {opportunity.buy_venue} ({opportunity.route_leg1})
Sell on:  {opportunity.sell_venue} ({opportunity.route_leg2})
Amount in:      {opportunity.amount_in} {opportunity.token_in_symbol}
Leg 1 out:      {opportunity.amount_out_leg1} {opportunity.token_out_symbol}
Leg 2 out:      {opportunity.amount_out_leg2} {opportunity.token_in_symbol}
Gross profit:   {opportunity.gross_profit} {opportunity.token_in_symbol}
ROI:            {format_percentage(opportunity.roi)}
Gas:            {opportunity.gas_units} units, {opportunity.gas_cost_native} native, {format_usd(opportunity.gas_cost_fiat)}
Net profit:     {format_usd(opportunity.net_profit)}
Status:         {status}
""")


@click.group()
def cli():
    """Round-trip DEX arbitrage monitor CLI."""
    pass


@cli.command()
@click.option('--config', 'config_path', type=click.Path(), default='config.yaml',
              help='Path to config file')
def run(config_path):
    """Run the monitor loop with the HTTP API and websocket broadcaster."""
    config = _load_config(config_path)
    setup_logging(config.logging)

    try:
        app = ArbitrageMonitorApp(config)

        # Use uvloop on Linux for better performance
        if sys.platform != "win32" and UVLOOP_AVAILABLE:
            uvloop.install()

        asyncio.run(app.start())
    except KeyboardInterrupt:
        logger.info("Monitor stopped by user")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Monitor failed: {e}")
        sys.exit(1)


@cli.command()
@click.argument('token_in')
@click.argument('token_out')
@click.argument('amount')
@click.option('--config', 'config_path', type=click.Path(), default='config.yaml',
              help='Path to config file')
def check(token_in, token_out, amount, config_path):
    """Evaluate one round trip of AMOUNT TOKEN_IN through TOKEN_OUT."""
    config = _load_config(config_path)
    setup_logging(config.logging)

    try:
        amount_in = to_decimal(amount)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="AMOUNT")
    if amount_in <= 0:
        raise click.BadParameter("must be positive", param_hint="AMOUNT")

    try:
        app = ArbitrageMonitorApp(config)
        opportunity = asyncio.run(app.check(token_in, token_out, amount_in))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except ArbitrageError as e:
        logger.error(f"Check failed: {e}")
        click.echo("Arbitrage check failed", err=True)
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unexpected error during check: {e}")
        click.echo("Arbitrage check failed", err=True)
        sys.exit(1)

    if opportunity is None:
        click.echo("No arbitrage opportunity found")
        sys.exit(2)
    _print_opportunity(opportunity)


@cli.command()
@click.option('--days', default=7, type=int, help='Number of days to report (default: 7)')
@click.option('--config', 'config_path', type=click.Path(), default='config.yaml',
              help='Path to config file')
def report(days, config_path):
    """Generate opportunity report."""
    config = _load_config(config_path)
    setup_logging(config.logging, quiet=True)

    async def generate_report():
        async with Database(config.storage.db_path) as db:
            return await OpportunityJournal(db).generate_report(days)

    click.echo(asyncio.run(generate_report()))


@cli.command()
@click.option('--page', default=1, type=click.IntRange(min=1), help='Page number (default: 1)')
@click.option('--limit', default=10, type=click.IntRange(1, 100), help='Page size (default: 10)')
@click.option('--token', default=None, help='Only records with this token on either leg')
@click.option('--status', default=None, type=click.Choice(['simulated', 'executed', 'failed']),
              help='Only records with this status')
@click.option('--config', 'config_path', type=click.Path(), default='config.yaml',
              help='Path to config file')
def opportunities(page, limit, token, status, config_path):
    """List journaled opportunities, newest first."""
    config = _load_config(config_path)
    setup_logging(config.logging, quiet=True)

    async def list_page():
        async with Database(config.storage.db_path) as db:
            return await db.query_opportunities(token=token, status=status, page=page, limit=limit)

    result = asyncio.run(list_page())
    click.echo(f"Page {result.page}/{result.pages} ({result.total} records)")
    for record in result.data:
        symbol_in = record.metadata.get("tokenInSymbol", record.token_in[:10])
        symbol_out = record.metadata.get("tokenOutSymbol", record.token_out[:10])
        click.echo(f"#{record.id} {record.to_dict()['timestamp']} {symbol_in}->{symbol_out} "
                   f"{record.buy_dex}/{record.sell_dex} roi={float(record.roi):.4f}% "
                   f"net=${float(record.net_profit):.2f} [{record.status}]")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
