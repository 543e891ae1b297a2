"""Periodic evaluation of the configured round trips."""

import asyncio
import time
from typing import Callable, List, Optional, Sequence

from loguru import logger

from .errors import NoRouteError, TokenResolutionError, UpstreamError
from .evaluator import OpportunityEvaluator
from .types import CycleReport, CycleResult, CycleStatus, MonitorState, Opportunity


class ArbitrageMonitor:
    """Runs the evaluator over every target on a fixed cadence.

    Each tick moves IDLE -> RUNNING -> DONE -> IDLE. Targets are evaluated
    concurrently and the whole tick is bounded by ``cycle_timeout_sec``; a tick
    whose evaluation overruns is abandoned and nothing it computed is persisted.
    Broadcasts only get the time left in the tick; writes are never cut short. Errors are
    logged and recorded in the tick's CycleReport, never raised.
    """

    def __init__(self, evaluator: OpportunityEvaluator, sink, targets: Sequence,
                 interval_sec: float = 30.0, cycle_timeout_sec: float = 20.0,
                 on_cycle: Optional[Callable[[CycleReport], None]] = None):
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        if not 0 < cycle_timeout_sec < interval_sec:
            raise ValueError("cycle_timeout_sec must be positive and shorter than interval_sec")
        self.evaluator = evaluator
        self.sink = sink
        self.targets: List = list(targets)
        self.interval_sec = interval_sec
        self.cycle_timeout_sec = cycle_timeout_sec
        self.on_cycle = on_cycle

        self.state = MonitorState.IDLE
        self.tick = 0
        self.last_report: Optional[CycleReport] = None
        self.running = False
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None

    @classmethod
    def from_config(cls, config, evaluator: OpportunityEvaluator, sink,
                    on_cycle: Optional[Callable[[CycleReport], None]] = None) -> "ArbitrageMonitor":
        return cls(
            evaluator, sink, config.monitor.targets,
            interval_sec=config.monitor.interval_sec,
            cycle_timeout_sec=config.monitor.cycle_timeout_sec,
            on_cycle=on_cycle,
        )

    async def start(self, max_ticks: Optional[int] = None):
        """Run ticks until stop() is called (or ``max_ticks`` have run)."""
        if self.running:
            return

        logger.info(f"Starting arbitrage monitor: {len(self.targets)} targets, "
                    f"interval {self.interval_sec}s, cycle timeout {self.cycle_timeout_sec}s")
        self.running = True
        self._stop_event = asyncio.Event()
        if self._stop_requested:
            # stop() arrived before the loop existed
            self._stop_event.set()
        loop = asyncio.get_running_loop()
        ticks = 0

        try:
            while not self._stop_event.is_set():
                next_tick = loop.time() + self.interval_sec
                await self.run_once()
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break

                # Fixed cadence: sleep what is left of the interval, waking early on stop
                remaining = next_tick - loop.time()
                if remaining > 0:
                    try:
                        await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
                    except asyncio.TimeoutError:
                        pass
        finally:
            self.running = False
            self._stop_requested = False
            logger.info(f"Arbitrage monitor stopped after {ticks} ticks")

    def stop(self):
        """Stop scheduling new ticks; an in-flight tick completes within its timeout.

        Calling this before start() makes the next start() return without ticking.
        """
        if self._stop_requested:
            return
        logger.info("Stopping arbitrage monitor")
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()

    async def run_once(self) -> CycleReport:
        """Evaluate every target once and forward results to the sink."""
        self.tick += 1
        self.state = MonitorState.RUNNING
        report = CycleReport(tick=self.tick, started_at=time.time())
        deadline = asyncio.get_running_loop().time() + self.cycle_timeout_sec

        try:
            outcomes = await asyncio.wait_for(
                asyncio.gather(*(self._assess_target(t) for t in self.targets), return_exceptions=True),
                timeout=self.cycle_timeout_sec,
            )
        except asyncio.TimeoutError:
            report.timed_out = True
            logger.warning(f"Tick {self.tick} exceeded {self.cycle_timeout_sec}s; results discarded")
            report.results = [
                CycleResult(target=self._target_label(t), status=CycleStatus.ERROR, error="cycle timed out")
                for t in self.targets
            ]
        else:
            for target, outcome in zip(self.targets, outcomes):
                report.results.append(await self._handle_outcome(target, outcome, deadline))

        report.finished_at = time.time()
        self.state = MonitorState.DONE
        self.last_report = report
        logger.info(f"Tick {report.tick} done in {report.duration_ms}ms: "
                    f"{report.count(CycleStatus.SUCCESS)} success, {report.count(CycleStatus.EMPTY)} empty, "
                    f"{report.count(CycleStatus.ERROR)} error")

        if self.on_cycle is not None:
            try:
                self.on_cycle(report)
            except Exception as e:
                logger.error(f"Cycle callback failed: {e}")

        self.state = MonitorState.IDLE
        return report

    async def _assess_target(self, target) -> Opportunity:
        return await self.evaluator.assess(target.token_in, target.token_out, target.amount_in)

    async def _handle_outcome(self, target, outcome, deadline: float) -> CycleResult:
        label = self._target_label(target)

        if isinstance(outcome, (NoRouteError, TokenResolutionError)):
            logger.info(f"No opportunity for {label}: {type(outcome).__name__}: {outcome}")
            return CycleResult(target=label, status=CycleStatus.EMPTY, error=str(outcome))
        if isinstance(outcome, UpstreamError):
            logger.warning(f"Upstream failure for {label}: {outcome}")
            return CycleResult(target=label, status=CycleStatus.ERROR, error=str(outcome))
        if isinstance(outcome, BaseException):
            logger.error(f"Unexpected error evaluating {label}: {type(outcome).__name__}: {outcome}")
            return CycleResult(target=label, status=CycleStatus.ERROR,
                               error=f"{type(outcome).__name__}: {outcome}")

        opportunity: Opportunity = outcome
        try:
            record_id = await self.sink.persist(opportunity)
        except Exception as e:
            logger.error(f"Failed to persist opportunity for {label}: {e}")
            return CycleResult(target=label, status=CycleStatus.ERROR, opportunity=opportunity,
                               error=f"persist failed: {e}")

        # The record is written; the push only gets what is left of the tick
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            logger.warning(f"No time left in tick {self.tick} to broadcast {label}")
        else:
            try:
                await asyncio.wait_for(self.sink.broadcast(opportunity), timeout=remaining)
            except asyncio.TimeoutError:
                logger.warning(f"Broadcast for {label} cut off at the end of tick {self.tick}")
        marker = "PROFITABLE" if opportunity.is_profitable else "below threshold"
        logger.info(f"{label}: {opportunity.buy_venue}->{opportunity.sell_venue} "
                    f"roi={opportunity.roi:.4f}% net=${opportunity.net_profit:.2f} ({marker})")
        return CycleResult(target=label, status=CycleStatus.SUCCESS, opportunity=opportunity,
                           record_id=record_id)

    @staticmethod
    def _target_label(target) -> str:
        label = getattr(target, "label", None)
        return label if isinstance(label, str) else f"{target.token_in}->{target.token_out}@{target.amount_in}"
