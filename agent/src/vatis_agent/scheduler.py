"""Scheduling loop: timer ticks, shutdown signals and orderly disconnect."""

import asyncio
import enum
import logging
import signal
import time
from typing import Callable, Dict, Iterable, Mapping, Optional

from .collectors import DEFAULT_COLLECTORS, resolve_identity
from .config import AgentConfig
from .sampler import Collector, run_tick
from .transport import TransportError

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

logger = logging.getLogger(__name__)


class AgentState(enum.Enum):
    CONNECTING = "connecting"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class Ticker:
    """
    Repeating timer anchored to its first tick.

    The first wait() returns immediately, later ones return at
    ``start + k * interval``. A tick that is already due returns at once
    without shifting the following deadlines.
    """

    def __init__(
        self,
        interval: float,
        time_source: Optional[Callable[[], float]] = None,
        sleep: Callable = asyncio.sleep,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self._time = time_source
        self._sleep = sleep
        self._next: Optional[float] = None

    def _now(self) -> float:
        if self._time is None:
            return asyncio.get_running_loop().time()
        return self._time()

    async def wait(self) -> float:
        """Wait for the next tick and return its scheduled time."""
        now = self._now()
        if self._next is None:
            self._next = now

        delay = self._next - now
        if delay > 0:
            await self._sleep(delay)

        deadline = self._next
        self._next += self.interval
        return deadline


class SignalListener:
    """Latches delivery of one OS signal for the event loop."""

    def __init__(self, signum: int):
        self.signum = signum
        self._event = asyncio.Event()

    @property
    def name(self) -> str:
        return signal.Signals(self.signum).name

    @property
    def received(self) -> bool:
        return self._event.is_set()

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.add_signal_handler(self.signum, self.notify)

    def remove(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.remove_signal_handler(self.signum)

    def notify(self) -> None:
        logger.debug(f"{self.name} received")
        self._event.set()

    async def wait(self) -> int:
        await self._event.wait()
        return self.signum


class Agent:
    """
    Top-level control loop of the agent.

    Moves through CONNECTING, RUNNING, DRAINING and STOPPED. While running
    it races the ticker against the shutdown signals; ticks never overlap
    and a signal is only acted on between ticks.
    """

    def __init__(
        self,
        client,
        config: AgentConfig,
        collectors: Optional[Mapping[str, Collector]] = None,
        identity: Optional[str] = None,
        identity_resolver: Callable[[], str] = resolve_identity,
        clock: Callable[[], int] = time.time_ns,
        ticker: Optional[Ticker] = None,
        signals: Iterable[int] = SHUTDOWN_SIGNALS,
        install_signal_handlers: bool = True,
    ):
        self.client = client
        self.config = config
        self.collectors = dict(DEFAULT_COLLECTORS if collectors is None else collectors)
        self.identity = identity
        self.identity_resolver = identity_resolver
        self.clock = clock
        self.ticker = ticker
        self.listeners = [SignalListener(signum) for signum in signals]
        self.install_signal_handlers = install_signal_handlers
        self.state = AgentState.CONNECTING
        self.ticks = 0
        self.stop_signal: Optional[int] = None

    def listener(self, signum: int) -> SignalListener:
        for listener in self.listeners:
            if listener.signum == signum:
                return listener
        raise KeyError(signum)

    def _connect(self) -> None:
        self.client.connect()

        if self.identity is None:
            try:
                self.identity = self.identity_resolver()
            except Exception:
                self._drain()
                raise

        if self.ticker is None:
            self.ticker = Ticker(self.config.interval)
        logger.info(f"timer with interval {self.ticker.interval}s started")

    async def _run_ticks(self) -> None:
        signal_tasks: Dict[SignalListener, asyncio.Task] = {
            listener: asyncio.ensure_future(listener.wait()) for listener in self.listeners
        }
        tick_task = None

        try:
            while True:
                if tick_task is None:
                    tick_task = asyncio.ensure_future(self.ticker.wait())

                await asyncio.wait(
                    [tick_task, *signal_tasks.values()],
                    return_when=asyncio.FIRST_COMPLETED,
                )

                # Signals win over a tick that became due at the same time
                fired = [listener for listener, task in signal_tasks.items() if task.done()]
                if fired:
                    self.stop_signal = fired[0].signum
                    logger.info(f"{fired[0].name} received, shutting down")
                    return

                tick_task.result()
                tick_task = None
                await run_tick(
                    self.client,
                    self.identity,
                    self.collectors,
                    clock=self.clock,
                    strict=self.config.strict_collectors,
                )
                self.ticks += 1
        finally:
            pending = [t for t in [tick_task, *signal_tasks.values()] if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def _drain(self) -> None:
        self.state = AgentState.DRAINING
        logger.info("disconnecting...")

        try:
            self.client.disconnect()
        except TransportError as e:
            logger.warning(f"error disconnecting from broker: {e}")

        self.state = AgentState.STOPPED
        logger.info("exited")

    async def run(self) -> None:
        """
        Connect, sample until a shutdown signal arrives, then disconnect.

        Raises:
            TransportError: If the broker connection cannot be established
            IdentityError: If the host identity cannot be resolved
            StatsReadError: If a collector fails with strict_collectors set
        """
        self.state = AgentState.CONNECTING
        self._connect()

        loop = asyncio.get_running_loop()
        if self.install_signal_handlers:
            for listener in self.listeners:
                listener.install(loop)

        self.state = AgentState.RUNNING
        try:
            await self._run_ticks()
        finally:
            if self.install_signal_handlers:
                for listener in self.listeners:
                    listener.remove(loop)
            self._drain()
