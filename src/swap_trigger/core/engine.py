# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

import asyncio
import signal
from datetime import datetime, timedelta
from importlib.metadata import version
from logging import getLogger
from typing import Any, Callable, Self

from swap_trigger.core.coordinator import ExecutionCoordinator
from swap_trigger.core.evaluator import TriggerEvaluator
from swap_trigger.core.event_bus import EventBus
from swap_trigger.core.monitor import Monitor
from swap_trigger.exceptions import SchedulerStateError
from swap_trigger.interfaces import IOrderStore, IPriceFeed, ISwapExecutor
from swap_trigger.models.configuration import SchedulerConfigDTO
from swap_trigger.models.order import OrderStatus, utcnow
from swap_trigger.models.status import (
    MonitorCounters,
    SchedulerStatus,
    SimulationResult,
    TickReport,
)
from swap_trigger.services.notification_service import (
    ORDER_EVENTS,
    NotificationService,
)
from swap_trigger.services.order_service import OrderService
from swap_trigger.services.retry import RetryStrategy, retry_strategy_from_config

LOG = getLogger(__name__)


def format_uptime(seconds: float) -> str:
    """Formats a duration like '2d 3h 4m', '5m 6s' or '7s'."""
    seconds = int(seconds)
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days:
        return f"{days}d {hours % 24}h {minutes % 60}m"
    if hours:
        return f"{hours}h {minutes % 60}m"
    if minutes:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


class SchedulerEngine:
    """
    Orchestrates the scheduler components and exposes the admin control
    surface: start/stop, status, forced ticks, simulations and runtime
    configuration.

    Stopping halts new ticks and waits until the tick in progress, including
    its in-flight executions, has finished.
    """

    def __init__(  # noqa: PLR0913
        self: Self,
        config: SchedulerConfigDTO,
        store: IOrderStore,
        price_feed: IPriceFeed,
        executor: ISwapExecutor,
        event_bus: EventBus | None = None,
        notification_service: NotificationService | None = None,
        retry_strategy: RetryStrategy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        LOG.info(
            "Initiate the swap-trigger scheduler instance (v%s)",
            version("swap-trigger"),
        )
        LOG.debug("Config: %s", config)

        self.__config = config
        self.__store = store
        self.__clock = clock
        self.__custom_retry_strategy = retry_strategy is not None
        self.__event_bus = event_bus or EventBus()
        self.__notification_service = notification_service
        self.__evaluator = TriggerEvaluator()

        self.__stop_event: asyncio.Event | None = None
        self.__task: asyncio.Task | None = None
        self.__started_at: datetime | None = None

        # == Application services ==============================================
        ##
        self.__coordinator = ExecutionCoordinator(
            store=store,
            executor=executor,
            event_bus=self.__event_bus,
            execution_timeout=config.execution_timeout,
            retry_strategy=retry_strategy or retry_strategy_from_config(config),
            clock=clock,
        )
        self.__monitor = Monitor(
            config=config,
            store=store,
            price_feed=price_feed,
            coordinator=self.__coordinator,
            event_bus=self.__event_bus,
            clock=clock,
        )
        self.orders = OrderService(
            config=config,
            store=store,
            price_feed=price_feed,
            event_bus=self.__event_bus,
            clock=clock,
        )

        self.__setup_event_handlers()

    def __setup_event_handlers(self: Self) -> None:
        if self.__notification_service is None:
            return

        self.__event_bus.subscribe(
            "notification",
            self.__notification_service.on_notification,
        )
        for event_type in ORDER_EVENTS:
            self.__event_bus.subscribe(
                event_type,
                self.__notification_service.on_order_event,
            )

    # ==========================================================================
    # Lifecycle

    @property
    def running(self: Self) -> bool:
        return self.__task is not None and not self.__task.done()

    async def start(
        self: Self,
        config: SchedulerConfigDTO | dict[str, Any] | None = None,
    ) -> bool:
        """
        Start the monitor loop. Returns False if it is already running.
        Statistics are reset on every start.
        """
        if self.running:
            LOG.warning("The scheduler is already running.")
            return False

        if config is not None:
            self.update_config(
                config.model_dump(exclude={"symbol"})
                if isinstance(config, SchedulerConfigDTO)
                else config,
            )

        LOG.info("Starting the scheduler...")
        self.reset_statistics()
        self.__started_at = self.__clock()
        self.__stop_event = asyncio.Event()
        self.__task = asyncio.create_task(self.__monitor.run(self.__stop_event))
        LOG.info("Scheduler started.")
        return True

    async def stop(self: Self) -> bool:
        """
        Stop the monitor loop after the current tick. Returns False if it is
        not running.
        """
        if not self.running:
            LOG.warning("The scheduler is not running.")
            return False

        LOG.info("Stopping the scheduler...")
        self.__stop_event.set()  # type: ignore[union-attr]
        await self.__task  # type: ignore[misc]
        self.__task = None
        self.__started_at = None
        LOG.info("Scheduler stopped.")
        return True

    async def restart(self: Self) -> bool:
        if not await self.stop():
            return False
        return await self.start()

    async def run(self: Self) -> None:
        """
        Start the scheduler and block until SIGINT or SIGTERM is received.
        """
        if self.running:
            raise SchedulerStateError("The scheduler is already running!")

        shutdown = asyncio.Event()

        def _signal_handler() -> None:
            LOG.warning("Initiate a controlled shutdown of the scheduler...")
            shutdown.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

        await self.start()
        self.__event_bus.publish(
            "notification",
            {"message": f"✅ swap-trigger for {self.__config.symbol} is starting!"},
        )
        waiter = asyncio.create_task(shutdown.wait())
        try:
            await asyncio.wait(
                [waiter, self.__task],  # type: ignore[list-item]
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            if self.running:
                await self.stop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

        self.__event_bus.publish(
            "notification",
            {"message": f"swap-trigger for {self.__config.symbol} terminated."},
        )

    # ==========================================================================
    # Status

    def get_status(self: Self) -> SchedulerStatus:
        counters = self.__monitor.counters
        uptime = (
            (self.__clock() - self.__started_at).total_seconds()
            if self.running and self.__started_at
            else 0.0
        )
        return SchedulerStatus(
            running=self.running,
            started_at=self.__started_at if self.running else None,
            last_tick=counters.last_tick,
            next_tick=(
                counters.last_tick + timedelta(seconds=self.__config.poll_interval)
                if self.running and counters.last_tick
                else None
            ),
            last_price=counters.last_price,
            total_ticks=counters.total_ticks,
            executed=counters.executed,
            failed=counters.failed,
            expired=counters.expired,
            recovered=counters.recovered,
            errors=counters.errors,
            faulted_ticks=counters.faulted_ticks,
            success_rate=(
                round(
                    (counters.total_ticks - counters.faulted_ticks)
                    / counters.total_ticks
                    * 100,
                    2,
                )
                if counters.total_ticks
                else 0.0
            ),
            uptime=uptime,
            uptime_human=format_uptime(uptime),
        )

    def reset_statistics(self: Self) -> None:
        self.__monitor.counters = MonitorCounters()
        LOG.info("Scheduler statistics reset.")

    # ==========================================================================
    # Manual operations

    async def force_tick(self: Self) -> TickReport:
        """Run a tick immediately, regardless of the loop state."""
        LOG.info("Forcing a tick...")
        return await self.__monitor.tick()

    async def simulate(self: Self, price: float) -> list[SimulationResult]:
        """
        Report which active orders would fire at ``price``. Nothing is
        persisted or executed.
        """
        if price <= 0:
            raise ValueError("The simulated price must be positive")

        orders = await self.__store.list_active(exclude_expired_before=self.__clock())
        results = [
            SimulationResult(
                order_id=order.id,
                would_fire=self.__evaluator.is_eligible(order, price),
            )
            for order in orders
        ]
        LOG.info(
            "Simulation: %d of %d order(s) would fire at %s",
            sum(result.would_fire for result in results),
            len(results),
            price,
        )
        return results

    async def check_orders(self: Self, order_ids: list[str]) -> dict[str, bool]:
        """Evaluate specific orders against the current market price."""
        price = await self.__monitor.fetch_price()
        now = self.__clock()
        results = {}
        for order_id in order_ids:
            order = await self.__store.get_by_id(order_id)
            results[order_id] = bool(
                order
                and order.status == OrderStatus.ACTIVE
                and not order.is_expired(now)
                and self.__evaluator.is_eligible(order, price),
            )
        return results

    # ==========================================================================
    # Configuration

    def get_config(self: Self) -> SchedulerConfigDTO:
        return self.__config.model_copy()

    def update_config(self: Self, partial: dict[str, Any]) -> SchedulerConfigDTO:
        """
        Apply a partial configuration update. The new configuration is
        validated as a whole before anything is changed; the traded pair is
        fixed for the lifetime of the engine.
        """
        merged = SchedulerConfigDTO.model_validate(
            {**self.__config.model_dump(exclude={"symbol"}), **partial},
        )
        if (merged.base_currency, merged.quote_currency) != (
            self.__config.base_currency,
            self.__config.quote_currency,
        ):
            raise SchedulerStateError("The traded pair can not be changed at runtime")

        LOG.info("Configuration updated: %s", partial)
        self.__config = merged
        self.__monitor.config = merged
        self.orders.config = merged
        self.__coordinator.execution_timeout = merged.execution_timeout
        if not self.__custom_retry_strategy:
            self.__coordinator.retry_strategy = retry_strategy_from_config(merged)
        return self.get_config()
