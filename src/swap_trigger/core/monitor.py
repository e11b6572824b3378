# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
The scheduling loop.

Every tick samples the price exactly once and evaluates all active orders
against that single sample. A tick never raises; failures are counted and the
loop continues with the next interval.
"""

import asyncio
from datetime import datetime, timedelta
from logging import getLogger
from typing import Callable, Self

from swap_trigger.core.coordinator import ExecutionCoordinator
from swap_trigger.core.evaluator import TriggerEvaluator
from swap_trigger.core.event_bus import EventBus
from swap_trigger.exceptions import SchedulingFault
from swap_trigger.interfaces import IOrderStore, IPriceFeed
from swap_trigger.models.configuration import SchedulerConfigDTO
from swap_trigger.models.execution import ExecutionOutcome
from swap_trigger.models.order import Order, OrderStatus, utcnow
from swap_trigger.models.status import MonitorCounters, TickReport

LOG = getLogger(__name__)


class Monitor:
    """Periodically evaluates active orders and dispatches fired ones."""

    def __init__(  # noqa: PLR0913
        self: Self,
        config: SchedulerConfigDTO,
        store: IOrderStore,
        price_feed: IPriceFeed,
        coordinator: ExecutionCoordinator,
        event_bus: EventBus,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.counters = MonitorCounters()
        self.__store = store
        self.__price_feed = price_feed
        self.__coordinator = coordinator
        self.__event_bus = event_bus
        self.__clock = clock
        self.__evaluator = TriggerEvaluator()

    # ==========================================================================
    # Loop

    async def run(self: Self, stop_event: asyncio.Event) -> None:
        """
        Run ticks until ``stop_event`` is set. A tick in progress is always
        completed before this returns, so no claim is abandoned on stop.
        """
        LOG.info(
            "Monitoring %s every %ss...",
            self.config.symbol,
            self.config.poll_interval,
        )
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception as exc:  # noqa: BLE001
                # tick() handles its own errors, this is the last resort that
                # keeps the loop alive.
                self.counters.errors += 1
                self.counters.faulted_ticks += 1
                LOG.error("Unexpected exception during tick.", exc_info=exc)

            try:
                await asyncio.wait_for(
                    stop_event.wait(),
                    timeout=self.config.poll_interval,
                )
            except TimeoutError:
                pass
        LOG.info("Monitoring stopped.")

    async def tick(self: Self) -> TickReport:
        """Run a single evaluation cycle."""
        now = self.__clock()
        report = TickReport(started_at=now)
        self.counters.total_ticks += 1
        self.counters.last_tick = now
        LOG.debug("Tick #%d at %s", self.counters.total_ticks, now.isoformat())

        errors = self.counters.errors
        await self.__tick(now, report)
        if report.skipped or self.counters.errors > errors:
            self.counters.faulted_ticks += 1
        return report

    async def __tick(self: Self, now: datetime, report: TickReport) -> None:
        try:
            report.recovered = await self.recover_stale_claims(now)
        except Exception as exc:  # noqa: BLE001
            self.counters.errors += 1
            LOG.error("Recovery sweep failed.", exc_info=exc)

        try:
            price = await self.fetch_price()
        except SchedulingFault as exc:
            self.counters.errors += 1
            LOG.warning("Skipping tick: %s", exc)
            report.skipped = True
            report.error = str(exc)
            return

        if self.counters.last_price:
            change = (price - self.counters.last_price) / self.counters.last_price * 100
            LOG.info("Current %s price: %s (%+.2f%%)", self.config.symbol, price, change)
        else:
            LOG.info("Current %s price: %s", self.config.symbol, price)
        self.counters.last_price = price
        report.price = price

        try:
            orders = await self.__store.list_active()
        except Exception as exc:  # noqa: BLE001
            self.counters.errors += 1
            LOG.error("Could not list active orders, skipping tick.", exc_info=exc)
            report.skipped = True
            report.error = str(exc)
            return

        report.orders_checked = len(orders)
        LOG.debug("Found %d active orders to check", len(orders))

        eligible: list[Order] = []
        for order in orders:
            if order.is_expired(now):
                if await self.__expire(order):
                    report.expired.append(order.id)
                continue
            if order.next_attempt_at is not None and order.next_attempt_at > now:
                LOG.debug("Order '%s' is backing off until %s", order.id, order.next_attempt_at)
                continue
            if self.__evaluator.is_eligible(order, price):
                eligible.append(order)

        report.eligible = [order.id for order in eligible]
        if eligible:
            LOG.info("%d order(s) eligible for execution", len(eligible))
            await self.__dispatch(eligible, price, report)

    # ==========================================================================
    # Steps

    async def fetch_price(self: Self) -> float:
        """Fetch one price sample or raise a SchedulingFault."""
        try:
            price = await asyncio.wait_for(
                self.__price_feed.current_price(
                    self.config.base_currency,
                    self.config.quote_currency,
                ),
                timeout=self.config.price_timeout,
            )
        except TimeoutError as exc:
            raise SchedulingFault(
                f"Price feed timed out after {self.config.price_timeout}s",
            ) from exc
        except Exception as exc:  # noqa: BLE001
            raise SchedulingFault(f"Price feed unavailable: {exc}") from exc

        if price is None or price <= 0:
            raise SchedulingFault(f"Invalid price received: {price}")
        return price

    async def recover_stale_claims(self: Self, now: datetime) -> list[str]:
        """
        Reset orders that are claimed for longer than the grace period back
        to 'active'. Guards against crashes between claim and outcome.
        """
        recovered = []
        for order in await self.__store.list_claimed(
            claimed_before=now - timedelta(seconds=self.config.claim_grace_period),
        ):
            if await self.__store.conditional_update(
                order.id,
                OrderStatus.CLAIMED,
                {"status": OrderStatus.ACTIVE, "claimed_at": None},
            ):
                LOG.warning(
                    "Recovered order '%s' claimed since %s",
                    order.id,
                    order.claimed_at,
                )
                recovered.append(order.id)
                self.counters.recovered += 1
                self.__event_bus.publish("order_recovered", {"order": order})
        return recovered

    async def __expire(self: Self, order: Order) -> bool:
        try:
            expired = await self.__store.conditional_update(
                order.id,
                OrderStatus.ACTIVE,
                {"status": OrderStatus.EXPIRED},
            )
        except Exception as exc:  # noqa: BLE001
            self.counters.errors += 1
            LOG.error("Could not expire order '%s'.", order.id, exc_info=exc)
            return False

        if expired:
            LOG.info("Order '%s' expired at %s", order.id, order.expires_at)
            self.counters.expired += 1
            self.__event_bus.publish("order_expired", {"order": order})
        return expired

    async def __dispatch(
        self: Self,
        orders: list[Order],
        price: float,
        report: TickReport,
    ) -> None:
        semaphore = asyncio.Semaphore(self.config.max_concurrent_executions)

        async def _execute(order: Order) -> ExecutionOutcome:
            async with semaphore:
                return await self.__coordinator.execute_order(order, price)

        results = await asyncio.gather(
            *(_execute(order) for order in orders),
            return_exceptions=True,
        )
        for order, result in zip(orders, results, strict=True):
            if isinstance(result, BaseException):
                self.counters.errors += 1
                LOG.error("Error executing order '%s'.", order.id, exc_info=result)
            elif result == ExecutionOutcome.EXECUTED:
                self.counters.executed += 1
                report.executed.append(order.id)
            elif result == ExecutionOutcome.RETRY:
                report.retried.append(order.id)
            elif result == ExecutionOutcome.FAILED:
                self.counters.failed += 1
                report.failed.append(order.id)
            else:
                report.conflicts.append(order.id)
