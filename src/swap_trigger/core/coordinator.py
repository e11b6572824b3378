# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Execution of fired orders.

Only the caller that wins the claim (compare-and-set from 'active' to
'claimed') may call the swap executor and record the outcome. This yields the
at-most-once execution guarantee per order.
"""

import asyncio
from datetime import datetime
from logging import getLogger
from typing import Callable, Self

from swap_trigger.core.event_bus import EventBus
from swap_trigger.exceptions import (
    ConcurrencyConflict,
    TerminalExecutionError,
    TransientExecutionError,
)
from swap_trigger.interfaces import IOrderStore, ISwapExecutor
from swap_trigger.models.execution import ExecutionOutcome, ExecutionResult, TradeParams
from swap_trigger.models.order import Order, OrderStatus, utcnow
from swap_trigger.services.retry import FixedDelayRetry, RetryStrategy

LOG = getLogger(__name__)


class ExecutionCoordinator:
    """Claims an eligible order, executes the swap and applies the outcome."""

    def __init__(  # noqa: PLR0913
        self: Self,
        store: IOrderStore,
        executor: ISwapExecutor,
        event_bus: EventBus,
        execution_timeout: float,
        retry_strategy: RetryStrategy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.__store = store
        self.__executor = executor
        self.__event_bus = event_bus
        self.__clock = clock
        self.execution_timeout = execution_timeout
        self.retry_strategy = retry_strategy or FixedDelayRetry()

    async def execute_order(self: Self, order: Order, price: float) -> ExecutionOutcome:
        """
        Execute ``order`` that fired at ``price``.

        Never raises for execution failures; those are recorded on the order.
        """
        try:
            order = await self.__claim(order)
        except ConcurrencyConflict:
            LOG.debug("Order '%s' was claimed or changed elsewhere, skipping.", order.id)
            return ExecutionOutcome.CONFLICT

        # The listed order may be outdated when ticks overlap, the claimed row
        # carries the current retry count and backoff.
        if order.next_attempt_at is not None and order.next_attempt_at > self.__clock():
            await self.__release(order)
            return ExecutionOutcome.CONFLICT

        LOG.info(
            "Executing order '%s': %s %s -> %s (%s %s, price: %s)",
            order.id,
            order.amount,
            order.source_asset,
            order.destination_asset,
            order.trigger_condition,
            order.trigger_price,
            price,
        )
        try:
            result = await self.__execute(order, price)
        except TransientExecutionError as exc:
            return await self.__handle_failure(order, str(exc))

        return await self.__handle_success(order, price, result)

    # ==========================================================================

    async def __claim(self: Self, order: Order) -> Order:
        """Claim ``order`` and return it as currently stored."""
        if not await self.__store.conditional_update(
            order.id,
            OrderStatus.ACTIVE,
            {"status": OrderStatus.CLAIMED, "claimed_at": self.__clock()},
        ):
            raise ConcurrencyConflict(f"Could not claim order '{order.id}'")
        if (claimed := await self.__store.get_by_id(order.id)) is None:
            raise ConcurrencyConflict(f"Order '{order.id}' vanished after claim")
        return claimed

    async def __release(self: Self, order: Order) -> None:
        if await self.__store.conditional_update(
            order.id,
            OrderStatus.CLAIMED,
            {"status": OrderStatus.ACTIVE, "claimed_at": None},
        ):
            LOG.debug(
                "Released order '%s', it is backing off until %s",
                order.id,
                order.next_attempt_at,
            )

    async def __execute(self: Self, order: Order, price: float) -> ExecutionResult:
        params = TradeParams(
            order_id=order.id,
            owner=order.owner,
            source_asset=order.source_asset,
            destination_asset=order.destination_asset,
            amount=order.amount,
            max_slippage=order.max_slippage,
            reference_price=price,
        )
        try:
            result = await asyncio.wait_for(
                self.__executor.execute(params),
                timeout=self.execution_timeout,
            )
        except TimeoutError as exc:
            raise TransientExecutionError(
                f"Execution timed out after {self.execution_timeout}s",
            ) from exc
        except Exception as exc:  # noqa: BLE001
            LOG.warning("Swap executor raised for order '%s'", order.id, exc_info=exc)
            raise TransientExecutionError(f"Execution error: {exc}") from exc

        if not result.success:
            raise TransientExecutionError(result.error or "Execution failed")
        return result

    async def __handle_success(
        self: Self,
        order: Order,
        price: float,
        result: ExecutionResult,
    ) -> ExecutionOutcome:
        patch = {
            "status": OrderStatus.EXECUTED,
            "executed_at": self.__clock(),
            "executed_price": price,
            "executed_amount": result.executed_amount,
            "execution_reference": result.reference,
            "claimed_at": None,
            "next_attempt_at": None,
            "failure_reason": None,
        }
        if not await self.__store.conditional_update(order.id, OrderStatus.CLAIMED, patch):
            # The claim got reset by the recovery sweep while the swap was in
            # progress. The trade happened, so the order must not stay active.
            LOG.error(
                "Claim of executed order '%s' was lost, recording execution anyway.",
                order.id,
            )
            if not await self.__store.conditional_update(
                order.id,
                OrderStatus.ACTIVE,
                {"status": OrderStatus.CLAIMED, "claimed_at": self.__clock()},
            ) or not await self.__store.conditional_update(
                order.id,
                OrderStatus.CLAIMED,
                patch,
            ):
                LOG.critical(
                    "Could not record the execution of order '%s' (reference: %s)!",
                    order.id,
                    result.reference,
                )

        LOG.info(
            "Order '%s' executed at %s (reference: %s)",
            order.id,
            price,
            result.reference,
        )
        self.__event_bus.publish(
            "order_executed",
            {"order": order, "price": price, "result": result},
        )
        return ExecutionOutcome.EXECUTED

    async def __handle_failure(self: Self, order: Order, reason: str) -> ExecutionOutcome:
        retry_count = min(order.retry_count + 1, order.max_retries)

        if retry_count < order.max_retries:
            next_attempt_at = self.retry_strategy.next_attempt_at(
                self.__clock(),
                retry_count,
            )
            if not await self.__store.conditional_update(
                order.id,
                OrderStatus.CLAIMED,
                {
                    "status": OrderStatus.ACTIVE,
                    "retry_count": retry_count,
                    "failure_reason": reason,
                    "claimed_at": None,
                    "next_attempt_at": next_attempt_at,
                },
            ):
                return self.__lost_claim(order, reason)
            LOG.warning(
                "Execution of order '%s' failed (retry %d/%d): %s",
                order.id,
                retry_count,
                order.max_retries,
                reason,
            )
            self.__event_bus.publish(
                "order_retry",
                {"order": order, "retry_count": retry_count, "reason": reason},
            )
            return ExecutionOutcome.RETRY

        if not await self.__store.conditional_update(
            order.id,
            OrderStatus.CLAIMED,
            {
                "status": OrderStatus.FAILED,
                "retry_count": retry_count,
                "failure_reason": reason,
                "claimed_at": None,
                "next_attempt_at": None,
            },
        ):
            return self.__lost_claim(order, reason)
        exc = TerminalExecutionError(
            f"Order '{order.id}' failed after {retry_count} attempt(s): {reason}",
        )
        LOG.error(str(exc))
        self.__event_bus.publish("order_failed", {"order": order, "reason": reason})
        return ExecutionOutcome.FAILED

    @staticmethod
    def __lost_claim(order: Order, reason: str) -> ExecutionOutcome:
        # The recovery sweep reset the claim, the attempt is not counted.
        LOG.error(
            "Claim of order '%s' was lost before its failure could be recorded: %s",
            order.id,
            reason,
        )
        return ExecutionOutcome.CONFLICT
