# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Validation gateway and owner-facing order operations.

This is the only place where orders get created. Orders whose trigger
condition is already satisfied at the current market price are refused, so
that every execution is caused by a price movement after creation.
"""

import asyncio
from datetime import datetime
from logging import getLogger
from typing import Callable, Self

from swap_trigger.core.evaluator import TriggerEvaluator
from swap_trigger.core.event_bus import EventBus
from swap_trigger.exceptions import (
    OrderLimitExceededError,
    OrderNotFoundError,
    OrderNotModifiableError,
    OrderValidationError,
    SchedulingFault,
    TriggerAlreadySatisfiedError,
)
from swap_trigger.interfaces import IOrderStore, IPriceFeed
from swap_trigger.models.configuration import SchedulerConfigDTO
from swap_trigger.models.order import (
    Order,
    OrderRequestSchema,
    OrderStatisticsSchema,
    OrderStatus,
    as_utc,
    utcnow,
)

LOG = getLogger(__name__)


class OrderService:
    """Creates, modifies, cancels and lists orders on behalf of owners."""

    def __init__(  # noqa: PLR0913
        self: Self,
        config: SchedulerConfigDTO,
        store: IOrderStore,
        price_feed: IPriceFeed,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.__store = store
        self.__price_feed = price_feed
        self.__event_bus = event_bus or EventBus()
        self.__clock = clock
        self.__evaluator = TriggerEvaluator()

    # ==========================================================================
    # Creation

    async def create_order(self: Self, request: OrderRequestSchema) -> Order:
        """
        Validate a creation request against the configured bounds and the
        current market price and persist it as active order.

        Raises:
            OrderValidationError: if any bound is violated
            TriggerAlreadySatisfiedError: if the order would fire immediately
            OrderLimitExceededError: if the owner has too many active orders
            SchedulingFault: if the current price is not available
        """
        LOG.info(
            "Validating new order of '%s': %s %s -> %s when price %s %s",
            request.owner,
            request.amount,
            request.source_asset,
            request.destination_asset,
            request.trigger_condition,
            request.trigger_price,
        )
        now = self.__clock()
        candidate = Order(
            owner=request.owner,
            source_asset=request.source_asset,
            destination_asset=request.destination_asset,
            amount=request.amount,
            max_slippage=(
                request.max_slippage
                if request.max_slippage is not None
                else self.config.default_slippage
            ),
            trigger_price=request.trigger_price,
            trigger_condition=request.trigger_condition,
            max_retries=(
                request.max_retries
                if request.max_retries is not None
                else self.config.default_max_retries
            ),
            created_at=now,
            updated_at=now,
            expires_at=request.expires_at or now + self.config.default_order_lifetime,
        )
        self.__validate_bounds(candidate, now)

        if (
            active := await self.__store.count_active(candidate.owner)
        ) >= self.config.max_active_orders_per_owner:
            raise OrderLimitExceededError(
                f"Maximum of {self.config.max_active_orders_per_owner} active"
                " orders allowed per owner",
                current_active_orders=active,
            )

        price = await self.current_price()
        if self.__evaluator.fired(candidate, price):
            distance = self.__evaluator.distance(candidate, price)
            raise TriggerAlreadySatisfiedError(
                f"The order would execute immediately: condition"
                f" '{candidate.trigger_condition}' {candidate.trigger_price} is"
                f" already met at the current price {price}. The trigger price"
                f" must be {'above' if distance.required_direction == 'up' else 'below'}"
                f" the current price; it is {abs(distance.distance):g}"
                f" ({distance.distance_pct:.2f}%) on the wrong side.",
                condition=candidate.trigger_condition.value,
                trigger_price=candidate.trigger_price,
                current_price=price,
                required_direction=distance.required_direction,
                distance=distance.distance,
                distance_pct=distance.distance_pct,
            )

        candidate.reference_price = price
        order = await self.__store.create(candidate)
        LOG.info("Created order '%s' (reference price: %s)", order.id, price)
        self.__event_bus.publish("order_created", {"order": order})
        return order

    def __validate_bounds(self: Self, order: Order, now: datetime) -> None:
        config = self.config

        if {order.source_asset, order.destination_asset} != {
            config.base_currency,
            config.quote_currency,
        }:
            raise OrderValidationError(
                f"Only swaps between {config.base_currency} and"
                f" {config.quote_currency} are supported",
            )
        if not config.min_trigger_price <= order.trigger_price <= config.max_trigger_price:
            raise OrderValidationError(
                f"Trigger price must be between {config.min_trigger_price} and"
                f" {config.max_trigger_price}",
                trigger_price=order.trigger_price,
            )
        self.__validate_slippage(order.max_slippage)
        if not config.min_max_retries <= order.max_retries <= config.max_max_retries:
            raise OrderValidationError(
                f"Max retries must be between {config.min_max_retries} and"
                f" {config.max_max_retries}",
                max_retries=order.max_retries,
            )
        if order.amount < config.min_amount or (
            config.max_amount is not None and order.amount > config.max_amount
        ):
            raise OrderValidationError(
                f"Invalid amount for {order.source_asset}: {order.amount}",
                amount=order.amount,
            )
        self.__validate_expiry(order.expires_at, now)

    def __validate_slippage(self: Self, slippage: float) -> None:
        if not self.config.min_slippage <= slippage <= self.config.max_slippage:
            raise OrderValidationError(
                f"Slippage must be between {self.config.min_slippage}% and"
                f" {self.config.max_slippage}%",
                max_slippage=slippage,
            )

    def __validate_expiry(self: Self, expires_at: datetime | None, now: datetime) -> None:
        if expires_at is None:
            return
        if expires_at <= now:
            raise OrderValidationError(
                "The expiration date must be in the future",
                expires_at=expires_at,
            )
        if expires_at - now > self.config.max_order_lifetime:
            raise OrderValidationError(
                f"The order lifetime must not exceed {self.config.max_order_lifetime}",
                expires_at=expires_at,
            )

    async def current_price(self: Self) -> float:
        """Fetch the current price of the configured pair."""
        try:
            price = await asyncio.wait_for(
                self.__price_feed.current_price(
                    self.config.base_currency,
                    self.config.quote_currency,
                ),
                timeout=self.config.price_timeout,
            )
        except Exception as exc:  # noqa: BLE001
            raise SchedulingFault(f"Current price is not available: {exc}") from exc
        if price is None or price <= 0:
            raise SchedulingFault(f"Invalid price received: {price}")
        return price

    # ==========================================================================
    # Modification

    async def cancel_order(self: Self, order_id: str, owner: str) -> Order:
        """
        Cancel an active order. Claimed orders can't be cancelled until the
        execution resolved.
        """
        order = await self.get_order(order_id, owner)
        if not await self.__store.conditional_update(
            order.id,
            OrderStatus.ACTIVE,
            {"status": OrderStatus.CANCELLED},
        ):
            current = await self.__store.get_by_id(order.id)
            raise OrderNotModifiableError(
                f"Order '{order_id}' is {current.status if current else order.status}"
                " and can not be modified",
            )

        LOG.info("Cancelled order '%s' of '%s'", order_id, owner)
        cancelled = await self.get_order(order_id, owner)
        self.__event_bus.publish("order_cancelled", {"order": cancelled})
        return cancelled

    async def update_order(
        self: Self,
        order_id: str,
        owner: str,
        *,
        max_slippage: float | None = None,
        expires_at: datetime | None = None,
    ) -> Order:
        """
        Adjust slippage and/or expiration of an active order. Trigger price and
        condition are immutable.
        """
        patch: dict = {}
        if max_slippage is not None:
            self.__validate_slippage(max_slippage)
            patch["max_slippage"] = max_slippage
        if expires_at is not None:
            expires_at = as_utc(expires_at)
            self.__validate_expiry(expires_at, self.__clock())
            patch["expires_at"] = expires_at
        if not patch:
            raise OrderValidationError("Nothing to update")

        order = await self.get_order(order_id, owner)
        if not await self.__store.conditional_update(order.id, OrderStatus.ACTIVE, patch):
            raise OrderNotModifiableError(
                f"Order '{order_id}' is not active and can not be modified",
            )
        LOG.info("Updated order '%s': %s", order_id, patch)
        return await self.get_order(order_id, owner)

    # ==========================================================================
    # Queries

    async def get_order(self: Self, order_id: str, owner: str) -> Order:
        if (order := await self.__store.get_by_id(order_id, owner)) is None:
            raise OrderNotFoundError(f"Order '{order_id}' not found")
        return order

    async def list_orders(
        self: Self,
        owner: str,
        status: OrderStatus | None = None,
        limit: int = 50,
    ) -> list[Order]:
        return await self.__store.list_by_owner(owner, status=status, limit=limit)

    async def get_statistics(self: Self, owner: str) -> OrderStatisticsSchema:
        return await self.__store.statistics(owner)
