# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#


"""Tests for the validation gateway and the owner-facing order operations."""

from datetime import timedelta
from typing import Any, Callable
from unittest.mock import AsyncMock, Mock

import pytest

from swap_trigger.core.event_bus import EventBus
from swap_trigger.exceptions import (
    OrderLimitExceededError,
    OrderNotFoundError,
    OrderNotModifiableError,
    OrderValidationError,
    SchedulingFault,
    TriggerAlreadySatisfiedError,
)
from swap_trigger.infrastructure.database import OrderTable
from swap_trigger.models.configuration import SchedulerConfigDTO
from swap_trigger.models.order import Order, OrderRequestSchema, OrderStatus
from swap_trigger.services.order_service import OrderService


@pytest.fixture
def service(
    scheduler_config: SchedulerConfigDTO,
    store: OrderTable,
    price_feed: Mock,
    event_bus: EventBus,
    clock: Callable,
) -> OrderService:
    return OrderService(
        config=scheduler_config,
        store=store,
        price_feed=price_feed,
        event_bus=event_bus,
        clock=clock,
    )


def request(**kwargs: Any) -> OrderRequestSchema:  # noqa: ANN401
    values = {
        "owner": "alice",
        "source_asset": "USD",
        "destination_asset": "XBT",
        "amount": 10,
        "trigger_price": 0.10,
        "trigger_condition": "above",
    }
    values.update(kwargs)
    return OrderRequestSchema(**values)


class TestCreateOrder:
    """Test cases for OrderService.create_order"""

    @pytest.mark.asyncio
    async def test_create(
        self,
        service: OrderService,
        store: OrderTable,
        event_bus: EventBus,
        clock: Callable,
    ) -> None:
        callback = Mock()
        event_bus.subscribe("order_created", callback)

        order = await service.create_order(request())

        assert order.status == OrderStatus.ACTIVE
        assert order.reference_price == 0.08
        assert order.max_slippage == 5.0
        assert order.max_retries == 3
        assert order.retry_count == 0
        assert order.expires_at == clock() + timedelta(days=30)
        assert await store.get_by_id(order.id) == order
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_reject_already_satisfied(
        self,
        service: OrderService,
        store: OrderTable,
        price_feed: Mock,
    ) -> None:
        """An 'above' order with a trigger below the current price would fire immediately"""
        price_feed.current_price.return_value = 0.12

        with pytest.raises(TriggerAlreadySatisfiedError) as exc_info:
            await service.create_order(request())

        error = exc_info.value
        assert error.condition == "above"
        assert error.current_price == 0.12
        assert error.required_direction == "up"
        assert error.distance == pytest.approx(-0.02)
        assert "would execute immediately" in str(error)
        assert await store.count_active("alice") == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("condition", "price"),
        [("above", 0.10), ("below", 0.10), ("below", 0.09)],
    )
    async def test_reject_at_or_beyond_threshold(
        self,
        service: OrderService,
        price_feed: Mock,
        condition: str,
        price: float,
    ) -> None:
        price_feed.current_price.return_value = price
        with pytest.raises(TriggerAlreadySatisfiedError):
            await service.create_order(request(trigger_condition=condition))

    @pytest.mark.asyncio
    async def test_create_below(self, service: OrderService, price_feed: Mock) -> None:
        price_feed.current_price.return_value = 0.12
        order = await service.create_order(request(trigger_condition="below"))
        assert order.reference_price == 0.12

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"destination_asset": "ETH"}, "Only swaps between"),
            ({"trigger_price": 2_000_000}, "Trigger price must be between"),
            ({"max_slippage": 51}, "Slippage must be between"),
            ({"max_slippage": 0.05}, "Slippage must be between"),
            ({"max_retries": 11}, "Max retries must be between"),
        ],
    )
    async def test_reject_out_of_bounds(
        self,
        service: OrderService,
        store: OrderTable,
        price_feed: Mock,
        kwargs: dict,
        match: str,
    ) -> None:
        with pytest.raises(OrderValidationError, match=match):
            await service.create_order(request(**kwargs))
        assert await store.count_active("alice") == 0
        price_feed.current_price.assert_not_called()

    @pytest.mark.asyncio
    async def test_reject_invalid_expiry(self, service: OrderService, clock: Callable) -> None:
        with pytest.raises(OrderValidationError, match="must be in the future"):
            await service.create_order(request(expires_at=clock() - timedelta(seconds=1)))
        with pytest.raises(OrderValidationError, match="lifetime must not exceed"):
            await service.create_order(request(expires_at=clock() + timedelta(days=366)))

    @pytest.mark.asyncio
    async def test_reject_amount_above_maximum(
        self,
        service: OrderService,
        scheduler_config: SchedulerConfigDTO,
    ) -> None:
        service.config = scheduler_config.model_copy(update={"max_amount": 5})
        with pytest.raises(OrderValidationError, match="Invalid amount"):
            await service.create_order(request())

    @pytest.mark.asyncio
    async def test_owner_limit(
        self,
        service: OrderService,
        scheduler_config: SchedulerConfigDTO,
    ) -> None:
        service.config = scheduler_config.model_copy(
            update={"max_active_orders_per_owner": 2},
        )
        await service.create_order(request())
        await service.create_order(request())

        with pytest.raises(OrderLimitExceededError) as exc_info:
            await service.create_order(request())
        assert exc_info.value.details == {"current_active_orders": 2}

        # Other owners are not affected
        await service.create_order(request(owner="bob"))

    @pytest.mark.asyncio
    async def test_price_unavailable(
        self,
        service: OrderService,
        store: OrderTable,
        price_feed: Mock,
    ) -> None:
        price_feed.current_price = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(SchedulingFault, match="not available"):
            await service.create_order(request())
        assert await store.count_active("alice") == 0


class TestModifyOrder:
    """Test cases for cancelling and updating orders"""

    @pytest.mark.asyncio
    async def test_cancel(self, service: OrderService, event_bus: EventBus) -> None:
        callback = Mock()
        event_bus.subscribe("order_cancelled", callback)
        order = await service.create_order(request())

        cancelled = await service.cancel_order(order.id, "alice")

        assert cancelled.status == OrderStatus.CANCELLED
        callback.assert_called_once()
        with pytest.raises(OrderNotModifiableError, match="cancelled"):
            await service.cancel_order(order.id, "alice")

    @pytest.mark.asyncio
    async def test_cancel_unknown_or_foreign(self, service: OrderService) -> None:
        order = await service.create_order(request())
        with pytest.raises(OrderNotFoundError):
            await service.cancel_order(order.id, "bob")
        with pytest.raises(OrderNotFoundError):
            await service.cancel_order("unknown", "alice")

    @pytest.mark.asyncio
    async def test_cancel_claimed(
        self,
        service: OrderService,
        store: OrderTable,
        make_order: Callable[..., Order],
    ) -> None:
        order = await store.create(make_order(status=OrderStatus.CLAIMED))
        with pytest.raises(OrderNotModifiableError, match="claimed"):
            await service.cancel_order(order.id, "alice")

    @pytest.mark.asyncio
    async def test_update(self, service: OrderService, clock: Callable) -> None:
        order = await service.create_order(request())
        expires_at = clock() + timedelta(days=2)

        updated = await service.update_order(
            order.id,
            "alice",
            max_slippage=1.0,
            expires_at=expires_at,
        )

        assert updated.max_slippage == 1.0
        assert updated.expires_at == expires_at
        assert updated.trigger_price == order.trigger_price

    @pytest.mark.asyncio
    async def test_update_validation(self, service: OrderService) -> None:
        order = await service.create_order(request())
        with pytest.raises(OrderValidationError, match="Nothing to update"):
            await service.update_order(order.id, "alice")
        with pytest.raises(OrderValidationError, match="Slippage"):
            await service.update_order(order.id, "alice", max_slippage=99)

    @pytest.mark.asyncio
    async def test_update_terminal(self, service: OrderService) -> None:
        order = await service.create_order(request())
        await service.cancel_order(order.id, "alice")
        with pytest.raises(OrderNotModifiableError):
            await service.update_order(order.id, "alice", max_slippage=1.0)

    @pytest.mark.asyncio
    async def test_queries(self, service: OrderService) -> None:
        order = await service.create_order(request())
        await service.create_order(request(amount=5))

        assert (await service.get_order(order.id, "alice")).id == order.id
        assert len(await service.list_orders("alice")) == 2
        assert (await service.get_statistics("alice")).total_volume == pytest.approx(15)
