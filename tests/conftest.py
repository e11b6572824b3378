# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from datetime import UTC, datetime, timedelta
from typing import Callable, Generator, Self
from unittest.mock import AsyncMock, Mock

import pytest

from swap_trigger.core.event_bus import EventBus
from swap_trigger.infrastructure.database import OrderTable
from swap_trigger.interfaces import IPriceFeed, ISwapExecutor
from swap_trigger.models.configuration import DBConfigDTO, SchedulerConfigDTO
from swap_trigger.models.execution import ExecutionResult
from swap_trigger.models.order import Order, TriggerCondition
from swap_trigger.services.database import DBConnect


class FakeClock:
    """Controllable replacement for ``utcnow``"""

    def __init__(self: Self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self: Self) -> datetime:
        return self.now

    def advance(self: Self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_config() -> DBConfigDTO:
    return DBConfigDTO(in_memory=True)


@pytest.fixture
def scheduler_config() -> SchedulerConfigDTO:
    return SchedulerConfigDTO(
        base_currency="XBT",
        quote_currency="USD",
        poll_interval=0.01,
        price_timeout=1,
        execution_timeout=1,
        claim_grace_period=60,
        min_trigger_price=0.001,
    )


@pytest.fixture
def store(db_config: DBConfigDTO) -> Generator[OrderTable, None, None]:
    db = DBConnect(db_config)
    table = OrderTable(db=db)
    db.init_db()
    yield table
    db.close()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def price_feed() -> Mock:
    feed = Mock(spec=IPriceFeed)
    feed.current_price = AsyncMock(return_value=0.08)
    return feed


@pytest.fixture
def executor() -> Mock:
    executor = Mock(spec=ISwapExecutor)
    executor.execute = AsyncMock(
        return_value=ExecutionResult(success=True, reference="tx-1", executed_amount=10.0),
    )
    return executor


@pytest.fixture
def make_order(clock: FakeClock) -> Callable[..., Order]:
    """
    Factory for active orders selling 10 USD for XBT once the price rises to
    0.10, created at a price of 0.08.
    """

    def _make_order(**kwargs: object) -> Order:
        now = clock()
        values = {
            "owner": "alice",
            "source_asset": "USD",
            "destination_asset": "XBT",
            "amount": 10.0,
            "max_slippage": 5.0,
            "trigger_price": 0.10,
            "trigger_condition": TriggerCondition.ABOVE,
            "reference_price": 0.08,
            "created_at": now,
            "updated_at": now,
            "expires_at": now + timedelta(days=30),
        }
        values.update(kwargs)
        return Order(**values)

    return _make_order
