# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Interface of the durable order collection.

Implementations must provide an atomic compare-and-set via
``conditional_update``. It is the only thing that guarantees that an order is
executed at most once, even with overlapping ticks or multiple processes.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from swap_trigger.models.order import Order, OrderStatisticsSchema, OrderStatus


class IOrderStore(ABC):
    """Interface for order persistence."""

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """Persist a new order and return it."""

    @abstractmethod
    async def list_active(
        self,
        exclude_expired_before: datetime | None = None,
    ) -> list[Order]:
        """
        List all orders with status 'active', oldest first. If
        ``exclude_expired_before`` is set, orders with an ``expires_at`` at or
        before that time are left out.
        """

    @abstractmethod
    async def list_claimed(self, claimed_before: datetime) -> list[Order]:
        """List orders that are claimed since before ``claimed_before``."""

    @abstractmethod
    async def list_by_owner(
        self,
        owner: str,
        status: OrderStatus | None = None,
        limit: int = 50,
    ) -> list[Order]:
        """List the orders of an owner, newest first."""

    @abstractmethod
    async def count_active(self, owner: str) -> int:
        """Count the non-terminal orders of an owner."""

    @abstractmethod
    async def get_by_id(self, order_id: str, owner: str | None = None) -> Order | None:
        """Return the order or None, optionally restricted to an owner."""

    @abstractmethod
    async def conditional_update(
        self,
        order_id: str,
        expected_status: OrderStatus,
        patch: dict[str, Any],
    ) -> bool:
        """
        Apply ``patch`` only if the stored status equals ``expected_status``.

        Returns True if the update was applied.
        """

    @abstractmethod
    async def update(self, order_id: str, patch: dict[str, Any]) -> Order:
        """
        Administrative write of fields that do not take part in scheduling,
        e.g. corrections of the slippage tolerance. Status changes are
        rejected; they must go through :meth:`conditional_update`.
        """

    @abstractmethod
    async def statistics(self, owner: str) -> OrderStatisticsSchema:
        """Count orders per status and sum up the amount of an owner."""
