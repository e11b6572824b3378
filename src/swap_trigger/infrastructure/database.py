# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Table definitions and the SQL backed order store."""

from enum import Enum
from logging import getLogger
from typing import Any, Self

from sqlalchemy import Column, DateTime, Float, Integer, String, Table, Text, or_
from sqlalchemy import func, select

from swap_trigger.core.state_machine import OrderStateMachine
from swap_trigger.exceptions import OrderNotFoundError
from swap_trigger.interfaces.store import IOrderStore
from swap_trigger.models.order import (
    TERMINAL_STATUSES,
    Order,
    OrderStatisticsSchema,
    OrderStatus,
    utcnow,
)
from swap_trigger.services.database import DBConnect

LOG = getLogger(__name__)


class OrderTable(IOrderStore):
    """
    Stores conditional swap orders in a relational database.

    Status changes are guarded by the order state machine; the
    compare-and-set is a single ``UPDATE ... WHERE status = :expected``
    statement and relies on the row count reported by the database.
    """

    def __init__(self: Self, db: DBConnect) -> None:
        LOG.debug("Initializing the 'swap_order' table...")
        self.__db = db
        self.__state_machine = OrderStateMachine()
        self.__table = Table(
            "swap_order",
            self.__db.metadata,
            Column("id", String(32), primary_key=True),
            Column("owner", String, nullable=False, index=True),
            Column("source_asset", String, nullable=False),
            Column("destination_asset", String, nullable=False),
            Column("amount", Float, nullable=False),
            Column("max_slippage", Float, nullable=False),
            Column("trigger_price", Float, nullable=False),
            Column("trigger_condition", String, nullable=False),
            Column("reference_price", Float, nullable=True),
            Column("status", String, nullable=False, index=True),
            Column("retry_count", Integer, nullable=False, default=0),
            Column("max_retries", Integer, nullable=False, default=3),
            Column("created_at", DateTime(timezone=True), nullable=False),
            Column("updated_at", DateTime(timezone=True), nullable=False),
            Column("expires_at", DateTime(timezone=True), nullable=True),
            Column("claimed_at", DateTime(timezone=True), nullable=True),
            Column("next_attempt_at", DateTime(timezone=True), nullable=True),
            Column("executed_at", DateTime(timezone=True), nullable=True),
            Column("executed_price", Float, nullable=True),
            Column("executed_amount", Float, nullable=True),
            Column("execution_reference", String, nullable=True),
            Column("failure_reason", Text, nullable=True),
        )

    # == Implemented abstract methods from IOrderStore =========================

    async def create(self: Self, order: Order) -> Order:
        LOG.debug("Adding order '%s' to the database.", order.id)
        self.__db.add_row(self.__table, **self.__serialize(order.model_dump()))
        return order

    async def list_active(self: Self, exclude_expired_before: Any = None) -> list[Order]:  # noqa: ANN401
        where = []
        if exclude_expired_before is not None:
            where.append(
                or_(
                    self.__table.c.expires_at.is_(None),
                    self.__table.c.expires_at > exclude_expired_before,
                ),
            )
        return self.__to_orders(
            self.__db.get_rows(
                self.__table,
                filters={"status": OrderStatus.ACTIVE.value},
                where=where,
                order_by=("created_at", "asc"),
            ),
        )

    async def list_claimed(self: Self, claimed_before: Any) -> list[Order]:  # noqa: ANN401
        return self.__to_orders(
            self.__db.get_rows(
                self.__table,
                filters={"status": OrderStatus.CLAIMED.value},
                where=[self.__table.c.claimed_at < claimed_before],
            ),
        )

    async def list_by_owner(
        self: Self,
        owner: str,
        status: OrderStatus | None = None,
        limit: int = 50,
    ) -> list[Order]:
        filters = {"owner": owner}
        if status is not None:
            filters["status"] = OrderStatus(status).value
        return self.__to_orders(
            self.__db.get_rows(
                self.__table,
                filters=filters,
                order_by=("created_at", "desc"),
                limit=limit,
            ),
        )

    async def count_active(self: Self, owner: str) -> int:
        query = (
            select(func.count())
            .select_from(self.__table)
            .where(self.__table.c.owner == owner)
            .where(
                self.__table.c.status.notin_(
                    [status.value for status in TERMINAL_STATUSES],
                ),
            )
        )
        return self.__db.session.execute(query).scalar_one()

    async def get_by_id(self: Self, order_id: str, owner: str | None = None) -> Order | None:
        filters = {"id": order_id}
        if owner is not None:
            filters["owner"] = owner
        if row := self.__db.get_rows(self.__table, filters=filters).fetchone():
            return Order.model_validate(dict(row))
        return None

    async def conditional_update(
        self: Self,
        order_id: str,
        expected_status: OrderStatus,
        patch: dict[str, Any],
    ) -> bool:
        if "status" in patch:
            self.__state_machine.validate(
                OrderStatus(expected_status),
                OrderStatus(patch["status"]),
            )
        updated = self.__db.update_row(
            self.__table,
            filters={"id": order_id, "status": OrderStatus(expected_status).value},
            updates=self.__serialize({**patch, "updated_at": utcnow()}),
        )
        LOG.debug(
            "Conditional update of order '%s' (expected: %s): %s",
            order_id,
            expected_status,
            "applied" if updated else "rejected",
        )
        return updated == 1

    async def update(self: Self, order_id: str, patch: dict[str, Any]) -> Order:
        if "status" in patch:
            raise ValueError("Status changes require a conditional update!")
        if await self.get_by_id(order_id) is None:
            raise OrderNotFoundError(f"Order '{order_id}' not found!")

        self.__db.update_row(
            self.__table,
            filters={"id": order_id},
            updates=self.__serialize({**patch, "updated_at": utcnow()}),
        )
        return await self.get_by_id(order_id)  # type: ignore[return-value]

    async def statistics(self: Self, owner: str) -> OrderStatisticsSchema:
        query = (
            select(
                self.__table.c.status,
                func.count().label("count"),
                func.sum(self.__table.c.amount).label("volume"),
            )
            .where(self.__table.c.owner == owner)
            .group_by(self.__table.c.status)
        )
        stats = OrderStatisticsSchema()
        for row in self.__db.session.execute(query).mappings():
            setattr(stats, row["status"], row["count"])
            stats.total += row["count"]
            stats.total_volume += row["volume"] or 0.0
        return stats

    # ==========================================================================

    @staticmethod
    def __serialize(values: dict[str, Any]) -> dict[str, Any]:
        return {
            key: value.value if isinstance(value, Enum) else value
            for key, value in values.items()
        }

    @staticmethod
    def __to_orders(rows: Any) -> list[Order]:  # noqa: ANN401
        return [Order.model_validate(dict(row)) for row in rows]
