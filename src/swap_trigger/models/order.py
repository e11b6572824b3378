# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Order models of the swap-trigger scheduler.

An order describes a swap of ``amount`` units of ``source_asset`` into
``destination_asset`` which gets executed as soon as the market price crosses
``trigger_price`` in the direction given by ``trigger_condition``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Self
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator


class OrderStatus(StrEnum):
    ACTIVE = "active"
    CLAIMED = "claimed"  # in-flight marker, never a resting state
    EXECUTED = "executed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.EXECUTED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
        OrderStatus.EXPIRED,
    },
)


class TriggerCondition(StrEnum):
    ABOVE = "above"
    BELOW = "below"


def utcnow() -> datetime:
    """Returns the current time as timezone-aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes, e.g. read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class OrderRequestSchema(BaseModel):
    """Model for a creation request passed to the validation gateway"""

    owner: str = Field(..., min_length=1, description="Owning account")
    source_asset: str = Field(..., min_length=1, description="Asset to sell")
    destination_asset: str = Field(..., min_length=1, description="Asset to buy")
    amount: float = Field(..., gt=0, description="Amount of the source asset")
    trigger_price: float = Field(..., gt=0, description="Threshold price")
    trigger_condition: TriggerCondition
    max_slippage: float | None = Field(default=None, gt=0)
    max_retries: int | None = Field(default=None, ge=0)
    expires_at: datetime | None = None

    @field_validator("source_asset", "destination_asset")
    @classmethod
    def upper_asset(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("expires_at")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_assets(self: Self) -> Self:
        if self.source_asset == self.destination_asset:
            raise ValueError("Source and destination asset must differ")
        return self


class Order(BaseModel):
    """Domain model representing a conditional swap order"""

    id: str = Field(default_factory=lambda: uuid4().hex)
    owner: str

    # == Trade specification ===================================================
    source_asset: str
    destination_asset: str
    amount: float = Field(..., gt=0)
    max_slippage: float = Field(..., gt=0)

    # == Trigger specification =================================================
    trigger_price: float = Field(..., gt=0)
    trigger_condition: TriggerCondition
    # Market price observed when the order was accepted.
    reference_price: float | None = None

    # == Lifecycle =============================================================
    status: OrderStatus = OrderStatus.ACTIVE
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime | None = None
    claimed_at: datetime | None = None
    next_attempt_at: datetime | None = None

    # == Outcome ===============================================================
    executed_at: datetime | None = None
    executed_price: float | None = None
    executed_amount: float | None = None
    execution_reference: str | None = None
    failure_reason: str | None = None

    @field_validator(
        "created_at",
        "updated_at",
        "expires_at",
        "claimed_at",
        "next_attempt_at",
        "executed_at",
    )
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_retries(self: Self) -> Self:
        if self.retry_count > self.max_retries:
            raise ValueError(
                f"Retry count ({self.retry_count}) cannot exceed max retries"
                f" ({self.max_retries})",
            )
        return self

    @property
    def pair(self: Self) -> tuple[str, str]:
        return self.source_asset, self.destination_asset

    @property
    def is_terminal(self: Self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self: Self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class OrderStatisticsSchema(BaseModel):
    """Per-owner order counts by status and the accumulated source volume"""

    total: int = 0
    active: int = 0
    claimed: int = 0
    executed: int = 0
    cancelled: int = 0
    failed: int = 0
    expired: int = 0
    total_volume: float = 0.0
