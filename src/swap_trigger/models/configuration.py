# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Configuration models of the scheduler. The values are passed via CLI or
environment variables and can partially be changed during runtime through the
admin control surface.
"""

import re
from datetime import timedelta
from typing import Literal, Self

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator


class SchedulerConfigDTO(BaseModel):
    """
    Data transfer object for the scheduler configuration.

    All durations accept seconds as numbers or ``timedelta`` instances.
    """

    # ==========================================================================
    # Market
    base_currency: str = Field(..., min_length=1)  # e.g. "XBT"
    quote_currency: str = Field(..., min_length=1)  # e.g. "USD"

    # ==========================================================================
    # Monitor
    poll_interval: float = Field(default=30.0, gt=0)
    price_timeout: float = Field(default=30.0, gt=0)
    execution_timeout: float = Field(default=600.0, gt=0)
    claim_grace_period: float = Field(default=900.0, gt=0)
    max_concurrent_executions: int = Field(default=5, ge=1)
    dry_run: bool = False

    # ==========================================================================
    # Retries
    default_max_retries: int = Field(default=3, ge=0)
    min_max_retries: int = Field(default=0, ge=0)
    max_max_retries: int = Field(default=10, ge=0)
    retry_strategy: Literal["fixed", "exponential"] = "fixed"
    retry_delay: float = Field(default=0.0, ge=0)
    retry_max_delay: float = Field(default=3600.0, ge=0)

    # ==========================================================================
    # Order bounds
    default_slippage: float = Field(default=5.0, gt=0)
    min_slippage: float = Field(default=0.1, gt=0)
    max_slippage: float = Field(default=50.0, gt=0)
    min_trigger_price: float = Field(default=0.001, gt=0)
    max_trigger_price: float = Field(default=1_000_000.0, gt=0)
    min_amount: float = Field(default=0.0, ge=0)
    max_amount: float | None = Field(default=None, gt=0)
    default_order_lifetime: timedelta = timedelta(days=30)
    max_order_lifetime: timedelta = timedelta(days=365)
    max_active_orders_per_owner: int = Field(default=10, ge=1)

    @field_validator("base_currency", "quote_currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def validate_bounds(self: Self) -> Self:
        """Ensure that every default lies within its bounds."""
        if self.base_currency == self.quote_currency:
            raise ValueError("Base and quote currency must differ")
        if not self.min_slippage <= self.default_slippage <= self.max_slippage:
            raise ValueError(
                "Slippage bounds must satisfy min <= default <= max",
            )
        if not self.min_max_retries <= self.default_max_retries <= self.max_max_retries:
            raise ValueError("Retry bounds must satisfy min <= default <= max")
        if self.min_trigger_price > self.max_trigger_price:
            raise ValueError("Minimum trigger price exceeds the maximum")
        if self.max_amount is not None and self.min_amount > self.max_amount:
            raise ValueError("Minimum amount exceeds the maximum")
        if not timedelta(0) < self.default_order_lifetime <= self.max_order_lifetime:
            raise ValueError(
                "Default order lifetime must be positive and within the maximum",
            )
        # A claim must never be reset while its execution can still resolve.
        if self.claim_grace_period <= self.execution_timeout:
            raise ValueError(
                "The claim grace period must exceed the execution timeout",
            )
        return self

    @computed_field
    def symbol(self: Self) -> str:
        return f"{self.base_currency}/{self.quote_currency}"


class DBConfigDTO(BaseModel):
    sqlite_file: str | None = None
    in_memory: bool = False
    db_user: str | None = None
    db_password: str | None = None
    db_host: str | None = None
    db_port: str | None = None
    db_name: str = "swap_trigger"

    @model_validator(mode="after")
    def validate_backend(self: Self) -> Self:
        if not (
            self.in_memory
            or self.sqlite_file
            or all((self.db_user, self.db_password, self.db_host, self.db_port))
        ):
            raise ValueError(
                "Either in-memory, a SQLite file or a full PostgreSQL"
                " configuration is required",
            )
        return self


class TelegramConfigDTO(BaseModel):
    """Pydantic model for Telegram notification configuration."""

    token: str | None = None
    chat_id: str | None = None

    @field_validator("token")
    @classmethod
    def validate_token(cls, value: str | None) -> str | None:
        if value and not re.match(r"^\d+:[\w-]{20,}$", value):
            raise ValueError("Invalid Telegram bot token format")
        return value

    @computed_field
    def enabled(self) -> bool:
        """Return True if both token and chat_id are truthy values."""
        return bool(self.token and self.chat_id)


class NotificationConfigDTO(BaseModel):
    """Pydantic model for notification service configuration."""

    telegram: TelegramConfigDTO = Field(default_factory=TelegramConfigDTO)
