# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from enum import StrEnum

from pydantic import BaseModel, Field


class TradeParams(BaseModel):
    """Parameters handed over to a swap executor"""

    order_id: str
    owner: str
    source_asset: str  # e.g. "USD"
    destination_asset: str  # e.g. "XBT"
    amount: float = Field(..., gt=0)  # in units of source_asset
    max_slippage: float = Field(..., gt=0)  # percent
    # The price sample that caused the order to fire
    reference_price: float = Field(..., gt=0)


class ExecutionResult(BaseModel):
    """Result reported by a swap executor"""

    success: bool
    reference: str | None = None  # e.g. transaction id
    executed_amount: float | None = None
    error: str | None = None


class ExecutionOutcome(StrEnum):
    """What the coordinator did with an order"""

    EXECUTED = "executed"
    RETRY = "retry"
    FAILED = "failed"
    CONFLICT = "conflict"  # claim lost, nothing happened
