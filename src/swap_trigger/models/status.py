# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from datetime import datetime

from pydantic import BaseModel, Field


class TickReport(BaseModel):
    """Summary of a single monitor tick"""

    started_at: datetime
    price: float | None = None
    skipped: bool = False
    error: str | None = None
    orders_checked: int = 0
    expired: list[str] = Field(default_factory=list)
    recovered: list[str] = Field(default_factory=list)
    eligible: list[str] = Field(default_factory=list)
    executed: list[str] = Field(default_factory=list)
    retried: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)


class MonitorCounters(BaseModel):
    total_ticks: int = 0
    last_tick: datetime | None = None
    last_price: float | None = None
    executed: int = 0
    failed: int = 0
    expired: int = 0
    recovered: int = 0
    errors: int = 0
    faulted_ticks: int = 0  # ticks that were skipped or hit an error


class SchedulerStatus(BaseModel):
    """Status snapshot exposed by the admin control surface"""

    running: bool
    started_at: datetime | None = None
    last_tick: datetime | None = None
    next_tick: datetime | None = None
    last_price: float | None = None
    total_ticks: int = 0
    executed: int = 0
    failed: int = 0
    expired: int = 0
    recovered: int = 0
    errors: int = 0
    faulted_ticks: int = 0
    success_rate: float = 0.0
    uptime: float = 0.0  # seconds
    uptime_human: str = "0s"


class SimulationResult(BaseModel):
    order_id: str
    would_fire: bool
