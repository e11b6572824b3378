# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger
from typing import Self
from uuid import uuid4

from swap_trigger.interfaces import ISwapExecutor
from swap_trigger.models.execution import ExecutionResult, TradeParams

LOG = getLogger(__name__)


class DryRunSwapExecutorAdapter(ISwapExecutor):
    """Pretends to execute swaps at the reference price without trading."""

    async def execute(self: Self, params: TradeParams) -> ExecutionResult:
        LOG.info(
            "Dry run, not swapping %s %s -> %s for order '%s'.",
            params.amount,
            params.source_asset,
            params.destination_asset,
            params.order_id,
        )
        return ExecutionResult(
            success=True,
            reference=f"dry-run-{uuid4().hex[:12]}",
            executed_amount=params.amount,
        )
