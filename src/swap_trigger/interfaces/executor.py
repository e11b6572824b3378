# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from abc import ABC, abstractmethod

from swap_trigger.models.execution import ExecutionResult, TradeParams


class ISwapExecutor(ABC):
    """Interface for services that perform the actual swap."""

    @abstractmethod
    async def execute(self, params: TradeParams) -> ExecutionResult:
        """
        Attempt the trade described by ``params``.

        Failures should be reported via ``ExecutionResult(success=False)``;
        exceptions are treated the same way by the caller.
        """
