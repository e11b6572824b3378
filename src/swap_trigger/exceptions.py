# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Exceptions raised within the swap-trigger package."""

from typing import Any, Self


class SwapTriggerError(Exception):
    """Base exception of the swap-trigger package."""


class SchedulerStateError(SwapTriggerError):
    """The scheduler engine was used in a state that does not allow it."""


# == Creation and modification =================================================


class OrderValidationError(SwapTriggerError):
    """
    Raised when an order request violates the configured bounds. No order is
    persisted when this is raised.
    """

    def __init__(self: Self, message: str, **details: Any) -> None:  # noqa: ANN401
        super().__init__(message)
        self.details: dict[str, Any] = details


class TriggerAlreadySatisfiedError(OrderValidationError):
    """
    Raised on creation if the trigger condition already holds at the current
    price, i.e. the order would fire immediately.
    """

    def __init__(  # noqa: PLR0913
        self: Self,
        message: str,
        *,
        condition: str,
        trigger_price: float,
        current_price: float,
        required_direction: str,
        distance: float,
        distance_pct: float,
    ) -> None:
        super().__init__(
            message,
            condition=condition,
            trigger_price=trigger_price,
            current_price=current_price,
            required_direction=required_direction,
            distance=distance,
            distance_pct=distance_pct,
        )
        self.condition = condition
        self.trigger_price = trigger_price
        self.current_price = current_price
        self.required_direction = required_direction
        self.distance = distance
        self.distance_pct = distance_pct


class OrderLimitExceededError(OrderValidationError):
    """The owner already has the maximum number of active orders."""


class OrderNotFoundError(SwapTriggerError):
    """The requested order does not exist or belongs to another owner."""


class OrderNotModifiableError(SwapTriggerError):
    """
    The order is not in the 'active' state (claimed or terminal) and can not be
    cancelled or modified.
    """


# == Execution and scheduling ==================================================


class TransientExecutionError(SwapTriggerError):
    """A swap execution attempt failed but the order may be retried."""


class TerminalExecutionError(SwapTriggerError):
    """All retries of an order are exhausted."""


class SchedulingFault(SwapTriggerError):
    """The price feed could not deliver a usable price for a tick."""


class ConcurrencyConflict(SwapTriggerError):
    """Another process or tick changed the order before it could be claimed."""
