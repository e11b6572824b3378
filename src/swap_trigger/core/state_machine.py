# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Lifecycle rules of a conditional swap order.

::

    active  -> claimed | cancelled | expired
    claimed -> executed | active | failed
    executed, cancelled, failed, expired -> (terminal)

The 'claimed' state is the in-flight marker held while the swap executor is
called. It returns to 'active' when a retry remains or when the recovery sweep
resets a stale claim.
"""

from typing import Self

from swap_trigger.models.order import OrderStatus


class OrderStateMachine:
    """Validates status transitions of orders."""

    def __init__(self: Self) -> None:
        self._transitions = self._define_transitions()

    def _define_transitions(self: Self) -> dict[OrderStatus, list[OrderStatus]]:
        return {
            OrderStatus.ACTIVE: [
                OrderStatus.CLAIMED,
                OrderStatus.CANCELLED,
                OrderStatus.EXPIRED,
            ],
            OrderStatus.CLAIMED: [
                OrderStatus.EXECUTED,
                OrderStatus.ACTIVE,
                OrderStatus.FAILED,
            ],
            OrderStatus.EXECUTED: [],
            OrderStatus.CANCELLED: [],
            OrderStatus.FAILED: [],
            OrderStatus.EXPIRED: [],
        }

    def can_transition(
        self: Self,
        from_status: OrderStatus,
        to_status: OrderStatus,
    ) -> bool:
        return to_status in self._transitions.get(from_status, [])

    def validate(self: Self, from_status: OrderStatus, to_status: OrderStatus) -> None:
        """Raises a ValueError if the transition is not allowed."""
        if not self.can_transition(from_status, to_status):
            raise ValueError(
                f"Invalid state transition from {from_status} to {to_status}",
            )

    def is_terminal(self: Self, status: OrderStatus) -> bool:
        return not self._transitions.get(status)
