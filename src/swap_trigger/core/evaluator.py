# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Pure trigger evaluation. Nothing in here performs I/O or mutates an order.

An order is *armed* while its trigger condition does not hold yet and *fired*
as soon as it does. For every price exactly one of both is true.
"""

from typing import NamedTuple, Self

from swap_trigger.models.order import Order, TriggerCondition


class TriggerDistance(NamedTuple):
    # "up" if the price has to rise to reach the threshold, "down" otherwise
    required_direction: str
    # trigger_price - price
    distance: float
    # abs(distance) relative to the price in percent
    distance_pct: float


class TriggerEvaluator:
    """Decides whether orders are armed, fired and eligible for execution."""

    @staticmethod
    def armed(order: Order, price: float) -> bool:
        """True if the trigger condition is not yet satisfied at ``price``."""
        if order.trigger_condition == TriggerCondition.ABOVE:
            return price < order.trigger_price
        if order.trigger_condition == TriggerCondition.BELOW:
            return price > order.trigger_price
        raise ValueError(f"Unknown trigger condition: {order.trigger_condition}")

    @staticmethod
    def fired(order: Order, price: float) -> bool:
        """True if the trigger condition is satisfied at ``price``."""
        if order.trigger_condition == TriggerCondition.ABOVE:
            return price >= order.trigger_price
        if order.trigger_condition == TriggerCondition.BELOW:
            return price <= order.trigger_price
        raise ValueError(f"Unknown trigger condition: {order.trigger_condition}")

    def is_eligible(self: Self, order: Order, price: float) -> bool:
        """
        Returns True if the order must be executed at ``price``.

        Firing has to be a change of the condition state relative to the
        creation of the order, so the order must have been armed at the price
        observed when it was accepted.
        """
        if not self.fired(order, price):
            return False
        if order.reference_price is None:
            return True
        return self.armed(order, order.reference_price)

    @staticmethod
    def distance(order: Order, price: float) -> TriggerDistance:
        """Distance of ``price`` to the trigger price of ``order``."""
        distance = order.trigger_price - price
        return TriggerDistance(
            required_direction=(
                "up" if order.trigger_condition == TriggerCondition.ABOVE else "down"
            ),
            distance=distance,
            distance_pct=abs(distance) / price * 100 if price else 0.0,
        )
