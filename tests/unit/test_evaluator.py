# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#


"""Tests for the pure trigger evaluation."""

from typing import Callable

import pytest

from swap_trigger.core.evaluator import TriggerEvaluator
from swap_trigger.models.order import Order, TriggerCondition


@pytest.fixture
def evaluator() -> TriggerEvaluator:
    return TriggerEvaluator()


@pytest.mark.parametrize("price", [0.01, 0.0999, 0.10, 0.1001, 5.0])
@pytest.mark.parametrize("condition", [TriggerCondition.ABOVE, TriggerCondition.BELOW])
def test_armed_and_fired_are_exclusive(
    evaluator: TriggerEvaluator,
    make_order: Callable[..., Order],
    price: float,
    condition: TriggerCondition,
) -> None:
    """For every price exactly one of armed and fired holds"""
    order = make_order(trigger_condition=condition, reference_price=None)
    assert evaluator.armed(order, price) != evaluator.fired(order, price)


def test_above_fires_at_threshold(
    evaluator: TriggerEvaluator,
    make_order: Callable[..., Order],
) -> None:
    order = make_order(trigger_condition=TriggerCondition.ABOVE)
    assert not evaluator.fired(order, 0.09)
    assert evaluator.fired(order, 0.10)
    assert evaluator.fired(order, 0.11)


def test_below_fires_at_threshold(
    evaluator: TriggerEvaluator,
    make_order: Callable[..., Order],
) -> None:
    order = make_order(trigger_condition=TriggerCondition.BELOW, reference_price=0.12)
    assert not evaluator.fired(order, 0.11)
    assert evaluator.fired(order, 0.10)
    assert evaluator.fired(order, 0.05)


def test_eligible_requires_armed_reference(
    evaluator: TriggerEvaluator,
    make_order: Callable[..., Order],
) -> None:
    """An order accepted while already fired never becomes eligible"""
    assert evaluator.is_eligible(make_order(reference_price=0.08), 0.11)
    assert not evaluator.is_eligible(make_order(reference_price=0.08), 0.09)
    assert not evaluator.is_eligible(make_order(reference_price=0.12), 0.11)


def test_eligible_without_reference(
    evaluator: TriggerEvaluator,
    make_order: Callable[..., Order],
) -> None:
    assert evaluator.is_eligible(make_order(reference_price=None), 0.10)


def test_distance(evaluator: TriggerEvaluator, make_order: Callable[..., Order]) -> None:
    distance = evaluator.distance(make_order(), 0.12)
    assert distance.required_direction == "up"
    assert distance.distance == pytest.approx(-0.02)
    assert distance.distance_pct == pytest.approx(16.6667, rel=1e-4)

    distance = evaluator.distance(
        make_order(trigger_condition=TriggerCondition.BELOW),
        0.08,
    )
    assert distance.required_direction == "down"
    assert distance.distance == pytest.approx(0.02)
