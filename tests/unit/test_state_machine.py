# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#


"""Tests for the order state machine."""

import pytest

from swap_trigger.core.state_machine import OrderStateMachine
from swap_trigger.models.order import TERMINAL_STATUSES, OrderStatus


class TestOrderStateMachine:
    """Test cases for OrderStateMachine"""

    @pytest.fixture
    def state_machine(self) -> OrderStateMachine:
        return OrderStateMachine()

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (OrderStatus.ACTIVE, OrderStatus.CLAIMED),
            (OrderStatus.ACTIVE, OrderStatus.CANCELLED),
            (OrderStatus.ACTIVE, OrderStatus.EXPIRED),
            (OrderStatus.CLAIMED, OrderStatus.EXECUTED),
            (OrderStatus.CLAIMED, OrderStatus.ACTIVE),
            (OrderStatus.CLAIMED, OrderStatus.FAILED),
        ],
    )
    def test_valid_transitions(
        self,
        state_machine: OrderStateMachine,
        current: OrderStatus,
        target: OrderStatus,
    ) -> None:
        assert state_machine.can_transition(current, target)
        state_machine.validate(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (OrderStatus.ACTIVE, OrderStatus.EXECUTED),
            (OrderStatus.ACTIVE, OrderStatus.FAILED),
            (OrderStatus.CLAIMED, OrderStatus.CANCELLED),
            (OrderStatus.CLAIMED, OrderStatus.EXPIRED),
            (OrderStatus.EXECUTED, OrderStatus.ACTIVE),
            (OrderStatus.CANCELLED, OrderStatus.ACTIVE),
        ],
    )
    def test_invalid_transitions(
        self,
        state_machine: OrderStateMachine,
        current: OrderStatus,
        target: OrderStatus,
    ) -> None:
        assert not state_machine.can_transition(current, target)
        with pytest.raises(ValueError, match="Invalid state transition"):
            state_machine.validate(current, target)

    @pytest.mark.parametrize("status", list(OrderStatus))
    def test_terminal_states_have_no_exits(
        self,
        state_machine: OrderStateMachine,
        status: OrderStatus,
    ) -> None:
        assert state_machine.is_terminal(status) == (status in TERMINAL_STATUSES)
        if status in TERMINAL_STATUSES:
            assert not any(
                state_machine.can_transition(status, target) for target in OrderStatus
            )
