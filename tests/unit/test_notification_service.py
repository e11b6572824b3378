# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#


"""Tests for the notification service."""

from typing import Callable
from unittest.mock import MagicMock, Mock, patch

import pytest

from swap_trigger.core.event_bus import Event
from swap_trigger.interfaces import INotificationChannel
from swap_trigger.models.configuration import NotificationConfigDTO, TelegramConfigDTO
from swap_trigger.models.execution import ExecutionResult
from swap_trigger.models.order import Order
from swap_trigger.services.notification_service import NotificationService

TOKEN = "123:abdsljhbfadshkjfgbakrjhfbadjfhbac"  # noqa: S105
CHAT_ID = "456"


@pytest.fixture
def channel() -> Mock:
    channel = Mock(spec=INotificationChannel)
    channel.send.return_value = True
    return channel


@pytest.fixture
def service(channel: Mock) -> NotificationService:
    service = NotificationService(NotificationConfigDTO())
    service.add_channel(channel)
    return service


class TestNotificationService:
    """Test cases for NotificationService"""

    def test_without_channels(self) -> None:
        service = NotificationService(NotificationConfigDTO())
        assert service.enabled is False
        assert service.notify("test") is False

    @patch("swap_trigger.adapters.notification.TelegramNotificationChannelAdapter")
    def test_telegram_from_config(self, mock_telegram_adapter: MagicMock) -> None:
        service = NotificationService(
            NotificationConfigDTO(
                telegram=TelegramConfigDTO(token=TOKEN, chat_id=CHAT_ID),
            ),
        )
        mock_telegram_adapter.assert_called_once_with(TOKEN, CHAT_ID)
        assert service.enabled is True

    def test_notify_tries_all_channels(self, service: NotificationService, channel: Mock) -> None:
        failing = Mock(spec=INotificationChannel)
        failing.send.return_value = False
        service.add_channel(failing)

        assert service.notify("hello") is True
        channel.send.assert_called_once_with("hello")
        failing.send.assert_called_once_with("hello")

    def test_notify_all_channels_failing(self) -> None:
        service = NotificationService(NotificationConfigDTO())
        failing = Mock(spec=INotificationChannel)
        failing.send.return_value = False
        service.add_channel(failing)

        assert service.notify("hello") is False

    def test_on_notification(self, service: NotificationService, channel: Mock) -> None:
        service.on_notification(Event(type="notification", data={"message": "started"}))
        channel.send.assert_called_once_with("started")

    def test_order_executed(
        self,
        service: NotificationService,
        channel: Mock,
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order()
        service.on_order_event(
            Event(
                type="order_executed",
                data={
                    "order": order,
                    "price": 0.11,
                    "result": ExecutionResult(success=True, reference="tx-1"),
                },
            ),
        )
        message = channel.send.call_args.args[0]
        assert order.id in message
        assert "executed" in message
        assert "0.11" in message
        assert "tx-1" in message

    @pytest.mark.parametrize(
        ("event_type", "expected"),
        [
            ("order_failed", "failed: rejected"),
            ("order_expired", "expired"),
            ("order_recovered", "stale claim"),
        ],
    )
    def test_order_events(
        self,
        service: NotificationService,
        channel: Mock,
        make_order: Callable[..., Order],
        event_type: str,
        expected: str,
    ) -> None:
        service.on_order_event(
            Event(type=event_type, data={"order": make_order(), "reason": "rejected"}),
        )
        assert expected in channel.send.call_args.args[0]

    def test_unknown_order_event(
        self,
        service: NotificationService,
        channel: Mock,
        make_order: Callable[..., Order],
    ) -> None:
        service.on_order_event(Event(type="order_created", data={"order": make_order()}))
        channel.send.assert_not_called()
