# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger
from typing import Self

from swap_trigger.core.event_bus import Event
from swap_trigger.interfaces import INotificationChannel
from swap_trigger.models.configuration import NotificationConfigDTO

LOG = getLogger(__name__)

#: Order events that are forwarded to the notification channels
ORDER_EVENTS = ("order_executed", "order_failed", "order_expired", "order_recovered")


class NotificationService:
    """Service for sending notifications through configured channels."""

    def __init__(self: Self, config: NotificationConfigDTO) -> None:
        self.__channels: list[INotificationChannel] = []
        self.__config = config
        self._setup_channels_from_config()

    def _setup_channels_from_config(self: Self) -> None:
        if self.__config.telegram.enabled:
            self.add_telegram_channel(
                bot_token=self.__config.telegram.token,  # type: ignore[arg-type]
                chat_id=self.__config.telegram.chat_id,  # type: ignore[arg-type]
            )

    @property
    def enabled(self: Self) -> bool:
        return bool(self.__channels)

    def add_channel(self: Self, channel: INotificationChannel) -> None:
        self.__channels.append(channel)

    def add_telegram_channel(self: Self, bot_token: str, chat_id: str) -> None:
        """Convenience method to add a Telegram notification channel."""
        from swap_trigger.adapters.notification import (  # noqa: PLC0415
            TelegramNotificationChannelAdapter,
        )

        self.add_channel(TelegramNotificationChannelAdapter(bot_token, chat_id))

    def notify(self: Self, message: str) -> bool:
        """Send a notification through all configured channels.

        Args:
            message: The message to send

        Returns:
            bool: True if the message was sent through at least one channel
        """
        if not self.__channels:
            LOG.debug("No notification channel configured, dropping: %s", message)
            return False

        LOG.info("Sending notification: %s", message)
        # Every channel is tried, one failing channel must not silence others.
        results = [channel.send(message) for channel in self.__channels]
        return any(results)

    def on_notification(self: Self, event: Event) -> None:
        """Handle a plain ``notification`` event."""
        self.notify(event.data["message"])

    def on_order_event(self: Self, event: Event) -> None:
        """Format a lifecycle event of an order and send it."""
        order = event.data["order"]
        if event.type == "order_executed":
            message = (
                f"✅ Order `{order.id}` executed\n"
                f"├ Swap: {order.amount} {order.source_asset} → {order.destination_asset}\n"
                f"├ Trigger: {order.trigger_condition} {order.trigger_price}\n"
                f"└ Price: {event.data['price']}"
            )
            if (result := event.data.get("result")) and result.reference:
                message += f"\nReference: {result.reference}"
        elif event.type == "order_failed":
            message = f"❌ Order `{order.id}` failed: {event.data.get('reason')}"
        elif event.type == "order_expired":
            message = f"⌛ Order `{order.id}` expired at {order.expires_at}"
        elif event.type == "order_recovered":
            message = f"⚠️ Order `{order.id}` was recovered from a stale claim"
        else:
            LOG.debug("Ignoring event '%s'", event.type)
            return
        self.notify(message)
