# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from logging import getLogger
from typing import Self

import requests

from swap_trigger.interfaces import INotificationChannel

LOG = getLogger(__name__)

#: Upper limit of a single Telegram message
MAX_MESSAGE_LENGTH = 4096


class TelegramNotificationChannelAdapter(INotificationChannel):
    """Sends scheduler notifications to a Telegram chat via the Bot API."""

    def __init__(self: Self, bot_token: str, chat_id: str, timeout: float = 10) -> None:
        self.__chat_id = chat_id
        self.__timeout = timeout
        self.__base_url = f"https://api.telegram.org/bot{bot_token}"

    def send(self: Self, message: str) -> bool:
        if len(message) > MAX_MESSAGE_LENGTH:
            message = f"{message[: MAX_MESSAGE_LENGTH - 3]}..."

        try:
            response = requests.post(
                f"{self.__base_url}/sendMessage",
                data={
                    "chat_id": self.__chat_id,
                    "text": message,
                    "parse_mode": "markdown",
                    "disable_web_page_preview": True,
                },
                timeout=self.__timeout,
            )
        except requests.exceptions.RequestException as exc:
            LOG.error("Telegram notification could not be delivered: %s", exc)
            return False

        if response.status_code != 200:  # noqa: PLR2004
            LOG.warning(
                "Telegram rejected the notification (%s): %s",
                response.status_code,
                response.text,
            )
            return False
        return True
