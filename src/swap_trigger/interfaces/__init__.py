# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from swap_trigger.interfaces.executor import ISwapExecutor
from swap_trigger.interfaces.notification import INotificationChannel
from swap_trigger.interfaces.price_feed import IPriceFeed
from swap_trigger.interfaces.store import IOrderStore

__all__ = [
    "INotificationChannel",
    "IOrderStore",
    "IPriceFeed",
    "ISwapExecutor",
]
