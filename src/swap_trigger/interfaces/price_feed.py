# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

from abc import ABC, abstractmethod


class IPriceFeed(ABC):
    """Interface for market price sources."""

    @abstractmethod
    async def current_price(self, base_currency: str, quote_currency: str) -> float:
        """
        Returns the last traded price of one unit of ``base_currency`` in
        ``quote_currency``.

        Raises an exception if no price is available.
        """
