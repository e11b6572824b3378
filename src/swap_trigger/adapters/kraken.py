# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
Kraken Spot implementations of the price feed and swap executor.

The python-kraken-sdk clients are synchronous, so every request is moved to a
worker thread to keep the monitor loop responsive.
"""

import asyncio
from logging import getLogger
from typing import Any, Self

from kraken.exceptions import KrakenException
from kraken.spot import Market, Trade, User

from swap_trigger.interfaces import IPriceFeed, ISwapExecutor
from swap_trigger.models.execution import ExecutionResult, TradeParams

LOG = getLogger(__name__)


class KrakenPriceFeedAdapter(IPriceFeed):
    """Reads the last trade price from the public Kraken ticker."""

    def __init__(self: Self) -> None:
        self.__market_service: Market = Market()

    async def current_price(self: Self, base_currency: str, quote_currency: str) -> float:
        pair = f"{base_currency}{quote_currency}".upper()
        ticker = await asyncio.to_thread(self.__market_service.get_ticker, pair=pair)
        if not ticker:
            raise ValueError(f"No ticker data received for {pair}")

        # {"XXBTZUSD": {"c": ["<price>", "<lot volume>"], ...}}
        price = float(ticker[next(iter(ticker))]["c"][0])
        LOG.debug("Kraken ticker %s: %s", pair, price)
        return price


class KrakenSwapExecutorAdapter(ISwapExecutor):
    """
    Executes swaps as immediate-or-cancel limit orders. The limit is derived
    from the reference price and the maximum slippage, so the order either
    fills within the tolerance or not at all.
    """

    def __init__(  # noqa: PLR0913
        self: Self,
        api_public_key: str,
        api_secret_key: str,
        base_currency: str,
        quote_currency: str,
        userref: int | None = None,
        max_order_info_tries: int = 5,
    ) -> None:
        self.__trade_service: Trade = Trade(key=api_public_key, secret=api_secret_key)
        self.__user_service: User = User(key=api_public_key, secret=api_secret_key)
        self.__base_currency = base_currency.upper()
        self.__quote_currency = quote_currency.upper()
        self.__userref = userref
        self.__max_order_info_tries = max_order_info_tries

    async def execute(self: Self, params: TradeParams) -> ExecutionResult:
        if {params.source_asset, params.destination_asset} != {
            self.__base_currency,
            self.__quote_currency,
        }:
            return ExecutionResult(
                success=False,
                error=f"Unsupported pair {params.source_asset}/{params.destination_asset}",
            )

        # Buying the base currency spends quote, so the volume is converted.
        if params.destination_asset == self.__base_currency:
            side = "buy"
            volume = params.amount / params.reference_price
            limit_price = params.reference_price * (1 + params.max_slippage / 100)
        else:
            side = "sell"
            volume = params.amount
            limit_price = params.reference_price * (1 - params.max_slippage / 100)

        try:
            response = await asyncio.to_thread(
                self.__trade_service.create_order,
                ordertype="limit",
                side=side,
                volume=volume,
                pair=f"{self.__base_currency}/{self.__quote_currency}",
                price=limit_price,
                timeinforce="IOC",
                userref=self.__userref,
                truncate=True,
            )
        except KrakenException as exc:
            LOG.warning("Kraken rejected order for '%s': %s", params.order_id, exc)
            return ExecutionResult(success=False, error=str(exc))

        txid = response["txid"][0]
        LOG.info("Placed %s order %s for '%s'", side, txid, params.order_id)

        if (order_info := await self.__get_order_info(txid)) is None:
            return ExecutionResult(
                success=False,
                reference=txid,
                error=f"Could not retrieve the state of order {txid}",
            )

        if (vol_exec := float(order_info.get("vol_exec", 0))) <= 0:
            return ExecutionResult(
                success=False,
                reference=txid,
                error="Order was not filled within the maximum slippage",
            )

        return ExecutionResult(
            success=True,
            reference=txid,
            executed_amount=(
                vol_exec if side == "buy" else float(order_info.get("cost", 0))
            ),
        )

    async def __get_order_info(self: Self, txid: str) -> dict[str, Any] | None:
        """
        Kraken does not always make placed orders available immediately, so
        this retries with a growing delay.
        """
        for tries in range(1, self.__max_order_info_tries + 1):
            orders = await asyncio.to_thread(self.__user_service.get_orders_info, txid=txid)
            if (order_info := orders.get(txid)) and order_info.get("status") in {
                "closed",
                "canceled",
                "expired",
            }:
                return order_info  # type: ignore[no-any-return]
            LOG.warning(
                "Order '%s' not settled yet. Retry %d/%d...",
                txid,
                tries,
                self.__max_order_info_tries,
            )
            await asyncio.sleep(tries)
        return None
