# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Retry strategies deciding when a failed order may be attempted again."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Self

from swap_trigger.models.configuration import SchedulerConfigDTO


class RetryStrategy(ABC):
    """Computes the delay before the next execution attempt."""

    @abstractmethod
    def delay(self: Self, retry_count: int) -> timedelta:
        """Delay after the ``retry_count``-th failed attempt (1-based)."""

    def next_attempt_at(self: Self, now: datetime, retry_count: int) -> datetime | None:
        """Returns None if the order may be retried on the next tick."""
        if (delay := self.delay(retry_count)) <= timedelta(0):
            return None
        return now + delay


class FixedDelayRetry(RetryStrategy):
    """Waits the same amount of time after every failure."""

    def __init__(self: Self, delay: float = 0.0) -> None:
        self.__delay = timedelta(seconds=delay)

    def delay(self: Self, retry_count: int) -> timedelta:  # noqa: ARG002
        return self.__delay


class ExponentialBackoffRetry(RetryStrategy):
    """Doubles the delay after every failure, capped at ``max_delay``."""

    def __init__(self: Self, base_delay: float, max_delay: float) -> None:
        if base_delay <= 0:
            raise ValueError("The base delay of exponential backoff must be positive")
        self.__base_delay = base_delay
        self.__max_delay = max_delay

    def delay(self: Self, retry_count: int) -> timedelta:
        seconds = self.__base_delay * 2 ** max(retry_count - 1, 0)
        return timedelta(seconds=min(seconds, self.__max_delay))


def retry_strategy_from_config(config: SchedulerConfigDTO) -> RetryStrategy:
    if config.retry_strategy == "exponential":
        return ExponentialBackoffRetry(
            base_delay=config.retry_delay or 1.0,
            max_delay=config.retry_max_delay,
        )
    return FixedDelayRetry(delay=config.retry_delay)
