# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

import sys
from datetime import timedelta
from logging import DEBUG, INFO, WARNING, basicConfig, getLogger
from typing import Any, Callable

from click import BOOL, FLOAT, INT, STRING, Context, echo, pass_context
from cloup import (
    Choice,
    HelpFormatter,
    HelpTheme,
    Style,
    group,
    option,
    option_group,
)

SCHEDULER_CONFIG_KEYS = (
    "base_currency",
    "quote_currency",
    "poll_interval",
    "price_timeout",
    "execution_timeout",
    "claim_grace_period",
    "max_concurrent_executions",
    "default_max_retries",
    "retry_strategy",
    "retry_delay",
    "default_slippage",
    "max_active_orders_per_owner",
    "dry_run",
)
DB_CONFIG_KEYS = (
    "sqlite_file",
    "in_memory",
    "db_user",
    "db_password",
    "db_host",
    "db_port",
    "db_name",
)
FORMATTER_SETTINGS = HelpFormatter.settings(
    theme=HelpTheme(
        invoked_command=Style(fg="bright_yellow"),
        heading=Style(fg="bright_white", bold=True),
        constraint=Style(fg="magenta"),
        col1=Style(fg="bright_yellow"),
    ),
)


def print_version(ctx: Context, param: Any, value: Any) -> None:  # noqa: ANN401, ARG001
    """Prints the version of the package"""
    if not value or ctx.resilient_parsing:
        return
    from importlib.metadata import (  # noqa: PLC0415 # pylint: disable=import-outside-toplevel
        version,
    )

    echo(version("swap-trigger"))
    ctx.exit()


def ensure_larger_than_zero(
    ctx: Context,
    param: Any,  # noqa: ANN401
    value: Any,  # noqa: ANN401
) -> Any:  # noqa: ANN401
    """Ensure the value is larger than 0"""
    if value is not None and value <= 0:
        ctx.fail(f"Value for option '{param.name}' must be larger than 0")
    return value


def pair_options(func: Callable) -> Callable:
    return option_group(
        "Market",
        option(
            "--base-currency",
            required=True,
            type=STRING,
            help="The base currency, e.g. XBT.",
        ),
        option(
            "--quote-currency",
            required=True,
            type=STRING,
            help="The quote currency, e.g. USD. Trigger prices are quoted in it.",
        ),
    )(func)


def db_options(func: Callable) -> Callable:
    return option_group(
        "Database",
        option("--sqlite-file", type=STRING, help="SQLite file to use as database."),
        option(
            "--in-memory",
            is_flag=True,
            default=False,
            help="Use an in-memory database (for testing only).",
        ),
        option("--db-user", type=STRING, help="PostgreSQL DB user"),
        option("--db-password", type=STRING, help="PostgreSQL DB password"),
        option("--db-host", type=STRING, help="PostgreSQL DB host"),
        option("--db-port", type=STRING, help="PostgreSQL DB port"),
        option(
            "--db-name",
            type=STRING,
            default="swap_trigger",
            help="PostgreSQL DB name",
        ),
    )(func)


def _split_config(kwargs: dict) -> tuple[dict, dict]:
    """Split CLI keyword arguments into scheduler and database settings."""
    scheduler_config = {
        key: value
        for key in SCHEDULER_CONFIG_KEYS
        if (value := kwargs.get(key)) is not None
    }
    db_config = {key: kwargs[key] for key in DB_CONFIG_KEYS if key in kwargs}
    return scheduler_config, db_config


def _open_store(db_config: dict) -> tuple[Any, Any]:
    # pylint: disable=import-outside-toplevel
    from swap_trigger.infrastructure.database import OrderTable  # noqa: PLC0415
    from swap_trigger.models.configuration import DBConfigDTO  # noqa: PLC0415
    from swap_trigger.services.database import DBConnect  # noqa: PLC0415

    db = DBConnect(DBConfigDTO(**db_config))
    store = OrderTable(db=db)
    db.init_db()
    return db, store


@group(
    context_settings={
        "auto_envvar_prefix": "SWAP_TRIGGER",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
    no_args_is_help=True,
)
@option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
)
@option(
    "--api-public-key",
    required=False,
    help="The Kraken Spot API key",
    type=STRING,
)
@option(
    "--api-secret-key",
    required=False,
    type=STRING,
    help="The Kraken Spot API secret key",
)
@option(
    "-v",
    "--verbose",
    count=True,
    help="Increase the verbosity of output. Use -vv for even more verbosity.",
)
@pass_context
def cli(ctx: Context, **kwargs: dict) -> None:
    """
    Command-line interface entry point
    """
    ctx.ensure_object(dict)
    ctx.obj |= kwargs

    verbosity = kwargs.get("verbose", 0)

    basicConfig(
        format="%(asctime)s %(levelname)8s | %(message)s",
        datefmt="%Y/%m/%d %H:%M:%S",
        level=INFO if verbosity == 0 else DEBUG,
    )

    if verbosity > 1:  # type: ignore[operator]
        getLogger("requests").setLevel(DEBUG)
        getLogger("urllib3").setLevel(DEBUG)
        getLogger("kraken").setLevel(DEBUG)
        getLogger("sqlalchemy.engine").setLevel(INFO)
    else:
        getLogger("requests").setLevel(WARNING)
        getLogger("urllib3").setLevel(WARNING)
        getLogger("kraken").setLevel(WARNING)
        getLogger("sqlalchemy.engine").setLevel(WARNING)


@cli.command(
    context_settings={
        "auto_envvar_prefix": "SWAP_TRIGGER_RUN",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@pair_options
@option_group(
    "Scheduler",
    option(
        "--poll-interval",
        type=FLOAT,
        default=30.0,
        callback=ensure_larger_than_zero,
        help="Seconds between two price checks.",
    ),
    option(
        "--price-timeout",
        type=FLOAT,
        default=30.0,
        callback=ensure_larger_than_zero,
        help="Timeout in seconds for fetching the price.",
    ),
    option(
        "--execution-timeout",
        type=FLOAT,
        default=600.0,
        callback=ensure_larger_than_zero,
        help="Timeout in seconds for a single swap execution.",
    ),
    option(
        "--claim-grace-period",
        type=FLOAT,
        default=900.0,
        callback=ensure_larger_than_zero,
        help="Seconds after which a stale claim is reset. Must exceed the execution timeout.",
    ),
    option(
        "--max-concurrent-executions",
        type=INT,
        default=5,
        callback=ensure_larger_than_zero,
        help="The number of swaps executed concurrently within one tick.",
    ),
    option(
        "--default-max-retries",
        type=INT,
        default=3,
        help="Number of execution attempts of an order before it fails.",
    ),
    option(
        "--retry-strategy",
        type=Choice(choices=("fixed", "exponential"), case_sensitive=True),
        default="fixed",
        help="How long to wait before retrying a failed execution.",
    ),
    option(
        "--retry-delay",
        type=FLOAT,
        default=0.0,
        help="The (base) retry delay in seconds.",
    ),
    option(
        "--userref",
        type=INT,
        required=False,
        help="A reference number to identify the placed orders with.",
    ),
    option(
        "--dry-run",
        required=False,
        type=BOOL,
        is_flag=True,
        default=False,
        help="Enable dry-run mode which does not execute trades.",
    ),
)
@option_group(
    "Notifications",
    option("--telegram-token", required=False, type=STRING, help="The telegram token to use."),
    option("--telegram-chat-id", required=False, type=STRING, help="The telegram chat ID to use."),
)
@db_options
@pass_context
def run(ctx: Context, **kwargs: dict) -> None:
    """Run the scheduler until SIGINT or SIGTERM is received"""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    from pydantic import ValidationError  # noqa: PLC0415

    from swap_trigger.adapters.dry_run import DryRunSwapExecutorAdapter  # noqa: PLC0415
    from swap_trigger.adapters.kraken import (  # noqa: PLC0415
        KrakenPriceFeedAdapter,
        KrakenSwapExecutorAdapter,
    )
    from swap_trigger.core.engine import SchedulerEngine  # noqa: PLC0415
    from swap_trigger.models.configuration import (  # noqa: PLC0415
        NotificationConfigDTO,
        SchedulerConfigDTO,
        TelegramConfigDTO,
    )
    from swap_trigger.services.notification_service import (  # noqa: PLC0415
        NotificationService,
    )

    ctx.obj |= kwargs
    scheduler_config, db_config = _split_config(kwargs)
    try:
        config = SchedulerConfigDTO(**scheduler_config)
    except ValidationError as exc:
        ctx.fail(f"Invalid configuration: {exc}")

    if not config.dry_run and not (ctx.obj["api_public_key"] and ctx.obj["api_secret_key"]):
        ctx.fail("API keys are required unless --dry-run is set!")

    async def main() -> None:
        db, store = _open_store(db_config)
        executor = (
            DryRunSwapExecutorAdapter()
            if config.dry_run
            else KrakenSwapExecutorAdapter(
                api_public_key=ctx.obj["api_public_key"],
                api_secret_key=ctx.obj["api_secret_key"],
                base_currency=config.base_currency,
                quote_currency=config.quote_currency,
                userref=kwargs.get("userref"),
            )
        )
        engine = SchedulerEngine(
            config=config,
            store=store,
            price_feed=KrakenPriceFeedAdapter(),
            executor=executor,
            notification_service=NotificationService(
                NotificationConfigDTO(
                    telegram=TelegramConfigDTO(
                        token=kwargs.get("telegram_token"),
                        chat_id=kwargs.get("telegram_chat_id"),
                    ),
                ),
            ),
        )
        try:
            await engine.run()
        finally:
            db.close()

    asyncio.run(main())


@cli.command(
    context_settings={
        "auto_envvar_prefix": "SWAP_TRIGGER_CREATE",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@pair_options
@option("--owner", required=True, type=STRING, help="The owning account.")
@option("--source", required=True, type=STRING, help="The asset to sell.")
@option("--destination", required=True, type=STRING, help="The asset to buy.")
@option(
    "--amount",
    required=True,
    type=FLOAT,
    callback=ensure_larger_than_zero,
    help="The amount of the source asset to swap.",
)
@option(
    "--trigger-price",
    required=True,
    type=FLOAT,
    callback=ensure_larger_than_zero,
    help="The price of the base currency that triggers the swap.",
)
@option(
    "--condition",
    required=True,
    type=Choice(choices=("above", "below"), case_sensitive=True),
    help="Execute when the price rises above or falls below the trigger price.",
)
@option("--max-slippage", type=FLOAT, callback=ensure_larger_than_zero, help="Maximum slippage in percent.")
@option("--max-retries", type=INT, help="Number of execution attempts.")
@option(
    "--expires-in",
    type=FLOAT,
    callback=ensure_larger_than_zero,
    help="Lifetime of the order in hours (default: 30 days).",
)
@db_options
def create(**kwargs: dict) -> None:
    """Validate and place a new conditional swap order."""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    from swap_trigger.adapters.kraken import KrakenPriceFeedAdapter  # noqa: PLC0415
    from swap_trigger.exceptions import SwapTriggerError  # noqa: PLC0415
    from swap_trigger.models.configuration import SchedulerConfigDTO  # noqa: PLC0415
    from swap_trigger.models.order import OrderRequestSchema, utcnow  # noqa: PLC0415
    from swap_trigger.services.order_service import OrderService  # noqa: PLC0415

    scheduler_config, db_config = _split_config(kwargs)
    request = OrderRequestSchema(
        owner=kwargs["owner"],
        source_asset=kwargs["source"],
        destination_asset=kwargs["destination"],
        amount=kwargs["amount"],
        trigger_price=kwargs["trigger_price"],
        trigger_condition=kwargs["condition"],
        max_slippage=kwargs.get("max_slippage"),
        max_retries=kwargs.get("max_retries"),
        expires_at=(
            utcnow() + timedelta(hours=kwargs["expires_in"])  # type: ignore[arg-type]
            if kwargs.get("expires_in")
            else None
        ),
    )

    async def main() -> None:
        db, store = _open_store(db_config)
        try:
            service = OrderService(
                config=SchedulerConfigDTO(**scheduler_config),
                store=store,
                price_feed=KrakenPriceFeedAdapter(),
            )
            order = await service.create_order(request)
        finally:
            db.close()
        echo(f"Created order {order.id} (reference price: {order.reference_price})")

    try:
        asyncio.run(main())
    except SwapTriggerError as exc:
        echo(f"Order rejected: {exc}", err=True)
        sys.exit(1)


@cli.command(
    context_settings={
        "auto_envvar_prefix": "SWAP_TRIGGER_CANCEL",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@pair_options
@option("--owner", required=True, type=STRING, help="The owning account.")
@option("--order-id", required=True, type=STRING, help="The order to cancel.")
@db_options
def cancel(**kwargs: dict) -> None:
    """Cancel an active order."""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    from swap_trigger.adapters.kraken import KrakenPriceFeedAdapter  # noqa: PLC0415
    from swap_trigger.exceptions import SwapTriggerError  # noqa: PLC0415
    from swap_trigger.models.configuration import SchedulerConfigDTO  # noqa: PLC0415
    from swap_trigger.services.order_service import OrderService  # noqa: PLC0415

    scheduler_config, db_config = _split_config(kwargs)

    async def main() -> None:
        db, store = _open_store(db_config)
        try:
            service = OrderService(
                config=SchedulerConfigDTO(**scheduler_config),
                store=store,
                price_feed=KrakenPriceFeedAdapter(),
            )
            order = await service.cancel_order(kwargs["order_id"], kwargs["owner"])  # type: ignore[arg-type]
        finally:
            db.close()
        echo(f"Cancelled order {order.id}")

    try:
        asyncio.run(main())
    except SwapTriggerError as exc:
        echo(str(exc), err=True)
        sys.exit(1)


@cli.command(
    context_settings={
        "auto_envvar_prefix": "SWAP_TRIGGER_ORDERS",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@option("--owner", required=True, type=STRING, help="The owning account.")
@option(
    "--status",
    type=Choice(
        choices=("active", "claimed", "executed", "cancelled", "failed", "expired"),
        case_sensitive=True,
    ),
    help="Only list orders with this status.",
)
@option("--limit", type=INT, default=50, callback=ensure_larger_than_zero)
@db_options
def orders(**kwargs: dict) -> None:
    """List the orders of an owner, newest first."""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    from prettytable import PrettyTable  # noqa: PLC0415

    _, db_config = _split_config(kwargs)

    async def main() -> list:
        db, store = _open_store(db_config)
        try:
            return await store.list_by_owner(
                kwargs["owner"],  # type: ignore[arg-type]
                status=kwargs.get("status"),
                limit=kwargs["limit"],
            )
        finally:
            db.close()

    table = PrettyTable()
    table.field_names = [
        "ID",
        "Swap",
        "Trigger",
        "Status",
        "Retries",
        "Expires",
        "Executed price",
    ]
    for order in asyncio.run(main()):
        table.add_row(
            [
                order.id,
                f"{order.amount} {order.source_asset} -> {order.destination_asset}",
                f"{order.trigger_condition} {order.trigger_price}",
                order.status,
                f"{order.retry_count}/{order.max_retries}",
                order.expires_at.isoformat() if order.expires_at else "-",
                order.executed_price or "-",
            ],
        )
    echo(table.get_string())


@cli.command(
    context_settings={
        "auto_envvar_prefix": "SWAP_TRIGGER_STATS",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@option("--owner", required=True, type=STRING, help="The owning account.")
@db_options
def stats(**kwargs: dict) -> None:
    """Show order statistics of an owner."""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    _, db_config = _split_config(kwargs)

    async def main() -> Any:  # noqa: ANN401
        db, store = _open_store(db_config)
        try:
            return await store.statistics(kwargs["owner"])  # type: ignore[arg-type]
        finally:
            db.close()

    for key, value in asyncio.run(main()).model_dump().items():
        echo(f"{key:>14}: {value}")


@cli.command(
    context_settings={
        "auto_envvar_prefix": "SWAP_TRIGGER_SIMULATE",
        "help_option_names": ["-h", "--help"],
    },
    formatter_settings=FORMATTER_SETTINGS,
)
@pair_options
@option(
    "--price",
    required=True,
    type=FLOAT,
    callback=ensure_larger_than_zero,
    help="The price to evaluate the active orders against.",
)
@db_options
def simulate(**kwargs: dict) -> None:
    """Show which active orders would fire at a given price."""
    # pylint: disable=import-outside-toplevel
    import asyncio  # noqa: PLC0415

    from swap_trigger.adapters.dry_run import DryRunSwapExecutorAdapter  # noqa: PLC0415
    from swap_trigger.adapters.kraken import KrakenPriceFeedAdapter  # noqa: PLC0415
    from swap_trigger.core.engine import SchedulerEngine  # noqa: PLC0415
    from swap_trigger.models.configuration import SchedulerConfigDTO  # noqa: PLC0415

    scheduler_config, db_config = _split_config(kwargs)

    async def main() -> list:
        db, store = _open_store(db_config)
        try:
            engine = SchedulerEngine(
                config=SchedulerConfigDTO(**scheduler_config),
                store=store,
                price_feed=KrakenPriceFeedAdapter(),
                executor=DryRunSwapExecutorAdapter(),
            )
            return await engine.simulate(kwargs["price"])  # type: ignore[arg-type]
        finally:
            db.close()

    results = asyncio.run(main())
    for result in results:
        echo(f"{result.order_id}: {'fires' if result.would_fire else 'armed'}")
    echo(f"{sum(r.would_fire for r in results)} of {len(results)} order(s) would fire.")
