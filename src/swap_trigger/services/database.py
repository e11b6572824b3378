# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""Database connection handling based on SQLAlchemy."""

from logging import getLogger
from typing import Any, Self

from sqlalchemy import MetaData, Table, and_, create_engine, select, update
from sqlalchemy.engine import MappingResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from swap_trigger.models.configuration import DBConfigDTO

LOG = getLogger(__name__)


class DBConnect:
    """Connects to a SQLite or PostgreSQL database and executes statements."""

    def __init__(self: Self, config: DBConfigDTO) -> None:
        LOG.info("Connecting to the database...")
        if config.in_memory or config.sqlite_file == ":memory:":
            engine_url = "sqlite:///:memory:"
        elif config.sqlite_file:
            engine_url = f"sqlite:///{config.sqlite_file}"
        else:
            engine_url = (
                f"postgresql://{config.db_user}:{config.db_password}"
                f"@{config.db_host}:{config.db_port}/{config.db_name}"
            )

        self.engine = create_engine(engine_url)
        self.session = sessionmaker(bind=self.engine)()
        self.metadata = MetaData()

    def init_db(self: Self) -> None:
        """Create all tables registered in the metadata."""
        LOG.info("- Initializing tables...")
        self.metadata.create_all(self.engine)
        LOG.info("- Database initialized.")

    def add_row(self: Self, table: Table, **kwargs: Any) -> None:  # noqa: ANN401
        """Insert a row into a table"""
        try:
            self.session.execute(table.insert().values(**kwargs))
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def get_rows(  # noqa: PLR0913
        self: Self,
        table: Table,
        filters: dict | None = None,
        where: list[ColumnElement] | None = None,
        order_by: tuple[str, str] | None = None,
        limit: int | None = None,
    ) -> MappingResult:
        """
        Fetch rows from a table.

        ``filters`` are equality conditions, ``where`` takes arbitrary
        SQLAlchemy expressions, ``order_by`` is a tuple of column name and
        direction ("asc" or "desc").
        """
        query = select(table)
        if conditions := self.__conditions(table, filters, where):
            query = query.where(and_(*conditions))
        if order_by:
            column, direction = order_by
            query = query.order_by(
                table.c[column].desc() if direction == "desc" else table.c[column].asc(),
            )
        if limit:
            query = query.limit(limit)
        return self.session.execute(query).mappings()

    def update_row(
        self: Self,
        table: Table,
        filters: dict,
        updates: dict,
        where: list[ColumnElement] | None = None,
    ) -> int:
        """
        Update rows matching all ``filters`` and return the number of updated
        rows. The statement is atomic, so it can be used as compare-and-set.
        """
        try:
            result = self.session.execute(
                update(table)
                .where(and_(*self.__conditions(table, filters, where)))
                .values(**updates),
            )
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return result.rowcount

    def close(self: Self) -> None:
        """Close the session and dispose the engine"""
        self.session.close()
        self.engine.dispose()

    @staticmethod
    def __conditions(
        table: Table,
        filters: dict | None,
        where: list[ColumnElement] | None,
    ) -> list[ColumnElement]:
        conditions = [table.c[column] == value for column, value in (filters or {}).items()]
        return conditions + list(where or [])
