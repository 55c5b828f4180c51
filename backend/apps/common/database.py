"""Stored routine gateway over Django's database connections.

Routines are invoked by name with named parameters (``EXEC routine @name=%s``)
and every result set they return is read back as a list of row dicts. Callers
either ask for a raw shape through :class:`ExpectedReturn` or describe the
routine with a :class:`RoutineContract` and receive a :class:`RoutineResult`
keyed by result-set name.
"""
from __future__ import annotations

import atexit
import enum
import logging
import os
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from django.db import connections as default_connections
from django.db import transaction as db_transaction

from .logger import get_logger

logger = get_logger(__name__).bind(component="common", layer="database")

Row = Dict[str, Any]
ResultSet = List[Row]

_PARAMETER_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ROUTINE_PART = r"(?:\[[A-Za-z_][A-Za-z0-9_ ]*\]|[A-Za-z_][A-Za-z0-9_]*)"
_ROUTINE_NAME = re.compile(rf"^{_ROUTINE_PART}(?:\.{_ROUTINE_PART}){{0,2}}$")


class ExpectedReturn(enum.Enum):
    SINGLE = "single"
    MULTI = "multi"
    NONE = "none"


@dataclass(frozen=True)
class RoutineContract:
    """A stored routine and the ordered names of the result sets it returns."""

    name: str
    result_sets: Tuple[str, ...]

    def __post_init__(self):
        if not _ROUTINE_NAME.match(self.name or ""):
            raise ValueError(f"Invalid routine name: {self.name!r}")
        if not self.result_sets:
            raise ValueError("RoutineContract requires at least one result set name")
        if len(set(self.result_sets)) != len(self.result_sets):
            raise ValueError(
                f"Duplicate result set names for {self.name}: {self.result_sets}"
            )


class RoutineResult:
    """Named result sets returned by a routine call.

    A declared set that the routine did not return reads as ``None`` through
    :meth:`get` and as an empty list through :meth:`rows`.
    """

    def __init__(self, contract: RoutineContract, sets: Mapping[str, Optional[ResultSet]]):
        self.contract = contract
        self._sets = dict(sets)

    def _check(self, name: str) -> None:
        if name not in self.contract.result_sets:
            raise KeyError(
                f"{name!r} is not a result set of {self.contract.name} "
                f"(expected one of {self.contract.result_sets})"
            )

    def get(self, name: str) -> Optional[ResultSet]:
        self._check(name)
        return self._sets.get(name)

    def rows(self, name: str) -> ResultSet:
        return self.get(name) or []

    def first(self, name: str) -> Optional[Row]:
        rows = self.rows(name)
        return rows[0] if rows else None

    def __repr__(self) -> str:
        sizes = {
            name: (len(rows) if rows is not None else None)
            for name, rows in self._sets.items()
        }
        return f"RoutineResult({self.contract.name}, {sizes})"


def build_exec_statement(
    routine: str, parameters: Optional[Mapping[str, Any]]
) -> Tuple[str, List[Any]]:
    """Render ``EXEC routine @a=%s, @b=%s`` and the matching value list.

    Identifiers cannot be bound as query parameters, so routine and parameter
    names are checked against a strict pattern before they reach the SQL text.
    """
    if not _ROUTINE_NAME.match(routine or ""):
        raise ValueError(f"Invalid routine name: {routine!r}")
    assignments = []
    values: List[Any] = []
    for name, value in (parameters or {}).items():
        if not _PARAMETER_NAME.match(name):
            raise ValueError(f"Invalid routine parameter name: {name!r}")
        assignments.append(f"@{name}=%s")
        values.append(value)
    statement = f"EXEC {routine}"
    if assignments:
        statement = f"{statement} {', '.join(assignments)}"
    return statement, values


def read_result_sets(cursor) -> List[ResultSet]:
    """Drain every result set from ``cursor``, skipping row-count-only results."""
    sets: List[ResultSet] = []
    while True:
        description = cursor.description
        if description is not None:
            columns = [column[0] for column in description]
            sets.append([dict(zip(columns, row)) for row in cursor.fetchall()])
        if not cursor.nextset():
            break
    return sets


def shape_result(
    sets: Sequence[ResultSet],
    expected: ExpectedReturn,
    result_set_names: Optional[Sequence[str]] = None,
):
    if expected is ExpectedReturn.SINGLE:
        if sets and sets[0]:
            return sets[0][0]
        return None
    if expected is ExpectedReturn.MULTI:
        if result_set_names:
            return {
                name: (list(sets[index]) if index < len(sets) else None)
                for index, name in enumerate(result_set_names)
            }
        return [list(rows) for rows in sets]
    return None


def _terminate(status: int) -> None:
    """Flush log handlers and end the process.

    ``SystemExit`` raised in a worker thread only ends that thread, so the
    process is stopped with ``os._exit``.
    """
    logging.shutdown()
    os._exit(status)


class ConnectionPool:
    """Process-wide handle on one database alias.

    Django keeps one connection per worker thread and reuses it according to
    ``CONN_MAX_AGE``; this object owns the lifecycle around it. The first
    :meth:`open` establishes the connection and a failure there is fatal: it is
    logged and the whole process exits, whichever thread hit it. The WSGI
    entry point opens the default pool before serving any request.
    """

    def __init__(self, alias: str = "default", handler=None):
        self.alias = alias
        self._handler = handler if handler is not None else default_connections
        self._opened = False
        self.logger = logger.bind(alias=alias)

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> None:
        if self._opened:
            return
        try:
            self._handler[self.alias].ensure_connection()
        except Exception as exc:
            self.logger.exception("Failed to create database connection pool")
            _terminate(1)
            raise SystemExit(1) from exc
        self._opened = True
        self.logger.info("Database connection pool established")

    def connection(self):
        self.open()
        return self._handler[self.alias]

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """Yield a cursor on the current thread's connection and close it afterwards."""
        with self.connection().cursor() as cursor:
            yield cursor

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """Run the block atomically; the yielded connection can be passed to the gateway."""
        connection = self.connection()
        with db_transaction.atomic(using=self.alias):
            yield connection

    def ping(self) -> float:
        """Round-trip ``SELECT 1`` and return the latency in milliseconds."""
        started = time.time()
        with self.acquire() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        return round((time.time() - started) * 1000, 2)

    def close(self) -> None:
        if not self._opened:
            return
        self._handler[self.alias].close()
        self._opened = False
        self.logger.info("Database connection pool closed")

    def __enter__(self) -> "ConnectionPool":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RoutineGateway:
    def __init__(self, pool: ConnectionPool):
        self.pool = pool
        self.logger = logger.bind(gateway="RoutineGateway")

    def execute(
        self,
        routine: str,
        parameters: Optional[Mapping[str, Any]],
        expected: ExpectedReturn,
        *,
        transaction=None,
        result_sets: Optional[Sequence[str]] = None,
    ):
        """Execute ``routine`` and shape its output according to ``expected``.

        Args:
            routine: Schema-qualified routine name, e.g. ``[functional].[spProductList]``.
            parameters: Named inputs; ``None`` values are sent as SQL NULL.
            expected: Shape of the returned value.
            transaction: Connection from :meth:`ConnectionPool.transaction`,
                used instead of the pool when supplied.
            result_sets: Names assigned to the result sets by position
                (``ExpectedReturn.MULTI`` only).
        """
        statement, values = build_exec_statement(routine, parameters)
        self.logger.debug(
            "Executing stored routine",
            routine=routine,
            expected=expected.value,
            in_transaction=transaction is not None,
        )
        scope = transaction.cursor() if transaction is not None else self.pool.acquire()
        with scope as cursor:
            cursor.execute(statement, values)
            sets = read_result_sets(cursor) if expected is not ExpectedReturn.NONE else []
        self.logger.debug(
            "Stored routine completed", routine=routine, result_sets=len(sets)
        )
        return shape_result(sets, expected, result_sets)

    def call(
        self,
        contract: RoutineContract,
        parameters: Optional[Mapping[str, Any]],
        *,
        transaction=None,
    ) -> RoutineResult:
        named = self.execute(
            contract.name,
            parameters,
            ExpectedReturn.MULTI,
            transaction=transaction,
            result_sets=contract.result_sets,
        )
        return RoutineResult(contract, named)


_default_pool: Optional[ConnectionPool] = None


def get_default_pool() -> ConnectionPool:
    """Return the process-wide pool for the ``default`` alias, closed at interpreter exit."""
    global _default_pool
    if _default_pool is None:
        _default_pool = ConnectionPool()
        atexit.register(_default_pool.close)
    return _default_pool


__all__ = [
    "ConnectionPool",
    "ExpectedReturn",
    "RoutineContract",
    "RoutineGateway",
    "RoutineResult",
    "build_exec_statement",
    "get_default_pool",
    "read_result_sets",
    "shape_result",
]
