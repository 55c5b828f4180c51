import os
import subprocess
import sys
import textwrap
import unittest
from decimal import Decimal
from pathlib import Path
from unittest import mock

from django.db import connection, connections
from django.test import TransactionTestCase

from apps.common.database import (
    ConnectionPool,
    ExpectedReturn,
    RoutineContract,
    RoutineGateway,
    RoutineResult,
    build_exec_statement,
    shape_result,
)

BACKEND_DIR = Path(__file__).resolve().parents[3]


class FakeCursor:
    """DB-API cursor stand-in serving canned result sets.

    Each entry of ``result_sets`` is ``(columns, rows)``; ``columns=None``
    mimics a row-count-only result with no description.
    """

    def __init__(self, result_sets=None, execute_error=None):
        self._sets = list(result_sets or [])
        self._index = 0
        self.execute_error = execute_error
        self.executed = []
        self.closed = False

    @property
    def description(self):
        if self._index >= len(self._sets):
            return None
        columns, _ = self._sets[self._index]
        if columns is None:
            return None
        return [(name, None, None, None, None, None, None) for name in columns]

    def execute(self, sql, params=None):
        if self.execute_error is not None:
            raise self.execute_error
        self.executed.append((sql, list(params or [])))

    def fetchall(self):
        _, rows = self._sets[self._index]
        return [tuple(row) for row in rows]

    def fetchone(self):
        rows = self.fetchall()
        return rows[0] if rows else None

    def nextset(self):
        self._index += 1
        return True if self._index < len(self._sets) else None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True


class FakeConnection:
    def __init__(self, result_sets=None, connect_error=None, execute_error=None):
        self.result_sets = result_sets or []
        self.connect_error = connect_error
        self.execute_error = execute_error
        self.connect_calls = 0
        self.closed = False
        self.cursors = []

    def ensure_connection(self):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    def cursor(self):
        cursor = FakeCursor(self.result_sets, execute_error=self.execute_error)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.closed = True


def make_pool(connection, alias="default"):
    return ConnectionPool(alias=alias, handler={alias: connection})


LIST_SETS = [
    (["idProduct", "name"], [(1, "Red Velvet"), (2, "Carrot Cake")]),
    (["total"], [(14,)]),
]


class BuildExecStatementTests(unittest.TestCase):
    def test_renders_named_parameters_in_order(self):
        statement, values = build_exec_statement(
            "[functional].[spProductList]",
            {"idAccount": 1, "searchTerm": None, "pageSize": 12},
        )
        self.assertEqual(
            statement,
            "EXEC [functional].[spProductList] @idAccount=%s, @searchTerm=%s, @pageSize=%s",
        )
        self.assertEqual(values, [1, None, 12])

    def test_routine_without_parameters(self):
        statement, values = build_exec_statement("dbo.spPing", {})
        self.assertEqual(statement, "EXEC dbo.spPing")
        self.assertEqual(values, [])

    def test_rejects_unsafe_routine_name(self):
        with self.assertRaises(ValueError):
            build_exec_statement("spProductList; DROP TABLE product", {})

    def test_rejects_unsafe_parameter_name(self):
        with self.assertRaises(ValueError):
            build_exec_statement("[functional].[spProductList]", {"id=1 --": 1})


class ShapeResultTests(unittest.TestCase):
    def test_single_returns_first_row_or_none(self):
        self.assertEqual(shape_result([[{"a": 1}, {"a": 2}]], ExpectedReturn.SINGLE), {"a": 1})
        self.assertIsNone(shape_result([[]], ExpectedReturn.SINGLE))
        self.assertIsNone(shape_result([], ExpectedReturn.SINGLE))

    def test_multi_named_assigns_by_position_and_marks_missing(self):
        shaped = shape_result([[{"a": 1}]], ExpectedReturn.MULTI, ["first", "second"])
        self.assertEqual(shaped, {"first": [{"a": 1}], "second": None})

    def test_none_returns_nothing(self):
        self.assertIsNone(shape_result([[{"a": 1}]], ExpectedReturn.NONE))


class RoutineContractTests(unittest.TestCase):
    def test_requires_result_set_names(self):
        with self.assertRaises(ValueError):
            RoutineContract(name="[functional].[spProductGet]", result_sets=())

    def test_rejects_duplicate_names(self):
        with self.assertRaises(ValueError):
            RoutineContract(name="dbo.spThing", result_sets=("rows", "rows"))

    def test_result_rejects_undeclared_name(self):
        contract = RoutineContract(name="dbo.spThing", result_sets=("rows",))
        result = RoutineResult(contract, {"rows": [{"id": 1}]})
        self.assertEqual(result.first("rows"), {"id": 1})
        with self.assertRaises(KeyError):
            result.rows("other")


class ConnectionPoolTests(unittest.TestCase):
    def test_pool_is_lazy_until_first_acquire(self):
        connection = FakeConnection()
        pool = make_pool(connection)
        self.assertFalse(pool.is_open)
        self.assertEqual(connection.connect_calls, 0)
        with pool.acquire():
            pass
        with pool.acquire():
            pass
        self.assertTrue(pool.is_open)
        self.assertEqual(connection.connect_calls, 1)

    def test_open_failure_terminates_process(self):
        pool = make_pool(FakeConnection(connect_error=RuntimeError("login failed")))
        with mock.patch("apps.common.database._terminate") as terminate:
            with self.assertLogs("apps.common.database", level="ERROR") as logs:
                with self.assertRaises(SystemExit):
                    pool.open()
        terminate.assert_called_once_with(1)
        self.assertIn("Failed to create database connection pool", logs.output[0])
        self.assertFalse(pool.is_open)

    def test_open_failure_in_worker_thread_exits_whole_process(self):
        script = textwrap.dedent(
            """
            import sys
            import threading
            import time

            from apps.common.database import ConnectionPool

            class Unreachable:
                def ensure_connection(self):
                    raise RuntimeError("login failed")

            pool = ConnectionPool(handler={"default": Unreachable()})
            worker = threading.Thread(target=pool.open)
            worker.start()
            worker.join()
            time.sleep(0.5)
            print("still serving")
            sys.exit(0)
            """
        )
        env = {**os.environ, "PYTHONPATH": str(BACKEND_DIR)}
        completed = subprocess.run(
            [sys.executable, "-c", script],
            cwd=str(BACKEND_DIR),
            env=env,
            capture_output=True,
            text=True,
            timeout=60,
        )
        self.assertEqual(completed.returncode, 1, completed.stderr)
        self.assertNotIn("still serving", completed.stdout)
        self.assertIn("Failed to create database connection pool", completed.stderr)

    def test_close_releases_connection(self):
        connection = FakeConnection()
        with make_pool(connection) as pool:
            self.assertTrue(pool.is_open)
        self.assertTrue(connection.closed)
        self.assertFalse(pool.is_open)

    def test_close_without_open_is_noop(self):
        connection = FakeConnection()
        make_pool(connection).close()
        self.assertFalse(connection.closed)

    def test_ping_reports_latency(self):
        connection = FakeConnection(result_sets=[(["one"], [(1,)])])
        latency = make_pool(connection).ping()
        self.assertGreaterEqual(latency, 0)
        self.assertEqual(connection.cursors[0].executed[0][0], "SELECT 1")


class RoutineGatewayTests(unittest.TestCase):
    def test_single_returns_first_row(self):
        connection = FakeConnection(result_sets=[(["idProduct", "basePrice"], [(7, Decimal("12.50"))])])
        gateway = RoutineGateway(make_pool(connection))
        row = gateway.execute("dbo.spOne", {"id": 7}, ExpectedReturn.SINGLE)
        self.assertEqual(row, {"idProduct": 7, "basePrice": Decimal("12.50")})
        self.assertEqual(connection.cursors[0].executed, [("EXEC dbo.spOne @id=%s", [7])])
        self.assertTrue(connection.cursors[0].closed)

    def test_multi_returns_anonymous_sets_in_order(self):
        gateway = RoutineGateway(make_pool(FakeConnection(result_sets=LIST_SETS)))
        sets = gateway.execute("[functional].[spProductList]", {}, ExpectedReturn.MULTI)
        self.assertEqual(len(sets), 2)
        self.assertEqual(sets[0][1], {"idProduct": 2, "name": "Carrot Cake"})
        self.assertEqual(sets[1], [{"total": 14}])

    def test_multi_named_sets_skip_rowcount_results(self):
        result_sets = [(None, [])] + LIST_SETS
        gateway = RoutineGateway(make_pool(FakeConnection(result_sets=result_sets)))
        named = gateway.execute(
            "[functional].[spProductList]",
            {},
            ExpectedReturn.MULTI,
            result_sets=["products", "total", "extra"],
        )
        self.assertEqual([r["idProduct"] for r in named["products"]], [1, 2])
        self.assertEqual(named["total"], [{"total": 14}])
        self.assertIsNone(named["extra"])

    def test_none_expectation_returns_none(self):
        gateway = RoutineGateway(make_pool(FakeConnection(result_sets=LIST_SETS)))
        self.assertIsNone(gateway.execute("dbo.spTouch", {"id": 1}, ExpectedReturn.NONE))

    def test_transaction_handle_replaces_pool(self):
        pooled = FakeConnection()
        pool = make_pool(pooled)
        tx_connection = FakeConnection(result_sets=[(["total"], [(3,)])])
        gateway = RoutineGateway(pool)
        row = gateway.execute(
            "dbo.spCount", {}, ExpectedReturn.SINGLE, transaction=tx_connection
        )
        self.assertEqual(row, {"total": 3})
        self.assertFalse(pool.is_open)
        self.assertEqual(pooled.cursors, [])

    def test_query_error_propagates(self):
        connection = FakeConnection(execute_error=RuntimeError("deadlock"))
        gateway = RoutineGateway(make_pool(connection))
        with self.assertRaises(RuntimeError):
            gateway.execute("dbo.spOne", {}, ExpectedReturn.SINGLE)

    def test_call_maps_contract_names(self):
        contract = RoutineContract(
            name="[functional].[spProductGet]",
            result_sets=("productDetails", "images", "flavors", "sizes"),
        )
        connection = FakeConnection(
            result_sets=[
                (["idProduct", "name"], [(5, "Lemon Tart")]),
                (["idProductImage", "imageUrl", "isPrimary"], [(9, "a.jpg", 1)]),
            ]
        )
        result = RoutineGateway(make_pool(connection)).call(
            contract, {"idAccount": 1, "idProduct": 5}
        )
        self.assertEqual(result.first("productDetails")["name"], "Lemon Tart")
        self.assertEqual(len(result.rows("images")), 1)
        self.assertIsNone(result.get("flavors"))
        self.assertEqual(result.rows("sizes"), [])


class PoolTransactionTests(TransactionTestCase):
    """``ConnectionPool.transaction`` against the test database."""

    databases = {"default"}

    def setUp(self):
        with connection.cursor() as cursor:
            cursor.execute("CREATE TABLE pool_tx_rows (value INTEGER)")
        self.addCleanup(self._drop_table)
        self.pool = ConnectionPool(alias="default", handler=connections)
        self.gateway = RoutineGateway(self.pool)

    def _drop_table(self):
        with connection.cursor() as cursor:
            cursor.execute("DROP TABLE pool_tx_rows")

    def _count(self):
        with connection.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM pool_tx_rows")
            return cursor.fetchone()[0]

    def _insert(self, handle, value):
        # SQLite has no EXEC; the gateway still runs the statement on the handle's cursor.
        statement = ("INSERT INTO pool_tx_rows (value) VALUES (%s)", [value])
        with mock.patch("apps.common.database.build_exec_statement", return_value=statement):
            self.gateway.execute(
                "dbo.spInsertRow", {"value": value}, ExpectedReturn.NONE, transaction=handle
            )

    def test_transaction_commits_through_gateway(self):
        with mock.patch.object(self.pool, "acquire", side_effect=AssertionError("pool cursor used")):
            with self.pool.transaction() as handle:
                self.assertIs(handle, connections["default"])
                self.assertTrue(handle.in_atomic_block)
                self._insert(handle, 1)
                self._insert(handle, 2)
        self.assertFalse(connections["default"].in_atomic_block)
        self.assertEqual(self._count(), 2)

    def test_transaction_rolls_back_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.pool.transaction() as handle:
                self._insert(handle, 1)
                raise RuntimeError("abort")
        self.assertEqual(self._count(), 0)
