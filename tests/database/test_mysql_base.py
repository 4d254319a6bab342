from __future__ import annotations

import mysql.connector
import pytest

from src.gatepass.gatepass.core.exceptions import TransientStorageError
from src.gatepass.gatepass.database.bootstrap import _iter_sql_statements, _strip_create_db_and_use
from src.gatepass.gatepass.database.mysql_base import db_cursor


class FakeCursor:
    def __init__(self, error=None):
        self._error = error
        self.closed = False

    def execute(self, sql, params=None):
        if self._error:
            raise self._error

    def close(self):
        self.closed = True


class FakeConn:
    def __init__(self, error=None):
        self.cursor_obj = FakeCursor(error)
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=True):
        return self.cursor_obj

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self, conn=None, connect_error=None):
        self.conn = conn
        self.connect_error = connect_error

    def connect(self):
        if self.connect_error:
            raise self.connect_error
        return self.conn


def test_commits_on_success():
    conn = FakeConn()
    with db_cursor(FakeFactory(conn)) as (_, cur):
        cur.execute("SELECT 1")
    assert conn.committed and not conn.rolled_back and conn.closed


@pytest.mark.parametrize(
    "error",
    [
        mysql.connector.errors.DatabaseError(msg="Lock wait timeout exceeded", errno=1205),
        mysql.connector.errors.InternalError(msg="Deadlock found", errno=1213),
        mysql.connector.errors.OperationalError(msg="Lost connection", errno=2013),
    ],
)
def test_lock_and_connection_errors_become_transient(error):
    conn = FakeConn(error)
    with pytest.raises(TransientStorageError) as exc:
        with db_cursor(FakeFactory(conn)) as (_, cur):
            cur.execute("UPDATE gate_passes SET status='OUT'")
    assert exc.value.__cause__ is error
    assert conn.rolled_back and not conn.committed and conn.closed


def test_programming_errors_propagate_unchanged():
    error = mysql.connector.errors.ProgrammingError(msg="syntax", errno=1064)
    conn = FakeConn(error)
    with pytest.raises(mysql.connector.errors.ProgrammingError):
        with db_cursor(FakeFactory(conn)) as (_, cur):
            cur.execute("SELEC 1")
    assert conn.rolled_back


def test_connect_failure_is_transient():
    factory = FakeFactory(connect_error=mysql.connector.errors.InterfaceError(msg="Can't connect", errno=2003))
    with pytest.raises(TransientStorageError):
        with db_cursor(factory):
            pass


def test_schema_splitter_handles_quotes_and_comments():
    sql = """
    CREATE DATABASE IF NOT EXISTS x;
    USE x;
    -- counters; one per scope
    CREATE TABLE a (v VARCHAR(5) DEFAULT ';');
    INSERT INTO a VALUES ('it''s;fine');
    """
    statements = list(_iter_sql_statements(_strip_create_db_and_use(sql)))
    assert statements == [
        "CREATE TABLE a (v VARCHAR(5) DEFAULT ';')",
        "INSERT INTO a VALUES ('it''s;fine')",
    ]
