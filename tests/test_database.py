"""
Unit tests for SQL Server connection building and database listing.
"""

import json

import pytest

from vault_roles.database import build_connection_url, check_connection, list_databases
from vault_roles.errors import DatabaseError, ValidationError
from vault_roles.models import DatabaseConnection


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeResult:
    """Mimic SQLAlchemy Result with .all()."""
    def __init__(self, rows):
        self._rows = rows

    def all(self):
        return self._rows


class FakeConn:
    def __init__(self, rows=None, error=None):
        self._rows = rows or []
        self._error = error
        self.executed = []

    def execute(self, sql, params=None):
        if self._error:
            raise self._error
        self.executed.append((sql, params))
        return FakeResult(self._rows)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeEngine:
    def __init__(self, rows=None, error=None):
        self.conn = FakeConn(rows, error)
        self.disposed = False

    def connect(self):
        return self.conn

    def dispose(self):
        self.disposed = True


def factory_for(engine):
    def factory(url):
        factory.url = url
        return engine
    return factory


# ── Tests: build_connection_url ──────────────────────────────────────

def test_build_connection_url_uses_server_map(monkeypatch):
    monkeypatch.delenv("SERVER_MAP_JSON", raising=False)
    url = build_connection_url(DatabaseConnection("DCIR-DEVDB"), "svc_user", "pw")
    assert url.drivername == "mssql+pyodbc"
    assert url.host == "dcir-devdb.domain-msi.local"
    assert url.port is None
    assert url.username == "svc_user"
    assert url.password == "pw"
    assert url.database is None
    assert url.query["TrustServerCertificate"] == "yes"


def test_build_connection_url_initial_database_and_strict_cert(monkeypatch):
    monkeypatch.delenv("SERVER_MAP_JSON", raising=False)
    conn = DatabaseConnection("MSI-STGERPDB", initial_database="erp",
                              trust_server_certificate=False)
    url = build_connection_url(conn, "u", "p")
    assert url.host == "msi-stgerpdbl.domain-msi.local"
    assert url.database == "erp"
    assert url.query["TrustServerCertificate"] == "no"


def test_build_connection_url_unknown_server(monkeypatch):
    monkeypatch.delenv("SERVER_MAP_JSON", raising=False)
    with pytest.raises(ValidationError, match="Unknown Vault DB Config: NOPE"):
        build_connection_url(DatabaseConnection("NOPE"), "u", "p")


def test_build_connection_url_server_map_override(monkeypatch):
    monkeypatch.setenv("SERVER_MAP_JSON", json.dumps({"LOCAL": "localhost"}))
    url = build_connection_url(DatabaseConnection("LOCAL"), "u", "p")
    assert url.host == "localhost"


# ── Tests: list_databases / check_connection ─────────────────────────

def test_list_databases_returns_names():
    engine = FakeEngine(rows=[("inventory",), ("orders",)])
    assert list_databases("url", engine_factory=factory_for(engine)) == ["inventory", "orders"]
    assert engine.disposed is True


def test_list_databases_wraps_driver_errors():
    engine = FakeEngine(error=RuntimeError("login failed"))
    with pytest.raises(DatabaseError, match="Failed to retrieve database list"):
        list_databases("url", engine_factory=factory_for(engine))
    assert engine.disposed is True


def test_check_connection_ok():
    engine = FakeEngine()
    assert check_connection("url", engine_factory=factory_for(engine)) is True
    assert len(engine.conn.executed) == 1


def test_check_connection_failure_returns_false():
    engine = FakeEngine(error=RuntimeError("timeout"))
    assert check_connection("url", engine_factory=factory_for(engine)) is False


def test_check_connection_engine_creation_failure_returns_false():
    def factory(url):
        raise ImportError("pyodbc missing")
    assert check_connection("url", engine_factory=factory) is False
