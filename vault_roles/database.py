"""
SQL Server connection building, database listing and connection checks.
"""

import logging
from typing import List

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL

from vault_roles.config import SQL_DRIVER, get_server_map
from vault_roles.errors import DatabaseError, ValidationError
from vault_roles.models import DatabaseConnection

logger = logging.getLogger(__name__)

# database_id 1-4 are master, tempdb, model and msdb
LIST_DATABASES_SQL = text("""
    SELECT name
    FROM sys.databases
    WHERE database_id > 4 AND state_desc = 'ONLINE'
    ORDER BY name
""")


def build_connection_url(connection: DatabaseConnection, username: str, password: str) -> URL:
    """Build a SQL-authentication mssql+pyodbc URL for the server behind a Vault DB config."""
    server = get_server_map().get(connection.vault_db_config_name)
    if server is None:
        raise ValidationError(f"Unknown Vault DB Config: {connection.vault_db_config_name}")

    query = {
        "driver": SQL_DRIVER,
        "TrustServerCertificate": "yes" if connection.trust_server_certificate else "no",
    }
    return URL.create(
        "mssql+pyodbc",
        username=username,
        password=password,
        host=server,
        database=connection.initial_database or None,
        query=query,
    )


def _make_engine(url: URL):
    return create_engine(url, echo=False, future=True)


def list_databases(url: URL, engine_factory=_make_engine) -> List[str]:
    """Return user database names on the server, ordered by name."""
    engine = None
    try:
        engine = engine_factory(url)
        with engine.connect() as conn:
            rows = conn.execute(LIST_DATABASES_SQL).all()
    except Exception as e:
        logger.error("Error retrieving database list: %s", e)
        raise DatabaseError(
            "Failed to retrieve database list. Please check your connection string."
        ) from e
    finally:
        if engine is not None:
            engine.dispose()
    return [row[0] for row in rows]


def check_connection(url: URL, engine_factory=_make_engine) -> bool:
    """Open a connection and run SELECT 1; False on any failure."""
    engine = None
    try:
        engine = engine_factory(url)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Connection test failed: %s", e)
        return False
    finally:
        if engine is not None:
            engine.dispose()
