"""
Centralised configuration constants and environment helpers.
"""

import json
import os
import sys
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from vault_roles.errors import ConfigurationError

load_dotenv()

# ── Vault role / token defaults ──────────────────────────────────────
DEFAULT_TTL = "1h"
MAX_TTL = "12h"
TOKEN_PERIOD = "720h"
POLICY_SUFFIX = "_policy"

# Substituted by Vault when it issues a lease, never here.
NAME_PLACEHOLDER = "{{name}}"
PASSWORD_PLACEHOLDER = "{{password}}"

IDENTIFIER_PATTERN = r"^[A-Za-z0-9_-]+$"

# sysname length; no brackets, semicolons, braces or control characters
DATABASE_NAME_PATTERN = r"^[^\[\];{}\x00-\x1f]{1,128}$"

# ── SQL Server ───────────────────────────────────────────────────────
SQL_DRIVER = os.getenv("SQL_DRIVER", "ODBC Driver 18 for SQL Server")

# Vault DB config name -> SQL Server hostname (default port 1433)
DEFAULT_SERVER_MAP = {
    "DCIR-DEVDB": "dcir-devdb.domain-msi.local",
    "DCIR-STGDB": "dcir-stgdb.domain-msi.local",
    "MSI-DEVERPDB": "msi-deverpdb.domain-msi.local",
    "MSI-STGERPDB": "msi-stgerpdbl.domain-msi.local",
}

# ── Logging / API server ─────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value


def get_server_map() -> Dict[str, str]:
    """Return the server map, honouring a SERVER_MAP_JSON override."""
    raw = os.getenv("SERVER_MAP_JSON")
    if not raw:
        return dict(DEFAULT_SERVER_MAP)
    try:
        mapping = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"SERVER_MAP_JSON is not valid JSON: {e}") from e
    if not isinstance(mapping, dict):
        raise ConfigurationError("SERVER_MAP_JSON must be a JSON object.")
    return {str(k): str(v) for k, v in mapping.items()}


def get_sql_credentials() -> Tuple[str, str]:
    """Resolve the SQL login used to list databases. Raised, not exited, per request."""
    username = os.getenv("SQL_USERNAME")
    if not username:
        raise ConfigurationError("SQL_USERNAME not configured")
    password = os.getenv("SQL_PASSWORD")
    if not password:
        raise ConfigurationError("SQL_PASSWORD not configured")
    return username, password


def get_vault_timeout() -> Optional[float]:
    """Optional transport timeout for Vault calls; None keeps the requests default."""
    raw = os.getenv("VAULT_TIMEOUT_SECONDS")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"VAULT_TIMEOUT_SECONDS must be a number, got {raw!r}") from e
