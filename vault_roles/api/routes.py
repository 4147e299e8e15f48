"""
Flask route handlers for the REST API.
"""

import logging
from dataclasses import asdict
from typing import Any, Dict, List

from flask import request, jsonify

from vault_roles.config import get_sql_credentials
from vault_roles.database import build_connection_url, check_connection, list_databases
from vault_roles.errors import ConfigurationError, DatabaseError, ValidationError
from vault_roles.models import (
    DatabaseConnection,
    DatabaseSelection,
    GeneratedArtifacts,
    Permission,
    RoleSpec,
    initial_selections,
    selected_entries,
    validate_database_name,
    validate_identifier,
)
from vault_roles.provisioning import provision_vault
from vault_roles.sql_templates import render_artifacts

logger = logging.getLogger(__name__)


# ── Request parsing ──────────────────────────────────────────────────

def _json_body() -> Dict[str, Any]:
    if not request.is_json:
        raise ValidationError("Content-Type must be application/json")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _parse_bool(value: Any, label: str, default: bool) -> bool:
    """JSON booleans only; strings such as "false" are rejected, not coerced."""
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"{label} must be true or false")
    return value


def parse_connection(data: Dict[str, Any], require_names: bool) -> DatabaseConnection:
    raw = data.get("connection") or {}
    if not isinstance(raw, dict):
        raise ValidationError("connection must be an object")
    config_name = str(raw.get("vault_db_config_name", "")).strip()
    if not config_name:
        raise ValidationError("Server Name is required")
    conn = DatabaseConnection(
        vault_db_config_name=config_name,
        role_name=str(raw.get("role_name", "")).strip(),
        app_name=str(raw.get("app_name", "")).strip(),
        initial_database=(str(raw.get("initial_database") or "").strip() or None),
        trust_server_certificate=_parse_bool(
            raw.get("trust_server_certificate"), "trust_server_certificate", True),
    )
    if require_names:
        validate_identifier(conn.role_name, "Vault Role Name")
        validate_identifier(conn.app_name, "Application Name")
    return conn


def parse_selections(data: Dict[str, Any]) -> List[DatabaseSelection]:
    raw = data.get("selections") or []
    if not isinstance(raw, list):
        raise ValidationError("selections must be a list")
    out = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("database_name"):
            raise ValidationError("each selection needs a database_name")
        out.append(DatabaseSelection(
            database_name=validate_database_name(item["database_name"]),
            permission=Permission.parse(item.get("permission", Permission.NONE.value)),
            is_selected=_parse_bool(item.get("is_selected"), "is_selected", False),
        ))
    return out


def _apply_overrides(artifacts: GeneratedArtifacts, data: Dict[str, Any]) -> GeneratedArtifacts:
    """Statements edited by the user before building replace the rendered ones."""
    fields = {}
    for key in ("creation_statements", "revocation_statements", "policy_document"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            fields[key] = value.strip()
    if not fields:
        return artifacts
    merged = asdict(artifacts)
    merged.update(fields)
    return GeneratedArtifacts(**merged)


def _selection_to_dict(s: DatabaseSelection) -> Dict[str, Any]:
    return {
        "database_name": s.database_name,
        "permission": s.permission.value,
        "is_selected": s.is_selected,
    }


def _connection_url(conn: DatabaseConnection):
    username, password = get_sql_credentials()
    return build_connection_url(conn, username, password)


def register_routes(app, vault_client):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Vault Role Generator API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "test_connection": "/api/connection/test",
                "databases": "/api/databases",
                "generate": "/api/sql/generate",
                "build": "/api/vault/build",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"vault_client": vault_client is not None}
        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }), 200 if all_healthy else 503

    # ── SQL Server ───────────────────────────────────────────────────

    @app.route("/api/connection/test", methods=["POST"])
    def test_connection_route():
        try:
            conn = parse_connection(_json_body(), require_names=False)
            ok = check_connection(_connection_url(conn))
        except ValidationError as e:
            return jsonify({"success": False, "error": str(e)}), 400
        except ConfigurationError:
            logger.exception("Connection test failed")
            return jsonify({
                "success": False,
                "error": "Connection test failed. Please check your connection details.",
            }), 500

        message = (
            "Connection successful! You can now load the database list."
            if ok else
            "Connection failed. Please check your credentials and try again."
        )
        return jsonify({"success": ok, "message": message}), 200

    @app.route("/api/databases", methods=["POST"])
    def load_databases():
        try:
            conn = parse_connection(_json_body(), require_names=False)
            names = list_databases(_connection_url(conn))
        except ValidationError as e:
            return jsonify({"success": False, "error": str(e)}), 400
        except (ConfigurationError, DatabaseError) as e:
            logger.error("Failed to load databases: %s", e)
            return jsonify({"success": False, "error": str(e)}), 502

        return jsonify({
            "success": True,
            "selections": [_selection_to_dict(s) for s in initial_selections(names)],
            "message": f"Successfully loaded {len(names)} databases.",
        }), 200

    # ── SQL generation / Vault build ─────────────────────────────────

    @app.route("/api/sql/generate", methods=["POST"])
    def generate_sql():
        try:
            data = _json_body()
            conn = parse_connection(data, require_names=True)
            selected = selected_entries(parse_selections(data))
        except ValidationError as e:
            return jsonify({"success": False, "error": str(e)}), 400

        if not selected:
            return jsonify({
                "success": False,
                "error": "Please select at least one database with permissions.",
            }), 400

        artifacts = render_artifacts(selected, RoleSpec(conn.role_name, conn.app_name))
        return jsonify({"success": True, "artifacts": asdict(artifacts)}), 200

    @app.route("/api/vault/build", methods=["POST"])
    def build_vault():
        try:
            data = _json_body()
            conn = parse_connection(data, require_names=True)
            selected = selected_entries(parse_selections(data))
        except ValidationError as e:
            return jsonify({"success": False, "error": str(e)}), 400

        if not selected:
            return jsonify({
                "success": False,
                "error": "Please select at least one database with permissions.",
            }), 400

        role = RoleSpec(conn.role_name, conn.app_name)
        artifacts = _apply_overrides(render_artifacts(selected, role), data)
        result = provision_vault(vault_client, conn.vault_db_config_name, role, artifacts)

        body = {
            "success": result.success,
            "message": result.message,
            "failure_stage": result.failure_stage.value,
            "completed_steps": result.completed_steps,
        }
        if result.success:
            body["token"] = result.generated_token
            return jsonify(body), 200
        return jsonify(body), 502

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.error("Unhandled error: %s", e)
        return jsonify({"error": "Internal server error"}), 500
