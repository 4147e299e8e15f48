"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from vault_roles.config import API_HOST, API_PORT, get_env, get_vault_timeout
from vault_roles.logging_utils import configure_logging
from vault_roles.vault_client import VaultClient
from vault_roles.api.routes import register_routes


def create_app(vault_client=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if vault_client is None:
        try:
            print("[init] Initializing Vault client...")
            vault_client = VaultClient(
                get_env("VAULT_ADDR"),
                get_env("VAULT_TOKEN"),
                timeout=get_vault_timeout(),
            )
            print(f"[init] ✓ Vault client ready ({vault_client.address})")
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, vault_client)

    return app


def main():
    """Run the development server."""
    configure_logging()

    print("=" * 60)
    print("Vault Role Generator – REST API Server")
    print("=" * 60)

    app = create_app()

    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {API_HOST}:{API_PORT}")
    print(f"[server] Debug mode: {debug}")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/connection/test")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/databases")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/sql/generate")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/vault/build")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/health")
    print("\n" + "=" * 60)

    app.run(host=API_HOST, port=API_PORT, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
