"""
Interactive CLI for the Vault Role Generator.
Pick databases and permissions on a SQL Server, review the generated SQL
and policy, then register everything in Vault.
"""

from vault_roles.config import get_env, get_server_map, get_sql_credentials, get_vault_timeout
from vault_roles.database import build_connection_url, list_databases
from vault_roles.errors import VaultRolesError
from vault_roles.logging_utils import configure_logging
from vault_roles.models import (
    DatabaseConnection,
    Permission,
    RoleSpec,
    initial_selections,
    selected_entries,
    validate_database_name,
    validate_identifier,
)
from vault_roles.provisioning import provision_vault
from vault_roles.sql_templates import render_artifacts
from vault_roles.vault_client import VaultClient

PERMISSION_KEYS = {
    "": Permission.NONE,
    "n": Permission.NONE,
    "r": Permission.READ_ONLY,
    "w": Permission.READ_WRITE,
}


def _ask(prompt: str) -> str:
    value = input(prompt).strip()
    if value.lower() in {"quit", "exit"}:
        raise EOFError
    return value


def _ask_identifier(prompt: str, label: str) -> str:
    while True:
        value = _ask(prompt)
        try:
            return validate_identifier(value, label)
        except VaultRolesError as e:
            print(f"[input] {e}")


def main():
    configure_logging()
    print("=== Vault Role Generator: SQL Server → Vault dynamic credentials ===\n")
    try:
        servers = get_server_map()
    except VaultRolesError as e:
        print("\n[CONFIG ERROR] Could not load the server list.")
        print("Details:", e)
        return
    print("Known servers: " + ", ".join(sorted(servers)))

    try:
        config_name = _ask("Vault DB config / server name (or 'quit'): ")
        role_name = _ask_identifier("Vault role name: ", "Vault Role Name")
        app_name = _ask_identifier("Application name: ", "Application Name")
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    connection = DatabaseConnection(config_name, role_name=role_name, app_name=app_name)

    # ── 1) List databases ────────────────────────────────────────────
    try:
        username, password = get_sql_credentials()
        names = list_databases(build_connection_url(connection, username, password))
    except VaultRolesError as e:
        print("\n[DB ERROR] Could not load the database list.")
        print("Details:", e)
        return

    print(f"\n[db] Successfully loaded {len(names)} databases.")
    safe_names = []
    for name in names:
        try:
            safe_names.append(validate_database_name(name))
        except VaultRolesError as e:
            print(f"[db] Skipping {e}")
    selections = initial_selections(safe_names)

    # ── 2) Choose permissions ────────────────────────────────────────
    print("For each database: [r]ead-only, read-[w]rite, or Enter to skip.")
    try:
        for s in selections:
            while True:
                key = _ask(f"  {s.database_name}: ").lower()
                if key in PERMISSION_KEYS:
                    break
                print("  Please answer r, w, or press Enter.")
            s.permission = PERMISSION_KEYS[key]
            s.is_selected = s.permission != Permission.NONE
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    selected = selected_entries(selections)
    if not selected:
        print("\nPlease select at least one database with permissions.")
        return

    # ── 3) Render ────────────────────────────────────────────────────
    role = RoleSpec(role_name, app_name)
    artifacts = render_artifacts(selected, role)
    print("\n[Creation statements]")
    print(artifacts.creation_statements)
    print("\n[Revocation statements]")
    print(artifacts.revocation_statements)
    print("\n[Policy]")
    print(artifacts.policy_document)
    print("\n[Token role]")
    print(artifacts.token_role_command)

    # ── 4) Build in Vault ────────────────────────────────────────────
    try:
        answer = _ask("\nCreate these in Vault now? [y/N]: ")
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return
    if answer.lower() not in {"y", "yes"}:
        print("Nothing was sent to Vault.")
        return

    client = VaultClient(get_env("VAULT_ADDR"), get_env("VAULT_TOKEN"), timeout=get_vault_timeout())
    result = provision_vault(client, config_name, role, artifacts)
    if not result.success:
        print(f"\n[VAULT ERROR] {result.message}")
        print(f"Stopped at: {result.failure_stage.value}")
        return

    print(f"\n[vault] {result.message}")
    print(f"[vault] Token: {result.generated_token}")


if __name__ == "__main__":
    main()
