"""
SQL template rendering and per-database statement grouping for Vault roles.
"""

from typing import Iterable, List, Sequence

from vault_roles.config import NAME_PLACEHOLDER, PASSWORD_PLACEHOLDER, TOKEN_PERIOD
from vault_roles.models import (
    DatabaseSelection,
    GeneratedArtifacts,
    Permission,
    RoleSpec,
    selected_entries,
)

GRANTS = {
    Permission.READ_ONLY: "SELECT",
    Permission.READ_WRITE: "SELECT, UPDATE, INSERT, DELETE, EXECUTE",
}

USE_MARKER = "USE ["


# ── Helper functions ─────────────────────────────────────────────────

def token_role_suffix(selections: Iterable[DatabaseSelection]) -> str:
    """'rw' if any entry is ReadWrite, else 'ro'."""
    if any(s.permission == Permission.READ_WRITE for s in selections):
        return "rw"
    return "ro"


def split_statements(text: str) -> List[str]:
    """Split a rendered template on ';' into trimmed, non-empty statements."""
    return [part.strip() for part in (text or "").split(";") if part.strip()]


def group_statements(lines: Sequence[str]) -> List[str]:
    """
    Group statements into one batch per `USE [db]` boundary.
    Each batch is joined with '; ' and terminated with ';'.
    """
    batches: List[str] = []
    buffer: List[str] = []
    for line in lines:
        if line[: len(USE_MARKER)].upper() == USE_MARKER and buffer:
            batches.append("; ".join(buffer) + ";")
            buffer = []
        buffer.append(line)
    if buffer:
        batches.append("; ".join(buffer) + ";")
    return batches


# ── Main rendering function ──────────────────────────────────────────

def render_artifacts(selections: Sequence[DatabaseSelection], role: RoleSpec) -> GeneratedArtifacts:
    """Render creation/revocation SQL, the ACL policy and the token-role command."""
    selections = selected_entries(selections)
    name = NAME_PLACEHOLDER
    creation = [f"CREATE LOGIN [{name}] WITH PASSWORD = '{PASSWORD_PLACEHOLDER}';"]
    revocation = [f"DROP LOGIN [{name}];"]

    for s in selections:
        creation.append(f"USE [{s.database_name}];")
        creation.append(f"CREATE USER [{name}] FOR LOGIN [{name}];")
        creation.append(f"GRANT {GRANTS[s.permission]} TO [{name}];")
        revocation.append(f"USE [{s.database_name}];")
        revocation.append(f"DROP USER IF EXISTS [{name}];")

    policy = "\n".join([
        f"# Vault Policy for {role.role_name}",
        f'path "database/creds/{role.role_name}" {{',
        '  capabilities = [ "read" ]',
        "}",
    ])

    suffix = token_role_suffix(selections)
    token_role = (
        f"vault write auth/token/roles/{role.app_name}_{suffix} "
        f'allowed_policies="{role.policy_name}" period={TOKEN_PERIOD}'
    )

    return GeneratedArtifacts(
        creation_statements="\n".join(creation),
        revocation_statements="\n".join(revocation),
        policy_document=policy,
        token_role_command=token_role,
        token_role_suffix=suffix,
    )
