"""
Domain dataclasses used across the application.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from vault_roles.config import DATABASE_NAME_PATTERN, IDENTIFIER_PATTERN, POLICY_SUFFIX
from vault_roles.errors import ValidationError


class Permission(str, Enum):
    """Permission level a generated login receives in one database."""
    NONE = "None"
    READ_ONLY = "ReadOnly"
    READ_WRITE = "ReadWrite"

    @classmethod
    def parse(cls, value) -> "Permission":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        text = str(value).strip().lower()
        if not text:
            return cls.NONE
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValidationError(
            f"Unknown permission '{value}'. Expected one of: "
            + ", ".join(m.value for m in cls)
        )


class FailureStage(str, Enum):
    """Workflow step at which provisioning stopped."""
    NONE = "None"
    CONFIG_FETCH = "ConfigFetch"
    CONFIG_UPDATE = "ConfigUpdate"
    ROLE_CREATE = "RoleCreate"
    POLICY_CREATE = "PolicyCreate"
    TOKEN_ROLE_CREATE = "TokenRoleCreate"
    TOKEN_CREATE = "TokenCreate"


@dataclass
class DatabaseSelection:
    """One database on the target server and what the generated login may do there."""
    database_name: str
    permission: Permission = Permission.NONE
    is_selected: bool = False


@dataclass(frozen=True)
class RoleSpec:
    role_name: str   # Vault database role; also names the policy
    app_name: str    # prefix of the token role name

    @property
    def policy_name(self) -> str:
        return f"{self.role_name}{POLICY_SUFFIX}"


@dataclass(frozen=True)
class GeneratedArtifacts:
    """Rendered SQL templates, policy document and token-role command."""
    creation_statements: str
    revocation_statements: str
    policy_document: str
    token_role_command: str
    token_role_suffix: str


@dataclass
class DatabaseConnection:
    """Connection details for the SQL Server behind a Vault DB config."""
    vault_db_config_name: str
    role_name: str = ""
    app_name: str = ""
    initial_database: Optional[str] = None
    trust_server_certificate: bool = True


@dataclass
class ProvisioningResult:
    success: bool
    failure_stage: FailureStage = FailureStage.NONE
    message: str = ""
    generated_token: Optional[str] = None
    completed_steps: List[str] = field(default_factory=list)


# ── Helpers ──────────────────────────────────────────────────────────

def validate_identifier(value: str, label: str) -> str:
    """Return *value* if it is a safe Vault path segment, else raise ValidationError."""
    if not value:
        raise ValidationError(f"{label} is required")
    if not re.fullmatch(IDENTIFIER_PATTERN, value):
        raise ValidationError(
            f"{label} can only contain letters, numbers, underscores, and hyphens"
        )
    return value


def validate_database_name(value: str) -> str:
    """Reject names that could escape the [brackets] in generated SQL."""
    if not isinstance(value, str) or not re.fullmatch(DATABASE_NAME_PATTERN, value):
        raise ValidationError(
            f"Invalid database name {value!r}: brackets, semicolons and braces are not allowed"
        )
    return value


def selected_entries(selections: Iterable[DatabaseSelection]) -> List[DatabaseSelection]:
    """Entries that take part in rendering: selected and with a real permission."""
    return [s for s in selections if s.is_selected and s.permission != Permission.NONE]


def initial_selections(database_names: Iterable[str]) -> List[DatabaseSelection]:
    return [DatabaseSelection(database_name=name) for name in database_names]
