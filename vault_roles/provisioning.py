"""
Vault provisioning workflow: allowed-role merge, database role, policy,
token role and token, in that order, stopping at the first failure.

Nothing created before a failing step is rolled back. The allowed_roles
update is a plain read-then-write, so two roles provisioned at the same
time against one database config can lose an update.
"""

import logging
from typing import Any, List, Sequence

from vault_roles.config import DEFAULT_TTL, MAX_TTL, TOKEN_PERIOD
from vault_roles.models import (
    FailureStage,
    GeneratedArtifacts,
    ProvisioningResult,
    RoleSpec,
)
from vault_roles.sql_templates import group_statements, split_statements

logger = logging.getLogger(__name__)

STAGE_MESSAGES = {
    FailureStage.CONFIG_FETCH: "Failed to get database configuration '{config}'.",
    FailureStage.CONFIG_UPDATE: "Failed to update database configuration with new allowed role.",
    FailureStage.ROLE_CREATE: "Failed to create Vault role.",
    FailureStage.POLICY_CREATE: "Failed to create Vault policy.",
    FailureStage.TOKEN_ROLE_CREATE: "Failed to create Vault token role.",
    FailureStage.TOKEN_CREATE: "Failed to create Vault token.",
}
UNEXPECTED_MESSAGE = "Error occurred while creating Vault configurations."
SUCCESS_MESSAGE = "Vault role, token role, and token created successfully!"


class StepFailed(Exception):
    """Internal signal: a Vault call returned a non-success status or a malformed body."""


# ── Pure helpers ─────────────────────────────────────────────────────

def merge_allowed_roles(current: Sequence[str], new_role: str) -> List[str]:
    """
    Add *new_role* to the end of *current* unless it is already there.
    Returns a list equal to *current* when nothing changed, so callers
    can compare to decide whether a write is needed.
    """
    merged = list(current)
    if new_role not in merged:
        merged.append(new_role)
    return merged


def extract_allowed_roles(body: Any) -> List[str]:
    """Read data.allowed_roles from a config response; absent or non-list means empty."""
    if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
        raise StepFailed("response has no 'data' object")
    roles = body["data"].get("allowed_roles")
    if not isinstance(roles, list):
        return []
    return [r for r in roles if isinstance(r, str) and r]


def extract_client_token(body: Any) -> str:
    try:
        token = body["auth"]["client_token"]
    except (KeyError, TypeError) as e:
        raise StepFailed("response has no auth.client_token") from e
    if not isinstance(token, str) or not token:
        raise StepFailed("auth.client_token is empty")
    return token


def _is_success(resp) -> bool:
    return 200 <= resp.status_code < 300


def _check(resp, step: str) -> None:
    if not _is_success(resp):
        logger.warning("%s => %s: %s", step, resp.status_code, resp.text)
        raise StepFailed(f"{step} returned HTTP {resp.status_code}")


def _json(resp, step: str) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        logger.warning("%s => %s: unparseable body %r", step, resp.status_code, resp.text)
        raise StepFailed(f"{step} returned a non-JSON body") from e


# ── Workflow ─────────────────────────────────────────────────────────

def provision_vault(client, config_name: str, role: RoleSpec,
                    artifacts: GeneratedArtifacts) -> ProvisioningResult:
    """
    Run every provisioning step against *client* (a VaultClient or anything
    with the same methods) and return a ProvisioningResult. Never raises.
    """
    result = ProvisioningResult(success=False)
    stage = FailureStage.CONFIG_FETCH
    token_role_name = f"{role.app_name}_{artifacts.token_role_suffix}"

    try:
        # 1) Fetch the shared DB config and merge our role into allowed_roles
        resp = client.get_database_config(config_name)
        _check(resp, "Get database config")
        current = extract_allowed_roles(_json(resp, "Get database config"))
        result.completed_steps.append("fetch_config")

        merged = merge_allowed_roles(current, role.role_name)
        if merged != current:
            stage = FailureStage.CONFIG_UPDATE
            resp = client.update_database_config(config_name, {"allowed_roles": merged})
            _check(resp, "Update database config")
            logger.info("Added role '%s' to allowed_roles for config '%s'",
                        role.role_name, config_name)
            result.completed_steps.append("update_config")

        # 2) Database role with one batch per target database
        stage = FailureStage.ROLE_CREATE
        role_payload = {
            "db_name": config_name,
            "creation_statements": group_statements(split_statements(artifacts.creation_statements)),
            "revocation_statements": group_statements(split_statements(artifacts.revocation_statements)),
            "default_ttl": DEFAULT_TTL,
            "max_ttl": MAX_TTL,
        }
        resp = client.create_role(role.role_name, role_payload)
        logger.info("Role => %s: %s", resp.status_code, resp.text)
        _check(resp, "Create role")
        result.completed_steps.append("create_role")

        # 3) ACL policy granting read on the role's credentials path
        stage = FailureStage.POLICY_CREATE
        resp = client.create_policy(role.policy_name, {"policy": artifacts.policy_document})
        _check(resp, "Create policy")
        result.completed_steps.append("create_policy")

        # 4) Token role bound to that policy
        stage = FailureStage.TOKEN_ROLE_CREATE
        token_role_payload = {
            "allowed_policies": [role.policy_name],
            "period": TOKEN_PERIOD,
            "orphan": True,
            "display_name": token_role_name,
        }
        resp = client.create_token_role(token_role_name, token_role_payload)
        _check(resp, "Create token role")
        result.completed_steps.append("create_token_role")

        # 5) Token issued from the token role
        stage = FailureStage.TOKEN_CREATE
        resp = client.create_token_from_role(token_role_name)
        _check(resp, "Create token")
        token = extract_client_token(_json(resp, "Create token"))
        result.completed_steps.append("create_token")

    except StepFailed as e:
        logger.warning("Vault provisioning stopped at %s: %s", stage.value, e)
        return _fail(result, stage, STAGE_MESSAGES[stage].format(config=config_name))
    except Exception:
        logger.exception("Vault build failed at %s", stage.value)
        return _fail(result, stage, UNEXPECTED_MESSAGE)

    result.success = True
    result.generated_token = token
    result.message = SUCCESS_MESSAGE
    return result


def _fail(result: ProvisioningResult, stage: FailureStage, message: str) -> ProvisioningResult:
    result.success = False
    result.failure_stage = stage
    result.message = message
    return result

