from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import dotenv_values

from exchange_access.errors import CredentialError

ENV_EXCHANGE_URL = "HZN_EXCHANGE_URL"
ENV_ORG_ID = "HZN_ORG_ID"
ENV_USER_AUTH = "HZN_EXCHANGE_USER_AUTH"
REQUIRED_ENV_VARS = (ENV_EXCHANGE_URL, ENV_ORG_ID, ENV_USER_AUTH)

DEFAULT_TIMEOUT_S = 10.0

_ORG_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class ExitPolicy(str, Enum):
    ACTUAL = "actual"
    STRICT = "strict"


@dataclass(frozen=True)
class ExchangeCredentials:
    base_url: str
    org_id: str
    username: str
    password: str
    auth_org_id: str | None = None

    @property
    def auth_principal(self) -> str:
        return f"{self.auth_org_id or self.org_id}/{self.username}"

    def __repr__(self) -> str:
        return (
            f"ExchangeCredentials(base_url={self.base_url!r}, org_id={self.org_id!r}, "
            f"username={self.username!r}, password='***')"
        )


@dataclass(frozen=True)
class RunConfig:
    json_output: bool = False
    verbose: bool = False
    timeout_s: float = DEFAULT_TIMEOUT_S
    verify_tls: bool = True
    exit_policy: ExitPolicy = ExitPolicy.ACTUAL
    target_org: str | None = None
    emit_traces: bool = False


def parse_user_auth(user_auth: str, org_id: str) -> tuple[str, str, str | None]:
    """
    Split ``HZN_EXCHANGE_USER_AUTH`` into ``(username, password, auth_org)``.

    Accepts ``user:password`` (the org is taken from ``HZN_ORG_ID``) or
    ``org/user:password`` where the org prefix is kept for authentication.
    """
    if ":" not in user_auth:
        raise CredentialError(f"{ENV_USER_AUTH} must have the form [org/]user:password")
    principal, password = user_auth.split(":", 1)
    auth_org: str | None = None
    if "/" in principal:
        auth_org, principal = principal.split("/", 1)
        if auth_org == "":
            auth_org = None
    if principal.strip() == "":
        raise CredentialError(f"{ENV_USER_AUTH} does not name a user")
    if auth_org is not None and auth_org == org_id:
        auth_org = None
    return principal, password, auth_org


def credentials_from_mapping(values: Mapping[str, str | None]) -> ExchangeCredentials:
    missing = [name for name in REQUIRED_ENV_VARS if not (values.get(name) or "").strip()]
    if missing:
        raise CredentialError("Missing required environment variables: " + ", ".join(missing))

    base_url = str(values[ENV_EXCHANGE_URL]).strip().rstrip("/")
    org_id = str(values[ENV_ORG_ID]).strip()
    if not re.match(r"^https?://", base_url):
        raise CredentialError(f"Invalid URL format: {base_url}")
    validate_org_id(org_id)

    username, password, auth_org = parse_user_auth(str(values[ENV_USER_AUTH]).strip(), org_id)
    return ExchangeCredentials(
        base_url=base_url,
        org_id=org_id,
        username=username,
        password=password,
        auth_org_id=auth_org,
    )


def load_credentials(
    env_file: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ExchangeCredentials:
    values: dict[str, str | None] = dict(os.environ if environ is None else environ)
    if env_file is not None:
        path = Path(env_file)
        if not path.is_file():
            raise CredentialError(f"Environment file not found: {path}")
        values.update(dotenv_values(path))
    return credentials_from_mapping(values)


def validate_org_id(org_id: str) -> str:
    if not _ORG_ID_PATTERN.match(org_id):
        raise CredentialError(f"Invalid organization ID: {org_id}")
    return org_id
