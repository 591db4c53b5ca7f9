from __future__ import annotations

import logging
from collections.abc import Mapping

from exchange_access.api import ExchangeClient, org_path
from exchange_access.errors import IdentityResolutionError, ProbeTransportError
from exchange_contracts import Identity

logger = logging.getLogger(__name__)


def parse_user_record(
    payload: Mapping[str, object] | None, org_id: str, username: str, raw: str = ""
) -> Identity:
    """
    Build an ``Identity`` from a ``GET /orgs/{org}/users/{user}`` body.

    The body is ``{"users": {"org/user": {"admin": bool, "hubAdmin": bool, ...}}}``.
    The ``org/user`` key is preferred; otherwise the first entry is used.
    Missing flags mean ``False``; flags of any other type are rejected.
    """
    if payload is None:
        raise IdentityResolutionError(200, raw, "response body is not a JSON object")
    users = payload.get("users")
    if not isinstance(users, Mapping) or len(users) == 0:
        raise IdentityResolutionError(200, raw, "response has no 'users' entries")

    record = users.get(f"{org_id}/{username}")
    if record is None:
        record = next(iter(users.values()))
    if not isinstance(record, Mapping):
        raise IdentityResolutionError(200, raw, "user entry is not an object")

    return Identity(
        org_id=org_id,
        username=username,
        is_org_admin=_flag(record, "admin", raw),
        is_hub_admin=_flag(record, "hubAdmin", raw),
    )


def _flag(record: Mapping[str, object], key: str, raw: str) -> bool:
    value = record.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise IdentityResolutionError(200, raw, f"'{key}' is not a boolean")
    return value


class IdentityResolver:
    def __init__(self, client: ExchangeClient) -> None:
        self._client = client

    def resolve(self) -> Identity:
        credentials = self._client.credentials
        path = org_path(credentials.org_id, "users", credentials.username)
        try:
            response = self._client.get(path)
        except ProbeTransportError as exc:
            raise IdentityResolutionError(0, "", exc.detail) from exc
        if response.status != 200:
            raise IdentityResolutionError(response.status, response.text)
        identity = parse_user_record(
            response.payload, credentials.org_id, credentials.username, raw=response.text
        )
        logger.info(
            "Resolved identity %s (role=%s)", identity.principal, identity.role.value
        )
        return identity
