from __future__ import annotations

import base64
from collections.abc import Callable

import httpx
import pytest

from exchange_access import (
    ExchangeClient,
    ExchangeCredentials,
    IdentityResolutionError,
    IdentityResolver,
    parse_user_record,
)
from exchange_contracts import IdentityRole


def _user_body(admin: object = False, hub_admin: object = False) -> dict[str, object]:
    return {"users": {"myorg/alice": {"admin": admin, "hubAdmin": hub_admin, "email": "a@x"}}}


def test_resolver_reads_role_flags(exchange_factory: Callable[..., ExchangeClient]) -> None:
    seen: list[str] = []
    exchange = exchange_factory(
        {"/orgs/myorg/users/alice": (200, _user_body(admin=True))}, seen=seen
    )
    identity = IdentityResolver(exchange).resolve()
    assert identity.org_id == "myorg"
    assert identity.username == "alice"
    assert identity.is_org_admin is True
    assert identity.is_hub_admin is False
    assert identity.role == IdentityRole.ORG_ADMIN
    assert identity.principal == "myorg/alice"
    assert seen == ["/orgs/myorg/users/alice"]


def test_resolver_sends_basic_auth_with_org_prefix(credentials: ExchangeCredentials) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=_user_body())

    with ExchangeClient(credentials, transport=httpx.MockTransport(handler)) as exchange:
        IdentityResolver(exchange).resolve()
    token = base64.b64encode(b"myorg/alice:s3cret").decode("ascii")
    assert captured[0].headers["Authorization"] == f"Basic {token}"


@pytest.mark.parametrize("status", [401, 403, 404, 500])
def test_non_200_is_fatal(exchange_factory: Callable[..., ExchangeClient], status: int) -> None:
    exchange = exchange_factory({"/orgs/myorg/users/alice": (status, {"code": "nope"})})
    with pytest.raises(IdentityResolutionError) as excinfo:
        IdentityResolver(exchange).resolve()
    assert excinfo.value.status == status
    assert "nope" in excinfo.value.body


def test_transport_failure_is_fatal_with_status_zero(
    exchange_factory: Callable[..., ExchangeClient],
) -> None:
    exchange = exchange_factory(
        {"/orgs/myorg/users/alice": (0, httpx.ConnectError("name resolution failed"))}
    )
    with pytest.raises(IdentityResolutionError) as excinfo:
        IdentityResolver(exchange).resolve()
    assert excinfo.value.status == 0


def test_parse_user_record_defaults_missing_flags_to_false() -> None:
    identity = parse_user_record({"users": {"myorg/alice": {"email": "a@x"}}}, "myorg", "alice")
    assert identity.is_org_admin is False
    assert identity.is_hub_admin is False
    assert identity.role == IdentityRole.USER


def test_parse_user_record_falls_back_to_first_entry() -> None:
    identity = parse_user_record(
        {"users": {"root/alice": {"admin": False, "hubAdmin": True}}}, "myorg", "alice"
    )
    assert identity.is_hub_admin is True
    assert identity.role == IdentityRole.HUB_ADMIN


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {},
        {"users": {}},
        {"users": []},
        {"users": {"myorg/alice": "admin"}},
        {"users": {"myorg/alice": {"admin": "true"}}},
        {"users": {"myorg/alice": {"hubAdmin": 1}}},
    ],
)
def test_parse_user_record_rejects_malformed_bodies(payload: dict[str, object] | None) -> None:
    with pytest.raises(IdentityResolutionError):
        parse_user_record(payload, "myorg", "alice")
