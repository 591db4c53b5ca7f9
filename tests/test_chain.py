from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import pytest

from exchange_access import (
    AccessClient,
    AccessPredictor,
    AccessProber,
    ExchangeClient,
    ExitPolicy,
    LevelChainRunner,
    VerificationLevel,
    full_chain,
    org_access_chain,
    user_listing_chain,
)
from exchange_contracts import AccessScope, Identity, ResourceKind, VerdictEvent, VerdictStatus


def _user_body(admin: bool = False, hub_admin: bool = False) -> dict[str, object]:
    return {"users": {"myorg/alice": {"admin": admin, "hubAdmin": hub_admin}}}


def _routes(
    admin: bool = False,
    hub_admin: bool = False,
    org_users_status: int = 200,
    orgs_status: int = 403,
) -> dict[str, tuple[int, object]]:
    return {
        "/orgs/myorg/users/alice": (200, _user_body(admin, hub_admin)),
        "/orgs/myorg/users": (
            org_users_status,
            {"users": {"myorg/alice": {}, "myorg/bob": {}}} if org_users_status == 200 else {},
        ),
        "/orgs": (orgs_status, {"orgs": {"myorg": {}}} if orgs_status == 200 else {}),
        "/orgs/myorg": (200, {"orgs": {"myorg": {}}}),
        "/orgs/myorg/nodes": (200, {"nodes": {}}),
        "/orgs/myorg/services": (200, {"services": {"myorg/svc": {}}}),
    }


@dataclass
class _RecordingEmitter:
    events: list[VerdictEvent] = field(default_factory=list)

    def emit(self, event: VerdictEvent) -> None:
        self.events.append(event)


def test_scenario_a_org_admin_confirmed_allow(
    access_client_factory: Callable[..., AccessClient],
) -> None:
    with access_client_factory(_routes(admin=True, org_users_status=200)) as client:
        result = client.can_list_users()
    assert result.primary.scope == AccessScope.OWN_ORG
    assert result.primary.status == VerdictStatus.CONFIRMED_ALLOW
    assert result.primary.actual.item_count == 2
    assert result.exit_code() == 0


def test_scenario_b_regular_user_confirmed_deny(
    access_client_factory: Callable[..., AccessClient],
) -> None:
    with access_client_factory(_routes(org_users_status=403)) as client:
        result = client.can_list_users()
    assert result.primary.status == VerdictStatus.CONFIRMED_DENY
    assert result.exit_code() == 1


def test_scenario_c_org_admin_unexpected_deny(
    access_client_factory: Callable[..., AccessClient],
) -> None:
    with access_client_factory(_routes(admin=True, org_users_status=403)) as client:
        result = client.can_list_users()
    assert result.primary.status == VerdictStatus.MISMATCH_UNEXPECTED_DENY
    assert result.exit_code() == 1
    assert result.exit_code(ExitPolicy.STRICT) == 1
    assert any("ACL override" in hint for hint in result.primary.hints)


def test_scenario_d_unexpected_allow_exit_code_follows_policy(
    access_client_factory: Callable[..., AccessClient],
) -> None:
    with access_client_factory(_routes(org_users_status=200)) as client:
        result = client.can_list_users()
    assert result.primary.status == VerdictStatus.MISMATCH_UNEXPECTED_ALLOW
    assert result.exit_code(ExitPolicy.ACTUAL) == 0
    assert result.exit_code(ExitPolicy.STRICT) == 1


def test_other_org_target_becomes_primary(
    access_client_factory: Callable[..., AccessClient],
) -> None:
    routes = _routes(admin=True)
    routes["/orgs/partner/users"] = (403, {"code": "access denied"})
    with access_client_factory(routes) as client:
        result = client.can_list_users(target_org="partner")
    assert result.primary.scope == AccessScope.OTHER_ORG
    assert result.primary.actual.path == "/orgs/partner/users"
    assert result.primary.status == VerdictStatus.CONFIRMED_DENY
    assert result.exit_code() == 1


def test_all_levels_run_without_short_circuit(
    exchange_factory: Callable[..., ExchangeClient],
) -> None:
    seen: list[str] = []
    routes = _routes(orgs_status=403, org_users_status=403)
    routes["/orgs/myorg/users/alice"] = (0, httpx.ConnectError("reset by peer"))
    exchange = exchange_factory(routes, seen=seen)
    runner = LevelChainRunner(AccessPredictor(), AccessProber(exchange))
    identity = Identity(org_id="myorg", username="alice")
    result = runner.run(identity, org_access_chain("myorg", "alice"))

    assert seen == [
        "/orgs",
        "/orgs/myorg/users",
        "/orgs/myorg",
        "/orgs/myorg/users/alice",
    ]
    assert [verdict.scope for verdict in result.verdicts] == [
        AccessScope.ALL_ORGS,
        AccessScope.OWN_ORG,
        AccessScope.SELF,
        AccessScope.SELF,
    ]
    assert result.verdicts[2].status == VerdictStatus.CONFIRMED_ALLOW
    self_verdict = result.verdicts[-1]
    assert self_verdict.actual.http_status == 0
    assert self_verdict.status == VerdictStatus.MISMATCH_UNEXPECTED_DENY
    assert result.primary_level == "list-org-users"


@pytest.mark.parametrize(
    ("orgs_status", "orgs_body", "expected"),
    [
        (200, {"orgs": {"myorg": {}, "IBM": {}}}, "all"),
        (200, {"orgs": {"myorg": {}}}, "own"),
        (403, {}, "none"),
    ],
)
def test_org_listing_breadth(
    access_client_factory: Callable[..., AccessClient],
    orgs_status: int,
    orgs_body: dict[str, object],
    expected: str,
) -> None:
    routes = _routes(hub_admin=True)
    routes["/orgs"] = (orgs_status, orgs_body)
    with access_client_factory(routes) as client:
        result = client.can_list_orgs()
    assert result.org_listing_breadth() == expected
    assert result.primary.scope == AccessScope.OWN_ORG


def test_hub_wide_failure_does_not_change_headline_result(
    access_client_factory: Callable[..., AccessClient],
) -> None:
    with access_client_factory(_routes(admin=True, orgs_status=403)) as client:
        result = client.can_list_orgs()
    assert result.verdicts[0].status == VerdictStatus.CONFIRMED_DENY
    assert result.primary.status == VerdictStatus.CONFIRMED_ALLOW
    assert result.exit_code() == 0


def test_full_chain_levels() -> None:
    names = [level.name for level in full_chain("myorg", "alice")]
    assert names == [
        "list-all-orgs",
        "list-org-users",
        "list-org-nodes",
        "list-org-services",
        "view-own-record",
    ]
    crossing = full_chain("myorg", "alice", target_org="partner")
    primary = [level for level in crossing if level.primary]
    assert len(primary) == 1
    assert primary[0].scope == AccessScope.OTHER_ORG
    assert primary[0].path == "/orgs/partner/users"


def test_org_access_chain_levels() -> None:
    levels = org_access_chain("myorg", "alice")
    assert [(level.name, level.path) for level in levels] == [
        ("list-all-orgs", "/orgs"),
        ("list-org-users", "/orgs/myorg/users"),
        ("view-own-org", "/orgs/myorg"),
        ("view-own-record", "/orgs/myorg/users/alice"),
    ]
    assert [level.name for level in levels if level.primary] == ["list-org-users"]


def test_user_listing_chain_for_own_org() -> None:
    levels = user_listing_chain("myorg", "alice", target_org="myorg")
    assert levels[0].scope == AccessScope.OWN_ORG
    assert levels[0].primary is True
    assert levels[-1].scope == AccessScope.SELF


def test_chain_without_org_level_is_rejected(
    exchange_factory: Callable[..., ExchangeClient],
) -> None:
    runner = LevelChainRunner(AccessPredictor(), AccessProber(exchange_factory({})))
    level = VerificationLevel(
        name="self",
        description="self",
        scope=AccessScope.SELF,
        path="/orgs/myorg/users/alice",
        kind=ResourceKind.USERS,
    )
    with pytest.raises(ValueError):
        runner.run(Identity(org_id="myorg", username="alice"), (level,))


def test_verdicts_are_emitted_to_trace_emitter(
    exchange_factory: Callable[..., ExchangeClient],
) -> None:
    emitter = _RecordingEmitter()
    runner = LevelChainRunner(
        AccessPredictor(),
        AccessProber(exchange_factory(_routes(admin=True))),
        trace_emitter=emitter,
        clock=lambda: 1700000000.5,
    )
    identity = Identity(org_id="myorg", username="alice", is_org_admin=True)
    runner.run(identity, org_access_chain("myorg", "alice"))
    assert [event.level for event in emitter.events] == [
        "list-all-orgs",
        "list-org-users",
        "view-own-org",
        "view-own-record",
    ]
    assert emitter.events[1].status == VerdictStatus.CONFIRMED_ALLOW
    assert emitter.events[1].principal == "myorg/alice"
    assert emitter.events[1].emitted_at_epoch_s == 1700000000
