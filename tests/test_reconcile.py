from __future__ import annotations

import pytest

from exchange_access import reconcile, verdict_status
from exchange_contracts import AccessScope, PredictedClaim, ProbeOutcome, VerdictStatus


def _claim(allowed: bool, scope: AccessScope = AccessScope.OWN_ORG) -> PredictedClaim:
    return PredictedClaim(scope=scope, allowed=allowed, reason="test")


def _outcome(status: int, scope: AccessScope = AccessScope.OWN_ORG) -> ProbeOutcome:
    return ProbeOutcome(
        scope=scope,
        http_status=status,
        allowed=status == 200,
        reason=f"HTTP {status}",
        path="/orgs/myorg/users",
    )


@pytest.mark.parametrize(
    ("predicted", "status", "expected"),
    [
        (True, 200, VerdictStatus.CONFIRMED_ALLOW),
        (False, 403, VerdictStatus.CONFIRMED_DENY),
        (True, 403, VerdictStatus.MISMATCH_UNEXPECTED_DENY),
        (False, 200, VerdictStatus.MISMATCH_UNEXPECTED_ALLOW),
    ],
)
def test_status_table(predicted: bool, status: int, expected: VerdictStatus) -> None:
    verdict = reconcile(_claim(predicted), _outcome(status), level="list-org-users")
    assert verdict.status == expected
    assert verdict.level == "list-org-users"
    assert verdict.predicted.allowed is predicted
    assert verdict.actual.http_status == status
    assert verdict_status(verdict.predicted.allowed, verdict.actual.allowed) == expected


def test_every_pair_maps_to_a_distinct_status() -> None:
    statuses = {verdict_status(p, a) for p in (True, False) for a in (True, False)}
    assert statuses == set(VerdictStatus)


def test_unexpected_denial_mentions_acl_override() -> None:
    verdict = reconcile(_claim(True), _outcome(403))
    assert verdict.status.is_mismatch
    assert any("ACL override" in hint for hint in verdict.hints)


def test_confirmed_verdicts_carry_no_hints() -> None:
    assert reconcile(_claim(True), _outcome(200)).hints == ()
    assert reconcile(_claim(False), _outcome(401)).hints == ()


def test_unexpected_allow_has_its_own_hints() -> None:
    verdict = reconcile(_claim(False), _outcome(200))
    assert verdict.hints
    assert all("ACL override" not in hint for hint in verdict.hints)


def test_scope_mismatch_is_rejected() -> None:
    with pytest.raises(ValueError):
        reconcile(_claim(True, AccessScope.SELF), _outcome(200, AccessScope.ALL_ORGS))
