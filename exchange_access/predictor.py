from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from exchange_contracts import AccessScope, Identity, PredictedClaim

REASON_HUB_ADMIN = "hub admin may access any organization"
REASON_ORG_ADMIN = "org admin may access its own organization"
REASON_ORG_ADMIN_CROSS_ORG = "org admin scope does not cross organizations."
REASON_SELF = "every authenticated identity may read its own record"
REASON_NO_ROLE = "identity holds no elevated role."

_ORG_SCOPES = frozenset({AccessScope.OWN_ORG, AccessScope.SELF})
_CROSS_ORG_SCOPES = frozenset({AccessScope.OTHER_ORG, AccessScope.ALL_ORGS})


@dataclass(frozen=True)
class PredictionRule:
    name: str
    matches: Callable[[Identity, AccessScope], bool]
    allowed: bool
    reason: str


DEFAULT_RULES: tuple[PredictionRule, ...] = (
    PredictionRule(
        name="hub-admin",
        matches=lambda identity, scope: identity.is_hub_admin,
        allowed=True,
        reason=REASON_HUB_ADMIN,
    ),
    PredictionRule(
        name="org-admin-own-org",
        matches=lambda identity, scope: identity.is_org_admin and scope in _ORG_SCOPES,
        allowed=True,
        reason=REASON_ORG_ADMIN,
    ),
    PredictionRule(
        name="org-admin-cross-org",
        matches=lambda identity, scope: identity.is_org_admin and scope in _CROSS_ORG_SCOPES,
        allowed=False,
        reason=REASON_ORG_ADMIN_CROSS_ORG,
    ),
    PredictionRule(
        name="self",
        matches=lambda identity, scope: scope == AccessScope.SELF,
        allowed=True,
        reason=REASON_SELF,
    ),
)

FALLBACK_RULE = PredictionRule(
    name="no-role",
    matches=lambda identity, scope: True,
    allowed=False,
    reason=REASON_NO_ROLE,
)


class AccessPredictor:
    """First-match rule table mapping role flags and a scope to the expected access."""

    def __init__(self, rules: tuple[PredictionRule, ...] = DEFAULT_RULES) -> None:
        self._rules = rules + (FALLBACK_RULE,)

    def predict(self, identity: Identity, scope: AccessScope) -> PredictedClaim:
        rule = self.matching_rule(identity, scope)
        return PredictedClaim(scope=scope, allowed=rule.allowed, reason=rule.reason)

    def matching_rule(self, identity: Identity, scope: AccessScope) -> PredictionRule:
        for rule in self._rules:
            if rule.matches(identity, scope):
                return rule
        return FALLBACK_RULE


def predict_access(identity: Identity, scope: AccessScope) -> PredictedClaim:
    return _DEFAULT_PREDICTOR.predict(identity, scope)


_DEFAULT_PREDICTOR = AccessPredictor()
