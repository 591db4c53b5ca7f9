"""
Level chains: ordered predict/probe/reconcile runs from broadest to narrowest scope.

Every level runs regardless of earlier outcomes. The organization-scope
level is the primary level and drives the exit code.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from exchange_access.api import org_path
from exchange_access.credentials import ExitPolicy
from exchange_access.predictor import AccessPredictor
from exchange_access.prober import AccessProber
from exchange_access.reconcile import reconcile
from exchange_contracts import (
    AccessScope,
    Identity,
    ResourceKind,
    TraceEmitter,
    Verdict,
    VerdictEvent,
    VerdictStatus,
)

logger = logging.getLogger(__name__)

EXIT_ALLOWED = 0
EXIT_DENIED = 1
EXIT_ERROR = 2

BREADTH_ALL = "all"
BREADTH_OWN = "own"
BREADTH_NONE = "none"

_ORG_LEVEL_SCOPES = (AccessScope.OTHER_ORG, AccessScope.OWN_ORG)


@dataclass(frozen=True)
class VerificationLevel:
    name: str
    description: str
    scope: AccessScope
    path: str
    kind: ResourceKind | None = None
    primary: bool = False


@dataclass(frozen=True)
class ChainResult:
    identity: Identity
    verdicts: tuple[Verdict, ...]
    primary_level: str

    @property
    def primary(self) -> Verdict:
        for verdict in self.verdicts:
            if verdict.level == self.primary_level:
                return verdict
        raise LookupError(f"No verdict recorded for primary level {self.primary_level}")

    def verdict_for(
        self, scope: AccessScope, kind: ResourceKind | None = None
    ) -> Verdict | None:
        fallback: Verdict | None = None
        for verdict in self.verdicts:
            if verdict.scope != scope:
                continue
            if kind is None or verdict.actual.kind == kind:
                return verdict
            if fallback is None:
                fallback = verdict
        return fallback

    def org_listing_breadth(self) -> str:
        verdict = self.verdict_for(AccessScope.ALL_ORGS, ResourceKind.ORGS)
        if verdict is None or not verdict.actual.allowed:
            return BREADTH_NONE
        if (verdict.actual.item_count or 0) > 1:
            return BREADTH_ALL
        return BREADTH_OWN

    def exit_code(self, policy: ExitPolicy = ExitPolicy.ACTUAL) -> int:
        return primary_exit_code(self.primary, policy)


def primary_exit_code(verdict: Verdict, policy: ExitPolicy = ExitPolicy.ACTUAL) -> int:
    """
    Map the primary verdict to a process exit code.

    ``ACTUAL`` reports whether access exists, so an unexpected allow exits 0.
    ``STRICT`` only accepts a confirmed allow.
    """
    if policy == ExitPolicy.STRICT:
        return EXIT_ALLOWED if verdict.status == VerdictStatus.CONFIRMED_ALLOW else EXIT_DENIED
    return EXIT_ALLOWED if verdict.actual.allowed else EXIT_DENIED


class LevelChainRunner:
    def __init__(
        self,
        predictor: AccessPredictor,
        prober: AccessProber,
        trace_emitter: TraceEmitter | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._predictor = predictor
        self._prober = prober
        self._trace_emitter = trace_emitter
        self._clock = clock

    def run(self, identity: Identity, levels: Sequence[VerificationLevel]) -> ChainResult:
        primary_level = _primary_level_name(levels)
        verdicts: list[Verdict] = []
        for level in levels:
            predicted = self._predictor.predict(identity, level.scope)
            actual = self._prober.probe(level.scope, level.path, level.kind)
            verdict = reconcile(predicted, actual, level=level.name)
            logger.info(
                "Level %s (%s): predicted=%s actual=%s status=%s",
                level.name,
                level.scope.value,
                predicted.allowed,
                actual.allowed,
                verdict.status.value,
            )
            self._emit(identity, verdict)
            verdicts.append(verdict)
        return ChainResult(
            identity=identity,
            verdicts=tuple(verdicts),
            primary_level=primary_level,
        )

    def _emit(self, identity: Identity, verdict: Verdict) -> None:
        if self._trace_emitter is None:
            return
        self._trace_emitter.emit(
            VerdictEvent(
                event_type="exchange.access.verdict",
                principal=identity.principal,
                level=verdict.level,
                scope=verdict.scope,
                status=verdict.status,
                predicted_allowed=verdict.predicted.allowed,
                actual_allowed=verdict.actual.allowed,
                http_status=verdict.actual.http_status,
                emitted_at_epoch_s=int(self._clock()),
            )
        )


def _primary_level_name(levels: Sequence[VerificationLevel]) -> str:
    names = [level.name for level in levels]
    if len(set(names)) != len(names):
        raise ValueError("Verification level names must be unique.")
    flagged = [level for level in levels if level.primary]
    if len(flagged) > 1:
        raise ValueError("At most one verification level can be primary.")
    if flagged:
        return flagged[0].name
    for scope in _ORG_LEVEL_SCOPES:
        for level in levels:
            if level.scope == scope:
                return level.name
    raise ValueError("A level chain needs an organization-scope level.")


def _self_level(org_id: str, username: str) -> VerificationLevel:
    return VerificationLevel(
        name="view-own-record",
        description="View own user record and role",
        scope=AccessScope.SELF,
        path=org_path(org_id, "users", username),
        kind=ResourceKind.USERS,
    )


def _own_org_record_level(org_id: str) -> VerificationLevel:
    return VerificationLevel(
        name="view-own-org",
        description=f"View organization '{org_id}' details",
        scope=AccessScope.SELF,
        path=org_path(org_id),
        kind=ResourceKind.ORGS,
    )


def _all_orgs_level() -> VerificationLevel:
    return VerificationLevel(
        name="list-all-orgs",
        description="List ALL organizations",
        scope=AccessScope.ALL_ORGS,
        path="/orgs",
        kind=ResourceKind.ORGS,
    )


def _org_listing_level(
    org_id: str, kind: ResourceKind, target_org: str | None = None, primary: bool = False
) -> VerificationLevel:
    target = target_org or org_id
    scope = AccessScope.OWN_ORG if target == org_id else AccessScope.OTHER_ORG
    prefix = "list-org" if scope == AccessScope.OWN_ORG else "list-other-org"
    return VerificationLevel(
        name=f"{prefix}-{kind.value}",
        description=f"List {kind.value} in organization '{target}'",
        scope=scope,
        path=org_path(target, kind.value),
        kind=kind,
        primary=primary,
    )


def org_access_chain(org_id: str, username: str) -> tuple[VerificationLevel, ...]:
    return (
        _all_orgs_level(),
        _org_listing_level(org_id, ResourceKind.USERS, primary=True),
        _own_org_record_level(org_id),
        _self_level(org_id, username),
    )


def user_listing_chain(
    org_id: str, username: str, target_org: str | None = None
) -> tuple[VerificationLevel, ...]:
    return (
        _org_listing_level(org_id, ResourceKind.USERS, target_org=target_org, primary=True),
        _self_level(org_id, username),
    )


def full_chain(
    org_id: str, username: str, target_org: str | None = None
) -> tuple[VerificationLevel, ...]:
    crosses_org = target_org is not None and target_org != org_id
    levels = [
        _all_orgs_level(),
        _org_listing_level(org_id, ResourceKind.USERS, primary=not crosses_org),
    ]
    if crosses_org:
        levels.append(
            _org_listing_level(org_id, ResourceKind.USERS, target_org=target_org, primary=True)
        )
    levels.extend(
        (
            _org_listing_level(org_id, ResourceKind.NODES),
            _org_listing_level(org_id, ResourceKind.SERVICES),
            _self_level(org_id, username),
        )
    )
    return tuple(levels)
