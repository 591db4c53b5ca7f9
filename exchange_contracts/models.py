from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class AccessScope(str, Enum):
    SELF = "self"
    OWN_ORG = "own_org"
    OTHER_ORG = "other_org"
    ALL_ORGS = "all_orgs"


class RequiredScope(str, Enum):
    ANY_AUTHENTICATED = "any_authenticated"


class ResourceKind(str, Enum):
    ORGS = "orgs"
    USERS = "users"
    NODES = "nodes"
    SERVICES = "services"

    @property
    def envelope_key(self) -> str:
        return self.value


class IdentityRole(str, Enum):
    HUB_ADMIN = "hub_admin"
    ORG_ADMIN = "org_admin"
    USER = "user"


class VerdictStatus(str, Enum):
    CONFIRMED_ALLOW = "confirmed_allow"
    CONFIRMED_DENY = "confirmed_deny"
    MISMATCH_UNEXPECTED_DENY = "mismatch_unexpected_deny"
    MISMATCH_UNEXPECTED_ALLOW = "mismatch_unexpected_allow"

    @property
    def is_mismatch(self) -> bool:
        return self in {
            VerdictStatus.MISMATCH_UNEXPECTED_DENY,
            VerdictStatus.MISMATCH_UNEXPECTED_ALLOW,
        }


@dataclass(frozen=True)
class Identity:
    org_id: str
    username: str
    is_org_admin: bool = False
    is_hub_admin: bool = False

    @property
    def principal(self) -> str:
        return f"{self.org_id}/{self.username}"

    @property
    def role(self) -> IdentityRole:
        if self.is_hub_admin:
            return IdentityRole.HUB_ADMIN
        if self.is_org_admin:
            return IdentityRole.ORG_ADMIN
        return IdentityRole.USER


@dataclass(frozen=True)
class PredictedClaim:
    scope: AccessScope
    allowed: bool
    reason: str


@dataclass(frozen=True)
class ProbeOutcome:
    scope: AccessScope
    http_status: int
    allowed: bool
    reason: str
    item_count: int | None = None
    path: str = ""
    kind: ResourceKind | None = None


@dataclass(frozen=True)
class Verdict:
    scope: AccessScope
    predicted: PredictedClaim
    actual: ProbeOutcome
    status: VerdictStatus
    message: str = ""
    hints: tuple[str, ...] = field(default_factory=tuple)
    level: str = ""


CapabilityScope = Union[AccessScope, RequiredScope]


@dataclass(frozen=True)
class CapabilityCategory:
    name: str
    title: str


@dataclass(frozen=True)
class CapabilityDescriptor:
    name: str
    category: str
    required_scope: CapabilityScope
    description: str
    notes: str = ""
    resource: ResourceKind | None = None

    @property
    def requires_probe(self) -> bool:
        return self.required_scope != RequiredScope.ANY_AUTHENTICATED


@dataclass(frozen=True)
class RunnabilityReport:
    identity: Identity
    verdicts: tuple[Verdict, ...]
    runnable: tuple[CapabilityDescriptor, ...]
    restricted: tuple[CapabilityDescriptor, ...]
    categories: tuple[CapabilityCategory, ...] = field(default_factory=tuple)
    diagnostics: tuple[str, ...] = field(default_factory=tuple)

    def grouped_runnable(
        self,
    ) -> tuple[tuple[CapabilityCategory, tuple[CapabilityDescriptor, ...]], ...]:
        return _group_by_category(self.categories, self.runnable)

    def grouped_restricted(
        self,
    ) -> tuple[tuple[CapabilityCategory, tuple[CapabilityDescriptor, ...]], ...]:
        return _group_by_category(self.categories, self.restricted)

    def summary(self) -> dict[str, int]:
        return {
            "total": len(self.runnable) + len(self.restricted),
            "runnable": len(self.runnable),
            "restricted": len(self.restricted),
            "rejected": len(self.diagnostics),
            "mismatches": sum(1 for verdict in self.verdicts if verdict.status.is_mismatch),
        }


@dataclass(frozen=True)
class VerdictEvent:
    event_type: str
    principal: str
    level: str
    scope: AccessScope
    status: VerdictStatus
    predicted_allowed: bool
    actual_allowed: bool
    http_status: int
    emitted_at_epoch_s: int


def _group_by_category(
    categories: tuple[CapabilityCategory, ...],
    descriptors: tuple[CapabilityDescriptor, ...],
) -> tuple[tuple[CapabilityCategory, tuple[CapabilityDescriptor, ...]], ...]:
    groups: list[tuple[CapabilityCategory, tuple[CapabilityDescriptor, ...]]] = []
    for category in categories:
        members = tuple(
            sorted(
                (item for item in descriptors if item.category == category.name),
                key=lambda item: item.name,
            )
        )
        if members:
            groups.append((category, members))
    return tuple(groups)
