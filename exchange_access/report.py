from __future__ import annotations

from exchange_access.chain import ChainResult
from exchange_contracts import CapabilityDescriptor, Identity, RunnabilityReport, Verdict


def identity_to_dict(identity: Identity) -> dict[str, object]:
    return {
        "org_id": identity.org_id,
        "username": identity.username,
        "is_org_admin": identity.is_org_admin,
        "is_hub_admin": identity.is_hub_admin,
        "role": identity.role.value,
    }


def verdict_to_dict(verdict: Verdict) -> dict[str, object]:
    return {
        "level": verdict.level,
        "scope": verdict.scope.value,
        "predicted": {
            "allowed": verdict.predicted.allowed,
            "reason": verdict.predicted.reason,
        },
        "actual": {
            "allowed": verdict.actual.allowed,
            "http_status": verdict.actual.http_status,
            "reason": verdict.actual.reason,
            "item_count": verdict.actual.item_count,
            "path": verdict.actual.path,
        },
        "status": verdict.status.value,
        "message": verdict.message,
        "hints": list(verdict.hints),
    }


def chain_to_dict(result: ChainResult, exit_code: int) -> dict[str, object]:
    primary = result.primary
    return {
        "identity": identity_to_dict(result.identity),
        "levels": [verdict_to_dict(verdict) for verdict in result.verdicts],
        "result": {
            "primary_level": result.primary_level,
            "scope": primary.scope.value,
            "status": primary.status.value,
            "allowed": primary.actual.allowed,
            "org_listing": result.org_listing_breadth(),
            "exit_code": exit_code,
        },
    }


def capability_to_dict(descriptor: CapabilityDescriptor) -> dict[str, object]:
    return {
        "name": descriptor.name,
        "category": descriptor.category,
        "required_scope": descriptor.required_scope.value,
        "description": descriptor.description,
        "notes": descriptor.notes,
    }


def runnability_to_dict(report: RunnabilityReport) -> dict[str, object]:
    return {
        "identity": identity_to_dict(report.identity),
        "levels": [verdict_to_dict(verdict) for verdict in report.verdicts],
        "runnable": [capability_to_dict(item) for item in report.runnable],
        "restricted": [capability_to_dict(item) for item in report.restricted],
        "diagnostics": list(report.diagnostics),
        "summary": report.summary(),
    }
