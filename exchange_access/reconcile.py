from __future__ import annotations

import logging

from exchange_contracts import PredictedClaim, ProbeOutcome, Verdict, VerdictStatus

logger = logging.getLogger(__name__)

UNEXPECTED_DENY_HINTS = (
    "The Exchange may enforce additional permission restrictions.",
    "The target organization may carry a custom ACL override.",
    "The target resource state may differ from expectations (e.g. organization removed).",
    "There may be a temporary issue with the Exchange server.",
)
UNEXPECTED_ALLOW_HINTS = (
    "The identity may have been granted additional permissions.",
    "The Exchange may have permissive default settings.",
    "Review the organization's permission configuration.",
)

_STATUS_TABLE: dict[tuple[bool, bool], VerdictStatus] = {
    (True, True): VerdictStatus.CONFIRMED_ALLOW,
    (False, False): VerdictStatus.CONFIRMED_DENY,
    (True, False): VerdictStatus.MISMATCH_UNEXPECTED_DENY,
    (False, True): VerdictStatus.MISMATCH_UNEXPECTED_ALLOW,
}

_MESSAGES: dict[VerdictStatus, str] = {
    VerdictStatus.CONFIRMED_ALLOW: "Access confirmed as expected",
    VerdictStatus.CONFIRMED_DENY: "Access correctly denied as expected",
    VerdictStatus.MISMATCH_UNEXPECTED_DENY: "Unexpected denial: access was predicted but refused",
    VerdictStatus.MISMATCH_UNEXPECTED_ALLOW: (
        "Unexpected access: access was granted but not predicted"
    ),
}


def verdict_status(predicted_allowed: bool, actual_allowed: bool) -> VerdictStatus:
    return _STATUS_TABLE[(bool(predicted_allowed), bool(actual_allowed))]


def reconcile(predicted: PredictedClaim, actual: ProbeOutcome, level: str = "") -> Verdict:
    if predicted.scope != actual.scope:
        raise ValueError(
            f"Cannot reconcile scope {predicted.scope.value} against {actual.scope.value}"
        )
    status = verdict_status(predicted.allowed, actual.allowed)
    hints: tuple[str, ...] = ()
    if status == VerdictStatus.MISMATCH_UNEXPECTED_DENY:
        hints = UNEXPECTED_DENY_HINTS
        logger.warning(
            "Unexpected denial at %s (HTTP %s): %s",
            actual.path or actual.scope.value,
            actual.http_status,
            actual.reason,
        )
    elif status == VerdictStatus.MISMATCH_UNEXPECTED_ALLOW:
        hints = UNEXPECTED_ALLOW_HINTS
        logger.warning("Unexpected access at %s", actual.path or actual.scope.value)
    return Verdict(
        scope=predicted.scope,
        predicted=predicted,
        actual=actual,
        status=status,
        message=_MESSAGES[status],
        hints=hints,
        level=level,
    )
