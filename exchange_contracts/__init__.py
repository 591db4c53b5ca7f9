from exchange_contracts.models import (
    AccessScope,
    CapabilityCategory,
    CapabilityDescriptor,
    CapabilityScope,
    Identity,
    IdentityRole,
    PredictedClaim,
    ProbeOutcome,
    RequiredScope,
    ResourceKind,
    RunnabilityReport,
    Verdict,
    VerdictEvent,
    VerdictStatus,
)
from exchange_contracts.protocols import TraceEmitter

__all__ = [
    "AccessScope",
    "CapabilityCategory",
    "CapabilityDescriptor",
    "CapabilityScope",
    "Identity",
    "IdentityRole",
    "PredictedClaim",
    "ProbeOutcome",
    "RequiredScope",
    "ResourceKind",
    "RunnabilityReport",
    "TraceEmitter",
    "Verdict",
    "VerdictEvent",
    "VerdictStatus",
]
