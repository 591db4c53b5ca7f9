from exchange_access.api import ExchangeClient, ExchangeResponse, org_path
from exchange_access.chain import (
    ChainResult,
    LevelChainRunner,
    VerificationLevel,
    full_chain,
    org_access_chain,
    primary_exit_code,
    user_listing_chain,
)
from exchange_access.client import AccessClient, CapabilityCheck
from exchange_access.credentials import (
    ExchangeCredentials,
    ExitPolicy,
    RunConfig,
    credentials_from_mapping,
    load_credentials,
    parse_user_auth,
)
from exchange_access.errors import (
    CredentialError,
    ExchangeAccessError,
    IdentityResolutionError,
    ProbeTransportError,
    RegistryConfigError,
)
from exchange_access.identity import IdentityResolver, parse_user_record
from exchange_access.predictor import AccessPredictor, PredictionRule, predict_access
from exchange_access.prober import AccessProber, classify_status
from exchange_access.reconcile import reconcile, verdict_status
from exchange_access.registry import (
    DEFAULT_CAPABILITIES,
    DEFAULT_CATEGORIES,
    CapabilityRegistry,
)
from exchange_access.runnability import RunnabilityResolver
from exchange_access.telemetry import OpenTelemetryTraceEmitter

__all__ = [
    "AccessClient",
    "AccessPredictor",
    "AccessProber",
    "CapabilityCheck",
    "CapabilityRegistry",
    "ChainResult",
    "CredentialError",
    "DEFAULT_CAPABILITIES",
    "DEFAULT_CATEGORIES",
    "ExchangeAccessError",
    "ExchangeClient",
    "ExchangeCredentials",
    "ExchangeResponse",
    "ExitPolicy",
    "IdentityResolutionError",
    "IdentityResolver",
    "LevelChainRunner",
    "OpenTelemetryTraceEmitter",
    "PredictionRule",
    "ProbeTransportError",
    "RegistryConfigError",
    "RunConfig",
    "RunnabilityResolver",
    "VerificationLevel",
    "classify_status",
    "credentials_from_mapping",
    "full_chain",
    "load_credentials",
    "org_access_chain",
    "org_path",
    "parse_user_auth",
    "parse_user_record",
    "predict_access",
    "primary_exit_code",
    "reconcile",
    "user_listing_chain",
    "verdict_status",
]
