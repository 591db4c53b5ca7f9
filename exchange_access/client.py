from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType

import httpx

from exchange_access.api import ExchangeClient
from exchange_access.chain import (
    ChainResult,
    LevelChainRunner,
    full_chain,
    org_access_chain,
    user_listing_chain,
)
from exchange_access.credentials import (
    ExchangeCredentials,
    RunConfig,
    load_credentials,
    validate_org_id,
)
from exchange_access.identity import IdentityResolver
from exchange_access.predictor import AccessPredictor
from exchange_access.prober import AccessProber
from exchange_access.registry import CapabilityRegistry
from exchange_access.runnability import RunnabilityResolver
from exchange_contracts import Identity, RunnabilityReport, TraceEmitter


@dataclass(frozen=True)
class CapabilityCheck:
    chain: ChainResult
    report: RunnabilityReport


class AccessClient:
    """
    Entry point for access checks against one Exchange identity.

    Each check resolves the identity first; an ``IdentityResolutionError``
    aborts the check before any probe is issued.
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        predictor: AccessPredictor | None = None,
        registry: CapabilityRegistry | None = None,
        trace_emitter: TraceEmitter | None = None,
    ) -> None:
        self._exchange = exchange
        self._predictor = predictor or AccessPredictor()
        self._registry = registry or CapabilityRegistry()
        self._resolver = IdentityResolver(exchange)
        self._runner = LevelChainRunner(
            predictor=self._predictor,
            prober=AccessProber(exchange),
            trace_emitter=trace_emitter,
        )

    @classmethod
    def from_credentials(
        cls,
        credentials: ExchangeCredentials,
        config: RunConfig | None = None,
        registry: CapabilityRegistry | None = None,
        trace_emitter: TraceEmitter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> AccessClient:
        run_config = config or RunConfig()
        exchange = ExchangeClient(
            credentials,
            timeout_s=run_config.timeout_s,
            verify_tls=run_config.verify_tls,
            transport=transport,
        )
        return cls(exchange=exchange, registry=registry, trace_emitter=trace_emitter)

    @classmethod
    def from_env(
        cls,
        env_file: str | None = None,
        config: RunConfig | None = None,
        registry: CapabilityRegistry | None = None,
        trace_emitter: TraceEmitter | None = None,
    ) -> AccessClient:
        return cls.from_credentials(
            load_credentials(env_file),
            config=config,
            registry=registry,
            trace_emitter=trace_emitter,
        )

    @property
    def credentials(self) -> ExchangeCredentials:
        return self._exchange.credentials

    def resolve_identity(self) -> Identity:
        return self._resolver.resolve()

    def can_list_users(self, target_org: str | None = None) -> ChainResult:
        identity = self.resolve_identity()
        levels = user_listing_chain(
            identity.org_id, identity.username, target_org=_checked_org(target_org)
        )
        return self._runner.run(identity, levels)

    def can_list_orgs(self) -> ChainResult:
        identity = self.resolve_identity()
        return self._runner.run(identity, org_access_chain(identity.org_id, identity.username))

    def can_do_anything(self, target_org: str | None = None) -> CapabilityCheck:
        identity = self.resolve_identity()
        levels = full_chain(identity.org_id, identity.username, target_org=_checked_org(target_org))
        chain = self._runner.run(identity, levels)
        report = RunnabilityResolver(self._registry, predictor=self._predictor).resolve(
            identity, chain.verdicts
        )
        return CapabilityCheck(chain=chain, report=report)

    def close(self) -> None:
        self._exchange.close()

    def __enter__(self) -> AccessClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _checked_org(target_org: str | None) -> str | None:
    if target_org is None or target_org.strip() == "":
        return None
    return validate_org_id(target_org.strip())
