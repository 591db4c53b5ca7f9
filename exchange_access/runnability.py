from __future__ import annotations

import logging
from collections.abc import Sequence

from exchange_access.predictor import AccessPredictor
from exchange_access.registry import CapabilityRegistry
from exchange_contracts import (
    AccessScope,
    CapabilityDescriptor,
    Identity,
    RequiredScope,
    RunnabilityReport,
    Verdict,
)

logger = logging.getLogger(__name__)


class RunnabilityResolver:
    """Partitions a capability registry into runnable and restricted operations."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        predictor: AccessPredictor | None = None,
    ) -> None:
        self._registry = registry
        self._predictor = predictor or AccessPredictor()

    def resolve(self, identity: Identity, verdicts: Sequence[Verdict]) -> RunnabilityReport:
        runnable: list[CapabilityDescriptor] = []
        restricted: list[CapabilityDescriptor] = []
        for descriptor in self._registry.capabilities:
            if self.is_runnable(descriptor, identity, verdicts):
                runnable.append(descriptor)
            else:
                restricted.append(descriptor)
        order = {category.name: index for index, category in enumerate(self._registry.categories)}

        def sort_key(item: CapabilityDescriptor) -> tuple[int, str]:
            return order.get(item.category, len(order)), item.name

        report = RunnabilityReport(
            identity=identity,
            verdicts=tuple(verdicts),
            runnable=tuple(sorted(runnable, key=sort_key)),
            restricted=tuple(sorted(restricted, key=sort_key)),
            categories=self._registry.categories,
            diagnostics=tuple(str(error) for error in self._registry.rejected),
        )
        logger.info(
            "%d of %d capabilities runnable for %s",
            len(report.runnable),
            len(report.runnable) + len(report.restricted),
            identity.principal,
        )
        return report

    def is_runnable(
        self,
        descriptor: CapabilityDescriptor,
        identity: Identity,
        verdicts: Sequence[Verdict],
    ) -> bool:
        scope = descriptor.required_scope
        if scope == RequiredScope.ANY_AUTHENTICATED:
            return True
        if not isinstance(scope, AccessScope):
            return False
        verdict = _find_verdict(verdicts, descriptor)
        if verdict is not None:
            return verdict.actual.allowed
        logger.debug("No probe for %s; falling back to role flags", descriptor.name)
        return self._predictor.predict(identity, scope).allowed


def _find_verdict(verdicts: Sequence[Verdict], descriptor: CapabilityDescriptor) -> Verdict | None:
    fallback: Verdict | None = None
    for verdict in verdicts:
        if verdict.scope != descriptor.required_scope:
            continue
        if descriptor.resource is None or verdict.actual.kind == descriptor.resource:
            return verdict
        if fallback is None:
            fallback = verdict
    return fallback
