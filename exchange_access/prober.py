from __future__ import annotations

import logging
from collections.abc import Mapping

from exchange_access.api import ExchangeClient
from exchange_access.errors import ProbeTransportError
from exchange_contracts import AccessScope, ProbeOutcome, ResourceKind

logger = logging.getLogger(__name__)

STATUS_TRANSPORT_FAILURE = 0

REASON_OK = "API returned HTTP 200 (success)"
REASON_UNAUTHORIZED = "unauthorized."
REASON_FORBIDDEN = "forbidden."
REASON_NOT_FOUND = "resource/organization not found."
REASON_UNEXPECTED = "unexpected status/transport error"


def classify_status(http_status: int) -> tuple[bool, str]:
    if http_status == 200:
        return True, REASON_OK
    if http_status == 401:
        return False, REASON_UNAUTHORIZED
    if http_status == 403:
        return False, REASON_FORBIDDEN
    if http_status == 404:
        return False, REASON_NOT_FOUND
    if http_status == STATUS_TRANSPORT_FAILURE:
        return False, REASON_UNEXPECTED
    return False, f"{REASON_UNEXPECTED} (HTTP {http_status})"


def count_items(payload: Mapping[str, object] | None, kind: ResourceKind | None) -> int | None:
    if payload is None or kind is None:
        return None
    collection = payload.get(kind.envelope_key)
    if isinstance(collection, (Mapping, list)):
        return len(collection)
    return None


class AccessProber:
    """Issues one read-only request per probe and classifies the outcome."""

    def __init__(self, client: ExchangeClient) -> None:
        self._client = client

    def probe(
        self, scope: AccessScope, path: str, kind: ResourceKind | None = None
    ) -> ProbeOutcome:
        try:
            response = self._client.get(path)
        except ProbeTransportError as exc:
            logger.warning("Probe %s (%s) failed: %s", path, scope.value, exc.detail)
            return ProbeOutcome(
                scope=scope,
                http_status=STATUS_TRANSPORT_FAILURE,
                allowed=False,
                reason=f"{REASON_UNEXPECTED}: {exc.detail}",
                path=path,
                kind=kind,
            )

        allowed, reason = classify_status(response.status)
        item_count = count_items(response.payload, kind) if allowed else None
        if allowed and kind is not None and item_count is None:
            logger.warning("Probe %s returned HTTP 200 without a '%s' collection", path, kind.value)
        logger.debug("Probe %s (%s) -> HTTP %s", path, scope.value, response.status)
        return ProbeOutcome(
            scope=scope,
            http_status=response.status,
            allowed=allowed,
            reason=reason,
            item_count=item_count,
            path=path,
            kind=kind,
        )
