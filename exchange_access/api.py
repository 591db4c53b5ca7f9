from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from types import TracebackType
from urllib.parse import quote

import httpx

from exchange_access.credentials import DEFAULT_TIMEOUT_S, ExchangeCredentials
from exchange_access.errors import ProbeTransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeResponse:
    status: int
    payload: dict[str, object] | None
    text: str


def org_path(org_id: str, *segments: str) -> str:
    parts = ["orgs", org_id, *segments]
    return "/" + "/".join(quote(part, safe="") for part in parts)


class ExchangeClient:
    """Read-only HTTP access to the Exchange API for a single set of credentials."""

    def __init__(
        self,
        credentials: ExchangeCredentials,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        verify_tls: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._base_url = credentials.base_url.rstrip("/")
        self._client = httpx.Client(
            auth=(credentials.auth_principal, credentials.password),
            timeout=timeout_s,
            verify=verify_tls,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def credentials(self) -> ExchangeCredentials:
        return self._credentials

    def get(self, path: str) -> ExchangeResponse:
        url = f"{self._base_url}{path}"
        logger.debug("GET %s", url)
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            logger.debug("GET %s failed: %s", url, exc)
            raise ProbeTransportError(path, str(exc) or type(exc).__name__) from exc
        text = response.text
        logger.debug("GET %s -> HTTP %s", url, response.status_code)
        return ExchangeResponse(
            status=response.status_code,
            payload=_decode_object(text),
            text=text,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ExchangeClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _decode_object(text: str) -> dict[str, object] | None:
    if text.strip() == "":
        return None
    try:
        loaded = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(loaded, dict):
        return None
    return loaded
