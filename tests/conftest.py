from __future__ import annotations

from collections.abc import Callable, Mapping

import httpx
import pytest

from exchange_access import AccessClient, ExchangeClient, ExchangeCredentials

BASE_URL = "https://exchange.test/v1"

Route = tuple[int, object]


def route_transport(
    routes: Mapping[str, Route], seen: list[str] | None = None
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        if seen is not None:
            seen.append(path)
        status, body = routes.get(path, (404, {"code": "not_found", "msg": "not found"}))
        if isinstance(body, Exception):
            raise body
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def credentials() -> ExchangeCredentials:
    return ExchangeCredentials(
        base_url=BASE_URL,
        org_id="myorg",
        username="alice",
        password="s3cret",
    )


@pytest.fixture
def exchange_factory(
    credentials: ExchangeCredentials,
) -> Callable[..., ExchangeClient]:
    def _build(routes: Mapping[str, Route], seen: list[str] | None = None) -> ExchangeClient:
        return ExchangeClient(credentials, transport=route_transport(routes, seen))

    return _build


@pytest.fixture
def access_client_factory(
    credentials: ExchangeCredentials,
) -> Callable[..., AccessClient]:
    def _build(routes: Mapping[str, Route], **kwargs: object) -> AccessClient:
        return AccessClient.from_credentials(
            credentials, transport=route_transport(routes), **kwargs  # type: ignore[arg-type]
        )

    return _build
