from __future__ import annotations


class ExchangeAccessError(RuntimeError):
    pass


class CredentialError(ExchangeAccessError):
    pass


class IdentityResolutionError(ExchangeAccessError):
    def __init__(self, status: int, body: str, detail: str | None = None) -> None:
        self.status = status
        self.body = body
        message = f"Failed to fetch user information (HTTP {status})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProbeTransportError(ExchangeAccessError):
    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Transport error reaching {path}: {detail}")


class RegistryConfigError(ExchangeAccessError):
    def __init__(self, entry_name: str, detail: str) -> None:
        self.entry_name = entry_name
        self.detail = detail
        super().__init__(f"Capability '{entry_name}' rejected: {detail}")
