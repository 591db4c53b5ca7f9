from __future__ import annotations

from typing import Protocol

from exchange_contracts.models import VerdictEvent


class TraceEmitter(Protocol):
    def emit(self, event: VerdictEvent) -> None: ...
