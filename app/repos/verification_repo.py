from __future__ import annotations

from typing import Protocol

from app.models.verification import VerificationResult


class VerificationRepo(Protocol):
    """Append-only store of verification attempts."""

    async def add(self, result: VerificationResult) -> None: ...
    async def get_by_id(self, verification_id: str) -> VerificationResult | None: ...
    async def list_by_credential_id(
        self, credential_id: str
    ) -> list[VerificationResult]: ...
    async def list_recent(self, limit: int, offset: int) -> list[VerificationResult]: ...
    async def count(self) -> int: ...


class InMemoryVerificationRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, VerificationResult] = {}
        self._ordered: list[VerificationResult] = []

    async def add(self, result: VerificationResult) -> None:
        if result.id in self._by_id:
            raise ValueError(f"verification id {result.id} exists")
        self._by_id[result.id] = result
        self._ordered.append(result)

    async def get_by_id(self, verification_id: str) -> VerificationResult | None:
        return self._by_id.get(verification_id)

    async def list_by_credential_id(
        self, credential_id: str
    ) -> list[VerificationResult]:
        return [r for r in reversed(self._ordered) if r.credential_id == credential_id]

    async def list_recent(self, limit: int, offset: int) -> list[VerificationResult]:
        newest_first = list(reversed(self._ordered))
        return newest_first[offset : offset + limit]

    async def count(self) -> int:
        return len(self._ordered)

    def clear(self) -> None:
        self._by_id.clear()
        self._ordered.clear()
