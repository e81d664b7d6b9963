from __future__ import annotations

from typing import Protocol

from app.models.credential import Credential
from app.repos.errors import DuplicateCredentialError


class CredentialRepo(Protocol):
    async def add(self, credential: Credential) -> None: ...
    async def get_by_id(self, credential_id: str) -> Credential | None: ...
    async def get_by_holder_and_type(
        self, holder_name: str, credential_type: str
    ) -> Credential | None: ...
    async def list_recent(self, limit: int, offset: int) -> list[Credential]: ...
    async def count(self) -> int: ...


class InMemoryCredentialRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Credential] = {}
        self._by_holder_type: dict[tuple[str, str], Credential] = {}
        # Insertion order doubles as creation order.
        self._ordered: list[Credential] = []

    async def add(self, credential: Credential) -> None:
        # No await between the checks and the writes, so concurrent tasks on
        # the event loop cannot interleave here.
        key = (credential.holder_name, credential.credential_type)
        if credential.id in self._by_id:
            raise DuplicateCredentialError(f"credential id {credential.id} exists")
        if key in self._by_holder_type:
            raise DuplicateCredentialError(
                f"credential for holder/type {key!r} exists"
            )
        self._by_id[credential.id] = credential
        self._by_holder_type[key] = credential
        self._ordered.append(credential)

    async def get_by_id(self, credential_id: str) -> Credential | None:
        return self._by_id.get(credential_id)

    async def get_by_holder_and_type(
        self, holder_name: str, credential_type: str
    ) -> Credential | None:
        return self._by_holder_type.get((holder_name, credential_type))

    async def list_recent(self, limit: int, offset: int) -> list[Credential]:
        newest_first = list(reversed(self._ordered))
        return newest_first[offset : offset + limit]

    async def count(self) -> int:
        return len(self._ordered)

    def clear(self) -> None:
        self._by_id.clear()
        self._by_holder_type.clear()
        self._ordered.clear()
