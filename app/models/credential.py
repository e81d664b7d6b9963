from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from app.core.clock import parse_iso

# Order matters: the signature is computed over these fields serialized in
# exactly this order.
CANONICAL_FIELDS: tuple[str, ...] = (
    "id",
    "holder_name",
    "issuer",
    "issued_date",
    "credential_type",
    "expiry_date",
    "worker_id",
)

# Compared against the issuance service's record during verification.
COMPARED_FIELDS: tuple[str, ...] = (
    "id",
    "holder_name",
    "issuer",
    "issued_date",
    "credential_type",
    "expiry_date",
    "signature",
)

CREDENTIAL_TYPES: tuple[str, ...] = (
    "certificate",
    "license",
    "badge",
    "diploma",
    "permit",
    "qualification",
)


@dataclass(frozen=True, slots=True)
class Credential:
    """A signed credential record.

    Dates are ISO-8601 strings, kept verbatim: re-rendering them would change
    the bytes the signature covers.
    """

    id: str
    holder_name: str
    issuer: str
    issued_date: str
    credential_type: str
    expiry_date: str
    worker_id: str
    signature: str
    created_at: str
    updated_at: str

    def canonical_fields(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in CANONICAL_FIELDS}

    def differing_fields(self, other: Credential) -> list[str]:
        return [
            name for name in COMPARED_FIELDS if getattr(self, name) != getattr(other, name)
        ]

    def is_expired(self, now: datetime) -> bool:
        return parse_iso(self.expiry_date) < now

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Credential:
        """Build from a JSON-ish mapping; extra keys (is_valid, ...) are ignored.

        Raises KeyError when a field is missing.
        """
        return Credential(
            id=str(data["id"]),
            holder_name=str(data["holder_name"]),
            issuer=str(data["issuer"]),
            issued_date=str(data["issued_date"]),
            credential_type=str(data["credential_type"]),
            expiry_date=str(data["expiry_date"]),
            worker_id=str(data["worker_id"]),
            signature=str(data["signature"]),
            created_at=str(data["created_at"]),
            updated_at=str(data["updated_at"]),
        )
