"""Credential signing and signature checks.

THE SCHEME
-----------
    signature = sha256_hex( canonical_json(fields) + secret )

canonical_json is the seven canonical fields (see CANONICAL_FIELDS) as a
compact JSON object in a fixed key order:

    {"id":"…","holder_name":"…","issuer":"…","issued_date":"…",
     "credential_type":"…","expiry_date":"…","worker_id":"…"}

No whitespace, non-ASCII characters emitted as-is, lone surrogates escaped
as \\uXXXX.  That is byte-for-byte what JavaScript's JSON.stringify
produces for the same object, so credentials signed by the earlier Node
services still verify here, given the same secret (CREDENTIAL_SECRET, or
JWT_SECRET as those services named it).

WHAT THIS IS NOT
-----------------
A keyed hash with one shared secret is a MAC, not a digital signature:
anyone holding the secret can mint credentials, and a verifier must hold the
same secret as the issuer.  That is acceptable here because both services are
run by the same operator.  Appending the secret (rather than using HMAC) is
kept for compatibility with existing credentials; SHA-256 is not vulnerable
to length extension when the secret is a suffix.

Tamper detection falls out of the construction: change any canonical field
after signing and the recomputed value no longer matches the stored one.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import re
import uuid
from collections.abc import Mapping

from app.models.credential import CANONICAL_FIELDS, Credential

_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def canonical_payload(fields: Mapping[str, str]) -> str:
    """Serialize the canonical fields deterministically.

    Raises KeyError if a canonical field is missing.
    """
    ordered = {name: fields[name] for name in CANONICAL_FIELDS}
    payload = json.dumps(ordered, separators=(",", ":"), ensure_ascii=False)
    # JSON.stringify escapes lone surrogates; they cannot be UTF-8 encoded.
    return _LONE_SURROGATE.sub(lambda m: f"\\u{ord(m.group()):04x}", payload)


class SignatureEngine:
    """Signs and checks credentials with a process-wide shared secret.

    Built once from Settings and handed to the workflows; holds no other
    state, so one instance is safe to share across concurrent requests.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("signing secret must be non-empty")
        self._secret = secret

    def __repr__(self) -> str:
        return "SignatureEngine(secret=<redacted>)"

    def sign(self, fields: Mapping[str, str]) -> str:
        data = canonical_payload(fields) + self._secret
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    def verify(self, credential: Credential) -> bool:
        """True iff the credential's signature matches its own canonical fields.

        Constant-time comparison: a plain == would let response timing leak
        how many leading characters of a guessed signature were right.
        """
        expected = self.sign(credential.canonical_fields())
        return hmac.compare_digest(
            expected.encode("utf-8"),
            credential.signature.encode("utf-8", "surrogatepass"),
        )

    @staticmethod
    def generate_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def hash(data: str) -> str:
        return hashlib.sha256(data.encode("utf-8")).hexdigest()
