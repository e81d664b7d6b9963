"""Tests for the credential signature engine."""

from __future__ import annotations

import hashlib
import json
from dataclasses import replace

import pytest

from app.models.credential import CANONICAL_FIELDS, Credential
from app.services.signature_service import SignatureEngine, canonical_payload

FIELDS = {
    "id": "3f2b8a9e-1c4d-4e5f-9a6b-7c8d9e0f1a2b",
    "holder_name": "John Doe",
    "issuer": "Kube Credential Authority",
    "issued_date": "2026-01-01T00:00:00.000Z",
    "credential_type": "certificate",
    "expiry_date": "2027-01-01T00:00:00.000Z",
    "worker_id": "worker-1",
}


def _credential(engine: SignatureEngine, **overrides: str) -> Credential:
    fields = dict(FIELDS, **overrides)
    return Credential(
        **fields,
        signature=engine.sign(fields),
        created_at=fields["issued_date"],
        updated_at=fields["issued_date"],
    )


def test_canonical_payload_is_compact_json_in_fixed_order() -> None:
    shuffled = dict(reversed(list(FIELDS.items())))
    payload = canonical_payload(shuffled)
    assert payload.startswith('{"id":"3f2b8a9e')
    assert ", " not in payload and '": ' not in payload
    assert list(json.loads(payload)) == list(CANONICAL_FIELDS)


def test_canonical_payload_ignores_extra_keys() -> None:
    assert canonical_payload({**FIELDS, "signature": "x"}) == canonical_payload(FIELDS)


def test_canonical_payload_keeps_non_ascii_verbatim() -> None:
    payload = canonical_payload(dict(FIELDS, holder_name="José Müller"))
    assert "José Müller" in payload


def test_canonical_payload_missing_field_raises() -> None:
    fields = dict(FIELDS)
    del fields["worker_id"]
    with pytest.raises(KeyError):
        canonical_payload(fields)


def test_sign_is_sha256_of_payload_plus_secret() -> None:
    engine = SignatureEngine("s3cret")
    expected = hashlib.sha256(
        (canonical_payload(FIELDS) + "s3cret").encode("utf-8")
    ).hexdigest()
    assert engine.sign(FIELDS) == expected
    assert len(expected) == 64


def test_sign_is_deterministic() -> None:
    engine = SignatureEngine("s3cret")
    assert engine.sign(FIELDS) == engine.sign(dict(FIELDS))


def test_different_secrets_give_different_signatures() -> None:
    assert SignatureEngine("a").sign(FIELDS) != SignatureEngine("b").sign(FIELDS)


def test_verify_accepts_own_signature() -> None:
    engine = SignatureEngine("s3cret")
    assert engine.verify(_credential(engine)) is True


@pytest.mark.parametrize("field", CANONICAL_FIELDS)
def test_verify_detects_single_field_tamper(field: str) -> None:
    engine = SignatureEngine("s3cret")
    credential = _credential(engine)
    tampered = replace(credential, **{field: getattr(credential, field) + "x"})
    assert engine.verify(tampered) is False


def test_verify_ignores_non_canonical_fields() -> None:
    engine = SignatureEngine("s3cret")
    credential = replace(_credential(engine), created_at="2030-01-01T00:00:00.000Z")
    assert engine.verify(credential) is True


def test_verify_rejects_other_secret() -> None:
    credential = _credential(SignatureEngine("issuer-secret"))
    assert SignatureEngine("other-secret").verify(credential) is False


def test_verify_rejects_garbage_signature() -> None:
    engine = SignatureEngine("s3cret")
    credential = replace(_credential(engine), signature="not-a-signature")
    assert engine.verify(credential) is False


def test_lone_surrogate_is_escaped_like_json_stringify() -> None:
    payload = canonical_payload(dict(FIELDS, holder_name="Jo\ud800hn"))
    assert '"holder_name":"Jo\\ud800hn"' in payload


def test_verify_never_raises_on_lone_surrogates() -> None:
    engine = SignatureEngine("s3cret")
    credential = _credential(engine)

    assert engine.verify(replace(credential, holder_name="Jo\ud800hn")) is False
    assert engine.verify(replace(credential, signature="\udc80" * 64)) is False
    assert engine.verify(_credential(engine, holder_name="Jo\ud800hn")) is True


def test_empty_secret_rejected() -> None:
    with pytest.raises(ValueError):
        SignatureEngine("")


def test_repr_hides_secret() -> None:
    assert "s3cret" not in repr(SignatureEngine("s3cret"))


def test_generate_id_is_unique_uuid4() -> None:
    import uuid

    ids = {SignatureEngine.generate_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(uuid.UUID(i).version == 4 for i in ids)


def test_hash_is_sha256_hex() -> None:
    assert SignatureEngine.hash("abc") == hashlib.sha256(b"abc").hexdigest()
