"""Demo: issue a credential, verify it, then verify a tampered copy.

Start both services first:
    uvicorn app.main:issuance_app --port 3001
    ISSUANCE_SERVICE_URL=http://localhost:3001 uvicorn app.main:verification_app --port 3002

Then run:
    python scripts/demo_issue_verify.py [ISSUANCE_URL] [VERIFICATION_URL]
"""

from __future__ import annotations

import sys

import httpx

ISSUANCE_URL = "http://localhost:3001"
VERIFICATION_URL = "http://localhost:3002"


def main(issuance_url: str, verification_url: str) -> None:
    with httpx.Client(timeout=10.0) as http:
        # ── Step 1: issue ───────────────────────────────────────────────
        r = http.post(
            f"{issuance_url}/api/credentials",
            json={"holder_name": "John Doe", "credential_type": "certificate"},
        )
        body = r.json()
        print(f"1. POST /api/credentials        → {r.status_code}  {body['message']}")
        if r.status_code == 409:
            existing = body["data"]["existing_credential_id"]
            r = http.get(f"{issuance_url}/api/credentials/{existing}")
            body = r.json()
            print(f"   GET  /api/credentials/{{id}}  → {r.status_code}  (reusing)")
        credential = {
            k: v for k, v in body["data"].items() if k not in ("is_valid", "is_expired")
        }

        # ── Step 2: issue again ─────────────────────────────────────────
        r = http.post(
            f"{issuance_url}/api/credentials",
            json={"holder_name": "John Doe", "credential_type": "certificate"},
        )
        print(f"2. POST /api/credentials (again) → {r.status_code}  (duplicate)")

        # ── Step 3: verify the genuine credential ───────────────────────
        r = http.post(
            f"{verification_url}/api/verifications", json={"credential": credential}
        )
        status = r.json().get("data", {}).get("verification_status")
        print(f"3. POST /api/verifications      → {r.status_code}  status={status}")

        # ── Step 4: verify a tampered copy ──────────────────────────────
        tampered = dict(credential, holder_name="John Dough")
        r = http.post(
            f"{verification_url}/api/verifications", json={"credential": tampered}
        )
        status = r.json().get("data", {}).get("verification_status")
        print(f"4. POST /api/verifications      → {r.status_code}  status={status}")

        # ── Step 5: audit trail ─────────────────────────────────────────
        r = http.get(
            f"{verification_url}/api/verifications/credential/{credential['id']}"
        )
        print(
            f"5. GET  /api/verifications/credential/{{id}} → {r.status_code}  "
            f"count={r.json()['data']['count']}"
        )


if __name__ == "__main__":
    args = sys.argv[1:]
    main(
        args[0] if len(args) > 0 else ISSUANCE_URL,
        args[1] if len(args) > 1 else VERIFICATION_URL,
    )
