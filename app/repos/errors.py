from __future__ import annotations


class DuplicateCredentialError(Exception):
    """The id or the (holder_name, credential_type) pair is already stored."""


class StoreUnavailableError(Exception):
    """The backing store could not be reached or failed mid-operation."""
