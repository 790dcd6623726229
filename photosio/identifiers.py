"""
Blob identifiers are UUID4 values exposed as opaque strings.  An original and
its derived thumbnail share the same identifier.
"""
import uuid
from typing import Any, Optional


def new_blob_id() -> str:
    return str(uuid.uuid4())


def normalize_blob_id(value: Any) -> Optional[str]:
    """Canonical lowercase hyphenated form, or None for anything malformed"""
    if isinstance(value, uuid.UUID):
        return str(value)
    if not isinstance(value, str):
        return None
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return None
    # uuid.UUID also accepts braces, urn: prefixes and bare hex
    if str(parsed) != value.lower():
        return None
    return str(parsed)


def is_valid_blob_id(value: Any) -> bool:
    return normalize_blob_id(value) is not None
