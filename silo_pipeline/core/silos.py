from __future__ import annotations

import re


SILO_ID_MIN_LENGTH = 2
SILO_ID_MAX_LENGTH = 64
_SILO_ID_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


def normalize_silo_id(value: str) -> str:
    cleaned = value.strip().lower()
    if len(cleaned) < SILO_ID_MIN_LENGTH or len(cleaned) > SILO_ID_MAX_LENGTH:
        raise ValueError(
            f"silo id must be between {SILO_ID_MIN_LENGTH} and {SILO_ID_MAX_LENGTH} characters"
        )
    if not _SILO_ID_RE.fullmatch(cleaned):
        raise ValueError("silo id may only contain lowercase letters, numbers, '-' and '_'")
    return cleaned
