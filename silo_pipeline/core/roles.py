from enum import Enum
from typing import Optional


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    MARKETING = "marketing"
    LENDER = "lender"
    REFERRER = "referrer"

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        """Case-insensitive lookup; None for unknown or non-string values."""
        if not isinstance(value, str):
            return None
        return cls._value2member_map_.get(value.strip().lower())
