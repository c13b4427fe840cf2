"""
Email Value Object
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from provisioning.domain.exceptions import ProvisioningValidationError


EMAIL_REGEX: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


@dataclass(frozen=True)
class Email:
    """
    Email address with validation.

    Normalized to lowercase so the identity provider's uniqueness check and
    the profile document agree on the same key.
    """

    value: str

    def __post_init__(self) -> None:
        normalized = (self.value or "").strip().lower()
        if not EMAIL_REGEX.match(normalized):
            raise ProvisioningValidationError(
                f"Invalid email format: {self.value}",
                details={"field": "admin_email"},
            )
        object.__setattr__(self, "value", normalized)

    @classmethod
    def is_valid(cls, raw: str) -> bool:
        return bool(EMAIL_REGEX.match((raw or "").strip().lower()))

    def __str__(self) -> str:
        return self.value
