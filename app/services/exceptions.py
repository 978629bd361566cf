from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ValidationError(Exception):
    """Encode-time: one or more required inputs are missing or out of range."""

    missing_fields: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return ", ".join(self.missing_fields) if self.missing_fields else "Invalid promocode input"


class FormatError(Exception):
    """Decode-time: the string does not have the promocode shape."""


@dataclass
class RulesetError(Exception):
    message: str
    field_name: Optional[str] = None

    def __str__(self) -> str:
        if self.field_name:
            return f"{self.message} (field: {self.field_name})"
        return self.message


@dataclass
class AirtableError(Exception):
    message: str
    table: Optional[str] = None
    status_code: Optional[int] = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.table:
            parts.append(f"table={self.table}")
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        return " ".join(parts)
