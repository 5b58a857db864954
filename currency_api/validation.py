"""Validation helpers for request payloads."""

from __future__ import annotations

import re
from typing import Any

from marshmallow import ValidationError, fields

CURRENCY_CODE_PATTERN = re.compile(r"^[A-Za-z]+$")
CURRENCY_CODE_LENGTH = 3

# Currencies the conversion endpoint refuses, as base or target.
EXCLUDED_CONVERSION_CURRENCIES = frozenset({"TRY", "PLN", "THB", "MXN"})


def normalize_currency_code(value: Any, *, label: str = "Currency") -> str:
    """Return `value` as an uppercase three-letter code or raise ``ValidationError``."""

    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required.")

    code = str(value).strip()
    if len(code) != CURRENCY_CODE_LENGTH:
        raise ValidationError(f"{label} must be {CURRENCY_CODE_LENGTH} characters long.")
    if not CURRENCY_CODE_PATTERN.match(code) or not code.isascii():
        raise ValidationError(f"{label} must contain only letters.")
    return code.upper()


def ensure_convertible(code: str, *, label: str = "Currency") -> str:
    """Reject currencies excluded from conversion."""

    if code.upper() in EXCLUDED_CONVERSION_CURRENCIES:
        raise ValidationError(f"{label} '{code}' is not supported.")
    return code


class CurrencyCode(fields.String):
    """String field that loads a validated, uppercased ISO-style currency code."""

    def __init__(self, *args, label: str = "Currency", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.label = label

    def _deserialize(self, value, attr, data, **kwargs) -> str:
        raw = super()._deserialize(value, attr, data, **kwargs)
        return normalize_currency_code(raw, label=self.label)
