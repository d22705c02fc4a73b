"""
Field Normalizer
Canonicalizes raw extracted values into comparable forms.

Normalization never raises: a value that cannot be parsed degrades
(amounts become missing, dates fall back to text) so one badly extracted
field cannot fail the pipeline.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from invoice_matcher.config import DATE_INPUT_FORMATS
from invoice_matcher.schemas.document import FieldKind, FieldValue, NormalizedValue


# Everything that can surround a number: currency codes, symbols, spaces
_AMOUNT_NOISE = re.compile(r"[^0-9.,\-]")
_AMOUNT_SHAPE = re.compile(r"^-?\d+(\.\d+)?$")


def _clean_text(raw) -> str:
    return str(raw).strip()


def parse_amount(raw) -> Optional[Decimal]:
    """
    Parse a currency amount such as "AED 8,450.00", "$1,200" or 8450.

    Returns None when the value cannot be read as a number.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else None
    if isinstance(raw, (int, float)):
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            return None
        return value if value.is_finite() else None

    text = _AMOUNT_NOISE.sub("", str(raw))
    # thousands separators
    text = text.replace(",", "")
    if not _AMOUNT_SHAPE.match(text):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def parse_date(raw) -> Optional[datetime]:
    """Parse ISO dates and long-form dates ("30 Jun 2025"). None when unrecognized."""
    if raw is None:
        return None
    text = _clean_text(raw)
    if not text:
        return None

    # ISO timestamps such as 2025-06-30T00:00:00Z keep only the calendar date
    if "T" in text and text[:4].isdigit():
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            pass

    for fmt in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def normalize(value: Optional[FieldValue], kind: Optional[FieldKind] = None) -> NormalizedValue:
    """
    Normalize a FieldValue according to its kind.

    Args:
        value: The extracted value, or None when the field was never captured
        kind: Optional override of value.kind (from the configured field list)

    Returns:
        NormalizedValue; missing=True when there is nothing to compare
    """
    kind = kind or (value.kind if value is not None else FieldKind.TEXT)

    if value is None or value.is_missing:
        return NormalizedValue(kind=kind, missing=True)

    display = _clean_text(value.raw_value)
    if not display:
        # Blank strings carry no information
        return NormalizedValue(kind=kind, missing=True)

    if kind == FieldKind.CURRENCY_AMOUNT:
        amount = parse_amount(value.raw_value)
        if amount is None:
            return NormalizedValue(kind=kind, display=display, missing=True, parsed=False)
        return NormalizedValue(
            kind=kind,
            display=f"{amount:.2f}",
            key=str(amount.normalize()),
            amount=amount,
        )

    if kind == FieldKind.DATE:
        parsed = parse_date(value.raw_value)
        if parsed is None:
            return NormalizedValue(kind=kind, display=display, key=display.casefold(), parsed=False)
        iso = parsed.date().isoformat()
        return NormalizedValue(kind=kind, display=iso, key=iso, calendar_date=parsed.date())

    # text and identifier: trim and case-fold; identifiers keep internal punctuation
    return NormalizedValue(kind=kind, display=display, key=display.casefold())
