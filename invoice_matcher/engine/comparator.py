"""
Field Comparator
Decides MATCH / MISMATCH / MISSING for one field across an invoice and a PO.

RULES:
- Either side absent (or unparsable amount) -> MISSING, never MISMATCH
- currency_amount: MATCH iff |left - right| < tolerance (absolute)
- date: MATCH iff ISO dates are equal; unparsed dates compare as case-folded text
- text / identifier: MATCH iff trimmed, case-folded strings are equal
- Confidence is a fixed constant per rule, so results are reproducible
"""

from decimal import Decimal
from typing import Optional, Union

from invoice_matcher.config import KIND_CONFIDENCE, DATE_FALLBACK_CONFIDENCE, get_config
from invoice_matcher.engine.normalizer import normalize
from invoice_matcher.schemas.document import FieldKind, FieldValue, NormalizedValue
from invoice_matcher.schemas.output import ComparisonOutcome, FieldComparison


config = get_config()


def amounts_match(left: Decimal, right: Decimal, tolerance: Union[float, Decimal]) -> bool:
    """Absolute tolerance check; Decimal arithmetic so 0.03 - 0.02 is exactly 0.01."""
    return abs(left - right) < Decimal(str(tolerance))


def _resolve_kind(
    kind: Optional[FieldKind],
    left: Optional[FieldValue],
    right: Optional[FieldValue],
) -> FieldKind:
    if kind is not None:
        return kind
    for value in (left, right):
        if value is not None:
            return value.kind
    return FieldKind.TEXT


def _decide(
    kind: FieldKind,
    left: NormalizedValue,
    right: NormalizedValue,
    tolerance: Union[float, Decimal],
) -> tuple:
    """Return (is_match, confidence) for two present, normalized values."""
    if kind == FieldKind.CURRENCY_AMOUNT:
        return amounts_match(left.amount, right.amount, tolerance), KIND_CONFIDENCE[kind.value]

    if kind == FieldKind.DATE:
        if left.parsed and right.parsed:
            return left.calendar_date == right.calendar_date, KIND_CONFIDENCE[kind.value]
        # At least one side failed date parsing: fall back to text equality
        return left.key == right.key, DATE_FALLBACK_CONFIDENCE

    return left.key == right.key, KIND_CONFIDENCE[kind.value]


def compare(
    field: str,
    left: Optional[FieldValue],
    right: Optional[FieldValue],
    kind: Optional[FieldKind] = None,
    amount_tolerance: Optional[float] = None,
) -> FieldComparison:
    """
    Compare one field across two documents.

    Args:
        field: Field name, carried through to the result
        left: Invoice-side value (None when the document never captured it)
        right: PO-side value
        kind: Comparison rule; defaults to the kind carried by the values
        amount_tolerance: Absolute tolerance for currency amounts

    Returns:
        FieldComparison with outcome and (for non-missing outcomes) confidence
    """
    kind = _resolve_kind(kind, left, right)
    tolerance = config.AMOUNT_TOLERANCE if amount_tolerance is None else amount_tolerance

    left_norm = normalize(left, kind)
    right_norm = normalize(right, kind)

    left_display = None if left_norm.missing else left_norm.display
    right_display = None if right_norm.missing else right_norm.display

    if left_norm.missing or right_norm.missing:
        return FieldComparison(
            field=field,
            kind=kind,
            left_value=left_display,
            right_value=right_display,
            outcome=ComparisonOutcome.MISSING,
        )

    is_match, confidence = _decide(kind, left_norm, right_norm, tolerance)

    return FieldComparison(
        field=field,
        kind=kind,
        left_value=left_display,
        right_value=right_display,
        outcome=ComparisonOutcome.MATCH if is_match else ComparisonOutcome.MISMATCH,
        confidence=confidence,
    )
