"""
Record Scorer
Aggregates per-field comparisons for one invoice/PO pair into a score and status.
"""

import math
from typing import Optional, Sequence, Union

from invoice_matcher.engine.comparator import compare
from invoice_matcher.schemas.document import DocumentRecord, FieldSpec
from invoice_matcher.schemas.output import (
    ComparisonOutcome,
    FieldComparison,
    MatchResult,
    MatchStatus,
)


FieldsToCompare = Sequence[Union[str, FieldSpec]]


def as_field_spec(field: Union[str, FieldSpec, dict]) -> FieldSpec:
    """Accept a bare field name, a FieldSpec or a {name, kind, path} dict."""
    if isinstance(field, FieldSpec):
        return field
    if isinstance(field, dict):
        return FieldSpec(**field)
    return FieldSpec(name=field)


def calculate_match_score(field_comparisons: Sequence[FieldComparison]) -> int:
    """
    round(100 * matched / compared), half-up.

    Fields missing on both sides are left out of the denominator. When nothing
    was compared the score is 0.
    """
    compared = [c for c in field_comparisons if not c.both_missing]
    if not compared:
        return 0
    matched = sum(1 for c in compared if c.outcome == ComparisonOutcome.MATCH)
    return int(math.floor(100 * matched / len(compared) + 0.5))


def determine_status(field_comparisons: Sequence[FieldComparison]) -> MatchStatus:
    """
    matched iff at least one field matched and none mismatched.

    A one-sided MISSING field lowers the score but does not fail the gate.
    """
    outcomes = [c.outcome for c in field_comparisons]
    if ComparisonOutcome.MISMATCH in outcomes or ComparisonOutcome.MATCH not in outcomes:
        return MatchStatus.MISMATCHED
    return MatchStatus.MATCHED


def score(
    invoice: DocumentRecord,
    po: DocumentRecord,
    fields_to_compare: FieldsToCompare,
    amount_tolerance: Optional[float] = None,
) -> MatchResult:
    """
    Score one invoice against one purchase order.

    Args:
        invoice: Invoice-side record
        po: Purchase-order-side record
        fields_to_compare: Ordered field names or FieldSpecs; the order is kept
            in the result for reproducible reporting
        amount_tolerance: Absolute tolerance for currency amounts

    Returns:
        MatchResult (is_likely_match is left unset; that is a matrix concern)
    """
    comparisons = []
    for field in fields_to_compare:
        spec = as_field_spec(field)
        # A field with no kind configured takes its kind from the values
        comparisons.append(
            compare(
                spec.name,
                invoice.get(spec.name),
                po.get(spec.name),
                kind=spec.kind,
                amount_tolerance=amount_tolerance,
            )
        )

    return MatchResult(
        invoice_id=invoice.source_id,
        po_id=po.source_id,
        field_comparisons=tuple(comparisons),
        match_score=calculate_match_score(comparisons),
        status=determine_status(comparisons),
    )
