"""
Comparison Matrix Builder
Scores every invoice against every purchase order.

There is no prior linkage between emailed attachments, so the full N x M
product is computed without pruning. One bad pair is recorded as a
zero-score error result and never aborts the rest of the matrix.
"""

from typing import Any, List, Optional, Sequence, Union

from pydantic import ValidationError

from invoice_matcher.config import get_config
from invoice_matcher.engine.scorer import FieldsToCompare, as_field_spec, score
from invoice_matcher.schemas.document import DocumentRecord, DocumentRole
from invoice_matcher.schemas.output import (
    ComparisonMatrixResult,
    ConfidenceSummary,
    MatchResult,
    MatchStatus,
)
from invoice_matcher.utils.confidence import score_bucket
from invoice_matcher.utils.logging import (
    setup_logging,
    log_pipeline_action,
    log_comparison_failure,
)


logger = setup_logging(__name__)
config = get_config()


class RecordContractError(ValueError):
    """A caller passed records that violate the input contract (missing role, id, wrong side)."""


RecordInput = Union[DocumentRecord, dict]


def _coerce_record(item: Any, expected_role: DocumentRole, position: int) -> DocumentRecord:
    label = f"{expected_role.value}[{position}]"

    if isinstance(item, dict):
        try:
            item = DocumentRecord.model_validate(item)
        except ValidationError as e:
            raise RecordContractError(f"{label} is not a valid document record: {e}") from e

    if not isinstance(item, DocumentRecord):
        raise RecordContractError(f"{label} is not a DocumentRecord (got {type(item).__name__})")

    # model_construct() can bypass validation, so check the contract fields explicitly
    if not getattr(item, "source_id", None):
        raise RecordContractError(f"{label} has no sourceId")
    if getattr(item, "document_role", None) is None:
        raise RecordContractError(f"{label} ({item.source_id}) has no documentRole")
    if item.document_role != expected_role:
        raise RecordContractError(
            f"{label} ({item.source_id}) has role '{item.document_role.value}', "
            f"expected '{expected_role.value}'"
        )
    return item


def validate_records(
    invoices: Sequence[RecordInput],
    purchase_orders: Sequence[RecordInput],
) -> tuple:
    """
    Reject contract violations before any scoring happens.

    Raises:
        RecordContractError: on the first offending record
    """
    checked_invoices = [
        _coerce_record(item, DocumentRole.INVOICE, i) for i, item in enumerate(invoices)
    ]
    checked_pos = [
        _coerce_record(item, DocumentRole.PURCHASE_ORDER, j) for j, item in enumerate(purchase_orders)
    ]
    return checked_invoices, checked_pos


def error_result(
    invoice: DocumentRecord,
    po: DocumentRecord,
    invoice_index: int,
    po_index: int,
    error: str,
) -> MatchResult:
    """Zero-score placeholder for a pair whose comparison raised."""
    return MatchResult(
        invoice_id=invoice.source_id,
        po_id=po.source_id,
        field_comparisons=(),
        match_score=0,
        status=MatchStatus.MISMATCHED,
        is_likely_match=False,
        invoice_index=invoice_index,
        po_index=po_index,
        error=error,
    )


def summarize_scores(results: Sequence[MatchResult]) -> ConfidenceSummary:
    """Bucket results by match score (high > 80, medium 51-80, low <= 50)."""
    counts = {"high": 0, "medium": 0, "low": 0}
    for result in results:
        counts[score_bucket(result.match_score)] += 1
    return ConfidenceSummary(
        high_confidence=counts["high"],
        medium_confidence=counts["medium"],
        low_confidence=counts["low"],
    )


def build_matrix(
    invoices: Sequence[RecordInput],
    purchase_orders: Sequence[RecordInput],
    fields_to_compare: FieldsToCompare,
    match_threshold: Optional[int] = None,
    amount_tolerance: Optional[float] = None,
) -> ComparisonMatrixResult:
    """
    Compare every invoice with every purchase order.

    Args:
        invoices: Invoice records, in a caller-defined stable order
        purchase_orders: Purchase order records, in a caller-defined stable order
        fields_to_compare: Ordered field names or FieldSpecs
        match_threshold: isLikelyMatch is matchScore > threshold (default 70)
        amount_tolerance: Absolute tolerance for currency amounts

    Returns:
        ComparisonMatrixResult with exactly len(invoices) * len(purchase_orders) results,
        row-major (invoice index outer, PO index inner)

    Raises:
        RecordContractError: when a record lacks documentRole/sourceId or is on the wrong side
    """
    threshold = config.MATCH_THRESHOLD if match_threshold is None else match_threshold
    if not 0 <= threshold <= 100:
        raise ValueError(f"match_threshold must be between 0 and 100, got {threshold}")

    checked_invoices, checked_pos = validate_records(invoices, purchase_orders)
    fields = [f if isinstance(f, str) else as_field_spec(f) for f in fields_to_compare]

    log_pipeline_action(
        logger,
        "MatrixBuilder",
        "start",
        details={
            "invoices": len(checked_invoices),
            "purchase_orders": len(checked_pos),
            "fields": len(fields),
            "match_threshold": threshold,
        },
    )

    results: List[MatchResult] = []
    for i, invoice in enumerate(checked_invoices):
        for j, po in enumerate(checked_pos):
            try:
                result = score(invoice, po, fields, amount_tolerance=amount_tolerance)
                result = result.model_copy(
                    update={
                        "is_likely_match": result.match_score > threshold,
                        "invoice_index": i,
                        "po_index": j,
                    }
                )
            except Exception as e:
                log_comparison_failure(logger, invoice.source_id, po.source_id, str(e))
                result = error_result(invoice, po, i, j, f"Comparison failed: {e}")

            logger.debug(
                f"[MatrixBuilder] {invoice.source_id} x {po.source_id}: "
                f"score={result.match_score} status={result.status.value}"
            )
            results.append(result)

    matrix = ComparisonMatrixResult(
        results=tuple(results),
        summary=summarize_scores(results),
        total_invoices=len(checked_invoices),
        total_purchase_orders=len(checked_pos),
        match_threshold=threshold,
    )

    log_pipeline_action(
        logger,
        "MatrixBuilder",
        "complete",
        details={
            "comparisons": matrix.total_comparisons,
            "failed": matrix.failed_comparisons,
            "likely_matches": len(matrix.likely_matches),
            "high_confidence": matrix.summary.high_confidence,
        },
    )

    return matrix
