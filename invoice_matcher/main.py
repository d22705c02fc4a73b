"""
Main entry point for invoice / purchase order reconciliation.
"""

import asyncio
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple

from invoice_matcher.engine.matrix import build_matrix
from invoice_matcher.engine.scorer import FieldsToCompare, score
from invoice_matcher.reporting import export_json, summarize_results
from invoice_matcher.schemas.document import DocumentRecord
from invoice_matcher.schemas.output import ComparisonMatrixResult, MatchResult
from invoice_matcher.sources import DocumentSource, JsonFileDocumentSource, load_field_specs, split_by_role
from invoice_matcher.state import (
    StepCompleted,
    StepFailed,
    StepStarted,
    WorkflowState,
    initial_workflow_state,
    reduce_workflow,
)
from invoice_matcher.utils.logging import setup_logging
from invoice_matcher.config import get_config


logger = setup_logging(__name__)
config = get_config()


class ReconciliationFailed(RuntimeError):
    """A reconciliation run stopped; carries the final workflow snapshot."""

    def __init__(self, message: str, state: WorkflowState):
        super().__init__(message)
        self.state = state


def reconcile_pair(
    invoice: DocumentRecord,
    po: DocumentRecord,
    fields_to_compare: Optional[FieldsToCompare] = None,
    amount_tolerance: Optional[float] = None,
) -> MatchResult:
    """
    Compare a single invoice against a single purchase order.

    No likely-match threshold is applied in pairwise mode.
    """
    fields = fields_to_compare if fields_to_compare is not None else load_field_specs()
    result = score(invoice, po, fields, amount_tolerance=amount_tolerance)
    logger.info(
        f"Pairwise comparison {invoice.source_id} x {po.source_id}: "
        f"score={result.match_score} status={result.status.value}"
    )
    return result


async def reconcile_documents(
    source: DocumentSource,
    fields_to_compare: Optional[FieldsToCompare] = None,
    match_threshold: Optional[int] = None,
    amount_tolerance: Optional[float] = None,
    sink: Optional[Callable[[ComparisonMatrixResult], Any]] = None,
    workflow_id: Optional[str] = None,
) -> Tuple[ComparisonMatrixResult, WorkflowState]:
    """
    Run a full reconciliation: load, classify, build the matrix, summarize, publish.

    Args:
        source: Supplies the documents in a stable order
        fields_to_compare: Ordered field list (defaults to the configured one)
        match_threshold: isLikelyMatch threshold (default from config)
        amount_tolerance: Absolute currency tolerance (default from config)
        sink: Optional callable receiving the finished matrix
        workflow_id: Optional run id (auto-generated if not provided)

    Returns:
        (matrix, final workflow state)

    Raises:
        ReconciliationFailed: when any step raises; the cause is chained
    """
    if not workflow_id:
        workflow_id = f"RUN-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}"

    fields = fields_to_compare if fields_to_compare is not None else load_field_specs()
    state = initial_workflow_state(workflow_id)

    logger.info(f"Starting reconciliation run {workflow_id}")

    try:
        state = reduce_workflow(state, StepStarted(step=1, message="Fetching documents..."))
        records = await source.fetch()
        state = reduce_workflow(state, StepCompleted(step=1, message=f"Loaded {len(records)} documents"))

        state = reduce_workflow(state, StepStarted(step=2, message="Separating invoices and purchase orders..."))
        invoices, purchase_orders = split_by_role(records)
        state = reduce_workflow(
            state,
            StepCompleted(
                step=2,
                message=f"{len(invoices)} invoices, {len(purchase_orders)} purchase orders",
            ),
        )

        state = reduce_workflow(state, StepStarted(step=3, message="Comparing every invoice with every purchase order..."))
        matrix = build_matrix(
            invoices,
            purchase_orders,
            fields,
            match_threshold=match_threshold,
            amount_tolerance=amount_tolerance,
        )
        state = reduce_workflow(
            state,
            StepCompleted(step=3, message=f"Completed {matrix.total_comparisons} comparisons"),
        )

        state = reduce_workflow(state, StepStarted(step=4, message="Analyzing validation results..."))
        summary = summarize_results(matrix.results)
        state = reduce_workflow(
            state,
            StepCompleted(
                step=4,
                message=(
                    f"Analysis complete - {summary.validated_count} validated, "
                    f"{summary.review_required_count} need review"
                ),
            ),
        )

        state = reduce_workflow(state, StepStarted(step=5, message="Publishing report..."))
        if sink is not None:
            sink(matrix)
        state = reduce_workflow(
            state,
            StepCompleted(step=5, message=f"Found {len(matrix.likely_matches)} likely matches"),
        )

    except Exception as e:
        state = reduce_workflow(state, StepFailed(error=str(e)))
        logger.error(f"Reconciliation run {workflow_id} failed: {e}")
        raise ReconciliationFailed(str(e), state) from e

    logger.info(f"Reconciliation run {workflow_id} complete. Likely matches: {len(matrix.likely_matches)}")
    return matrix, state


def format_output_json(matrix: ComparisonMatrixResult) -> str:
    """Format output as JSON string."""
    return export_json(matrix)


if __name__ == "__main__":
    if len(sys.argv) > 1:
        documents_path = sys.argv[1]
        threshold = int(sys.argv[2]) if len(sys.argv) > 2 else None

        matrix, _ = asyncio.run(
            reconcile_documents(JsonFileDocumentSource(documents_path), match_threshold=threshold)
        )
        print(format_output_json(matrix))
    else:
        print("Usage: python -m invoice_matcher.main <documents.json> [match_threshold]")
