"""
Reporting helpers.
Serialize comparison results for the UI, CSV/JSON exports and notification emails.
Delivery (email, storage) belongs to the caller.
"""

import csv
import io
from typing import Dict, List, Sequence, Union

from invoice_matcher.schemas.output import (
    BatchSummary,
    ComparisonMatrixResult,
    ComparisonOutcome,
    MatchResult,
    MatchStatus,
)
from invoice_matcher.utils import dict_to_json_string, safe_divide
from invoice_matcher.utils.confidence import confidence_level_name, interpret_match_score


CSV_HEADER = [
    "Invoice File",
    "PO File",
    "Overall Match %",
    "Match Status",
    "Field Name",
    "Field Status",
    "Field Confidence %",
    "Invoice Value",
    "PO Value",
]


def summarize_results(results: Sequence[MatchResult]) -> BatchSummary:
    """Count validated (status matched) vs review-required results and the mean score."""
    validated = sum(1 for r in results if r.status == MatchStatus.MATCHED)
    return BatchSummary(
        documents_processed=len(results),
        average_score=safe_divide(sum(r.match_score for r in results), len(results)),
        validated_count=validated,
        review_required_count=len(results) - validated,
    )


def export_json(report: Union[ComparisonMatrixResult, MatchResult]) -> str:
    """JSON export of a matrix or a single pairwise result."""
    return dict_to_json_string(report.to_report_dict())


def export_csv(matrix: ComparisonMatrixResult) -> str:
    """One row per field comparison; results without field data get a single placeholder row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for result in matrix.results:
        base_row = [
            result.invoice_id,
            result.po_id,
            result.match_score,
            "Likely Match" if result.is_likely_match else "No Match",
        ]

        if not result.field_comparisons:
            writer.writerow(base_row + [result.error or "No field data", "", "", "", ""])
            continue

        for comparison in result.field_comparisons:
            confidence = round(comparison.confidence * 100) if comparison.confidence is not None else 0
            writer.writerow(
                base_row
                + [
                    comparison.field,
                    comparison.outcome.value,
                    confidence,
                    comparison.left_value if comparison.left_value is not None else "N/A",
                    comparison.right_value if comparison.right_value is not None else "N/A",
                ]
            )

    return buffer.getvalue()


def build_notification(result: MatchResult) -> Dict[str, str]:
    """
    Render the approval/rejection message for one invoice/PO pair.

    Returns:
        {"subject": ..., "body": ...} as plain text
    """
    approved = result.status == MatchStatus.MATCHED
    verdict = "Approved" if approved else "Rejected"
    _, interpretation = interpret_match_score(result.match_score)

    lines: List[str] = [
        f"Invoice {verdict}",
        "",
        f"Invoice: {result.invoice_id}",
        f"Purchase order: {result.po_id}",
        f"Match score: {result.match_score}% ({interpretation})",
    ]
    if result.field_comparisons:
        confidence = result.average_confidence
        lines.append(f"Field confidence: {confidence:.0%} ({confidence_level_name(confidence)})")
    lines.append("")

    if approved:
        lines.append("The invoice has been approved for payment processing.")
    else:
        lines.append("The invoice has been rejected and requires review.")

    mismatches = result.mismatched_fields()
    if mismatches:
        lines.append("")
        lines.append("Mismatched fields:")
        for comparison in mismatches:
            lines.append(
                f"  - {comparison.field}: invoice '{comparison.left_value}' vs PO '{comparison.right_value}'"
            )

    missing = [c for c in result.field_comparisons if c.outcome == ComparisonOutcome.MISSING and not c.both_missing]
    if missing:
        lines.append("")
        lines.append("Fields missing on one document:")
        for comparison in missing:
            lines.append(f"  - {comparison.field}")

    if result.error:
        lines.append("")
        lines.append(f"Comparison error: {result.error}")

    return {
        "subject": f"Invoice {verdict}: {result.invoice_id} (match score {result.match_score}%)",
        "body": "\n".join(lines),
    }
