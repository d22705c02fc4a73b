"""
Tests for exports, notifications and batch summaries.
"""

import csv
import io
import json
import pytest

from invoice_matcher.engine.matrix import build_matrix, error_result
from invoice_matcher.reporting import (
    CSV_HEADER,
    build_notification,
    export_csv,
    export_json,
    summarize_results,
)
from invoice_matcher.schemas.document import (
    DocumentRecord,
    DocumentRole,
    FieldKind,
    FieldSpec,
    FieldValue,
)
from invoice_matcher.schemas.output import BatchSummary, ComparisonMatrixResult


FIELDS = [
    FieldSpec(name="PO Number", kind=FieldKind.IDENTIFIER),
    FieldSpec(name="Vendor", kind=FieldKind.TEXT),
    FieldSpec(name="Amount", kind=FieldKind.CURRENCY_AMOUNT),
]


def make_record(source_id, role, po_number, vendor, amount):
    return DocumentRecord(
        source_id=source_id,
        document_role=role,
        fields={
            "PO Number": FieldValue(name="PO Number", raw_value=po_number, kind=FieldKind.IDENTIFIER),
            "Vendor": FieldValue(name="Vendor", raw_value=vendor, kind=FieldKind.TEXT),
            "Amount": FieldValue(name="Amount", raw_value=amount, kind=FieldKind.CURRENCY_AMOUNT),
        },
    )


@pytest.fixture
def matrix():
    invoices = [make_record("inv.pdf", DocumentRole.INVOICE, "PO-157", "Etisalat", 12990.00)]
    purchase_orders = [
        make_record("po-match.pdf", DocumentRole.PURCHASE_ORDER, "PO-157", "etisalat", 12990.00),
        make_record("po-off.pdf", DocumentRole.PURCHASE_ORDER, "PO-157", "etisalat", 12890.00),
    ]
    return build_matrix(invoices, purchase_orders, FIELDS)


def test_export_json_shape(matrix):
    data = json.loads(export_json(matrix))
    assert data["totalComparisons"] == 2
    assert data["summary"]["totalInvoices"] == 1
    assert data["summary"]["highConfidenceMatches"] == 1
    first = data["comparisonMatrix"][0]
    assert set(["invoiceFilename", "poFilename", "matchScore", "isLikelyMatch", "fieldComparisons"]) <= set(first)
    assert first["fieldComparisons"][0]["status"] == "MATCH"
    assert [m["poFilename"] for m in data["likelyMatches"]] == ["po-match.pdf"]


def test_export_json_pairwise(matrix):
    data = json.loads(export_json(matrix.results[1]))
    assert data["matchScore"] == 67
    assert data["status"] == "mismatched"


def test_export_csv_rows(matrix):
    rows = list(csv.reader(io.StringIO(export_csv(matrix))))
    assert rows[0] == CSV_HEADER
    # one row per field per pair
    assert len(rows) == 1 + 2 * 3
    amount_row = rows[6]
    assert amount_row[:4] == ["inv.pdf", "po-off.pdf", "67", "No Match"]
    assert amount_row[4:] == ["Amount", "MISMATCH", "99", "12990.00", "12890.00"]


def test_export_csv_error_row(matrix):
    invoice = make_record("inv.pdf", DocumentRole.INVOICE, "PO-1", "A", 1)
    po = make_record("po.pdf", DocumentRole.PURCHASE_ORDER, "PO-1", "A", 1)
    failed = ComparisonMatrixResult(results=(error_result(invoice, po, 0, 0, "Comparison failed: bad"),))
    rows = list(csv.reader(io.StringIO(export_csv(failed))))
    assert rows[1][:5] == ["inv.pdf", "po.pdf", "0", "No Match", "Comparison failed: bad"]


def test_summarize_results(matrix):
    summary = summarize_results(matrix.results)
    assert summary.documents_processed == 2
    assert summary.validated_count == 1
    assert summary.review_required_count == 1
    assert summary.average_score == pytest.approx(83.5)


def test_summarize_empty():
    summary = summarize_results([])
    assert summary.average_score == 0.0
    assert summary.documents_processed == 0


def test_batch_summary_schema_example():
    example = BatchSummary.model_json_schema()["example"]
    assert BatchSummary(**example).validated_count == 3


def test_notification_approved(matrix):
    message = build_notification(matrix.results[0])
    assert message["subject"].startswith("Invoice Approved")
    assert "Match score: 100%" in message["body"]
    assert "Mismatched fields" not in message["body"]
    assert "Field confidence: 96% (VERY_HIGH)" in message["body"]


def test_notification_rejected_lists_mismatches(matrix):
    message = build_notification(matrix.results[1])
    assert message["subject"].startswith("Invoice Rejected")
    assert "Amount: invoice '12990.00' vs PO '12890.00'" in message["body"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
