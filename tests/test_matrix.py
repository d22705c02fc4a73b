"""
Tests for the N x M comparison matrix.
"""

import pytest
from unittest.mock import patch

from invoice_matcher.engine.matrix import (
    RecordContractError,
    build_matrix,
    summarize_scores,
    validate_records,
)
from invoice_matcher.engine.scorer import score as real_score
from invoice_matcher.schemas.document import (
    DocumentRecord,
    DocumentRole,
    FieldKind,
    FieldSpec,
    FieldValue,
)
from invoice_matcher.schemas.output import ComparisonOutcome, MatchStatus


FIELDS = [
    FieldSpec(name="PO Number", kind=FieldKind.IDENTIFIER),
    FieldSpec(name="Vendor", kind=FieldKind.TEXT),
    FieldSpec(name="Amount", kind=FieldKind.CURRENCY_AMOUNT),
]


def make_record(source_id, role, po_number=None, vendor=None, amount=None):
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
def invoices():
    return [
        make_record("INV-A.pdf", DocumentRole.INVOICE, "PO-157", "Etisalat", 8450.00),
        make_record("INV-B.pdf", DocumentRole.INVOICE, "PO-900", "Dussmann", 14781.58),
    ]


@pytest.fixture
def purchase_orders():
    return [
        make_record("PO-X.pdf", DocumentRole.PURCHASE_ORDER, "PO-321", "Securiguard", 4600),
        make_record("PO-Y.pdf", DocumentRole.PURCHASE_ORDER, "PO-157", "etisalat", "AED 8,450.00"),
    ]


def test_matrix_has_n_times_m_results(invoices, purchase_orders):
    matrix = build_matrix(invoices, purchase_orders, FIELDS)
    assert matrix.total_comparisons == 4
    assert matrix.total_invoices == 2
    assert matrix.total_purchase_orders == 2
    assert matrix.summary.total == 4


def test_one_exact_cross_match(invoices, purchase_orders):
    """One exact pair, three unrelated pairs."""
    matrix = build_matrix(invoices, purchase_orders, FIELDS)

    high = [r for r in matrix.results if r.match_score >= 90]
    assert len(high) == 1
    assert high[0].invoice_id == "INV-A.pdf"
    assert high[0].po_id == "PO-Y.pdf"
    assert high[0].is_likely_match is True
    assert high[0].status == MatchStatus.MATCHED

    low = [r for r in matrix.results if r.match_score <= 50]
    assert len(low) == 3
    assert matrix.summary.high_confidence == 1
    assert matrix.summary.low_confidence == 3
    assert [r.po_id for r in matrix.likely_matches] == ["PO-Y.pdf"]


def test_results_are_row_major(invoices, purchase_orders):
    matrix = build_matrix(invoices, purchase_orders, FIELDS)
    coordinates = [(r.invoice_index, r.po_index) for r in matrix.results]
    assert coordinates == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert [r.po_id for r in matrix.row(1)] == ["PO-X.pdf", "PO-Y.pdf"]


def test_threshold_is_strictly_greater(invoices):
    """A 67 score is a likely match at threshold 66 but not at 67 or the default 70."""
    po = make_record("PO-Z.pdf", DocumentRole.PURCHASE_ORDER, "PO-157", "Etisalat", 1.00)
    assert build_matrix(invoices[:1], [po], FIELDS).results[0].is_likely_match is False
    assert build_matrix(invoices[:1], [po], FIELDS, match_threshold=67).results[0].is_likely_match is False
    assert build_matrix(invoices[:1], [po], FIELDS, match_threshold=66).results[0].is_likely_match is True


def test_likely_match_independent_of_status(invoices):
    """A mismatched pair can still be a likely match, and status ignores the threshold."""
    po = make_record("PO-Z.pdf", DocumentRole.PURCHASE_ORDER, "PO-157", "Etisalat", 1.00)
    result = build_matrix(invoices[:1], [po], FIELDS, match_threshold=50).results[0]
    assert result.match_score == 67
    assert result.status == MatchStatus.MISMATCHED
    assert result.is_likely_match is True


def test_failed_pair_does_not_abort_matrix(invoices, purchase_orders):
    calls = {"n": 0}

    def flaky_score(invoice, po, fields, amount_tolerance=None):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("malformed document")
        return real_score(invoice, po, fields, amount_tolerance=amount_tolerance)

    with patch("invoice_matcher.engine.matrix.score", side_effect=flaky_score):
        matrix = build_matrix(invoices, purchase_orders, FIELDS)

    assert matrix.total_comparisons == 4
    assert matrix.failed_comparisons == 1
    failed = matrix.results[1]
    assert failed.match_score == 0
    assert failed.status == MatchStatus.MISMATCHED
    assert failed.is_likely_match is False
    assert "malformed document" in failed.error
    assert (failed.invoice_index, failed.po_index) == (0, 1)
    assert matrix.summary.total == 4


def test_empty_inputs_give_empty_matrix():
    matrix = build_matrix([], [], FIELDS)
    assert matrix.total_comparisons == 0
    assert matrix.summary.total == 0


def test_dict_records_are_accepted(purchase_orders):
    invoice = {
        "sourceId": "INV-dict.pdf",
        "documentRole": "invoice",
        "fields": {
            "PO Number": {"rawValue": "PO-157", "kind": "identifier"},
            "Vendor": {"rawValue": "ETISALAT"},
            "Amount": {"rawValue": "8450", "kind": "currencyAmount"},
        },
    }
    matrix = build_matrix([invoice], purchase_orders, FIELDS)
    assert matrix.results[1].match_score == 100


def test_malformed_field_content_does_not_reject_batch(invoices, purchase_orders):
    garbled = {
        "sourceId": "INV-2.pdf",
        "documentRole": "invoice",
        "fields": {
            "PO Number": {"rawValue": "PO-157", "kind": "identifier"},
            "Vendor": {"rawValue": "Etisalat", "kind": "spreadsheet"},
            "Amount": {"rawValue": ["8450", "oops"], "kind": "currencyAmount"},
        },
    }

    matrix = build_matrix([invoices[0], garbled], purchase_orders, FIELDS)

    assert matrix.total_comparisons == 4
    assert matrix.failed_comparisons == 0
    # the well-formed invoice still finds its PO
    assert matrix.results[1].match_score == 100

    row = matrix.results[3]
    assert row.invoice_id == "INV-2.pdf"
    assert [c.outcome for c in row.field_comparisons] == [
        ComparisonOutcome.MATCH,
        ComparisonOutcome.MISSING,
        ComparisonOutcome.MISSING,
    ]
    assert row.match_score == 33


def test_unusable_field_entries_become_missing_values():
    record = DocumentRecord.model_validate({
        "sourceId": "INV-3.pdf",
        "documentRole": "invoice",
        "fields": {
            "Vendor": "Etisalat",
            "Amount": {"rawValue": {"value": 8450}, "kind": "currencyAmount"},
            "Date": {"rawValue": "30 Jun 2025", "kind": 7},
        },
    })

    assert record.get("Vendor").raw_value == "Etisalat"
    assert record.get("Amount").is_missing
    assert record.get("Amount").kind == FieldKind.CURRENCY_AMOUNT
    assert record.get("Date").is_missing
    assert record.get("Date").kind == FieldKind.TEXT


def test_non_mapping_fields_give_empty_record(purchase_orders):
    invoice = {"sourceId": "INV-4.pdf", "documentRole": "invoice", "fields": ["PO-157"]}
    matrix = build_matrix([invoice], purchase_orders, FIELDS)
    assert matrix.total_comparisons == 2
    assert all(r.match_score == 0 for r in matrix.results)


class TestContractViolations:
    """Contract violations reject the whole request before scoring."""

    def test_missing_source_id(self, purchase_orders):
        with pytest.raises(RecordContractError, match="invoice\\[0\\]"):
            build_matrix([{"documentRole": "invoice", "fields": {}}], purchase_orders, FIELDS)

    def test_empty_source_id(self, purchase_orders):
        with pytest.raises(RecordContractError):
            build_matrix([{"sourceId": "", "documentRole": "invoice"}], purchase_orders, FIELDS)

    def test_missing_role(self, invoices):
        with pytest.raises(RecordContractError, match="purchase_order\\[0\\]"):
            build_matrix(invoices, [{"sourceId": "po.pdf"}], FIELDS)

    def test_constructed_record_without_role(self, invoices):
        broken = DocumentRecord.model_construct(source_id="po.pdf", fields={})
        with pytest.raises(RecordContractError, match="no documentRole"):
            validate_records(invoices, [broken])

    def test_wrong_side(self, invoices, purchase_orders):
        with pytest.raises(RecordContractError, match="expected 'invoice'"):
            build_matrix(purchase_orders, invoices, FIELDS)

    def test_not_a_record(self, purchase_orders):
        with pytest.raises(RecordContractError):
            build_matrix(["INV-1.pdf"], purchase_orders, FIELDS)

    def test_scoring_never_starts(self, invoices, purchase_orders):
        with patch("invoice_matcher.engine.matrix.score") as mock_score:
            with pytest.raises(RecordContractError):
                build_matrix(invoices + [{"sourceId": "x"}], purchase_orders, FIELDS)
            mock_score.assert_not_called()


def test_invalid_threshold_rejected(invoices, purchase_orders):
    with pytest.raises(ValueError):
        build_matrix(invoices, purchase_orders, FIELDS, match_threshold=150)


@pytest.mark.parametrize("score_value,bucket", [
    (100, "high"),
    (81, "high"),
    (80, "medium"),
    (51, "medium"),
    (50, "low"),
    (0, "low"),
])
def test_bucket_boundaries(invoices, purchase_orders, score_value, bucket):
    result = build_matrix(invoices[:1], purchase_orders[:1], FIELDS).results[0]
    summary = summarize_scores([result.model_copy(update={"match_score": score_value})])
    counts = {
        "high": summary.high_confidence,
        "medium": summary.medium_confidence,
        "low": summary.low_confidence,
    }
    assert counts[bucket] == 1
    assert summary.total == 1


def test_matrix_is_reproducible(invoices, purchase_orders):
    assert build_matrix(invoices, purchase_orders, FIELDS) == build_matrix(invoices, purchase_orders, FIELDS)


def test_best_match_for(invoices, purchase_orders):
    matrix = build_matrix(invoices, purchase_orders, FIELDS)
    assert matrix.best_match_for("INV-A.pdf").po_id == "PO-Y.pdf"
    assert matrix.best_match_for("unknown.pdf") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
