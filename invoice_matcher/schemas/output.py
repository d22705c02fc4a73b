"""
Output schemas for comparison results.
Defines the JSON shape handed to reporting sinks.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from invoice_matcher.schemas.document import FieldKind
from invoice_matcher.utils.confidence import combine_confidence_scores


class ComparisonOutcome(str, Enum):
    """Per-field comparison outcome."""
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    MISSING = "MISSING"


class MatchStatus(str, Enum):
    """Pass/fail gate for one invoice/PO pair."""
    MATCHED = "matched"
    MISMATCHED = "mismatched"


class FieldComparison(BaseModel):
    """Result of comparing one field across two documents."""
    model_config = ConfigDict(frozen=True)

    field: str
    kind: FieldKind = FieldKind.TEXT
    left_value: Optional[str] = None
    right_value: Optional[str] = None
    outcome: ComparisonOutcome
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _confidence_only_when_compared(self) -> "FieldComparison":
        if self.outcome == ComparisonOutcome.MISSING and self.confidence is not None:
            raise ValueError("confidence is undefined for MISSING comparisons")
        return self

    @property
    def both_missing(self) -> bool:
        """True when neither document carried the field."""
        return self.left_value is None and self.right_value is None

    def to_report_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "kind": self.kind.value,
            "invoiceValue": self.left_value,
            "poValue": self.right_value,
            "status": self.outcome.value,
            "confidence": self.confidence,
        }


class MatchResult(BaseModel):
    """Scored outcome of one invoice/PO pair."""
    model_config = ConfigDict(frozen=True)

    invoice_id: str
    po_id: str
    field_comparisons: Tuple[FieldComparison, ...] = ()
    match_score: int = Field(ge=0, le=100)
    status: MatchStatus
    # Only set by the matrix builder; None for pairwise comparisons
    is_likely_match: Optional[bool] = None
    invoice_index: Optional[int] = None
    po_index: Optional[int] = None
    error: Optional[str] = None

    def _count(self, outcome: ComparisonOutcome) -> int:
        return sum(1 for c in self.field_comparisons if c.outcome == outcome)

    @property
    def matched_count(self) -> int:
        return self._count(ComparisonOutcome.MATCH)

    @property
    def mismatched_count(self) -> int:
        return self._count(ComparisonOutcome.MISMATCH)

    @property
    def missing_count(self) -> int:
        return self._count(ComparisonOutcome.MISSING)

    @property
    def total_compared_fields(self) -> int:
        """Comparisons where at least one side carried a value."""
        return sum(1 for c in self.field_comparisons if not c.both_missing)

    @property
    def average_confidence(self) -> float:
        return combine_confidence_scores(
            [c.confidence for c in self.field_comparisons if c.confidence is not None],
            method="mean",
        )

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def mismatched_fields(self) -> List[FieldComparison]:
        return [c for c in self.field_comparisons if c.outcome == ComparisonOutcome.MISMATCH]

    def to_report_dict(self) -> Dict[str, Any]:
        """Shape consumed by the UI, exports and notifications."""
        return {
            "invoiceFilename": self.invoice_id,
            "poFilename": self.po_id,
            "invoiceIndex": self.invoice_index,
            "poIndex": self.po_index,
            "matchScore": self.match_score,
            "status": self.status.value,
            "isLikelyMatch": self.is_likely_match,
            "error": self.error,
            "fieldComparisons": [c.to_report_dict() for c in self.field_comparisons],
        }


class ConfidenceSummary(BaseModel):
    """Match-score buckets over a matrix: high > 80, medium 51-80, low <= 50."""
    model_config = ConfigDict(frozen=True)

    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0

    @property
    def total(self) -> int:
        return self.high_confidence + self.medium_confidence + self.low_confidence


class ComparisonMatrixResult(BaseModel):
    """Every invoice compared against every purchase order."""
    model_config = ConfigDict(frozen=True)

    results: Tuple[MatchResult, ...] = ()
    summary: ConfidenceSummary = Field(default_factory=ConfidenceSummary)
    total_invoices: int = 0
    total_purchase_orders: int = 0
    match_threshold: int = 70

    @property
    def total_comparisons(self) -> int:
        return len(self.results)

    @property
    def failed_comparisons(self) -> int:
        return sum(1 for r in self.results if r.is_error)

    @property
    def likely_matches(self) -> List[MatchResult]:
        return [r for r in self.results if r.is_likely_match]

    def row(self, invoice_index: int) -> List[MatchResult]:
        """All results for one invoice, in purchase order order."""
        return [r for r in self.results if r.invoice_index == invoice_index]

    def best_match_for(self, invoice_id: str) -> Optional[MatchResult]:
        """Highest scoring non-error result for an invoice; first PO wins ties."""
        best = None
        for result in self.results:
            if result.invoice_id != invoice_id or result.is_error:
                continue
            if best is None or result.match_score > best.match_score:
                best = result
        return best

    def to_report_dict(self) -> Dict[str, Any]:
        return {
            "totalComparisons": self.total_comparisons,
            "failedComparisons": self.failed_comparisons,
            "matchThreshold": self.match_threshold,
            "comparisonMatrix": [r.to_report_dict() for r in self.results],
            "likelyMatches": [r.to_report_dict() for r in self.likely_matches],
            "summary": {
                "totalInvoices": self.total_invoices,
                "totalPOs": self.total_purchase_orders,
                "highConfidenceMatches": self.summary.high_confidence,
                "mediumConfidenceMatches": self.summary.medium_confidence,
                "lowConfidenceMatches": self.summary.low_confidence,
            },
        }


class BatchSummary(BaseModel):
    """Run summary: how many pairs passed the gate and the mean score."""
    documents_processed: int
    average_score: float
    validated_count: int
    review_required_count: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "documents_processed": 4,
                "average_score": 82.5,
                "validated_count": 3,
                "review_required_count": 1,
            }
        }
    )
