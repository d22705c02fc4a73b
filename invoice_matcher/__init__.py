"""
Invoice / Purchase Order Matching Engine
"""

__version__ = "1.0.0"
__author__ = "AI Team"
__description__ = "Field comparison and match scoring for invoice to purchase order reconciliation"

from invoice_matcher.engine.matrix import build_matrix
from invoice_matcher.main import reconcile_documents, reconcile_pair
from invoice_matcher.schemas.document import DocumentRecord, FieldValue, FieldKind, DocumentRole
from invoice_matcher.schemas.output import ComparisonMatrixResult, MatchResult

__all__ = [
    "build_matrix",
    "reconcile_documents",
    "reconcile_pair",
    "DocumentRecord",
    "FieldValue",
    "FieldKind",
    "DocumentRole",
    "ComparisonMatrixResult",
    "MatchResult",
]
