"""
Reconciliation engine: normalize, compare, score, build the comparison matrix.
"""

from invoice_matcher.engine.normalizer import normalize
from invoice_matcher.engine.comparator import compare
from invoice_matcher.engine.scorer import score
from invoice_matcher.engine.matrix import build_matrix, validate_records, RecordContractError

__all__ = [
    "normalize",
    "compare",
    "score",
    "build_matrix",
    "validate_records",
    "RecordContractError",
]
