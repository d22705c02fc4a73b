"""
Document sources.
Turn extraction payloads (OCR/LLM output, database rows) into DocumentRecords.

Extraction itself happens upstream. A field that was not extracted becomes
a missing FieldValue here, never an error.
"""

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from invoice_matcher.config import DEFAULT_FIELDS, get_config
from invoice_matcher.schemas.document import (
    DocumentRecord,
    DocumentRole,
    FieldKind,
    FieldSpec,
    FieldValue,
)
from invoice_matcher.utils import get_by_path
from invoice_matcher.utils.logging import setup_logging


logger = setup_logging(__name__)
config = get_config()


_PO_TYPES = {"purchase_order", "purchase order", "purchase-order", "po"}
_INVOICE_TYPES = {"invoice", "tax invoice", "bill"}
# "po" as its own token: "PO 17675", "PO-17675", "po17675", but not "report" or "deposit"
_PO_TOKEN = re.compile(r"(?<![a-z])po(?![a-z])")


def classify_document_role(filename: str, declared_type: Optional[str] = None) -> DocumentRole:
    """
    Decide whether a document is an invoice or a purchase order.

    A declared type from extraction wins; otherwise a filename mentioning
    "po" as a standalone token or "purchase" anywhere is a purchase order,
    anything else is an invoice.
    """
    if declared_type:
        declared = declared_type.strip().lower()
        if declared in _PO_TYPES:
            return DocumentRole.PURCHASE_ORDER
        if declared in _INVOICE_TYPES:
            return DocumentRole.INVOICE

    name = (filename or "").lower()
    if _PO_TOKEN.search(name) or "purchase" in name:
        return DocumentRole.PURCHASE_ORDER
    return DocumentRole.INVOICE


def load_field_specs(path: Optional[str] = None) -> List[FieldSpec]:
    """Load the ordered field list from a JSON file, or fall back to the defaults."""
    path = path or config.FIELDS_CONFIG_PATH
    if not path:
        return [FieldSpec(**field) for field in DEFAULT_FIELDS]

    with open(path, "r") as f:
        fields = json.load(f)
    specs = [FieldSpec(**field) for field in fields]
    logger.info(f"Loaded {len(specs)} field specs from {path}")
    return specs


def _scalar_or_none(value: Any) -> Optional[Any]:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (str, int, float)):
        return value
    return None


def record_from_payload(
    source_id: str,
    role: DocumentRole,
    payload: Dict[str, Any],
    field_specs: Sequence[FieldSpec],
) -> DocumentRecord:
    """
    Build a DocumentRecord from a (possibly nested) extraction payload.

    Each spec's dotted path is read from the payload; absent, null or
    non-scalar values become missing fields.
    """
    fields = {}
    for spec in field_specs:
        raw = get_by_path(payload, spec.source_path)
        value = _scalar_or_none(raw)
        if raw is not None and value is None:
            logger.debug(f"Field '{spec.name}' in {source_id} is not a scalar; treating as missing")
        fields[spec.name] = FieldValue(name=spec.name, raw_value=value, kind=spec.kind or FieldKind.TEXT)

    return DocumentRecord(source_id=source_id, document_role=role, fields=fields)


def _record_from_entry(
    entry: Dict[str, Any],
    fallback_id: str,
    field_specs: Sequence[FieldSpec],
) -> DocumentRecord:
    source_id = entry.get("sourceId") or entry.get("fileName") or entry.get("filename") or fallback_id
    declared = entry.get("documentRole") or entry.get("documentType") or entry.get("document_type")
    role = classify_document_role(source_id, declared)
    payload = entry.get("fields") if isinstance(entry.get("fields"), dict) else entry
    return record_from_payload(source_id, role, payload, field_specs)


def split_by_role(records: Sequence[DocumentRecord]) -> Tuple[List[DocumentRecord], List[DocumentRecord]]:
    """Split records into (invoices, purchase_orders), keeping their relative order."""
    invoices = [r for r in records if r.document_role == DocumentRole.INVOICE]
    purchase_orders = [r for r in records if r.document_role == DocumentRole.PURCHASE_ORDER]
    return invoices, purchase_orders


class DocumentSource:
    """Supplies DocumentRecords in a stable order."""

    async def fetch(self) -> List[DocumentRecord]:
        raise NotImplementedError


class JsonFileDocumentSource(DocumentSource):
    """A JSON file holding a list of extraction payloads."""

    def __init__(self, path: str, field_specs: Optional[Sequence[FieldSpec]] = None):
        self.path = Path(path)
        self.field_specs = list(field_specs) if field_specs else load_field_specs()

    async def fetch(self) -> List[DocumentRecord]:
        entries = await asyncio.to_thread(self._read)
        records = [
            _record_from_entry(entry, f"{self.path.name}#{idx}", self.field_specs)
            for idx, entry in enumerate(entries)
        ]
        logger.info(f"Loaded {len(records)} documents from {self.path}")
        return records

    def _read(self) -> List[Dict[str, Any]]:
        with open(self.path, "r") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("documents", [])
        if not isinstance(data, list):
            raise ValueError(f"{self.path} must contain a list of documents")
        return data


class JsonDirectoryDocumentSource(DocumentSource):
    """
    One extraction payload per *.json file.

    Files are read concurrently; records come back in sorted filename order
    so matrix indices are reproducible between runs.
    """

    def __init__(self, directory: str = None, field_specs: Optional[Sequence[FieldSpec]] = None):
        self.directory = Path(directory or config.DOCUMENTS_DIR)
        self.field_specs = list(field_specs) if field_specs else load_field_specs()

    def _load_file(self, path: Path) -> DocumentRecord:
        with open(path, "r") as f:
            entry = json.load(f)
        if not isinstance(entry, dict):
            raise ValueError(f"{path.name} does not hold a JSON object")
        entry.setdefault("fileName", path.stem)
        return _record_from_entry(entry, path.stem, self.field_specs)

    async def fetch(self) -> List[DocumentRecord]:
        paths = sorted(self.directory.glob("*.json"))
        # gather preserves argument order regardless of completion order
        loaded = await asyncio.gather(
            *[asyncio.to_thread(self._load_file, p) for p in paths],
            return_exceptions=True,
        )

        records = []
        for path, result in zip(paths, loaded):
            if isinstance(result, Exception):
                logger.warning(f"Skipping unreadable document {path.name}: {result}")
                continue
            records.append(result)

        logger.info(f"Loaded {len(records)}/{len(paths)} documents from {self.directory}")
        return records
