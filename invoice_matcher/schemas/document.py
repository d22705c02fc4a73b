"""
Document schema and data models.
Represents extracted invoice / purchase order field sets as typed records.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class FieldKind(str, Enum):
    """Comparison rule selector for a field."""
    TEXT = "text"
    CURRENCY_AMOUNT = "currency_amount"
    DATE = "date"
    IDENTIFIER = "identifier"

    @classmethod
    def _missing_(cls, value):
        # Accept camelCase / spaced spellings from upstream payloads
        if isinstance(value, str):
            key = value.strip().replace(" ", "_").replace("-", "_")
            key = "".join("_" + c.lower() if c.isupper() else c for c in key).lstrip("_").lower()
            while "__" in key:
                key = key.replace("__", "_")
            for member in cls:
                if member.value == key:
                    return member
        return None


class DocumentRole(str, Enum):
    """Which side of the reconciliation a document sits on."""
    INVOICE = "invoice"
    PURCHASE_ORDER = "purchase_order"


RawValue = Union[str, int, float, Decimal]


def _kind_or_text(kind: Any) -> FieldKind:
    try:
        return FieldKind(kind)
    except (TypeError, ValueError):
        return FieldKind.TEXT


class FieldValue(BaseModel):
    """A single extracted datum. A None raw value means the field is missing."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    raw_value: Optional[RawValue] = Field(default=None, alias="rawValue")
    kind: FieldKind = FieldKind.TEXT

    @property
    def is_missing(self) -> bool:
        return self.raw_value is None


class FieldSpec(BaseModel):
    """One entry of the ordered field list to compare."""
    model_config = ConfigDict(frozen=True)

    name: str
    # None lets the extracted values pick the comparison rule
    kind: Optional[FieldKind] = None
    path: Optional[str] = None  # dotted key into an extraction payload

    @property
    def source_path(self) -> str:
        return self.path or self.name


class DocumentRecord(BaseModel):
    """
    Bag of extracted fields for one invoice or purchase order.

    source_id is kept for traceability only and never takes part in matching.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_id: str = Field(min_length=1, alias="sourceId")
    document_role: DocumentRole = Field(alias="documentRole")
    fields: Dict[str, FieldValue] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_fields(cls, value: Any) -> Any:
        # Extraction failures surface as missing fields, never as an invalid record
        if not isinstance(value, dict):
            return {}
        coerced = {}
        for key, entry in value.items():
            if isinstance(entry, FieldValue):
                coerced[key] = entry
                continue
            if not isinstance(entry, dict):
                entry = {"rawValue": entry}
            entry = {"name": key, **entry}
            try:
                coerced[key] = FieldValue.model_validate(entry)
            except ValidationError:
                coerced[key] = FieldValue(name=str(key), kind=_kind_or_text(entry.get("kind")))
        return coerced

    def get(self, field_name: str) -> Optional[FieldValue]:
        """Return the FieldValue for a field, or None when the source never captured it."""
        return self.fields.get(field_name)


class NormalizedValue(BaseModel):
    """Canonical, comparable form of a FieldValue."""
    model_config = ConfigDict(frozen=True)

    kind: FieldKind
    display: Optional[str] = None  # trimmed original, casing preserved
    key: Optional[str] = None  # comparison key
    amount: Optional[Decimal] = None
    calendar_date: Optional[date] = None
    parsed: bool = True  # False when a date fell back to text
    missing: bool = False
