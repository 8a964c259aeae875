"""
Extraction Result Data Classes.

This module defines the immutable records produced by the extraction core.
Records are frozen dataclasses; sequences are stored as tuples so a result
cannot be modified once assembled.

Author: ML Engineering Team
"""

import json
from dataclasses import asdict, dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, Generic, Mapping, Optional, Tuple, TypeVar, Union

T = TypeVar('T')
Number = Union[int, float]


def _from_mapping(cls, data: Optional[Mapping[str, Any]]):
    """Build a flat record from a mapping, ignoring unknown keys."""
    if data is None:
        return None
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class ExtractedField(Generic[T]):
    """
    A single extracted value with the confidence of the rule that produced it.

    Attributes:
        value: Extracted value
        confidence: Confidence of the winning rule (0-1)
    """
    value: T
    confidence: float

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass(frozen=True)
class InvoiceBasicInfo:
    """Document-level identifiers and dates (ISO 8601)."""
    invoice_number: Optional[str] = None
    issue_date: Optional[str] = None
    transaction_date: Optional[str] = None
    currency: str = "JPY"
    subject: Optional[str] = None
    order_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'InvoiceBasicInfo':
        return _from_mapping(cls, data)


@dataclass(frozen=True)
class IssuerInfo:
    """The party that issued the invoice."""
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    registration_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional['IssuerInfo']:
        return _from_mapping(cls, data)


@dataclass(frozen=True)
class BillingTo:
    """The billed party. company_name holds the sentinel when unextracted."""
    company_name: str
    department: Optional[str] = None
    contact_person: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BillingTo':
        return _from_mapping(cls, data)


@dataclass(frozen=True)
class TaxBreakdown:
    """Tax amount for one rate, with the amount it was levied on."""
    rate: float
    amount: Number
    taxable_amount: Number

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AmountInfo:
    """
    Reconciled amounts.

    Attributes:
        subtotal: Amount before tax (0 when unknown)
        tax_amount: Consumption tax (0 when unknown)
        total_amount: Amount billed (0 when unknown)
        tax_rate: Effective rate in percent, one decimal
        tax_breakdown: Per-rate breakdown
        tax_exempt: A total exists and no tax is charged
    """
    subtotal: Number = 0
    tax_amount: Number = 0
    total_amount: Number = 0
    tax_rate: float = 10.0
    tax_breakdown: Tuple[TaxBreakdown, ...] = ()
    tax_exempt: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'AmountInfo':
        values = dict(data)
        values['tax_breakdown'] = tuple(
            TaxBreakdown(**entry) for entry in values.get('tax_breakdown') or ()
        )
        return _from_mapping(cls, values)


@dataclass(frozen=True)
class LineItem:
    """One row of the line-item table."""
    description: str
    amount: Number
    quantity: Optional[float] = None
    unit: Optional[str] = None
    unit_price: Optional[Number] = None
    tax_rate: Optional[float] = None
    tax_amount: Optional[Number] = None
    remarks: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'LineItem':
        return _from_mapping(cls, data)


@dataclass(frozen=True)
class PaymentTerms:
    """Due date and transfer destination."""
    due_date: Optional[str] = None
    payment_condition: Optional[str] = None
    bank_name: Optional[str] = None
    branch_name: Optional[str] = None
    account_type: Optional[str] = None
    account_number: Optional[str] = None
    account_holder: Optional[str] = None
    fee_bearer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PaymentTerms':
        return _from_mapping(cls, data)


@dataclass(frozen=True)
class BillingPeriod:
    """Service period the invoice covers."""
    start: Optional[str] = None
    end: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReconciliationKeys:
    """Keys used to match the invoice against orders and bank transfers."""
    normalized_issuer_name: str = ""
    order_number: Optional[str] = None
    billing_period: BillingPeriod = field(default_factory=BillingPeriod)
    project_name: Optional[str] = None
    contact_person: Optional[str] = None
    total_amount: Number = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ReconciliationKeys':
        values = dict(data)
        values['billing_period'] = _from_mapping(
            BillingPeriod, values.get('billing_period') or {}
        )
        return _from_mapping(cls, values)


@dataclass(frozen=True)
class InvoiceMetadata:
    """Provenance and lifecycle information."""
    source: str
    file_name: str
    file_hash: str
    ocr_confidence: float
    created_at: str
    updated_at: str
    engine_confidence: Optional[float] = None
    status: str = "draft"
    version: int = 1
    is_readonly: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'InvoiceMetadata':
        return _from_mapping(cls, data)


@dataclass(frozen=True)
class InvoiceExtractionResult:
    """
    Immutable invoice record assembled from one OCR text.

    Attributes:
        id: Deterministic identifier derived from file hash and text
        basic_info: Identifiers and dates
        issuer_info: Issuer, or None when neither name nor registration
            number was found
        billing_to: Billed party
        amount_info: Reconciled amounts
        line_items: Line-item rows
        payment_terms: Due date and transfer destination
        reconciliation_keys: Matching keys
        metadata: Provenance and completeness score
        field_confidences: Confidence of the winning rule per field
        warnings: Missing required fields and other notices

    Example:
        >>> result = InvoiceDataAssembler().assemble(text, "inv.pdf", "abc123")
        >>> result.amount_info.total_amount
        110000
        >>> print(result.to_json())
    """
    id: str
    basic_info: InvoiceBasicInfo
    issuer_info: Optional[IssuerInfo]
    billing_to: BillingTo
    amount_info: AmountInfo
    line_items: Tuple[LineItem, ...]
    payment_terms: PaymentTerms
    reconciliation_keys: ReconciliationKeys
    metadata: InvoiceMetadata
    field_confidences: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    warnings: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.field_confidences, MappingProxyType):
            object.__setattr__(
                self, 'field_confidences', MappingProxyType(dict(self.field_confidences))
            )

    @property
    def completeness(self) -> float:
        """Completeness score (0-1) stamped in the metadata."""
        return self.metadata.ocr_confidence

    def get_confidence(self, field_name: str) -> float:
        """
        Get the extraction confidence for a field.

        Args:
            field_name: Name of the field (e.g. "total_amount").

        Returns:
            Confidence (0-1), or 0 if the field was not extracted.
        """
        return self.field_confidences.get(field_name, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a JSON-compatible dictionary.

        Returns:
            Nested dictionary representation of the record.
        """
        return {
            'id': self.id,
            'basic_info': self.basic_info.to_dict(),
            'issuer_info': self.issuer_info.to_dict() if self.issuer_info else None,
            'billing_to': self.billing_to.to_dict(),
            'amount_info': self.amount_info.to_dict(),
            'line_items': [item.to_dict() for item in self.line_items],
            'payment_terms': self.payment_terms.to_dict(),
            'reconciliation_keys': self.reconciliation_keys.to_dict(),
            'metadata': self.metadata.to_dict(),
            'field_confidences': dict(self.field_confidences),
            'warnings': list(self.warnings),
        }

    def to_json(self, indent: int = 2) -> str:
        """
        Convert to JSON string.

        Args:
            indent: JSON indentation level.

        Returns:
            JSON string with Japanese text left unescaped.
        """
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_flat_dict(self) -> Dict[str, Any]:
        """
        Convert to a flat dictionary of the main fields.

        Used for golden-file comparison and tabular export.

        Returns:
            Flat dictionary with no nested structures.
        """
        issuer = self.issuer_info or IssuerInfo(name="")
        return {
            'id': self.id,
            'source_file': self.metadata.file_name,
            'invoice_number': self.basic_info.invoice_number,
            'issue_date': self.basic_info.issue_date,
            'transaction_date': self.basic_info.transaction_date,
            'subject': self.basic_info.subject,
            'order_number': self.basic_info.order_number,
            'client_name': self.billing_to.company_name,
            'client_department': self.billing_to.department,
            'client_contact': self.billing_to.contact_person,
            'issuer_name': issuer.name or None,
            'issuer_address': issuer.address,
            'issuer_phone': issuer.phone,
            'issuer_email': issuer.email,
            'registration_number': issuer.registration_number,
            'subtotal': self.amount_info.subtotal,
            'tax_amount': self.amount_info.tax_amount,
            'total_amount': self.amount_info.total_amount,
            'tax_rate': self.amount_info.tax_rate,
            'line_item_count': len(self.line_items),
            'due_date': self.payment_terms.due_date,
            'bank_name': self.payment_terms.bank_name,
            'branch_name': self.payment_terms.branch_name,
            'account_type': self.payment_terms.account_type,
            'account_number': self.payment_terms.account_number,
            'account_holder': self.payment_terms.account_holder,
            'ocr_confidence': self.metadata.ocr_confidence,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'InvoiceExtractionResult':
        """
        Rebuild a record from its to_dict() form.

        Args:
            data: Dictionary produced by to_dict() (e.g. a saved JSON result).

        Returns:
            InvoiceExtractionResult instance.
        """
        return cls(
            id=data['id'],
            basic_info=InvoiceBasicInfo.from_dict(data.get('basic_info') or {}),
            issuer_info=IssuerInfo.from_dict(data.get('issuer_info')),
            billing_to=BillingTo.from_dict(data['billing_to']),
            amount_info=AmountInfo.from_dict(data.get('amount_info') or {}),
            line_items=tuple(
                LineItem.from_dict(item) for item in data.get('line_items') or ()
            ),
            payment_terms=PaymentTerms.from_dict(data.get('payment_terms') or {}),
            reconciliation_keys=ReconciliationKeys.from_dict(
                data.get('reconciliation_keys') or {}
            ),
            metadata=InvoiceMetadata.from_dict(data['metadata']),
            field_confidences=data.get('field_confidences') or {},
            warnings=tuple(data.get('warnings') or ()),
        )

    def __repr__(self) -> str:
        return (
            f"InvoiceExtractionResult("
            f"id={self.id}, "
            f"invoice={self.basic_info.invoice_number}, "
            f"client={self.billing_to.company_name}, "
            f"total={self.amount_info.total_amount}, "
            f"completeness={self.metadata.ocr_confidence:.2f})"
        )
