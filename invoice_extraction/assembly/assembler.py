"""
Invoice Data Assembler Module.

This module provides the InvoiceDataAssembler class that orchestrates the
extraction core for one document:

    normalize -> scalar extractors -> line items -> reconcile amounts
    -> build records -> score completeness -> stamp metadata

Every collaborator is a stateless service, so one assembler can process
any number of documents and the same input (and clock) always yields the
same result.

Author: ML Engineering Team
"""

import hashlib
from datetime import datetime
from typing import Callable, Dict, List, Optional

from dateutil import tz

from config import get_config
from invoice_extraction.assembly.reconciliation import AmountReconciler
from invoice_extraction.assembly.scorer import ConfidenceScorer
from invoice_extraction.extraction.amounts import AmountFieldExtractor
from invoice_extraction.extraction.document import DocumentFieldExtractor
from invoice_extraction.extraction.extraction_result import (
    AmountInfo,
    BillingPeriod,
    BillingTo,
    ExtractedField,
    InvoiceBasicInfo,
    InvoiceExtractionResult,
    InvoiceMetadata,
    IssuerInfo,
    PaymentTerms,
    ReconciliationKeys,
    TaxBreakdown,
)
from invoice_extraction.extraction.identity import IdentityExtractor
from invoice_extraction.extraction.line_items import LineItemTableExtractor
from invoice_extraction.extraction.payment import PaymentFieldExtractor
from invoice_extraction.normalization.normalizers import (
    AmountParser,
    CompanyNameNormalizer,
    DateNormalizer,
    TextNormalizer,
)
from invoice_extraction.recognition.recognized_text import RecognizedText
from invoice_extraction.utils.logger import document_context, get_logger

# Initialize module logger
logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(tz.tzutc())


def compute_invoice_id(file_hash: str, raw_text: str) -> str:
    """
    Derive the record identifier from the file hash and the OCR text.

    Example:
        >>> compute_invoice_id("abc", "請求書")[:4]
        'inv_'
    """
    digest = hashlib.sha256(f"{file_hash}\0{raw_text}".encode('utf-8')).hexdigest()
    return f"inv_{digest[:16]}"


class _ConfidenceLog:
    """Collects the confidence of every extracted field."""

    def __init__(self) -> None:
        self.values: Dict[str, float] = {}

    def take(self, name: str, extracted: Optional[ExtractedField]):
        if extracted is None:
            return None
        self.values[name] = extracted.confidence
        return extracted.value


class InvoiceDataAssembler:
    """
    Builds an InvoiceExtractionResult from raw OCR text.

    Attributes:
        text_normalizer: Digit-group repair
        document: Invoice number, dates, subject, order number, period
        identity: Client, issuer and contact details
        payment: Bank transfer details and payment conditions
        amounts: Printed amounts
        line_items: Table reconstruction
        reconciler: Subtotal / tax / total reconciliation
        scorer: Completeness scoring

    Example:
        >>> assembler = InvoiceDataAssembler()
        >>> result = assembler.assemble(ocr_text, "invoice.pdf", file_hash)
        >>> print(result.amount_info.total_amount)
        >>> print(result.metadata.ocr_confidence)
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        date_normalizer: Optional[DateNormalizer] = None,
        amount_parser: Optional[AmountParser] = None
    ) -> None:
        """
        Initialize the assembler with all sub-components.

        Args:
            clock: Returns the timestamp stamped on results (default: UTC now).
            date_normalizer: Shared date normalizer.
            amount_parser: Shared amount parser.
        """
        amount_parser = amount_parser or AmountParser()

        self.text_normalizer = TextNormalizer()
        self.document = DocumentFieldExtractor(date_normalizer)
        self.identity = IdentityExtractor()
        self.payment = PaymentFieldExtractor()
        self.amounts = AmountFieldExtractor(amount_parser)
        self.line_items = LineItemTableExtractor(amount_parser)
        self.reconciler = AmountReconciler()
        self.scorer = ConfidenceScorer()
        self.company_normalizer = CompanyNameNormalizer()
        self.clock = clock or utc_now

        # Load configuration
        self.sentinel = get_config("extraction.sentinel", "不明")
        self.currency = get_config("extraction.currency", "JPY")

    def assemble_from_recognition(
        self,
        recognized: RecognizedText,
        file_name: str,
        file_hash: str
    ) -> InvoiceExtractionResult:
        """Assemble from an engine result, carrying over its confidence."""
        return self.assemble(recognized.text, file_name, file_hash, recognized.confidence)

    def assemble(
        self,
        raw_text: str,
        file_name: str,
        file_hash: str,
        engine_confidence: Optional[float] = None
    ) -> InvoiceExtractionResult:
        """
        Extract, reconcile and score one document.

        Args:
            raw_text: OCR text of the document.
            file_name: Original file name (decides the source kind).
            file_hash: Content hash of the original file.
            engine_confidence: Confidence reported by the OCR engine (0-1).

        Returns:
            Immutable InvoiceExtractionResult. Missing fields are None (or 0
            for amounts, the sentinel for company names), never an error.
        """
        with document_context(file_name):
            return self._assemble(raw_text, file_name, file_hash, engine_confidence)

    def _assemble(
        self,
        raw_text: str,
        file_name: str,
        file_hash: str,
        engine_confidence: Optional[float]
    ) -> InvoiceExtractionResult:
        if not isinstance(raw_text, str):
            logger.warning(
                f"OCR text for {file_name} is {type(raw_text).__name__}, not str; "
                f"treating it as empty"
            )
            raw_text = ""

        text = self.text_normalizer.normalize(raw_text)
        lines = self.text_normalizer.split_lines(text)
        log = _ConfidenceLog()

        # Document fields
        invoice_number = log.take('invoice_number', self.document.extract_invoice_number(text))
        issue_date = log.take('issue_date', self.document.extract_issue_date(text))
        transaction_date = log.take(
            'transaction_date', self.document.extract_transaction_date(text)
        )
        if transaction_date is None and issue_date is not None:
            transaction_date = issue_date
            log.values['transaction_date'] = log.values['issue_date']
        due_date = log.take('due_date', self.document.extract_due_date(text))
        subject = log.take('subject', self.document.extract_subject(text))
        order_number = log.take('order_number', self.document.extract_order_number(text))
        project_name = log.take('project_name', self.document.extract_project_name(text))
        billing_period = log.take(
            'billing_period', self.document.extract_billing_period(text)
        ) or BillingPeriod()

        # Parties
        client = self.identity.extract_client(lines)
        issuer = self.identity.extract_issuer(lines, client)
        client_name = log.take('client_name', client.field if client else None)
        department = log.take('client_department', self.identity.extract_department(lines, client))
        contact_person = log.take(
            'client_contact', self.identity.extract_contact_person(lines, client)
        )
        issuer_name = log.take('issuer_name', issuer.field if issuer else None)

        if issuer is not None:
            anchor_line = issuer.line_index
        elif client is not None:
            anchor_line = client.line_index + 1
        else:
            anchor_line = None
        region = '\n'.join(lines[anchor_line:]) if anchor_line is not None else None

        address = log.take('issuer_address', self.identity.extract_address(lines, anchor_line))
        phone = log.take('issuer_phone', self.identity.extract_phone(text, region))
        email = log.take('issuer_email', self.identity.extract_email(text, region))
        registration_number = log.take(
            'registration_number', self.identity.extract_registration_number(text)
        )

        # Payment
        bank = {
            name: log.take(name, extracted)
            for name, extracted in self.payment.extract_bank_details(text).items()
        }
        payment_condition = log.take(
            'payment_condition', self.payment.extract_payment_condition(text)
        )
        fee_bearer = log.take('fee_bearer', self.payment.extract_fee_bearer(text))

        # Amounts
        printed = self.amounts.extract(text, lines)
        subtotal = log.take('subtotal', printed.subtotal)
        tax = log.take('tax_amount', printed.tax_amount)
        total = log.take('total_amount', printed.total_amount)
        detected_rate = log.take('tax_rate', printed.tax_rate)

        line_items = tuple(self.line_items.extract(lines, fallback_amount=subtotal or total))
        reconciled = self.reconciler.reconcile(subtotal, tax, total, detected_rate)

        # Records
        basic_info = InvoiceBasicInfo(
            invoice_number=invoice_number,
            issue_date=issue_date,
            transaction_date=transaction_date,
            currency=self.currency,
            subject=subject,
            order_number=order_number,
        )

        billing_to = BillingTo(
            company_name=client_name or self.sentinel,
            department=department,
            contact_person=contact_person,
        )

        issuer_info = None
        if issuer_name or registration_number:
            issuer_info = IssuerInfo(
                name=issuer_name or self.sentinel,
                address=address,
                phone=phone,
                email=email,
                registration_number=registration_number,
            )

        if printed.breakdown:
            tax_breakdown = printed.breakdown
        elif reconciled.tax_amount > 0:
            tax_breakdown = (TaxBreakdown(
                rate=reconciled.tax_rate,
                amount=reconciled.tax_amount,
                taxable_amount=reconciled.subtotal,
            ),)
        else:
            tax_breakdown = ()

        amount_info = AmountInfo(
            subtotal=reconciled.subtotal,
            tax_amount=reconciled.tax_amount,
            total_amount=reconciled.total_amount,
            tax_rate=reconciled.tax_rate,
            tax_breakdown=tax_breakdown,
            tax_exempt=reconciled.total_amount > 0 and reconciled.tax_amount == 0,
        )

        payment_terms = PaymentTerms(
            due_date=due_date,
            payment_condition=payment_condition,
            bank_name=bank['bank_name'],
            branch_name=bank['branch_name'],
            account_type=bank['account_type'],
            account_number=bank['account_number'],
            account_holder=bank['account_holder'],
            fee_bearer=fee_bearer,
        )

        reconciliation_keys = ReconciliationKeys(
            normalized_issuer_name=self.company_normalizer.normalize(issuer_name or ""),
            order_number=order_number,
            billing_period=billing_period,
            project_name=project_name,
            contact_person=contact_person,
            total_amount=reconciled.total_amount,
        )

        report = self.scorer.score(
            basic_info, billing_to, issuer_info, amount_info, line_items, payment_terms
        )

        timestamp = self.clock().isoformat()
        metadata = InvoiceMetadata(
            source=self._source_kind(file_name),
            file_name=file_name,
            file_hash=file_hash,
            ocr_confidence=report.score,
            created_at=timestamp,
            updated_at=timestamp,
            engine_confidence=engine_confidence,
        )

        warnings = self._check_required(file_name, issuer_name, reconciled.total_amount)

        result = InvoiceExtractionResult(
            id=compute_invoice_id(file_hash, raw_text),
            basic_info=basic_info,
            issuer_info=issuer_info,
            billing_to=billing_to,
            amount_info=amount_info,
            line_items=line_items,
            payment_terms=payment_terms,
            reconciliation_keys=reconciliation_keys,
            metadata=metadata,
            field_confidences=log.values,
            warnings=tuple(warnings),
        )

        logger.info(
            f"Assembled {file_name}: invoice={invoice_number}, "
            f"total={reconciled.total_amount}, items={len(line_items)}, "
            f"completeness={report.score:.2f} ({report.populated}/{report.total})"
        )
        return result

    @staticmethod
    def _source_kind(file_name: str) -> str:
        name = file_name.lower() if isinstance(file_name, str) else ""
        return "pdf_import" if name.endswith(".pdf") else "image_import"

    def _check_required(
        self,
        file_name: str,
        issuer_name: Optional[str],
        total_amount
    ) -> List[str]:
        warnings = []
        if not issuer_name or issuer_name == self.sentinel:
            warnings.append("issuer name not found")
        if not total_amount:
            warnings.append("total amount not found")

        for warning in warnings:
            logger.warning(f"{file_name}: {warning}")
        return warnings
