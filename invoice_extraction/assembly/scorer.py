"""
Confidence Scorer Module.

Computes the completeness score stamped on every result: the share of a
fixed checklist of invoice fields that were populated. It measures how much
was found, not whether what was found is correct.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from config import get_config
from invoice_extraction.extraction.extraction_result import (
    AmountInfo,
    BillingTo,
    InvoiceBasicInfo,
    IssuerInfo,
    LineItem,
    PaymentTerms,
)
from invoice_extraction.utils.helpers import round_half_up
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfidenceReport:
    """
    Completeness score with the checklist items behind it.

    Attributes:
        score: populated / total, two decimals (0-1)
        populated: Number of populated checklist items
        total: Number of checklist items
        missing: Names of the items that were not populated
    """
    score: float
    populated: int
    total: int
    missing: Tuple[str, ...] = ()


class ConfidenceScorer:
    """
    Scores a record against a 17-item checklist.

    Checklist:
        basic info:    invoice_number, issue_date, transaction_date, subject
        billing:       company_name (not the sentinel), department, contact_person
        issuer:        name (not the sentinel), address, phone, email,
                       registration_number
        amounts:       subtotal > 0, tax known (total > 0), total > 0
        line items:    at least one
        payment terms: due date or any bank detail

    Example:
        >>> report = ConfidenceScorer().score(basic_info, billing_to, issuer_info,
        ...                                   amount_info, line_items, payment_terms)
        >>> report.score
        0.82
    """

    def __init__(self, sentinel: Optional[str] = None) -> None:
        self.sentinel = sentinel if sentinel is not None else get_config(
            "extraction.sentinel", "不明"
        )

    def _named(self, value: Optional[str]) -> bool:
        return bool(value) and value != self.sentinel

    def checklist(
        self,
        basic_info: InvoiceBasicInfo,
        billing_to: BillingTo,
        issuer_info: Optional[IssuerInfo],
        amount_info: AmountInfo,
        line_items: Sequence[LineItem],
        payment_terms: PaymentTerms
    ) -> List[Tuple[str, bool]]:
        """
        Evaluate each checklist item.

        Returns:
            (item name, populated) pairs in checklist order.
        """
        issuer = issuer_info or IssuerInfo(name=self.sentinel)
        checks: List[Tuple[str, Callable[[], bool]]] = [
            ('invoice_number', lambda: bool(basic_info.invoice_number)),
            ('issue_date', lambda: bool(basic_info.issue_date)),
            ('transaction_date', lambda: bool(basic_info.transaction_date)),
            ('subject', lambda: bool(basic_info.subject)),
            ('client_name', lambda: self._named(billing_to.company_name)),
            ('client_department', lambda: bool(billing_to.department)),
            ('client_contact', lambda: bool(billing_to.contact_person)),
            ('issuer_name', lambda: self._named(issuer.name)),
            ('issuer_address', lambda: bool(issuer.address)),
            ('issuer_phone', lambda: bool(issuer.phone)),
            ('issuer_email', lambda: bool(issuer.email)),
            ('registration_number', lambda: bool(issuer.registration_number)),
            ('subtotal', lambda: amount_info.subtotal > 0),
            # A reconciled tax of 0 is a known tax as long as a total exists.
            ('tax_amount', lambda: amount_info.total_amount > 0),
            ('total_amount', lambda: amount_info.total_amount > 0),
            ('line_items', lambda: len(line_items) > 0),
            ('payment_terms', lambda: any((
                payment_terms.due_date,
                payment_terms.bank_name,
                payment_terms.branch_name,
                payment_terms.account_number,
            ))),
        ]
        return [(name, check()) for name, check in checks]

    def score(
        self,
        basic_info: InvoiceBasicInfo,
        billing_to: BillingTo,
        issuer_info: Optional[IssuerInfo],
        amount_info: AmountInfo,
        line_items: Sequence[LineItem],
        payment_terms: PaymentTerms
    ) -> ConfidenceReport:
        """
        Score a record.

        Returns:
            ConfidenceReport with a score in [0, 1].
        """
        items = self.checklist(
            basic_info, billing_to, issuer_info, amount_info, line_items, payment_terms
        )
        populated = sum(1 for _, ok in items if ok)
        missing = tuple(name for name, ok in items if not ok)

        report = ConfidenceReport(
            score=float(round_half_up(populated / len(items), 2)),
            populated=populated,
            total=len(items),
            missing=missing,
        )
        logger.debug(f"Completeness {report.populated}/{report.total} = {report.score:.2f}")
        return report
