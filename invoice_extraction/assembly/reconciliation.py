"""
Amount Reconciliation Module.

Derives a consistent subtotal / tax / total triple from whichever amounts
the document printed, and the effective tax rate.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from typing import Optional, Union

from config import get_config
from invoice_extraction.utils.helpers import round_half_up
from invoice_extraction.utils.logger import get_logger

logger = get_logger(__name__)

Number = Union[int, float]


@dataclass(frozen=True)
class ReconciledAmounts:
    """
    Result of reconciliation.

    Attributes:
        subtotal: Amount before tax
        tax_amount: Consumption tax
        total_amount: Amount billed
        tax_rate: Effective rate in percent, one decimal
        tier: Which combination of printed amounts was used (1-4)
    """
    subtotal: Number
    tax_amount: Number
    total_amount: Number
    tax_rate: float
    tier: int


class AmountReconciler:
    """
    Reconciles printed amounts in priority order.

    Tiers:
        1. Subtotal and tax printed: both trusted, the total defaults to
           their sum when it was not found
        2. Subtotal only: tax is the difference to the total
        3. Tax only: subtotal is the difference to the total
        4. Neither: the total is split with the detected (or default) rate

    Example:
        >>> AmountReconciler().reconcile(total=110000)
        ReconciledAmounts(subtotal=100000, tax_amount=10000, total_amount=110000, tax_rate=10.0, tier=4)
    """

    def __init__(self, default_tax_rate: Optional[float] = None) -> None:
        self.default_tax_rate = float(
            default_tax_rate if default_tax_rate is not None
            else get_config("extraction.default_tax_rate", 10)
        )

    def reconcile(
        self,
        subtotal: Optional[Number] = None,
        tax: Optional[Number] = None,
        total: Optional[Number] = None,
        detected_rate: Optional[float] = None
    ) -> ReconciledAmounts:
        """
        Reconcile the printed amounts.

        Args:
            subtotal: Printed subtotal, if any.
            tax: Printed tax amount, if any.
            total: Printed total, if any.
            detected_rate: Rate stated on the document, in percent.

        Returns:
            ReconciledAmounts; unknown amounts are 0.
        """
        subtotal = subtotal if subtotal and subtotal > 0 else 0
        tax = tax if tax and tax > 0 else 0
        total = total if total and total > 0 else 0
        fallback_rate = float(detected_rate) if detected_rate else self.default_tax_rate

        if subtotal and tax:
            tier = 1
            if not total:
                total = subtotal + tax
            rate = tax / subtotal * 100
        elif subtotal:
            tier = 2
            if total >= subtotal:
                tax = total - subtotal
            else:
                total, tax = subtotal, 0
            rate = tax / subtotal * 100
        elif tax:
            tier = 3
            if total > tax:
                subtotal = total - tax
                rate = tax / subtotal * 100
            else:
                subtotal = 0
                rate = fallback_rate
        else:
            tier = 4
            rate = fallback_rate
            subtotal = round_half_up(total / (1 + rate / 100))
            tax = total - subtotal

        reconciled = ReconciledAmounts(
            subtotal=subtotal,
            tax_amount=tax,
            total_amount=total,
            tax_rate=float(round_half_up(rate, 1)),
            tier=tier,
        )
        logger.debug(f"Amounts reconciled (tier {tier}): {reconciled}")
        return reconciled
