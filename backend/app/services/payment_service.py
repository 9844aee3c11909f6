"""
Payment Service - milestone based billing for accepted quotes.
Derives the payment schedule from the quote total and issues one invoice per
schedule slot (down payment, milestone, final).
"""
import logging
import secrets
import string
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session

from app.config import settings
from app.models.invoice import Invoice
from app.models.quote import Quote
from app.schemas.invoice import PaymentScheduleEntry, PaymentScheduleResponse, InvoiceResponse
from app.utils.pricing_rules import (
    QuoteValidationError,
    allocate_milestones,
    milestones_from_quote_fields,
    quantize_money,
    to_decimal,
    DOWN_PAYMENT_ORDER,
    PROGRESS_ORDER,
    FINAL_ORDER,
)
from app.services.quote_service import utcnow

logger = logging.getLogger(__name__)

INVOICE_TYPE_BY_ORDER = {
    DOWN_PAYMENT_ORDER: "down_payment",
    PROGRESS_ORDER: "milestone",
    FINAL_ORDER: "final",
}

INVOICE_LABELS = {
    "down_payment": "Down payment",
    "milestone": "Milestone payment",
    "final": "Final payment",
}


class InvoiceNotFoundError(LookupError):
    pass


class PaymentService:
    """Service for the quote payment schedule and its invoices"""

    def calculate_payment_schedule(self, quote: Quote) -> List[PaymentScheduleEntry]:
        """
        Split the quote total across the three persisted schedule slots.

        Slots with a zero percentage are left out.
        """
        milestones = milestones_from_quote_fields(
            quote.down_payment_percentage,
            quote.milestone_payment_percentage,
            quote.final_payment_percentage,
            quote.milestone_description or settings.default_milestone_description,
        )
        entries = []
        for allocation in allocate_milestones(quote.total, milestones):
            invoice_type = INVOICE_TYPE_BY_ORDER[allocation.order]
            entries.append(PaymentScheduleEntry(
                invoice_type=invoice_type,
                description=allocation.description,
                percentage=allocation.percentage,
                amount=quantize_money(allocation.amount)
            ))
        return entries

    def get_payment_schedule(self, db: Session, quote: Quote) -> PaymentScheduleResponse:
        return PaymentScheduleResponse(
            quote_id=quote.id,
            quote_number=quote.quote_number,
            total=to_decimal(quote.total),
            currency=quote.currency,
            entries=self.calculate_payment_schedule(quote),
            invoices=[InvoiceResponse.model_validate(i) for i in self.list_invoices(db, quote.id)]
        )

    def list_invoices(self, db: Session, quote_id: int) -> List[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.quote_id == quote_id)
            .order_by(Invoice.issue_date, Invoice.id)
            .all()
        )

    def get_invoice(self, db: Session, invoice_id: int) -> Invoice:
        invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def process_quote_acceptance(self, db: Session, quote: Quote) -> Optional[Invoice]:
        """
        Issue the down payment invoice for an accepted quote, due immediately.

        Returns None when the schedule has no down payment.
        """
        entry = self._schedule_entry(quote, "down_payment")
        if entry is None:
            logger.info(f"Quote {quote.quote_number} has no down payment scheduled")
            return None
        return self.create_invoice(db, quote, "down_payment")

    def create_invoice(self, db: Session, quote: Quote, invoice_type: str) -> Invoice:
        """
        Issue the invoice for one schedule slot.

        Args:
            db: Database session
            quote: Accepted quote
            invoice_type: down_payment, milestone or final

        Returns:
            The new invoice, or the existing one if that slot was already invoiced
        """
        if quote.status != "accepted":
            raise QuoteValidationError(
                f"Invoices can only be issued for accepted quotes (status: {quote.status})",
                {"status": quote.status}
            )

        existing = db.query(Invoice).filter(
            Invoice.quote_id == quote.id,
            Invoice.invoice_type == invoice_type,
            Invoice.status != "cancelled"
        ).first()
        if existing:
            logger.info(f"Quote {quote.quote_number} already has a {invoice_type} invoice: {existing.invoice_number}")
            return existing

        entry = self._schedule_entry(quote, invoice_type)
        if entry is None:
            raise QuoteValidationError(f"Quote {quote.quote_number} has no {invoice_type} payment scheduled")

        issue_date = utcnow()
        due_days = {
            "down_payment": 0,
            "milestone": settings.milestone_invoice_due_days,
            "final": settings.final_invoice_due_days,
        }[invoice_type]

        description = f"{INVOICE_LABELS[invoice_type]} ({entry.percentage.normalize():f}%) for {quote.title}"
        if invoice_type == "milestone":
            description = f"{description}: {entry.description}"

        invoice = Invoice(
            invoice_number=self._generate_invoice_number(db),
            quote_id=quote.id,
            invoice_type=invoice_type,
            percentage=entry.percentage,
            amount=entry.amount,
            currency=quote.currency,
            description=description,
            customer_name=quote.customer_name,
            customer_email=quote.customer_email,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=due_days),
            status="pending",
        )
        db.add(invoice)
        db.commit()
        db.refresh(invoice)

        logger.info(
            f"Issued {invoice_type} invoice {invoice.invoice_number} for quote {quote.quote_number}: "
            f"{invoice.amount} {invoice.currency}"
        )
        return invoice

    def create_milestone_invoice(self, db: Session, quote: Quote) -> Invoice:
        return self.create_invoice(db, quote, "milestone")

    def create_final_invoice(self, db: Session, quote: Quote) -> Invoice:
        return self.create_invoice(db, quote, "final")

    def mark_invoice_paid(self, db: Session, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(db, invoice_id)
        if invoice.status == "cancelled":
            raise QuoteValidationError(f"Invoice {invoice.invoice_number} is cancelled")
        if invoice.status != "paid":
            invoice.status = "paid"
            invoice.paid_at = utcnow()
            db.commit()
            db.refresh(invoice)
            logger.info(f"Invoice {invoice.invoice_number} marked as paid")
        return invoice

    def _schedule_entry(self, quote: Quote, invoice_type: str) -> Optional[PaymentScheduleEntry]:
        for entry in self.calculate_payment_schedule(quote):
            if entry.invoice_type == invoice_type and entry.percentage > Decimal("0"):
                return entry
        return None

    def _generate_invoice_number(self, db: Session) -> str:
        alphabet = string.ascii_uppercase + string.digits
        prefix = f"{settings.invoice_number_prefix}-{utcnow().strftime('%Y%m')}"
        while True:
            suffix = "".join(secrets.choice(alphabet) for _ in range(6))
            invoice_number = f"{prefix}-{suffix}"
            if not db.query(Invoice.id).filter(Invoice.invoice_number == invoice_number).first():
                return invoice_number


payment_service = PaymentService()
