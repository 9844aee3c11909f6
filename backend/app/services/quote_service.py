"""
Quote Service - persistence-backed quote operations.

Every line item change and every financials edit recomputes the quote totals
from the stored line items, inside the same transaction.
"""
import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from sqlalchemy.orm import Session

from app.config import settings
from app.models.quote import Quote
from app.models.quote_line_item import QuoteLineItem
from app.models.quote_response import QuoteResponse
from app.schemas.quote import (
    QuoteCreate,
    QuoteUpdate,
    QuoteFinancialsUpdate,
    LineItemCreate,
    LineItemUpdate,
    MilestoneScheduleResponse,
    QuoteResponseCreate,
)
from app.schemas.pricing import Milestone, QuoteTotals
from app.utils.pricing_rules import (
    QuoteValidationError,
    price_line_item,
    aggregate_quote,
    allocate_milestones,
    flatten_milestones,
    milestones_from_quote_fields,
    validate_milestone_percentages,
    quantize_money,
    to_decimal,
    ZERO,
)

logger = logging.getLogger(__name__)

RESPONSE_STATUS = {
    "accepted": "accepted",
    "declined": "declined",
    "requested_changes": "pending",
}


class QuoteNotFoundError(LookupError):
    pass


class LineItemNotFoundError(LookupError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class QuoteService:
    """Service for quotes, their line items and the customer response flow"""

    # --- Quotes ---

    def create_quote(self, db: Session, data: QuoteCreate) -> Quote:
        """
        Create a draft quote with an optional initial set of line items.

        Args:
            db: Database session
            data: Validated quote payload

        Returns:
            Created Quote with totals computed
        """
        down = data.down_payment_percentage
        progress = data.milestone_payment_percentage
        final = data.final_payment_percentage
        if down is None and progress is None and final is None:
            down = to_decimal(settings.default_down_payment_percentage)
            progress = to_decimal(settings.default_milestone_payment_percentage)
            final = to_decimal(settings.default_final_payment_percentage)
        validate_milestone_percentages([down, progress, final])

        quote = Quote(
            quote_number=self._generate_quote_number(db),
            access_token=secrets.token_hex(32),
            title=data.title,
            description=data.description,
            customer_name=data.customer_name,
            customer_email=str(data.customer_email),
            customer_phone=data.customer_phone,
            customer_address=data.customer_address,
            project_type=data.project_type,
            location=data.location,
            currency=data.currency or settings.default_currency,
            discount_percentage=data.discount_percentage,
            discount_amount=data.discount_amount,
            tax_rate=data.tax_rate if data.tax_rate is not None else to_decimal(settings.default_tax_rate),
            tax_amount=ZERO,
            is_manual_tax=False,
            subtotal=ZERO,
            discounted_subtotal=ZERO,
            total=ZERO,
            down_payment_percentage=to_decimal(down),
            milestone_payment_percentage=to_decimal(progress),
            final_payment_percentage=to_decimal(final),
            milestone_description=data.milestone_description,
            estimated_start_date=data.estimated_start_date,
            estimated_completion_date=data.estimated_completion_date,
            valid_until=data.valid_until or utcnow() + timedelta(days=settings.quote_valid_days),
            scope_description=data.scope_description,
            project_notes=data.project_notes,
            status="draft",
        )
        db.add(quote)
        db.flush()  # Get the ID

        for item in data.line_items:
            db.add(self._build_line_item(quote.id, item))
        db.flush()

        self.recalculate_totals(db, quote)
        db.commit()
        db.refresh(quote)

        logger.info(f"Created quote {quote.quote_number} for {quote.customer_email} (total={quote.total})")
        return quote

    def list_quotes(
        self,
        db: Session,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Quote]:
        query = db.query(Quote)
        if status:
            query = query.filter(Quote.status == status)
        return query.order_by(Quote.created_at.desc(), Quote.id.desc()).offset(skip).limit(limit).all()

    def get_quote(self, db: Session, quote_id: int) -> Quote:
        quote = db.query(Quote).filter(Quote.id == quote_id).first()
        if not quote:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")
        return quote

    def get_quote_by_token(self, db: Session, access_token: str, mark_viewed: bool = True) -> Quote:
        """Customer portal lookup. The first view is timestamped."""
        quote = db.query(Quote).filter(Quote.access_token == access_token).first()
        if not quote:
            raise QuoteNotFoundError("Quote not found")

        if mark_viewed and quote.viewed_at is None:
            quote.viewed_at = utcnow()
            db.commit()
            db.refresh(quote)
            logger.info(f"Quote {quote.quote_number} viewed by customer")
        return quote

    def update_quote(self, db: Session, quote_id: int, data: QuoteUpdate) -> Quote:
        """Partial update. Payment percentages are validated as a set after merging."""
        quote = self.get_quote(db, quote_id)
        changes = data.model_dump(exclude_unset=True)

        for field in ("title", "customer_name", "project_type"):
            if field in changes:
                value = (changes[field] or "").strip()
                if not value:
                    raise QuoteValidationError(f"{field.replace('_', ' ').capitalize()} is required")
                changes[field] = value
        if "customer_email" in changes:
            if not changes["customer_email"]:
                raise QuoteValidationError("Customer email is required")
            changes["customer_email"] = str(changes["customer_email"])
        for field in ("valid_until", "status"):
            if field in changes and changes[field] is None:
                raise QuoteValidationError(f"{field.replace('_', ' ').capitalize()} is required")

        percentage_fields = ("down_payment_percentage", "milestone_payment_percentage", "final_payment_percentage")
        if any(field in changes for field in percentage_fields):
            merged = [
                changes[field] if changes.get(field) is not None else to_decimal(getattr(quote, field))
                for field in percentage_fields
            ]
            validate_milestone_percentages(merged)
            for field, value in zip(percentage_fields, merged):
                changes[field] = value

        for field, value in changes.items():
            setattr(quote, field, value)

        db.commit()
        db.refresh(quote)
        logger.info(f"Updated quote {quote.quote_number}: {sorted(changes)}")
        return quote

    def delete_quote(self, db: Session, quote_id: int) -> None:
        quote = self.get_quote(db, quote_id)
        db.delete(quote)
        db.commit()
        logger.info(f"Deleted quote {quote.quote_number}")

    def send_quote(self, db: Session, quote_id: int) -> Quote:
        quote = self.get_quote(db, quote_id)
        quote.status = "sent"
        quote.sent_at = utcnow()
        db.commit()
        db.refresh(quote)
        logger.info(f"Quote {quote.quote_number} marked as sent to {quote.customer_email}")
        portal_url = self.build_portal_url(quote)
        if portal_url:
            logger.info(f"Customer link for {quote.quote_number}: {portal_url}")
        return quote

    def build_portal_url(self, quote: Quote) -> Optional[str]:
        """Customer portal link for the quote, None when no portal is configured"""
        if not settings.portal_base_url:
            return None
        return f"{settings.portal_base_url.rstrip('/')}/quotes/{quote.access_token}"

    # --- Line items ---

    def list_line_items(self, db: Session, quote_id: int) -> List[QuoteLineItem]:
        self.get_quote(db, quote_id)
        return self._query_line_items(db, quote_id)

    def get_line_item(self, db: Session, line_item_id: int) -> QuoteLineItem:
        line_item = db.query(QuoteLineItem).filter(QuoteLineItem.id == line_item_id).first()
        if not line_item:
            raise LineItemNotFoundError(f"Quote line item {line_item_id} not found")
        return line_item

    def add_line_item(self, db: Session, quote_id: int, data: LineItemCreate) -> QuoteLineItem:
        quote = self.get_quote(db, quote_id)
        line_item = self._build_line_item(quote.id, data)
        db.add(line_item)
        db.flush()

        self.recalculate_totals(db, quote)
        db.commit()
        db.refresh(line_item)
        logger.info(f"Added line item {line_item.id} to quote {quote.quote_number} (total_price={line_item.total_price})")
        return line_item

    def update_line_item(self, db: Session, line_item_id: int, data: LineItemUpdate) -> QuoteLineItem:
        """Apply the changes, re-price the item from its merged fields and recompute the quote"""
        line_item = self.get_line_item(db, line_item_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        self._drop_derived_discount(line_item, changes)
        for field, value in changes.items():
            setattr(line_item, field, value)

        self._apply_pricing(line_item)
        db.flush()

        self.recalculate_totals(db, line_item.quote)
        db.commit()
        db.refresh(line_item)
        logger.info(f"Updated line item {line_item.id} (total_price={line_item.total_price})")
        return line_item

    def delete_line_item(self, db: Session, line_item_id: int) -> Quote:
        line_item = self.get_line_item(db, line_item_id)
        quote = line_item.quote
        db.delete(line_item)
        db.flush()

        self.recalculate_totals(db, quote)
        db.commit()
        db.refresh(quote)
        logger.info(f"Deleted line item {line_item_id} from quote {quote.quote_number}")
        return quote

    # --- Financials ---

    def update_financials(self, db: Session, quote_id: int, data: QuoteFinancialsUpdate) -> Quote:
        """Update quote level discount and tax inputs, then recompute totals"""
        quote = self.get_quote(db, quote_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        self._drop_derived_discount(quote, changes)

        if "discount_percentage" in changes:
            quote.discount_percentage = changes["discount_percentage"]
        if "discount_amount" in changes:
            quote.discount_amount = changes["discount_amount"]
        if "tax_rate" in changes:
            quote.tax_rate = changes["tax_rate"]
        if "is_manual_tax" in changes:
            quote.is_manual_tax = changes["is_manual_tax"]
        if "tax_amount" in changes and quote.is_manual_tax:
            quote.tax_amount = quantize_money(changes["tax_amount"])

        self.recalculate_totals(db, quote)
        db.commit()
        db.refresh(quote)
        logger.info(
            f"Updated financials for quote {quote.quote_number}: "
            f"manual_tax={quote.is_manual_tax}, total={quote.total}"
        )
        return quote

    def recalculate_totals(self, db: Session, quote: Quote) -> QuoteTotals:
        """
        Recompute subtotal, discount, tax and total from the stored line items.

        Caller commits. Pending line item changes must be flushed first.
        """
        items = self._query_line_items(db, quote.id)
        totals = aggregate_quote(
            [item.total_price for item in items],
            discount_percentage=quote.discount_percentage,
            discount_amount=quote.discount_amount,
            tax_rate=quote.tax_rate,
            is_manual_tax=bool(quote.is_manual_tax),
            manual_tax_amount=quote.tax_amount,
        )

        quote.subtotal = quantize_money(totals.subtotal)
        quote.discount_percentage = totals.discount_percentage
        quote.discount_amount = quantize_money(totals.discount_amount)
        quote.discounted_subtotal = quantize_money(totals.discounted_subtotal)
        quote.tax_amount = quantize_money(totals.tax_amount)
        quote.total = quantize_money(totals.total)

        logger.debug(
            f"Recalculated quote {quote.id}: subtotal={quote.subtotal}, "
            f"discounted_subtotal={quote.discounted_subtotal}, tax={quote.tax_amount}, total={quote.total}"
        )
        return totals

    # --- Milestones ---

    def get_milestones(self, quote: Quote) -> List[Milestone]:
        return milestones_from_quote_fields(
            quote.down_payment_percentage,
            quote.milestone_payment_percentage,
            quote.final_payment_percentage,
            quote.milestone_description,
        )

    def get_milestone_schedule(self, db: Session, quote_id: int) -> MilestoneScheduleResponse:
        quote = self.get_quote(db, quote_id)
        milestones = self.get_milestones(quote)
        return MilestoneScheduleResponse(
            quote_id=quote.id,
            total=to_decimal(quote.total),
            total_percentage=sum((to_decimal(m.percentage) for m in milestones), ZERO),
            milestones=allocate_milestones(quote.total, milestones),
        )

    def update_milestones(self, db: Session, quote_id: int, milestones: List[Milestone]) -> Quote:
        """Validate the edited schedule and write it back onto the quote's three fields"""
        quote = self.get_quote(db, quote_id)
        try:
            fields = flatten_milestones(milestones)
        except QuoteValidationError as e:
            logger.warning(f"Rejected milestone schedule for quote {quote.quote_number}: {e.message}")
            raise

        for field, value in fields.items():
            setattr(quote, field, value)
        db.commit()
        db.refresh(quote)
        logger.info(
            f"Updated payment schedule for quote {quote.quote_number}: "
            f"{quote.down_payment_percentage}/{quote.milestone_payment_percentage}/{quote.final_payment_percentage}"
        )
        return quote

    # --- Customer responses ---

    def respond_to_quote(
        self,
        db: Session,
        access_token: str,
        data: QuoteResponseCreate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> QuoteResponse:
        """
        Record the customer's answer to a quote.

        Expired quotes and quotes that already have a response are rejected.
        """
        quote = self.get_quote_by_token(db, access_token)

        if utcnow() > as_utc(quote.valid_until):
            raise QuoteValidationError("Quote has expired", {"valid_until": quote.valid_until.isoformat()})
        if quote.responses:
            raise QuoteValidationError("Quote has already been responded to")

        response = QuoteResponse(
            quote_id=quote.id,
            action=data.action,
            customer_name=data.customer_name,
            customer_email=str(data.customer_email) if data.customer_email else None,
            message=data.message,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(response)

        quote.status = RESPONSE_STATUS[data.action]
        quote.responded_at = utcnow()
        db.commit()
        db.refresh(response)

        logger.info(f"Quote {quote.quote_number} {data.action} by customer")
        return response

    # --- Helpers ---

    def _query_line_items(self, db: Session, quote_id: int) -> List[QuoteLineItem]:
        return (
            db.query(QuoteLineItem)
            .filter(QuoteLineItem.quote_id == quote_id)
            .order_by(QuoteLineItem.sort_order, QuoteLineItem.id)
            .all()
        )

    def _build_line_item(self, quote_id: int, data: LineItemCreate) -> QuoteLineItem:
        line_item = QuoteLineItem(
            quote_id=quote_id,
            category=data.category,
            description=data.description,
            quantity=data.quantity,
            unit=data.unit or settings.default_unit,
            unit_price=data.unit_price,
            discount_percentage=data.discount_percentage,
            discount_amount=data.discount_amount,
            sort_order=data.sort_order,
        )
        self._apply_pricing(line_item)
        return line_item

    def _apply_pricing(self, line_item: QuoteLineItem) -> None:
        """Store the priced total and the effective discount on the line item"""
        # Price what the two-decimal columns will hold, so a reload re-prices the same
        line_item.quantity = quantize_money(line_item.quantity)
        line_item.unit_price = quantize_money(line_item.unit_price)
        line_item.discount_percentage = quantize_money(line_item.discount_percentage)
        line_item.discount_amount = quantize_money(line_item.discount_amount)
        pricing = price_line_item(
            line_item.quantity,
            line_item.unit_price,
            line_item.discount_percentage,
            line_item.discount_amount,
        )
        line_item.discount_percentage = pricing.discount_percentage
        line_item.discount_amount = quantize_money(pricing.discount_amount)
        line_item.total_price = quantize_money(pricing.subtotal) - line_item.discount_amount

    def _drop_derived_discount(self, target, changes: dict) -> None:
        """
        The stored discount_amount is derived while a percentage applies.
        Clearing the percentage without a new amount clears that derived amount too.
        """
        if "discount_amount" in changes or "discount_percentage" not in changes:
            return
        if to_decimal(changes["discount_percentage"]) == ZERO and to_decimal(target.discount_percentage) > ZERO:
            changes["discount_amount"] = ZERO

    def _generate_quote_number(self, db: Session) -> str:
        millis = int(time.time() * 1000)
        while True:
            quote_number = f"{settings.quote_number_prefix}-{millis}"
            if not db.query(Quote.id).filter(Quote.quote_number == quote_number).first():
                return quote_number
            millis += 1


quote_service = QuoteService()
