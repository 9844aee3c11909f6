from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.database import get_db
from app.schemas.quote import (
    QuoteCreate,
    QuoteUpdate,
    QuoteFinancialsUpdate,
    QuoteListResponse,
    QuoteAdminResponse,
    LineItemCreate,
    LineItemUpdate,
    LineItemResponse,
    MilestoneScheduleUpdate,
    MilestoneScheduleResponse,
)
from app.schemas.invoice import InvoiceResponse, InvoiceType, PaymentScheduleResponse
from app.services.quote_service import quote_service
from app.services.payment_service import payment_service
from app.utils.pricing_rules import QuoteValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


@router.get("", response_model=List[QuoteListResponse])
def list_quotes(
    status: Optional[str] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """List quotes, newest first"""
    return quote_service.list_quotes(db, status=status, skip=skip, limit=limit)


@router.post("", response_model=QuoteAdminResponse, status_code=201)
def create_quote(quote_data: QuoteCreate, db: Session = Depends(get_db)):
    """Create a draft quote, optionally with line items"""
    try:
        return quote_service.create_quote(db, quote_data)
    except QuoteValidationError as e:
        logger.warning(f"Rejected new quote for {quote_data.customer_email}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)


@router.get("/{quote_id}", response_model=QuoteAdminResponse)
def get_quote(quote_id: int, db: Session = Depends(get_db)):
    """Get quote detail with line items and customer responses"""
    try:
        return quote_service.get_quote(db, quote_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{quote_id}", response_model=QuoteAdminResponse)
def update_quote(quote_id: int, quote_data: QuoteUpdate, db: Session = Depends(get_db)):
    """Update quote details and payment percentages"""
    try:
        return quote_service.update_quote(db, quote_id, quote_data)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QuoteValidationError as e:
        logger.warning(f"Rejected update of quote {quote_id}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)


@router.delete("/{quote_id}", status_code=204)
def delete_quote(quote_id: int, db: Session = Depends(get_db)):
    """Delete a quote with its line items, responses and invoices"""
    try:
        quote_service.delete_quote(db, quote_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@router.post("/{quote_id}/send", response_model=QuoteAdminResponse)
def send_quote(quote_id: int, db: Session = Depends(get_db)):
    """Mark the quote as sent to the customer"""
    try:
        return quote_service.send_quote(db, quote_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{quote_id}/financials", response_model=QuoteAdminResponse)
def update_quote_financials(quote_id: int, financials: QuoteFinancialsUpdate, db: Session = Depends(get_db)):
    """
    Update quote level discount and tax settings.

    Totals are recomputed from the line items and returned.
    """
    try:
        return quote_service.update_financials(db, quote_id, financials)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


# --- Milestones ---

@router.get("/{quote_id}/milestones", response_model=MilestoneScheduleResponse)
def get_milestones(quote_id: int, db: Session = Depends(get_db)):
    """Editable milestone list with the amount due for each"""
    try:
        return quote_service.get_milestone_schedule(db, quote_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{quote_id}/milestones", response_model=MilestoneScheduleResponse)
def update_milestones(quote_id: int, schedule: MilestoneScheduleUpdate, db: Session = Depends(get_db)):
    """Replace the milestone schedule. Percentages must add up to 100%."""
    try:
        quote_service.update_milestones(db, quote_id, schedule.milestones)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return quote_service.get_milestone_schedule(db, quote_id)


@router.get("/{quote_id}/payment-schedule", response_model=PaymentScheduleResponse)
def get_payment_schedule(quote_id: int, db: Session = Depends(get_db)):
    """Payment schedule amounts and the invoices issued so far"""
    try:
        quote = quote_service.get_quote(db, quote_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return payment_service.get_payment_schedule(db, quote)


# --- Line items ---

@router.get("/{quote_id}/line-items", response_model=List[LineItemResponse])
def list_line_items(quote_id: int, db: Session = Depends(get_db)):
    try:
        return quote_service.list_line_items(db, quote_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{quote_id}/line-items", response_model=LineItemResponse, status_code=201)
def create_line_item(quote_id: int, line_item: LineItemCreate, db: Session = Depends(get_db)):
    """Add a priced line item and recompute the quote totals"""
    try:
        return quote_service.add_line_item(db, quote_id, line_item)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/line-items/{line_item_id}", response_model=LineItemResponse)
def update_line_item(line_item_id: int, line_item: LineItemUpdate, db: Session = Depends(get_db)):
    """Edit a line item, re-price it and recompute the quote totals"""
    try:
        return quote_service.update_line_item(db, line_item_id, line_item)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/line-items/{line_item_id}", status_code=204)
def delete_line_item(line_item_id: int, db: Session = Depends(get_db)):
    try:
        quote_service.delete_line_item(db, line_item_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


# --- Invoices ---

@router.get("/{quote_id}/invoices", response_model=List[InvoiceResponse])
def list_quote_invoices(quote_id: int, db: Session = Depends(get_db)):
    try:
        quote = quote_service.get_quote(db, quote_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return payment_service.list_invoices(db, quote.id)


@router.post("/{quote_id}/invoices/{invoice_type}", response_model=InvoiceResponse, status_code=201)
def create_quote_invoice(quote_id: int, invoice_type: InvoiceType, db: Session = Depends(get_db)):
    """Issue the down payment, milestone or final invoice for an accepted quote"""
    try:
        quote = quote_service.get_quote(db, quote_id)
        return payment_service.create_invoice(db, quote, invoice_type)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QuoteValidationError as e:
        logger.warning(f"Rejected {invoice_type} invoice for quote {quote_id}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)
