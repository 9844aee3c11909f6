"""
Public customer portal routes - quote access by secret token, no operator auth
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.quote import QuoteDetailResponse, QuoteResponseCreate, QuoteRespondResult, QuoteResponseResponse
from app.schemas.invoice import InvoiceResponse, PaymentScheduleResponse
from app.services.quote_service import quote_service
from app.services.payment_service import payment_service
from app.utils.pricing_rules import QuoteValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/public/quotes", tags=["public"])


@router.get("/{access_token}", response_model=QuoteDetailResponse)
def get_public_quote(access_token: str, db: Session = Depends(get_db)):
    """Customer view of a quote. The first view is recorded."""
    try:
        return quote_service.get_quote_by_token(db, access_token)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{access_token}/payment-schedule", response_model=PaymentScheduleResponse)
def get_public_payment_schedule(access_token: str, db: Session = Depends(get_db)):
    try:
        quote = quote_service.get_quote_by_token(db, access_token, mark_viewed=False)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return payment_service.get_payment_schedule(db, quote)


@router.post("/{access_token}/respond", response_model=QuoteRespondResult)
def respond_to_quote(
    access_token: str,
    response_data: QuoteResponseCreate,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Accept, decline or request changes to a quote.

    Accepting issues the down payment invoice.
    """
    ip_address = request.client.host if request.client else None
    try:
        response = quote_service.respond_to_quote(
            db,
            access_token,
            response_data,
            ip_address=ip_address,
            user_agent=request.headers.get("user-agent"),
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QuoteValidationError as e:
        logger.warning(f"Rejected {response_data.action} response from {ip_address}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)

    quote = quote_service.get_quote(db, response.quote_id)

    down_payment_invoice = None
    if response.action == "accepted":
        invoice = payment_service.process_quote_acceptance(db, quote)
        if invoice is not None:
            down_payment_invoice = InvoiceResponse.model_validate(invoice)

    return QuoteRespondResult(
        response=QuoteResponseResponse.model_validate(response),
        status=quote.status,
        down_payment_invoice=down_payment_invoice
    )
