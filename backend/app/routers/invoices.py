from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.invoice import InvoiceResponse
from app.services.payment_service import payment_service
from app.utils.pricing_rules import QuoteValidationError

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    try:
        return payment_service.get_invoice(db, invoice_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{invoice_id}/pay", response_model=InvoiceResponse)
def pay_invoice(invoice_id: int, db: Session = Depends(get_db)):
    """Record payment of a milestone invoice"""
    try:
        return payment_service.mark_invoice_paid(db, invoice_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
