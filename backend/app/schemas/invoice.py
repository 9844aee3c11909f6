from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal

InvoiceType = Literal["down_payment", "milestone", "final"]


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    quote_id: int
    invoice_type: str
    percentage: Decimal
    amount: Decimal
    currency: Optional[str]
    description: Optional[str]
    customer_name: Optional[str]
    customer_email: Optional[str]
    issue_date: datetime
    due_date: datetime
    status: str
    paid_at: Optional[datetime]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentScheduleEntry(BaseModel):
    invoice_type: InvoiceType
    description: str
    percentage: Decimal
    amount: Decimal


class PaymentScheduleResponse(BaseModel):
    quote_id: int
    quote_number: str
    total: Decimal
    currency: Optional[str]
    entries: List[PaymentScheduleEntry] = []
    invoices: List[InvoiceResponse] = []
