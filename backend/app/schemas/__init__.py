from app.schemas.quote import (
    QuoteCreate,
    QuoteUpdate,
    QuoteFinancialsUpdate,
    QuoteListResponse,
    QuoteDetailResponse,
    QuoteAdminResponse,
    LineItemCreate,
    LineItemUpdate,
    LineItemResponse,
    MilestoneScheduleUpdate,
    MilestoneScheduleResponse,
    QuoteResponseCreate,
    QuoteResponseResponse,
    QuoteRespondResult,
)
from app.schemas.invoice import InvoiceResponse, PaymentScheduleEntry, PaymentScheduleResponse
from app.schemas.pricing import (
    LineItemPricing,
    QuoteTotals,
    Milestone,
    MilestoneAllocation,
    LineItemPricingRequest,
    QuotePricingRequest,
    QuotePricingResponse,
)

__all__ = [
    "QuoteCreate",
    "QuoteUpdate",
    "QuoteFinancialsUpdate",
    "QuoteListResponse",
    "QuoteDetailResponse",
    "QuoteAdminResponse",
    "LineItemCreate",
    "LineItemUpdate",
    "LineItemResponse",
    "MilestoneScheduleUpdate",
    "MilestoneScheduleResponse",
    "QuoteResponseCreate",
    "QuoteResponseResponse",
    "QuoteRespondResult",
    "InvoiceResponse",
    "PaymentScheduleEntry",
    "PaymentScheduleResponse",
    "LineItemPricing",
    "QuoteTotals",
    "Milestone",
    "MilestoneAllocation",
    "LineItemPricingRequest",
    "QuotePricingRequest",
    "QuotePricingResponse",
]
