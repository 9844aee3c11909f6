"""
Stateless pricing preview - runs the quote math without touching the database
"""
from fastapi import APIRouter, HTTPException

from app.schemas.pricing import (
    LineItemPricing,
    LineItemPricingRequest,
    QuotePricingRequest,
    QuotePricingResponse,
)
from app.utils.pricing_rules import (
    QuoteValidationError,
    price_line_item,
    aggregate_quote,
    allocate_milestones,
    default_milestones,
    validate_milestone_percentages,
)

router = APIRouter(prefix="/api/pricing", tags=["pricing"])


@router.post("/line-item", response_model=LineItemPricing)
def price_line_item_preview(line_item: LineItemPricingRequest):
    return price_line_item(
        line_item.quantity,
        line_item.unit_price,
        line_item.discount_percentage,
        line_item.discount_amount,
    )


@router.post("/quote", response_model=QuotePricingResponse)
def price_quote_preview(request: QuotePricingRequest):
    """Price every line item, aggregate the quote and split the total across milestones"""
    priced = [
        price_line_item(item.quantity, item.unit_price, item.discount_percentage, item.discount_amount)
        for item in request.line_items
    ]
    totals = aggregate_quote(
        [p.total_price for p in priced],
        discount_percentage=request.discount_percentage,
        discount_amount=request.discount_amount,
        tax_rate=request.tax_rate,
        is_manual_tax=request.is_manual_tax,
        manual_tax_amount=request.manual_tax_amount,
    )

    milestones = request.milestones if request.milestones is not None else default_milestones()
    try:
        validate_milestone_percentages([m.percentage for m in milestones])
    except QuoteValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return QuotePricingResponse(
        line_items=priced,
        totals=totals,
        milestones=allocate_milestones(totals.total, milestones),
    )
