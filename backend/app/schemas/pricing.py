from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


class LineItemPricing(BaseModel):
    """Priced line item: the result of applying the discount rule to quantity x unit price"""
    subtotal: Decimal
    discount: Decimal
    total_price: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal  # Effective discount, re-normalized when the percentage wins
    discount_type: Optional[str] = None  # "percentage", "amount" or None


class QuoteTotals(BaseModel):
    """Aggregated quote financials"""
    subtotal: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    discounted_subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    is_manual_tax: bool = False
    total: Decimal


class Milestone(BaseModel):
    """One payment milestone in the editable schedule"""
    description: str = Field(..., min_length=1)
    percentage: Decimal = Field(..., ge=0, le=100, decimal_places=2)
    order: int = Field(..., ge=1)


class MilestoneAllocation(BaseModel):
    """Dollar amount due for a milestone"""
    description: str
    percentage: Decimal
    order: int
    amount: Decimal


class LineItemPricingRequest(BaseModel):
    quantity: Decimal = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)


class QuotePricingRequest(BaseModel):
    """Stateless quote preview: price the items, aggregate, allocate milestones"""
    line_items: List[LineItemPricingRequest] = []
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    is_manual_tax: bool = False
    manual_tax_amount: Optional[Decimal] = Field(default=None, ge=0)
    milestones: Optional[List[Milestone]] = None


class QuotePricingResponse(BaseModel):
    line_items: List[LineItemPricing] = []
    totals: QuoteTotals
    milestones: List[MilestoneAllocation] = []
