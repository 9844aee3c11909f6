from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal
from app.schemas.pricing import Milestone, MilestoneAllocation
from app.schemas.invoice import InvoiceResponse


class LineItemResponse(BaseModel):
    id: int
    quote_id: int
    category: str
    description: str
    quantity: Decimal
    unit: Optional[str]
    unit_price: Decimal
    discount_percentage: Optional[Decimal]
    discount_amount: Optional[Decimal]
    total_price: Decimal
    sort_order: Optional[int]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LineItemCreate(BaseModel):
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    unit: str = "each"
    unit_price: Decimal = Field(..., ge=0)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    sort_order: int = 0

    @field_validator("category", "description")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class LineItemUpdate(BaseModel):
    category: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    unit: Optional[str] = None
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0)
    sort_order: Optional[int] = None

    @field_validator("category", "description")
    @classmethod
    def strip_required(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class QuoteBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    customer_name: str = Field(..., min_length=1)
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    project_type: str = Field(..., min_length=1)
    location: Optional[str] = None
    estimated_start_date: Optional[datetime] = None
    estimated_completion_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    scope_description: Optional[str] = None
    project_notes: Optional[str] = None

    @field_validator("title", "customer_name", "project_type")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class QuoteCreate(QuoteBase):
    currency: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1, decimal_places=4)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    down_payment_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    milestone_payment_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    final_payment_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    milestone_description: Optional[str] = None
    line_items: List[LineItemCreate] = []


class QuoteUpdate(BaseModel):
    """Partial update of quote details. Financial fields go through /financials."""
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, min_length=1)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    project_type: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = None
    estimated_start_date: Optional[datetime] = None
    estimated_completion_date: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    scope_description: Optional[str] = None
    project_notes: Optional[str] = None
    down_payment_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    milestone_payment_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    final_payment_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    milestone_description: Optional[str] = None
    status: Optional[Literal["draft", "sent", "pending", "accepted", "declined", "expired"]] = None


class QuoteFinancialsUpdate(BaseModel):
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1, decimal_places=4)
    tax_amount: Optional[Decimal] = Field(default=None, ge=0)  # Only used when is_manual_tax
    is_manual_tax: Optional[bool] = None


class MilestoneScheduleUpdate(BaseModel):
    milestones: List[Milestone]


class MilestoneScheduleResponse(BaseModel):
    quote_id: int
    total: Decimal
    total_percentage: Decimal
    milestones: List[MilestoneAllocation] = []


class QuoteResponseCreate(BaseModel):
    action: Literal["accepted", "declined", "requested_changes"]
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    message: Optional[str] = None


class QuoteResponseResponse(BaseModel):
    id: int
    quote_id: int
    action: str
    customer_name: Optional[str]
    customer_email: Optional[str]
    message: Optional[str]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuoteListResponse(BaseModel):
    id: int
    quote_number: str
    title: str
    customer_name: str
    project_type: str
    total: Decimal
    currency: Optional[str]
    status: str
    valid_until: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuoteDetailResponse(BaseModel):
    id: int
    quote_number: str
    title: str
    description: Optional[str]
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    customer_address: Optional[str]
    project_type: str
    location: Optional[str]
    currency: Optional[str]
    subtotal: Decimal
    discount_percentage: Optional[Decimal]
    discount_amount: Optional[Decimal]
    discounted_subtotal: Decimal
    tax_rate: Optional[Decimal]
    tax_amount: Decimal
    is_manual_tax: Optional[bool]
    total: Decimal
    down_payment_percentage: Optional[Decimal]
    milestone_payment_percentage: Optional[Decimal]
    final_payment_percentage: Optional[Decimal]
    milestone_description: Optional[str]
    estimated_start_date: Optional[datetime]
    estimated_completion_date: Optional[datetime]
    valid_until: datetime
    status: str
    scope_description: Optional[str]
    project_notes: Optional[str]
    sent_at: Optional[datetime]
    viewed_at: Optional[datetime]
    responded_at: Optional[datetime]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    line_items: List[LineItemResponse] = []
    responses: List[QuoteResponseResponse] = []

    class Config:
        from_attributes = True


class QuoteAdminResponse(QuoteDetailResponse):
    """Operator view, includes the customer access token"""
    access_token: str


class QuoteRespondResult(BaseModel):
    """Customer response plus the down payment invoice issued on acceptance"""
    response: QuoteResponseResponse
    status: str
    down_payment_invoice: Optional[InvoiceResponse] = None
