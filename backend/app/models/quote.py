from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    quote_number = Column(String, unique=True, nullable=False, index=True)  # QUO-1749156350551
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Customer information
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_phone = Column(String, nullable=True)
    customer_address = Column(String, nullable=True)

    project_type = Column(String, nullable=False)  # e.g. "Landscape Design"
    location = Column(String, nullable=True)
    currency = Column(String, default="USD")

    # Financials (derived, recomputed from line items)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    discount_percentage = Column(Numeric(5, 2), default=0)
    discount_amount = Column(Numeric(10, 2), default=0)
    discounted_subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(6, 4), default=0)  # Fraction, 0.0825 == 8.25%
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    is_manual_tax = Column(Boolean, default=False)
    total = Column(Numeric(10, 2), nullable=False, default=0)

    # Payment schedule
    down_payment_percentage = Column(Numeric(5, 2), default=40)
    milestone_payment_percentage = Column(Numeric(5, 2), default=40)
    final_payment_percentage = Column(Numeric(5, 2), default=20)
    milestone_description = Column(Text, nullable=True)

    # Dates
    estimated_start_date = Column(DateTime(timezone=True), nullable=True)
    estimated_completion_date = Column(DateTime(timezone=True), nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=False)

    status = Column(String, default="draft", index=True)  # draft, sent, pending, accepted, declined, expired
    access_token = Column(String, unique=True, nullable=False, index=True)  # Customer portal link

    scope_description = Column(Text, nullable=True)
    project_notes = Column(Text, nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    line_items = relationship(
        "QuoteLineItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="[QuoteLineItem.sort_order, QuoteLineItem.id]",
    )
    responses = relationship("QuoteResponse", back_populates="quote", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="quote", cascade="all, delete-orphan")
