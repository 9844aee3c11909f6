from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class QuoteResponse(Base):
    __tablename__ = "quote_responses"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String, nullable=False)  # accepted, declined, requested_changes
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    quote = relationship("Quote", back_populates="responses")
