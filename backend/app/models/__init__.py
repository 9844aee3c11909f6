from app.models.quote import Quote
from app.models.quote_line_item import QuoteLineItem
from app.models.quote_response import QuoteResponse
from app.models.invoice import Invoice

__all__ = ["Quote", "QuoteLineItem", "QuoteResponse", "Invoice"]
