from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./quotes.db"
    database_echo: bool = False

    # Quote defaults
    default_currency: str = "USD"
    default_tax_rate: float = 0.106  # Stored as a fraction, displayed as 10.60%
    default_unit: str = "each"
    quote_valid_days: int = 30  # validUntil = creation date + this many days
    quote_number_prefix: str = "QUO"
    invoice_number_prefix: str = "INV"

    # Payment schedule (percentages of the quote total)
    default_down_payment_percentage: float = 40
    default_milestone_payment_percentage: float = 40
    default_final_payment_percentage: float = 20
    default_milestone_description: str = "Project milestone completion"
    milestone_percentage_tolerance: float = 0.01  # Absolute tolerance on the 100% check

    # Invoices
    milestone_invoice_due_days: int = 14
    final_invoice_due_days: int = 30

    # Logging
    log_level: str = "INFO"

    # CORS Configuration
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Public customer portal base URL, used to build quote links
    portal_base_url: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env file


settings = Settings()
