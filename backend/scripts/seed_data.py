"""
Seed script to generate synthetic construction quotes for demo purposes
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session
from app.database import SessionLocal, engine, Base
from app.models.quote import Quote
from app.schemas.quote import (
    QuoteCreate,
    LineItemCreate,
    QuoteFinancialsUpdate,
    QuoteResponseCreate,
)
from app.services.quote_service import quote_service
from app.services.payment_service import payment_service
from decimal import Decimal
from datetime import datetime, timedelta, timezone
from faker import Faker

fake = Faker()

PROJECT_TYPES = ("Kitchen Remodel", "Bathroom Renovation", "Deck Build", "Roof Replacement", "Basement Finish")

CATALOG = {
    "Labor": [("General carpentry", "hour", 65, 120), ("Electrical work", "hour", 85, 150), ("Plumbing", "hour", 90, 140)],
    "Materials": [("Lumber package", "each", 400, 2500), ("Drywall sheets", "sheet", 12, 25), ("Tile", "sq ft", 4, 18)],
    "Equipment": [("Dumpster rental", "week", 350, 600), ("Scaffolding", "day", 80, 200)],
    "Permits": [("Building permit", "each", 150, 900)],
}


def random_line_items(count: int) -> list[LineItemCreate]:
    """Pick line items from the catalog with random quantities and occasional discounts"""
    items = []
    for sort_order in range(count):
        category = fake.random_element(elements=list(CATALOG))
        description, unit, low, high = fake.random_element(elements=CATALOG[category])
        discount_percentage = Decimal("0")
        discount_amount = Decimal("0")
        roll = fake.random_int(min=1, max=10)
        if roll == 1:
            discount_percentage = Decimal(fake.random_element(elements=("5", "10", "15")))
        elif roll == 2:
            discount_amount = Decimal(fake.random_int(min=25, max=150))

        items.append(LineItemCreate(
            category=category,
            description=description,
            quantity=Decimal(fake.random_int(min=1, max=40)),
            unit=unit,
            unit_price=Decimal(str(round(fake.random.uniform(low, high), 2))),
            discount_percentage=discount_percentage,
            discount_amount=discount_amount,
            sort_order=sort_order,
        ))
    return items


def random_quote_data() -> QuoteCreate:
    project_type = fake.random_element(elements=PROJECT_TYPES)
    start = datetime.now(timezone.utc) + timedelta(days=fake.random_int(min=14, max=60))
    return QuoteCreate(
        title=f"{project_type} - {fake.street_name()}",
        description=fake.sentence(nb_words=12),
        customer_name=fake.name(),
        customer_email=fake.email(),
        customer_phone=fake.phone_number(),
        customer_address=fake.address().replace("\n", ", "),
        project_type=project_type,
        location=fake.city(),
        estimated_start_date=start,
        estimated_completion_date=start + timedelta(days=fake.random_int(min=10, max=90)),
        scope_description=fake.paragraph(nb_sentences=3),
        line_items=random_line_items(fake.random_int(min=3, max=7)),
    )


def create_quotes(db: Session, count: int = 10) -> list[Quote]:
    """Create draft quotes, a few with quote level discounts or manual tax"""
    quotes = []
    for i in range(count):
        quote = quote_service.create_quote(db, random_quote_data())
        if i % 4 == 1:
            quote = quote_service.update_financials(
                db, quote.id, QuoteFinancialsUpdate(discount_percentage=Decimal("5"))
            )
        elif i % 4 == 2:
            quote = quote_service.update_financials(
                db, quote.id, QuoteFinancialsUpdate(is_manual_tax=True, tax_amount=Decimal("250.00"))
            )
        quotes.append(quote)
    return quotes


def simulate_customer_responses(db: Session, quotes: list[Quote]) -> dict:
    """Send most quotes and have customers answer some of them"""
    counts = {"sent": 0, "accepted": 0, "declined": 0, "requested_changes": 0}
    for i, quote in enumerate(quotes):
        if i % 5 == 0:
            continue  # Leave as draft
        quote_service.send_quote(db, quote.id)
        counts["sent"] += 1

        action = {1: "accepted", 2: "declined", 3: "requested_changes"}.get(i % 5)
        if action is None:
            continue
        quote_service.respond_to_quote(
            db,
            quote.access_token,
            QuoteResponseCreate(action=action, customer_name=quote.customer_name, message=fake.sentence()),
            ip_address=fake.ipv4(),
            user_agent=fake.user_agent(),
        )
        if action == "accepted":
            payment_service.process_quote_acceptance(db, quote_service.get_quote(db, quote.id))
        counts[action] += 1
    return counts


def main():
    """Main seeding function"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("Creating quotes...")
        quotes = create_quotes(db, count=10)
        print(f"Created {len(quotes)} quotes")

        print("Simulating customer responses...")
        counts = simulate_customer_responses(db, quotes)

        print("\nSeeding complete!")
        print(f"Summary:")
        print(f"  - Quotes: {len(quotes)}")
        print(f"    - Sent: {counts['sent']}")
        print(f"    - Accepted: {counts['accepted']}")
        print(f"    - Declined: {counts['declined']}")
        print(f"    - Changes requested: {counts['requested_changes']}")

    except Exception as e:
        print(f"Error during seeding: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
