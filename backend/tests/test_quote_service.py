from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.schemas.pricing import Milestone
from app.schemas.quote import (
    LineItemCreate,
    LineItemUpdate,
    QuoteCreate,
    QuoteFinancialsUpdate,
    QuoteResponseCreate,
    QuoteUpdate,
)
from app.services.payment_service import payment_service
from app.services.quote_service import (
    LineItemNotFoundError,
    QuoteNotFoundError,
    quote_service,
)
from app.utils.pricing_rules import QuoteValidationError


def make_quote(db, **overrides):
    data = {
        "title": "Deck Build",
        "customer_name": "Sam Rivera",
        "customer_email": "sam@example.com",
        "project_type": "Deck",
        "tax_rate": Decimal("0.10"),
        "line_items": [
            LineItemCreate(
                category="Materials",
                description="Composite decking",
                quantity=Decimal("2"),
                unit="each",
                unit_price=Decimal("500"),
                discount_percentage=Decimal("10"),
            )
        ],
    }
    data.update(overrides)
    return quote_service.create_quote(db, QuoteCreate(**data))


def test_create_quote_computes_totals_and_schedule(db_session):
    quote = make_quote(db_session)

    assert quote.status == "draft"
    assert quote.quote_number.startswith("QUO-")
    assert len(quote.access_token) == 64
    assert quote.line_items[0].total_price == Decimal("900")
    assert quote.line_items[0].discount_amount == Decimal("100")
    assert quote.subtotal == Decimal("900")
    assert quote.discounted_subtotal == Decimal("900")
    assert quote.tax_amount == Decimal("90")
    assert quote.total == Decimal("990")

    schedule = payment_service.calculate_payment_schedule(quote)
    assert [e.invoice_type for e in schedule] == ["down_payment", "milestone", "final"]
    assert [e.amount for e in schedule] == [Decimal("396.00"), Decimal("396.00"), Decimal("198.00")]
    assert schedule[1].description == "Project milestone completion"


def test_create_quote_uses_defaults(db_session):
    quote = make_quote(db_session, tax_rate=None, line_items=[])
    assert quote.tax_rate == Decimal("0.106")
    assert quote.total == 0
    assert quote.down_payment_percentage == Decimal("40")
    assert quote.milestone_payment_percentage == Decimal("40")
    assert quote.final_payment_percentage == Decimal("20")
    assert quote.valid_until is not None


def test_create_quote_rejects_bad_percentages(db_session):
    with pytest.raises(QuoteValidationError) as exc_info:
        make_quote(
            db_session,
            down_payment_percentage=Decimal("40"),
            milestone_payment_percentage=Decimal("40"),
            final_payment_percentage=Decimal("15"),
        )
    assert "Current total: 95%" in exc_info.value.message
    assert quote_service.list_quotes(db_session) == []


def test_line_item_changes_recompute_quote(db_session):
    quote = make_quote(db_session)

    item = quote_service.add_line_item(db_session, quote.id, LineItemCreate(
        category="Labor",
        description="Framing",
        quantity=Decimal("10"),
        unit="hour",
        unit_price=Decimal("100"),
        discount_amount=Decimal("150"),
    ))
    assert item.total_price == Decimal("850")
    quote = quote_service.get_quote(db_session, quote.id)
    assert quote.subtotal == Decimal("1750")
    assert quote.total == Decimal("1925")

    item = quote_service.update_line_item(db_session, item.id, LineItemUpdate(quantity=Decimal("5")))
    assert item.total_price == Decimal("350")
    quote = quote_service.get_quote(db_session, quote.id)
    assert quote.subtotal == Decimal("1250")

    quote = quote_service.delete_line_item(db_session, item.id)
    assert quote.subtotal == Decimal("900")
    assert quote.total == Decimal("990")

    with pytest.raises(LineItemNotFoundError):
        quote_service.get_line_item(db_session, item.id)


def test_stored_line_item_matches_its_own_pricing(db_session):
    quote = make_quote(db_session)

    item = quote_service.add_line_item(db_session, quote.id, LineItemCreate(
        category="Materials",
        description="Trim",
        quantity=Decimal("1.125"),
        unit_price=Decimal("100.004"),
        discount_percentage=Decimal("12.345"),
    ))
    db_session.expire_all()
    item = quote_service.get_line_item(db_session, item.id)
    assert item.quantity == Decimal("1.13")
    assert item.unit_price == Decimal("100.00")
    assert item.discount_percentage == Decimal("12.35")
    assert item.quantity * item.unit_price - item.discount_amount == item.total_price
    stored_total = item.total_price

    item = quote_service.update_line_item(db_session, item.id, LineItemUpdate(sort_order=5))
    assert item.total_price == stored_total
    quote = quote_service.get_quote(db_session, quote.id)
    assert quote.subtotal == Decimal("900") + stored_total


def test_update_quote_rejects_null_valid_until(db_session):
    quote = make_quote(db_session)

    with pytest.raises(QuoteValidationError):
        quote_service.update_quote(db_session, quote.id, QuoteUpdate(valid_until=None))
    with pytest.raises(QuoteValidationError):
        quote_service.update_quote(db_session, quote.id, QuoteUpdate(status=None))


def test_clearing_line_item_percentage_drops_derived_discount(db_session):
    quote = make_quote(db_session)
    item = quote.line_items[0]

    item = quote_service.update_line_item(db_session, item.id, LineItemUpdate(discount_percentage=Decimal("0")))
    assert item.discount_amount == 0
    assert item.total_price == Decimal("1000")


def test_line_item_discount_can_make_quote_negative(db_session):
    quote = make_quote(db_session, tax_rate=Decimal("0"), line_items=[
        LineItemCreate(
            category="Credit",
            description="Returned materials",
            quantity=Decimal("2"),
            unit_price=Decimal("10"),
            discount_amount=Decimal("50"),
        )
    ])
    assert quote.total == Decimal("-30")


def test_financials_quote_discount_and_manual_tax(db_session):
    quote = make_quote(db_session)

    quote = quote_service.update_financials(
        db_session, quote.id, QuoteFinancialsUpdate(discount_percentage=Decimal("10"))
    )
    assert quote.discount_amount == Decimal("90")
    assert quote.discounted_subtotal == Decimal("810")
    assert quote.tax_amount == Decimal("81")
    assert quote.total == Decimal("891")

    quote = quote_service.update_financials(
        db_session, quote.id, QuoteFinancialsUpdate(is_manual_tax=True, tax_amount=Decimal("25"))
    )
    assert quote.tax_amount == Decimal("25")
    assert quote.total == Decimal("835")

    # Manual tax survives a line item change
    quote_service.add_line_item(db_session, quote.id, LineItemCreate(
        category="Permits", description="Building permit", unit_price=Decimal("100")
    ))
    quote = quote_service.get_quote(db_session, quote.id)
    assert quote.tax_amount == Decimal("25")
    assert quote.discounted_subtotal == Decimal("900")

    quote = quote_service.update_financials(
        db_session, quote.id, QuoteFinancialsUpdate(is_manual_tax=False)
    )
    assert quote.tax_amount == Decimal("90")


def test_update_quote_validates_merged_percentages(db_session):
    quote = make_quote(db_session)

    with pytest.raises(QuoteValidationError):
        quote_service.update_quote(db_session, quote.id, QuoteUpdate(down_payment_percentage=Decimal("50")))

    quote = quote_service.update_quote(db_session, quote.id, QuoteUpdate(
        down_payment_percentage=Decimal("50"),
        milestone_payment_percentage=Decimal("30"),
        title="  Deck Build Phase 1  ",
    ))
    assert quote.down_payment_percentage == Decimal("50")
    assert quote.title == "Deck Build Phase 1"


def test_update_milestones_flattens_schedule(db_session):
    quote = make_quote(db_session)

    quote = quote_service.update_milestones(db_session, quote.id, [
        Milestone(description="Deposit", percentage=Decimal("25"), order=1),
        Milestone(description="Posts and framing", percentage=Decimal("50"), order=2),
        Milestone(description="Final", percentage=Decimal("25"), order=3),
    ])
    assert quote.milestone_description == "Posts and framing"

    schedule = quote_service.get_milestone_schedule(db_session, quote.id)
    assert schedule.total_percentage == Decimal("100")
    assert [m.amount for m in schedule.milestones] == [Decimal("247.5"), Decimal("495"), Decimal("247.5")]


def test_update_milestones_rejects_fourth_slot_without_saving(db_session):
    quote = make_quote(db_session)

    with pytest.raises(QuoteValidationError):
        quote_service.update_milestones(db_session, quote.id, [
            Milestone(description="Deposit", percentage=Decimal("25"), order=1),
            Milestone(description="Framing", percentage=Decimal("25"), order=2),
            Milestone(description="Drywall", percentage=Decimal("25"), order=3),
            Milestone(description="Final", percentage=Decimal("25"), order=4),
        ])

    quote = quote_service.get_quote(db_session, quote.id)
    assert quote.down_payment_percentage == Decimal("40")


def test_public_view_marks_viewed_once(db_session):
    quote = make_quote(db_session)
    assert quote.viewed_at is None

    viewed = quote_service.get_quote_by_token(db_session, quote.access_token)
    first_view = viewed.viewed_at
    assert first_view is not None

    viewed = quote_service.get_quote_by_token(db_session, quote.access_token)
    assert viewed.viewed_at == first_view

    with pytest.raises(QuoteNotFoundError):
        quote_service.get_quote_by_token(db_session, "not-a-token")


def test_respond_to_quote_sets_status_once(db_session):
    quote = make_quote(db_session)
    quote_service.send_quote(db_session, quote.id)

    response = quote_service.respond_to_quote(
        db_session, quote.access_token, QuoteResponseCreate(action="requested_changes", message="Cheaper boards?")
    )
    assert response.action == "requested_changes"
    quote = quote_service.get_quote(db_session, quote.id)
    assert quote.status == "pending"
    assert quote.responded_at is not None

    with pytest.raises(QuoteValidationError) as exc_info:
        quote_service.respond_to_quote(db_session, quote.access_token, QuoteResponseCreate(action="accepted"))
    assert exc_info.value.message == "Quote has already been responded to"


def test_respond_to_expired_quote_is_rejected(db_session):
    quote = make_quote(db_session, valid_until=datetime.now(timezone.utc) - timedelta(days=1))

    with pytest.raises(QuoteValidationError) as exc_info:
        quote_service.respond_to_quote(db_session, quote.access_token, QuoteResponseCreate(action="accepted"))
    assert exc_info.value.message == "Quote has expired"


def test_delete_quote_cascades(db_session):
    quote = make_quote(db_session)
    item_id = quote.line_items[0].id

    quote_service.delete_quote(db_session, quote.id)

    with pytest.raises(QuoteNotFoundError):
        quote_service.get_quote(db_session, quote.id)
    with pytest.raises(LineItemNotFoundError):
        quote_service.get_line_item(db_session, item_id)
