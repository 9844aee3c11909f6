"""
Quote financial rules: line item pricing, quote aggregation and milestone allocation.

All functions are pure and work on Decimal. Nothing here rounds; callers quantize
with quantize_money() when persisting.
"""
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from app.schemas.pricing import LineItemPricing, QuoteTotals, Milestone, MilestoneAllocation
from app.config import settings

Number = Union[Decimal, int, float, str, None]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# Fixed slots of the persisted payment schedule
DOWN_PAYMENT_ORDER = 1
PROGRESS_ORDER = 2
FINAL_ORDER = 3
MAX_PERSISTED_MILESTONES = 3

DOWN_PAYMENT_LABEL = "Down Payment"
PROGRESS_LABEL = "Mid-project Milestone"
FINAL_LABEL = "Final Payment"


class QuoteValidationError(ValueError):
    """Business rule violation that blocks a save"""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


def to_decimal(value: Number) -> Decimal:
    """
    Coerce an API/DB value into a Decimal.

    None and blank strings become 0. Floats go through str() so 0.1 stays 0.1.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise QuoteValidationError(f"Expected a number, got {value!r}")
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return ZERO
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise QuoteValidationError(f"Expected a number, got {value!r}")


def quantize_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_percentage(value: Number) -> str:
    """95.00 -> '95', 95.50 -> '95.5'"""
    normalized = to_decimal(value).normalize()
    return format(normalized, "f")


def resolve_discount(
    base: Number,
    discount_percentage: Number = None,
    discount_amount: Number = None
) -> Tuple[Decimal, Optional[str]]:
    """
    Resolve the discount to apply to base.

    Percentage wins over fixed amount; they are never combined:
    1. discount_percentage > 0 -> base * pct / 100
    2. discount_amount > 0 -> discount_amount
    3. otherwise 0

    Returns:
        (discount, discount_type) tuple, discount_type is "percentage", "amount" or None
    """
    base = to_decimal(base)
    pct = to_decimal(discount_percentage)
    amount = to_decimal(discount_amount)

    if pct > 0:
        return base * pct / HUNDRED, "percentage"
    if amount > 0:
        return amount, "amount"
    return ZERO, None


def price_line_item(
    quantity: Number,
    unit_price: Number,
    discount_percentage: Number = None,
    discount_amount: Number = None
) -> LineItemPricing:
    """
    Price a single line item: quantity x unit price minus the resolved discount.

    No floor is applied, a fixed discount larger than the subtotal gives a
    negative total. The returned discount_amount is the discount actually
    applied, so callers can store it next to the percentage.
    """
    subtotal = to_decimal(quantity) * to_decimal(unit_price)
    discount, discount_type = resolve_discount(subtotal, discount_percentage, discount_amount)

    return LineItemPricing(
        subtotal=subtotal,
        discount=discount,
        total_price=subtotal - discount,
        discount_percentage=to_decimal(discount_percentage) if discount_type == "percentage" else ZERO,
        discount_amount=discount,
        discount_type=discount_type
    )


def aggregate_quote(
    line_totals: Iterable[Number],
    discount_percentage: Number = None,
    discount_amount: Number = None,
    tax_rate: Number = None,
    is_manual_tax: bool = False,
    manual_tax_amount: Number = None
) -> QuoteTotals:
    """
    Aggregate line item totals into quote financials.

    subtotal            = sum of line totals
    discounted_subtotal = subtotal - quote level discount (same precedence as line items)
    tax_amount          = manual amount if is_manual_tax else discounted_subtotal * tax_rate
    total               = discounted_subtotal + tax_amount

    tax_rate is a fraction (0.0825 for 8.25%).
    """
    subtotal = sum((to_decimal(t) for t in line_totals), ZERO)
    discount, discount_type = resolve_discount(subtotal, discount_percentage, discount_amount)
    discounted_subtotal = subtotal - discount

    rate = to_decimal(tax_rate)
    if is_manual_tax:
        tax_amount = to_decimal(manual_tax_amount)
    else:
        tax_amount = discounted_subtotal * rate

    return QuoteTotals(
        subtotal=subtotal,
        discount_percentage=to_decimal(discount_percentage) if discount_type == "percentage" else ZERO,
        discount_amount=discount,
        discounted_subtotal=discounted_subtotal,
        tax_rate=rate,
        tax_amount=tax_amount,
        is_manual_tax=is_manual_tax,
        total=discounted_subtotal + tax_amount
    )


def check_milestone_percentages(
    percentages: Iterable[Number],
    tolerance: Optional[float] = None
) -> Tuple[bool, Decimal, Optional[str]]:
    """
    Check that milestone percentages add up to 100 within tolerance

    Returns:
        (valid, total_percentage, error_message) tuple
    """
    if tolerance is None:
        tolerance = settings.milestone_percentage_tolerance

    total_percentage = sum((to_decimal(p) for p in percentages), ZERO)
    if abs(total_percentage - HUNDRED) > to_decimal(tolerance):
        return False, total_percentage, (
            f"Milestone percentages must add up to 100%. "
            f"Current total: {format_percentage(total_percentage)}%"
        )
    return True, total_percentage, None


def validate_milestone_percentages(
    percentages: Iterable[Number],
    tolerance: Optional[float] = None
) -> Decimal:
    """Raise QuoteValidationError unless the percentages sum to 100. Returns the sum."""
    valid, total_percentage, message = check_milestone_percentages(percentages, tolerance)
    if not valid:
        raise QuoteValidationError(message, {"total_percentage": str(total_percentage)})
    return total_percentage


def allocate_milestones(total: Number, milestones: Sequence[Milestone]) -> List[MilestoneAllocation]:
    """amount_i = total * percentage_i / 100, in milestone order"""
    total = to_decimal(total)
    return [
        MilestoneAllocation(
            description=m.description,
            percentage=to_decimal(m.percentage),
            order=m.order,
            amount=total * to_decimal(m.percentage) / HUNDRED
        )
        for m in sorted(milestones, key=lambda m: m.order)
    ]


def default_milestones() -> List[Milestone]:
    return [
        Milestone(
            description=DOWN_PAYMENT_LABEL,
            percentage=to_decimal(settings.default_down_payment_percentage),
            order=DOWN_PAYMENT_ORDER
        ),
        Milestone(
            description=PROGRESS_LABEL,
            percentage=to_decimal(settings.default_milestone_payment_percentage),
            order=PROGRESS_ORDER
        ),
        Milestone(
            description=FINAL_LABEL,
            percentage=to_decimal(settings.default_final_payment_percentage),
            order=FINAL_ORDER
        ),
    ]


def milestones_from_quote_fields(
    down_payment_percentage: Number,
    milestone_payment_percentage: Number,
    final_payment_percentage: Number,
    milestone_description: Optional[str] = None
) -> List[Milestone]:
    """
    Rebuild the editable milestone list from the three persisted quote fields.

    Slots with a zero percentage are left out; if all are empty the defaults are used.
    """
    milestones = []
    slots = [
        (DOWN_PAYMENT_ORDER, DOWN_PAYMENT_LABEL, down_payment_percentage),
        (PROGRESS_ORDER, milestone_description or PROGRESS_LABEL, milestone_payment_percentage),
        (FINAL_ORDER, FINAL_LABEL, final_payment_percentage),
    ]
    for order, description, percentage in slots:
        percentage = to_decimal(percentage)
        if percentage > 0:
            milestones.append(Milestone(description=description, percentage=percentage, order=order))

    if not milestones:
        return default_milestones()
    return milestones


def flatten_milestones(milestones: Sequence[Milestone], tolerance: Optional[float] = None) -> dict:
    """
    Validate an edited milestone list and flatten it into the quote's three fields.

    The quote only persists orders 1-3, so any other order is rejected instead of
    being dropped on save. Missing slots are stored as 0.
    """
    if not milestones:
        raise QuoteValidationError("At least one milestone is required")

    orders = [m.order for m in milestones]
    duplicates = sorted({o for o in orders if orders.count(o) > 1})
    if duplicates:
        raise QuoteValidationError(
            f"Milestone order must be unique, duplicated: {duplicates}",
            {"duplicate_orders": duplicates}
        )

    unsupported = sorted(o for o in orders if o > MAX_PERSISTED_MILESTONES)
    if unsupported:
        raise QuoteValidationError(
            f"Only {MAX_PERSISTED_MILESTONES} payment milestones (down payment, progress, final) "
            f"can be saved, got orders {unsupported}",
            {"unsupported_orders": unsupported}
        )

    validate_milestone_percentages([m.percentage for m in milestones], tolerance)

    by_order = {m.order: m for m in milestones}
    progress = by_order.get(PROGRESS_ORDER)
    return {
        "down_payment_percentage": to_decimal(by_order[DOWN_PAYMENT_ORDER].percentage) if DOWN_PAYMENT_ORDER in by_order else ZERO,
        "milestone_payment_percentage": to_decimal(progress.percentage) if progress else ZERO,
        "final_payment_percentage": to_decimal(by_order[FINAL_ORDER].percentage) if FINAL_ORDER in by_order else ZERO,
        "milestone_description": progress.description if progress else None,
    }
