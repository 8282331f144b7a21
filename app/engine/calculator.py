"""
Checkout amount engine.

Pure functions with no side effects or I/O. Inputs arrive as the raw text the
operator typed. All monetary math uses Decimal; dollar values are converted to
integer cents by truncation (ROUND_DOWN), never by rounding to nearest.
"""
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Optional

from app.models.amounts import AmountInput, AmountMode, PaymentBreakdown, Surcharge, SurchargeState
from app.models.transaction import TransactionRecord

HUNDRED = Decimal("100")
ZERO = Decimal("0")


class CalculationError(Exception):
    """Raised when a breakdown cannot be produced from the given inputs."""
    pass


class InvalidAmount(CalculationError):
    """A required amount is missing or does not parse."""

    def __init__(self, field: str, message: str = "Invalid amount format"):
        self.field = field
        self.message = message
        super().__init__(message)


def _parse(text: Optional[str]) -> Optional[Decimal]:
    """Parse a user-entered decimal. Returns None for blank, garbage or non-finite input."""
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def _lenient(text: Optional[str]) -> Decimal:
    """Optional fields fall back to zero when blank, unparseable or negative."""
    value = _parse(text)
    if value is None or value < ZERO:
        return ZERO
    return value


def _to_cents(dollars: Decimal) -> int:
    """Convert dollars to cents, truncating toward zero."""
    return int((dollars * HUNDRED).to_integral_value(rounding=ROUND_DOWN))


def _apply(amount: AmountInput, base: Decimal) -> Decimal:
    """Dollar value of a tip/tax/surcharge input against its base."""
    value = _lenient(amount.text)
    if amount.mode is AmountMode.PERCENTAGE:
        return base * (value / HUNDRED)
    return value


def _rate(amount: AmountInput) -> Optional[Decimal]:
    """The percentage rate to report to the gateway. None unless the input is a usable percentage."""
    if amount.mode is not AmountMode.PERCENTAGE:
        return None
    value = _parse(amount.text)
    if value is None or value < ZERO:
        return None
    return value


def parse_subtotal(text: Optional[str]) -> Decimal:
    """
    Parse the subtotal in dollars.

    Raises:
        InvalidAmount: If the text is blank, unparseable or negative.
    """
    value = _parse(text)
    if value is None or value < ZERO:
        raise InvalidAmount("subtotal")
    return value


def _dollar_components(
    subtotal: Decimal,
    tip: AmountInput,
    tax: AmountInput,
    surcharge_state: SurchargeState,
    surcharge: AmountInput,
) -> tuple[Decimal, Decimal, Decimal]:
    tip_value = _apply(tip, subtotal)
    # Tax is charged on subtotal + tip.
    tax_value = _apply(tax, subtotal + tip_value)
    surcharge_value = ZERO
    if surcharge_state is SurchargeState.ENABLE:
        surcharge_value = _apply(surcharge, subtotal + tip_value + tax_value)
    return tip_value, tax_value, surcharge_value


def compute_breakdown(
    subtotal_text: str,
    tip: AmountInput,
    tax: AmountInput,
    surcharge_state: SurchargeState,
    surcharge: AmountInput,
) -> PaymentBreakdown:
    """
    Turn the checkout inputs into a cent-denominated breakdown.

    Tip is computed on the subtotal, tax on subtotal + tip and surcharge (only
    when enabled) on subtotal + tip + tax. Each component is truncated to cents
    separately; the total is the sum of the truncated components.

    Args:
        subtotal_text: The subtotal in dollars, as typed.
        tip: Tip text and mode.
        tax: Tax text and mode.
        surcharge_state: OFF, BYPASS or ENABLE.
        surcharge: Surcharge text and mode, used only when enabled.

    Returns:
        PaymentBreakdown with total == subtotal + tip + tax + surcharge.

    Raises:
        InvalidAmount: If the subtotal is blank, unparseable or negative.
            Blank or unparseable tip, tax and surcharge count as zero.

    Example:
        subtotal="12.00", tip 15%, tax 8%, surcharge OFF
        → tip = 12.00 * 0.15 = 1.80 → 180
        → tax = 13.80 * 0.08 = 1.104 → 110
        → total = 1200 + 180 + 110 = 1490
    """
    subtotal = parse_subtotal(subtotal_text)
    tip_value, tax_value, surcharge_value = _dollar_components(
        subtotal, tip, tax, surcharge_state, surcharge
    )

    subtotal_cents = _to_cents(subtotal)
    tip_cents = _to_cents(tip_value)
    tax_cents = _to_cents(tax_value)
    surcharge_cents = _to_cents(surcharge_value)

    enabled = surcharge_state is SurchargeState.ENABLE
    return PaymentBreakdown(
        subtotal=subtotal_cents,
        tax_amount=tax_cents,
        tax_rate=_rate(tax),
        tip_amount=tip_cents,
        tip_rate=_rate(tip),
        tip_type=tip.mode.label,
        surcharge=Surcharge(
            amount=surcharge_cents if enabled and surcharge.mode is AmountMode.FIXED else None,
            percentage=_rate(surcharge) if enabled else None,
            bypass=surcharge_state is SurchargeState.BYPASS,
        ),
        surcharge_amount=surcharge_cents,
        total=subtotal_cents + tip_cents + tax_cents + surcharge_cents,
    )


def calculated_total(
    subtotal_text: str,
    tip: AmountInput,
    tax: AmountInput,
    surcharge_state: SurchargeState,
    surcharge: AmountInput,
) -> Decimal:
    """Live dollar total for display while typing. Never raises; an invalid subtotal counts as 0."""
    subtotal = _lenient(subtotal_text)
    tip_value, tax_value, surcharge_value = _dollar_components(
        subtotal, tip, tax, surcharge_state, surcharge
    )
    return subtotal + tip_value + tax_value + surcharge_value


def compute_override(
    transaction: TransactionRecord,
    override_text: Optional[str],
    override_mode: AmountMode,
) -> Optional[PaymentBreakdown]:
    """
    Recompute the breakdown when the merchant overrides a pending surcharge.

    The new surcharge is computed against the transaction's original subtotal,
    never its post-surcharge total.

    Args:
        transaction: The surcharge-pending transaction reported by the gateway.
        override_text: The override as typed. Blank means "confirm as-is".
        override_mode: PERCENTAGE of the subtotal, or a FIXED dollar amount.

    Returns:
        The replacement breakdown, or None when no override was entered.

    Raises:
        InvalidAmount: If the override is non-blank but does not parse.

    Example:
        subtotal=1000, tip=150, tax=92, override "3" PERCENTAGE
        → surcharge = 1000 * 3 / 100 = 30
        → total = 1000 + 150 + 92 + 30 = 1272
    """
    if override_text is None or not override_text.strip():
        return None

    value = _parse(override_text)
    if value is None or value < ZERO:
        raise InvalidAmount("surcharge_override", "Invalid surcharge amount")

    if override_mode is AmountMode.PERCENTAGE:
        new_surcharge = int((Decimal(transaction.subtotal) * value / HUNDRED).to_integral_value(rounding=ROUND_DOWN))
    else:
        new_surcharge = _to_cents(value)

    return PaymentBreakdown(
        subtotal=transaction.subtotal,
        tip_amount=transaction.tip_amount,
        tip_type=transaction.tip_type,
        tax_amount=transaction.tax_amount,
        tax_rate=transaction.tax_rate,
        surcharge=Surcharge(
            amount=new_surcharge if override_mode is AmountMode.FIXED else None,
            percentage=value if override_mode is AmountMode.PERCENTAGE else None,
        ),
        surcharge_amount=new_surcharge,
        total=transaction.subtotal + transaction.tip_amount + transaction.tax_amount + new_surcharge,
    )


def format_cents(cents: int) -> str:
    """Render integer cents as a dollar string, e.g. 1490 → "$14.90"."""
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) // 100}.{abs(cents) % 100:02d}"
