"""
Line item calculator.

Prices one service line. The order is fixed: the discount comes off the
pre-tax subtotal, then tax is charged on what remains. Each derived amount is
rounded half-up to the cent exactly once, here, and never re-rounded later.
"""

from billing.exceptions import InvalidPrice, InvalidQuantity, InvalidRate
from billing.models import BillItem, ServiceReference
from billing.money import BPS_SCALE, apply_rate


def _check_rate(name: str, rate_bps: int) -> None:
    if rate_bps < 0 or rate_bps > BPS_SCALE:
        raise InvalidRate(name, rate_bps)


def price_line_item(
    service: ServiceReference,
    quantity: int,
    discount_rate_bps: int | None = None,
    description: str | None = None,
) -> BillItem:
    """
    Price a quantity of a catalog service.

    Args:
        service: Catalog record (unit price and tax rate)
        quantity: Units billed, at least 1
        discount_rate_bps: Discount in basis points. Falls back to the
            catalog's default discount, then to zero.
        description: Optional free text for the line

    Returns:
        Priced BillItem

    Raises:
        InvalidQuantity: quantity < 1
        InvalidRate: tax or discount outside 0-10000 bps
        InvalidPrice: negative unit price
    """
    if quantity < 1:
        raise InvalidQuantity(quantity)

    if discount_rate_bps is None:
        discount_rate_bps = service.discount_rate_bps or 0

    _check_rate("discount_rate_bps", discount_rate_bps)
    _check_rate("tax_rate_bps", service.tax_rate_bps)

    if service.unit_price_cents < 0:
        raise InvalidPrice(service.unit_price_cents)

    line_subtotal = service.unit_price_cents * quantity
    discount_amount = apply_rate(line_subtotal, discount_rate_bps)
    taxable_amount = line_subtotal - discount_amount
    tax_amount = apply_rate(taxable_amount, service.tax_rate_bps)

    return BillItem(
        service_id=service.service_id,
        service_name=service.service_name,
        service_type=service.service_type,
        description=description,
        quantity=quantity,
        unit_price_cents=service.unit_price_cents,
        tax_rate_bps=service.tax_rate_bps,
        discount_rate_bps=discount_rate_bps,
        line_subtotal_cents=line_subtotal,
        discount_amount_cents=discount_amount,
        taxable_amount_cents=taxable_amount,
        tax_amount_cents=tax_amount,
        total_amount_cents=taxable_amount + tax_amount,
    )
