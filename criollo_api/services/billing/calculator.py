"""
ITBIS invoice arithmetic.

    subtotal = sum(quantity * unit_price - line_discount)
    tax      = round((subtotal - discount) * rate, 2)
    total    = subtotal - discount + tax + tip

All amounts are Decimal, rounded half away from zero to cents. A tip given
as a percentage applies to the taxable base (subtotal - discount).
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from criollo_shared.config.settings import ITBIS_RATE
from criollo_shared.utils.money import ZERO, money, percentage_of, to_decimal


@dataclass(frozen=True)
class InvoiceLine:
    quantity: int
    unit_price: Decimal
    discount: Decimal = ZERO


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount: Decimal
    taxable_base: Decimal
    tax: Decimal
    tip: Decimal
    total: Decimal


def line_subtotal(quantity: int, unit_price: Decimal, discount: Decimal | None = None) -> Decimal:
    return money(quantity * to_decimal(unit_price) - to_decimal(discount))


def compute_invoice_totals(
    lines: Iterable[InvoiceLine],
    discount: Decimal | int | str = ZERO,
    tip: Decimal | int | str | None = None,
    tip_percentage: Decimal | int | str | None = None,
    rate: Decimal = ITBIS_RATE,
) -> InvoiceTotals:
    """
    Compute the frozen amounts of an invoice.

    Raises:
        ValueError: On negative amounts or a discount larger than the subtotal.
    """
    subtotal = money(sum((line_subtotal(line.quantity, line.unit_price, line.discount) for line in lines), ZERO))
    discount = money(discount)
    if discount < 0:
        raise ValueError("El descuento no puede ser negativo")
    if discount > subtotal:
        raise ValueError("El descuento no puede ser mayor que el subtotal")

    taxable_base = subtotal - discount
    tax = money(taxable_base * to_decimal(rate))

    if tip_percentage is not None:
        tip_amount = percentage_of(taxable_base, to_decimal(tip_percentage))
    else:
        tip_amount = money(tip)
    if tip_amount < 0:
        raise ValueError("La propina no puede ser negativa")

    total = money(taxable_base + tax + tip_amount)
    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount,
        taxable_base=money(taxable_base),
        tax=tax,
        tip=tip_amount,
        total=total,
    )
