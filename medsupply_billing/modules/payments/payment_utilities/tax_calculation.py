"""
payment_utilities/tax_calculation.py

Line-item and document tax math for quotations, proformas and invoices.

Rules:
- base_amount    = quantity * unit_price
- discount_total = base * pct / 100 when discount_percentage > 0,
                   else min(discount_amount, base) when discount_amount > 0,
                   else 0
- taxable_amount = base_amount - discount_total
- tax_amount     = taxable_amount * tax_percentage / 100 when tax_inclusive,
                   else 0 (the flag gates tax entirely; it does NOT mean the
                   unit price already contains tax)
- line_total     = taxable_amount + tax_amount

Every derived field is rounded to 2 decimals on its own; document totals are
sums of the rounded line values, rounded again. No input validation: negative
quantities/prices flow through the arithmetic unchanged.

Pure functions; no DB.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from ....constants import CURRENCY_SYMBOL, MONEY_TOLERANCE
from ....utils.helpers import fmt_money, round_money

__all__ = [
    "TaxableLineItem",
    "CalculatedLineItem",
    "DocumentTotals",
    "TaxValidation",
    "TaxDisplayInfo",
    "TaxCalculator",
    "calculate_item_tax",
    "calculate_document_totals",
    "validate_tax_calculation",
    "get_tax_display_info",
    "convert_to_tax_exclusive",
    "convert_to_tax_inclusive",
]


# -----------------------------
# Data shapes
# -----------------------------

@dataclass(frozen=True)
class TaxableLineItem:
    quantity: float
    unit_price: float
    tax_percentage: float = 0.0
    tax_inclusive: bool = False
    discount_percentage: Optional[float] = None
    discount_amount: Optional[float] = None


@dataclass(frozen=True)
class CalculatedLineItem(TaxableLineItem):
    base_amount: float = 0.0
    discount_total: float = 0.0
    taxable_amount: float = 0.0
    tax_amount: float = 0.0
    line_total: float = 0.0


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: float = 0.0        # sum of base amounts (before discount/tax)
    discount_total: float = 0.0
    taxable_amount: float = 0.0  # after discounts
    tax_total: float = 0.0
    total_amount: float = 0.0    # final, tax included


@dataclass
class TaxValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TaxDisplayInfo:
    display_price: str
    tax_info: str
    breakdown: str


# -----------------------------
# Line items
# -----------------------------

def _resolve_discount(base_amount: float, item: TaxableLineItem) -> float:
    if (item.discount_percentage or 0) > 0:
        return base_amount * (item.discount_percentage / 100)
    if (item.discount_amount or 0) > 0:
        # a flat discount never takes the line below zero
        return min(item.discount_amount, base_amount)
    return 0.0


def calculate_item_tax(item: TaxableLineItem) -> CalculatedLineItem:
    """Compute base/discount/taxable/tax/line_total for a single line."""
    base_amount = item.quantity * item.unit_price
    discount_total = _resolve_discount(base_amount, item)
    taxable_amount = base_amount - discount_total

    if item.tax_inclusive:
        tax_amount = taxable_amount * (item.tax_percentage / 100)
        line_total = taxable_amount + tax_amount
    else:
        tax_amount = 0.0
        line_total = taxable_amount

    return CalculatedLineItem(
        **asdict(item),
        base_amount=round_money(base_amount),
        discount_total=round_money(discount_total),
        taxable_amount=round_money(taxable_amount),
        tax_amount=round_money(tax_amount),
        line_total=round_money(line_total),
    )


# -----------------------------
# Documents
# -----------------------------

def calculate_document_totals(items: Iterable[TaxableLineItem]) -> DocumentTotals:
    """Sum the rounded per-line values. Empty input -> all zeros."""
    calculated = [calculate_item_tax(i) for i in items]
    return DocumentTotals(
        subtotal=round_money(sum(c.base_amount for c in calculated)),
        discount_total=round_money(sum(c.discount_total for c in calculated)),
        taxable_amount=round_money(sum(c.taxable_amount for c in calculated)),
        tax_total=round_money(sum(c.tax_amount for c in calculated)),
        total_amount=round_money(sum(c.line_total for c in calculated)),
    )


def validate_tax_calculation(totals: DocumentTotals) -> TaxValidation:
    """
    Diagnostic only; never raises and never mutates `totals`.

    Flags negative subtotal / tax_total / total_amount, and a total that drifts
    more than one cent from taxable_amount + tax_total.
    """
    errors: List[str] = []

    if totals.subtotal < 0:
        errors.append("Subtotal cannot be negative")
    if totals.tax_total < 0:
        errors.append("Tax total cannot be negative")
    if totals.total_amount < 0:
        errors.append("Total amount cannot be negative")

    calculated_total = totals.taxable_amount + totals.tax_total
    if abs(calculated_total - totals.total_amount) > MONEY_TOLERANCE:
        errors.append(
            f"Total amount mismatch: calculated {round_money(calculated_total)}, "
            f"got {totals.total_amount}"
        )

    return TaxValidation(is_valid=not errors, errors=errors)


def _plain(value: float) -> str:
    """Number as written, no exponent and no trailing zeros: 1250000, 12.5, 16."""
    return format(Decimal(str(value)).normalize(), "f")


def get_tax_display_info(item: CalculatedLineItem) -> TaxDisplayInfo:
    """Short strings for price/tax columns, e.g. '(+ 16% tax)'."""
    display_price = f"{CURRENCY_SYMBOL} {fmt_money(item.unit_price)}"

    if item.tax_percentage > 0:
        if item.tax_inclusive:
            tax_info = f"(incl. {_plain(item.tax_percentage)}% tax)"
        else:
            tax_info = f"(+ {_plain(item.tax_percentage)}% tax)"
    else:
        tax_info = "(tax-free)"

    breakdown = (
        f"{_plain(item.quantity)} × {CURRENCY_SYMBOL} {fmt_money(item.unit_price)}"
        f" = {CURRENCY_SYMBOL} {fmt_money(item.base_amount)}"
    )
    return TaxDisplayInfo(display_price=display_price, tax_info=tax_info, breakdown=breakdown)


# -----------------------------
# Price conversions
# -----------------------------

def convert_to_tax_exclusive(inclusive_price: float, tax_percentage: float) -> float:
    """inclusive / (1 + pct/100), rounded. Returns the input unchanged when pct <= 0."""
    if tax_percentage <= 0:
        return inclusive_price
    return round_money(inclusive_price / (1 + tax_percentage / 100))


def convert_to_tax_inclusive(exclusive_price: float, tax_percentage: float) -> float:
    """exclusive * (1 + pct/100), rounded. Returns the input unchanged when pct <= 0."""
    if tax_percentage <= 0:
        return exclusive_price
    return round_money(exclusive_price * (1 + tax_percentage / 100))


class TaxCalculator:
    """Injectable facade over the module-level functions."""

    calculate_item_tax = staticmethod(calculate_item_tax)
    calculate_document_totals = staticmethod(calculate_document_totals)
    validate_tax_calculation = staticmethod(validate_tax_calculation)
    get_tax_display_info = staticmethod(get_tax_display_info)
    convert_to_tax_exclusive = staticmethod(convert_to_tax_exclusive)
    convert_to_tax_inclusive = staticmethod(convert_to_tax_inclusive)
