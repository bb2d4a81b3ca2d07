from .tax_calculation import (
    TaxableLineItem,
    CalculatedLineItem,
    DocumentTotals,
    TaxValidation,
    TaxDisplayInfo,
    TaxCalculator,
    calculate_item_tax,
    calculate_document_totals,
    validate_tax_calculation,
    get_tax_display_info,
    convert_to_tax_exclusive,
    convert_to_tax_inclusive,
)

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
