"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

MIN_LESSON_MINUTES = 15
MAX_RECURRING_OCCURRENCES = 1000
DEFAULT_CATEGORY = "Unassigned"
PACKAGE_NOTE_PREFIX = "Package: "
PACKAGE_PRICE_TOLERANCE = Decimal("0.01")

# Home office deduction categories: (value, label).
DEDUCTION_CATEGORIES = (
    ("mortgage_interest", "Mortgage Interest"),
    ("property_taxes", "Property Taxes"),
    ("utilities_electric", "Utilities - Electric"),
    ("utilities_gas", "Utilities - Gas"),
    ("utilities_water", "Utilities - Water"),
    ("home_insurance", "Home Insurance"),
    ("maintenance_repairs", "Maintenance & Repairs"),
    ("depreciation", "Depreciation"),
)
