"""Validation and default constants for feedings app."""

from decimal import Decimal

# Amounts (mL) for bottle and formula feeds
MIN_AMOUNT = Decimal("0")
AMOUNT_MAX_DIGITS = 6
AMOUNT_DECIMAL_PLACES = 1

MAX_BRAND_LENGTH = 100
MAX_NOTES_LENGTH = 1000

# Fields a partial edit may touch
EDITABLE_FIELDS = ("start", "end", "kind", "amount", "brand", "notes")

# Shown after a feed is started
ENCOURAGEMENTS = (
    "You're doing great!",
    "One feed at a time.",
    "You got this!",
    "Deep breaths.",
    "Remember to hydrate.",
    "Super parent mode: ON",
    "Doing an amazing job.",
    "Love grows here.",
)
