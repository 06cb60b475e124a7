"""Built-in product memory for first launch."""

from __future__ import annotations

import logging

from .memory import FrequencyMemory
from .models import FrequentItem, MeasureUnit, StorageLocation

logger = logging.getLogger(__name__)

STARTER_PACK_FLAG = "starter_pack_loaded"

_F = StorageLocation.FRIDGE
_Z = StorageLocation.FREEZER
_P = StorageLocation.PANTRY

# name, emoji, quantity, measure value, unit, location, recurring, shelf life days
STARTER_PACK: list[tuple] = [
    # fresh & fridge
    ("Fresh Milk", "🥛", 1, 1, MeasureUnit.LITERS, _F, True, 6),
    ("Eggs", "🥚", 6, None, MeasureUnit.PIECES, _F, True, 20),
    ("Yogurt", "🥣", 2, 125, MeasureUnit.GRAMS, _F, True, 14),
    ("Butter", "🧈", 1, 250, MeasureUnit.GRAMS, _F, False, 60),
    ("Chicken Breast", "🍗", 1, 400, MeasureUnit.GRAMS, _F, False, 3),
    ("Salmon", "🐟", 1, 200, MeasureUnit.GRAMS, _F, False, 2),
    ("Parmesan", "🧀", 1, 300, MeasureUnit.GRAMS, _F, True, 45),
    ("Salad", "🥬", 1, None, MeasureUnit.PIECES, _F, True, 4),
    # fruit & vegetables
    ("Bananas", "🍌", 4, None, MeasureUnit.PIECES, _P, True, 5),
    ("Apples", "🍎", 4, None, MeasureUnit.PIECES, _F, True, 14),
    ("Lemons", "🍋", 3, None, MeasureUnit.PIECES, _F, False, 20),
    ("Tomatoes", "🍅", 6, None, MeasureUnit.PIECES, _F, True, 7),
    ("Potatoes", "🥔", 1, 1, MeasureUnit.KILOGRAMS, _P, False, 21),
    ("Onions", "🧅", 3, None, MeasureUnit.PIECES, _P, True, 21),
    # pantry
    ("Pasta", "🍝", 1, 500, MeasureUnit.GRAMS, _P, True, 730),
    ("Rice", "🍚", 1, 1, MeasureUnit.KILOGRAMS, _P, False, 365),
    ("Bread", "🍞", 1, None, MeasureUnit.PIECES, _P, True, 3),
    ("Tuna", "🥫", 3, 80, MeasureUnit.GRAMS, _P, False, 1000),
    ("Coffee", "☕️", 1, 250, MeasureUnit.GRAMS, _P, True, 180),
    # frozen
    ("Peas", "🟢", 1, 450, MeasureUnit.GRAMS, _Z, False, 365),
    ("Spinach", "🍃", 1, 450, MeasureUnit.GRAMS, _Z, False, 365),
    ("Ice Cream", "🍦", 1, 500, MeasureUnit.GRAMS, _Z, False, 180),
]


def seed_starter_pack(memory: FrequencyMemory) -> int:
    """Load the starter pack once.

    Existing records are never overwritten. Returns the number of
    records inserted (0 once the pack has been loaded).
    """
    db = memory.db
    if db.get_flag(STARTER_PACK_FLAG):
        return 0

    now = memory.clock.now()
    inserted = 0
    for name, emoji, qty, value, unit, location, recurring, days in STARTER_PACK:
        if db.get(name) is not None:
            continue
        db.upsert(
            FrequentItem(
                name=name,
                emoji=emoji,
                quantity=qty,
                measure_value=value,
                measure_unit=unit,
                location=location,
                is_recurring=recurring,
                shelf_life_days=days,
                last_used=now,
            )
        )
        inserted += 1

    db.set_flag(STARTER_PACK_FLAG)
    logger.info("Starter pack loaded: %d products", inserted)
    return inserted
