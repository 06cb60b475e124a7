"""Product lookup boundary and keyword heuristics for icons and storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .models import BatchInput, StorageLocation

DEFAULT_EMOJI = "🛍️"

# Checked in order; the first keyword hit wins.
_CATEGORY_EMOJI: list[tuple[tuple[str, ...], str]] = [
    (("beverag", "water", "drink", "soda"), "🥤"),
    (("biscuit", "cookie"), "🍪"),
    (("milk", "yogurt", "dair"), "🥛"),
    (("bread", "bakery"), "🍞"),
    (("pasta", "spagh"), "🍝"),
    (("meat", "ham", "salami", "chick"), "🥩"),
    (("fish", "tuna", "sea"), "🐟"),
    (("cheese",), "🧀"),
    (("fruit", "apple", "banana"), "🍎"),
    (("vegetable", "plant", "salad"), "🥗"),
    (("sauce", "tomat"), "🍅"),
    (("pizza",), "🍕"),
    (("chocola", "cocoa"), "🍫"),
    (("ice cream", "frozen"), "🍦"),
]

_NAME_EMOJI: list[tuple[tuple[str, ...], str]] = [
    (("milk", "latte"), "🥛"),
    (("egg", "uov"), "🥚"),
    (("bread", "pane"), "🍞"),
    (("pasta",), "🍝"),
    (("apple", "mela"), "🍎"),
    (("fish", "pesce"), "🐟"),
    (("wine", "vino"), "🍷"),
    (("beer", "birr"), "🍺"),
]

_FREEZER_HINTS = ("frozen", "surgelat", "ice")
_FRIDGE_HINTS = ("fresh", "frigo", "cheese", "meat", "dairy", "yogurt")


@dataclass
class ProductTemplate:
    name: str
    emoji: str = DEFAULT_EMOJI
    category: str = ""
    location: StorageLocation = StorageLocation.PANTRY


class ProductLookup(ABC):
    """External product database, e.g. a barcode service."""

    @abstractmethod
    def lookup(self, barcode: str) -> ProductTemplate | None:
        """Return product details for a barcode, or None if unknown."""
        ...


def _match(text: str, table: list[tuple[tuple[str, ...], str]]) -> str | None:
    for keywords, emoji in table:
        if any(k in text for k in keywords):
            return emoji
    return None


def guess_emoji(name: str, category: str = "") -> str:
    """Pick an icon from the product category, then from its name."""
    return (
        _match(category.lower(), _CATEGORY_EMOJI)
        or _match(name.lower(), _NAME_EMOJI)
        or DEFAULT_EMOJI
    )


def guess_location(category: str) -> StorageLocation:
    lower = category.lower()
    if any(k in lower for k in _FREEZER_HINTS):
        return StorageLocation.FREEZER
    if any(k in lower for k in _FRIDGE_HINTS):
        return StorageLocation.FRIDGE
    return StorageLocation.PANTRY


def make_template(name: str, category: str = "", brand: str = "") -> ProductTemplate:
    """Normalise raw product data into a template."""
    full_name = f"{brand} {name}" if brand else name
    return ProductTemplate(
        name=full_name,
        emoji=guess_emoji(name, category),
        category=category,
        location=guess_location(category),
    )


def template_to_input(template: ProductTemplate, quantity: int = 1) -> BatchInput:
    return BatchInput(
        name=template.name,
        quantity=quantity,
        emoji=template.emoji,
        location=template.location,
    )
