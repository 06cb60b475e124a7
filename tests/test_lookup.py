"""Tests for product icon and storage heuristics."""

import pytest

from buddyfridge.lookup import (
    DEFAULT_EMOJI,
    ProductLookup,
    ProductTemplate,
    guess_emoji,
    guess_location,
    make_template,
    template_to_input,
)
from buddyfridge.models import StorageLocation


@pytest.mark.parametrize("name, category, expected", [
    ("Sparkling", "Beverages", "🥤"),
    ("Gouda", "Cheeses", "🧀"),
    ("Semi-skimmed milk", "", "🥛"),
    ("Free range eggs", "", "🥚"),
    ("Mystery box", "", DEFAULT_EMOJI),
])
def test_guess_emoji(name, category, expected):
    assert guess_emoji(name, category) == expected


def test_category_wins_over_name():
    assert guess_emoji("Milk chocolate", "Chocolate bars") == "🍫"


@pytest.mark.parametrize("category, expected", [
    ("Frozen vegetables", StorageLocation.FREEZER),
    ("Fresh dairy", StorageLocation.FRIDGE),
    ("Breakfast cereals", StorageLocation.PANTRY),
])
def test_guess_location(category, expected):
    assert guess_location(category) == expected


def test_make_template_with_brand():
    template = make_template("Penne", "Pasta", brand="Barilla")
    assert template.name == "Barilla Penne"
    assert template.emoji == "🍝"
    assert template.location == StorageLocation.PANTRY


def test_template_to_input():
    data = template_to_input(make_template("Ice cream tub", "Frozen desserts"), quantity=2)
    assert data.quantity == 2
    assert data.location == StorageLocation.FREEZER
    assert data.emoji == "🍦"


def test_lookup_implementation_feeds_engine(engine):
    class StaticLookup(ProductLookup):
        def lookup(self, barcode):
            if barcode == "8001":
                return ProductTemplate(name="Passata", emoji="🍅")
            return None

    lookup = StaticLookup()
    assert lookup.lookup("0000") is None

    batch = engine.create_batch(template_to_input(lookup.lookup("8001")))
    assert batch.emoji == "🍅"
    assert batch.location == StorageLocation.PANTRY
