"""
Tests for AvailabilityService (read-only stock pre-flight).
"""

import pytest

from fulfillment.services.domain import AvailabilityService, InventoryService
from fulfillment.types import Customizations, LineItem, ProductInfo
from shared.config.constants import ProductCategory, ProductSize
from tests.conftest import latte
from tests.fakes import InMemoryCatalog, InMemoryLedger


@pytest.fixture
def ledger():
    ledger = InMemoryLedger()
    ledger.add("milk", "Milk", 1000, unit="ml")
    ledger.add("espresso-shot", "Espresso Shot", 10, unit="pcs")
    ledger.add("sugar-syrup", "Sugar Syrup", 100, unit="ml")
    ledger.add("topping-pearls", "Pearls", 10, is_topping=True, portion_size=50)
    return ledger


@pytest.fixture
def catalog():
    return InMemoryCatalog([
        ProductInfo(
            product_id="cb-01",
            name="Spanish Latte",
            category=ProductCategory.COFFEE_BASED,
            recipe={"espresso-shot": 2, "milk": 150},
        ),
    ])


@pytest.fixture
def checker(ledger, catalog):
    return AvailabilityService(None, ledger=ledger, catalog=catalog)


def item(quantity=1, **customizations):
    return LineItem(
        product_id="cb-01",
        product_name="Spanish Latte",
        quantity=quantity,
        size=ProductSize.GRANDE,
        category=ProductCategory.COFFEE_BASED,
        customizations=Customizations.build(**customizations),
    )


class TestCheckAvailability:
    def test_everything_in_stock(self, checker):
        result = checker.check_availability([item(sugar_level="full")])

        assert result.available is True
        assert result.insufficient == []

    def test_topping_shortfall_names_amounts(self, checker):
        """50g of pearls needed, 10g on hand."""
        result = checker.check_availability([item(toppings=["Pearls"])])

        assert result.available is False
        assert result.insufficient == ["Pearls (need 50g, have 10g)"]

    def test_reports_every_shortfall_at_once(self, checker):
        result = checker.check_availability([item(quantity=6, toppings=["Pearls"], sugar_level="full")])

        assert result.available is False
        assert len(result.insufficient) == 3
        joined = " ".join(result.insufficient)
        assert "Espresso Shot (need 12pcs, have 10pcs)" in joined
        assert "Pearls" in joined
        assert "Sugar Syrup (need 120ml, have 100ml)" in joined

    def test_lines_sharing_an_ingredient_are_checked_together(self, checker):
        """Each line alone fits the 10 shots on hand; together they do not."""
        assert checker.check_availability([item(quantity=4)]).available is True

        result = checker.check_availability([item(quantity=4), item(quantity=2)])

        assert result.available is False
        assert result.insufficient == ["Espresso Shot (need 12pcs, have 10pcs)"]

    def test_packaging_is_not_checked(self, checker, ledger):
        """No cups or napkins in this ledger; still available."""
        assert "cup-grande" not in ledger.records

        assert checker.check_availability([item()]).available is True

    def test_unstocked_ingredient_is_insufficient(self, checker, ledger):
        del ledger.records["milk"]

        result = checker.check_availability([item()])

        assert result.available is False
        assert result.insufficient == ["milk (not stocked)"]

    def test_unknown_topping_is_a_warning_not_a_shortfall(self, checker):
        result = checker.check_availability([item(toppings=["Unicorn Dust"])])

        assert result.available is True
        assert any("Unicorn Dust" in w for w in result.warnings)

    def test_never_writes_to_ledger(self, checker, ledger):
        before = {k: r.stock for k, r in ledger.records.items()}

        checker.check_availability([item(quantity=50, toppings=["Pearls"])])
        checker.check_availability([item(quantity=50, toppings=["Pearls"])])

        assert ledger.batches == []
        assert {k: r.stock for k, r in ledger.records.items()} == before

    def test_shares_requirement_pass_with_deduction(self, ledger, catalog):
        inventory = InventoryService(None, ledger=ledger, catalog=catalog)
        checker = AvailabilityService(None, inventory=inventory)

        result = checker.check_availability([item()])

        assert result.available is True


class TestAvailabilityAgainstDatabase:
    def test_seeded_stock_covers_a_small_order(self, seeded):
        result = AvailabilityService(seeded).check_availability([latte(quantity=2, sugar="full")])

        assert result.available is True

    def test_fractional_amounts_are_formatted(self, seeded):
        from fulfillment.repositories import get_stock_ledger

        get_stock_ledger(seeded).apply_increments([("topping-pearls", -4999.5)])
        seeded.commit()

        result = AvailabilityService(seeded).check_availability([latte(toppings=["Pearls"])])

        assert result.insufficient == ["Pearls (need 30g, have 0.5g)"]
