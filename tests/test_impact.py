import pytest

from analytics.impact import CATEGORY_FACTORS, DEFAULT_FACTORS, compute_impact, factors_for


def test_produce_example():
    impact = compute_impact(10, "Produce")
    assert impact.meals == 20
    assert impact.waste_saved_kg == 10
    assert impact.carbon_saved_kg == 25


def test_category_lookup_is_case_insensitive():
    assert factors_for("BAKERY") is factors_for("bread")
    assert compute_impact(2, " Dairy ").meals == 6


def test_prepared_meals_save_half_the_waste():
    impact = compute_impact(4, "prepared")
    assert impact.meals == 4
    assert impact.waste_saved_kg == 2
    assert impact.carbon_saved_kg == pytest.approx(8.8)


def test_unknown_category_uses_default():
    assert factors_for("Canned Goods") is DEFAULT_FACTORS
    impact = compute_impact(3, "Canned Goods")
    assert (impact.meals, impact.waste_saved_kg, impact.carbon_saved_kg) == (6, 3, 7.5)


@pytest.mark.parametrize("category", sorted(CATEGORY_FACTORS) + ["", "Food", "unknown"])
@pytest.mark.parametrize("quantity", [0.01, 1, 12.5, 1000])
def test_impact_is_non_negative(quantity, category):
    impact = compute_impact(quantity, category)
    assert impact.meals >= 0 and impact.waste_saved_kg >= 0 and impact.carbon_saved_kg >= 0


@pytest.mark.parametrize("quantity", [0, -1, float("nan"), None, "5", True])
def test_rejects_non_positive_quantity(quantity):
    with pytest.raises(ValueError):
        compute_impact(quantity, "produce")
