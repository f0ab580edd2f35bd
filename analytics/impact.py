from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class ImpactFactors:
    meals_per_unit: float
    waste_per_unit: float
    carbon_per_unit: float


@dataclass(frozen=True)
class ImpactMetrics:
    meals: float
    waste_saved_kg: float
    carbon_saved_kg: float


DEFAULT_FACTORS = ImpactFactors(meals_per_unit=2, waste_per_unit=1, carbon_per_unit=2.5)

_PRODUCE = ImpactFactors(2, 1, 2.5)
_GRAINS = ImpactFactors(4, 1, 1.8)
_DAIRY = ImpactFactors(3, 1, 3.2)
_PROTEIN = ImpactFactors(5, 1, 5.5)
_PREPARED = ImpactFactors(1, 0.5, 2.2)

# Approximate conversion factors per kg (or per portion for prepared meals).
CATEGORY_FACTORS: Dict[str, ImpactFactors] = {
    "produce": _PRODUCE,
    "fruits": _PRODUCE,
    "vegetables": _PRODUCE,
    "grains": _GRAINS,
    "bread": _GRAINS,
    "bakery": _GRAINS,
    "dairy": _DAIRY,
    "meat": _PROTEIN,
    "protein": _PROTEIN,
    "prepared": _PREPARED,
    "meals": _PREPARED,
}


def factors_for(category: str) -> ImpactFactors:
    return CATEGORY_FACTORS.get((category or "").strip().lower(), DEFAULT_FACTORS)


def compute_impact(quantity: float, category: str) -> ImpactMetrics:
    """
    Map a donated quantity to meals provided, food waste saved (kg) and
    carbon saved (kg CO2). Unknown categories use DEFAULT_FACTORS.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or not quantity > 0:
        raise ValueError(f"quantity must be a positive number, got {quantity!r}")
    f = factors_for(category)
    return ImpactMetrics(
        meals=quantity * f.meals_per_unit,
        waste_saved_kg=quantity * f.waste_per_unit,
        carbon_saved_kg=quantity * f.carbon_per_unit,
    )
