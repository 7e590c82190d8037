"""
Source catalogs and risk band tables.

Each tracker has one or more versioned weight tables and band tables. The
versions differ only in their numbers, so they are kept as data here and picked
through settings rather than baked into the calculator.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Sequence, Tuple


class TrackerKind(str, Enum):
    """Kinds of exposure tracked by the application."""

    MICROPLASTIC = "microplastic"
    PFAS = "pfas"


@dataclass(frozen=True)
class SourceDefinition:
    """A single trackable exposure channel and its per-unit weight."""

    key: str
    label: str
    unit: str
    weight_per_unit: float
    category: str
    description: str = ""


@dataclass(frozen=True)
class RiskBand:
    """
    Score interval mapped to a risk tier.

    ``min_value`` is inclusive, ``max_value`` exclusive. The last band of a
    table uses ``math.inf``.
    """

    label: str
    min_value: float
    max_value: float
    description: str = ""

    def contains(self, score: float) -> bool:
        return self.min_value <= score < self.max_value


SourceCatalog = Tuple[SourceDefinition, ...]
BandTable = Tuple[RiskBand, ...]


def validate_bands(bands: Sequence[RiskBand]) -> BandTable:
    """
    Check that a band table partitions ``[0, inf)``.

    Args:
        bands: Bands in ascending order

    Returns:
        The bands as a tuple

    Raises:
        ValueError: If the table is empty, has gaps or overlaps, or is bounded
    """
    if not bands:
        raise ValueError("Band table must contain at least one band")

    if bands[0].min_value != 0:
        raise ValueError(f"First band must start at 0, got {bands[0].min_value}")

    for previous, current in zip(bands, bands[1:]):
        if current.min_value != previous.max_value:
            raise ValueError(
                f"Bands '{previous.label}' and '{current.label}' are not contiguous "
                f"({previous.max_value} != {current.min_value})"
            )

    for band in bands:
        if band.max_value <= band.min_value:
            raise ValueError(f"Band '{band.label}' is empty: [{band.min_value}, {band.max_value})")

    if not math.isinf(bands[-1].max_value):
        raise ValueError(f"Last band '{bands[-1].label}' must be unbounded")

    return tuple(bands)


# Microplastic sources, particles per mL per unit per week.
# v1 carries the weights of the source manager; v2 those of the calculation service.
_MICROPLASTIC_SOURCES = (
    ("bottledWater", "Plastic Water Bottles", "bottles per week", "beverages",
     "Water from single-use plastic bottles", 0.2, 0.2),
    ("syntheticClothing", "Synthetic Clothing", "wears per week", "clothing",
     "Wearing polyester, nylon, and synthetic fabrics", 0.15, 0.15),
    ("plasticPackaged", "Plastic Packaged Food", "items per week", "packaging",
     "Food items wrapped or stored in plastic", 0.2, 0.2),
    ("householdDust", "Indoor Time", "hours per day", "household",
     "Hours spent indoors (exposure to household dust)", 0.01, 0.01),
    ("seafood", "Seafood Meals", "meals per week", "food",
     "Fish, shellfish, and other marine products", 0.4, 0.35),
    ("salt", "Salt Usage", "grams per week", "food",
     "Table salt and sea salt in cooking", 0.1, 0.5),
    ("teaBags", "Tea Bags", "bags per week", "beverages",
     "Tea bags made with plastic materials", 0.1, 0.1),
    ("cannedFood", "Canned Food", "cans per week", "food",
     "Food from metal cans with plastic linings", 0.3, 0.1),
    ("plasticKitchenware", "Plastic Kitchen Items", "times per week", "household",
     "Using plastic utensils, containers, and cooking tools", 0.1, 0.05),
    ("coffeeCups", "Single-Serve Coffee Pods", "cups per week", "beverages",
     "Single-serve coffee pods and capsules", 0.15, 0.05),
    ("takeoutContainers", "Takeout Orders", "orders per week", "packaging",
     "Food delivery containers and packaging", 0.25, 0.08),
)


def _microplastic_catalog(version_index: int) -> SourceCatalog:
    sources = []
    for key, label, unit, category, description, *weights in _MICROPLASTIC_SOURCES:
        sources.append(
            SourceDefinition(
                key=key,
                label=label,
                unit=unit,
                weight_per_unit=weights[version_index],
                category=category,
                description=description,
            )
        )
    return tuple(sources)


MICROPLASTIC_CATALOGS: Dict[str, SourceCatalog] = {
    "v1": _microplastic_catalog(0),
    "v2": _microplastic_catalog(1),
}

# PFAS sources, ppt per unit per week
PFAS_CATALOGS: Dict[str, SourceCatalog] = {
    "v1": (
        SourceDefinition(
            "dentalFloss", "Dental Floss", "times per week", 0.05, "personal-care",
            "PFAS-coated dental floss",
        ),
        SourceDefinition(
            "toiletPaper", "Toilet Paper", "rolls per week", 0.02, "household",
            "Toilet paper processed with PFAS",
        ),
        SourceDefinition(
            "sweatResistantClothing", "Sweat/Water Resistant Clothing", "wears per week", 0.012,
            "clothing", "PFAS-treated athletic wear and moisture-wicking fabrics",
        ),
        SourceDefinition(
            "tapWater", "Tap Water", "glasses per week", 0.001, "beverages",
            "PFAS-contaminated tap water consumption",
        ),
        SourceDefinition(
            "nonStickPans", "Non-Stick Pans", "times per week", 0.03, "kitchen",
            "PFAS-coated non-stick cookware usage",
        ),
    ),
}

MICROPLASTIC_BANDS: Dict[str, BandTable] = {
    "v1": validate_bands(
        (
            RiskBand("Low", 0, 5, "No or minimal microplastic detected"),
            RiskBand("Normal", 5, 20, "Around the mean, typical range"),
            RiskBand("High", 20, 90, "Upper end of observed range"),
            RiskBand("Extreme", 90, math.inf, "Significantly above normal range"),
        )
    ),
}

# Thresholds in ppt
PFAS_BANDS: Dict[str, BandTable] = {
    "v1": validate_bands(
        (
            RiskBand("Low", 0, 0.02, "Below EPA limits for PFOS/PFOA"),
            RiskBand("Normal", 0.02, 0.1, "Within acceptable range"),
            RiskBand("High", 0.1, 1.0, "Above recommended levels"),
            RiskBand("Extreme", 1.0, math.inf, "Significantly above safe levels"),
        )
    ),
    "v2": validate_bands(
        (
            RiskBand("Low", 0, 0.07, "Below EPA limits for PFOS/PFOA"),
            RiskBand("Normal", 0.07, 0.2, "Within acceptable range"),
            RiskBand("High", 0.2, 0.5, "Above recommended levels"),
            RiskBand("Extreme", 0.5, math.inf, "Significantly above safe levels"),
        )
    ),
}

CATALOGS: Dict[TrackerKind, Dict[str, SourceCatalog]] = {
    TrackerKind.MICROPLASTIC: MICROPLASTIC_CATALOGS,
    TrackerKind.PFAS: PFAS_CATALOGS,
}

BANDS: Dict[TrackerKind, Dict[str, BandTable]] = {
    TrackerKind.MICROPLASTIC: MICROPLASTIC_BANDS,
    TrackerKind.PFAS: PFAS_BANDS,
}


def get_catalog(kind: TrackerKind, version: str) -> SourceCatalog:
    """
    Look up a source catalog.

    Raises:
        ValueError: If the version is unknown for this tracker
    """
    try:
        return CATALOGS[kind][version]
    except KeyError:
        known = ", ".join(sorted(CATALOGS[kind]))
        raise ValueError(f"Unknown {kind.value} catalog version '{version}' (known: {known})") from None


def get_bands(kind: TrackerKind, version: str) -> BandTable:
    """
    Look up a risk band table.

    Raises:
        ValueError: If the version is unknown for this tracker
    """
    try:
        return BANDS[kind][version]
    except KeyError:
        known = ", ".join(sorted(BANDS[kind]))
        raise ValueError(f"Unknown {kind.value} band version '{version}' (known: {known})") from None
