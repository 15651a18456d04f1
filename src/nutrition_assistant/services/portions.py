"""Maps normalized items to canonical quantities and units."""

from nutrition_assistant.domain.nutrition import NormalizedItem, PortionedItem

DEFAULT_UNIT = "serving"

_UNIT_ALIASES = {
    "piece": "piece",
    "pieces": "piece",
    "pc": "piece",
    "pcs": "piece",
    "slice": "slice",
    "slices": "slice",
    "g": "g",
    "gram": "g",
    "grams": "g",
    "kg": "kg",
    "oz": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    "cup": "cup",
    "cups": "cup",
    "tbsp": "tbsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "tsp": "tsp",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "ml": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "serving": "serving",
    "servings": "serving",
}

_GRAMS_PER_MASS_UNIT = {"g": 1.0, "kg": 1000.0, "oz": 28.35, "lb": 453.6}

# keyword -> (inferred unit, grams per unit)
_FOOD_PORTIONS = {
    "egg": ("piece", 50.0),
    "banana": ("piece", 118.0),
    "apple": ("piece", 182.0),
    "oatmeal": ("cup", 234.0),
    "rice": ("cup", 158.0),
    "milk": ("cup", 244.0),
    "yogurt": ("cup", 245.0),
    "bread": ("slice", 28.0),
    "toast": ("slice", 28.0),
    "bacon": ("slice", 8.0),
}


def resolve_portions(items: list[NormalizedItem]) -> list[PortionedItem]:
    """Assign canonical quantity, unit, and gram weight to each item."""
    return [_resolve(item) for item in items]


def canonical_unit(unit: str | None) -> str | None:
    """Return the canonical spelling for a unit, or None when missing."""
    if not unit:
        return None
    key = unit.strip().lower().rstrip(".")
    return _UNIT_ALIASES.get(key, key)


def _resolve(item: NormalizedItem) -> PortionedItem:
    quantity = item.amount if isinstance(item.amount, int | float) else 1.0
    if quantity <= 0:
        quantity = 1.0
    portion = _food_portion(item.name)
    unit = canonical_unit(item.unit)
    if unit is None:
        unit = portion[0] if portion else DEFAULT_UNIT
    return PortionedItem(
        name=item.name,
        quantity=float(quantity),
        unit=unit,
        grams=_grams(unit, float(quantity), portion),
        brand=item.brand,
        serving_label=item.serving_label,
        size_label=item.size_label,
        is_branded=item.is_branded,
    )


def _food_portion(name: str) -> tuple[str, float] | None:
    lowered = name.lower()
    for keyword, portion in _FOOD_PORTIONS.items():
        if keyword in lowered:
            return portion
    return None


def _grams(
    unit: str, quantity: float, portion: tuple[str, float] | None
) -> float | None:
    if unit in _GRAMS_PER_MASS_UNIT:
        return quantity * _GRAMS_PER_MASS_UNIT[unit]
    if portion and portion[0] == unit:
        return quantity * portion[1]
    return None
