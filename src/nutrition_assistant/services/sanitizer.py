"""Repairs common normalizer mistakes before portion resolution."""

import logging
import re
from dataclasses import replace

from nutrition_assistant.domain.nutrition import NormalizedItem

_WORD_NUMBERS = {
    "a couple of": 2.0,
    "couple of": 2.0,
    "half a": 0.5,
    "half": 0.5,
    "one": 1.0,
    "two": 2.0,
    "three": 3.0,
    "four": 4.0,
    "five": 5.0,
    "six": 6.0,
    "seven": 7.0,
    "eight": 8.0,
    "nine": 9.0,
    "ten": 10.0,
    "eleven": 11.0,
    "twelve": 12.0,
}
_WORD_NUMBER_PATTERN = re.compile(
    r"^("
    + "|".join(
        re.escape(word) for word in sorted(_WORD_NUMBERS, key=len, reverse=True)
    )
    + r")\s+",
    re.IGNORECASE,
)

BRAND_ALIASES = {
    "mcdonald's": ("mcdonald's", "mcdonalds", "mcdonald", "mcd's"),
    "starbucks": ("starbucks",),
    "chipotle": ("chipotle",),
    "subway": ("subway",),
    "kirkland": ("kirkland signature", "kirkland"),
    "chick-fil-a": ("chick-fil-a", "chick fil a", "chickfila"),
    "taco bell": ("taco bell",),
    "wendy's": ("wendy's", "wendys"),
    "burger king": ("burger king",),
}

_SIZE = re.compile(r"\b(small|medium|large|grande|venti|tall)\b", re.IGNORECASE)
_PACK_LABEL = re.compile(
    r"\b(\d+)\s*-?\s*(?:piece|pieces|pc|pcs|count|ct)\b", re.IGNORECASE
)
_UNIT_WITH_QUANTITY = re.compile(r"^(\d+(?:\.\d+)?)\s*([A-Za-z][A-Za-z ]*)$")
_DANGLING = re.compile(r"^(from|at|of)\s+|\s+(from|at|of)$", re.IGNORECASE)

_logger = logging.getLogger(__name__)


def sanitize_items(items: list[NormalizedItem]) -> list[NormalizedItem]:
    """Return repaired copies of the normalized items."""
    sanitized: list[NormalizedItem] = []
    for item in items:
        repaired = _sanitize_item(item)
        if repaired is None:
            _logger.info("Dropped item with empty name: %r", item)
            continue
        if repaired != item:
            _logger.debug("Sanitized item %r -> %r", item, repaired)
        sanitized.append(repaired)
    return sanitized


def _sanitize_item(item: NormalizedItem) -> NormalizedItem | None:  # noqa: PLR0912
    name = " ".join(item.name.split())
    unit = item.unit.strip() if item.unit else None
    amount = _parse_amount(item.amount)
    serving_label = item.serving_label
    size_label = item.size_label

    if unit:
        folded = _UNIT_WITH_QUANTITY.match(unit)
        if folded and not _PACK_LABEL.fullmatch(unit):
            amount = float(folded.group(1))
            unit = _singular(folded.group(2).strip().lower())

    word_match = _WORD_NUMBER_PATTERN.match(name)
    if word_match:
        if amount is None:
            amount = _WORD_NUMBERS[word_match.group(1).lower()]
        name = name[word_match.end() :]

    for in_unit, source in ((True, unit), (False, name)):
        if not source:
            continue
        pack = _PACK_LABEL.search(source)
        if pack is None:
            continue
        serving_label = f"{pack.group(1)}-piece"
        if in_unit:
            unit = None
            if amount is not None and amount == float(pack.group(1)):
                amount = None
        else:
            name = _PACK_LABEL.sub("", name, count=1)
        if amount is None:
            amount = 1.0
        break

    size = _SIZE.search(name)
    if size and size_label is None:
        size_label = size.group(1).lower()

    brand = item.brand.strip().lower() if item.brand else None
    name, found_brand = _extract_brand(name)
    brand = brand or found_brand

    name = _DANGLING.sub("", " ".join(name.split())).strip(" -,")
    if not name:
        return None

    return replace(
        item,
        name=name,
        amount=amount,
        unit=unit or None,
        brand=brand,
        serving_label=serving_label,
        size_label=size_label,
        is_branded=brand is not None,
    )


def _parse_amount(value: float | str | None) -> float | None:
    parsed: float | None
    if isinstance(value, int | float):
        parsed = float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if text in _WORD_NUMBERS:
            parsed = _WORD_NUMBERS[text]
        else:
            try:
                parsed = float(text)
            except ValueError:
                parsed = None
    else:
        parsed = None
    if parsed is None or parsed <= 0:
        return None
    return parsed


def _extract_brand(name: str) -> tuple[str, str | None]:
    lowered = name.lower()
    for brand, aliases in BRAND_ALIASES.items():
        for alias in aliases:
            pattern = re.compile(
                rf"(?<!\w){re.escape(alias)}(?:'s)?(?!\w)", re.IGNORECASE
            )
            if pattern.search(lowered):
                return pattern.sub("", name, count=1), brand
    return name, None


def _singular(unit: str) -> str:
    if unit.endswith(("ches", "shes", "sses")):
        return unit[:-2]
    if unit.endswith("s") and not unit.endswith("ss"):
        return unit[:-1]
    return unit
