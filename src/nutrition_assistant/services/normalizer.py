"""Meal text normalizer with a rule-based fallback."""

import asyncio
import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError

from nutrition_assistant.domain.nutrition import NormalizedItem, NormalizerPayload
from nutrition_assistant.services.completions import ChatClient
from nutrition_assistant.services.json_repair import (
    LenientJsonError,
    decode_lenient,
    strip_llm_wrapping,
)

NORMALIZER_PROMPT = """Normalize messy meal text into structured food items.
Return: {"items":[{"name":"food","amount":number|null,"unit":"piece|cup|g|oz"|null}]}
Rules:
- Split multiple foods by commas or "and"
- PRESERVE the user's exact food names verbatim
  (e.g., "skim milk" NOT "milk", "sourdough bread" NOT "bread")
- Infer common units when missing
  (eggs->piece, oatmeal->cup, milk->cup, bread->slice)
- Extract quantities when present

IMPORTANT: Output ONLY valid JSON. No prose, no markdown, no explanations."""

NORMALIZER_TEMPERATURE = 0.05

_LEADING_ACTION = re.compile(r"^(i just ate|i ate|i had|ate|had|log)\s+", re.IGNORECASE)
_SEPARATORS = re.compile(r",\s*|\s+and\s+|\s+with\s+|\s+plus\s+", re.IGNORECASE)
_QUANTITY = re.compile(r"^(\d+(?:\.\d+)?)\s*(.+)$")
_FILLERS = {"a", "an", "the", "some"}

_logger = logging.getLogger(__name__)


@dataclass
class NutritionNormalizer:
    """Turns free meal text into normalized food items."""

    client: ChatClient
    timeout_seconds: float = 20.0

    async def normalize(self, message: str) -> list[NormalizedItem]:
        """Return structured items, falling back to rule-based parsing."""
        try:
            raw = await asyncio.wait_for(
                self.client.complete(
                    NORMALIZER_PROMPT,
                    message,
                    NORMALIZER_TEMPERATURE,
                    json_mode=True,
                ),
                timeout=self.timeout_seconds,
            )
        except Exception as exc:
            _logger.warning(
                "Normalizer %s failed, using rule-based parse: %s",
                self.client.name,
                exc,
            )
            return rule_based_parse(message)

        stripped = strip_llm_wrapping(raw or "")
        if not stripped.startswith(("{", "[")):
            _logger.warning(
                "Normalizer returned non-JSON output: %r", (raw or "")[:120]
            )
            return rule_based_parse(message)

        try:
            document = decode_lenient(stripped)
            if isinstance(document, list):
                document = {"items": document}
            payload = NormalizerPayload.model_validate(document)
        except (LenientJsonError, ValidationError) as exc:
            _logger.warning(
                "Normalizer output invalid, using rule-based parse: %s", exc
            )
            return rule_based_parse(message)

        items = [
            NormalizedItem(
                name=item.name.strip(),
                amount=item.amount,
                unit=item.unit,
                brand=item.brand,
                is_branded=bool(item.brand),
            )
            for item in payload.items
            if item.name.strip()
        ]
        if not items:
            _logger.info("Normalizer returned no items, using rule-based parse")
            return rule_based_parse(message)
        return items


def rule_based_parse(message: str) -> list[NormalizedItem]:
    """Split meal text on conjunctions and extract leading quantities."""
    cleaned = _LEADING_ACTION.sub("", message.strip()).strip().rstrip(".!")
    items: list[NormalizedItem] = []
    for part in _SEPARATORS.split(cleaned):
        token = part.strip()
        if not token or token.lower() in _FILLERS:
            continue
        amount: float | None = None
        name = token
        match = _QUANTITY.match(token)
        if match:
            amount = float(match.group(1))
            name = match.group(2).strip()
        name = _strip_filler_article(name)
        if not name:
            continue
        items.append(NormalizedItem(name=name, amount=amount))
    _logger.info("Rule-based parse produced %s item(s)", len(items))
    return items


def _strip_filler_article(name: str) -> str:
    head, _, rest = name.partition(" ")
    if rest and head.lower() in _FILLERS:
        return rest.strip()
    return name

