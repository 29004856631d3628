"""
Heuristic extraction of system size and inverter power from order text.

Positions are free-text line items such as ``"Photovoltaikanlage 9,95 kWp"``
or ``"Sungrow SH10RT 10"``. Numbers use either a dot or a comma as decimal
separator and are always reported with exactly one decimal place.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Callable, Dict, Iterable, List, Optional

from .records import first_value, get_nested

logger = logging.getLogger(__name__)

KWP_PATTERN = re.compile(r"([0-9]+(?:[.,][0-9]+)?)\s*kWp", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"([0-9]+(?:[.,][0-9]+)?)")

PV_PREFIX = "photovoltaikanlage"
POSITION_TEXT_KEYS = ("name", "title", "text")
ORDER_TEXT_KEYS = ("header", "addressName", "address")

INVERTER_KEYWORDS = (
    "wechselrichter",
    "inverter",
    "wr",
    "hybrid",
    "sungrow",
    "solax",
    "sma",
    "fronius",
    "huawei",
    "kostal",
)

PartLookup = Callable[[Any], Optional[Dict[str, Any]]]

_ONE_DECIMAL = Decimal("0.1")


@dataclass
class InverterCandidate:
    name: str
    power: Decimal


def parse_number(text: str) -> Optional[Decimal]:
    """Parse ``"9,95"`` / ``"9.95"`` into a Decimal."""
    try:
        return Decimal(text.replace(",", "."))
    except InvalidOperation:
        return None


def format_one_decimal(value: Decimal) -> str:
    """Round half up to one decimal place: 9.95 -> "10.0", 8 -> "8.0"."""
    with localcontext() as ctx:
        # every integer digit plus one decimal
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return str(value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def _match_kwp(text: Any) -> Optional[str]:
    if not isinstance(text, str):
        return None
    m = KWP_PATTERN.search(text)
    if not m:
        return None
    value = parse_number(m.group(1))
    return format_one_decimal(value) if value is not None else None


def extract_kwp_from_positions(positions: Optional[Iterable[Any]]) -> Optional[str]:
    """kWp from the first "Photovoltaikanlage ..." position that names one."""
    for pos in positions or []:
        text = first_value(pos, POSITION_TEXT_KEYS)
        if not isinstance(text, str):
            continue
        if not text.lower().startswith(PV_PREFIX):
            continue
        kwp = _match_kwp(text)
        if kwp:
            return kwp
    return None


def extract_kwp_from_order(order: Optional[Dict[str, Any]]) -> Optional[str]:
    """Fallback: kWp mentioned in the order header or address fields."""
    if not isinstance(order, dict):
        return None
    for key in ORDER_TEXT_KEYS:
        kwp = _match_kwp(order.get(key))
        if kwp:
            return kwp
    return None


def _is_inverter_text(text: str) -> bool:
    low = text.lower()
    return any(keyword in low for keyword in INVERTER_KEYWORDS)


def _parse_power(text: str) -> Optional[Decimal]:
    m = NUMBER_PATTERN.search(text)
    if not m:
        return None
    return parse_number(m.group(1))


def _candidate_texts(pos: Any, part_lookup: Optional[PartLookup]) -> List[str]:
    texts: List[str] = []
    name = get_nested(pos, "name")
    if isinstance(name, str):
        texts.append(name)

    part_id = get_nested(pos, "part", "id")
    if part_id and part_lookup is not None:
        part = part_lookup(part_id)
        part_name = get_nested(part, "name")
        if part_name:
            texts.append(str(part_name))
        category_name = get_nested(part, "category", "name")
        if category_name:
            texts.append(str(category_name))
    return texts


def find_best_inverter(
    positions: Optional[Iterable[Any]],
    part_lookup: Optional[PartLookup] = None,
) -> Optional[InverterCandidate]:
    """
    Highest-powered inverter-looking text across positions and their parts.

    Only a strictly greater power replaces the current best, so among equal
    powers the first one seen is kept.
    """
    best: Optional[InverterCandidate] = None
    for pos in positions or []:
        for text in _candidate_texts(pos, part_lookup):
            if not _is_inverter_text(text):
                continue
            power = _parse_power(text)
            if power is None:
                continue
            if best is None or power > best.power:
                best = InverterCandidate(name=text, power=power)
    if best is not None:
        logger.info("Inverter candidate %r (%s)", best.name, best.power)
    return best


def extract_inverter_power(
    positions: Optional[Iterable[Any]],
    part_lookup: Optional[PartLookup] = None,
) -> Optional[str]:
    best = find_best_inverter(positions, part_lookup)
    return format_one_decimal(best.power) if best is not None else None
