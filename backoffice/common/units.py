"""
Units of measure accepted on invoice lines
"""
import enum
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class Unit(str, enum.Enum):
    DRUM = "DRUM"
    KG = "KG"
    LITRE = "LITRE"
    PIECE = "PIECE"
    METER = "METER"
    TON = "TON"
    BOX = "BOX"


DEFAULT_UNIT = Unit.PIECE

UNIT_SYNONYMS = {
    'MT': Unit.TON,
    'METRIC TON': Unit.TON,
    'TONS': Unit.TON,
    'KGS': Unit.KG,
    'KILOGRAM': Unit.KG,
    'KILOGRAMS': Unit.KG,
    'DRUMS': Unit.DRUM,
    'LITRES': Unit.LITRE,
    'LTR': Unit.LITRE,
    'L': Unit.LITRE,
    'PCS': Unit.PIECE,
    'PIECES': Unit.PIECE,
    'NOS': Unit.PIECE,
    'METERS': Unit.METER,
    'MTR': Unit.METER,
    'M': Unit.METER,
    'BOXES': Unit.BOX,
}


def normalize_unit(raw: Optional[str]) -> Unit:
    """Map free-text units onto Unit; unknown values fall back to PIECE."""
    if raw is None:
        return DEFAULT_UNIT
    if isinstance(raw, Unit):
        return raw
    cleaned = " ".join(str(raw).upper().split())
    if not cleaned:
        return DEFAULT_UNIT
    if cleaned in UNIT_SYNONYMS:
        return UNIT_SYNONYMS[cleaned]
    try:
        return Unit(cleaned)
    except ValueError:
        logger.info(f"Unknown unit {raw!r} mapped to {DEFAULT_UNIT.value}")
        return DEFAULT_UNIT
