"""
Trade code normalization using regular expressions.
Maps catalog codes, trade aliases and free-text categories onto the
canonical trade codes and their Xactimate category prefixes.
"""

import re
from dataclasses import dataclass
from functools import lru_cache

PARSE_CACHE_SIZE = 4096

# Canonical trade codes (16 trades)
TRADE_CODES: tuple[str, ...] = (
    "MIT",  # Mitigation
    "DEM",  # Demolition
    "DRY",  # Drywall
    "PNT",  # Painting
    "FLR",  # Flooring
    "INS",  # Insulation
    "CAR",  # Carpentry
    "CAB",  # Cabinetry
    "CTR",  # Countertops
    "RFG",  # Roofing
    "WIN",  # Windows
    "EXT",  # Exterior
    "ELE",  # Electrical
    "PLM",  # Plumbing
    "HVAC",  # HVAC
    "GEN",  # General
)

TRADE_NAMES: dict[str, str] = {
    "MIT": "Mitigation",
    "DEM": "Demolition",
    "DRY": "Drywall",
    "PNT": "Painting",
    "FLR": "Flooring",
    "INS": "Insulation",
    "CAR": "Carpentry",
    "CAB": "Cabinetry",
    "CTR": "Countertops",
    "RFG": "Roofing",
    "WIN": "Windows",
    "EXT": "Exterior",
    "ELE": "Electrical",
    "PLM": "Plumbing",
    "HVAC": "HVAC",
    "GEN": "General",
}

TRADE_ALIASES: dict[str, str] = {
    "ROOF": "RFG",
    "ROOFING": "RFG",
    "SFT": "RFG",
    "FAS": "RFG",
    "GUT": "RFG",
    "FLS": "RFG",
    "SDG": "EXT",
    "SID": "EXT",
    "SIDING": "EXT",
    "EXTERIOR": "EXT",
    "DYW": "DRY",
    "DRYWALL": "DRY",
    "PAINT": "PNT",
    "PAINTING": "PNT",
    "FLOOR": "FLR",
    "FLOORING": "FLR",
    "FCC": "FLR",
    "FNC": "FLR",
    "CARPET": "FLR",
    "WINDOW": "WIN",
    "WINDOWS": "WIN",
    "ELEC": "ELE",
    "ELC": "ELE",
    "ELECTRICAL": "ELE",
    "PLUMB": "PLM",
    "PLUMBING": "PLM",
    "HVA": "HVAC",
    "MEC": "HVAC",
    "MECHANICAL": "HVAC",
    "INSULATION": "INS",
    "CABINET": "CAB",
    "CABINETRY": "CAB",
    "COUNTER": "CTR",
    "COUNTERTOP": "CTR",
    "FRM": "CAR",
    "FRAME": "CAR",
    "CARPENTRY": "CAR",
    "STRUCTURE": "CAR",
    "DOR": "CAR",
    "DOOR": "CAR",
    "DEMO": "DEM",
    "DEMOLITION": "DEM",
    "WTR": "MIT",
    "MITIGATION": "MIT",
    "APL": "GEN",
    "APPLIANCE": "GEN",
    "GENERAL": "GEN",
}

# Xactimate category prefix per trade
XACT_CATEGORY_PREFIX: dict[str, str] = {
    "MIT": "WTR",
    "DEM": "DEM",
    "DRY": "DRY",
    "PNT": "PNT",
    "FLR": "FLR",
    "INS": "INS",
    "CAR": "FRM",
    "CAB": "CAB",
    "CTR": "CTR",
    "RFG": "RFG",
    "WIN": "WIN",
    "EXT": "SDG",
    "ELE": "ELE",
    "PLM": "PLM",
    "HVAC": "HVA",
    "GEN": "GEN",
}

PERIL_MITIGATION_CATEGORY: dict[str, str] = {
    "water": "WTR",
    "flood": "WTR",
    "flooding": "WTR",
    "water damage": "WTR",
    "wet": "WTR",
    "fire": "FIR",
    "smoke": "FIR",
    "fire damage": "FIR",
    "wind": "WND",
    "hail": "WND",
    "windstorm": "WND",
    "mold": "MLR",
    "mold damage": "MLR",
    "other": "GEN",
}


@dataclass(frozen=True)
class ParsedTrade:
    """Result of resolving a line item's trade."""

    trade_code: str
    xact_category: str
    source: str  # "trade_code", "code_prefix", "category", "default"


class TradeCodeParser:
    """
    Resolves canonical trade codes from explicit codes, catalog code
    prefixes, or free-text categories and descriptions.
    """

    # Free-text category patterns, checked in order
    CATEGORY_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
        ("MIT", re.compile(r"(MITIGAT|WATER\s*EXTRACT|DEHUM|AIR\s*MOVER|WTR)", re.IGNORECASE)),
        ("DEM", re.compile(r"(DEMO|TEAR\s*OUT|REMOVE\b|HAUL)", re.IGNORECASE)),
        ("RFG", re.compile(r"(ROOF|SHINGLE|GUTTER|FLASHING|SOFFIT|FASCIA)", re.IGNORECASE)),
        ("EXT", re.compile(r"(SIDING|STUCCO|EXTERIOR|HOUSE\s*WRAP)", re.IGNORECASE)),
        ("DRY", re.compile(r"(DRYWALL|WALLBOARD|SHEETROCK|GYPSUM)", re.IGNORECASE)),
        ("PNT", re.compile(r"(PAINT|PRIMER|STAIN|VARNISH)", re.IGNORECASE)),
        ("FLR", re.compile(r"(FLOOR|CARPET|TILE|LAMINATE|VINYL\s*PLANK|LVP|HARDWOOD)", re.IGNORECASE)),
        ("INS", re.compile(r"(INSULAT)", re.IGNORECASE)),
        ("CAB", re.compile(r"(CABINET|VANITY)", re.IGNORECASE)),
        ("CTR", re.compile(r"(COUNTER)", re.IGNORECASE)),
        ("WIN", re.compile(r"(WINDOW|GLAZ)", re.IGNORECASE)),
        ("ELE", re.compile(r"(ELECTRIC|OUTLET|WIRING)", re.IGNORECASE)),
        ("PLM", re.compile(r"(PLUMB|PIPE|FAUCET|WATER\s*HEATER)", re.IGNORECASE)),
        ("HVAC", re.compile(r"(HVAC|FURNACE|DUCT|CONDENSER)", re.IGNORECASE)),
        ("CAR", re.compile(r"(CARPENTRY|FRAMING|TRIM|BASEBOARD|DOOR)", re.IGNORECASE)),
    ]

    CODE_PREFIX_PATTERN = re.compile(r"^([A-Z]+)[_\-]?", re.IGNORECASE)

    def __init__(self, cache_size: int = PARSE_CACHE_SIZE) -> None:
        """Initialize the parser with a bounded parse cache."""
        self._parse_cached = lru_cache(maxsize=cache_size)(self._parse)

    @staticmethod
    def canonical(code: str | None) -> str | None:
        """Map a trade code or alias to its canonical form."""
        if not code:
            return None
        normalized = code.strip().upper()
        if normalized in TRADE_CODES:
            return normalized
        return TRADE_ALIASES.get(normalized)

    def parse(
        self,
        trade_code: str | None = None,
        xact_code: str | None = None,
        category: str = "",
        description: str = "",
    ) -> ParsedTrade:
        """
        Resolve the canonical trade for a line item.

        Args:
            trade_code: Explicit trade code or alias
            xact_code: Catalog code such as "DRY-SHEET-SF"
            category: Free-text category ("Roofing", "Drywall", ...)
            description: Line item description, used last

        Returns:
            ParsedTrade with the canonical trade and its category prefix
        """
        return self._parse_cached(trade_code, xact_code, category or "", description or "")

    def cache_info(self):
        """Hit, miss and size statistics of the parse cache."""
        return self._parse_cached.cache_info()

    def _parse(
        self,
        trade_code: str | None,
        xact_code: str | None,
        category: str,
        description: str,
    ) -> ParsedTrade:
        trade, source = self._resolve(trade_code, xact_code, category, description)
        return ParsedTrade(
            trade_code=trade,
            xact_category=XACT_CATEGORY_PREFIX.get(trade, "GEN"),
            source=source,
        )

    def _resolve(
        self,
        trade_code: str | None,
        xact_code: str | None,
        category: str,
        description: str,
    ) -> tuple[str, str]:
        explicit = self.canonical(trade_code)
        if explicit:
            return explicit, "trade_code"

        if xact_code:
            match = self.CODE_PREFIX_PATTERN.match(xact_code)
            if match:
                prefixed = self.canonical(match.group(1))
                if prefixed:
                    return prefixed, "code_prefix"

        for text in (category, description):
            if not text:
                continue
            direct = self.canonical(text)
            if direct:
                return direct, "category"
            for trade, pattern in self.CATEGORY_PATTERNS:
                if pattern.search(text):
                    return trade, "category"

        return "GEN", "default"


def resolve_mitigation_category(peril_type: str | None) -> str:
    """Xactimate category for mitigation work, which depends on the peril."""
    if not peril_type:
        return "WTR"
    return PERIL_MITIGATION_CATEGORY.get(peril_type.lower().strip(), "WTR")


def resolve_category(trade_code: str | None, peril_type: str | None = None) -> str:
    """Resolve the Xactimate category prefix for a trade code."""
    canonical = TradeCodeParser.canonical(trade_code)
    if canonical is None:
        return "GEN"
    if canonical == "MIT":
        return resolve_mitigation_category(peril_type)
    return XACT_CATEGORY_PREFIX[canonical]


# Singleton instance
_parser_instance: TradeCodeParser | None = None


def get_parser() -> TradeCodeParser:
    """Get the singleton parser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = TradeCodeParser()
    return _parser_instance
