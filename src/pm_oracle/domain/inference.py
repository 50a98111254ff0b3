"""Pick a market's resolution descriptor from its title at creation time.

The keyword rules run once, when an admin creates a market without an
explicit ``resolution_kind``; the stored kind, threshold and entity are what
the resolver dispatches on afterwards. Titles are Spanish, as are the
categories (ECONOMIA, DEPORTES, POLITICA, ACTUALIDAD).
"""

import re
import unicodedata

from src.pm_common.enums import ResolutionKind

DEFAULT_THRESHOLDS: dict[ResolutionKind, float] = {
    ResolutionKind.ELECTRICITY_PRICE: 100.0,  # EUR/MWh
    ResolutionKind.TEMPERATURE: 30.0,  # degrees C
    ResolutionKind.NEWS_TRENDING: 5.0,  # Google News items
}

DEFAULT_STOCK_SYMBOL = "^IBEX"

_STOCK_WORDS = ("verde", "positivo", "cierra", "sube")
_ELECTRICITY_WORDS = ("luz", "mwh", "electricidad")
_TEMPERATURE_WORDS = ("grados", "temperatura", "ºc", "°c")
_NEWS_WORDS = ("trending", "noticia", "tendencia")
_SPORTS_WORDS = ("gana", "ganara", "vence", "derrota")

# Display names resolved through TheSportsDB team search.
_TEAMS = {
    "real madrid": "Real Madrid",
    "barcelona": "Barcelona",
    "barca": "Barcelona",
    "atletico": "Atletico Madrid",
    "sevilla": "Sevilla",
    "betis": "Real Betis",
    "valencia": "Valencia",
    "athletic": "Athletic Bilbao",
    "real sociedad": "Real Sociedad",
    "villarreal": "Villarreal",
}

_COMPARATOR_RE = re.compile(r"(?:>=?|mas de|supera(?:ra)?)\s*(\d+(?:[.,]\d+)?)")
_NUMBER_RE = re.compile(r"(\d+(?:[.,]\d+)?)")
_QUOTED_RE = re.compile(r"[\"“«](.+?)[\"”»]")


def _fold(text: str) -> str:
    """Lower-case and strip accents: 'Atlético' -> 'atletico'."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))


def infer_resolution_kind(title: str, category: str | None = None) -> ResolutionKind:
    """Classify a market title. Anything unrecognised needs an operator."""
    t = _fold(title)
    cat = (category or "").upper()

    if "ibex" in t and any(w in t for w in _STOCK_WORDS):
        return ResolutionKind.STOCK_INDEX
    if any(w in t for w in _ELECTRICITY_WORDS):
        return ResolutionKind.ELECTRICITY_PRICE
    if any(w in t for w in _TEMPERATURE_WORDS) or re.search(r"\d+\s*c\b", t):
        return ResolutionKind.TEMPERATURE
    if (cat == "DEPORTES" or any(team in t for team in _TEAMS)) and any(
        w in t for w in _SPORTS_WORDS
    ):
        if infer_entity(ResolutionKind.SPORTS_MATCH, title) is not None:
            return ResolutionKind.SPORTS_MATCH
    if any(w in t for w in _NEWS_WORDS):
        return ResolutionKind.NEWS_TRENDING
    return ResolutionKind.MANUAL


def parse_threshold(title: str) -> float | None:
    """Numeric threshold embedded in a title, e.g. 'luz >120 EUR/MWh' -> 120.

    An explicit comparator wins over a bare number.
    """
    t = _fold(title)
    match = _COMPARATOR_RE.search(t) or _NUMBER_RE.search(t)
    if match is None:
        return None
    return _to_float(match.group(1))


def default_threshold(kind: ResolutionKind, title: str) -> float | None:
    if kind not in DEFAULT_THRESHOLDS:
        return None
    if kind == ResolutionKind.NEWS_TRENDING:
        # Years and counts inside the quoted topic are not thresholds.
        match = _COMPARATOR_RE.search(_fold(_QUOTED_RE.sub(" ", title)))
        parsed = _to_float(match.group(1)) if match else None
    else:
        parsed = parse_threshold(title)
    return parsed if parsed is not None else DEFAULT_THRESHOLDS[kind]


def infer_entity(kind: ResolutionKind, title: str) -> str | None:
    """Subject the check looks up: ticker, search phrase or team name."""
    if kind == ResolutionKind.STOCK_INDEX:
        return DEFAULT_STOCK_SYMBOL
    if kind == ResolutionKind.NEWS_TRENDING:
        quoted = _QUOTED_RE.search(title)
        if quoted:
            return quoted.group(1).strip()
        return title.strip(" ¿?")
    if kind == ResolutionKind.SPORTS_MATCH:
        t = _fold(title)
        for key, name in _TEAMS.items():
            if key in t:
                return name
    return None
