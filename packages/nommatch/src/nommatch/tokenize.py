"""Material name normalization and typed tokenization."""

from __future__ import annotations

import os
import re
import unicodedata
from pathlib import Path

from nommatch.config import EngineConfig
from nommatch.types import TokenSet

DATA_DIR = Path(os.environ.get("NOMMATCH_CONFIG_DATA") or "config_data")

BUILTIN_BRANDS = frozenset({
    "ридан", "danfoss", "данфосс", "rehau", "рехау", "knauf", "кнауф",
    "технониколь", "rockwool", "роквул", "isover", "изовер", "ursa", "урса",
    "grundfos", "грундфос", "wilo", "вило", "valtec", "валтек", "oventrop",
    "uponor", "kermi", "buderus", "tece", "hilti", "хилти", "legrand",
    "schneider", "abb", "iek", "иэк", "ekf", "ceresit", "церезит", "волма",
    "caparol", "weber", "vetonit", "ветонит", "armstrong", "broen", "бройен",
})

_DIM_SEP = re.compile(r"(?<=\d)\s*[xXхХ×*]\s*(?=\d)")
_DECIMAL_COMMA = re.compile(r"(?<=\d),(?=\d)")
_PUNCT = re.compile(r"[^\w\s.\-/]")
_SIZE = re.compile(r"^\d+(?:\.\d+)?(?:x\d+(?:\.\d+)?)*(?:мм|см|м|mm|cm)?$")
_NOMINAL_SIZE = re.compile(r"^(?:dn|ду|pn|ру)\d+(?:\.\d+)?$")
_VOWELS = frozenset("aeiouyаеёиоуыэюя")


def _load_word_list(filename: str) -> set[str]:
    path = DATA_DIR / filename
    if not path.exists():
        return set()
    return {
        line.strip().casefold()
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    }


KNOWN_BRANDS: frozenset[str] = BUILTIN_BRANDS | _load_word_list("brands.txt")


def normalize_text(text: str) -> str:
    """Normalize separators, punctuation and whitespace, preserving case.

    Dimension separators between digits (x, ×, Cyrillic х, *) become "x",
    decimal commas become dots, and "-", ".", "/" survive only inside tokens.
    """
    s = unicodedata.normalize("NFKC", text)
    s = _DIM_SEP.sub("x", s)
    s = _DECIMAL_COMMA.sub(".", s)
    s = _PUNCT.sub(" ", s)
    tokens = (t.strip("-./") for t in s.split())
    return " ".join(t for t in tokens if t)


def normalize_query(text: str) -> str:
    """Casefolded normal form used for whole-string comparisons."""
    return normalize_text(text).casefold()


def is_size_token(token: str) -> bool:
    return bool(_SIZE.match(token) or _NOMINAL_SIZE.match(token))


def is_article_token(token: str) -> bool:
    return (
        len(token) >= 4
        and any(c.isdigit() for c in token)
        and any(c.isalpha() for c in token)
    )


def is_brand_token(raw: str, shouting: bool = False) -> bool:
    """Known brand, or a capitalized multi-consonant token such as "BVR-R" or "ВВГнг".

    The shape rule is skipped when the whole query is typed in upper case.
    """
    if raw.casefold() in KNOWN_BRANDS:
        return True
    if shouting:
        return False
    letters = [c for c in raw if c.isalpha()]
    if not letters or len(letters) != len(raw.replace("-", "")):
        return False
    upper = sum(1 for c in letters if c.isupper())
    consonants = sum(1 for c in letters if c.casefold() not in _VOWELS)
    return upper >= 2 and consonants >= 2


def ignored_set(config: EngineConfig) -> frozenset[str]:
    return frozenset(normalize_query(t) for t in config.ignored_terms if normalize_query(t))


def tokenize(text: str, config: EngineConfig | None = None) -> TokenSet:
    """Split free text into material, size, brand and article token groups."""
    if config is None:
        config = EngineConfig()

    normalized = normalize_text(text or "")
    ignored = ignored_set(config)
    shouting = normalized.isupper()

    buckets: dict[str, list[str]] = {"material": [], "size": [], "brand": [], "article": []}
    for raw in normalized.split():
        token = raw.casefold()
        if token in ignored:
            continue
        if is_size_token(token):
            bucket = "size"
        elif is_article_token(token):
            bucket = "article"
        elif is_brand_token(raw, shouting):
            bucket = "brand"
        elif len(token) >= config.min_word_length:
            bucket = "material"
        else:
            continue
        if token not in buckets[bucket]:
            buckets[bucket].append(token)

    return TokenSet(
        material=tuple(buckets["material"]),
        size=tuple(buckets["size"]),
        brand=tuple(buckets["brand"]),
        article=tuple(buckets["article"]),
    )
