"""Address normalization and cache-key derivation.

Canonicalizes a raw stop address into the query form sent to providers:
punctuation removed, whitespace collapsed, ZIP extracted, and
secondary-unit designators (apartment, suite, floor...) stripped.
Providers degrade sharply on unit designators they cannot resolve, so the
stripping is intentionally aggressive.
"""

import re
from dataclasses import dataclass

# Unit/apartment indicator words; each swallows the designator that follows it
UNIT_INDICATORS: tuple[str, ...] = (
    "APARTMENT",
    "APT",
    "BLDG",
    "BUILDING",
    "FL",
    "FLOOR",
    "RM",
    "ROOM",
    "STE",
    "SUITE",
    "UNIT",
)

_LIST_PUNCTUATION = re.compile(r"[.,;:/]+")
_APOSTROPHES = re.compile(r"['’]")
# Anything left after unit stripping that is not a letter, digit, space or hyphen
_RESIDUAL_PUNCTUATION = re.compile(r"[^\w\s-]|_")
_WHITESPACE = re.compile(r"\s+")

# 5-digit ZIP or ZIP+4, with or without the hyphen
_ZIP_PATTERN = re.compile(r"\b(\d{5})(?:-?(\d{4}))?\b")

_UNIT_PATTERN = re.compile(
    rf"\b(?:{'|'.join(UNIT_INDICATORS)})\b\s*[:#-]?\s*#?\s*(?:[A-Za-z0-9]+(?:-[A-Za-z0-9]+)?)?",
    re.IGNORECASE,
)
_HASH_UNIT_PATTERN = re.compile(r"#\s*[A-Za-z0-9]+(?:-[A-Za-z0-9]+)?")

_HOUSE_NUMBER_PATTERN = re.compile(r"^(\d+[-\dA-Za-z]*)\s+(.*)$")

_KEY_SEPARATOR = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class NormalizedAddress:
    """Query form of a raw address; computed per request, never mutated."""

    query_string: str = ""
    house_number: str | None = None
    street: str | None = None
    zip: str | None = None

    @property
    def zip5(self) -> str | None:
        """Five-digit ZIP, used for provider region filters."""
        return self.zip[:5] if self.zip else None

    def __bool__(self) -> bool:
        return bool(self.query_string)


def _extract_zip(text: str) -> tuple[str | None, str]:
    """Pull the trailing ZIP out of ``text``.

    The last ZIP-shaped token wins, except a leading token, which is a
    house number rather than a ZIP.
    """
    matches = [m for m in _ZIP_PATTERN.finditer(text) if m.start() > 0]
    if not matches:
        return None, text
    match = matches[-1]
    zipcode = match.group(1) + (match.group(2) or "")
    remainder = (text[: match.start()] + " " + text[match.end() :]).strip()
    return zipcode, remainder


def normalize_address(raw: str | None) -> NormalizedAddress:
    """Canonicalize a raw address string.

    Never raises: empty or malformed input yields an empty
    NormalizedAddress.

    Args:
        raw: Free-text street address, possibly with unit, city and ZIP.

    Returns:
        NormalizedAddress whose ``query_string`` is
        ``house_number street zip`` with empty parts omitted.
    """
    if not raw or not isinstance(raw, str) or not raw.strip():
        return NormalizedAddress()

    text = _LIST_PUNCTUATION.sub(" ", raw.strip())
    text = _WHITESPACE.sub(" ", text).strip()

    zipcode, text = _extract_zip(text)

    text = _UNIT_PATTERN.sub(" ", text)
    text = _HASH_UNIT_PATTERN.sub(" ", text)
    text = _RESIDUAL_PUNCTUATION.sub(" ", _APOSTROPHES.sub("", text))
    text = _WHITESPACE.sub(" ", text).strip(" -")

    house_number: str | None = None
    street = text
    house_match = _HOUSE_NUMBER_PATTERN.match(text)
    if house_match:
        house_number = house_match.group(1)
        street = house_match.group(2)
    street = _WHITESPACE.sub(" ", street).strip(" -")

    parts = [p for p in (house_number, street, zipcode) if p]
    return NormalizedAddress(
        query_string=" ".join(parts),
        house_number=house_number or None,
        street=street or None,
        zip=zipcode,
    )


def cache_key(normalized: NormalizedAddress | str, max_length: int = 120) -> str:
    """Derive the filesystem-safe cache key for an address.

    Lowercases the query string and collapses every run of
    non-alphanumerics into a single underscore.

    Args:
        normalized: A NormalizedAddress or an already normalized query string.
        max_length: Upper bound on key length.

    Returns:
        The cache key; empty when the address has no usable text.
    """
    text = normalized.query_string if isinstance(normalized, NormalizedAddress) else normalized
    key = _KEY_SEPARATOR.sub("_", (text or "").lower()).strip("_")
    return key[:max_length].rstrip("_")


def address_from_key(key: str) -> str:
    """Best-effort query string for a legacy cache key without a stored query."""
    text = key.removesuffix(".json").replace("_", " ")
    return _WHITESPACE.sub(" ", text).strip()
