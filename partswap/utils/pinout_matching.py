"""Cache keys and package-variant routing for shared datasheet extractions."""

import logging
import re
from enum import Enum
from typing import NamedTuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from partswap.models.pinout import PinFunction
from partswap.schemas.extraction import DatasheetExtraction, PackagePinout

logger = logging.getLogger(__name__)

TRACKING_PARAMS = frozenset({"utm_source", "utm_medium", "utm_campaign"})

# AZ1117CH-3.3TRG1 -> "H", AZ1117CR2-3.3TRG1 -> "R2"
_SUFFIX_BEFORE_DASH_RE = re.compile(r"[A-Z]+\d+[A-Z]*([A-Z]\d?)-", re.IGNORECASE)
_SUFFIX_AFTER_DASH_RE = re.compile(r"-([A-Z]\d?)[A-Z]*-?\d", re.IGNORECASE)
_MPN_VARIANT_TAIL_RE = re.compile(r"[A-Z]\d?-[\d.]+.*$", re.IGNORECASE)
_COMPARISON_STRIP_RE = re.compile(r"[-\s]")


class MatchStrategy(str, Enum):
    SUFFIX = "suffix"
    DIRECT = "direct"
    ALIAS = "alias"
    FUZZY = "fuzzy"
    FALLBACK = "fallback"


class PinoutMatch(NamedTuple):
    """A package variant chosen for a component, and how it was chosen."""

    package_name: str
    pinout: PackagePinout
    strategy: MatchStrategy

    @property
    def is_fallback(self) -> bool:
        return self.strategy == MatchStrategy.FALLBACK


def normalize_datasheet_url(url: str) -> str:
    """Cache key for a datasheet URL: the URL without tracking parameters.

    Anything that does not parse as an absolute URL is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    if not parts.scheme or not parts.netloc:
        return url

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def normalize_for_comparison(value: str) -> str:
    return _COMPARISON_STRIP_RE.sub("", value.upper())


def match_pinout_to_component(
    extraction: DatasheetExtraction,
    package_normalized: str | None,
    mpn_suffix: str | None,
) -> PinoutMatch | None:
    """Pick the package variant of ``extraction`` that belongs to one component.

    Strategies are tried in order: MPN suffix hint, exact package key,
    package alias, key equal after stripping dashes/spaces. When none hits,
    the first variant is returned flagged as a fallback. An empty package
    map never matches.
    """
    packages = extraction.pinouts_by_package
    if not packages:
        return None

    if mpn_suffix:
        wanted = mpn_suffix.upper()
        for name, pinout in packages.items():
            if any(hint.upper() == wanted for hint in pinout.suffix_hints):
                logger.info(f"Matched pinout by suffix '{mpn_suffix}' -> {name}")
                return PinoutMatch(name, pinout, MatchStrategy.SUFFIX)

    if package_normalized:
        if package_normalized in packages:
            logger.info(f"Matched pinout by package name -> {package_normalized}")
            return PinoutMatch(package_normalized, packages[package_normalized], MatchStrategy.DIRECT)

        search = normalize_for_comparison(package_normalized)

        for name, pinout in packages.items():
            if any(normalize_for_comparison(alias) == search for alias in pinout.aliases):
                logger.info(f"Matched pinout by alias -> {name}")
                return PinoutMatch(name, pinout, MatchStrategy.ALIAS)

        for name, pinout in packages.items():
            if normalize_for_comparison(name) == search:
                logger.info(f"Matched pinout by fuzzy package name -> {name}")
                return PinoutMatch(name, pinout, MatchStrategy.FUZZY)

    first_name = next(iter(packages))
    logger.warning(
        f"No pinout match for package='{package_normalized}', suffix='{mpn_suffix}', "
        f"using fallback: {first_name}"
    )
    return PinoutMatch(first_name, packages[first_name], MatchStrategy.FALLBACK)


def extract_mpn_suffix(mpn: str | None) -> str | None:
    """Best-effort package-variant code embedded in an MPN.

    Two heuristics are tried in order; both are guesses and may return
    the wrong letters on unfamiliar part-number formats.
    """
    if not mpn:
        return None

    match = _SUFFIX_BEFORE_DASH_RE.search(mpn)
    if match:
        return match.group(1)

    match = _SUFFIX_AFTER_DASH_RE.search(mpn)
    if match:
        return match.group(1)

    return None


def extract_mpn_base(mpn: str | None) -> str:
    """Family part of an MPN used as a prompt hint (AZ1117CH-3.3TRG1 -> AZ1117C)."""
    if not mpn:
        return "unknown"
    return _MPN_VARIANT_TAIL_RE.sub("", mpn) or "unknown"


def map_to_pin_function(value: str | PinFunction | None) -> PinFunction:
    """Coerce a free-form function label to the closed enum; unknown labels are OTHER."""
    if isinstance(value, PinFunction):
        return value
    if not value:
        return PinFunction.OTHER
    try:
        return PinFunction(value.strip().upper())
    except ValueError:
        return PinFunction.OTHER
