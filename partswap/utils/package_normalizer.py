"""Canonical forms for vendor package names, manufacturers and lifecycle states."""

import re
from enum import Enum

PACKAGE_ALIASES: dict[str, list[str]] = {
    "SOIC-8": ["8-SOIC", "SO-8", "SOP-8", "SOP8", "SOIC8"],
    "SOIC-14": ["14-SOIC", "SO-14", "SOP-14", "SOP14", "SOIC14"],
    "SOIC-16": ["16-SOIC", "SO-16", "SOP-16", "SOP16", "SOIC16"],
    "TSSOP-8": ["8-TSSOP", "TSSOP8", "MSOP-8", "MSOP8"],
    "TSSOP-14": ["14-TSSOP", "TSSOP14"],
    "TSSOP-16": ["16-TSSOP", "TSSOP16"],
    "TSSOP-20": ["20-TSSOP", "TSSOP20"],
    "QFN-8": ["8-QFN", "DFN-8", "8-DFN", "QFN8", "DFN8"],
    "QFN-16": ["16-QFN", "DFN-16", "16-DFN", "QFN16", "DFN16"],
    "QFN-20": ["20-QFN", "DFN-20", "20-DFN", "QFN20", "DFN20"],
    "QFN-24": ["24-QFN", "DFN-24", "24-DFN", "QFN24", "DFN24"],
    "QFN-32": ["32-QFN", "DFN-32", "32-DFN", "QFN32", "DFN32"],
    "SOT-23": ["SOT23", "SOT-23-3", "SOT23-3"],
    "SOT-23-5": ["SOT23-5", "SOT-23-5L", "TSOT-23-5"],
    "SOT-23-6": ["SOT23-6", "SOT-23-6L", "TSOT-23-6"],
    "SOT-223": ["SOT223", "SOT-223-4"],
    "TO-220": ["TO220", "TO-220-3", "TO-220AB"],
    "TO-263": ["TO263", "D2PAK", "DDPAK", "TO-263-5"],
    "TO-252": ["TO252", "DPAK"],
}

MANUFACTURER_ALIASES: dict[str, list[str]] = {
    "Texas Instruments": ["TI", "Texas Inst", "Texas Instruments Inc"],
    "Analog Devices": ["ADI", "Analog Devices Inc", "AD"],
    "ON Semiconductor": ["ON Semi", "ONSemi", "Fairchild", "ON Semiconductor Corp"],
    "STMicroelectronics": ["ST", "STMicro", "ST Microelectronics"],
    "Infineon Technologies": ["Infineon", "IRF", "International Rectifier"],
    "Microchip Technology": ["Microchip", "Atmel", "Microchip Tech"],
    "NXP Semiconductors": ["NXP", "Freescale", "Philips Semiconductors"],
    "Maxim Integrated": ["Maxim", "Maxim IC", "Dallas Semiconductor"],
    "Monolithic Power Systems": ["MPS", "Monolithic Power"],
    "ROHM Semiconductor": ["ROHM", "Rohm"],
    "Diodes Incorporated": ["Diodes Inc", "Diodes", "Pericom"],
    "Renesas Electronics": ["Renesas", "Intersil", "IDT"],
    "Vishay Intertechnology": ["Vishay", "Vishay Siliconix"],
    "Nexperia": ["Nexperia B.V."],
    "Toshiba": ["Toshiba Electronic", "Toshiba Semiconductor"],
}


def _build_reverse(aliases: dict[str, list[str]], key_fn) -> dict[str, str]:
    reverse: dict[str, str] = {}
    for canonical, names in aliases.items():
        reverse[key_fn(canonical)] = canonical
        for name in names:
            reverse[key_fn(name)] = canonical
    return reverse


_PACKAGE_LOOKUP = _build_reverse(PACKAGE_ALIASES, str.upper)
_MANUFACTURER_LOOKUP = _build_reverse(MANUFACTURER_ALIASES, lambda s: s.lower().strip())

_WHITESPACE_RE = re.compile(r"\s+")
_PARENS_RE = re.compile(r"[()]")
_FAMILY_PINS_RE = re.compile(r"^(SOIC|TSSOP|MSOP|QFN|DFN|SOT|TO)-?(\d+)", re.IGNORECASE)
_FIRST_INT_RE = re.compile(r"(\d+)")
_SMD_RE = re.compile(
    r"^(SOIC|TSSOP|MSOP|QFN|DFN|SOT|WSON|SON|VQFN|HVQFN|TO-252|TO-263|DPAK|D2PAK)",
    re.IGNORECASE,
)
_THT_RE = re.compile(r"^(DIP|PDIP|TO-220|TO-92|TO-3)", re.IGNORECASE)

MIN_PIN_COUNT = 3
MAX_PIN_COUNT = 100


class MountingStyle(str, Enum):
    SMD = "SMD"
    THT = "THT"


class LifecycleStatus(str, Enum):
    ACTIVE = "Active"
    NRND = "NRND"
    OBSOLETE = "Obsolete"
    UNKNOWN = "Unknown"


def normalize_package(raw: str | None) -> str | None:
    """Map a vendor package string to its canonical name.

    Unknown packages come back trimmed but otherwise untouched, so the
    function is idempotent for every input.
    """
    if not raw:
        return raw

    cleaned = _PARENS_RE.sub("", _WHITESPACE_RE.sub("", raw.upper()))

    canonical = _PACKAGE_LOOKUP.get(cleaned)
    if canonical:
        return canonical

    match = _FAMILY_PINS_RE.match(cleaned)
    if match:
        candidate = f"{match.group(1).upper()}-{match.group(2)}"
        return _PACKAGE_LOOKUP.get(candidate, candidate)

    return raw.strip()


def normalize_manufacturer(raw: str | None) -> str | None:
    if not raw:
        return raw
    return _MANUFACTURER_LOOKUP.get(raw.lower().strip(), raw.strip())


def extract_pin_count(package_name: str | None) -> int | None:
    """First integer in the package name, if it is a plausible pin count."""
    if not package_name:
        return None

    match = _FIRST_INT_RE.search(package_name)
    if match:
        count = int(match.group(1))
        if MIN_PIN_COUNT <= count <= MAX_PIN_COUNT:
            return count

    return None


def get_mounting_style(package_name: str | None) -> MountingStyle | None:
    if not package_name:
        return None

    if _SMD_RE.match(package_name):
        return MountingStyle.SMD
    if _THT_RE.match(package_name):
        return MountingStyle.THT

    return None


def normalize_lifecycle(raw: str | None) -> LifecycleStatus:
    if not raw:
        return LifecycleStatus.UNKNOWN

    lower = raw.lower()

    if "active" in lower or "production" in lower:
        return LifecycleStatus.ACTIVE
    if "nrnd" in lower or "not recommended" in lower or "last time buy" in lower:
        return LifecycleStatus.NRND
    if "obsolete" in lower or "discontinued" in lower or "eol" in lower:
        return LifecycleStatus.OBSOLETE

    return LifecycleStatus.UNKNOWN
