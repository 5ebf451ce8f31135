"""Display and export formatting helpers."""

from __future__ import annotations

import html
import re
from typing import Any

from listviews.common.fields import as_text
from listviews.common.time_utils import parse_iso_datetime

COUNTRY_CODES = {
    "Ghana": "GH",
    "Nigeria": "NG",
    "Kenya": "KE",
    "Ethiopia": "ET",
    "Egypt": "EG",
    "India": "IN",
    "China": "CN",
    "Rwanda": "RW",
    "Zimbabwe": "ZW",
    "Congo": "CD",
    "Tanzania": "TZ",
    "Uganda": "UG",
    "Saudi Arabia": "SA",
    "South Africa": "ZA",
    "Cameroon": "CM",
    "Senegal": "SN",
    "Zambia": "ZM",
    "Malawi": "MW",
    "Morocco": "MA",
    "Tunisia": "TN",
    "Algeria": "DZ",
    "Pakistan": "PK",
    "Bangladesh": "BD",
    "Sri Lanka": "LK",
    "Nepal": "NP",
    "Vietnam": "VN",
    "Indonesia": "ID",
    "Philippines": "PH",
    "Malaysia": "MY",
    "Thailand": "TH",
    "Brazil": "BR",
    "Mexico": "MX",
    "Colombia": "CO",
    "Argentina": "AR",
    "Peru": "PE",
    "Chile": "CL",
}
UNKNOWN_COUNTRY_CODE = "UN"
COUNTRY_BY_CODE = {code: name for name, code in COUNTRY_CODES.items()}

_REGIONAL_INDICATOR_OFFSET = 127397
_WORD_START = re.compile(r"\b\w")
_PAREN_CODE = re.compile(r"\s*\([A-Z]{2,3}\)\s*")
_BARE_CODE = re.compile(r"^[A-Z]{2,3}$")
_MOJIBAKE_MARKERS = ("Ã", "â€", "Â")


def header_label(field: str) -> str:
    spaced = field.replace("_", " ")
    return _WORD_START.sub(lambda match: match.group(0).upper(), spaced)


def flag_emoji(code: str | None) -> str:
    text = as_text(code).upper()
    if len(text) != 2 or not text.isascii() or not text.isalpha():
        return ""
    return "".join(chr(_REGIONAL_INDICATOR_OFFSET + ord(char)) for char in text)


def format_datetime(value: Any) -> str:
    text = as_text(value)
    if not text:
        return ""
    parsed = parse_iso_datetime(text)
    if parsed is None:
        return text
    return f"{parsed:%b} {parsed.day}, {parsed:%Y, %I:%M %p}"


def format_phone(phone: Any, dial_code: Any) -> str:
    number = as_text(phone)
    if not number:
        return ""
    code = as_text(dial_code).lstrip("+")
    if not code:
        return number
    return f"+{code} {number}"


def clean_country_name(value: Any) -> str:
    cleaned = _PAREN_CODE.sub("", as_text(value)).strip()
    if _BARE_CODE.match(cleaned):
        return COUNTRY_BY_CODE.get(cleaned, cleaned)
    return cleaned


def country_code(name: str) -> str:
    return COUNTRY_CODES.get(name, UNKNOWN_COUNTRY_CODE)


def fix_mojibake(text: str) -> str:
    if not any(marker in text for marker in _MOJIBAKE_MARKERS):
        return text
    try:
        return text.encode("cp1252").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return text


def decode_text(text: str) -> str:
    return fix_mojibake(html.unescape(text))


def decode_strings(obj: Any) -> Any:
    """Recursively decode HTML entities and mojibake in every string of a JSON document."""
    if isinstance(obj, str):
        return decode_text(obj)
    if isinstance(obj, list):
        return [decode_strings(item) for item in obj]
    if isinstance(obj, dict):
        return {key: decode_strings(value) for key, value in obj.items()}
    return obj
