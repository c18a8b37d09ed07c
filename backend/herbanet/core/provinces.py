# backend/herbanet/core/provinces.py
"""
Province -> 2-letter agent-code prefix.

Loaded once at import; lookups are case/whitespace-insensitive. Unknown provinces
share the FALLBACK_PROVINCE_CODE prefix (see DESIGN.md, open question on collisions).
"""
from __future__ import annotations

from types import MappingProxyType

FALLBACK_PROVINCE_CODE = "XX"

_PROVINCE_CODES = {
    "aceh": "AC",
    "sumatera utara": "SU",
    "sumatera barat": "SB",
    "riau": "RI",
    "kepulauan riau": "KR",
    "jambi": "JA",
    "sumatera selatan": "SS",
    "kepulauan bangka belitung": "BB",
    "bengkulu": "BE",
    "lampung": "LA",
    "dki jakarta": "JK",
    "jakarta": "JK",
    "jawa barat": "JB",
    "banten": "BT",
    "jawa tengah": "JT",
    "di yogyakarta": "YO",
    "yogyakarta": "YO",
    "jawa timur": "JI",
    "bali": "BA",
    "nusa tenggara barat": "NB",
    "nusa tenggara timur": "NT",
    "kalimantan barat": "KB",
    "kalimantan tengah": "KT",
    "kalimantan selatan": "KS",
    "kalimantan timur": "KI",
    "kalimantan utara": "KU",
    "sulawesi utara": "SA",
    "gorontalo": "GO",
    "sulawesi tengah": "ST",
    "sulawesi barat": "SR",
    "sulawesi selatan": "SN",
    "sulawesi tenggara": "SG",
    "maluku": "MA",
    "maluku utara": "MU",
    "papua": "PA",
    "papua barat": "PB",
    "papua selatan": "PS",
    "papua tengah": "PT",
    "papua pegunungan": "PE",
    "papua barat daya": "PD",
}

PROVINCE_CODES = MappingProxyType(_PROVINCE_CODES)


def normalize_province(name: str | None) -> str:
    return " ".join((name or "").strip().lower().split())


def province_code(name: str | None) -> str:
    return PROVINCE_CODES.get(normalize_province(name), FALLBACK_PROVINCE_CODE)
