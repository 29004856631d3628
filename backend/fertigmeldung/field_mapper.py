"""
Project sevDesk order/contact records onto the template's form fields.

Field names are fixed by the "Fertigmeldung Ihrer Anlage" template:
``Text1`` customer name, ``Text2`` street, ``Text3`` postal code and city,
``Text6`` phone / email, ``Text7`` and ``Text40`` date lines.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Optional, Tuple

from .records import first_str

NAME_KEYS = ("name", "displayName", "fullName")
NAME_PART_KEYS = ("surename", "surname", "familyname")
STREET_KEYS = ("street", "address")
ZIP_KEYS = ("zip", "postalCode")
CITY_KEYS = ("city", "town")
EMAIL_KEYS = ("email", "mail")
PHONE_KEYS = ("phone", "telephone")

DATE_FIELDS = ("Text40", "Text7")

_LINE_BREAK = re.compile(r"\r?\n")


def parse_address_block(block: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(street, zip_city)`` lines from a multi-line address block."""
    if not block:
        return None, None
    lines = [line.strip() for line in _LINE_BREAK.split(block)]
    lines = [line for line in lines if line]
    street = lines[1] if len(lines) > 1 else None
    zip_city = lines[2] if len(lines) > 2 else street
    return street, zip_city


def resolve_name(order: Optional[Dict[str, Any]], contact: Optional[Dict[str, Any]]) -> Optional[str]:
    name = first_str(contact, NAME_KEYS)
    if not name and isinstance(contact, dict):
        parts: List[str] = [contact[k] for k in NAME_PART_KEYS if isinstance(contact.get(k), str) and contact[k]]
        name = " ".join(parts).strip()
    if not name:
        name = first_str(order, ("addressName",))
    if not name:
        address = first_str(order, ("address",))
        if address:
            name = _LINE_BREAK.split(address)[0].strip()
    return name or None


def order_contact_to_mapping(order: Optional[Dict[str, Any]], contact: Optional[Dict[str, Any]]) -> Dict[str, str]:
    mapping: Dict[str, str] = {}

    name = resolve_name(order, contact)
    if name:
        mapping["Text1"] = name

    street = first_str(contact, STREET_KEYS)
    zip_code = first_str(contact, ZIP_KEYS)
    city = first_str(contact, CITY_KEYS)

    address_block = first_str(order, ("address",))
    if (not street or not (zip_code or city)) and address_block:
        fallback_street, fallback_zip_city = parse_address_block(address_block)
        street = street or fallback_street
        if fallback_zip_city and not zip_code and not city:
            zip_part, _, city_part = fallback_zip_city.partition(" ")
            zip_code = zip_part or zip_code
            city = city_part or city

    if street:
        mapping["Text2"] = street
    if zip_code or city:
        mapping["Text3"] = " ".join(p for p in (zip_code, city) if p).strip()

    phone = first_str(contact, PHONE_KEYS)
    email = first_str(contact, EMAIL_KEYS)
    if phone or email:
        mapping["Text6"] = " / ".join(p for p in (phone, email) if p)

    return mapping


def format_german_date(day: dt.date) -> str:
    """German short date as browsers render it (``5.3.2026``, no padding)."""
    return f"{day.day}.{day.month}.{day.year}"


def append_dates(mapping: Dict[str, Any], today: Optional[dt.date] = None) -> Dict[str, Any]:
    """Append today's date to the date fields, keeping any prefilled text."""
    stamp = format_german_date(today or dt.date.today())
    for key in DATE_FIELDS:
        base = mapping.get(key) or ""
        if not isinstance(base, str):
            base = str(base)
        sep = "" if base == "" or base.endswith(" ") or base.endswith(",") else " "
        mapping[key] = f"{base}{sep}{stamp}"
    return mapping
