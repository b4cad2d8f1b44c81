"""
vCard export of a public profile.

Fields are written in a fixed order (FN, TEL, EMAIL, ADR). Text values are
escaped as vCard requires: backslash, comma and semicolon get a backslash and
line breaks become `\\n`, so a comma in a street name cannot shift the address
components.
"""

from typing import Any, Dict, Mapping, Optional

CRLF = "\r\n"


def escape_text(value: Optional[Any]) -> str:
    if value is None:
        return ""
    text = str(value)
    text = text.replace("\\", "\\\\")
    text = text.replace(";", "\\;").replace(",", "\\,")
    text = text.replace("\r\n", "\\n").replace("\n", "\\n").replace("\r", "\\n")
    return text


def build_vcard(profile: Mapping[str, Any]) -> str:
    contact: Dict[str, Any] = profile.get("contact_info") or {}
    address: Dict[str, Any] = profile.get("address") or {}

    adr = ";".join(
        escape_text(address.get(part))
        for part in ("line1", "city", "state", "zipcode", "country")
    )
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{escape_text(profile.get('full_name') or 'Contact')}",
        f"TEL;TYPE=CELL:{escape_text(contact.get('mobile'))}",
        f"EMAIL:{escape_text(contact.get('email'))}",
        f"ADR;TYPE=WORK:;;{adr}",
        "END:VCARD",
    ]
    return CRLF.join(lines) + CRLF


def vcard_filename(profile: Mapping[str, Any]) -> str:
    name = (profile.get("full_name") or "contact").strip() or "contact"
    safe = "".join(ch if ch.isalnum() or ch in " -_" else "_" for ch in name)
    return f"{safe}.vcf"
