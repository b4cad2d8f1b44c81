"""
Unit tests for vCard export.
"""
from services.vcard import build_vcard, escape_text, vcard_filename


def test_fields_in_fixed_order(sample_profile_data):
    card = build_vcard(sample_profile_data)
    lines = card.split("\r\n")

    assert lines[:7] == [
        "BEGIN:VCARD",
        "VERSION:3.0",
        "FN:Jane Doe",
        "TEL;TYPE=CELL:+94 771234567",
        "EMAIL:jane@example.com",
        "ADR;TYPE=WORK:;;12 Main St;Colombo;Western;00100;Sri Lanka",
        "END:VCARD",
    ]
    assert card.endswith("\r\n")


def test_missing_values_are_blank():
    card = build_vcard({})
    assert "FN:Contact\r\n" in card
    assert "TEL;TYPE=CELL:\r\n" in card
    assert "ADR;TYPE=WORK:;;;;;;\r\n" in card


def test_separators_in_values_are_escaped():
    profile = {
        "full_name": "Doe, Jane",
        "address": {"line1": "Flat 2; 12 Main St", "city": "Colombo\n7"},
    }
    card = build_vcard(profile)

    assert "FN:Doe\\, Jane\r\n" in card
    assert "ADR;TYPE=WORK:;;Flat 2\\; 12 Main St;Colombo\\n7;;;\r\n" in card


def test_escape_text_backslash_first():
    assert escape_text("a\\;b") == "a\\\\\\;b"
    assert escape_text(None) == ""


def test_filename():
    assert vcard_filename({"full_name": "Jane Doe"}) == "Jane Doe.vcf"
    assert vcard_filename({"full_name": "a/b"}) == "a_b.vcf"
    assert vcard_filename({}) == "contact.vcf"
