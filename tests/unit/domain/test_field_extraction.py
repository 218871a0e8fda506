"""Tests for keyword-positional field extraction."""

from intake.domain.entities.directory_user import DirectoryUser
from intake.domain.entities.processing_rule import KeywordMapping
from intake.domain.policies.field_extraction import (
    MAX_SCAN_LINES,
    NOT_FOUND,
    clean_documentation_link,
    clean_value,
    extract_fields,
    normalize_line_breaks,
    parse_recipients,
    parse_technology_table,
    split_name_email,
    validate_region,
)
from intake.domain.value_objects.recipient import Recipient

TECH_BODY = (
    "Opportunity ID: 200\n"
    "Technologies\n"
    "Technology Name    SA Name    SA requested\n"
    "Cisco Meraki    Jane Doe    Yes\n"
    "Palo Alto Firewall    No\n"
    "Submitted By: Keith Arnst\n"
)


# ─── Text helpers ───────────────────────────────────────────────────


def test_normalize_line_breaks_entities():
    assert normalize_line_breaks("a&#xD;&#xA;b&#10;c\r\nd&#xa;e") == "a\nb\nc\nd\ne"


def test_clean_value_strips_mailto_and_entities():
    assert clean_value("Smith &amp; Sons <mailto:x@example.com>") == "Smith & Sons"
    assert clean_value(None) == ""


def test_clean_documentation_link():
    assert clean_documentation_link("job documentation <https://docs.example.com/x>") == "https://docs.example.com/x"
    assert clean_documentation_link(" https://docs.example.com/y ") == "https://docs.example.com/y"


def test_split_name_email():
    assert split_name_email("keith arnst <karnst@example.com>") == ("Keith Arnst", "karnst@example.com")
    assert split_name_email("karnst@example.com") == ("", "karnst@example.com")
    assert split_name_email("Keith Arnst") == ("Keith Arnst", None)


# ─── Region validation ──────────────────────────────────────────────


def test_validate_region_exact_case_insensitive():
    assert validate_region(" tx-dal ") == "TX-DAL"


def test_validate_region_code_inside_candidate():
    assert validate_region("TX-HOU area") == "TX-HOU"


def test_validate_region_unique_partial():
    assert validate_region("fed") == "US-FED"


def test_validate_region_rejects_ambiguous_and_short():
    assert validate_region("TX-") is None
    assert validate_region("TX") is None
    assert validate_region("Mars") is None


def test_validate_region_rejects_long_values():
    assert validate_region("TX-DAL and a lot of other words") is None
    assert validate_region("") is None


# ─── Recipients ─────────────────────────────────────────────────────


def test_parse_recipients_email_then_directory_name():
    users = [
        DirectoryUser(name="Bob Smith", email="bob@example.com"),
        DirectoryUser(name="Carol King", email="carol@example.com"),
    ]
    recipients = parse_recipients("Jane Doe <jane@example.com>; bob@example.com; carol king; Unknown Person", users)
    assert recipients == [
        Recipient("Jane Doe", "jane@example.com"),
        Recipient("Bob Smith", "bob@example.com"),
        Recipient("Carol King", "carol@example.com"),
    ]


def test_parse_recipients_comma_separated_deduplicated():
    recipients = parse_recipients("a@example.com, A@EXAMPLE.COM, b@example.com")
    assert [r.email for r in recipients] == ["a@example.com", "b@example.com"]


def test_recipients_taken_from_forwarded_header():
    body = (
        "Please reply to: nobody@example.com\n"
        "From: Alice Owner\n"
        "To: Jane Doe <jane@example.com>; Bob Smith <bob@example.com>\n"
    )
    fields = extract_fields("FW: SA Request", body, [KeywordMapping("To:", "notificationUsers")])
    assert [r.email for r in fields.recipients("notificationUsers")] == ["jane@example.com", "bob@example.com"]


# ─── extract_fields ─────────────────────────────────────────────────


def test_extract_same_line_and_next_lines():
    body = "Opportunity ID: 12345\nCustomer Name: Acme Corp\nNotes:\n\nBring laptops\n"
    fields = extract_fields(
        "SA Request",
        body,
        [
            KeywordMapping("Opportunity ID:", "opportunityId"),
            KeywordMapping("Customer Name:", "customerName"),
            KeywordMapping("Notes:", "notes"),
            KeywordMapping("ETA:", "eta", required=False),
        ],
    )
    assert fields.get("opportunityId") == "12345"
    assert fields.get("customerName") == "Acme Corp"
    assert fields.get("notes") == "Bring laptops"
    assert fields.values["eta"] is NOT_FOUND
    assert fields.missing() == ["eta"]


def test_blank_lines_do_not_count_toward_scan_limit():
    body = "Notes:" + "\n" * (MAX_SCAN_LINES + 5) + "Bring laptops\n"
    fields = extract_fields("", body, [KeywordMapping("Notes:", "notes")])
    assert fields.get("notes") == "Bring laptops"


def test_scan_stops_after_limit_of_non_blank_lines():
    body = "Notes:\n" + "----\n" * MAX_SCAN_LINES + "Bring laptops\n"
    fields = extract_fields("", body, [KeywordMapping("Notes:", "notes")])
    assert not fields.found("notes")


def test_extract_handles_exchange_line_break_entities():
    body = "Opportunity ID: 777&#xD;&#xA;Region: tx-hou&#xD;&#xA;"
    fields = extract_fields(
        "", body, [KeywordMapping("Opportunity ID:", "opportunityId"), KeywordMapping("Region:", "region")]
    )
    assert fields.get("opportunityId") == "777"
    assert fields.get("region") == "TX-HOU"


def test_invalid_region_is_rejected():
    fields = extract_fields("", "Region: Mars\n", [KeywordMapping("Region:", "region")])
    assert not fields.found("region")
    assert "region" in fields.rejected


def test_unconfigured_field_is_distinct_from_missing():
    fields = extract_fields("", "Region: TX-DAL", [KeywordMapping("Region:", "region")])
    assert fields.is_configured("region")
    assert not fields.is_configured("eta")


def test_opportunity_name_drops_links():
    fields = extract_fields(
        "", "Opportunity Name: Big Deal <https://crm.example.com/1>\n",
        [KeywordMapping("Opportunity Name:", "opportunityName")],
    )
    assert fields.get("opportunityName") == "Big Deal"


def test_submitted_by_tolerates_misspelling():
    fields = extract_fields("", "Submited By: Keith Arnst\n", [KeywordMapping("Submitted By:", "submittedBy")])
    assert fields.get("submittedBy") == "Keith Arnst"


def test_technologies_block_stops_at_submitted_by():
    fields = extract_fields("", TECH_BODY, [KeywordMapping("Technologies", "technologies")])
    block = fields.get("technologies")
    assert "Cisco Meraki" in block
    assert "Keith Arnst" not in block


def test_extract_does_not_modify_inputs():
    mappings = [KeywordMapping("Opportunity ID:", "opportunityId")]
    extract_fields("", TECH_BODY, mappings)
    assert mappings == [KeywordMapping("Opportunity ID:", "opportunityId")]


# ─── Technology table ───────────────────────────────────────────────


def test_parse_technology_table():
    fields = extract_fields("", TECH_BODY, [KeywordMapping("Technologies", "technologies")])
    rows = parse_technology_table(fields.get("technologies"))
    assert [(r.technology, r.specialist, r.requested) for r in rows] == [
        ("Cisco Meraki", "Jane Doe", True),
        ("Palo Alto Firewall", None, False),
    ]


def test_parse_technology_table_tabs_and_short_names():
    rows = parse_technology_table("Collab\tJo\tYes\nsingle-column-row")
    assert len(rows) == 1
    assert rows[0].specialist is None
    assert rows[0].requested


def test_parse_technology_table_empty():
    assert parse_technology_table(None) == []
