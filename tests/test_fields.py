"""
Tests for header-pattern field extraction and the row mappers built on it.
"""

import re

from shopboost.ingest.fields import (
    CUSTOMER_FIELDS,
    HISTORY_FIELDS,
    PART_FIELDS,
    STAFF_FIELDS,
    VEHICLE_FIELDS,
    pick,
    pick_field,
)
from shopboost.ingest.mappers import (
    DEFAULT_STAFF_NOTE,
    map_customer,
    map_history,
    map_part,
    map_staff,
    map_vehicle,
)


class TestPick:
    """Tests for pick."""

    def test_matches_lowercased_trimmed_header(self):
        row = {"  E-Mail Address ": "jane@example.com"}

        assert pick(row, [re.compile(r"e-mail")]) == "jane@example.com"

    def test_skips_matching_header_with_blank_value(self):
        row = {"Email": "  ", "Customer Email": "jane@example.com"}

        assert pick_field(row, CUSTOMER_FIELDS, "email") == "jane@example.com"

    def test_first_matching_header_in_row_order_wins(self):
        row = {"Mobile": "555-0100", "Phone": "555-0199"}

        assert pick_field(row, CUSTOMER_FIELDS, "phone") == "555-0100"

    def test_no_match_is_none(self):
        assert pick({"Foo": "bar"}, [re.compile(r"baz")]) is None
        assert pick({}, [re.compile(r".*")]) is None

    def test_value_is_trimmed(self):
        assert pick_field({"VIN": "  abc123 "}, VEHICLE_FIELDS, "vin") == "abc123"


class TestPatternTables:
    """Spot checks on header synonyms."""

    def test_vehicle_synonyms(self):
        row = {"License Plate": "ABC123", "Odometer": "120000", "Truck Number": "T-7"}

        assert pick_field(row, VEHICLE_FIELDS, "plate") == "ABC123"
        assert pick_field(row, VEHICLE_FIELDS, "mileage") == "120000"
        assert pick_field(row, VEHICLE_FIELDS, "unit_number") == "T-7"

    def test_part_synonyms(self):
        row = {"P/N": "BRK-1", "Vendor": "Acme", "Retail": "19.99"}

        assert pick_field(row, PART_FIELDS, "part_number") == "BRK-1"
        assert pick_field(row, PART_FIELDS, "supplier") == "Acme"
        assert pick_field(row, PART_FIELDS, "price") == "19.99"

    def test_staff_synonyms(self):
        row = {"Employee Name": "Alex", "Position": "Technician"}

        assert pick_field(row, STAFF_FIELDS, "full_name") == "Alex"
        assert pick_field(row, STAFF_FIELDS, "role") == "Technician"

    def test_history_synonyms(self):
        row = {"RO": "1001", "Service Date": "2024-01-02", "Concern": "Noise"}

        assert pick_field(row, HISTORY_FIELDS, "ro_number") == "1001"
        assert pick_field(row, HISTORY_FIELDS, "date") == "2024-01-02"
        assert pick_field(row, HISTORY_FIELDS, "complaint") == "Noise"


class TestMappers:
    """Tests for the row -> record mappers."""

    def test_customer_name_falls_back_to_first_and_last(self):
        record = map_customer({"First Name": "Jane", "Last Name": "Doe", "Email": "JANE@X.COM "})

        assert record.name == "Jane Doe"
        assert record.email == "jane@x.com"
        assert record.is_fleet is False

    def test_customer_with_company_is_fleet(self):
        record = map_customer({"Name": "Bob", "Company": "Bob's Haulage"})

        assert record.business_name == "Bob's Haulage"
        assert record.is_fleet is True

    def test_customer_fields_mirror_phone(self):
        record = map_customer({"Phone": "555-0100"})

        assert record.fields()["phone"] == "555-0100"
        assert record.fields()["phone_number"] == "555-0100"

    def test_vehicle_keys_normalized(self):
        record = map_vehicle(
            {"VIN": " 1HGCM82633A004352 ", "Plate": "Abc 123", "Year": "2019", "Customer Email": "A@B.com"}
        )

        assert record.vin == "1hgcm82633a004352"
        assert record.plate == "abc 123"
        assert record.year == 2019
        assert record.customer_email == "a@b.com"
        assert "customer_email" not in record.fields()
        assert record.fields()["license_plate"] == "abc 123"

    def test_part_name_fallbacks(self):
        assert map_part({"Name": "Brake Pad", "SKU": "S1"}, 1).name == "Brake Pad"
        assert map_part({"Part Number": "PN-9", "SKU": "S1"}, 2).name == "PN-9"
        assert map_part({"SKU": "S1"}, 3).name == "S1"
        assert map_part({"Cost": "4.00"}, 4).name == "Part 4"

    def test_part_prices_mirrored_to_defaults(self):
        fields = map_part({"Name": "Filter", "Cost": "4.50", "Price": "$9"}, 1).fields()

        assert fields["cost"] == fields["default_cost"] == 4.5
        assert fields["price"] == fields["default_price"] == 9.0

    def test_staff_defaults(self):
        record = map_staff({"Name": "Alex", "Role": "technician", "Email": "not-an-email"})

        assert record.role == "mechanic"
        assert record.email is None
        assert record.notes == DEFAULT_STAFF_NOTE
        assert record.is_empty is False

    def test_staff_row_with_nothing_useful_is_empty(self):
        assert map_staff({"Name": "", "Role": "wizard"}).is_empty is True

    def test_history_money_and_date(self):
        record = map_history(
            {"RO": "1001", "Date": "2024-01-02", "Labor": "100", "Parts": "50.5", "VIN": "ABC"}
        )

        assert record.ro_number == "1001"
        assert record.performed_at.startswith("2024-01-02T")
        assert record.labor == 100.0
        assert record.parts == 50.5
        assert record.total is None
        assert record.vin == "abc"

    def test_history_without_date_uses_now(self):
        record = map_history({"RO": "1"})

        assert record.performed_at.endswith("+00:00")

    def test_history_line_description_fallbacks(self):
        assert map_history({"Correction": "Replaced pads", "Complaint": "Squeal"}).line_description == "Replaced pads"
        assert map_history({"Complaint": "Squeal"}).line_description == "Squeal"
        assert map_history({}).line_description == "Imported history line"
