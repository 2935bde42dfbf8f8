from datetime import date

from vendor_sales.utils.identifiers import (
    generate_batch_code,
    generate_sale_code,
    generate_vendor_code,
    parse_vendor_number,
)


class TestIdentifiers:
    def test_sale_code(self):
        assert generate_sale_code(date(2024, 3, 7), 0) == "VT-20240307-001"
        assert generate_sale_code(date(2024, 3, 7), 41) == "VT-20240307-042"

    def test_batch_code(self):
        assert generate_batch_code(date(2024, 12, 31), 2) == "PB-20241231-003"

    def test_vendor_code(self):
        assert generate_vendor_code(0) == "VND-001"
        assert generate_vendor_code(9) == "VND-010"

    def test_parse_vendor_number(self):
        assert parse_vendor_number("VND-017") == 17
        assert parse_vendor_number("legacy") == 0
        assert parse_vendor_number(None) == 0
