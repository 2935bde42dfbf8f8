"""
Report export tests
"""

from decimal import Decimal

import pytest

from vendor_sales.core.exceptions import ValidationError
from vendor_sales.models.sale import SaleStatus
from vendor_sales.services.payment_service import PaymentService
from vendor_sales.services.report_service import (
    COMMISSION_COLUMNS,
    PAYOUT_COLUMNS,
    ReportService,
    format_money,
    rows_to_csv,
)


class TestCsv:
    def test_header_is_always_written(self):
        assert rows_to_csv([], ["a", "b"]) == "a,b\n"

    def test_minimal_quoting(self):
        rows = [
            {"name": "Perez, Ana", "note": 'said "ok"', "plain": "x"},
            {"name": "multi\nline", "note": None, "plain": "y"},
        ]

        csv_text = rows_to_csv(rows, ["name", "note", "plain"])

        assert csv_text == (
            "name,note,plain\n"
            '"Perez, Ana","said ""ok""",x\n'
            '"multi\nline",,y\n'
        )

    def test_format_money(self):
        assert format_money(Decimal("319.92")) == "319.92"
        assert format_money(Decimal("0.07425")) == "0.07"
        assert format_money(Decimal("0.005")) == "0.01"
        assert format_money(None) == "0.00"


class TestExports:
    def test_commission_export_json(self, db_session, admin_actor, vendor_user, fixed_product, make_commission):
        make_commission(vendor_user, fixed_product, Decimal("300"))

        rows = ReportService.export_commissions(db_session, admin_actor)

        assert len(rows) == 1
        assert rows[0]["vendor_code"] == "VND-001"
        assert rows[0]["commission_amount"] == "300.00"
        assert set(rows[0]) == set(COMMISSION_COLUMNS)

    def test_vendor_export_is_restricted(
        self, db_session, vendor_actor, vendor_user, second_vendor, fixed_product, make_commission
    ):
        make_commission(vendor_user, fixed_product, Decimal("300"))
        make_commission(second_vendor, fixed_product, Decimal("300"))

        rows = ReportService.export_commissions(db_session, vendor_actor, vendor_id=second_vendor.id)

        assert [r["vendor_code"] for r in rows] == ["VND-001"]

    def test_sales_export_masks_imei(self, db_session, admin_actor, vendor_user, fixed_product, make_sale):
        make_sale(vendor_user, fixed_product, status=SaleStatus.REJECTED, imei="490154203237518")

        csv_text = ReportService.export_sales(db_session, admin_actor, format="csv")

        assert "490154203237518" not in csv_text
        assert "***********7518" in csv_text
        assert csv_text.splitlines()[0].startswith("sale_code,vendor_code,product_sku,imei")

    def test_unsupported_format(self, db_session, admin_actor):
        with pytest.raises(ValidationError):
            ReportService.export_sales(db_session, admin_actor, format="xlsx")

    def test_batch_payouts(
        self, db_session, admin_actor, vendor_user, second_vendor, fixed_product, make_commission
    ):
        ids = [
            make_commission(vendor_user, fixed_product, Decimal("100.00")).id,
            make_commission(vendor_user, fixed_product, Decimal("250.50")).id,
            make_commission(second_vendor, fixed_product, Decimal("49.50")).id,
        ]
        batch = PaymentService.create_batch(db_session, admin_actor, ids)

        payouts = ReportService.export_batch_payouts(db_session, admin_actor, batch.id, format="json")

        assert [(p["vendor_code"], p["commissions"], p["amount"]) for p in payouts] == [
            ("VND-001", 2, "350.50"),
            ("VND-002", 1, "49.50"),
        ]
        assert all(p["batch_code"] == batch.batch_code for p in payouts)

        csv_text = ReportService.export_batch_payouts(db_session, admin_actor, batch.id)
        assert csv_text.splitlines()[0] == ",".join(PAYOUT_COLUMNS)
        assert len(csv_text.splitlines()) == 3
