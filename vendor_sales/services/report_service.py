from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from decimal import Decimal, ROUND_HALF_UP
from datetime import date
import pandas as pd

from vendor_sales.core.actor import Actor
from vendor_sales.core.exceptions import ValidationError
from vendor_sales.models.commission import Commission
from vendor_sales.models.product import Product
from vendor_sales.models.sale import Sale, SaleStatus
from vendor_sales.models.user import User, UserRole
from vendor_sales.services.commission_service import to_decimal
from vendor_sales.services.payment_service import PaymentService
from vendor_sales.utils.imei import mask_imei

COMMISSION_COLUMNS = [
    "vendor_code",
    "vendor_name",
    "product_sku",
    "product_name",
    "base_amount",
    "commission_amount",
    "status",
    "payment_batch_id",
    "created_at",
]

SALE_COLUMNS = [
    "sale_code",
    "vendor_code",
    "product_sku",
    "imei",
    "price",
    "channel",
    "sale_date",
    "status",
    "risk_level",
    "rejection_reason",
    "created_at",
]

PAYOUT_COLUMNS = [
    "vendor_code",
    "name",
    "bank_account",
    "commissions",
    "amount",
    "period_start",
    "period_end",
    "batch_code",
]

EXPORT_FORMATS = ("json", "csv")


def format_money(value: Any) -> str:
    return str(to_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def rows_to_csv(rows: List[Dict[str, Any]], columns: List[str]) -> str:
    """CSV with a fixed header; fields quoted only when they hold a comma, quote or newline"""
    frame = pd.DataFrame(rows, columns=columns)
    return frame.to_csv(index=False, lineterminator="\n")


class ReportService:
    @staticmethod
    def normalize_format(format: str) -> str:
        format = (format or "json").strip().lower()
        if format not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {format}")
        return format

    @staticmethod
    def _render(rows: List[Dict[str, Any]], columns: List[str], format: str):
        if format == "csv":
            return rows_to_csv(rows, columns)
        return rows

    @staticmethod
    def commission_rows(db: Session, actor: Actor, vendor_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if actor.role == UserRole.VENDOR:
            vendor_id = actor.user_id

        query = db.query(Commission, User, Product).join(
            User, Commission.vendor_id == User.id
        ).join(
            Product, Commission.product_id == Product.id
        )
        if vendor_id:
            query = query.filter(Commission.vendor_id == vendor_id)

        rows = []
        for commission, vendor, product in query.order_by(Commission.created_at.desc()).all():
            rows.append({
                "vendor_code": vendor.vendor_code,
                "vendor_name": vendor.name,
                "product_sku": product.sku,
                "product_name": product.name,
                "base_amount": format_money(commission.base_amount),
                "commission_amount": format_money(commission.commission_amount),
                "status": commission.status.value,
                "payment_batch_id": commission.payment_batch_id,
                "created_at": _iso(commission.created_at),
            })
        return rows

    @staticmethod
    def export_commissions(db: Session, actor: Actor, vendor_id: Optional[str] = None, format: str = "json"):
        format = ReportService.normalize_format(format)
        rows = ReportService.commission_rows(db, actor, vendor_id)
        return ReportService._render(rows, COMMISSION_COLUMNS, format)

    @staticmethod
    def export_sales(
        db: Session,
        actor: Actor,
        status: Optional[SaleStatus] = None,
        vendor_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        format: str = "json"
    ):
        format = ReportService.normalize_format(format)
        if actor.role == UserRole.VENDOR:
            vendor_id = actor.user_id

        query = db.query(Sale, User, Product).join(
            User, Sale.vendor_id == User.id
        ).join(
            Product, Sale.product_id == Product.id
        )
        if vendor_id:
            query = query.filter(Sale.vendor_id == vendor_id)
        if status:
            query = query.filter(Sale.status == status)
        if date_from:
            query = query.filter(Sale.sale_date >= date_from)
        if date_to:
            query = query.filter(Sale.sale_date <= date_to)

        rows = []
        for sale, vendor, product in query.order_by(Sale.created_at.desc()).all():
            rows.append({
                "sale_code": sale.sale_code,
                "vendor_code": vendor.vendor_code,
                "product_sku": product.sku,
                "imei": mask_imei(sale.imei),
                "price": format_money(sale.price),
                "channel": sale.channel,
                "sale_date": _iso(sale.sale_date),
                "status": sale.status.value,
                "risk_level": sale.risk_level.value if sale.risk_level else None,
                "rejection_reason": sale.rejection_reason,
                "created_at": _iso(sale.created_at),
            })
        return ReportService._render(rows, SALE_COLUMNS, format)

    @staticmethod
    def export_batch_payouts(db: Session, actor: Actor, batch_id: str, format: str = "csv"):
        """One payout line per vendor in the batch, for the bank transfer file"""
        format = ReportService.normalize_format(format)
        batch = PaymentService.get_batch(db, actor, batch_id)

        rows = db.query(Commission, User).join(
            User, Commission.vendor_id == User.id
        ).filter(Commission.payment_batch_id == batch.id).all()

        payouts: Dict[str, Dict[str, Any]] = {}
        for commission, vendor in rows:
            payout = payouts.setdefault(vendor.id, {
                "vendor_code": vendor.vendor_code,
                "name": vendor.name,
                "bank_account": vendor.bank_account,
                "commissions": 0,
                "amount": Decimal("0"),
                "period_start": _iso(batch.period_start),
                "period_end": _iso(batch.period_end),
                "batch_code": batch.batch_code,
            })
            payout["commissions"] += 1
            payout["amount"] += to_decimal(commission.commission_amount)

        lines = []
        for vendor_id in sorted(payouts, key=lambda v: (payouts[v]["vendor_code"] or "", v)):
            line = dict(payouts[vendor_id])
            line["amount"] = format_money(line["amount"])
            lines.append(line)
        return ReportService._render(lines, PAYOUT_COLUMNS, format)
