"""
Rule based risk scoring for submitted sales.

Every factor is evaluated independently and adds a penalty plus a reason:

    inventory mismatch          +60
    duplicate IMEI              +30
    vendor rejection rate 30d   +40 (>50%) / +20 (>30%)
    frequency anomaly 24h       +15 (>10 sales)

score >= 50 is high, score >= 25 is medium, anything else is low.

A factor whose query fails is handled according to ``fail_open``: when
enabled it contributes no penalty and the assessment is marked degraded,
otherwise ``RiskScoringError`` is raised. Availability is favoured by
default (``RISK_FAIL_OPEN``).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vendor_sales.core.config import settings
from vendor_sales.core.exceptions import RiskScoringError
from vendor_sales.models.sale import Sale, SaleStatus, RiskLevel
from vendor_sales.schemas.inventory import InventoryRecord
from vendor_sales.utils.imei import mask_imei

logger = logging.getLogger(__name__)

INVENTORY_MISMATCH_PENALTY = 60
DUPLICATE_IMEI_PENALTY = 30
HIGH_REJECTION_PENALTY = 40
ELEVATED_REJECTION_PENALTY = 20
FREQUENCY_ANOMALY_PENALTY = 15

HIGH_REJECTION_RATE = 50.0
ELEVATED_REJECTION_RATE = 30.0
REJECTION_WINDOW = timedelta(days=30)
FREQUENCY_WINDOW = timedelta(hours=24)
FREQUENCY_LIMIT = 10

HIGH_RISK_SCORE = 50
MEDIUM_RISK_SCORE = 25

FACTOR_INVENTORY = "inventory_mismatch"
FACTOR_DUPLICATE = "duplicate_imei"
FACTOR_REJECTION_RATE = "vendor_rejection_rate"
FACTOR_FREQUENCY = "frequency_anomaly"


@dataclass(frozen=True)
class SelectedProduct:
    name: str
    category: Optional[str] = None


@dataclass
class RiskInput:
    imei: str
    vendor_id: str
    ip: Optional[str] = None
    inventory_result: Optional[InventoryRecord] = None
    selected_product: Optional[SelectedProduct] = None
    # The inventory service was unreachable (as opposed to "not found")
    inventory_lookup_failed: bool = False
    # Re-scoring an existing sale must not count the sale itself as a duplicate
    exclude_sale_id: Optional[str] = None


@dataclass
class RiskFactors:
    duplicate_imei: bool = False
    vendor_rejection_rate: float = 0.0
    recent_rejections: int = 0
    frequency_anomaly: bool = False
    inventory_mismatch: bool = False


@dataclass
class RiskAssessment:
    score: int = 0
    level: RiskLevel = RiskLevel.LOW
    reasons: List[str] = field(default_factory=list)
    factors: RiskFactors = field(default_factory=RiskFactors)
    failed_factors: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.failed_factors)

    def add(self, penalty: int, reason: str) -> None:
        self.score += penalty
        self.reasons.append(reason)


def risk_level_for_score(score: int) -> RiskLevel:
    if score >= HIGH_RISK_SCORE:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def is_model_mismatch(inventory_model: str, product_name: str) -> bool:
    inv_model = (inventory_model or "").lower()
    prod_name = (product_name or "").lower()
    return inv_model not in prod_name and prod_name not in inv_model


class RiskScorer:
    def __init__(self, db: Session, fail_open: Optional[bool] = None):
        self.db = db
        self.fail_open = settings.RISK_FAIL_OPEN if fail_open is None else fail_open

    def assess(self, risk_input: RiskInput, now: Optional[datetime] = None) -> RiskAssessment:
        now = now or datetime.utcnow()
        assessment = RiskAssessment()

        self._check_inventory(assessment, risk_input)
        self._run_factor(assessment, FACTOR_DUPLICATE, lambda: self._check_duplicate(assessment, risk_input))
        self._run_factor(
            assessment, FACTOR_REJECTION_RATE,
            lambda: self._check_rejection_rate(assessment, risk_input, now)
        )
        self._run_factor(
            assessment, FACTOR_FREQUENCY,
            lambda: self._check_frequency(assessment, risk_input, now)
        )

        assessment.level = risk_level_for_score(assessment.score)

        logger.info(
            "Risk for IMEI %s vendor %s: score=%d level=%s degraded=%s",
            mask_imei(risk_input.imei), risk_input.vendor_id,
            assessment.score, assessment.level.value, assessment.degraded
        )
        return assessment

    def _run_factor(self, assessment: RiskAssessment, factor: str, check: Callable[[], None]) -> None:
        try:
            check()
        except SQLAlchemyError as e:
            # Discard the failed statement so later factors can still query
            self.db.rollback()
            self._factor_failed(assessment, factor, e.__class__.__name__)

    def _factor_failed(self, assessment: RiskAssessment, factor: str, cause: str) -> None:
        if not self.fail_open:
            logger.error("Risk factor %s failed (%s), fail-open disabled", factor, cause)
            raise RiskScoringError(
                f"Risk factor '{factor}' could not be evaluated",
                details={"factor": factor}
            )

        logger.warning("Risk factor %s failed (%s), scoring it as zero", factor, cause)
        assessment.failed_factors.append(factor)
        assessment.reasons.append(f"Risk factor unavailable: {factor}")

    def _check_inventory(self, assessment: RiskAssessment, risk_input: RiskInput) -> None:
        if risk_input.inventory_lookup_failed:
            self._factor_failed(assessment, FACTOR_INVENTORY, "inventory lookup failed")
            return

        inventory = risk_input.inventory_result
        product = risk_input.selected_product
        if inventory is None or product is None:
            return

        if is_model_mismatch(inventory.model, product.name):
            assessment.factors.inventory_mismatch = True
            assessment.add(
                INVENTORY_MISMATCH_PENALTY,
                f"Model mismatch: Selected {product.name} but Inventory says {inventory.model}"
            )

    def _check_duplicate(self, assessment: RiskAssessment, risk_input: RiskInput) -> None:
        query = self.db.query(Sale.id).filter(Sale.imei == risk_input.imei)
        if risk_input.exclude_sale_id:
            query = query.filter(Sale.id != risk_input.exclude_sale_id)

        if query.first() is not None:
            assessment.factors.duplicate_imei = True
            assessment.add(DUPLICATE_IMEI_PENALTY, "Duplicate IMEI found in system")

    def _check_rejection_rate(self, assessment: RiskAssessment, risk_input: RiskInput, now: datetime) -> None:
        total, rejected = self._vendor_window_counts(risk_input.vendor_id, now - REJECTION_WINDOW, now)
        rate = (rejected / total) * 100 if total > 0 else 0.0

        assessment.factors.recent_rejections = rejected
        assessment.factors.vendor_rejection_rate = rate

        if rate > HIGH_REJECTION_RATE:
            assessment.add(HIGH_REJECTION_PENALTY, f"High rejection rate: {rate:.1f}%")
        elif rate > ELEVATED_REJECTION_RATE:
            assessment.add(ELEVATED_REJECTION_PENALTY, f"Elevated rejection rate: {rate:.1f}%")

    def _check_frequency(self, assessment: RiskAssessment, risk_input: RiskInput, now: datetime) -> None:
        recent = self.db.query(func.count(Sale.id)).filter(
            Sale.vendor_id == risk_input.vendor_id,
            Sale.created_at >= now - FREQUENCY_WINDOW,
            Sale.created_at <= now
        ).scalar() or 0

        if recent > FREQUENCY_LIMIT:
            assessment.factors.frequency_anomaly = True
            assessment.add(FREQUENCY_ANOMALY_PENALTY, "Unusual sales frequency detected")

    def _vendor_window_counts(self, vendor_id: str, since: datetime, until: datetime):
        rows = self.db.query(Sale.status, func.count(Sale.id)).filter(
            Sale.vendor_id == vendor_id,
            Sale.created_at >= since,
            Sale.created_at <= until
        ).group_by(Sale.status).all()

        counts = {status: count for status, count in rows}
        return sum(counts.values()), counts.get(SaleStatus.REJECTED, 0)

    def vendor_risk_profile(self, vendor_id: str, now: Optional[datetime] = None) -> dict:
        """30 day overview of a vendor's submissions for the admin dashboard"""
        now = now or datetime.utcnow()
        sales = self.db.query(Sale.imei, Sale.status).filter(
            Sale.vendor_id == vendor_id,
            Sale.created_at >= now - REJECTION_WINDOW,
            Sale.created_at <= now
        ).all()

        if not sales:
            return {
                "total_sales": 0,
                "rejected_count": 0,
                "rejection_rate": 0.0,
                "duplicate_attempts": 0,
                "risk_level": RiskLevel.LOW,
            }

        rejected = sum(1 for _, status in sales if status == SaleStatus.REJECTED)
        rate = (rejected / len(sales)) * 100
        duplicate_attempts = len(sales) - len({imei for imei, _ in sales})

        level = RiskLevel.LOW
        if rate > HIGH_REJECTION_RATE or duplicate_attempts > 5:
            level = RiskLevel.HIGH
        elif rate > ELEVATED_REJECTION_RATE or duplicate_attempts > 2:
            level = RiskLevel.MEDIUM

        return {
            "total_sales": len(sales),
            "rejected_count": rejected,
            "rejection_rate": rate,
            "duplicate_attempts": duplicate_attempts,
            "risk_level": level,
        }
