"""
Payment batch aggregation tests
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from vendor_sales.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from vendor_sales.models.audit_log import AuditLog
from vendor_sales.models.commission import Commission, CommissionStatus
from vendor_sales.models.payment_batch import PaymentBatch, PaymentBatchStatus, PaymentType
from vendor_sales.services.payment_service import PaymentService


@pytest.fixture
def three_commissions(vendor_user, second_vendor, fixed_product, make_commission):
    return [
        make_commission(vendor_user, fixed_product, Decimal("100.00")),
        make_commission(vendor_user, fixed_product, Decimal("250.50")),
        make_commission(second_vendor, fixed_product, Decimal("49.50")),
    ]


class TestCreateBatch:
    def test_total_is_exact_sum(self, db_session, admin_actor, three_commissions):
        ids = [c.id for c in three_commissions]

        batch = PaymentService.create_batch(
            db_session, admin_actor, ids, payment_type=PaymentType.WEEKLY
        )

        assert batch.total_amount == Decimal("400.00")
        assert batch.total_vendors == 2
        assert batch.status == PaymentBatchStatus.PENDING
        assert batch.batch_code == f"PB-{datetime.utcnow().strftime('%Y%m%d')}-001"
        assert batch.created_by == admin_actor.user_id
        assert batch.payment_type == PaymentType.WEEKLY

        for commission in three_commissions:
            db_session.refresh(commission)
            assert commission.status == CommissionStatus.PROCESSING
            assert commission.payment_batch_id == batch.id

    def test_claimed_commission_rejects_whole_call(
        self, db_session, admin_actor, vendor_user, fixed_product, make_commission, three_commissions
    ):
        processing = make_commission(vendor_user, fixed_product, Decimal("75.00"), status=CommissionStatus.PROCESSING)
        ids = [c.id for c in three_commissions] + [processing.id]

        with pytest.raises(ConflictError) as exc_info:
            PaymentService.create_batch(db_session, admin_actor, ids)

        assert exc_info.value.details["commission_ids"] == [processing.id]
        assert db_session.query(PaymentBatch).count() == 0
        for commission in three_commissions:
            db_session.refresh(commission)
            assert commission.status == CommissionStatus.PENDING
            assert commission.payment_batch_id is None

    def test_overlapping_batches(self, db_session, admin_actor, three_commissions):
        first, second, third = three_commissions
        PaymentService.create_batch(db_session, admin_actor, [first.id, second.id])

        with pytest.raises(ConflictError):
            PaymentService.create_batch(db_session, admin_actor, [second.id, third.id])

        db_session.refresh(third)
        assert third.status == CommissionStatus.PENDING
        assert db_session.query(PaymentBatch).count() == 1

    def test_lost_claim_rolls_back_batch(self, db_session, admin_actor, three_commissions, monkeypatch):
        """Another batch claims a commission between the check and the conditional update"""
        first = three_commissions[0]
        original_flush = db_session.flush

        def flush_then_steal(*args, **kwargs):
            original_flush(*args, **kwargs)
            db_session.query(Commission).filter(Commission.id == first.id).update(
                {Commission.status: CommissionStatus.PROCESSING}, synchronize_session=False
            )

        monkeypatch.setattr(db_session, "flush", flush_then_steal)

        with pytest.raises(ConflictError) as exc_info:
            PaymentService.create_batch(db_session, admin_actor, [c.id for c in three_commissions])

        monkeypatch.undo()
        assert exc_info.value.details == {"selected": 3, "claimed": 2}
        assert db_session.query(PaymentBatch).count() == 0
        assert db_session.query(Commission).filter(Commission.payment_batch_id.isnot(None)).count() == 0

    def test_duplicate_ids_are_counted_once(self, db_session, admin_actor, three_commissions):
        first = three_commissions[0]

        batch = PaymentService.create_batch(db_session, admin_actor, [first.id, first.id])

        assert batch.total_amount == Decimal("100.00")

    def test_empty_selection(self, db_session, admin_actor):
        with pytest.raises(ValidationError) as exc_info:
            PaymentService.create_batch(db_session, admin_actor, [])
        assert exc_info.value.message == "No commissions selected"

    def test_unknown_commission(self, db_session, admin_actor, three_commissions):
        with pytest.raises(NotFoundError) as exc_info:
            PaymentService.create_batch(db_session, admin_actor, [three_commissions[0].id, "missing"])
        assert exc_info.value.details["commission_ids"] == ["missing"]

    def test_period_bounds(self, db_session, admin_actor, three_commissions):
        with pytest.raises(ValidationError):
            PaymentService.create_batch(
                db_session, admin_actor, [three_commissions[0].id],
                period_start=date(2024, 2, 1), period_end=date(2024, 1, 1)
            )

    def test_vendor_cannot_create(self, db_session, vendor_actor, three_commissions):
        with pytest.raises(AuthorizationError):
            PaymentService.create_batch(db_session, vendor_actor, [three_commissions[0].id])

    def test_creation_is_audited(self, db_session, admin_actor, three_commissions):
        batch = PaymentService.create_batch(db_session, admin_actor, [c.id for c in three_commissions])

        log = db_session.query(AuditLog).filter(AuditLog.action == "create_payment_batch").one()
        assert log.entity_id == batch.id
        assert log.changes["new_values"]["total_amount"] == str(batch.total_amount)


class TestBatchOutcome:
    def test_complete_pays_commissions(self, db_session, admin_actor, three_commissions):
        batch = PaymentService.create_batch(db_session, admin_actor, [c.id for c in three_commissions])

        completed = PaymentService.complete_batch(db_session, admin_actor, batch.id)

        assert completed.status == PaymentBatchStatus.COMPLETED
        assert completed.completed_at is not None
        for commission in three_commissions:
            db_session.refresh(commission)
            assert commission.status == CommissionStatus.PAID
            assert commission.paid_at is not None

    def test_complete_twice_is_a_conflict(self, db_session, admin_actor, three_commissions):
        batch = PaymentService.create_batch(db_session, admin_actor, [three_commissions[0].id])
        PaymentService.complete_batch(db_session, admin_actor, batch.id)

        with pytest.raises(ConflictError):
            PaymentService.complete_batch(db_session, admin_actor, batch.id)

    def test_fail_keeps_assignment(self, db_session, admin_actor, three_commissions):
        first = three_commissions[0]
        batch = PaymentService.create_batch(db_session, admin_actor, [first.id])

        failed = PaymentService.fail_batch(db_session, admin_actor, batch.id, "Bank rejected the file")

        assert failed.status == PaymentBatchStatus.FAILED
        assert failed.failure_reason == "Bank rejected the file"
        db_session.refresh(first)
        assert first.status == CommissionStatus.PROCESSING
        assert first.payment_batch_id == batch.id

    def test_fail_requires_reason(self, db_session, admin_actor, three_commissions):
        batch = PaymentService.create_batch(db_session, admin_actor, [three_commissions[0].id])

        with pytest.raises(ValidationError):
            PaymentService.fail_batch(db_session, admin_actor, batch.id, "  ")

    def test_completed_batch_cannot_fail(self, db_session, admin_actor, three_commissions):
        batch = PaymentService.create_batch(db_session, admin_actor, [three_commissions[0].id])
        PaymentService.complete_batch(db_session, admin_actor, batch.id)

        with pytest.raises(ConflictError):
            PaymentService.fail_batch(db_session, admin_actor, batch.id, "too late")


class TestBatchQueries:
    def test_vendor_batches(self, db_session, admin_actor, vendor_actor, vendor_user, three_commissions):
        mine = PaymentService.create_batch(db_session, admin_actor, [three_commissions[0].id])
        PaymentService.create_batch(db_session, admin_actor, [three_commissions[2].id])

        batches = PaymentService.list_vendor_batches(db_session, vendor_actor, vendor_user.id)

        assert [b.id for b in batches] == [mine.id]

    def test_unknown_batch(self, db_session, admin_actor):
        with pytest.raises(NotFoundError):
            PaymentService.get_batch(db_session, admin_actor, "missing")

    def test_daily_batch_sequence(self, db_session, admin_actor, three_commissions):
        first = PaymentService.create_batch(db_session, admin_actor, [three_commissions[0].id])
        second = PaymentService.create_batch(db_session, admin_actor, [three_commissions[1].id])

        assert first.batch_code.endswith("-001")
        assert second.batch_code.endswith("-002")
