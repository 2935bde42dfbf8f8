import logging
from celery import Task
from sqlalchemy.orm import Session

from vendor_sales.tasks.celery_app import celery_app
from vendor_sales.core.database import SessionLocal
from vendor_sales.services.commission_service import CommissionService

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Base task with database session"""
    _db = None

    @property
    def db(self) -> Session:
        if self._db is None:
            self._db = SessionLocal()
        return self._db

    def after_return(self, *args, **kwargs):
        if self._db is not None:
            self._db.close()
            self._db = None


@celery_app.task(base=DatabaseTask, bind=True)
def recalculate_commissions_task(self):
    """Audit job: re-derive unclaimed commissions from current product policies"""
    try:
        result = CommissionService.recalculate_commissions(self.db)
    except Exception as e:
        logger.exception("Commission recalculation failed")
        return {"status": "error", "message": str(e)}

    return {
        "status": "success",
        "examined": result.examined,
        "recalculated": result.recalculated,
    }
