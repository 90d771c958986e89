from app.core.database import SessionLocal
from app.services.purchase_list_service import PurchaseListService
import logging

logger = logging.getLogger(__name__)


def reconcile_purchase_lists():
    logger.info("Starting purchase list reconciliation...")

    db = SessionLocal()
    try:
        corrected = PurchaseListService(db).reconcile_all()
        logger.info(f"Reconciliation completed, {corrected} purchase list(s) corrected")
        return corrected

    except Exception as e:
        logger.error(f"Error during purchase list reconciliation: {e}", exc_info=True)
        raise
    finally:
        db.close()


def reconcile_purchase_list(purchase_list_id: int):
    logger.info(f"Reconciling purchase list {purchase_list_id}...")

    db = SessionLocal()
    try:
        return PurchaseListService(db).reconcile(purchase_list_id)
    except Exception as e:
        logger.error(f"Error reconciling purchase list {purchase_list_id}: {e}")
        raise
    finally:
        db.close()
