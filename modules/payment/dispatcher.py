"""
Payment Dispatcher
===================
Runs the payment processor outside the request that created the order.
The order response returns immediately; a one-off scheduler job charges
the payment with its own session. A periodic sweep picks up payments
that were left pending (e.g. the process restarted before the job ran).
"""

import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from config import settings
from config.database import SessionLocal
from common.exceptions import FolioError
from common.helpers import now_utc

logger = logging.getLogger("folio.scheduler")

scheduler = BackgroundScheduler()


def run_payment_job(payment_id: int, details: Optional[dict] = None):
    """Background job: process one payment and commit the outcome."""
    from modules.payment.service import payment_service

    db = SessionLocal()
    try:
        result = payment_service.process_payment(db, payment_id, details or {})
        db.commit()
        outcome = "completed" if result["success"] else "failed"
        logger.info(f"Payment #{payment_id} {outcome} after {result['attempts']} attempt(s)")
    except FolioError as e:
        db.rollback()
        logger.warning(f"Payment #{payment_id} skipped: {e.message}")
    except Exception as e:
        db.rollback()
        logger.error(f"Payment #{payment_id} job error: {e}")
    finally:
        db.close()


def dispatch_payment(payment_id: Optional[int], details: Optional[dict] = None) -> bool:
    """Queue a payment for processing. Returns False when nothing was queued."""
    if not payment_id or not settings.AUTO_PROCESS_PAYMENTS:
        return False
    if not scheduler.running:
        logger.warning(f"Scheduler not running; payment #{payment_id} left for the sweep")
        return False
    scheduler.add_job(
        run_payment_job,
        args=[payment_id, details],
        id=f"payment:{payment_id}",
        replace_existing=True,
    )
    return True


def sweep_pending_payments():
    """Background job: process payments stuck in pending."""
    from modules.order.models import Order, OrderStatus
    from modules.payment.models import Payment, PaymentStatus

    db = SessionLocal()
    try:
        cutoff = now_utc() - timedelta(seconds=settings.PAYMENT_SWEEP_AFTER_SECONDS)
        payment_ids = [
            pid for (pid,) in db.query(Payment.id)
            .join(Order, Order.id == Payment.order_id)
            .filter(
                Payment.payment_status == PaymentStatus.PENDING.value,
                Payment.created_at < cutoff,
                Order.status == OrderStatus.PENDING.value,
            )
            .order_by(Payment.id)
            .all()
        ]
    finally:
        db.close()

    for payment_id in payment_ids:
        run_payment_job(payment_id)
    if payment_ids:
        logger.info(f"Swept {len(payment_ids)} pending payment(s)")
    return len(payment_ids)
