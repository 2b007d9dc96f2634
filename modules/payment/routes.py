"""
Payment Routes
===============
Lookup, manual confirm (test hook for the simulated processor), refund.
All three check that the payment's order belongs to the caller.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config.database import get_db, transactional
from modules.auth.deps import require_user
from modules.order.schemas import serialize_payment
from modules.payment.service import payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


class ConfirmRequest(BaseModel):
    success: Optional[bool] = None


class RefundRequest(BaseModel):
    reason: str = ""


@router.get("/{payment_id}")
async def get_payment(
    payment_id: int,
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    return serialize_payment(payment_service.get_payment(db, payment_id, user.id))


# Sync handler: the simulated gateway sleeps, keep it off the event loop
@router.post("/{payment_id}/confirm")
def confirm_payment(
    payment_id: int,
    body: Optional[ConfirmRequest] = None,
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    details = {}
    if body is not None and body.success is not None:
        details["success"] = body.success

    with transactional(db):
        payment_service.get_payment(db, payment_id, user.id)
        result = payment_service.process_payment(db, payment_id, details)
        data = {
            "success": result["success"],
            "message": result.get("message"),
            "payment": serialize_payment(result["payment"]),
        }
    return data


@router.post("/{payment_id}/refund")
async def refund_payment(
    payment_id: int,
    body: Optional[RefundRequest] = None,
    user=Depends(require_user),
    db: Session = Depends(get_db),
):
    reason = body.reason if body else ""
    with transactional(db):
        payment_service.get_payment(db, payment_id, user.id)
        result = payment_service.process_refund(db, payment_id, reason)
        data = {
            "success": True,
            "order_id": result["order_id"],
            "payment": serialize_payment(result["payment"]),
        }
    return data
