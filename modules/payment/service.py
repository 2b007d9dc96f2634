"""
Payment Service
=================
Payment records for orders plus the out-of-band processor.

State machine:
    pending -> processing -> completed | failed
    completed -> refunded

The gateway is a strategy (see modules.payment.gateways). The default is the
registered "mock" gateway; tests pass their own to force outcomes.
"""

import logging
from typing import Dict, Any, Optional

from sqlalchemy.orm import Session

from modules.order.models import Order, OrderStatus
from modules.payment.models import Payment, PaymentStatus, PaymentMethod
from modules.shipping.models import Shipping, ShippingStatus
from common.exceptions import (
    PaymentNotFoundError, PaymentNotRefundableError, PaymentProcessingFailedError,
    AuthorizationError, InvalidStatusError, InvalidPaymentMethodError,
)
from common.helpers import now_utc, to_money
from common.notifications import notify_order_event
from config.settings import PAYMENT_MAX_RETRIES

# Import gateway modules to trigger register_gateway() calls
from modules.payment.gateways import BaseGateway, GatewayChargeRequest, get_gateway
import modules.payment.gateways.mock      # noqa: F401

logger = logging.getLogger("folio.payment")

DEFAULT_GATEWAY = "mock"


def validate_payment_method(method: str) -> str:
    if method not in {m.value for m in PaymentMethod}:
        raise InvalidPaymentMethodError(method)
    return method


class PaymentService:

    def __init__(self, gateway: Optional[BaseGateway] = None, gateway_name: str = DEFAULT_GATEWAY):
        self._gateway = gateway
        self.gateway_name = gateway_name

    @property
    def gateway(self) -> BaseGateway:
        return self._gateway or get_gateway(self.gateway_name)

    # ==========================================
    # Records
    # ==========================================

    def create_payment(self, db: Session, order: Order, payment_method: str) -> Payment:
        """Initial pending payment for a freshly created order."""
        payment = Payment(
            order_id=order.id,
            payment_method=validate_payment_method(payment_method),
            payment_status=PaymentStatus.PENDING.value,
            amount=to_money(order.total),
        )
        db.add(payment)
        db.flush()
        return payment

    def get_payment(self, db: Session, payment_id: int, user_id: Optional[int] = None) -> Payment:
        """Fetch a payment; with user_id, the owning order must belong to that user."""
        payment = db.get(Payment, payment_id)
        if not payment:
            raise PaymentNotFoundError()
        if user_id is not None:
            owner = db.query(Order.user_id).filter(Order.id == payment.order_id).scalar()
            if owner != user_id:
                raise AuthorizationError("Not authorized to access this payment")
        return payment

    # ==========================================
    # Processing
    # ==========================================

    def process_payment(
        self,
        db: Session,
        payment_id: int,
        details: Optional[Dict[str, Any]] = None,
        retry_count: int = 0,
        max_retries: int = PAYMENT_MAX_RETRIES,
        gateway: Optional[BaseGateway] = None,
    ) -> Dict[str, Any]:
        """
        Charge a pending payment through the gateway.

        A declined charge is retried synchronously until retry_count reaches
        max_retries, then the payment is finalized as failed. Exhaustion is a
        normal result ({"success": False, ...}), not an exception.
        """
        gateway = gateway or self.gateway
        details = details or {}

        payment = db.query(Payment).filter(Payment.id == payment_id).with_for_update().first()
        if not payment:
            raise PaymentNotFoundError()

        allowed = {PaymentStatus.PENDING.value}
        if retry_count > 0:
            allowed.add(PaymentStatus.PROCESSING.value)
        if payment.payment_status not in allowed:
            raise InvalidStatusError(f"Payment is already {payment.payment_status}")

        order = db.query(Order).filter(Order.id == payment.order_id).with_for_update().first()
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidStatusError("Order was cancelled")

        payment.payment_status = PaymentStatus.PROCESSING.value
        payment.attempts = (payment.attempts or 0) + 1
        order.payment_status = PaymentStatus.PROCESSING.value
        db.flush()

        try:
            result = gateway.charge(GatewayChargeRequest(
                amount=to_money(payment.amount),
                payment_ref=str(payment.id),
                order_ref=str(order.id),
                method=payment.payment_method,
                details=details,
            ))
            if not result.success:
                raise PaymentProcessingFailedError(result.error_message or "Payment processing failed")
        except PaymentProcessingFailedError as e:
            logger.warning(
                f"Payment #{payment.id} attempt {retry_count + 1}/{max_retries + 1} failed: {e.message}"
            )
            if retry_count < max_retries:
                return self.process_payment(
                    db, payment_id, details,
                    retry_count=retry_count + 1, max_retries=max_retries, gateway=gateway,
                )
            return self._finalize_failed(db, payment, order, e.message)

        payment.payment_status = PaymentStatus.COMPLETED.value
        payment.transaction_id = result.transaction_id
        payment.paid_at = now_utc()
        order.status = OrderStatus.PROCESSING.value
        order.payment_status = PaymentStatus.COMPLETED.value

        shipping = db.query(Shipping).filter(Shipping.order_id == order.id).first()
        if shipping and shipping.shipping_status == ShippingStatus.PENDING.value:
            shipping.shipping_status = ShippingStatus.PREPARING.value
        db.flush()

        logger.info(f"Payment #{payment.id} completed for order #{order.id}: {result.transaction_id}")
        notify_order_event(order.user_id, order.id, "payment_completed", transaction_id=result.transaction_id)
        return {
            "success": True,
            "payment": payment,
            "transaction_id": result.transaction_id,
            "attempts": payment.attempts,
        }

    def _finalize_failed(self, db: Session, payment: Payment, order: Order, message: str) -> Dict[str, Any]:
        payment.payment_status = PaymentStatus.FAILED.value
        order.payment_status = PaymentStatus.FAILED.value
        db.flush()
        logger.info(f"Payment #{payment.id} failed after {payment.attempts} attempts")
        notify_order_event(order.user_id, order.id, "payment_failed")
        return {
            "success": False,
            "payment": payment,
            "message": message,
            "attempts": payment.attempts,
        }

    # ==========================================
    # Refund
    # ==========================================

    def process_refund(self, db: Session, payment_id: int, reason: str = "") -> Dict[str, Any]:
        """Refund a completed payment and move its order to refunded."""
        payment = db.query(Payment).filter(Payment.id == payment_id).with_for_update().first()
        if not payment:
            raise PaymentNotFoundError()
        if payment.payment_status != PaymentStatus.COMPLETED.value:
            raise PaymentNotRefundableError()

        result = self.gateway.refund(payment.transaction_id, to_money(payment.amount), reason)
        if not result.success:
            raise PaymentProcessingFailedError(result.error_message or "Refund failed")

        payment.payment_status = PaymentStatus.REFUNDED.value
        payment.refunded_at = now_utc()
        payment.refund_reason = reason or None

        order = db.query(Order).filter(Order.id == payment.order_id).with_for_update().first()
        order.status = OrderStatus.REFUNDED.value
        order.payment_status = PaymentStatus.REFUNDED.value
        db.flush()

        logger.info(f"Payment #{payment.id} refunded: {payment.amount} (order #{order.id})")
        notify_order_event(order.user_id, order.id, "payment_refunded", reason=reason)
        return {
            "success": True,
            "payment": payment,
            "order_id": order.id,
            "status": payment.payment_status,
            "amount": payment.amount,
            "refunded_at": payment.refunded_at,
        }


payment_service = PaymentService()
