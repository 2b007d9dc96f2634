"""
Folio - Order Notification Helper
==================================
Best-effort order event notifications. Delivery is not guaranteed:
any failure is logged and swallowed so it can never fail the caller.
"""

import logging

logger = logging.getLogger("folio.notifications")


MESSAGES = {
    "order_created": "Order #{order_id} was placed.",
    "order_cancelled": "Order #{order_id} was cancelled.",
    "payment_completed": "Payment for order #{order_id} was received.",
    "payment_failed": "Payment for order #{order_id} failed.",
    "payment_refunded": "Payment for order #{order_id} was refunded.",
}


def notify_order_event(user_id: int, order_id: int, event_type: str, **extra) -> bool:
    """
    Emit a notification about an order event.

    Args:
        user_id: Recipient user id
        order_id: Order id
        event_type: One of the MESSAGES keys

    Returns:
        True if the notification was emitted, False on error
    """
    try:
        template = MESSAGES.get(event_type, "Order #{order_id} was updated.")
        text = template.format(order_id=order_id)
        logger.info(f"Notify user #{user_id} [{event_type}]: {text} {extra or ''}".rstrip())
        return True
    except Exception as e:
        logger.error(f"Notification error for order #{order_id}: {e}")
        return False
