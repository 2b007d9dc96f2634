"""
Mock Gateway
=============
Simulated processor: waits PAYMENT_GATEWAY_DELAY_SECONDS, then succeeds with
probability PAYMENT_SUCCESS_RATE. details={"success": bool} forces the outcome.
"""

import logging
import random
import time
from decimal import Decimal

from config.settings import PAYMENT_SUCCESS_RATE, PAYMENT_GATEWAY_DELAY_SECONDS
from common.helpers import generate_transaction_id
from modules.payment.gateways import (
    BaseGateway, GatewayChargeRequest, GatewayChargeResult,
    GatewayRefundResult, register_gateway,
)

logger = logging.getLogger("folio.gateway.mock")


class MockGateway(BaseGateway):
    name = "mock"

    def __init__(self, success_rate: float = PAYMENT_SUCCESS_RATE, delay_seconds: float = PAYMENT_GATEWAY_DELAY_SECONDS):
        self.success_rate = success_rate
        self.delay_seconds = delay_seconds

    def charge(self, req: GatewayChargeRequest) -> GatewayChargeResult:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        forced = req.details.get("success") if req.details else None
        if forced is not None:
            approved = bool(forced)
        else:
            approved = random.random() < self.success_rate

        if approved:
            txn = generate_transaction_id()
            logger.info(f"Mock charge approved [payment {req.payment_ref}]: {req.amount} -> {txn}")
            return GatewayChargeResult(success=True, transaction_id=txn)

        logger.info(f"Mock charge declined [payment {req.payment_ref}]: {req.amount}")
        return GatewayChargeResult(success=False, error_message="Payment processing failed")

    def refund(self, transaction_id: str, amount: Decimal, reason: str = "") -> GatewayRefundResult:
        logger.info(f"Mock refund [{transaction_id}]: {amount} ({reason or 'no reason'})")
        return GatewayRefundResult(success=True)


register_gateway(MockGateway())
