"""
Payment Gateway Abstraction
=============================
Each gateway implements charge() and refund().
Registry pattern for gateway lookup by name.
"""

import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from decimal import Decimal

logger = logging.getLogger("folio.gateway")


@dataclass
class GatewayChargeRequest:
    """Input for charging a payment."""
    amount: Decimal
    payment_ref: str        # payment id as string
    order_ref: str          # order id as string
    method: str = "credit_card"
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewayChargeResult:
    """Result of charge()."""
    success: bool
    transaction_id: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class GatewayRefundResult:
    """Result of refund()."""
    success: bool
    error_message: Optional[str] = None


class BaseGateway:
    """Abstract gateway interface."""
    name: str = ""

    def charge(self, req: GatewayChargeRequest) -> GatewayChargeResult:
        raise NotImplementedError

    def refund(self, transaction_id: str, amount: Decimal, reason: str = "") -> GatewayRefundResult:
        raise NotImplementedError


# ── Registry ──

_GATEWAYS: Dict[str, BaseGateway] = {}


def register_gateway(gw: BaseGateway):
    _GATEWAYS[gw.name] = gw
    logger.debug(f"Registered payment gateway: {gw.name}")


def get_gateway(name: str) -> Optional[BaseGateway]:
    return _GATEWAYS.get(name)