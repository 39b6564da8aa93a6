"""
Payment gateway client (Razorpay-compatible REST API).

Every call has an explicit timeout and is attempted exactly once; retry
policy belongs to the caller.
"""

import hashlib
import hmac
import logging

import httpx

from .errors import GatewayError, GatewayTimeoutError

logger = logging.getLogger(__name__)


def sign(secret: str, order_id: str, payment_ref: str) -> str:
    """Hex HMAC-SHA256 over "order_id|payment_ref"."""
    body = f"{order_id}|{payment_ref}"
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def signature_matches(secret: str, order_id: str, payment_ref: str, signature: str) -> bool:
    if not signature:
        return False
    expected = sign(secret, order_id, payment_ref)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class PaymentGateway:
    def __init__(self, base_url: str, key_id: str | None, key_secret: str | None, timeout: float, transport=None):
        self.base_url = base_url.rstrip("/")
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout
        self._transport = transport

    async def _call(self, method: str, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        auth = (self.key_id, self.key_secret) if self.key_id and self.key_secret else None
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method=method, url=url, json=payload, auth=auth)
                resp.raise_for_status()
                if resp.content:
                    return resp.json()
                return {}
        except httpx.TimeoutException:
            logger.warning("payment gateway timeout: %s %s", method, path)
            raise GatewayTimeoutError(f"Timeout calling payment gateway: {path}")
        except httpx.HTTPStatusError as e:
            # gateway responded but with an error code
            logger.warning("payment gateway error %s on %s", e.response.status_code, path)
            raise GatewayError(
                "Payment gateway rejected the request",
                gateway_status=e.response.status_code,
                gateway_detail=e.response.text,
            )
        except httpx.HTTPError as e:
            logger.warning("payment gateway unreachable: %s", e)
            raise GatewayError(f"Bad gateway calling payment provider: {path}")

    async def create_order(self, amount_minor_units: int, currency: str, receipt: str, notes: dict) -> dict:
        return await self._call(
            "POST",
            "/v1/orders",
            {"amount": amount_minor_units, "currency": currency, "receipt": receipt, "notes": notes},
        )

    async def refund(self, payment_ref: str, amount_minor_units: int, notes: dict) -> dict:
        return await self._call(
            "POST",
            f"/v1/payments/{payment_ref}/refund",
            {"amount": amount_minor_units, "notes": notes},
        )
