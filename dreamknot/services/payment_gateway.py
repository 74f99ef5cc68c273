# dreamknot/services/payment_gateway.py
import hashlib
import hmac

import requests
from requests import RequestException

from dreamknot.domain.errors import GatewayError
from dreamknot.utils.retry import http_retry
from dreamknot.utils.settings import RAZORPAY_API_URL, RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """Hex HMAC-SHA256 of "<order_id>|<payment_id>" keyed with the shared secret."""
    message = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


class RazorpayClient:
    """
    Razorpay REST client.

    orders.create is not retried (a retry could open a second gateway
    order); payments.fetch is a GET and is retried.
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        base_url: str | None = None,
        timeout: int = 10,
    ):
        self.key_id = key_id if key_id is not None else RAZORPAY_KEY_ID
        self.key_secret = key_secret if key_secret is not None else RAZORPAY_KEY_SECRET
        self.base_url = (base_url or RAZORPAY_API_URL).rstrip("/")
        self.timeout = timeout

    def create_order(self, amount: int, currency: str, receipt: str) -> dict:
        url = f"{self.base_url}/orders"
        logger.info(f"RazorpayClient POST {url} amount={amount} {currency} receipt={receipt}")
        try:
            resp = requests.post(
                url,
                json={"amount": amount, "currency": currency, "receipt": receipt},
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except RequestException as e:
            logger.error(f"Gateway order creation failed: {e}")
            raise GatewayError("Could not create payment order") from e

    def fetch_payment(self, payment_id: str) -> dict:
        try:
            return self._get(f"/payments/{payment_id}")
        except RequestException as e:
            logger.error(f"Gateway payment fetch failed for {payment_id}: {e}")
            raise GatewayError("Could not fetch payment from gateway") from e

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        expected = compute_signature(self.key_secret, gateway_order_id, gateway_payment_id)
        # compare_digest rejects non-ASCII str, bytes compare any input
        return hmac.compare_digest(expected.encode(), signature.encode())

    @http_retry()
    def _get(self, path: str) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"RazorpayClient GET {url}")
        resp = requests.get(url, auth=(self.key_id, self.key_secret), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()
