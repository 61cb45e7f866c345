"""
PayPal Orders API client.

Used to confirm that an order the browser reports as paid really was
captured.  The client fetches an OAuth2 access token with the
configured REST credentials (client-credentials grant) and then reads
the order with ``GET /v2/checkout/orders/{id}``.  There are no
retries: a network error or non-2xx answer is reported to the caller
straight away as ``PaymentGatewayError``.
"""

import logging
from typing import Any, Dict, Optional

import requests
from starlette.concurrency import run_in_threadpool

from research_store_api.app.core.config import settings
from research_store_api.app.core.errors import InternalError, PaymentGatewayError

logger = logging.getLogger(__name__)

PAYPAL_BASE_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


class PayPalClient:
    """Minimal client for the PayPal REST API.

    Parameters
    ----------
    client_id, secret : str
        REST application credentials.
    mode : str
        ``"sandbox"`` or ``"live"``; anything else is treated as sandbox.
    session : Optional[requests.Session]
        Injected in tests to answer requests without the network.
    """

    def __init__(
        self,
        client_id: str,
        secret: str,
        mode: str = "sandbox",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.client_id = client_id
        self.secret = secret
        self.mode = mode if mode in PAYPAL_BASE_URLS else "sandbox"
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return PAYPAL_BASE_URLS[self.mode]

    def _access_token(self) -> str:
        response = self.session.post(
            f"{self.base_url}/v1/oauth2/token",
            auth=(self.client_id, self.secret),
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        token = response.json().get("access_token")
        if not token:
            raise PaymentGatewayError("PayPal did not return an access token")
        return token

    def _fetch_order(self, order_id: str) -> Dict[str, Any]:
        try:
            token = self._access_token()
            response = self.session.get(
                f"{self.base_url}/v2/checkout/orders/{order_id}",
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            logger.error("PayPal answered %s for order lookup", status_code)
            raise PaymentGatewayError("Could not verify the payment with PayPal") from exc
        except (requests.RequestException, ValueError) as exc:
            logger.error("PayPal request failed: %s", exc)
            raise PaymentGatewayError("Could not reach PayPal to verify the payment") from exc

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        """Return the order resource for ``order_id`` as PayPal reports it."""
        return await run_in_threadpool(self._fetch_order, order_id)


def order_amount(order: Dict[str, Any]) -> float:
    """Amount of the first purchase unit of a PayPal order.

    Orders that were captured expose it both on the purchase unit and
    on the capture; the purchase unit amount is authoritative here.
    """
    try:
        unit = order["purchase_units"][0]
        value = unit.get("amount", {}).get("value")
        if value is None:
            value = unit["payments"]["captures"][0]["amount"]["value"]
        return float(value)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise PaymentGatewayError("PayPal order has no readable amount") from exc


def get_paypal_client() -> PayPalClient:
    """FastAPI dependency returning a client built from the settings."""
    if not settings.paypal_configured:
        raise InternalError("PayPal credentials are not configured")
    return PayPalClient(
        settings.paypal_client_id,
        settings.paypal_secret_key,
        mode=settings.paypal_mode,
        timeout=settings.gateway_timeout_seconds,
    )
