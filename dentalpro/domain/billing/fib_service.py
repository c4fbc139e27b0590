"""FIB service - Integration with the First Iraqi Bank online shop API"""

import logging
from typing import Optional

import httpx

from ...config import FIB_BASE_URL, FIB_CLIENT_ID, FIB_CLIENT_SECRET

logger = logging.getLogger(__name__)

TOKEN_PATH = "/auth/realms/fib-online-shop/protocol/openid-connect/token"
PAYMENTS_PATH = "/protected/v1/payments"

ACTIVE_STATUSES = {"success", "paid", "completed"}
CANCELLED_STATUSES = {"failed", "cancelled", "expired"}


class FIBPaymentError(Exception):
    """Raised when the FIB API rejects or fails a request"""


def map_fib_status(status: Optional[str]) -> str:
    """Map a provider payment status onto a subscription status"""
    value = (status or "").lower()
    if value in ACTIVE_STATUSES:
        return "active"
    if value in CANCELLED_STATUSES:
        return "cancelled"
    return "pending"


class FIBClient:
    """Client for FIB client-credentials auth and payment creation"""

    def __init__(
        self,
        base_url: str = FIB_BASE_URL,
        client_id: Optional[str] = FIB_CLIENT_ID,
        client_secret: Optional[str] = FIB_CLIENT_SECRET,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=30.0, transport=self.transport)

    async def get_access_token(self) -> str:
        """Obtain a bearer token using the client-credentials grant"""
        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.base_url}{TOKEN_PATH}",
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                )
            except httpx.HTTPError as e:
                logger.error(f"❌ FIB token request failed: {e}")
                raise FIBPaymentError("Failed to get FIB access token") from e

        if response.status_code != 200:
            logger.error(f"❌ FIB token error {response.status_code}: {response.text}")
            raise FIBPaymentError("Failed to get FIB access token")

        token = response.json().get("access_token")
        if not token:
            raise FIBPaymentError("FIB token response missing access_token")
        return token

    async def create_payment(self, amount: int, description: str, callback_url: str) -> dict:
        """
        Create a payment and return the provider payload
        (paymentId, qrCode, readableCode, app links, validUntil).
        """
        access_token = await self.get_access_token()

        payload = {
            "monetaryValue": {"amount": str(amount), "currency": "IQD"},
            "statusCallbackUrl": callback_url,
            "description": description,
        }

        async with self._client() as client:
            try:
                response = await client.post(
                    f"{self.base_url}{PAYMENTS_PATH}",
                    json=payload,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.HTTPError as e:
                logger.error(f"❌ FIB payment request failed: {e}")
                raise FIBPaymentError("Failed to create FIB payment") from e

        if response.status_code not in (200, 201):
            logger.error(f"❌ FIB payment error {response.status_code}: {response.text}")
            raise FIBPaymentError("Failed to create FIB payment")

        data = response.json()
        if not data.get("paymentId"):
            raise FIBPaymentError("FIB payment response missing paymentId")

        logger.info(f"✅ FIB payment created: {data['paymentId']}")
        return data


def get_fib_client() -> FIBClient:
    """Dependency injection for FIBClient"""
    return FIBClient()
