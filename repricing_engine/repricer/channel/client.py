from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

import requests

from repricer.config import Config
from repricer.errors import ExternalServiceError
from repricer.utils.logging_utils import get_logger

logger = get_logger(__name__)

@dataclass(frozen=True)
class PriceUpdate:
    sku: str
    price: float

@dataclass
class ChannelUpdateResult:
    success: bool
    errors: List[str] = field(default_factory=list)

class ChannelPriceUpdater(Protocol):
    def update_prices(self, updates: Sequence[PriceUpdate]) -> ChannelUpdateResult:
        ...

class ChannelEngineClient:
    """Bulk price updates against the channel's product API.

    Authentication is the `apikey` query parameter. Updates are sent in
    chunks of `batch_size`; every failed chunk adds one error line.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        batch_size: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or Config.CHANNEL_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else Config.CHANNEL_API_KEY
        self.timeout = timeout or Config.CHANNEL_TIMEOUT_SECONDS
        self.batch_size = batch_size or Config.CHANNEL_BATCH_SIZE
        self.session = session or requests.Session()

    def _put(self, endpoint: str, payload) -> dict:
        url = f"{self.base_url}{endpoint}"
        resp = self.session.put(
            url,
            params={"apikey": self.api_key},
            json=payload,
            timeout=self.timeout,
        )
        try:
            body = resp.json()
        except ValueError:
            raise ExternalServiceError(
                f"Channel returned non-JSON response (HTTP {resp.status_code})"
            ) from None
        if not isinstance(body, dict):
            body = {"Success": resp.ok, "Message": f"HTTP {resp.status_code}"}
        elif resp.status_code >= 400 and "Success" not in body:
            body = {"Success": False, "Message": f"HTTP {resp.status_code}"}
        return body

    def update_prices(self, updates: Sequence[PriceUpdate]) -> ChannelUpdateResult:
        if not self.api_key:
            raise ExternalServiceError("Channel API key is not configured")

        errors: List[str] = []
        for start in range(0, len(updates), self.batch_size):
            chunk = updates[start:start + self.batch_size]
            batch_no = start // self.batch_size + 1
            payload = [{"MerchantProductNo": u.sku, "Price": u.price} for u in chunk]
            try:
                body = self._put("/products/bulk", payload)
                if not body.get("Success"):
                    errors.append(f"Batch {batch_no}: {body.get('Message') or 'update rejected'}")
            except (requests.RequestException, ExternalServiceError) as e:
                logger.error(f"Channel price update batch {batch_no} failed: {e}")
                errors.append(f"Batch {batch_no}: {e}")

        logger.info(f"Channel price update: {len(updates)} skus, {len(errors)} failed batches")
        return ChannelUpdateResult(success=not errors, errors=errors)
