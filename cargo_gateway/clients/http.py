import requests

from cargo_gateway.config import DEFAULT_TIMEOUT
from cargo_gateway.errors import (
    AuthError,
    CarrierBusinessError,
    NotFound,
    RateLimitExceeded,
    TransportError,
)
from cargo_gateway.logger import get_logger

logger = get_logger("http")


class HttpClient:
    """
    Thin wrapper around a requests.Session that turns every transport failure
    and error status into one of the typed carrier errors.
    """

    def __init__(self, carrier: str, timeout: float = DEFAULT_TIMEOUT, session=None, headers: dict | None = None):
        self.carrier = carrier
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.headers = dict(headers or {})

    def request(self, method: str, url: str, check: bool = True, **kwargs) -> requests.Response:
        headers = {**self.headers, **kwargs.pop("headers", {})}
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self.session.request(method, url, headers=headers, **kwargs)
        except requests.Timeout as e:
            raise TransportError(f"Request to {url} timed out: {e}", carrier=self.carrier) from e
        except requests.ConnectionError as e:
            raise TransportError(f"Could not reach {url}: {e}", carrier=self.carrier) from e
        except requests.RequestException as e:
            raise TransportError(f"HTTP failure for {url}: {e}", carrier=self.carrier) from e

        if check:
            self.check_status(response)
        return response

    def error_message(self, response) -> str:
        """Best-effort message out of an error body."""
        try:
            data = response.json()
        except ValueError:
            return (response.text or "").strip()[:200]
        if isinstance(data, dict):
            return str(data.get("message") or data.get("error") or data)[:200]
        return str(data)[:200]

    def check_status(self, response):
        code = response.status_code
        if code < 400:
            return
        detail = self.error_message(response)
        logger.warning(f"⚠️ {self.carrier} HTTP {code} | {detail}")
        if code in (401, 403):
            raise AuthError("Authentication failed. Please check credentials.", carrier=self.carrier)
        if code == 404:
            raise NotFound("Shipment not found.", carrier=self.carrier)
        if code == 429:
            raise RateLimitExceeded("Carrier rate limit exceeded.", carrier=self.carrier)
        if code >= 500:
            raise TransportError(f"Carrier server error ({code}): {detail}", carrier=self.carrier, status_code=code)
        raise CarrierBusinessError(detail or f"Request rejected ({code})", carrier=self.carrier, code=str(code))
