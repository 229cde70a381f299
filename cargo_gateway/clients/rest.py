import hashlib
import hmac
import json
import time
from typing import Optional

from cargo_gateway.clients.http import HttpClient
from cargo_gateway.config import DEFAULT_TIMEOUT
from cargo_gateway.errors import AuthError, ParseError
from cargo_gateway.logger import get_logger

logger = get_logger("rest")


class RestClient(HttpClient):
    """
    JSON over HTTP, authenticated either with basic auth or with an
    HMAC-SHA256 request signature (X-Api-Key / X-Timestamp / X-Signature).
    """

    def __init__(self, carrier: str, base_url: str, auth_mode: str = "basic",
                 username: Optional[str] = None, password: Optional[str] = None,
                 api_key: Optional[str] = None, api_secret: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT, session=None, clock=time.time,
                 user_agent: str = "CargoGateway/1.0"):
        super().__init__(carrier, timeout=timeout, session=session, headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent,
        })
        if auth_mode not in ("basic", "hmac"):
            raise ValueError(f"Unsupported auth mode: {auth_mode}")
        self.base_url = base_url.rstrip("/")
        self.auth_mode = auth_mode
        self.username = username
        self.password = password
        self.api_key = api_key
        self.api_secret = api_secret
        self._clock = clock

    def sign(self, method: str, path: str, timestamp: str, body: str) -> str:
        string_to_sign = f"{method.upper()}\n{path}\n{timestamp}\n{body}"
        return hmac.new(self.api_secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    def _auth(self, method: str, path: str, body: str) -> tuple[dict, dict]:
        """Returns (extra headers, extra request kwargs)."""
        if self.auth_mode == "basic":
            if not (self.username and self.password):
                raise AuthError("Credentials not configured", carrier=self.carrier)
            return {}, {"auth": (self.username, self.password)}

        if not (self.api_key and self.api_secret):
            raise AuthError("API key/secret not configured", carrier=self.carrier)
        timestamp = str(int(self._clock() * 1000))
        return {
            "X-Api-Key": self.api_key,
            "X-Timestamp": timestamp,
            "X-Signature": self.sign(method, path, timestamp, body),
        }, {}

    def send(self, method: str, path: str, params: Optional[dict] = None) -> dict:
        body = json.dumps(params, ensure_ascii=False, separators=(",", ":")) if params is not None else ""
        headers, extra = self._auth(method, path, body)

        logger.info(f"{self.carrier} API request: {method.upper()} {path}")
        response = self.request(
            method.upper(),
            f"{self.base_url}{path}",
            headers=headers,
            data=body.encode("utf-8") if body else None,
            **extra,
        )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON from carrier: {e}", carrier=self.carrier) from e
