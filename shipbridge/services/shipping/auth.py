"""
Carrier authentication strategies.

Each strategy takes request options and returns a copy with credentials
attached. Carriers pick one at construction time.
"""

import base64
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol

from shipbridge.core.exceptions import CarrierAuthenticationError, CarrierDispatchError

from .transport import HttpClient, RequestOptions, dispatch

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _with_headers(options: RequestOptions, headers: Dict[str, str]) -> RequestOptions:
    updated = dict(options)
    updated["headers"] = {**options.get("headers", {}), **headers}
    return updated


def basic_auth_header(username: str, password: str) -> str:
    credentials = f"{username}:{password}"
    return f"Basic {base64.b64encode(credentials.encode()).decode()}"


class AuthStrategy(Protocol):
    async def apply(self, options: RequestOptions, transport: HttpClient) -> RequestOptions:
        ...


class StaticKeyAuth:
    """API key sent verbatim in a header on every request"""

    def __init__(self, key: str, header: str = "Authorization", prefix: Optional[str] = None):
        self.key = key
        self.header = header
        self.prefix = prefix

    async def apply(self, options: RequestOptions, transport: HttpClient) -> RequestOptions:
        value = f"{self.prefix} {self.key}" if self.prefix else self.key
        return _with_headers(options, {self.header: value})


class BasicAuth:
    """Username/password pair encoded into a Basic Authorization header"""

    def __init__(self, username: str, password: str):
        self.username = username
        self.password = password

    async def apply(self, options: RequestOptions, transport: HttpClient) -> RequestOptions:
        return _with_headers(options, {"Authorization": basic_auth_header(self.username, self.password)})


class OAuth2ClientCredentials:
    """
    OAuth2 client-credentials exchange with an in-memory token cache.

    The token is fetched on first use and reused for this instance. When the
    token endpoint reports ``expires_in`` the token is exchanged again once it
    is within ``expiry_margin`` of expiring; without ``expires_in`` it is kept
    for the lifetime of the instance.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        extra_headers: Optional[Dict[str, str]] = None,
        expiry_margin: timedelta = timedelta(seconds=60),
        clock: Clock = _utcnow,
    ):
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.extra_headers = extra_headers or {}
        self.expiry_margin = expiry_margin
        self._clock = clock
        self._access_token: Optional[str] = None
        self._expires_at: Optional[datetime] = None

    def _cached_token(self) -> Optional[str]:
        if not self._access_token:
            return None
        if self._expires_at is not None and self._clock() >= self._expires_at - self.expiry_margin:
            logger.debug("Access token expired or expiring soon")
            return None
        return self._access_token

    def clear(self):
        self._access_token = None
        self._expires_at = None

    async def get_access_token(self, transport: HttpClient) -> str:
        """
        Get a valid access token, exchanging client credentials if necessary

        Raises:
            CarrierAuthenticationError: the exchange failed or returned no token
        """
        token = self._cached_token()
        if token:
            logger.debug("Using cached access token")
            return token

        logger.info(f"Requesting access token from {self.token_url}")
        options: RequestOptions = {
            "headers": {
                "Content-Type": "application/x-www-form-urlencoded",
                "Authorization": basic_auth_header(self.client_id, self.client_secret),
                **self.extra_headers,
            },
            "data": {"grant_type": "client_credentials"},
        }

        try:
            token_data = await dispatch(transport, "POST", self.token_url, options)
        except CarrierDispatchError as e:
            raise CarrierAuthenticationError(
                f"Failed to obtain access token: {str(e)}",
                endpoint=self.token_url,
                status_code=e.status_code,
            ) from e

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token:
            raise CarrierAuthenticationError("Token response did not include an access_token", endpoint=self.token_url)

        self._access_token = access_token
        self._expires_at = None
        try:
            expires_in = int(token_data.get("expires_in"))
            self._expires_at = self._clock() + timedelta(seconds=expires_in)
        except (TypeError, ValueError):
            pass

        logger.info(f"Obtained access token (expires: {self._expires_at or 'not reported'})")
        return access_token

    async def apply(self, options: RequestOptions, transport: HttpClient) -> RequestOptions:
        token = await self.get_access_token(transport)
        return _with_headers(options, {"Authorization": f"Bearer {token}"})
