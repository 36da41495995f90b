"""
HTTP transport capability.

Carriers never talk to httpx directly. They receive an ``HttpClient`` and
call ``request(method, url, options)``; ``dispatch`` turns whatever comes
back into parsed JSON or a single ``CarrierDispatchError``.
"""

import json
import logging
from typing import Any, Dict, Optional, Protocol, TypedDict

import httpx

from shipbridge.core.exceptions import CarrierDispatchError

logger = logging.getLogger(__name__)

REDACTED_HEADERS = {"authorization", "dhl-api-key", "x-api-key"}


class RequestOptions(TypedDict, total=False):
    headers: Dict[str, str]
    json: Any
    data: Dict[str, Any]
    params: Dict[str, Any]


class Response(Protocol):
    status_code: int
    text: str

    def json(self) -> Any:
        ...


class HttpClient(Protocol):
    async def request(self, method: str, url: str, options: Optional[RequestOptions] = None) -> Response:
        ...


class HttpxTransport:
    """
    Default transport backed by httpx.

    Pass a long-lived ``httpx.AsyncClient`` to reuse connections; otherwise a
    client is opened per request.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        self._client = client
        self.timeout = timeout

    async def request(self, method: str, url: str, options: Optional[RequestOptions] = None) -> httpx.Response:
        options = options or {}
        kwargs = {
            "headers": options.get("headers"),
            "json": options.get("json"),
            "data": options.get("data"),
            "params": options.get("params"),
        }
        try:
            if self._client is not None:
                return await self._client.request(method, url, **kwargs)

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)

        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling {url}: {str(e)}")
            raise CarrierDispatchError(f"Request timed out: {str(e)}", endpoint=url)
        except httpx.RequestError as e:
            logger.error(f"Network error calling {url}: {str(e)}")
            raise CarrierDispatchError(f"Network error: {str(e)}", endpoint=url)


def redact_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Copy of headers safe to log"""
    return {
        key: ("[REDACTED]" if key.lower() in REDACTED_HEADERS else value)
        for key, value in (headers or {}).items()
    }


async def dispatch(transport: HttpClient, method: str, url: str, options: RequestOptions) -> Any:
    """
    Send a request and return the decoded JSON body.

    Raises:
        CarrierDispatchError: transport failure, non-2xx status, or a body that isn't JSON
    """
    logger.debug(f"Making {method} request to {url}")
    logger.debug(f"Headers: {redact_headers(options.get('headers'))}")
    if options.get("json") is not None:
        logger.debug(f"Data: {json.dumps(options['json'], default=str)[:500]}...")

    try:
        response = await transport.request(method, url, options)
    except CarrierDispatchError:
        raise
    except Exception as e:
        logger.error(f"Transport error calling {url}: {str(e)}")
        raise CarrierDispatchError(f"Transport error: {str(e)}", endpoint=url) from e

    status_code = getattr(response, "status_code", None)
    if status_code is None or not 200 <= status_code < 300:
        body = getattr(response, "text", "")
        logger.error(f"API error {status_code} from {url}: {body}")
        raise CarrierDispatchError(f"Request failed ({status_code}): {body}", endpoint=url, status_code=status_code)

    try:
        return response.json()
    except ValueError as e:
        logger.error(f"Unparsable response body from {url}: {str(e)}")
        raise CarrierDispatchError(
            f"Unparsable response body: {str(e)}", endpoint=url, status_code=status_code
        ) from e
