"""HTTP execution of signed requests."""

import json
import logging
import urllib.parse
from typing import Any

import httpx

from .exceptions import RateLimitError, TransportError, ValidationError
from .models import FormBody, JsonBody, RawText, ResponseBody, SignedRequest

logger = logging.getLogger(__name__)


def parse_response_body(text: str) -> ResponseBody:
    """Parse a provider response body.

    The provider answers some endpoints with JSON and others with
    form-encoded text, so JSON is tried first and form decoding second.

    Args:
        text: The raw response body.

    Returns:
        JsonBody for a JSON object, FormBody when form decoding yields any
        pair, RawText otherwise.
    """
    try:
        data = json.loads(text)
    except ValueError:
        data = None

    if isinstance(data, dict):
        return JsonBody(data=data)

    fields: dict[str, str] = {}
    for key, value in urllib.parse.parse_qsl(text):
        # First value wins for repeated keys
        fields.setdefault(key, value)

    if fields:
        return FormBody(data=fields)

    return RawText(text=text)


class RequestExecutor:
    """Sends signed requests to the provider.

    GET requests carry their parameters in the query string, POST requests
    in a form-encoded body. Supports async context manager protocol.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the executor.

        Args:
            client: Optional shared HTTP client. A client passed in is not
                closed by this executor.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def close(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def execute(self, request: SignedRequest) -> ResponseBody:
        """Send a signed request and parse the response.

        Args:
            request: The signed request.

        Returns:
            The parsed response body.

        Raises:
            ValidationError: If the method is neither GET nor POST.
            RateLimitError: If the provider answers with HTTP 429.
            TransportError: On any other non-2xx status or a network failure.
        """
        logger.debug("Request: %s %s", request.method, request.url)

        try:
            if request.method == "GET":
                response = await self._client.get(
                    request.url, params=request.parameters
                )
            elif request.method == "POST":
                response = await self._client.post(
                    request.url,
                    data=request.parameters,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            else:
                raise ValidationError(
                    f"Unsupported HTTP method: {request.method}", field="method"
                )
        except httpx.RequestError as e:
            logger.warning("Request to %s failed: %s", request.url, e)
            raise TransportError(f"Request error: {str(e)}") from e

        text = response.text
        logger.debug("Response status: %s", response.status_code)

        if response.status_code == 429:
            raise RateLimitError(
                f"Rate limit exceeded: HTTP 429 - {text}", status_code=429, body=text
            )
        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code}: {text}",
                status_code=response.status_code,
                body=text,
            )

        return parse_response_body(text)
