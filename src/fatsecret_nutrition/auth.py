"""OAuth1 request signing for FatSecret API."""

import base64
import hashlib
import hmac
import logging
import secrets
import time
import urllib.parse
from collections.abc import Mapping
from typing import Any

from .exceptions import ConfigurationError
from .models import Credentials, SignedRequest

logger = logging.getLogger(__name__)


def percent_encode(value: Any) -> str:
    """Percent-encode a value according to RFC 3986.

    Only the unreserved characters (letters, digits, ``-._~``) are left as-is,
    so ``!'()*`` and ``/`` are encoded too, as OAuth1 requires.

    Args:
        value: The value to encode. Non-strings are converted with ``str()``.

    Returns:
        Percent-encoded string.
    """
    return urllib.parse.quote(str(value), safe="")


def build_base_string(method: str, url: str, parameters: Mapping[str, Any]) -> str:
    """Create the OAuth1 signature base string.

    Args:
        method: HTTP method.
        url: The request URL, without query string.
        parameters: Every parameter that will reach the server.

    Returns:
        ``METHOD&encoded-url&encoded-parameter-string``.
    """
    # Sort on the encoded pairs, so the value breaks ties between equal keys
    pairs = sorted(
        (percent_encode(k), percent_encode(v)) for k, v in parameters.items()
    )
    param_string = "&".join(f"{k}={v}" for k, v in pairs)

    return "&".join(
        [
            method.upper(),
            percent_encode(url),
            percent_encode(param_string),
        ]
    )


def build_signing_key(consumer_secret: str, token_secret: str = "") -> str:
    """Create the HMAC key ``consumer_secret&token_secret``.

    The token secret is empty while requesting a request token and for
    two-legged calls.
    """
    return f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"


def sign(
    method: str,
    url: str,
    parameters: Mapping[str, Any],
    consumer_secret: str,
    token_secret: str = "",
) -> str:
    """Generate the base64-encoded HMAC-SHA1 signature for a request."""
    base_string = build_base_string(method, url, parameters)
    signing_key = build_signing_key(consumer_secret, token_secret)

    hashed = hmac.new(
        signing_key.encode("utf-8"),
        base_string.encode("utf-8"),
        hashlib.sha1,
    )

    return base64.b64encode(hashed.digest()).decode("utf-8")


def build_authorization_header(request: SignedRequest) -> str:
    """Render the OAuth parameters of a signed request as an Authorization header.

    Business parameters are left out; they travel in the query string or body.
    """
    parts = ", ".join(
        f'{percent_encode(k)}="{percent_encode(v)}"'
        for k, v in sorted(request.oauth_parameters.items())
    )
    return f"OAuth {parts}"


class OAuth1Signer:
    """Signs requests using OAuth1 HMAC-SHA1.

    Supports both two-legged (no token) and three-legged (request or access
    token) requests. The credentials are passed in explicitly so the signer
    holds no process-wide state.
    """

    def __init__(self, credentials: Credentials) -> None:
        """Initialize the OAuth1 signer.

        Args:
            credentials: Credentials holding the consumer key and secret.

        Raises:
            ConfigurationError: If the consumer key or secret is missing.
        """
        if not credentials.has_consumer_credentials:
            raise ConfigurationError(
                "FatSecret consumer key and secret are not configured. "
                "Run authenticate_fatsecret with your Client ID and Client Secret "
                "or `fatsecret-nutrition setup` first."
            )
        self._consumer_key = credentials.consumer_key
        self._consumer_secret = credentials.consumer_secret

    def sign_request(
        self,
        url: str,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        token: str | None = None,
        token_secret: str | None = None,
    ) -> SignedRequest:
        """Sign a request.

        Args:
            url: The request URL.
            method: HTTP method (GET or POST).
            params: Business parameters; they are included in the signature.
            token: Optional request or access token.
            token_secret: Secret matching ``token``.

        Returns:
            The signed request, carrying the business parameters, the OAuth
            parameters and ``oauth_signature``.
        """
        params = {k: str(v) for k, v in (params or {}).items()}

        oauth_params = {
            "oauth_consumer_key": self._consumer_key,
            "oauth_nonce": self._generate_nonce(),
            "oauth_signature_method": "HMAC-SHA1",
            "oauth_timestamp": self._generate_timestamp(),
            "oauth_version": "1.0",
        }

        if token:
            oauth_params["oauth_token"] = token

        all_params = {**params, **oauth_params}

        signature = sign(
            method,
            url,
            all_params,
            self._consumer_secret,
            token_secret or "",
        )
        logger.debug(
            "Signed %s %s (%d parameters)", method.upper(), url, len(all_params)
        )

        return SignedRequest(
            method=method.upper(),
            url=url,
            parameters={**all_params, "oauth_signature": signature},
            signature=signature,
        )

    @staticmethod
    def _generate_nonce() -> str:
        """Generate a unique nonce for the request.

        Returns:
            A random 32-character hex string.
        """
        return secrets.token_hex(16)

    @staticmethod
    def _generate_timestamp() -> str:
        return str(int(time.time()))
