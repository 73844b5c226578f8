"""OAuth 1.0a 3-legged flow for FatSecret API."""

import enum
import logging

from .auth import OAuth1Signer, percent_encode
from .config import Settings
from .credentials import CredentialStore
from .exceptions import HandshakeError, ValidationError
from .models import (
    AccessToken,
    Credentials,
    FormBody,
    JsonBody,
    RawText,
    RequestToken,
    ResponseBody,
)
from .transport import RequestExecutor

logger = logging.getLogger(__name__)


class AuthState(enum.Enum):
    """Progress of the OAuth handshake."""

    NO_CREDENTIALS = "no_credentials"
    CREDENTIALS_SET = "credentials_set"
    REQUEST_TOKEN_OBTAINED = "request_token_obtained"
    AUTHORIZED = "authorized"
    ACCESS_TOKEN_OBTAINED = "access_token_obtained"


def _token_fields(body: ResponseBody) -> dict[str, str]:
    """Flatten a token endpoint response into string fields."""
    match body:
        case JsonBody(data=data):
            return {k: str(v) for k, v in data.items() if v is not None}
        case FormBody(data=data):
            return data
        case RawText():
            return {}


def _describe(body: ResponseBody) -> str:
    match body:
        case RawText(text=text):
            return text
        case _:
            return str(body.data)


class OAuthFlowManager:
    """Manages the OAuth 1.0a 3-legged authentication flow.

    This implements the three-step OAuth handshake:
    1. Get a request token from FatSecret
    2. Generate an authorization URL for the user to visit
    3. Exchange the verifier code for an access token

    Each leg is a separate call. The request token is returned to the caller
    and never stored, so the legs can run in one process (the console) or in
    two independent tool calls (the server).
    """

    def __init__(
        self,
        settings: Settings,
        credential_store: CredentialStore,
        executor: RequestExecutor,
    ) -> None:
        """Initialize the OAuth flow manager.

        Args:
            settings: Application settings with OAuth endpoints.
            credential_store: Store the resulting credentials are written to.
            executor: Executor used to reach the OAuth endpoints.
        """
        self._settings = settings
        self._credential_store = credential_store
        self._executor = executor

    @staticmethod
    def state_of(credentials: Credentials) -> AuthState:
        """Report how far the persisted credentials have progressed."""
        if not credentials.has_consumer_credentials:
            return AuthState.NO_CREDENTIALS
        if credentials.has_access_token:
            return AuthState.ACCESS_TOKEN_OBTAINED
        return AuthState.CREDENTIALS_SET

    def consumer_credentials(
        self, consumer_key: str, consumer_secret: str
    ) -> Credentials:
        """Merge a consumer key and secret into the stored credentials.

        A stored access token is kept only while the consumer key is
        unchanged, since tokens are issued to one application. Nothing is
        written.

        Raises:
            ValidationError: If either value is blank.
        """
        consumer_key = (consumer_key or "").strip()
        consumer_secret = (consumer_secret or "").strip()
        if not consumer_key:
            raise ValidationError("Client ID is required", field="client_id")
        if not consumer_secret:
            raise ValidationError("Client Secret is required", field="client_secret")

        current = self._credential_store.load()
        if current.consumer_key != consumer_key:
            current = current.without_access_token()

        return current.model_copy(
            update={"consumer_key": consumer_key, "consumer_secret": consumer_secret}
        )

    def set_credentials(self, consumer_key: str, consumer_secret: str) -> Credentials:
        """Store the consumer key and secret.

        Args:
            consumer_key: The FatSecret Client ID.
            consumer_secret: The FatSecret Client Secret.

        Returns:
            The persisted credentials.

        Raises:
            ValidationError: If either value is blank.
        """
        credentials = self.consumer_credentials(consumer_key, consumer_secret)
        self._credential_store.save(credentials)
        logger.info("Saved consumer credentials")
        return credentials

    async def get_request_token(
        self, credentials: Credentials, callback: str = "oob"
    ) -> RequestToken:
        """Step 1: Get a request token from FatSecret.

        Args:
            credentials: Credentials with the consumer key and secret.
            callback: Callback URL or "oob" for out-of-band (CLI apps).

        Returns:
            Request token for the authorization step.

        Raises:
            ConfigurationError: If the consumer credentials are missing.
            HandshakeError: If the response lacks the token or its secret.
            TransportError: If the request fails.
        """
        # Create a signer without user token for this request
        signer = OAuth1Signer(credentials)

        signed = signer.sign_request(
            self._settings.oauth_request_token_url,
            "POST",
            {"oauth_callback": callback},
        )

        body = await self._executor.execute(signed)
        fields = _token_fields(body)

        oauth_token = fields.get("oauth_token")
        oauth_token_secret = fields.get("oauth_token_secret")

        if not oauth_token or not oauth_token_secret:
            raise HandshakeError(
                "Invalid response from request token endpoint: " + _describe(body)
            )

        confirmed = fields.get("oauth_callback_confirmed")
        logger.info("Obtained request token")

        return RequestToken(
            oauth_token=oauth_token,
            oauth_token_secret=oauth_token_secret,
            callback_confirmed=None if confirmed is None else confirmed == "true",
        )

    def get_authorization_url(self, request_token: RequestToken) -> str:
        """Step 2: Generate the authorization URL for the user.

        Args:
            request_token: The request token from step 1.

        Returns:
            URL for the user to visit to authorize the application.
        """
        return (
            f"{self._settings.oauth_authorize_url}"
            f"?oauth_token={percent_encode(request_token.oauth_token)}"
        )

    async def exchange_for_access_token(
        self,
        credentials: Credentials,
        request_token: RequestToken,
        verifier: str,
    ) -> AccessToken:
        """Step 3: Exchange the verifier for an access token.

        The token is saved before this returns. Nothing is written when the
        response is incomplete.

        Args:
            credentials: Credentials with the consumer key and secret.
            request_token: The request token from step 1.
            verifier: The verification code provided by the user after authorization.

        Returns:
            User access token for authenticated API calls.

        Raises:
            ConfigurationError: If the consumer credentials are missing.
            HandshakeError: If the response lacks the token or its secret.
            TransportError: If the request fails.
        """
        # Create a signer with the request token
        signer = OAuth1Signer(credentials)

        signed = signer.sign_request(
            self._settings.oauth_access_token_url,
            "GET",
            {"oauth_verifier": verifier},
            token=request_token.oauth_token,
            token_secret=request_token.oauth_token_secret,
        )

        body = await self._executor.execute(signed)
        fields = _token_fields(body)

        oauth_token = fields.get("oauth_token")
        oauth_token_secret = fields.get("oauth_token_secret")

        if not oauth_token or not oauth_token_secret:
            raise HandshakeError(
                "Invalid response from access token endpoint: " + _describe(body)
            )

        access_token = AccessToken(
            oauth_token=oauth_token,
            oauth_token_secret=oauth_token_secret,
            user_id=fields.get("user_id"),
        )

        self._credential_store.save(credentials.with_access_token(access_token))
        logger.info("Obtained access token for user %s", access_token.user_id)

        return access_token


class AuthorizationSession:
    """Walks the handshake in one process, holding the request token in memory.

    Usage:
        session = AuthorizationSession(flow, credentials)
        url = await session.start()
        session.receive_verifier(input("Verifier: "))
        token = await session.complete()
    """

    def __init__(self, flow: OAuthFlowManager, credentials: Credentials) -> None:
        self._flow = flow
        self._credentials = credentials
        self._request_token: RequestToken | None = None
        self._verifier: str | None = None
        self._state = OAuthFlowManager.state_of(credentials)
        if self._state is AuthState.ACCESS_TOKEN_OBTAINED:
            # A new handshake replaces the stored token
            self._state = AuthState.CREDENTIALS_SET

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def request_token(self) -> RequestToken | None:
        return self._request_token

    async def start(self, callback: str = "oob") -> str:
        """Get a request token and return the URL the user must visit."""
        if self._state is not AuthState.CREDENTIALS_SET:
            raise HandshakeError(
                f"Cannot request a token in state {self._state.value}; "
                "set the consumer credentials first."
            )

        self._request_token = await self._flow.get_request_token(
            self._credentials, callback
        )
        self._state = AuthState.REQUEST_TOKEN_OBTAINED
        return self._flow.get_authorization_url(self._request_token)

    def receive_verifier(self, verifier: str) -> None:
        """Record the verifier code the user copied from the authorization page."""
        if self._state is not AuthState.REQUEST_TOKEN_OBTAINED:
            raise HandshakeError(
                f"Cannot accept a verifier in state {self._state.value}; "
                "start the authorization first."
            )
        verifier = (verifier or "").strip()
        if not verifier:
            raise ValidationError("Verifier code is required", field="verifier")

        self._verifier = verifier
        self._state = AuthState.AUTHORIZED

    async def complete(self) -> AccessToken:
        """Exchange the verifier for an access token and persist it."""
        if self._state is not AuthState.AUTHORIZED:
            raise HandshakeError(
                f"Cannot exchange for an access token in state {self._state.value}; "
                "a verifier is required."
            )

        access_token = await self._flow.exchange_for_access_token(
            self._credentials, self._request_token, self._verifier
        )
        self._credentials = self._credentials.with_access_token(access_token)
        self._state = AuthState.ACCESS_TOKEN_OBTAINED
        return access_token
