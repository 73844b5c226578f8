"""
Pydantic models for credentials, OAuth tokens, signed requests and responses.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Credential Models
# ============================================================================


class Credentials(BaseModel):
    """Consumer credentials plus the optional user access token.

    Field aliases are the keys used in the persisted JSON file.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    consumer_key: str = Field("", alias="clientId")
    consumer_secret: str = Field("", alias="clientSecret")
    access_token: str | None = Field(None, alias="accessToken")
    access_token_secret: str | None = Field(None, alias="accessTokenSecret")
    user_id: str | None = Field(None, alias="userId")

    @property
    def has_consumer_credentials(self) -> bool:
        return bool(self.consumer_key and self.consumer_secret)

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token and self.access_token_secret)

    def with_access_token(self, token: "AccessToken") -> "Credentials":
        """Return a copy with the access token fields replaced by ``token``."""
        return self.model_copy(
            update={
                "access_token": token.oauth_token,
                "access_token_secret": token.oauth_token_secret,
                "user_id": token.user_id,
            }
        )

    def without_access_token(self) -> "Credentials":
        """Return a copy with the access token fields cleared."""
        return self.model_copy(
            update={
                "access_token": None,
                "access_token_secret": None,
                "user_id": None,
            }
        )


# ============================================================================
# OAuth Token Models
# ============================================================================


class RequestToken(BaseModel):
    """Model for OAuth1 request token (temporary during OAuth flow)."""

    oauth_token: str
    oauth_token_secret: str
    callback_confirmed: bool | None = None


class AccessToken(BaseModel):
    """Model for OAuth1 user access token (persistent after authentication)."""

    oauth_token: str
    oauth_token_secret: str
    user_id: str | None = None


# ============================================================================
# Request Models
# ============================================================================


class SignedRequest(BaseModel):
    """A request whose parameters have been signed.

    ``parameters`` holds the business parameters, the OAuth parameters and
    ``oauth_signature``. Adding anything after signing invalidates it.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    parameters: dict[str, str]
    signature: str

    @property
    def oauth_parameters(self) -> dict[str, str]:
        return {k: v for k, v in self.parameters.items() if k.startswith("oauth_")}


# ============================================================================
# Response Models
# ============================================================================


class JsonBody(BaseModel):
    """Response body that parsed as a JSON object."""

    kind: Literal["json"] = "json"
    data: dict[str, Any]


class FormBody(BaseModel):
    """Response body that parsed as form-urlencoded pairs."""

    kind: Literal["form"] = "form"
    data: dict[str, str]


class RawText(BaseModel):
    """Response body that was neither JSON nor form-encoded."""

    kind: Literal["text"] = "text"
    text: str


ResponseBody = Annotated[JsonBody | FormBody | RawText, Field(discriminator="kind")]
