"""
DocuSign REST API Client

Thin asynchronous client for the parts of the DocuSign eSignature and OAuth
APIs used by the envelope adapter: JWT-bearer token exchange, user info and
envelope create/read/update/list.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import aiohttp
from aiohttp import ClientTimeout
from jose import jwt
from jose.exceptions import JOSEError

from ecm_docusign.core.logging import get_logger

from .base import SignatureError

logger = get_logger(__name__)

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
DEFAULT_USER_AGENT = "ECM-DocuSign-Adapter/1.0.0"
PROVIDER = "docusign"


@dataclass
class OAuthToken:
    """Access token returned by the DocuSign OAuth service."""
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600


@dataclass
class UserAccount:
    account_id: str
    account_name: Optional[str] = None
    is_default: bool = False
    base_uri: Optional[str] = None


@dataclass
class UserInfo:
    """Authenticated user profile and the accounts it can access."""
    sub: str
    name: Optional[str] = None
    email: Optional[str] = None
    accounts: List[UserAccount] = field(default_factory=list)

    def has_account(self, account_id: str) -> bool:
        return any(account.account_id == account_id for account in self.accounts)


class DocuSignApiClient:
    """Asynchronous DocuSign API client."""

    def __init__(
        self,
        base_path: str,
        oauth_base_path: str,
        connect_timeout: float = 30,
        read_timeout: float = 60,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """
        Initialize the API client.

        Args:
            base_path: REST API base, e.g. https://demo.docusign.net/restapi
            oauth_base_path: OAuth server, e.g. https://account-d.docusign.com
            connect_timeout: Connection timeout in seconds
            read_timeout: Socket read timeout in seconds
            user_agent: User-Agent header sent with every request
        """
        self.base_path = base_path.rstrip('/')
        self.oauth_base_path = oauth_base_path.rstrip('/')
        self.user_agent = user_agent
        self.access_token: Optional[str] = None
        self.token_expires_at: Optional[datetime] = None

        # Session will be created lazily to avoid event loop issues during initialization
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = ClientTimeout(connect=connect_timeout, sock_read=read_timeout)

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json"
                }
            )
        return self._session

    @property
    def oauth_host(self) -> str:
        """Host name of the OAuth server, used as the JWT audience."""
        return urlparse(self.oauth_base_path).netloc or self.oauth_base_path

    def set_access_token(self, access_token: str, expires_in: int) -> None:
        self.access_token = access_token
        self.token_expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

    @property
    def token_expired(self) -> bool:
        if self.token_expires_at is None:
            return True
        return datetime.now(timezone.utc) >= self.token_expires_at

    def envelopes_endpoint(self, account_id: str) -> str:
        return f"{self.base_path}/v2.1/accounts/{account_id}/envelopes"

    def build_jwt_assertion(
        self,
        integration_key: str,
        user_id: str,
        scopes: Sequence[str],
        private_key: bytes,
        expires_in: int,
    ) -> str:
        """Build the RS256-signed assertion for the JWT-bearer grant."""
        issued_at = int(time.time())
        claims = {
            "iss": integration_key,
            "sub": user_id,
            "aud": self.oauth_host,
            "iat": issued_at,
            "exp": issued_at + expires_in,
            "scope": " ".join(scopes),
        }
        key = private_key.decode("utf-8") if isinstance(private_key, bytes) else private_key
        try:
            return jwt.encode(claims, key, algorithm="RS256")
        except JOSEError as e:
            raise SignatureError(
                message=f"Failed to sign JWT assertion: {str(e)}",
                error_code="jwt_signing_error",
                provider=PROVIDER
            ) from e

    async def request_jwt_user_token(
        self,
        integration_key: str,
        user_id: str,
        scopes: Sequence[str],
        private_key: bytes,
        expires_in: int,
    ) -> OAuthToken:
        """
        Exchange a signed JWT assertion for an access token.

        Args:
            integration_key: OAuth client id
            user_id: GUID of the impersonated user
            scopes: Requested OAuth scopes
            private_key: RSA private key in PEM format
            expires_in: Assertion lifetime in seconds

        Returns:
            OAuthToken with the access token and its lifetime

        Raises:
            SignatureError: If the token request fails
        """
        assertion = self.build_jwt_assertion(integration_key, user_id, scopes, private_key, expires_in)
        response_data = await self._request(
            "POST",
            f"{self.oauth_base_path}/oauth/token",
            "request_jwt_user_token",
            data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
            authenticated=False,
        )

        access_token = response_data.get("access_token")
        if not access_token:
            raise SignatureError(
                message="No access token returned",
                error_code="no_token_returned",
                provider=PROVIDER
            )

        return OAuthToken(
            access_token=access_token,
            token_type=response_data.get("token_type", "Bearer"),
            expires_in=int(response_data.get("expires_in", expires_in)),
        )

    async def get_user_info(self, access_token: str) -> UserInfo:
        """Fetch the profile and accounts of the user owning ``access_token``."""
        response_data = await self._request(
            "GET",
            f"{self.oauth_base_path}/oauth/userinfo",
            "get_user_info",
            headers={"Authorization": f"Bearer {access_token}"},
            authenticated=False,
        )

        accounts = [
            UserAccount(
                account_id=account_data["account_id"],
                account_name=account_data.get("account_name"),
                is_default=bool(account_data.get("is_default", False)),
                base_uri=account_data.get("base_uri"),
            )
            for account_data in response_data.get("accounts", [])
        ]
        return UserInfo(
            sub=response_data.get("sub", ""),
            name=response_data.get("name"),
            email=response_data.get("email"),
            accounts=accounts,
        )

    async def create_envelope(self, account_id: str, envelope_definition: Dict[str, Any]) -> Dict[str, Any]:
        """Create an envelope and return the envelope summary."""
        return await self._request(
            "POST",
            self.envelopes_endpoint(account_id),
            "create_envelope",
            json_body=envelope_definition,
        )

    async def get_envelope(self, account_id: str, envelope_id: str) -> Dict[str, Any]:
        return await self._request(
            "GET",
            f"{self.envelopes_endpoint(account_id)}/{envelope_id}",
            "get_envelope",
        )

    async def update_envelope(
        self,
        account_id: str,
        envelope_id: str,
        envelope: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"{self.envelopes_endpoint(account_id)}/{envelope_id}",
            "update_envelope",
            json_body=envelope,
        )

    async def list_status_changes(
        self,
        account_id: str,
        status: Optional[str] = None,
        count: Optional[int] = None,
        from_date: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        List envelopes whose status changed, optionally filtered.

        Args:
            account_id: DocuSign account id
            status: DocuSign status filter (``any`` for all)
            count: Maximum number of envelopes to return
            from_date: Only envelopes changed after this instant

        Returns:
            List of envelope dictionaries as returned by DocuSign
        """
        params: Dict[str, str] = {}
        if status:
            params["status"] = status
        if count is not None:
            params["count"] = str(count)
        if from_date is not None:
            params["from_date"] = from_date.isoformat()

        response_data = await self._request(
            "GET",
            self.envelopes_endpoint(account_id),
            "list_status_changes",
            params=params,
        )
        return response_data.get("envelopes") or []

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        json_body: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
    ) -> Dict[str, Any]:
        request_headers = dict(headers or {})
        if authenticated:
            if not self.access_token:
                raise SignatureError(
                    message=f"No access token configured for {operation}",
                    error_code="AUTH_ERROR",
                    provider=PROVIDER
                )
            request_headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            async with self.session.request(
                method,
                url,
                json=json_body,
                data=data,
                params=params,
                headers=request_headers,
            ) as response:
                await self._handle_api_error(response, operation)
                if response.status == 204:
                    return {}
                return await response.json() or {}

        except aiohttp.ClientError as e:
            logger.error("docusign.api.request_failed", operation=operation, error=str(e))
            raise SignatureError(
                message=f"DocuSign request failed in {operation}: {str(e)}",
                error_code="api_error",
                provider=PROVIDER
            ) from e

    async def _handle_api_error(self, response: aiohttp.ClientResponse, operation: str) -> None:
        """Handle DocuSign API response with proper error handling."""
        if response.status in [200, 201, 204]:
            return

        error_message = f"DocuSign API error in {operation}"
        error_code = "api_error"
        error_data: Optional[Dict[str, Any]] = None

        try:
            body = await response.json()
            if isinstance(body, dict):
                error_data = body
                error_message = error_data.get("message") or error_data.get("error_description") or error_message
                error_code = error_data.get("errorCode") or error_data.get("error") or error_code
            elif body:
                error_data = {"body": body}
        except (aiohttp.ContentTypeError, json.JSONDecodeError):
            error_message = await response.text() or error_message

        logger.warning(
            "docusign.api.error_response",
            operation=operation,
            status=response.status,
            error_code=error_code,
        )

        if response.status == 401:
            raise SignatureError("Authentication failed - check access token", "AUTH_ERROR", PROVIDER, error_data)
        elif response.status == 403:
            raise SignatureError("Insufficient permissions", "PERMISSION_ERROR", PROVIDER, error_data)
        elif response.status == 404:
            raise SignatureError("Resource not found", "NOT_FOUND", PROVIDER, error_data)
        elif response.status == 429:
            retry_after = response.headers.get('Retry-After', '60')
            raise SignatureError(f"Rate limit exceeded, retry after {retry_after}s", "RATE_LIMIT", PROVIDER, error_data)
        elif response.status >= 500:
            raise SignatureError("DocuSign server error", "SERVER_ERROR", PROVIDER, error_data)
        else:
            raise SignatureError(error_message, error_code, PROVIDER, error_data)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
