"""
DocuSign Adapter Bootstrap

Builds an authenticated DocuSign API client at startup and wires the
DocuSign adapter as the signature envelope port when it is the selected
provider.
"""

from __future__ import annotations

from typing import Optional

from ecm_docusign.core.config import DocuSignSettings, Settings, get_docusign_settings, get_settings
from ecm_docusign.core.logging import get_logger
from ecm_docusign.models.envelope import SignatureProvider

from .base import (
    ConfigurationError,
    DocumentContentPort,
    DocumentPort,
    SignatureEnvelopePort,
    SignatureEnvelopePortFactory,
)
from . import docusign_adapter  # noqa: F401  registers the DocuSign adapter
from .docusign_client import DocuSignApiClient, UserInfo

logger = get_logger(__name__)

SANDBOX_BASE_URL = "https://demo.docusign.net/restapi"
SANDBOX_AUTH_SERVER = "https://account-d.docusign.com"
JWT_SCOPES = ("signature", "impersonation")


def resolve_endpoints(settings: DocuSignSettings) -> tuple[str, str]:
    """Return (base_url, auth_server), forcing the demo endpoints in sandbox mode."""
    if settings.sandbox_mode:
        return SANDBOX_BASE_URL, SANDBOX_AUTH_SERVER
    return settings.base_url, settings.auth_server


async def create_docusign_api_client(settings: Optional[DocuSignSettings] = None) -> DocuSignApiClient:
    """
    Build an authenticated DocuSign API client.

    Selects the endpoints, runs the JWT-bearer grant, installs the access
    token and checks that the impersonated user can access the configured
    account.

    Args:
        settings: DocuSign settings. If None, uses the cached settings.

    Returns:
        DocuSignApiClient: Client ready for envelope calls

    Raises:
        ConfigurationError: If any step fails. Startup must not continue.
    """
    settings = settings or get_docusign_settings()
    logger.info("docusign.client.configuring", account_id=settings.account_id, sandbox=settings.sandbox_mode)

    base_url, auth_server = resolve_endpoints(settings)
    api_client = DocuSignApiClient(
        base_path=base_url,
        oauth_base_path=auth_server,
        connect_timeout=settings.connection_timeout.total_seconds(),
        read_timeout=settings.read_timeout.total_seconds(),
    )

    try:
        await configure_jwt_authentication(api_client, settings)
    except ConfigurationError:
        await api_client.close()
        raise
    except Exception as e:
        await api_client.close()
        logger.error("docusign.client.configuration_failed", account_id=settings.account_id, error=str(e))
        raise ConfigurationError("DocuSign API client configuration failed", "docusign") from e

    logger.info("docusign.client.configured", account_id=settings.account_id)
    return api_client


async def configure_jwt_authentication(api_client: DocuSignApiClient, settings: DocuSignSettings) -> UserInfo:
    logger.info("docusign.auth.jwt_requested", integration_key=settings.integration_key)

    token = await api_client.request_jwt_user_token(
        settings.integration_key,
        settings.user_id,
        JWT_SCOPES,
        settings.private_key.encode("utf-8"),
        settings.jwt_expiration,
    )
    api_client.set_access_token(token.access_token, token.expires_in)

    user_info = await api_client.get_user_info(token.access_token)
    logger.info("docusign.auth.user_authenticated", user_name=user_info.name)

    validate_account_access(user_info, settings)
    return user_info


def validate_account_access(user_info: UserInfo, settings: DocuSignSettings) -> None:
    if not user_info.has_account(settings.account_id):
        logger.error("docusign.auth.account_access_denied", account_id=settings.account_id)
        raise ConfigurationError("Invalid DocuSign account ID or insufficient permissions", "docusign")
    logger.info("docusign.auth.account_validated", account_id=settings.account_id)


async def create_signature_envelope_port(
    settings: Optional[Settings] = None,
    docusign_settings: Optional[DocuSignSettings] = None,
    api_client: Optional[DocuSignApiClient] = None,
    document_content_port: Optional[DocumentContentPort] = None,
    document_port: Optional[DocumentPort] = None,
) -> Optional[SignatureEnvelopePort]:
    """
    Wire the envelope adapter for the configured e-signature provider.

    The DocuSign adapter is only built when ``esignature_provider`` is
    ``docusign``. A supplied ``api_client`` is used as-is; otherwise the
    default authenticated client is created.

    Returns:
        The adapter, or None when another provider is configured
    """
    settings = settings or get_settings()
    if settings.esignature_provider != SignatureProvider.DOCUSIGN.value:
        logger.info("docusign.adapter.skipped", esignature_provider=settings.esignature_provider)
        return None

    docusign_settings = docusign_settings or get_docusign_settings()
    if api_client is None:
        api_client = await create_docusign_api_client(docusign_settings)

    return SignatureEnvelopePortFactory.create_port(
        SignatureProvider.DOCUSIGN,
        api_client=api_client,
        settings=docusign_settings,
        document_content_port=document_content_port,
        document_port=document_port,
    )
