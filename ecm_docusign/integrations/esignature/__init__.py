"""
E-signature integration modules

Provides the signature envelope port, its DocuSign implementation
and the bootstrap that authenticates against DocuSign.
"""

from .base import (
    AdapterFeature,
    AdapterInfo,
    ConfigurationError,
    DocumentContentPort,
    DocumentPort,
    EnvelopeNotFoundError,
    SignatureEnvelopePort,
    SignatureEnvelopePortFactory,
    SignatureError,
    UnmappedStatusError,
    ecm_adapter,
)
from .bootstrap import create_docusign_api_client, create_signature_envelope_port
from .docusign_adapter import (
    DocuSignSignatureEnvelopeAdapter,
    map_from_docusign_status,
    map_to_docusign_status,
)
from .docusign_client import DocuSignApiClient, OAuthToken, UserAccount, UserInfo
from .id_index import EnvelopeIdIndex

__all__ = [
    "AdapterFeature",
    "AdapterInfo",
    "ConfigurationError",
    "DocumentContentPort",
    "DocumentPort",
    "EnvelopeNotFoundError",
    "SignatureEnvelopePort",
    "SignatureEnvelopePortFactory",
    "SignatureError",
    "UnmappedStatusError",
    "ecm_adapter",
    "create_docusign_api_client",
    "create_signature_envelope_port",
    "DocuSignSignatureEnvelopeAdapter",
    "map_from_docusign_status",
    "map_to_docusign_status",
    "DocuSignApiClient",
    "OAuthToken",
    "UserAccount",
    "UserInfo",
    "EnvelopeIdIndex",
]
