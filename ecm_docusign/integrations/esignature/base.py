"""
E-signature Base Classes and Interfaces

Defines the port contract, error taxonomy and adapter registry shared by
every e-signature envelope adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar
from uuid import UUID

from ecm_docusign.models.envelope import EnvelopeStatus, SignatureEnvelope, SignatureProvider


class SignatureError(Exception):
    """E-signature provider specific errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        provider: Optional[str] = None,
        provider_response: Optional[Dict[str, Any]] = None,
        envelope_id: Optional[str] = None
    ):
        super().__init__(message)
        self.error_message = message
        self.error_code = error_code
        self.provider = provider
        self.provider_response = provider_response
        self.envelope_id = envelope_id


class EnvelopeNotFoundError(SignatureError):
    """Raised when an internal envelope id has no known provider envelope."""

    def __init__(self, envelope_id: UUID, provider: Optional[str] = None):
        super().__init__(
            message=f"Envelope not found: {envelope_id}",
            error_code="NOT_FOUND",
            provider=provider,
            envelope_id=str(envelope_id),
        )


class UnmappedStatusError(SignatureError):
    """Raised when the provider reports a status outside EnvelopeStatus."""

    def __init__(self, status: Optional[str], provider: Optional[str] = None, envelope_id: Optional[str] = None):
        super().__init__(
            message=f"Unknown envelope status from provider: {status!r}",
            error_code="UNMAPPED_STATUS",
            provider=provider,
            envelope_id=envelope_id,
        )
        self.status = status


class ConfigurationError(SignatureError):
    """Fatal adapter configuration or authentication failure raised at startup."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message=message, error_code="CONFIGURATION_ERROR", provider=provider)


class AdapterFeature(str, Enum):
    """Capabilities an ECM adapter can advertise."""
    DOCUMENT_STORAGE = "document_storage"
    DOCUMENT_METADATA = "document_metadata"
    ESIGNATURE_ENVELOPES = "esignature_envelopes"
    ESIGNATURE_REQUESTS = "esignature_requests"
    SIGNATURE_VALIDATION = "signature_validation"


@dataclass(frozen=True)
class AdapterInfo:
    """Descriptive metadata attached to an adapter class."""
    type: str
    description: str
    supported_features: Tuple[AdapterFeature, ...] = ()
    required_properties: Tuple[str, ...] = ()
    optional_properties: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)

    def supports(self, feature: AdapterFeature) -> bool:
        return feature in self.supported_features


class DocumentContentPort(ABC):
    """Retrieves binary document content from the document store."""

    @abstractmethod
    async def get_content(self, document_id: UUID) -> bytes:
        pass


class DocumentPort(ABC):
    """Reads document metadata from the document store."""

    @abstractmethod
    async def get_document(self, document_id: UUID) -> Optional[Dict[str, Any]]:
        pass


class SignatureEnvelopePort(ABC):
    """Abstract capability set for e-signature envelope adapters."""

    @abstractmethod
    async def create_envelope(self, envelope: SignatureEnvelope) -> SignatureEnvelope:
        """
        Create an envelope with the provider.

        Args:
            envelope: Envelope to create; a new id is assigned when absent

        Returns:
            The created envelope carrying its id and external envelope id

        Raises:
            SignatureError: If envelope creation fails
        """
        pass

    @abstractmethod
    async def get_envelope(self, envelope_id: UUID) -> SignatureEnvelope:
        """
        Fetch the current state of an envelope from the provider.

        Raises:
            EnvelopeNotFoundError: If the id is unknown to this adapter
            UnmappedStatusError: If the provider status cannot be mapped
        """
        pass

    @abstractmethod
    async def update_envelope(self, envelope: SignatureEnvelope) -> SignatureEnvelope:
        pass

    @abstractmethod
    async def delete_envelope(self, envelope_id: UUID) -> None:
        pass

    @abstractmethod
    async def send_envelope(self, envelope_id: UUID, sent_by: Optional[UUID] = None) -> SignatureEnvelope:
        pass

    @abstractmethod
    async def void_envelope(
        self,
        envelope_id: UUID,
        void_reason: str,
        voided_by: Optional[UUID] = None
    ) -> SignatureEnvelope:
        pass

    @abstractmethod
    async def exists_envelope(self, envelope_id: UUID) -> bool:
        """Return True when the envelope is known locally and reachable at the provider."""
        pass

    @abstractmethod
    async def get_envelopes_by_status(
        self,
        status: EnvelopeStatus,
        limit: Optional[int] = None
    ) -> List[SignatureEnvelope]:
        pass

    @abstractmethod
    async def get_envelopes_by_creator(
        self,
        created_by: UUID,
        limit: Optional[int] = None
    ) -> List[SignatureEnvelope]:
        pass

    @abstractmethod
    async def get_envelopes_by_sender(
        self,
        sent_by: UUID,
        limit: Optional[int] = None
    ) -> List[SignatureEnvelope]:
        pass

    @abstractmethod
    async def get_envelopes_by_provider(
        self,
        provider: SignatureProvider,
        limit: Optional[int] = None
    ) -> List[SignatureEnvelope]:
        pass

    @abstractmethod
    async def get_expiring_envelopes(self, from_time: datetime, to_time: datetime) -> List[SignatureEnvelope]:
        pass

    @abstractmethod
    async def get_completed_envelopes(self, from_time: datetime, to_time: datetime) -> List[SignatureEnvelope]:
        pass

    @abstractmethod
    async def get_envelope_by_external_id(
        self,
        external_envelope_id: str,
        provider: SignatureProvider
    ) -> Optional[SignatureEnvelope]:
        """
        Resolve an envelope by the provider's own envelope id.

        Returns:
            The envelope, or None if the external id is not correlated
        """
        pass

    @abstractmethod
    async def sync_envelope_status(self, envelope_id: UUID) -> SignatureEnvelope:
        pass

    @abstractmethod
    async def get_signing_url(
        self,
        envelope_id: UUID,
        signer_email: str,
        signer_name: str,
        client_user_id: Optional[str] = None
    ) -> str:
        """
        Get an embedded signing URL for a signer.

        Raises:
            NotImplementedError: If the adapter does not support embedded signing
        """
        pass

    @abstractmethod
    async def resend_envelope(self, envelope_id: UUID) -> None:
        pass

    @abstractmethod
    async def archive_envelope(self, envelope_id: UUID) -> SignatureEnvelope:
        pass


PortT = TypeVar("PortT", bound=Type[SignatureEnvelopePort])


class SignatureEnvelopePortFactory:
    """Registry of envelope adapter implementations keyed by provider."""

    _providers: Dict[SignatureProvider, Type[SignatureEnvelopePort]] = {}
    _adapter_info: Dict[SignatureProvider, AdapterInfo] = {}

    @classmethod
    def register_provider(
        cls,
        provider_type: SignatureProvider,
        provider_class: Type[SignatureEnvelopePort],
        info: Optional[AdapterInfo] = None
    ) -> None:
        """Register an envelope adapter implementation."""
        cls._providers[provider_type] = provider_class
        if info is not None:
            cls._adapter_info[provider_type] = info

    @classmethod
    def get_provider_class(cls, provider_type: SignatureProvider) -> Type[SignatureEnvelopePort]:
        if provider_type not in cls._providers:
            raise ValueError(f"Unsupported provider type: {provider_type}")
        return cls._providers[provider_type]

    @classmethod
    def create_port(cls, provider_type: SignatureProvider, **config) -> SignatureEnvelopePort:
        """Create an envelope adapter instance."""
        provider_class = cls.get_provider_class(provider_type)
        return provider_class(**config)

    @classmethod
    def get_adapter_info(cls, provider_type: SignatureProvider) -> Optional[AdapterInfo]:
        return cls._adapter_info.get(provider_type)

    @classmethod
    def get_supported_providers(cls) -> List[SignatureProvider]:
        """Get list of registered provider types."""
        return list(cls._providers.keys())


def ecm_adapter(
    provider: SignatureProvider,
    description: str,
    supported_features: Tuple[AdapterFeature, ...] = (),
    required_properties: Tuple[str, ...] = (),
    optional_properties: Tuple[str, ...] = (),
) -> Callable[[PortT], PortT]:
    """
    Class decorator that attaches AdapterInfo to an adapter and registers it
    with SignatureEnvelopePortFactory.
    """
    def decorator(adapter_class: PortT) -> PortT:
        info = AdapterInfo(
            type=provider.value,
            description=description,
            supported_features=tuple(supported_features),
            required_properties=tuple(required_properties),
            optional_properties=tuple(optional_properties),
        )
        adapter_class.adapter_info = info
        SignatureEnvelopePortFactory.register_provider(provider, adapter_class, info)
        return adapter_class

    return decorator
