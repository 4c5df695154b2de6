"""
DocuSign Signature Envelope Adapter

Maps SignatureEnvelope onto DocuSign envelopes and keeps the correlation
between internal envelope ids and DocuSign envelope ids.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from ecm_docusign.core.config import DocuSignSettings
from ecm_docusign.core.logging import get_logger
from ecm_docusign.models.envelope import EnvelopeStatus, SignatureEnvelope, SignatureProvider

from .base import (
    AdapterFeature,
    DocumentContentPort,
    DocumentPort,
    EnvelopeNotFoundError,
    SignatureEnvelopePort,
    SignatureError,
    UnmappedStatusError,
    ecm_adapter,
)
from .docusign_client import DocuSignApiClient
from .id_index import EnvelopeIdIndex

logger = get_logger(__name__)

PROVIDER = SignatureProvider.DOCUSIGN.value

# Internal status -> DocuSign list filter. Anything else lists all envelopes.
STATUS_TO_DOCUSIGN = {
    EnvelopeStatus.DRAFT: "created",
    EnvelopeStatus.SENT: "sent",
    EnvelopeStatus.COMPLETED: "completed",
    EnvelopeStatus.VOIDED: "voided",
}
DOCUSIGN_ANY_STATUS = "any"

# DocuSign statuses whose name differs from the internal enum member
DOCUSIGN_STATUS_ALIASES = {
    "created": EnvelopeStatus.DRAFT,
}


def map_to_docusign_status(status: Optional[EnvelopeStatus]) -> str:
    """Translate an internal status into DocuSign's status vocabulary."""
    return STATUS_TO_DOCUSIGN.get(status, DOCUSIGN_ANY_STATUS)


def map_from_docusign_status(docusign_status: Optional[str], envelope_id: Optional[str] = None) -> EnvelopeStatus:
    """
    Translate a DocuSign status string into EnvelopeStatus.

    Matching is case-insensitive. Unknown values raise UnmappedStatusError
    instead of falling back to a default.
    """
    if not docusign_status:
        raise UnmappedStatusError(docusign_status, PROVIDER, envelope_id)

    normalized = docusign_status.strip().lower()
    if normalized in DOCUSIGN_STATUS_ALIASES:
        return DOCUSIGN_STATUS_ALIASES[normalized]

    try:
        return EnvelopeStatus[normalized.upper()]
    except KeyError:
        raise UnmappedStatusError(docusign_status, PROVIDER, envelope_id) from None


@ecm_adapter(
    SignatureProvider.DOCUSIGN,
    description="DocuSign eSignature Envelope Adapter",
    supported_features=(
        AdapterFeature.ESIGNATURE_ENVELOPES,
        AdapterFeature.ESIGNATURE_REQUESTS,
        AdapterFeature.SIGNATURE_VALIDATION,
    ),
    required_properties=("integration-key", "user-id", "account-id", "private-key"),
    optional_properties=("base-url", "auth-server", "sandbox-mode", "return-url"),
)
class DocuSignSignatureEnvelopeAdapter(SignatureEnvelopePort):
    """SignatureEnvelopePort implementation backed by DocuSign."""

    def __init__(
        self,
        api_client: DocuSignApiClient,
        settings: DocuSignSettings,
        document_content_port: Optional[DocumentContentPort] = None,
        document_port: Optional[DocumentPort] = None,
        id_index: Optional[EnvelopeIdIndex] = None,
    ):
        """
        Initialize the DocuSign envelope adapter.

        Args:
            api_client: Authenticated DocuSign API client
            settings: DocuSign adapter settings
            document_content_port: Document content source, reserved for document population
            document_port: Document metadata source, reserved for document population
            id_index: Envelope id correlation index (a fresh one by default)
        """
        self.api_client = api_client
        self.settings = settings
        self.account_id = settings.account_id
        self.document_content_port = document_content_port
        self.document_port = document_port
        self.id_index = id_index if id_index is not None else EnvelopeIdIndex()

        logger.info(
            "docusign.adapter.initialized",
            account_id=self.account_id,
            document_integration=document_content_port is not None,
        )

    async def create_envelope(self, envelope: SignatureEnvelope) -> SignatureEnvelope:
        envelope_id = envelope.id or uuid.uuid4()
        envelope_definition = self._build_envelope_definition(envelope)

        summary = await self.api_client.create_envelope(self.account_id, envelope_definition)
        docusign_envelope_id = summary.get("envelopeId")
        if not docusign_envelope_id:
            raise SignatureError(
                "DocuSign did not return an envelope id", "no_envelope_id", PROVIDER, summary, str(envelope_id)
            )
        self.id_index.bind(envelope_id, docusign_envelope_id)

        logger.info(
            "docusign.envelope.created",
            envelope_id=str(envelope_id),
            docusign_envelope_id=docusign_envelope_id,
        )

        now = datetime.now(timezone.utc)
        return envelope.with_changes(
            id=envelope_id,
            external_envelope_id=docusign_envelope_id,
            status=EnvelopeStatus.DRAFT,
            provider=SignatureProvider.DOCUSIGN,
            created_at=now,
            modified_at=now,
        )

    async def get_envelope(self, envelope_id: UUID) -> SignatureEnvelope:
        docusign_envelope_id = self._require_external_id(envelope_id)
        docusign_envelope = await self.api_client.get_envelope(self.account_id, docusign_envelope_id)
        return self._build_signature_envelope(envelope_id, docusign_envelope)

    async def update_envelope(self, envelope: SignatureEnvelope) -> SignatureEnvelope:
        """
        Push title and description to DocuSign.

        Only ``emailSubject`` and ``emailBlurb`` are sent; the returned
        envelope is the caller's copy with ``modified_at`` refreshed, not a
        re-read of the provider state.
        """
        docusign_envelope_id = self._require_external_id(envelope.id)
        await self.api_client.update_envelope(
            self.account_id,
            docusign_envelope_id,
            {"emailSubject": envelope.title, "emailBlurb": envelope.description},
        )
        logger.info("docusign.envelope.updated", envelope_id=str(envelope.id))
        return envelope.with_changes(modified_at=datetime.now(timezone.utc))

    async def delete_envelope(self, envelope_id: UUID) -> None:
        docusign_envelope_id = self._require_external_id(envelope_id)
        await self.api_client.update_envelope(self.account_id, docusign_envelope_id, {"status": "voided"})
        self.id_index.unbind(envelope_id)
        logger.info(
            "docusign.envelope.deleted",
            envelope_id=str(envelope_id),
            docusign_envelope_id=docusign_envelope_id,
        )

    async def send_envelope(self, envelope_id: UUID, sent_by: Optional[UUID] = None) -> SignatureEnvelope:
        docusign_envelope_id = self._require_external_id(envelope_id)
        await self.api_client.update_envelope(self.account_id, docusign_envelope_id, {"status": "sent"})
        logger.info("docusign.envelope.sent", envelope_id=str(envelope_id))
        return await self.get_envelope(envelope_id)

    async def void_envelope(
        self,
        envelope_id: UUID,
        void_reason: str,
        voided_by: Optional[UUID] = None
    ) -> SignatureEnvelope:
        docusign_envelope_id = self._require_external_id(envelope_id)
        await self.api_client.update_envelope(
            self.account_id,
            docusign_envelope_id,
            {"status": "voided", "voidedReason": void_reason},
        )
        logger.info("docusign.envelope.voided", envelope_id=str(envelope_id), reason=void_reason)
        return await self.get_envelope(envelope_id)

    async def exists_envelope(self, envelope_id: UUID) -> bool:
        docusign_envelope_id = self.id_index.external_id_for(envelope_id)
        if docusign_envelope_id is None:
            return False

        try:
            await self.api_client.get_envelope(self.account_id, docusign_envelope_id)
            return True
        except Exception as e:
            # Not found and transient failures are reported alike
            logger.warning(
                "docusign.envelope.exists_check_failed",
                envelope_id=str(envelope_id),
                error=str(e),
            )
            return False

    async def get_envelopes_by_status(
        self,
        status: EnvelopeStatus,
        limit: Optional[int] = None
    ) -> List[SignatureEnvelope]:
        docusign_status = map_to_docusign_status(status)
        try:
            docusign_envelopes = await self.api_client.list_status_changes(
                self.account_id,
                status=docusign_status,
                count=limit,
            )
        except Exception as e:
            logger.warning(
                "docusign.envelope.list_failed",
                status=docusign_status,
                error=str(e),
            )
            return []

        return [self._build_signature_envelope_from_listing(envelope) for envelope in docusign_envelopes]

    async def get_envelopes_by_creator(self, created_by: UUID, limit: Optional[int] = None) -> List[SignatureEnvelope]:
        return []

    async def get_envelopes_by_sender(self, sent_by: UUID, limit: Optional[int] = None) -> List[SignatureEnvelope]:
        return []

    async def get_envelopes_by_provider(
        self,
        provider: SignatureProvider,
        limit: Optional[int] = None
    ) -> List[SignatureEnvelope]:
        return []

    async def get_expiring_envelopes(self, from_time: datetime, to_time: datetime) -> List[SignatureEnvelope]:
        return []

    async def get_completed_envelopes(self, from_time: datetime, to_time: datetime) -> List[SignatureEnvelope]:
        return []

    async def get_envelope_by_external_id(
        self,
        external_envelope_id: str,
        provider: SignatureProvider = SignatureProvider.DOCUSIGN
    ) -> Optional[SignatureEnvelope]:
        envelope_id = self.id_index.internal_id_for(external_envelope_id)
        if envelope_id is None:
            return None
        return await self.get_envelope(envelope_id)

    async def sync_envelope_status(self, envelope_id: UUID) -> SignatureEnvelope:
        return await self.get_envelope(envelope_id)

    async def get_signing_url(
        self,
        envelope_id: UUID,
        signer_email: str,
        signer_name: str,
        client_user_id: Optional[str] = None
    ) -> str:
        raise NotImplementedError("Embedded signing URL not implemented for DocuSign")

    async def resend_envelope(self, envelope_id: UUID) -> None:
        return None

    async def archive_envelope(self, envelope_id: UUID) -> SignatureEnvelope:
        return await self.get_envelope(envelope_id)

    def _require_external_id(self, envelope_id: Optional[UUID]) -> str:
        docusign_envelope_id = self.id_index.external_id_for(envelope_id) if envelope_id else None
        if docusign_envelope_id is None:
            raise EnvelopeNotFoundError(envelope_id, PROVIDER)
        return docusign_envelope_id

    def _build_envelope_definition(self, envelope: SignatureEnvelope) -> Dict[str, Any]:
        """Build the minimal DocuSign envelope definition for a draft."""
        # TODO: populate documents and recipients through document_port/document_content_port
        return {
            "emailSubject": envelope.title,
            "emailBlurb": envelope.description,
            "status": "created",
        }

    def _build_signature_envelope(self, envelope_id: UUID, docusign_envelope: Dict[str, Any]) -> SignatureEnvelope:
        docusign_envelope_id = docusign_envelope.get("envelopeId")
        return SignatureEnvelope(
            id=envelope_id,
            title=docusign_envelope.get("emailSubject"),
            description=docusign_envelope.get("emailBlurb"),
            status=map_from_docusign_status(docusign_envelope.get("status"), docusign_envelope_id),
            provider=SignatureProvider.DOCUSIGN,
            external_envelope_id=docusign_envelope_id,
        )

    def _build_signature_envelope_from_listing(self, docusign_envelope: Dict[str, Any]) -> SignatureEnvelope:
        # Envelopes not created through this adapter get a transient id
        envelope_id = self.id_index.internal_id_for(docusign_envelope.get("envelopeId", "")) or uuid.uuid4()
        return self._build_signature_envelope(envelope_id, docusign_envelope)
