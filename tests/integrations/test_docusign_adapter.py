"""
DocuSign Signature Envelope Adapter Tests

Exercises the envelope lifecycle, id correlation and status mapping
against an in-memory DocuSign client.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from ecm_docusign.integrations.esignature.base import (
    AdapterFeature,
    EnvelopeNotFoundError,
    SignatureEnvelopePort,
    SignatureEnvelopePortFactory,
    SignatureError,
    UnmappedStatusError,
)
from ecm_docusign.integrations.esignature.docusign_adapter import (
    DocuSignSignatureEnvelopeAdapter,
    map_from_docusign_status,
    map_to_docusign_status,
)
from ecm_docusign.models.envelope import EnvelopeStatus, SignatureEnvelope, SignatureProvider


@pytest.fixture
def nda() -> SignatureEnvelope:
    return SignatureEnvelope(title="NDA", description="Please sign")


class TestAdapterRegistration:
    """Adapter metadata and port compliance."""

    def test_adapter_implements_port(self, adapter):
        assert isinstance(adapter, SignatureEnvelopePort)

    def test_adapter_info(self):
        info = DocuSignSignatureEnvelopeAdapter.adapter_info
        assert info.type == "docusign"
        assert info.description == "DocuSign eSignature Envelope Adapter"
        assert info.supports(AdapterFeature.ESIGNATURE_ENVELOPES)
        assert info.supports(AdapterFeature.SIGNATURE_VALIDATION)
        assert not info.supports(AdapterFeature.DOCUMENT_STORAGE)
        assert info.required_properties == ("integration-key", "user-id", "account-id", "private-key")
        assert "sandbox-mode" in info.optional_properties

    def test_factory_registration(self, fake_client, docusign_settings):
        assert SignatureProvider.DOCUSIGN in SignatureEnvelopePortFactory.get_supported_providers()
        assert SignatureEnvelopePortFactory.get_adapter_info(SignatureProvider.DOCUSIGN).type == "docusign"

        port = SignatureEnvelopePortFactory.create_port(
            SignatureProvider.DOCUSIGN,
            api_client=fake_client,
            settings=docusign_settings,
        )
        assert isinstance(port, DocuSignSignatureEnvelopeAdapter)
        assert port.account_id == "aid"

    def test_factory_rejects_unregistered_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider type"):
            SignatureEnvelopePortFactory.create_port(SignatureProvider.ADOBE_SIGN)


class TestCreateEnvelope:

    @pytest.mark.asyncio
    async def test_create_assigns_identity(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)

        assert isinstance(created.id, uuid.UUID)
        assert created.external_envelope_id
        assert created.status == EnvelopeStatus.DRAFT
        assert created.provider == SignatureProvider.DOCUSIGN
        assert created.created_at is not None
        assert created.created_at == created.modified_at
        assert created.created_at.tzinfo == timezone.utc
        assert created.title == "NDA"

        # Original value is untouched
        assert nda.id is None
        assert nda.external_envelope_id is None

        assert fake_client.created_definitions == [
            {"emailSubject": "NDA", "emailBlurb": "Please sign", "status": "created"}
        ]

    @pytest.mark.asyncio
    async def test_create_keeps_supplied_id(self, adapter, nda):
        envelope_id = uuid.uuid4()
        created = await adapter.create_envelope(nda.with_changes(id=envelope_id))

        assert created.id == envelope_id
        assert adapter.id_index.external_id_for(envelope_id) == created.external_envelope_id

    @pytest.mark.asyncio
    async def test_create_without_envelope_id_in_response(self, adapter, fake_client, nda):
        fake_client.create_envelope = AsyncMock(return_value={"status": "created"})
        envelope_id = uuid.uuid4()

        with pytest.raises(SignatureError) as exc_info:
            await adapter.create_envelope(nda.with_changes(id=envelope_id))

        assert exc_info.value.error_code == "no_envelope_id"
        assert exc_info.value.provider == "docusign"
        assert envelope_id not in adapter.id_index
        assert len(adapter.id_index) == 0

    @pytest.mark.asyncio
    async def test_create_forces_draft_status(self, adapter, nda):
        created = await adapter.create_envelope(nda.with_changes(status=EnvelopeStatus.COMPLETED))
        assert created.status == EnvelopeStatus.DRAFT

    @pytest.mark.asyncio
    async def test_create_failure_records_nothing(self, adapter, fake_client, nda):
        fake_client.fail_with = SignatureError("DocuSign server error", "SERVER_ERROR", "docusign")

        with pytest.raises(SignatureError):
            await adapter.create_envelope(nda)

        assert len(adapter.id_index) == 0

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_ids(self, adapter, nda):
        created = await asyncio.gather(*(adapter.create_envelope(nda) for _ in range(10)))

        assert len({envelope.id for envelope in created}) == 10
        assert len({envelope.external_envelope_id for envelope in created}) == 10
        assert len(adapter.id_index) == 10


class TestGetEnvelope:

    @pytest.mark.asyncio
    async def test_get_after_create(self, adapter, nda):
        created = await adapter.create_envelope(nda)

        fetched = await adapter.get_envelope(created.id)

        assert fetched.id == created.id
        assert fetched.external_envelope_id == created.external_envelope_id
        assert fetched.title == "NDA"
        assert fetched.description == "Please sign"
        assert fetched.status == EnvelopeStatus.DRAFT
        assert fetched.provider == SignatureProvider.DOCUSIGN

    @pytest.mark.asyncio
    async def test_get_unknown_envelope(self, adapter):
        envelope_id = uuid.uuid4()

        with pytest.raises(EnvelopeNotFoundError) as exc_info:
            await adapter.get_envelope(envelope_id)

        assert exc_info.value.error_code == "NOT_FOUND"
        assert exc_info.value.envelope_id == str(envelope_id)

    @pytest.mark.asyncio
    async def test_get_maps_status_case_insensitively(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)
        fake_client.envelopes[created.external_envelope_id]["status"] = "Completed"

        fetched = await adapter.get_envelope(created.id)

        assert fetched.status == EnvelopeStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_get_with_unmapped_status(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)
        fake_client.envelopes[created.external_envelope_id]["status"] = "timedout"

        with pytest.raises(UnmappedStatusError) as exc_info:
            await adapter.get_envelope(created.id)

        assert exc_info.value.status == "timedout"

    @pytest.mark.asyncio
    async def test_sync_and_archive_return_current_state(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)
        fake_client.envelopes[created.external_envelope_id]["status"] = "delivered"

        synced = await adapter.sync_envelope_status(created.id)
        archived = await adapter.archive_envelope(created.id)

        assert synced.status == EnvelopeStatus.DELIVERED
        assert archived == synced


class TestUpdateEnvelope:

    @pytest.mark.asyncio
    async def test_update_pushes_subject_and_message(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)

        updated = await adapter.update_envelope(
            created.with_changes(title="NDA v2", description="Updated terms", status=EnvelopeStatus.SENT)
        )

        assert fake_client.updates[-1] == {
            "envelope_id": created.external_envelope_id,
            "emailSubject": "NDA v2",
            "emailBlurb": "Updated terms",
        }
        assert updated.title == "NDA v2"
        # Returned value is not reconciled with DocuSign
        assert updated.status == EnvelopeStatus.SENT
        assert updated.created_at == created.created_at
        assert updated.modified_at >= created.modified_at

        remote = await adapter.get_envelope(created.id)
        assert remote.status == EnvelopeStatus.DRAFT
        assert remote.title == "NDA v2"

    @pytest.mark.asyncio
    async def test_update_unknown_envelope(self, adapter, fake_client, nda):
        with pytest.raises(EnvelopeNotFoundError):
            await adapter.update_envelope(nda.with_changes(id=uuid.uuid4()))

        with pytest.raises(EnvelopeNotFoundError):
            await adapter.update_envelope(nda)

        assert fake_client.updates == []


class TestDeleteEnvelope:

    @pytest.mark.asyncio
    async def test_delete_voids_and_forgets(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)

        result = await adapter.delete_envelope(created.id)

        assert result is None
        assert fake_client.envelopes[created.external_envelope_id]["status"] == "voided"
        assert adapter.id_index.external_id_for(created.id) is None
        assert adapter.id_index.internal_id_for(created.external_envelope_id) is None

        with pytest.raises(EnvelopeNotFoundError):
            await adapter.get_envelope(created.id)
        assert await adapter.get_envelope_by_external_id(created.external_envelope_id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_envelope(self, adapter):
        with pytest.raises(EnvelopeNotFoundError):
            await adapter.delete_envelope(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_delete_keeps_mapping_when_provider_fails(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)
        fake_client.fail_with = SignatureError("Rate limit exceeded", "RATE_LIMIT", "docusign")

        with pytest.raises(SignatureError):
            await adapter.delete_envelope(created.id)

        assert created.id in adapter.id_index


class TestStatusTransitions:

    @pytest.mark.asyncio
    async def test_nda_lifecycle(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)
        assert created.status == EnvelopeStatus.DRAFT
        assert created.external_envelope_id is not None

        sent = await adapter.send_envelope(created.id, sent_by=uuid.uuid4())
        assert sent.status == EnvelopeStatus.SENT

        voided = await adapter.void_envelope(created.id, "superseded", voided_by=uuid.uuid4())
        assert voided.status == EnvelopeStatus.VOIDED
        assert fake_client.updates[-1] == {
            "envelope_id": created.external_envelope_id,
            "status": "voided",
            "voidedReason": "superseded",
        }

        fetched = await adapter.get_envelope(created.id)
        assert fetched.status == EnvelopeStatus.VOIDED

    @pytest.mark.asyncio
    async def test_send_unknown_envelope(self, adapter):
        with pytest.raises(EnvelopeNotFoundError):
            await adapter.send_envelope(uuid.uuid4(), sent_by=uuid.uuid4())

    @pytest.mark.asyncio
    async def test_void_unknown_envelope(self, adapter):
        with pytest.raises(EnvelopeNotFoundError):
            await adapter.void_envelope(uuid.uuid4(), "superseded")


class TestExistsEnvelope:

    @pytest.mark.asyncio
    async def test_never_created(self, adapter):
        assert await adapter.exists_envelope(uuid.uuid4()) is False

    @pytest.mark.asyncio
    async def test_fresh_envelope(self, adapter, nda):
        created = await adapter.create_envelope(nda)
        assert await adapter.exists_envelope(created.id) is True

    @pytest.mark.asyncio
    async def test_deleted_envelope(self, adapter, nda):
        created = await adapter.create_envelope(nda)
        await adapter.delete_envelope(created.id)
        assert await adapter.exists_envelope(created.id) is False

    @pytest.mark.asyncio
    async def test_provider_error_reads_as_missing(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)
        fake_client.fail_with = SignatureError("DocuSign server error", "SERVER_ERROR", "docusign")

        assert await adapter.exists_envelope(created.id) is False


class TestEnvelopeListing:

    @pytest.mark.asyncio
    async def test_list_by_status(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)
        await adapter.send_envelope(created.id)
        fake_client.add_remote_envelope("completed", subject="Lease")

        sent = await adapter.get_envelopes_by_status(EnvelopeStatus.SENT, 10)

        assert fake_client.list_calls[-1] == {"status": "sent", "count": 10}
        assert [envelope.id for envelope in sent] == [created.id]
        assert sent[0].status == EnvelopeStatus.SENT

    @pytest.mark.asyncio
    async def test_list_assigns_transient_ids_to_foreign_envelopes(self, adapter, fake_client):
        external_id = fake_client.add_remote_envelope("completed", subject="Lease")

        completed = await adapter.get_envelopes_by_status(EnvelopeStatus.COMPLETED, None)

        assert len(completed) == 1
        assert completed[0].external_envelope_id == external_id
        assert isinstance(completed[0].id, uuid.UUID)
        assert completed[0].title == "Lease"
        assert adapter.id_index.internal_id_for(external_id) is None

    @pytest.mark.asyncio
    async def test_list_respects_limit(self, adapter, fake_client):
        for _ in range(5):
            fake_client.add_remote_envelope("sent")

        sent = await adapter.get_envelopes_by_status(EnvelopeStatus.SENT, 2)

        assert len(sent) == 2

    @pytest.mark.asyncio
    async def test_unmapped_filter_lists_any(self, adapter, fake_client):
        fake_client.add_remote_envelope("sent")
        fake_client.add_remote_envelope("declined")

        envelopes = await adapter.get_envelopes_by_status(EnvelopeStatus.DECLINED, None)

        assert fake_client.list_calls[-1]["status"] == "any"
        assert {envelope.status for envelope in envelopes} == {EnvelopeStatus.SENT, EnvelopeStatus.DECLINED}

    @pytest.mark.asyncio
    async def test_list_swallows_provider_errors(self, adapter, fake_client):
        fake_client.fail_with = SignatureError("DocuSign server error", "SERVER_ERROR", "docusign")

        assert await adapter.get_envelopes_by_status(EnvelopeStatus.COMPLETED, 10) == []

    @pytest.mark.asyncio
    async def test_unimplemented_queries_are_empty(self, adapter, nda):
        await adapter.create_envelope(nda)
        now = datetime.now(timezone.utc)
        user_id = uuid.uuid4()

        assert await adapter.get_envelopes_by_creator(user_id, 10) == []
        assert await adapter.get_envelopes_by_sender(user_id, 10) == []
        assert await adapter.get_envelopes_by_provider(SignatureProvider.DOCUSIGN, 10) == []
        assert await adapter.get_expiring_envelopes(now, now) == []
        assert await adapter.get_completed_envelopes(now, now) == []


class TestExternalIdLookup:

    @pytest.mark.asyncio
    async def test_lookup_by_external_id(self, adapter, nda):
        created = await adapter.create_envelope(nda)

        found = await adapter.get_envelope_by_external_id(created.external_envelope_id, SignatureProvider.DOCUSIGN)

        assert found.id == created.id

    @pytest.mark.asyncio
    async def test_unknown_external_id(self, adapter, fake_client):
        external_id = fake_client.add_remote_envelope("sent")

        assert await adapter.get_envelope_by_external_id(external_id, SignatureProvider.DOCUSIGN) is None


class TestUnsupportedOperations:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("known", [True, False])
    async def test_signing_url_not_implemented(self, adapter, nda, known):
        envelope_id = (await adapter.create_envelope(nda)).id if known else uuid.uuid4()

        with pytest.raises(NotImplementedError, match="Embedded signing URL not implemented"):
            await adapter.get_signing_url(envelope_id, "signer@example.com", "Signer", "1001")

    @pytest.mark.asyncio
    async def test_resend_is_noop(self, adapter, fake_client, nda):
        created = await adapter.create_envelope(nda)

        assert await adapter.resend_envelope(created.id) is None
        assert fake_client.updates == []


class TestStatusMapping:

    @pytest.mark.parametrize(
        "status,docusign_status",
        [
            (EnvelopeStatus.DRAFT, "created"),
            (EnvelopeStatus.SENT, "sent"),
            (EnvelopeStatus.COMPLETED, "completed"),
            (EnvelopeStatus.VOIDED, "voided"),
        ],
    )
    def test_round_trip(self, status, docusign_status):
        assert map_to_docusign_status(status) == docusign_status
        assert map_from_docusign_status(map_to_docusign_status(status)) == status

    @pytest.mark.parametrize(
        "status",
        [EnvelopeStatus.DELIVERED, EnvelopeStatus.SIGNED, EnvelopeStatus.DECLINED, EnvelopeStatus.EXPIRED, None],
    )
    def test_other_statuses_map_to_any(self, status):
        assert map_to_docusign_status(status) == "any"

    @pytest.mark.parametrize("raw", ["SENT", "Sent", " sent "])
    def test_case_normalization(self, raw):
        assert map_from_docusign_status(raw) == EnvelopeStatus.SENT

    @pytest.mark.parametrize("raw", ["timedout", "any", "", None])
    def test_unknown_status_raises(self, raw):
        with pytest.raises(UnmappedStatusError):
            map_from_docusign_status(raw, "ds-1")
