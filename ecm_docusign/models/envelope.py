"""
Signature envelope domain model.

Provider-neutral representation of an e-signature envelope. Instances are
immutable; adapters hand back modified copies via ``with_changes``.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID


class EnvelopeStatus(str, Enum):
    """Envelope lifecycle status."""
    DRAFT = "DRAFT"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    SIGNED = "SIGNED"
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"
    VOIDED = "VOIDED"
    EXPIRED = "EXPIRED"


class SignatureProvider(str, Enum):
    """Supported e-signature providers."""
    DOCUSIGN = "docusign"
    ADOBE_SIGN = "adobe_sign"
    HELLOSIGN = "hellosign"


@dataclass(frozen=True)
class SignatureEnvelope:
    """A signature request package tracked through its provider's lifecycle."""
    title: Optional[str] = None
    description: Optional[str] = None
    id: Optional[UUID] = None
    external_envelope_id: Optional[str] = None
    status: EnvelopeStatus = EnvelopeStatus.DRAFT
    provider: Optional[SignatureProvider] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    def with_changes(self, **changes: Any) -> "SignatureEnvelope":
        return replace(self, **changes)
