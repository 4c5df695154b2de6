from .envelope import EnvelopeStatus, SignatureEnvelope, SignatureProvider

__all__ = [
    "EnvelopeStatus",
    "SignatureEnvelope",
    "SignatureProvider",
]
