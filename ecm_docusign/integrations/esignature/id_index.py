"""
Bidirectional index between internal envelope ids and provider envelope ids.
"""

import threading
from typing import Dict, Optional
from uuid import UUID


class EnvelopeIdIndex:
    """
    In-memory correlation of internal UUIDs and external envelope ids.

    Both directions are updated under one lock, so a pair is always added or
    removed as a whole. Re-binding either side drops its previous pair first;
    no id ever maps to more than one counterpart. Nothing is persisted.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_internal: Dict[UUID, str] = {}
        self._by_external: Dict[str, UUID] = {}

    def bind(self, internal_id: UUID, external_id: str) -> None:
        if not external_id:
            raise ValueError("external_id must be a non-empty string")

        with self._lock:
            stale_external = self._by_internal.pop(internal_id, None)
            if stale_external is not None:
                self._by_external.pop(stale_external, None)

            stale_internal = self._by_external.pop(external_id, None)
            if stale_internal is not None:
                self._by_internal.pop(stale_internal, None)

            self._by_internal[internal_id] = external_id
            self._by_external[external_id] = internal_id

    def unbind(self, internal_id: UUID) -> Optional[str]:
        """Remove the pair for ``internal_id`` and return its external id, if any."""
        with self._lock:
            external_id = self._by_internal.pop(internal_id, None)
            if external_id is not None:
                self._by_external.pop(external_id, None)
            return external_id

    def external_id_for(self, internal_id: UUID) -> Optional[str]:
        with self._lock:
            return self._by_internal.get(internal_id)

    def internal_id_for(self, external_id: str) -> Optional[UUID]:
        with self._lock:
            return self._by_external.get(external_id)

    def __contains__(self, internal_id: object) -> bool:
        with self._lock:
            return internal_id in self._by_internal

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_internal)
