"""
Credential Store - Implémentation mémoire

Index par id, digest, principal et famille. Chaque opération est exécutée
sous un verrou unique sans point d'attente: elle est donc atomique vis-à-vis
des coroutines concurrentes comme des threads.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from .interfaces import (
    CredentialFilter,
    CredentialStoreError,
    DuplicateDigestError,
    ICredentialStore,
    RefreshCredential,
    SwapResult,
    validate_patch,
)


class InMemoryCredentialStore(ICredentialStore):
    """
    Stockage mémoire des credentials.

    Note:
        Adapté aux tests et aux déploiements mono-process.
        Les enregistrements stockés sont des valeurs immuables.

    Example:
        store = InMemoryCredentialStore()
        await store.put(record)
        found = await store.find_by_digest(record.secret_digest)
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, RefreshCredential] = {}
        self._by_digest: Dict[str, str] = {}  # secret_digest -> id
        self._by_principal: Dict[str, Set[str]] = {}  # principal_id -> ids
        self._by_family: Dict[str, Set[str]] = {}  # family_id -> ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    async def put(self, record: RefreshCredential) -> None:
        with self._lock:
            self._insert(record)

    async def find_by_digest(self, secret_digest: str) -> Optional[RefreshCredential]:
        with self._lock:
            record_id = self._by_digest.get(secret_digest)
            if record_id is None:
                return None
            return self._records.get(record_id)

    async def get(self, record_id: str) -> Optional[RefreshCredential]:
        with self._lock:
            return self._records.get(record_id)

    async def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._remove(record_id)

    async def update_many(self, criteria: CredentialFilter, patch: Dict[str, Any]) -> int:
        """
        Raises:
            ValueError: Filtre vide (refus d'un patch sur toute la table)
        """
        if criteria.is_empty():
            raise ValueError("Filtre vide refusé")
        changes = validate_patch(patch)

        with self._lock:
            candidate_ids = self._candidate_ids(criteria)
            updated = 0
            for record_id in candidate_ids:
                record = self._records[record_id]
                if criteria.matches(record):
                    self._records[record_id] = replace(record, **changes)
                    updated += 1
            return updated

    async def list_active(self, principal_id: str, now: datetime) -> List[RefreshCredential]:
        with self._lock:
            ids = self._by_principal.get(principal_id, set())
            active = [self._records[i] for i in ids if self._records[i].is_live(now)]

        active.sort(key=lambda r: r.created_at, reverse=True)
        return active

    async def swap(self, old_id: str, new_record: RefreshCredential, now: datetime) -> SwapResult:
        with self._lock:
            old = self._records.get(old_id)
            if old is None or not old.is_live(now):
                return SwapResult(swapped=False, current=old)

            if new_record.secret_digest in self._by_digest:
                raise DuplicateDigestError("secret_digest déjà présent")

            tombstone = old.mark_revoked(now)
            self._records[old_id] = tombstone
            self._insert(new_record)
            return SwapResult(swapped=True, current=tombstone)

    async def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired_ids = [i for i, r in self._records.items() if r.is_expired(now)]
            for record_id in expired_ids:
                self._remove(record_id)
            return len(expired_ids)

    def _insert(self, record: RefreshCredential) -> None:
        if record.secret_digest in self._by_digest:
            raise DuplicateDigestError("secret_digest déjà présent")
        if record.id in self._records:
            raise CredentialStoreError(f"Identifiant déjà présent: {record.id}")

        self._records[record.id] = record
        self._by_digest[record.secret_digest] = record.id
        self._by_principal.setdefault(record.principal_id, set()).add(record.id)
        if record.family_id is not None:
            self._by_family.setdefault(record.family_id, set()).add(record.id)

    def _remove(self, record_id: str) -> bool:
        record = self._records.pop(record_id, None)
        if record is None:
            return False

        self._by_digest.pop(record.secret_digest, None)
        self._discard_index(self._by_principal, record.principal_id, record_id)
        if record.family_id is not None:
            self._discard_index(self._by_family, record.family_id, record_id)
        return True

    @staticmethod
    def _discard_index(index: Dict[str, Set[str]], key: str, record_id: str) -> None:
        ids = index.get(key)
        if ids is None:
            return
        ids.discard(record_id)
        if not ids:
            del index[key]

    def _candidate_ids(self, criteria: CredentialFilter) -> List[str]:
        if criteria.record_id is not None:
            return [criteria.record_id] if criteria.record_id in self._records else []
        if criteria.family_id is not None:
            return list(self._by_family.get(criteria.family_id, set()))
        if criteria.principal_id is not None:
            return list(self._by_principal.get(criteria.principal_id, set()))
        return list(self._records)
