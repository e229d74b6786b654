# -*- coding: utf-8 -*-
"""
Provenance Tracking for the Climate Explorer

SHA-256 based audit trail for the load pipeline. Every dataset load, index
build and aggregate computation is appended to an in-memory chain-hashed
log, so a renderer or an export can state exactly which validated dataset a
picture was drawn from.

Entity Types:
    - dataset: Validated record set produced by the record validator
    - index: Scenario/year index built over a dataset
    - aggregate: Derived per-scenario-per-year means

Actions:
    load_dataset, build_index, compute_means

Example:
    >>> from climaview.explorer.provenance import ProvenanceTracker
    >>> tracker = ProvenanceTracker()
    >>> entry = tracker.record("dataset", "load_dataset", "ds_001", {"rows": 3})
    >>> tracker.verify_chain()
    True
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from climaview.explorer.models import Record

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


# ---------------------------------------------------------------------------
# ProvenanceEntry dataclass
# ---------------------------------------------------------------------------


@dataclass
class ProvenanceEntry:
    """A single tamper-evident provenance record.

    Attributes:
        entity_type: dataset, index or aggregate.
        entity_id: Identifier of the entity instance.
        action: load_dataset, build_index or compute_means.
        hash_value: Chain hash of this entry.
        parent_hash: Chain hash of the preceding entry.
        timestamp: UTC ISO-formatted creation time.
        metadata: Data hash plus caller-supplied context.
    """

    entity_type: str
    entity_id: str
    action: str
    hash_value: str
    parent_hash: str
    timestamp: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "hash_value": self.hash_value,
            "parent_hash": self.parent_hash,
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }


VALID_ENTITY_TYPES = frozenset({"dataset", "index", "aggregate"})

VALID_ACTIONS = frozenset({"load_dataset", "build_index", "compute_means"})


# ---------------------------------------------------------------------------
# Record fingerprinting
# ---------------------------------------------------------------------------


def fingerprint_records(records: Iterable[Record]) -> str:
    """Order-sensitive SHA-256 digest of a record sequence.

    Records are streamed into the hash one at a time, so fingerprinting a
    large dataset never materialises a second copy of it.
    """
    digest = hashlib.sha256()
    for rec in records:
        digest.update(
            f"{rec.year}|{rec.lat!r}|{rec.lon!r}|{rec.value!r}|{rec.scenario}\n"
            .encode("utf-8")
        )
    return digest.hexdigest()


# ---------------------------------------------------------------------------
# ProvenanceTracker
# ---------------------------------------------------------------------------


class ProvenanceTracker:
    """Chain-hashed operation log for the explorer load pipeline.

    The genesis hash anchors the chain; every new entry incorporates the
    previous chain hash so tampering is detectable via :meth:`verify_chain`.
    """

    def __init__(self, genesis_hash: str = "climaview-explorer-genesis") -> None:
        self._genesis_hash: str = hashlib.sha256(
            genesis_hash.encode("utf-8")
        ).hexdigest()
        self._chain: List[ProvenanceEntry] = []
        self._last_chain_hash: str = self._genesis_hash
        self._lock = threading.RLock()
        logger.debug(
            "ProvenanceTracker initialized with genesis hash prefix=%s",
            self._genesis_hash[:16],
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(
        self,
        entity_type: str,
        action: str,
        entity_id: str,
        data: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ProvenanceEntry:
        """Append a provenance entry.

        Args:
            entity_type: One of :data:`VALID_ENTITY_TYPES`.
            action: One of :data:`VALID_ACTIONS`.
            entity_id: Unique entity identifier.
            data: Optional JSON-serializable payload; only its hash is kept.
            metadata: Extra contextual fields stored alongside the data hash.

        Returns:
            The newly created :class:`ProvenanceEntry`.

        Raises:
            ValueError: If entity_type or action is unknown, or entity_id
                is empty.
        """
        if entity_type not in VALID_ENTITY_TYPES:
            raise ValueError(
                f"entity_type must be one of {sorted(VALID_ENTITY_TYPES)}, "
                f"got {entity_type!r}"
            )
        if action not in VALID_ACTIONS:
            raise ValueError(
                f"action must be one of {sorted(VALID_ACTIONS)}, got {action!r}"
            )
        if not entity_id:
            raise ValueError("entity_id must not be empty")

        timestamp = _utcnow().isoformat()
        data_hash = self.build_hash(data)
        entry_metadata: Dict[str, Any] = {"data_hash": data_hash}
        if metadata:
            entry_metadata.update(metadata)

        with self._lock:
            parent_hash = self._last_chain_hash
            chain_hash = self._compute_chain_hash(
                parent_hash, data_hash, action, timestamp
            )
            entry = ProvenanceEntry(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                hash_value=chain_hash,
                parent_hash=parent_hash,
                timestamp=timestamp,
                metadata=entry_metadata,
            )
            self._chain.append(entry)
            self._last_chain_hash = chain_hash

        logger.debug(
            "Recorded provenance: %s/%s action=%s hash_prefix=%s",
            entity_type,
            entity_id[:16],
            action,
            chain_hash[:16],
        )
        return entry

    def verify_chain(self) -> bool:
        """Check that every entry links to its predecessor (or the genesis)."""
        with self._lock:
            chain = list(self._chain)

        expected_parent = self._genesis_hash
        for i, entry in enumerate(chain):
            if entry.parent_hash != expected_parent:
                logger.warning(
                    "verify_chain: entry[%d] parent_hash does not match "
                    "the preceding hash",
                    i,
                )
                return False
            recomputed = self._compute_chain_hash(
                entry.parent_hash,
                entry.metadata.get("data_hash", ""),
                entry.action,
                entry.timestamp,
            )
            if recomputed != entry.hash_value:
                logger.warning("verify_chain: entry[%d] hash mismatch", i)
                return False
            expected_parent = entry.hash_value
        return True

    def get_entries(
        self,
        entity_type: Optional[str] = None,
        action: Optional[str] = None,
    ) -> List[ProvenanceEntry]:
        """Return entries in insertion order, optionally filtered."""
        with self._lock:
            entries = list(self._chain)
        if entity_type is not None:
            entries = [e for e in entries if e.entity_type == entity_type]
        if action is not None:
            entries = [e for e in entries if e.action == action]
        return entries

    def export_json(self) -> str:
        """Serialise the whole chain as indented JSON."""
        with self._lock:
            payload = [entry.to_dict() for entry in self._chain]
        return json.dumps(payload, indent=2, default=str)

    def reset(self) -> None:
        """Drop every entry and re-anchor on the genesis hash."""
        with self._lock:
            self._chain.clear()
            self._last_chain_hash = self._genesis_hash

    @property
    def entry_count(self) -> int:
        with self._lock:
            return len(self._chain)

    @property
    def genesis_hash(self) -> str:
        return self._genesis_hash

    @property
    def last_chain_hash(self) -> str:
        with self._lock:
            return self._last_chain_hash

    def __len__(self) -> int:
        return self.entry_count

    def __repr__(self) -> str:
        return (
            f"ProvenanceTracker(entries={self.entry_count}, "
            f"genesis_prefix={self._genesis_hash[:12]})"
        )

    # ------------------------------------------------------------------
    # Hash helpers
    # ------------------------------------------------------------------

    def build_hash(self, data: Optional[Any]) -> str:
        """SHA-256 of canonical JSON (sorted keys, ``str`` fallback)."""
        if data is None:
            serialized = "null"
        else:
            serialized = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()

    @staticmethod
    def _compute_chain_hash(
        parent_hash: str,
        data_hash: str,
        action: str,
        timestamp: str,
    ) -> str:
        combined = json.dumps(
            {
                "action": action,
                "data_hash": data_hash,
                "parent_hash": parent_hash,
                "timestamp": timestamp,
            },
            sort_keys=True,
        )
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()


__all__ = [
    "ProvenanceEntry",
    "VALID_ENTITY_TYPES",
    "VALID_ACTIONS",
    "ProvenanceTracker",
    "fingerprint_records",
]
