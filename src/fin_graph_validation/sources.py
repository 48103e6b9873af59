"""Read an exported JSON snapshot from disk.

The exporter writes one JSON array per entity collection
(``transactions.json``, ``afes.json``, ``decks.json``, ``owners.json``).
``metadata.json`` is optional. Its ``nodeCounts`` and ``relationshipCounts``
mappings are a format defined here, not by the exporter, for supplying counts
of types that have no record file (``{"nodeCounts": {"Invoice": 50}}``).
Other metadata keys are ignored.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from fin_graph_validation.models import (
    Authorization,
    CostCenter,
    Owner,
    Snapshot,
    Transaction,
)

logger = logging.getLogger("fin_graph_validation.sources")

TRANSACTIONS_FILE = "transactions.json"
AFES_FILE = "afes.json"
DECKS_FILE = "decks.json"
OWNERS_FILE = "owners.json"
METADATA_FILE = "metadata.json"

RecordT = TypeVar("RecordT", bound=BaseModel)


class SnapshotError(RuntimeError):
    """Raised when a snapshot file exists but cannot be turned into records."""


def _read_payload(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Invalid JSON in snapshot file {path}") from exc


def _load_records(data_dir: Path, file_name: str, model: Type[RecordT]) -> List[RecordT]:
    path = data_dir / file_name
    if not path.exists():
        logger.warning("Snapshot file %s missing; treating as empty", path)
        return []
    payload = _read_payload(path)
    if not isinstance(payload, list):
        raise SnapshotError(f"Snapshot file {path} must contain a JSON array.")
    try:
        return TypeAdapter(List[model]).validate_python(payload)  # type: ignore[valid-type]
    except ValidationError as exc:
        raise SnapshotError(f"Malformed records in {path}: {exc}") from exc


def _metadata_counts(metadata: Mapping[str, Any], key: str) -> Dict[str, int]:
    raw = metadata.get(key)
    if not isinstance(raw, Mapping):
        return {}
    counts: Dict[str, int] = {}
    for name, value in raw.items():
        try:
            counts[str(name)] = int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s entry %s=%r", key, name, value)
    return counts


def load_snapshot(
    data_dir: Path,
    *,
    extra_node_counts: Optional[Mapping[str, int]] = None,
    extra_relationship_counts: Optional[Mapping[str, int]] = None,
    environment: str = "static-data",
) -> Snapshot:
    """Read the exported JSON snapshot under ``data_dir``.

    ``extra_node_counts`` and ``extra_relationship_counts`` cover types the
    export does not write as records. A ``metadata.json`` carrying
    ``nodeCounts``/``relationshipCounts`` takes precedence over them.
    """
    directory = Path(data_dir)
    if not directory.is_dir():
        raise FileNotFoundError(f"Snapshot directory not found: {directory}")

    node_counts = {name: int(count) for name, count in (extra_node_counts or {}).items()}
    rel_counts = {
        name: int(count) for name, count in (extra_relationship_counts or {}).items()
    }
    metadata_path = directory / METADATA_FILE
    if metadata_path.exists():
        metadata = _read_payload(metadata_path)
        if isinstance(metadata, Mapping):
            node_counts.update(_metadata_counts(metadata, "nodeCounts"))
            rel_counts.update(_metadata_counts(metadata, "relationshipCounts"))

    snapshot = Snapshot(
        transactions=_load_records(directory, TRANSACTIONS_FILE, Transaction),
        authorizations=_load_records(directory, AFES_FILE, Authorization),
        cost_centers=_load_records(directory, DECKS_FILE, CostCenter),
        owners=_load_records(directory, OWNERS_FILE, Owner),
        extra_node_counts=node_counts,
        extra_relationship_counts=rel_counts,
        environment=environment,
    )
    logger.info(
        "Loaded snapshot from %s: %d transactions, %d AFEs, %d decks, %d owners",
        directory,
        len(snapshot.transactions),
        len(snapshot.authorizations),
        len(snapshot.cost_centers),
        len(snapshot.owners),
    )
    return snapshot


__all__ = ["SnapshotError", "load_snapshot"]
