from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Mapping, Sequence

import polars as pl
from pydantic import BaseModel

from fin_graph_validation.models import Snapshot

if TYPE_CHECKING:  # pragma: no cover
    from fin_graph_validation.schema import ExpectedSchema, NodeSpec


@dataclass
class EntityProfile:
    node_type: str
    row_count: int
    rows_with_nulls: int = 0
    null_counts: Dict[str, int] = field(default_factory=dict)
    duplicate_keys: Dict[str, int] = field(default_factory=dict)

    @property
    def missing_properties(self) -> List[str]:
        return [name for name, count in self.null_counts.items() if count]

    @property
    def key_null_pct(self) -> float:
        if self.row_count == 0:
            return 0.0
        return self.rows_with_nulls * 100.0 / self.row_count

    @property
    def total_duplicates(self) -> int:
        return sum(self.duplicate_keys.values())


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def records_frame(records: Sequence[BaseModel], columns: Sequence[str]) -> pl.DataFrame:
    """Project typed records onto ``columns``; blank strings become nulls."""
    data = {
        column: [_blank_to_none(getattr(record, column, None)) for record in records]
        for column in columns
    }
    return pl.DataFrame(data, strict=False)


def rows_with_nulls(df: pl.DataFrame, columns: Sequence[str]) -> int:
    if not columns or df.height == 0:
        return 0
    null_any = pl.any_horizontal([pl.col(col).is_null() for col in columns])
    return int(df.select(null_any.sum()).item() or 0)


def key_null_pct(df: pl.DataFrame, columns: Sequence[str]) -> float:
    if df.height == 0:
        return 0.0
    return rows_with_nulls(df, columns) * 100.0 / df.height


def null_counts(df: pl.DataFrame, columns: Sequence[str]) -> Dict[str, int]:
    if not columns or df.height == 0:
        return {column: 0 for column in columns}
    row = df.select([pl.col(col).is_null().sum().alias(col) for col in columns]).row(
        0, named=True
    )
    return {column: int(row[column] or 0) for column in columns}


def dup_key_count(df: pl.DataFrame, column: str) -> int:
    if df.height == 0 or column not in df.columns:
        return 0
    values = df.get_column(column).drop_nulls()
    return values.len() - values.n_unique()


def profile_entity(
    node_type: str, records: Sequence[BaseModel], spec: "NodeSpec"
) -> EntityProfile:
    columns = list(dict.fromkeys([*spec.required_properties, *spec.unique_constraints]))
    df = records_frame(records, columns)
    return EntityProfile(
        node_type=node_type,
        row_count=len(records),
        null_counts=null_counts(df, spec.required_properties),
        rows_with_nulls=rows_with_nulls(df, spec.required_properties),
        duplicate_keys={
            column: dup_key_count(df, column) for column in spec.unique_constraints
        },
    )


def snapshot_collections(snapshot: Snapshot) -> Mapping[str, Sequence[BaseModel]]:
    return {
        "Transaction": snapshot.transactions,
        "AFE": snapshot.authorizations,
        "Deck": snapshot.cost_centers,
        "Owner": snapshot.owners,
    }


def profile_snapshot(snapshot: Snapshot, schema: "ExpectedSchema") -> List[EntityProfile]:
    profiles: List[EntityProfile] = []
    collections = snapshot_collections(snapshot)
    for node_type, spec in schema.nodes.items():
        records = collections.get(node_type)
        if records is None:
            continue
        profiles.append(profile_entity(node_type, records, spec))
    return profiles


__all__ = [
    "EntityProfile",
    "dup_key_count",
    "key_null_pct",
    "null_counts",
    "profile_entity",
    "profile_snapshot",
    "records_frame",
    "rows_with_nulls",
    "snapshot_collections",
]
