"""
Data Products - Warehouse Table Schemas.

============================================================
RESPONSIBILITY
============================================================
Defines the fixed warehouse schema of every health category.

- One table per category
- anonymousUserId (STRING, REQUIRED) on every table
- exportedAt (TIMESTAMP) on every table
- Day-partitioned on timestamp, clustered by anonymousUserId

Tables are created once, lazily, and never migrated or dropped
by the pipeline.

============================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from core.constants import (
    ANONYMOUS_USER_ID_FIELD,
    EVENT_TIME_FIELD,
    EXPORTED_AT_FIELD,
)
from record_store.models import HealthCategory


# ============================================================
# FIELD TYPES
# ============================================================

STRING = "STRING"
FLOAT = "FLOAT"
INTEGER = "INTEGER"
TIMESTAMP = "TIMESTAMP"

NULLABLE = "NULLABLE"
REQUIRED = "REQUIRED"
REPEATED = "REPEATED"


@dataclass(frozen=True)
class FieldSpec:
    """One column of a warehouse table."""
    name: str
    field_type: str
    mode: str = NULLABLE

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.field_type, "mode": self.mode}


@dataclass(frozen=True)
class TableSchema:
    """Schema, partitioning and clustering of one category table."""
    table_name: str
    fields: Tuple[FieldSpec, ...]
    partition_field: str = EVENT_TIME_FIELD
    cluster_fields: Tuple[str, ...] = field(default=(ANONYMOUS_USER_ID_FIELD,))

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def repeated_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.mode == REPEATED)


def _table(category: HealthCategory, *measures: FieldSpec) -> TableSchema:
    return TableSchema(
        table_name=category.table_name,
        fields=(
            FieldSpec(ANONYMOUS_USER_ID_FIELD, STRING, REQUIRED),
            *measures,
            FieldSpec(EVENT_TIME_FIELD, TIMESTAMP),
            FieldSpec(EXPORTED_AT_FIELD, TIMESTAMP),
        ),
    )


# ============================================================
# CATEGORY SCHEMAS
# ============================================================

TABLE_SCHEMAS: Dict[HealthCategory, TableSchema] = {
    HealthCategory.FOOD: _table(
        HealthCategory.FOOD,
        FieldSpec("name", STRING),
        FieldSpec("calories", FLOAT),
        FieldSpec("protein", FLOAT),
        FieldSpec("carbs", FLOAT),
        FieldSpec("fat", FLOAT),
        FieldSpec("fiber", FLOAT),
        FieldSpec("meal", STRING),
        FieldSpec("quantity", FLOAT),
    ),
    HealthCategory.EXERCISE: _table(
        HealthCategory.EXERCISE,
        FieldSpec("name", STRING),
        FieldSpec("type", STRING),
        FieldSpec("duration", INTEGER),
        FieldSpec("calories", FLOAT),
        FieldSpec("intensity", STRING),
    ),
    HealthCategory.WATER: _table(
        HealthCategory.WATER,
        FieldSpec("amount", FLOAT),
    ),
    HealthCategory.SLEEP: _table(
        HealthCategory.SLEEP,
        FieldSpec("duration", FLOAT),
        FieldSpec("quality", INTEGER),
        FieldSpec("bedtime", STRING),
        FieldSpec("wakeTime", STRING),
    ),
    HealthCategory.MOOD: _table(
        HealthCategory.MOOD,
        FieldSpec("rating", INTEGER),
        FieldSpec("factors", STRING, REPEATED),
    ),
}


def get_schema(category: HealthCategory) -> TableSchema:
    return TABLE_SCHEMAS[HealthCategory(category)]
