from sqlalchemy import Boolean, Column, DateTime, MetaData, String, Table, Text
from models.base import RecordShape


def _minimal_columns():
    return [
        Column("did", String(255), primary_key=True, nullable=False),
        Column("handle", String(255), nullable=True),
        Column("display_name", String(640), nullable=True),
        Column("avatar", String(2048), nullable=True),
        Column("created_at", DateTime, nullable=True),
        Column("indexed_at", DateTime, nullable=True),
    ]


def _extended_columns():
    return [
        Column("viewer_muted", Boolean, nullable=True),
        Column("viewer_blocked_by", Boolean, nullable=True),
        Column("viewer_following", String(2048), nullable=True),
        Column("labels", Text, nullable=True),  # "type:value,type:value"
        Column("description", Text, nullable=True),
    ]


def build_followers_table(shape: RecordShape, name: str = "followers") -> Table:
    """
    Followers table keyed by `did`.

    Two deployments exist:
    - MINIMAL: identifier, handle, display name, avatar, two timestamps
    - EXTENDED: MINIMAL plus viewer flags, serialized labels and description

    Each call builds the table on its own MetaData so both shapes can share
    a table name.
    """
    columns = _minimal_columns()
    if RecordShape(shape) is RecordShape.EXTENDED:
        columns += _extended_columns()
    return Table(name, MetaData(), *columns)


__all__ = ["RecordShape", "build_followers_table"]
