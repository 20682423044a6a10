# microtools/models/objects_table.py
# The single persisted entity: an id-keyed, type-tagged JSON payload with timestamps

from sqlalchemy import JSON, Column, Index, Table, Text
from sqlalchemy.dialects.postgresql import JSONB

from microtools.db.base import metadata
from microtools.db.types import UTCDateTime


objects = Table(
    'objects',
    metadata,
    Column('id', Text, primary_key=True),  # URL-safe random id
    Column('type', Text, nullable=False),  # owning tool, opaque to the store
    Column('data', JSON().with_variant(JSONB(), 'postgresql'), nullable=False),
    Column('created_at', UTCDateTime(), nullable=False),
    Column('expires_at', UTCDateTime(), nullable=True),  # NULL = never expires
    Index('ix_objects_expires_at', 'expires_at'),
)
