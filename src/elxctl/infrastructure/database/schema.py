"""SQLAlchemy Core table definitions for the elxctl database.

Columns the scanner and list queries filter on are stored as real
columns; the rest of the record (cargo, parties, pricing, ledgers) lives
in the JSON ``document`` column and is validated on the way in and out
by :class:`~elxctl.domain.shipment.ShipmentRecord`.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

shipments = Table(
    "shipments",
    metadata,
    Column("id", Text, primary_key=True),
    Column("reference", Text, nullable=False, unique=True),
    Column("customer_id", Text, nullable=False),
    Column("cargo_type", Text, nullable=False),
    Column("mode", Text, nullable=False),
    Column("status", Text, nullable=False),
    Column("pending_sent", Integer, nullable=False, default=0, server_default="0"),
    Column("delivered_sent", Integer, nullable=False, default=0, server_default="0"),
    Column("is_deleted", Integer, nullable=False, default=0, server_default="0"),
    Column("version", Integer, nullable=False, default=1, server_default="1"),
    Column("document", Text, nullable=False),  # JSON body of the record
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

Index("ix_shipments_status", shipments.c.status)
Index("ix_shipments_customer_created", shipments.c.customer_id, shipments.c.created_at)
Index("ix_shipments_deleted", shipments.c.is_deleted)

reference_counters = Table(
    "reference_counters",
    metadata,
    Column("prefix", Text, nullable=False),
    Column("year", Integer, nullable=False),
    Column("next_value", Integer, nullable=False, default=1, server_default="1"),
    UniqueConstraint("prefix", "year"),
)
