"""SQLAlchemy metadata definitions for credential tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

credentials = sa.Table(
    "credentials",
    metadata,
    sa.Column("identity", sa.Text(), primary_key=True, nullable=False),
    sa.Column("display_name", sa.Text(), nullable=False),
    sa.Column("secret_hash", sa.Text(), nullable=False),
    sa.Column("contact_email", sa.Text(), nullable=False),
    sa.Column("contact_phone", sa.Text(), nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("contact_email", name="uq_credentials_contact_email"),
)
