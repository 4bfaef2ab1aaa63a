"""Column mixins shared by the workflow tables.

Every row has a CUID2 id, the owning agency's tenant_id and created_at.
Mutable rows also carry updated_at (MultiTenantModel); the append-only
version snapshots do not (SnapshotModel).
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from app.shared.utils.generators import generate_cuid


class CuidMixin:
    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class TenantMixin:
    """Agencies live in the platform's tenant service, so tenant_id is an
    indexed opaque key rather than a foreign key."""

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(String(64), nullable=False, index=True)


class CreatedAtMixin:
    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class UpdatedAtMixin:
    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class SnapshotModel(CuidMixin, TenantMixin, CreatedAtMixin):
    """Insert-only rows: id, tenant_id, created_at."""

    __abstract__ = True


class MultiTenantModel(SnapshotModel, UpdatedAtMixin):
    """Mutable rows: id, tenant_id, created_at, updated_at."""

    __abstract__ = True
