"""Base repository: tenant-scoped get / create / update / delete for one model."""

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.exceptions import ResourceNotFoundException
from app.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository over one ORM model whose rows carry tenant_id.

    Every query is scoped by tenant_id. Subclasses convert ORM rows to
    domain entities and add their own queries.
    """

    resource_type: str = "resource"

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    def _scoped(self, tenant_id: str) -> Select[Any]:
        """SELECT model WHERE tenant_id = :tenant_id."""
        model: Any = self.model
        return select(self.model).where(model.tenant_id == tenant_id)

    async def _get(
        self, tenant_id: str, entity_id: str, *, for_update: bool = False
    ) -> ModelType | None:
        """Return a row by id within the tenant, or None. for_update locks it."""
        model: Any = self.model
        stmt = self._scoped(tenant_id).where(model.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _add(self, obj: ModelType) -> ModelType:
        """Persist a new row and reload server defaults."""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def _apply(
        self, tenant_id: str, entity_id: str, changes: dict[str, Any]
    ) -> ModelType:
        """Set attributes on an existing row; raise ResourceNotFoundException if missing."""
        obj = await self._get(tenant_id, entity_id)
        if obj is None:
            raise ResourceNotFoundException(self.resource_type, entity_id)
        for key, value in changes.items():
            setattr(obj, key, value)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def _remove(self, tenant_id: str, entity_id: str) -> None:
        """Delete a row by id within the tenant (DB cascades apply)."""
        model: Any = self.model
        await self.db.execute(
            delete(self.model).where(model.tenant_id == tenant_id, model.id == entity_id)
        )
        await self.db.flush()
