"""Approver directory over the platform's user / role tables."""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


class RoleApproverDirectory:
    """IApproverDirectory backed by the identity module's tables in the same database.

    Reads app_user, user_role and role; this service never writes them.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def resolve_users_with_role(self, tenant_id: str, role: str) -> list[str]:
        """Return distinct emails of active users holding the role code in the agency."""
        stmt = text("""
            SELECT DISTINCT lower(u.email)
            FROM app_user u
            JOIN user_role ur ON ur.user_id = u.id AND ur.tenant_id = u.tenant_id
            JOIN role r ON r.id = ur.role_id AND r.tenant_id = ur.tenant_id
            WHERE u.tenant_id = :tenant_id
              AND r.code = :role_code
              AND r.is_active = true
              AND u.is_active = true
              AND (ur.expires_at IS NULL OR ur.expires_at > now())
            ORDER BY 1
        """)
        result = await self.db.execute(stmt, {"tenant_id": tenant_id, "role_code": role})
        return [row[0] for row in result.fetchall() if row[0]]
