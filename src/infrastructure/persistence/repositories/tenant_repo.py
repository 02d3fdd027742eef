from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.enums import TenantStatus
from src.infrastructure.persistence.models.tenant import Tenant


class TenantRepository:
    """
    Repository for the Tenant root entity.

    Tenants are not tenant-scoped themselves, so this does not extend
    BaseRepository.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, tenant_id: str) -> Tenant | None:
        """Get tenant by ID"""
        result = await self.db.execute(select(Tenant).where(Tenant.id == tenant_id))
        return result.scalar_one_or_none()

    async def get_active_by_id(self, tenant_id: str) -> Tenant | None:
        """Get tenant by ID only if it may act (active flag and status)"""
        stmt = select(Tenant).where(
            Tenant.id == tenant_id,
            Tenant.is_active.is_(True),
            Tenant.status == TenantStatus.ACTIVE.value,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all_ids(self) -> list[str]:
        """IDs of every tenant (maintenance jobs iterate tenants one at a time)"""
        result = await self.db.execute(select(Tenant.id).order_by(Tenant.id))
        return list(result.scalars().all())
