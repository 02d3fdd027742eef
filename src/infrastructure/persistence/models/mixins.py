"""
SQLAlchemy mixins for common model patterns.

These mixins provide reusable column definitions to follow DRY principles
and ensure consistency across all models.

Audit Levels:
    - TimestampMixin: Just timestamps (created_at, updated_at)
    - UserAuditMixin: Adds user tracking (created_by, updated_by)
"""
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from src.shared.utils.generators import generate_cuid


class CuidMixin:
    """
    Mixin for models using CUID as primary key.

    Provides:
        - id: String primary key with automatic CUID generation
    """

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class TenantMixin:
    """
    Mixin for multi-tenant models.

    Provides:
        - tenant_id: Foreign key to tenant table with cascade delete

    Every repository query on a tenant model filters on this column.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(
            String,
            ForeignKey("tenant.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


class TimestampMixin:
    """
    Mixin for timestamp tracking.

    Provides:
        - created_at: Timestamp set on creation (server-side default)
        - updated_at: Timestamp updated on modification (server-side default + onupdate)

    Note: Uses timezone-aware DateTime for consistency
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class UserAuditMixin(TimestampMixin):
    """
    User audit tracking (who did what).

    Provides:
        - created_at, updated_at: Timestamps
        - created_by: User ID who created the record
        - updated_by: User ID who last updated the record

    Note: Users live in the identity service, so the IDs are plain strings
          (no foreign key) and nullable for system-generated records.
    """

    @declared_attr
    def created_by(cls) -> Mapped[str | None]:
        return mapped_column(String, nullable=True, index=True)

    @declared_attr
    def updated_by(cls) -> Mapped[str | None]:
        return mapped_column(String, nullable=True)


class MultiTenantModel(CuidMixin, TenantMixin, TimestampMixin):
    """
    Complete mixin for standard multi-tenant models.

    Combines:
        - CuidMixin: CUID primary key
        - TenantMixin: Tenant foreign key
        - TimestampMixin: Created/updated timestamps
    """

    __abstract__ = True


class AuditedMultiTenantModel(CuidMixin, TenantMixin, UserAuditMixin):
    """
    Multi-tenant model with user audit tracking.

    Combines:
        - CuidMixin: CUID primary key
        - TenantMixin: Tenant foreign key
        - UserAuditMixin: Timestamps + user tracking

    Usage:
        class MyModel(AuditedMultiTenantModel, Base):
            __tablename__ = "my_model"

        # In service:
        instance.created_by = current_user_id
        instance.updated_by = current_user_id
    """

    __abstract__ = True
