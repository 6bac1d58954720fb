"""SQLAlchemy model for the users table."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, func
from sqlalchemy.sql import expression

from app.infrastructure.database import Base


class UserModel(Base):
    """Database representation of a managed user."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(16), nullable=False, index=True)
    dni = Column(String(16), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True)
    deleted = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=expression.false(),
    )
    deleted_at = Column(DateTime, nullable=True)

    # Soft-deleted rows keep their values but no longer reserve them.
    __table_args__ = (
        Index(
            "uq_users_phone_active",
            "phone",
            unique=True,
            sqlite_where=deleted.is_(False),
            postgresql_where=deleted.is_(False),
            mssql_where=deleted == expression.false(),
        ),
        Index(
            "uq_users_dni_active",
            "dni",
            unique=True,
            sqlite_where=deleted.is_(False),
            postgresql_where=deleted.is_(False),
            mssql_where=deleted == expression.false(),
        ),
    )
