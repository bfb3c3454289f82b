"""
Principal model: an employee with a primary role, extra role grants,
and property/department assignments
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from leave_scope.db.base import Base


class Role(str, enum.Enum):
    REGIONAL_ADMIN = "regional_admin"
    REGIONAL_HR = "regional_hr"
    PROPERTY_MANAGER = "property_manager"
    PROPERTY_HR = "property_hr"
    DEPARTMENT_HEAD = "department_head"
    STAFF = "staff"


# Smaller rank = higher authority
ROLE_RANK = {
    Role.REGIONAL_ADMIN: 1,
    Role.REGIONAL_HR: 2,
    Role.PROPERTY_MANAGER: 3,
    Role.PROPERTY_HR: 4,
    Role.DEPARTMENT_HEAD: 5,
    Role.STAFF: 6,
}


class Principal(Base):
    __tablename__ = "principals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=True, index=True)
    # Stored as plain text; unknown values degrade to staff in the resolver
    primary_role = Column(String, nullable=False, default=Role.STAFF.value)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )

    role_grants = relationship("RoleGrant", back_populates="principal", cascade="all, delete-orphan")
    property_assignments = relationship(
        "PrincipalProperty",
        back_populates="principal",
        cascade="all, delete-orphan",
        order_by="PrincipalProperty.id",
    )
    department_assignments = relationship(
        "PrincipalDepartment",
        back_populates="principal",
        cascade="all, delete-orphan",
        order_by="PrincipalDepartment.id",
    )


class RoleGrant(Base):
    """An additional role held alongside the primary role"""
    __tablename__ = "role_grants"

    id = Column(Integer, primary_key=True, index=True)
    principal_id = Column(Integer, ForeignKey("principals.id"), nullable=False, index=True)
    role = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("principal_id", "role", name="uq_role_grants_principal_role"),
    )

    principal = relationship("Principal", back_populates="role_grants")
