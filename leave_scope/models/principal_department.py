"""
Principal-Department assignment model

One row both scopes a department head to the department and puts the
principal on the department roster.
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from leave_scope.db.base import Base


class PrincipalDepartment(Base):
    __tablename__ = "principal_departments"

    id = Column(Integer, primary_key=True, index=True)
    principal_id = Column(Integer, ForeignKey("principals.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('principal_id', 'department_id', name='uq_principal_department'),
    )

    # Relationships
    principal = relationship("Principal", back_populates="department_assignments")
    department = relationship("Department", back_populates="members")
