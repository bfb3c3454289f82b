"""
Principal-Property assignment model
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from leave_scope.db.base import Base


class PrincipalProperty(Base):
    __tablename__ = "principal_properties"

    id = Column(Integer, primary_key=True, index=True)
    principal_id = Column(Integer, ForeignKey("principals.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('principal_id', 'property_id', name='uq_principal_property'),
    )

    principal = relationship("Principal", back_populates="property_assignments")
    property = relationship("Property")
