"""User model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from askmate.database import Base, utcnow


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="student")  # student/teacher/admin
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    created_classes = relationship("Classroom", back_populates="creator", order_by="Classroom.id")
    memberships = relationship("ClassMember", back_populates="user", order_by="ClassMember.id")

    @property
    def joined_classes(self):
        """Classes the user belongs to without having created them."""
        return [
            membership.classroom
            for membership in self.memberships
            if membership.classroom.created_by != self.id
        ]
