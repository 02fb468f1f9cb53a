"""Class and class membership model definitions."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from askmate.core import config
from askmate.database import Base, utcnow

MEMBER_ROLES = ("student", "teacher")


def default_class_settings() -> dict:
    return {
        "allow_student_questions": True,
        "allow_file_uploads": True,
        "max_file_size": config.DEFAULT_MAX_FILE_SIZE,
        "allowed_file_types": list(config.DEFAULT_ALLOWED_FILE_TYPES),
    }


class Classroom(Base):
    """A named group of users joined through a unique class code."""
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500))
    class_code = Column(String(config.CLASS_CODE_LENGTH), unique=True, index=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    settings = Column(JSON, nullable=False, default=default_class_settings)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    creator = relationship("User", back_populates="created_classes")
    members = relationship(
        "ClassMember",
        back_populates="classroom",
        cascade="all, delete-orphan",
        order_by="ClassMember.id",
    )
    questions = relationship(
        "Question",
        back_populates="classroom",
        cascade="all, delete-orphan",
    )


class ClassMember(Base):
    """A user's membership in one class, with the role held in that class."""
    __tablename__ = "class_members"
    __table_args__ = (UniqueConstraint("class_id", "user_id", name="uq_class_members_class_user"),)

    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, nullable=False, default="student")
    joined_at = Column(DateTime, default=utcnow)

    classroom = relationship("Classroom", back_populates="members")
    user = relationship("User", back_populates="memberships")
