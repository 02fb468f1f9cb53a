"""Question model definitions."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from askmate.core.votes import vote_score
from askmate.database import Base, utcnow


class Question(Base):
    """Represents a question posted inside a class."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    files = Column(JSON, nullable=False, default=list)
    upvotes = Column(JSON, nullable=False, default=list)
    downvotes = Column(JSON, nullable=False, default=list)
    is_resolved = Column(Boolean, nullable=False, default=False)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    views = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    classroom = relationship("Classroom", back_populates="questions")
    author = relationship("User")
    answers = relationship(
        "Answer",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Answer.id",
    )

    @property
    def vote_count(self) -> int:
        return vote_score(self.upvotes or [], self.downvotes or [])

    @property
    def active_answers(self):
        return [answer for answer in self.answers if answer.is_active]

    @property
    def answer_count(self) -> int:
        return len(self.active_answers)
