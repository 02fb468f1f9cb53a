"""Answer model definitions."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from askmate.core.votes import vote_score
from askmate.database import Base, utcnow


class Answer(Base):
    """Represents an answer to a question."""
    __tablename__ = "answers"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(Text, nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    files = Column(JSON, nullable=False, default=list)
    upvotes = Column(JSON, nullable=False, default=list)
    downvotes = Column(JSON, nullable=False, default=list)
    is_accepted = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    question = relationship("Question", back_populates="answers")
    author = relationship("User")

    @property
    def vote_count(self) -> int:
        return vote_score(self.upvotes or [], self.downvotes or [])
