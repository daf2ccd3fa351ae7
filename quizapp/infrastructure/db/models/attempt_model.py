from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Boolean, Float, JSON, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from ..base import Base


class AttemptModel(Base):
    __tablename__ = "test_attempts"

    id = Column(String(32), primary_key=True, index=True)
    test_id = Column(String(32), ForeignKey("tests.id"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)  # IN_PROGRESS, SUBMITTED, GRADED
    started_at = Column(DateTime, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    total_points = Column(Integer, nullable=True)
    earned_points = Column(Integer, nullable=True)
    score = Column(Float, nullable=True)

    # Relationships
    answers = relationship(
        "AnswerModel",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="AnswerModel.position",
    )

    __table_args__ = (
        # At most one open attempt per user and test
        Index(
            "uq_attempt_in_progress",
            "user_id",
            "test_id",
            unique=True,
            sqlite_where=text("status = 'IN_PROGRESS'"),
            postgresql_where=text("status = 'IN_PROGRESS'"),
        ),
    )


class AnswerModel(Base):
    __tablename__ = "attempt_answers"

    pk = Column(Integer, primary_key=True)
    attempt_id = Column(String(32), ForeignKey("test_attempts.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    kind = Column(String(10), nullable=False)  # choice, text, numeric
    selected_choices = Column(JSON, nullable=True)
    text_answer = Column(Text, nullable=True)
    numeric_answer = Column(String, nullable=True)
    is_correct = Column(Boolean, nullable=True)  # NULL until graded
    points_awarded = Column(Integer, nullable=True)

    # Relationships
    attempt = relationship("AttemptModel", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_answer"),
    )
