from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..base import Base


class TestModel(Base):
    __tablename__ = "tests"

    id = Column(String(32), primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)  # NULL = untimed
    passing_score = Column(Integer, nullable=False, default=0)
    max_attempts = Column(Integer, nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    questions = relationship(
        "QuestionModel",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="QuestionModel.position",
    )


class QuestionModel(Base):
    __tablename__ = "test_questions"

    pk = Column(Integer, primary_key=True)
    test_id = Column(String(32), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)  # SINGLE, MULTIPLE, TRUEFALSE, OPEN, NUMERIC
    text = Column(Text, nullable=False)
    points = Column(Integer, nullable=False, default=1)
    correct_answer = Column(String, nullable=True)  # NUMERIC only

    # Relationships
    test = relationship("TestModel", back_populates="questions")
    choices = relationship(
        "ChoiceModel",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="ChoiceModel.position",
    )

    __table_args__ = (
        UniqueConstraint("test_id", "question_id", name="uq_test_question"),
    )


class ChoiceModel(Base):
    __tablename__ = "question_choices"

    pk = Column(Integer, primary_key=True)
    question_pk = Column(Integer, ForeignKey("test_questions.pk", ondelete="CASCADE"), nullable=False)
    choice_id = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    text = Column(String, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)

    # Relationships
    question = relationship("QuestionModel", back_populates="choices")
