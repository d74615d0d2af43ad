"""SQLAlchemy models for persisted search results."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class TraceRecord(Base):
    """One search result; the steps hold the trace itself."""

    __tablename__ = "traces"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(200), nullable=True)
    status = Column(String(30), nullable=False)  # Found, UnsatWithinHorizon, BudgetExceeded
    optimized = Column(Boolean, nullable=False, default=False)
    total_score = Column(Integer, nullable=True)
    nodes_explored = Column(Integer, nullable=False, default=0)
    elapsed_seconds = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    steps = relationship(
        "TraceStepRecord",
        back_populates="trace",
        order_by="TraceStepRecord.step_index",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<TraceRecord(id={self.id}, status={self.status}, score={self.total_score}, steps={len(self.steps)})>"


class TraceStepRecord(Base):
    """A step of a trace: the action taken and the resulting state."""

    __tablename__ = "trace_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trace_id = Column(Integer, ForeignKey("traces.id"), nullable=False)
    step_index = Column(Integer, nullable=False)
    action = Column(String(20), nullable=False)  # init, stutter, assign, unassign
    dancer_id = Column(String(100), nullable=True)
    piece_id = Column(String(100), nullable=True)
    state_json = Column(Text, nullable=False)  # {"dancer_id": ["piece_id", ...]}

    # Relationships
    trace = relationship("TraceRecord", back_populates="steps")

    def __repr__(self) -> str:
        return f"<TraceStepRecord(trace={self.trace_id}, step={self.step_index}, action={self.action})>"
