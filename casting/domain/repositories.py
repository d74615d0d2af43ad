"""Repository classes for persisted traces."""

from __future__ import annotations

import json
from typing import List, Optional

from sqlalchemy.orm import Session

from casting.engine.trace import SearchResult, Trace
from casting.services.transitions import Action, ActionKind

from .models import AssignmentState
from .records import TraceRecord, TraceStepRecord


class TraceRepository:
    """Repository for search results and their traces."""

    @staticmethod
    def save_result(session: Session, result: SearchResult, label: Optional[str] = None) -> TraceRecord:
        """
        Persist a search result and, when present, every step of its trace.

        Args:
            session: Database session
            result: Result returned by the planner
            label: Optional free-text label (e.g. the universe file name)

        Returns:
            The committed TraceRecord
        """
        record = TraceRecord(
            label=label,
            status=result.status.value,
            optimized=result.optimized,
            total_score=result.total_score,
            nodes_explored=result.nodes_explored,
            elapsed_seconds=result.elapsed_seconds,
        )
        if result.trace is not None:
            for step, action, state in result.trace.steps():
                record.steps.append(
                    TraceStepRecord(
                        step_index=step,
                        action=action.kind.value if action is not None else "init",
                        dancer_id=action.dancer_id if action is not None else None,
                        piece_id=action.piece_id if action is not None else None,
                        state_json=json.dumps(state.to_dict(), sort_keys=True),
                    )
                )
        session.add(record)
        session.commit()
        session.refresh(record)
        return record

    @staticmethod
    def get_by_id(session: Session, trace_id: int) -> Optional[TraceRecord]:
        """Get a trace record by ID."""
        return session.query(TraceRecord).filter(TraceRecord.id == trace_id).first()

    @staticmethod
    def get_all(session: Session) -> List[TraceRecord]:
        """Get all trace records, oldest first."""
        return session.query(TraceRecord).order_by(TraceRecord.id).all()

    @staticmethod
    def load_trace(session: Session, trace_id: int) -> Optional[Trace]:
        """Rebuild the Trace stored under ``trace_id`` (None if it has no steps)."""
        record = TraceRepository.get_by_id(session, trace_id)
        if record is None or not record.steps:
            return None
        states = []
        actions = []
        for step in record.steps:
            states.append(AssignmentState(json.loads(step.state_json)))
            if step.action != "init":
                actions.append(Action(ActionKind(step.action), step.dancer_id, step.piece_id))
        return Trace(states=tuple(states), actions=tuple(actions))

    @staticmethod
    def delete(session: Session, trace_id: int) -> bool:
        """Delete a trace and its steps. Returns False if it did not exist."""
        record = TraceRepository.get_by_id(session, trace_id)
        if record is None:
            return False
        session.delete(record)
        session.commit()
        return True
