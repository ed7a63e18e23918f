"""Role and agent handoffs.

A handoff transfers active responsibility from a source to a target,
carrying the artifacts the source produced. PREVC role ids update the
``roles`` map; any other identifier (agent types, custom agents) updates
``agents``. Gates are never enforced here.
"""

import logging
from dataclasses import dataclass
from typing import Any

from prevc.config import ActivityStatus, ExecutionAction, RoleId
from prevc.orchestration.agent_orchestrator import suggest_next_agent
from prevc.workflow.errors import InvalidParamsError
from prevc.workflow.ids import next_handoff_id
from prevc.workflow.roles import is_valid_role
from prevc.workflow.status_models import AgentState, HandoffRecord, RoleState, WorkflowStatus, utc_now

logger = logging.getLogger(__name__)


@dataclass
class HandoffResult:
    record: HandoffRecord
    suggestion: dict[str, str] | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "handoff": self.record.model_dump(mode="json"),
            "nextSuggestion": self.suggestion,
        }


class HandoffCoordinator:
    """Applies handoffs to a workflow status."""

    def participant_state(self, status: WorkflowStatus, identifier: str) -> RoleState:
        """Get (or create) the state entry for a role or agent."""
        if is_valid_role(identifier):
            return status.roles.setdefault(RoleId(identifier), RoleState())
        return status.agents.setdefault(identifier, AgentState())

    def handoff(
        self,
        status: WorkflowStatus,
        source: str,
        target: str,
        artifacts: list[str] | None = None,
    ) -> HandoffResult:
        """Transfer responsibility from ``source`` to ``target``.

        Args:
            status: Workflow status to mutate
            source: Role or agent handing off
            target: Role or agent taking over
            artifacts: Outputs produced by the source

        Returns:
            HandoffResult with the audit record and next-agent suggestion

        Raises:
            InvalidParamsError: If source or target is empty
        """
        source = (source or "").strip()
        target = (target or "").strip()
        if not source or not target:
            raise InvalidParamsError("handoff requires from and to agent names")

        artifacts = list(artifacts or [])
        now = utc_now()
        phase = status.current_phase

        outgoing = self.participant_state(status, source)
        outgoing.status = ActivityStatus.COMPLETED
        outgoing.outputs = artifacts
        outgoing.last_active = now
        outgoing.last_handoff_at = now
        if isinstance(outgoing, AgentState):
            outgoing.completed_at = now

        incoming = self.participant_state(status, target)
        incoming.status = ActivityStatus.ACTIVE
        incoming.phase = phase
        incoming.last_active = now
        incoming.last_handoff_at = now
        if isinstance(incoming, AgentState):
            incoming.started_at = now
            incoming.completed_at = None

        record = HandoffRecord(
            id=next_handoff_id([h.id for h in status.handoffs]),
            source=source,
            target=target,
            artifacts=artifacts,
            phase=phase,
            timestamp=now,
        )
        status.handoffs.append(record)
        status.record(ExecutionAction.HANDOFF, phase, description=f"{source} → {target}")

        logger.info(f"Handoff {record.id}: {source} → {target} ({len(artifacts)} artifacts)")
        return HandoffResult(record=record, suggestion=suggest_next_agent(target, phase))

    def start_role(self, status: WorkflowStatus, role: RoleId) -> None:
        state = status.roles.setdefault(role, RoleState())
        state.status = ActivityStatus.ACTIVE
        state.phase = status.current_phase
        state.last_active = utc_now()
        status.phases[status.current_phase].role = role

    def complete_role(self, status: WorkflowStatus, role: RoleId, outputs: list[str] | None = None) -> None:
        state = status.roles.setdefault(role, RoleState())
        state.status = ActivityStatus.COMPLETED
        state.outputs = list(outputs or [])
        state.last_active = utc_now()
