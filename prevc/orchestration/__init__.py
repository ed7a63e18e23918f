"""Agent orchestration: agent tables, handoffs and phase document guides."""

from .agent_orchestrator import (
    AgentType,
    get_agent_handoff_sequence,
    get_agents_for_phase,
    get_agents_for_role,
    get_phase_orchestration,
    get_primary_agent_for_role,
    get_roles_for_agent,
    get_task_agent_sequence,
    select_agents_by_task,
    suggest_next_agent,
)
from .document_linker import DOCUMENT_GUIDES, DocGuide, docs_for_phase, docs_for_role
from .handoff import HandoffCoordinator, HandoffResult

__all__ = [
    "AgentType",
    "get_agents_for_phase",
    "get_agents_for_role",
    "get_primary_agent_for_role",
    "get_roles_for_agent",
    "select_agents_by_task",
    "get_agent_handoff_sequence",
    "get_task_agent_sequence",
    "suggest_next_agent",
    "get_phase_orchestration",
    "DOCUMENT_GUIDES",
    "DocGuide",
    "docs_for_phase",
    "docs_for_role",
    "HandoffCoordinator",
    "HandoffResult",
]
