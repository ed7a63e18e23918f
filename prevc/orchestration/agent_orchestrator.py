"""Agent selection and sequencing for PREVC phases and roles.

Maps phases and roles to the specialist agents that work in them, picks
agents for a free-text task, and derives handoff sequences.
"""

import logging
from enum import Enum
from types import MappingProxyType
from typing import Any

from prevc.config import PHASE_ORDER, PhaseCode, RoleId
from prevc.orchestration.document_linker import docs_for_phase
from prevc.workflow.phases import get_phase_definition
from prevc.workflow.roles import ROLES

logger = logging.getLogger(__name__)


class AgentType(str, Enum):
    """Specialist agents available to a workflow."""

    CODE_REVIEWER = "code-reviewer"
    BUG_FIXER = "bug-fixer"
    FEATURE_DEVELOPER = "feature-developer"
    REFACTORING_SPECIALIST = "refactoring-specialist"
    TEST_WRITER = "test-writer"
    DOCUMENTATION_WRITER = "documentation-writer"
    PERFORMANCE_OPTIMIZER = "performance-optimizer"
    SECURITY_AUDITOR = "security-auditor"
    BACKEND_SPECIALIST = "backend-specialist"
    FRONTEND_SPECIALIST = "frontend-specialist"
    ARCHITECT_SPECIALIST = "architect-specialist"
    DEVOPS_SPECIALIST = "devops-specialist"
    DATABASE_SPECIALIST = "database-specialist"
    MOBILE_SPECIALIST = "mobile-specialist"

    @classmethod
    def values(cls) -> list[str]:
        """Return all agent ids as strings."""
        return [agent.value for agent in cls]


AGENT_DESCRIPTIONS: MappingProxyType[AgentType, str] = MappingProxyType(
    {
        AgentType.CODE_REVIEWER: "Reviews code for quality, style, and best practices",
        AgentType.BUG_FIXER: "Identifies and fixes bugs with targeted solutions",
        AgentType.FEATURE_DEVELOPER: "Implements new features following architecture",
        AgentType.REFACTORING_SPECIALIST: "Improves code structure and eliminates code smells",
        AgentType.TEST_WRITER: "Creates comprehensive test suites",
        AgentType.DOCUMENTATION_WRITER: "Writes and maintains documentation",
        AgentType.PERFORMANCE_OPTIMIZER: "Identifies and resolves performance bottlenecks",
        AgentType.SECURITY_AUDITOR: "Audits code for security vulnerabilities",
        AgentType.BACKEND_SPECIALIST: "Develops server-side logic and APIs",
        AgentType.FRONTEND_SPECIALIST: "Builds user interfaces and interactions",
        AgentType.ARCHITECT_SPECIALIST: "Designs system architecture and patterns",
        AgentType.DEVOPS_SPECIALIST: "Manages deployment and CI/CD pipelines",
        AgentType.DATABASE_SPECIALIST: "Designs and optimizes database solutions",
        AgentType.MOBILE_SPECIALIST: "Develops mobile applications",
    }
)

A = AgentType

PHASE_TO_AGENTS: MappingProxyType[PhaseCode, tuple[AgentType, ...]] = MappingProxyType(
    {
        PhaseCode.P: (A.ARCHITECT_SPECIALIST, A.DOCUMENTATION_WRITER, A.FRONTEND_SPECIALIST),
        PhaseCode.R: (A.ARCHITECT_SPECIALIST, A.CODE_REVIEWER, A.SECURITY_AUDITOR),
        PhaseCode.E: (
            A.FEATURE_DEVELOPER,
            A.BACKEND_SPECIALIST,
            A.FRONTEND_SPECIALIST,
            A.DATABASE_SPECIALIST,
            A.MOBILE_SPECIALIST,
            A.BUG_FIXER,
        ),
        PhaseCode.V: (A.TEST_WRITER, A.CODE_REVIEWER, A.SECURITY_AUDITOR, A.PERFORMANCE_OPTIMIZER),
        PhaseCode.C: (A.DOCUMENTATION_WRITER, A.DEVOPS_SPECIALIST),
    }
)

ROLE_TO_AGENTS: MappingProxyType[RoleId, tuple[AgentType, ...]] = MappingProxyType(
    {
        RoleId.PLANNER: (A.ARCHITECT_SPECIALIST, A.DOCUMENTATION_WRITER),
        RoleId.DESIGNER: (A.FRONTEND_SPECIALIST,),
        RoleId.ARCHITECT: (A.ARCHITECT_SPECIALIST, A.BACKEND_SPECIALIST, A.DATABASE_SPECIALIST),
        RoleId.DEVELOPER: (
            A.FEATURE_DEVELOPER,
            A.BUG_FIXER,
            A.BACKEND_SPECIALIST,
            A.FRONTEND_SPECIALIST,
            A.MOBILE_SPECIALIST,
            A.DATABASE_SPECIALIST,
        ),
        RoleId.QA: (A.TEST_WRITER, A.SECURITY_AUDITOR, A.PERFORMANCE_OPTIMIZER),
        RoleId.REVIEWER: (A.CODE_REVIEWER, A.SECURITY_AUDITOR),
        RoleId.DOCUMENTER: (A.DOCUMENTATION_WRITER,),
        RoleId.SOLO_DEV: (
            A.REFACTORING_SPECIALIST,
            A.BUG_FIXER,
            A.FEATURE_DEVELOPER,
            A.TEST_WRITER,
            A.DOCUMENTATION_WRITER,
        ),
    }
)

# Ordered keyword buckets; matches accumulate in table order.
TASK_KEYWORDS: tuple[tuple[str, tuple[AgentType, ...]], ...] = (
    # Architecture
    ("architecture", (A.ARCHITECT_SPECIALIST,)),
    ("design", (A.ARCHITECT_SPECIALIST, A.FRONTEND_SPECIALIST)),
    ("system", (A.ARCHITECT_SPECIALIST, A.BACKEND_SPECIALIST)),
    ("scalability", (A.ARCHITECT_SPECIALIST, A.PERFORMANCE_OPTIMIZER)),
    # Development
    ("feature", (A.FEATURE_DEVELOPER,)),
    ("implement", (A.FEATURE_DEVELOPER, A.BACKEND_SPECIALIST)),
    ("build", (A.FEATURE_DEVELOPER,)),
    ("create", (A.FEATURE_DEVELOPER,)),
    # Bugs
    ("bug", (A.BUG_FIXER,)),
    ("fix", (A.BUG_FIXER,)),
    ("error", (A.BUG_FIXER,)),
    ("issue", (A.BUG_FIXER,)),
    # Testing
    ("test", (A.TEST_WRITER,)),
    ("coverage", (A.TEST_WRITER,)),
    ("unit", (A.TEST_WRITER,)),
    ("integration", (A.TEST_WRITER,)),
    # Code quality
    ("review", (A.CODE_REVIEWER,)),
    ("refactor", (A.REFACTORING_SPECIALIST, A.CODE_REVIEWER)),
    ("clean", (A.REFACTORING_SPECIALIST,)),
    ("optimize", (A.PERFORMANCE_OPTIMIZER, A.REFACTORING_SPECIALIST)),
    # Security
    ("security", (A.SECURITY_AUDITOR,)),
    ("vulnerability", (A.SECURITY_AUDITOR,)),
    ("auth", (A.SECURITY_AUDITOR, A.BACKEND_SPECIALIST)),
    ("permission", (A.SECURITY_AUDITOR,)),
    # Performance
    ("performance", (A.PERFORMANCE_OPTIMIZER,)),
    ("speed", (A.PERFORMANCE_OPTIMIZER,)),
    ("memory", (A.PERFORMANCE_OPTIMIZER,)),
    ("cache", (A.PERFORMANCE_OPTIMIZER, A.BACKEND_SPECIALIST)),
    # Documentation
    ("document", (A.DOCUMENTATION_WRITER,)),
    ("readme", (A.DOCUMENTATION_WRITER,)),
    ("docs", (A.DOCUMENTATION_WRITER,)),
    # Backend
    ("api", (A.BACKEND_SPECIALIST, A.DOCUMENTATION_WRITER)),
    ("server", (A.BACKEND_SPECIALIST,)),
    ("endpoint", (A.BACKEND_SPECIALIST,)),
    ("microservice", (A.BACKEND_SPECIALIST,)),
    # Frontend
    ("ui", (A.FRONTEND_SPECIALIST,)),
    ("component", (A.FRONTEND_SPECIALIST,)),
    ("style", (A.FRONTEND_SPECIALIST,)),
    ("responsive", (A.FRONTEND_SPECIALIST,)),
    # Database
    ("database", (A.DATABASE_SPECIALIST,)),
    ("query", (A.DATABASE_SPECIALIST,)),
    ("migration", (A.DATABASE_SPECIALIST,)),
    ("schema", (A.DATABASE_SPECIALIST,)),
    # DevOps
    ("deploy", (A.DEVOPS_SPECIALIST,)),
    ("ci", (A.DEVOPS_SPECIALIST,)),
    ("pipeline", (A.DEVOPS_SPECIALIST,)),
    ("docker", (A.DEVOPS_SPECIALIST,)),
    # Mobile
    ("mobile", (A.MOBILE_SPECIALIST,)),
    ("ios", (A.MOBILE_SPECIALIST,)),
    ("android", (A.MOBILE_SPECIALIST,)),
    ("app", (A.MOBILE_SPECIALIST, A.FRONTEND_SPECIALIST)),
)

DEFAULT_TASK_AGENTS: tuple[AgentType, ...] = (A.FEATURE_DEVELOPER, A.CODE_REVIEWER)


# =============================================================================
# Lookups
# =============================================================================


def is_valid_agent_type(value: str) -> bool:
    return value in AgentType.values()


def get_agent_description(agent: AgentType | str) -> str:
    return AGENT_DESCRIPTIONS[AgentType(agent)]


def get_agents_for_phase(phase: PhaseCode | str) -> list[AgentType]:
    return list(PHASE_TO_AGENTS[PhaseCode(phase)])


def get_agents_for_role(role: RoleId | str) -> list[AgentType]:
    return list(ROLE_TO_AGENTS[RoleId(role)])


def get_primary_agent_for_role(role: RoleId | str) -> AgentType | None:
    agents = get_agents_for_role(role)
    return agents[0] if agents else None


def get_roles_for_agent(agent: AgentType | str) -> list[RoleId]:
    """Inverse of ROLE_TO_AGENTS: roles whose agent list includes ``agent``."""
    agent = AgentType(agent)
    return [role for role, agents in ROLE_TO_AGENTS.items() if agent in agents]


def specialist_to_agent(specialist: str) -> AgentType | None:
    """Map a role specialist name to an agent type.

    Agent ids map to themselves; other specialists map to the primary
    agent of the first role that lists them.
    """
    if is_valid_agent_type(specialist):
        return AgentType(specialist)
    for definition in ROLES.values():
        if specialist in definition.specialists:
            return get_primary_agent_for_role(definition.role)
    return None


# =============================================================================
# Selection and Sequencing
# =============================================================================


def select_agents_by_task(task: str) -> list[AgentType]:
    """Pick agents for a free-text task description.

    Args:
        task: Task description

    Returns:
        Matched agents in table order without duplicates, or the default
        pair when nothing matches
    """
    lowered = task.lower()
    matched: list[AgentType] = []
    for keyword, agents in TASK_KEYWORDS:
        if keyword in lowered:
            matched.extend(agent for agent in agents if agent not in matched)
    if not matched:
        return list(DEFAULT_TASK_AGENTS)
    logger.debug(f"Selected agents {[a.value for a in matched]} for task '{task}'")
    return matched


def get_agent_handoff_sequence(phases: list[PhaseCode]) -> list[AgentType]:
    """Concatenate per-phase agents, collapsing consecutive duplicates."""
    sequence: list[AgentType] = []
    for phase in phases:
        for agent in PHASE_TO_AGENTS[PhaseCode(phase)]:
            if not sequence or sequence[-1] != agent:
                sequence.append(agent)
    return sequence


def get_task_agent_sequence(task: str, include_review: bool = True) -> list[AgentType]:
    """Task agents followed by testing, review and documentation agents."""
    sequence = select_agents_by_task(task)
    if A.TEST_WRITER not in sequence:
        sequence.append(A.TEST_WRITER)
    if include_review and A.CODE_REVIEWER not in sequence:
        sequence.append(A.CODE_REVIEWER)
    if A.DOCUMENTATION_WRITER not in sequence:
        sequence.append(A.DOCUMENTATION_WRITER)
    return sequence


def suggest_next_agent(current: str, phase: PhaseCode) -> dict[str, str] | None:
    """Advisory suggestion for the agent that follows ``current``.

    Walks the handoff sequence from ``phase`` to the end of the canonical
    order. An unknown agent gets the first agent of ``phase``.

    Args:
        current: Agent that just received (or finished) the work
        phase: Current workflow phase

    Returns:
        ``{"agent", "reason"}`` or None when ``current`` is last
    """
    remaining = list(PHASE_ORDER[PHASE_ORDER.index(phase) :])
    sequence = get_agent_handoff_sequence(remaining)
    if not is_valid_agent_type(current):
        first = PHASE_TO_AGENTS[phase][0]
        return {
            "agent": first.value,
            "reason": f"{first.value} is the lead agent for the {get_phase_definition(phase).name} phase",
        }

    agent = AgentType(current)
    if agent not in sequence:
        return None
    for candidate in sequence[sequence.index(agent) + 1 :]:
        if candidate != agent:
            return {
                "agent": candidate.value,
                "reason": f"{get_agent_description(candidate)} (follows {agent.value})",
            }
    return None


def get_phase_orchestration(phase: PhaseCode | str) -> dict[str, Any]:
    """Guidance bundle for a phase: roles, outputs, agents and docs."""
    definition = get_phase_definition(phase)
    return {
        "phase": definition.code.value,
        "name": definition.name,
        "description": definition.description,
        "roles": [role.value for role in definition.roles],
        "outputs": list(definition.outputs),
        "agents": [
            {"type": agent.value, "description": AGENT_DESCRIPTIONS[agent]}
            for agent in PHASE_TO_AGENTS[definition.code]
        ],
        "docs": [{"type": doc.type, "path": doc.path, "title": doc.title} for doc in docs_for_phase(phase)],
    }
