"""PREVC role definitions.

Each role has a home phase (or phases), a list of responsibilities, the
outputs it produces, and the specialist agents that can act in it.
"""

from dataclasses import dataclass
from types import MappingProxyType

from prevc.config import PHASE_ORDER, PhaseCode, RoleId


@dataclass(frozen=True)
class RoleDefinition:
    """Immutable metadata for a PREVC role."""

    role: RoleId
    display_name: str
    display_name_pt: str
    phases: tuple[PhaseCode, ...]
    responsibilities: tuple[str, ...]
    outputs: tuple[str, ...]
    specialists: tuple[str, ...]


# =============================================================================
# Role Definitions
# =============================================================================

ROLES: MappingProxyType[RoleId, RoleDefinition] = MappingProxyType(
    {
        RoleId.PLANNER: RoleDefinition(
            role=RoleId.PLANNER,
            display_name="Planner",
            display_name_pt="Planejador",
            phases=(PhaseCode.P,),
            responsibilities=(
                "Conduct discovery and requirements gathering",
                "Create specifications and project scope",
                "Define acceptance criteria",
                "Generate PRD or Tech Spec",
                "Identify risks and dependencies",
            ),
            outputs=("prd", "tech-spec", "requirements"),
            specialists=(),
        ),
        RoleId.DESIGNER: RoleDefinition(
            role=RoleId.DESIGNER,
            display_name="Designer",
            display_name_pt="Designer",
            phases=(PhaseCode.P, PhaseCode.R),
            responsibilities=(
                "Create wireframes and prototypes",
                "Define design system and components",
                "Ensure accessibility and usability",
                "Document UI/UX patterns",
                "Validate user flows",
            ),
            outputs=("wireframes", "design-spec", "ui-components"),
            specialists=("frontend-specialist",),
        ),
        RoleId.ARCHITECT: RoleDefinition(
            role=RoleId.ARCHITECT,
            display_name="Architect",
            display_name_pt="Arquiteto",
            phases=(PhaseCode.R,),
            responsibilities=(
                "Define system architecture",
                "Create ADRs (Architecture Decision Records)",
                "Choose technologies and patterns",
                "Ensure scalability and maintainability",
                "Review technical impact of decisions",
            ),
            outputs=("architecture", "adr", "tech-decisions"),
            specialists=("architect-specialist",),
        ),
        RoleId.DEVELOPER: RoleDefinition(
            role=RoleId.DEVELOPER,
            display_name="Developer",
            display_name_pt="Desenvolvedor",
            phases=(PhaseCode.E,),
            responsibilities=(
                "Implement code according to specifications",
                "Follow defined patterns and architecture",
                "Create basic unit tests",
                "Document code when necessary",
                "Solve technical problems",
            ),
            outputs=("code", "unit-tests"),
            specialists=(
                "feature-developer",
                "bug-fixer",
                "backend-specialist",
                "frontend-specialist",
                "mobile-specialist",
                "database-specialist",
                "devops-specialist",
            ),
        ),
        RoleId.QA: RoleDefinition(
            role=RoleId.QA,
            display_name="QA Engineer",
            display_name_pt="QA",
            phases=(PhaseCode.V,),
            responsibilities=(
                "Create and execute integration tests",
                "Validate security and performance",
                "Ensure quality gates",
                "Report and track bugs",
                "Validate acceptance criteria",
            ),
            outputs=("test-report", "qa-approval", "bug-report"),
            specialists=("test-writer", "security-auditor", "performance-optimizer"),
        ),
        RoleId.REVIEWER: RoleDefinition(
            role=RoleId.REVIEWER,
            display_name="Reviewer",
            display_name_pt="Revisor",
            phases=(PhaseCode.V,),
            responsibilities=(
                "Review code and architecture",
                "Ensure compliance with standards",
                "Suggest improvements and optimizations",
                "Validate best practices",
                "Approve or request changes",
            ),
            outputs=("review-comments", "approval"),
            specialists=("code-reviewer",),
        ),
        RoleId.DOCUMENTER: RoleDefinition(
            role=RoleId.DOCUMENTER,
            display_name="Documenter",
            display_name_pt="Documentador",
            phases=(PhaseCode.C,),
            responsibilities=(
                "Create technical documentation",
                "Update README and APIs",
                "Prepare handoff to production",
                "Generate changelog and release notes",
                "Document important decisions",
            ),
            outputs=("documentation", "changelog", "readme"),
            specialists=("documentation-writer",),
        ),
        RoleId.SOLO_DEV: RoleDefinition(
            role=RoleId.SOLO_DEV,
            display_name="Solo Dev",
            display_name_pt="Solo Dev",
            phases=PHASE_ORDER,
            responsibilities=(
                "Execute complete flow for small tasks",
                "Bug fixes and quick refactorings",
                "Low complexity features",
                "Maintenance of existing code",
                "Adjustments and specific tweaks",
            ),
            outputs=("code", "tests", "docs"),
            specialists=("refactoring-specialist", "bug-fixer"),
        ),
    }
)

# Specialist agent → owning role. Several specialists appear under more than
# one role; this table picks the canonical owner.
SPECIALIST_TO_ROLE: MappingProxyType[str, RoleId] = MappingProxyType(
    {
        "frontend-specialist": RoleId.DESIGNER,
        "architect-specialist": RoleId.ARCHITECT,
        "feature-developer": RoleId.DEVELOPER,
        "bug-fixer": RoleId.DEVELOPER,
        "backend-specialist": RoleId.DEVELOPER,
        "mobile-specialist": RoleId.DEVELOPER,
        "database-specialist": RoleId.DEVELOPER,
        "devops-specialist": RoleId.DEVELOPER,
        "test-writer": RoleId.QA,
        "security-auditor": RoleId.QA,
        "performance-optimizer": RoleId.QA,
        "code-reviewer": RoleId.REVIEWER,
        "documentation-writer": RoleId.DOCUMENTER,
        "refactoring-specialist": RoleId.SOLO_DEV,
    }
)


# =============================================================================
# Lookups
# =============================================================================


def get_role_definition(role: RoleId | str) -> RoleDefinition:
    """Get the definition for a role id."""
    return ROLES[RoleId(role)]


def is_valid_role(value: str) -> bool:
    """Check whether a string names a PREVC role."""
    return value in RoleId.values()


def role_display_name(role: RoleId | str) -> str:
    """English display name for a role (e.g. ``QA Engineer``)."""
    return get_role_definition(role).display_name


def roles_for_phase(phase: PhaseCode | str) -> list[RoleId]:
    """All roles whose home phases include ``phase``, in table order."""
    code = PhaseCode(phase)
    return [definition.role for definition in ROLES.values() if code in definition.phases]


def responsibilities_for_role(role: RoleId | str) -> list[str]:
    return list(get_role_definition(role).responsibilities)


def outputs_for_role(role: RoleId | str) -> list[str]:
    return list(get_role_definition(role).outputs)


def role_for_specialist(specialist: str) -> RoleId | None:
    """Canonical role for a specialist agent, or None if unknown."""
    return SPECIALIST_TO_ROLE.get(specialist)
