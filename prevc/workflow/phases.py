"""PREVC phase definitions.

Single source of truth for phase metadata: display names (English and
Portuguese), descriptions, the roles that work in each phase and the
outputs each phase is expected to produce.
"""

from dataclasses import dataclass
from types import MappingProxyType

from prevc.config import PHASE_ORDER, PhaseCode, RoleId


@dataclass(frozen=True)
class PhaseDefinition:
    """Immutable metadata for a PREVC phase."""

    code: PhaseCode
    name: str
    name_pt: str
    description: str
    roles: tuple[RoleId, ...]
    outputs: tuple[str, ...]
    optional: bool  # Whether some scales skip this phase
    order: int


# =============================================================================
# Phase Definitions
# =============================================================================

PHASES: MappingProxyType[PhaseCode, PhaseDefinition] = MappingProxyType(
    {
        PhaseCode.P: PhaseDefinition(
            code=PhaseCode.P,
            name="Planning",
            name_pt="Planejamento",
            description="Discovery, requirements and specifications",
            roles=(RoleId.PLANNER, RoleId.DESIGNER),
            outputs=("prd", "tech-spec", "requirements", "wireframes"),
            optional=False,
            order=1,
        ),
        PhaseCode.R: PhaseDefinition(
            code=PhaseCode.R,
            name="Review",
            name_pt="Revisão",
            description="Architecture, technical decisions and design review",
            roles=(RoleId.ARCHITECT, RoleId.DESIGNER),
            outputs=("architecture", "adr", "design-spec"),
            optional=True,
            order=2,
        ),
        PhaseCode.E: PhaseDefinition(
            code=PhaseCode.E,
            name="Execution",
            name_pt="Execução",
            description="Implementation and development",
            roles=(RoleId.DEVELOPER,),
            outputs=("code", "unit-tests"),
            optional=False,
            order=3,
        ),
        PhaseCode.V: PhaseDefinition(
            code=PhaseCode.V,
            name="Validation",
            name_pt="Validação",
            description="Tests, QA and code review",
            roles=(RoleId.QA, RoleId.REVIEWER),
            outputs=("test-report", "review-comments", "approval"),
            optional=False,
            order=4,
        ),
        PhaseCode.C: PhaseDefinition(
            code=PhaseCode.C,
            name="Confirmation",
            name_pt="Confirmação",
            description="Documentation, deploy and handoff",
            roles=(RoleId.DOCUMENTER,),
            outputs=("documentation", "changelog", "deploy"),
            optional=True,
            order=5,
        ),
    }
)


# =============================================================================
# Lookups
# =============================================================================


def get_phase_definition(phase: PhaseCode | str) -> PhaseDefinition:
    """Get the definition for a phase code."""
    return PHASES[PhaseCode(phase)]


def phase_name(phase: PhaseCode | str) -> str:
    """English display name for a phase (e.g. ``Planning``)."""
    return get_phase_definition(phase).name


def phase_name_pt(phase: PhaseCode | str) -> str:
    """Portuguese display name for a phase (e.g. ``Planejamento``)."""
    return get_phase_definition(phase).name_pt


def is_valid_phase(value: str) -> bool:
    """Check whether a string is a PREVC phase code."""
    return value in PhaseCode.values()


def next_phase_in_order(phase: PhaseCode) -> PhaseCode | None:
    """Next phase in canonical order, ignoring scale routes."""
    index = PHASE_ORDER.index(phase)
    if index >= len(PHASE_ORDER) - 1:
        return None
    return PHASE_ORDER[index + 1]


def previous_phase_in_order(phase: PhaseCode) -> PhaseCode | None:
    """Previous phase in canonical order, ignoring scale routes."""
    index = PHASE_ORDER.index(phase)
    if index == 0:
        return None
    return PHASE_ORDER[index - 1]
