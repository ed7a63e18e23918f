"""Scale routing for PREVC workflows.

Maps each ProjectScale to the ordered phases, roles and documents it
requires, and infers a scale from a free-text description plus repository
signals.

Scale detection is an ordered rule table (first match wins):

    1. bug-fix keywords, or few files without compliance   -> QUICK
    2. compliance flag or security keywords                -> ENTERPRISE
    3. simple-feature keywords and at most 10 files        -> SMALL
    4. many files, documentation keywords or high complexity -> LARGE
    5. anything else                                       -> MEDIUM
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from types import MappingProxyType

from prevc.config import PHASE_ORDER, PhaseCode, ProjectScale, RoleId
from prevc.workflow.errors import InvalidScaleError

logger = logging.getLogger(__name__)

ALL = "all"


@dataclass(frozen=True)
class ScaleRoute:
    """Immutable route for one scale.

    ``roles`` and ``documents`` are either explicit tuples or the string
    ``"all"``.
    """

    scale: ProjectScale
    phases: tuple[PhaseCode, ...]
    roles: tuple[RoleId, ...] | str
    documents: tuple[str, ...] | str
    display_name: str
    estimated_time: str
    skip_review: bool = False
    extras: tuple[str, ...] = ()


SCALE_ROUTES: MappingProxyType[ProjectScale, ScaleRoute] = MappingProxyType(
    {
        ProjectScale.QUICK: ScaleRoute(
            scale=ProjectScale.QUICK,
            phases=(PhaseCode.E, PhaseCode.V),
            roles=(RoleId.SOLO_DEV,),
            documents=("code",),
            display_name="Quick",
            estimated_time="~5 min",
            skip_review=True,
        ),
        ProjectScale.SMALL: ScaleRoute(
            scale=ProjectScale.SMALL,
            phases=(PhaseCode.P, PhaseCode.E, PhaseCode.V),
            roles=(RoleId.PLANNER, RoleId.DEVELOPER, RoleId.QA),
            documents=("tech-spec", "code", "test-report"),
            display_name="Small",
            estimated_time="~15 min",
        ),
        ProjectScale.MEDIUM: ScaleRoute(
            scale=ProjectScale.MEDIUM,
            phases=(PhaseCode.P, PhaseCode.R, PhaseCode.E, PhaseCode.V),
            roles=(
                RoleId.PLANNER,
                RoleId.ARCHITECT,
                RoleId.DEVELOPER,
                RoleId.QA,
                RoleId.REVIEWER,
            ),
            documents=("prd", "architecture", "code", "test-report", "review"),
            display_name="Medium",
            estimated_time="~30 min",
        ),
        ProjectScale.LARGE: ScaleRoute(
            scale=ProjectScale.LARGE,
            phases=PHASE_ORDER,
            roles=ALL,
            documents=("prd", "architecture", "code", "test-report", "documentation"),
            display_name="Large",
            estimated_time="~1 hour",
        ),
        ProjectScale.ENTERPRISE: ScaleRoute(
            scale=ProjectScale.ENTERPRISE,
            phases=PHASE_ORDER,
            roles=ALL,
            documents=ALL,
            display_name="Enterprise",
            estimated_time="~2+ hours",
            extras=("security-audit", "compliance-check", "adr"),
        ),
    }
)


# =============================================================================
# Keyword Tables (EN/PT, matched as lower-case substrings)
# =============================================================================

BUG_FIX_KEYWORDS: tuple[str, ...] = (
    "fix",
    "bug",
    "hotfix",
    "patch",
    "correção",
    "corrigir",
    "erro",
    "issue",
    "problema",
)

SIMPLE_FEATURE_KEYWORDS: tuple[str, ...] = (
    "add",
    "adicionar",
    "simple",
    "simples",
    "pequeno",
    "small",
    "minor",
    "tweak",
    "ajuste",
)

SECURITY_KEYWORDS: tuple[str, ...] = (
    "security",
    "segurança",
    "compliance",
    "audit",
    "auditoria",
    "gdpr",
    "lgpd",
    "pci",
    "hipaa",
    "soc2",
)

DOCUMENTATION_KEYWORDS: tuple[str, ...] = (
    "document",
    "documentar",
    "docs",
    "readme",
    "api",
    "public",
    "externa",
    "external",
)


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    """Case-insensitive substring match against a keyword list."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


# =============================================================================
# Scale Detection
# =============================================================================


@dataclass
class ProjectContext:
    """Signals used to infer a scale.

    ``files`` is None when the caller does not know which files are
    affected; the file-count clause of the QUICK rule is then skipped.
    """

    name: str
    description: str
    files: list[str] | None = None
    complexity: str | None = None  # low, medium, high
    has_compliance: bool = False

    @property
    def file_count(self) -> int | None:
        return None if self.files is None else len(self.files)


def _is_quick(context: ProjectContext) -> bool:
    if contains_any(context.description, BUG_FIX_KEYWORDS):
        return True
    count = context.file_count
    return count is not None and count <= 3 and not context.has_compliance


def _is_enterprise(context: ProjectContext) -> bool:
    return context.has_compliance or contains_any(context.description, SECURITY_KEYWORDS)


def _is_small(context: ProjectContext) -> bool:
    return (
        contains_any(context.description, SIMPLE_FEATURE_KEYWORDS)
        and (context.file_count or 0) <= 10
    )


def _is_large(context: ProjectContext) -> bool:
    return (
        (context.file_count or 0) > 30
        or contains_any(context.description, DOCUMENTATION_KEYWORDS)
        or context.complexity == "high"
    )


@dataclass(frozen=True)
class ScaleRule:
    """One row of the ordered detection table."""

    scale: ProjectScale
    matches: Callable[[ProjectContext], bool] = field(repr=False)


SCALE_RULES: tuple[ScaleRule, ...] = (
    ScaleRule(ProjectScale.QUICK, _is_quick),
    ScaleRule(ProjectScale.ENTERPRISE, _is_enterprise),
    ScaleRule(ProjectScale.SMALL, _is_small),
    ScaleRule(ProjectScale.LARGE, _is_large),
)

DEFAULT_SCALE = ProjectScale.MEDIUM


def detect_project_scale(context: ProjectContext) -> ProjectScale:
    """Infer a scale from the project context.

    Args:
        context: Description, file list, complexity and compliance flag

    Returns:
        The first matching scale in rule order, MEDIUM if none match
    """
    for rule in SCALE_RULES:
        if rule.matches(context):
            logger.debug(f"Detected scale {rule.scale.name} for '{context.name}'")
            return rule.scale
    logger.debug(f"No scale rule matched '{context.name}', using {DEFAULT_SCALE.name}")
    return DEFAULT_SCALE


# =============================================================================
# Lookups
# =============================================================================


def scale_from_name(token: str | int | ProjectScale) -> ProjectScale:
    """Resolve a scale token (name, case-insensitive, or 0-4).

    Raises:
        InvalidScaleError: If the token does not name a scale
    """
    if isinstance(token, ProjectScale):
        return token
    if isinstance(token, bool):
        raise InvalidScaleError(token)
    if isinstance(token, int):
        try:
            return ProjectScale(token)
        except ValueError as e:
            raise InvalidScaleError(token) from e
    if isinstance(token, str):
        name = token.strip().upper()
        if name in ProjectScale.names():
            return ProjectScale[name]
    raise InvalidScaleError(token)


def get_scale_route(scale: ProjectScale) -> ScaleRoute:
    return SCALE_ROUTES[scale]


def phases_for_scale(scale: ProjectScale) -> list[PhaseCode]:
    return list(SCALE_ROUTES[scale].phases)


def roles_for_scale(scale: ProjectScale) -> list[RoleId]:
    """Roles required by a scale, with ``"all"`` expanded to every role."""
    roles = SCALE_ROUTES[scale].roles
    if roles == ALL:
        return list(RoleId)
    return list(roles)


def is_phase_required_for_scale(phase: PhaseCode, scale: ProjectScale) -> bool:
    return phase in SCALE_ROUTES[scale].phases


def scale_display_name(scale: ProjectScale) -> str:
    """Human-readable scale name (e.g. ``Quick``)."""
    return SCALE_ROUTES[scale].display_name


def estimated_time(scale: ProjectScale) -> str:
    return SCALE_ROUTES[scale].estimated_time
