"""Links phases and roles to the documentation guides under ``.context/docs``."""

from dataclasses import dataclass
from types import MappingProxyType

from prevc.config import PhaseCode, RoleId


@dataclass(frozen=True)
class DocGuide:
    type: str
    path: str
    title: str
    description: str


DOCUMENT_GUIDES: tuple[DocGuide, ...] = (
    DocGuide(
        "architecture",
        ".context/docs/architecture.md",
        "Architecture",
        "System architecture, patterns, and design decisions",
    ),
    DocGuide("data-flow", ".context/docs/data-flow.md", "Data Flow", "How data moves through the system"),
    DocGuide("glossary", ".context/docs/glossary.md", "Glossary", "Domain terms and definitions"),
    DocGuide("api", ".context/docs/api.md", "API Reference", "API endpoints and usage"),
    DocGuide(
        "getting-started",
        ".context/docs/getting-started.md",
        "Getting Started",
        "Setup and onboarding guide",
    ),
    DocGuide("deployment", ".context/docs/deployment.md", "Deployment", "Deployment procedures and environments"),
    DocGuide("security", ".context/docs/security.md", "Security", "Security guidelines and practices"),
    DocGuide("testing", ".context/docs/testing.md", "Testing", "Testing strategies and coverage"),
    DocGuide("contributing", ".context/docs/contributing.md", "Contributing", "Contribution guidelines"),
    DocGuide("readme", ".context/docs/README.md", "Documentation Index", "Overview of all documentation"),
)

_GUIDES_BY_TYPE = {guide.type: guide for guide in DOCUMENT_GUIDES}

PHASE_TO_DOCS: MappingProxyType[PhaseCode, tuple[str, ...]] = MappingProxyType(
    {
        PhaseCode.P: ("architecture", "glossary", "readme"),
        PhaseCode.R: ("architecture", "security", "data-flow"),
        PhaseCode.E: ("architecture", "api", "data-flow", "getting-started"),
        PhaseCode.V: ("testing", "security", "api"),
        PhaseCode.C: ("deployment", "readme", "contributing"),
    }
)

ROLE_TO_DOCS: MappingProxyType[RoleId, tuple[str, ...]] = MappingProxyType(
    {
        RoleId.PLANNER: ("architecture", "glossary", "readme"),
        RoleId.DESIGNER: ("architecture", "getting-started"),
        RoleId.ARCHITECT: ("architecture", "data-flow", "security", "deployment"),
        RoleId.DEVELOPER: ("architecture", "api", "data-flow", "getting-started"),
        RoleId.QA: ("testing", "security", "api"),
        RoleId.REVIEWER: ("architecture", "contributing", "glossary"),
        RoleId.DOCUMENTER: ("readme", "glossary", "architecture", "api", "contributing"),
        RoleId.SOLO_DEV: ("architecture", "api", "testing", "readme"),
    }
)


def get_doc_by_type(doc_type: str) -> DocGuide | None:
    return _GUIDES_BY_TYPE.get(doc_type)


def docs_for_phase(phase: PhaseCode | str) -> list[DocGuide]:
    return [_GUIDES_BY_TYPE[t] for t in PHASE_TO_DOCS[PhaseCode(phase)]]


def docs_for_role(role: RoleId | str) -> list[DocGuide]:
    return [_GUIDES_BY_TYPE[t] for t in ROLE_TO_DOCS[RoleId(role)]]
