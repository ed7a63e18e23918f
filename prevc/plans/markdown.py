"""Plan markdown parsing and progress sync.

Reading: title, summary, YAML front matter, ``### Phase N — Name``
sections and the numbered steps under each.

Writing: ``sync_markdown`` folds tracking data back into the document:
front-matter ``progress``/``lastUpdated``, step checkboxes with
timestamps, and an ``## Execution History`` section.

Example plan:
    ---
    status: active
    phases:
      - id: phase-1
        name: Discovery
        prevc: P
    ---
    # Add Login Plan

    > Let users sign in with email.

    ### Phase 1 — Discovery
    1. Interview stakeholders
    2. Draft requirements
"""

import logging
import re
from typing import Any

import yaml

from prevc.config import PhaseCode, StatusType
from prevc.plans.models import PlanExecutionTracking, PlanPhase, PlanStep

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r"^#\s+(.+?)(?:\s+Plan)?$", re.MULTILINE)
SUMMARY_PATTERN = re.compile(r"^>\s*(.+)$", re.MULTILINE)
PHASE_HEADING_PATTERN = re.compile(r"^###\s+Phase\s+(\d+)\s*[—-]\s*(.+)$")
PHASE_NUMBER_PATTERN = re.compile(r"^###\s+Phase\s+(\d+)")
PHASE_ID_NUMBER_PATTERN = re.compile(r"(\d+)$")
STEP_PATTERN = re.compile(r"^(\d+)\.\s*(\[[ x]\]\s*)?(.+?)(?:\s*\*\([^)]*\)\*)?$")
SECTION_PATTERN = re.compile(r"^#{1,3}\s")
AGENT_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(\.\./agents/([^)]+)\.md\)")
DOC_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(\.\./docs/([^)]+)\)")

HISTORY_HEADING = "## Execution History"
HISTORY_INSERT_BEFORE = ("## Evidence", "## Rollback")

# Plan phase name keyword -> PREVC phase; first match wins.
PLAN_PHASE_TO_PREVC: tuple[tuple[str, PhaseCode], ...] = (
    ("discovery", PhaseCode.P),
    ("alignment", PhaseCode.P),
    ("review", PhaseCode.R),
    ("architecture", PhaseCode.R),
    ("implementation", PhaseCode.E),
    ("build", PhaseCode.E),
    ("validation", PhaseCode.V),
    ("testing", PhaseCode.V),
    ("handoff", PhaseCode.C),
    ("deployment", PhaseCode.C),
)

DEFAULT_PLAN_PHASES: tuple[tuple[str, str, PhaseCode], ...] = (
    ("phase-1", "Discovery & Alignment", PhaseCode.P),
    ("phase-2", "Implementation", PhaseCode.E),
    ("phase-3", "Validation & Handoff", PhaseCode.V),
)

STATUS_LABELS: dict[StatusType, str] = {
    StatusType.COMPLETED: "[DONE]",
    StatusType.IN_PROGRESS: "[IN PROGRESS]",
    StatusType.SKIPPED: "[SKIPPED]",
    StatusType.PENDING: "[PENDING]",
}


# =============================================================================
# Parsing
# =============================================================================


def split_front_matter(content: str) -> tuple[str | None, str]:
    """Split ``---`` delimited front matter from the body.

    Returns:
        (front matter text or None, body)
    """
    if not content.startswith("---"):
        return None, content
    end = content.find("---", 3)
    if end == -1:
        return None, content
    return content[3:end], content[end:]


def parse_front_matter(content: str) -> dict[str, Any]:
    """Parse YAML front matter; malformed or missing front matter yields {}."""
    front, _ = split_front_matter(content)
    if front is None:
        return {}
    try:
        data = yaml.safe_load(front)
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring malformed plan front matter: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def parse_title(content: str, slug: str) -> str:
    _, body = split_front_matter(content)
    match = TITLE_PATTERN.search(body)
    return match.group(1).strip() if match else slug


def parse_summary(content: str) -> str | None:
    _, body = split_front_matter(content)
    match = SUMMARY_PATTERN.search(body)
    return match.group(1).strip() if match else None


def prevc_for_plan_phase(name: str) -> PhaseCode:
    """Map a plan phase name to a PREVC phase by keyword (default Execution)."""
    lowered = name.lower()
    for keyword, phase in PLAN_PHASE_TO_PREVC:
        if keyword in lowered:
            return phase
    return PhaseCode.E


def parse_steps(content: str) -> dict[str, list[PlanStep]]:
    """Numbered steps under each ``### Phase N`` heading, keyed by ``phase-N``."""
    steps: dict[str, list[PlanStep]] = {}
    current: str | None = None
    for line in content.splitlines():
        heading = PHASE_NUMBER_PATTERN.match(line)
        if heading:
            current = f"phase-{heading.group(1)}"
            steps.setdefault(current, [])
            continue
        if SECTION_PATTERN.match(line):
            current = None
            continue
        if current is None:
            continue
        step = STEP_PATTERN.match(line)
        if step:
            checked = (step.group(2) or "").startswith("[x]")
            steps[current].append(
                PlanStep(
                    order=int(step.group(1)),
                    description=step.group(3).strip(),
                    status=StatusType.COMPLETED if checked else StatusType.PENDING,
                )
            )
    return steps


def parse_phases(content: str) -> list[PlanPhase]:
    """Plan phases from front matter, else headings, else the default three."""
    steps = parse_steps(content)
    front = parse_front_matter(content)

    phases: list[PlanPhase] = []
    for entry in front.get("phases") or []:
        if not isinstance(entry, dict):
            continue
        if not all(entry.get(key) for key in ("id", "name", "prevc")):
            continue
        prevc = str(entry["prevc"]).upper()
        if prevc not in PhaseCode.values():
            continue
        phase_id = str(entry["id"])
        phases.append(
            PlanPhase(id=phase_id, name=str(entry["name"]), prevc=PhaseCode(prevc), steps=steps.get(phase_id, []))
        )
    if phases:
        return phases

    for line in content.splitlines():
        heading = PHASE_HEADING_PATTERN.match(line)
        if heading:
            phase_id = f"phase-{heading.group(1)}"
            name = heading.group(2).strip()
            phases.append(
                PlanPhase(id=phase_id, name=name, prevc=prevc_for_plan_phase(name), steps=steps.get(phase_id, []))
            )
    if phases:
        return phases

    return [PlanPhase(id=pid, name=name, prevc=prevc) for pid, name, prevc in DEFAULT_PLAN_PHASES]


def parse_agents(content: str) -> list[str]:
    """Agent types from front matter ``agents``, else from ``../agents/*.md`` links."""
    agents: list[str] = []
    for entry in parse_front_matter(content).get("agents") or []:
        agent = entry.get("type") if isinstance(entry, dict) else entry
        if agent and str(agent) not in agents:
            agents.append(str(agent))
    if agents:
        return agents
    for match in AGENT_LINK_PATTERN.finditer(content):
        if match.group(2) not in agents:
            agents.append(match.group(2))
    return agents


def parse_docs(content: str) -> list[str]:
    docs = [str(doc) for doc in parse_front_matter(content).get("docs") or []]
    if docs:
        return docs
    for match in DOC_LINK_PATTERN.finditer(content):
        if match.group(2) not in docs:
            docs.append(match.group(2))
    return docs


# =============================================================================
# Sync
# =============================================================================


def update_front_matter_progress(content: str, tracking: PlanExecutionTracking) -> str:
    front, body = split_front_matter(content)
    if front is None:
        return content

    if re.search(r"^progress:", front, re.MULTILINE):
        front = re.sub(r"^progress:.*$", f"progress: {tracking.progress}", front, count=1, flags=re.MULTILINE)
    elif re.search(r"^status:", front, re.MULTILINE):
        front = re.sub(
            r"^(status:.*)$", rf"\g<1>\nprogress: {tracking.progress}", front, count=1, flags=re.MULTILINE
        )
    else:
        front = front.rstrip() + f"\nprogress: {tracking.progress}\n"

    if re.search(r"^lastUpdated:", front, re.MULTILINE):
        front = re.sub(
            r"^lastUpdated:.*$", f'lastUpdated: "{tracking.last_updated}"', front, count=1, flags=re.MULTILINE
        )
    else:
        front = front.rstrip() + f'\nlastUpdated: "{tracking.last_updated}"\n'

    return "---" + front + body


def update_step_checkboxes(content: str, tracking: PlanExecutionTracking) -> str:
    current: str | None = None
    lines: list[str] = []
    for line in content.split("\n"):
        heading = PHASE_NUMBER_PATTERN.match(line)
        if heading:
            current = f"phase-{heading.group(1)}"
            lines.append(line)
            continue
        if SECTION_PATTERN.match(line):
            current = None

        step_match = STEP_PATTERN.match(line)
        phase_tracking = tracking.phases.get(current) if current else None
        step = phase_tracking.find_step(int(step_match.group(1))) if step_match and phase_tracking else None
        if step is None:
            lines.append(line)
            continue

        check = "[x]" if step.status == StatusType.COMPLETED else "[ ]"
        stamp = ""
        if step.completed_at:
            stamp = f" *(completed: {step.completed_at})*"
        elif step.started_at and step.status == StatusType.IN_PROGRESS:
            stamp = f" *(in progress since: {step.started_at})*"
        lines.append(f"{step.step_index}. {check} {step_match.group(3).strip()}{stamp}")
    return "\n".join(lines)


def phase_sort_key(phase_id: str) -> tuple[int, int, str]:
    """Order ``phase-2`` before ``phase-10``; ids without a number sort last."""
    match = PHASE_ID_NUMBER_PATTERN.search(phase_id)
    if match is None:
        return (1, 0, phase_id)
    return (0, int(match.group(1)), phase_id)


def render_execution_history(tracking: PlanExecutionTracking) -> str:
    lines = [
        HISTORY_HEADING,
        "",
        f"> Last updated: {tracking.last_updated} | Progress: {tracking.progress}%",
        "",
    ]
    for phase_id, phase in sorted(tracking.phases.items(), key=lambda item: phase_sort_key(item[0])):
        lines.append(f"### {phase_id} {STATUS_LABELS[phase.status]}")
        if phase.started_at:
            lines.append(f"- Started: {phase.started_at}")
        if phase.completed_at:
            lines.append(f"- Completed: {phase.completed_at}")
        if phase.steps:
            lines.append("")
            for step in sorted(phase.steps, key=lambda s: s.step_index):
                check = "x" if step.status == StatusType.COMPLETED else " "
                line = f"- [{check}] Step {step.step_index}: {step.description}"
                if step.completed_at:
                    line += f" *({step.completed_at})*"
                elif step.started_at and step.status == StatusType.IN_PROGRESS:
                    line += " *(in progress)*"
                lines.append(line)
                if step.output:
                    lines.append(f"  - Output: {step.output}")
                if step.notes:
                    lines.append(f"  - Notes: {step.notes}")
        lines.append("")
    return "\n".join(lines)


def update_execution_history(content: str, tracking: PlanExecutionTracking) -> str:
    section = render_execution_history(tracking)
    start = content.find(HISTORY_HEADING)
    if start > -1:
        rest = content[start + len(HISTORY_HEADING) :]
        next_section = re.search(r"\n## ", rest)
        if next_section:
            end = start + len(HISTORY_HEADING) + next_section.start() + 1
            return content[:start] + section + "\n" + content[end:]
        return content[:start] + section

    for marker in HISTORY_INSERT_BEFORE:
        index = content.find(marker)
        if index > -1:
            return content[:index] + section + "\n" + content[index:]
    return content.rstrip() + "\n\n" + section


def sync_markdown(content: str, tracking: PlanExecutionTracking) -> str:
    """Apply tracking to a plan document."""
    content = update_front_matter_progress(content, tracking)
    content = update_step_checkboxes(content, tracking)
    return update_execution_history(content, tracking)
