"""Links plan documents to the PREVC workflow and tracks their execution.

Directory Structure:
    .context/
    ├── plans/
    │   └── <slug>.md                  # plan documents (read, synced)
    └── workflow/
        ├── plans.json                 # {active, completed, primary}
        └── plan-tracking/
            └── <slug>.json            # PlanExecutionTracking

Phase and step updates are idempotent: repeating an update with the same
status writes nothing. Unknown plans, phases or steps return False.
"""

import json
import logging
import re
import shutil
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from prevc.config import (
    PHASE_ORDER,
    PLAN_SLUG_PATTERN,
    ApprovalStatus,
    ContextLayout,
    ExecutionAction,
    PhaseCode,
    StatusType,
)
from prevc.plans.markdown import (
    parse_agents,
    parse_docs,
    parse_phases,
    parse_summary,
    parse_title,
    sync_markdown,
)
from prevc.plans.models import (
    LinkedPlan,
    PlanDecision,
    PlanExecutionTracking,
    PlanPhaseTracking,
    StepExecution,
    WorkflowPlans,
)
from prevc.workflow.errors import PersistenceError, PlanNotFoundError
from prevc.workflow.ids import next_decision_id
from prevc.workflow.status_models import PlanPhaseRef, PlanRef, utc_now
from prevc.workflow.status_store import StatusStore, archive_timestamp, write_text_atomic

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(PLAN_SLUG_PATTERN)


def is_valid_slug(slug: str) -> bool:
    """Whether ``slug`` names a file directly under plans/."""
    return bool(SLUG_RE.fullmatch(slug or ""))


STEP_ACTIONS: dict[StatusType, ExecutionAction] = {
    StatusType.IN_PROGRESS: ExecutionAction.STEP_STARTED,
    StatusType.COMPLETED: ExecutionAction.STEP_COMPLETED,
    StatusType.SKIPPED: ExecutionAction.STEP_SKIPPED,
}


def calculate_progress(tracking: PlanExecutionTracking, plan: LinkedPlan | None = None) -> int:
    """Percentage of completed steps; phase-based when no steps are tracked."""
    total = sum(len(phase.steps) for phase in tracking.phases.values())
    if total:
        completed = sum(
            1 for phase in tracking.phases.values() for step in phase.steps if step.status == StatusType.COMPLETED
        )
        return round(completed / total * 100)
    if plan and plan.phases:
        completed = sum(
            1
            for phase in plan.phases
            if phase.id in tracking.phases and tracking.phases[phase.id].status == StatusType.COMPLETED
        )
        return round(completed / len(plan.phases) * 100)
    return 0


class PlanLinker:
    """Plan linking, tracking and markdown sync for one repository.

    Args:
        layout: Context layout of the repository
        store: Status store used to record step breadcrumbs when a
            workflow exists
    """

    def __init__(self, layout: ContextLayout, store: StatusStore | None = None) -> None:
        self.layout = layout
        self.store = store

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_slug(slug: str) -> str:
        if not is_valid_slug(slug):
            raise PlanNotFoundError(slug, f"Invalid plan slug: {slug!r}")
        return slug

    def plan_path(self, slug: str) -> Path:
        """Path of ``plans/<slug>.md``.

        Raises:
            PlanNotFoundError: If the slug would resolve outside plans/
        """
        return self.layout.plans_dir / f"{self._check_slug(slug)}.md"

    def tracking_path(self, slug: str) -> Path:
        return self.layout.plan_tracking_dir / f"{self._check_slug(slug)}.json"

    def _read_json(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read {path.name}: {e}", str(path)) from e

    def _write_json(self, path: Path, data: Any) -> None:
        write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False))

    def get_linked_plans(self) -> WorkflowPlans:
        """Read plans.json (empty when absent).

        Raises:
            PersistenceError: If plans.json is corrupt
        """
        path = self.layout.plans_file
        if not path.exists():
            return WorkflowPlans()
        try:
            return WorkflowPlans.model_validate(self._read_json(path))
        except ValidationError as e:
            raise PersistenceError(f"plans.json is invalid: {e}", str(path)) from e

    def _save_plans(self, plans: WorkflowPlans) -> None:
        self._write_json(self.layout.plans_file, plans.model_dump(mode="json", exclude_none=True))

    def load_tracking(self, slug: str) -> PlanExecutionTracking | None:
        """Read a plan's tracking file, or None when no tracking exists.

        Raises:
            PersistenceError: If the tracking file is corrupt
        """
        path = self.tracking_path(slug)
        if not path.exists():
            return None
        try:
            return PlanExecutionTracking.model_validate(self._read_json(path))
        except ValidationError as e:
            raise PersistenceError(f"Plan tracking for '{slug}' is invalid: {e}", str(path)) from e

    def _save_tracking(self, tracking: PlanExecutionTracking) -> None:
        self._write_json(
            self.tracking_path(tracking.plan_slug), tracking.model_dump(mode="json", exclude_none=True)
        )

    # -------------------------------------------------------------------------
    # Linking
    # -------------------------------------------------------------------------

    def link_plan(self, slug: str) -> PlanRef:
        """Link ``plans/<slug>.md``, replacing an earlier entry for the same slug.

        Args:
            slug: Plan slug

        Returns:
            The stored PlanRef

        Raises:
            PlanNotFoundError: If the plan document does not exist
        """
        path = self.plan_path(slug)
        if not path.exists():
            raise PlanNotFoundError(slug)

        content = path.read_text(encoding="utf-8")
        ref = PlanRef(
            slug=slug,
            path=f"plans/{slug}.md",
            title=parse_title(content, slug),
            summary=parse_summary(content),
            phases=[PlanPhaseRef(id=p.id, name=p.name, prevc=p.prevc) for p in parse_phases(content)],
        )

        plans = self.get_linked_plans()
        plans.active = [p for p in plans.active if p.slug != slug]
        plans.completed = [p for p in plans.completed if p.slug != slug]
        plans.active.append(ref)
        if not plans.primary:
            plans.primary = slug
        self._save_plans(plans)

        logger.info(f"Linked plan '{slug}' ({len(ref.phases)} phases)")
        return ref

    def mark_plan_approved(self, slug: str, approved_by: str, approved_at: str) -> bool:
        plans = self.get_linked_plans()
        ref = plans.find(slug)
        if ref is None:
            return False
        ref.approval_status = ApprovalStatus.APPROVED
        ref.approved_by = approved_by
        ref.approved_at = approved_at
        self._save_plans(plans)
        return True

    def get_linked_plan(self, slug: str) -> LinkedPlan | None:
        """Parse a linked plan and merge in its tracking state.

        Returns:
            LinkedPlan, or None when the slug is not linked or its document
            has been removed
        """
        ref = self.get_linked_plans().find(slug)
        if ref is None:
            return None
        path = self.plan_path(slug)
        if not path.exists():
            return None

        content = path.read_text(encoding="utf-8")
        plan = LinkedPlan(
            ref=ref,
            phases=parse_phases(content),
            agents=parse_agents(content),
            docs=parse_docs(content),
        )

        tracking = self.load_tracking(slug)
        if tracking:
            plan.decisions = list(tracking.decisions)
            for phase in plan.phases:
                phase_tracking = tracking.phases.get(phase.id)
                if phase_tracking is None:
                    continue
                phase.status = phase_tracking.status
                for step in phase.steps:
                    step_tracking = phase_tracking.find_step(step.order)
                    if step_tracking:
                        step.status = step_tracking.status
            plan.progress = tracking.progress
        else:
            completed = sum(1 for p in plan.phases if p.status == StatusType.COMPLETED)
            plan.progress = round(completed / len(plan.phases) * 100) if plan.phases else 0

        plan.current_phase = next(
            (p.id for p in plan.phases if p.status == StatusType.IN_PROGRESS),
            None,
        )
        return plan

    def get_plans_for_phase(self, phase: PhaseCode) -> list[LinkedPlan]:
        """Active linked plans with at least one phase mapped to ``phase``."""
        plans: list[LinkedPlan] = []
        for ref in self.get_linked_plans().active:
            plan = self.get_linked_plan(ref.slug)
            if plan and plan.phases_for(phase):
                plans.append(plan)
        return plans

    @staticmethod
    def has_pending_work_for_phase(plan: LinkedPlan, phase: PhaseCode) -> bool:
        return any(
            p.status in (StatusType.PENDING, StatusType.IN_PROGRESS) for p in plan.phases_for(phase)
        )

    def get_plan_progress(self, slug: str) -> dict[str, Any]:
        """Overall and per-PREVC-phase progress for a plan."""
        plan = self.get_linked_plan(slug)
        if plan is None:
            return {"overall": 0, "by_phase": {}}

        by_phase: dict[str, dict[str, int]] = {}
        for code in PHASE_ORDER:
            mapped = plan.phases_for(code)
            completed = sum(1 for p in mapped if p.status == StatusType.COMPLETED)
            by_phase[code.value] = {
                "total": len(mapped),
                "completed": completed,
                "percentage": round(completed / len(mapped) * 100) if mapped else 0,
            }
        return {"overall": plan.progress, "by_phase": by_phase}

    def get_execution_status(self, slug: str) -> PlanExecutionTracking | None:
        return self.load_tracking(slug)

    # -------------------------------------------------------------------------
    # Tracking updates
    # -------------------------------------------------------------------------

    def _tracking_for(self, slug: str) -> PlanExecutionTracking:
        return self.load_tracking(slug) or PlanExecutionTracking(plan_slug=slug)

    def update_plan_phase(self, slug: str, phase_id: str, status: StatusType) -> bool:
        """Set a plan phase's status.

        Args:
            slug: Linked plan slug
            phase_id: Plan phase id (e.g. ``phase-1``)
            status: New status

        Returns:
            False when the plan or phase is unknown, True otherwise
        """
        plan = self.get_linked_plan(slug)
        if plan is None or plan.find_phase(phase_id) is None:
            logger.debug(f"Ignoring phase update for unknown target {slug}/{phase_id}")
            return False

        tracking = self._tracking_for(slug)
        phase = tracking.phases.get(phase_id)
        if phase is not None and phase.status == status:
            return True

        now = utc_now()
        if phase is None:
            phase = tracking.phases[phase_id] = PlanPhaseTracking(phase_id=phase_id)
        phase.status = status
        if status == StatusType.IN_PROGRESS and not phase.started_at:
            phase.started_at = now
        if status == StatusType.COMPLETED:
            phase.started_at = phase.started_at or now
            phase.completed_at = now

        tracking.progress = calculate_progress(tracking, plan)
        tracking.last_updated = now
        self._save_tracking(tracking)
        logger.info(f"Plan '{slug}' phase {phase_id} -> {status.value}")
        return True

    def update_plan_step(
        self,
        slug: str,
        phase_id: str,
        step_index: int,
        status: StatusType,
        output: str | None = None,
        notes: str | None = None,
    ) -> bool:
        """Set a step's status, derive its phase status and re-sync the markdown.

        Args:
            slug: Linked plan slug
            phase_id: Plan phase id
            step_index: 1-based step number within the phase
            status: New step status
            output: Optional artifact produced by the step
            notes: Optional free-text notes

        Returns:
            False when the plan, phase or step is unknown, True otherwise
        """
        plan = self.get_linked_plan(slug)
        plan_phase = plan.find_phase(phase_id) if plan else None
        if plan_phase is None or step_index < 1:
            logger.debug(f"Ignoring step update for unknown target {slug}/{phase_id}")
            return False
        plan_step = next((s for s in plan_phase.steps if s.order == step_index), None)
        if plan_phase.steps and plan_step is None:
            logger.debug(f"Ignoring update for unknown step {slug}/{phase_id}#{step_index}")
            return False

        tracking = self._tracking_for(slug)
        now = utc_now()
        phase = tracking.phases.get(phase_id)
        if phase is None:
            phase = tracking.phases[phase_id] = PlanPhaseTracking(
                phase_id=phase_id, status=StatusType.IN_PROGRESS, started_at=now
            )

        step = phase.find_step(step_index)
        unchanged = (
            step is not None
            and step.status == status
            and output in (None, step.output)
            and notes in (None, step.notes)
        )
        if unchanged:
            return True
        if step is None:
            step = StepExecution(
                step_index=step_index,
                description=plan_step.description if plan_step else f"Step {step_index}",
            )
            phase.steps.append(step)

        step.status = status
        if status == StatusType.IN_PROGRESS and not step.started_at:
            step.started_at = now
        if status == StatusType.COMPLETED:
            step.completed_at = now
        if output:
            step.output = output
        if notes:
            step.notes = notes

        if phase.steps and all(s.status == StatusType.COMPLETED for s in phase.steps):
            phase.status = StatusType.COMPLETED
            phase.completed_at = now
        elif any(s.status in (StatusType.IN_PROGRESS, StatusType.COMPLETED) for s in phase.steps):
            phase.status = StatusType.IN_PROGRESS
            phase.completed_at = None

        tracking.progress = calculate_progress(tracking, plan)
        tracking.last_updated = now
        self._save_tracking(tracking)
        self._record_step(slug, phase_id, step, status, output, notes)
        self.sync_plan_markdown(slug)
        logger.info(f"Plan '{slug}' {phase_id} step {step_index} -> {status.value}")
        return True

    def _record_step(
        self,
        slug: str,
        phase_id: str,
        step: StepExecution,
        status: StatusType,
        output: str | None,
        notes: str | None,
    ) -> None:
        """Append a step breadcrumb to the workflow history, if a workflow exists."""
        action = STEP_ACTIONS.get(status)
        if action is None or self.store is None or not self.store.exists():
            return
        with self.store.update() as workflow:
            workflow.record(
                action,
                workflow.current_phase,
                plan=slug,
                plan_phase=phase_id,
                step_index=step.step_index,
                step_description=step.description,
                output=output,
                notes=notes,
            )

    def record_decision(
        self,
        slug: str,
        title: str,
        description: str,
        phase: PhaseCode | None = None,
        alternatives: list[str] | None = None,
        decided_by: str | None = None,
    ) -> PlanDecision:
        """Append a decision to a linked plan's tracking.

        Raises:
            PlanNotFoundError: If the slug is not linked
        """
        if self.get_linked_plans().find(slug) is None:
            raise PlanNotFoundError(slug, f"Plan not found or not linked: {slug}")

        tracking = self._tracking_for(slug)
        decision = PlanDecision(
            id=next_decision_id([d.id for d in tracking.decisions]),
            title=title,
            description=description,
            phase=phase,
            alternatives=list(alternatives or []),
            decided_by=decided_by,
        )
        tracking.decisions.append(decision)
        tracking.last_updated = decision.decided_at
        self._save_tracking(tracking)
        logger.info(f"Recorded decision {decision.id} on plan '{slug}'")
        return decision

    def sync_plan_markdown(self, slug: str) -> bool:
        """Write tracking progress back into ``plans/<slug>.md``.

        Returns:
            False when the plan document or its tracking is missing
        """
        path = self.plan_path(slug)
        tracking = self.load_tracking(slug)
        if tracking is None or not path.exists():
            return False
        content = path.read_text(encoding="utf-8")
        updated = sync_markdown(content, tracking)
        if updated != content:
            write_text_atomic(path, updated)
        return True

    # -------------------------------------------------------------------------
    # Re-init
    # -------------------------------------------------------------------------

    def archive_plans(self) -> Path | None:
        """Move plans.json and plan-tracking into ``archive/plans-<ts>/``."""
        plans_file = self.layout.plans_file
        tracking_dir = self.layout.plan_tracking_dir
        if not plans_file.exists() and not tracking_dir.exists():
            return None

        archive_dir = self.layout.archive_dir / f"plans-{archive_timestamp()}"
        archive_dir.mkdir(parents=True, exist_ok=True)
        if plans_file.exists():
            shutil.move(str(plans_file), str(archive_dir / plans_file.name))
        if tracking_dir.exists():
            shutil.move(str(tracking_dir), str(archive_dir / tracking_dir.name))
        logger.info(f"Archived linked plans to {archive_dir}")
        return archive_dir

    def clear_all_plans(self) -> None:
        self.layout.plans_file.unlink(missing_ok=True)
        if self.layout.plan_tracking_dir.exists():
            shutil.rmtree(self.layout.plan_tracking_dir)
        logger.info("Cleared linked plans and tracking")
