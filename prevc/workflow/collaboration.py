"""Multi-role collaboration sessions.

A CollaborationSession gathers contributions from several PREVC roles on
one topic and synthesizes them into decisions and recommendations.
Sessions live in process memory only and are owned by the
CollaborationManager that created them.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from prevc.config import RoleId
from prevc.workflow.errors import CollaborationError
from prevc.workflow.roles import responsibilities_for_role, role_display_name
from prevc.workflow.scaling import contains_any
from prevc.workflow.status_models import utc_now

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    ACTIVE = "active"
    SYNTHESIZING = "synthesizing"
    CONCLUDED = "concluded"


DECISION_KEYWORDS: tuple[str, ...] = (
    "decidimos",
    "decided",
    "conclusão",
    "conclusion",
    "definimos",
    "defined",
    "escolhemos",
    "chose",
    "optamos",
    "opted",
)

RECOMMENDATION_KEYWORDS: tuple[str, ...] = (
    "recomendo",
    "recommend",
    "sugiro",
    "suggest",
    "devemos",
    "should",
    "melhor",
    "better",
    "ideal",
)

# Ordered (keywords, roles) table; first match wins.
TOPIC_ROLES: tuple[tuple[tuple[str, ...], tuple[RoleId, ...]], ...] = (
    (
        ("arquitetura", "architecture", "design"),
        (RoleId.ARCHITECT, RoleId.DEVELOPER, RoleId.DESIGNER),
    ),
    (
        ("teste", "test", "qualidade", "quality"),
        (RoleId.QA, RoleId.REVIEWER, RoleId.DEVELOPER),
    ),
    (
        ("requisito", "requirement", "planejamento", "planning"),
        (RoleId.PLANNER, RoleId.ARCHITECT, RoleId.DESIGNER),
    ),
    (
        ("documentação", "documentation", "docs"),
        (RoleId.DOCUMENTER, RoleId.DEVELOPER, RoleId.PLANNER),
    ),
    (
        ("segurança", "security"),
        (RoleId.QA, RoleId.ARCHITECT, RoleId.REVIEWER),
    ),
    (
        ("performance", "desempenho"),
        (RoleId.QA, RoleId.DEVELOPER, RoleId.ARCHITECT),
    ),
)

DEFAULT_TOPIC_ROLES: tuple[RoleId, ...] = (RoleId.PLANNER, RoleId.ARCHITECT, RoleId.DEVELOPER)


def select_relevant_roles(topic: str) -> list[RoleId]:
    """Pick participants for a topic from the ordered topic table."""
    for keywords, roles in TOPIC_ROLES:
        if contains_any(topic, keywords):
            return list(roles)
    return list(DEFAULT_TOPIC_ROLES)


@dataclass
class Contribution:
    role: RoleId
    message: str
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "message": self.message, "timestamp": self.timestamp}


@dataclass
class CollaborationSynthesis:
    """Outcome of a concluded session."""

    topic: str
    participants: list[RoleId]
    contributions: list[Contribution]
    decisions: list[str]
    recommendations: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "participants": [role.value for role in self.participants],
            "contributions": [c.to_dict() for c in self.contributions],
            "decisions": self.decisions,
            "recommendations": self.recommendations,
        }


def _format_entry(contribution: Contribution) -> str:
    return f"[{role_display_name(contribution.role)}]: {contribution.message}"


class CollaborationSession:
    """A multi-role discussion on a single topic.

    Args:
        topic: What the participants are discussing
        participants: Roles taking part; selected from the topic when omitted
    """

    def __init__(self, topic: str, participants: list[RoleId] | None = None) -> None:
        self.id = f"collab-{uuid.uuid4().hex}"
        self.topic = topic
        self.participants: list[RoleId] = (
            [RoleId(p) for p in participants] if participants else select_relevant_roles(topic)
        )
        self.contributions: list[Contribution] = []
        self.status = SessionStatus.ACTIVE
        self.started_at = utc_now()

    def get_status(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "participants": [role.value for role in self.participants],
            "started_at": self.started_at,
            "status": self.status.value,
        }

    def is_participant(self, role: RoleId | str) -> bool:
        return role in self.participants

    def add_participant(self, role: RoleId) -> None:
        if role not in self.participants:
            self.participants.append(role)

    def remove_participant(self, role: RoleId) -> None:
        self.participants = [p for p in self.participants if p != role]

    def participant_names(self) -> list[str]:
        return [role_display_name(role) for role in self.participants]

    def contribute(self, role: RoleId | str, message: str) -> Contribution:
        """Record a contribution from a participant.

        Raises:
            CollaborationError: If the role is not a participant or the
                session is no longer active
        """
        if not self.is_participant(role):
            raise CollaborationError(f"Role {getattr(role, 'value', role)} is not a participant in this session")
        if self.status != SessionStatus.ACTIVE:
            raise CollaborationError("Cannot contribute to a session that is not active")
        contribution = Contribution(role=RoleId(role), message=message)
        self.contributions.append(contribution)
        return contribution

    def contributions_by_role(self, role: RoleId) -> list[Contribution]:
        return [c for c in self.contributions if c.role == role]

    def synthesize(self) -> CollaborationSynthesis:
        """Conclude the session and extract decisions and recommendations.

        Raises:
            CollaborationError: If the session has already been concluded
        """
        if self.status != SessionStatus.ACTIVE:
            raise CollaborationError(f"Session {self.id} has already been concluded")
        self.status = SessionStatus.SYNTHESIZING

        decisions = [
            _format_entry(c) for c in self.contributions if contains_any(c.message, DECISION_KEYWORDS)
        ]
        recommendations = [
            _format_entry(c) for c in self.contributions if contains_any(c.message, RECOMMENDATION_KEYWORDS)
        ]
        for role in self.participants:
            responsibilities = responsibilities_for_role(role)
            if responsibilities:
                recommendations.append(
                    f"Consider {role_display_name(role)}'s expertise in: {responsibilities[0]}"
                )

        self.status = SessionStatus.CONCLUDED
        logger.info(f"Collaboration {self.id} concluded with {len(decisions)} decisions")
        return CollaborationSynthesis(
            topic=self.topic,
            participants=list(self.participants),
            contributions=list(self.contributions),
            decisions=decisions,
            recommendations=recommendations,
        )


class CollaborationManager:
    """Owns the collaboration sessions of one process."""

    def __init__(self) -> None:
        self._sessions: dict[str, CollaborationSession] = {}

    def create_session(self, topic: str, participants: list[RoleId] | None = None) -> CollaborationSession:
        session = CollaborationSession(topic, participants)
        self._sessions[session.id] = session
        logger.info(f"Started collaboration {session.id} on '{topic}'")
        return session

    def get_session(self, session_id: str) -> CollaborationSession:
        """Look up a session.

        Raises:
            CollaborationError: If no session has this id
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise CollaborationError(f"Collaboration session not found: {session_id}")
        return session

    def active_sessions(self) -> list[CollaborationSession]:
        return [s for s in self._sessions.values() if s.status == SessionStatus.ACTIVE]

    def end_session(self, session_id: str) -> CollaborationSynthesis:
        return self.get_session(session_id).synthesize()

    def clear_concluded_sessions(self) -> None:
        self._sessions = {
            sid: s for sid, s in self._sessions.items() if s.status != SessionStatus.CONCLUDED
        }
