"""Tests for collaboration sessions.

Covers:
- Topic-based participant selection (first match wins)
- Contribution rules
- Synthesis of decisions and recommendations
- Session lookup and cleanup in CollaborationManager
"""

import pytest

from prevc.config import RoleId
from prevc.workflow.collaboration import (
    DEFAULT_TOPIC_ROLES,
    CollaborationManager,
    CollaborationSession,
    SessionStatus,
    select_relevant_roles,
)
from prevc.workflow.errors import CollaborationError


class TestSelectRelevantRoles:
    """Topic table lookups."""

    def test_design_topic(self):
        assert select_relevant_roles("API design review") == [
            RoleId.ARCHITECT,
            RoleId.DEVELOPER,
            RoleId.DESIGNER,
        ]

    def test_portuguese_security_topic(self):
        assert select_relevant_roles("Revisão de segurança") == [RoleId.QA, RoleId.ARCHITECT, RoleId.REVIEWER]

    def test_first_match_wins(self):
        """'test' is checked before 'security'."""
        assert select_relevant_roles("security test plan")[0] == RoleId.QA
        assert select_relevant_roles("security test plan")[1] == RoleId.REVIEWER

    def test_default(self):
        assert select_relevant_roles("choosing a caching layer") == list(DEFAULT_TOPIC_ROLES)


class TestSession:
    """Contributions and synthesis."""

    @pytest.fixture
    def session(self):
        return CollaborationSession("Storage choice", [RoleId.ARCHITECT, RoleId.DEVELOPER])

    def test_ids_are_unique(self):
        assert CollaborationSession("a").id != CollaborationSession("a").id

    def test_participants_from_topic(self):
        assert CollaborationSession("performance budget").participants == [
            RoleId.QA,
            RoleId.DEVELOPER,
            RoleId.ARCHITECT,
        ]

    def test_contribute(self, session):
        contribution = session.contribute("architect", "Postgres fits")
        assert contribution.role == RoleId.ARCHITECT
        assert session.contributions_by_role(RoleId.ARCHITECT) == [contribution]

    def test_non_participant_rejected(self, session):
        with pytest.raises(CollaborationError):
            session.contribute(RoleId.QA, "hello")

    def test_participants_can_change(self, session):
        session.add_participant(RoleId.QA)
        session.add_participant(RoleId.QA)
        assert session.participants.count(RoleId.QA) == 1
        session.remove_participant(RoleId.DEVELOPER)
        assert session.participant_names() == ["Architect", "QA Engineer"]

    def test_synthesis(self, session):
        session.contribute(RoleId.ARCHITECT, "We decided to use Postgres")
        session.contribute(RoleId.DEVELOPER, "I recommend adding an index")
        session.contribute(RoleId.DEVELOPER, "Looks fine")

        synthesis = session.synthesize()

        assert synthesis.decisions == ["[Architect]: We decided to use Postgres"]
        assert synthesis.recommendations[0] == "[Developer]: I recommend adding an index"
        assert synthesis.recommendations[1].startswith("Consider Architect's expertise in: ")
        assert len(synthesis.recommendations) == 3
        assert len(synthesis.contributions) == 3
        assert session.status == SessionStatus.CONCLUDED

    def test_no_contributions_after_conclusion(self, session):
        session.synthesize()
        with pytest.raises(CollaborationError):
            session.contribute(RoleId.ARCHITECT, "late")

    def test_synthesize_twice_rejected(self, session):
        session.synthesize()
        with pytest.raises(CollaborationError):
            session.synthesize()

    def test_status_snapshot(self, session):
        snapshot = session.get_status()
        assert snapshot["participants"] == ["architect", "developer"]
        assert snapshot["status"] == "active"


class TestCollaborationManager:
    """Session registry."""

    def test_lookup_and_end(self):
        manager = CollaborationManager()
        session = manager.create_session("docs refresh")
        assert manager.get_session(session.id) is session
        assert manager.active_sessions() == [session]

        manager.end_session(session.id)

        assert manager.active_sessions() == []
        manager.clear_concluded_sessions()
        with pytest.raises(CollaborationError):
            manager.get_session(session.id)

    def test_unknown_session(self):
        with pytest.raises(CollaborationError):
            CollaborationManager().get_session("collab-missing")
