"""
Tests for permissions.py - the capability table.
"""
import pytest

from enarva.database.models import Mission, Task, Team, TeamMember, UserRole
from enarva.utils.errors import Forbidden
from enarva.utils.permissions import Actor, Capability, capabilities, require

LEADER = Actor(id=10, role=UserRole.TEAM_LEADER)
MEMBER = Actor(id=20, role=UserRole.TECHNICIAN)
ASSIGNEE = Actor(id=30, role=UserRole.TECHNICIAN)
STRANGER = Actor(id=40, role=UserRole.TECHNICIAN)


@pytest.fixture
def mission():
    team = Team(name="Equipe A", members=[
        TeamMember(user_id=MEMBER.id, is_active=True),
        TeamMember(user_id=50, is_active=False),
    ])
    return Mission(team=team, team_leader_id=LEADER.id)


@pytest.fixture
def task(mission):
    return Task(mission=mission, assigned_to=TeamMember(user_id=ASSIGNEE.id, is_active=True))


class TestCapabilities:

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.MANAGER])
    def test_admin_roles_have_everything(self, role):
        assert capabilities(Actor(id=1, role=role)) == frozenset(Capability)

    def test_team_leader(self, mission):
        granted = capabilities(LEADER, mission)
        assert Capability.UPDATE_MISSION_STATUS in granted
        assert Capability.MANAGE_QUALITY_CHECK in granted
        assert Capability.UPDATE_TASK_TIME in granted
        assert Capability.VALIDATE_MISSION not in granted
        assert Capability.SCHEDULE_MISSION not in granted

    def test_team_member(self, mission):
        granted = capabilities(MEMBER, mission)
        assert granted == {Capability.START_MISSION, Capability.UPDATE_TASK, Capability.ASSIGN_TASK}

    def test_inactive_member_has_nothing(self, mission):
        assert capabilities(Actor(id=50, role=UserRole.TECHNICIAN), mission) == frozenset()

    def test_assignee_outside_team(self, mission, task):
        granted = capabilities(ASSIGNEE, mission, task)
        assert granted == {Capability.UPDATE_TASK, Capability.ASSIGN_TASK}
        assert Capability.START_MISSION not in capabilities(ASSIGNEE, mission)

    def test_team_leader_role_without_relationship(self, mission):
        other_leader = Actor(id=99, role=UserRole.TEAM_LEADER)
        assert capabilities(other_leader, mission) == frozenset()

    def test_mission_without_team(self):
        assert capabilities(MEMBER, Mission(team=None, team_leader_id=LEADER.id)) == frozenset()


class TestRequire:

    def test_require_raises_forbidden(self, mission):
        with pytest.raises(Forbidden) as excinfo:
            require(STRANGER, Capability.START_MISSION, mission)
        assert excinfo.value.status_code == 403

    def test_require_passes(self, mission):
        require(MEMBER, Capability.START_MISSION, mission)
