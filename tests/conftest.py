"""
Pytest configuration and fixtures for Enarva workflow tests.

Each test gets its own SQLite file database, a Flask app built by
create_app(), and a small seeded organisation:

    admin      ADMIN
    leader     TEAM_LEADER, team leader of every factory mission
    member     TECHNICIAN, active member of the team, assignee of factory tasks
    outsider   TECHNICIAN, not in the team
    agent      AGENT
"""
import itertools
from dataclasses import dataclass
from datetime import datetime
from typing import Generator

import pytest

from enarva.app import create_app
from enarva.config import TestingConfig
from enarva.database import Database
from enarva.database.models import (
    Activity, Lead, Mission, MissionStatus, Priority, Task, TaskStatus, Team, TeamMember, User, UserRole
)
from enarva.utils.permissions import Actor

LEADER_SUBSCRIPTION = {
    "endpoint": "https://push.example.test/leader",
    "keys": {"p256dh": "leader-p256dh", "auth": "leader-auth"},
}
MEMBER_SUBSCRIPTION = {
    "endpoint": "https://push.example.test/member",
    "keys": {"p256dh": "member-p256dh", "auth": "member-auth"},
}


@dataclass
class Seed:
    admin: Actor
    leader: Actor
    member: Actor
    outsider: Actor
    agent: Actor
    team_id: int
    member_id: int
    outsider_member_id: int
    lead_id: int


@pytest.fixture
def db(tmp_path) -> Generator[Database, None, None]:
    """Temporary SQLite file database with all tables created."""
    database = Database(f"sqlite:///{tmp_path / 'enarva_test.db'}")
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def app(db):
    return create_app(TestingConfig, db=db)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["enarva"]


def _actor(user: User) -> Actor:
    return Actor(id=user.id, role=user.role, name=user.name)


@pytest.fixture
def seed(db) -> Seed:
    with db.session_scope() as session:
        admin = User(name="Admin", email="admin@enarva.test", role=UserRole.ADMIN)
        leader = User(
            name="Karim Leader", email="leader@enarva.test", role=UserRole.TEAM_LEADER,
            push_subscription=LEADER_SUBSCRIPTION,
        )
        member = User(
            name="Nadia Member", email="member@enarva.test", role=UserRole.TECHNICIAN,
            push_subscription=MEMBER_SUBSCRIPTION,
        )
        outsider = User(name="Omar Outsider", email="outsider@enarva.test", role=UserRole.TECHNICIAN)
        agent = User(name="Amal Agent", email="agent@enarva.test", role=UserRole.AGENT)

        team = Team(name="Equipe A")
        other_team = Team(name="Equipe B")
        membership = TeamMember(team=team, user=member)
        outsider_membership = TeamMember(team=other_team, user=outsider)
        lead = Lead(first_name="Sara", last_name="Bennani", email="sara@example.test")

        session.add_all([admin, leader, member, outsider, agent, team, other_team,
                         membership, outsider_membership, lead])
        session.flush()

        return Seed(
            admin=_actor(admin),
            leader=_actor(leader),
            member=_actor(member),
            outsider=_actor(outsider),
            agent=_actor(agent),
            team_id=team.id,
            member_id=membership.id,
            outsider_member_id=outsider_membership.id,
            lead_id=lead.id,
        )


@pytest.fixture
def make_mission(db, seed):
    """
    Factory inserting a mission (and its tasks) directly in the database.

    Returns the mission id.
    """
    counter = itertools.count(1)

    def factory(
        status=MissionStatus.SCHEDULED,
        task_statuses=(TaskStatus.ASSIGNED,),
        priority=Priority.NORMAL,
        scheduled_date=None,
        with_team=True,
    ) -> int:
        with db.session_scope() as session:
            mission = Mission(
                mission_number=f"TEST-{next(counter):03d}",
                status=status,
                priority=priority,
                scheduled_date=scheduled_date or datetime(2026, 1, 15, 9, 0),
                address="12 Rue des Tests, Casablanca",
                lead_id=seed.lead_id,
                team_leader_id=seed.leader.id,
                team_id=seed.team_id if with_team else None,
            )
            for index, task_status in enumerate(task_statuses, start=1):
                mission.tasks.append(Task(
                    title=f"Task {index}",
                    status=task_status,
                    estimated_time=60,
                    assigned_to_id=seed.member_id,
                ))
            session.add(mission)
            session.flush()
            return mission.id

    return factory


@pytest.fixture
def load(db):
    """Fetch a detached row by primary key."""
    def _load(model, pk):
        with db.session_scope() as session:
            return session.get(model, pk)
    return _load


@pytest.fixture
def task_ids(db):
    """Task ids of a mission, in creation order."""
    def _task_ids(mission_id):
        with db.session_scope() as session:
            return [task.id for task in session.get(Mission, mission_id).tasks]
    return _task_ids


@pytest.fixture
def activities(db):
    """All activity rows, oldest first, as dicts."""
    def _activities(mission_id=None):
        with db.session_scope() as session:
            query = session.query(Activity).order_by(Activity.id)
            if mission_id is not None:
                query = query.filter(Activity.mission_id == mission_id)
            return [activity.to_dict() for activity in query]
    return _activities


@pytest.fixture
def login(client):
    """Write the user id into the signed session cookie."""
    def _login(actor: Actor):
        with client.session_transaction() as sess:
            sess["user_id"] = actor.id
    return _login
