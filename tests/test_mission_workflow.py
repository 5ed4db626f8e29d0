"""
Tests for mission_workflow.py - schedule, start, status updates and admin validation.
"""
import re
import threading
from datetime import datetime
from unittest.mock import Mock, patch

import pusher
import pytest

from enarva.database.models import (
    ActivityType, Lead, Mission, MissionStatus, Task, TaskStatus, TeamMember
)
from enarva.database.schemas import MissionCreate, MissionValidation
from enarva.utils.broadcaster import PusherBroadcaster
from enarva.utils.errors import Forbidden, InvalidState, NotFound
from enarva.utils.mission_workflow import MissionWorkflow, resolve_effective_status
from enarva.utils.push_notifier import PushNotifier
from tests.conftest import LEADER_SUBSCRIPTION


@pytest.fixture
def broadcaster():
    publisher = Mock()
    publisher.publish.return_value = True
    return publisher


@pytest.fixture
def workflow(db, services, broadcaster):
    notifier = PushNotifier("public-key", "private-key", "mailto:ops@enarva.test")
    return MissionWorkflow(db, services.activity_logger, broadcaster, notifier)


class TestResolveEffectiveStatus:
    """The IN_PROGRESS -> QUALITY_CHECK substitution rule."""

    def test_all_validated_upgrades(self):
        tasks = [Task(status=TaskStatus.VALIDATED), Task(status=TaskStatus.VALIDATED)]
        assert resolve_effective_status(MissionStatus.IN_PROGRESS, tasks) == MissionStatus.QUALITY_CHECK

    def test_completed_task_does_not_upgrade(self):
        tasks = [Task(status=TaskStatus.VALIDATED), Task(status=TaskStatus.COMPLETED)]
        assert resolve_effective_status(MissionStatus.IN_PROGRESS, tasks) == MissionStatus.IN_PROGRESS

    def test_no_tasks_does_not_upgrade(self):
        assert resolve_effective_status(MissionStatus.IN_PROGRESS, []) == MissionStatus.IN_PROGRESS

    def test_other_requests_untouched(self):
        tasks = [Task(status=TaskStatus.VALIDATED)]
        assert resolve_effective_status(MissionStatus.CANCELLED, tasks) == MissionStatus.CANCELLED


class TestSchedule:
    """Manual mission scheduling."""

    def _payload(self, seed, **overrides):
        data = {
            "leadId": seed.lead_id,
            "scheduledDate": "2026-03-02T08:30:00Z",
            "address": "5 Avenue Hassan II, Rabat",
            "teamLeaderId": seed.leader.id,
            "teamId": seed.team_id,
            "tasks": [
                {"title": "Windows", "category": "WINDOWS_JOINERY", "estimatedTime": 90,
                 "assignedToId": seed.member_id},
                {"title": "Floors", "category": "FLOORS"},
            ],
        }
        data.update(overrides)
        return MissionCreate.model_validate(data)

    def test_schedule_creates_mission_and_tasks(self, workflow, seed, activities):
        with patch("enarva.utils.push_notifier.webpush") as webpush:
            result = workflow.schedule(self._payload(seed), seed.admin)

        assert re.fullmatch(r"M\d{8}-001", result["missionNumber"])
        assert result["status"] == "SCHEDULED"
        assert result["scheduledDate"] == "2026-03-02T08:30:00"
        assert [task["status"] for task in result["tasks"]] == ["ASSIGNED", "ASSIGNED"]

        logged = activities(result["id"])
        assert [a["type"] for a in logged] == ["MISSION_SCHEDULED"]
        assert logged[0]["metadata"]["taskCount"] == 2

        webpush.assert_called_once()
        assert webpush.call_args.kwargs["subscription_info"] == LEADER_SUBSCRIPTION

    def test_mission_numbers_increment_per_day(self, workflow, seed):
        first = workflow.schedule(self._payload(seed), seed.admin)
        second = workflow.schedule(self._payload(seed), seed.admin)
        assert first["missionNumber"][:-3] == second["missionNumber"][:-3]
        assert second["missionNumber"].endswith("-002")

    def test_schedule_broadcasts_mission_created(self, workflow, seed, broadcaster):
        result = workflow.schedule(self._payload(seed), seed.admin)
        channel, event, data = broadcaster.publish.call_args.args
        assert (channel, event) == ("missions-channel", "mission-created")
        assert data["missionId"] == result["id"]

    def test_non_admin_cannot_schedule(self, workflow, seed):
        with pytest.raises(Forbidden):
            workflow.schedule(self._payload(seed), seed.leader)

    def test_unknown_lead(self, workflow, seed):
        with pytest.raises(NotFound):
            workflow.schedule(self._payload(seed, leadId=9999), seed.admin)

    def test_unknown_team_member_writes_nothing(self, workflow, seed, db):
        payload = self._payload(seed, tasks=[{"title": "Ghost work", "assignedToId": 9999}])
        with pytest.raises(NotFound):
            workflow.schedule(payload, seed.admin)
        with db.session_scope() as session:
            assert session.query(Mission).count() == 0


class TestListMissions:

    def test_newest_scheduled_first_with_lead_and_tasks(self, workflow, seed, make_mission):
        older = make_mission(scheduled_date=datetime(2026, 1, 10, 9))
        newer = make_mission(scheduled_date=datetime(2026, 2, 1, 9), task_statuses=(TaskStatus.ASSIGNED,) * 2)

        missions = workflow.list_missions()

        assert [mission["id"] for mission in missions] == [newer, older]
        assert missions[0]["lead"]["id"] == seed.lead_id
        assert len(missions[0]["tasks"]) == 2

    def test_empty(self, workflow, seed):
        assert workflow.list_missions() == []


class TestFieldMissions:
    """Role-scoped list for the field app."""

    NOW = datetime(2026, 1, 15, 14, 30)

    @pytest.fixture
    def reassign_leader(self, db):
        def _reassign(mission_id, user_id):
            with db.session_scope() as session:
                session.get(Mission, mission_id).team_leader_id = user_id
        return _reassign

    def _ids(self, workflow, actor):
        return [mission["id"] for mission in workflow.field_missions(actor, now=self.NOW)]

    def test_team_leader_sees_missions_they_lead(self, workflow, seed, make_mission, reassign_leader):
        led = make_mission()
        other = make_mission()
        reassign_leader(other, seed.admin.id)

        assert self._ids(workflow, seed.leader) == [led]

    def test_technician_sees_team_and_assigned_missions(self, workflow, seed, make_mission):
        on_team = make_mission(task_statuses=())
        assigned_only = make_mission(with_team=False)
        unrelated = make_mission(task_statuses=(), with_team=False)

        visible = self._ids(workflow, seed.member)

        assert set(visible) == {on_team, assigned_only}
        assert unrelated not in visible
        assert self._ids(workflow, seed.outsider) == []

    def test_inactive_membership_hides_team_missions(self, workflow, seed, make_mission, db):
        on_team = make_mission(task_statuses=())
        with db.session_scope() as session:
            session.get(TeamMember, seed.member_id).is_active = False

        assert on_team not in self._ids(workflow, seed.member)

    def test_other_roles_see_everything_in_field_statuses(self, workflow, seed, make_mission):
        kept = {
            make_mission(status=status)
            for status in (
                MissionStatus.SCHEDULED, MissionStatus.IN_PROGRESS,
                MissionStatus.QUALITY_CHECK, MissionStatus.COMPLETED,
            )
        }
        make_mission(status=MissionStatus.CANCELLED)
        make_mission(status=MissionStatus.CLIENT_VALIDATION)

        assert set(self._ids(workflow, seed.admin)) == kept
        assert set(self._ids(workflow, seed.agent)) == kept

    def test_past_missions_only_kept_while_active(self, workflow, seed, make_mission):
        yesterday = datetime(2026, 1, 14, 9)
        make_mission(status=MissionStatus.SCHEDULED, scheduled_date=yesterday)
        make_mission(status=MissionStatus.COMPLETED, scheduled_date=yesterday)
        running = make_mission(status=MissionStatus.IN_PROGRESS, scheduled_date=yesterday)
        checking = make_mission(status=MissionStatus.QUALITY_CHECK, scheduled_date=yesterday)
        early_today = make_mission(scheduled_date=datetime(2026, 1, 15, 7))

        assert set(self._ids(workflow, seed.admin)) == {running, checking, early_today}

    def test_ordered_by_scheduled_date(self, workflow, seed, make_mission):
        later = make_mission(scheduled_date=datetime(2026, 1, 20, 9))
        sooner = make_mission(scheduled_date=datetime(2026, 1, 16, 9))

        assert self._ids(workflow, seed.admin) == [sooner, later]

    def test_tasks_carry_assignee_user(self, workflow, seed, make_mission):
        make_mission()

        mission = workflow.field_missions(seed.member, now=self.NOW)[0]

        assert mission["teamLeader"]["id"] == seed.leader.id
        assignee = mission["tasks"][0]["assignedTo"]
        assert assignee["id"] == seed.member_id
        assert assignee["user"]["name"] == "Nadia Member"


class TestStart:
    """SCHEDULED -> IN_PROGRESS."""

    def test_start_scheduled_mission(self, workflow, seed, make_mission, load, task_ids):
        mission_id = make_mission(task_statuses=(TaskStatus.ASSIGNED, TaskStatus.COMPLETED))

        result = workflow.start(mission_id, seed.leader)

        assert result["status"] == "IN_PROGRESS"
        assert result["actualStartTime"] is not None
        first, second = (load(Task, pk) for pk in task_ids(mission_id))
        assert first.status == TaskStatus.IN_PROGRESS
        assert first.started_at is not None
        assert second.status == TaskStatus.COMPLETED
        assert second.started_at is None

    def test_start_twice_fails_with_current_status(self, workflow, seed, make_mission):
        mission_id = make_mission()
        workflow.start(mission_id, seed.admin)

        with pytest.raises(InvalidState) as excinfo:
            workflow.start(mission_id, seed.admin)
        assert "IN_PROGRESS" in excinfo.value.message

    def test_team_member_can_start(self, workflow, seed, make_mission):
        mission_id = make_mission()
        assert workflow.start(mission_id, seed.member)["status"] == "IN_PROGRESS"

    def test_outsider_forbidden_and_state_unchanged(self, workflow, seed, make_mission, load, activities):
        mission_id = make_mission()

        with pytest.raises(Forbidden):
            workflow.start(mission_id, seed.outsider)

        assert load(Mission, mission_id).status == MissionStatus.SCHEDULED
        assert activities(mission_id) == []

    def test_missing_mission(self, workflow, seed):
        with pytest.raises(NotFound):
            workflow.start(4242, seed.admin)

    def test_start_records_activity_and_broadcast(self, workflow, seed, make_mission, activities, broadcaster):
        mission_id = make_mission(task_statuses=(TaskStatus.ASSIGNED, TaskStatus.ASSIGNED))
        workflow.start(mission_id, seed.leader)

        logged = activities(mission_id)
        assert [a["type"] for a in logged] == ["MISSION_STARTED"]
        assert logged[0]["userId"] == seed.leader.id
        assert logged[0]["metadata"]["tasksStarted"] == 2
        assert broadcaster.publish.call_args.args[1] == "mission-started"

    def test_broadcast_failure_does_not_fail_start(self, db, services, seed, make_mission, load):
        client = pusher.Pusher(app_id="42", key="key", secret="secret", cluster="eu")
        workflow = MissionWorkflow(db, services.activity_logger, PusherBroadcaster(client))
        mission_id = make_mission()

        with patch.object(pusher.Pusher, "trigger", side_effect=ConnectionError("pub/sub down")) as trigger:
            result = workflow.start(mission_id, seed.admin)

        assert result["status"] == "IN_PROGRESS"
        assert load(Mission, mission_id).status == MissionStatus.IN_PROGRESS
        trigger.assert_called_once()


class TestSetStatus:
    """Administrative status override."""

    def test_in_progress_upgraded_when_all_validated(self, workflow, seed, make_mission, activities):
        mission_id = make_mission(
            status=MissionStatus.SCHEDULED,
            task_statuses=(TaskStatus.VALIDATED, TaskStatus.VALIDATED),
        )

        result = workflow.set_status(mission_id, MissionStatus.IN_PROGRESS, None, seed.admin)

        assert result["status"] == "QUALITY_CHECK"
        metadata = activities(mission_id)[-1]["metadata"]
        assert metadata["newStatus"] == "QUALITY_CHECK"
        assert metadata["requestedStatus"] == "IN_PROGRESS"

    def test_in_progress_honoured_with_open_tasks(self, workflow, seed, make_mission):
        mission_id = make_mission(task_statuses=(TaskStatus.VALIDATED, TaskStatus.IN_PROGRESS))
        result = workflow.set_status(mission_id, MissionStatus.IN_PROGRESS, None, seed.admin)
        assert result["status"] == "IN_PROGRESS"

    def test_completed_sets_end_time_and_others_clear_it(self, workflow, seed, make_mission):
        mission_id = make_mission()

        completed = workflow.set_status(mission_id, MissionStatus.COMPLETED, None, seed.admin)
        assert completed["actualEndTime"] is not None

        reopened = workflow.set_status(mission_id, MissionStatus.QUALITY_CHECK, None, seed.admin)
        assert reopened["actualEndTime"] is None

    def test_any_status_to_any_status(self, workflow, seed, make_mission):
        mission_id = make_mission(status=MissionStatus.COMPLETED)
        result = workflow.set_status(mission_id, MissionStatus.SCHEDULED, None, seed.leader)
        assert result["status"] == "SCHEDULED"

    def test_notes_only_overwrite_when_given(self, workflow, seed, make_mission):
        mission_id = make_mission()
        workflow.set_status(mission_id, MissionStatus.IN_PROGRESS, "Client asked for mornings", seed.admin)
        result = workflow.set_status(mission_id, MissionStatus.IN_PROGRESS, None, seed.admin)
        assert result["adminNotes"] == "Client asked for mornings"

    def test_team_member_cannot_set_status(self, workflow, seed, make_mission):
        mission_id = make_mission()
        with pytest.raises(Forbidden):
            workflow.set_status(mission_id, MissionStatus.CANCELLED, None, seed.member)

    def test_concurrent_updates_last_commit_wins(self, workflow, seed, make_mission, load, activities):
        mission_id = make_mission(status=MissionStatus.IN_PROGRESS)
        barrier = threading.Barrier(2)
        errors = []

        def update(status):
            barrier.wait()
            try:
                workflow.set_status(mission_id, status, None, seed.admin)
            except Exception as exc:  # collected for the assertion below
                errors.append(exc)

        threads = [
            threading.Thread(target=update, args=(status,))
            for status in (MissionStatus.COMPLETED, MissionStatus.CANCELLED)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        updates = [a for a in activities(mission_id) if a["type"] == "MISSION_STATUS_UPDATED"]
        assert len(updates) == 2
        last_committed = updates[-1]["metadata"]["newStatus"]
        mission = load(Mission, mission_id)
        assert mission.status.value == last_committed
        assert (mission.actual_end_time is not None) == (last_committed == "COMPLETED")


class TestValidate:
    """Admin validation of a mission in quality check."""

    def _validation(self, **data):
        return MissionValidation.model_validate(data)

    def test_approve(self, workflow, seed, make_mission, load, activities, broadcaster):
        mission_id = make_mission(status=MissionStatus.QUALITY_CHECK, task_statuses=(TaskStatus.COMPLETED,))

        with patch("enarva.utils.push_notifier.webpush") as webpush:
            result = workflow.validate(
                mission_id, self._validation(approved=True, qualityScore=5, adminNotes="Parfait"), seed.admin
            )

        assert result["status"] == "COMPLETED"
        assert result["actualEndTime"] is not None
        assert result["adminValidated"] is True
        assert result["adminValidatedBy"] == seed.admin.id
        assert result["qualityScore"] == 5
        assert load(Lead, seed.lead_id).status == "COMPLETED"
        assert activities(mission_id)[-1]["type"] == ActivityType.MISSION_COMPLETED.value

        channel, event, data = broadcaster.publish.call_args.args
        assert channel == f"user-{seed.leader.id}"
        assert event == "mission-validation"
        assert data["type"] == "mission_approved"
        webpush.assert_called_once()

    def test_reject_with_correction_reopens(self, workflow, seed, make_mission, load, task_ids):
        mission_id = make_mission(
            status=MissionStatus.QUALITY_CHECK,
            task_statuses=(TaskStatus.COMPLETED, TaskStatus.VALIDATED),
        )

        result = workflow.validate(
            mission_id,
            self._validation(approved=False, issuesFound="Streaks on windows", correctionNeeded=True),
            seed.admin,
        )

        assert result["status"] == "IN_PROGRESS"
        assert result["actualEndTime"] is None
        assert result["correctionRequired"] is True
        assert all(load(Task, pk).status == TaskStatus.ASSIGNED for pk in task_ids(mission_id))

    def test_reject_without_correction_stays_in_quality_check(self, workflow, seed, make_mission, activities):
        mission_id = make_mission(status=MissionStatus.CLIENT_VALIDATION)

        result = workflow.validate(mission_id, self._validation(approved=False, issuesFound="  "), seed.admin)

        assert result["status"] == "QUALITY_CHECK"
        assert result["issuesFound"] is None
        assert activities(mission_id)[-1]["type"] == ActivityType.QUALITY_ISSUE.value

    def test_not_ready_for_validation(self, workflow, seed, make_mission):
        mission_id = make_mission(status=MissionStatus.IN_PROGRESS)
        with pytest.raises(InvalidState):
            workflow.validate(mission_id, self._validation(approved=True), seed.admin)

    def test_team_leader_cannot_validate(self, workflow, seed, make_mission):
        mission_id = make_mission(status=MissionStatus.QUALITY_CHECK)
        with pytest.raises(Forbidden):
            workflow.validate(mission_id, self._validation(approved=True), seed.leader)
