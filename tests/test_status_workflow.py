from datetime import datetime, timezone

import pytest

from baraya.models.report import EmergencyReport, EmergencyStatus
from baraya.services.status_workflow import StatusWorkflowEngine, derive_tracking_steps, select_active_report


def report(id=1, user_id="5", status="pending", **extra):
    return EmergencyReport.model_validate(
        {"id": id, "userId": user_id, "latitude": -6.2, "longitude": 106.8, "pesan": "Kebakaran", "status": status, **extra}
    )


class TestTransitions:
    @pytest.mark.parametrize("from_status, to_status", [
        ("pending", "accepted"),
        ("accepted", "in_progress"),
        ("in_progress", "completed"),
        ("pending", "cancelled"),
        ("accepted", "cancelled"),
        ("accepted", "accepted"),
    ])
    def test_valid(self, from_status, to_status):
        assert StatusWorkflowEngine.is_valid_transition(from_status, to_status)

    @pytest.mark.parametrize("from_status, to_status", [
        ("pending", "in_progress"),
        ("in_progress", "accepted"),
        ("completed", "pending"),
        ("cancelled", "accepted"),
        ("in_progress", "cancelled"),
        ("pending", "archived"),
    ])
    def test_invalid(self, from_status, to_status):
        assert not StatusWorkflowEngine.is_valid_transition(from_status, to_status)

    def test_reachable_allows_skips_but_not_regressions(self):
        assert StatusWorkflowEngine.is_reachable("pending", "completed")
        assert not StatusWorkflowEngine.is_reachable("in_progress", "pending")
        assert StatusWorkflowEngine.is_reachable("completed", "completed")
        assert not StatusWorkflowEngine.is_reachable("cancelled", "completed")

    def test_terminal(self):
        assert StatusWorkflowEngine.is_terminal("completed")
        assert StatusWorkflowEngine.is_terminal("cancelled")
        assert not StatusWorkflowEngine.is_terminal("in_progress")
        assert StatusWorkflowEngine.get_allowed_transitions("completed") == []


def test_status_is_case_insensitive():
    assert report(status="IN_PROGRESS").status == EmergencyStatus.IN_PROGRESS


class TestActiveReportSelection:
    def test_picks_first_open_report_of_user(self):
        reports = [
            report(id=9, user_id="7", status="pending"),
            report(id=8, user_id="5", status="completed"),
            report(id=7, user_id="5", status="accepted"),
            report(id=6, user_id="5", status="pending"),
        ]
        assert select_active_report(reports, "5").id == 7

    def test_numeric_user_ids_match_strings(self):
        reports = [report(id=3, user_id=5)]
        assert select_active_report(reports, 5).id == 3

    def test_none_when_everything_is_closed(self):
        reports = [report(id=1, status="completed"), report(id=2, status="cancelled")]
        assert select_active_report(reports, "5") is None

    def test_none_without_user(self):
        assert select_active_report([report()], None) is None


class TestTrackingSteps:
    def test_no_report_no_steps(self):
        assert derive_tracking_steps(None) == []

    def test_in_progress(self):
        created = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
        updated = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)
        steps = derive_tracking_steps(report(status="in_progress", createdAt=created.isoformat(), updatedAt=updated.isoformat()))

        assert [s.status for s in steps] == [
            EmergencyStatus.PENDING, EmergencyStatus.ACCEPTED, EmergencyStatus.IN_PROGRESS, EmergencyStatus.COMPLETED,
        ]
        assert [s.is_completed for s in steps] == [True, True, False, False]
        assert [s.is_active for s in steps] == [False, False, True, False]
        assert steps[0].timestamp == created
        assert steps[2].timestamp == updated
        assert steps[3].timestamp is None

    def test_pending_first_step_active(self):
        steps = derive_tracking_steps(report(status="pending"))
        assert steps[0].is_active and not steps[0].is_completed
        assert not any(s.is_completed for s in steps)

    def test_completed_is_last_active(self):
        steps = derive_tracking_steps(report(status="completed"))
        assert [s.is_completed for s in steps] == [True, True, True, False]
        assert steps[3].is_active

    def test_cancelled_has_no_progress(self):
        steps = derive_tracking_steps(report(status="cancelled"))
        assert len(steps) == 4
        assert not any(s.is_completed or s.is_active for s in steps)

    def test_labels_are_localized(self):
        steps = derive_tracking_steps(report())
        assert steps[0].label == "Laporan Dikirim"
        assert steps[3].label == "Selesai"
