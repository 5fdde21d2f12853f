"""
Status Workflow - emergency report lifecycle rules.

DESIGN PRINCIPLES:
- Status is server-authoritative; the client only reads it
  (the one exception is the optimistic local completion)
- No skipping states, no backward transitions
- Tracking steps are a pure projection of status, recomputed on read
"""

from typing import Dict, Iterable, List, Optional

from baraya.models.report import EmergencyReport, EmergencyStatus, TrackingStep
import logging

logger = logging.getLogger(__name__)


TERMINAL_STATUSES = frozenset({EmergencyStatus.COMPLETED, EmergencyStatus.CANCELLED})

# Fixed order of the tracking checklist
TRACKING_SEQUENCE: List[EmergencyStatus] = [
    EmergencyStatus.PENDING,
    EmergencyStatus.ACCEPTED,
    EmergencyStatus.IN_PROGRESS,
    EmergencyStatus.COMPLETED,
]

STEP_DEFINITIONS: Dict[EmergencyStatus, Dict[str, str]] = {
    EmergencyStatus.PENDING: {
        "label": "Laporan Dikirim",
        "description": "Laporan darurat Anda telah diterima sistem",
        "icon": "paper-plane",
    },
    EmergencyStatus.ACCEPTED: {
        "label": "Diterima Petugas",
        "description": "Dinas terkait telah menerima laporan Anda",
        "icon": "checkmark-circle",
    },
    EmergencyStatus.IN_PROGRESS: {
        "label": "Dalam Penanganan",
        "description": "Petugas sedang menuju atau menangani lokasi",
        "icon": "car",
    },
    EmergencyStatus.COMPLETED: {
        "label": "Selesai",
        "description": "Laporan darurat telah selesai ditangani",
        "icon": "flag",
    },
}


class StatusWorkflowEngine:
    """
    State machine for emergency report status.

    pending → accepted → in_progress → completed
    cancelled from pending or accepted; completed/cancelled are terminal.
    """

    ALLOWED_TRANSITIONS: Dict[EmergencyStatus, List[EmergencyStatus]] = {
        EmergencyStatus.PENDING: [EmergencyStatus.ACCEPTED, EmergencyStatus.CANCELLED],
        EmergencyStatus.ACCEPTED: [EmergencyStatus.IN_PROGRESS, EmergencyStatus.CANCELLED],
        EmergencyStatus.IN_PROGRESS: [EmergencyStatus.COMPLETED],
        EmergencyStatus.COMPLETED: [],
        EmergencyStatus.CANCELLED: [],
    }

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a single-step status transition is valid.

        Same status is always valid (no-op). Unknown values are invalid.
        """
        try:
            from_enum = EmergencyStatus(from_status)
            to_enum = EmergencyStatus(to_status)
        except ValueError:
            return False

        if from_enum == to_enum:
            return True

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def is_reachable(cls, from_status: str, to_status: str) -> bool:
        """
        Check if `to_status` can follow `from_status` through any number of
        valid transitions. A refetch may skip intermediate states, but it
        may never move backwards.
        """
        try:
            start = EmergencyStatus(from_status)
            target = EmergencyStatus(to_status)
        except ValueError:
            return False

        seen = {start}
        frontier = [start]
        while frontier:
            current = frontier.pop()
            if current == target:
                return True
            for nxt in cls.ALLOWED_TRANSITIONS.get(current, []):
                if nxt not in seen:
                    seen.add(nxt)
                    frontier.append(nxt)
        return False

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        try:
            current_enum = EmergencyStatus(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    @staticmethod
    def is_terminal(status: str) -> bool:
        try:
            return EmergencyStatus(status) in TERMINAL_STATUSES
        except ValueError:
            return False


def select_active_report(reports: Iterable[EmergencyReport], user_id: Optional[str]) -> Optional[EmergencyReport]:
    """
    Pick the user's active report.

    Returns the first report (server order, most recent first) that belongs
    to `user_id` and is not completed/cancelled, or None.
    """
    if user_id is None:
        return None
    wanted = str(user_id)
    for report in reports:
        if report.user_id == wanted and report.status not in TERMINAL_STATUSES:
            return report
    return None


def derive_tracking_steps(report: Optional[EmergencyReport]) -> List[TrackingStep]:
    """
    Project a report's status onto the fixed tracking checklist.

    Steps before the current one are completed, the current one is active,
    later ones are neither. A cancelled report has no position in the
    sequence, so no step is completed or active. No report → no steps.
    """
    if report is None:
        return []

    try:
        current_index = TRACKING_SEQUENCE.index(report.status)
    except ValueError:
        current_index = -1

    steps = []
    for index, status in enumerate(TRACKING_SEQUENCE):
        definition = STEP_DEFINITIONS[status]
        is_active = index == current_index
        timestamp = None
        if index == 0:
            timestamp = report.created_at
        elif is_active:
            timestamp = report.updated_at

        steps.append(TrackingStep(
            status=status,
            label=definition["label"],
            description=definition["description"],
            icon=definition["icon"],
            is_completed=current_index >= 0 and index < current_index,
            is_active=is_active,
            timestamp=timestamp,
        ))

    return steps
