"""
Local cache of the active report, so the tracking screen has something to
show on cold start before the first fetch returns.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from baraya.models.report import EmergencyReport

logger = logging.getLogger(__name__)


class ActiveReportCache:
    """JSON file holding at most one report. Failures are logged, never raised."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[EmergencyReport]:
        try:
            if not self.path.exists():
                return None
            return EmergencyReport.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError as e:
            logger.warning(f"Discarding unreadable active report cache: {e.error_count()} error(s)")
            self.clear()
            return None
        except OSError as e:
            logger.warning(f"Failed to read active report cache: {e}")
            return None

    def save(self, report: Optional[EmergencyReport]) -> None:
        if report is None:
            self.clear()
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(report.model_dump_json(by_alias=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning(f"Failed to write active report cache: {e}")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clear active report cache: {e}")
