"""
Emergency Report Engine - report list, active report and submission.

Flow for a new report:
1. Require a session token (AuthRequiredError otherwise)
2. Compress the optional photo (best-effort)
3. POST multipart to /notifikasi-darurat, retrying only on transport errors
4. On success prepend to `reports` and make it the active report

IMPORTANT: a failed submission raises ReportSubmissionError and leaves
`reports` / `active_report` exactly as they were.

DESIGN NOTE:
`complete_report()` is an optimistic, local-only completion. It flips the
status immediately and empties the active slot after a short delay so the
UI can animate. Nothing is sent to the server, and the next fetch may
bring the report back if the server still has it open.
"""

import asyncio
import logging
import time
from typing import Any, List, Optional

import requests
from pydantic import ValidationError

from baraya.config.api_client import ApiClient, parse_json
from baraya.core.events import EventBus, SessionCleared
from baraya.core.exceptions import ApiError, AuthRequiredError, ReportSubmissionError, TransportError
from baraya.core.tasks import BackgroundTasks, run_blocking
from baraya.models.report import EmergencyReport, EmergencyStatus, ReportCreate, TrackingStep
from baraya.services.report_cache import ActiveReportCache
from baraya.services.session_manager import SessionManager
from baraya.services.status_workflow import StatusWorkflowEngine, derive_tracking_steps, select_active_report
from baraya.utils.image_compressor import ImageCompressor
from baraya.utils.multipart import MultipartRequest, extension_for
from baraya.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

REPORTS_PATH = "/notifikasi-darurat"
PHOTO_FIELD = "foto"

MSG_SUBMIT_FAILED = "Gagal mengirim laporan"
MSG_INVALID_RESPONSE = "Invalid response"
MSG_FETCH_FAILED = "Failed to fetch emergency reports"
MSG_PHOTO_UNREADABLE = "Foto tidak dapat dibaca"


class EmergencyReportService:
    """
    Owns `reports` and the `active_report` pointer, which always aliases
    an element of `reports` (or a cached copy on cold start) or is None.
    """

    def __init__(
        self,
        api: ApiClient,
        session_manager: SessionManager,
        compressor: ImageCompressor,
        events: EventBus,
        tasks: BackgroundTasks,
        cache: Optional[ActiveReportCache] = None,
        upload_retry: Optional[RetryPolicy] = None,
        completion_delay: float = 2.0,
    ):
        self.api = api
        self.session_manager = session_manager
        self.compressor = compressor
        self.cache = cache
        self.upload_retry = upload_retry or RetryPolicy()
        self.completion_delay = completion_delay
        self._tasks = tasks

        self.reports: List[EmergencyReport] = []
        self.active_report: Optional[EmergencyReport] = None
        self.loading = False
        self.error: Optional[str] = None
        self._generation = 0

        events.subscribe(SessionCleared, self._on_session_cleared)

    # ---------------------- FETCH ----------------------

    async def fetch_reports(self) -> List[EmergencyReport]:
        """
        Load the full report collection (server does not filter by user).
        On failure the previous list stays and `error` is set.
        """
        generation = self._generation
        self.loading = True
        self.error = None
        try:
            reports = await self._fetch_report_list()
        except ApiError as e:
            logger.warning(f"Fetching emergency reports failed: {e}")
            self.error = e.message or MSG_FETCH_FAILED
            return self.reports
        finally:
            self.loading = False

        if generation != self._generation:
            logger.info("Discarding report list fetched for a previous session")
            return self.reports

        self.reports = reports
        return reports

    async def fetch_active_report(self, user_id: Optional[str] = None) -> Optional[EmergencyReport]:
        """
        Refresh `reports` and select the user's active report.

        Args:
            user_id: Owner to match; defaults to the signed-in user

        Returns:
            The active report after the refresh (unchanged on failure)
        """
        if user_id is None:
            user_id = self.session_manager.user_id
        user_id = str(user_id) if user_id is not None else None

        generation = self._generation
        self.loading = True
        self.error = None
        try:
            reports = await self._fetch_report_list()
        except ApiError as e:
            logger.warning(f"Fetching active report failed: {e}")
            self.error = e.message or MSG_FETCH_FAILED
            return self.active_report
        finally:
            self.loading = False

        if generation != self._generation:
            logger.info("Discarding active report fetched for a previous session")
            return self.active_report

        previous = self.active_report
        self.reports = reports
        self.active_report = select_active_report(reports, user_id)
        self._warn_on_regression(previous, reports)
        await self._save_cache()
        return self.active_report

    async def _fetch_report_list(self) -> List[EmergencyReport]:
        body = await self.api.get(REPORTS_PATH)
        if not isinstance(body, dict) or body.get("success") is False:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(message or MSG_FETCH_FAILED)

        data = body.get("data")
        if isinstance(data, dict):
            items = data.get("content") or []
        elif isinstance(data, list):
            items = data
        else:
            items = []

        reports = []
        for item in items:
            try:
                reports.append(EmergencyReport.model_validate(item))
            except ValidationError as e:
                item_id = item.get("id") if isinstance(item, dict) else None
                logger.warning(f"Skipping malformed report {item_id}: {e.error_count()} error(s)")
        return reports

    def _warn_on_regression(self, previous: Optional[EmergencyReport], reports: List[EmergencyReport]) -> None:
        if previous is None:
            return
        fresh = next((r for r in reports if r.id == previous.id), None)
        if fresh is None:
            return
        if not StatusWorkflowEngine.is_reachable(previous.status, fresh.status):
            logger.warning(
                f"Report {previous.id} moved back from {previous.status.value} to {fresh.status.value} "
                f"(server state wins)"
            )

    # ---------------------- CREATE ----------------------

    async def create_report(self, payload: ReportCreate) -> EmergencyReport:
        """
        Submit a new emergency report.

        Args:
            payload: Coordinates, message, optional owner/agency and photo

        Returns:
            The created report, already stored as the active report

        Raises:
            AuthRequiredError: No session token
            ReportSubmissionError: Upload failed or the server refused it
        """
        if not self.session_manager.token:
            raise AuthRequiredError()

        generation = self._generation
        self.loading = True
        self.error = None
        compressed_uri = None
        try:
            if payload.photo is not None:
                compressed_uri = await run_blocking(
                    self.compressor.compress, payload.photo.uri, payload.photo.mime_type or "image/jpeg"
                )
            form = self._build_form(payload, compressed_uri)
            response = await self.upload_retry.run(
                lambda: self.api.request("POST", REPORTS_PATH, form=form),
                label="create-report",
            )
            report = self._parse_created(response, payload)
        except ReportSubmissionError as e:
            self.error = e.message
            raise
        except TransportError as e:
            self.error = e.message
            raise ReportSubmissionError(e.message) from e
        except OSError as e:
            logger.error(f"Report photo could not be attached: {e}")
            self.error = MSG_PHOTO_UNREADABLE
            raise ReportSubmissionError(MSG_PHOTO_UNREADABLE) from e
        finally:
            self.loading = False
            if compressed_uri is not None:
                await run_blocking(self.compressor.release, compressed_uri, payload.photo.uri)

        logger.info(f"Emergency report {report.id} created")

        if generation != self._generation:
            logger.info(f"Report {report.id} belongs to a previous session; not adding it locally")
            return report

        self.reports = [report] + self.reports
        self.active_report = report
        await self._save_cache()
        return report

    @staticmethod
    def _build_form(payload: ReportCreate, photo_uri: Optional[str] = None) -> MultipartRequest:
        form = MultipartRequest()
        form.add_field("latitude", payload.latitude)
        form.add_field("longitude", payload.longitude)
        form.add_field("pesan", payload.message)
        form.add_field("status", EmergencyStatus.PENDING.value)
        form.add_field("userId", payload.user_id or None)
        form.add_field("dinasId", payload.dinas_id)

        if payload.photo is not None:
            photo = payload.photo
            mime_type = photo.mime_type or "image/jpeg"
            filename = photo.file_name or f"emergency_{int(time.time() * 1000)}{extension_for(mime_type)}"
            form.add_file(PHOTO_FIELD, photo_uri or photo.uri, filename, mime_type)

        return form

    @staticmethod
    def _parse_created(response: requests.Response, payload: ReportCreate) -> EmergencyReport:
        """
        Build the created report from the response.

        The server may echo only part of the record (e.g. just id and
        status); missing fields are taken from what was submitted.
        """
        body: Any = parse_json(response)
        if not isinstance(body, dict):
            raise ReportSubmissionError(MSG_INVALID_RESPONSE, response.status_code)

        if not response.ok or not body.get("success"):
            raise ReportSubmissionError(body.get("message") or MSG_SUBMIT_FAILED, response.status_code)

        data = body.get("data")
        if not isinstance(data, dict) or data.get("id") is None:
            logger.error("Created report response carries no report id")
            raise ReportSubmissionError(MSG_INVALID_RESPONSE, response.status_code)

        submitted = {
            "latitude": payload.latitude,
            "longitude": payload.longitude,
            "pesan": payload.message,
            "userId": payload.user_id,
            "dinasId": payload.dinas_id,
            "status": EmergencyStatus.PENDING.value,
        }
        submitted.update({key: value for key, value in data.items() if value is not None})

        try:
            return EmergencyReport.model_validate(submitted)
        except ValidationError as e:
            logger.error(f"Created report payload is malformed: {e.error_count()} error(s)")
            raise ReportSubmissionError(MSG_INVALID_RESPONSE, response.status_code) from e

    # ---------------------- COMPLETE ----------------------

    def complete_report(self) -> None:
        """
        Optimistically mark the active report completed.

        The status flips now; the active slot empties after
        `completion_delay` seconds. No server call is made.
        """
        report = self.active_report
        if report is None:
            return

        if not StatusWorkflowEngine.is_reachable(report.status, EmergencyStatus.COMPLETED):
            logger.warning(f"Completing report {report.id} from terminal status {report.status.value}")

        report.status = EmergencyStatus.COMPLETED
        self._tasks.spawn(self._release_completed(report), name=f"release-report-{report.id}")

    async def _release_completed(self, report: EmergencyReport) -> None:
        await asyncio.sleep(self.completion_delay)
        # A newer report may have taken the slot meanwhile
        if self.active_report is report:
            self.active_report = None
            await self._save_cache()

    # ---------------------- DERIVED / LIFECYCLE ----------------------

    def get_tracking_steps(self) -> List[TrackingStep]:
        return derive_tracking_steps(self.active_report)

    async def restore_cached_active_report(self) -> Optional[EmergencyReport]:
        """
        Show the last known active report before the first fetch completes.
        Ignored without a session, if a report is already loaded, or if it
        belongs to another user.
        """
        if self.cache is None or self.active_report is not None:
            return self.active_report

        cached = await run_blocking(self.cache.load)
        if cached is None:
            return None

        user_id = self.session_manager.user_id
        if user_id is None:
            logger.info("No session; not restoring the cached active report")
            return None
        if cached.user_id != user_id:
            logger.info("Cached active report belongs to another user, dropping it")
            await run_blocking(self.cache.clear)
            return None

        if cached.is_terminal:
            return None

        self.active_report = cached
        return cached

    def _on_session_cleared(self, event: SessionCleared) -> None:
        self._generation += 1
        self.reports = []
        self.active_report = None
        self.error = None
        if self.cache is not None:
            self._tasks.spawn(run_blocking(self.cache.clear), name="clear-report-cache")

    async def _save_cache(self) -> None:
        if self.cache is not None:
            await run_blocking(self.cache.save, self.active_report)
