"""
Application context - explicit wiring of the client core.

Every service receives its collaborators here; nothing reaches for a
global store at runtime. The UI shell builds one AppContext at startup:

    context = build_app_context()
    context.events.subscribe(SessionExpired, show_login)
    await context.session.check_auth()
"""

from dataclasses import dataclass
from typing import Optional

import requests

from baraya.config.api_client import ApiClient
from baraya.core.events import EventBus
from baraya.core.settings import Settings, settings as default_settings
from baraya.core.tasks import BackgroundTasks
from baraya.services.auth_service import AuthService
from baraya.services.emergency_service import EmergencyReportService
from baraya.services.local_notifier import LocalNotifier, LoggingNotifier
from baraya.services.notification_relay import NotificationRelay
from baraya.services.profile_service import ProfileService
from baraya.services.report_cache import ActiveReportCache
from baraya.services.session_manager import SessionManager
from baraya.services.token_store import EncryptedFileTokenStore, SecureTokenStore
from baraya.utils.image_compressor import CompressionPolicy, ImageCompressor
from baraya.utils.retry import RetryPolicy


@dataclass
class AppContext:
    settings: Settings
    tasks: BackgroundTasks
    events: EventBus
    token_store: SecureTokenStore
    session: SessionManager
    api: ApiClient
    auth: AuthService
    profiles: ProfileService
    emergency: EmergencyReportService
    notifications: NotificationRelay

    async def shutdown(self) -> None:
        await self.tasks.drain()
        self.api.session.close()


def build_app_context(
    settings: Optional[Settings] = None,
    token_store: Optional[SecureTokenStore] = None,
    http_session: Optional[requests.Session] = None,
    notifier: Optional[LocalNotifier] = None,
    report_cache: Optional[ActiveReportCache] = None,
) -> AppContext:
    """
    Assemble the client core from settings.

    Args:
        settings: Defaults to the environment-loaded settings
        token_store: Defaults to the encrypted file store
        http_session: requests session to send through (tests pass a fake)
        notifier: Local notification sink; defaults to LoggingNotifier
        report_cache: Active report cache; defaults to the configured path
    """
    settings = settings or default_settings

    tasks = BackgroundTasks()
    events = EventBus(tasks)

    if token_store is None:
        token_store = EncryptedFileTokenStore(
            service=settings.TOKEN_SERVICE,
            directory=settings.TOKEN_STORE_DIR,
            key=settings.TOKEN_STORE_KEY,
        )

    session = SessionManager(
        token_store,
        events,
        tasks,
        expired_message=settings.SESSION_EXPIRED_MESSAGE,
        login_route=settings.LOGIN_ROUTE,
    )

    api = ApiClient(
        base_url=settings.API_BASE_URL,
        timeout=settings.API_TIMEOUT_SECONDS,
        upload_timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        token_provider=lambda: session.token,
        on_unauthorized=session.expire,
        session=http_session,
    )

    compressor = ImageCompressor(
        policy=CompressionPolicy(max_bytes=settings.IMAGE_MAX_BYTES),
        output_dir=settings.IMAGE_CACHE_DIR,
    )

    upload_retry = RetryPolicy(
        max_attempts=settings.UPLOAD_MAX_ATTEMPTS,
        base_delay=settings.RETRY_BASE_DELAY_SECONDS,
        backoff_factor=settings.RETRY_BACKOFF_FACTOR,
    )
    send_retry = RetryPolicy(
        max_attempts=settings.NOTIFICATION_SEND_MAX_ATTEMPTS,
        base_delay=settings.RETRY_BASE_DELAY_SECONDS,
        backoff_factor=settings.RETRY_BACKOFF_FACTOR,
    )

    profiles = ProfileService(api, session, compressor, events, upload_retry=upload_retry)
    emergency = EmergencyReportService(
        api,
        session,
        compressor,
        events,
        tasks,
        cache=report_cache or ActiveReportCache(settings.ACTIVE_REPORT_CACHE_PATH),
        upload_retry=upload_retry,
        completion_delay=settings.REPORT_COMPLETION_DELAY_SECONDS,
    )
    notifications = NotificationRelay(
        api,
        notifier or LoggingNotifier(),
        poll_interval=settings.NOTIFICATION_POLL_INTERVAL_SECONDS,
        send_retry=send_retry,
    )

    return AppContext(
        settings=settings,
        tasks=tasks,
        events=events,
        token_store=token_store,
        session=session,
        api=api,
        auth=AuthService(api, session),
        profiles=profiles,
        emergency=emergency,
        notifications=notifications,
    )
