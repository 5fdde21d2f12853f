"""
Notification Relay - polls the notification feed and fans new items out
to the local notifier.

Read-only observer of /notifikasi; it never touches report or session
state. "New" means an id above the highest id seen so far; the first
successful poll only records that baseline.
"""

import asyncio
import logging
from typing import List, Optional

from pydantic import ValidationError

from baraya.config.api_client import ApiClient
from baraya.core.exceptions import ApiError, TransportError
from baraya.models.notification import Notification, NotificationChannel, NotificationCreate, SoundKind
from baraya.services.local_notifier import LocalNotifier
from baraya.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

NOTIFICATIONS_PATH = "/notifikasi"


class NotificationRelay:
    """
    Usage:
        relay = NotificationRelay(api, notifier)
        stop = asyncio.Event()
        await relay.run(stop)
    """

    def __init__(
        self,
        api: ApiClient,
        notifier: LocalNotifier,
        poll_interval: float = 15.0,
        send_retry: Optional[RetryPolicy] = None,
    ):
        self.api = api
        self.notifier = notifier
        self.poll_interval = poll_interval
        self.send_retry = send_retry or RetryPolicy()

        self.notifications: List[Notification] = []
        self.last_seen_id: Optional[int] = None
        self.loading = False
        self.error: Optional[str] = None

    async def fetch_notifications(self) -> List[Notification]:
        """Load the feed; on failure keep the previous list and set `error`."""
        self.loading = True
        self.error = None
        try:
            body = await self.api.get(NOTIFICATIONS_PATH)
        except ApiError as e:
            logger.warning(f"Fetching notifications failed: {e}")
            self.error = e.message
            return self.notifications
        finally:
            self.loading = False

        data = body.get("data") if isinstance(body, dict) else None
        items = data.get("content") if isinstance(data, dict) else data
        notifications = []
        for item in items or []:
            try:
                notifications.append(Notification.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed notification: {e.error_count()} error(s)")

        self.notifications = notifications
        return notifications

    async def poll_once(self) -> List[Notification]:
        """
        Fetch the feed and deliver items newer than the last seen id.

        Returns:
            The notifications delivered in this poll, oldest first
        """
        notifications = await self.fetch_notifications()
        if self.error is not None or not notifications:
            return []

        newest_id = max(n.id for n in notifications)
        if self.last_seen_id is None:
            self.last_seen_id = newest_id
            logger.debug(f"Notification baseline set at id {newest_id}")
            return []

        fresh = sorted((n for n in notifications if n.id > self.last_seen_id), key=lambda n: n.id)
        for notification in fresh:
            self._deliver(notification)

        self.last_seen_id = max(self.last_seen_id, newest_id)
        return fresh

    def _deliver(self, notification: Notification) -> None:
        if notification.event_id is not None:
            channel, sound = NotificationChannel.EMERGENCY, SoundKind.EMERGENCY
        else:
            channel, sound = NotificationChannel.DEFAULT, SoundKind.SUCCESS

        try:
            self.notifier.display_notification(notification.title, notification.message, channel)
            self.notifier.play_sound(sound)
        except Exception as e:
            logger.error(f"Local delivery of notification {notification.id} failed: {e}", exc_info=True)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Register the notification channels, then poll until `stop_event` is set."""
        try:
            self.notifier.create_channels()
        except Exception as e:
            logger.error(f"Registering notification channels failed: {e}", exc_info=True)
        logger.info(f"Notification polling started (every {self.poll_interval}s)")
        while not stop_event.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"Notification poll failed: {e}", exc_info=True)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Notification polling stopped")

    async def send_notification(self, notification: NotificationCreate) -> bool:
        """
        POST a notification, retrying transport failures.

        Returns:
            True if the server accepted it; failures are logged, not raised
        """
        payload = notification.model_dump(by_alias=True, exclude_none=True)
        try:
            await self.send_retry.run(
                lambda: self.api.post(NOTIFICATIONS_PATH, json=payload),
                label="send-notification",
            )
            return True
        except TransportError as e:
            logger.error(f"Failed to send notification: {e}")
            return False
        except ApiError as e:
            logger.error(f"Server rejected notification: {e}")
            return False
