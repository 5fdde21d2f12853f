"""
Local (on-device) notification sink.

Contract:
- display_notification() shows one notification on a channel
- play_sound() plays a bundled sound
- MUST NEVER raise upstream; the relay treats delivery as best-effort

The host shell provides the real OS implementation. LoggingNotifier is
the default for headless runs.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List

from baraya.models.notification import NotificationChannel, SoundKind

logger = logging.getLogger(__name__)

CHANNEL_DEFINITIONS: Dict[NotificationChannel, Dict[str, object]] = {
    NotificationChannel.EMERGENCY: {
        "name": "Layanan Darurat",
        "description": "Notifikasi untuk laporan darurat Anda",
        "importance": "high",
        "vibration": True,
        "lights": True,
    },
    NotificationChannel.DEFAULT: {
        "name": "Informasi Umum",
        "description": "",
        "importance": "default",
        "vibration": False,
        "lights": False,
    },
}


class LocalNotifier(ABC):
    """Abstract OS notification + sound sink."""

    def create_channels(self) -> None:
        """Register notification channels (no-op where the OS has none)."""

    @abstractmethod
    def display_notification(self, title: str, body: str, channel: NotificationChannel = NotificationChannel.DEFAULT) -> None:
        raise NotImplementedError

    @abstractmethod
    def play_sound(self, sound: SoundKind) -> None:
        raise NotImplementedError


class LoggingNotifier(LocalNotifier):
    """Writes notifications to the log and remembers them."""

    def __init__(self):
        self.displayed: List[Dict[str, str]] = []
        self.sounds: List[SoundKind] = []
        self.channels: Dict[NotificationChannel, Dict[str, object]] = {}

    def create_channels(self) -> None:
        for channel, definition in CHANNEL_DEFINITIONS.items():
            self.channels[channel] = dict(definition)
            logger.debug(f"Registered channel {channel.value} ({definition['name']})")

    def display_notification(self, title: str, body: str, channel: NotificationChannel = NotificationChannel.DEFAULT) -> None:
        self.displayed.append({"title": title, "body": body, "channel": channel.value})
        logger.info(f"[{channel.value}] {title}: {body}")

    def play_sound(self, sound: SoundKind) -> None:
        self.sounds.append(sound)
        logger.debug(f"Playing {sound.value}")
