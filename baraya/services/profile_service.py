"""
Profile Service - the profile store that follows the session.

Reacts to session events:
- SessionEstablished → fetch /users/{id}
- SessionCleared     → drop the cached profile and error
"""

import logging
import time
from typing import Any, Dict, Optional

from pydantic import ValidationError

from baraya.config.api_client import ApiClient, parse_json
from baraya.core.events import EventBus, SessionCleared, SessionEstablished
from baraya.core.exceptions import ApiError, TransportError
from baraya.core.tasks import run_blocking
from baraya.models.profile import UserProfile
from baraya.models.report import PhotoAsset
from baraya.services.session_manager import SessionManager
from baraya.utils.image_compressor import ImageCompressor
from baraya.utils.multipart import MultipartRequest, extension_for
from baraya.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

# Tried in order when /users/{id} answers 403
FALLBACK_PROFILE_PATHS = ("/users/profile", "/users/me", "/auth/profile", "/auth/me")

MSG_FORBIDDEN = "Anda tidak memiliki akses untuk melihat profil ini."
MSG_LOAD_FAILED = "Gagal memuat profil"
MSG_LOAD_ERROR = "Terjadi kesalahan saat memuat profil"
MSG_UPLOAD_FAILED = "Gagal mengunggah foto"
MSG_UPLOAD_ERROR = "Terjadi kesalahan saat mengunggah foto"
MSG_AUTH_REQUIRED = "Authentication required"


class ProfileService:
    """Cached profile of the signed-in user, with loading/error fields for the UI."""

    def __init__(
        self,
        api: ApiClient,
        session_manager: SessionManager,
        compressor: ImageCompressor,
        events: EventBus,
        upload_retry: Optional[RetryPolicy] = None,
    ):
        self.api = api
        self.session_manager = session_manager
        self.compressor = compressor
        self.upload_retry = upload_retry or RetryPolicy()

        self.profile: Optional[UserProfile] = None
        self.loading = False
        self.error: Optional[str] = None
        self._generation = 0

        events.subscribe(SessionEstablished, self._on_session_established)
        events.subscribe(SessionCleared, self._on_session_cleared)

    def _on_session_established(self, event: SessionEstablished):
        # Pin the generation now; the fetch task may start after a sign-out.
        # A newer sign-in also supersedes any fetch still in flight.
        self._generation += 1
        return self._fetch(event.user_id, self._generation)

    def _on_session_cleared(self, event: SessionCleared) -> None:
        self.clear()

    def clear(self) -> None:
        self._generation += 1
        self.profile = None
        self.error = None
        self.loading = False

    def clear_error(self) -> None:
        self.error = None

    async def fetch_user_profile(self, user_id: str) -> Optional[UserProfile]:
        """
        Load the profile for `user_id`.

        On failure `error` is set and any previous profile is kept. A result
        that arrives after the session was cleared is dropped.
        """
        return await self._fetch(user_id, self._generation)

    async def _fetch(self, user_id: str, generation: int) -> Optional[UserProfile]:
        if generation != self._generation:
            return None
        self.loading = True
        self.error = None
        try:
            data = await self._load_profile_data(str(user_id))
            profile = UserProfile.model_validate(data)
        except ApiError as e:
            if generation == self._generation:
                self.error = MSG_FORBIDDEN if e.status_code == 403 else (e.message or MSG_LOAD_ERROR)
            logger.warning(f"Fetch profile failed for user {user_id}: {e}")
            return None
        except ValidationError as e:
            if generation == self._generation:
                self.error = MSG_LOAD_FAILED
            logger.warning(f"Profile payload for user {user_id} is malformed: {e.error_count()} error(s)")
            return None
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            logger.info(f"Dropping profile of user {user_id}; session changed meanwhile")
            return None

        self.profile = profile
        return profile

    async def _load_profile_data(self, user_id: str) -> Dict[str, Any]:
        try:
            return self._unwrap(await self.api.get(f"/users/{user_id}"))
        except ApiError as e:
            if e.status_code != 403:
                raise
            forbidden = e

        logger.info("Access forbidden to /users/{id}, trying fallback endpoints")
        for path in FALLBACK_PROFILE_PATHS:
            try:
                return self._unwrap(await self.api.get(path))
            except TransportError:
                raise
            except ApiError:
                continue

        # Last resort: list all users and pick ours
        try:
            body = await self.api.get("/users")
            content = body.get("data", {}).get("content") if isinstance(body, dict) else None
            if isinstance(content, list):
                for user in content:
                    if isinstance(user, dict) and str(user.get("id")) == user_id:
                        return user
        except TransportError:
            raise
        except (ApiError, AttributeError) as e:
            logger.debug(f"User list fallback failed: {e}")

        raise forbidden

    @staticmethod
    def _unwrap(body: Any) -> Dict[str, Any]:
        if isinstance(body, dict) and body.get("success") and isinstance(body.get("data"), dict):
            return body["data"]
        message = body.get("message") if isinstance(body, dict) else None
        raise ApiError(message or MSG_LOAD_FAILED)

    async def upload_user_photo(self, user_id: str, photo: PhotoAsset) -> bool:
        """
        Compress and upload a new avatar (multipart PUT /users/{id}, field `foto`).

        Returns:
            True on success; False with `error` set otherwise
        """
        self.loading = True
        self.error = None
        compressed_uri = None
        try:
            if not self.session_manager.token:
                self.error = MSG_AUTH_REQUIRED
                return False

            mime_type = photo.mime_type or "image/jpeg"
            compressed_uri = await run_blocking(self.compressor.compress, photo.uri, mime_type)
            filename = photo.file_name or f"avatar_{user_id}_{int(time.time() * 1000)}{extension_for(mime_type)}"
            form = MultipartRequest().add_file("foto", compressed_uri, filename, mime_type)

            response = await self.upload_retry.run(
                lambda: self.api.request("PUT", f"/users/{user_id}", form=form),
                label="upload-photo",
            )
            body = parse_json(response)
            if not isinstance(body, dict):
                body = {"success": False, "message": "Invalid response"}

            if not (response.ok and body.get("success")):
                self.error = body.get("message") or MSG_UPLOAD_FAILED
                return False

            updated = body.get("data") or {}
            if self.profile is not None:
                new_url = updated.get("urlFoto")
                # Cache-bust so image views reload the same path
                photo_url = f"{new_url}?t={int(time.time() * 1000)}" if new_url else self.profile.photo_url
                self.profile = self.profile.model_copy(update={"photo_url": photo_url})
            return True

        except (ApiError, OSError) as e:
            logger.warning(f"Upload photo failed: {e}")
            self.error = getattr(e, "message", None) or MSG_UPLOAD_ERROR
            return False
        finally:
            self.loading = False
            if compressed_uri is not None:
                await run_blocking(self.compressor.release, compressed_uri, photo.uri)
