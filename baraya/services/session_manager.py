"""
Session Manager - owner of the single authenticated session.

States: UNINITIALIZED → HYDRATING → {AUTHENTICATED, UNAUTHENTICATED}

DESIGN NOTES:
- The session is atomic: user and token are set together or cleared together
- Bad credentials clear the session; they are never raised to callers
- Persisting/removing the token is fire-and-forget; a failed write does
  not roll back the in-memory session
- Profile fetch/clear happen through SessionEstablished/SessionCleared
  events, not direct calls
- A generation counter lets check_auth() drop a stored-token result that
  arrived after a newer sign_in()/sign_out()
"""

import logging
from typing import Optional

from baraya.core.events import EventBus, SessionCleared, SessionEstablished, SessionExpired
from baraya.core.tasks import BackgroundTasks, run_blocking
from baraya.models.auth import Identity, Session, SessionState
from baraya.services.token_store import SecureTokenStore
from baraya.utils.jwt import decode_token, extract_identity, is_token_expired

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Usage:
        manager = SessionManager(token_store, events, tasks)
        await manager.check_auth()      # on startup
        manager.sign_in(token)          # after /auth/login
        manager.sign_out()
    """

    def __init__(
        self,
        token_store: SecureTokenStore,
        events: EventBus,
        tasks: BackgroundTasks,
        expired_message: str = "Sesi telah berakhir, silakan login kembali",
        login_route: str = "Login",
    ):
        self._token_store = token_store
        self._events = events
        self._tasks = tasks
        self._expired_message = expired_message
        self._login_route = login_route
        self._session = Session()
        self._started = False
        self._generation = 0

    # ---------------------- STATE ACCESS ----------------------

    @property
    def session(self) -> Session:
        """Snapshot of the current session."""
        return self._session.model_copy()

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    @property
    def user(self) -> Optional[Identity]:
        return self._session.user

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user_id

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def state(self) -> SessionState:
        if self._session.is_loading and not self._session.is_hydrated:
            return SessionState.HYDRATING
        if self._session.is_authenticated:
            return SessionState.AUTHENTICATED
        if not self._started:
            return SessionState.UNINITIALIZED
        return SessionState.UNAUTHENTICATED

    # ---------------------- TRANSITIONS ----------------------

    def sign_in(self, token: str) -> bool:
        """
        Establish a session from a freshly issued token.

        Returns:
            True if the session is now authenticated with this token
        """
        self._started = True

        if self._session.token == token and self._session.is_authenticated:
            logger.debug("sign_in with the current token, nothing to do")
            return True

        self._generation += 1
        had_session = self._session.is_authenticated
        previous_user_id = self._session.user_id

        if is_token_expired(token):
            logger.error("Token is already expired")
            self._clear()
            if had_session:
                self._events.emit(SessionCleared(reason="expired_token"))
            return False

        identity = extract_identity(token)
        if identity is None:
            logger.error("Failed to extract user from token")
            self._clear()
            if had_session:
                self._events.emit(SessionCleared(reason="invalid_token"))
            return False

        self._set_authenticated(identity, token)
        self._tasks.spawn(self._persist_token(token), name="persist-token")
        if had_session and previous_user_id != identity.user_id:
            # Another account took over; drop state scoped to the previous user
            self._events.emit(SessionCleared(reason="user_changed"))
        logger.info(f"Signed in as user {identity.user_id} ({identity.role.value})")
        self._events.emit(SessionEstablished(user_id=identity.user_id, role=identity.role.value))
        return True

    def sign_out(self, reason: str = "sign_out") -> None:
        """Clear the session now; token removal and profile clearing follow."""
        self._started = True
        self._generation += 1
        self._clear()
        self._tasks.spawn(self._remove_token(), name="remove-token")
        logger.info(f"Signed out ({reason})")
        self._events.emit(SessionCleared(reason=reason))

    def expire(self, path: Optional[str] = None) -> None:
        """
        Server rejected the token (401 outside login).

        Signs out and asks the UI to toast and return to the login screen.
        """
        if path:
            logger.warning(f"Session rejected by server on {path}")
        self.sign_out(reason="unauthorized")
        self._events.emit(SessionExpired(message=self._expired_message, redirect_to=self._login_route))

    async def check_auth(self) -> None:
        """
        Restore the session from secure storage on startup.

        The only operation that marks the session hydrated. Storage and
        decoding failures end in UNAUTHENTICATED, never in an exception.
        """
        self._started = True
        generation = self._generation
        self._session = self._session.model_copy(update={"is_loading": True})

        try:
            token = await run_blocking(self._token_store.get_token)

            if generation != self._generation:
                logger.info("Session changed while restoring; keeping the newer state")
                self._mark_hydrated()
                return

            if not token:
                self._clear(hydrated=True)
                return

            if is_token_expired(token):
                logger.info("Stored token is expired, clearing")
                await run_blocking(self._token_store.remove_token)
                if generation == self._generation:
                    self._clear(hydrated=True)
                    self._events.emit(SessionCleared(reason="expired_token"))
                else:
                    self._mark_hydrated()
                return

            identity = extract_identity(token)
            if identity is None:
                logger.error("Failed to extract user from stored token")
                await run_blocking(self._token_store.remove_token)
                if generation == self._generation:
                    self._clear(hydrated=True)
                    self._events.emit(SessionCleared(reason="invalid_token"))
                else:
                    self._mark_hydrated()
                return

            self._set_authenticated(identity, token, hydrated=True)
            logger.info(f"Session restored for user {identity.user_id}")
            self._events.emit(SessionEstablished(user_id=identity.user_id, role=identity.role.value))

        except Exception as e:
            logger.error(f"Failed to check auth: {e}", exc_info=True)
            if generation == self._generation:
                self._clear(hydrated=True)
            else:
                self._mark_hydrated()

    # ---------------------- INTERNALS ----------------------

    def _set_authenticated(self, identity: Identity, token: str, hydrated: Optional[bool] = None) -> None:
        payload = decode_token(token)
        self._session = Session(
            user=identity,
            token=token,
            issued_at=payload.issued_at,
            expires_at=payload.expires_at,
            is_hydrated=self._session.is_hydrated if hydrated is None else hydrated,
            is_loading=False,
        )

    def _clear(self, hydrated: Optional[bool] = None) -> None:
        self._session = Session(
            is_hydrated=self._session.is_hydrated if hydrated is None else hydrated,
            is_loading=False,
        )

    def _mark_hydrated(self) -> None:
        self._session = self._session.model_copy(update={"is_hydrated": True, "is_loading": False})

    async def _persist_token(self, token: str) -> None:
        stored = await run_blocking(self._token_store.set_token, token)
        if not stored:
            logger.warning("Token could not be persisted; session is valid for this run only")

    async def _remove_token(self) -> None:
        removed = await run_blocking(self._token_store.remove_token)
        if not removed:
            logger.warning("Persisted token could not be removed")
