"""
Auth Service - login/logout actions on top of the session manager.
Separates the /auth/login call from session state handling.
"""

import logging

from baraya.config.api_client import ApiClient, parse_json
from baraya.core.exceptions import TransportError
from baraya.models.auth import LoginCredentials, LoginResult
from baraya.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

MSG_TOKEN_MISSING = "Token tidak ditemukan dalam response"
MSG_NOT_REGISTERED = "Email belum terdaftar, silahkan hubungi administrator"
MSG_WRONG_CREDENTIALS = "Email atau kata sandi salah"
MSG_SERVER_ERROR = "Terjadi kesalahan pada server"
MSG_INVALID_TOKEN = "Sesi tidak valid, silakan login kembali"


class AuthService:
    """Credential login; every outcome is reported as a LoginResult."""

    def __init__(self, api: ApiClient, session_manager: SessionManager):
        self.api = api
        self.session_manager = session_manager

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Exchange credentials for a token and sign in.

        Args:
            email: Account email
            password: Account password

        Returns:
            LoginResult; never raises for network or credential failures
        """
        credentials = LoginCredentials(email=email, password=password)

        try:
            response = await self.api.request("POST", "/auth/login", json=credentials.model_dump())
        except TransportError as e:
            logger.info(f"Login failed: {e.message}")
            return LoginResult(success=False, message=e.message)

        body = parse_json(response)

        if not response.ok:
            logger.info(f"Login failed with status {response.status_code}")
            return LoginResult(success=False, message=self._message_for_status(response.status_code, body))

        token = None
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            token = body["data"].get("token")

        if not token:
            return LoginResult(success=False, message=MSG_TOKEN_MISSING)

        if not self.session_manager.sign_in(token):
            return LoginResult(success=False, message=MSG_INVALID_TOKEN)

        return LoginResult(success=True)

    def logout(self) -> None:
        self.session_manager.sign_out()

    @staticmethod
    def _message_for_status(status_code: int, body) -> str:
        if status_code == 404:
            return MSG_NOT_REGISTERED
        if status_code in (400, 401):
            return MSG_WRONG_CREDENTIALS
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return MSG_SERVER_ERROR
