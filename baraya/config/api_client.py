"""
HTTP client for the Baraya REST API.
Single-source-of-truth client: every call to the backend goes through it.

Cross-cutting policy:
- Attaches `Authorization: Bearer <token>` from the current session
- A 401 from any endpoint except /auth/login fires `on_unauthorized`
- Generic calls use a fixed timeout; multipart uploads use the
  transport default unless configured
"""

import logging
from typing import Any, Callable, Dict, Optional

import requests

from baraya.core.exceptions import ApiError, TransportError
from baraya.core.tasks import run_blocking
from baraya.utils.multipart import MultipartRequest

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"

_DEFAULT = object()


class ApiClient:
    """
    requests-backed client; network I/O runs in the default executor and
    the 401 policy runs back on the event loop thread.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        upload_timeout: Optional[float] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[str], None]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _auth_headers(self) -> Dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        form: Optional[MultipartRequest] = None,
        timeout: Any = _DEFAULT,
    ) -> requests.Response:
        """
        Send a request and return the raw response (any status).

        Args:
            method: HTTP method
            path: Path under the versioned base url
            params: Query string parameters
            json: JSON body
            form: Multipart body; mutually exclusive with json
            timeout: Override; defaults to the generic timeout, or the
                upload timeout for multipart bodies

        Raises:
            TransportError: No response was received
        """
        if json is not None and form is not None:
            raise ValueError("json and form bodies are mutually exclusive")

        if timeout is _DEFAULT:
            timeout = self.upload_timeout if form is not None else self.timeout

        url = self.url_for(path)
        headers = self._auth_headers()

        def send() -> requests.Response:
            if form is None:
                return self.session.request(method, url, params=params, json=json, headers=headers, timeout=timeout)
            with form.open_parts() as (data, files):
                return self.session.request(
                    method, url, params=params, data=data, files=files, headers=headers, timeout=timeout
                )

        try:
            response = await run_blocking(send)
        except requests.Timeout as e:
            logger.warning(f"{method} {path} timed out: {e}")
            raise TransportError("Koneksi timeout, silakan coba lagi", timed_out=True) from e
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError("Tidak dapat terhubung ke server") from e

        logger.debug(f"{method} {path} -> {response.status_code}")

        if response.status_code == 401 and not self._is_login(path):
            logger.warning(f"401 from {path}, ending session")
            if self.on_unauthorized is not None:
                try:
                    self.on_unauthorized(path)
                except Exception as e:
                    logger.error(f"Unauthorized handler failed: {e}", exc_info=True)

        return response

    async def request_json(self, method: str, path: str, **kwargs) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            TransportError: No response was received
            ApiError: Non-2xx status or a body that is not JSON
        """
        response = await self.request(method, path, **kwargs)
        body = parse_json(response)
        if not response.ok:
            message = None
            if isinstance(body, dict):
                message = body.get("message")
            raise ApiError(message or f"Request failed with status {response.status_code}", response.status_code)
        if body is None:
            raise ApiError("Invalid response", response.status_code)
        return body

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request_json("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request_json("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request_json("PUT", path, **kwargs)

    @staticmethod
    def _is_login(path: str) -> bool:
        return LOGIN_PATH in path


def parse_json(response: requests.Response) -> Optional[Any]:
    """Decoded JSON body, or None when the body is empty or not JSON."""
    try:
        return response.json()
    except ValueError:
        return None
