"""
Test helpers: token factory and a scripted stand-in for requests.Session.
"""

import json
import time
from typing import Any, Dict, List, Optional, Tuple

import requests
from jose import jwt


TEST_SECRET = "test-signing-secret"
BASE_URL = "http://api.test/api/v1"


def make_token(exp_offset: Optional[int] = 3600, **claims) -> str:
    """Signed HS256 token; exp_offset=None leaves out the exp claim."""
    now = int(time.time())
    payload = {"sub": "1", "role": "USER", "fullName": "Budi Santoso", "iat": now}
    if exp_offset is not None:
        payload["exp"] = now + exp_offset
    payload.update(claims)
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def make_response(status_code: int = 200, body: Any = None, raw: Optional[bytes] = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.url = BASE_URL
    if raw is not None:
        response._content = raw
    else:
        response._content = json.dumps(body if body is not None else {}).encode()
        response.headers["Content-Type"] = "application/json"
    return response


class FakeHttpSession:
    """
    Stand-in for requests.Session.

    Routes are keyed by (METHOD, path) and hold a queue of responses or
    exceptions; the last entry repeats once the queue is down to one.
    """

    def __init__(self):
        self.headers: Dict[str, str] = {}
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def add(self, method: str, path: str, *outcomes: Any) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(outcomes)

    def request(self, method, url, params=None, json=None, data=None, files=None, headers=None, timeout=None):
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        call = {
            "method": method.upper(),
            "path": path,
            "params": params,
            "json": json,
            "data": data,
            "headers": dict(headers or {}),
            "timeout": timeout,
            "files": {},
        }
        for name, (filename, handle, content_type) in (files or {}).items():
            call["files"][name] = {"filename": filename, "content_type": content_type, "size": len(handle.read())}
        self.calls.append(call)

        queue = self.routes.get((method.upper(), path))
        if not queue:
            return make_response(404, {"success": False, "message": "Not found"})
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method.upper() and c["path"] == path]

    def close(self):
        self.closed = True
