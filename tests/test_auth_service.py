import asyncio

import pytest
import requests

from baraya.services.auth_service import (
    MSG_INVALID_TOKEN,
    MSG_NOT_REGISTERED,
    MSG_SERVER_ERROR,
    MSG_TOKEN_MISSING,
    MSG_WRONG_CREDENTIALS,
    AuthService,
)
from tests.helpers import make_response, make_token


@pytest.fixture
def auth(api, session_manager):
    return AuthService(api, session_manager)


def login(auth, tasks, email="budi@example.com", password="rahasia"):
    async def scenario():
        result = await auth.login(email, password)
        await tasks.drain()
        return result

    return asyncio.run(scenario())


def test_successful_login_signs_in(auth, http, session_manager, token_store, tasks):
    token = make_token(sub="21")
    http.add("POST", "/auth/login", make_response(200, {"success": True, "data": {"token": token}}))

    result = login(auth, tasks)

    assert result.success is True
    assert session_manager.user_id == "21"
    assert token_store.get_token() == token
    assert http.calls[0]["json"] == {"email": "budi@example.com", "password": "rahasia"}
    assert "Authorization" not in http.calls[0]["headers"]


@pytest.mark.parametrize("status, body, message", [
    (404, {"message": "User not found"}, MSG_NOT_REGISTERED),
    (401, {"message": "Bad credentials"}, MSG_WRONG_CREDENTIALS),
    (400, {}, MSG_WRONG_CREDENTIALS),
    (503, {"message": "Maintenance"}, "Maintenance"),
    (500, {}, MSG_SERVER_ERROR),
])
def test_failed_login_messages(auth, http, session_manager, tasks, status, body, message):
    http.add("POST", "/auth/login", make_response(status, body))

    result = login(auth, tasks)

    assert result.success is False
    assert result.message == message
    assert session_manager.token is None


def test_missing_token_in_response(auth, http, tasks):
    http.add("POST", "/auth/login", make_response(200, {"success": True, "data": {}}))

    assert login(auth, tasks).message == MSG_TOKEN_MISSING


def test_expired_token_from_server(auth, http, token_store, tasks):
    http.add("POST", "/auth/login", make_response(200, {"success": True, "data": {"token": make_token(exp_offset=-10)}}))

    result = login(auth, tasks)

    assert result.success is False
    assert result.message == MSG_INVALID_TOKEN
    assert token_store.writes == 0


def test_network_failure(auth, http, tasks):
    http.add("POST", "/auth/login", requests.ConnectionError("no route"))

    result = login(auth, tasks)

    assert result.success is False
    assert result.message == "Tidak dapat terhubung ke server"


def test_logout(auth, http, session_manager, token_store, tasks):
    http.add("POST", "/auth/login", make_response(200, {"success": True, "data": {"token": make_token()}}))
    login(auth, tasks)

    async def scenario():
        auth.logout()
        await tasks.drain()

    asyncio.run(scenario())

    assert session_manager.token is None
    assert token_store.get_token() is None
