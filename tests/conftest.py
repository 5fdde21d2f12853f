"""
Shared fixtures: scripted HTTP session and wired core services.
"""

import pytest

from baraya.config.api_client import ApiClient
from baraya.core.events import EventBus
from baraya.core.tasks import BackgroundTasks
from baraya.services.session_manager import SessionManager
from baraya.services.token_store import InMemoryTokenStore
from tests.helpers import BASE_URL, FakeHttpSession


@pytest.fixture
def http():
    return FakeHttpSession()


@pytest.fixture
def tasks():
    return BackgroundTasks()


@pytest.fixture
def events(tasks):
    return EventBus(tasks)


@pytest.fixture
def token_store():
    return InMemoryTokenStore()


@pytest.fixture
def session_manager(token_store, events, tasks):
    return SessionManager(token_store, events, tasks)


@pytest.fixture
def api(http, session_manager):
    return ApiClient(
        base_url=BASE_URL,
        timeout=10.0,
        token_provider=lambda: session_manager.token,
        on_unauthorized=session_manager.expire,
        session=http,
    )
