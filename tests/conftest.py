import pytest
from httpx import AsyncClient, ASGITransport

from daroui_notify.api.notifications import NotificationsApi
from daroui_notify.realtime.sound import SoundTrigger
from daroui_notify.services.toasts import ToastQueue
from tests.fakes import FakeBackend, FakeConnector, RecordingPlayer, build_backend_app


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
async def http_client(backend):
    async with AsyncClient(
        transport=ASGITransport(app=build_backend_app(backend)),
        base_url="http://test/api",
    ) as ac:
        yield ac


@pytest.fixture
def api(http_client):
    return NotificationsApi(http_client)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def player():
    return RecordingPlayer()


@pytest.fixture
def sound(player):
    return SoundTrigger(asset_path="", player=player, enabled=True)


@pytest.fixture
def toasts():
    return ToastQueue()
