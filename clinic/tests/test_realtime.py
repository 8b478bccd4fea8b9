import pytest
from asgiref.sync import async_to_sync, sync_to_async
from channels.testing import WebsocketCommunicator
from channels.routing import URLRouter
from django.contrib.auth.models import AnonymousUser

from clinic.realtime.routing import websocket_urlpatterns
from clinic.services import realtime
from clinic.services.beds import create_bed

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def fresh_layer(settings):
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}


def as_user(user):
    app = URLRouter(websocket_urlpatterns)

    async def inner(scope, receive, send):
        return await app(dict(scope, user=user), receive, send)
    return inner


def test_unknown_table_is_rejected(admin_user):
    async def run():
        comm = WebsocketCommunicator(as_user(admin_user), "/ws/changes/not_a_table/")
        connected, code = await comm.connect()
        assert not connected
        assert code == 4004
    async_to_sync(run)()


def test_anonymous_subscriber_is_rejected():
    async def run():
        comm = WebsocketCommunicator(as_user(AnonymousUser()), "/ws/changes/beds/")
        connected, code = await comm.connect()
        assert not connected
        assert code == 4003
    async_to_sync(run)()


def test_subscriber_receives_change_hint(admin_user):
    async def run():
        comm = WebsocketCommunicator(as_user(admin_user), "/ws/changes/beds/")
        connected, _ = await comm.connect()
        assert connected
        assert (await comm.receive_json_from()) == {"type": "subscribed", "table": "beds"}

        await sync_to_async(realtime._send)("beds", "update", 7)
        msg = await comm.receive_json_from(timeout=2)
        assert msg["type"] == "table.changed"
        assert (msg["table"], msg["event"], msg["id"]) == ("beds", "update", 7)

        await sync_to_async(realtime._send)("patients", "insert", 1)
        assert await comm.receive_nothing(timeout=0.2)
        await comm.disconnect()
    async_to_sync(run)()


def test_notification_waits_for_commit(admin_user, department, django_capture_on_commit_callbacks, monkeypatch):
    sent = []
    monkeypatch.setattr(realtime, "_send", lambda table, event, object_id: sent.append((table, event, object_id)))
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        bed = create_bed(admin_user, bed_number="W-1", department=department)
        assert sent == []
    assert len(callbacks) == 1
    assert sent == [("beds", "insert", bed.id)]


def test_unknown_table_cannot_be_notified():
    with pytest.raises(ValueError):
        realtime.notify_changed("nope")


def test_updates_channel_receives_broadcast(admin_user):
    async def run():
        comm = WebsocketCommunicator(as_user(admin_user), "/ws/updates/")
        connected, _ = await comm.connect()
        assert connected
        assert (await comm.receive_json_from())["type"] == "welcome"
        await sync_to_async(realtime.broadcast_refresh)(["dashboard:summary:2030-01-01"])
        msg = await comm.receive_json_from(timeout=2)
        assert msg["type"] == "broadcast.refresh"
        assert msg["keys"] == ["dashboard:summary:2030-01-01"]
        await comm.disconnect()
    async_to_sync(run)()
