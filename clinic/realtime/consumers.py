"""
WebSocket consumers for the dashboard's live screens.

``ws/changes/<table>/`` streams ``table.changed`` invalidation hints for
one table; ``ws/updates/`` carries the global refresh broadcast sent by
the stats snapshot command.
"""
import json

from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from clinic.services.realtime import TABLES, UPDATES_GROUP, group_for

CLOSE_FORBIDDEN = 4003
CLOSE_UNKNOWN_TABLE = 4004


def _is_staff_user(scope) -> bool:
    user = scope.get("user") or AnonymousUser()
    return bool(getattr(user, "is_authenticated", False))


class TableChangesConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        table = self.scope["url_route"]["kwargs"].get("table")
        if not _is_staff_user(self.scope):
            await self.close(code=CLOSE_FORBIDDEN)
            return
        if table not in TABLES:
            await self.close(code=CLOSE_UNKNOWN_TABLE)
            return
        self.table = table
        self.group_name = group_for(table)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "subscribed", "table": table}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def table_changed(self, event):
        # event: {"type": "table.changed", "table": ..., "event": ..., "id": ..., "ts": ...}
        await self.send(json.dumps(event))


class UpdatesConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        if not _is_staff_user(self.scope):
            await self.close(code=CLOSE_FORBIDDEN)
            return
        await self.channel_layer.group_add(UPDATES_GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(UPDATES_GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))
