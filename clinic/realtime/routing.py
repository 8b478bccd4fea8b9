from django.urls import re_path

from clinic.realtime.consumers import TableChangesConsumer, UpdatesConsumer

websocket_urlpatterns = [
    re_path(r"^ws/changes/(?P<table>[\w-]+)/$", TableChangesConsumer.as_asgi()),
    re_path(r"^ws/updates/$", UpdatesConsumer.as_asgi()),
]
