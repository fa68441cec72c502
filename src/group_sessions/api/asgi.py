"""ASGI entrypoint for the group sessions API."""

from group_sessions.api.app import create_app
from group_sessions.containers import build_container

app = create_app(build_container())
