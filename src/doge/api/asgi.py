"""ASGI entrypoint for the doge service."""

from doge.api.app import create_app
from doge.containers import build_container

app = create_app(build_container())
