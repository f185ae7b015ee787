"""ASGI entrypoint for the Slop Spot API."""

from slop_spot.api.app import create_app
from slop_spot.containers import build_container

app = create_app(build_container())
