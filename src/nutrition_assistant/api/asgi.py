"""ASGI entrypoint for the nutrition assistant API."""

from nutrition_assistant.api.app import create_app
from nutrition_assistant.containers import build_container

app = create_app(build_container())
