"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder

from nutrition_assistant.api.admin import router as admin_router
from nutrition_assistant.api.models import ChatMessageRequest, MealCommitRequest
from nutrition_assistant.app_logging import configure_logging
from nutrition_assistant.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        try:
            await app.state.container.close_resources()
        except Exception:
            logger.exception("Failed to close application resources")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/chat/messages")
    async def chat_message(
        payload: ChatMessageRequest, request: Request
    ) -> dict[str, object]:
        """Answer one chat message."""
        state_container: AppContainer = request.app.state.container
        reply = await state_container.chat_service.handle_message(
            payload.text, payload.user_id, payload.session_id
        )
        return jsonable_encoder(reply)

    @app.post("/meals/commit")
    async def commit_meal(
        payload: MealCommitRequest, request: Request
    ) -> dict[str, object]:
        """Persist a verified meal."""
        state_container: AppContainer = request.app.state.container
        result = state_container.meal_commit_service.commit(
            payload.user_id,
            payload.view.to_domain(),
            [edit.to_domain() for edit in payload.edits],
        )
        if not result.ok:
            logger.warning("Meal commit failed: %s", result.error)
        return {
            "ok": result.ok,
            "log_id": str(result.log_id) if result.log_id else None,
            "error": result.error,
            "state": result.state.value,
        }

    return app
