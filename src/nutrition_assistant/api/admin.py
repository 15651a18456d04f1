"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from nutrition_assistant.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/routes", dependencies=[Depends(require_admin)])
async def list_routes(request: Request) -> dict[str, object]:
    """Return the cached intent routes without fetching."""
    container: AppContainer = request.app.state.container
    cache = container.route_cache
    return {
        "loaded": cache.loaded,
        "routes": [
            {
                "id": route.id,
                "name": route.name,
                "examples": len(route.examples),
                "has_embedding": bool(route.embedding),
                "hi_threshold": route.hi_threshold,
                "mid_threshold": route.mid_threshold,
            }
            for route in cache.peek()
        ],
    }


@router.post("/routes/reload", dependencies=[Depends(require_admin)])
async def reload_routes(request: Request) -> dict[str, object]:
    """Drop cached routes and fetch them again."""
    container: AppContainer = request.app.state.container
    container.route_cache.invalidate()
    routes = await container.route_cache.load(container.route_store)
    return {"status": "ok", "routes": len(routes)}
