"""Messaging API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from ...app import Application
from ...logging_config import get_logger
from ...models import PaginationParams
from ..schemas import MessageRequest, OkResponse, PaginationQuery

logger = get_logger(__name__)


def pagination_params(
    limit: int | None = Query(None),
    direction: str | None = Query(None),
    around: int | None = Query(None),
    context: int | None = Query(None),
    after: int | None = Query(None),
    before: int | None = Query(None),
) -> PaginationParams:
    """Validate the pagination query as a whole."""
    try:
        query = PaginationQuery(
            limit=limit,
            direction=direction,
            around=around,
            context=context,
            after=after,
            before=before,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail="Invalid pagination parameter combination: "
            + "; ".join(err["msg"] for err in e.errors()),
        )
    return query.to_params()


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(tags=["messaging"])

    @router.post("/message", response_model=OkResponse)
    async def send_message(request: MessageRequest) -> dict:
        """Submit a user message; the turn runs in the background."""
        if not app.router.submit(request.content):
            raise HTTPException(
                status_code=503,
                detail="The agent is currently processing another request",
            )
        return {"ok": True}

    @router.get("/messages")
    async def get_messages(
        params: PaginationParams = Depends(pagination_params),
    ) -> dict:
        """Read the transcript with pagination."""
        return app.store.query(params).to_dict()

    @router.get("/tool_status")
    async def get_tool_status() -> dict:
        """List tools the agent is currently executing."""
        return {
            "messages": [
                {
                    "id": 0,
                    "role": "agent",
                    "content": f"Executing: {tool.name}",
                    "time": tool.start_time.isoformat(),
                    "toolUseId": tool.id,
                }
                for tool in app.store.list_active_tools()
            ]
        }

    return router
