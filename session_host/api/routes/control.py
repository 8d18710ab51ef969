"""Status and control API routes."""

from fastapi import APIRouter, HTTPException

from ...app import Application
from ...logging_config import get_logger
from ..schemas import Action, OkResponse, ResumeRequest, StatusResponse, StopAgentAction

logger = get_logger(__name__)


def create_control_router(app: Application, agent_type: str = "codex") -> APIRouter:
    """Create control router."""
    router = APIRouter(tags=["control"])

    @router.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @router.get("/status", response_model=StatusResponse)
    async def get_status() -> dict:
        """Current agent status."""
        status = app.router.get_status()
        return {
            "agent_type": agent_type,
            "status": status.status,
            "thread_id": status.thread_id,
        }

    @router.get("/action")
    async def get_pending_actions() -> dict:
        """Questions and plans awaiting the user; none are produced by this host."""
        return {"pending_actions": []}

    @router.post("/action", response_model=OkResponse)
    async def post_action(action: Action) -> dict:
        """Apply a user action."""
        if isinstance(action, StopAgentAction):
            app.router.stop()
            logger.info("Agent stopped by user")
            return {"ok": True}

        logger.info("Rejected %s: no pending action", action.type)
        raise HTTPException(status_code=409, detail=f"No pending action for {action.type}")

    @router.post("/control/reset", response_model=OkResponse)
    async def reset() -> dict:
        """Stop the agent and clear the transcript."""
        try:
            await app.reset()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"ok": True}

    @router.post("/control/resume", response_model=StatusResponse)
    async def resume(request: ResumeRequest) -> dict:
        """Reattach to an existing runtime thread."""
        if app.router.is_running:
            raise HTTPException(
                status_code=409, detail="Cannot resume while a turn is running"
            )
        app.router.resume_thread(request.thread_id)
        status = app.router.get_status()
        return {
            "agent_type": agent_type,
            "status": status.status,
            "thread_id": status.thread_id,
        }

    return router
