"""Server-sent events route."""

import uuid

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from ...app import Application
from ...broadcast import QueueTransport

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def create_events_router(app: Application, keepalive: float | None = 15.0) -> APIRouter:
    """Create live events router."""
    router = APIRouter(tags=["events"])

    @router.get("/events")
    async def stream_events() -> StreamingResponse:
        """Subscribe to broadcast events until the client disconnects."""
        transport = QueueTransport(keepalive=keepalive)
        app.hub.subscribe(str(uuid.uuid4()), transport)

        async def event_stream():
            try:
                async for frame in transport.frames():
                    yield frame
            finally:
                # Runs when the client disconnects and the stream is cancelled
                transport.close()

        return StreamingResponse(
            event_stream(), media_type="text/event-stream", headers=SSE_HEADERS
        )

    return router
