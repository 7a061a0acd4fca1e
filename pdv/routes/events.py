from fastapi import APIRouter, Request
from starlette.responses import StreamingResponse
import json
import asyncio

from pdv.utils.pubsub import register_queue, unregister_queue, get_status

router = APIRouter(prefix="/events", tags=["Events"])


async def event_generator(request: Request):
    q = register_queue()
    try:
        while True:
            # if client disconnected, stop
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(q.get(), timeout=15)
            except asyncio.TimeoutError:
                # keep-alive comment so proxies don't close the stream
                yield ": ping\n\n"
                continue
            yield f"data: {json.dumps(event)}\n\n"
    finally:
        unregister_queue(q)


@router.get("/stream")
def stream(request: Request):
    # Use StreamingResponse with text/event-stream so we don't rely on EventSourceResponse availability
    return StreamingResponse(event_generator(request), media_type="text/event-stream")


@router.get('/status')
def status():
    return get_status()
