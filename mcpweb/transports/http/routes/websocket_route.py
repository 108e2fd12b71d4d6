import asyncio
import json

from aiohttp import WSMsgType, web

from mcpweb.broadcast import Subscription
from mcpweb.logging import get_logger

_fallback_logger = get_logger("transport.websocket")


async def _forward_envelopes(
    ws: web.WebSocketResponse, subscription: Subscription
) -> None:
    async for envelope in subscription:
        if ws.closed:
            break
        try:
            await ws.send_json(envelope.to_dict())
        except ConnectionResetError:
            break


async def handle_websocket(request: web.Request) -> web.WebSocketResponse:
    manager = request.app["manager"]
    logger = request.app.get("logger", _fallback_logger)

    ws = web.WebSocketResponse(heartbeat=30)
    await ws.prepare(request)

    subscription = manager.hub.subscribe()
    request.app["websockets"].add(ws)
    logger.subscriber_connected(subscription.id, request.remote)

    sender = asyncio.create_task(_forward_envelopes(ws, subscription))

    try:
        async for message in ws:
            if message.type == WSMsgType.TEXT:
                try:
                    json.loads(message.data)
                except json.JSONDecodeError as e:
                    logger.warning(f"WebSocket message error: {e}")
            elif message.type == WSMsgType.ERROR:
                logger.warning(
                    f"WebSocket closed with exception {ws.exception()}"
                )
    finally:
        manager.hub.unsubscribe(subscription)
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
        request.app["websockets"].discard(ws)
        logger.subscriber_disconnected(subscription.id, subscription.dropped)

    return ws
