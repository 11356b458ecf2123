import asyncio
import logging
from typing import AsyncIterator, Protocol

import aiohttp

from ..core.exceptions import ConnectionFailedError

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Outbound side of a duplex text channel."""

    async def send(self, text: str) -> None:
        ...

    async def close(self) -> None:
        ...


class WebSocketConnection:
    """Adapts an aiohttp client websocket to ``Connection``."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send(self, text: str) -> None:
        await self._ws.send_str(text)

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()

    async def frames(self) -> AsyncIterator[str]:
        """Yield inbound text frames in order until the socket closes."""
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data.decode("utf-8", errors="replace")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.warning("Websocket error: %s", self._ws.exception())
                break


async def connect(session: aiohttp.ClientSession, url: str) -> WebSocketConnection:
    try:
        ws = await session.ws_connect(url)
    except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
        raise ConnectionFailedError(f"cannot connect to {url}: {e}") from e

    return WebSocketConnection(ws)
