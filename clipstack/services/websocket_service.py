#!/usr/bin/env python3
"""
WebSocket Service - Serves the UI command surface over WebSocket
"""
import asyncio
import json
import logging
from typing import Optional, Set

import websockets

from clipstack.services.command_service import CommandService, changed_message, error_message
from clipstack.services.history_service import HistoryChanged, HistoryService

logger = logging.getLogger(__name__)

MAX_MESSAGE_SIZE = 5 * 1024 * 1024


class WebSocketService:
    """Service for WebSocket communication with UI clients"""

    def __init__(self, command_service: CommandService, history_service: HistoryService,
                 host: str = "localhost", port: int = 8765):
        """
        Initialize WebSocket service

        Args:
            command_service: Executes the requests clients send
            history_service: Source of clipboard-changed pushes
            host: Interface to listen on
            port: Port to listen on
        """
        logger.info("[WebSocketService.__init__] Starting initialization...")
        self.command_service = command_service
        self.history_service = history_service
        self.host = host
        self.port = port
        self.clients: Set = set()
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.server = None
        logger.info("[WebSocketService.__init__] Initialization complete")

    async def start(self):
        """Start listening and pushing history changes"""
        self.loop = asyncio.get_running_loop()
        logger.info(f"Starting WebSocket server on ws://{self.host}:{self.port}")
        self.server = await websockets.serve(
            self.websocket_handler,
            self.host,
            self.port,
            max_size=MAX_MESSAGE_SIZE
        )
        self.history_service.subscribe(self.on_history_changed)

    async def stop(self):
        """Close the server and all client connections"""
        self.history_service.unsubscribe(self.on_history_changed)
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
        logger.info("WebSocket server stopped")

    def on_history_changed(self, event: HistoryChanged):
        """History listener; may be called from any thread"""
        if self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(changed_message(event)), self.loop)

    async def websocket_handler(self, websocket):
        """Handle WebSocket client connections from UI"""
        logger.info(f"WebSocket client connected from {getattr(websocket, 'remote_address', 'unknown')}")
        self.clients.add(websocket)

        try:
            await websocket.send(json.dumps(self.command_service.initial_message()))

            async for message in websocket:
                try:
                    await self._handle_message(websocket, message)
                except Exception as e:
                    logger.exception(f"Error handling WebSocket message: {e}")

        except websockets.exceptions.ConnectionClosed:
            pass
        except Exception as e:
            logger.exception(f"WebSocket handler error: {e}")
        finally:
            self.clients.discard(websocket)
            logger.info("WebSocket client disconnected")

    async def _handle_message(self, websocket, message: str):
        """Handle individual WebSocket message"""
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed WebSocket message: {e}")
            await websocket.send(json.dumps(error_message("Malformed JSON")))
            return

        result = self.command_service.handle(data)
        if result.reply is not None:
            await websocket.send(json.dumps(result.reply))
        if result.broadcast is not None:
            await self.broadcast(result.broadcast)

    async def broadcast(self, message: dict):
        """Broadcast message to all WebSocket clients"""
        if self.clients:
            message_json = json.dumps(message)
            await asyncio.gather(*[client.send(message_json) for client in list(self.clients)],
                                 return_exceptions=True)
