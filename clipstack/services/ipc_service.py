#!/usr/bin/env python3
"""
IPC Service - Handles UNIX domain socket communication with the popup UI

Each frame is a decimal length line followed by that many bytes of JSON
(the JSON itself is newline terminated).
"""
import asyncio
import json
import logging
import os
from typing import Dict, Optional, Set

from clipstack.services.command_service import CommandService, changed_message
from clipstack.services.history_service import HistoryChanged, HistoryService

logger = logging.getLogger(__name__)


def default_socket_path() -> str:
    """Get the UNIX socket path in XDG_RUNTIME_DIR."""
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR", "/tmp")
    return os.path.join(runtime_dir, "clipstack-ipc.sock")


def encode_frame(data: Dict) -> bytes:
    """Serialize one message with its length prefix"""
    message_bytes = json.dumps(data).encode('utf-8') + b'\n'
    return f"{len(message_bytes)}\n".encode('utf-8') + message_bytes


class IPCConnection:
    """Represents a single IPC client connection."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer
        self.closed = False

    async def send_json(self, data: dict):
        """Send a JSON message to the client with length prefix."""
        if self.closed or self.writer.is_closing():
            return

        try:
            self.writer.write(encode_frame(data))
            await self.writer.drain()
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            self.closed = True

    async def receive_json(self) -> Optional[dict]:
        """Receive a JSON message from the client with length prefix."""
        if self.closed:
            return None

        try:
            length_line = await self.reader.readuntil(b'\n')
            message_length = int(length_line.decode('utf-8').strip())

            message_bytes = await self.reader.readexactly(message_length)
            message_str = message_bytes.decode('utf-8').rstrip('\n')
            return json.loads(message_str)
        except asyncio.IncompleteReadError:
            # Connection closed
            self.closed = True
            return None
        except Exception as e:
            logger.error(f"Error receiving message: {e}")
            self.closed = True
            return None

    async def close(self):
        """Close the connection."""
        # closed only stops reading; the writer may still be open after EOF or an error
        self.closed = True
        if self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Connection closed with error: {e}")


class IPCService:
    """Service for UNIX domain socket communication with UI clients"""

    def __init__(self, command_service: CommandService, history_service: HistoryService,
                 socket_path: Optional[str] = None):
        """
        Initialize IPC service

        Args:
            command_service: Executes the requests clients send
            history_service: Source of clipboard-changed pushes
            socket_path: Optional socket path override
        """
        logger.info("[IPCService.__init__] Starting initialization...")
        self.command_service = command_service
        self.history_service = history_service
        self.socket_path = socket_path or default_socket_path()
        self.clients: Set[IPCConnection] = set()
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.server: Optional[asyncio.AbstractServer] = None
        logger.info("[IPCService.__init__] Initialization complete")

    async def start(self):
        """Bind the socket and start pushing history changes"""
        self.loop = asyncio.get_running_loop()

        # Remove a stale socket left by a previous run
        try:
            os.unlink(self.socket_path)
        except FileNotFoundError:
            pass

        self.server = await asyncio.start_unix_server(self.client_handler, path=self.socket_path)
        os.chmod(self.socket_path, 0o600)
        self.history_service.subscribe(self.on_history_changed)
        logger.info(f"IPC server listening on {self.socket_path}")

    async def stop(self):
        """Close the server and every client, then remove the socket file"""
        self.history_service.unsubscribe(self.on_history_changed)
        if self.server:
            self.server.close()

        # wait_closed() waits for open connections, so clients go first
        for client in list(self.clients):
            await client.close()
        self.clients.clear()

        if self.server:
            await self.server.wait_closed()
            self.server = None

        try:
            os.unlink(self.socket_path)
        except FileNotFoundError:
            pass
        logger.info("IPC server stopped")

    def on_history_changed(self, event: HistoryChanged):
        """History listener; may be called from any thread"""
        if self.loop is None or self.loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.broadcast(changed_message(event)), self.loop)

    async def client_handler(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Handle IPC client connections"""
        logger.info("IPC client connected")

        connection = IPCConnection(reader, writer)
        self.clients.add(connection)

        try:
            await connection.send_json(self.command_service.initial_message())

            while not connection.closed:
                message = await connection.receive_json()
                if message is None:
                    break

                try:
                    await self._handle_message(connection, message)
                except Exception as e:
                    logger.exception(f"Error handling IPC message: {e}")

        except Exception as e:
            logger.exception(f"IPC handler error: {e}")
        finally:
            self.clients.discard(connection)
            await connection.close()
            logger.info("IPC client disconnected")

    async def _handle_message(self, connection: IPCConnection, data: dict):
        """Handle individual IPC message"""
        result = self.command_service.handle(data)
        if result.reply is not None:
            await connection.send_json(result.reply)
        if result.broadcast is not None:
            await self.broadcast(result.broadcast)

    async def broadcast(self, message: dict):
        """Broadcast message to all IPC clients"""
        if self.clients:
            tasks = []
            for client in list(self.clients):
                if not client.closed:
                    tasks.append(client.send_json(message))

            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
