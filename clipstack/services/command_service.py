#!/usr/bin/env python3
"""
Command Service - Transport-independent handling of UI commands

Requests look like {"action": "get-history", ...}; replies and pushes look
like {"type": "clipboard-history", ...}. The IPC and WebSocket services only
move these dicts around.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from clipstack.history import filter_history
from clipstack.models import make_text_snapshot, snapshot_from_record
from clipstack.services.clipboard_service import ClipboardService
from clipstack.services.history_service import HistoryChanged, HistoryService

logger = logging.getLogger(__name__)


def history_message(message_type: str, records: List[Dict]) -> Dict:
    """Build a message carrying a full history"""
    return {"type": message_type, "history": records}


def changed_message(event: HistoryChanged) -> Dict:
    """Build the push sent to every UI after a history mutation"""
    return history_message("clipboard-changed", event.records())


def error_message(message: str) -> Dict:
    return {"type": "error", "message": message}


HIDE_WINDOW = {"type": "hide-window"}


@dataclass
class CommandResult:
    """What a transport should send back after handling one request"""
    reply: Optional[Dict] = None
    broadcast: Optional[Dict] = None


class CommandService:
    """Service that executes UI commands against the history and clipboard"""

    def __init__(self, history_service: HistoryService, clipboard_service: ClipboardService):
        """
        Initialize command service

        Args:
            history_service: History service
            clipboard_service: Clipboard service, used to copy items back
        """
        logger.info("[CommandService.__init__] Starting initialization...")
        self.history_service = history_service
        self.clipboard_service = clipboard_service
        logger.info("[CommandService.__init__] Initialization complete")

    def initial_message(self) -> Dict:
        """Snapshot pushed to a UI as soon as it connects"""
        return history_message("clipboard-history", self.history_service.records())

    def handle(self, data: Dict) -> CommandResult:
        """
        Handle one request from a UI

        Args:
            data: Decoded JSON request

        Returns:
            CommandResult with an optional reply and an optional broadcast
        """
        if not isinstance(data, dict):
            return CommandResult(reply=error_message("Request must be a JSON object"))

        action = data.get("action")

        if action == "get-history":
            return self._handle_get_history()
        elif action == "copy-item":
            return self._handle_copy_item(data)
        elif action == "copy-text":
            return self._handle_copy_text(data)
        elif action == "clear-history":
            return self._handle_clear_history()
        elif action == "set-theme":
            return self._handle_set_theme(data)
        elif action == "get-theme":
            return self._handle_get_theme()
        elif action == "search":
            return self._handle_search(data)
        else:
            logger.warning(f"Unknown action: {action}")
            return CommandResult()

    def _handle_get_history(self) -> CommandResult:
        """Handle get-history action"""
        records = self.history_service.records()
        logger.info(f"Sending history ({len(records)} items)")
        return CommandResult(reply=history_message("clipboard-history", records))

    def _handle_copy_item(self, data: Dict) -> CommandResult:
        """Handle copy-item action"""
        try:
            snapshot = snapshot_from_record(data.get("item"))
        except ValueError as e:
            logger.warning(f"Rejecting copy-item request: {e}")
            return CommandResult(reply=error_message(f"Invalid item: {e}"))
        return self._copy(snapshot)

    def _handle_copy_text(self, data: Dict) -> CommandResult:
        """Handle copy-text action (older UIs send bare text)"""
        text = data.get("text")
        if not isinstance(text, str) or not text:
            return CommandResult(reply=error_message("text is required"))
        return self._copy(make_text_snapshot(text))

    def _copy(self, snapshot) -> CommandResult:
        if not self.clipboard_service.copy_item(snapshot):
            return CommandResult(reply=error_message("Failed to write item to clipboard"))
        return CommandResult(broadcast=dict(HIDE_WINDOW))

    def _handle_clear_history(self) -> CommandResult:
        """Handle clear-history action; the change itself is pushed by the history listener"""
        self.history_service.clear()
        return CommandResult()

    def _handle_set_theme(self, data: Dict) -> CommandResult:
        """Handle set-theme action"""
        value = data.get("value")
        if not isinstance(value, str) or not value:
            return CommandResult(reply=error_message("value is required"))
        self.history_service.set_theme(value)
        return CommandResult()

    def _handle_get_theme(self) -> CommandResult:
        """Handle get-theme action"""
        return CommandResult(reply={"type": "theme", "value": self.history_service.get_theme()})

    def _handle_search(self, data: Dict) -> CommandResult:
        """Handle search action"""
        query = data.get("query") or ""
        if not isinstance(query, str):
            return CommandResult(reply=error_message("query must be a string"))
        results = filter_history(self.history_service.items, query)
        logger.info(f"Search for '{query}': {len(results)} results")
        return CommandResult(reply={
            "type": "search-results",
            "query": query,
            "history": [item.to_record() for item in results],
        })
