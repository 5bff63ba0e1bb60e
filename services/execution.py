from typing import Any, Dict, Optional

import httpx

from constants import DEFAULT_VERSIONS, EXECUTOR_LANGUAGE_ALIASES, PISTON_API_URL
from dispatcher import Broadcaster
from events import CODE_RESPONSE
from logging_config import get_logger
from registry import RoomRegistry

logger = get_logger(__name__)


def resolve_language(language: Optional[str]) -> Optional[str]:
    """Map a client language name to the executor's vocabulary."""
    return EXECUTOR_LANGUAGE_ALIASES.get(language, language)


def resolve_version(language: Optional[str], version: Optional[str]) -> Optional[str]:
    if version == "*":
        return DEFAULT_VERSIONS.get(language, "*")
    return version


def build_execute_request(code: str, language: Optional[str], version: Optional[str], stdin: Optional[str]) -> Dict[str, Any]:
    return {
        "language": resolve_language(language),
        "version": resolve_version(language, version),
        "files": [{"content": code or ""}],
        "stdin": stdin or "",
    }


def error_response(message: str) -> Dict[str, Any]:
    return {"run": {"output": f"Error: {message}"}}


def _describe_failure(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return str(exc) or exc.__class__.__name__


class ExecutionGateway:
    """Runs room code on the remote sandbox and answers the requester only."""

    def __init__(self, registry: RoomRegistry, broadcaster: Broadcaster, client: httpx.AsyncClient, api_url: str = PISTON_API_URL):
        self.registry = registry
        self.broadcaster = broadcaster
        self.client = client
        self.api_url = api_url

    async def execute(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Call the sandbox. Failures come back as a displayable error payload."""
        try:
            response = await self.client.post(self.api_url, json=payload)
            response.raise_for_status()
            return response.json()
        except Exception as e:
            logger.error(f"Code execution failed for language {payload.get('language')}: {e}", exc_info=True)
            return error_response(_describe_failure(e))

    async def compile_code(self, connection, code: str, room_id: Optional[str], language: Optional[str],
                           version: Optional[str], stdin: Optional[str] = None) -> bool:
        if not self.registry.is_active(room_id):
            # Unknown or empty rooms get no feedback at all
            logger.info(f"Dropping compileCode from {connection.connection_id}: room {room_id} is not active")
            return False

        payload = build_execute_request(code, language, version, stdin)
        logger.info(f"Executing {payload['language']} {payload['version']} for room {room_id}")
        result = await self.execute(payload)
        await self.broadcaster.to_sender_only(connection, CODE_RESPONSE, result)
        return True
