"""
REST client for the hosted voice agent platform (server side).

Creates interview assistants, starts web calls and reads call records. Every
vendor request/response shape is handled here so nothing else in the package
depends on it.
"""
import time
import logging
from datetime import datetime
from typing import Optional, Dict, Any

import requests

from ...config import (
    VAPI_BASE_URL, VOICE_AGENT_TIMEOUT,
    PLACEHOLDER_ASSISTANT_PREFIX, PLACEHOLDER_CALL_PREFIX,
    ASSISTANT_MODEL_PROVIDER, ASSISTANT_MODEL,
    ASSISTANT_VOICE_PROVIDER, ASSISTANT_VOICE,
)

logger = logging.getLogger("voice_server")


class VoiceAgentError(RuntimeError):
    """Raised when the voice agent platform rejects a request or answers with an unexpected shape."""


def make_placeholder_id(prefix: str = PLACEHOLDER_ASSISTANT_PREFIX) -> str:
    """Build a placeholder identifier such as `mock-assistant-1718200000000`."""
    return f"{prefix}{int(time.time() * 1000)}"


def is_placeholder_id(identifier: Optional[str], prefix: str = PLACEHOLDER_ASSISTANT_PREFIX) -> bool:
    return bool(identifier) and identifier.startswith(prefix)


def mask_key(api_key: str) -> str:
    """Masked form of an API key that is safe to log."""
    if len(api_key) > 8:
        return f"{api_key[:4]}...{api_key[-4:]}"
    return "****"


class VoiceAgentServer:
    """Server-side client for the voice agent REST API."""

    def __init__(self, api_key: str, base_url: str = VAPI_BASE_URL, timeout: int = VOICE_AGENT_TIMEOUT):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        logger.info(f"Voice agent client configured (key {mask_key(api_key)})")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, headers=self._headers(), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise VoiceAgentError(f"Voice agent request failed: {e}") from e

        if resp.status_code >= 400:
            raise VoiceAgentError(f"Voice agent error {resp.status_code}: {resp.text}")

        try:
            data = resp.json()
        except ValueError as e:
            raise VoiceAgentError(f"Voice agent returned non-JSON response: {resp.text[:200]}") from e

        if not isinstance(data, dict):
            raise VoiceAgentError(f"Unexpected voice agent response: {data!r}")
        return data

    def create_assistant(self,
                         name: str,
                         system_prompt: str,
                         first_message: str,
                         model: str = ASSISTANT_MODEL,
                         model_provider: str = ASSISTANT_MODEL_PROVIDER,
                         voice: str = ASSISTANT_VOICE,
                         voice_provider: str = ASSISTANT_VOICE_PROVIDER) -> str:
        """
        Create an interview assistant.

        Args:
            name: Display name of the assistant
            system_prompt: Interviewer instructions
            first_message: Opening line spoken when the call connects
            model: Chat model the assistant runs on
            voice: Voice used for synthesis

        Returns:
            The assistant id

        Raises:
            VoiceAgentError: If the platform rejects the request or returns no id
        """
        body = {
            "name": name,
            "firstMessage": first_message,
            "model": {
                "provider": model_provider,
                "model": model,
                "messages": [{"role": "system", "content": system_prompt}],
            },
            "voice": {"provider": voice_provider, "voiceId": voice},
        }

        logger.info(f"Creating voice assistant '{name}'")
        assistant = self._request("POST", "/assistant", body)

        assistant_id = assistant.get("id")
        if not assistant_id:
            raise VoiceAgentError("Failed to create a valid assistant: response had no id")

        logger.info(f"Created assistant {assistant_id}")
        return assistant_id

    def create_web_call(self, assistant_id: str) -> Dict[str, Any]:
        """Start a browser call against an assistant and return the call record."""
        call = self._request("POST", "/call/web", {"assistantId": assistant_id})
        if not call.get("id"):
            raise VoiceAgentError("Web call response had no id")
        return call

    def fetch_call(self, call_id: str) -> Dict[str, Any]:
        """Read a call record; errors propagate."""
        return self._request("GET", f"/call/{call_id}")

    def get_call(self, call_id: str) -> Dict[str, Any]:
        """
        Read a call record for display.

        Placeholder call ids and lookup failures both return a canned active record so
        callers can keep going without the live platform.
        """
        if is_placeholder_id(call_id, PLACEHOLDER_CALL_PREFIX):
            logger.info(f"Using placeholder call data for {call_id}")
            return self.placeholder_call(call_id)

        try:
            return self.fetch_call(call_id)
        except VoiceAgentError as e:
            logger.error(f"Error getting call {call_id}: {e}")
            return self.placeholder_call(call_id, error="Unable to fetch real call data")

    @staticmethod
    def placeholder_call(call_id: str, error: Optional[str] = None) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"test": True}
        if error:
            metadata["error"] = error
        return {
            "id": call_id,
            "status": "active",
            "metadata": metadata,
            "createdAt": datetime.now().isoformat(),
        }

    def end_call(self, control_url: str) -> None:
        """Ask a live call to hang up through its control URL."""
        try:
            resp = requests.post(control_url, json={"type": "end-call"}, timeout=self.timeout)
        except requests.RequestException as e:
            raise VoiceAgentError(f"End-call request failed: {e}") from e
        if resp.status_code >= 400:
            raise VoiceAgentError(f"End-call error {resp.status_code}: {resp.text}")
