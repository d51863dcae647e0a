"""
Vertex AI REST client used for prompt enhancement and transcript analysis.
"""
import json
import logging
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class LLMError(RuntimeError):
    """Raised when the hosted model rejects a request."""


class VertexRestClient:
    """REST-based client for Vertex AI Gemini models."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.base_url = f"https://{self.location}-aiplatform.googleapis.com/v1"
        self.model_resource = f"projects/{self.project}/locations/{self.location}/publishers/google/models/{self.model}"
        self._token = None
        self.timeout = timeout

    def _refresh_token(self):
        """Refresh the OAuth token for API calls."""
        if self.credentials_json:
            creds = service_account.Credentials.from_service_account_file(
                self.credentials_json,
                scopes=[CLOUD_PLATFORM_SCOPE],
            )
        else:
            creds, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])

        creds.refresh(google.auth.transport.requests.Request())
        self._token = creds.token

    def _ensure_token(self):
        if not self._token:
            self._refresh_token()

    def generate_content(
        self,
        prompt_text: str,
        system_instruction: Optional[str] = None,
        temperature: float = 0.0,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
        stop_sequences: Optional[List[str]] = None,
    ) -> str:
        """
        Run a single chat turn and return the model's text.

        Args:
            prompt_text: The user message
            system_instruction: Optional system message framing the task
            temperature: Sampling temperature
            max_output_tokens: Output length cap

        Returns:
            Generated text

        Raises:
            LLMError: If the API cannot be reached or answers with an error status
        """
        self._ensure_token()
        body = self._request_body(prompt_text, system_instruction, temperature, max_output_tokens, stop_sequences)
        resp_json = self._post(f"{self.base_url}/{self.model_resource}:generateContent", body)
        return self._parse_response_text(resp_json)

    @staticmethod
    def _request_body(prompt_text: str, system_instruction: Optional[str], temperature: float,
                      max_output_tokens: int, stop_sequences: Optional[List[str]]) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {
            "temperature": float(temperature),
            "maxOutputTokens": int(max_output_tokens),
        }
        if stop_sequences:
            generation_config["stopSequences"] = list(stop_sequences)

        body: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
            "generationConfig": generation_config,
        }
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return body

    def _post(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"}
        try:
            resp = requests.post(url, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise LLMError(f"Vertex request failed: {e}") from e

        if resp.status_code >= 400:
            raise LLMError(f"Vertex REST error {resp.status_code}: {resp.text}")
        return resp.json()

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        """
        Extract text from a generateContent response.

        Joins every text part of the first candidate; returns an empty string when the
        model produced none.
        """
        candidates = resp_json.get("candidates") or []
        if not candidates:
            logger.warning("LLM response had no candidates: %s", json.dumps(resp_json)[:500])
            return ""

        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return "".join(texts)

    def generate_json(self, prompt: str, system_instruction: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate a JSON object from the LLM.
        Appends an instruction to respond with JSON only and tolerates surrounding text.
        """
        prompt_json = prompt.strip() + "\n\nRespond ONLY with minified JSON."
        logger.debug("Sending JSON prompt to LLM...")

        text = self.generate_content(prompt_json, system_instruction=system_instruction, temperature=0.0)
        logger.debug("Raw LLM output: %s", repr(text))

        try:
            return json.loads(text)
        except ValueError as e:
            logger.warning("json.loads failed: %s", e)

        # Models sometimes wrap the object in prose or code fences
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except ValueError as e:
                logger.warning("Substring parse also failed: %s", e)

        raise ValueError(f"LLM did not return valid JSON: {text}")
