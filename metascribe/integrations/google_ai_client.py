"""
Google AI Studio Client
========================

REST client for the Google Gemini API (generativelanguage.googleapis.com).
Sends one multimodal ``generateContent`` request per image and parses the
title/description/tags JSON the model returns.

Obtain an API key at https://aistudio.google.com/app/apikey

Authentication is via the ``x-goog-api-key`` HTTP header, so the key never
appears in request URLs or logs.
"""

import base64
import json
import logging
import os
import re
import time
from typing import Any, Dict, List

import requests

from metascribe.core import config
from metascribe.core.exceptions import ProcessingError
from metascribe.core.models import ImageMetadata
from metascribe.utils.logger import log_api_call, log_api_request, log_api_response

logger = logging.getLogger(__name__)

# Models often wrap JSON answers in a Markdown code fence
_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)


def get_mime_type(path: str) -> str:
    """MIME type for ``path`` from its extension, ``image/jpeg`` when unknown."""
    ext = os.path.splitext(path)[1].lower()
    return config.MIME_TYPES.get(ext, config.DEFAULT_MIME_TYPE)


def build_payload(prompt: str, mime_type: str, image_b64: str) -> Dict[str, Any]:
    """Request body for a text instruction followed by one inline image."""
    return {
        "contents": [
            {
                "parts": [
                    {"text": prompt},
                    {
                        "inline_data": {
                            "mime_type": mime_type,
                            "data": image_b64,
                        }
                    },
                ]
            }
        ]
    }


def extract_text(data: Any) -> str:
    """
    Return ``candidates[0].content.parts[0].text`` from a response body.

    Raises:
        ProcessingError: When any step of that path is missing.
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ProcessingError(f"Unexpected Google AI response structure: {exc!r}") from exc
    if not isinstance(text, str):
        raise ProcessingError("Google AI response text is not a string")
    return text


def parse_metadata(text: str, path: str) -> ImageMetadata:
    """
    Parse the model's JSON answer into an ``ImageMetadata`` for ``path``.

    Raises:
        ProcessingError: When the text is not JSON or lacks the expected
            ``title``/``description``/``tags`` shape.
    """
    match = _CODE_FENCE.match(text)
    if match:
        text = match.group(1)

    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise ProcessingError(f"Model returned invalid JSON: {exc}", path) from exc

    if not isinstance(payload, dict):
        raise ProcessingError("Model JSON is not an object", path)

    title = payload.get("title")
    description = payload.get("description")
    tags = payload.get("tags")

    if not isinstance(title, str):
        raise ProcessingError("Model JSON is missing a string 'title'", path)
    if not isinstance(description, str):
        raise ProcessingError("Model JSON is missing a string 'description'", path)
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ProcessingError("Model JSON 'tags' must be a list of strings", path)

    return ImageMetadata(
        source_path=path,
        title=title,
        description=description,
        tags=tuple(tags),
    )


class GoogleAIClient:
    """
    Client for Google AI Studio (Gemini API).

    One instance is shared by all worker threads of a batch; the underlying
    ``requests.Session`` pools connections across calls.

    Args:
        api_key: Gemini API key.
        model_name: Model identifier, e.g. ``gemini-2.5-flash``.
        timeout: Per-request timeout in seconds.
        prompt: Instruction sent alongside every image.
    """

    def __init__(
        self,
        api_key: str = "",
        model_name: str = config.DEFAULT_MODEL_ID,
        timeout: float = config.REQUEST_TIMEOUT_SECONDS,
        prompt: str = config.METADATA_PROMPT,
        base_url: str = config.GOOGLE_AI_BASE_URL,
    ):
        self.api_key = (api_key or "").strip()
        self.model_name = model_name or config.DEFAULT_MODEL_ID
        self.timeout = timeout
        self.prompt = prompt
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
        })
        if self.api_key:
            self.session.headers["x-goog-api-key"] = self.api_key

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        """Return True when an API key has been configured."""
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Metadata generation
    # ------------------------------------------------------------------

    @property
    def generate_url(self) -> str:
        return f"{self.base_url}/models/{self.model_name}:generateContent"

    @log_api_call(api_name="Gemini")
    def fetch_metadata(self, path: str) -> ImageMetadata:
        """
        Generate title, description and tags for one image.

        Args:
            path: A validated image path.

        Returns:
            ImageMetadata with ``source_path`` set to ``path``.

        Raises:
            ProcessingError: If the file cannot be read, the request fails,
                or the response does not carry the expected JSON.
        """
        try:
            with open(path, "rb") as f:
                image_b64 = base64.b64encode(f.read()).decode("ascii")
        except OSError as exc:
            raise ProcessingError(f"Cannot read image '{path}': {exc}", path) from exc

        payload = build_payload(self.prompt, get_mime_type(path), image_b64)
        del image_b64

        data = self._post(payload, path)

        try:
            text = extract_text(data)
        except ProcessingError as exc:
            exc.path = path
            raise
        return parse_metadata(text, path)

    def _post(self, payload: Dict[str, Any], path: str) -> Any:
        url = self.generate_url
        log_api_request(logger, "POST", url, headers=self.session.headers, data=payload)

        start = time.time()
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.HTTPError as exc:
            detail = ""
            try:
                detail = exc.response.json().get("error", {}).get("message", "")
            except (ValueError, AttributeError):
                pass
            status = exc.response.status_code if exc.response is not None else "?"
            raise ProcessingError(
                f"Google AI API error ({status}): {detail or exc}", path
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise ProcessingError(f"Google AI API request failed: {exc}", path) from exc
        except ValueError as exc:
            raise ProcessingError(f"Google AI returned a non-JSON body: {exc}", path) from exc
        finally:
            del payload

        log_api_response(logger, resp.status_code, elapsed_time=time.time() - start)
        resp.close()
        return data

    # ------------------------------------------------------------------
    # Model listing
    # ------------------------------------------------------------------

    def list_models(self, limit: int = 50) -> List[Dict]:
        """
        Fetch models that support ``generateContent``.

        Returns a list of dicts with ``id`` and ``display_name``; an empty
        list when the call fails.
        """
        url = f"{self.base_url}/models"
        try:
            resp = self.session.get(url, timeout=config.LIST_MODELS_TIMEOUT_SECONDS)
            resp.raise_for_status()
            data = resp.json()
            resp.close()
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.error("Google AI model listing failed: %s", exc)
            return []

        results: List[Dict] = []
        for m in data.get("models", []):
            if "generateContent" not in m.get("supportedGenerationMethods", []):
                continue
            model_name: str = m.get("name", "")
            model_id = model_name[len("models/"):] if model_name.startswith("models/") else model_name
            results.append({
                "id": model_id,
                "display_name": m.get("displayName", model_id),
            })
            if len(results) >= limit:
                break

        logger.info("Google AI: found %d models", len(results))
        return results

    def test_connection(self) -> bool:
        """Quick connectivity check: the key works if models can be listed."""
        return len(self.list_models(limit=1)) > 0

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def close(self):
        """Release the underlying HTTP session and connection pool."""
        self.session.close()
