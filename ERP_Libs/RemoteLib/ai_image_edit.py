"""
Remote AI image-edit collaborator.

The editor hands the current bitmap (base64) and an instruction to a hosted
image model and gets an edited image back. Every failure (missing credential,
network error, non-2xx status, payload without an image) is reported as an
AiEditResult failure rather than an exception, so callers branch on the result
explicitly.

Classes:
    AiEditResult: Ok(image_base64) | Err(reason)
    GeminiImageEditor: Callable client for the Gemini generateContent endpoint
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ERP_Libs.RemoteLib.remote_config import RemoteConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AiEditResult:
    """Outcome of a remote edit.

    Attributes:
        image_base64: Edited image when the call succeeded
        reason: Failure description when it did not
    """
    image_base64: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image_base64 is not None

    @classmethod
    def success(cls, image_base64: str) -> "AiEditResult":
        return cls(image_base64=image_base64)

    @classmethod
    def failure(cls, reason: str) -> "AiEditResult":
        return cls(reason=reason)


def extract_inline_image(payload: Any) -> Optional[str]:
    """
    Find the first inline image in a generateContent response.

    Accepts both the camelCase REST shape ('inlineData') and the snake_case
    shape ('inline_data').
    """
    if not isinstance(payload, dict):
        return None
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return None
    for part in parts:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and inline.get("data"):
            return str(inline["data"])
    return None


class GeminiImageEditor:
    """
    Image edit client for the Gemini generateContent REST endpoint.

    Instances are callables matching the editor's AI edit contract:
    editor(image_base64, instruction, mask_base64=None) -> AiEditResult
    """

    def __init__(self, config: RemoteConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def build_payload(self, image_base64: str, instruction: str, mask_base64: Optional[str] = None) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [
            {"inline_data": {"mime_type": "image/jpeg", "data": image_base64}},
        ]
        prompt = instruction
        if mask_base64:
            parts.append({"inline_data": {"mime_type": "image/png", "data": mask_base64}})
            prompt += " The second image is the mask; white pixels mark the area to remove and fill."
        parts.append({"text": prompt})
        return {"contents": [{"parts": parts}]}

    def __call__(self, image_base64: str, instruction: str, mask_base64: Optional[str] = None) -> AiEditResult:
        if not self.config.has_credential:
            return AiEditResult.failure("AI image edit credential not configured")

        url = self.config.ai_endpoint.format(model=self.config.ai_model)
        payload = self.build_payload(image_base64, instruction, mask_base64)

        try:
            resp = self.session.post(
                url,
                params={"key": self.config.api_key},
                json=payload,
                timeout=self.config.ai_timeout_s,
            )
        except requests.RequestException as exc:
            return AiEditResult.failure(f"AI edit request failed: {exc}")

        if resp.status_code >= 400:
            return AiEditResult.failure(f"AI edit error {resp.status_code}: {resp.text[:300]}")

        try:
            resp_json = resp.json()
        except ValueError:
            return AiEditResult.failure("AI edit response is not JSON")

        image = extract_inline_image(resp_json)
        if not image:
            return AiEditResult.failure("No image returned")

        logger.debug(f"AI edit returned {len(image)} base64 characters")
        return AiEditResult.success(image)
