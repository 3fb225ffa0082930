"""
Single-attempt calls to the v0 image-to-code API. No retries, no backoff:
a non-2xx status or a transport error surfaces immediately as ProviderError
and the caller decides what to do with it.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Dict

import requests

from era.config import Settings
from era.errors import ConfigurationError, ProviderError
from era.llm_prompts import build_conversion_prompt

log = logging.getLogger(__name__)


def _body_excerpt(resp: Any, limit: int = 400) -> str:
    try:
        return (resp.text or "")[:limit]
    except Exception:
        return ""


def _decode_body(resp: Any) -> Any:
    """JSON body when there is one, raw text otherwise."""
    try:
        return resp.json()
    except ValueError:
        return getattr(resp, "text", "") or ""


class GenerationClient:
    """Outbound client for the generation provider, built once from Settings."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def chat_endpoint(self) -> str:
        return f"{self.settings.v0_api_base}/v1/chat/completions"

    @property
    def generate_endpoint(self) -> str:
        return f"{self.settings.v0_api_base}/generate"

    @property
    def convert_endpoint(self) -> str:
        return f"{self.settings.v0_api_base}/convert"

    def status(self) -> Dict[str, Any]:
        return {
            "provider": "v0",
            "mode": self.settings.provider_mode,
            "model": self.settings.v0_model if self.settings.provider_mode == "chat" else None,
            "has_token": self.settings.has_provider_key,
        }

    def _auth_headers(self) -> Dict[str, str]:
        if not self.settings.v0_api_key:
            raise ConfigurationError("V0_API_KEY is not configured")
        return {"Authorization": f"Bearer {self.settings.v0_api_key}"}

    def _post(self, url: str, **kwargs: Any) -> Any:
        try:
            resp = requests.post(url, timeout=self.settings.llm_timeout_secs, **kwargs)
        except requests.RequestException as e:
            log.warning("v0 request error url=%s: %r", url, e)
            raise ProviderError(f"v0.dev API request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            body = _body_excerpt(resp)
            log.warning("v0 HTTP %s url=%s: %s", resp.status_code, url, body)
            raise ProviderError(
                f"v0.dev API error ({resp.status_code}): {body}",
                status=resp.status_code,
                body=body,
            )
        return _decode_body(resp)

    def generate(self, image_bytes: bytes, mime_type: str, prompt: str) -> Any:
        """Send the screenshot and prompt; return the raw provider response."""
        headers = self._auth_headers()
        if self.settings.provider_mode == "generate":
            return self._generate_multipart(headers, image_bytes, mime_type, prompt)
        return self._generate_chat(headers, image_bytes, mime_type, prompt)

    def _generate_chat(self, headers: Dict[str, str], image_bytes: bytes, mime_type: str, prompt: str) -> Any:
        data_url = f"data:{mime_type or 'image/png'};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        body = {
            "model": self.settings.v0_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
            "stream": False,
        }
        log.info("v0 chat generate model=%s image_bytes=%d", self.settings.v0_model, len(image_bytes))
        return self._post(self.chat_endpoint, headers={**headers, "Content-Type": "application/json"}, json=body)

    def _generate_multipart(self, headers: Dict[str, str], image_bytes: bytes, mime_type: str, prompt: str) -> Any:
        files = {"image": ("screenshot.png", image_bytes, mime_type or "image/png")}
        data = {
            "prompt": prompt,
            "framework": "html",
            "style": "tailwind",
            "typescript": "false",
        }
        log.info("v0 multipart generate image_bytes=%d", len(image_bytes))
        return self._post(self.generate_endpoint, headers=headers, files=files, data=data)

    def convert(self, code: str) -> Any:
        """Ask the provider to rewrite component code as a standalone HTML page."""
        headers = self._auth_headers()
        if self.settings.provider_mode == "generate":
            body: Dict[str, Any] = {"code": code, "target": "html", "framework": "vanilla"}
            url = self.convert_endpoint
        else:
            body = {
                "model": self.settings.v0_model,
                "messages": [{"role": "user", "content": build_conversion_prompt(code)}],
                "stream": False,
            }
            url = self.chat_endpoint
        log.info("v0 convert mode=%s code_chars=%d", self.settings.provider_mode, len(code))
        return self._post(url, headers={**headers, "Content-Type": "application/json"}, json=body)

