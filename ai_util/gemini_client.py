from __future__ import annotations

import json
import logging
import os
import re
import time
import typing as t
import urllib.error
import urllib.parse
import urllib.request

JsonDict = dict[str, t.Any]

logger = logging.getLogger(__name__)

# matches both the RetryInfo detail ("retryDelay": "17s") and the message text
_RETRY_HINT_RE = re.compile(r"(?:retryDelay\"\s*:\s*\"|retry in )([0-9]+(?:\.[0-9]+)?)s", re.IGNORECASE)


def _retry_delay_seconds(body_text: str | None) -> float | None:
    m = _RETRY_HINT_RE.search(body_text or "")
    return float(m.group(1)) if m else None


class GeminiClient:
    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_s: float = 60.0,
        max_attempts: int = 3,
    ) -> None:
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        if not self.api_key:
            raise RuntimeError("Missing GEMINI_API_KEY (or GOOGLE_API_KEY).")
        self.model = os.environ.get("GEMINI_MODEL") or model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.max_attempts = max(1, int(max_attempts))

    def _build_request(self, payload: JsonDict) -> urllib.request.Request:
        url = f"{self.base_url}/models/{urllib.parse.quote(self.model)}:generateContent?key={urllib.parse.quote(self.api_key)}"
        return urllib.request.Request(
            url,
            data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

    def _extract_text(self, raw: str) -> str:
        """Join the text parts of the first candidate; empty output is an error."""
        try:
            first = (json.loads(raw).get("candidates") or [{}])[0]
        except (json.JSONDecodeError, AttributeError):
            raise RuntimeError(f"Gemini returned an unreadable body: {raw[:500]}")

        texts = [p["text"] for p in (first.get("content") or {}).get("parts") or [] if p.get("text")]
        if not texts:
            raise RuntimeError(f"Gemini returned no text. Finish reason: {first.get('finishReason')}.")
        return "\n".join(texts).strip()

    def generate_text(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
    ) -> str:
        payload: JsonDict = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        req = self._build_request(payload)

        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            last_try = attempt == self.max_attempts - 1
            try:
                with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                    raw = resp.read().decode("utf-8")
                return self._extract_text(raw)

            except urllib.error.HTTPError as e:
                try:
                    body = e.read().decode("utf-8")
                except (OSError, UnicodeDecodeError):
                    body = None
                last_error = e
                if e.code == 429 and not last_try:
                    delay = _retry_delay_seconds(body) or float(2 ** attempt) * 2.0
                    logger.warning("Gemini rate limited, retrying in %.1fs", delay)
                    time.sleep(min(65.0, max(1.0, delay)))
                    continue
                raise RuntimeError(f"Gemini HTTPError {e.code}: {body}") from e

            except RuntimeError as e:
                # empty output is usually transient
                last_error = e
                if not last_try:
                    logger.warning("Gemini attempt %d failed: %s", attempt + 1, e)
                    time.sleep(float(2 ** attempt) * 1.0)
                    continue
                raise

        raise RuntimeError("Gemini extraction failed.") from last_error
