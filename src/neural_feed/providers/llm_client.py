from __future__ import annotations

import json
from typing import TypeVar

from openai import OpenAI
from pydantic import BaseModel, ValidationError

from ..config import MODEL_PURPOSES, Settings
from ..errors import LLMResponseError, LLMUnavailableError

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise LLMResponseError("No JSON object found in model output.")
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None


def parse_model_output(content: str, output_model: type[ModelT]) -> ModelT:
    snippet = extract_json_snippet(content or "")
    try:
        payload = json.loads(snippet)
    except json.JSONDecodeError as exc:
        raise LLMResponseError(f"Model output is not valid JSON: {exc}") from exc
    try:
        return output_model.model_validate(payload)
    except ValidationError as exc:
        raise LLMResponseError(f"Model output failed validation: {exc.error_count()} error(s)") from exc


class LLMClient:
    """Chat-completion wrapper that only ever returns schema-validated objects."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None,
        models: dict[str, str] | None = None,
        timeout_seconds: float = 30,
        client: OpenAI | None = None,
    ) -> None:
        self.models = models or {}
        if client is not None:
            self.client = client
        elif api_key:
            self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds, max_retries=0)
        else:
            self.client = None

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMClient:
        return cls(
            api_key=settings.resolved_api_key(),
            base_url=settings.resolved_base_url(),
            models={purpose: settings.resolved_model(purpose) for purpose in MODEL_PURPOSES},
            timeout_seconds=settings.llm_timeout_seconds,
        )

    @property
    def available(self) -> bool:
        return self.client is not None

    def model_for(self, purpose: str) -> str:
        return self.models.get(purpose) or self.models.get("profile") or "gpt-4o-mini"

    def complete_json(
        self,
        *,
        system: str,
        user: str,
        output_model: type[ModelT],
        purpose: str = "profile",
        temperature: float = 0.2,
    ) -> ModelT:
        if self.client is None:
            raise LLMUnavailableError()
        resp = self.client.chat.completions.create(
            model=self.model_for(purpose),
            temperature=temperature,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        text = (resp.choices[0].message.content or "").strip()
        return parse_model_output(text, output_model)
