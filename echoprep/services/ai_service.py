"""
AI collaborator for interview replies and structured judgements.

The pipeline never talks to a model SDK directly: it receives an AIService
(built on an LLMProvider) through a FastAPI dependency, so tests can swap in
a deterministic provider.

Judgements come back as a tagged JudgementResult instead of raising, so each
caller decides its own fallback policy.
"""
import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from echoprep.core.config import OPENAI_API_KEY
from echoprep.llm.provider import LLMProvider, LLMProviderError
from echoprep.llm.router import get_model_for_feature, get_temperature_for_feature

logger = logging.getLogger(__name__)

# A whole response wrapped in a single ```json ... ``` block
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)

REPLY_HISTORY_LIMIT = 30


class AIServiceError(Exception):
    """The model could not be reached or returned nothing usable."""


class JudgementStatus(str, Enum):
    OK = "ok"
    PARSE_ERROR = "parse_error"
    SCHEMA_ERROR = "schema_error"


@dataclass
class JudgementResult:
    status: JudgementStatus
    value: Optional[BaseModel] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is JudgementStatus.OK


def strip_code_fence(text: str) -> str:
    text = text.strip()
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text


def parse_judgement(text: str, schema: Type[BaseModel]) -> JudgementResult:
    """
    Strictly parse model output into schema.

    The text must be a JSON object, optionally wrapped in one markdown code
    fence. Anything else is a parse error; a JSON object that does not fit the
    schema is a schema error.
    """
    try:
        data = json.loads(strip_code_fence(text or ""))
    except json.JSONDecodeError as e:
        return JudgementResult(JudgementStatus.PARSE_ERROR, error=f"Invalid JSON: {e}")

    if not isinstance(data, dict):
        return JudgementResult(JudgementStatus.PARSE_ERROR, error=f"Expected a JSON object, got {type(data).__name__}")

    try:
        return JudgementResult(JudgementStatus.OK, value=schema.model_validate(data))
    except ValidationError as e:
        return JudgementResult(JudgementStatus.SCHEMA_ERROR, error=str(e))


class AIService:
    """Thin policy layer over an LLMProvider."""

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider

    @property
    def available(self) -> bool:
        return self.provider is not None

    def _chat(self, feature: str, messages: List[Dict[str, str]], json_mode: bool = False) -> str:
        if not self.available:
            raise AIServiceError("AI provider not configured")
        try:
            response = self.provider.chat(
                messages=messages,
                model=get_model_for_feature(feature),
                temperature=get_temperature_for_feature(feature),
                json_mode=json_mode,
            )
        except LLMProviderError as e:
            raise AIServiceError(str(e)) from e
        except Exception as e:
            logger.error(f"Unexpected error in AI call: {type(e).__name__}: {e}", exc_info=True)
            raise AIServiceError("AI service error") from e

        logger.info(
            f"AI call complete: feature={feature}, model={response.model}, "
            f"tokens_in={response.tokens_in}, tokens_out={response.tokens_out}"
        )
        if not response.content or not response.content.strip():
            raise AIServiceError("AI returned an empty response")
        return response.content

    def generate_judgement(self, prompt: str, schema: Type[BaseModel], feature: str) -> JudgementResult:
        """
        Ask for a JSON judgement and validate it against schema.

        Raises:
            AIServiceError: provider missing or the call failed
        """
        raw = self._chat(
            feature,
            [
                {"role": "system", "content": "You are a strict grader. Reply with one JSON object only."},
                {"role": "user", "content": prompt},
            ],
            json_mode=True,
        )
        result = parse_judgement(raw, schema)
        if not result.ok:
            logger.warning(f"AI judgement rejected: feature={feature}, status={result.status.value}, error={result.error}")
        return result

    def generate_reply(self, conversation: List[Dict[str, Any]], job_role: str, tech_stack: Optional[List[str]] = None) -> str:
        """
        Next interviewer turn for the conversation so far.

        Raises:
            AIServiceError: provider missing or the call failed
        """
        stack = ", ".join(tech_stack or []) or "general software engineering"
        messages = [{
            "role": "system",
            "content": (
                f"You are a technical interviewer for a {job_role} position focusing on {stack}. "
                "Ask one question at a time, follow up on the candidate's last answer, "
                "and keep replies under 80 words so they can be spoken aloud."
            ),
        }]
        # Stored system framing turns are replaced by the prompt above
        for turn in conversation[-REPLY_HISTORY_LIMIT:]:
            if turn.get("role") in ("user", "assistant"):
                messages.append({"role": turn["role"], "content": turn.get("content") or ""})
        return self._chat("interview_reply", messages).strip()


@lru_cache
def get_ai_service() -> AIService:
    """Process-wide AIService; tests override this dependency."""
    if not OPENAI_API_KEY:
        logger.info("OPENAI_API_KEY not configured - AI calls will use fallbacks")
        return AIService(provider=None)

    from echoprep.llm.openai_provider import OpenAIProvider
    try:
        return AIService(provider=OpenAIProvider())
    except Exception as e:
        logger.warning(f"Failed to initialize OpenAI provider: {e}, AI calls will use fallbacks")
        return AIService(provider=None)
