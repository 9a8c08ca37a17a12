import logging
import os
from typing import Any, List, Mapping, Optional, Sequence

import httpx
from langfuse import Langfuse
from openai import OpenAI, APIError, APIStatusError

from counselor.contracts import Turn
from counselor.errors import ConfigurationError, UpstreamError
from counselor.prompts import FALLBACK_REPLY, build_prompt, label_turn

logger = logging.getLogger(__name__)


# ============================================================
# Environment
# ============================================================
COMPLETION_PROVIDER = os.getenv("COMPLETION_PROVIDER", "gemini")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.getenv(
    "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1"
)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")

LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY")
LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY")
LANGFUSE_HOST = os.getenv("LANGFUSE_HOST", "http://langfuse:3000")

REQUEST_TIMEOUT_S = float(os.getenv("REQUEST_TIMEOUT_S", "60"))

# Generation parameters are fixed; callers cannot override them.
TEMPERATURE = 0.4
TOP_K = 32
TOP_P = 0.95
MAX_OUTPUT_TOKENS = 1024

langfuse: Optional[Langfuse] = (
    Langfuse(
        public_key=LANGFUSE_PUBLIC_KEY,
        secret_key=LANGFUSE_SECRET_KEY,
        host=LANGFUSE_HOST,
    )
    if LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY
    else None
)


# ============================================================
# Backends
# ============================================================
class CompletionBackend:
    """
    Text in, text out. One attempt per call, no retries.

    Subclasses implement `_complete`; `generate` adds tracing and guarantees
    a non-empty reply.
    """

    name = "base"
    model = ""

    def generate(
        self,
        system_directive: str,
        turns: Sequence[Turn],
        *,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> str:
        trace = generation = None
        if langfuse:
            meta = dict(metadata or {})
            trace = langfuse.trace(
                name="counseling_turn",
                user_id=meta.get("user_id"),
                session_id=meta.get("session_id"),
                metadata={"provider": self.name, "num_turns": len(turns)},
            )
            generation = trace.generation(
                name=f"{self.name}_generation",
                model=self.model,
                input=build_prompt(system_directive, turns),
            )

        try:
            text = self._complete(system_directive, list(turns))
        except Exception as exc:
            if isinstance(exc, ConfigurationError):
                logger.error("%s backend is misconfigured: %s", self.name, exc)
            else:
                logger.warning("%s generation failed: %s", self.name, exc)
            if generation:
                generation.end(level="ERROR", status_message=str(exc))
            raise

        reply = (text or "").strip() or FALLBACK_REPLY

        if generation:
            generation.end(output=reply)
        if trace:
            trace.update(output=reply)

        return reply

    def _complete(self, system_directive: str, turns: List[Turn]) -> str:
        raise NotImplementedError


class GeminiBackend(CompletionBackend):
    """
    Gemini `generateContent` over plain HTTP.

    The whole conversation goes out as a single user content whose parts are
    the directive followed by role-prefixed turns; the endpoint is used as a
    stateless completion service.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = GEMINI_API_KEY,
        model: str = GEMINI_MODEL,
        base_url: str = GEMINI_API_BASE,
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._http = http_client

    def build_request_body(self, system_directive: str, turns: Sequence[Turn]) -> dict:
        parts = [{"text": system_directive}] + [{"text": label_turn(t)} for t in turns]
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "topK": TOP_K,
                "topP": TOP_P,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
            },
        }

    def _complete(self, system_directive: str, turns: List[Turn]) -> str:
        if not self.api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY is not set",
                hint="export GEMINI_API_KEY or switch COMPLETION_PROVIDER",
            )

        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = self.build_request_body(system_directive, turns)
        client = self._http or httpx.Client(timeout=REQUEST_TIMEOUT_S)

        try:
            resp = client.post(url, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Gemini request failed: {exc}", provider=self.name
            ) from exc
        finally:
            if self._http is None:
                client.close()

        if not resp.is_success:
            raise UpstreamError(
                f"Gemini API error: {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
                provider=self.name,
            )

        try:
            data = resp.json()
        except ValueError:
            return ""
        return extract_gemini_text(data)


def extract_gemini_text(data: Any) -> str:
    """Join the text parts of the first candidate; empty if there are none."""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text") or "" for p in parts if isinstance(p, dict))


class OpenAIBackend(CompletionBackend):
    """
    OpenAI chat completions, used as a single-shot completion: the flattened
    prompt goes out as one user message.
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model: str = CHAT_MODEL,
        client: Optional[OpenAI] = None,
    ):
        self.api_key = api_key
        self.model = model
        self._client = client

    def _complete(self, system_directive: str, turns: List[Turn]) -> str:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "OPENAI_API_KEY is not set",
                    hint="export OPENAI_API_KEY or switch COMPLETION_PROVIDER",
                )
            self._client = OpenAI(api_key=self.api_key, timeout=REQUEST_TIMEOUT_S, max_retries=0)

        prompt = build_prompt(system_directive, turns)

        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=TEMPERATURE,
                top_p=TOP_P,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
        except APIStatusError as exc:
            raise UpstreamError(
                f"OpenAI API error: {exc.status_code}",
                status_code=exc.status_code,
                body=exc.response.text,
                provider=self.name,
            ) from exc
        except APIError as exc:
            raise UpstreamError(f"OpenAI request failed: {exc}", provider=self.name) from exc

        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""


_PROVIDERS = {
    "gemini": GeminiBackend,
    "openai": OpenAIBackend,
}


def get_backend(provider: str = COMPLETION_PROVIDER) -> CompletionBackend:
    """Instantiate the configured provider."""
    try:
        backend_cls = _PROVIDERS[provider.lower()]
    except KeyError:
        raise ConfigurationError(
            f"unknown completion provider {provider!r}",
            hint=f"set COMPLETION_PROVIDER to one of: {', '.join(sorted(_PROVIDERS))}",
        ) from None
    return backend_cls()
