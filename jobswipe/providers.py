"""Text-generation providers behind one ``generate(prompt) -> text`` call.

Every provider raises ``ProviderError`` for anything short of a non-empty
completion (network error, non-success status, empty payload), which lets
the cover-letter generator move on to the next one.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable

import requests

from jobswipe.config import DEFAULT_PROVIDER_ORDER
from jobswipe.identity import TokenGrant, TokenManager
from jobswipe.log import get_logger
from jobswipe.retry import is_transient, raise_for_transient, retry

log = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at writing cover letters. Follow the user's rules strictly."
)


class ProviderError(Exception):
    pass


class TextGenerationProvider(ABC):
    name: str = "provider"
    # Profile characters this backend handles comfortably inside one prompt.
    max_profile_chars: int = 6000

    @abstractmethod
    def generate(self, prompt: str) -> str:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class OpenAICompatibleProvider(TextGenerationProvider):
    """Chat-completions endpoint spoken through the openai SDK."""

    base_url: str = ""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 700,
        timeout: float = 30.0,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.extra_headers = extra_headers or {}

    def generate(self, prompt: str) -> str:
        from openai import OpenAI

        client = OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=1,
            default_headers=self.extra_headers or None,
        )
        try:
            r = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            raise ProviderError(f"{self.name}: {exc}") from exc

        text = (r.choices[0].message.content or "").strip() if r.choices else ""
        if not text:
            raise ProviderError(f"{self.name}: empty completion")
        return text


class OpenRouterProvider(OpenAICompatibleProvider):
    name = "openrouter"
    base_url = "https://openrouter.ai/api/v1"

    def __init__(self, api_key: str, model: str = "openai/gpt-4.1-mini", **kwargs: Any) -> None:
        kwargs.setdefault("extra_headers", {"HTTP-Referer": "https://jobswiper.ru", "X-Title": "JobSwipe"})
        super().__init__(api_key, model, **kwargs)


class GroqProvider(OpenAICompatibleProvider):
    name = "groq"
    base_url = "https://api.groq.com/openai/v1"

    def __init__(self, api_key: str, model: str = "llama-3.3-70b-versatile", **kwargs: Any) -> None:
        super().__init__(api_key, model, **kwargs)


def _gemini_text(data: dict) -> str | None:
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    content = candidates[0].get("content")
    if isinstance(content, dict):
        parts = content.get("parts") or []
        return parts[0].get("text") if parts else None
    if isinstance(content, list) and content:
        first = content[0]
        parts = first.get("parts") or []
        return parts[0].get("text") if parts else first.get("text")
    return None


class GeminiProvider(TextGenerationProvider):
    name = "gemini"
    max_profile_chars = 12000
    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", timeout: float = 30.0) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @retry(
        max_attempts=3, base_delay=1.0,
        retryable=(requests.RequestException,), should_retry=is_transient,
    )
    def _post(self, body: dict) -> requests.Response:
        r = requests.post(
            self.API_URL.format(model=self.model),
            params={"key": self.api_key},
            json=body,
            timeout=self.timeout,
        )
        # 429 and 5xx mean the model is overloaded; try again before giving up.
        return raise_for_transient(r)

    def generate(self, prompt: str) -> str:
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.8,
                "maxOutputTokens": 800,
                "responseMimeType": "text/plain",
            },
        }
        try:
            r = self._post(body)
        except requests.RequestException as exc:
            raise ProviderError(f"gemini: {exc}") from exc
        if not r.ok:
            raise ProviderError(f"gemini: HTTP {r.status_code} {r.text[:200]}")
        try:
            text = _gemini_text(r.json())
        except ValueError as exc:
            raise ProviderError(f"gemini: invalid JSON: {exc}") from exc
        if not text or not text.strip():
            raise ProviderError("gemini: no content in response")
        return text.strip()


class GigaChatProvider(TextGenerationProvider):
    name = "gigachat"
    max_profile_chars = 4000
    TOKEN_URL = "https://ngw.devices.sberbank.ru:9443/api/v2/oauth"
    CHAT_URL = "https://gigachat.devices.sberbank.ru/api/v1/chat/completions"

    def __init__(
        self,
        auth_key: str,
        scope: str = "GIGACHAT_API_PERS",
        ca_bundle: str = "",
        model: str = "GigaChat",
        timeout: float = 30.0,
    ) -> None:
        self.auth_key = auth_key
        self.scope = scope
        self.verify: str | bool = ca_bundle or True
        self.model = model
        self.timeout = timeout
        self.tokens = TokenManager(self._fetch_token)

    def _fetch_token(self) -> TokenGrant:
        r = requests.post(
            self.TOKEN_URL,
            data={"scope": self.scope},
            headers={
                "Accept": "application/json",
                "RqUID": str(uuid.uuid4()),
                "Authorization": f"Basic {self.auth_key}",
            },
            verify=self.verify,
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json()
        # expires_at comes back in epoch milliseconds
        return TokenGrant(
            access_token=data.get("access_token", ""),
            expires_at=float(data.get("expires_at", 0)) / 1000.0,
        )

    def generate(self, prompt: str) -> str:
        try:
            token = self.tokens.get_valid()
            r = requests.post(
                self.CHAT_URL,
                json={"model": self.model, "messages": [{"role": "user", "content": prompt}]},
                headers={"Authorization": f"Bearer {token}"},
                verify=self.verify,
                timeout=self.timeout,
            )
        except Exception as exc:
            raise ProviderError(f"gigachat: {exc}") from exc
        if not r.ok:
            raise ProviderError(f"gigachat: HTTP {r.status_code} {r.text[:200]}")
        try:
            choices = r.json().get("choices") or []
        except ValueError as exc:
            raise ProviderError(f"gigachat: invalid JSON: {exc}") from exc
        text = ((choices[0].get("message") or {}).get("content") or "") if choices else ""
        if not text.strip():
            raise ProviderError("gigachat: empty completion")
        return text.strip()


_FACTORIES: dict[str, Callable[[Callable[..., str]], TextGenerationProvider | None]] = {
    "openrouter": lambda env: OpenRouterProvider(
        env("OPENROUTER_API_KEY"),
        model=env("OPENROUTER_MODEL", "openai/gpt-4.1-mini"),
    ) if env("OPENROUTER_API_KEY") else None,
    "gigachat": lambda env: GigaChatProvider(
        env("GIGACHAT_AUTH_KEY"),
        scope=env("GIGACHAT_SCOPE", "GIGACHAT_API_PERS"),
        ca_bundle=env("GIGACHAT_CA_BUNDLE"),
    ) if env("GIGACHAT_AUTH_KEY") else None,
    "gemini": lambda env: GeminiProvider(
        env("GEMINI_API_KEY"),
        model=env("GEMINI_MODEL", "gemini-2.0-flash"),
    ) if env("GEMINI_API_KEY") else None,
    "groq": lambda env: GroqProvider(
        env("GROQ_API_KEY"),
        model=env("GROQ_LLM_MODEL", "llama-3.3-70b-versatile"),
    ) if env("GROQ_API_KEY") else None,
}


def get_providers(env_getter) -> list[TextGenerationProvider]:
    order = env_getter("COVER_LETTER_PROVIDERS", DEFAULT_PROVIDER_ORDER)
    providers: list[TextGenerationProvider] = []
    for name in (n.strip().lower() for n in order.split(",") if n.strip()):
        factory = _FACTORIES.get(name)
        if factory is None:
            log.warning("Unknown cover letter provider %r, skipped", name)
            continue
        provider = factory(env_getter)
        if provider is None:
            log.debug("Provider %s has no credentials, skipped", name)
            continue
        providers.append(provider)
        log.info("Registered cover letter provider: %s", name)

    if not providers:
        log.info("No provider keys found, cover letters will use the template")
    return providers
