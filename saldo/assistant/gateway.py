import asyncio
import logging
import re
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

from saldo.assistant.fallback import FallbackResponder
from saldo.assistant.providers import CompletionProvider, build_provider
from saldo.config import settings
from saldo.db.models import ChatMessage
from saldo.errors import EmptyPromptError, UpstreamProviderError, ValidationError

logger = logging.getLogger(__name__)

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"</?[a-zA-Z!][^>]*>")

_gateway = None


class RateLimitExceeded(Exception):
    pass


def sanitize_prompt(prompt: str | None, max_length: int) -> str:
    cleaned = _SCRIPT_BLOCK.sub("", prompt or "")
    cleaned = _TAG.sub("", cleaned).strip()
    if not cleaned:
        raise EmptyPromptError()
    return cleaned[:max_length]


def render_history(history: list[ChatMessage] | None, limit: int) -> str:
    if not history or limit <= 0:
        return ""
    return "\n".join(f"{m.role}: {m.content}" for m in history[-limit:])


@dataclass(slots=True)
class GatewayResult:
    ok: bool
    text: str | None = None
    error: str | None = None
    source: str | None = None


@dataclass(slots=True)
class ChatResponse:
    ok: bool
    message: ChatMessage | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"ok": self.ok}
        if self.message is not None:
            data["message"] = {**asdict(self.message), "timestamp": self.message.timestamp.isoformat()}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class PromptGateway:
    provider: CompletionProvider
    fallback: CompletionProvider = field(default_factory=FallbackResponder)
    timeout: float = 10.0
    max_prompt_length: int = 2000
    history_limit: int = 5
    rate_limited: bool = True

    async def _dispatch(self, prompt: str, context: str, user_id: str) -> str:
        if self.rate_limited:
            _enforce_rate_limit(user_id)
        text = await asyncio.wait_for(
            self.provider.complete(prompt, context, user_id=user_id),
            timeout=self.timeout,
        )
        if not text or not text.strip():
            raise UpstreamProviderError(f"{self.provider.name} returned an empty completion")
        return text

    async def answer(self, prompt: str, user_id: str, history: list[ChatMessage] | None = None) -> GatewayResult:
        try:
            cleaned = sanitize_prompt(prompt, self.max_prompt_length)
        except ValidationError as exc:
            return GatewayResult(ok=False, error=str(exc))

        if self.provider is not self.fallback:
            context = render_history(history, self.history_limit)
            started = time.monotonic()
            try:
                text = await self._dispatch(cleaned, context, user_id)
            except TimeoutError:
                logger.warning(
                    "Completion provider timed out after %.1fs, using fallback",
                    self.timeout,
                    extra={"user_id": user_id, "provider": self.provider.name},
                )
            except RateLimitExceeded as exc:
                logger.warning("%s, using fallback", exc, extra={"user_id": user_id, "provider": self.provider.name})
            except Exception:
                logger.warning(
                    "Completion provider failed, using fallback",
                    exc_info=True,
                    extra={"user_id": user_id, "provider": self.provider.name},
                )
            else:
                latency_ms = round((time.monotonic() - started) * 1000, 1)
                logger.info(
                    "Completion served",
                    extra={"user_id": user_id, "provider": self.provider.name, "latency_ms": latency_ms},
                )
                return GatewayResult(ok=True, text=text, source=self.provider.name)

        text = await self.fallback.complete(cleaned, user_id=user_id)
        return GatewayResult(ok=True, text=text, source=self.fallback.name)


async def chat(
    gateway: PromptGateway,
    message: str,
    user_id: str,
    history: list[ChatMessage] | None = None,
) -> ChatResponse:
    result = await gateway.answer(message, user_id, history)
    if not result.ok:
        return ChatResponse(ok=False, error=result.error)
    reply = ChatMessage(
        role="assistant",
        content=result.text,
        timestamp=datetime.now(UTC),
        metadata={"source": result.source},
    )
    return ChatResponse(ok=True, message=reply)


def get_gateway() -> PromptGateway:
    global _gateway
    if _gateway is None:
        fallback = FallbackResponder()
        _gateway = PromptGateway(
            provider=build_provider(settings, fallback=fallback),
            fallback=fallback,
            timeout=settings.completion_timeout,
            max_prompt_length=settings.max_prompt_length,
            history_limit=settings.chat_history_limit,
        )
    return _gateway


def _enforce_rate_limit(user_id: str) -> None:
    from saldo.main import check_rate_limit, record_rate_limit

    if not check_rate_limit(user_id):
        raise RateLimitExceeded(f"Rate limit exceeded for user {user_id}")
    record_rate_limit(user_id)
