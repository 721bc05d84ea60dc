"""AI capabilities behind one interface, composed from small decorators.

    DeadlineResumeAI(
        FallbackResumeAI(
            RetryingResumeAI(LLMResumeAI(primary client)),
            RetryingResumeAI(LLMResumeAI(fallback client)),
        )
    )

`build_resume_ai` is the only place providers are chosen. Everything else
receives the composed object.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Protocol, TypeVar

from resume_chat.errors import ParseFailure, ProviderCallError, ProviderUnavailable, ResumeParseError
from resume_chat.schemas.resume import ResumeSnapshot
from resume_chat.services.llm_client import BedrockChatClient, ImageInput, OpenAICompatibleChatClient
from resume_chat.services.resume_output_parser import parse_resume

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_TITLE_CHARS = 400
FALLBACK_TITLE_CHARS = 30

RESUME_JSON_SHAPE = """{
  "name": "string",
  "role": "string",
  "phoneno": "string",
  "email": "string",
  "location": "string",
  "linkedin": "string",
  "github": "string",
  "summary": "string",
  "experience": [
    {"company": "string", "position": "string", "from": "string", "to": "string", "description": "string"}
  ],
  "skills": ["string"],
  "education": [
    {"degree": "string", "field": "string", "institution": "string", "year": "string"}
  ]
}"""


class ResumeAIService(Protocol):
    async def enhance_resume(self, resume: ResumeSnapshot, instruction: str) -> ResumeSnapshot: ...

    async def enhance_html(
        self, html: str, resume: ResumeSnapshot, instruction: str
    ) -> tuple[str, ResumeSnapshot]: ...

    async def generate_title(self, instruction: str) -> str: ...

    async def extract_resume(
        self, text: str | None = None, image: ImageInput | None = None
    ) -> ResumeSnapshot: ...


class ChatClient(Protocol):
    name: str

    async def complete(
        self, messages: list[dict], temperature: float, max_tokens: int, image: ImageInput | None = None
    ) -> str: ...


def build_enhance_prompt(resume: ResumeSnapshot, instruction: str) -> str:
    resume_json = json.dumps(resume.to_document(), indent=2, ensure_ascii=False)
    return f"""You will receive a resume in JSON format and specific instructions for enhancement.

CURRENT RESUME (JSON):
{resume_json}

ENHANCEMENT INSTRUCTION:
{instruction}

You MUST make changes to the resume based on the enhancement instruction above.
Returning the exact same resume without any modifications is NOT acceptable.

RULES:
1. The instruction may be a specific request or a JOB DESCRIPTION to tailor the resume for.
2. For a job description, tailor summary, experience and skills to its requirements.
3. To UPDATE content, find the matching entries and change the relevant fields.
4. To ADD content, append new entries to the right arrays.
5. To REMOVE or CONSOLIDATE, merge duplicates.
6. Use action verbs and quantifiable achievements.
7. Keep the exact JSON structure and field names.
8. Experience MUST be in reverse chronological order (most recent at index 0).

OUTPUT FORMAT:
Return ONLY the raw JSON object. No markdown code blocks, no text before or after.

{RESUME_JSON_SHAPE}

Now enhance the resume:"""


def build_title_prompt(instruction: str) -> str:
    return f"""Generate a short, concise title (max 5-7 words) for a chat session based on this user instruction: "{instruction}".

RULES:
1. Return ONLY the title text.
2. Do NOT use quotes.
3. Do NOT include any prefixes like "Title:".
4. Keep it professional and descriptive.

Title:"""


def build_extract_prompt(text: str | None) -> str:
    source = f"RESUME TEXT:\n<<<{text}>>>" if text else "The resume is in the attached image."
    return f"""Extract the resume below into JSON. Use ONLY information present in the source. Leave unknown fields as empty strings.
Experience MUST be in reverse chronological order (most recent at index 0).

{source}

Return ONLY the raw JSON object with this exact shape:

{RESUME_JSON_SHAPE}"""


def clean_title(raw: str, instruction: str) -> str:
    title = (raw or "").strip().strip('"').strip("'").strip()
    if len(title) > MAX_TITLE_CHARS:
        title = title[:MAX_TITLE_CHARS - 3] + "..."
    if title:
        return title
    if len(instruction) > FALLBACK_TITLE_CHARS:
        return instruction[:FALLBACK_TITLE_CHARS - 3] + "..."
    return instruction


class LLMResumeAI:
    """One provider, one attempt per call. Raises ProviderCallError / ResumeParseError."""

    def __init__(self, client: ChatClient):
        self.client = client

    async def enhance_resume(self, resume: ResumeSnapshot, instruction: str) -> ResumeSnapshot:
        text = await self.client.complete(
            [
                {"role": "system", "content": "You are an expert resume writer and career consultant."},
                {"role": "user", "content": build_enhance_prompt(resume, instruction)},
            ],
            temperature=0.3,
            max_tokens=4000,
        )
        return parse_resume(text)

    async def enhance_html(self, html: str, resume: ResumeSnapshot, instruction: str) -> tuple[str, ResumeSnapshot]:
        # The template re-renders from JSON; the HTML itself is returned as given.
        enhanced = await self.enhance_resume(resume, instruction)
        return html, enhanced

    async def generate_title(self, instruction: str) -> str:
        text = await self.client.complete(
            [
                {"role": "system", "content": "You are a helpful assistant that generates concise chat titles."},
                {"role": "user", "content": build_title_prompt(instruction)},
            ],
            temperature=0.7,
            max_tokens=50,
        )
        return clean_title(text, instruction)

    async def extract_resume(self, text: str | None = None, image: ImageInput | None = None) -> ResumeSnapshot:
        if not text and image is None:
            raise ValueError("extract_resume needs text or an image")
        raw = await self.client.complete(
            [
                {"role": "system", "content": "You are an expert resume parser."},
                {"role": "user", "content": build_extract_prompt(text)},
            ],
            temperature=0.1,
            max_tokens=4000,
            image=image,
        )
        return parse_resume(raw)


class RetryingResumeAI:
    """Retry every capability up to `attempts` times with 1s, 2s, 4s... between attempts."""

    def __init__(
        self,
        inner: ResumeAIService,
        attempts: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "primary",
    ):
        self.inner = inner
        self.attempts = max(1, attempts)
        self.sleep = sleep
        self.name = name

    async def _run(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        last_error: Exception | None = None
        for attempt in range(1, self.attempts + 1):
            try:
                return await call()
            except ResumeParseError as e:
                last_error = e
                logger.warning(
                    "AI %s %s attempt %d/%d: unparseable output: %s",
                    self.name, operation, attempt, self.attempts, e,
                )
            except ProviderCallError as e:
                last_error = e
                logger.warning(
                    "AI %s %s attempt %d/%d failed: %s: %s",
                    self.name, operation, attempt, self.attempts, e.__class__.__name__, e,
                )
            if attempt < self.attempts:
                await self.sleep(2 ** (attempt - 1))

        logger.error("AI %s %s: all %d attempts failed", self.name, operation, self.attempts)
        if isinstance(last_error, ResumeParseError):
            raise ParseFailure() from last_error
        raise ProviderUnavailable() from last_error

    async def enhance_resume(self, resume: ResumeSnapshot, instruction: str) -> ResumeSnapshot:
        return await self._run("enhance_resume", lambda: self.inner.enhance_resume(resume, instruction))

    async def enhance_html(self, html: str, resume: ResumeSnapshot, instruction: str) -> tuple[str, ResumeSnapshot]:
        return await self._run("enhance_html", lambda: self.inner.enhance_html(html, resume, instruction))

    async def generate_title(self, instruction: str) -> str:
        return await self._run("generate_title", lambda: self.inner.generate_title(instruction))

    async def extract_resume(self, text: str | None = None, image: ImageInput | None = None) -> ResumeSnapshot:
        return await self._run("extract_resume", lambda: self.inner.extract_resume(text=text, image=image))


class FallbackResumeAI:
    """Hand a call to `fallback` once `primary` has exhausted its own retries."""

    def __init__(self, primary: ResumeAIService, fallback: ResumeAIService):
        self.primary = primary
        self.fallback = fallback

    async def _run(self, operation: str, primary_call, fallback_call):
        try:
            return await primary_call()
        except ProviderUnavailable as e:
            logger.warning("Primary AI provider failed for %s (%s), switching to fallback", operation, e.__class__.__name__)
        return await fallback_call()

    async def enhance_resume(self, resume: ResumeSnapshot, instruction: str) -> ResumeSnapshot:
        return await self._run(
            "enhance_resume",
            lambda: self.primary.enhance_resume(resume, instruction),
            lambda: self.fallback.enhance_resume(resume, instruction),
        )

    async def enhance_html(self, html: str, resume: ResumeSnapshot, instruction: str) -> tuple[str, ResumeSnapshot]:
        return await self._run(
            "enhance_html",
            lambda: self.primary.enhance_html(html, resume, instruction),
            lambda: self.fallback.enhance_html(html, resume, instruction),
        )

    async def generate_title(self, instruction: str) -> str:
        return await self._run(
            "generate_title",
            lambda: self.primary.generate_title(instruction),
            lambda: self.fallback.generate_title(instruction),
        )

    async def extract_resume(self, text: str | None = None, image: ImageInput | None = None) -> ResumeSnapshot:
        return await self._run(
            "extract_resume",
            lambda: self.primary.extract_resume(text=text, image=image),
            lambda: self.fallback.extract_resume(text=text, image=image),
        )


class DeadlineResumeAI:
    """Bound a whole call chain, retries and fallback included, by one deadline."""

    def __init__(self, inner: ResumeAIService, seconds: float):
        self.inner = inner
        self.seconds = seconds

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.seconds)
        except asyncio.TimeoutError as e:
            logger.error("AI %s exceeded the %.0fs deadline", operation, self.seconds)
            raise ProviderUnavailable() from e

    async def enhance_resume(self, resume: ResumeSnapshot, instruction: str) -> ResumeSnapshot:
        return await self._run("enhance_resume", self.inner.enhance_resume(resume, instruction))

    async def enhance_html(self, html: str, resume: ResumeSnapshot, instruction: str) -> tuple[str, ResumeSnapshot]:
        return await self._run("enhance_html", self.inner.enhance_html(html, resume, instruction))

    async def generate_title(self, instruction: str) -> str:
        return await self._run("generate_title", self.inner.generate_title(instruction))

    async def extract_resume(self, text: str | None = None, image: ImageInput | None = None) -> ResumeSnapshot:
        return await self._run("extract_resume", self.inner.extract_resume(text=text, image=image))


def _fallback_client(settings) -> ChatClient | None:
    provider = (settings.ai_fallback_provider or "none").strip().lower()
    if provider == "none":
        return None
    if provider == "ollama":
        return OpenAICompatibleChatClient(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            timeout=settings.ai_request_timeout_seconds,
            name="ollama",
        )
    if provider == "bedrock":
        return BedrockChatClient(
            model_id=settings.bedrock_llm_model_id,
            region=settings.aws_region,
            timeout=settings.ai_request_timeout_seconds,
        )
    raise ValueError(f"Unknown AI_FALLBACK_PROVIDER: {settings.ai_fallback_provider}")


def build_resume_ai(settings) -> ResumeAIService:
    primary_client = OpenAICompatibleChatClient(
        base_url=settings.ai_base_url,
        api_key=settings.ai_api_key,
        model=settings.ai_model,
        vision_model=settings.ai_vision_model,
        timeout=settings.ai_request_timeout_seconds,
        name="groq",
    )
    if not settings.ai_api_key:
        logger.warning("AI_API_KEY is not set; primary AI provider calls will fail")
    ai: ResumeAIService = RetryingResumeAI(LLMResumeAI(primary_client), settings.ai_retry_count, name="primary")

    fallback_client = _fallback_client(settings)
    if fallback_client is not None:
        fallback = RetryingResumeAI(
            LLMResumeAI(fallback_client), settings.ai_fallback_retry_count, name=fallback_client.name
        )
        ai = FallbackResumeAI(ai, fallback)
        logger.info("AI fallback provider enabled: %s", fallback_client.name)

    logger.info(
        "AI provider ready: model=%s retries=%d deadline=%.0fs",
        settings.ai_model, settings.ai_retry_count, settings.ai_total_timeout_seconds,
    )
    return DeadlineResumeAI(ai, settings.ai_total_timeout_seconds)
