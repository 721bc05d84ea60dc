"""Chat-completion transports. Each returns the assistant text or raises ProviderCallError."""

import asyncio
import base64
import logging
from dataclasses import dataclass

import boto3
import httpx
from botocore.config import Config

from resume_chat.errors import ProviderCallError

logger = logging.getLogger(__name__)


@dataclass
class ImageInput:
    data: bytes
    media_type: str  # image/png, image/jpeg, image/webp

    @property
    def format(self) -> str:
        return self.media_type.split("/")[-1].replace("jpg", "jpeg")

    def data_uri(self) -> str:
        return f"data:{self.media_type};base64,{base64.b64encode(self.data).decode('ascii')}"


class OpenAICompatibleChatClient:
    """POST {base_url}/chat/completions on Groq, Ollama, or any OpenAI-style endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        model: str = "",
        vision_model: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
        name: str = "openai-compatible",
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.vision_model = vision_model or model
        self.timeout = timeout
        self.transport = transport
        self.name = name

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def complete(
        self,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
        image: ImageInput | None = None,
    ) -> str:
        model = self.model
        if image is not None:
            model = self.vision_model
            messages = [dict(m) for m in messages]
            last = messages[-1]
            last["content"] = [
                {"type": "text", "text": last["content"]},
                {"type": "image_url", "image_url": {"url": image.data_uri()}},
            ]
        body = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        url = f"{self.base_url}/chat/completions"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise ProviderCallError(f"{self.name} request failed: {e.__class__.__name__}") from e

        if response.status_code != 200:
            logger.error("%s API error: status=%s body=%s", self.name, response.status_code, response.text[:500])
            raise ProviderCallError(f"{self.name} returned status {response.status_code}")

        try:
            payload = response.json()
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderCallError(f"{self.name} returned an unexpected body") from e
        if not content or not str(content).strip():
            raise ProviderCallError(f"{self.name} returned empty response")
        logger.debug("%s response length=%d", self.name, len(content))
        return str(content)


class BedrockChatClient:
    """AWS Bedrock converse API. boto3 is blocking, so calls run in a worker thread."""

    name = "bedrock"

    def __init__(self, model_id: str, region: str, timeout: float = 120.0):
        self.model_id = model_id
        self.region = region
        self.timeout = timeout

    def _client(self):
        return boto3.client(
            "bedrock-runtime",
            region_name=self.region,
            config=Config(read_timeout=int(self.timeout), connect_timeout=10),
        )

    def _converse(self, messages: list[dict], temperature: float, max_tokens: int, image: ImageInput | None) -> str:
        system = [{"text": m["content"]} for m in messages if m["role"] == "system"]
        turns = []
        for m in messages:
            if m["role"] == "system":
                continue
            turns.append({"role": m["role"], "content": [{"text": m["content"]}]})
        if image is not None and turns:
            turns[-1]["content"].append({"image": {"format": image.format, "source": {"bytes": image.data}}})

        kwargs = {
            "modelId": self.model_id,
            "messages": turns,
            "inferenceConfig": {"maxTokens": max_tokens, "temperature": temperature},
        }
        if system:
            kwargs["system"] = system
        response = self._client().converse(**kwargs)
        blocks = (response.get("output") or {}).get("message", {}).get("content", [])
        return "".join(b.get("text", "") for b in blocks if isinstance(b, dict)).strip()

    async def complete(
        self,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
        image: ImageInput | None = None,
    ) -> str:
        try:
            text = await asyncio.to_thread(self._converse, messages, temperature, max_tokens, image)
        except Exception as e:
            logger.warning("Bedrock LLM call failed: %s", e)
            raise ProviderCallError(f"bedrock call failed: {e.__class__.__name__}") from e
        if not text:
            raise ProviderCallError("bedrock returned empty response")
        logger.debug("Bedrock LLM response length=%d", len(text))
        return text
