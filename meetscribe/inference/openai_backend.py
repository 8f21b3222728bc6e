"""OpenAI chat-completions streaming backend."""

import json
import asyncio
import logging
from typing import AsyncIterator, Optional, Dict, Any

import aiohttp
from pydantic import ValidationError

from .base import AbstractGenerationBackend, GenerationRequest
from .schema import ChatCompletionChunk, ErrorResponse
from ..errors import ErrorKind, InferenceError, MissingCredentialError

logger = logging.getLogger(__name__)

STREAM_DONE = "[DONE]"


def parse_event_line(line: str) -> Optional[str]:
    """Return the data payload of a server-sent-event line.

    Blank lines, comments and non-data fields return None.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None
    return line[len("data:"):].strip()


def error_kind_for_status(status: int) -> ErrorKind:
    if status == 408 or status >= 500:
        return ErrorKind.NETWORK_FAILURE
    return ErrorKind.SERVICE_REJECTED


class OpenAIChatBackend(AbstractGenerationBackend):
    """Streams chat completions from an OpenAI-compatible endpoint."""

    def __init__(self,
                 api_key: Optional[str],
                 model: str = "gpt-4o-mini",
                 base_url: str = "https://api.openai.com/v1",
                 timeout_seconds: Optional[float] = 120.0):
        """Initialize OpenAI chat backend.

        Args:
            api_key: OpenAI API key
            model: Chat model to use
            base_url: API base URL (for compatible gateways)
            timeout_seconds: Total timeout of one streamed request, None to disable
        """
        if not api_key:
            raise MissingCredentialError("OpenAI API key not found. Please set OPENAI_API_KEY or openai.api_key")
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.timeout_seconds = timeout_seconds

        logger.info(f"OpenAIChatBackend initialized with model: {model}")

    def build_payload(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": request.system_instructions
                },
                {
                    "role": "user",
                    "content": request.user_prompt
                }
            ],
            "temperature": request.temperature,
            "max_tokens": request.max_output_tokens,
            "stream": request.stream,
        }

    async def stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Send the request and yield content deltas as they arrive.

        Raises:
            InferenceError: If the API call fails at any point of the stream
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, headers=headers, json=self.build_payload(request)) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise InferenceError(
                            f"ChatGPT API error: {response.status} - {self.__error_message(error_text)}",
                            error_kind_for_status(response.status),
                        )

                    async for raw_line in response.content:
                        payload = parse_event_line(raw_line.decode("utf-8"))
                        if payload is None:
                            continue
                        if payload == STREAM_DONE:
                            break
                        delta = self.__parse_delta(payload)
                        if delta:
                            yield delta
        except aiohttp.ClientError as e:
            logger.error(f"ChatGPT API request failed: {e}")
            raise InferenceError(f"ChatGPT API request failed: {e}", ErrorKind.NETWORK_FAILURE) from e
        except asyncio.TimeoutError as e:
            logger.error("ChatGPT API request timed out")
            raise InferenceError("ChatGPT API request timed out", ErrorKind.NETWORK_FAILURE) from e

    @staticmethod
    def __parse_delta(payload: str) -> str:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise InferenceError(f"Malformed stream event: {payload[:80]}", ErrorKind.UNKNOWN) from e

        if "error" in data:
            error = ErrorResponse.model_validate(data).error
            raise InferenceError(f"ChatGPT stream error: {error.message}", ErrorKind.SERVICE_REJECTED)

        try:
            return ChatCompletionChunk.model_validate(data).delta_text()
        except ValidationError as e:
            raise InferenceError(f"Unexpected stream event shape: {e}", ErrorKind.UNKNOWN) from e

    @staticmethod
    def __error_message(error_text: str) -> str:
        try:
            return ErrorResponse.model_validate_json(error_text).error.message or error_text
        except ValidationError:
            return error_text
