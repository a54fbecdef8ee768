# vision_client.py
from typing import Optional, Protocol

import anthropic

from config import Settings
from errors import AnalysisError
from imaging import DecodedImage
from logging_config import get_logger

logger = get_logger(__name__)


class VisionModel(Protocol):
    def analyze(self, prompt: str, image: DecodedImage) -> str:
        ...


class VisionClient:
    """
    Thin wrapper around the Anthropic Messages API.

    One request per call: no retries, and the SDK's default timeout applies.
    Any SDK failure is re-raised as AnalysisError carrying the upstream message.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Optional[anthropic.Anthropic] = None

    @property
    def client(self) -> anthropic.Anthropic:
        if self._client is None:
            if not self.settings.anthropic_api_key:
                logger.warning("Anthropic API key not configured")
            self._client = anthropic.Anthropic(
                api_key=self.settings.anthropic_api_key or None,
                max_retries=0,
            )
        return self._client

    def analyze(self, prompt: str, image: DecodedImage) -> str:
        logger.info(
            "Calling vision model",
            model=self.settings.anthropic_model,
            media_type=image.media_type,
            prompt_length=len(prompt),
        )
        try:
            message = self.client.messages.create(
                model=self.settings.anthropic_model,
                max_tokens=self.settings.anthropic_max_tokens,
                temperature=self.settings.anthropic_temperature,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": image.media_type,
                                "data": image.data,
                            },
                        },
                    ],
                }],
            )
        except anthropic.AnthropicError as e:
            logger.error("Vision model call failed", error=str(e), error_type=type(e).__name__)
            raise AnalysisError(details=str(e)) from e

        text = "".join(block.text for block in message.content if block.type == "text")
        logger.info(
            "Vision model responded",
            response_length=len(text),
            stop_reason=message.stop_reason,
        )
        return text
