from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import pytest

from errors import AnalysisError
from imaging import decode_image
from vision_client import VisionClient


@pytest.fixture
def vision(settings):
    client = VisionClient(settings)
    client._client = MagicMock()
    return client


def test_sends_prompt_and_image_with_fixed_parameters(vision, image_b64):
    vision._client.messages.create.return_value = SimpleNamespace(
        content=[SimpleNamespace(type="text", text="RISK_LEVEL: LOW")],
        stop_reason="end_turn",
    )

    text = vision.analyze("PROMPT", decode_image(image_b64))

    assert text == "RISK_LEVEL: LOW"
    kwargs = vision._client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-3-opus-20240229"
    assert kwargs["max_tokens"] == 2000
    assert kwargs["temperature"] == 0.5
    text_block, image_block = kwargs["messages"][0]["content"]
    assert text_block == {"type": "text", "text": "PROMPT"}
    assert image_block["source"] == {"type": "base64", "media_type": "image/jpeg", "data": image_b64}


def test_sdk_error_becomes_analysis_error(vision, image_b64):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    vision._client.messages.create.side_effect = anthropic.APIConnectionError(request=request)

    with pytest.raises(AnalysisError) as exc:
        vision.analyze("PROMPT", decode_image(image_b64))
    assert exc.value.status_code == 500
    assert exc.value.details == "Connection error."


def test_client_is_built_without_retries(settings):
    client = VisionClient(settings).client
    assert client.max_retries == 0
