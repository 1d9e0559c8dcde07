import base64
import json
import random

import httpx
import pytest

from background_client import (
    GUIDANCE_SCALE, NEGATIVE_PROMPT, NUM_INFERENCE_STEPS, BackgroundClient, build_prompt
)
from errors import ConfigurationError, InvalidRequestError, UpstreamServiceError

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def no_env_token(monkeypatch):
    monkeypatch.delenv("HF_TOKEN", raising=False)
    monkeypatch.delenv("HUGGINGFACE_TOKEN", raising=False)


def test_build_prompt():
    assert build_prompt("sunset beach", 960, 1200) == (
        "sunset beach, hyperrealistic photo, realistic vision, ultra detailed, "
        "sharp focus, cinematic lighting, 960x1200"
    )


def test_token_from_environment(monkeypatch):
    monkeypatch.setenv("HUGGINGFACE_TOKEN", "hf_env")
    assert BackgroundClient().token == "hf_env"


@pytest.mark.asyncio
async def test_generate_returns_data_url():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

    client = BackgroundClient(token="hf_test", client=mock_client(handler))
    result = await client.generate("misty mountains", seed=42)

    assert result.data_url == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    assert result.seed == 42
    assert seen["url"].endswith("/models/black-forest-labs/FLUX.1-schnell")
    assert seen["auth"] == "Bearer hf_test"

    params = seen["body"]["parameters"]
    assert seen["body"]["inputs"].startswith("misty mountains, hyperrealistic photo")
    assert params["negative_prompt"] == NEGATIVE_PROMPT
    assert params["num_inference_steps"] == NUM_INFERENCE_STEPS == 28
    assert params["guidance_scale"] == GUIDANCE_SCALE == 3.5
    assert (params["width"], params["height"], params["seed"]) == (960, 1200, 42)


@pytest.mark.asyncio
async def test_random_seed_in_range():
    def handler(request):
        return httpx.Response(200, content=PNG_BYTES)

    client = BackgroundClient(token="hf_test", client=mock_client(handler), rng=random.Random(3))
    result = await client.generate("forest")

    assert 0 <= result.seed < 1_000_000


@pytest.mark.asyncio
async def test_missing_token_fails_before_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, content=PNG_BYTES)

    with pytest.raises(ConfigurationError) as exc:
        await BackgroundClient(client=mock_client(handler)).generate("forest")

    assert exc.value.status_code == 500
    assert calls == []


@pytest.mark.asyncio
async def test_empty_prompt_is_rejected():
    with pytest.raises(InvalidRequestError) as exc:
        await BackgroundClient(token="hf_test").generate("   ")

    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_upstream_error_message_is_forwarded():
    def handler(request):
        return httpx.Response(503, json={"error": "Model is currently loading"})

    with pytest.raises(UpstreamServiceError) as exc:
        await BackgroundClient(token="hf_test", client=mock_client(handler)).generate("forest")

    assert exc.value.status_code == 502
    assert exc.value.message == "Model is currently loading"


@pytest.mark.asyncio
async def test_upstream_error_without_detail():
    def handler(request):
        return httpx.Response(500, text="oops")

    with pytest.raises(UpstreamServiceError) as exc:
        await BackgroundClient(token="hf_test", client=mock_client(handler)).generate("forest")

    assert exc.value.message == "HF error 500"
