import io

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image

import main
from main import app
from background_client import BackgroundClient
from caption_rewriter import CaptionRewriter
from providers.router import ProviderRouter
from fakes import FakeProvider


def jpeg_bytes(color=(20, 24, 40), size=(1200, 900)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health(client):
    async with client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_compose_options(client):
    async with client:
        response = await client.get("/compose/options")

    assert response.status_code == 200
    data = response.json()
    assert data["canvas"] == {"width": 960, "height": 1200}
    assert [p["id"] for p in data["presets"]] == ["adaptive", "gold", "strike", "banner"]
    assert data["logo_defaults"]["opacity"] == 0.35
    assert data["default_style"]["size"] == 54


@pytest.mark.asyncio
async def test_compose_without_image_uses_fallback(client):
    async with client:
        response = await client.post("/compose", data={"text": ""})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert "fb-post-960x1200.png" in response.headers["content-disposition"]
    assert response.headers["x-text-overflow"] == "false"

    image = Image.open(io.BytesIO(response.content))
    assert image.size == (960, 1200)
    assert image.convert('RGB').getpixel((0, 0)) == (12, 18, 36)


@pytest.mark.asyncio
async def test_compose_with_upload(client):
    async with client:
        response = await client.post(
            "/compose",
            data={"text": "สวัสดีตอนเช้า", "preset": "gold", "seed": "3"},
            files={"image": ("beach.jpg", jpeg_bytes(), "image/jpeg")},
        )

    assert response.status_code == 200
    assert "beach-960x1200.png" in response.headers["content-disposition"]
    assert int(response.headers["x-line-count"]) >= 1
    assert Image.open(io.BytesIO(response.content)).size == (960, 1200)


@pytest.mark.asyncio
async def test_compose_broken_image_falls_back(client):
    async with client:
        response = await client.post(
            "/compose",
            data={"text": ""},
            files={"image": ("broken.png", b"not an image", "image/png")},
        )

    assert response.status_code == 200
    image = Image.open(io.BytesIO(response.content)).convert('RGB')
    assert image.getpixel((0, 0)) == (12, 18, 36)


@pytest.mark.asyncio
async def test_compose_reports_overflow(client):
    async with client:
        response = await client.post("/compose", data={"text": "a " + "W" * 200})

    assert response.status_code == 200
    assert response.headers["x-text-overflow"] == "true"
    assert response.headers["x-font-size"] == "34"


@pytest.mark.asyncio
async def test_compose_unknown_preset(client):
    async with client:
        response = await client.post("/compose", data={"preset": "neon"})

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_compose_logo_settings_out_of_range(client):
    async with client:
        response = await client.post("/compose", data={"logo_opacity": "5"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid logo settings")


@pytest.mark.asyncio
async def test_caption_draft(client):
    async with client:
        response = await client.post("/caption/draft", json={"text": "ข้อความ", "seed": 1})

    assert response.status_code == 200
    caption = response.json()["caption"]
    assert "👉" in caption
    assert "#" in caption


@pytest.mark.asyncio
async def test_caption_rewrite(client, monkeypatch):
    rewriter = CaptionRewriter(router=ProviderRouter(
        primary=FakeProvider("gateway", text="แคปชั่น"),
        fallback=FakeProvider("gemini", available=False),
    ))
    monkeypatch.setattr(main, "caption_rewriter", rewriter)

    async with client:
        response = await client.post("/caption/rewrite", json={"text": "hello"})

    assert response.status_code == 200
    assert response.json() == {"caption": "แคปชั่น"}


@pytest.mark.asyncio
async def test_caption_rewrite_not_configured(client, monkeypatch):
    rewriter = CaptionRewriter(router=ProviderRouter(
        primary=FakeProvider("gateway", available=False),
        fallback=FakeProvider("gemini", available=False),
    ))
    monkeypatch.setattr(main, "caption_rewriter", rewriter)

    async with client:
        response = await client.post("/caption/rewrite", json={"text": "hello"})

    assert response.status_code == 500
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_caption_rewrite_upstream_failure(client, monkeypatch):
    rewriter = CaptionRewriter(router=ProviderRouter(
        primary=FakeProvider("gateway", error="api_error: boom"),
        fallback=FakeProvider("gemini", available=False),
    ))
    monkeypatch.setattr(main, "caption_rewriter", rewriter)

    async with client:
        response = await client.post("/caption/rewrite", json={"text": "hello"})

    assert response.status_code == 502
    assert response.json() == {"error": "api_error: boom"}


@pytest.mark.asyncio
async def test_background_generate(client, monkeypatch):
    def handler(request):
        return httpx.Response(200, content=b"\x89PNG")

    monkeypatch.setattr(main, "background_client", BackgroundClient(
        token="hf_test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    ))

    async with client:
        response = await client.post("/background/generate", json={"prompt": "sunrise", "seed": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["image"].startswith("data:image/png;base64,")
    assert data["seed"] == 5


@pytest.mark.asyncio
async def test_background_generate_errors(client, monkeypatch):
    monkeypatch.delenv("HF_TOKEN", raising=False)
    monkeypatch.delenv("HUGGINGFACE_TOKEN", raising=False)
    monkeypatch.setattr(main, "background_client", BackgroundClient())

    async with client:
        missing = await client.post("/background/generate", json={"prompt": "sunrise"})

    assert missing.status_code == 500
    assert "HF_TOKEN" in missing.json()["error"]

    monkeypatch.setattr(main, "background_client", BackgroundClient(token="hf_test"))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as fresh:
        empty = await fresh.post("/background/generate", json={"prompt": ""})

    assert empty.status_code == 400
    assert empty.json() == {"error": "prompt is required"}


@pytest.mark.asyncio
async def test_compose_rejects_local_path_sources(client, tmp_path):
    private = tmp_path / "server_private.png"
    Image.new('RGB', (960, 1200), (7, 200, 9)).save(private)

    async with client:
        image_response = await client.post("/compose", data={"image_url": str(private)})
        logo_response = await client.post("/compose", data={"logo_url": "file://" + str(private)})

    assert image_response.status_code == 400
    assert image_response.json() == {"error": "image_url must be an http(s) or data URL"}
    assert logo_response.status_code == 400
    assert "logo_url" in logo_response.json()["error"]


@pytest.mark.asyncio
async def test_compose_rejects_unknown_color(client):
    async with client:
        response = await client.post("/compose", data={"fill": "notacolor"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid color for fill: 'notacolor'"


@pytest.mark.asyncio
async def test_compose_accepts_css_color_overrides(client):
    async with client:
        response = await client.post(
            "/compose",
            data={"text": "Hi", "fill": "#ffcc00", "stroke": "black", "shadow_color": "rgba(0,0,0,0.4)"},
        )

    assert response.status_code == 200
