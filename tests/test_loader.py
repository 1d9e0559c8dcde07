import base64
import io

import httpx
import pytest
from PIL import Image

from composer.fonts import FontResolver
from composer.loader import ImageLoader


def png_bytes(color=(0, 128, 255), size=(8, 6)):
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.asyncio
async def test_load_bytes_and_data_url():
    loader = ImageLoader()
    data = png_bytes()

    from_bytes = await loader.load(data)
    from_url = await loader.load("data:image/png;base64," + base64.b64encode(data).decode())

    assert from_bytes.size == (8, 6)
    assert from_url.getpixel((0, 0)) == (0, 128, 255)


@pytest.mark.asyncio
async def test_load_path(tmp_path):
    path = tmp_path / "bg.png"
    path.write_bytes(png_bytes(size=(20, 10)))

    image = await ImageLoader().load(path)
    assert image.size == (20, 10)


@pytest.mark.asyncio
async def test_plain_string_is_never_a_file_path(tmp_path):
    path = tmp_path / "private.png"
    path.write_bytes(png_bytes(size=(20, 10)))

    assert await ImageLoader().load(str(path)) is None
    assert await ImageLoader().load("file://" + str(path)) is None


@pytest.mark.asyncio
async def test_exif_orientation_is_applied():
    exif = Image.Exif()
    exif[0x0112] = 6  # rotated 90 degrees clockwise
    buffer = io.BytesIO()
    Image.new('RGB', (200, 100), (90, 90, 90)).save(buffer, format="JPEG", exif=exif)

    image = await ImageLoader().load(buffer.getvalue())

    assert image.size == (100, 200)


@pytest.mark.asyncio
async def test_load_http_url():
    def handler(request):
        return httpx.Response(200, content=png_bytes(size=(4, 4)))

    loader = ImageLoader(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    image = await loader.load("https://example.com/bg.png")

    assert image.size == (4, 4)


@pytest.mark.asyncio
async def test_failed_loads_return_none(tmp_path):
    def handler(request):
        return httpx.Response(404)

    loader = ImageLoader(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert await loader.load(None) is None
    assert await loader.load(b"") is None
    assert await loader.load(b"garbage") is None
    assert await loader.load("data:image/png;base64,!!!") is None
    assert await loader.load(tmp_path / "missing.png") is None
    assert await loader.load("https://example.com/missing.png") is None


def test_font_index_matches_family_and_weight(tmp_path):
    (tmp_path / "Kanit-Bold.ttf").write_bytes(b"")
    (tmp_path / "Kanit-Regular.ttf").write_bytes(b"")
    (tmp_path / "NotoSansThai-Medium.otf").write_bytes(b"")

    fonts = FontResolver(font_dirs=[str(tmp_path)])

    assert fonts.find_font_file("Kanit", 700).endswith("Kanit-Bold.ttf")
    assert fonts.find_font_file("Kanit", 400).endswith("Kanit-Regular.ttf")
    assert fonts.find_font_file("Noto Sans Thai", 700).endswith("NotoSansThai-Medium.otf")
    assert fonts.find_font_file("Pridi", 700) is None


@pytest.mark.asyncio
async def test_font_fallback_measures_text():
    fonts = FontResolver(font_dirs=[])
    await fonts.ready()

    measure = fonts.measure_fn(("Kanit", "sans-serif"), 700)

    assert fonts.is_ready
    assert measure("hello", 40) > 0
    assert measure("hello hello", 40) > measure("hello", 40)
