import asyncio
import io

import pytest
from PIL import Image

from composer import ComposerSession, FontResolver, PresetMode
from composer.session import DEFAULT_FILENAME, suggest_filename
from composer.style import TextStyle, build_font_stack


DARK = (20, 24, 40)
LIGHT = (230, 225, 210)


def photo(color):
    return Image.new('RGB', (400, 500), color)


class GatedLoader:
    """Returns PIL images as-is; the next load waits on `gate` if one is set."""

    def __init__(self):
        self.gate = None
        self.waiting = False

    async def load(self, source):
        if self.gate is not None:
            gate, self.gate = self.gate, None
            self.waiting = True
            await gate.wait()
            self.waiting = False
        return source if isinstance(source, Image.Image) else None


@pytest.fixture
def fonts():
    return FontResolver(font_dirs=[])


@pytest.fixture
def loader():
    return GatedLoader()


@pytest.fixture
def session(fonts, loader):
    return ComposerSession(fonts=fonts, loader=loader, seed=7)


async def wait_until_blocked(loader):
    while not loader.waiting:
        await asyncio.sleep(0)


def test_suggest_filename():
    assert suggest_filename("holiday.photo.jpg") == "holiday.photo-960x1200.png"
    assert suggest_filename(None) == DEFAULT_FILENAME
    assert DEFAULT_FILENAME == "fb-post-960x1200.png"


@pytest.mark.asyncio
async def test_dark_image_restyles_text(session):
    applied = await session.set_image(photo(DARK), name="night.jpg")

    assert applied is True
    assert session.style.stroke_width == 3.6
    assert session.style.shadow_color == "rgba(0,0,0,0.55)"
    assert session.filename == "night-960x1200.png"


@pytest.mark.asyncio
async def test_superseded_image_result_not_committed(session, loader):
    gate = asyncio.Event()
    loader.gate = gate
    slow = asyncio.create_task(session.set_image(photo(LIGHT)))
    await wait_until_blocked(loader)

    await session.set_image(photo(DARK))
    dark_style = session.style

    gate.set()
    assert await slow is False
    assert session.style == dark_style
    assert session.style.stroke_width == 3.6


@pytest.mark.asyncio
async def test_pinned_family_survives_restyle(session):
    session.update_style(font_family=build_font_stack("Kanit"))
    assert session.style.font_family_pinned is True

    await session.set_image(photo(DARK))

    assert session.style.font_family[0] == "Kanit"
    assert session.style.stroke_width == 3.6


@pytest.mark.asyncio
async def test_fixed_preset_skips_analysis(session):
    await session.set_preset(PresetMode.GOLD)
    before = session.style

    assert await session.set_image(photo(DARK)) is False
    assert session.style == before

    # Switching back to Adaptive analyses the not-yet-analysed image once
    assert await session.set_preset("adaptive") is True
    assert await session.set_preset("adaptive") is False


@pytest.mark.asyncio
async def test_superseded_render_is_dropped(session, loader, fonts):
    await fonts.ready()
    session.set_text("Hello")

    gate = asyncio.Event()
    loader.gate = gate
    first = asyncio.create_task(session.render())
    await wait_until_blocked(loader)

    second = await session.render()
    gate.set()

    assert await first is None
    assert second is not None
    assert session.output is second


@pytest.mark.asyncio
async def test_render_and_export(session):
    await session.set_image(photo(DARK))
    session.set_text("ทดสอบ ข้อความ")

    assert session.export() is None

    result = await session.render()
    png = session.export()

    assert result.image.size == (960, 1200)
    assert Image.open(io.BytesIO(png)).size == (960, 1200)


@pytest.mark.asyncio
async def test_same_seed_same_output(fonts):
    outputs = []
    for _ in range(2):
        s = ComposerSession(fonts=fonts, loader=GatedLoader(), seed=11)
        await s.set_image(photo(DARK))
        s.set_text("Same seed, same post")
        await s.render()
        outputs.append(s.export())

    assert outputs[0] == outputs[1]


@pytest.mark.asyncio
async def test_seed_changes_style_only(fonts):
    styles = []
    for seed in (1, 2):
        s = ComposerSession(fonts=fonts, loader=GatedLoader(), seed=seed)
        await s.set_image(photo(DARK))
        styles.append(s.style)

    assert styles[0].size != styles[1].size
    assert styles[0].fill == styles[1].fill
    assert styles[0].stroke == styles[1].stroke


def test_update_style_keeps_clamping(session):
    style = session.update_style(size=400)
    assert style.size == 120
    assert isinstance(style, TextStyle)
