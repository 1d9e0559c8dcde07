from fastapi import FastAPI, HTTPException, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ConfigDict, ValidationError
from pydantic_settings import BaseSettings
from dataclasses import asdict
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import quote, urlparse
import logging
import os
import random

from errors import ServiceError, InvalidRequestError
from models import (
    CaptionDraftRequest, CaptionRewriteRequest, CaptionResponse,
    BackgroundGenerateRequest, BackgroundGenerateResponse
)

# Composer module imports
from composer import ComposerSession, FontResolver, ImageLoader, CompositionRenderer, LogoSettings, TextStyle
from composer.colors import parse_color
from composer.loader import is_supported_url
from composer.presets import get_preset_options, parse_preset
from composer.renderer import CANVAS_WIDTH, CANVAS_HEIGHT
from composer.session import DEFAULT_TEXT
from composer.style import FONT_CHOICES, build_font_stack
from composer.api_models import LogoSettingsModel, ComposeOptionsResponse, ComposeSummary

# Collaborators
from caption_rewriter import CaptionRewriter, draft_caption
from background_client import BackgroundClient


class Settings(BaseSettings):
    font_dirs: Optional[str] = None  # os.pathsep-separated font directories
    default_preset: str = "adaptive"
    log_level: str = "INFO"

    model_config = ConfigDict(env_file=".env", extra="ignore")

settings = Settings()

# Logging setup
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title="Post Composer", version="1.0.0")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Text-Overflow", "X-Font-Size", "X-Line-Count"],
)

# Initialize services
fonts = FontResolver(font_dirs=settings.font_dirs.split(os.pathsep) if settings.font_dirs else None)
renderer = CompositionRenderer(fonts=fonts)
image_loader = ImageLoader()
caption_rewriter = CaptionRewriter()  # Router is created on first use
background_client = BackgroundClient()  # Reads HF_TOKEN from environment


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "post-composer"}

@app.get("/")
async def root():
    return {
        "service": "Post Composer",
        "version": "1.0.0",
        "description": "960x1200 social post composer with adaptive Thai text styling",
        "endpoints": [
            "/compose", "/compose/options", "/caption/draft", "/caption/rewrite",
            "/background/generate", "/health"
        ],
        "config": {
            "default_preset": settings.default_preset,
            "caption_rewrite": caption_rewriter.router.is_available(),
            "background_generation": background_client.is_available()
        }
    }


@app.get("/compose/options", response_model=ComposeOptionsResponse)
async def get_compose_options():
    """
    Get available options for composition.

    Returns canvas size, presets, font families and the default style.
    """
    return ComposeOptionsResponse(
        canvas={"width": CANVAS_WIDTH, "height": CANVAS_HEIGHT},
        presets=get_preset_options(),
        fonts=list(FONT_CHOICES),
        default_text=DEFAULT_TEXT,
        default_style=asdict(TextStyle()),
        logo_defaults=LogoSettingsModel()
    )


def _source_name(upload: Optional[UploadFile], url: Optional[str]) -> Optional[str]:
    if upload is not None and upload.filename:
        return upload.filename
    if url and not url.startswith("data:"):
        return PurePosixPath(urlparse(url).path).name or None
    return None


async def _read_source(upload: Optional[UploadFile], url: Optional[str], field: str):
    if upload is not None:
        content = await upload.read()
        if content:
            return content
    if not url:
        return None
    if not is_supported_url(url):
        raise InvalidRequestError(f"{field} must be an http(s) or data URL")
    return url


def _check_colors(**colors: Optional[str]) -> None:
    for name, value in colors.items():
        if value is None:
            continue
        try:
            parse_color(value)
        except ValueError:
            raise InvalidRequestError(f"Invalid color for {name}: {value!r}")


def _content_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").strip() or "post.png"
    if ascii_name.startswith("-"):
        ascii_name = f"post{ascii_name}"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@app.post("/compose")
async def compose_post(
    image: Optional[UploadFile] = File(None),
    image_url: Optional[str] = Form(None),
    logo: Optional[UploadFile] = File(None),
    logo_url: Optional[str] = Form(None),
    text: str = Form(DEFAULT_TEXT),
    preset: Optional[str] = Form(None),
    seed: Optional[int] = Form(None),
    font_family: Optional[str] = Form(None),
    size: Optional[int] = Form(None),
    line_height: Optional[float] = Form(None),
    padding_x: Optional[int] = Form(None),
    padding_y: Optional[int] = Form(None),
    font_weight: Optional[int] = Form(None),
    fill: Optional[str] = Form(None),
    stroke: Optional[str] = Form(None),
    stroke_width: Optional[float] = Form(None),
    shadow_color: Optional[str] = Form(None),
    shadow_blur: Optional[float] = Form(None),
    shadow_offset_y: Optional[float] = Form(None),
    logo_size: Optional[float] = Form(None),
    logo_opacity: Optional[float] = Form(None),
    logo_blur: Optional[float] = Form(None),
    logo_padding: Optional[float] = Form(None),
):
    """
    Compose a 960x1200 post and return it as PNG.

    Workflow:
    1. Load background (upload or URL); broken or missing -> fallback gradient
    2. Adaptive preset restyles the text from the background tone
    3. Explicit style fields override the derived style
    4. Render plate, logo and text; report overflow in X-Text-Overflow

    Returns:
        PNG image with a download filename based on the source image
    """
    import traceback

    try:
        preset_mode = parse_preset(preset or settings.default_preset)
    except ValueError as e:
        raise InvalidRequestError(str(e))

    try:
        logo_model = LogoSettingsModel(
            **{k: v for k, v in {
                "size": logo_size,
                "opacity": logo_opacity,
                "blur": logo_blur,
                "padding": logo_padding,
            }.items() if v is not None}
        )
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid logo settings: {e.errors()[0].get('msg', e)}")

    _check_colors(fill=fill, stroke=stroke, shadow_color=shadow_color)

    try:
        logger.info(f"Composing post: preset={preset_mode.value}, text length={len(text)}, seed={seed}")

        session = ComposerSession(
            renderer=renderer,
            loader=image_loader,
            preset=preset_mode,
            text=text,
            seed=seed
        )

        restyled = await session.set_image(
            await _read_source(image, image_url, "image_url"),
            name=_source_name(image, image_url)
        )
        if restyled:
            logger.info("Adaptive style derived from background")

        overrides = {k: v for k, v in {
            "size": size,
            "line_height": line_height,
            "padding_x": padding_x,
            "padding_y": padding_y,
            "font_weight": font_weight,
            "fill": fill,
            "stroke": stroke,
            "stroke_width": stroke_width,
            "shadow_color": shadow_color,
            "shadow_blur": shadow_blur,
            "shadow_offset_y": shadow_offset_y,
        }.items() if v is not None}
        if font_family:
            overrides["font_family"] = build_font_stack(font_family)
        if overrides:
            session.update_style(**overrides)

        logo_source = await _read_source(logo, logo_url, "logo_url")
        if logo_source is not None:
            session.set_logo(logo_source, LogoSettings(**logo_model.model_dump()))

        result = await session.render()
        if result is None:
            raise HTTPException(status_code=500, detail="Render pass aborted")

        png = session.export()
        layout = result.layout
        summary = ComposeSummary(
            filename=session.filename,
            font_size=layout.font_size if layout else None,
            line_count=len(layout.lines) if layout else 0,
            overflow=result.overflow
        )

        logger.info(f"Post composed: {summary.filename}, lines={summary.line_count}, overflow={summary.overflow}")

        headers = {
            "Content-Disposition": _content_disposition(summary.filename),
            "X-Text-Overflow": "true" if summary.overflow else "false",
            "X-Line-Count": str(summary.line_count),
        }
        if summary.font_size is not None:
            headers["X-Font-Size"] = str(summary.font_size)

        return Response(content=png, media_type="image/png", headers=headers)

    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        tb = traceback.format_exc()
        logger.error(f"Compose error: {e}")
        logger.error(f"Traceback:\n{tb}")
        raise HTTPException(
            status_code=500,
            detail=f"Compose failed: {e}"
        )


@app.post("/caption/draft", response_model=CaptionResponse)
async def draft_post_caption(request: CaptionDraftRequest):
    """Template caption built from the image text, no remote service."""
    rng = random.Random(request.seed) if request.seed is not None else None
    caption = draft_caption(request.text, rng)
    logger.info(f"Caption drafted: {len(caption)} chars")
    return CaptionResponse(caption=caption)


@app.post("/caption/rewrite", response_model=CaptionResponse)
async def rewrite_post_caption(request: CaptionRewriteRequest):
    """
    Rewrite the image text into a caption with the configured model.

    Errors:
        500 when no provider is configured, 502 when the provider fails
    """
    caption = await caption_rewriter.rewrite(request.text)
    return CaptionResponse(caption=caption)


@app.post("/background/generate", response_model=BackgroundGenerateResponse)
async def generate_background(request: BackgroundGenerateRequest):
    """
    Generate a background photo from a prompt.

    Returns:
        The image as a PNG data URL plus the seed used
    """
    result = await background_client.generate(
        request.prompt,
        width=request.width,
        height=request.height,
        seed=request.seed
    )
    return BackgroundGenerateResponse(image=result.data_url, seed=result.seed)
