"""
Composer API models for FastAPI endpoints.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class LogoSettingsModel(BaseModel):
    """Logo overlay settings (slider ranges of the control surface)."""
    size: float = Field(120, ge=60, le=220)
    opacity: float = Field(0.35, ge=0.05, le=0.8)
    blur: float = Field(1, ge=0, le=20)
    padding: float = Field(40, ge=10, le=160)


class ComposeOptionsResponse(BaseModel):
    """Response with available composition options."""
    canvas: dict
    presets: List[dict]
    fonts: List[str]
    default_text: str
    default_style: dict
    logo_defaults: LogoSettingsModel


class ComposeSummary(BaseModel):
    """Layout summary sent alongside the PNG (as headers)."""
    filename: str
    font_size: Optional[int] = None
    line_count: int = 0
    overflow: bool = False
