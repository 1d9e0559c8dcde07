from pydantic import BaseModel, Field
from typing import Optional


# ============== Caption Models ==============

class CaptionDraftRequest(BaseModel):
    """Request for an offline template caption"""
    text: str = ""
    seed: Optional[int] = None  # Fixed seed for repeatable picks


class CaptionRewriteRequest(BaseModel):
    """Request to rewrite image text into a post caption"""
    text: str = ""


class CaptionResponse(BaseModel):
    """Caption for the post"""
    caption: str


# ============== Background Models ==============

class BackgroundGenerateRequest(BaseModel):
    """Request to generate a background photo"""
    prompt: str = ""
    width: int = Field(960, ge=64, le=2048)
    height: int = Field(1200, ge=64, le=2048)
    seed: Optional[int] = None


class BackgroundGenerateResponse(BaseModel):
    """Generated background as a data URL"""
    image: str  # data:image/png;base64,...
    seed: int
