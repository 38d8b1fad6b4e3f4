"""Data models for the media generation pipeline"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TextAlign(str, Enum):
    """Alignment tags understood by the deck renderer"""
    LEFT = "l"
    CENTER = "ctr"
    RIGHT = "r"
    JUSTIFY = "just"


class StitchLayout(str, Enum):
    """How produced panels are combined into one image"""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    GRID = "grid"


class Job(BaseModel):
    """One request to produce a single media asset"""
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    prompt: str
    output_path: str
    variant: str = "normal"
    image_size: Optional[str] = None
    aspect_ratio: Optional[str] = None
    model: Optional[str] = None
    reference_images: List[str] = []
    auto_layout: bool = False
    label: Optional[str] = None

    @property
    def tag(self) -> str:
        return self.label or f"job {self.index + 1}"


class ImageSynthesisRequest(BaseModel):
    """A single image-provider call with its cache target"""
    prompt: str
    output_path: str
    image_size: Optional[str] = None
    aspect_ratio: Optional[str] = None
    reference_images: List[str] = []
    model: Optional[str] = None
    label: Optional[str] = None

    @classmethod
    def from_job(cls, job: Job) -> "ImageSynthesisRequest":
        return cls(
            prompt=job.prompt,
            output_path=job.output_path,
            image_size=job.image_size,
            aspect_ratio=job.aspect_ratio,
            reference_images=list(job.reference_images),
            model=job.model,
            label=job.tag,
        )


# --- Text overlays -------------------------------------------------------

class TextRun(BaseModel):
    text: str
    font_size: Optional[float] = None
    color: Optional[str] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    font_face: Optional[str] = None
    break_line: Optional[bool] = None


class _OverlayBox(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    x: float = 0.0
    y: float = 0.0
    w: Optional[float] = None
    h: Optional[float] = None
    font_size: Optional[float] = Field(default=None, alias="fontSize")
    font_face: Optional[str] = Field(default=None, alias="fontFace")
    align: Optional[TextAlign] = None

    @field_validator("align", mode="before")
    @classmethod
    def _normalize_align(cls, v):
        if v is None or isinstance(v, TextAlign):
            return v
        aliases = {"center": "ctr", "centre": "ctr", "left": "l", "right": "r", "justify": "just"}
        v = str(v).strip().lower()
        return aliases.get(v, v)


class SimpleText(_OverlayBox):
    """A single-style text box; also the shape produced by layout extraction"""
    kind: Literal["text"] = "text"
    text: str
    color: Optional[str] = None
    bold: bool = False

    @field_validator("color", mode="before")
    @classmethod
    def _strip_hash(cls, v):
        if isinstance(v, str):
            return v.lstrip("#").upper() or None
        return v

    @property
    def line_count(self) -> int:
        return len(self.text.split("\n"))


class RunsText(_OverlayBox):
    """A text box made of differently styled runs"""
    kind: Literal["runs"] = "runs"
    runs: List[TextRun]


TextLayoutElement = SimpleText

TextOverlay = Annotated[Union[SimpleText, RunsText], Field(discriminator="kind")]


def parse_overlay(raw: Any) -> Union[SimpleText, RunsText]:
    """Resolve a caller-supplied overlay record to its variant once, at ingestion"""
    if isinstance(raw, (SimpleText, RunsText)):
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"Text overlay must be a mapping, got {type(raw).__name__}")
    if "runs" in raw:
        return RunsText(**{k: v for k, v in raw.items() if k != "kind"})
    return SimpleText(**{k: v for k, v in raw.items() if k != "kind"})


# --- Tables --------------------------------------------------------------

class PlainCell(BaseModel):
    kind: Literal["plain"] = "plain"
    text: str


class StyledCell(BaseModel):
    kind: Literal["styled"] = "styled"
    text: str
    color: Optional[str] = None
    bold: Optional[bool] = None
    font_size: Optional[float] = None
    fill: Optional[str] = None
    align: Optional[TextAlign] = None


TableCell = Annotated[Union[PlainCell, StyledCell], Field(discriminator="kind")]


class TableSpec(BaseModel):
    rows: List[List[TableCell]]
    x: float = 0.5
    y: float = 0.5
    w: Optional[float] = None
    font_size: float = 14
    font_face: str = "Arial"
    color: str = "333333"
    header_color: str = "FFFFFF"
    header_fill: str = "2D1B69"
    alt_fill: str = "F5F0FC"
    col_widths: Optional[List[float]] = None
    row_height: float = 0.35

    @field_validator("rows", mode="before")
    @classmethod
    def _resolve_cells(cls, rows):
        resolved = []
        for row in rows:
            cells = []
            for cell in row:
                if isinstance(cell, str):
                    cells.append({"kind": "plain", "text": cell})
                elif isinstance(cell, dict) and "kind" not in cell:
                    cells.append({"kind": "styled", **cell})
                else:
                    cells.append(cell)
            resolved.append(cells)
        return resolved


# --- Batch requests ------------------------------------------------------

class SlideRequest(BaseModel):
    prompt: str
    style: str = "normal"
    texts: Optional[List[TextOverlay]] = None
    tables: Optional[List[TableSpec]] = None
    auto_layout: bool = False
    images: List[str] = []
    gen_model: Optional[str] = None

    @field_validator("texts", mode="before")
    @classmethod
    def _resolve_texts(cls, texts):
        if texts is None:
            return None
        return [parse_overlay(t) for t in texts]


class CardRequest(BaseModel):
    name: str
    prompt: str
    style: str = "front"
    anim_style: str = "shuimo"
    anim_desc: Optional[str] = None


class PanelRequest(BaseModel):
    prompt: str
    refine_prompt: Optional[str] = None
    variant: Optional[str] = None


class SlideSpec(BaseModel):
    """One slide handed to the deck writer"""
    path: Optional[str] = None
    texts: Optional[List[TextOverlay]] = None
    tables: Optional[List[TableSpec]] = None


class AutoLayoutResult(BaseModel):
    output_path: Optional[str] = None
    reference_path: Optional[str] = None
    texts: Optional[List[SimpleText]] = None
    extraction_failed: bool = False


class BatchReport(BaseModel):
    """Outcome of one scheduler batch plus whatever was assembled from it"""
    total: int
    results: List[Optional[str]]
    artifact_path: Optional[str] = None
    slides: List[SlideSpec] = []

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r)

    def summary(self) -> str:
        return f"{self.succeeded}/{self.total} succeeded"


class VideoCardsReport(BaseModel):
    total: int
    images: List[Optional[str]]
    videos: List[Optional[str]]

    def summary(self) -> str:
        ok_img = sum(1 for p in self.images if p)
        ok_vid = sum(1 for p in self.videos if p)
        return f"{ok_img}/{self.total} images, {ok_vid}/{self.total} videos"
