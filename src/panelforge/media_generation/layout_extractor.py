"""Vision-based text layout extraction and geometry refinement"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .image_generator import mime_type_for
from .media_models import SimpleText, TextAlign
from ..providers.base import LayoutVisionProvider
from ..utils.errors import LayoutExtractionError

POINTS_PER_INCH = 72
LINE_SLACK = 1.4
HEIGHT_PADDING = 0.1
COVER_MAX_ELEMENTS = 3
LARGE_FONT_PT = 30
MIN_WIDTH_LARGE = 2.0
MIN_WIDTH_SMALL = 1.2
DEFAULT_FONT_PT = 18
ALIGN_TAGS = {"l", "ctr", "r", "just", "left", "right", "center", "centre", "justify"}
NUMERIC_FIELDS = ("x", "y", "w", "h", "fontSize", "font_size")
STRING_FIELDS = ("color", "fontFace", "font_face")

logger = logging.getLogger('panelforge.layout_extractor')


@dataclass(frozen=True)
class Canvas:
    width: float = 13.333
    height: float = 7.5
    margin: float = 0.3

    @classmethod
    def from_config(cls, config) -> "Canvas":
        layout = config.layout
        return cls(width=layout.canvas_width, height=layout.canvas_height, margin=layout.margin)


def build_layout_instruction(canvas: Canvas, style_hint: Optional[str] = None) -> str:
    """Instruction contract sent with the reference image"""
    style_context = ""
    if style_hint:
        style_context = f"\n\nSTYLE CONTEXT (use these for accurate color/font mapping):\n{style_hint}"

    return f"""You are a PowerPoint layout engineer. Analyze this slide image and extract text positions for native text box overlay.

CANVAS: {canvas.width}" wide x {canvas.height}" tall (PowerPoint inches, origin at top-left).

For EVERY visible text element, return a JSON object with:
- "text": exact text content (preserve original language)
- "x": left edge of the TEXT BOX in inches; include padding from the containing card/region
- "y": top edge of the text box in inches
- "w": width of the text box; should match the containing card/column width, NOT the tight text bounding box
- "h": height of the text box in inches
- "fontSize": font size in POINTS (PowerPoint points, NOT pixels). Typical sizes: title=36-44pt, subtitle=18-22pt, body=14-18pt, KPI numbers=32-40pt, small labels=12-14pt, page numbers=10pt
- "color": exact hex RGB without # (carefully distinguish dark titles, medium accents and gray labels)
- "bold": true only if clearly bold/heavy weight
- "fontFace": best matching font name (e.g. "Helvetica", "Arial", "Noto Sans SC")
- "align": "ctr" if text appears centered in its container, "l" for left, "r" for right

CRITICAL RULES:
1. TEXT BOX width should match the CONTAINER (card, column, slide width), not the tight text extent
2. Font sizes are in PowerPoint POINTS, not pixels. 1pt is about 1.333px. A big title is 36-44pt, NOT 60-80pt
3. Carefully distinguish colors; titles, accent numbers and body labels usually have DIFFERENT hex values
4. If text is centered within a card or column, set align="ctr"
5. Group multi-line text in the same visual block as ONE entry with newlines
6. Skip page numbers and decorative watermarks
{style_context}
Return ONLY a JSON array. No markdown, no explanation."""


def parse_layout_response(raw: Optional[str]) -> List[SimpleText]:
    """
    Turn the provider's raw text into text elements.

    Raises LayoutExtractionError when the text is empty, not JSON, or not an
    array. Inside a valid array, entries that cannot be read as a text box
    are skipped with a warning and the rest are kept.
    """
    if not raw:
        raise LayoutExtractionError("Vision QA returned no text")
    try:
        records = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LayoutExtractionError(f"Vision QA returned malformed JSON: {e}") from e
    if not isinstance(records, list):
        raise LayoutExtractionError("Vision QA did not return an array")

    elements = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning(f"Skipping layout entry {i}: not an object ({record!r})")
            continue
        try:
            elements.append(SimpleText(**_clean_record(record)))
        except ValidationError as e:
            logger.warning(f"Skipping layout entry {i}: {e.error_count()} invalid field(s)")
    return elements


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clean_record(record: dict) -> dict:
    cleaned = {k: v for k, v in record.items() if v is not None and k != "kind"}
    for key in NUMERIC_FIELDS:
        if key in cleaned and not _is_number(cleaned[key]):
            del cleaned[key]
    for key in STRING_FIELDS:
        if key in cleaned and not isinstance(cleaned[key], str):
            cleaned[key] = str(cleaned[key])
    if "align" in cleaned and str(cleaned["align"]).strip().lower() not in ALIGN_TAGS:
        # Unknown alignment tags fall back to the renderer default
        del cleaned["align"]
    cleaned["text"] = str(cleaned.get("text", ""))
    return cleaned


def refine_text_layout(elements: List[SimpleText], canvas: Canvas) -> List[SimpleText]:
    """
    Normalize extracted geometry so every box is renderable.

    Cover slides (at most three elements) get full-width centered boxes.
    Other slides keep their positions but boxes are grown to a minimum width
    and to enough height for every line at the given font size, then shrunk
    back inside the canvas. Text content is never touched.
    """
    if not elements:
        return elements

    m = canvas.margin
    refined = []

    if len(elements) <= COVER_MAX_ELEMENTS:
        for el in elements:
            align = el.align if el.align in (TextAlign.LEFT, TextAlign.RIGHT) else TextAlign.CENTER
            el = el.model_copy(update={"x": m, "w": canvas.width - 2 * m, "align": align})
            refined.append(_clamp_vertical(el, canvas))
        return refined

    for el in elements:
        update = {}

        min_w = MIN_WIDTH_LARGE if (el.font_size and el.font_size >= LARGE_FONT_PT) else MIN_WIDTH_SMALL
        w = el.w or 0
        if w < min_w:
            w = min_w
        update["w"] = w

        font_pt = el.font_size or DEFAULT_FONT_PT
        min_h = (font_pt / POINTS_PER_INCH) * el.line_count * LINE_SLACK + HEIGHT_PADDING
        h = el.h or 0
        if h < min_h:
            h = min_h
        update["h"] = h

        x = el.x if el.x >= 0 else m
        y = el.y if el.y >= 0 else m
        # Origins past the far margin are pulled back so the box keeps its size
        if x > canvas.width - m:
            x = max(m, canvas.width - m - w)
        if y > canvas.height - m:
            y = max(m, canvas.height - m - h)
        update["x"], update["y"] = x, y
        if x + w > canvas.width:
            update["w"] = canvas.width - x - m
        if y + h > canvas.height:
            update["h"] = canvas.height - y - m

        refined.append(el.model_copy(update=update))

    return refined


def _clamp_vertical(el: SimpleText, canvas: Canvas) -> SimpleText:
    y = el.y if el.y >= 0 else canvas.margin
    if y > canvas.height - canvas.margin:
        y = canvas.height - canvas.margin - (el.h or 0)
        y = max(canvas.margin, y)
    update: Dict[str, Any] = {"y": y}
    if el.h is not None and y + el.h > canvas.height:
        update["h"] = canvas.height - y - canvas.margin
    return el.model_copy(update=update)


class LayoutExtractor:
    """Single-shot layout extraction from a rendered reference image"""

    def __init__(self, provider: LayoutVisionProvider, canvas: Optional[Canvas] = None,
                 model: Optional[str] = None):
        self.provider = provider
        self.canvas = canvas or Canvas()
        self.model = model
        self.logger = logging.getLogger('panelforge.layout_extractor')

    async def extract(self, image_path: str, style_hint: Optional[str] = None) -> List[SimpleText]:
        """Raises LayoutExtractionError when the response is unusable"""
        image_bytes = Path(image_path).read_bytes()
        instruction = build_layout_instruction(self.canvas, style_hint)
        raw = await self.provider.analyze(image_bytes, mime_type_for(image_path), instruction, self.model)
        elements = parse_layout_response(raw)
        return refine_text_layout(elements, self.canvas)
