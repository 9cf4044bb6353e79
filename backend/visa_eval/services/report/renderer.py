"""
renderer.py - Evaluation report rendering

Draws the report onto A4 page images with Pillow and saves them as one
multi-page PDF.
"""

from __future__ import annotations

import asyncio
import io
from typing import Any, Iterable, List, Mapping, Tuple

from PIL import Image, ImageDraw, ImageFont

# A4 at 100 dpi
PAGE_SIZE: Tuple[int, int] = (827, 1169)
MARGIN = 60
HEADER_HEIGHT = 160

HEADER_COLOR = (33, 69, 135)
TEXT_COLOR = (30, 30, 30)
MUTED_COLOR = (110, 110, 110)
BOX_COLOR = (242, 247, 255)
BOX_BORDER = (178, 204, 242)


def _font(size: int) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def score_color(score: int) -> Tuple[int, int, int]:
    if score >= 70:
        return (34, 139, 34)
    if score >= 50:
        return (204, 136, 0)
    return (192, 40, 40)


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> List[str]:
    """Greedy word wrap by rendered width."""
    lines: List[str] = []
    for paragraph in str(text).splitlines() or [""]:
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if draw.textlength(candidate, font=font) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


class _PageWriter:
    """Cursor over a growing list of page images."""

    def __init__(self) -> None:
        self.pages: List[Image.Image] = []
        self.width, self.height = PAGE_SIZE
        self.content_width = self.width - 2 * MARGIN
        self._new_page()

    def _new_page(self) -> None:
        page = Image.new("RGB", PAGE_SIZE, "white")
        self.pages.append(page)
        self.draw = ImageDraw.Draw(page)
        self.y = MARGIN

    def ensure_space(self, height: int) -> None:
        if self.y + height > self.height - MARGIN:
            self._new_page()

    def text(self, text: str, size: int = 14, color=TEXT_COLOR, indent: int = 0, gap: int = 6) -> None:
        font = _font(size)
        for line in wrap_text(self.draw, text, font, self.content_width - indent):
            self.ensure_space(size + gap)
            self.draw.text((MARGIN + indent, self.y), line, font=font, fill=color)
            self.y += size + gap

    def heading(self, text: str) -> None:
        self.y += 14
        self.ensure_space(40)
        self.text(text.upper(), size=16, color=HEADER_COLOR, gap=10)

    def bullets(self, items: Iterable[str]) -> None:
        for item in items:
            self.text(f"- {item}", indent=10)

    def spacer(self, height: int = 10) -> None:
        self.y += height


def _draw_header(writer: _PageWriter, record: Mapping[str, Any]) -> None:
    draw = writer.draw
    draw.rectangle([0, 0, writer.width, HEADER_HEIGHT], fill=HEADER_COLOR)
    draw.text((MARGIN, 36), "VISA EVALUATION REPORT", font=_font(30), fill="white")
    draw.text(
        (MARGIN, 82),
        f"{record.get('country', '')} - {record.get('visaType', '')}",
        font=_font(18),
        fill=(230, 230, 230),
    )
    draw.text(
        (MARGIN, 116),
        f"Evaluation ID: {record.get('id', '')}",
        font=_font(12),
        fill=(205, 205, 205),
    )
    writer.y = HEADER_HEIGHT + 24


def _draw_applicant_box(writer: _PageWriter, record: Mapping[str, Any]) -> None:
    top = writer.y
    writer.draw.rectangle(
        [MARGIN, top, writer.width - MARGIN, top + 80],
        fill=BOX_COLOR,
        outline=BOX_BORDER,
    )
    writer.draw.text((MARGIN + 14, top + 12), "APPLICANT INFORMATION", font=_font(13), fill=HEADER_COLOR)
    writer.draw.text((MARGIN + 14, top + 34), f"Name: {record.get('name', '')}", font=_font(14), fill=TEXT_COLOR)
    writer.draw.text((MARGIN + 14, top + 54), f"Email: {record.get('email', '')}", font=_font(14), fill=TEXT_COLOR)
    writer.y = top + 100


def _draw_score(writer: _PageWriter, score: int) -> None:
    writer.ensure_space(70)
    writer.draw.text((MARGIN, writer.y), "ELIGIBILITY SCORE", font=_font(16), fill=HEADER_COLOR)
    writer.draw.text(
        (MARGIN, writer.y + 24),
        f"{score}/100",
        font=_font(36),
        fill=score_color(score),
    )
    writer.y += 72


def render_report_pages(record: Mapping[str, Any]) -> List[Image.Image]:
    """
    Draw an evaluation record onto A4 page images.

    Args:
        record: Stored evaluation (id, name, email, country, visaType,
            score, recommendation, summary, strengths, improvements,
            nextSteps, timeline, additionalNotes)
    """
    writer = _PageWriter()
    _draw_header(writer, record)
    _draw_applicant_box(writer, record)

    try:
        score = int(record.get("score") or 0)
    except (TypeError, ValueError):
        score = 0
    _draw_score(writer, score)

    recommendation = record.get("recommendation")
    if recommendation:
        writer.heading("Recommendation")
        writer.text(str(recommendation))

    writer.heading("Summary")
    writer.text(str(record.get("summary") or ""))

    sections = (
        ("Strengths", record.get("strengths")),
        ("Areas for Improvement", record.get("improvements")),
        ("Next Steps", record.get("nextSteps")),
    )
    for title, items in sections:
        if items:
            writer.heading(title)
            writer.bullets(str(item) for item in items)

    timeline = record.get("timeline")
    if timeline:
        writer.heading("Expected Timeline")
        writer.text(str(timeline))

    notes = record.get("additionalNotes")
    if notes:
        writer.heading("Additional Notes")
        writer.text(str(notes), color=MUTED_COLOR)

    writer.spacer(20)
    writer.text(
        "This report is generated automatically and is not legal advice.",
        size=11,
        color=MUTED_COLOR,
    )

    return writer.pages


def render_report_pdf(record: Mapping[str, Any]) -> bytes:
    """Render an evaluation record to PDF bytes."""
    pages = render_report_pages(record)
    buf = io.BytesIO()
    pages[0].save(buf, "PDF", save_all=True, append_images=pages[1:], resolution=100.0)
    return buf.getvalue()


class PillowReportRenderer:
    """ReportRenderer implementation; rendering runs in a worker thread."""

    async def render(self, record: Mapping[str, Any]) -> bytes:
        return await asyncio.to_thread(render_report_pdf, dict(record))
