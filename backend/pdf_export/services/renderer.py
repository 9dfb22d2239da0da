"""
Page renderer
Builds HTML for a single comic page, then converts it to PDF using WeasyPrint
One call renders exactly one page into its own PDF file
"""
import asyncio
import html
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional
import logging

from pdf_export.core.config import settings
from pdf_export.core.exceptions import RenderError
from pdf_export.models.render_spec import (
    BackgroundState,
    CanvasElement,
    ImageAsset,
    PageSpec,
    RenderSpec,
    TextBubble,
)

logger = logging.getLogger(__name__)


class PageRenderer:
    """Renders single-page render specifications to PDF"""

    DEFAULT_WIDTH = 800
    DEFAULT_HEIGHT = 1200

    def __init__(self, max_workers: int = settings.MAX_CONCURRENT_EXPORTS):
        # A render abandoned on timeout keeps its thread, so the next render waits for it
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="page_renderer")

    async def render_page(self, page_spec: RenderSpec, output_path: str) -> str:
        """
        Render the only page of `page_spec` to `output_path`.
        Returns the output path.
        """
        if len(page_spec.pages) != 1:
            raise RenderError(f"Expected a single-page specification, got {len(page_spec.pages)} pages")

        html_content = self.generate_html(page_spec)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._write_pdf, html_content, output_path)

        if not Path(output_path).is_file():
            raise RenderError(f"Renderer produced no file at {output_path}")
        logger.info(f"PDF for current page saved to {output_path}")
        return output_path

    def _write_pdf(self, html_content: str, output_path: str) -> None:
        from weasyprint import HTML

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        HTML(string=html_content).write_pdf(output_path)

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)

    def generate_html(self, page_spec: RenderSpec) -> str:
        """Generate HTML for the first page of the specification"""
        page = page_spec.pages[0]
        width = page_spec.canvas_width or self.DEFAULT_WIDTH
        height = page_spec.canvas_height or self.DEFAULT_HEIGHT
        images = page_spec.image_by_id()

        html_parts = [self._get_html_header(width, height)]
        html_parts.append(f'<div id="comic-canvas" style="{self._canvas_style(page_spec, page)}">')

        if page.background_state is not None:
            html_parts.append(self._background_html(page.background_state, images))

        for panel in sorted(page.panel_states, key=lambda p: p.z_index):
            html_parts.append(self._element_html(panel, images, "comic-panel", 10))

        for sticker in sorted(page.sticker_states, key=lambda s: s.z_index):
            html_parts.append(self._element_html(sticker, images, "canvas-sticker-image", 100))

        for bubble in sorted(page.text_bubbles, key=lambda b: b.z_index):
            html_parts.append(self._text_bubble_html(bubble))

        html_parts.append("</div>")
        html_parts.append("</body></html>")
        return "\n".join(html_parts)

    def _get_html_header(self, width: float, height: float) -> str:
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Comic export</title>
<style>
@page {{ size: {width}px {height}px; margin: 0; }}
body, html {{ margin: 0; padding: 0; }}
#comic-canvas {{ position: relative; width: {width}px; height: {height}px; overflow: hidden; }}
.canvas-background-image {{ position: absolute; left: 0; top: 0; width: 100%; height: 100%; object-fit: cover; }}
.comic-panel {{ position: absolute; overflow: hidden; box-sizing: border-box; border: 2px solid #000; background: #fff; }}
.comic-panel img {{ width: 100%; height: 100%; object-fit: cover; }}
.canvas-sticker-image {{ position: absolute; }}
.canvas-sticker-image img {{ width: 100%; height: 100%; object-fit: contain; }}
.text-bubble {{ position: absolute; box-sizing: border-box; padding: 6px; border-radius: 12px; text-align: center; }}
.text-bubble .text-content {{ margin: 0; padding: 0; white-space: pre-wrap; word-wrap: break-word; }}
</style>
</head>
<body>"""

    def _canvas_style(self, page_spec: RenderSpec, page: PageSpec) -> str:
        color = None
        if page_spec.use_global_background_style and page_spec.global_background_style:
            style = page_spec.global_background_style
            color = style.get("backgroundColor") or style.get("color")
        if page.background_state is not None and page.background_state.color:
            color = page.background_state.color
        return f"background-color: {html.escape(color or '#ffffff', quote=True)};"

    def _box_style(self, element: CanvasElement, z_offset: int) -> str:
        parts = [f"left: {element.x}px", f"top: {element.y}px", f"z-index: {z_offset + element.z_index}"]
        if element.width is not None:
            parts.append(f"width: {element.width}px")
        if element.height is not None:
            parts.append(f"height: {element.height}px")
        if element.rotation:
            parts.append(f"transform: rotate({element.rotation}deg)")
            parts.append("transform-origin: center center")
        return "; ".join(parts) + ";"

    def _image_tag(self, image_id: Optional[str], images: Dict[str, ImageAsset]) -> str:
        if not image_id:
            return ""
        image = images.get(image_id)
        if image is None or not image.src:
            logger.warning(f"Image {image_id} referenced on page but missing from specification")
            return ""
        return f'<img src="{html.escape(image.src, quote=True)}" alt="">'

    def _background_html(self, background: BackgroundState, images: Dict[str, ImageAsset]) -> str:
        tag = self._image_tag(background.image_id, images)
        if not tag:
            return ""
        return tag.replace("<img ", '<img class="canvas-background-image" ', 1)

    def _element_html(
        self,
        element: CanvasElement,
        images: Dict[str, ImageAsset],
        css_class: str,
        z_offset: int,
    ) -> str:
        return (
            f'<div class="{css_class}" style="{self._box_style(element, z_offset)}">'
            f"{self._image_tag(element.image_id, images)}</div>"
        )

    def _text_bubble_html(self, bubble: TextBubble) -> str:
        text_styles: List[str] = [
            f"font-size: {bubble.font_size}px",
            f"color: {bubble.color}",
        ]
        if bubble.font_family:
            text_styles.append(f"font-family: {bubble.font_family}")

        shadows = []
        if bubble.outline_color and bubble.outline_width > 0:
            w = bubble.outline_width
            c = bubble.outline_color
            shadows.extend([f"{w}px 0 {c}", f"-{w}px 0 {c}", f"0 {w}px {c}", f"0 -{w}px {c}"])
        if bubble.text_shadow:
            shadows.append(bubble.text_shadow)
        if shadows:
            text_styles.append(f"text-shadow: {', '.join(shadows)}")

        box_style = self._box_style(bubble, 200)
        if bubble.background_color:
            box_style += f" background-color: {bubble.background_color};"

        return (
            f'<div class="text-bubble" style="{html.escape(box_style, quote=True)}">'
            f'<p class="text-content" style="{html.escape("; ".join(text_styles), quote=True)}">'
            f"{html.escape(bubble.text)}</p></div>"
        )
