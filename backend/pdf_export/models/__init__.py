from .render_spec import (
    RenderSpec,
    PageSpec,
    ImageAsset,
    CanvasElement,
    TextBubble,
    single_page_spec,
    referenced_image_ids
)
from .jobs import JobStatus, JobInfo, CompressionInfo, JobStatusResponse, ExportResponse

__all__ = [
    "RenderSpec",
    "PageSpec",
    "ImageAsset",
    "CanvasElement",
    "TextBubble",
    "single_page_spec",
    "referenced_image_ids",
    "JobStatus",
    "JobInfo",
    "CompressionInfo",
    "JobStatusResponse",
    "ExportResponse"
]
