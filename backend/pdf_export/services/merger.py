"""
PDF merger
Concatenates single-page PDFs into the final document using pypdf
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import logging

from pypdf import PdfReader, PdfWriter

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    output_path: str
    merged_pages: int
    skipped: List[str] = field(default_factory=list)


class PdfMerger:
    """Lenient merger: unreadable inputs are logged and left out"""

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None):
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdf_merger")

    async def merge(self, pdf_paths: List[str], output_path: str) -> MergeResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.merge_sync, pdf_paths, output_path)

    def merge_sync(self, pdf_paths: List[str], output_path: str) -> MergeResult:
        logger.info(f"Starting to merge {len(pdf_paths)} PDF files into {output_path}")
        writer = PdfWriter()
        merged_pages = 0
        skipped: List[str] = []

        for file_path in pdf_paths:
            try:
                reader = PdfReader(file_path)
                pages = list(reader.pages)
            except Exception as e:
                logger.error(f"Error processing file {file_path}: {e}")
                skipped.append(file_path)
                continue

            for page in pages:
                writer.add_page(page)
                merged_pages += 1
            logger.info(f"Added {len(pages)} page(s) from {file_path}")

        if merged_pages > 0:
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "wb") as f:
                writer.write(f)
            logger.info(f"Merged PDF saved successfully to {output_path}")
        else:
            logger.error(f"No pages could be merged into {output_path}")

        return MergeResult(output_path=output_path, merged_pages=merged_pages, skipped=skipped)

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
