"""
PDF compression service using the iLovePDF REST API
Availability depends on configured API keys; no keys means compression is skipped
"""
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging

import httpx

from pdf_export.core.config import settings
from pdf_export.core.exceptions import CompressionError

logger = logging.getLogger(__name__)


@dataclass
class CompressionStats:
    original_size: int
    compressed_size: int
    ratio: float  # percent saved


def compression_ratio(original_size: int, compressed_size: int) -> float:
    if original_size <= 0:
        return 0.0
    return round((original_size - compressed_size) / original_size * 100, 2)


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable form"""
    if size_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(size_bytes, 1024))), len(units) - 1)
    value = round(size_bytes / math.pow(1024, i), 2)
    return f"{value:g} {units[i]}"


class ILovePdfCompressor:
    """Client for the iLovePDF `compress` tool"""

    def __init__(
        self,
        public_key: Optional[str] = settings.ILOVEPDF_PUBLIC_KEY,
        secret_key: Optional[str] = settings.ILOVEPDF_SECRET_KEY,
        api_url: str = settings.ILOVEPDF_API_URL,
        timeout: float = settings.ILOVEPDF_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._public_key = public_key
        self._secret_key = secret_key
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        logger.info(
            f"iLovePDF API keys: public={'Set' if public_key else 'Not Set'}, "
            f"secret={'Set' if secret_key else 'Not Set'}"
        )

    def is_available(self) -> bool:
        """True if both API keys are configured"""
        return bool(self._public_key and self._secret_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def compress(
        self,
        input_path: str,
        output_path: str,
        compression_level: str = settings.DEFAULT_COMPRESSION_LEVEL,
    ) -> CompressionStats:
        """
        Compress `input_path` into `output_path`.
        Raises CompressionError on any failure.
        """
        if not self.is_available():
            raise CompressionError("iLovePDF API keys are not configured")

        source = Path(input_path)
        if not source.is_file():
            raise CompressionError(f"Input file not found: {input_path}")

        logger.info(f"Starting PDF compression task (compression_level={compression_level})")
        try:
            async with self._client() as client:
                token = await self._authenticate(client)
                headers = {"Authorization": f"Bearer {token}"}

                response = await client.get(f"{self._api_url}/start/compress", headers=headers)
                response.raise_for_status()
                started = response.json()
                server_url = f"https://{started['server']}/v1"
                task = started["task"]

                logger.info(f"Adding file to compression task: {input_path}")
                with open(source, "rb") as f:
                    response = await client.post(
                        f"{server_url}/upload",
                        headers=headers,
                        data={"task": task},
                        files={"file": (source.name, f, "application/pdf")},
                    )
                response.raise_for_status()
                server_filename = response.json()["server_filename"]

                response = await client.post(
                    f"{server_url}/process",
                    headers=headers,
                    json={
                        "task": task,
                        "tool": "compress",
                        "compression_level": compression_level,
                        "files": [{"server_filename": server_filename, "filename": source.name}],
                    },
                )
                response.raise_for_status()

                logger.info("Downloading compressed result...")
                response = await client.get(f"{server_url}/download/{task}", headers=headers)
                response.raise_for_status()
                Path(output_path).write_bytes(response.content)
        except (httpx.HTTPError, KeyError, ValueError, OSError) as e:
            raise CompressionError(f"Compression API failed: {e}") from e

        original_size = source.stat().st_size
        compressed_size = Path(output_path).stat().st_size
        stats = CompressionStats(
            original_size=original_size,
            compressed_size=compressed_size,
            ratio=compression_ratio(original_size, compressed_size),
        )
        logger.info(
            f"Compression complete: {format_file_size(original_size)} -> "
            f"{format_file_size(compressed_size)} ({stats.ratio}%)"
        )
        return stats

    async def _authenticate(self, client: httpx.AsyncClient) -> str:
        response = await client.post(f"{self._api_url}/auth", json={"public_key": self._public_key})
        response.raise_for_status()
        return response.json()["token"]
