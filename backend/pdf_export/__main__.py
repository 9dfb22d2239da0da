"""
Run the export service with uvicorn
"""
import uvicorn

from pdf_export.core.config import settings


def main() -> None:
    uvicorn.run("pdf_export.main:app", host=settings.HOST, port=settings.PORT, log_level="info")


if __name__ == "__main__":
    main()
