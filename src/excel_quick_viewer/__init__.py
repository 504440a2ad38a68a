"""Excel Quick Viewer - browse, view and search spreadsheets in watched folders."""

__version__ = "0.1.0"

from excel_quick_viewer.api import app, create_app  # noqa: E402

__all__ = ["app", "create_app"]


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from excel_quick_viewer.config import settings

    uvicorn.run(
        "excel_quick_viewer.api:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
    )
