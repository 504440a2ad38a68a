"""FastAPI application exposing the viewer session to a front end."""

import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from excel_quick_viewer import __version__
from excel_quick_viewer.config import settings, validate_settings_on_startup
from excel_quick_viewer.models import (
    ActiveSheetRequest,
    CatalogResponse,
    CellModel,
    ErrorDetail,
    ExcelFileModel,
    FolderExpandedRequest,
    FolderGroupModel,
    FolderListResponse,
    FolderRequest,
    HealthResponse,
    MatchModel,
    OpenExternalResponse,
    OpenFileRequest,
    SearchRequest,
    SearchStateResponse,
    SheetResponse,
    WorkbookResponse,
)
from excel_quick_viewer.services.file_catalog import format_file_size
from excel_quick_viewer.services.search_engine import stringify_cell
from excel_quick_viewer.session import ViewerSession
from excel_quick_viewer.utils.exceptions import ErrorCode, ViewerError
from excel_quick_viewer.utils.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

configure_logging(
    level=settings.log_level_int,
    use_structured_formatter=True,
)
logger = get_logger(__name__)


def _catalog_response(session: ViewerSession) -> CatalogResponse:
    groups = [
        FolderGroupModel(
            folder_name=group.folder_name,
            folder_path=group.folder_path,
            expanded=group.expanded,
            files=[
                ExcelFileModel(
                    name=f.name,
                    path=f.path,
                    size=f.size,
                    size_label=format_file_size(f.size),
                    folder_name=f.folder_name,
                    folder_path=f.folder_path,
                )
                for f in group.files
            ],
        )
        for group in session.folder_groups
    ]
    return CatalogResponse(groups=groups, total_files=len(session.files))


def _workbook_response(session: ViewerSession) -> WorkbookResponse:
    workbook = session.workbook
    return WorkbookResponse(
        file_name=workbook.file_name if workbook else session.selected_file_name,
        file_path=session.selected_file_path,
        sheet_names=workbook.sheet_names if workbook else [],
        active_sheet=session.active_sheet,
        is_loading=session.is_loading,
        error=session.error.message if session.error else None,
    )


def _search_response(session: ViewerSession) -> SearchStateResponse:
    engine = session.search
    match = engine.current_match
    return SearchStateResponse(
        query=engine.query,
        total_matches=engine.total_matches,
        current_index=engine.current_index,
        current_match=(
            MatchModel(sheet_index=match.sheet_index, row=match.row, col=match.col)
            if match
            else None
        ),
        active_sheet=session.active_sheet,
    )


def create_app(session: ViewerSession | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session: Viewer state to expose. A default session backed by the
            configured settings file is created when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        viewer = session or ViewerSession()
        await viewer.start()
        app.state.session = viewer
        try:
            yield
        finally:
            app.state.session = None

    app = FastAPI(
        title="Excel Quick Viewer API",
        description=(
            "Browse spreadsheet files in registered folders, view their sheets "
            "and search across cell contents."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    validate_settings_on_startup(settings)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Any:
        """Assign a request ID for log correlation and echo it back."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()

    @app.exception_handler(ViewerError)
    async def viewer_exception_handler(
        request: Request, exc: ViewerError
    ) -> JSONResponse:
        """Render viewer errors with their error code and HTTP status."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.warning(
            f"Viewer error: {exc.message}",
            error_code=exc.error_code.value,
            http_status=exc.http_status,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=ErrorDetail(
                detail=exc.message,
                error_code=exc.error_code.value,
                details=exc.details if exc.details else None,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.warning(f"HTTP Error: {exc.detail}", status_code=exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorDetail(
                detail=str(exc.detail),
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all handler that hides internals unless debug is enabled."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.exception(
            f"Unexpected error: {type(exc).__name__}",
            error_type=type(exc).__name__,
        )
        if settings.debug:
            detail = f"Internal server error: {type(exc).__name__}: {exc}"
        else:
            detail = "Internal server error. Please try again later."

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorDetail.from_error_code(
                ErrorCode.INTERNAL_ERROR, detail, request_id=request_id
            ).model_dump(exclude_none=True),
        )

    def get_session(request: Request) -> ViewerSession:
        viewer: ViewerSession = request.app.state.session
        return viewer

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
        }

    # ------------------------------------------------------------------ #
    # Folders
    # ------------------------------------------------------------------ #

    @app.get("/folders", response_model=FolderListResponse, tags=["Folders"])
    async def list_folders(request: Request) -> FolderListResponse:
        return FolderListResponse(folder_paths=get_session(request).registry.folder_paths)

    @app.post("/folders", response_model=FolderListResponse, tags=["Folders"])
    async def add_folder(request: Request, body: FolderRequest) -> FolderListResponse:
        viewer = get_session(request)
        await viewer.add_folder(body.path)
        return FolderListResponse(folder_paths=viewer.registry.folder_paths)

    @app.delete("/folders", response_model=FolderListResponse, tags=["Folders"])
    async def remove_folder(request: Request, path: str) -> FolderListResponse:
        viewer = get_session(request)
        await viewer.remove_folder(path)
        return FolderListResponse(folder_paths=viewer.registry.folder_paths)

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    @app.get("/files", response_model=CatalogResponse, tags=["Files"])
    async def list_files(request: Request) -> CatalogResponse:
        return _catalog_response(get_session(request))

    @app.post("/files/refresh", response_model=CatalogResponse, tags=["Files"])
    async def refresh_files(request: Request) -> CatalogResponse:
        viewer = get_session(request)
        await viewer.refresh_catalog()
        return _catalog_response(viewer)

    @app.put("/files/groups/expanded", response_model=CatalogResponse, tags=["Files"])
    async def set_group_expanded(
        request: Request, body: FolderExpandedRequest
    ) -> CatalogResponse:
        viewer = get_session(request)
        viewer.set_folder_expanded(body.folder_path, body.expanded)
        return _catalog_response(viewer)

    # ------------------------------------------------------------------ #
    # Workbook
    # ------------------------------------------------------------------ #

    @app.post(
        "/workbook",
        response_model=WorkbookResponse,
        tags=["Workbook"],
        responses={
            404: {"model": ErrorDetail, "description": "File not found"},
            422: {"model": ErrorDetail, "description": "Not a readable spreadsheet"},
        },
    )
    async def open_workbook(request: Request, body: OpenFileRequest) -> WorkbookResponse:
        """Decode a file and make it the active workbook."""
        viewer = get_session(request)
        await viewer.select_file(body.path)
        if viewer.error is not None:
            raise viewer.error
        logger.info(
            "Workbook opened",
            path=body.path,
            sheets=len(viewer.workbook.sheets) if viewer.workbook else 0,
        )
        return _workbook_response(viewer)

    @app.get("/workbook", response_model=WorkbookResponse, tags=["Workbook"])
    async def get_workbook(request: Request) -> WorkbookResponse:
        return _workbook_response(get_session(request))

    @app.put("/workbook/active-sheet", response_model=WorkbookResponse, tags=["Workbook"])
    async def set_active_sheet(
        request: Request, body: ActiveSheetRequest
    ) -> WorkbookResponse:
        viewer = get_session(request)
        viewer.set_active_sheet(body.index)
        return _workbook_response(viewer)

    @app.get(
        "/workbook/sheets/{index}",
        response_model=SheetResponse,
        tags=["Workbook"],
        responses={404: {"model": ErrorDetail, "description": "Sheet not found"}},
    )
    async def get_sheet(request: Request, index: int) -> SheetResponse:
        """Return a sheet grid with search highlight flags per cell."""
        viewer = get_session(request)
        workbook = viewer.workbook
        if workbook is None or not 0 <= index < len(workbook.sheets):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Sheet not found: {index}",
            )

        sheet = workbook.sheets[index]
        engine = viewer.search
        rows = [
            [
                CellModel(
                    value=cell,
                    text=stringify_cell(cell),
                    highlight=engine.is_match(index, row_index, col_index),
                    current=engine.is_current_match(index, row_index, col_index),
                )
                for col_index, cell in enumerate(row)
            ]
            for row_index, row in enumerate(sheet.data)
        ]
        match = engine.current_match
        return SheetResponse(
            index=index,
            name=sheet.name,
            headers=sheet.headers,
            col_widths=sheet.col_widths,
            rows=rows,
            current_match_row=(
                match.row if match and match.sheet_index == index else None
            ),
        )

    @app.post(
        "/workbook/open-external",
        response_model=OpenExternalResponse,
        tags=["Workbook"],
    )
    async def open_external(request: Request) -> OpenExternalResponse:
        """Open the selected file in its default desktop application."""
        return OpenExternalResponse(opened=get_session(request).open_selected_externally())

    # ------------------------------------------------------------------ #
    # Search
    # ------------------------------------------------------------------ #

    @app.get("/search", response_model=SearchStateResponse, tags=["Search"])
    async def get_search(request: Request) -> SearchStateResponse:
        return _search_response(get_session(request))

    @app.put("/search", response_model=SearchStateResponse, tags=["Search"])
    async def set_search(request: Request, body: SearchRequest) -> SearchStateResponse:
        viewer = get_session(request)
        viewer.set_query(body.query)
        return _search_response(viewer)

    @app.post("/search/next", response_model=SearchStateResponse, tags=["Search"])
    async def search_next(request: Request) -> SearchStateResponse:
        viewer = get_session(request)
        viewer.go_to_next()
        return _search_response(viewer)

    @app.post("/search/prev", response_model=SearchStateResponse, tags=["Search"])
    async def search_prev(request: Request) -> SearchStateResponse:
        viewer = get_session(request)
        viewer.go_to_prev()
        return _search_response(viewer)

    logger.info("FastAPI application created successfully")
    return app


# Create the application instance
app = create_app()
