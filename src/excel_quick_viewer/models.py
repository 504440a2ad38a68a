"""Pydantic models for API requests and responses."""

from typing import Union

from pydantic import BaseModel, Field

from excel_quick_viewer.utils.exceptions import ErrorCode

CellJSON = Union[bool, int, float, str, None]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str


# =============================================================================
# Folders and catalog
# =============================================================================


class FolderRequest(BaseModel):
    """A folder path to register or unregister."""

    path: str = Field(..., min_length=1, description="Absolute folder path")


class FolderListResponse(BaseModel):
    """Registered folders in insertion order."""

    folder_paths: list[str] = Field(..., description="Registered folder paths")


class ExcelFileModel(BaseModel):
    """A spreadsheet file listed in the catalog."""

    name: str
    path: str
    size: int = Field(..., description="File size in bytes")
    size_label: str = Field(..., description="Human readable size")
    folder_name: str | None = None
    folder_path: str | None = None


class FolderGroupModel(BaseModel):
    """Catalog entries of one registered folder."""

    folder_name: str
    folder_path: str
    expanded: bool
    files: list[ExcelFileModel]


class CatalogResponse(BaseModel):
    """The file catalog grouped by folder."""

    groups: list[FolderGroupModel]
    total_files: int


class FolderExpandedRequest(BaseModel):
    """Expand or collapse a folder group."""

    folder_path: str = Field(..., min_length=1)
    expanded: bool


# =============================================================================
# Workbook
# =============================================================================


class OpenFileRequest(BaseModel):
    """A file to decode and show."""

    path: str = Field(..., min_length=1, description="Path of the spreadsheet file")


class WorkbookResponse(BaseModel):
    """Summary of the active workbook."""

    file_name: str | None = None
    file_path: str | None = None
    sheet_names: list[str] = Field(default_factory=list)
    active_sheet: int = 0
    is_loading: bool = False
    error: str | None = Field(
        default=None, description="Reason the last selection could not be shown"
    )


class CellModel(BaseModel):
    """One grid cell with its search highlight flags."""

    value: CellJSON = None
    text: str = Field(..., description="Displayed text; empty for absent cells")
    highlight: bool = False
    current: bool = False


class SheetResponse(BaseModel):
    """A sheet grid ready for rendering."""

    index: int
    name: str
    headers: list[str]
    col_widths: list[float]
    rows: list[list[CellModel]]
    current_match_row: int | None = Field(
        default=None, description="Row of the current match on this sheet"
    )


class ActiveSheetRequest(BaseModel):
    """Switch the displayed sheet."""

    index: int = Field(..., ge=0)


class OpenExternalResponse(BaseModel):
    """Whether the OS accepted the request to open the file."""

    opened: bool


# =============================================================================
# Search
# =============================================================================


class SearchRequest(BaseModel):
    """Replace the search query."""

    query: str = Field(..., description="Free text; empty clears the search")


class MatchModel(BaseModel):
    """Coordinates of a matching cell."""

    sheet_index: int
    row: int
    col: int


class SearchStateResponse(BaseModel):
    """Current search state."""

    query: str
    total_matches: int
    current_index: int
    current_match: MatchModel | None = None
    active_sheet: int


# =============================================================================
# Errors
# =============================================================================


class ErrorDetail(BaseModel):
    """Error detail model for API error responses."""

    detail: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code (e.g., 'E2001')",
    )
    details: dict[str, object] | None = Field(
        default=None,
        description="Additional error details for debugging",
    )
    request_id: str | None = Field(
        default=None,
        description="Request ID for error correlation",
    )

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        detail: str,
        request_id: str | None = None,
    ) -> "ErrorDetail":
        return cls(detail=detail, error_code=error_code.value, request_id=request_id)
