"""Tests for the centralized exception classes."""

from excel_quick_viewer.utils.exceptions import (
    CatalogError,
    DecodeError,
    ErrorCode,
    FileError,
    FileReadError,
    FileStatError,
    FolderScanError,
    SettingsIOError,
    UnsupportedFormatError,
    ValidationError,
    ViewerError,
    ViewerFileNotFoundError,
)


class TestErrorCode:
    """Tests for ErrorCode enumeration."""

    def test_error_codes_are_unique(self) -> None:
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))

    def test_error_code_format(self) -> None:
        """Error codes should follow Exxxx format."""
        for code in ErrorCode:
            assert code.value.startswith("E")
            assert len(code.value) == 5
            assert code.value[1:].isdigit()

    def test_categories(self) -> None:
        assert ErrorCode.FILE_NOT_FOUND.value.startswith("E1")
        assert ErrorCode.FILE_STAT_ERROR.value.startswith("E1")
        assert ErrorCode.DECODE_FAILED.value.startswith("E2")
        assert ErrorCode.UNSUPPORTED_FORMAT.value.startswith("E2")
        assert ErrorCode.FOLDER_SCAN_FAILED.value.startswith("E3")
        assert ErrorCode.SETTINGS_LOAD_FAILED.value.startswith("E4")
        assert ErrorCode.OPEN_EXTERNAL_FAILED.value.startswith("E5")
        assert ErrorCode.INTERNAL_ERROR.value.startswith("E9")


class TestViewerError:
    def test_defaults(self) -> None:
        error = ViewerError("boom")
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.http_status == 500
        assert error.get_http_status() == 500
        assert error.details == {}
        assert str(error) == "[E9001] boom"

    def test_to_dict(self) -> None:
        error = ViewerError("boom", details={"a": 1})
        assert error.to_dict() == {
            "error_code": "E9001",
            "message": "boom",
            "details": {"a": 1},
        }
        assert "details" not in ViewerError("boom").to_dict()


class TestFileErrors:
    def test_not_found(self) -> None:
        error = ViewerFileNotFoundError("/data/a.xlsx")
        assert isinstance(error, FileError)
        assert isinstance(error, ViewerError)
        assert error.http_status == 404
        assert error.message == "File not found: /data/a.xlsx"
        assert error.details == {"file_path": "/data/a.xlsx"}

    def test_read_error(self) -> None:
        error = FileReadError("/data/a.xlsx", "permission denied")
        assert error.http_status == 400
        assert error.reason == "permission denied"
        assert "permission denied" in error.message

    def test_stat_error(self) -> None:
        error = FileStatError("/data/a.xlsx", "gone")
        assert error.error_code == ErrorCode.FILE_STAT_ERROR
        assert error.file_path == "/data/a.xlsx"


class TestDecodeErrors:
    def test_decode_error(self) -> None:
        error = DecodeError("bad", file_name="a.xlsx")
        assert error.http_status == 422
        assert error.error_code == ErrorCode.DECODE_FAILED
        assert error.details == {"file_name": "a.xlsx"}

    def test_unsupported_format(self) -> None:
        error = UnsupportedFormatError(
            "nope", detected_mime="text/plain", file_name="a.xlsx"
        )
        assert isinstance(error, DecodeError)
        assert error.http_status == 422
        assert error.error_code == ErrorCode.UNSUPPORTED_FORMAT
        assert error.details == {
            "detected_mime_type": "text/plain",
            "file_name": "a.xlsx",
        }


class TestOtherErrors:
    def test_folder_scan_error(self) -> None:
        error = FolderScanError("/data", "No such file or directory")
        assert isinstance(error, CatalogError)
        assert error.error_code == ErrorCode.FOLDER_SCAN_FAILED
        assert error.folder_path == "/data"
        assert error.reason == "No such file or directory"

    def test_settings_error(self) -> None:
        error = SettingsIOError(
            "cannot read",
            error_code=ErrorCode.SETTINGS_LOAD_FAILED,
            settings_path="/cfg.json",
        )
        assert error.details == {"settings_path": "/cfg.json"}
        assert error.http_status == 500

    def test_validation_error(self) -> None:
        error = ValidationError("bad index", field="index")
        assert error.http_status == 400
        assert error.error_code == ErrorCode.VALIDATION_ERROR
        assert error.details == {"field": "index"}
