"""spreadsheet-health — Static health checks for spreadsheets."""

__version__ = "0.1.0"

SUPPORTED_EXTENSIONS: tuple[str, ...] = (
    ".xlsx", ".xlsm", ".xltx", ".xltm", ".xls", ".csv", ".tsv", ".txt",
)
