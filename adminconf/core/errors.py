from dataclasses import dataclass


@dataclass(frozen=True)
class AdminConfigErrorCode:
    code: str
    message: str


ADMINCFG_001_FILE_PARSE_FAILED = AdminConfigErrorCode(
    "ADMINCFG_001_FILE_PARSE_FAILED",
    "Declarative config file could not be parsed; treating it as empty.",
)
ADMINCFG_002_STORE_READ_FAILED = AdminConfigErrorCode(
    "ADMINCFG_002_STORE_READ_FAILED",
    "Reading from the admin config store failed.",
)
ADMINCFG_003_STORE_WRITE_FAILED = AdminConfigErrorCode(
    "ADMINCFG_003_STORE_WRITE_FAILED",
    "Writing to the admin config store failed.",
)
ADMINCFG_004_RECORD_CORRUPT = AdminConfigErrorCode(
    "ADMINCFG_004_RECORD_CORRUPT",
    "Persisted admin config record is not a valid object.",
)
ADMINCFG_005_FILE_UNREADABLE = AdminConfigErrorCode(
    "ADMINCFG_005_FILE_UNREADABLE",
    "Declarative config file could not be read.",
)


class AdminStoreError(RuntimeError):
    def __init__(self, err: AdminConfigErrorCode, detail: str = "") -> None:
        suffix = f" detail={detail}" if detail else ""
        super().__init__(f"{err.code}: {err.message}{suffix}")
        self.err = err
        self.detail = detail
