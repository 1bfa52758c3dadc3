"""Business logic services."""

from app.services.breach_rules import (
    DEFAULT_BREACH_RULES,
    default_rules,
    evaluate_rules,
    serialize_rules,
)
from app.services.csv_export import export_documents_csv, export_filename
from app.services.dates import normalize_extraction_dates
from app.services.penalties import (
    BaseAmountExtractor,
    FirstNumberExtractor,
    calculate_penalties,
)
from app.services.upload import (
    FileTooLargeError,
    PreparedUpload,
    UploadError,
    UploadValidationError,
    parse_data_uri,
    prepare_pdf_upload,
    to_data_uri,
)

__all__ = [
    "BaseAmountExtractor",
    "DEFAULT_BREACH_RULES",
    "FileTooLargeError",
    "FirstNumberExtractor",
    "PreparedUpload",
    "UploadError",
    "UploadValidationError",
    "calculate_penalties",
    "default_rules",
    "evaluate_rules",
    "export_documents_csv",
    "export_filename",
    "normalize_extraction_dates",
    "parse_data_uri",
    "prepare_pdf_upload",
    "serialize_rules",
    "to_data_uri",
]
