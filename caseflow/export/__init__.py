"""Export destinations for case records."""
from caseflow.export.sinks import ensure_output_dir, push_to_google_sheets, write_csv, write_excel

__all__ = ["ensure_output_dir", "push_to_google_sheets", "write_csv", "write_excel"]
