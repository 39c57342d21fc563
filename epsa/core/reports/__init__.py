"""
Report Generation Module

- CSV export: sectioned rows for spreadsheet download
- Patient Report: one-page PDF summary
"""
from .csv_export import build_core_rows, build_post_rows, rows_to_csv
from .patient_report import PatientReportGenerator, PatientReport

__all__ = [
    "build_core_rows",
    "build_post_rows",
    "rows_to_csv",
    "PatientReportGenerator",
    "PatientReport",
]
