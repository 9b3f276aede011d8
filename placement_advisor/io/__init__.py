"""I/O utilities for CSV import/export."""

from .import_csv import (
    import_availability_csv,
    import_due_soon_csv,
    import_schedules_csv,
    import_technicians_csv,
)
from .export_csv import candidates_frame, export_candidates_csv

__all__ = [
    "import_technicians_csv",
    "import_availability_csv",
    "import_schedules_csv",
    "import_due_soon_csv",
    "candidates_frame",
    "export_candidates_csv",
]
