"""
Folio Import/Export

History exports (JSON, CSV, tab-separated) and validated imports of
positions files and stored snapshot history.
"""

from .exporters import (
    ExportFormat,
    ExportOptions,
    ExportResult,
    build_export_data,
    export_filename,
    export_history,
    export_positions,
    export_summary,
    render_tabular,
)
from .importers import import_positions, parse_snapshot_history, validate_positions_import

__all__ = [
    "ExportFormat",
    "ExportOptions",
    "ExportResult",
    "build_export_data",
    "export_filename",
    "export_history",
    "export_positions",
    "export_summary",
    "render_tabular",
    "import_positions",
    "parse_snapshot_history",
    "validate_positions_import",
]
