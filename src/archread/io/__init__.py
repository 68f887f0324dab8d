from .report import TableRenderer
from .writers import TableFileWriter, write_report

__all__ = ["TableFileWriter", "TableRenderer", "write_report"]
