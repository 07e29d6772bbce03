"""
Archive Kernel

Pure core of the report archiver:
- Injectable clock and run-date formatting
- Archive candidate naming convention
- Immutable DTOs for candidates, targets and per-file results
- Typed exception hierarchy
- Structured JSON logging
"""

__version__ = "0.1.0"
