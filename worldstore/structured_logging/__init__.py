"""
Structured logging package for worldstore.

All imports should use explicit paths like
'from worldstore.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' to avoid
namespace conflicts with Python's standard library logging module.
"""

__all__: list[str] = []
