"""Code formatters for generated tests."""

from .code_formatter import CodeFormatter
from .imports_manager import ImportSpec, ImportsManager

__all__ = ["CodeFormatter", "ImportsManager", "ImportSpec"]
