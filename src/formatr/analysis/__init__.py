"""Static analysis: positioned diagnostics without rendering."""

from formatr.analysis.analyzer import Analyzer, analyze, key_kind
from formatr.analysis.diagnostics import AnalysisReport, Diagnostic, Severity

__all__ = ["AnalysisReport", "Analyzer", "Diagnostic", "Severity", "analyze", "key_kind"]
