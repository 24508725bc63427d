"""formatr parser: source text to AST."""

from formatr.parser.core import Parser, parse, parse_recovering

__all__ = ["Parser", "parse", "parse_recovering"]
