"""formatr compiler: AST to render plan."""

from formatr.compiler.core import BoundFilter, BoundPlaceholder, Compiler, Part, expand_includes

__all__ = ["BoundFilter", "BoundPlaceholder", "Compiler", "Part", "expand_includes"]
