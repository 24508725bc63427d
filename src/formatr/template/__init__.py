"""formatr Template package: compiled templates ready for rendering."""

from formatr.template.core import AsyncTemplate, Template
from formatr.template.helpers import MISSING, resolve

__all__ = ["MISSING", "AsyncTemplate", "Template", "resolve"]
