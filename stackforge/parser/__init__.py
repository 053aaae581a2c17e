"""stackforge tool-set parser.

Normalises heterogeneous stack requests into a categorised ``ToolSet``.

Usage::

    from stackforge.parser import ToolSetParser

    parser = ToolSetParser()
    tool_set = parser.parse("vue3+vite+ts")
    print(tool_set.frameworks, tool_set.all)
    print(tool_set.metadata.auto_completed)
"""

from stackforge.parser.models import (
    CATEGORY_FIELDS,
    InputFormat,
    TechStack,
    ToolCatalog,
    ToolSet,
    ToolSetMetadata,
)
from stackforge.parser.toolset import CatalogError, ToolSetParser

__all__ = [
    "ToolSetParser",
    "CatalogError",
    "ToolCatalog",
    "ToolSet",
    "ToolSetMetadata",
    "TechStack",
    "InputFormat",
    "CATEGORY_FIELDS",
]
