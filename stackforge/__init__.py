"""stackforge: technology-stack resolution for project scaffolding.

Parses a stack request, picks a fixed project template when one fits, and
activates and merges the plugins that contribute dependencies, scripts and
configuration files.  See :class:`stackforge.planner.GenerationPlanner`.
"""

__version__ = "0.1.0"
