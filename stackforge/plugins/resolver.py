"""Orders plugins so every plugin comes after the plugins it requires."""

from __future__ import annotations

from stackforge.logger import get_logger

from .models import PluginConfig

logger = get_logger(__name__)


class PluginError(Exception):
    """Base class for plugin system failures."""


class CircularDependencyError(PluginError):
    """The ``requires`` relation between plugins contains a cycle."""

    def __init__(self, plugin: str, cycle: list[str]) -> None:
        self.plugin = plugin
        self.cycle = cycle
        super().__init__(f"Circular dependency detected at plugin {plugin!r}: {' -> '.join(cycle)}")


_UNVISITED = 0
_VISITING = 1
_DONE = 2


class PluginDependencyResolver:
    """Depth-first topological ordering over ``activation.plugins.requires``.

    Nodes are list indices and the traversal keeps its own stack, so deep
    requirement chains cannot hit the interpreter recursion limit.  Requires
    naming plugins outside the batch are ignored.  Unrelated plugins keep
    their input order.
    """

    @staticmethod
    def order(plugins: list[PluginConfig]) -> list[PluginConfig]:
        position: dict[str, int] = {}
        for i, plugin in enumerate(plugins):
            position.setdefault(plugin.name, i)

        edges = [[position[name] for name in plugin.requires if name in position] for plugin in plugins]
        marks = [_UNVISITED] * len(plugins)
        ordered: list[PluginConfig] = []

        for start in range(len(plugins)):
            if marks[start] != _UNVISITED:
                continue

            marks[start] = _VISITING
            # (node, index of the next outgoing edge to follow)
            stack: list[tuple[int, int]] = [(start, 0)]
            while stack:
                node, next_edge = stack[-1]
                if next_edge < len(edges[node]):
                    stack[-1] = (node, next_edge + 1)
                    target = edges[node][next_edge]
                    if marks[target] == _VISITING:
                        trail = [n for n, _ in stack]
                        cycle = [plugins[n].name for n in trail[trail.index(target):]]
                        cycle.append(plugins[target].name)
                        logger.error("Plugin dependency cycle: %s", " -> ".join(cycle))
                        raise CircularDependencyError(plugins[target].name, cycle)
                    if marks[target] == _UNVISITED:
                        marks[target] = _VISITING
                        stack.append((target, 0))
                else:
                    marks[node] = _DONE
                    ordered.append(plugins[node])
                    stack.pop()

        return ordered
