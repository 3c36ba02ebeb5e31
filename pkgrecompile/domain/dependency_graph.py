"""
Directed dependency graph of entry points.

Nodes are keyed by entry-point path and carry the EntryPoint as data.
An edge `a -> b` means "a depends on b". Iteration order always follows node
insertion order, so the topological order is stable for a given input.
"""

from typing import Dict, Generic, Hashable, Iterator, List, Set, TypeVar

from ..exit_codes import DependencyCycleError

T = TypeVar('T')


class DependencyGraph(Generic[T]):
    """
    Example:
        graph = DependencyGraph()
        graph.add_node(a.path, a)
        graph.add_node(b.path, b)
        graph.add_dependency(a.path, b.path)
        graph.overall_order()  # [b.path, a.path]
    """

    def __init__(self):
        self._nodes: Dict[Hashable, T] = {}
        self._outgoing: Dict[Hashable, List[Hashable]] = {}
        self._incoming: Dict[Hashable, List[Hashable]] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._nodes

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._nodes)

    def has_node(self, key: Hashable) -> bool:
        return key in self._nodes

    def add_node(self, key: Hashable, data: T) -> None:
        if key in self._nodes:
            return
        self._nodes[key] = data
        self._outgoing[key] = []
        self._incoming[key] = []

    def get_node_data(self, key: Hashable) -> T:
        if key not in self._nodes:
            raise KeyError(f"Node does not exist: {key}")
        return self._nodes[key]

    def remove_node(self, key: Hashable) -> None:
        if key not in self._nodes:
            return
        del self._nodes[key]
        del self._outgoing[key]
        del self._incoming[key]
        for edges in (self._outgoing, self._incoming):
            for node, targets in edges.items():
                if key in targets:
                    targets.remove(key)

    def add_dependency(self, source: Hashable, target: Hashable) -> None:
        for key in (source, target):
            if key not in self._nodes:
                raise KeyError(f"Node does not exist: {key}")
        if target not in self._outgoing[source]:
            self._outgoing[source].append(target)
        if source not in self._incoming[target]:
            self._incoming[target].append(source)

    def dependencies_of(self, key: Hashable) -> List[Hashable]:
        """Transitive dependencies of `key`, dependencies first."""
        result: List[Hashable] = []
        self._visit(key, self._outgoing, result, set(), [])
        result.remove(key)
        return result

    def dependants_of(self, key: Hashable) -> List[Hashable]:
        """Transitive dependants of `key`, closest last."""
        result: List[Hashable] = []
        self._visit(key, self._incoming, result, set(), [])
        result.remove(key)
        return result

    def overall_order(self) -> List[Hashable]:
        """
        Every node, each after all of its dependencies.

        The depth-first walk starts from the nodes nothing depends on, in
        insertion order. Raises DependencyCycleError on a cycle.
        """
        visited: Set[Hashable] = set()
        for key in self._nodes:
            self._visit(key, self._outgoing, [], visited, [])

        result: List[Hashable] = []
        visited = set()
        for key in self._nodes:
            if not self._incoming[key]:
                self._visit(key, self._outgoing, result, visited, [])
        return result

    def _visit(
        self,
        key: Hashable,
        edges: Dict[Hashable, List[Hashable]],
        result: List[Hashable],
        visited: Set[Hashable],
        stack: List[Hashable],
    ) -> None:
        if key in stack:
            cycle = stack[stack.index(key):] + [key]
            raise DependencyCycleError(cycle)
        if key in visited:
            return
        visited.add(key)
        stack.append(key)
        for target in edges[key]:
            self._visit(target, edges, result, visited, stack)
        stack.pop()
        result.append(key)
