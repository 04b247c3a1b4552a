"""Prerequisite graph algorithms: pure functions, no I/O.

The graph is an adjacency map ``course_id -> {prerequisite_course_id, ...}``
built from the persisted edge list. Edges point from a dependent course to
the course it requires.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from typing import Any, TypeVar

N = TypeVar("N", bound=Hashable)
E = TypeVar("E")


def build_adjacency(pairs: Iterable[tuple[N, N]]) -> dict[N, set[N]]:
    adjacency: dict[N, set[N]] = defaultdict(set)
    for course_id, prerequisite_course_id in pairs:
        adjacency[course_id].add(prerequisite_course_id)
    return dict(adjacency)


def reaches(adjacency: Mapping[N, Iterable[N]], start: N, target: N) -> bool:
    """True if ``target`` is reachable from ``start`` by following prerequisite edges.

    Iterative DFS with an explicit stack; the visited set makes it terminate
    on graphs that already contain a cycle.
    """
    stack = [start]
    visited: set[N] = set()
    while stack:
        node = stack.pop()
        if node == target:
            return True
        if node in visited:
            continue
        visited.add(node)
        stack.extend(n for n in adjacency.get(node, ()) if n not in visited)
    return False


def would_create_cycle(
    adjacency: Mapping[N, Iterable[N]], course_id: N, prerequisite_course_id: N
) -> bool:
    """Would adding ``course_id -> prerequisite_course_id`` close a cycle?

    It does exactly when the dependent course is already reachable from the
    prerequisite (a self-loop is the degenerate case).
    """
    return reaches(adjacency, prerequisite_course_id, course_id)


def build_path_tree(
    root: N,
    edges_by_course: Mapping[N, Sequence[E]],
    target_of: Callable[[E], N],
    render: Callable[[E], dict[str, Any]],
) -> list[dict[str, Any]]:
    """Expand the prerequisites of ``root`` recursively into a nested tree.

    Each node is ``render(edge)`` plus ``cycle`` and ``sub_prerequisites``.
    A course already on the current path is emitted with ``cycle=True`` and
    no children instead of being expanded again.
    """

    def expand(course_id: N, path: frozenset[N]) -> list[dict[str, Any]]:
        nodes = []
        for edge in edges_by_course.get(course_id, ()):
            target = target_of(edge)
            node = render(edge)
            if target in path:
                node["cycle"] = True
                node["sub_prerequisites"] = []
            else:
                node["cycle"] = False
                node["sub_prerequisites"] = expand(target, path | {target})
            nodes.append(node)
        return nodes

    return expand(root, frozenset({root}))
