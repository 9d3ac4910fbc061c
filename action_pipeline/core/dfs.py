"""
Generic depth-first traversal with enter/leave hooks.

Uses an explicit stack so traversal depth is not limited by the
interpreter's recursion limit.
"""

from collections.abc import Iterable, Sequence
from typing import Any, Callable, TypeVar

StateT = TypeVar("StateT")
ResultT = TypeVar("ResultT")

NodeHook = Callable[[Any, StateT], None]


def dfs(
    *,
    nodes: Sequence[Any],
    get_next: Callable[[Any], Iterable[Any]],
    state: StateT,
    on_enter: NodeHook,
    on_leave: NodeHook,
    get_result: Callable[[StateT], ResultT],
) -> ResultT:
    """
    Walk every node reachable from `nodes`, visiting each exactly once.

    Roots are taken from the end of `nodes` (stack order), so callers that
    need sources visited first pass them last, i.e. in reverse topological
    order. `on_enter` runs pre-order; `on_leave` runs post-order, after every
    child has been fully visited.

    Args:
        nodes: Root candidates; the last one is walked first
        get_next: Returns the direct successors of a node
        state: Mutable state handed to every hook
        on_enter: Called as `on_enter(node, state)` when a node is first reached
        on_leave: Called as `on_leave(node, state)` once its subtree is done
        get_result: Turns the final state into the return value

    Returns:
        Whatever get_result returns for the final state
    """
    visited: set[Any] = set()
    roots = list(nodes)

    while roots:
        root = roots.pop()
        if root in visited:
            continue

        visited.add(root)
        on_enter(root, state)
        stack = [(root, iter(get_next(root)))]

        while stack:
            node, children = stack[-1]
            for child in children:
                if child not in visited:
                    visited.add(child)
                    on_enter(child, state)
                    stack.append((child, iter(get_next(child))))
                    break
            else:
                stack.pop()
                on_leave(node, state)

    return get_result(state)
