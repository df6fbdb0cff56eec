# storefront/core/tree.py
from typing import Any, Callable, Hashable, Iterable, TypeVar

T = TypeVar("T")


def build_tree(
    records: Iterable[T],
    id_of: Callable[[T], Hashable],
    parent_id_of: Callable[[T], Hashable | None],
) -> list[dict[str, Any]]:
    """
    Turn a flat, parent-linked list into a forest.

    Each node is `{"record": <record>, "children": [...]}`; input order is
    kept among siblings. Records whose parent is not in the input are
    dropped, like the storefront category listing does for inactive
    parents.
    """
    records = list(records)

    # First pass: one node per record
    nodes: dict[Hashable, dict[str, Any]] = {
        id_of(r): {"record": r, "children": []} for r in records
    }

    # Second pass: link children to parents
    roots: list[dict[str, Any]] = []
    for r in records:
        parent_id = parent_id_of(r)
        node = nodes[id_of(r)]
        if parent_id is None:
            roots.append(node)
        elif parent_id in nodes:
            nodes[parent_id]["children"].append(node)

    return roots
