# backend/utils/category_tree.py
"""
Category forest for the stock dashboard and printed stock lists.

The input is a flat snapshot: item mappings (as produced by the read path, with
cost/profit already removed for users who may not see them) and category
mappings with ``id``, ``name`` and ``parent_id``. Items hang only on their own
category; totals roll up through every ancestor.

Trees are built fresh for every request and walked with explicit stacks, so
very deep or malformed category data cannot exhaust the interpreter stack.
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Uncategorized"

NodeId = Union[int, str]
Item = Mapping[str, Any]


@dataclass
class CategoryNode:
    id: NodeId
    name: str
    parent_id: Optional[NodeId] = None
    items: List[Item] = field(default_factory=list)
    children: List["CategoryNode"] = field(default_factory=list)
    total_cost: Decimal = Decimal("0")
    total_profit: Decimal = Decimal("0")
    collapsed: bool = False


def _number(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _sort_key(node: CategoryNode):
    return (node.id == UNCATEGORIZED_ID, node.name.casefold(), str(node.id))


def iter_postorder(roots: List[CategoryNode]) -> Iterator[CategoryNode]:
    stack = [(node, False) for node in reversed(roots)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield node
            continue
        stack.append((node, True))
        stack.extend((child, False) for child in reversed(node.children))


def iter_nodes(roots: List[CategoryNode]) -> Iterator[Tuple[int, CategoryNode]]:
    """Depth-first preorder walk yielding (level, node)."""
    stack = [(0, node) for node in reversed(roots)]
    while stack:
        level, node = stack.pop()
        yield level, node
        stack.extend((level + 1, child) for child in reversed(node.children))


def tree_depth(roots: List[CategoryNode]) -> int:
    """Number of levels in the forest; 0 when it is empty."""
    return max((level + 1 for level, _ in iter_nodes(roots)), default=0)


def _mark_reachable(roots: List[CategoryNode], reachable: set) -> None:
    for _, node in iter_nodes(roots):
        reachable.add(id(node))


def _break_cycles(nodes: Dict[NodeId, CategoryNode], roots: List[CategoryNode]) -> None:
    # Anything not reachable from a root sits on (or hangs below) a parent cycle
    reachable = set()
    _mark_reachable(roots, reachable)
    for node in nodes.values():
        if id(node) in reachable:
            continue
        visited = set()
        current = node
        while current.id not in visited:
            visited.add(current.id)
            current = nodes[current.parent_id]
        nodes[current.parent_id].children.remove(current)
        current.parent_id = None
        roots.append(current)
        _mark_reachable([current], reachable)


def _compute_totals(roots: List[CategoryNode]) -> None:
    for node in iter_postorder(roots):
        cost = sum(
            (_number(item.get("cost_price")) * int(item.get("quantity") or 0) for item in node.items),
            Decimal("0"),
        )
        profit = sum((_number(item.get("profit")) for item in node.items), Decimal("0"))
        for child in node.children:
            cost += child.total_cost
            profit += child.total_profit
        node.total_cost = cost
        node.total_profit = profit


def build_tree(items: Iterable[Item], categories: Iterable[Mapping[str, Any]]) -> List[CategoryNode]:
    """
    Group items into a forest of CategoryNode with cost/profit totals per subtree.

    Only categories used by an item, directly or as an ancestor, become nodes.
    Items without a category, or whose category is unknown, go to a single
    "Uncategorized" root. A parent that is missing, belongs to another company or
    closes a cycle is ignored and the node becomes a root.
    """
    categories_by_id = {category["id"]: category for category in categories}
    nodes: Dict[NodeId, CategoryNode] = {}

    def materialize(category_id) -> None:
        current = category_id
        while current is not None and current not in nodes:
            category = categories_by_id.get(current)
            if category is None:
                return
            parent_id = category.get("parent_id")
            parent = categories_by_id.get(parent_id)
            if parent is None or parent.get("company_id") != category.get("company_id"):
                parent_id = None
            nodes[current] = CategoryNode(id=current, name=category["name"], parent_id=parent_id)
            current = parent_id

    for item in items:
        category_id = item.get("category_id")
        if category_id is not None and category_id in categories_by_id:
            materialize(category_id)
            nodes[category_id].items.append(dict(item))
        else:
            if UNCATEGORIZED_ID not in nodes:
                nodes[UNCATEGORIZED_ID] = CategoryNode(id=UNCATEGORIZED_ID, name=UNCATEGORIZED_NAME)
            nodes[UNCATEGORIZED_ID].items.append(dict(item))

    roots = []
    for node in nodes.values():
        parent = nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is None or parent is node:
            node.parent_id = None
            roots.append(node)
        else:
            parent.children.append(node)

    _break_cycles(nodes, roots)

    for node in nodes.values():
        node.children.sort(key=_sort_key)
    roots.sort(key=_sort_key)

    _compute_totals(roots)
    return roots


def _item_matches(item: Item, needle: str) -> bool:
    name = (item.get("name") or "").casefold()
    sku = (item.get("sku") or "").casefold()
    return needle in name or needle in sku


def filter_tree(tree: List[CategoryNode], term: Optional[str]) -> List[CategoryNode]:
    """
    Return a pruned copy of ``tree`` for a case-insensitive search term.

    A node stays when its name matches, when one of its own items matches by
    name or sku, or when any descendant stays. A category whose name matches
    keeps all of its items; otherwise only the matching items are kept. Totals
    are copied unchanged, so they still describe the whole category.
    """
    needle = (term or "").strip().casefold()
    kept: Dict[int, Optional[CategoryNode]] = {}

    for node in iter_postorder(tree):
        children = [kept[id(child)] for child in node.children if kept[id(child)] is not None]
        if not needle:
            kept[id(node)] = replace(node, items=list(node.items), children=children)
            continue

        name_matches = needle in node.name.casefold()
        if name_matches:
            items = list(node.items)
        else:
            items = [item for item in node.items if _item_matches(item, needle)]

        if name_matches or items or children:
            kept[id(node)] = replace(node, items=items, children=children)
        else:
            kept[id(node)] = None

    return [kept[id(root)] for root in tree if kept[id(root)] is not None]


def toggle_collapsed(collapsed: FrozenSet[NodeId], category_id: NodeId) -> FrozenSet[NodeId]:
    if category_id in collapsed:
        return collapsed - {category_id}
    return collapsed | {category_id}


def mark_collapsed(tree: List[CategoryNode], collapsed: Iterable[NodeId]) -> List[CategoryNode]:
    collapsed = {str(category_id) for category_id in collapsed}
    for _, node in iter_nodes(tree):
        node.collapsed = str(node.id) in collapsed
    return tree


def low_stock_items(items: Iterable[Item]) -> List[Item]:
    return [
        item for item in items
        if item.get("min_stock_level") is not None and item["quantity"] <= item["min_stock_level"]
    ]
