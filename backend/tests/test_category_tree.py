# backend/tests/test_category_tree.py
from decimal import Decimal

from utils.category_tree import (
    UNCATEGORIZED_ID, build_tree, filter_tree, iter_nodes, low_stock_items, mark_collapsed,
    toggle_collapsed, tree_depth,
)


def category(id, name, parent_id=None, company_id=1):
    return {"id": id, "name": name, "parent_id": parent_id, "company_id": company_id}


def item(id, name, category_id=None, quantity=1, cost_price=None, profit=None, sku=None, **extra):
    data = {"id": id, "name": name, "category_id": category_id, "quantity": quantity, "sku": sku}
    if cost_price is not None:
        data["cost_price"] = Decimal(str(cost_price))
    if profit is not None:
        data["profit"] = Decimal(str(profit))
    data.update(extra)
    return data


def shape(tree):
    """Nested (name, [item names], [children]) tuples, without totals."""
    return [
        (node.name, [i["name"] for i in node.items], shape(node.children))
        for node in tree
    ]


CATEGORIES = [
    category(1, "Tools"),
    category(2, "Hand tools", parent_id=1),
    category(3, "Power tools", parent_id=1),
    category(4, "Garden"),
]


def test_items_hang_on_their_category():
    items = [
        item(10, "Hammer", 2, quantity=10, cost_price=5),
        item(11, "Drill", 3, quantity=2, cost_price=50),
        item(12, "Loose screws"),
    ]

    tree = build_tree(items, CATEGORIES)

    assert shape(tree) == [
        ("Tools", [], [("Hand tools", ["Hammer"], []), ("Power tools", ["Drill"], [])]),
        ("Uncategorized", ["Loose screws"], []),
    ]
    # Garden has no items anywhere below it
    assert all(node.name != "Garden" for _, node in iter_nodes(tree))


def test_totals_roll_up_through_ancestors():
    items = [
        item(10, "Hammer", 2, quantity=10, cost_price=5, profit=20),
        item(11, "Drill", 3, quantity=2, cost_price=50, profit=30),
    ]

    tools = build_tree(items, CATEGORIES)[0]

    assert tools.total_cost == Decimal("150")
    assert tools.total_profit == Decimal("50")
    assert [child.total_cost for child in tools.children] == [Decimal("50"), Decimal("100")]


def test_redacted_fields_count_as_zero():
    items = [item(10, "Hammer", 2, quantity=10), item(11, "Drill", 3, quantity=2, cost_price=50)]

    tools = build_tree(items, CATEGORIES)[0]

    assert tools.total_cost == Decimal("100")
    assert tools.total_profit == Decimal("0")


def test_rebuild_is_identical():
    items = [item(10, "Hammer", 2, cost_price=1), item(11, "Rake", 4, cost_price=2), item(12, "Tape")]

    first = build_tree(items, CATEGORIES)
    second = build_tree(items, CATEGORIES)

    assert first == second


def test_children_sorted_by_name_with_uncategorized_last():
    categories = [category(1, "zeta"), category(2, "Alpha"), category(3, "beta")]
    items = [item(1, "a", 1), item(2, "b"), item(3, "c", 2), item(4, "d", 3)]

    names = [node.name for node in build_tree(items, categories)]

    assert names == ["Alpha", "beta", "zeta", "Uncategorized"]


def test_unknown_category_goes_to_uncategorized():
    tree = build_tree([item(1, "Orphan", category_id=99)], CATEGORIES)

    assert [node.id for node in tree] == [UNCATEGORIZED_ID]
    assert tree[0].items[0]["name"] == "Orphan"


def test_dangling_or_foreign_parent_becomes_root():
    categories = [category(5, "Lost", parent_id=42), category(6, "Borrowed", parent_id=7), category(7, "Theirs", company_id=2)]
    items = [item(1, "a", 5), item(2, "b", 6)]

    tree = build_tree(items, categories)

    assert shape(tree) == [("Borrowed", ["b"], []), ("Lost", ["a"], [])]
    assert all(node.parent_id is None for node in tree)


def test_parent_cycle_is_broken():
    categories = [category(1, "A", parent_id=2), category(2, "B", parent_id=1)]
    items = [item(1, "in a", 1), item(2, "in b", 2)]

    tree = build_tree(items, categories)

    seen = [node.name for _, node in iter_nodes(tree)]
    assert sorted(seen) == ["A", "B"]
    assert len(tree) == 1
    assert tree[0].total_cost == Decimal("0")
    assert tree[0].parent_id is None
    assert tree[0].children[0].parent_id == tree[0].id


def test_self_parent_is_a_root():
    tree = build_tree([item(1, "x", 1)], [category(1, "Self", parent_id=1)])
    assert shape(tree) == [("Self", ["x"], [])]
    assert tree[0].parent_id is None


def test_deep_chain_does_not_recurse():
    depth = 5000
    categories = [category(i, f"c{i}", parent_id=i - 1 if i > 1 else None) for i in range(1, depth + 1)]
    tree = build_tree([item(1, "deep", depth, cost_price=1)], categories)

    levels = [level for level, _ in iter_nodes(tree)]
    assert levels[-1] == depth - 1
    assert tree[0].total_cost == Decimal("1")
    assert tree_depth(tree) == depth


def test_tree_depth():
    assert tree_depth([]) == 0
    tree = build_tree([item(10, "Hammer", 2), item(11, "Loose")], CATEGORIES)
    assert tree_depth(tree) == 2


def test_filter_keeps_path_to_matching_item():
    items = [item(10, "Hammer", 2, sku="H-1"), item(11, "Drill", 3), item(12, "Rake", 4)]
    tree = build_tree(items, CATEGORIES)

    filtered = filter_tree(tree, "hammer")

    assert shape(filtered) == [("Tools", [], [("Hand tools", ["Hammer"], [])])]


def test_filter_matches_sku():
    items = [item(10, "Hammer", 2, sku="HX-77"), item(11, "Mallet", 2, sku="M-1")]

    filtered = filter_tree(build_tree(items, CATEGORIES), "hx-7")

    assert shape(filtered) == [("Tools", [], [("Hand tools", ["Hammer"], [])])]


def test_filter_by_category_name_keeps_all_its_items():
    items = [item(10, "Hammer", 2), item(11, "Saw", 2), item(12, "Drill", 3)]

    filtered = filter_tree(build_tree(items, CATEGORIES), "HAND")

    assert shape(filtered) == [("Tools", [], [("Hand tools", ["Hammer", "Saw"], [])])]


def test_filter_keeps_unfiltered_totals():
    items = [item(10, "Hammer", 2, quantity=1, cost_price=10), item(11, "Saw", 2, quantity=1, cost_price=5)]
    tree = build_tree(items, CATEGORIES)

    filtered = filter_tree(tree, "saw")

    assert filtered[0].total_cost == Decimal("15")
    assert filtered[0].children[0].items == [items[1]]


def test_filter_does_not_touch_input():
    items = [item(10, "Hammer", 2), item(11, "Rake", 4)]
    tree = build_tree(items, CATEGORIES)
    before = shape(tree)

    filter_tree(tree, "rake")

    assert shape(tree) == before


def test_empty_filter_returns_full_copy():
    tree = build_tree([item(10, "Hammer", 2)], CATEGORIES)

    copy = filter_tree(tree, "  ")

    assert copy == tree
    assert copy[0] is not tree[0]


def test_filter_without_matches():
    tree = build_tree([item(10, "Hammer", 2)], CATEGORIES)
    assert filter_tree(tree, "nothing") == []


def test_toggle_collapsed():
    state = toggle_collapsed(frozenset(), 3)
    assert state == frozenset({3})
    assert toggle_collapsed(state, 3) == frozenset()


def test_mark_collapsed_accepts_string_ids():
    tree = build_tree([item(10, "Hammer", 2), item(11, "Loose")], CATEGORIES)

    mark_collapsed(tree, ["2", UNCATEGORIZED_ID])

    flags = {node.name: node.collapsed for _, node in iter_nodes(tree)}
    assert flags == {"Tools": False, "Hand tools": True, "Uncategorized": True}


def test_low_stock_items():
    items = [
        item(1, "low", quantity=2, min_stock_level=2),
        item(2, "fine", quantity=3, min_stock_level=2),
        item(3, "no level", quantity=0, min_stock_level=None),
    ]
    assert [i["name"] for i in low_stock_items(items)] == ["low"]
