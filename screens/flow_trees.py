"""
Flow tree reconstruction from crawled navigation edges.

Routes are grouped by flow name; only same-flow edges become tree edges.
Trees are expanded with an explicit worklist so the depth cap and the
per-walk visited set are plain data, not call-stack state.
"""

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence

UNGROUPED = "Ungrouped"
MAX_TREE_DEPTH = 4   # root + 3 levels

_AFFIX_SEPARATOR = r"\s*[-–—|]\s*"


@dataclass(frozen=True)
class RouteRecord:
    id: Hashable
    name: str
    flow_name: Optional[str] = None
    path: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def as_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "flow_name": self.flow_name,
        }
        data.update(self.extra)
        return data


@dataclass(frozen=True)
class ConnectionRecord:
    source_route_id: Hashable
    destination_route_id: Hashable


@dataclass
class TreeNode:
    route: RouteRecord
    depth: int = 0
    children: List["TreeNode"] = field(default_factory=list)

    @property
    def id(self):
        return self.route.id

    def to_dict(self) -> Dict[str, Any]:
        data = self.route.as_dict()
        data["children"] = [child.to_dict() for child in self.children]
        return data


def flow_name_of(route: RouteRecord) -> str:
    return route.flow_name or UNGROUPED


def _unique_routes(routes: Iterable[RouteRecord]) -> Dict[Hashable, RouteRecord]:
    by_id: Dict[Hashable, RouteRecord] = {}
    for route in routes:
        by_id.setdefault(route.id, route)
    return by_id


def connected_route_ids(
    routes_by_id: Dict[Hashable, RouteRecord],
    connections: Iterable[ConnectionRecord],
) -> set:
    connected = set()
    for conn in connections:
        src, dst = conn.source_route_id, conn.destination_route_id
        if src == dst or src not in routes_by_id or dst not in routes_by_id:
            continue
        connected.add(src)
        connected.add(dst)
    return connected


def _same_flow_adjacency(
    routes_by_id: Dict[Hashable, RouteRecord],
    connections: Iterable[ConnectionRecord],
    eligible: set,
):
    children: Dict[Hashable, List[Hashable]] = defaultdict(list)
    seen_edges = set()
    has_parent = set()

    for conn in connections:
        src, dst = conn.source_route_id, conn.destination_route_id
        if src == dst or src not in eligible or dst not in eligible:
            continue
        if flow_name_of(routes_by_id[src]) != flow_name_of(routes_by_id[dst]):
            continue
        if (src, dst) in seen_edges:
            continue
        seen_edges.add((src, dst))
        children[src].append(dst)
        has_parent.add(dst)

    return children, has_parent


def _expand(
    root: RouteRecord,
    children: Dict[Hashable, List[Hashable]],
    routes_by_id: Dict[Hashable, RouteRecord],
    max_depth: int,
) -> TreeNode:
    # Frames are (route_id, parent_node, depth). Children are pushed in
    # reverse so they pop in edge order, giving a preorder walk: a route
    # reachable from two siblings lands under the first one expanded.
    root_node = TreeNode(route=root, depth=0)
    visited = {root.id}
    stack = [(child_id, root_node, 1) for child_id in reversed(children.get(root.id, []))]

    while stack:
        route_id, parent, depth = stack.pop()
        if route_id in visited or depth >= max_depth:
            continue
        visited.add(route_id)

        node = TreeNode(route=routes_by_id[route_id], depth=depth)
        parent.children.append(node)

        if depth + 1 < max_depth:
            for child_id in reversed(children.get(route_id, [])):
                if child_id not in visited:
                    stack.append((child_id, node, depth + 1))

    return root_node


def build_flow_trees(
    routes: Sequence[RouteRecord],
    connections: Sequence[ConnectionRecord],
    max_depth: int = MAX_TREE_DEPTH,
) -> Dict[str, List[TreeNode]]:
    """Build, per flow name, the forest of primary navigation trees.

    Routes without any connection are left out; callers list them flat.
    Flow order and root order follow the order of ``routes``.
    """
    routes_by_id = _unique_routes(routes)
    eligible = connected_route_ids(routes_by_id, connections)
    children, has_parent = _same_flow_adjacency(routes_by_id, connections, eligible)

    members: Dict[str, List[RouteRecord]] = {}
    for route in routes_by_id.values():
        if route.id in eligible:
            members.setdefault(flow_name_of(route), []).append(route)

    trees: Dict[str, List[TreeNode]] = {}
    for flow, flow_routes in members.items():
        roots = [r for r in flow_routes if r.id not in has_parent]
        if not roots:
            # fully cyclic flow
            roots = [flow_routes[0]]
        trees[flow] = [_expand(root, children, routes_by_id, max_depth) for root in roots]
    return trees


def build_flow_breadcrumbs(
    routes: Sequence[RouteRecord],
    connections: Sequence[ConnectionRecord],
) -> Dict[str, str]:
    """Map each flow to the flow most of its incoming cross-flow edges come from.

    Ties go to the lexicographically smallest source flow name.
    """
    routes_by_id = _unique_routes(routes)
    counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    seen_edges = set()

    for conn in connections:
        src = routes_by_id.get(conn.source_route_id)
        dst = routes_by_id.get(conn.destination_route_id)
        if src is None or dst is None:
            continue
        if (src.id, dst.id) in seen_edges:
            continue
        seen_edges.add((src.id, dst.id))
        src_flow, dst_flow = flow_name_of(src), flow_name_of(dst)
        if src_flow == dst_flow:
            continue
        counts[dst_flow][src_flow] += 1

    breadcrumbs = {}
    for dst_flow, sources in counts.items():
        best, _ = min(sources.items(), key=lambda item: (-item[1], item[0]))
        breadcrumbs[dst_flow] = best
    return breadcrumbs


def clean_screen_name(name: str, flow_name: Optional[str]) -> str:
    """Drop a redundant flow-name prefix or suffix from a screen name.

    ``clean_screen_name("Checkout - Payment", "Checkout") == "Payment"``
    """
    if not name or not flow_name or not flow_name.strip():
        return name
    flow = re.escape(flow_name.strip())

    cleaned = re.sub(rf"{_AFFIX_SEPARATOR}{flow}\s*$", "", name, count=1, flags=re.IGNORECASE)
    if cleaned == name:
        cleaned = re.sub(rf"^\s*{flow}{_AFFIX_SEPARATOR}", "", name, count=1, flags=re.IGNORECASE)
    if cleaned == name:
        return name

    cleaned = cleaned.strip()
    return cleaned or name


def route_ancestry(trees: Dict[str, List[TreeNode]]) -> Dict[Hashable, List[str]]:
    """Ancestor display names (root first) for every route placed in a tree."""
    ancestry: Dict[Hashable, List[str]] = {}
    for flow, roots in trees.items():
        stack = [(root, []) for root in reversed(roots)]
        while stack:
            node, chain = stack.pop()
            ancestry.setdefault(node.id, chain)
            label = clean_screen_name(node.route.name, flow)
            for child in reversed(node.children):
                stack.append((child, chain + [label]))
    return ancestry
