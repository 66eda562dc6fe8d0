from typing import Any, Dict, Iterable, List, Tuple

from django.db.models import Count

from .flow_trees import (
    ConnectionRecord,
    RouteRecord,
    build_flow_breadcrumbs,
    build_flow_trees,
    route_ancestry,
)
from .models import Connection, Flow, Route


def route_record(route: Route) -> RouteRecord:
    return RouteRecord(
        id=route.id,
        name=route.name,
        flow_name=route.flow_name or None,
        path=route.path,
        extra={"product_id": route.product_id},
    )


def load_product_graph(product_id: int) -> Tuple[List[RouteRecord], List[ConnectionRecord]]:
    routes = [
        route_record(r)
        for r in Route.objects.filter(product_id=product_id, status="a").order_by("created_on", "id")
    ]
    connections = [
        ConnectionRecord(source_route_id=src, destination_route_id=dst)
        for src, dst in Connection.objects.filter(product_id=product_id)
        .order_by("id")
        .values_list("source_route_id", "destination_route_id")
    ]
    return routes, connections


def flow_tree_payload(product_id: int) -> Dict[str, Any]:
    routes, connections = load_product_graph(product_id)
    trees = build_flow_trees(routes, connections)
    return {
        "trees": {flow: [node.to_dict() for node in roots] for flow, roots in trees.items()},
        "breadcrumbs": build_flow_breadcrumbs(routes, connections),
        "ancestry": {str(route_id): chain for route_id, chain in route_ancestry(trees).items()},
    }


def build_flow_hierarchy(
    flows: Iterable[Dict[str, Any]],
    route_counts: Dict[Any, int],
) -> List[Dict[str, Any]]:
    """Nest flow metadata rows by ``parent_flow_id``.

    ``flows`` must already be ordered by (level, order_index). A flow whose
    parent is not in ``flows`` is dropped. ``screenCount`` of a node counts its
    own routes plus every descendant's.
    """
    rows = list(flows)
    nodes = {row["id"]: dict(row, children=[], screenCount=0) for row in rows}

    roots = []
    for row in rows:
        node = nodes[row["id"]]
        parent_id = row.get("parent_flow_id")
        if parent_id:
            parent = nodes.get(parent_id)
            if parent is not None:
                parent["children"].append(node)
        else:
            roots.append(node)

    # post-order accumulation without recursion
    for root in roots:
        stack = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                node["screenCount"] = route_counts.get(node["id"], 0) + sum(
                    child["screenCount"] for child in node["children"]
                )
                continue
            stack.append((node, True))
            for child in node["children"]:
                stack.append((child, False))
    return roots


def flow_hierarchy_payload(product_id: int) -> List[Dict[str, Any]]:
    flows = (
        Flow.objects.filter(product_id=product_id, step_count__gt=0)
        .order_by("level", "order_index", "id")
        .values("id", "name", "parent_flow_id", "level", "order_index", "step_count")
    )
    route_counts = dict(
        Route.objects.filter(product_id=product_id, flow__isnull=False)
        .values("flow_id")
        .annotate(total=Count("id"))
        .values_list("flow_id", "total")
    )
    return build_flow_hierarchy(flows, route_counts)
