"""Cross-project dependency graph built from related_projects declarations."""

from __future__ import annotations

import networkx as nx

from jumble.workspace.discovery import ProjectBundle


def build_dependency_graph(projects: dict[str, ProjectBundle]) -> nx.DiGraph:
    """Build a directed graph where an edge A -> B means "A depends on B".

    Edges come from A's ``upstream`` list and from B's ``downstream`` list.
    Names that are not discovered projects still become nodes, marked with
    ``external=True``.
    """
    G = nx.DiGraph()
    for name in sorted(projects):
        G.add_node(name, external=False)

    def _ensure(node: str) -> None:
        if node not in G:
            G.add_node(node, external=True)

    for name in sorted(projects):
        meta = projects[name].metadata
        for dep in meta.upstream:
            _ensure(dep)
            G.add_edge(name, dep)
        for user in meta.downstream:
            _ensure(user)
            G.add_edge(user, name)
    return G


def depends_on(G: nx.DiGraph, name: str) -> list[str]:
    return sorted(G.successors(name))


def used_by(G: nx.DiGraph, name: str) -> list[str]:
    return sorted(G.predecessors(name))


def external_nodes(G: nx.DiGraph) -> list[str]:
    return sorted(n for n, data in G.nodes(data=True) if data.get("external"))


def find_cycles(G: nx.DiGraph) -> list[list[str]]:
    """Return dependency cycles: one per SCC of size >= 2, plus self-loops.

    Each cycle lists its nodes in edge order starting from the smallest
    name, so ``[a, c, b]`` reads a -> c -> b -> a. Cycles are ordered
    largest first.
    """
    cycles = []
    for scc in nx.strongly_connected_components(G):
        if len(scc) < 2:
            continue
        start = min(scc)
        edges = nx.find_cycle(G.subgraph(scc), source=start)
        nodes = [u for u, _ in edges]
        pivot = nodes.index(min(nodes))
        cycles.append(nodes[pivot:] + nodes[:pivot])
    cycles.extend([n] for n in sorted(nx.nodes_with_selfloops(G)))
    cycles.sort(key=lambda c: (-len(c), c))
    return cycles
