# Copyright 2025-2026 Gregorio Elias Roecker Momm and nxCypher contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Result converter for Bolt records.

Folds the graph entities found in RECORD values (Node, Relationship and
Path, nested anywhere inside lists and maps) into a NetworkX graph.
Nodes are keyed by element id when the server sends one, else by id.
Labels and relationship types are kept in the ``__labels__`` attribute,
next to the entity properties:

    G.nodes["4:abc:0"]  ->  {'name': 'Alice', '__labels__': {'Person'}}
"""

from typing import Any, Hashable, Iterable, Optional

import networkx as nx

from .structures import Node, Path, Relationship, UnboundRelationship


LABELS_ATTR = '__labels__'


class GraphConverter:
    """
    Accumulates records into a networkx.MultiDiGraph.

    Usage:
        converter = GraphConverter()
        conn.run("MATCH p=(a)-[r]->(b) RETURN p").pull()
        for response in conn.get_responses():
            if response.is_record:
                converter.add_record(response.content)
        G = converter.to_graph()
    """

    def __init__(self, graph: Optional[nx.MultiDiGraph] = None):
        self._graph = graph if graph is not None else nx.MultiDiGraph()

    def add_record(self, values: Iterable[Any]) -> None:
        """Add every graph entity found in one record's values."""
        for value in values:
            self._add_value(value)

    def to_graph(self) -> nx.MultiDiGraph:
        """Get the graph built so far."""
        return self._graph

    def _add_value(self, value: Any) -> None:
        if isinstance(value, Node):
            self._add_node(value)
        elif isinstance(value, Relationship):
            self._add_relationship(value)
        elif isinstance(value, Path):
            self._add_path(value)
        elif isinstance(value, dict):
            for v in value.values():
                self._add_value(v)
        elif isinstance(value, (list, tuple)):
            for v in value:
                self._add_value(v)

    def _add_node(self, node: Node) -> Hashable:
        key = _key(node.element_id, node.id)
        self._graph.add_node(key)
        attrs = self._graph.nodes[key]
        attrs.update(node.properties)
        attrs[LABELS_ATTR] = set(node.labels)
        return key

    def _add_edge(self, start: Hashable, end: Hashable, rel) -> None:
        key = _key(rel.element_id, rel.id)
        self._graph.add_edge(start, end, key=key)
        attrs = self._graph.edges[start, end, key]
        attrs.update(rel.properties)
        attrs[LABELS_ATTR] = {rel.type}

    def _add_relationship(self, rel: Relationship) -> None:
        start = _key(rel.start_node_element_id, rel.start_node_id)
        end = _key(rel.end_node_element_id, rel.end_node_id)
        self._add_edge(start, end, rel)

    def _add_path(self, path: Path) -> None:
        """
        Walk the path. indices alternate a 1-based relationship index
        (negative when traversed against its direction) and a node index.
        """
        keys = [self._add_node(node) for node in path.nodes]
        if not keys:
            return
        previous = keys[0]
        for i in range(0, len(path.indices) - 1, 2):
            rel_index, node_index = path.indices[i], path.indices[i + 1]
            rel: UnboundRelationship = path.rels[abs(rel_index) - 1]
            current = keys[node_index]
            if rel_index > 0:
                self._add_edge(previous, current, rel)
            else:
                self._add_edge(current, previous, rel)
            previous = current


def _key(element_id: Optional[str], entity_id: int) -> Hashable:
    return element_id if element_id is not None else entity_id
