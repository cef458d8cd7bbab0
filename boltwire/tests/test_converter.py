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

"""Tests for converting records to NetworkX graphs."""

import networkx as nx

from boltwire.converter import GraphConverter
from boltwire.structures import Node, Path, Relationship, UnboundRelationship


ALICE = Node(1, ["Person"], {"name": "Alice"}, element_id="4:db:1")
BOB = Node(2, ["Person"], {"name": "Bob"}, element_id="4:db:2")


class TestGraphConverter:
    """Test folding graph entities into a MultiDiGraph."""

    def test_empty(self):
        G = GraphConverter().to_graph()
        assert isinstance(G, nx.MultiDiGraph)
        assert G.number_of_nodes() == 0

    def test_nodes(self):
        converter = GraphConverter()
        converter.add_record([ALICE, "ignored", 42])
        converter.add_record([BOB])
        G = converter.to_graph()

        assert set(G.nodes) == {"4:db:1", "4:db:2"}
        assert G.nodes["4:db:1"]["name"] == "Alice"
        assert G.nodes["4:db:1"]["__labels__"] == {"Person"}

    def test_legacy_ids(self):
        converter = GraphConverter()
        converter.add_record([Node(5, ["A"], {})])
        assert 5 in converter.to_graph()

    def test_relationship(self):
        rel = Relationship(7, 1, 2, "KNOWS", {"since": 2020}, "5:db:7", "4:db:1", "4:db:2")
        converter = GraphConverter()
        converter.add_record([ALICE, rel, BOB])
        G = converter.to_graph()

        assert G.has_edge("4:db:1", "4:db:2", key="5:db:7")
        edge = G.edges["4:db:1", "4:db:2", "5:db:7"]
        assert edge["__labels__"] == {"KNOWS"}
        assert edge["since"] == 2020

    def test_nested_values(self):
        converter = GraphConverter()
        converter.add_record([{"people": [ALICE, {"friend": BOB}]}])
        assert converter.to_graph().number_of_nodes() == 2

    def test_path_directions(self):
        carol = Node(3, ["Person"], {"name": "Carol"}, element_id="4:db:3")
        knows = UnboundRelationship(10, "KNOWS", {}, element_id="5:db:10")
        likes = UnboundRelationship(11, "LIKES", {}, element_id="5:db:11")
        # (Alice)-[:KNOWS]->(Bob)<-[:LIKES]-(Carol)
        path = Path(nodes=[ALICE, BOB, carol], rels=[knows, likes], indices=[1, 1, -2, 2])

        converter = GraphConverter()
        converter.add_record([path])
        G = converter.to_graph()

        assert G.has_edge("4:db:1", "4:db:2", key="5:db:10")
        assert G.has_edge("4:db:3", "4:db:2", key="5:db:11")
        assert not G.has_edge("4:db:2", "4:db:3")
        assert G.number_of_edges() == 2

    def test_parallel_relationships(self):
        first = Relationship(1, 1, 2, "KNOWS", {})
        second = Relationship(2, 1, 2, "LIKES", {})
        converter = GraphConverter()
        converter.add_record([first, second])
        assert converter.to_graph().number_of_edges(1, 2) == 2
