"""
Property Tests for Graph Contracts
Verifies the store, matrix and algorithm invariants over generated graphs.
"""

import pytest
from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from netgraph.contracts.graph import Edge, Node
from netgraph.core.topology import density, detect_communities, shortest_path
from netgraph.ingestion import import_matrix
from netgraph.matrix import AdjacencyMatrixView, compute_matrix
from netgraph.store import GraphStore, StoreConfig

# =============================================================================
# STRATEGIES (Generators)
# =============================================================================

@composite
def node_sets(draw, min_size=1, max_size=8):
    """Generates nodes with unique ids."""
    ids = draw(st.lists(
        st.text(alphabet="abcdefghij", min_size=1, max_size=3),
        min_size=min_size, max_size=max_size, unique=True
    ))
    return [Node(node_id=node_id, label=f"Label {node_id}") for node_id in ids]


@composite
def graphs(draw, min_nodes=1, max_nodes=8):
    """Generates (nodes, edges) where every endpoint is a known node."""
    nodes = draw(node_sets(min_size=min_nodes, max_size=max_nodes))
    ids = [node.node_id for node in nodes]
    pairs = [(a, b) for a in ids for b in ids if a != b]
    chosen = draw(st.lists(st.sampled_from(pairs), unique=True, max_size=20)) if pairs else []
    weights = st.floats(min_value=0.0, max_value=100.0, allow_nan=False)
    edges = [Edge(source=a, target=b, weight=draw(weights)) for a, b in chosen]
    return nodes, edges


@composite
def stores(draw, directed=None):
    """Generates a populated GraphStore in either direction mode."""
    if directed is None:
        directed = draw(st.booleans())
    nodes, edges = draw(graphs())
    store = GraphStore(StoreConfig(directed=directed))
    store.replace_all(nodes, edges)
    return store


# =============================================================================
# STORE INVARIANTS
# =============================================================================

class TestStoreInvariants:

    @given(stores(), st.data())
    def test_toggle_twice_restores_edge_count(self, store, data):
        """toggle(toggle(g, a, b)) leaves the a-b edge count unchanged."""
        ids = store.snapshot().node_ids
        a = data.draw(st.sampled_from(ids))
        b = data.draw(st.sampled_from(ids))
        before = store.count_edges(a, b)

        store.toggle_edge(a, b)
        store.toggle_edge(a, b)

        assert store.count_edges(a, b) == before

    @given(stores(), st.data())
    def test_remove_node_cascades(self, store, data):
        victim = data.draw(st.sampled_from(store.snapshot().node_ids))

        store.remove_node(victim)

        for edge in store.snapshot().edges:
            assert victim not in (edge.source, edge.target)

    @given(stores())
    def test_no_self_loops_or_dangling_edges(self, store):
        snapshot = store.snapshot()
        ids = set(snapshot.node_ids)
        for edge in snapshot.edges:
            assert edge.source != edge.target
            assert edge.source in ids and edge.target in ids

    @given(stores(), st.text(max_size=3))
    def test_failed_add_changes_nothing(self, store, label):
        before = store.snapshot()
        existing = before.node_ids[0]

        result = store.add_node(label, node_id=existing)

        assert result.is_failure
        assert store.snapshot() == before


# =============================================================================
# MATRIX INVARIANTS
# =============================================================================

class TestMatrixInvariants:

    @given(graphs())
    def test_exact_edge_correspondence(self, graph):
        """matrix[i][j] == 1 iff the edge (N[i], N[j]) exists."""
        nodes, edges = graph
        matrix = compute_matrix(nodes, edges)
        keys = {edge.key for edge in edges}

        for i, source in enumerate(nodes):
            for j, target in enumerate(nodes):
                expected = 1.0 if (source.node_id, target.node_id) in keys else 0.0
                assert matrix.cell(i, j) == expected

    @given(graphs(), st.booleans(), st.booleans())
    def test_diagonal_is_zero(self, graph, symmetric, weighted):
        nodes, edges = graph
        matrix = compute_matrix(nodes, edges, symmetric=symmetric, weighted=weighted)
        assert all(matrix.cell(i, i) == 0.0 for i in range(matrix.size))

    @given(stores(directed=False))
    def test_undirected_matrix_is_symmetric(self, store):
        grid = AdjacencyMatrixView(store).compute().to_numpy()
        assert (grid == grid.T).all()


# =============================================================================
# ALGORITHM INVARIANTS
# =============================================================================

class TestAlgorithmInvariants:

    @given(graphs(), st.data())
    def test_path_to_self(self, graph, data):
        nodes, edges = graph
        node = data.draw(st.sampled_from(nodes))

        result = shortest_path(nodes, edges, node.node_id, node.node_id)

        assert result.value.path == (node.node_id,)
        assert result.value.total_weight == 0.0

    @given(graphs(min_nodes=2), st.data())
    def test_path_follows_existing_edges(self, graph, data):
        nodes, edges = graph
        start = data.draw(st.sampled_from(nodes)).node_id
        end = data.draw(st.sampled_from(nodes)).node_id

        result = shortest_path(nodes, edges, start, end)

        if result.is_success:
            path = result.value.path
            assert path[0] == start and path[-1] == end
            for a, b in zip(path, path[1:]):
                assert any(edge.connects(a, b) for edge in edges)

    @given(graphs())
    def test_every_node_gets_a_community(self, graph):
        nodes, edges = graph
        labels = detect_communities(nodes, edges)

        assert set(labels) == {node.node_id for node in nodes}
        assert sorted(set(labels.values())) == list(range(len(set(labels.values()))))

    @pytest.mark.parametrize("edge_count,expected", [(6, 1.0), (0, 0.0)])
    def test_density_of_four_nodes(self, edge_count, expected):
        nodes = [Node(c, c) for c in "ABCD"]
        pairs = [("A", "B"), ("A", "C"), ("A", "D"), ("B", "C"), ("B", "D"), ("C", "D")]
        edges = [Edge(a, b) for a, b in pairs[:edge_count]]
        assert density(nodes, edges) == expected


# =============================================================================
# IMPORT INVARIANTS
# =============================================================================

class TestImportInvariants:

    @settings(max_examples=50)
    @given(st.integers(min_value=1, max_value=6).flatmap(
        lambda n: st.lists(
            st.lists(st.integers(min_value=0, max_value=5), min_size=n, max_size=n),
            min_size=n, max_size=n
        )
    ))
    def test_imported_edges_clear_threshold(self, matrix):
        result = import_matrix(matrix)

        assert result.is_success
        for edge in result.value.edges:
            assert edge.source != edge.target
            assert edge.weight >= 2.0
