import itertools
import unittest

from netsim.core import TopologyKind, find_link, node_index
from netsim.reachability import build_adjacency, find_path, reachable_set
from netsim.topology import generate


def _hop_distances(source, adj):
    # Independent relaxation-based distances for cross-checking BFS.
    dist = {source: 0}
    changed = True
    while changed:
        changed = False
        for u, nbrs in adj.items():
            if u not in dist:
                continue
            for v in nbrs:
                if dist.get(v, 10 ** 9) > dist[u] + 1:
                    dist[v] = dist[u] + 1
                    changed = True
    return dist


def _set_link(links, a, b, active):
    find_link(links, a, b).active = active


class TestAdjacency(unittest.TestCase):
    def test_inactive_link_and_node_are_excluded(self):
        nodes, links = generate(TopologyKind.RING)
        _set_link(links, "n0", "n1", False)
        node_index(nodes)["n3"].active = False
        adj = build_adjacency(nodes, links)

        self.assertNotIn("n1", adj["n0"])
        self.assertNotIn("n0", adj["n1"])
        self.assertEqual(adj["n3"], [])
        self.assertNotIn("n3", adj["n2"])
        self.assertNotIn("n3", adj["n4"])
        self.assertEqual(adj["n5"], ["n4", "n0"])

    def test_every_node_has_an_entry(self):
        nodes, links = generate(TopologyKind.BUS)
        adj = build_adjacency(nodes, links)
        self.assertEqual(set(adj), {n.id for n in nodes})


class TestFindPath(unittest.TestCase):
    def assertValidPath(self, path, adj):
        self.assertEqual(len(path), len(set(path)), "path repeats a node")
        for a, b in zip(path, path[1:]):
            self.assertIn(b, adj[a])

    def test_paths_are_shortest_everywhere(self):
        for kind in TopologyKind:
            nodes, links = generate(kind)
            adj = build_adjacency(nodes, links)
            devices = [n.id for n in nodes if n.is_device]
            for s, t in itertools.permutations(devices, 2):
                path = find_path(s, t, nodes, adj)
                self.assertIsNotNone(path)
                self.assertEqual(path[0], s)
                self.assertEqual(path[-1], t)
                self.assertValidPath(path, adj)
                self.assertEqual(len(path) - 1, _hop_distances(s, adj)[t], f"{kind} {s}->{t}")

    def test_shortest_path_under_failures(self):
        nodes, links = generate(TopologyKind.RING)
        _set_link(links, "n1", "n2", False)
        adj = build_adjacency(nodes, links)
        path = find_path("n0", "n3", nodes, adj)
        self.assertEqual(path, ["n0", "n5", "n4", "n3"])
        self.assertEqual(len(path) - 1, _hop_distances("n0", adj)["n3"])

    def test_ring_prefers_clockwise_on_tie(self):
        nodes, links = generate(TopologyKind.RING)
        adj = build_adjacency(nodes, links)
        self.assertEqual(find_path("n0", "n3", nodes, adj), ["n0", "n1", "n2", "n3"])

    def test_inactive_sender_fails_fast(self):
        nodes, links = generate(TopologyKind.MESH)
        adj = build_adjacency(nodes, links)
        node_index(nodes)["n0"].active = False
        # adjacency computed before the failure still offers edges; sender check wins
        self.assertIsNone(find_path("n0", "n1", nodes, adj))
        self.assertEqual(reachable_set("n0", nodes, adj), set())

    def test_unknown_sender_is_unreachable(self):
        nodes, links = generate(TopologyKind.MESH)
        adj = build_adjacency(nodes, links)
        self.assertIsNone(find_path("zz", "n1", nodes, adj))

    def test_removing_a_path_link_changes_the_path(self):
        for kind in (TopologyKind.RING, TopologyKind.MESH, TopologyKind.BUS, TopologyKind.STAR):
            nodes, links = generate(kind)
            adj = build_adjacency(nodes, links)
            original = find_path("n0", "n3", nodes, adj)
            for a, b in zip(original, original[1:]):
                link = find_link(links, a, b)
                link.active = False
                new_adj = build_adjacency(nodes, links)
                again = find_path("n0", "n3", nodes, new_adj)
                self.assertNotEqual(again, original)
                if again is not None:
                    self.assertValidPath(again, new_adj)
                link.active = True


class TestTopologyProperties(unittest.TestCase):
    def test_bus_backbone_break_partitions(self):
        nodes, links = generate(TopologyKind.BUS)
        _set_link(links, "b2", "b3", False)
        adj = build_adjacency(nodes, links)
        left = ["n0", "n1", "n2"]
        right = ["n3", "n4", "n5"]
        for a in left:
            for b in right:
                self.assertIsNone(find_path(a, b, nodes, adj))
                self.assertIsNone(find_path(b, a, nodes, adj))
        self.assertIsNotNone(find_path("n0", "n2", nodes, adj))
        self.assertIsNotNone(find_path("n3", "n5", nodes, adj))

    def test_bus_terminator_failure_does_not_split(self):
        nodes, links = generate(TopologyKind.BUS)
        node_index(nodes)["t_left"].active = False
        adj = build_adjacency(nodes, links)
        self.assertIsNotNone(find_path("n0", "n5", nodes, adj))

    def test_ring_single_cut_keeps_everyone_reachable(self):
        nodes, links = generate(TopologyKind.RING)
        for link in links:
            link.active = False
            adj = build_adjacency(nodes, links)
            for s, t in itertools.permutations([n.id for n in nodes], 2):
                self.assertIsNotNone(find_path(s, t, nodes, adj), f"cut {link.id}: {s}->{t}")
            link.active = True

    def test_ring_two_cuts_can_partition(self):
        nodes, links = generate(TopologyKind.RING)
        _set_link(links, "n0", "n1", False)
        _set_link(links, "n3", "n4", False)
        adj = build_adjacency(nodes, links)
        self.assertIsNone(find_path("n0", "n2", nodes, adj))
        self.assertEqual(reachable_set("n0", nodes, adj), {"n0", "n4", "n5"})

    def test_star_switch_failure_isolates_everyone(self):
        nodes, links = generate(TopologyKind.STAR)
        node_index(nodes)["switch"].active = False
        adj = build_adjacency(nodes, links)
        devices = [n.id for n in nodes if n.is_device]
        for s, t in itertools.permutations(devices, 2):
            self.assertIsNone(find_path(s, t, nodes, adj))

    def test_star_spoke_failure_isolates_one_device(self):
        nodes, links = generate(TopologyKind.STAR)
        _set_link(links, "switch", "n2", False)
        adj = build_adjacency(nodes, links)
        devices = [n.id for n in nodes if n.is_device]
        for s, t in itertools.permutations(devices, 2):
            path = find_path(s, t, nodes, adj)
            if "n2" in (s, t):
                self.assertIsNone(path)
            else:
                self.assertEqual(path, [s, "switch", t])

    def test_mesh_survives_any_single_failure(self):
        nodes, links = generate(TopologyKind.MESH)
        devices = [n.id for n in nodes]

        for link in links:
            link.active = False
            adj = build_adjacency(nodes, links)
            for s, t in itertools.permutations(devices, 2):
                self.assertIsNotNone(find_path(s, t, nodes, adj), f"cut {link.id}")
            link.active = True

        for dead in nodes:
            dead.active = False
            adj = build_adjacency(nodes, links)
            alive = [d for d in devices if d != dead.id]
            for s, t in itertools.permutations(alive, 2):
                self.assertEqual(len(find_path(s, t, nodes, adj)), 2)
            dead.active = True


if __name__ == "__main__":
    unittest.main()
