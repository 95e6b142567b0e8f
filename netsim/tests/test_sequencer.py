import unittest

from netsim.core import ACCEPTED, REJECTED, TopologyKind, find_link, node_index
from netsim.messages import message
from netsim.sequencer import (
    TransmissionPlan,
    TransmissionRun,
    classify,
    packets_at,
    plan_transmission,
    run,
    select_targets,
    validate_request,
)
from netsim.topology import generate


class TestValidateRequest(unittest.TestCase):
    def setUp(self):
        self.nodes, self.links = generate(TopologyKind.BUS)

    def test_valid_request_has_no_problems(self):
        self.assertEqual(validate_request(self.nodes, "n0", "n3"), [])

    def test_unset_identical_and_structural_endpoints_are_refused(self):
        self.assertTrue(validate_request(self.nodes, "", "n3"))
        self.assertTrue(validate_request(self.nodes, "n0", None))
        self.assertIn("Sender and receiver must be different devices.", validate_request(self.nodes, "n2", "n2"))
        problems = validate_request(self.nodes, "b0", "n3")
        self.assertEqual(problems, ["Sender 'b0' is a backbone, not a device."])
        problems = validate_request(self.nodes, "n0", "t_right")
        self.assertEqual(problems, ["Receiver 't_right' is a terminator, not a device."])
        self.assertEqual(validate_request(self.nodes, "n0", "zz"), ["Receiver 'zz' does not exist."])

    def test_invalid_request_is_a_noop(self):
        self.assertIsNone(plan_transmission(TopologyKind.BUS, "n1", "n1", self.nodes, self.links))
        self.assertIsNone(run(TopologyKind.BUS, "n0", "b2", self.nodes, self.links))

        star_nodes, star_links = generate(TopologyKind.STAR)
        self.assertIsNone(run(TopologyKind.STAR, "n0", "switch", star_nodes, star_links))


class TestTargets(unittest.TestCase):
    def test_bus_broadcasts_to_every_other_device(self):
        nodes, _ = generate(TopologyKind.BUS)
        self.assertEqual(select_targets(TopologyKind.BUS, "n2", "n4", nodes), ["n0", "n1", "n3", "n4", "n5"])

    def test_other_topologies_are_unicast(self):
        for kind in (TopologyKind.RING, TopologyKind.STAR, TopologyKind.MESH):
            nodes, _ = generate(kind)
            self.assertEqual(select_targets(kind, "n0", "n2", nodes), ["n2"])


class TestBusBroadcast(unittest.TestCase):
    def test_all_active_bus_delivers_and_marks_only_receiver(self):
        nodes, links = generate(TopologyKind.BUS)
        out = run(TopologyKind.BUS, "n0", "n3", nodes, links)

        self.assertTrue(out.result.success)
        self.assertEqual(out.plan.reached, ["n1", "n2", "n3", "n4", "n5"])
        self.assertEqual(out.statuses, {"n3": ACCEPTED})
        self.assertEqual(out.result.path, ["n0", "b0", "b1", "b2", "b3", "n3"])
        self.assertEqual(out.result.log, message("arrived", "en"))

    def test_schedule_advances_in_lockstep(self):
        nodes, links = generate(TopologyKind.BUS)
        out = run(TopologyKind.BUS, "n0", "n3", nodes, links)

        # longest path n0 -> n5 has 8 nodes
        self.assertEqual(out.plan.tick_count, 8)
        self.assertEqual(len(out.schedule), 8)

        first = out.schedule[0]
        self.assertEqual([p.id for p in first], ["p-0", "p-1", "p-2", "p-3", "p-4"])
        self.assertTrue(all(p.node_id == "n0" for p in first))

        # n0 -> n1 is 4 nodes long, so p-0 is gone from tick 4 on
        self.assertEqual([p.id for p in out.schedule[4]], ["p-1", "p-2", "p-3", "p-4"])
        self.assertEqual([p.node_id for p in out.schedule[4]], ["n2", "b3", "b3", "b3"])

        last = out.schedule[-1]
        self.assertEqual([(p.id, p.node_id) for p in last], [("p-4", "n5")])

        by_id = node_index(nodes)
        self.assertEqual((last[0].x, last[0].y), (by_id["n5"].x, by_id["n5"].y))

    def test_bus_break_leaves_bystanders_unmarked(self):
        nodes, links = generate(TopologyKind.BUS)
        find_link(links, "b2", "b3").active = False
        out = run(TopologyKind.BUS, "n0", "n4", nodes, links)

        self.assertFalse(out.result.success)
        self.assertEqual(out.plan.reached, ["n1", "n2"])
        self.assertEqual(out.statuses, {})
        self.assertEqual(out.result.path, [])
        self.assertEqual(out.result.log, message("dropped", "en"))
        self.assertEqual(len(out.schedule), 5)


class TestUnicast(unittest.TestCase):
    def test_star_switch_down_drops(self):
        nodes, links = generate(TopologyKind.STAR)
        node_index(nodes)["switch"].active = False

        for s, r in (("n0", "n3"), ("n1", "n5"), ("n4", "n2")):
            out = run(TopologyKind.STAR, s, r, nodes, links)
            self.assertFalse(out.result.success)
            self.assertEqual(out.result.path, [])
            self.assertEqual(out.result.log, "Packet dropped. No path found.")
            self.assertEqual(out.statuses, {})

    def test_isolated_sender_shows_degenerate_packet(self):
        nodes, links = generate(TopologyKind.STAR)
        node_index(nodes)["switch"].active = False
        out = run(TopologyKind.STAR, "n0", "n3", nodes, links)

        self.assertEqual(out.plan.paths, [["n0"]])
        self.assertEqual(len(out.schedule), 1)
        self.assertEqual([(p.id, p.node_id) for p in out.schedule[0]], [("p-0", "n0")])

    def test_inactive_sender_shows_degenerate_packet(self):
        nodes, links = generate(TopologyKind.MESH)
        node_index(nodes)["n0"].active = False
        out = run(TopologyKind.MESH, "n0", "n1", nodes, links)
        self.assertFalse(out.result.success)
        self.assertEqual(out.plan.paths, [["n0"]])

    def test_star_delivery(self):
        nodes, links = generate(TopologyKind.STAR)
        out = run(TopologyKind.STAR, "n0", "n3", nodes, links, language="fr")
        self.assertTrue(out.result.success)
        self.assertEqual(out.result.path, ["n0", "switch", "n3"])
        self.assertEqual(out.statuses, {"n3": ACCEPTED})
        self.assertEqual(out.result.log, "Paquet arrivé avec succès !")
        self.assertEqual([[p.node_id for p in f] for f in out.schedule], [["n0"], ["switch"], ["n3"]])

    def test_ring_reroutes_around_cut(self):
        nodes, links = generate(TopologyKind.RING)
        find_link(links, "n0", "n1").active = False
        out = run(TopologyKind.RING, "n0", "n2", nodes, links)
        self.assertTrue(out.result.success)
        self.assertEqual(out.result.path, ["n0", "n5", "n4", "n3", "n2"])

    def test_mesh_unreachable_receiver(self):
        nodes, links = generate(TopologyKind.MESH)
        node_index(nodes)["n2"].active = False
        out = run(TopologyKind.MESH, "n0", "n2", nodes, links)
        self.assertFalse(out.result.success)
        self.assertEqual(out.plan.paths, [["n0"]])


class TestClassification(unittest.TestCase):
    def _plan(self, kind):
        return TransmissionPlan(
            kind=kind,
            sender="n0",
            receiver="n3",
            targets=["n1", "n3"],
            paths=[["n0", "n1"], ["n0", "n3"]],
            reached=["n1", "n3"],
            success=True,
        )

    def test_unicast_marks_non_receiver_rejected(self):
        self.assertEqual(classify(self._plan(TopologyKind.MESH)), {"n1": REJECTED, "n3": ACCEPTED})

    def test_bus_never_marks_rejected(self):
        self.assertEqual(classify(self._plan(TopologyKind.BUS)), {"n3": ACCEPTED})


class TestStepwisePlayback(unittest.TestCase):
    def test_packets_at_matches_schedule(self):
        nodes, links = generate(TopologyKind.BUS)
        plan = plan_transmission(TopologyKind.BUS, "n5", "n0", nodes, links)
        out = run(TopologyKind.BUS, "n5", "n0", nodes, links)
        for tick in range(plan.tick_count):
            self.assertEqual(packets_at(plan, tick, nodes), out.schedule[tick])
        self.assertEqual(packets_at(plan, plan.tick_count, nodes), [])

    def test_run_finishes_after_last_tick(self):
        nodes, links = generate(TopologyKind.MESH)
        plan = plan_transmission(TopologyKind.MESH, "n0", "n1", nodes, links)
        playback = TransmissionRun(plan, nodes)

        self.assertEqual(len(playback.step()), 1)
        self.assertEqual(len(playback.step()), 1)
        self.assertFalse(playback.done)
        self.assertIsNone(playback.step())
        self.assertTrue(playback.done)
        self.assertTrue(playback.result.success)
        self.assertIsNone(playback.step())

    def test_flags_are_snapshotted_at_plan_time(self):
        nodes, links = generate(TopologyKind.STAR)
        plan = plan_transmission(TopologyKind.STAR, "n0", "n1", nodes, links)
        node_index(nodes)["switch"].active = False
        playback = TransmissionRun(plan, nodes)
        while playback.step() is not None:
            pass
        self.assertTrue(playback.result.success)


if __name__ == "__main__":
    unittest.main()
