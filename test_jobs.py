import unittest
from unittest import mock

from nowcapital.models.service.jobs import (
    HANDOVER_STATUS,
    SUB_TASK_FIELD,
    JobKind,
    JobResolver,
    ResolverState,
    handover_target,
)


def fake_client(statuses, results):
    """Client double backed by {task_id: payload} maps."""
    client = mock.Mock()
    client.get_status.side_effect = lambda task_id: statuses[task_id]
    client.get_result.side_effect = lambda task_id: results[task_id]
    return client


HANDOVER = {"status": HANDOVER_STATUS, SUB_TASK_FIELD: "S"}


class TestHandoverSignature(unittest.TestCase):
    def test_detects_sentinel_with_sub_id(self):
        self.assertEqual(handover_target(HANDOVER), "S")

    def test_needs_both_sentinel_and_id(self):
        self.assertEqual(handover_target({"status": HANDOVER_STATUS}), "")
        self.assertEqual(handover_target({"status": "SUCCESS", SUB_TASK_FIELD: "S"}), "")
        self.assertEqual(handover_target(None), "")


class TestJobResolver(unittest.TestCase):
    def test_pending_is_returned_verbatim_without_result_fetch(self):
        pending = {"status": "PENDING", "progress": 40}
        client = fake_client({"A": pending}, {})
        for kind in (JobKind.STATUS, JobKind.RESULT):
            out = JobResolver(client).resolve("A", kind)
            self.assertEqual(out, pending)
        client.get_result.assert_not_called()

    def test_failure_is_data_not_an_exception(self):
        failed = {"status": "FAILURE", "error": "bad inputs"}
        client = fake_client({"A": failed}, {})
        self.assertEqual(JobResolver(client).resolve("A", JobKind.RESULT), failed)

    def test_plain_success_status_kind(self):
        status = {"status": "SUCCESS"}
        result = {"status": "SUCCESS", "result": {"success_rate": 0.91}}
        client = fake_client({"A": status}, {"A": result})
        resolver = JobResolver(client)
        out = resolver.resolve("A", JobKind.STATUS)
        self.assertEqual(out, status)
        self.assertNotIn("original_task_id", out)
        self.assertEqual(
            resolver.history,
            [ResolverState.QUERYING_STATUS, ResolverState.QUERYING_RESULT, ResolverState.DONE],
        )

    def test_plain_success_result_kind_is_unannotated(self):
        result = {"status": "SUCCESS", "result": {"success_rate": 0.91}}
        client = fake_client({"A": {"status": "SUCCESS"}}, {"A": result})
        self.assertEqual(JobResolver(client).resolve("A", JobKind.RESULT), result)

    def test_handover_status_kind(self):
        sub_status = {"status": "PENDING"}
        client = fake_client({"A": {"status": "SUCCESS"}, "S": sub_status}, {"A": HANDOVER})
        out = JobResolver(client).resolve("A", JobKind.STATUS)
        self.assertEqual(out, {"status": "PENDING", "original_task_id": "A", "sub_task_id": "S"})
        self.assertEqual(sub_status, {"status": "PENDING"})

    def test_handover_result_kind(self):
        sub_result = {"status": "SUCCESS", "result": {"p50": [1, 2, 3]}}
        client = fake_client({"A": {"status": "SUCCESS"}}, {"A": HANDOVER, "S": sub_result})
        out = JobResolver(client).resolve("A", JobKind.RESULT)
        self.assertEqual(out["result"], {"p50": [1, 2, 3]})
        self.assertEqual(out["original_task_id"], "A")
        self.assertEqual(out["sub_task_id"], "S")

    def test_sub_job_is_followed_only_one_level(self):
        nested = {"status": HANDOVER_STATUS, SUB_TASK_FIELD: "T"}
        client = fake_client(
            {"A": {"status": "SUCCESS"}, "S": {"status": "SUCCESS"}},
            {"A": HANDOVER, "S": nested},
        )
        resolver = JobResolver(client)
        out = resolver.resolve("A", JobKind.RESULT)
        self.assertEqual(out["sub_task_id"], "S")
        self.assertEqual(out["status"], HANDOVER_STATUS)
        self.assertEqual([c.args[0] for c in client.get_result.call_args_list], ["A", "S"])
        self.assertEqual(resolver.history.count(ResolverState.FOLLOWING_SUBJOB), 1)

    def test_deeper_chains_when_configured(self):
        nested = {"status": HANDOVER_STATUS, SUB_TASK_FIELD: "T"}
        final = {"status": "SUCCESS", "result": {"ok": True}}
        client = fake_client(
            {"A": {"status": "SUCCESS"}, "S": {"status": "SUCCESS"}, "T": {"status": "SUCCESS"}},
            {"A": HANDOVER, "S": nested, "T": final},
        )
        out = JobResolver(client, max_handover_depth=2).resolve("A", JobKind.RESULT)
        self.assertEqual(out["result"], {"ok": True})
        self.assertEqual(out["original_task_id"], "A")
        self.assertEqual(out["sub_task_id"], "T")

    def test_depth_zero_never_follows(self):
        client = fake_client({"A": {"status": "SUCCESS"}}, {"A": HANDOVER})
        self.assertEqual(JobResolver(client, max_handover_depth=0).resolve("A", JobKind.RESULT), HANDOVER)

    def test_repeated_polls_hit_the_service_each_time(self):
        client = fake_client({"A": {"status": "PENDING"}}, {})
        resolver = JobResolver(client)
        resolver.resolve("A")
        resolver.resolve("A")
        self.assertEqual(client.get_status.call_count, 2)


if __name__ == "__main__":
    unittest.main()
