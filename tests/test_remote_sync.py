import json
import threading
import time
import unittest
from datetime import date

import httpx

from goal_tracker.services.goals_service import GoalsService
from goal_tracker.services.local_store import LocalStore
from goal_tracker.services.remote_sync import BackgroundSync, RemoteSyncClient, RemoteSyncError
from goal_tracker.services.storage import MemoryStorage

from helpers import make_goal

BASE_URL = "http://remote.test/api"
USER = "user-1"


class RecordingTransport:
    """Collects requests and answers them from a handler."""

    def __init__(self, handler=None):
        self.requests = []
        self.handler = handler or (lambda request: httpx.Response(200, json={"success": True}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def bodies(self, method, path_prefix):
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == method and r.url.path.startswith(path_prefix)
        ]


def refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


class TestRemoteSyncClient(unittest.TestCase):
    def setUp(self) -> None:
        self.transport = RecordingTransport()
        self.remote = RemoteSyncClient(BASE_URL, client=self.transport.client())

    def test_save_goal_payload(self) -> None:
        goal = make_goal("Read")
        self.remote.save_goal(goal, USER, date(2024, 1, 10))

        request = self.transport.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), f"{BASE_URL}/goals")
        body = json.loads(request.content)
        self.assertEqual(body["userId"], USER)
        self.assertEqual(body["date"], "2024-01-10")
        self.assertEqual(body["id"], goal.id)
        self.assertEqual(body["startDate"], "2024-01-10")

    def test_delete_sends_user_in_body(self) -> None:
        self.remote.delete_goal("g1", USER)
        request = self.transport.requests[0]
        self.assertEqual(request.method, "DELETE")
        self.assertEqual(request.url.path, "/api/goals/g1")
        self.assertEqual(json.loads(request.content), {"userId": USER})

    def test_update_goal_uses_put(self) -> None:
        goal = make_goal("Read")
        self.remote.update_goal(goal, USER, "2024-01-10")
        request = self.transport.requests[0]
        self.assertEqual(request.method, "PUT")
        self.assertEqual(request.url.path, f"/api/goals/{goal.id}")

    def test_get_goals_for_date(self) -> None:
        goal = make_goal("Read")
        transport = RecordingTransport(
            lambda request: httpx.Response(200, json={"goals": [goal.model_dump(mode="json")]})
        )
        remote = RemoteSyncClient(BASE_URL, client=transport.client())
        self.assertEqual(remote.get_goals_for_date(USER, date(2024, 1, 10)), [goal])
        self.assertEqual(transport.requests[0].url.path, f"/api/goals/{USER}/2024-01-10")

    def test_user_data_skips_malformed_days(self) -> None:
        good = {"date": "2024-01-10", "goals": [], "totalLoggedHours": 0, "completedGoals": 0}
        transport = RecordingTransport(
            lambda request: httpx.Response(200, json={"data": {"2024-01-10": good, "bad": {"goals": 3}}})
        )
        remote = RemoteSyncClient(BASE_URL, client=transport.client())
        self.assertEqual(list(remote.get_all_user_data(USER)), ["2024-01-10"])

    def test_http_error_status_raises(self) -> None:
        transport = RecordingTransport(lambda request: httpx.Response(500, json={"error": "boom"}))
        remote = RemoteSyncClient(BASE_URL, client=transport.client())
        with self.assertRaises(RemoteSyncError):
            remote.delete_goal("g1", USER)

    def test_transport_error_raises(self) -> None:
        remote = RemoteSyncClient(BASE_URL, client=RecordingTransport(refuse).client())
        with self.assertRaises(RemoteSyncError):
            remote.get_all_user_data(USER)


class TestBackgroundSync(unittest.TestCase):
    def test_failures_are_swallowed_and_logged(self) -> None:
        def explode():
            raise RemoteSyncError("down")

        background = BackgroundSync()
        self.addCleanup(background.shutdown)
        with self.assertLogs("goal_tracker.remote_sync", level="ERROR") as logs:
            background.submit("explode", explode)
            background.wait(5)
        self.assertIn("explode", logs.output[0])

    def test_inline_mode_runs_immediately(self) -> None:
        calls = []
        BackgroundSync(detached=False).submit("append", calls.append, 1)
        self.assertEqual(calls, [1])

    def test_tasks_run_in_submit_order(self) -> None:
        calls = []

        def slow_first():
            time.sleep(0.3)
            calls.append("first")

        background = BackgroundSync()
        self.addCleanup(background.shutdown)
        background.submit("first", slow_first)
        background.submit("second", calls.append, "second")
        background.wait(5)
        self.assertEqual(calls, ["first", "second"])


class SlowFirstDayServer:
    """Keeps the last day document per date; the first day write is slow."""

    def __init__(self):
        self.days = {}
        self.threads = set()
        self._slowed = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.threads.add(threading.current_thread().name)
        if request.url.path == "/api/day-data":
            if not self._slowed:
                self._slowed = True
                time.sleep(0.3)
            body = json.loads(request.content)
            self.days[body["date"]] = body
        return httpx.Response(200, json={"success": True})


class TestDetachedMirroring(unittest.TestCase):
    def build(self):
        server = SlowFirstDayServer()
        remote = RemoteSyncClient(BASE_URL, client=httpx.Client(transport=httpx.MockTransport(server)))
        background = BackgroundSync()
        self.addCleanup(background.shutdown)
        service = GoalsService(LocalStore(MemoryStorage()), remote=remote, background=background)
        return server, service

    def test_slow_earlier_day_write_does_not_win(self) -> None:
        server, service = self.build()
        goal = make_goal("Read")
        service.save_goal(goal, USER)
        service.toggle_complete(goal.id, USER)
        service.background.wait(5)

        self.assertEqual(service.get_day_data("2024-01-10", USER).completedGoals, 1)
        self.assertEqual(server.days["2024-01-10"]["completedGoals"], 1)

    def test_long_goal_uses_one_worker(self) -> None:
        server, service = self.build()
        service.save_goal(make_goal("Year", start="2024-01-01", end="2024-12-31"), USER)
        service.background.wait(10)

        self.assertEqual(len(server.days), 366)
        self.assertEqual(len(server.threads), 1)


class TestGoalsServiceMirroring(unittest.TestCase):
    def build(self, handler=None):
        transport = RecordingTransport(handler)
        remote = RemoteSyncClient(BASE_URL, client=transport.client())
        service = GoalsService(LocalStore(MemoryStorage()), remote=remote,
                               background=BackgroundSync(detached=False))
        return transport, service

    def test_save_mirrors_goal_and_every_day(self) -> None:
        transport, service = self.build()
        goal = make_goal("Span", start="2024-02-01", end="2024-02-03")
        service.save_goal(goal, USER)

        self.assertEqual([b["id"] for b in transport.bodies("POST", "/api/goals")], [goal.id])
        days = transport.bodies("POST", "/api/day-data")
        self.assertEqual([d["date"] for d in days], ["2024-02-01", "2024-02-02", "2024-02-03"])
        self.assertTrue(all(d["userId"] == USER for d in days))

    def test_delete_mirrors_goal_and_days(self) -> None:
        transport, service = self.build()
        goal = make_goal("Span", start="2024-02-01", end="2024-02-02")
        service.save_goal(goal, USER)
        transport.requests.clear()

        service.delete_goal(goal.id, USER)

        self.assertEqual(transport.bodies("DELETE", "/api/goals"), [{"userId": USER}])
        days = transport.bodies("POST", "/api/day-data")
        self.assertEqual([d["goals"] for d in days], [[], []])

    def test_anonymous_saves_stay_local(self) -> None:
        transport, service = self.build()
        service.save_goal(make_goal("Anon"))
        self.assertEqual(transport.requests, [])

    def test_unreachable_remote_does_not_block_local_save(self) -> None:
        transport, service = self.build(refuse)
        goal = make_goal("Offline")
        with self.assertLogs("goal_tracker.remote_sync", level="ERROR"):
            service.save_goal(goal, USER)
        self.assertEqual([g.id for g in service.get_all_goals(USER)], [goal.id])
        self.assertEqual(len(service.get_day_data("2024-01-10", USER).goals), 1)

    def test_hydration_merges_remote_days(self) -> None:
        remote_goal = make_goal("Remote", start="2024-03-01")
        remote_day = {
            "date": "2024-03-01",
            "goals": [remote_goal.model_dump(mode="json")],
            "totalLoggedHours": 0,
            "completedGoals": 0,
        }
        transport, service = self.build(
            lambda request: httpx.Response(200, json={"data": {"2024-03-01": remote_day}})
        )
        service.local_store.save_data(
            {"2024-01-10": service.get_day_data("2024-01-10", USER)}, USER
        )

        self.assertTrue(service.load_user_data_from_remote(USER))

        data = service.get_all_day_data(USER)
        self.assertEqual(sorted(data), ["2024-01-10", "2024-03-01"])
        self.assertEqual([g.id for g in data["2024-03-01"].goals], [remote_goal.id])
        self.assertEqual([g.id for g in service.get_goals_for_date("2024-03-01", USER)], [remote_goal.id])

    def test_hydration_upserts_goals_with_remote_copy_winning(self) -> None:
        transport, service = self.build(lambda request: httpx.Response(200, json={"data": {}}))
        local_only = make_goal("Local only")
        shared = make_goal("Old title", start="2024-03-01")
        service.local_store.save_goals([local_only, shared], USER)

        remote_shared = shared.model_copy(update={"title": "New title", "completed": True})
        remote_day = {
            "date": "2024-03-01",
            "goals": [remote_shared.model_dump(mode="json")],
            "totalLoggedHours": 0,
            "completedGoals": 1,
        }
        transport.handler = lambda request: httpx.Response(200, json={"data": {"2024-03-01": remote_day}})

        self.assertTrue(service.load_user_data_from_remote(USER))

        goals = service.get_all_goals(USER)
        self.assertEqual([g.id for g in goals], [local_only.id, shared.id])
        self.assertEqual(goals[1].title, "New title")
        self.assertFalse(service.toggle_complete(shared.id, USER).completed)

    def test_empty_remote_leaves_local_untouched(self) -> None:
        transport, service = self.build(lambda request: httpx.Response(200, json={"data": {}}))
        service.save_goal(make_goal("Local"))
        before = service.local_store.storage.get_item("goal-tracker-data")
        self.assertFalse(service.load_user_data_from_remote(USER))
        self.assertEqual(service.local_store.storage.get_item("goal-tracker-data"), before)
        self.assertEqual(service.get_all_day_data(USER), {})

    def test_failed_hydration_keeps_local_data(self) -> None:
        transport, service = self.build()
        goal = make_goal("Local")
        service.save_goal(goal, USER)
        transport.handler = refuse

        self.assertFalse(service.load_user_data_from_remote(USER))
        self.assertEqual([g.id for g in service.get_day_data("2024-01-10", USER).goals], [goal.id])


if __name__ == "__main__":
    unittest.main(verbosity=2)
