import asyncio
import json
import time
import unittest
from collections import deque
from unittest import mock

from fastapi.testclient import TestClient
from sse_starlette.sse import AppStatus

from seobots import main
from seobots.aggregator import build_site_analysis
from seobots.models import (
    CATEGORIES,
    AnalysisJob,
    CategoryReport,
    JobStatus,
    ProgressEvent,
    status_from_score,
)
from seobots.orchestrator import SiteAnalyzer
from seobots.tests.helpers import StubFetcher, html_page

URL = "https://example.com/"


def stub_site_analyzer():
    fetcher = StubFetcher({URL: html_page(URL, "<h1>Hello</h1>", head="<title>Hello</title>")})
    return SiteAnalyzer(fetcher=fetcher, progress_delay_scale=0)


def read_events(lines):
    """Parse an SSE body into a list of {field: value} dicts."""
    events, current = [], {}
    for line in lines:
        if not line:
            if current:
                events.append(current)
                current = {}
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        current[field] = value[1:] if value.startswith(" ") else value
    if current:
        events.append(current)
    return events


class ServiceTestCase(unittest.TestCase):
    def setUp(self):
        # sse-starlette keeps a process-wide exit event bound to the first loop
        AppStatus.should_exit_event = None
        self.client = TestClient(main.app)

    def tearDown(self):
        main.jobs.clear()
        main.broadcast_channels.clear()
        main.progress_history.clear()


class ServiceTests(ServiceTestCase):
    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_invalid_url_is_rejected(self):
        response = self.client.post("/api/analyze", json={"url": "not a url"})

        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid URL format provided", response.json()["detail"])
        self.assertEqual(main.jobs, {})

    def test_unknown_analysis(self):
        self.assertEqual(self.client.get("/api/analyze/missing").status_code, 404)
        self.assertEqual(self.client.get("/api/analyze/missing/events").status_code, 404)

    def test_analysis_runs_to_completion(self):
        with mock.patch.object(main, "SiteAnalyzer", stub_site_analyzer):
            response = self.client.post("/api/analyze", json={"url": URL})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "started")
        job_id = body["analysis_id"]

        # background task has finished by the time the test client returns
        result = self.client.get(f"/api/analyze/{job_id}").json()
        self.assertEqual(result["status"], JobStatus.COMPLETED.value)
        self.assertEqual(len(result["bots"]), 6)
        self.assertEqual(
            sorted(result["analysis"]["categories"]),
            sorted(["technical", "content", "performance", "mobile", "security", "accessibility"]),
        )
        self.assertEqual(result["analysis"]["url"], URL)

        history = list(main.progress_history[job_id])
        self.assertEqual(history[-1].status, JobStatus.COMPLETED)
        self.assertEqual(history[-1].overall_score, result["analysis"]["overall_score"])
        self.assertTrue(all(event.status == JobStatus.RUNNING for event in history[:-1]))

    def test_internal_failure_marks_job_failed(self):
        analyzer = mock.Mock()
        analyzer.run_analysis = mock.AsyncMock(side_effect=RuntimeError("database exploded"))

        with mock.patch.object(main, "SiteAnalyzer", return_value=analyzer):
            job_id = self.client.post("/api/analyze", json={"url": URL}).json()["analysis_id"]

        result = self.client.get(f"/api/analyze/{job_id}").json()
        self.assertEqual(result["status"], JobStatus.FAILED.value)
        self.assertNotIn("database", result["error_message"])
        self.assertIsNone(result["analysis"])


class EventStreamTests(ServiceTestCase):
    def test_stream_replays_snapshots_and_ends_on_completion(self):
        with mock.patch.object(main, "SiteAnalyzer", stub_site_analyzer):
            job_id = self.client.post("/api/analyze", json={"url": URL}).json()["analysis_id"]

        with self.client.stream("GET", f"/api/analyze/{job_id}/events") as response:
            self.assertEqual(response.status_code, 200)
            events = read_events(response.iter_lines())

        self.assertEqual(len(events), len(main.progress_history[job_id]))
        self.assertTrue(all(event["event"] == "progress" for event in events))

        payloads = [json.loads(event["data"]) for event in events]
        self.assertTrue(all(len(payload["bots"]) == 6 for payload in payloads))
        self.assertTrue(all(payload["status"] == "running" for payload in payloads[:-1]))

        final = payloads[-1]
        self.assertEqual(final["status"], "completed")
        self.assertTrue(all(bot["status"] in ("completed", "error") for bot in final["bots"]))
        result = self.client.get(f"/api/analyze/{job_id}").json()
        self.assertEqual(final["overall_score"], result["analysis"]["overall_score"])

    def test_event_already_replayed_is_not_sent_twice(self):
        job = AnalysisJob(url=URL, status=JobStatus.RUNNING)
        channel = main.BroadcastChannel()
        running = ProgressEvent(status=JobStatus.RUNNING, message="half way")
        done = ProgressEvent(status=JobStatus.COMPLETED, overall_score=80)
        main.jobs[job.id] = (job, time.time())
        main.broadcast_channels[job.id] = channel
        main.progress_history[job.id] = deque([running], maxlen=20)

        subscribe = channel.subscribe

        async def subscribe_while_emitting():
            queue = await subscribe()
            # emitted between subscribing and reading the history
            queue.put_nowait(running)
            queue.put_nowait(done)
            return queue

        async def collect():
            response = await main.analysis_events(job.id)
            return [item async for item in response.body_iterator]

        with mock.patch.object(channel, "subscribe", subscribe_while_emitting):
            items = asyncio.run(collect())

        payloads = [json.loads(item["data"]) for item in items]
        self.assertEqual([p["message"] for p in payloads], ["half way", ""])
        self.assertEqual([p["status"] for p in payloads], ["running", "completed"])
        self.assertEqual(channel.subscribers, set())


class FinalEventTests(unittest.TestCase):
    def test_completed_job_keeps_overall_score(self):
        reports = {
            category: CategoryReport(score=90, status=status_from_score(90))
            for category in CATEGORIES
        }
        job = AnalysisJob(
            url=URL,
            status=JobStatus.COMPLETED,
            analysis=build_site_analysis(URL, reports, crawled_pages=1, base_url="https://example.com"),
        )

        event = main.final_event(job)

        self.assertEqual(event.status, JobStatus.COMPLETED)
        self.assertEqual(event.overall_score, 90)

    def test_failed_job_carries_message(self):
        job = AnalysisJob(url=URL, status=JobStatus.FAILED, error_message="Invalid URL format provided")

        event = main.final_event(job)

        self.assertIsNone(event.overall_score)
        self.assertEqual(event.message, "Invalid URL format provided")


if __name__ == "__main__":
    unittest.main()
