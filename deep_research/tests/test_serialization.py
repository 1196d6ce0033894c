import json
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from click.testing import CliRunner

from deep_research.cli import cli
from deep_research.models import HealthStatus, Post, QueryType, ResearchResult, ResearchStats, Source
from deep_research.serialization import post_to_dict, result_to_dict, result_to_json

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _result() -> ResearchResult:
    post = Post(
        title="Thread",
        url="https://www.reddit.com/r/sales/comments/1/t/",
        source=Source.LINK_AGGREGATOR,
        created_at=NOW,
        engagement_score=12,
        comment_count=4,
        community="sales",
        comment_insights=("A long and useful comment about the topic.",),
    )
    return ResearchResult(
        topic="CRM",
        query_type=QueryType.GENERAL,
        brief="brief",
        sources=[post],
        stats=ResearchStats.from_collections({Source.LINK_AGGREGATOR: [post]}),
        health=[HealthStatus(name="reddit", healthy=True, items_last_fetch=1, latency_ms=12.5)],
        generated_at=NOW,
    )


class SerializationTests(unittest.TestCase):
    def test_post_to_dict(self):
        data = post_to_dict(_result().sources[0])
        self.assertEqual(data["source"], "link_aggregator")
        self.assertEqual(data["createdAt"], "2025-06-15T12:00:00+00:00")
        self.assertEqual(data["commentInsights"], ["A long and useful comment about the topic."])
        self.assertIsNone(data["engagementRatio"])

    def test_result_to_json_round_trips_through_json(self):
        data = json.loads(result_to_json(_result()))
        self.assertEqual(data, result_to_dict(_result()))
        self.assertEqual(data["queryType"], "general")
        self.assertEqual(data["stats"]["perSourceCounts"]["link_aggregator"], 1)
        self.assertEqual(data["stats"]["perSourceCounts"]["video"], 0)
        self.assertEqual(data["health"][0]["name"], "reddit")
        self.assertFalse(data["partial"])


class CliTests(unittest.TestCase):
    def test_partial_run_warns_about_lingering_requests(self):
        result = _result()
        result.partial = True
        with patch("deep_research.cli.load_settings"), patch("deep_research.cli.ResearchPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.return_value = result
            invoked = CliRunner().invoke(cli, ["research", "CRM", "--deadline", "0"])
        self.assertEqual(invoked.exit_code, 0, invoked.output)
        self.assertIn("brief", invoked.output)
        self.assertIn("timeouts expire", invoked.output)
        pipeline_cls.return_value.run.assert_called_once_with("CRM", persona=None, deadline_seconds=0.0)

    def test_classify_prints_type_and_queries(self):
        result = CliRunner().invoke(cli, ["classify", "best CRM"])
        self.assertEqual(result.exit_code, 0, result.output)
        lines = result.output.splitlines()
        self.assertEqual(lines[0], "recommendations")
        self.assertIn("  best best CRM", lines)


if __name__ == "__main__":
    unittest.main()
