import unittest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx

from deep_research.models import Post, QueryType, ResearchStats, Source
from deep_research.synthesis import (
    Synthesizer,
    build_system_prompt,
    build_user_prompt,
    format_fallback_brief,
    format_source_line,
)

NOW = datetime(2025, 6, 15, tzinfo=timezone.utc)


def _posts():
    return [
        Post(
            title="HubSpot vs Pipedrive for a 3 person team",
            url="https://www.reddit.com/r/sales/comments/1/x/",
            source=Source.LINK_AGGREGATOR,
            created_at=NOW,
            engagement_score=120,
            comment_count=40,
            community="sales",
            body="We are choosing between two tools.",
            comment_insights=("Pipedrive is simpler to set up for small teams honestly.",),
        ),
        Post(
            title="Show HN: Open source CRM",
            url="https://example.com/crm",
            source=Source.TECH_NEWS,
            created_at=NOW,
            engagement_score=300,
        ),
    ]


def _stats(posts):
    return ResearchStats.from_collections(
        {
            Source.LINK_AGGREGATOR: [p for p in posts if p.source == Source.LINK_AGGREGATOR],
            Source.TECH_NEWS: [p for p in posts if p.source == Source.TECH_NEWS],
        }
    )


def _fake_factory(text="## Key Themes\n1. CRMs"):
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])
    factory = MagicMock(return_value=client)
    return factory, client


class PromptTests(unittest.TestCase):
    def test_system_prompt_uses_persona_and_query_type(self):
        prompt = build_system_prompt(QueryType.RECOMMENDATIONS, persona="indie founders")
        self.assertIn("for indie founders", prompt)
        self.assertIn("SPECIFIC RECOMMENDATIONS", prompt)
        self.assertIn("marketing and sales teams", build_system_prompt(QueryType.NEWS))

    def test_source_line_includes_community_body_and_comments(self):
        line = format_source_line(1, _posts()[0])
        self.assertTrue(line.startswith('[1] "HubSpot vs Pipedrive for a 3 person team" | Reddit (r/sales)'))
        self.assertIn("Score: 120 | Comments: 40 | 2025-06-15", line)
        self.assertIn("Body: We are choosing", line)
        self.assertIn("- Pipedrive is simpler", line)

    def test_user_prompt_lists_stats_and_sections(self):
        posts = _posts()
        prompt = build_user_prompt("CRM", posts, _stats(posts), QueryType.RECOMMENDATIONS, window_days=30)
        self.assertIn('Research "CRM" (last 30 days).', prompt)
        self.assertIn("1 Reddit threads (120 upvotes, 40 comments)", prompt)
        self.assertIn("1 HN stories (300 points)", prompt)
        self.assertIn("[2] \"Show HN: Open source CRM\" | Hacker News", prompt)
        for heading in ("## Key Themes", "## Sentiment", "## Top Posts", "## Viral Hooks", "## Content Ideas"):
            self.assertIn(heading, prompt)


class FallbackTests(unittest.TestCase):
    def test_zero_posts_still_produces_brief(self):
        brief = format_fallback_brief("nothing here", [], ResearchStats.from_collections({}))
        self.assertTrue(brief.strip())
        self.assertIn('"nothing here"', brief)
        self.assertIn("No sources were found", brief)

    def test_lists_at_most_ten_posts(self):
        posts = [
            Post(title=f"Post {i}", url=f"https://example.com/{i}", source=Source.WEB, created_at=NOW)
            for i in range(15)
        ]
        brief = format_fallback_brief("topic", posts, ResearchStats.from_collections({Source.WEB: posts}))
        self.assertIn("10. **Post 9**", brief)
        self.assertNotIn("Post 10", brief)
        self.assertIn("- Web: 15", brief)


class SynthesizerTests(unittest.TestCase):
    def test_without_credential_uses_fallback(self):
        factory, _ = _fake_factory()
        synthesizer = Synthesizer(api_key=None, model="m", client_factory=factory)
        outcome = synthesizer.synthesize("CRM", _posts(), _stats(_posts()), QueryType.GENERAL)
        self.assertFalse(outcome.synthesized)
        self.assertIn("AI analysis unavailable", outcome.brief)
        factory.assert_not_called()

    def test_call_credential_overrides_configured_key(self):
        factory, client = _fake_factory()
        synthesizer = Synthesizer(api_key="sk-ant-configured", model="claude-test", max_tokens=123, client_factory=factory)
        outcome = synthesizer.synthesize(
            "CRM", _posts(), _stats(_posts()), QueryType.GENERAL, persona="founders", api_key="sk-ant-caller", timeout=5
        )
        self.assertTrue(outcome.synthesized)
        self.assertEqual(outcome.brief, "## Key Themes\n1. CRMs")
        factory.assert_called_once_with(api_key="sk-ant-caller", timeout=5, max_retries=0)
        kwargs = client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude-test")
        self.assertEqual(kwargs["max_tokens"], 123)
        self.assertIn("founders", kwargs["system"])
        self.assertEqual(kwargs["messages"][0]["role"], "user")

    def test_api_error_falls_back(self):
        factory, client = _fake_factory()
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
        outcome = Synthesizer(api_key="k", model="m", client_factory=factory).synthesize(
            "CRM", _posts(), _stats(_posts()), QueryType.GENERAL
        )
        self.assertFalse(outcome.synthesized)
        self.assertIn("## Top Posts", outcome.brief)

    def test_other_sdk_errors_fall_back(self):
        factory, client = _fake_factory()
        client.messages.create.side_effect = anthropic.AnthropicError("boom")
        outcome = Synthesizer(api_key="k", model="m", client_factory=factory).synthesize(
            "CRM", _posts(), _stats(_posts()), QueryType.GENERAL
        )
        self.assertFalse(outcome.synthesized)
        self.assertIn("AI analysis unavailable", outcome.brief)

    def test_unexpected_response_shape_falls_back(self):
        factory, client = _fake_factory()
        client.messages.create.return_value = SimpleNamespace(content=None)
        outcome = Synthesizer(api_key="k", model="m", client_factory=factory).synthesize(
            "CRM", _posts(), _stats(_posts()), QueryType.GENERAL
        )
        self.assertFalse(outcome.synthesized)

    def test_empty_model_text_falls_back(self):
        factory, _ = _fake_factory(text="")
        outcome = Synthesizer(api_key="k", model="m", client_factory=factory).synthesize(
            "CRM", _posts(), _stats(_posts()), QueryType.GENERAL
        )
        self.assertFalse(outcome.synthesized)
        self.assertTrue(outcome.brief)


if __name__ == "__main__":
    unittest.main()
