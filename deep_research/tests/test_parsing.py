import unittest
from datetime import datetime, timezone

from deep_research.models import Source
from deep_research.parsing import (
    clean_url,
    community_from_url,
    parse_count,
    parse_search_blocks,
    parse_social_posts,
)
from deep_research.schemas import Citation

NOW = datetime(2025, 6, 15, tzinfo=timezone.utc)


class HelperTests(unittest.TestCase):
    def test_parse_count(self):
        self.assertEqual(parse_count("1,234"), 1234)
        self.assertEqual(parse_count("2.5K"), 2500)
        self.assertEqual(parse_count("3M"), 3_000_000)
        self.assertEqual(parse_count(""), 0)
        self.assertEqual(parse_count("lots"), 0)

    def test_clean_url_strips_trailing_punctuation(self):
        self.assertEqual(clean_url("https://example.com/a)."), "https://example.com/a")

    def test_community_from_url(self):
        self.assertEqual(community_from_url("https://www.reddit.com/r/SaaS/comments/abc/x/"), "SaaS")
        self.assertIsNone(community_from_url("https://example.com"))


class SearchBlockTests(unittest.TestCase):
    def test_parses_blocks_then_adds_unseen_citations(self):
        text = (
            "TITLE: Best CRM for tiny teams\n"
            "URL: https://www.reddit.com/r/smallbusiness/comments/abc/best_crm/\n"
            "SUBREDDIT: r/smallbusiness\n"
            "SCORE: 120\n"
            "---\n"
            "TITLE: HubSpot vs Pipedrive\n"
            "URL: https://www.reddit.com/r/sales/comments/def/hubspot_vs_pipedrive/\n"
            "SCORE: 0\n"
        )
        citations = [
            Citation(url="https://www.reddit.com/r/sales/comments/def/hubspot_vs_pipedrive"),
            Citation(url="https://www.reddit.com/r/CRM/comments/ghi/other/", title="Other thread"),
            Citation(url="https://example.com/not-reddit"),
        ]
        posts = parse_search_blocks(
            [text],
            citations,
            Source.LINK_AGGREGATOR,
            keep=lambda url: "reddit.com" in url,
            now=NOW,
            provider="test",
        )
        self.assertEqual([p.title for p in posts], ["Best CRM for tiny teams", "HubSpot vs Pipedrive", "Other thread"])
        self.assertEqual(posts[0].community, "smallbusiness")
        self.assertEqual(posts[0].engagement_score, 120)
        # Community falls back to the URL path when the block has no SUBREDDIT line.
        self.assertEqual(posts[1].community, "sales")
        self.assertEqual(posts[2].community, "CRM")
        self.assertTrue(all(p.created_at == NOW for p in posts))

    def test_falls_back_to_raw_urls(self):
        text = "Worth reading: https://blog.example.com/pricing and (https://news.example.org/story)."
        posts = parse_search_blocks([text], [], Source.WEB, keep=lambda url: True, now=NOW, provider="test")
        self.assertEqual([p.url for p in posts], ["https://blog.example.com/pricing", "https://news.example.org/story"])

    def test_summary_becomes_body(self):
        text = "TITLE: Article\nURL: https://example.com/a\nSUMMARY: A short summary.\n---"
        posts = parse_search_blocks([text], [], Source.WEB, keep=lambda url: True, now=NOW, provider="test")
        self.assertEqual(posts[0].body, "A short summary.")


class SocialPostTests(unittest.TestCase):
    def test_extracts_handle_metrics_and_per_handle_citation(self):
        text = (
            "1. @levelsio: Just crossed $100k MRR with a one-person company. 2.5K likes, 300 reposts, 120 replies\n\n"
            "2. @marc_louvion: Shipping fast beats shipping perfect every single time. 900 likes 45 reposts 30 replies"
        )
        citations = [
            Citation(url="https://x.com/marc_louvion/status/222"),
            Citation(url="https://x.com/levelsio/status/111"),
        ]
        posts = parse_social_posts(text, citations, NOW)
        self.assertEqual(len(posts), 2)
        first, second = posts
        self.assertEqual(first.url, "https://x.com/levelsio/status/111")
        self.assertEqual(second.url, "https://x.com/marc_louvion/status/222")
        self.assertEqual(first.engagement_score, 2800)
        self.assertEqual(first.comment_count, 120)
        self.assertTrue(first.title.startswith("@levelsio: Just crossed"))
        self.assertEqual(first.metadata["author"], "levelsio")
        self.assertEqual(first.source, Source.SOCIAL)

    def test_url_in_block_wins_and_profile_is_last_resort(self):
        text = (
            "@alice posted https://x.com/alice/status/1 about onboarding emails that convert\n\n"
            "@bob thinks cold outreach is dead and warm intros win the day"
        )
        posts = parse_social_posts(text, [], NOW)
        self.assertEqual([p.url for p in posts], ["https://x.com/alice/status/1", "https://x.com/bob"])

    def test_citation_fallback_when_few_posts_parse(self):
        citations = [Citation(url="https://x.com/carol/status/5", title="Carol on pricing"), Citation(url="https://example.com")]
        posts = parse_social_posts("short", citations, NOW)
        self.assertEqual([p.url for p in posts], ["https://x.com/carol/status/5"])
        self.assertEqual(posts[0].title, "Carol on pricing")


if __name__ == "__main__":
    unittest.main()
