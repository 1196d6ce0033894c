import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from deep_research.config_loader import load_overrides
from deep_research.models import RecencyPolicy
from deep_research.security import is_configured_key, redact_secrets
from deep_research.settings import ResearchSettings, load_settings


class LoadSettingsTests(unittest.TestCase):
    @patch.dict("os.environ", {}, clear=True)
    def test_defaults(self):
        settings = load_settings()
        self.assertIsNone(settings.anthropic_api_key)
        self.assertIsNone(settings.xai_api_key)
        self.assertEqual(settings.deadline_seconds, 60.0)
        self.assertEqual(settings.enrich_limit, 15)
        self.assertEqual(settings.recency, RecencyPolicy())
        self.assertEqual(settings.synthesis_model, ResearchSettings().synthesis_model)

    @patch.dict(
        "os.environ",
        {
            "ANTHROPIC_API_KEY": " sk-ant-real ",
            "XAI_API_KEY": "YOUR_XAI_KEY",
            "RESEARCH_WINDOW_DAYS": "14",
            "RESEARCH_DEADLINE_SECONDS": "not-a-number",
            "RESEARCH_ENRICH_LIMIT": "-3",
            "RESEARCH_SEARCH_MODEL": "grok-test",
        },
        clear=True,
    )
    def test_env_values_and_invalid_numbers(self):
        settings = load_settings()
        self.assertEqual(settings.anthropic_api_key, "sk-ant-real")
        self.assertIsNone(settings.xai_api_key)
        self.assertEqual(settings.recency.window_days, 14)
        self.assertEqual(settings.deadline_seconds, 60.0)
        self.assertEqual(settings.enrich_limit, 15)
        self.assertEqual(settings.search_model, "grok-test")

    def test_yaml_overrides(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "research.yaml"
            path.write_text(
                "enrich_limit: 5\n"
                "youtube_api_key: ${TEST_YT_KEY}\n"
                "recency:\n"
                "  window_days: 7\n"
                "  boost_tiers: [[1, 2.0]]\n"
                "mystery_setting: true\n",
                encoding="utf-8",
            )
            env = {"RESEARCH_CONFIG_PATH": str(path), "TEST_YT_KEY": "yt-123"}
            with patch.dict("os.environ", env, clear=True):
                settings = load_settings()
        self.assertEqual(settings.enrich_limit, 5)
        self.assertEqual(settings.youtube_api_key, "yt-123")
        self.assertEqual(settings.recency.window_days, 7)
        self.assertEqual(settings.recency.boost_tiers, ((1, 2.0),))
        self.assertFalse(hasattr(settings, "mystery_setting"))

    def test_with_overrides_returns_copy(self):
        base = ResearchSettings()
        changed = base.with_overrides(enrich_limit=3)
        self.assertEqual(changed.enrich_limit, 3)
        self.assertEqual(base.enrich_limit, 15)


class ConfigLoaderTests(unittest.TestCase):
    def test_missing_and_malformed_files_give_empty_overrides(self):
        self.assertEqual(load_overrides(None), {})
        self.assertEqual(load_overrides(Path("/nonexistent/research.yaml")), {})
        with tempfile.TemporaryDirectory() as tmp:
            bad = Path(tmp) / "bad.yaml"
            bad.write_text("key: [unclosed", encoding="utf-8")
            self.assertEqual(load_overrides(bad), {})
            listing = Path(tmp) / "list.yaml"
            listing.write_text("- a\n- b\n", encoding="utf-8")
            self.assertEqual(load_overrides(listing), {})

    def test_expands_references_inside_strings_and_warns_when_unset(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "research.yaml"
            path.write_text(
                "user_agent: research-bot/${TEST_AGENT_VERSION} (${TEST_AGENT_CONTACT})\n"
                "xai_api_key: ${TEST_MISSING_KEY}\n",
                encoding="utf-8",
            )
            env = {"TEST_AGENT_VERSION": "2.1", "TEST_AGENT_CONTACT": "ops@example.com"}
            with patch.dict("os.environ", env, clear=True):
                with self.assertLogs("deep_research.config_loader", level="WARNING") as logs:
                    overrides = load_overrides(path)
        self.assertEqual(overrides["user_agent"], "research-bot/2.1 (ops@example.com)")
        self.assertEqual(overrides["xai_api_key"], "")
        self.assertIn("TEST_MISSING_KEY", logs.output[0])


class SecurityTests(unittest.TestCase):
    def test_redacts_keys_and_tokens(self):
        text = (
            "GET https://www.googleapis.com/youtube/v3/search?q=crm&key=AIzaSecret "
            "Authorization: Bearer xai-abc123 x-api-key: sk-ant-api03-xyz"
        )
        redacted = redact_secrets(text)
        self.assertNotIn("AIzaSecret", redacted)
        self.assertNotIn("abc123", redacted)
        self.assertNotIn("api03-xyz", redacted)
        self.assertIn("q=crm", redacted)

    def test_is_configured_key(self):
        self.assertTrue(is_configured_key("sk-ant-123"))
        self.assertFalse(is_configured_key(""))
        self.assertFalse(is_configured_key("   "))
        self.assertFalse(is_configured_key(None))
        self.assertFalse(is_configured_key("your_api_key_here"))


if __name__ == "__main__":
    unittest.main()
