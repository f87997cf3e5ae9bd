"""
Unit tests for configuration loading.
"""

import unittest

from scraper_config import (
    ConfigError,
    MAX_PAGES,
    PAGE_DELAY,
    SENDGRID_API_URL,
    load_config,
    load_mailer_config
)


class TestLoadConfig(unittest.TestCase):
    """Test ScrapeConfig construction from an environment mapping."""

    def test_defaults(self):
        config = load_config(env={})

        self.assertEqual(config.max_pages, MAX_PAGES)
        self.assertEqual(config.delay_seconds, PAGE_DELAY)
        self.assertEqual(config.empty_first_page, "stop")
        self.assertIsNone(config.url_template)
        self.assertFalse(config.uses_browserbase)
        self.assertFalse(config.has_store)

    def test_environment_values(self):
        config = load_config(env={
            "SCRAPE_MAX_PAGES": "3",
            "SCRAPE_DELAY_SECONDS": "1.5",
            "SCRAPE_EMPTY_FIRST_PAGE": "continue",
            "SCRAPE_HEADLESS": "false",
            "BROWSERBASE_API_KEY": "bb-key",
            "BROWSERBASE_PROJECT_ID": "proj",
            "SUPABASE_URL": "https://xyz.supabase.co",
            "SUPABASE_ANON_KEY": "anon",
        })

        self.assertEqual(config.max_pages, 3)
        self.assertEqual(config.delay_seconds, 1.5)
        self.assertEqual(config.empty_first_page, "continue")
        self.assertFalse(config.headless)
        self.assertTrue(config.uses_browserbase)
        self.assertTrue(config.has_store)

    def test_blank_values_ignored(self):
        config = load_config(env={"SCRAPE_MAX_PAGES": "  "})
        self.assertEqual(config.max_pages, MAX_PAGES)

    def test_overrides_win(self):
        config = load_config(env={"SCRAPE_MAX_PAGES": "3"}, max_pages=7, delay_seconds=None)

        self.assertEqual(config.max_pages, 7)
        self.assertEqual(config.delay_seconds, PAGE_DELAY)

    def test_unknown_override(self):
        with self.assertRaises(ConfigError):
            load_config(env={}, colour="blue")

    def test_unparseable_values(self):
        with self.assertRaises(ConfigError):
            load_config(env={"SCRAPE_MAX_PAGES": "many"})
        with self.assertRaises(ConfigError):
            load_config(env={"SCRAPE_HEADLESS": "maybe"})

    def test_out_of_range(self):
        with self.assertRaises(ConfigError):
            load_config(env={"SCRAPE_MAX_PAGES": "0"})
        with self.assertRaises(ConfigError):
            load_config(env={"SCRAPE_DELAY_SECONDS": "-1"})
        with self.assertRaises(ConfigError):
            load_config(env={"SCRAPE_EMPTY_FIRST_PAGE": "retry"})
        with self.assertRaises(ConfigError):
            load_config(env={"SCRAPE_URL_TEMPLATE": "https://example.com/reviews"})

    def test_browserbase_credentials_come_together(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(env={"BROWSERBASE_API_KEY": "bb-key"})
        self.assertIn("together", str(ctx.exception))

    def test_require_store(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(env={"SUPABASE_URL": "https://xyz.supabase.co"}, require_store=True)
        self.assertEqual(str(ctx.exception), "Supabase URL or Anon Key not provided.")


class TestLoadMailerConfig(unittest.TestCase):
    """Test contact relay settings."""

    def test_complete(self):
        config = load_mailer_config(env={
            "SENDGRID_API_KEY": "sg-key",
            "CONTACT_TO_EMAIL": "owner@example.com",
            "CONTACT_FROM_EMAIL": "site@example.com",
        })

        self.assertEqual(config.api_key, "sg-key")
        self.assertEqual(config.to_email, "owner@example.com")
        self.assertEqual(config.api_url, SENDGRID_API_URL)

    def test_missing(self):
        with self.assertRaises(ConfigError) as ctx:
            load_mailer_config(env={"SENDGRID_API_KEY": "sg-key"})
        self.assertIn("CONTACT_TO_EMAIL", str(ctx.exception))
        self.assertIn("CONTACT_FROM_EMAIL", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
