"""
Configuration settings for the review scraper.

Module-level constants are the defaults. ``load_config`` builds a
validated ``ScrapeConfig`` from the environment once at startup; nothing
else in the project reads environment variables directly.
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

# Default recipe describing the review markup of the target site
DEFAULT_RECIPE_PATH = str(Path(__file__).resolve().parent / "recipes" / "tripadvisor_reviews.yaml")

# Maximum number of listing pages fetched per run
MAX_PAGES = 5

# Politeness delay in seconds between two page fetches
PAGE_DELAY = 0.5

# What to do when the very first page returns no reviews:
# "stop" = end the run with a warning
# "continue" = fetch once more before giving up
EMPTY_FIRST_PAGE_POLICY = "stop"
EMPTY_FIRST_PAGE_POLICIES = ("stop", "continue")

# Browser timeouts in milliseconds
NAVIGATION_TIMEOUT_MS = 90000
WAIT_TIMEOUT_MS = 60000
CONNECT_TIMEOUT_MS = 60000

# Browser headless mode (only used when launching a local browser)
HEADLESS = True

# Remote browser sessions
BROWSERBASE_API_URL = "https://api.browserbase.com/v1/sessions"
BROWSERBASE_REGION = "us-east-1"

# Store
SUPABASE_TABLE = "reviews"

# Outbound email
SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"
DEFAULT_EMAIL_SUBJECT = "New Contact Form Message"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised when settings are missing or invalid."""


@dataclass(frozen=True)
class ScrapeConfig:
    """Everything a scrape run needs besides the recipe itself."""
    url_template: Optional[str] = None  # None = use the recipe's template
    max_pages: int = MAX_PAGES
    delay_seconds: float = PAGE_DELAY
    empty_first_page: str = EMPTY_FIRST_PAGE_POLICY
    navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS
    wait_timeout_ms: int = WAIT_TIMEOUT_MS
    connect_timeout_ms: int = CONNECT_TIMEOUT_MS
    headless: bool = HEADLESS
    recipe_path: str = DEFAULT_RECIPE_PATH
    browserbase_api_key: Optional[str] = None
    browserbase_project_id: Optional[str] = None
    browserbase_region: str = BROWSERBASE_REGION
    browserbase_proxies: bool = True
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_table: str = SUPABASE_TABLE

    @property
    def uses_browserbase(self) -> bool:
        """True when a remote Browserbase session should be used."""
        return bool(self.browserbase_api_key and self.browserbase_project_id)

    @property
    def has_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def validate(self, require_store: bool = False) -> None:
        """
        Check value ranges and required credentials.

        Raises:
            ConfigError: On the first problem found
        """
        if self.max_pages < 1:
            raise ConfigError(f"max_pages must be at least 1, got {self.max_pages}")
        if self.delay_seconds < 0:
            raise ConfigError(f"delay_seconds must not be negative, got {self.delay_seconds}")
        if self.empty_first_page not in EMPTY_FIRST_PAGE_POLICIES:
            raise ConfigError(
                f"empty_first_page must be one of {', '.join(EMPTY_FIRST_PAGE_POLICIES)}, "
                f"got {self.empty_first_page!r}"
            )
        for name in ("navigation_timeout_ms", "wait_timeout_ms", "connect_timeout_ms"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.url_template is not None and "{PAGINATION_TOKEN}" not in self.url_template:
            raise ConfigError("url_template must contain the {PAGINATION_TOKEN} placeholder")
        if bool(self.browserbase_api_key) != bool(self.browserbase_project_id):
            raise ConfigError("Browserbase API Key and Project ID must be provided together.")
        if require_store and not self.has_store:
            raise ConfigError("Supabase URL or Anon Key not provided.")


@dataclass(frozen=True)
class MailerConfig:
    """Settings for the contact form relay."""
    api_key: str
    to_email: str
    from_email: str
    api_url: str = SENDGRID_API_URL


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_number(name: str, value: str, kind):
    try:
        return kind(value)
    except ValueError:
        raise ConfigError(f"{name} must be a {kind.__name__}, got {value!r}") from None


# env var -> (field name, parser)
_ENV_FIELDS = {
    "SCRAPE_URL_TEMPLATE": ("url_template", None),
    "SCRAPE_MAX_PAGES": ("max_pages", int),
    "SCRAPE_DELAY_SECONDS": ("delay_seconds", float),
    "SCRAPE_EMPTY_FIRST_PAGE": ("empty_first_page", None),
    "SCRAPE_NAVIGATION_TIMEOUT_MS": ("navigation_timeout_ms", int),
    "SCRAPE_WAIT_TIMEOUT_MS": ("wait_timeout_ms", int),
    "SCRAPE_CONNECT_TIMEOUT_MS": ("connect_timeout_ms", int),
    "SCRAPE_HEADLESS": ("headless", bool),
    "SCRAPE_RECIPE": ("recipe_path", None),
    "BROWSERBASE_API_KEY": ("browserbase_api_key", None),
    "BROWSERBASE_PROJECT_ID": ("browserbase_project_id", None),
    "BROWSERBASE_REGION": ("browserbase_region", None),
    "BROWSERBASE_PROXIES": ("browserbase_proxies", bool),
    "SUPABASE_URL": ("supabase_url", None),
    "SUPABASE_ANON_KEY": ("supabase_key", None),
    "SUPABASE_TABLE": ("supabase_table", None),
}


def load_config(env: Optional[Mapping[str, str]] = None, require_store: bool = False,
                **overrides: Any) -> ScrapeConfig:
    """
    Build and validate a ScrapeConfig.

    Args:
        env: Environment mapping (defaults to os.environ)
        require_store: Fail if Supabase credentials are missing
        **overrides: Field values that win over the environment (None values are ignored)

    Returns:
        Validated ScrapeConfig

    Raises:
        ConfigError: If a value cannot be parsed or is out of range
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    for var, (field_name, kind) in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None or raw.strip() == "":
            continue
        if kind is bool:
            values[field_name] = _parse_bool(var, raw)
        elif kind is not None:
            values[field_name] = _parse_number(var, raw.strip(), kind)
        else:
            values[field_name] = raw.strip()

    known = {f.name for f in fields(ScrapeConfig)}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = value

    config = replace(ScrapeConfig(), **values)
    config.validate(require_store=require_store)
    return config


def load_mailer_config(env: Optional[Mapping[str, str]] = None) -> MailerConfig:
    """Build the contact relay settings, failing on missing values."""
    env = os.environ if env is None else env

    missing = [name for name in ("SENDGRID_API_KEY", "CONTACT_TO_EMAIL", "CONTACT_FROM_EMAIL")
               if not env.get(name)]
    if missing:
        raise ConfigError(f"Missing mail settings: {', '.join(missing)}")

    return MailerConfig(
        api_key=env["SENDGRID_API_KEY"],
        to_email=env["CONTACT_TO_EMAIL"],
        from_email=env["CONTACT_FROM_EMAIL"],
        api_url=env.get("SENDGRID_API_URL") or SENDGRID_API_URL,
    )
