"""Configuration and shared settings."""

import os
import sys
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default
    if value < minimum:
        _stderr_print(f"{name}={value} is below {minimum}, falling back to {default}")
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return max(float(raw), 0.0)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


CONFIG = {
    "port": _env_int("PORT", 3000),
    # Attendance site
    "target_url": os.getenv("TARGET_URL", "https://people.zoho.com"),
    "target_url_pattern": os.getenv("TARGET_URL_PATTERN", "*://people.zoho.com/*"),
    "target_site_marker": os.getenv("TARGET_SITE_MARKER", "people.zoho.com"),
    "target_site_name": os.getenv("TARGET_SITE_NAME", "Zoho People"),
    # Storage
    "storage_dir": os.getenv("STORAGE_DIR", "memory"),
    # Browser (Playwright persistent profile keeps the site login)
    "browser_profile_dir": os.getenv("BROWSER_PROFILE_DIR", "memory/browser-profile"),
    "headless": _env_bool("HEADLESS", "false"),
    # Schedule
    "default_checkin_time": os.getenv("DEFAULT_CHECKIN_TIME", "09:00"),
    "default_checkout_time": os.getenv("DEFAULT_CHECKOUT_TIME", "17:30"),
    "timezone": os.getenv("ATTENDANCE_TZ", "").strip(),
    "load_grace_seconds": _env_float("LOAD_GRACE_SECONDS", 2.0),
    # Logs, capped independently
    "interactive_log_capacity": _env_int("INTERACTIVE_LOG_CAPACITY", 10),
    "background_log_capacity": _env_int("BACKGROUND_LOG_CAPACITY", 50),
    # Notifications
    "discord_webhook_url": os.getenv("DISCORD_WEBHOOK_URL", "").strip(),
}


# ── Typed config ─────────────────────────────────────────────


@dataclass
class TargetConfig:
    url: str = "https://people.zoho.com"
    url_pattern: str = "*://people.zoho.com/*"
    site_marker: str = "people.zoho.com"
    site_name: str = "Zoho People"


@dataclass
class BrowserConfig:
    profile_dir: str = "memory/browser-profile"
    headless: bool = False


@dataclass
class ScheduleConfig:
    default_checkin_time: str = "09:00"
    default_checkout_time: str = "17:30"
    timezone: str = ""
    load_grace_seconds: float = 2.0


@dataclass
class LogConfig:
    interactive_capacity: int = 10
    background_capacity: int = 50


@dataclass
class AppConfig:
    """Typed view over CONFIG."""

    port: int = 3000
    storage_dir: str = "memory"
    discord_webhook_url: str = ""
    target: TargetConfig = field(default_factory=TargetConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    logs: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables (via CONFIG)."""
        return cls(
            port=CONFIG["port"],
            storage_dir=CONFIG["storage_dir"],
            discord_webhook_url=CONFIG["discord_webhook_url"],
            target=TargetConfig(
                url=CONFIG["target_url"],
                url_pattern=CONFIG["target_url_pattern"],
                site_marker=CONFIG["target_site_marker"],
                site_name=CONFIG["target_site_name"],
            ),
            browser=BrowserConfig(
                profile_dir=CONFIG["browser_profile_dir"],
                headless=CONFIG["headless"],
            ),
            schedule=ScheduleConfig(
                default_checkin_time=CONFIG["default_checkin_time"],
                default_checkout_time=CONFIG["default_checkout_time"],
                timezone=CONFIG["timezone"],
                load_grace_seconds=CONFIG["load_grace_seconds"],
            ),
            logs=LogConfig(
                interactive_capacity=CONFIG["interactive_log_capacity"],
                background_capacity=CONFIG["background_log_capacity"],
            ),
        )
