"""First-run prompt for the settings Punchclock cannot guess.

Each answer is checked the way the server will read it (URL shape, "HH:MM",
tz database name) before it is written, so a typo is caught at the prompt
rather than as a schedule that silently never arms.
"""

import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Tuple

from dotenv import dotenv_values, load_dotenv

from punchclock.domain.schedule import make_clock, parse_time_of_day

MAX_ATTEMPTS = 3


def _check_url(value: str) -> None:
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"Invalid URL: {value!r} (expected http:// or https://)")


def _check_time(value: str) -> None:
    parse_time_of_day(value)


def _check_timezone(value: str) -> None:
    make_clock(value)


def _check_webhook(value: str) -> None:
    _check_url(value)
    if "/api/webhooks/" not in value:
        raise ValueError(f"Invalid Discord webhook URL: {value!r}")


@dataclass(frozen=True)
class Setting:
    key: str
    hint: str
    check: Callable[[str], None]


SETTING_GROUPS: List[Tuple[str, List[Setting]]] = [
    ("Attendance site", [
        Setting("TARGET_URL", "attendance page URL", _check_url),
    ]),
    ("Schedule", [
        Setting("DEFAULT_CHECKIN_TIME", "HH:MM", _check_time),
        Setting("DEFAULT_CHECKOUT_TIME", "HH:MM", _check_time),
        Setting("ATTENDANCE_TZ", "e.g. Asia/Seoul, blank for the system zone", _check_timezone),
    ]),
    ("Discord notifications", [
        Setting("DISCORD_WEBHOOK_URL", "webhook URL", _check_webhook),
    ]),
]


def configured_keys(env_path: str) -> Set[str]:
    """Keys with a non-empty value in env_path."""
    if not os.path.exists(env_path):
        return set()
    return {key for key, value in dotenv_values(env_path).items() if value}


def ask(setting: Setting) -> Optional[str]:
    """Prompt until the answer passes its check. Blank or too many misses skips."""
    for _ in range(MAX_ATTEMPTS):
        value = input(f"  {setting.key} ({setting.hint}): ").strip()
        if not value:
            return None
        try:
            setting.check(value)
        except ValueError as e:
            print(f"  {e}")
            continue
        return value
    print(f"  Skipping {setting.key}")
    return None


def check_and_prompt_env(env_path: str) -> int:
    """Prompt for unset settings, append valid answers to env_path, reload.

    Returns the number of settings saved.
    """
    defined = configured_keys(env_path)
    saved: List[Tuple[str, str]] = []

    for label, settings in SETTING_GROUPS:
        missing = [s for s in settings if s.key not in defined and not os.getenv(s.key)]
        if not missing:
            continue
        try:
            if input(f"{label} settings are not configured. Set them now? (y/N): ").strip().lower() != "y":
                continue
            for setting in missing:
                value = ask(setting)
                if value is not None:
                    saved.append((setting.key, value))
        except (EOFError, KeyboardInterrupt):
            print()

    if saved:
        with open(env_path, "a") as f:
            f.write("".join(f"\n{key}={value}" for key, value in saved) + "\n")
        print(f"Saved {len(saved)} setting(s) to {env_path}.")

    load_dotenv(env_path, override=True)
    return len(saved)
