"""Notification adapters — implement NotificationPort.

Notifications are fire-and-forget: delivery problems are logged, never raised.
"""

import sys
from typing import Optional

import aiohttp
import discord


def _log(msg: str):
    print(msg, file=sys.stderr)


_EMBED_COLOR_OK = 0x4ADE80
_EMBED_COLOR_ERROR = 0xEF4444


class StderrNotifier:
    """Fallback when no webhook is configured."""

    async def show(self, title: str, body: str) -> None:
        _log(f"[notify] {title} — {body}")


class DiscordWebhookNotifier:
    """Posts each notification as an embed to a Discord channel webhook."""

    def __init__(self, webhook_url: str, username: str = "Attendance Helper"):
        self._webhook_url = webhook_url
        self._username = username
        self._session: Optional[aiohttp.ClientSession] = None

    async def show(self, title: str, body: str) -> None:
        color = _EMBED_COLOR_ERROR if title.startswith("❌") else _EMBED_COLOR_OK
        embed = discord.Embed(title=title, description=body[:4000], color=color)
        try:
            webhook = discord.Webhook.from_url(self._webhook_url, session=self._get_session())
            await webhook.send(embed=embed, username=self._username)
        except (discord.HTTPException, aiohttp.ClientError, ValueError) as e:
            _log(f"[notify] Discord webhook failed: {e}")
            _log(f"[notify] {title} — {body}")

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session


def build_notifier(webhook_url: str):
    if webhook_url:
        return DiscordWebhookNotifier(webhook_url)
    _log("[notify] DISCORD_WEBHOOK_URL not set, notifications go to stderr")
    return StderrNotifier()
