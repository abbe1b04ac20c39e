"""Tests for notification adapters."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import discord
import pytest

from punchclock.adapters.notify.notifier import DiscordWebhookNotifier, StderrNotifier, build_notifier

WEBHOOK = "https://discord.com/api/webhooks/123/abc"


class TestBuildNotifier:
    def test_webhook(self):
        assert isinstance(build_notifier(WEBHOOK), DiscordWebhookNotifier)

    def test_fallback(self):
        assert isinstance(build_notifier(""), StderrNotifier)


class TestStderrNotifier:
    @pytest.mark.asyncio
    async def test_writes_to_stderr(self, capsys):
        await StderrNotifier().show("✅ Checked In", "Attendance recorded successfully")
        assert "Checked In" in capsys.readouterr().err


class TestDiscordWebhookNotifier:
    @pytest.mark.asyncio
    async def test_sends_embed(self):
        notifier = DiscordWebhookNotifier(WEBHOOK)
        webhook = MagicMock()
        webhook.send = AsyncMock()
        with patch("punchclock.adapters.notify.notifier.discord.Webhook.from_url", return_value=webhook) as from_url:
            await notifier.show("❌ Check-in Failed", "Could not find checkin button on this page")
        assert from_url.call_args.args[0] == WEBHOOK
        embed = webhook.send.call_args.kwargs["embed"]
        assert isinstance(embed, discord.Embed)
        assert embed.title == "❌ Check-in Failed"
        assert embed.description == "Could not find checkin button on this page"
        assert webhook.send.call_args.kwargs["username"] == "Attendance Helper"
        await notifier.close()

    @pytest.mark.asyncio
    async def test_network_error_is_swallowed(self, capsys):
        notifier = DiscordWebhookNotifier(WEBHOOK)
        webhook = MagicMock()
        webhook.send = AsyncMock(side_effect=aiohttp.ClientError("down"))
        with patch("punchclock.adapters.notify.notifier.discord.Webhook.from_url", return_value=webhook):
            await notifier.show("✅ Checked Out", "ok")
        assert "Discord webhook failed" in capsys.readouterr().err
        await notifier.close()

    @pytest.mark.asyncio
    async def test_bad_url_is_swallowed(self, capsys):
        notifier = DiscordWebhookNotifier("not a webhook")
        await notifier.show("✅ Checked In", "ok")
        assert "Discord webhook failed" in capsys.readouterr().err
        await notifier.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        notifier = DiscordWebhookNotifier(WEBHOOK)
        await notifier.close()
        await notifier.close()
