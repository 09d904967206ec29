"""
chad/discord/client.py

Discord client: wires gateway events into the shared Coordinator, owns the
background jobs (auto-save, reminder timers) and the shutdown sequence.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
import logging
import random
from typing import Any

import discord
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from discord.ext import commands

from chad.discord.commands import ChadCommands
from chad.discord.engage import engage_from_mention, engage_with_message
from chad.discord.errors import handle_command_error
from chad.llm.openrouter import OpenRouterService
from chad.state import Coordinator, PersistenceError, ReminderScheduler

AUTO_SAVE_JOB_ID = "auto_save"
RATE_LIMIT_REACTION = "⏰"
SHUTDOWN_GRACE_SECONDS = 1


def member_names(member: discord.abc.User) -> tuple[str, ...]:
    """Username plus nickname (when set): every name `@name` may refer to."""
    return tuple(n for n in (member.name, getattr(member, "nick", None)) if n)


class ChadBot(commands.Bot):
    def __init__(
        self,
        config: dict[str, Any],
        coordinator: Coordinator | None = None,
        llm: OpenRouterService | None = None,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        super().__init__(
            command_prefix=config["prefix"],
            intents=intents,
            help_command=None,
            activity=discord.Game(name=f"{config['prefix']}help for commands"),
        )
        self.config = config
        self.coordinator = coordinator or Coordinator.from_config(config)
        self.llm = llm or OpenRouterService.from_config(config)
        self.scheduler = AsyncIOScheduler()
        self.reminders = ReminderScheduler(self.coordinator, self.scheduler, self.send_to_channel)
        self.engage_chance: float = config["engage_chance"]
        self.mute_seconds: float = config["rate_limit"]["mute_time"]
        self._closing = False
        # set once the saved state has been read (or found unusable)
        self._loaded = False

    # ── Lifecycle ───────────────────────────────────────────────────────────

    async def setup_hook(self) -> None:
        await self.add_cog(ChadCommands(self))
        try:
            await asyncio.to_thread(self.coordinator.load)
        except PersistenceError as e:
            logging.warning("Could not load existing data: %s", e)
        self._loaded = True

    async def on_ready(self) -> None:
        logging.info("Bot logged in as %s", self.user)
        logging.info("Bot is in %d servers", len(self.guilds))
        if not self.scheduler.running:
            self.scheduler.add_job(
                self.auto_save,
                "interval",
                seconds=self.config["auto_save_interval"],
                id=AUTO_SAVE_JOB_ID,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
            self.reminders.start()
            self.scheduler.start()
            await self.reminders.restore()
            logging.info("Scheduler started")

    async def close(self) -> None:
        if not self._closing:
            self._closing = True
            await self.shutdown()
        await super().close()

    async def shutdown(self) -> None:
        """Stop background ticks, drop reminder timers, then save once more."""
        logging.info("Initiating shutdown...")

        try:
            self.scheduler.remove_job(AUTO_SAVE_JOB_ID)
        except JobLookupError:
            pass
        self.reminders.shutdown()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        if self.is_ready() and not self.is_closed():
            try:
                await self.change_presence(activity=discord.Game(name="Shutting down..."))
                await asyncio.sleep(SHUTDOWN_GRACE_SECONDS)
            except Exception as e:  # noqa: BLE001
                logging.error("Failed to update status during shutdown: %s", e)

        if not self._loaded:
            logging.warning("Saved data was never loaded, skipping final save")
        else:
            try:
                await asyncio.to_thread(self.coordinator.save)
            except PersistenceError as e:
                logging.error("Failed to save data during shutdown: %s", e)

        await self.llm.close()
        logging.info("Shutdown complete")

    async def auto_save(self) -> None:
        try:
            await asyncio.to_thread(self.coordinator.save)
        except PersistenceError as e:
            logging.error("Auto-save failed: %s", e)

    async def send_to_channel(self, channel_id: str, content: str) -> None:
        channel = self.get_channel(int(channel_id)) or await self.fetch_channel(int(channel_id))
        await channel.send(content)

    # ── Guild & member events ───────────────────────────────────────────────

    def _cache_guild(self, guild: discord.Guild) -> None:
        count = self.coordinator.upsert_members(
            (member_names(m), str(m.id)) for m in guild.members
        )
        logging.info("Cached %d member(s) of %s", count, guild.name)

    async def on_guild_available(self, guild: discord.Guild) -> None:
        self._cache_guild(guild)

    async def on_guild_join(self, guild: discord.Guild) -> None:
        logging.info("Joined server: %s (%d members)", guild.name, guild.member_count or 0)
        self._cache_guild(guild)

    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logging.info("Left server: %s", guild.name)
        try:
            await asyncio.to_thread(self.coordinator.save)
        except PersistenceError as e:
            logging.error("Failed to save data after leaving server: %s", e)

    async def on_member_join(self, member: discord.Member) -> None:
        logging.info("New member joined: %s", member)
        self.coordinator.upsert_member(member_names(member), str(member.id))

    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        if member_names(before) == member_names(after):
            return
        logging.info("Member updated: %s", after)
        self.coordinator.replace_member(str(after.id), member_names(after))

    async def on_member_remove(self, member: discord.Member) -> None:
        logging.info("Member left: %s", member)
        self.coordinator.remove_member(str(member.id), member_names(member))

    # ── Messages ────────────────────────────────────────────────────────────

    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return

        if not self.coordinator.admit(str(message.author.id)):
            await self.mute(message)
            return

        self.coordinator.remember(
            str(message.channel.id), "user", f"{message.author.name}: {message.content}"
        )

        if message.content.startswith(self.config["prefix"]):
            await self.process_commands(message)
            return

        if self.user is not None and self.user in message.mentions:
            await engage_from_mention(self, message)
            return

        if random.random() < self.engage_chance:
            await engage_with_message(self, message)

    async def mute(self, message: discord.Message) -> None:
        """Rate-limit side effect: warning reaction plus a temporary timeout."""
        logging.warning("Rate limited %s (%s)", message.author.name, message.author.id)
        try:
            await message.add_reaction(RATE_LIMIT_REACTION)
        except discord.HTTPException as e:
            logging.warning("Failed to add warning reaction: %s", e)

        if isinstance(message.author, discord.Member):
            try:
                await message.author.timeout(timedelta(seconds=self.mute_seconds), reason="Rate limited")
            except discord.HTTPException as e:
                logging.error("Failed to timeout user %s: %s", message.author.name, e)

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        await handle_command_error(ctx, error, self, self.config)
