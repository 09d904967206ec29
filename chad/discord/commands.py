from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
import random
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from chad.discord.engage import (
    UNABLE_TO_THINK,
    generate_reply,
    maybe_edit_message,
    send_placeholder,
)
from chad.discord.parsing import parse_dice, parse_duration, verdict_color
from chad.llm.errors import LLMError, LLMToolError, format_user_friendly_error
from chad.llm.tools import brave_web_search, format_search_results, format_sources

if TYPE_CHECKING:
    from chad.discord.client import ChadBot

MIN_REMINDER_SECONDS = 60
MAX_SOURCES = 3

HELP_TEXT = """I can help you with the following:

  **AI & Knowledge**
  {p}ask <question> - Ask the AI
  {p}factcheck <claim> - Verify claims with web search

  **Utilities**
  {p}remind 5m <message> - Set reminder

  **Fun & Social**
  {p}flip - Flip a coin
  {p}roll [dice] - Roll dice (eg. 2d6 or 20)

  You can also mention me to get my attention."""

FACTCHECK_PROMPT = """Fact-check this claim using the search results below.

CLAIM: "{claim}"

SEARCH RESULTS:
{results}

Respond with:

VERDICT: [True/False/Partially True/Unclear] - one sentence why

EVIDENCE:
- Supporting: [specific quotes/data from sources]
- Contradicting: [specific quotes/data from sources]

CONTEXT: [missing context that changes the claim's validity]

CONFIDENCE: [High/Medium/Low] based on source quality and consensus

Rules:
- Quote exact evidence, don't paraphrase
- Name the source for each piece of evidence
- If sources conflict, show both sides
- "Unclear" if evidence is insufficient
- Skip sections if not applicable (e.g., no contradicting evidence)"""


class ChadCommands(commands.Cog):
    def __init__(self, bot: "ChadBot"):
        self.bot = bot

    @commands.command(name="help")
    async def help_command(self, ctx: commands.Context) -> None:
        await ctx.send(HELP_TEXT.format(p=ctx.prefix))

    @commands.command(name="ask")
    async def ask(self, ctx: commands.Context, *, question: str = "") -> None:
        if not question.strip():
            await ctx.send(f"Usage: `{ctx.prefix}ask <your question>` (eg. {ctx.prefix}ask What is the meaning of life?)")
            return

        channel_id = str(ctx.channel.id)
        placeholder = await send_placeholder(ctx.channel)
        try:
            # the question itself is already in the channel's context window
            content = await generate_reply(self.bot, channel_id)
        except LLMError as e:
            logging.error("Failed to send request: %s", e)
            await maybe_edit_message(ctx.channel, placeholder, format_user_friendly_error(e))
            return

        if not content:
            logging.error("Empty reply for !ask in channel %s", channel_id)
            await maybe_edit_message(ctx.channel, placeholder, UNABLE_TO_THINK)
            return

        await maybe_edit_message(ctx.channel, placeholder, content[:2000])
        self.bot.coordinator.remember(channel_id, "assistant", content)

    @commands.command(name="factcheck")
    async def factcheck(self, ctx: commands.Context, *, claim: str = "") -> None:
        claim = claim.strip()
        if not claim:
            embed = discord.Embed(
                title="🔍 Factcheck Command Usage",
                description="Verify claims with web search!",
                color=0x3498DB,
            )
            embed.add_field(name="Usage", value=f"`{ctx.prefix}factcheck <claim>`", inline=False)
            embed.add_field(name="Example", value=f"`{ctx.prefix}factcheck The moon is made of cheese`", inline=False)
            await ctx.send(embed=embed)
            return

        placeholder = await send_placeholder(ctx.channel)
        try:
            results = await asyncio.to_thread(
                brave_web_search, f"fact check {claim}", self.bot.config.get("search_api_key") or None
            )
        except LLMToolError as e:
            logging.error("Web search error: %s", e)
            await maybe_edit_message(ctx.channel, placeholder, "❌ Failed to search for information. Please try again later.")
            return

        prompt = FACTCHECK_PROMPT.format(claim=claim, results=format_search_results(results))
        try:
            analysis = await self.bot.llm.complete(self.bot.llm.build_messages([], prompt))
        except LLMError as e:
            logging.error("Fact-check AI error: %s", e)
            analysis = ""
        if not analysis:
            await maybe_edit_message(ctx.channel, placeholder, "❌ Failed to analyze the fact-check. Please try again later.")
            return

        embed = discord.Embed(
            title="🔍 Fact Check Analysis",
            description=f"**Claim:** {claim}\n\n{analysis}"[:4096],
            color=verdict_color(analysis),
            timestamp=datetime.now(timezone.utc),
        )
        embed.add_field(
            name="📚 Sources Checked",
            value=format_sources(results, MAX_SOURCES)[:1024] or "No sources found",
            inline=False,
        )
        embed.set_footer(text=f"Fact-checked by {ctx.author.name} • Always verify with multiple sources")
        await maybe_edit_message(ctx.channel, placeholder, None, embed)

    @commands.command(name="flip")
    async def flip(self, ctx: commands.Context) -> None:
        await ctx.send("🎯 Tails" if random.random() < 0.5 else "🪙 Heads")

    @commands.command(name="roll")
    async def roll(self, ctx: commands.Context, dice: str = "") -> None:
        count, sides = parse_dice(dice)
        rolls = [random.randint(1, sides) for _ in range(count)]
        await ctx.send(
            f"🎲 Rolled {count}d{sides}: {', '.join(map(str, rolls))} (Total: {sum(rolls)})"
        )

    @commands.command(name="remind")
    async def remind(self, ctx: commands.Context, when: str = "", *, text: str = "") -> None:
        text = text.strip()
        if not when or not text:
            await ctx.send(
                f"Usage: `{ctx.prefix}remind 5m Take a break` or `{ctx.prefix}remind 2h Meeting with team`"
            )
            return

        delay = parse_duration(when)
        if delay is None or delay < MIN_REMINDER_SECONDS:
            await ctx.send("Invalid time format. Use: 5m, 2h, 1d (minutes, hours, days)")
            return

        await self.bot.reminders.create(str(ctx.channel.id), str(ctx.author.id), text, delay)
        await ctx.send(f"<@{ctx.author.id}> I'll remind you in {when} about: \"{text}\"")
