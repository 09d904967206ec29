"""
chad/discord/engage.py

Talking to the model on behalf of a channel: unprompted engagement, replies to
mentions, and the shared helpers the commands use.

History is copied out of the coordinator before the request is sent, so the
(multi-second) completion never runs while the state lock is held.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

import discord

from chad.discord.parsing import looks_like_text
from chad.llm.errors import LLMError, format_user_friendly_error

if TYPE_CHECKING:
    from chad.discord.client import ChadBot

THINKING = "💭 Thinking..."
UNABLE_TO_THINK = "❌ Sorry I'm unable to think right now."

ENGAGE_PROMPT = (
    "Continue as Chad. Direct, concise, simple > complex.\n\n"
    "Respond with:\n"
    "- Full answer / short phrase / just emoji (👍 🤔 🚀)\n"
    "- Clarifying question if needed\n"
    "- Tag users with relevant experience as @username\n\n"
    "Current {author} message: {content}\n\n"
    "Don't repeat previous points."
)

MENTION_PROMPT = (
    "Chad - you were mentioned. Reply as needed.\n\n"
    "Options: answer / question / emoji / tag others as @username\n"
    "Use web_search when the answer needs current information.\n"
    "Simple > complex\n\n"
    "{author} said: {content}"
)


async def send_placeholder(channel: discord.abc.Messageable) -> discord.Message | None:
    try:
        return await channel.send(THINKING)
    except discord.HTTPException as e:
        logging.warning("Failed to send placeholder: %s", e)
        return None


async def maybe_edit_message(
    channel: discord.abc.Messageable,
    placeholder: discord.Message | None,
    content: str | None = None,
    embed: discord.Embed | None = None,
) -> None:
    """Edit the placeholder if we managed to post one, otherwise send a new message."""
    if placeholder is not None:
        await placeholder.edit(content=content, embed=embed)
    else:
        await channel.send(content=content, embed=embed)


async def generate_reply(
    bot: "ChadBot",
    channel_id: str,
    prompt: str | None = None,
    tool_names: List[str] | None = None,
) -> str:
    """Complete against the channel's context window and resolve @name mentions."""
    history = bot.coordinator.context(channel_id)
    messages = bot.llm.build_messages(history, prompt)
    content = (await bot.llm.complete(messages, tool_names)).strip()
    return bot.coordinator.render_mentions(content)


async def engage_with_message(bot: "ChadBot", message: discord.Message) -> None:
    channel_id = str(message.channel.id)
    prompt = ENGAGE_PROMPT.format(author=message.author.name, content=message.content)
    try:
        content = await generate_reply(bot, channel_id, prompt)
    except LLMError as e:
        logging.error("Failed to engage in channel %s: %s", channel_id, e)
        return
    if not content:
        logging.info("Engagement produced an empty reply in channel %s", channel_id)
        return

    try:
        if looks_like_text(content):
            await message.channel.send(content)
            bot.coordinator.remember(channel_id, "assistant", content)
        else:
            await message.add_reaction(content)
    except discord.HTTPException as e:
        logging.warning("Failed to deliver engagement reply: %s", e)


async def engage_from_mention(bot: "ChadBot", message: discord.Message) -> None:
    channel_id = str(message.channel.id)
    placeholder = await send_placeholder(message.channel)
    prompt = MENTION_PROMPT.format(author=message.author.name, content=message.content)
    try:
        content = await generate_reply(bot, channel_id, prompt, tool_names=["web_search"])
    except LLMError as e:
        logging.error("Failed to answer mention in channel %s: %s", channel_id, e)
        await _report(message.channel, placeholder, format_user_friendly_error(e))
        return
    if not content:
        await _report(message.channel, placeholder, UNABLE_TO_THINK)
        return

    try:
        if looks_like_text(content) or len(content) > 2:
            await maybe_edit_message(message.channel, placeholder, content[:2000])
            bot.coordinator.remember(channel_id, "assistant", content)
        else:
            if placeholder is not None:
                await placeholder.delete()
            await message.add_reaction(content)
    except discord.HTTPException as e:
        logging.warning("Failed to deliver mention reply: %s", e)


async def _report(
    channel: discord.abc.Messageable, placeholder: discord.Message | None, text: str
) -> None:
    try:
        await maybe_edit_message(channel, placeholder, text)
    except discord.HTTPException as e:
        logging.error("Failed to send error message: %s", e)
