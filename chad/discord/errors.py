from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

import discord
from discord.ext import commands

from chad.llm.errors import parse_error_message


async def notify_admin_error(
    discord_bot: discord.Client,
    config: dict[str, Any],
    error: Exception,
    context: str = "",
) -> None:
    """
    Send a concise error notification to all configured admins.
    """
    try:
        admin_ids = config.get("permissions", {}).get("admin_ids", [])
        if not admin_ids:
            return

        msg = (
            "🤖 **Bot Error Notification**\n"
            f"⏰ Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"📝 Context: {context}\n\nError: {parse_error_message(error)}"
        )
        for admin_id in admin_ids:
            try:
                user = discord_bot.get_user(admin_id) or await discord_bot.fetch_user(
                    admin_id
                )
                await user.send(msg)
            except Exception as e:  # noqa: BLE001
                logging.warning("Could not notify admin %s: %s", admin_id, e)
    except Exception as e:  # noqa: BLE001
        logging.warning("Failed to notify admins: %s", e)


async def handle_command_error(
    ctx: commands.Context,
    error: commands.CommandError,
    discord_bot: discord.Client,
    config: dict[str, Any],
) -> None:
    """
    Standard handler for prefix command errors.
    """
    if isinstance(error, commands.CommandNotFound):
        return
    if isinstance(error, commands.UserInputError):
        await ctx.send(f"❌ {error}")
        return

    original = getattr(error, "original", error)
    logging.error("Command error in %s: %s", getattr(ctx.command, "name", "unknown"), original, exc_info=original)
    await notify_admin_error(
        discord_bot,
        config,
        original,
        f"Command error: {getattr(ctx.command, 'name', 'unknown')}",
    )
    try:
        await ctx.send("❌ Something went wrong while running that command.")
    except discord.HTTPException as e:
        logging.warning("Failed to report command error: %s", e)
