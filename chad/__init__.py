"""
Top-level package for the Chad Discord bot.

This package hosts:
- config loading and validation
- the shared state coordinator (rate limits, member names, context windows, reminders)
- Discord client, commands and event handlers
- the OpenRouter LLM client and the Brave web search tool
"""
