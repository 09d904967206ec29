from __future__ import annotations

import openai


class LLMError(Exception):
    """Base error for LLM-related failures."""


class LLMRateLimitError(LLMError):
    pass


class LLMAuthError(LLMError):
    pass


class LLMNotFoundError(LLMError):
    pass


class LLMForbiddenError(LLMError):
    pass


class LLMConnectionError(LLMError):
    pass


class LLMToolError(LLMError):
    pass


def wrap_openai_error(error: openai.OpenAIError) -> LLMError:
    """Map an openai client exception onto the LLMError hierarchy."""
    if isinstance(error, openai.RateLimitError):
        return LLMRateLimitError(str(error))
    if isinstance(error, openai.AuthenticationError):
        return LLMAuthError(str(error))
    if isinstance(error, openai.NotFoundError):
        return LLMNotFoundError(str(error))
    if isinstance(error, openai.PermissionDeniedError):
        return LLMForbiddenError(str(error))
    if isinstance(error, (openai.APIConnectionError, openai.APITimeoutError)):
        return LLMConnectionError(str(error))
    return LLMError(str(error))


def parse_error_message(error: Exception) -> str:
    """
    Map raw exceptions into short, human-readable messages.
    Used for admin notifications and logs.
    """
    s, t = str(error), type(error).__name__
    if "429" in s or t in ("RateLimitError", "LLMRateLimitError"):
        return "⚠️ Rate Limited: API provider is temporarily rate-limited. Please retry shortly."
    if "401" in s or "Unauthorized" in s or t == "LLMAuthError":
        return "❌ Authentication Error: Invalid API key or credentials."
    if "404" in s or t in ("NotFound", "LLMNotFoundError"):
        return "❌ Not Found: The requested resource was not found."
    if "403" in s or t in ("Forbidden", "LLMForbiddenError"):
        return "❌ Forbidden: You don't have permission to access this resource."
    if "Connection" in t or "Timeout" in t or "ECONNREFUSED" in s or "ETIMEDOUT" in s:
        return "❌ Connection Error: Unable to connect to the API provider."
    return f"❌ {t}: {s.split(chr(10))[0][:100]}"


def format_user_friendly_error(error: Exception) -> str:
    """
    Short, safe error message suitable for end users.
    """
    s, t = str(error), type(error).__name__
    if "429" in s or t in ("RateLimitError", "LLMRateLimitError"):
        return "❌ I'm getting too many requests right now, please try again in a bit."
    if isinstance(error, LLMToolError):
        return "❌ Failed to search for information. Please try again later."
    if "Connection" in t or "Timeout" in t:
        return "❌ Sorry, I can't reach my brain right now."
    return "❌ Sorry I'm unable to think right now."
