"""Pattern-based abuse classifiers for user-supplied text.

Both functions are pure and deterministic: no I/O, no state. They are
heuristics, so false positives and negatives are expected; callers use them
to reject obviously hostile or junk input, not as a security boundary.
"""

from __future__ import annotations

import re
import string

# Quote, statement separator or comment marker directly before a SQL
# statement shape (keyword plus its clause), or well-known injection idioms
# anywhere in the text.
_SQL_INJECTION = re.compile(
    r"(['\"`;]|--|/\*)\s*("
    r"select\b.*?\bfrom\b"
    r"|insert\s+into\b"
    r"|update\s+\w+\s+set\b"
    r"|delete\s+from\b"
    r"|(drop|alter|truncate)\s+(table|database|schema)\b"
    r"|exec(ute)?\s*\(|exec(ute)?\s+(xp|sp)_\w+"
    r")"
    r"|\bunion\s+(all\s+)?select\b"
    r"|\bdrop\s+(table|database)\b"
    r"|\b(or|and)\s+['\"]?(?P<operand>\w+)['\"]?\s*=\s*['\"]?(?P=operand)\b"
    r"|['\"]\s*(--|/\*)",
    re.IGNORECASE,
)

_MARKUP_INJECTION = re.compile(
    r"<\s*/?\s*(script|iframe|object|embed|svg|img|style|link|meta)\b"
    r"|javascript\s*:"
    r"|vbscript\s*:"
    r"|data\s*:\s*text/html"
    r"|\bon(error|load|click|mouseover|focus)\s*=",
    re.IGNORECASE,
)

# A shell command followed by something argument-like (option, path,
# variable, URL) or by the end of the command, so "; cat 3 risks" passes.
_SHELL_COMMANDS = (
    r"(rm|curl|wget|bash|sh|zsh|nc|ncat|cat|chmod|chown|python\d?|perl|powershell|cmd)\b"
    r"(\s+([-/~$.]|https?://)|\s*([;|&`]|$))"
)

_COMMAND_INJECTION = re.compile(
    r"(;|&&|\|\|?|`)\s*" + _SHELL_COMMANDS
    + r"|\$\([^)]*\)"
    + r"|[\r\n]\s*" + _SHELL_COMMANDS
    + r"|%0[ad]",
    re.IGNORECASE,
)

# Whitespace and separator runs ("------", "======") are layout, not junk
_REPEATED_CHARACTER = re.compile(r"([^\s\-=_])\1{5,}")

_PUNCTUATION = set(string.punctuation)

_URL = re.compile(r"https?://\S+", re.IGNORECASE)

# A chunk of 4+ characters followed immediately by two more copies of itself
_REPEATED_CHUNK = re.compile(r"(.{4,}?)\1{2,}", re.DOTALL)

SPAM_KEYWORDS: tuple[str, ...] = (
    "viagra",
    "cialis",
    "free money",
    "earn money",
    "casino",
    "lottery",
    "prize",
    "winner",
    "buy now",
)

MAX_URLS = 3


def _is_degenerate(text: str) -> bool:
    """True for text made only of punctuation or dominated by one repeated character."""
    stripped = "".join(text.split())
    if stripped and all(ch in _PUNCTUATION for ch in stripped):
        return True
    return bool(_REPEATED_CHARACTER.search(text))


def is_suspicious_input(text: str) -> bool:
    """Flag text that looks like an injection attempt or carries no content.

    Matches any of:
    - SQL injection idioms (statements such as ``'; delete from`` glued to
      quotes/comment markers, ``union select``, ``drop table``, tautologies such as ``or 1=1``)
    - HTML/script tags, ``javascript:`` URIs and inline event handlers
    - shell command chaining, ``$(...)``/backtick substitution and embedded
      newlines (literal or ``%0a``/``%0d``) introducing a command invocation
    - degenerate text: punctuation only, or one character repeated 6+ times
      (whitespace and ``-``/``=``/``_`` separator runs excepted)

    Args:
        text: User-supplied text.

    Returns:
        True if any rule matches.

    Examples:
        >>> is_suspicious_input("'; DROP TABLE users; --")
        True
        >>> is_suspicious_input("This is a perfectly normal comment.")
        False
    """
    return bool(
        _SQL_INJECTION.search(text)
        or _MARKUP_INJECTION.search(text)
        or _COMMAND_INJECTION.search(text)
        or _is_degenerate(text)
    )


def count_urls(text: str) -> int:
    return len(_URL.findall(text))


def is_spam(text: str) -> bool:
    """Flag text that looks like comment spam.

    Matches any of:
    - more than ``MAX_URLS`` http(s) URLs
    - a chunk of 4+ characters immediately repeated at least three times
    - one of ``SPAM_KEYWORDS`` (case-insensitive)

    Examples:
        >>> is_spam("Buy now! http://a.com http://b.com http://c.com http://d.com")
        True
        >>> is_spam("aaaaaaaaaaaa")
        True
    """
    if count_urls(text) > MAX_URLS:
        return True

    if _REPEATED_CHUNK.search(text):
        return True

    lowered = text.lower()
    return any(keyword in lowered for keyword in SPAM_KEYWORDS)
