"""Locate ``?`` positional placeholders in otherwise opaque SQL text.

A ``?`` inside a quoted literal, a quoted identifier, a dollar-quoted body
or a comment is not a placeholder. Backslash escapes are honoured inside
E'...' escape-string literals only. ``??`` is an escaped literal ``?``
(needed for PostgreSQL's jsonb ``?`` operators).
"""

from __future__ import annotations

from functools import lru_cache
from typing import NamedTuple


class ParsedSQL(NamedTuple):
    numbered: str
    placeholder_count: int


def _dollar_tag(sql: str, start: int) -> str | None:
    """Return the ``$tag$`` opening at ``start``, if any."""
    end = sql.find("$", start + 1)
    if end == -1:
        return None
    tag = sql[start : end + 1]
    body = tag[1:-1]
    if body and not (body[0].isalpha() or body[0] == "_"):
        return None
    if not all(ch.isalnum() or ch == "_" for ch in body):
        return None
    return tag


def _is_escape_string(sql: str, quote: int) -> bool:
    """Whether the quote at ``quote`` opens an E'...' literal."""
    if quote == 0 or sql[quote - 1] not in "eE":
        return False
    before = sql[quote - 2] if quote >= 2 else " "
    return not (before.isalnum() or before == "_")


@lru_cache(maxsize=512)
def parse(sql: str) -> ParsedSQL:
    """Rewrite ``?`` placeholders to ``$1, $2, ...`` and count them.

    Examples
    --------
    >>> parse("SELECT * FROM t WHERE a = ? AND b = '?'")
    ParsedSQL(numbered="SELECT * FROM t WHERE a = $1 AND b = '?'", placeholder_count=1)
    """
    out: list[str] = []
    count = 0
    i = 0
    n = len(sql)

    while i < n:
        ch = sql[i]

        if ch in ("'", '"'):
            # '' and "" escape the quote inside a literal/identifier
            backslashes = ch == "'" and _is_escape_string(sql, i)
            j = i + 1
            while j < n:
                if backslashes and sql[j] == "\\":
                    j += 2
                    continue
                if sql[j] == ch:
                    if j + 1 < n and sql[j + 1] == ch:
                        j += 2
                        continue
                    break
                j += 1
            out.append(sql[i : j + 1])
            i = j + 1
        elif ch == "-" and sql.startswith("--", i):
            j = sql.find("\n", i)
            j = n if j == -1 else j
            out.append(sql[i:j])
            i = j
        elif ch == "/" and sql.startswith("/*", i):
            j = sql.find("*/", i + 2)
            j = n if j == -1 else j + 2
            out.append(sql[i:j])
            i = j
        elif ch == "$" and (tag := _dollar_tag(sql, i)) is not None:
            j = sql.find(tag, i + len(tag))
            j = n if j == -1 else j + len(tag)
            out.append(sql[i:j])
            i = j
        elif ch == "?":
            if sql.startswith("??", i):
                out.append("?")
                i += 2
            else:
                count += 1
                out.append(f"${count}")
                i += 1
        else:
            out.append(ch)
            i += 1

    return ParsedSQL("".join(out), count)


def count_placeholders(sql: str) -> int:
    return parse(sql).placeholder_count
