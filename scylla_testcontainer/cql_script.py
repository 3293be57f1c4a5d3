"""Splitting and execution of CQL scripts.

Statements are separated by ``;``. A script without any separator outside of
quotes is treated as one statement per line. ``--`` and ``//`` start line
comments, ``/* ... */`` delimits block comments. Single quotes, double quotes
and ``$$`` delimit literals, inside which nothing is interpreted. Runs of
whitespace outside literals collapse to a single space.
"""

from __future__ import annotations

import logging
import time
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .errors import ScriptParseError

LOGGER = logging.getLogger(__name__)

DEFAULT_STATEMENT_SEPARATOR = ";"
FALLBACK_STATEMENT_SEPARATOR = "\n"
DEFAULT_COMMENT_PREFIXES = ("--", "//")
DEFAULT_BLOCK_COMMENT_START = "/*"
DEFAULT_BLOCK_COMMENT_END = "*/"
_LITERAL_DELIMITERS = ("$$", "'", '"')
_WHITESPACE = " \t\r\n"


class ScriptStatement(NamedTuple):
    text: str
    line_number: int


def _split(
    script: str,
    script_path: str,
    separator: str,
    comment_prefixes: Sequence[str],
    block_comment_start: str,
    block_comment_end: str,
) -> Tuple[List[ScriptStatement], bool]:
    statements: List[ScriptStatement] = []
    buffer: List[str] = []
    start_line = 1
    line = 1
    literal: Optional[str] = None
    in_escape = False
    separator_seen = False

    def flush() -> None:
        text = "".join(buffer).strip()
        if text:
            statements.append(ScriptStatement(text, start_line))
        buffer.clear()

    index = 0
    length = len(script)
    while index < length:
        char = script[index]

        if literal is not None:
            if in_escape:
                in_escape = False
            elif char == "\\" and literal != "$$":
                in_escape = True
            elif script.startswith(literal, index):
                buffer.append(literal)
                index += len(literal)
                literal = None
                continue
            if char == "\n":
                line += 1
            buffer.append(char)
            index += 1
            continue

        if script.startswith(separator, index):
            separator_seen = True
            flush()
            line += separator.count("\n")
            index += len(separator)
            continue

        if any(script.startswith(prefix, index) for prefix in comment_prefixes):
            newline = script.find("\n", index)
            if newline == -1:
                break
            index = newline
            continue

        if script.startswith(block_comment_start, index):
            end = script.find(block_comment_end, index + len(block_comment_start))
            if end == -1:
                raise ScriptParseError(
                    f"Missing block comment end delimiter [{block_comment_end}]",
                    script_path,
                )
            line += script.count("\n", index, end)
            index = end + len(block_comment_end)
            continue

        if char in _WHITESPACE:
            if char == "\n":
                line += 1
            if buffer and buffer[-1] != " ":
                buffer.append(" ")
            index += 1
            continue

        if not buffer:
            start_line = line

        delimiter = next(
            (candidate for candidate in _LITERAL_DELIMITERS if script.startswith(candidate, index)),
            None,
        )
        if delimiter is not None:
            literal = delimiter
            buffer.append(delimiter)
            index += len(delimiter)
            continue

        buffer.append(char)
        index += 1

    if literal is not None:
        raise ScriptParseError(f"Unterminated literal starting with [{literal}]", script_path)

    flush()
    return statements, separator_seen


def split_cql_script(
    script: str,
    script_path: str = "",
    separator: Optional[str] = None,
    comment_prefixes: Sequence[str] = DEFAULT_COMMENT_PREFIXES,
    block_comment_start: str = DEFAULT_BLOCK_COMMENT_START,
    block_comment_end: str = DEFAULT_BLOCK_COMMENT_END,
) -> List[ScriptStatement]:
    """Split ``script`` into statements tagged with the line they start on."""

    if separator is not None:
        statements, _ = _split(
            script, script_path, separator, comment_prefixes, block_comment_start, block_comment_end
        )
        return statements

    statements, separator_seen = _split(
        script,
        script_path,
        DEFAULT_STATEMENT_SEPARATOR,
        comment_prefixes,
        block_comment_start,
        block_comment_end,
    )
    if separator_seen:
        return statements

    statements, _ = _split(
        script,
        script_path,
        FALLBACK_STATEMENT_SEPARATOR,
        comment_prefixes,
        block_comment_start,
        block_comment_end,
    )
    return statements


def execute_cql_script(
    delegate,
    script_path: str,
    script: str,
    continue_on_error: bool = False,
    ignore_failed_drops: bool = False,
) -> None:
    """Run every statement of ``script`` through ``delegate`` and close it afterwards."""

    LOGGER.info("Executing database script from %s", script_path)
    started = time.time()
    statements = split_cql_script(script, script_path)
    with delegate:
        delegate.execute_statements(statements, script_path, continue_on_error, ignore_failed_drops)
    LOGGER.info(
        "Executed database script from %s in %d ms",
        script_path,
        int((time.time() - started) * 1000),
    )
