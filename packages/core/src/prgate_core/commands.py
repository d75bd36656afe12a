"""Comment classification.

Squash and merge are directives: the whole comment must be the command.
Approval is a signal and may appear anywhere in a longer comment.
"""

from __future__ import annotations

import enum
import re

# "+1" not followed by another digit, so "+10" and "+100" do not count.
_PLUS_ONE_RE = re.compile(r"\+1(?!\d)")
_THUMBS_UP_RE = re.compile(r":(\+1|thumbsup):|\U0001F44D")
_COMMAND_PREFIXES = "!/"


class Command(enum.Enum):
    SQUASH = "squash"
    MERGE = "merge"
    APPROVAL = "approval"
    NONE = "none"


def _normalise(text: str) -> str:
    return " ".join(text.split()).casefold().lstrip(_COMMAND_PREFIXES)


def is_command(text: str, token: str) -> bool:
    return bool(text) and _normalise(text) == token.casefold()


def is_approval(text: str) -> bool:
    return bool(_PLUS_ONE_RE.search(text) or _THUMBS_UP_RE.search(text))


def classify_comment(text: str | None, squash_command: str = "squash", merge_command: str = "merge") -> Command:
    if not text:
        return Command.NONE
    if is_command(text, squash_command):
        return Command.SQUASH
    if is_command(text, merge_command):
        return Command.MERGE
    if is_approval(text):
        return Command.APPROVAL
    return Command.NONE
