"""Message chunking for chat platforms with a per-message size ceiling.

Long replies are split at the most readable boundary available (paragraph,
sentence, line, word) and fenced code blocks are kept intact. A code block
that cannot fit in one message is re-wrapped into several blocks that each
render on their own.

Lengths are measured in UTF-16 code units, the unit Telegram uses for its
message limit, so astral characters such as emoji count twice.
"""

import re

TELEGRAM_MESSAGE_LIMIT = 4096
SAFE_MARGIN = 96  # Room for parse-mode rendering metadata
SAFE_LIMIT = TELEGRAM_MESSAGE_LIMIT - SAFE_MARGIN

FENCE = "```"

# Minimum split position, as a fraction of the window that fits, per boundary kind
PARAGRAPH_THRESHOLD = 0.3
SENTENCE_THRESHOLD = 0.4
NEWLINE_THRESHOLD = 0.3
WORD_THRESHOLD = 0.3

_CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")
_FENCED_RE = re.compile(r"^```([^\s`]*)\n?([\s\S]*?)```$")
_SENTENCE_END_RE = re.compile(r"[.!?](?=[\s`\"'”’])")
_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")


def chunk_message(text: str, max_length: int = SAFE_LIMIT) -> list[str]:
    """Split text into fragments no longer than max_length.

    Args:
        text: Reply text, possibly containing fenced code blocks.
        max_length: Maximum length of each fragment, in UTF-16 code units.

    Returns:
        Ordered fragments. Text that already fits is returned unchanged
        as a single fragment; blank text yields no fragments.
    """
    _check_max_length(max_length)
    if not text.strip():
        return []
    if text_length(text) <= max_length:
        return [text]

    if FENCE in text:
        return _chunk_with_code_blocks(text, max_length)

    return _chunk_plain_text(text, max_length)


def wrap_as_code(
    text: str, language: str = "", max_length: int = SAFE_LIMIT
) -> list[str]:
    """Wrap text in fenced code blocks that each fit within max_length."""
    _check_max_length(max_length)
    if text_length(text) <= max_length - _fence_overhead(language):
        return [_wrap_code_block(text, language)]
    return _split_code_content(text, language, max_length)


def text_length(text: str) -> int:
    """Length of text as Telegram counts it, in UTF-16 code units."""
    return len(text.encode("utf-16-le")) // 2


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)


def format_code_response(
    code: str, language: str = "", max_length: int = SAFE_LIMIT
) -> list[str]:
    """Format terminal output as fenced code fragments."""
    return wrap_as_code(strip_ansi(code), language, max_length)


def _check_max_length(max_length: int) -> None:
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")


def _fit_prefix(text: str, max_length: int) -> int:
    """Number of leading characters that fit in max_length UTF-16 units.

    Always at least one, so a character wider than the limit still advances.
    """
    units = 0
    for i, char in enumerate(text):
        units += 2 if ord(char) > 0xFFFF else 1
        if units > max_length:
            return max(i, 1)
    return len(text)


def _chunk_plain_text(text: str, max_length: int) -> list[str]:
    """Split prose at paragraph/sentence/line/word boundaries."""
    chunks: list[str] = []
    remaining = text

    while remaining:
        if text_length(remaining) <= max_length:
            chunks.append(remaining.strip())
            break

        split_at = _find_split_point(remaining, max_length)
        chunks.append(remaining[:split_at].strip())
        remaining = remaining[split_at:].strip()

    return [chunk for chunk in chunks if chunk]


def _find_split_point(text: str, max_length: int) -> int:
    """Find the best point to split text at or before max_length.

    Priority order: blank line > sentence end > newline > space > hard cut.
    Each candidate must sit past a fraction of the window that fits so the split
    never produces a degenerate tiny fragment.
    """
    limit = _fit_prefix(text, max_length)
    search_region = text[:limit]

    paragraph = search_region.rfind("\n\n")
    if paragraph > limit * PARAGRAPH_THRESHOLD:
        return paragraph + 2

    sentence = _find_last_sentence_end(search_region)
    if sentence > limit * SENTENCE_THRESHOLD:
        return sentence

    newline = search_region.rfind("\n")
    if newline > limit * NEWLINE_THRESHOLD:
        return newline + 1

    space = search_region.rfind(" ")
    if space > limit * WORD_THRESHOLD:
        return space + 1

    return limit


def _find_last_sentence_end(text: str) -> int:
    """Return the index just past the last sentence terminator, or -1.

    A terminator only counts when followed by whitespace, a backtick or a
    closing quote; the following character stays with the current fragment.
    """
    last_end = -1
    for match in _SENTENCE_END_RE.finditer(text):
        last_end = match.end() + 1
    return min(last_end, len(text))


def _split_by_code_blocks(text: str) -> list[str]:
    """Split text into alternating prose and fenced segments."""
    segments: list[str] = []
    last_index = 0

    for match in _CODE_BLOCK_RE.finditer(text):
        if match.start() > last_index:
            segments.append(text[last_index : match.start()])
        segments.append(match.group(0))
        last_index = match.end()

    if last_index < len(text):
        segments.append(text[last_index:])

    return segments


def _chunk_with_code_blocks(text: str, max_length: int) -> list[str]:
    """Pack prose and code segments greedily, never splitting a fence."""
    chunks: list[str] = []
    current = ""

    for segment in _split_by_code_blocks(text):
        if text_length(segment) > max_length:
            if current.strip():
                chunks.append(current.strip())
            current = ""

            if segment.startswith(FENCE):
                chunks.extend(_split_long_code_block(segment, max_length))
            else:
                chunks.extend(_chunk_plain_text(segment, max_length))
            continue

        if text_length(current) + text_length(segment) > max_length:
            if current.strip():
                chunks.append(current.strip())
            current = segment
        else:
            current += segment

    if current.strip():
        chunks.append(current.strip())

    return [chunk for chunk in chunks if chunk]


def _split_long_code_block(code_block: str, max_length: int) -> list[str]:
    """Re-wrap one over-length fenced block into self-contained blocks."""
    match = _FENCED_RE.match(code_block)
    if not match:
        return _chunk_plain_text(code_block, max_length)

    language, content = match.group(1), match.group(2)
    return _split_code_content(content.rstrip("\n"), language, max_length)


def _split_code_content(content: str, language: str, max_length: int) -> list[str]:
    """Pack code lines into fenced blocks no longer than max_length."""
    content_max = max_length - _fence_overhead(language)
    if content_max < 1:
        # No room for a fence at all
        return _chunk_plain_text(content, max_length)

    chunks: list[str] = []
    current: str | None = None

    for line in content.split("\n"):
        if text_length(line) > content_max:
            if current is not None:
                chunks.append(_wrap_code_block(current, language))
                current = None
            for part in _wrap_long_line(line, content_max):
                chunks.append(_wrap_code_block(part, language))
            continue

        if current is None:
            current = line
        elif text_length(current) + 1 + text_length(line) > content_max:
            chunks.append(_wrap_code_block(current, language))
            current = line
        else:
            current = f"{current}\n{line}"

    if current is not None:
        chunks.append(_wrap_code_block(current, language))

    return chunks


def _fence_overhead(language: str) -> int:
    """Characters added by wrapping content in a fenced block."""
    return 2 * len(FENCE) + text_length(language) + 2


def _wrap_code_block(content: str, language: str = "") -> str:
    return f"{FENCE}{language}\n{content}\n{FENCE}"


def _wrap_long_line(line: str, max_length: int) -> list[str]:
    """Split a single line at the last interior space before max_length."""
    parts: list[str] = []
    remaining = line

    while text_length(remaining) > max_length:
        limit = _fit_prefix(remaining, max_length)
        split_at = remaining.rfind(" ", 0, limit)
        if split_at <= 0:
            split_at = limit
        parts.append(remaining[:split_at])
        remaining = remaining[split_at:].lstrip(" ")

    if remaining:
        parts.append(remaining)

    return parts
