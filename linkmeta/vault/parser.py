"""Markdown parsing utilities for wiki-links, tags, and headings."""

import re

# Match [[target]], [[target|display]], [[target#section]], [[target#section|display]]
# Embeds (![[...]]) are not links.
WIKILINK_PATTERN = re.compile(r"(?<!!)\[\[([^\]|#]+)(?:#[^\]|]+)?(?:\|[^\]]+)?\]\]")

# Match [display](target.md) but not images or external URLs
MDLINK_PATTERN = re.compile(r"(?<!!)\[[^\]]*\]\((?!\w+://)([^)#\s]+\.md)(?:#[^)]*)?\)")

# Obsidian tags: at least one non-digit character, may nest with "/"
TAG_PATTERN = re.compile(r"(?<![\w#/&])#([\w\-/]*[A-Za-z_\-/][\w\-/]*)")

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$", re.MULTILINE)

FENCE_PATTERN = re.compile(r"^(```|~~~).*?^\1[^\n]*$", re.MULTILINE | re.DOTALL)
INLINE_CODE_PATTERN = re.compile(r"`[^`\n]*`")


def strip_code(content: str) -> str:
    """Remove fenced blocks and inline code spans."""
    content = FENCE_PATTERN.sub("", content)
    return INLINE_CODE_PATTERN.sub("", content)


def extract_links(content: str) -> list[str]:
    """Extract all link targets from note body content.

    Returns raw link text (as written), deduplicated, in order of first use.
    Markdown links are URL-decoded for spaces.
    """
    text = strip_code(content)
    found: list[tuple[int, str]] = []
    for match in WIKILINK_PATTERN.finditer(text):
        found.append((match.start(), match.group(1).strip()))
    for match in MDLINK_PATTERN.finditer(text):
        found.append((match.start(), match.group(1).replace("%20", " ").strip()))
    found.sort(key=lambda item: item[0])

    seen = set()
    result = []
    for _, link in found:
        if link and link not in seen:
            seen.add(link)
            result.append(link)
    return result


def extract_tags(content: str) -> list[str]:
    """Extract inline #tags from content, '#'-prefixed, deduplicated."""
    text = strip_code(content)
    # Headings share the '#' sigil; drop their markers before scanning.
    text = HEADING_PATTERN.sub(lambda m: m.group(2), text)

    seen = set()
    result = []
    for match in TAG_PATTERN.finditer(text):
        tag = f"#{match.group(1)}"
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def extract_headings(content: str) -> list[str]:
    """Extract heading texts in document order."""
    text = FENCE_PATTERN.sub("", content)
    return [m.group(2).strip() for m in HEADING_PATTERN.finditer(text)]
