"""Markdown renderer for aperonix.

Converts the small Markdown dialect used in assistant answers into a
safe HTML fragment. Rendering is an ordered sequence of rewrite passes
over a string. Each pass is a plain function ``(text, stash) -> text``
and assumes the output shape of the passes before it:

1. ``escape_html``        escape the whole input; all later markup is
                          generated around already-escaped text
2. ``fenced_code_blocks`` triple-backtick blocks, stashed
3. ``inline_code``        single-backtick spans, stashed
4. ``emphasis``           bold before italic
5. ``headers``            ``#`` to ``###`` at line start
6. ``blockquotes``        ``&gt;`` at line start
7. ``horizontal_rules``   a line of three or more hyphens
8. ``lists``              ``-``/``*``/``+`` and ``N.`` items, coalesced
9. ``links``              ``[text](url)`` for safe schemes only
10. ``paragraphs``        blank-line runs wrapped in ``<p>``
11. ``restore_stash``     stashed code put back

Code is stashed behind NUL-delimited placeholders so passes 4-10 never
see it. NUL is removed from the input in pass 1, so a placeholder can
only come from the stash.
"""

import html
import re
from collections.abc import Callable, Sequence

from aperonix.utils.hashing import short_hash

__all__ = [
    "DEFAULT_PASSES",
    "MarkdownRenderer",
    "RenderPass",
    "blockquotes",
    "emphasis",
    "escape_html",
    "fenced_code_blocks",
    "headers",
    "horizontal_rules",
    "inline_code",
    "links",
    "lists",
    "paragraphs",
    "render_markdown",
    "restore_stash",
]

RenderPass = Callable[[str, list[str]], str]

_BLOCK_TOKEN = "\x00B{}\x00"
_INLINE_TOKEN = "\x00I{}\x00"
_TOKEN_RE = re.compile(r"\x00[BI](\d+)\x00")
_BLOCK_TOKEN_RE = re.compile(r"^\x00B\d+\x00$")

_FENCE_RE = re.compile(r"```([\w+#.-]*)[ \t]*\n?(.*?)```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")

_BOLD_RES = (
    re.compile(r"\*\*(.+?)\*\*"),
    re.compile(r"__(.+?)__"),
)
_ITALIC_RES = (
    re.compile(r"\*(?![\s*])(.+?)(?<![\s*])\*"),
    re.compile(r"(?<![\w_])_(?![\s_])(.+?)(?<![\s_])_(?![\w_])"),
)

_HEADER_RES = (
    (re.compile(r"^### (.+)$", re.MULTILINE), "h3"),
    (re.compile(r"^## (.+)$", re.MULTILINE), "h2"),
    (re.compile(r"^# (.+)$", re.MULTILINE), "h1"),
)
_BLOCKQUOTE_RE = re.compile(r"^&gt; ?(.+)$", re.MULTILINE)
_HR_RE = re.compile(r"^-{3,}[ \t]*$", re.MULTILINE)

_UL_ITEM_RE = re.compile(r"^ {0,3}[-*+] (.+)$")
_OL_ITEM_RE = re.compile(r"^ {0,3}\d+\. (.+)$")

_LINK_RE = re.compile(r"\[([^\]\n]+)\]\(([^)\s<]+)\)")
_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")
_SAFE_SCHEMES = frozenset({"http", "https", "mailto"})

_BLOCK_PREFIXES = ("<h1>", "<h2>", "<h3>", "<blockquote>", "<hr>", "<ul>", "<ol>")


def escape_html(text: str, stash: list[str]) -> str:
    """Normalize newlines, drop NUL and escape ``& < > " '``."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    return html.escape(text, quote=True)


def fenced_code_blocks(text: str, stash: list[str]) -> str:
    """Replace fenced blocks with a stashed code-block container.

    The container carries the language label (``code`` when absent), a
    copy button pointing at the ``<pre>`` id, and the escaped code. Ids
    are derived from the block content and position, so they are stable
    across renders.
    """
    count = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal count
        lang, code = match.group(1), match.group(2).strip("\n").rstrip()
        block_id = f"code-{short_hash(lang, code, count, length=8)}"
        count += 1
        code_class = f' class="language-{lang}"' if lang else ""
        stash.append(
            '<div class="code-block">'
            '<div class="code-block-header">'
            f'<span class="code-lang">{lang or "code"}</span>'
            f'<button class="btn-copy-code" type="button" data-target="{block_id}">Copy</button>'
            "</div>"
            f'<pre id="{block_id}"><code{code_class}>{code}</code></pre>'
            "</div>"
        )
        return "\n\n" + _BLOCK_TOKEN.format(len(stash) - 1) + "\n\n"

    return _FENCE_RE.sub(replace, text)


def inline_code(text: str, stash: list[str]) -> str:
    """Replace single-backtick spans with stashed ``<code>`` elements."""

    def replace(match: re.Match[str]) -> str:
        stash.append(f"<code>{match.group(1)}</code>")
        return _INLINE_TOKEN.format(len(stash) - 1)

    return _INLINE_CODE_RE.sub(replace, text)


def emphasis(text: str, stash: list[str]) -> str:
    """Bold (``**x**``, ``__x__``) first, then italic (``*x*``, ``_x_``).

    Italic markers must hug their text, so list bullets and arithmetic
    like ``2 * 3`` are left alone. Underscores inside words never count.
    """
    for pattern in _BOLD_RES:
        text = pattern.sub(r"<strong>\1</strong>", text)
    for pattern in _ITALIC_RES:
        text = pattern.sub(r"<em>\1</em>", text)
    return text


def headers(text: str, stash: list[str]) -> str:
    for pattern, tag in _HEADER_RES:
        text = pattern.sub(rf"<{tag}>\1</{tag}>", text)
    return text


def blockquotes(text: str, stash: list[str]) -> str:
    return _BLOCKQUOTE_RE.sub(r"<blockquote>\1</blockquote>", text)


def horizontal_rules(text: str, stash: list[str]) -> str:
    return _HR_RE.sub("<hr>", text)


def lists(text: str, stash: list[str]) -> str:
    """Wrap list items and coalesce consecutive ones into one list.

    A run of items of the same kind becomes a single ``<ul>`` or
    ``<ol>`` line. Switching kind, or any other line, ends the run.
    """
    out: list[str] = []
    kind: str | None = None
    items: list[str] = []

    def flush() -> None:
        nonlocal kind
        if kind is not None:
            out.append(f"<{kind}>" + "".join(f"<li>{i}</li>" for i in items) + f"</{kind}>")
            items.clear()
            kind = None

    for line in text.split("\n"):
        if match := _UL_ITEM_RE.match(line):
            line_kind = "ul"
        elif match := _OL_ITEM_RE.match(line):
            line_kind = "ol"
        else:
            flush()
            out.append(line)
            continue

        if line_kind != kind:
            flush()
            kind = line_kind
        items.append(match.group(1))

    flush()
    return "\n".join(out)


def links(text: str, stash: list[str]) -> str:
    """Turn ``[text](url)`` into anchors opening in a new context.

    Only ``http``, ``https``, ``mailto`` and scheme-less URLs are
    linked; anything else (``javascript:``, ``data:``) stays as text.
    """

    def replace(match: re.Match[str]) -> str:
        label, url = match.group(1), match.group(2)
        scheme = _SCHEME_RE.match(url)
        if scheme is not None and scheme.group(1).lower() not in _SAFE_SCHEMES:
            return match.group(0)
        return f'<a href="{url}" target="_blank" rel="noopener noreferrer">{label}</a>'

    return _LINK_RE.sub(replace, text)


def paragraphs(text: str, stash: list[str]) -> str:
    """Wrap blank-line-separated runs in ``<p>``; single newlines become ``<br>``.

    Lines that already hold block-level markup (or a stashed code block)
    are emitted as they are, splitting the surrounding run.
    """
    out: list[str] = []
    for block in re.split(r"\n{2,}", text):
        run: list[str] = []
        for line in block.split("\n"):
            if not line.strip():
                continue
            if line.startswith(_BLOCK_PREFIXES) or _BLOCK_TOKEN_RE.match(line):
                if run:
                    out.append("<p>" + "<br>".join(run) + "</p>")
                    run = []
                out.append(line)
            else:
                run.append(line)
        if run:
            out.append("<p>" + "<br>".join(run) + "</p>")
    return "".join(out)


def restore_stash(text: str, stash: list[str]) -> str:
    return _TOKEN_RE.sub(lambda m: stash[int(m.group(1))], text)


DEFAULT_PASSES: tuple[RenderPass, ...] = (
    escape_html,
    fenced_code_blocks,
    inline_code,
    emphasis,
    headers,
    blockquotes,
    horizontal_rules,
    lists,
    links,
    paragraphs,
    restore_stash,
)


class MarkdownRenderer:
    """Renders assistant text into a sanitized HTML fragment.

    Pure and deterministic: equal input gives byte-identical output.
    Raw ``<`` in the input always ends up as exactly one ``&lt;``.

    Example:
        renderer = MarkdownRenderer()
        fragment = renderer.render("**Hello** `world`")
    """

    def __init__(self, passes: Sequence[RenderPass] = DEFAULT_PASSES) -> None:
        self._passes = tuple(passes)

    @property
    def passes(self) -> tuple[RenderPass, ...]:
        return self._passes

    def render(self, text: str | None) -> str:
        """Render raw text. Empty input renders as an empty string."""
        if not text:
            return ""
        stash: list[str] = []
        for render_pass in self._passes:
            text = render_pass(text, stash)
        return text

    def render_plain(self, text: str | None) -> str:
        """Escape without any Markdown; used for user text and errors."""
        if not text:
            return ""
        return paragraphs(escape_html(text, []), [])


_default_renderer = MarkdownRenderer()


def render_markdown(text: str | None) -> str:
    """Render with the default pass sequence."""
    return _default_renderer.render(text)
