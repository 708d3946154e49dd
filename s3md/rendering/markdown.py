"""
Safe Markdown renderer for bucket documents with intra-document link rewriting.

Why:
- Documents in the bucket are authored outside this service; rendering must
  never let author-controlled markup execute in the reader's browser.
- Documents link to each other with relative paths ("../index.md"). Those
  links must route back through the dispatcher instead of pointing at the
  bucket, and must never reveal the storage key prefix.

Security model:
- Let a markdown parser build the HTML (with HTML input disabled).
- Rewrite relative .md links on the token stream before serialization, so the
  parser's attribute escaping applies to the rewritten value.
- Sanitize the output via a whitelist so only known-safe tags remain.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Union
from urllib.parse import unquote, urlencode

import bleach
from markdown_it import MarkdownIt
from markdown_it.token import Token


_ALLOWED_TAGS = [
    "p",
    "br",
    "hr",
    "strong",
    "em",
    "del",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "table",
    "thead",
    "tbody",
    "tr",
    "th",
    "td",
    "ul",
    "ol",
    "li",
    "code",
    "pre",
    "blockquote",
    "a",
    "img",
]

_ALLOWED_ATTRIBUTES = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title"],
}

_ALLOWED_PROTOCOLS = ["http", "https", "mailto"]

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")

# Parser configuration:
# - html=False: raw HTML in the source is rendered as text.
# - linkify=False: avoid auto-linking plain URLs.
# - typographer=False: keep output deterministic.
_MD = MarkdownIt(
    "commonmark",
    {
        "html": False,
        "linkify": False,
        "typographer": False,
        "breaks": False,
    },
).enable(["table", "strikethrough"])


@dataclass
class RenderedDocument:
    """Sanitized HTML plus the internal links that were rewritten.

    `links` maps the raw link target (as written in the document) to the
    identifier it resolved to. It is informational and not cached.
    """

    html: str
    links: Dict[str, str] = field(default_factory=dict)


def _sanitize(html: str) -> str:
    cleaned = bleach.clean(
        html,
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRIBUTES,
        protocols=_ALLOWED_PROTOCOLS,
        strip=False,
    )
    return cleaned.strip()


def normalize_path(path: str) -> str:
    """Collapse "." segments and resolve ".." against the accumulated segments.

    A ".." with nothing left to pop is dropped, so "../../a.md" at the root
    normalizes to "a.md".
    """
    stack: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if stack:
                stack.pop()
            continue
        stack.append(segment)
    return "/".join(stack)


def resolve_link_target(target: str, current_identifier: str) -> str:
    """Resolve a relative document link against the current document's directory."""
    if target.startswith("/"):
        return normalize_path(target)
    directory, sep, _ = current_identifier.rpartition("/")
    if sep and directory:
        return normalize_path(f"{directory}/{target}")
    return normalize_path(target)


def is_internal_document_link(href: str) -> bool:
    """True for relative links to .md documents (not absolute, mailto or #fragment)."""
    if not href or href.startswith("#") or href.startswith("//"):
        return False
    if _SCHEME_RE.match(href):
        return False
    path = href.split("#", 1)[0].split("?", 1)[0]
    return unquote(path).lower().endswith(".md")


def _iter_link_tokens(tokens: Iterable[Token]) -> Iterable[Token]:
    for token in tokens:
        if token.type == "link_open":
            yield token
        if token.children:
            yield from _iter_link_tokens(token.children)


class MarkdownRenderer:
    """Render bucket documents and route internal links through the dispatcher.

    Parameters
    ----------
    dispatcher_base:
        Base URL of the page that serves documents. Empty means "the current
        page", so rewritten links are query-only ("?file=docs%2Fa.md").
    query_param:
        Name of the query parameter carrying the identifier.
    """

    def __init__(self, dispatcher_base: str = "", query_param: str = "file") -> None:
        self.dispatcher_base = dispatcher_base
        self.query_param = query_param

    def dispatcher_link(self, identifier: str) -> str:
        base = self.dispatcher_base
        sep = "&" if "?" in base else "?"
        return f"{base}{sep}{urlencode({self.query_param: identifier})}"

    def render(self, raw: Union[bytes, str], current_identifier: str) -> RenderedDocument:
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
        text = text.lstrip("\ufeff")
        if not text:
            return RenderedDocument(html="")

        tokens = _MD.parse(text)
        links: Dict[str, str] = {}
        for token in _iter_link_tokens(tokens):
            href = token.attrGet("href")
            if not isinstance(href, str) or not is_internal_document_link(href):
                continue
            target, hash_sign, fragment = href.partition("#")
            path = unquote(target.split("?", 1)[0])
            resolved = resolve_link_target(path, current_identifier)
            rewritten = self.dispatcher_link(resolved)
            if hash_sign:
                rewritten = f"{rewritten}#{fragment}"
            token.attrSet("href", rewritten)
            links[href] = resolved

        html = _MD.renderer.render(tokens, _MD.options, {})
        return RenderedDocument(html=_sanitize(html), links=links)


__all__ = [
    "MarkdownRenderer",
    "RenderedDocument",
    "is_internal_document_link",
    "normalize_path",
    "resolve_link_target",
]
