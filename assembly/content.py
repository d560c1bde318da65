"""
HTML fragments for page content.

The fragment is inserted into the site shell by the client; it carries no
``<html>``/``<body>`` of its own. Names and signatures go through
``html.escape``; doc comment text is rendered as Markdown with raw HTML
disabled, so it is escaped as well.
"""

import re
from html import escape
from typing import Any, Dict, Iterable, List, Optional

import markdown

from assembly.models import PageRecord

# Markdown processor for doc comment text
md = markdown.Markdown(extensions=["fenced_code", "tables"])
# Raw HTML in comments is shown as text
md.preprocessors.deregister("html_block")
md.inlinePatterns.deregister("html")

_SINGLE_PARAGRAPH_RE = re.compile(r"^<p>(?P<body>.*)</p>$", re.DOTALL)


def render_markdown(text: str) -> str:
    """Render comment Markdown to an HTML block."""
    md.reset()
    return md.convert(text)


def render_inline_markdown(text: str) -> str:
    """Render comment Markdown, unwrapping a lone paragraph."""
    rendered = render_markdown(text)
    match = _SINGLE_PARAGRAPH_RE.match(rendered)
    if match and "<p>" not in match.group("body"):
        return match.group("body")
    return rendered


def _link(text: str, url: Optional[str]) -> str:
    if url:
        return f'<a href="{escape(url)}">{escape(text)}</a>'
    return escape(text)


def _reference(ref: Dict[str, Any]) -> str:
    return f'<span class="ref ref-{escape(ref["role"])}">{_link(ref["text"], ref["url"])}</span>'


def _paragraphs(texts: Iterable[str], css: str) -> List[str]:
    return [f'<div class="{css}">{render_markdown(t)}</div>' for t in texts if t]


def _doc(doc: Dict[str, Any]) -> str:
    parts: List[str] = []
    if doc.get("deprecated"):
        parts.append(f'<p class="deprecated">Deprecated: {render_inline_markdown(doc["deprecated"])}</p>')
    if doc.get("summary"):
        parts.append(f'<p class="summary">{render_inline_markdown(doc["summary"])}</p>')
    else:
        parts.append('<p class="summary">No description provided.</p>')
    parts.extend(_paragraphs(doc.get("discussion", ()), "discussion"))

    if doc.get("tparams"):
        items = "".join(
            f"<dt>{escape(p['name'])}</dt><dd>{render_inline_markdown(p['description'])}</dd>"
            for p in doc["tparams"]
        )
        parts.append(f'<dl class="tparams">{items}</dl>')
    if doc.get("params"):
        items = "".join(
            f"<dt>{escape(p['name'])}</dt><dd>{render_inline_markdown(p['description'])}</dd>"
            for p in doc["params"]
        )
        parts.append(f'<dl class="params">{items}</dl>')
    if doc.get("returns"):
        parts.append(f'<p class="returns">Returns: {render_inline_markdown(doc["returns"])}</p>')

    for key, label in (("throws", "Throws"), ("notes", "Note"), ("warnings", "Warning"), ("see", "See")):
        for text in doc.get(key, ()):
            parts.append(f'<p class="{key}">{label}: {render_inline_markdown(text)}</p>')
    for example in doc.get("examples", ()):
        parts.append(f'<pre class="example"><code>{escape(example)}</code></pre>')
    for field in ("since", "version"):
        if doc.get(field):
            parts.append(f'<p class="{field}">{field.capitalize()}: {escape(doc[field])}</p>')
    return "\n".join(parts)


def _declaration(record: Dict[str, Any]) -> str:
    refs = "".join(_reference(r) for r in record.get("references", ()) if r["url"])
    links = f'<div class="refs">{refs}</div>' if refs else ""
    return f'<pre class="declaration"><code>{escape(record["declaration"])}</code></pre>{links}'


def _declared_in(spans: Iterable[Dict[str, Any]]) -> str:
    items = []
    for span in spans:
        label = f"{span['file']}:{span['start_line']}"
        items.append(f"<li>{_link(label, span.get('url'))}</li>")
    if not items:
        return ""
    return f'<ul class="declared-in">{"".join(items)}</ul>'


def _member(record: Dict[str, Any]) -> str:
    return (
        f'<div class="member" id="{escape(record["anchor"])}">'
        f"<h3>{_link(record['display_name'], record['url'])}</h3>"
        f"{_declaration(record)}"
        f"{_doc(record['doc'])}"
        "</div>"
    )


def render_content_html(page: PageRecord) -> str:
    """Render the content fragment of one page."""
    content = page.content
    parts: List[str] = [f"<h1>{escape(page.metadata.title)}</h1>"]

    entity = content.get("entity")
    if entity is not None:
        parts.append(_declaration(entity))
        parts.append(_doc(entity["doc"]))
        if entity["enumerators"]:
            items = "".join(f"<li><code>{escape(e)}</code></li>" for e in entity["enumerators"])
            parts.append(f'<ul class="enumerators">{items}</ul>')
        parts.append(_declared_in(entity["declared_in"]))

    file_info = content.get("file")
    if file_info is not None:
        parts.append(f'<p class="header">{_link(file_info["path"], file_info["url"])}</p>')

    for name, group in content.get("members", {}).items():
        members = "\n".join(_member(m) for m in group["members"])
        parts.append(
            f'<details class="section {escape(name)}" open>'
            f"<summary><h2>{escape(group['title'])} ({len(group['members'])})</h2></summary>"
            f"{members}"
            "</details>"
        )
    return "\n".join(p for p in parts if p)
