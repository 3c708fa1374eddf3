from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from markupsafe import Markup, escape

LinkResolver = Callable[[Dict[str, Any]], Optional[str]]

_BLOCK_TAGS = {
    "paragraph": "p",
    "preformatted": "pre",
    "heading1": "h1",
    "heading2": "h2",
    "heading3": "h3",
    "heading4": "h4",
    "heading5": "h5",
    "heading6": "h6",
    "list-item": "li",
    "o-list-item": "li",
}

_LIST_TAGS = {"list-item": "ul", "o-list-item": "ol"}


def as_text(blocks: Optional[Iterable[Dict[str, Any]]], join: str = " ") -> str:
    """Plain text of a rich text field, one block per `join`."""
    return join.join(b.get("text") or "" for b in blocks or [] if "text" in b)


def _link_href(data: Dict[str, Any], link_resolver: Optional[LinkResolver]) -> Optional[str]:
    """Web and media links carry a url; document links go through the resolver."""
    if data.get("link_type") == "Document":
        if link_resolver is None or data.get("isBroken"):
            return None
        return link_resolver(data)
    return data.get("url") or None


def _span_tags(span: Dict[str, Any], link_resolver: Optional[LinkResolver]) -> Tuple[str, str]:
    kind = span.get("type")
    data = span.get("data") or {}
    if kind == "strong":
        return "<strong>", "</strong>"
    if kind == "em":
        return "<em>", "</em>"
    if kind == "hyperlink":
        href = _link_href(data, link_resolver)
        if not href:
            return "", ""
        attrs = f' href="{escape(href)}"'
        target = data.get("target")
        if target:
            attrs += f' target="{escape(target)}" rel="noopener noreferrer"'
        return f"<a{attrs}>", "</a>"
    if kind == "label":
        return f'<span class="{escape(data.get("label") or "")}">', "</span>"
    return "<span>", "</span>"


def _text_segment(text: str) -> str:
    return str(escape(text)).replace("\n", "<br />")


def _utf16_index_map(text: str) -> List[int]:
    """Map UTF-16 code unit offsets, as stored by the Prismic editor, to str indexes."""
    out: List[int] = []
    for i, ch in enumerate(text):
        out.append(i)
        if ord(ch) > 0xFFFF:
            # second half of a surrogate pair
            out.append(i + 1)
    out.append(len(text))
    return out


def serialize_spans(
    text: str,
    spans: Optional[List[Dict[str, Any]]],
    link_resolver: Optional[LinkResolver] = None,
) -> str:
    """
    Render `text` with its inline spans as HTML.

    Span offsets count UTF-16 code units. Overlapping spans that do not nest
    are closed and reopened at the boundary so the output is always well
    formed.
    """
    index = _utf16_index_map(text)

    def pos(offset: int) -> int:
        return index[min(max(offset, 0), len(index) - 1)]

    spans = [
        dict(s, start=pos(s["start"]), end=pos(s["end"])) for s in spans or []
        if isinstance(s.get("start"), int) and isinstance(s.get("end"), int)
    ]
    spans = [s for s in spans if s["start"] < s["end"]]
    if not spans:
        return _text_segment(text)

    tags = [_span_tags(s, link_resolver) for s in spans]
    order = sorted(range(len(spans)), key=lambda i: (spans[i]["start"], -spans[i]["end"]))
    bounds = sorted({0, len(text)} | {s["start"] for s in spans} | {s["end"] for s in spans})

    out: List[str] = []
    stack: List[int] = []
    for a, b in zip(bounds, bounds[1:]):
        active = [i for i in order if spans[i]["start"] <= a and spans[i]["end"] >= b]
        keep = 0
        while keep < len(stack) and stack[keep] in active:
            keep += 1
        for i in reversed(stack[keep:]):
            out.append(tags[i][1])
        del stack[keep:]
        for i in active:
            if i not in stack:
                out.append(tags[i][0])
                stack.append(i)
        out.append(_text_segment(text[a:b]))
    for i in reversed(stack):
        out.append(tags[i][1])
    return "".join(out)


def _block_html(block: Dict[str, Any], link_resolver: Optional[LinkResolver]) -> str:
    kind = block.get("type")
    if kind == "image":
        url = block.get("url") or ""
        alt = block.get("alt") or ""
        return f'<p class="block-img"><img src="{escape(url)}" alt="{escape(alt)}" /></p>'
    if kind == "embed":
        oembed = block.get("oembed") or {}
        # embed html comes from the provider and is trusted as-is
        return (
            f'<div data-oembed="{escape(oembed.get("embed_url") or "")}" '
            f'data-oembed-type="{escape(oembed.get("type") or "")}">'
            f'{oembed.get("html") or ""}</div>'
        )
    tag = _BLOCK_TAGS.get(kind, "p")
    inner = serialize_spans(block.get("text") or "", block.get("spans"), link_resolver)
    return f"<{tag}>{inner}</{tag}>"


def as_html(
    blocks: Optional[Iterable[Dict[str, Any]]],
    link_resolver: Optional[LinkResolver] = None,
) -> Markup:
    """
    Serialise a rich text field. `link_resolver` turns document link data
    ({"link_type": "Document", "uid": ..., "type": ...}) into an href; without
    one, document links render as plain text.
    """
    parts: List[str] = []
    open_list: Optional[str] = None
    for block in blocks or []:
        list_tag = _LIST_TAGS.get(block.get("type"))
        if open_list and list_tag != open_list:
            parts.append(f"</{open_list}>")
            open_list = None
        if list_tag and open_list is None:
            parts.append(f"<{list_tag}>")
            open_list = list_tag
        parts.append(_block_html(block, link_resolver))
    if open_list:
        parts.append(f"</{open_list}>")
    return Markup("".join(parts))
