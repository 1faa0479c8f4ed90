"""Pointer tooltip: placement inside the host rectangle and content."""

from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple


OFFSET = 12
EDGE_PAD = 5
KINDS = ("park", "parcel", "route")

PARK_ICON = (
    '<svg width="24" height="24" viewBox="0 0 24 24" fill="#10B981">'
    '<circle cx="12" cy="8" r="5"/><circle cx="8" cy="10" r="4"/>'
    '<circle cx="16" cy="10" r="4"/><rect x="11" y="13" width="2" height="8"/></svg>'
)
PARCEL_ICON = (
    '<svg width="24" height="24" viewBox="0 0 24 24" fill="#AB47BC">'
    '<path d="M10 20v-6h4v6h5v-8h3L12 3 2 12h3v8z"/></svg>'
)
ROUTE_ICON = (
    '<svg width="24" height="24" viewBox="0 0 24 24" fill="none" stroke="#f87171" '
    'stroke-width="2" stroke-linecap="round" stroke-linejoin="round">'
    '<polyline points="9 11 12 14 22 4"></polyline>'
    '<path d="M21 12v7a2 2 0 0 1-2 2H5a2 2 0 0 1-2-2V5a2 2 0 0 1 2-2h11"></path></svg>'
)


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


def place_block(
    x: float, y: float, width: float, height: float, host: Rect
) -> Tuple[float, float]:
    """Top-left corner for a block shown next to the pointer at `(x, y)`.

    Below-right of the pointer by default, flipped to the other side of the
    pointer on the axis that would overflow, then kept inside the host's
    top and left edges.
    """

    left = x + OFFSET
    top = y + OFFSET
    if left + width > host.right:
        left = x - width - OFFSET
    if top + height > host.bottom:
        top = y - height - OFFSET
    if left < host.left:
        left = host.left + EDGE_PAD
    if top < host.top:
        top = host.top + EDGE_PAD
    return left, top


def estimate_size(content: str) -> Tuple[float, float]:
    lines = max(1, content.count("<br") + content.count("</div>"))
    return 220.0, 18.0 * lines + 16.0


class TooltipSlot:
    """The one tooltip of a viewer; showing new content replaces the old."""

    def __init__(
        self,
        host: Rect,
        measure: Optional[Callable[[str], Tuple[float, float]]] = None,
    ):
        self.host = host
        self.measure = measure or estimate_size
        self.content: Optional[str] = None
        self.kind: Optional[str] = None
        self.position: Optional[Tuple[float, float]] = None

    @property
    def visible(self) -> bool:
        return self.content is not None

    @property
    def css_classes(self) -> str:
        if self.kind in KINDS:
            return f"tooltip tooltip-{self.kind}"
        return "tooltip"

    def show(self, x: float, y: float, content: str, kind: Optional[str] = None) -> Tuple[float, float]:
        width, height = self.measure(content)
        self.content = content
        self.kind = kind
        self.position = place_block(x, y, width, height, self.host)
        return self.position

    def hide(self) -> None:
        self.content = None
        self.kind = None
        self.position = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "visible": self.visible,
            "content": self.content,
            "kind": self.kind,
            "classes": self.css_classes,
            "position": list(self.position) if self.position else None,
        }


def _text(value: Any) -> str:
    return html.escape(str(value))


def _block(icon: str, body: str) -> str:
    return (
        '<div style="display:flex;align-items:center;gap:10px;">'
        f"{icon}<div>{body}</div></div>"
    )


def _small(text: str) -> str:
    return f'<span style="font-size:11px;opacity:0.7;">{text}</span>'


def parcel_tooltip(props: Mapping[str, Any]) -> str:
    cad = props.get("cadastral_parcel") or props.get("parcel_id")
    pop = props.get("population")
    if pop is None:
        pop = 0
    walk = props.get("walk_time")
    walk_text = f"{_text(walk)} min" if walk else "—"
    return _block(
        PARCEL_ICON,
        f'<div style="font-weight:500;margin-bottom:2px;">Parcel {_text(cad)}</div>'
        + _small(f"Population: {_text(pop)}<br>Walk time: {walk_text}"),
    )


def park_tooltip(props: Mapping[str, Any]) -> str:
    name = props.get("green_area_name") or "—"
    area = props.get("green_area_m2") or 0
    return _block(PARK_ICON, f"<b>{_text(name)}</b><br>" + _small(f"{_text(area)} m²"))


def _thousands(value: Any) -> str:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:,.3f}".rstrip("0").rstrip(".")
    return str(value)


def route_tooltip(props: Mapping[str, Any]) -> str:
    walk = props.get("walk_time")
    walk_text = _text(walk) if walk is not None else "—"
    dist = props.get("walk_distance")
    dist_text = f"{_text(_thousands(dist))} m" if dist else "—"
    return _block(
        ROUTE_ICON,
        "<b>Route</b><br>" + _small(f"Time: {walk_text} min<br>Distance: {dist_text}"),
    )
