from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from green_access_map.geo import BBox, FeatureCollection
from green_access_map.loader import load_fgb
from green_access_map.session import SessionState
from green_access_map.surface import PARCELS_SOURCE, RenderSurface


logger = logging.getLogger("gam.viewport")

FgbLoader = Callable[[str, Optional[BBox]], Awaitable[FeatureCollection]]


class ViewportQueryController:
    """Keeps the `parcels` source in step with the visible map extent.

    Every query takes the next sequence number from the session. A result is
    published only when no newer query has been published already, so slow
    responses to old viewports never overwrite fresher data. `on_publish`
    runs right after each published snapshot.
    """

    def __init__(
        self,
        state: SessionState,
        surface: RenderSurface,
        parcels_url: str,
        loader: FgbLoader = load_fgb,
        on_publish: Optional[Callable[[FeatureCollection], None]] = None,
    ):
        self.state = state
        self.surface = surface
        self.parcels_url = parcels_url
        self.loader = loader
        self.on_publish = on_publish

    async def initial_load(self) -> bool:
        return await self._query(None)

    async def on_viewport_change(self, bbox: BBox) -> bool:
        return await self._query(bbox)

    async def _query(self, bbox: Optional[BBox]) -> bool:
        seq = self.state.next_viewport_seq()
        collection = await self.loader(self.parcels_url, bbox)
        if seq <= self.state.viewport_applied:
            logger.debug(
                "discarding stale viewport result seq=%s (applied=%s)",
                seq,
                self.state.viewport_applied,
            )
            self.state.bump("stale_viewport")
            return False
        self.state.viewport_applied = seq
        self.surface.set_source_data(PARCELS_SOURCE, collection)
        if self.on_publish is not None:
            self.on_publish(collection)
        logger.debug("viewport seq=%s published %s parcels", seq, len(collection))
        return True
