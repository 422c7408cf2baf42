"""Image transform URL building.

Transform references look like ``"<source>:<handle>"`` (``"craft:thumb"``,
``"imager-x:hero"``). A reference without a prefix uses the default
source. Renderers are registered per source up front; a reference whose
source has no renderer is skipped.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional, Tuple

from . import settings
from .interfaces import ImageTransformRenderer
from .models import RelatedElement

logger = logging.getLogger(__name__)

SOURCE_ALIASES = {
    "imagerx": "imager-x",
    "imager": "imager-x",
}


def canonical_source(source: str) -> str:
    source = source.strip().lower()
    return SOURCE_ALIASES.get(source, source)


def parse_transform_ref(
    ref: str,
    default_source: str = settings.DEFAULT_TRANSFORM_SOURCE,
) -> Tuple[str, str]:
    """Split a transform reference into (source, handle)."""
    ref = str(ref).strip()
    if ":" not in ref:
        return canonical_source(default_source), ref

    source, handle = ref.split(":", 1)
    return canonical_source(source or default_source), handle.strip()


class TransformUrlBuilder:
    """Renders transform URLs for assets, memoizing transform lookups.

    The memo is keyed by (source, handle) and lives for one mapping pass;
    call `clear_cache` between passes.
    """

    def __init__(
        self,
        renderers: Optional[Mapping] = None,
        default_source: str = settings.DEFAULT_TRANSFORM_SOURCE,
    ):
        self.renderers: Dict[str, ImageTransformRenderer] = {
            canonical_source(source): renderer
            for source, renderer in (renderers or {}).items()
        }
        self.default_source = default_source
        self._resolved: Dict[Tuple[str, str], Any] = {}

    def clear_cache(self) -> None:
        self._resolved.clear()

    def _resolve(self, renderer: ImageTransformRenderer, source: str, handle: str) -> Any:
        key = (source, handle)
        if key not in self._resolved:
            self._resolved[key] = renderer.resolve(handle)
        return self._resolved[key]

    def urls_for_asset(self, asset: RelatedElement, refs: Iterable[str]) -> Dict[str, str]:
        """Return ``{"<source>:<handle>": url}`` for every reference that renders.

        A failing reference is logged and left out; the others still render.
        """
        urls: Dict[str, str] = {}

        for ref in refs:
            if not ref:
                continue

            source, handle = parse_transform_ref(ref, self.default_source)
            if not handle:
                continue

            renderer = self.renderers.get(source)
            if renderer is None:
                logger.warning(
                    "No image transform renderer for source %r; skipping %r for asset %s",
                    source,
                    ref,
                    asset.id,
                )
                continue

            try:
                transform = self._resolve(renderer, source, handle)
                if transform is None:
                    logger.debug("Unknown image transform %r (source %r)", handle, source)
                    continue
                url = renderer.render(asset, transform)
            except Exception:
                logger.warning(
                    "Failed to build image transform %r for asset %s",
                    ref,
                    asset.id,
                    exc_info=True,
                )
                continue

            if url:
                urls[f"{source}:{handle}"] = str(url)

        return urls
