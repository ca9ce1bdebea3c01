"""
Image URL resolution for Sanity assets.

Avatars and thumbnails arrive either as a plain URL or as an asset
reference of the form `image-<assetId>-<width>x<height>-<format>`. The
resolver turns both into a displayable CDN URL.
"""

import re
from typing import Any, Optional

_ASSET_REF_PATTERN = re.compile(r"^image-(?P<id>[A-Za-z0-9]+)-(?P<dims>\d+x\d+)-(?P<fmt>[a-z0-9]+)$")

DEFAULT_PLACEHOLDER_URL = "https://via.placeholder.com/150"


class SanityImageUrlResolver:
    """Normalizes direct URLs and Sanity asset references to URLs."""

    def __init__(
        self,
        project_id: str,
        dataset: str = "production",
        placeholder_url: str = DEFAULT_PLACEHOLDER_URL,
    ):
        self._project_id = project_id
        self._dataset = dataset
        self._placeholder_url = placeholder_url

    @property
    def placeholder_url(self) -> str:
        return self._placeholder_url

    def ref_to_url(self, ref: str) -> Optional[str]:
        """Build a CDN URL from an asset reference, or None if it isn't one."""
        match = _ASSET_REF_PATTERN.match(ref)
        if not match or not self._project_id:
            return None
        return (
            f"https://cdn.sanity.io/images/{self._project_id}/{self._dataset}/"
            f"{match.group('id')}-{match.group('dims')}.{match.group('fmt')}"
        )

    def resolve(self, source: Any) -> str:
        """
        Resolve an image source to a URL.

        Accepts:
        - "https://..." direct URLs (returned as-is)
        - "image-abc-200x200-png" asset refs
        - {"asset": {"url": "..."}} or {"asset": {"_ref": "..."}}
        - {"url": "..."} / {"_ref": "..."}

        Anything unrecognized (including None) resolves to the placeholder.
        """
        if not source:
            return self._placeholder_url

        if isinstance(source, str):
            if source.startswith(("http://", "https://")):
                return source
            return self.ref_to_url(source) or self._placeholder_url

        if isinstance(source, dict):
            asset = source.get("asset")
            if isinstance(asset, dict):
                return self.resolve(asset.get("url") or asset.get("_ref"))
            if isinstance(asset, str):
                return self.resolve(asset)
            return self.resolve(source.get("url") or source.get("_ref"))

        return self._placeholder_url
