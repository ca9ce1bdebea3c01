"""
Content module - Content repository access.

- SanityClient: async GROQ query client (httpx)
- SanityImageUrlResolver: asset reference / URL normalization
"""

from common.content.sanity_client import SanityClient
from common.content.image_url import SanityImageUrlResolver, DEFAULT_PLACEHOLDER_URL

__all__ = ["SanityClient", "SanityImageUrlResolver", "DEFAULT_PLACEHOLDER_URL"]
