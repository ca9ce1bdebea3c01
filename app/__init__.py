"""
Interaction notification feed application code.

This package contains the feed-specific implementations:
- services: Fetcher, aggregator, read-state store, reconciler, feed controller
- pipelines: Fetch -> aggregate -> reconcile orchestration
- schemas: API response models
- routers: FastAPI endpoints
- config: Application settings

Uses generic infrastructure from the common/ package.
"""

from app.config import settings

__all__ = ["settings"]
