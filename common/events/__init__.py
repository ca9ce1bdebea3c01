"""
Events module - In-process publish/subscribe.
"""

from common.events.emitter import EventEmitter, Subscription

__all__ = ["EventEmitter", "Subscription"]
