"""
Payload sources for upload rounds.
"""

from .public_inbox import PayloadUnavailable, PublicInboxSource

__all__ = ['PayloadUnavailable', 'PublicInboxSource']
