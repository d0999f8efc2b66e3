"""Access resolution, explicit grants and tokenized share links."""

from .events import PresentationShared, ShareLinkIssued
from .grants import ShareGrantStore
from .link_state import compute_link_state, generate_share_token, link_state
from .links import ShareLinkManager
from .presentations import PresentationService
from .resolver import resolve

__all__ = [
    "PresentationService",
    "PresentationShared",
    "ShareGrantStore",
    "ShareLinkIssued",
    "ShareLinkManager",
    "compute_link_state",
    "generate_share_token",
    "link_state",
    "resolve",
]
