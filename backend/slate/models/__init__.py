from .presentation import Presentation
from .share_grant import ShareGrant
from .share_link import ShareLink
from .user import User

__all__ = ["Presentation", "ShareGrant", "ShareLink", "User"]
