from .dispatcher import NotificationDispatcher
from .templates import EmailMessage, render

__all__ = ["EmailMessage", "NotificationDispatcher", "render"]
