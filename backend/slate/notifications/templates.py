from __future__ import annotations

import html
from dataclasses import dataclass

from slate.core.config import settings
from slate.sharing.events import Event, PresentationShared, ShareLinkIssued


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


_LAYOUT = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">{heading}</h2>
  {content}
</div>
"""


def _presentation_url(presentation_id: str) -> str:
    return f"{settings.CLIENT_URL.rstrip('/')}/presentations/{presentation_id}"


def _presentation_shared(event: PresentationShared) -> EmailMessage:
    title = html.escape(event.presentation_title)
    owner = html.escape(event.owner_name)
    verb = "updated your access to" if event.updated else "shared"
    content = (
        f"<p>Hi {html.escape(event.grantee_name)},</p>"
        f"<p>{owner} {verb} <strong>{title}</strong> with {event.access_level} access.</p>"
        f'<p><a href="{_presentation_url(event.presentation_id)}">Open presentation</a></p>'
    )
    return EmailMessage(
        to=event.grantee_email,
        subject=f'{event.owner_name} shared "{event.presentation_title}" with you',
        body=_LAYOUT.format(heading="Collaboration invite", content=content),
    )


def _share_link_issued(event: ShareLinkIssued) -> EmailMessage:
    rows = [
        f"<li>Access: {event.access_level}</li>",
        f"<li>Password protected: {'yes' if event.has_password else 'no'}</li>",
        f"<li>Expires: {event.expires_at.isoformat() + ' UTC' if event.expires_at else 'never'}</li>",
        f"<li>View limit: {event.max_views if event.max_views is not None else 'unlimited'}</li>",
    ]
    content = (
        f"<p>Hi {html.escape(event.owner_name)},</p>"
        f"<p>A share link was created for <strong>{html.escape(event.presentation_title)}</strong>.</p>"
        f"<ul>{''.join(rows)}</ul>"
        '<p style="color: #666; font-size: 14px;">If this wasn\'t you, revoke the link from the sharing settings.</p>'
    )
    return EmailMessage(
        to=event.owner_email,
        subject=f'Share link created for "{event.presentation_title}"',
        body=_LAYOUT.format(heading="Share link created", content=content),
    )


def render(event: Event) -> EmailMessage:
    if isinstance(event, PresentationShared):
        return _presentation_shared(event)
    if isinstance(event, ShareLinkIssued):
        return _share_link_issued(event)
    raise ValueError(f"Unknown event type: {type(event).__name__}")
