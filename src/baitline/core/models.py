"""Shared data models for recipient personalization.

PhishingTemplateContext is the canonical set of per-recipient values that
attachment (and message) templates are rendered against. Field names follow
the placeholder names campaign authors write, e.g. ``{{.FirstName}}``.
"""

import secrets
import string
from urllib.parse import urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field

RID_PARAMETER = "rid"
"""Query parameter carrying the recipient id on campaign URLs."""

_RID_ALPHABET = string.ascii_letters + string.digits


def create_rid(length: int = 7) -> str:
    """Generate a random recipient id.

    Args:
        length: Number of characters in the id.

    Returns:
        Alphanumeric recipient id suitable for use in a URL query string.
    """
    return "".join(secrets.choice(_RID_ALPHABET) for _ in range(length))


class BaseRecipient(BaseModel):
    """Identity fields of a campaign recipient.

    Attributes:
        first_name: Recipient first name (``{{.FirstName}}``).
        last_name: Recipient last name (``{{.LastName}}``).
        email: Recipient email address (``{{.Email}}``).
        position: Job title, if known (``{{.Position}}``).
    """

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(default="", alias="FirstName")
    last_name: str = Field(default="", alias="LastName")
    email: str = Field(default="", alias="Email")
    position: str = Field(default="", alias="Position")


class PhishingTemplateContext(BaseRecipient):
    """Everything a template may reference for a single recipient.

    Attributes:
        base_url: Campaign landing page URL without the rid (``{{.BaseURL}}``).
        url: Landing page URL including the rid (``{{.URL}}``).
        tracking_url: Open-tracking URL including the rid (``{{.TrackingURL}}``).
        tracker: Pre-rendered invisible tracking pixel tag (``{{.Tracker}}``).
        from_address: Sender display name (``{{.From}}``).
        rid: Unique recipient identifier (``{{.RId}}``).
    """

    base_url: str = Field(default="", alias="BaseURL")
    url: str = Field(default="", alias="URL")
    tracking_url: str = Field(default="", alias="TrackingURL")
    tracker: str = Field(default="", alias="Tracker")
    from_address: str = Field(default="", alias="From")
    rid: str = Field(default="", alias="RId")

    def template_fields(self) -> dict[str, str]:
        """Return the context keyed by placeholder name."""
        return self.model_dump(by_alias=True)

    @classmethod
    def for_recipient(
        cls,
        campaign_url: str,
        recipient: BaseRecipient,
        rid: str,
        from_address: str = "",
    ) -> "PhishingTemplateContext":
        """Build the context for one recipient of a campaign.

        The landing page URL gets ``?rid=<rid>`` appended (merged with any
        existing query string) and the tracking URL points at ``/track`` on
        the same host.

        Args:
            campaign_url: Landing page URL configured on the campaign.
            recipient: Recipient identity fields.
            rid: Recipient id, see :func:`create_rid`.
            from_address: Sender display name.

        Returns:
            Fully populated template context.
        """
        parts = urlsplit(campaign_url)
        rid_query = urlencode({RID_PARAMETER: rid})
        query = f"{parts.query}&{rid_query}" if parts.query else rid_query
        url = urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
        base_url = urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))
        tracking_url = urlunsplit(
            (parts.scheme, parts.netloc, f"{parts.path.rstrip('/')}/track", rid_query, "")
        )
        return cls(
            first_name=recipient.first_name,
            last_name=recipient.last_name,
            email=recipient.email,
            position=recipient.position,
            base_url=base_url,
            url=url,
            tracking_url=tracking_url,
            tracker=f"<img alt='' style='display: none' src='{tracking_url}'/>",
            from_address=from_address,
            rid=rid,
        )


SAMPLE_CONTEXT = PhishingTemplateContext(
    first_name="Foo",
    last_name="Bar",
    email="foo@bar.com",
    base_url="http://testurl.com",
    url="http://testurl.com/?rid=1234567",
    tracking_url="http://testurl.local/track?rid=1234567",
    tracker="<img alt='' style='display: none' src='http://testurl.local/track?rid=1234567'/>",
    from_address="From Address",
    rid="1234567",
)
"""Fixed synthetic recipient used to pre-flight templates before a campaign starts."""
