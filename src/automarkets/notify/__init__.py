"""Fire-and-forget realtime event publishing."""

from automarkets.notify.publisher import LogPublisher, Publisher, WebhookPublisher

__all__ = ["LogPublisher", "Publisher", "WebhookPublisher"]
