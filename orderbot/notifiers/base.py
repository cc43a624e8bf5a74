"""Base notifier interface."""

from pathlib import Path
from typing import Iterable, Optional, Protocol


class Notifier(Protocol):
    """Protocol for report delivery services."""

    def send(
        self,
        text: str,
        subject: Optional[str] = None,
        html: Optional[str] = None,
        attachments: Iterable[Path] = (),
    ) -> None:
        """Deliver a report message.

        Args:
            text: Plain-text message body
            subject: Optional subject line
            html: Optional HTML alternative body
            attachments: Files to attach (e.g. the XLSX report)

        Raises:
            NotificationError: If the notification fails to send
        """
        ...


class NotificationError(Exception):
    """Raised when a notification fails to send."""
    pass
