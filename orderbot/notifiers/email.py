"""Email notifier implementation using SMTP."""

import logging
import mimetypes
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Iterable, List, Optional

from .base import NotificationError

logger = logging.getLogger(__name__)

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment_type(path: Path) -> tuple[str, str]:
    if path.suffix.lower() == ".xlsx":
        mime_type = XLSX_MIME_TYPE
    else:
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    maintype, subtype = mime_type.split("/", 1)
    return maintype, subtype


class EmailNotifier:
    """Sends report emails (with attachments) via SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        to_addresses: List[str],
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        use_ssl: bool = True,
        subject_prefix: str = "Order Bot",
        from_name: str = "Order Bot",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.to_addresses = to_addresses
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.subject_prefix = subject_prefix or "Order Bot"
        self.from_name = from_name

    def __repr__(self) -> str:
        return (
            f"EmailNotifier(host={self.host!r}, port={self.port!r}, "
            f"to_addresses={self.to_addresses!r})"
        )

    def build_message(
        self,
        text: str,
        subject: Optional[str] = None,
        html: Optional[str] = None,
        attachments: Iterable[Path] = (),
    ) -> EmailMessage:
        """Assemble the MIME message without sending it."""
        message = EmailMessage()
        final_subject = subject or "Orders Report"
        message["Subject"] = f"{self.subject_prefix} | {final_subject}"
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = ", ".join(self.to_addresses)
        message.set_content(text or "")

        if html:
            message.add_alternative(html, subtype="html")

        for attachment in attachments:
            path = Path(attachment)
            maintype, subtype = _attachment_type(path)
            message.add_attachment(
                path.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                filename=path.name,
            )

        return message

    def send(
        self,
        text: str,
        subject: Optional[str] = None,
        html: Optional[str] = None,
        attachments: Iterable[Path] = (),
    ) -> None:
        """Send a plain-text email, optionally with HTML and file attachments.

        Args:
            text: Message body to send (plain text).
            subject: Optional subject override (prefix is applied automatically).
            html: Optional HTML body for multipart/alternative delivery.
            attachments: Paths of files to attach.

        Raises:
            NotificationError: If building or sending the message fails.
        """
        if not self.to_addresses:
            raise NotificationError(
                "Email notification failed: no recipients configured"
            )

        try:
            message = self.build_message(text, subject, html, attachments)
        except OSError as exc:
            raise NotificationError(
                f"Email notification failed: cannot read attachment: {exc}"
            ) from exc

        smtp_class = smtplib.SMTP_SSL if self.use_ssl else smtplib.SMTP
        try:
            with smtp_class(self.host, self.port, timeout=30) as server:
                if self.use_tls and not self.use_ssl:
                    server.starttls()

                if self.username and self.password:
                    server.login(self.username, self.password)

                server.send_message(message)

        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Email notification failed: {exc}") from exc

        logger.info(f"Email sent to {len(self.to_addresses)} recipient(s)")
