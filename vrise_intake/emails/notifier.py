import logging
from typing import Callable, Optional, Sequence

from vrise_intake.config import Settings
from vrise_intake.emails.email_client import Attachment, send_email
from vrise_intake.emails.notification_types import ADMIN_COPY_PREFIX
from vrise_intake.exceptions import NotificationError

logger = logging.getLogger(__name__)

Transport = Callable[..., None]


class Notifier:
    """Best-effort acknowledgement emails.

    Every accepted submission produces two messages: one to the submitter and
    an admin copy (with any attachments) to ``NOTIFY_EMAIL``. ``notify`` never
    raises; the outcome is reported as a boolean.
    """

    def __init__(self, settings: Settings, transport: Optional[Transport] = None):
        self.settings = settings
        self.transport = transport or send_email

    @property
    def enabled(self) -> bool:
        return self.settings.email_enabled

    def notify(self, submitter: str, subject: str, body_html: str,
               attachments: Sequence[Attachment] = ()) -> bool:
        """Send the acknowledgement and the admin copy.

        Returns True only if both messages were delivered. Both are attempted
        even when the first one fails.
        """
        if not self.enabled:
            logger.info("Email disabled, skipping acknowledgement")
            return False

        submitter_sent = self._deliver(submitter, subject, body_html)
        admin_sent = self._deliver(
            str(self.settings.notify_email),
            f"{ADMIN_COPY_PREFIX}{subject}",
            body_html,
            attachments,
        )
        return submitter_sent and admin_sent

    def _deliver(self, recipient: str, subject: str, body_html: str,
                 attachments: Sequence[Attachment] = ()) -> bool:
        try:
            self.transport(self.settings, recipient, subject, body_html, attachments)
        except NotificationError as e:
            logger.warning(f"Acknowledgement to {e.recipient} not delivered: {e.message}")
            return False
        except Exception:
            logger.exception(f"Unexpected error while emailing {recipient}")
            return False
        return True
