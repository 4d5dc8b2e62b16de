import logging
import smtplib
import ssl
from dataclasses import dataclass
from email import encoders
from email.errors import MessageError
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from vrise_intake.config import Settings
from vrise_intake.exceptions import NotificationError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: Optional[str] = None


def render_template(template_name: str, **kwargs) -> str:
    """Render an HTML email template with provided data."""
    template = _env.get_template(template_name)
    return template.render(**kwargs)


def build_message(sender: str, recipient: str, subject: str, body: str,
                  attachments: Sequence[Attachment] = ()) -> MIMEMultipart:
    msg = MIMEMultipart()
    msg['From'] = sender
    msg['To'] = recipient
    msg['Subject'] = subject
    msg.attach(MIMEText(body, 'html'))

    for attachment in attachments:
        maintype, _, subtype = (attachment.content_type or "application/octet-stream").partition("/")
        part = MIMEBase(maintype, subtype or "octet-stream")
        part.set_payload(attachment.content)
        encoders.encode_base64(part)
        part.add_header('Content-Disposition', 'attachment', filename=attachment.filename)
        msg.attach(part)

    return msg


def send_email(settings: Settings, recipient: str, subject: str, body: str,
               attachments: Sequence[Attachment] = ()):
    """Send one HTML email over SMTP with STARTTLS.

    Raises:
        NotificationError: the message could not be handed to the SMTP server.
    """
    try:
        msg = build_message(settings.email_from, recipient, subject, body, attachments)
        text = msg.as_string()
        context = ssl.create_default_context()
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as server:
            server.starttls(context=context)
            server.login(settings.email_user, settings.email_password)
            server.sendmail(settings.email_from, [recipient], text)
    except smtplib.SMTPAuthenticationError as e:
        error_msg = f"SMTP authentication failed. Check EMAIL_USER and EMAIL_PASSWORD: {str(e)}"
        logger.error(error_msg)
        raise NotificationError(error_msg, recipient) from e
    except smtplib.SMTPRecipientsRefused as e:
        error_msg = f"Recipient email address rejected: {str(e)}"
        logger.error(error_msg)
        raise NotificationError(error_msg, recipient) from e
    except MessageError as e:
        error_msg = f"Could not build email for {recipient}: {str(e)}"
        logger.error(error_msg)
        raise NotificationError(error_msg, recipient) from e
    except (smtplib.SMTPException, OSError) as e:
        error_msg = f"Failed to send email to {recipient}: {str(e)}"
        logger.error(error_msg)
        raise NotificationError(error_msg, recipient) from e

    logger.info(f"Email sent to {recipient}")
