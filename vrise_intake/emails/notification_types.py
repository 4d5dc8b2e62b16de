from dataclasses import dataclass
from typing import Dict, Mapping

from vrise_intake.db.models import SubmissionKind

ADMIN_COPY_PREFIX = "[Admin Copy] "


@dataclass(frozen=True)
class NotificationTemplate:
    """How the acknowledgement for one kind of submission looks."""
    subject: str
    title: str
    template_name: str

    def render_subject(self, fields: Mapping[str, str]) -> str:
        # header values must stay on one line
        flat = {key: " ".join(str(value).split()) for key, value in fields.items()}
        return self.subject.format(**flat)


NOTIFICATION_TEMPLATES: Dict[SubmissionKind, NotificationTemplate] = {
    SubmissionKind.INTERNSHIP_APPLICATION: NotificationTemplate(
        subject="Thanks for applying for the {domain} internship",
        title="Internship Application Received",
        template_name="internship_application.html",
    ),
    SubmissionKind.MOCK_INTERVIEW_BOOKING: NotificationTemplate(
        subject="Mock interview booking confirmed for {stack}",
        title="Mock Interview Booking Received",
        template_name="mock_interview_booking.html",
    ),
    SubmissionKind.FEEDBACK: NotificationTemplate(
        subject="Thanks for sharing your feedback",
        title="Feedback Received",
        template_name="feedback.html",
    ),
}


def get_notification_template(kind: SubmissionKind) -> NotificationTemplate:
    return NOTIFICATION_TEMPLATES[kind]
