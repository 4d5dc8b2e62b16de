"""
Submission intake workflow.

All three public forms go through the same steps:

    validate -> persist -> notify -> respond

A ``FormSchema`` describes what differs between the forms (required fields,
record kind, messages); ``IntakeWorkflow.submit`` runs the steps. Persisting
is the point of no return: once the record is stored the request succeeds,
whatever happens to the acknowledgement emails.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jinja2 import TemplateError

from vrise_intake.db.models import Resume, SubmissionKind, SubmissionReceipt
from vrise_intake.db.store import RecordStore
from vrise_intake.emails.email_client import Attachment, render_template
from vrise_intake.emails.notification_types import get_notification_template
from vrise_intake.emails.notifier import Notifier
from vrise_intake.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormSchema:
    """Field requirements and wording for one public form.

    ``labels`` maps each required field to the label used in the
    acknowledgement summary, in the order the form shows them.
    """
    kind: SubmissionKind
    labels: Dict[str, str]
    success_message: str
    failure_message: str
    accepts_resume: bool = False

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return tuple(self.labels)


INTERNSHIP_APPLICATION = FormSchema(
    kind=SubmissionKind.INTERNSHIP_APPLICATION,
    labels={
        "name": "Name",
        "email": "Email",
        "mobile": "Mobile",
        "domain": "Domain",
        "college": "College",
        "year": "Year",
        "reason": "Reason",
    },
    success_message="Application stored successfully.",
    failure_message="Failed to save application.",
)

MOCK_INTERVIEW_BOOKING = FormSchema(
    kind=SubmissionKind.MOCK_INTERVIEW_BOOKING,
    labels={
        "name": "Name",
        "email": "Email",
        "mobile": "Mobile",
        "stack": "Stack",
        "experience": "Experience",
    },
    success_message="Mock interview stored successfully.",
    failure_message="Failed to save mock interview booking.",
    accepts_resume=True,
)

FEEDBACK = FormSchema(
    kind=SubmissionKind.FEEDBACK,
    labels={
        "name": "Name",
        "email": "Email",
        "feedbackType": "Feedback Type",
        "rating": "Rating",
        "message": "Message",
    },
    success_message="Feedback stored successfully.",
    failure_message="Failed to save feedback.",
)


def _clean(value: Any) -> Optional[str]:
    """Trimmed string form of a field value, or None if it isn't a scalar."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    # bool is an int subclass but "true" is never a meaningful form answer
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def parse_resume(raw: Any) -> Optional[Resume]:
    """Decode the optional base64 resume of a mock interview booking.

    A missing resume, or one without ``content``, means no resume.
    """
    if not raw:
        return None
    if not isinstance(raw, Mapping):
        raise ValidationError("Resume must be an object.", fields=["resume"])

    content = raw.get("content")
    if not content:
        return None
    if not isinstance(content, str):
        raise ValidationError("Resume content must be a base64 string.", fields=["resume"])

    # accept data URLs as produced by FileReader.readAsDataURL
    if content.startswith("data:") and "," in content:
        content = content.split(",", 1)[1]
    try:
        data = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Resume content is not valid base64.", fields=["resume"]) from e

    return Resume(
        filename=_clean(raw.get("filename")) or None,
        mimetype=_clean(raw.get("mimetype")) or None,
        size=len(data),
        data=data,
    )


def validate_submission(schema: FormSchema, payload: Any) -> Dict[str, Any]:
    """Check ``payload`` against ``schema`` and return the cleaned fields.

    Raises:
        ValidationError: the payload is not an object, or a required field is
            missing, empty after trimming, or not a scalar value.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object.")

    fields: Dict[str, Any] = {}
    missing: List[str] = []
    invalid: List[str] = []
    for name in schema.required_fields:
        value = _clean(payload.get(name))
        if value is None:
            invalid.append(name)
        elif not value:
            missing.append(name)
        else:
            fields[name] = value

    if missing:
        raise ValidationError(f"All fields are required. Missing: {', '.join(missing)}.", fields=missing)
    if invalid:
        raise ValidationError(f"Fields must be text: {', '.join(invalid)}.", fields=invalid)

    if schema.accepts_resume:
        resume = parse_resume(payload.get("resume"))
        if resume is not None:
            fields["resume"] = resume

    return fields


def summarize(schema: FormSchema, fields: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Label/value rows for the acknowledgement email."""
    return [(label, fields.get(name) or "N/A") for name, label in schema.labels.items()]


def resume_attachments(resume: Optional[Resume]) -> List[Attachment]:
    if resume is None or not resume.data:
        return []
    return [Attachment(filename=resume.filename or "resume", content=resume.data, content_type=resume.mimetype)]


class IntakeWorkflow:
    """Runs validate -> persist -> notify for one submission at a time.

    Holds no per-request state, so a single instance serves concurrent
    requests.
    """

    def __init__(self, store: RecordStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier

    def submit(self, schema: FormSchema, payload: Any) -> SubmissionReceipt:
        """Validate, store and acknowledge one submission.

        Raises:
            ValidationError: before anything is stored.
            PersistenceError: the store rejected the write; no email is sent.
        """
        fields = validate_submission(schema, payload)
        record = self.store.create(schema.kind, fields)
        email_sent = self._acknowledge(schema, fields)
        logger.info(f"Stored {schema.kind.value} {record.id} (email sent: {email_sent})")
        return SubmissionReceipt(id=record.id, email_sent=email_sent)

    def _acknowledge(self, schema: FormSchema, fields: Dict[str, Any]) -> bool:
        template = get_notification_template(schema.kind)
        try:
            body = render_template(
                template.template_name,
                title=template.title,
                name=fields["name"],
                fields=fields,
                summary=summarize(schema, fields),
            )
        except TemplateError:
            logger.exception(f"Could not render {template.template_name}")
            return False

        return self.notifier.notify(
            fields["email"],
            template.render_subject(fields),
            body,
            resume_attachments(fields.get("resume")),
        )