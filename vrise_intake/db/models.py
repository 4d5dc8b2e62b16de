from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

MAX_TEXT_LENGTH = 1000


class SubmissionKind(str, Enum):
    """The three kinds of submission the site collects."""
    INTERNSHIP_APPLICATION = "internship_application"
    MOCK_INTERVIEW_BOOKING = "mock_interview_booking"
    FEEDBACK = "feedback"


class Record(BaseModel):
    """Common shape of every stored submission.

    ``id`` and ``created_at`` are left empty until the record store accepts
    the record; after that they never change.
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    collection: ClassVar[str]

    id: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)

    def to_document(self) -> Dict[str, Any]:
        """Return the MongoDB document for this record (without ``_id``)."""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)


class InternshipApplication(Record):
    collection: ClassVar[str] = "internshipapplications"

    mobile: str = Field(..., min_length=1)
    domain: str = Field(..., min_length=1)
    college: str = Field(..., min_length=1)
    year: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)


class Resume(BaseModel):
    """An uploaded resume, kept as an opaque blob."""
    filename: Optional[str] = None
    mimetype: Optional[str] = None
    size: Optional[int] = None
    data: bytes


class MockInterviewBooking(Record):
    collection: ClassVar[str] = "mockinterviewbookings"

    mobile: str = Field(..., min_length=1)
    stack: str = Field(..., min_length=1)
    experience: str = Field(..., min_length=1)
    resume: Optional[Resume] = None


class Feedback(Record):
    collection: ClassVar[str] = "feedbacks"

    feedback_type: str = Field(..., min_length=1, alias="feedbackType")
    rating: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)


RECORD_MODELS: Dict[SubmissionKind, Type[Record]] = {
    SubmissionKind.INTERNSHIP_APPLICATION: InternshipApplication,
    SubmissionKind.MOCK_INTERVIEW_BOOKING: MockInterviewBooking,
    SubmissionKind.FEEDBACK: Feedback,
}


class SubmissionReceipt(BaseModel):
    """What the client learns about an accepted submission."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email_sent: bool = Field(..., alias="emailSent")


class Envelope(BaseModel):
    """Uniform response body: ``{success, message, data?}``."""
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
