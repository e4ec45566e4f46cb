# campus_hub/forms/event.py
"""
Forms for event submission
"""

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import DateField, SelectField, StringField, TextAreaField, TimeField
from wtforms.validators import URL, DataRequired, Length, Optional, ValidationError

from campus_hub.models.event.enums import EventCategory

SUBMISSION_FIELDS = (
    "title",
    "description",
    "date",
    "time",
    "venue",
    "category",
    "organizer",
    "image_url",
    "document_url",
    "registration_link",
    "social_link",
    "entry_fee",
    "expected_audience",
)


class EventSubmissionForm(FlaskForm):
    """Validates an event submitted through the JSON API"""

    class Meta:
        csrf = False

    title = StringField(
        "Event Title",
        validators=[
            DataRequired(message="Event title is required."),
            Length(max=200, message="Event title must be less than 200 characters."),
        ],
    )
    description = TextAreaField(
        "Description",
        validators=[Optional(), Length(max=5000, message="Description must be less than 5000 characters.")],
    )
    date = DateField("Date", validators=[DataRequired(message="Event date is required.")], format="%Y-%m-%d")
    time = TimeField("Start Time", validators=[Optional()], format="%H:%M")
    venue = StringField(
        "Venue",
        validators=[
            DataRequired(message="Venue is required."),
            Length(max=255, message="Venue must be less than 255 characters."),
        ],
    )
    category = SelectField(
        "Category",
        validators=[DataRequired(message="Category is required.")],
        choices=EventCategory.choices(),
    )
    organizer = StringField(
        "Organizer",
        validators=[
            DataRequired(message="Organizer is required."),
            Length(max=200, message="Organizer must be less than 200 characters."),
        ],
    )
    image_url = StringField("Image URL", validators=[Optional(), Length(max=1000)])
    document_url = StringField("Document URL", validators=[Optional(), Length(max=1000)])
    registration_link = StringField(
        "Registration Link", validators=[Optional(), URL(message="Registration link must be a valid URL.")]
    )
    social_link = StringField("Social Link", validators=[Optional(), URL(message="Social link must be a valid URL.")])
    entry_fee = StringField("Entry Fee", validators=[Optional(), Length(max=50)])
    expected_audience = StringField("Expected Audience", validators=[Optional(), Length(max=100)])

    @classmethod
    def from_json(cls, payload):
        """Build the form from a decoded JSON body, ignoring nulls and non-field keys"""
        if not isinstance(payload, dict):
            payload = {}
        formdata = MultiDict(
            [
                (key, str(value).strip())
                for key, value in payload.items()
                if value is not None and key in SUBMISSION_FIELDS
            ]
        )
        return cls(formdata=formdata)

    def validate_title(self, field):
        if field.data:
            field.data = field.data.strip()
            if len(field.data) < 3:
                raise ValidationError("Event title must be at least 3 characters long.")

    def cleaned_data(self):
        """Field values with blank optional strings normalised to None"""
        data = {name: self._fields[name].data for name in SUBMISSION_FIELDS}
        for name, value in data.items():
            if isinstance(value, str):
                data[name] = value.strip() or None
        data["description"] = data["description"] or ""
        data["category"] = EventCategory(data["category"])
        return data
