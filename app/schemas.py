from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import ApplicationRecord, VisaCategory

# Header row every destination sheet must carry, in column order
REQUIRED_HEADERS = [
    "Timestamp",
    "Name",
    "Email",
    "Phone",
    "Address",
    "Desired Country",
    "Other Country Interested",
    "Visa Type",
    "Degree Level",
    "Urgency",
    "Additional Notes",
]

# Header label -> ApplicationRecord attribute (Timestamp is filled at write time)
FIELD_BY_HEADER = {
    "Name": "name",
    "Email": "email",
    "Phone": "phone",
    "Address": "address",
    "Desired Country": "desired_country",
    "Other Country Interested": "other_country_interested",
    "Visa Type": "visa_type",
    "Degree Level": "degree_level",
    "Urgency": "urgency",
    "Additional Notes": "additional_notes",
}

TIMESTAMP_HEADER = "Timestamp"


class ApplicationForm(BaseModel):
    """Submitted application form, field names as the web form sends them"""

    # Phone numbers often arrive as JSON numbers
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    desired_country: str = Field(alias="desiredCountry", min_length=1)
    other_country_interested: str | None = Field(default="", alias="otherCountryInterested")
    visa_type: str = Field(alias="visaType")
    degree_level: str | None = Field(default="", alias="degreeLevel")
    urgency: str = Field(min_length=1)
    additional_notes: str | None = Field(default="", alias="additionalNotes")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value):
        return value.lower()

    @field_validator("visa_type")
    @classmethod
    def known_visa_type(cls, value):
        category = VisaCategory.from_value(value)
        if category is None:
            raise ValueError("Visa type must be either study or visit")
        return category.value

    @field_validator("other_country_interested", "degree_level", "additional_notes")
    @classmethod
    def blank_if_missing(cls, value):
        return value or ""

    def to_record(self):
        return ApplicationRecord(
            name=self.name,
            email=self.email,
            phone=self.phone,
            address=self.address,
            desired_country=self.desired_country,
            other_country_interested=self.other_country_interested,
            visa_type=self.visa_type,
            degree_level=self.degree_level,
            urgency=self.urgency,
            additional_notes=self.additional_notes,
        )


# Messages returned to the form for each required field
FIELD_MESSAGES = {
    "name": "Name is required",
    "email": "Valid email is required",
    "phone": "Phone number is required",
    "address": "Address is required",
    "desiredCountry": "Desired country is required",
    "visaType": "Visa type must be either study or visit",
    "urgency": "Urgency is required",
}


def validation_errors(exc):
    """Flatten a pydantic ValidationError into [{field: message}, ...]"""
    errors = []
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "__root__"
        errors.append({field: FIELD_MESSAGES.get(field, error["msg"])})
    return errors
