import enum
from dataclasses import dataclass, field


class VisaCategory(enum.Enum):
    STUDY = "study"
    VISIT = "visit"

    @classmethod
    def from_value(cls, value):
        """Map free-form visa type text ('Study', ' visit ') to a category, or None"""
        if value is None:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class SheetTarget:
    name: str
    countries: frozenset
    id: str | None = None
    # Configured spelling, kept for listing
    display_countries: tuple = ()

    def serves(self, country):
        """Case-insensitive membership test against the target's countries"""
        return str(country).strip().casefold() in self.countries


@dataclass(frozen=True)
class ApplicationRecord:
    name: str
    email: str
    phone: str
    address: str
    desired_country: str
    visa_type: str
    urgency: str
    other_country_interested: str = ""
    degree_level: str = ""
    additional_notes: str = ""


class HeaderState(enum.Enum):
    WRITTEN = "headers_written"
    COMPLETE = "headers_present_complete"
    EXTENDED = "headers_extended"
    FALLBACK = "fallback"


@dataclass
class HeaderMapping:
    # Header label -> zero-based column index, None when the label is absent
    columns: dict = field(default_factory=dict)
    total_columns: int = 0

    @classmethod
    def identity(cls, labels):
        return cls({label: i for i, label in enumerate(labels)}, len(labels))

    def missing(self):
        return [label for label, index in self.columns.items() if index is None]


@dataclass(frozen=True)
class AppendResult:
    rows_added: int
    tab_name: str
    header_state: HeaderState
