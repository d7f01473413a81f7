import logging

from .errors import InvalidVisaType, MisconfiguredTarget, NoMatchingSheet
from .models import SheetTarget, VisaCategory

logger = logging.getLogger(__name__)


def load_sheet_targets(raw_targets):
    """Build the category -> targets mapping from the SHEET_TARGETS config.

    Every category must be known and every target needs a name and at least
    one country. Targets without an id are kept; routing to them fails with
    MisconfiguredTarget so the rest of the configuration stays usable.
    """
    targets = {}
    for key, entries in raw_targets.items():
        category = VisaCategory.from_value(key)
        if category is None:
            raise ValueError(f"Unknown visa category in SHEET_TARGETS: {key!r}")

        sheets = []
        for entry in entries:
            name = (entry.get("name") or "").strip()
            if not name:
                raise ValueError(f"Sheet target without a name under {key!r}")

            countries = [str(c).strip() for c in entry.get("countries", []) if str(c).strip()]
            if not countries:
                raise ValueError(f"Sheet target {name!r} has no countries")

            sheet_id = (entry.get("id") or "").strip() or None
            if sheet_id is None:
                logger.warning("Sheet target %s has no spreadsheet id configured", name)

            sheets.append(SheetTarget(
                name=name,
                countries=frozenset(c.casefold() for c in countries),
                id=sheet_id,
                display_countries=tuple(countries),
            ))
        targets[category] = tuple(sheets)

    # Categories missing from the config route nowhere
    for category in VisaCategory:
        targets.setdefault(category, ())
    return targets


class SheetSelector:
    """Read-only lookup from (visa type, country) to a destination sheet"""

    def __init__(self, targets):
        self.targets = targets

    @classmethod
    def from_config(cls, raw_targets):
        return cls(load_sheet_targets(raw_targets))

    def resolve(self, visa_type, country):
        category = VisaCategory.from_value(visa_type)
        if category is None:
            raise InvalidVisaType(visa_type)

        for target in self.targets[category]:
            if target.serves(country):
                if not target.id:
                    raise MisconfiguredTarget(target.name)
                return target

        raise NoMatchingSheet(visa_type, country)

    def available_countries(self):
        """Configured countries per category, in configuration order"""
        available = {}
        for category in VisaCategory:
            countries = []
            for target in self.targets[category]:
                countries.extend(target.display_countries)
            available[category.value] = countries
        return available
