class SelectorError(Exception):
    """Raised when a submission cannot be routed to a destination sheet"""


class InvalidVisaType(SelectorError):
    def __init__(self, visa_type):
        self.visa_type = visa_type
        super().__init__(f"Invalid visa type: {visa_type}")


class NoMatchingSheet(SelectorError):
    def __init__(self, visa_type, country):
        self.visa_type = visa_type
        self.country = country
        super().__init__(f"No sheet configured for {visa_type} visa to {country}")


class MisconfiguredTarget(SelectorError):
    def __init__(self, target_name):
        self.target_name = target_name
        super().__init__(f"Sheet ID not configured for {target_name}")


class RemoteStoreError(Exception):
    """Raised when the tabular store rejects or fails a request"""


class RemoteReadError(RemoteStoreError):
    pass


class RemoteWriteError(RemoteStoreError):
    pass


class HeaderReconciliationFailure(Exception):
    """Header row could not be read or repaired; the row is still appended"""

    def __init__(self, message, mapping=None):
        super().__init__(message)
        # Column mapping to append with instead, when one was already worked out
        self.mapping = mapping
