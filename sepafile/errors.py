"""Error types raised while building SEPA documents."""

from typing import Iterable


class SepaError(ValueError):
    """Base class for every error raised by sepafile.

    Subclasses ValueError so callers validating user input can keep catching
    the builtin.
    """


class InvalidCurrency(SepaError):
    """A currency code failed validation."""

    def __init__(self, code: object):
        self.code = code
        super().__init__(f"Invalid ISO currency code: {code!r}")


class InvalidEnumValue(SepaError):
    """A coded field was given a value outside of its allowed set."""

    def __init__(self, label: str, value: object):
        self.label = label
        self.value = value
        super().__init__(f"Invalid {label}: {value}")


class InvalidAmount(SepaError):
    """An amount could not be interpreted as a number."""

    def __init__(self, amount: object):
        self.amount = amount
        super().__init__(f"Invalid amount: {amount!r}")


class InvalidMessageType(SepaError):
    """Unknown message type, or a payment group of the wrong direction."""


class MissingRequiredField(SepaError):
    """One or more mandatory fields are unset."""

    def __init__(self, fields: Iterable[str]):
        self.fields = list(fields)
        super().__init__("Missing required field(s): " + ", ".join(self.fields))
