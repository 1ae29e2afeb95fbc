"""
sepafile: build ISO 20022 SEPA payment initiation documents (pain.001 credit
transfers and pain.008 direct debits) from an in-memory model of payments.
"""

from .builder import MessageBuilder
from .errors import (
    InvalidAmount,
    InvalidCurrency,
    InvalidEnumValue,
    InvalidMessageType,
    MissingRequiredField,
    SepaError,
)
from .models import CreditTransfer, DebitTransfer, MessageType, ValidationReport
from .payment import CollectInfo, PaymentInfo
from .transfer import TransferFile
from .validator import (
    Validator,
    amount_to_cents,
    cents_to_decimal_string,
    validate_currency_code,
    validate_enum_member,
)
from .writer import XMLWriter

__all__ = [
    "TransferFile",
    "PaymentInfo",
    "CollectInfo",
    "CreditTransfer",
    "DebitTransfer",
    "MessageType",
    "MessageBuilder",
    "Validator",
    "ValidationReport",
    "XMLWriter",
    "amount_to_cents",
    "cents_to_decimal_string",
    "validate_currency_code",
    "validate_enum_member",
    "SepaError",
    "InvalidAmount",
    "InvalidCurrency",
    "InvalidEnumValue",
    "InvalidMessageType",
    "MissingRequiredField",
]
