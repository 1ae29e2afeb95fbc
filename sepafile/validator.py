import logging
import re
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

import pycountry
from lxml import etree

from sepafile.errors import (
    InvalidAmount,
    InvalidCurrency,
    InvalidEnumValue,
    MissingRequiredField,
)

if TYPE_CHECKING:
    from sepafile.models import ValidationReport
    from sepafile.transfer import TransferFile

logger = logging.getLogger(__name__)

Amount = Union[int, float, Decimal, str]

# ActiveOrHistoricCurrencyAndAmount allows 18 total digits
MAX_AMOUNT_DIGITS = 18
_CENT = Decimal("0.01")

_currency_shape = re.compile(r"\A[A-Z]{3}\Z")
_integer_string = re.compile(r"\A\s*[+-]?[0-9]+\s*\Z")


def validate_currency_code(code: str, strict: bool = False) -> str:
    """
    Validates an ISO 4217 currency code and returns it uppercased.

    By default only the shape is checked (three letters). With ``strict`` the
    code must also be a registered currency.

    Raises:
        InvalidCurrency: if the code is malformed or, in strict mode, unknown.
    """
    if not isinstance(code, str):
        raise InvalidCurrency(code)

    normalized = code.upper()
    if not _currency_shape.match(normalized):
        raise InvalidCurrency(code)

    if strict and pycountry.currencies.get(alpha_3=normalized) is None:
        raise InvalidCurrency(code)

    return normalized


def validate_enum_member(value: str, allowed: Iterable[str], label: str) -> str:
    """
    Uppercases ``value`` and checks it against the ``allowed`` codes.

    Raises:
        InvalidEnumValue: naming ``label`` when the code is not allowed.
    """
    normalized = str(value).upper()
    if normalized not in allowed:
        raise InvalidEnumValue(label, normalized)
    return normalized


def amount_to_cents(amount: Amount) -> int:
    """
    Converts a caller supplied amount into integer cents.

    The type of the input selects the path:
      - ``int`` is taken as already being cents and returned unchanged.
      - ``float`` and ``Decimal`` are major units: multiplied by 100 and
        truncated toward zero.
      - ``str`` is coerced numerically first. An integer literal ("12345")
        follows the ``int`` path, anything else ("0.02", "5000.00") the
        major unit path.

    Floats go through their shortest repr so that 0.29 yields 29.

    Raises:
        InvalidAmount: on non-numeric input, or on an amount with more than
            ``MAX_AMOUNT_DIGITS`` digits once expressed in cents.
    """
    if isinstance(amount, bool):
        raise InvalidAmount(amount)

    if isinstance(amount, int):
        cents = Decimal(amount)
    elif isinstance(amount, str) and _integer_string.match(amount):
        cents = Decimal(amount.strip())
    else:
        value = amount
        if isinstance(value, str):
            try:
                value = Decimal(value.strip())
            except InvalidOperation:
                raise InvalidAmount(amount) from None
        elif isinstance(value, float):
            value = Decimal(repr(value))

        if not isinstance(value, Decimal) or not value.is_finite():
            raise InvalidAmount(amount)
        # Bounded before quantize(), which fails past the context precision
        if value.adjusted() + 2 >= MAX_AMOUNT_DIGITS:
            raise InvalidAmount(amount)
        cents = value.quantize(_CENT, rounding=ROUND_DOWN).scaleb(2)

    if cents.adjusted() >= MAX_AMOUNT_DIGITS:
        raise InvalidAmount(amount)

    return int(cents)


def cents_to_decimal_string(cents: int) -> str:
    """Renders integer cents as a two decimal string, e.g. 1000008 -> '10000.08'."""
    return format(Decimal(int(cents)).scaleb(-2), "f")


class Validator:
    """
    Opt-in pre-validation of a TransferFile.

    The document model itself only enforces coded fields and currencies.
    This engine reports everything else a bank would reject (unset mandatory
    fields, malformed BICs, IBAN checksums, unregistered currencies) without
    raising.
    """

    _bic_pattern = re.compile(r"\A[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?\Z")
    _iban_format_pattern = re.compile(r"\A[A-Z]{2}[0-9]{2}[A-Z0-9]{11,30}\Z")
    _iban_cleaner_pattern = re.compile(r"[ \-\.]")

    @staticmethod
    def _validate_bic(bic: Optional[str]) -> Optional[str]:
        """
        Validates ISO 9362 BIC formatting, 8 or 11 alphanumeric characters.
        """
        if not bic:
            return None

        if not Validator._bic_pattern.match(bic):
            return f"Invalid BIC format: '{bic}'. Must match ISO 9362 standard 8 or 11 characters."

        return None

    @staticmethod
    def _validate_iban(iban: Optional[str]) -> Optional[str]:
        """
        Validates an IBAN with the ISO 13616 layout and the Modulo-97 checksum.
        Returns None if valid, or an error string if invalid.
        """
        if not iban:
            return None

        if len(iban) > 100:
            return "Invalid IBAN structure: excessively long string rejected."

        formatted_iban = Validator._iban_cleaner_pattern.sub("", iban.strip().upper())
        if not Validator._iban_format_pattern.match(formatted_iban):
            return f"Invalid IBAN format: '{iban.strip()}' does not meet ISO 13616 standards."

        # Move the country code and check digits to the end, then A=10 ... Z=35
        rearranged = formatted_iban[4:] + formatted_iban[:4]
        numeric_iban = "".join(
            str(ord(char) - 55) if char.isalpha() else char for char in rearranged
        )

        if int(numeric_iban) % 97 != 1:
            return f"Invalid IBAN checksum: '{formatted_iban}'. Failed Modulo-97 algorithm."

        return None

    @staticmethod
    def _validate_currency(code: Optional[str]) -> Optional[str]:
        if not code:
            return None
        try:
            validate_currency_code(code, strict=True)
        except InvalidCurrency:
            return f"Currency '{code}' is not a registered ISO 4217 code."
        return None

    @staticmethod
    def missing_fields(transfer_file: "TransferFile") -> List[str]:
        """
        Lists every mandatory field left unset, as dotted paths such as
        ``payment_groups[0].transfers[1].debtor_name``.
        """
        missing = [
            name
            for name in transfer_file.REQUIRED_FIELDS
            if not getattr(transfer_file, name, None)
        ]

        for g, group in enumerate(transfer_file.payment_groups):
            prefix = f"payment_groups[{g}]"
            missing.extend(
                f"{prefix}.{name}"
                for name in group.REQUIRED_FIELDS
                if not getattr(group, name, None)
            )
            for t, transfer in enumerate(group.transfers):
                missing.extend(
                    f"{prefix}.transfers[{t}].{name}"
                    for name in transfer.REQUIRED_FIELDS
                    if not getattr(transfer, name, None)
                )

        return missing

    @staticmethod
    def assert_complete(transfer_file: "TransferFile") -> None:
        """
        Raises:
            MissingRequiredField: listing every unset mandatory field.
        """
        missing = Validator.missing_fields(transfer_file)
        if missing:
            raise MissingRequiredField(missing)

    @staticmethod
    def validate(transfer_file: "TransferFile") -> "ValidationReport":
        """
        Executes the full suite of validation rules against a TransferFile.
        Returns a structured ValidationReport containing analytical results.
        """
        from sepafile.models import ValidationReport

        errors = [f"Missing required field: {name}" for name in Validator.missing_fields(transfer_file)]

        for g, group in enumerate(transfer_file.payment_groups):
            label = f"[Group {g}]"
            for err in (
                Validator._validate_iban(group.account_iban),
                Validator._validate_bic(group.agent_bic),
                Validator._validate_currency(group.account_currency),
            ):
                if err:
                    errors.append(f"{label} {err}")

            for t, transfer in enumerate(group.transfers):
                label = f"[Group {g} Transaction {t}]"
                for err in (
                    Validator._validate_iban(transfer.account_iban),
                    Validator._validate_bic(transfer.agent_bic),
                    Validator._validate_currency(transfer.currency),
                ):
                    if err:
                        errors.append(f"{label} {err}")

        if errors:
            logger.debug("Transfer file %r failed validation with %d error(s)",
                         transfer_file.message_identification, len(errors))
        return ValidationReport(is_valid=not errors, errors=errors)

    @staticmethod
    def validate_schema(raw_data: Union[bytes, str], xsd_path: str) -> "ValidationReport":
        """
        Validates a rendered document against an XSD file supplied by the caller
        (e.g. pain.008.001.02.xsd).

        Returns:
            ValidationReport: `is_valid` status and the XSD error log.
        """
        from sepafile.models import ValidationReport

        if isinstance(raw_data, str):
            raw_data = raw_data.encode("utf-8")

        try:
            document = etree.fromstring(raw_data)
        except etree.XMLSyntaxError as e:
            return ValidationReport(is_valid=False, errors=[f"Malformed XML document: {e}"])

        try:
            schema = etree.XMLSchema(etree.parse(xsd_path))
        except (etree.XMLSchemaParseError, etree.XMLSyntaxError, OSError) as e:
            return ValidationReport(
                is_valid=False,
                errors=[f"Internal Error: Failed to load XSD '{xsd_path}': {e}"],
            )

        if schema.validate(document):
            return ValidationReport(is_valid=True, errors=[])

        return ValidationReport(is_valid=False, errors=[str(err) for err in schema.error_log])
