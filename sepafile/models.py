from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Tuple

from lxml import etree

from sepafile.errors import InvalidMessageType
from sepafile.validator import (
    Amount,
    amount_to_cents,
    cents_to_decimal_string,
    validate_currency_code,
)
from sepafile.writer import element, financial_institution, iban_account, sub_element


class MessageType(str, Enum):
    """
    The two supported payment initiation messages.

    The value doubles as the short name accepted by ``TransferFile``.
    """

    CREDIT_TRANSFER = "credit"
    DIRECT_DEBIT = "debit"

    @property
    def schema(self) -> str:
        return _SCHEMAS[self]

    @property
    def initiation_tag(self) -> str:
        return _INITIATION_TAGS[self]

    @classmethod
    def resolve(cls, value: "str | MessageType") -> "MessageType":
        """
        Accepts a MessageType, its short name ('credit', 'debit') or a schema
        prefix ('pain.001', 'pain.008.001.02').
        """
        if isinstance(value, MessageType):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.schema, member.schema[:8]):
                return member
        raise InvalidMessageType(f"Unsupported message type: {value!r}")


_SCHEMAS = {
    MessageType.CREDIT_TRANSFER: "pain.001.001.03",
    MessageType.DIRECT_DEBIT: "pain.008.001.02",
}

_INITIATION_TAGS = {
    MessageType.CREDIT_TRANSFER: "CstmrCdtTrfInitn",
    MessageType.DIRECT_DEBIT: "CstmrDrctDbtInitn",
}


@dataclass
class Transfer:
    """
    Fields shared by every individual money movement.

    Attributes:
        id (Optional[str]):
            Instruction identification, shown on the counterparty's bank statement.
        remittance_information (Optional[str]):
            Unstructured remittance text (RmtInf/Ustrd).
        amount (int | float | Decimal | str):
            The amount as supplied. Integers are cents, decimals are major units.
        currency (str):
            ISO 4217 code of the instructed amount. Validated on construction.
        end_to_end_id (Optional[str]):
            Assigned by the owning payment group as ``{message_id}/{index}``.
    """

    id: Optional[str] = None
    remittance_information: Optional[str] = None
    amount: Amount = 0
    currency: str = "EUR"
    end_to_end_id: Optional[str] = field(default=None, init=False)

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def __post_init__(self):
        amount_to_cents(self.amount)
        self.currency = validate_currency_code(self.currency)

    @property
    def amount_cents(self) -> int:
        """``amount`` in integer cents, derived on every read."""
        return amount_to_cents(self.amount)

    def get_amount_cents(self) -> int:
        return self.amount_cents

    def _build_payment_id(self, parent: etree._Element) -> None:
        pmt_id = sub_element(parent, "PmtId")
        if self.id:
            sub_element(pmt_id, "InstrId", self.id)
        sub_element(pmt_id, "EndToEndId", self.end_to_end_id or "")

    def _build_remittance(self, parent: etree._Element) -> None:
        if self.remittance_information:
            sub_element(sub_element(parent, "RmtInf"), "Ustrd", self.remittance_information)


@dataclass
class CreditTransfer(Transfer):
    """
    A single credit transfer (pain.001 CdtTrfTxInf): money sent to a creditor.

    Attributes:
        creditor_bic (Optional[str]): BIC of the creditor's bank, omitted when unknown.
        creditor_name (Optional[str]): Name of the beneficiary.
        creditor_account_iban (Optional[str]): IBAN credited.
    """

    creditor_bic: Optional[str] = None
    creditor_name: Optional[str] = None
    creditor_account_iban: Optional[str] = None

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("creditor_name", "creditor_account_iban")

    @property
    def account_iban(self) -> Optional[str]:
        return self.creditor_account_iban

    @property
    def agent_bic(self) -> Optional[str]:
        return self.creditor_bic

    def to_element(self) -> etree._Element:
        """Builds the CdtTrfTxInf fragment in XSD sequence order."""
        tx_inf = element("CdtTrfTxInf")
        self._build_payment_id(tx_inf)

        amt = sub_element(tx_inf, "Amt")
        sub_element(amt, "InstdAmt", cents_to_decimal_string(self.amount_cents), {"Ccy": self.currency})

        financial_institution(tx_inf, "CdtrAgt", self.creditor_bic)
        sub_element(sub_element(tx_inf, "Cdtr"), "Nm", self.creditor_name or "")
        iban_account(tx_inf, "CdtrAcct", self.creditor_account_iban)
        self._build_remittance(tx_inf)
        return tx_inf


@dataclass
class DebitTransfer(Transfer):
    """
    A single direct debit (pain.008 DrctDbtTxInf): money collected from a debtor.

    Attributes:
        debtor_bic (Optional[str]): BIC of the debtor's bank. The DbtrAgt wrapper is written regardless.
        debtor_name (Optional[str]): Name of the debtor.
        debtor_account_iban (Optional[str]): IBAN debited.
        mandate_identification (Optional[str]): Mandate reference. The mandate block is only written when set.
        mandate_date_of_signature (str): Signature date of the mandate (YYYY-MM-DD).
        mandate_amendment_indicator (str): 'true' when the mandate changed since the last collection.
    """

    debtor_bic: Optional[str] = None
    debtor_name: Optional[str] = None
    debtor_account_iban: Optional[str] = None
    mandate_identification: Optional[str] = None
    mandate_date_of_signature: str = "2009-11-01"
    mandate_amendment_indicator: str = "false"

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("debtor_name", "debtor_account_iban")

    def __post_init__(self):
        super().__post_init__()
        if hasattr(self.mandate_date_of_signature, "isoformat"):
            self.mandate_date_of_signature = self.mandate_date_of_signature.isoformat()
        if isinstance(self.mandate_amendment_indicator, bool):
            self.mandate_amendment_indicator = "true" if self.mandate_amendment_indicator else "false"

    @property
    def account_iban(self) -> Optional[str]:
        return self.debtor_account_iban

    @property
    def agent_bic(self) -> Optional[str]:
        return self.debtor_bic

    def to_element(self) -> etree._Element:
        """Builds the DrctDbtTxInf fragment in XSD sequence order."""
        tx_inf = element("DrctDbtTxInf")
        self._build_payment_id(tx_inf)
        sub_element(tx_inf, "InstdAmt", cents_to_decimal_string(self.amount_cents), {"Ccy": self.currency})

        if self.mandate_identification:
            mndt = sub_element(sub_element(tx_inf, "DrctDbtTx"), "MndtRltdInf")
            sub_element(mndt, "MndtId", self.mandate_identification)
            sub_element(mndt, "DtOfSgntr", self.mandate_date_of_signature)
            sub_element(mndt, "AmdmntInd", self.mandate_amendment_indicator)

        financial_institution(tx_inf, "DbtrAgt", self.debtor_bic)
        sub_element(sub_element(tx_inf, "Dbtr"), "Nm", self.debtor_name or "")
        iban_account(tx_inf, "DbtrAcct", self.debtor_account_iban)
        self._build_remittance(tx_inf)
        return tx_inf


@dataclass
class ValidationReport:
    """
    Standardized report returning the analytical state of a validated TransferFile.

    Attributes:
        is_valid (bool): True if no errors were found.
        errors (List[str]): One message per failed rule.
    """

    is_valid: bool
    errors: List[str]
