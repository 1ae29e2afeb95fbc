import logging
from datetime import date, datetime
from typing import ClassVar, List, Optional, Tuple, Type, Union

from lxml import etree

from sepafile.models import CreditTransfer, DebitTransfer, Transfer
from sepafile.validator import (
    cents_to_decimal_string,
    validate_currency_code,
    validate_enum_member,
)
from sepafile.writer import element, financial_institution, iban_account, sub_element

logger = logging.getLogger(__name__)

DateLike = Union[date, str, None]

PAYMENT_METHODS = ("TRF", "CHK", "TRA")
COLLECT_METHODS = ("DD",)
LOCAL_INSTRUMENT_CODES = ("CORE", "B2B", "COR1")
SEQUENCE_TYPES = ("FRST", "RCUR", "FNAL", "OOFF")


def _format_date(value: DateLike) -> str:
    """Formats a requested date as YYYY-MM-DD, today when unset."""
    if not value:
        return date.today().isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class PaymentGroup:
    """
    A batch of transfers sharing one account, one execution date and one
    payment method (a PmtInf block).

    Groups are created through ``TransferFile``, which hands over its message
    identification so that end-to-end ids can be derived without a reference
    back to the file.
    """

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("id",)

    _transfer_class: ClassVar[Type[Transfer]] = Transfer
    _transaction_tag: ClassVar[str] = ""
    _date_tag: ClassVar[str] = ""
    _party_tag: ClassVar[str] = ""
    _account_tag: ClassVar[str] = ""
    _agent_tag: ClassVar[str] = ""

    def __init__(
        self,
        message_identification: Optional[str] = None,
        id: Optional[str] = None,
        category_purpose_code: Optional[str] = None,
        strict_currency: bool = False,
    ):
        self.message_identification = message_identification
        self.id = id
        self.category_purpose_code = category_purpose_code
        self.strict_currency = strict_currency
        self.local_instrument_code: Optional[str] = None
        self.sequence_type: Optional[str] = None
        self.transfers: List[Transfer] = []

    # Role neutral accessors, overridden by the concrete groups.
    method: Optional[str] = None
    party_name: Optional[str] = None
    account_iban: Optional[str] = None
    agent_bic: Optional[str] = None
    account_currency: Optional[str] = None
    requested_date: DateLike = None

    def _validate_currency(self, code: str) -> str:
        return validate_currency_code(code, strict=self.strict_currency)

    def add_transfer(self, **fields) -> Transfer:
        """
        Creates a transfer from keyword fields and appends it to this group.

        The end-to-end id is ``{message_identification}/{n}`` where ``n`` is
        the number of transfers already in the group, so the first one is 0.

        Raises:
            TypeError: on an unknown field name.
            InvalidCurrency, InvalidAmount: when the amount or currency is rejected.
        """
        transfer = self._transfer_class(**fields)
        if self.strict_currency:
            validate_currency_code(transfer.currency, strict=True)

        transfer.end_to_end_id = f"{self.message_identification or ''}/{self.get_number_of_transactions()}"
        self.transfers.append(transfer)

        logger.debug(
            "Added transfer %s (%d cents %s) to payment group %r",
            transfer.end_to_end_id, transfer.amount_cents, transfer.currency, self.id,
        )
        return transfer

    def get_number_of_transactions(self) -> int:
        return len(self.transfers)

    def get_control_sum_cents(self) -> int:
        return sum(transfer.get_amount_cents() for transfer in self.transfers)

    def _build_payment_type(self, parent: etree._Element, category_purpose_code: Optional[str]) -> None:
        pmt_tp_inf = sub_element(parent, "PmtTpInf")
        sub_element(sub_element(pmt_tp_inf, "SvcLvl"), "Cd", "SEPA")
        if self.local_instrument_code:
            sub_element(sub_element(pmt_tp_inf, "LclInstrm"), "Cd", self.local_instrument_code)
        if self.sequence_type:
            sub_element(pmt_tp_inf, "SeqTp", self.sequence_type)
        if category_purpose_code:
            sub_element(sub_element(pmt_tp_inf, "CtgyPurp"), "Cd", category_purpose_code)

    def to_element(self, default_category_purpose: Optional[str] = None) -> etree._Element:
        """
        Builds the PmtInf fragment, followed by every transfer in insertion order.

        Args:
            default_category_purpose: Category purpose written when the group has none.
        """
        pmt_inf = element("PmtInf")
        sub_element(pmt_inf, "PmtInfId", self.id or "")
        sub_element(pmt_inf, "PmtMtd", self.method)
        sub_element(pmt_inf, "NbOfTxs", str(self.get_number_of_transactions()))
        sub_element(pmt_inf, "CtrlSum", cents_to_decimal_string(self.get_control_sum_cents()))
        self._build_payment_type(pmt_inf, self.category_purpose_code or default_category_purpose)
        sub_element(pmt_inf, self._date_tag, _format_date(self.requested_date))

        sub_element(sub_element(pmt_inf, self._party_tag), "Nm", self.party_name or "")
        iban_account(pmt_inf, self._account_tag, self.account_iban, self.account_currency)
        financial_institution(pmt_inf, self._agent_tag, self.agent_bic)
        sub_element(pmt_inf, "ChrgBr", "SLEV")

        for transfer in self.transfers:
            pmt_inf.append(transfer.to_element())
        return pmt_inf


class PaymentInfo(PaymentGroup):
    """
    Credit transfer payment group: one debtor account paying many creditors.
    """

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("id", "debtor_name", "debtor_account_iban")

    _transfer_class = CreditTransfer
    _date_tag = "ReqdExctnDt"
    _party_tag = "Dbtr"
    _account_tag = "DbtrAcct"
    _agent_tag = "DbtrAgt"

    def __init__(
        self,
        message_identification: Optional[str] = None,
        id: Optional[str] = None,
        category_purpose_code: Optional[str] = None,
        debtor_name: Optional[str] = None,
        debtor_account_iban: Optional[str] = None,
        debtor_agent_bic: Optional[str] = None,
        debtor_account_currency: str = "EUR",
        requested_execution_date: DateLike = None,
        payment_method: str = "TRF",
        strict_currency: bool = False,
    ):
        super().__init__(message_identification, id, category_purpose_code, strict_currency)
        self.debtor_name = debtor_name
        self.debtor_account_iban = debtor_account_iban
        self.debtor_agent_bic = debtor_agent_bic
        self.requested_execution_date = requested_execution_date
        self.set_debtor_account_currency(debtor_account_currency)
        self.set_payment_method(payment_method)

    def set_payment_method(self, method: str) -> None:
        self.payment_method = validate_enum_member(method, PAYMENT_METHODS, "Payment Method")

    def set_debtor_account_currency(self, code: str) -> None:
        self.debtor_account_currency = self._validate_currency(code)

    def add_credit_transfer(self, **fields) -> CreditTransfer:
        return self.add_transfer(**fields)

    @property
    def method(self) -> str:
        return self.payment_method

    @property
    def party_name(self) -> Optional[str]:
        return self.debtor_name

    @property
    def account_iban(self) -> Optional[str]:
        return self.debtor_account_iban

    @property
    def agent_bic(self) -> Optional[str]:
        return self.debtor_agent_bic

    @property
    def account_currency(self) -> str:
        return self.debtor_account_currency

    @property
    def requested_date(self) -> DateLike:
        return self.requested_execution_date


class CollectInfo(PaymentGroup):
    """
    Direct debit payment group: one creditor account collecting from many debtors.
    """

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("id", "creditor_name", "creditor_account_iban")

    _transfer_class = DebitTransfer
    _date_tag = "ReqdColltnDt"
    _party_tag = "Cdtr"
    _account_tag = "CdtrAcct"
    _agent_tag = "CdtrAgt"

    def __init__(
        self,
        message_identification: Optional[str] = None,
        id: Optional[str] = None,
        category_purpose_code: Optional[str] = None,
        creditor_name: Optional[str] = None,
        creditor_account_iban: Optional[str] = None,
        creditor_agent_bic: Optional[str] = None,
        creditor_account_currency: str = "EUR",
        requested_collection_date: DateLike = None,
        collect_method: str = "DD",
        local_instrument_code: Optional[str] = None,
        sequence_type: Optional[str] = None,
        strict_currency: bool = False,
    ):
        super().__init__(message_identification, id, category_purpose_code, strict_currency)
        self.creditor_name = creditor_name
        self.creditor_account_iban = creditor_account_iban
        self.creditor_agent_bic = creditor_agent_bic
        self.requested_collection_date = requested_collection_date
        self.set_creditor_account_currency(creditor_account_currency)
        self.set_collect_method(collect_method)
        if local_instrument_code is not None:
            self.set_local_instrument_code(local_instrument_code)
        if sequence_type is not None:
            self.set_sequence_type(sequence_type)

    def set_collect_method(self, method: str) -> None:
        self.collect_method = validate_enum_member(method, COLLECT_METHODS, "Collect Method")

    def set_local_instrument_code(self, code: str) -> None:
        self.local_instrument_code = validate_enum_member(code, LOCAL_INSTRUMENT_CODES, "Local Instrument Code")

    def set_sequence_type(self, code: str) -> None:
        self.sequence_type = validate_enum_member(code, SEQUENCE_TYPES, "Sequence Type")

    def set_creditor_account_currency(self, code: str) -> None:
        self.creditor_account_currency = self._validate_currency(code)

    def add_debit_transfer(self, **fields) -> DebitTransfer:
        return self.add_transfer(**fields)

    @property
    def method(self) -> str:
        return self.collect_method

    @property
    def party_name(self) -> Optional[str]:
        return self.creditor_name

    @property
    def account_iban(self) -> Optional[str]:
        return self.creditor_account_iban

    @property
    def agent_bic(self) -> Optional[str]:
        return self.creditor_agent_bic

    @property
    def account_currency(self) -> str:
        return self.creditor_account_currency

    @property
    def requested_date(self) -> DateLike:
        return self.requested_collection_date
