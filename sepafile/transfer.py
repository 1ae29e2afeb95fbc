import logging
from datetime import datetime
from typing import ClassVar, List, Optional, Tuple, Union

from lxml import etree

from sepafile.errors import InvalidMessageType
from sepafile.models import MessageType
from sepafile.payment import CollectInfo, PaymentGroup, PaymentInfo
from sepafile.validator import Validator, cents_to_decimal_string
from sepafile.writer import XMLWriter, sub_element

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now()


class TransferFile:
    """
    A complete SEPA payment initiation message.

    The message type is fixed on construction and selects both the document
    namespace and the kind of payment group that may be added: ``PaymentInfo``
    for credit transfers (pain.001.001.03), ``CollectInfo`` for direct debits
    (pain.008.001.02).

    Totals are never stored: every read and every render recomputes them from
    the current groups. Rendering is repeatable; only ``CreDtTm`` changes
    between two renders of an unmodified file.

    Example:
        >>> sepa_file = TransferFile("debit", message_identification="transferID",
        ...                          initiating_party_name="Me")
        >>> group = sepa_file.add_collect_info(id="Payment Info ID", creditor_name="My Corp")
        >>> transfer = group.add_debit_transfer(amount="0.02", debtor_name="Their Corp")
        >>> xml_bytes = sepa_file.to_xml()
    """

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("message_identification", "initiating_party_name")

    def __init__(
        self,
        message_type: Union[str, MessageType] = MessageType.CREDIT_TRANSFER,
        message_identification: Optional[str] = None,
        initiating_party_name: Optional[str] = None,
        initiating_party_id: Optional[str] = None,
        category_purpose_code: Optional[str] = None,
        is_test: bool = False,
        strict_currency: bool = False,
    ):
        """
        Args:
            message_type: 'credit', 'debit', a MessageType, or a schema prefix such as 'pain.008'.
            message_identification: Caller unique id of this message (GrpHdr/MsgId).
            initiating_party_name: Name of the party sending the file.
            initiating_party_id: Optional organisation id of the initiating party (e.g. tax id).
            category_purpose_code: Fallback CtgyPurp for groups that do not set one.
            is_test: Marks the file as a test file (GrpHdr/Authstn/Prtry = TEST).
            strict_currency: Check currencies against the ISO 4217 registry, not only their shape.
        """
        self._message_type = MessageType.resolve(message_type)
        self.message_identification = message_identification
        self.initiating_party_name = initiating_party_name
        self.initiating_party_id = initiating_party_id
        self.category_purpose_code = category_purpose_code
        self.is_test = is_test
        self.strict_currency = strict_currency
        self.payment_groups: List[PaymentGroup] = []

        self._writer = XMLWriter(schema=self._message_type.schema)

    @property
    def message_type(self) -> MessageType:
        return self._message_type

    @property
    def message_identification(self) -> Optional[str]:
        return self._message_identification

    @message_identification.setter
    def message_identification(self, value: Optional[str]) -> None:
        # Groups derive end-to-end ids from it when transfers are added.
        self._message_identification = value
        for group in getattr(self, "payment_groups", ()):
            group.message_identification = value

    def _add_group(self, group_class, fields) -> PaymentGroup:
        expected = PaymentInfo if self._message_type is MessageType.CREDIT_TRANSFER else CollectInfo
        if group_class is not expected:
            raise InvalidMessageType(
                f"A {self._message_type.value} transfer file only accepts {expected.__name__} groups."
            )

        fields.setdefault("strict_currency", self.strict_currency)
        group = group_class(self.message_identification, **fields)
        self.payment_groups.append(group)
        logger.debug("Added %s %r to transfer file %r", group_class.__name__, group.id, self.message_identification)
        return group

    def add_payment_info(self, **fields) -> PaymentInfo:
        """
        Adds a credit transfer payment group.

        Raises:
            InvalidMessageType: if this is a direct debit file.
            InvalidEnumValue, InvalidCurrency: on rejected coded fields.
        """
        return self._add_group(PaymentInfo, fields)

    def add_collect_info(self, **fields) -> CollectInfo:
        """
        Adds a direct debit payment group.

        Raises:
            InvalidMessageType: if this is a credit transfer file.
            InvalidEnumValue, InvalidCurrency: on rejected coded fields.
        """
        return self._add_group(CollectInfo, fields)

    def add_payment_group(self, **fields) -> PaymentGroup:
        """Adds the group type matching this file's message type."""
        if self._message_type is MessageType.CREDIT_TRANSFER:
            return self.add_payment_info(**fields)
        return self.add_collect_info(**fields)

    def get_number_of_transactions(self) -> int:
        return sum(group.get_number_of_transactions() for group in self.payment_groups)

    def get_header_control_sum_cents(self) -> int:
        """Sum of all transactions in all groups, regardless of currency."""
        return sum(group.get_control_sum_cents() for group in self.payment_groups)

    def get_transaction_control_sum_cents(self) -> int:
        """Same aggregate as get_header_control_sum_cents."""
        return self.get_header_control_sum_cents()

    def _build_group_header(self, parent: etree._Element) -> None:
        grp_hdr = sub_element(parent, "GrpHdr")
        sub_element(grp_hdr, "MsgId", self.message_identification or "")
        sub_element(grp_hdr, "CreDtTm", _now().strftime("%Y-%m-%dT%H:%M:%S"))
        if self.is_test:
            sub_element(sub_element(grp_hdr, "Authstn"), "Prtry", "TEST")

        sub_element(grp_hdr, "NbOfTxs", str(self.get_number_of_transactions()))
        sub_element(grp_hdr, "CtrlSum", cents_to_decimal_string(self.get_header_control_sum_cents()))

        initg_pty = sub_element(grp_hdr, "InitgPty")
        sub_element(initg_pty, "Nm", self.initiating_party_name or "")
        if self.initiating_party_id:
            othr = sub_element(sub_element(sub_element(initg_pty, "Id"), "OrgId"), "Othr")
            sub_element(othr, "Id", self.initiating_party_id)

    def to_element(self) -> etree._Element:
        """Builds the full ``Document`` tree: group header, then every group in insertion order."""
        document = self._writer.new_document()
        initiation = sub_element(document, self._message_type.initiation_tag)
        self._build_group_header(initiation)

        for group in self.payment_groups:
            initiation.append(group.to_element(self.category_purpose_code))
        return document

    def to_xml(self, pretty_print: bool = True, strict: bool = False) -> bytes:
        """
        Renders the document to UTF-8 encoded bytes.

        Args:
            pretty_print: Indent the output.
            strict: Refuse to render when a mandatory field is unset.

        Raises:
            MissingRequiredField: only with ``strict``.
        """
        if strict:
            Validator.assert_complete(self)

        logger.debug(
            "Rendering %s file %r: %d transaction(s), control sum %s",
            self._writer.schema,
            self.message_identification,
            self.get_number_of_transactions(),
            cents_to_decimal_string(self.get_header_control_sum_cents()),
        )
        return self._writer.to_xml(self.to_element(), pretty_print=pretty_print)

    def as_xml(self, pretty_print: bool = True, strict: bool = False) -> str:
        """Renders the document and returns it as a string."""
        return self.to_xml(pretty_print=pretty_print, strict=strict).decode("utf-8")
