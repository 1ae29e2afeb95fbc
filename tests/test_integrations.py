import json
import re
from datetime import datetime
from decimal import Decimal

from sepafile.integrations.pydantic import (
    PydanticCollectInfo,
    PydanticDebitTransfer,
    PydanticTransferFile,
    from_transfer_file,
)
from sepafile.models import MessageType
from sepafile.transfer import TransferFile


def _debit_file(amount="0.02"):
    sepa_file = TransferFile("debit", message_identification="MSG_001", initiating_party_name="Me", is_test=True)
    group = sepa_file.add_collect_info(
        id="PMT",
        creditor_name="My Corp",
        creditor_account_iban="FR1420041010050500013M02606",
        local_instrument_code="B2B",
        requested_collection_date="2030-06-01",
    )
    group.add_debit_transfer(
        amount=amount,
        debtor_name="Their Corp",
        debtor_account_iban="FI1350001540000056",
        mandate_identification="MANDATE-1",
    )
    return sepa_file


def test_transfer_file_to_pydantic_conversion():
    """
    Tests that a TransferFile converts into the Pydantic mirror with the group
    and transfer models matching its message type, and dumps to JSON.
    """
    p_file = from_transfer_file(_debit_file())

    assert isinstance(p_file, PydanticTransferFile)
    assert p_file.message_type is MessageType.DIRECT_DEBIT
    assert isinstance(p_file.payment_groups[0], PydanticCollectInfo)

    transfer = p_file.payment_groups[0].transfers[0]
    assert isinstance(transfer, PydanticDebitTransfer)
    assert transfer.amount_cents == 2
    assert transfer.end_to_end_id == "MSG_001/0"

    parsed_json = json.loads(p_file.model_dump_json())
    assert parsed_json["message_type"] == "debit"
    assert parsed_json["payment_groups"][0]["local_instrument_code"] == "B2B"
    assert parsed_json["payment_groups"][0]["transfers"][0]["mandate_identification"] == "MANDATE-1"


def test_pydantic_roundtrip_renders_same_document(monkeypatch):
    """
    Tests that converting to Pydantic and back renders byte-identical XML.
    """
    monkeypatch.setattr("sepafile.transfer._now", lambda: datetime(2030, 1, 1, 12, 0, 0))

    original = _debit_file()
    rebuilt = from_transfer_file(original).to_transfer_file()

    assert rebuilt.as_xml() == original.as_xml()


def test_json_payload_roundtrip():
    """
    Tests that a JSON dump of a file can be validated back into an equivalent TransferFile.
    """
    payload = from_transfer_file(_debit_file()).model_dump_json()
    rebuilt = PydanticTransferFile.model_validate_json(payload).to_transfer_file()

    assert rebuilt.get_header_control_sum_cents() == 2
    assert re.search(r"<EndToEndId>MSG_001/0</EndToEndId>", rebuilt.as_xml())


def test_json_payload_roundtrip_keeps_whole_decimal_amounts():
    """
    Tests that a Decimal amount without a fraction survives a JSON round trip.
    Decimal("100") dumps as the string "100", which on its own would read back
    as 100 cents; the exported cents must win.
    """
    payload = from_transfer_file(_debit_file(amount=Decimal("100"))).model_dump_json()
    rebuilt = PydanticTransferFile.model_validate_json(payload).to_transfer_file()

    assert rebuilt.get_header_control_sum_cents() == 10000
    assert rebuilt.payment_groups[0].transfers[0].get_amount_cents() == 10000
    assert '<InstdAmt Ccy="EUR">100.00</InstdAmt>' in rebuilt.as_xml()


def test_conversion_follows_mutated_amount():
    """
    Tests that an amount changed after the transfer was added is exported with
    matching cents.
    """
    sepa_file = _debit_file()
    sepa_file.payment_groups[0].transfers[0].amount = "10.00"

    transfer = from_transfer_file(sepa_file).payment_groups[0].transfers[0]
    assert transfer.amount_cents == 1000


def test_message_type_accepts_schema_names():
    """
    Tests that the message type may be given as a schema prefix.
    """
    model = PydanticTransferFile.model_validate({"message_type": "pain.001"})
    assert model.message_type is MessageType.CREDIT_TRANSFER
