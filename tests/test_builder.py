import pytest
from pydantic import ValidationError

from sepafile.builder import MessageBuilder
from sepafile.errors import InvalidEnumValue, InvalidMessageType
from sepafile.payment import CollectInfo, PaymentInfo
from sepafile.transfer import TransferFile

DEBIT_PAYLOAD = {
    "message_identification": "transferID",
    "initiating_party_name": "Me",
    "payment_groups": [
        {
            "id": "Payment Info ID",
            "creditor_name": "My Corp",
            "creditor_account_iban": "FR1420041010050500013M02606",
            "creditor_agent_bic": "PSSTFRPPMON",
            "sequence_type": "ooff",
            "transactions": [
                {"amount": "0.02", "debtor_name": "Their Corp", "debtor_account_iban": "FI1350001540000056"},
                {"amount": "5000.00", "debtor_name": "GHI Semiconductors", "debtor_account_iban": "BE30001216371411"},
            ],
        }
    ],
}


def test_builder_debit_file():
    """
    Tests that the builder turns a nested mapping into a populated direct debit
    TransferFile.
    """
    sepa_file = MessageBuilder.build("pain.008", DEBIT_PAYLOAD)

    assert isinstance(sepa_file, TransferFile)
    assert sepa_file.message_identification == "transferID"
    assert len(sepa_file.payment_groups) == 1

    group = sepa_file.payment_groups[0]
    assert isinstance(group, CollectInfo)
    assert group.sequence_type == "OOFF"
    assert [t.end_to_end_id for t in group.transfers] == ["transferID/0", "transferID/1"]
    assert sepa_file.get_number_of_transactions() == 2
    assert sepa_file.get_header_control_sum_cents() == 500002


def test_builder_credit_file_with_kwargs():
    """Tests that payload fields may also be passed as keyword arguments."""
    sepa_file = MessageBuilder.build(
        "credit",
        message_identification="INIT-1",
        payment_groups=[{"id": "PMT", "transfers": [{"amount": 12345, "creditor_name": "Supplier"}]}],
    )
    group = sepa_file.payment_groups[0]
    assert isinstance(group, PaymentInfo)
    assert group.transfers[0].amount_cents == 12345


def test_builder_rejects_unknown_keys():
    """
    Tests that strict validation rejects unknown keys at every level of the payload.
    """
    payload = {
        "message_identification": "BLD456",
        "payment_groups": [{"id": "PMT", "unknown_junk_field": "SHOULD_FAIL"}],
    }
    with pytest.raises(ValidationError):
        MessageBuilder.build("pain.008", payload)

    with pytest.raises(ValidationError):
        MessageBuilder.build("pain.008", {"another_bad_field": 123})


def test_builder_rejects_wrong_direction_fields():
    """
    Tests that a group payload is validated against the group model of the message type.
    """
    # Debtor fields belong to credit transfer groups
    with pytest.raises(ValidationError):
        MessageBuilder.build("pain.008", {"payment_groups": [{"debtor_name": "Me"}]})


def test_builder_domain_errors_propagate():
    """Invalid codes surface as the document model's own errors."""
    payload = {"payment_groups": [{"id": "PMT", "local_instrument_code": "XYZ"}]}
    with pytest.raises(InvalidEnumValue):
        MessageBuilder.build("pain.008", payload)


def test_builder_unsupported_schema():
    """Tests that an unsupported schema raises InvalidMessageType."""
    with pytest.raises(InvalidMessageType):
        MessageBuilder.build("camt.054", {})


def test_builder_edge_cases():
    """
    Tests that building without a payload yields an empty but renderable file.
    """
    sepa_file = MessageBuilder.build("pain.001")
    assert sepa_file.payment_groups == []
    assert sepa_file.get_number_of_transactions() == 0
    assert b"<NbOfTxs>0</NbOfTxs>" in sepa_file.to_xml()
