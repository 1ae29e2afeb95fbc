import pytest
from lxml import etree

from sepafile.errors import InvalidAmount, InvalidCurrency
from sepafile.models import CreditTransfer, DebitTransfer


def _tags(node):
    return [child.tag for child in node]


def test_debit_transfer_element_order_with_mandate():
    """
    Tests that a DrctDbtTxInf with every optional block set is written in XSD order.
    """
    transfer = DebitTransfer(
        id="Id shown in bank statement",
        amount="0.02",
        currency="eur",
        debtor_name="Their Corp",
        debtor_account_iban="FI1350001540000056",
        debtor_bic="OKOYFIHH",
        remittance_information="Transaction description",
        mandate_identification="MANDATE-1",
    )
    transfer.end_to_end_id = "transferID/0"
    node = transfer.to_element()

    assert node.tag == "DrctDbtTxInf"
    assert _tags(node) == ["PmtId", "InstdAmt", "DrctDbtTx", "DbtrAgt", "Dbtr", "DbtrAcct", "RmtInf"]
    assert node.findtext("PmtId/InstrId") == "Id shown in bank statement"
    assert node.findtext("PmtId/EndToEndId") == "transferID/0"
    assert node.find("InstdAmt").text == "0.02"
    assert node.find("InstdAmt").get("Ccy") == "EUR"

    mandate = node.find("DrctDbtTx/MndtRltdInf")
    assert _tags(mandate) == ["MndtId", "DtOfSgntr", "AmdmntInd"]
    assert mandate.findtext("MndtId") == "MANDATE-1"
    assert mandate.findtext("DtOfSgntr") == "2009-11-01"
    assert mandate.findtext("AmdmntInd") == "false"

    assert node.findtext("DbtrAgt/FinInstnId/BIC") == "OKOYFIHH"
    assert node.findtext("Dbtr/Nm") == "Their Corp"
    assert node.findtext("DbtrAcct/Id/IBAN") == "FI1350001540000056"
    assert node.findtext("RmtInf/Ustrd") == "Transaction description"


def test_debit_transfer_without_mandate_or_bic():
    """
    Tests that optional debit blocks are left out while the agent wrapper is always
    written.
    """
    transfer = DebitTransfer(amount=150, debtor_name="Their Corp", debtor_account_iban="FI1350001540000056")
    node = transfer.to_element()

    assert "DrctDbtTx" not in _tags(node)
    # The agent wrapper is kept even without a BIC
    assert node.find("DbtrAgt/FinInstnId") is not None
    assert node.find("DbtrAgt/FinInstnId/BIC") is None
    assert node.find("PmtId/InstrId") is None
    assert node.find("RmtInf") is None
    assert node.find("InstdAmt").text == "1.50"


def test_debit_transfer_mandate_defaults_normalised():
    """
    Tests that mandate dates and amendment flags given as Python values are stored as
    XML text.
    """
    from datetime import date

    transfer = DebitTransfer(
        mandate_identification="M-2",
        mandate_date_of_signature=date(2021, 3, 4),
        mandate_amendment_indicator=True,
    )
    assert transfer.mandate_date_of_signature == "2021-03-04"
    assert transfer.mandate_amendment_indicator == "true"


def test_credit_transfer_element_order():
    """
    Tests that a CdtTrfTxInf is written in XSD order with the amount nested in Amt.
    """
    transfer = CreditTransfer(
        id="INV-42",
        amount=5000.00,
        creditor_name="Supplier GmbH",
        creditor_account_iban="DE89370400440532013000",
        creditor_bic="COBADEFFXXX",
        remittance_information="Invoice 42",
    )
    node = transfer.to_element()

    assert node.tag == "CdtTrfTxInf"
    assert _tags(node) == ["PmtId", "Amt", "CdtrAgt", "Cdtr", "CdtrAcct", "RmtInf"]
    instd_amt = node.find("Amt/InstdAmt")
    assert instd_amt.text == "5000.00"
    assert instd_amt.get("Ccy") == "EUR"
    assert node.findtext("CdtrAgt/FinInstnId/BIC") == "COBADEFFXXX"
    assert node.findtext("CdtrAcct/Id/IBAN") == "DE89370400440532013000"


def test_names_are_xml_escaped():
    """Names containing markup characters are escaped."""
    transfer = CreditTransfer(creditor_name="Smith & <Sons>", amount=1)
    xml_bytes = etree.tostring(transfer.to_element())
    assert b"<Nm>Smith &amp; &lt;Sons&gt;</Nm>" in xml_bytes


def test_amount_and_currency_validated_on_construction():
    """
    Tests that amounts and currencies are checked when a transfer is created.
    """
    assert CreditTransfer(amount="0.02").get_amount_cents() == 2
    assert CreditTransfer(amount=12345).get_amount_cents() == 12345

    with pytest.raises(InvalidCurrency):
        CreditTransfer(amount=1, currency="EURO")

    with pytest.raises(InvalidAmount):
        DebitTransfer(amount="ten euros")


def test_unknown_fields_are_rejected():
    """
    Tests that misspelled and derived fields cannot be passed to a transfer.
    """
    with pytest.raises(TypeError):
        DebitTransfer(amount=1, debitor_name="typo")

    # Derived fields cannot be supplied by the caller
    with pytest.raises(TypeError):
        CreditTransfer(amount=1, end_to_end_id="forged")
