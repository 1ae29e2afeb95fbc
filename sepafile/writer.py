from typing import Dict, Optional

from lxml import etree

XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"


def element(tag: str, text: Optional[str] = None, attrib: Optional[Dict[str, str]] = None) -> etree._Element:
    """Creates a detached element, used as the root of a self-contained fragment."""
    node = etree.Element(tag, attrib=attrib) if attrib else etree.Element(tag)
    if text is not None:
        node.text = text
    return node


def sub_element(
    parent: etree._Element,
    tag: str,
    text: Optional[str] = None,
    attrib: Optional[Dict[str, str]] = None,
) -> etree._Element:
    """Appends a child element, optionally carrying text content and attributes."""
    node = etree.SubElement(parent, tag, attrib=attrib) if attrib else etree.SubElement(parent, tag)
    if text is not None:
        node.text = text
    return node


def financial_institution(parent: etree._Element, tag: str, bic: Optional[str]) -> etree._Element:
    """Builds an agent block (``<tag><FinInstnId><BIC/></FinInstnId></tag>``).

    The FinInstnId wrapper is always written, the BIC only when known.
    """
    agent = sub_element(parent, tag)
    fin_instn_id = sub_element(agent, "FinInstnId")
    if bic:
        sub_element(fin_instn_id, "BIC", bic)
    return agent


def iban_account(parent: etree._Element, tag: str, iban: Optional[str], currency: Optional[str] = None) -> etree._Element:
    """Builds an account block (``<tag><Id><IBAN/></Id>[<Ccy/>]</tag>``)."""
    account = sub_element(parent, tag)
    sub_element(sub_element(account, "Id"), "IBAN", iban or "")
    if currency:
        sub_element(account, "Ccy", currency)
    return account


class XMLWriter:
    """
    Thin lxml wrapper creating and serializing ISO 20022 documents for one
    target schema.
    """

    def __init__(self, schema: str = "pain.001.001.03"):
        """
        Initializes the XML Writer for a target ISO 20022 schema.

        Args:
            schema: The full ISO 20022 schema identifier (e.g., 'pain.008.001.02').
        """
        self.schema = schema
        self.namespace = f"urn:iso:std:iso:20022:tech:xsd:{schema}"
        self.nsmap = {None: self.namespace, "xsi": XSI_NAMESPACE}

    def new_document(self) -> etree._Element:
        """Creates the empty ``Document`` root carrying the schema namespace."""
        return etree.Element("Document", nsmap=self.nsmap)

    def to_xml(self, document: etree._Element, pretty_print: bool = True) -> bytes:
        """Serializes a document tree to UTF-8 bytes with an XML declaration."""
        return etree.tostring(
            document,
            pretty_print=pretty_print,
            xml_declaration=True,
            encoding="UTF-8"
        )
