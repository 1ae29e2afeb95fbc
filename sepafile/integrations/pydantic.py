from datetime import date
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from sepafile.models import MessageType
from sepafile.transfer import TransferFile

AmountType = Union[int, Decimal, float, str]
DateType = Optional[Union[date, str]]

_DERIVED_FIELDS = {"amount_cents", "end_to_end_id"}


class PydanticCreditTransfer(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: Optional[str] = None
    creditor_bic: Optional[str] = None
    creditor_name: Optional[str] = None
    creditor_account_iban: Optional[str] = None
    remittance_information: Optional[str] = None
    amount: AmountType = 0
    currency: str = "EUR"

    # Derived, filled when exporting an existing TransferFile
    amount_cents: Optional[int] = None
    end_to_end_id: Optional[str] = None


class PydanticDebitTransfer(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: Optional[str] = None
    debtor_bic: Optional[str] = None
    debtor_name: Optional[str] = None
    debtor_account_iban: Optional[str] = None
    remittance_information: Optional[str] = None
    mandate_identification: Optional[str] = None
    mandate_date_of_signature: Optional[Union[date, str]] = None
    mandate_amendment_indicator: Optional[Union[bool, str]] = None
    amount: AmountType = 0
    currency: str = "EUR"

    amount_cents: Optional[int] = None
    end_to_end_id: Optional[str] = None


class PydanticPaymentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: Optional[str] = None
    category_purpose_code: Optional[str] = None
    debtor_name: Optional[str] = None
    debtor_account_iban: Optional[str] = None
    debtor_agent_bic: Optional[str] = None
    debtor_account_currency: str = "EUR"
    requested_execution_date: DateType = None
    payment_method: str = "TRF"
    transfers: List[PydanticCreditTransfer] = Field(
        default_factory=list, validation_alias=AliasChoices("transfers", "transactions")
    )


class PydanticCollectInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: Optional[str] = None
    category_purpose_code: Optional[str] = None
    creditor_name: Optional[str] = None
    creditor_account_iban: Optional[str] = None
    creditor_agent_bic: Optional[str] = None
    creditor_account_currency: str = "EUR"
    requested_collection_date: DateType = None
    collect_method: str = "DD"
    local_instrument_code: Optional[str] = None
    sequence_type: Optional[str] = None
    transfers: List[PydanticDebitTransfer] = Field(
        default_factory=list, validation_alias=AliasChoices("transfers", "transactions")
    )


class PydanticTransferFile(BaseModel):
    """
    Validated, JSON friendly mirror of a TransferFile.

    Payment groups are validated against the group model matching
    ``message_type``, so unknown keys are rejected instead of being dropped.
    """

    model_config = ConfigDict(from_attributes=True, extra="forbid")

    message_type: MessageType = MessageType.CREDIT_TRANSFER
    message_identification: Optional[str] = None
    initiating_party_name: Optional[str] = None
    initiating_party_id: Optional[str] = None
    category_purpose_code: Optional[str] = None
    is_test: bool = False
    payment_groups: List[Union[PydanticPaymentInfo, PydanticCollectInfo]] = Field(
        default_factory=list, validation_alias=AliasChoices("payment_groups", "payments")
    )

    @field_validator("message_type", mode="before")
    @classmethod
    def _resolve_message_type(cls, value):
        return MessageType.resolve(value)

    @field_validator("payment_groups", mode="before")
    @classmethod
    def _validate_groups(cls, value, info: ValidationInfo):
        message_type = info.data.get("message_type", MessageType.CREDIT_TRANSFER)
        group_model = (
            PydanticPaymentInfo if message_type is MessageType.CREDIT_TRANSFER else PydanticCollectInfo
        )
        return [group_model.model_validate(group) for group in value or []]

    def to_transfer_file(self, strict_currency: bool = False) -> TransferFile:
        """
        Builds a populated TransferFile. Coded fields, amounts and currencies
        are validated by the document model itself.

        Transfers exported with ``amount_cents`` are rebuilt from those cents.
        """
        transfer_file = TransferFile(
            self.message_type,
            message_identification=self.message_identification,
            initiating_party_name=self.initiating_party_name,
            initiating_party_id=self.initiating_party_id,
            category_purpose_code=self.category_purpose_code,
            is_test=self.is_test,
            strict_currency=strict_currency,
        )

        for group in self.payment_groups:
            payment_group = transfer_file.add_payment_group(
                **group.model_dump(exclude={"transfers"}, exclude_none=True)
            )
            for transfer in group.transfers:
                fields = transfer.model_dump(exclude=_DERIVED_FIELDS, exclude_none=True)
                # Exported cents are exact; a dumped Decimal("100") reads back as "100" cents
                if transfer.amount_cents is not None:
                    fields["amount"] = transfer.amount_cents
                payment_group.add_transfer(**fields)

        return transfer_file


def from_transfer_file(transfer_file: TransferFile) -> PydanticTransferFile:
    """
    Converts a TransferFile, with its groups and transfers, into its Pydantic equivalent.
    """
    return PydanticTransferFile.model_validate(transfer_file)
