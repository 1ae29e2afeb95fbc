from typing import Any, Dict, Mapping, Optional

from sepafile.errors import InvalidMessageType
from sepafile.models import MessageType
from sepafile.transfer import TransferFile


class MessageBuilder:
    """
    A factory for building populated TransferFiles from plain mappings
    (decoded JSON, fixtures, API payloads).
    """

    _SCHEMA_MAP = {
        "pain.001": MessageType.CREDIT_TRANSFER,
        "pain.001.001.03": MessageType.CREDIT_TRANSFER,
        "credit": MessageType.CREDIT_TRANSFER,
        "pain.008": MessageType.DIRECT_DEBIT,
        "pain.008.001.02": MessageType.DIRECT_DEBIT,
        "debit": MessageType.DIRECT_DEBIT,
    }

    @staticmethod
    def build(
        schema: str,
        payload: Optional[Mapping[str, Any]] = None,
        strict_currency: bool = False,
        **kwargs: Any,
    ) -> TransferFile:
        """
        Constructs a TransferFile for the requested schema.

        Args:
            schema (str): The target message ("pain.001", "pain.008", "credit" or "debit").
            payload: Nested mapping of file fields. Groups are listed under
                     ``payment_groups`` and their transfers under ``transfers``
                     (``transactions`` is accepted as well).
            strict_currency: Check currencies against the ISO 4217 registry.
            **kwargs: Extra top level file fields, merged over ``payload``.

        Returns:
            TransferFile: The populated document model, ready to render.

        Raises:
            InvalidMessageType: if the schema is not supported.
            pydantic.ValidationError: on unknown or mistyped fields.
            SepaError: on rejected coded fields, amounts or currencies.
        """
        from sepafile.integrations.pydantic import PydanticTransferFile

        message_type = MessageBuilder._SCHEMA_MAP.get(str(schema).lower())
        if message_type is None:
            raise InvalidMessageType(f"XML generation for {schema} is not supported.")

        data: Dict[str, Any] = dict(payload or {})
        data.update(kwargs)
        data["message_type"] = message_type

        model = PydanticTransferFile.model_validate(data)
        return model.to_transfer_file(strict_currency=strict_currency)
