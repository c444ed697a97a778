"""Models for records returned by the Safe Transaction Service.

Only the normalizer should look inside these. ``decode_record`` maps a raw
JSON object onto exactly one known variant, or raises ``MalformedRecordError``.
"""

from datetime import datetime
from typing import Any, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from app.constants import DEFAULT_TOKEN_DECIMALS, TransferType, TxType
from app.core.exceptions import MalformedRecordError
from app.core.formatting import parse_timestamp


class UpstreamModel(BaseModel):
    """Base for upstream payloads: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TokenInfo(UpstreamModel):
    """Token metadata attached to enriched transfers and balances."""

    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    address: str | None = None
    logo_uri: str | None = Field(default=None, alias="logoUri")


class TransferRecord(UpstreamModel):
    """A single enriched asset movement (``transfers[]`` entry)."""

    transfer_type: TransferType = Field(
        validation_alias=AliasChoices("type", "transferType")
    )
    from_address: str | None = Field(default=None, alias="from")
    to_address: str | None = Field(default=None, alias="to")
    value: str | int | None = None
    token_address: str | None = Field(default=None, alias="tokenAddress")
    token_info: TokenInfo | None = Field(default=None, alias="tokenInfo")
    token: TokenInfo | None = None
    execution_date: str | None = Field(default=None, alias="executionDate")
    block_timestamp: str | None = Field(default=None, alias="blockTimestamp")
    transaction_hash: str | None = Field(default=None, alias="transactionHash")

    @property
    def metadata(self) -> TokenInfo | None:
        """Token metadata, ``tokenInfo`` taking precedence over ``token``."""
        return self.token_info or self.token

    @property
    def decimals(self) -> int:
        """
        Decimal precision for this transfer.

        Precedence: native transfers are always 18; token transfers use
        ``tokenInfo.decimals``, then ``token.decimals``, then 18.
        """
        if self.transfer_type == TransferType.ETHER:
            return DEFAULT_TOKEN_DECIMALS
        meta = self.metadata
        if meta is not None and meta.decimals is not None:
            return meta.decimals
        return DEFAULT_TOKEN_DECIMALS

    @property
    def timestamp(self) -> datetime | None:
        return parse_timestamp(self.execution_date) or parse_timestamp(self.block_timestamp)


class DecodedParameter(UpstreamModel):
    """A named argument of a decoded contract call."""

    name: str
    type: str | None = None
    value: Any = None
    value_decoded: list["InnerTransaction"] | None = Field(
        default=None, alias="valueDecoded"
    )


class DecodedCall(UpstreamModel):
    """Decoded calldata: method name plus named parameters."""

    method: str
    parameters: list[DecodedParameter] = Field(default_factory=list)

    def param(self, name: str) -> DecodedParameter | None:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None


class InnerTransaction(UpstreamModel):
    """One operation bundled inside a ``multiSend`` call."""

    operation: int | None = None
    to: str | None = None
    value: str | int | None = None
    data: str | None = None
    data_decoded: DecodedCall | None = Field(default=None, alias="dataDecoded")


class MultisigTransaction(UpstreamModel):
    """A transaction proposed and executed by the Safe's owners."""

    tx_type: TxType = Field(default=TxType.MULTISIG, alias="txType")
    safe: str | None = None
    to: str | None = None
    value: str | int | None = None
    data: str | None = None
    data_decoded: DecodedCall | None = Field(default=None, alias="dataDecoded")
    execution_date: str | None = Field(default=None, alias="executionDate")
    is_executed: bool = Field(default=True, alias="isExecuted")
    nonce: int | None = None
    safe_tx_hash: str | None = Field(default=None, alias="safeTxHash")
    transaction_hash: str | None = Field(default=None, alias="transactionHash")
    transfers: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def timestamp(self) -> datetime | None:
        return parse_timestamp(self.execution_date)


class ChainTransaction(UpstreamModel):
    """Module or plain chain transaction touching the Safe."""

    tx_type: TxType = Field(alias="txType")
    execution_date: str | None = Field(default=None, alias="executionDate")
    tx_hash: str | None = Field(default=None, alias="txHash")
    transfers: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def timestamp(self) -> datetime | None:
        return parse_timestamp(self.execution_date)


DecodedRecord = Union[MultisigTransaction, ChainTransaction, TransferRecord]


def decode_record(raw: Any) -> DecodedRecord:
    """
    Map a raw JSON object to exactly one known upstream variant.

    Discrimination order: ``txType`` (multisig, module, chain transaction),
    then ``type``/``transferType`` (enriched transfer), then ``safeTxHash``
    (multisig-transactions endpoint, which omits ``txType``).

    Raises:
        MalformedRecordError: If the object matches no variant or fails
            validation for the variant it claims to be.
    """
    if not isinstance(raw, dict):
        raise MalformedRecordError(f"Expected object, got {type(raw).__name__}", raw)

    try:
        tx_type = raw.get("txType")
        if tx_type == TxType.MULTISIG.value:
            return MultisigTransaction.model_validate(raw)
        if tx_type in (TxType.MODULE.value, TxType.ETHEREUM.value):
            return ChainTransaction.model_validate(raw)
        if tx_type is not None:
            raise MalformedRecordError(f"Unknown txType: {tx_type}", raw)
        if "type" in raw or "transferType" in raw:
            return TransferRecord.model_validate(raw)
        if "safeTxHash" in raw:
            return MultisigTransaction.model_validate(raw)
    except ValidationError as e:
        raise MalformedRecordError(f"Invalid record: {e.error_count()} errors", raw) from e

    raise MalformedRecordError("Record matches no known transaction shape", raw)


DecodedParameter.model_rebuild()
DecodedCall.model_rebuild()
InnerTransaction.model_rebuild()
