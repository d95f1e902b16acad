# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Raw and signed transactions, payloads and signing transcripts.

A :class:`RawTransaction` is what an account agrees to. Signing never covers
the raw BCS bytes alone: the signed message is a domain-separating prefix
followed by the BCS encoding.

- Single-signer transactions sign ``SHA3-256("APTOS::RawTransaction") || BCS(raw)``
- Multi-agent and fee-payer transactions wrap the raw transaction together
  with the other signers' addresses and sign
  ``SHA3-256("APTOS::RawTransactionWithData") || BCS(wrapper)``

Both prefixes are computed once at import.

A :class:`SignedTransaction` pairs the raw transaction with a transaction
authenticator. Its hash, the one nodes report, is
``SHA3-256(SHA3-256("APTOS::Transaction") || 0x00 || BCS(signed))``.

Payloads:

- ``Script`` (0): Move bytecode with type arguments and tagged arguments
- ``ModuleBundle`` (1): deprecated, unsupported
- ``EntryFunction`` (2): a call to a published ``public entry fun``
- ``Multisig`` (3): execute a proposal of an on-chain multisig account
- ``Payload`` (4): versioned form carrying an optional multisig address and a
  replay-protection nonce. A transaction whose payload has a nonce is
  *orderless*: its sequence number is ``2**64 - 1`` and it does not consume
  the sender's sequence number.

Examples:
    A coin transfer::

        payload = EntryFunction.natural(
            "0x1::aptos_account",
            "transfer",
            [],
            [
                TransactionArgument(recipient, Serializer.struct),
                TransactionArgument(1_000, Serializer.u64),
            ],
        )
        raw = RawTransaction(
            sender, 0, TransactionPayload(payload), 100_000, 100, expiry, chain_id
        )
        signed = SignedTransaction(raw, raw.sign(private_key))
        signed.hash()  # "0x..."
"""

from __future__ import annotations

import hashlib
import unittest
from typing import Any, Callable, Dict, List, Optional, Sequence, Union, cast

from typing_extensions import Protocol

from . import asymmetric_crypto, asymmetric_crypto_wrapper, ed25519, secp256k1_ecdsa, slh_dsa
from .account_address import AccountAddress
from .arguments import marshal_argument
from .authenticator import (
    AccountAuthenticator,
    Authenticator,
    Ed25519Authenticator,
    FeePayerAuthenticator,
    MultiAgentAuthenticator,
    MultiEd25519Authenticator,
    MultiKeyAuthenticator,
    SingleKeyAuthenticator,
)
from .bcs import MAX_U64, Deserializable, Deserializer, Serializable, Serializer
from .errors import CodecError, ParseError, UnsupportedError
from .type_tag import StructTag, TypeTag
from .type_tag_parser import parse_type_tag

RAW_TRANSACTION_SALT = hashlib.sha3_256(b"APTOS::RawTransaction").digest()
RAW_TRANSACTION_WITH_DATA_SALT = hashlib.sha3_256(
    b"APTOS::RawTransactionWithData"
).digest()
TRANSACTION_SALT = hashlib.sha3_256(b"APTOS::Transaction").digest()

# Sequence number carried by every orderless transaction.
ORDERLESS_SEQUENCE_NUMBER = MAX_U64


def _simulated_authenticator(key: asymmetric_crypto.PublicKey) -> AccountAuthenticator:
    if isinstance(key, ed25519.PublicKey):
        return AccountAuthenticator(Ed25519Authenticator(key, ed25519.Signature.empty()))
    if isinstance(key, ed25519.MultiPublicKey):
        signatures = [(i, ed25519.Signature.empty()) for i in range(key.threshold)]
        return AccountAuthenticator(
            MultiEd25519Authenticator(key, ed25519.MultiSignature(signatures))
        )
    if isinstance(key, asymmetric_crypto_wrapper.MultiPublicKey):
        empty = [
            (i, _empty_signature(key.keys[i].public_key)) for i in range(key.threshold)
        ]
        return AccountAuthenticator(
            MultiKeyAuthenticator(key, asymmetric_crypto_wrapper.MultiSignature(empty))
        )
    if isinstance(key, asymmetric_crypto_wrapper.PublicKey):
        key = key.public_key
    return AccountAuthenticator(SingleKeyAuthenticator(key, _empty_signature(key)))


def _empty_signature(key: asymmetric_crypto.PublicKey) -> asymmetric_crypto.Signature:
    if isinstance(key, ed25519.PublicKey):
        return ed25519.Signature.empty()
    if isinstance(key, secp256k1_ecdsa.PublicKey):
        return secp256k1_ecdsa.Signature.empty()
    if isinstance(key, slh_dsa.PublicKey):
        return slh_dsa.Signature.empty()
    raise UnsupportedError(f"Cannot simulate a signature for {type(key).__name__}")


class RawTransactionInternal(Protocol):
    """Anything that can be signed as a transaction: the raw form or a wrapper."""

    def keyed(self) -> bytes:
        """The exact bytes that get signed: prehash followed by BCS."""
        ser = Serializer()
        self.serialize(ser)
        return self.prehash() + ser.output()

    def prehash(self) -> bytes:
        ...

    def serialize(self, serializer: Serializer):
        ...

    def sign(self, key: asymmetric_crypto.PrivateKey) -> AccountAuthenticator:
        """Sign with ``key`` and wrap the result in the matching authenticator.

        Ed25519 keys produce the legacy Ed25519 authenticator, everything else a
        SingleKey authenticator.
        """
        signature = key.sign(self.keyed())
        if isinstance(signature, ed25519.Signature):
            return AccountAuthenticator(
                Ed25519Authenticator(
                    cast(ed25519.PublicKey, key.public_key()), signature
                )
            )
        return AccountAuthenticator(SingleKeyAuthenticator(key.public_key(), signature))

    def sign_simulated(self, key: asymmetric_crypto.PublicKey) -> AccountAuthenticator:
        """An authenticator with all-zero signatures, for the simulate endpoint."""
        return _simulated_authenticator(key)

    def verify(
        self, key: asymmetric_crypto.PublicKey, signature: asymmetric_crypto.Signature
    ) -> bool:
        return key.verify(self.keyed(), signature)


class RawTransactionWithData(RawTransactionInternal, Protocol):
    raw_transaction: RawTransaction

    def inner(self) -> RawTransaction:
        return self.raw_transaction

    def prehash(self) -> bytes:
        return RAW_TRANSACTION_WITH_DATA_SALT

    @staticmethod
    def deserialize(deserializer: Deserializer) -> RawTransactionWithData:
        variant = deserializer.u8()
        if variant == MultiAgentRawTransaction.VARIANT:
            raw = RawTransaction.deserialize(deserializer)
            secondary = deserializer.sequence(AccountAddress.deserialize)
            return MultiAgentRawTransaction(raw, secondary)
        if variant == FeePayerRawTransaction.VARIANT:
            raw = RawTransaction.deserialize(deserializer)
            secondary = deserializer.sequence(AccountAddress.deserialize)
            fee_payer = AccountAddress.deserialize(deserializer)
            return FeePayerRawTransaction(raw, secondary, fee_payer)
        raise CodecError(f"Invalid RawTransactionWithData variant: {variant}")


class RawTransaction(Deserializable, RawTransactionInternal, Serializable):
    # Sender's address
    sender: AccountAddress
    # Must match the sender's on-chain sequence number at execution time, or
    # be ORDERLESS_SEQUENCE_NUMBER for a nonce-based transaction.
    sequence_number: int
    payload: TransactionPayload
    max_gas_amount: int
    gas_unit_price: int
    # Seconds since the Unix epoch.
    expiration_timestamps_secs: int
    chain_id: int

    def __init__(
        self,
        sender: AccountAddress,
        sequence_number: int,
        payload: TransactionPayload,
        max_gas_amount: int,
        gas_unit_price: int,
        expiration_timestamps_secs: int,
        chain_id: int,
    ):
        self.sender = sender
        self.sequence_number = sequence_number
        self.payload = payload
        self.max_gas_amount = max_gas_amount
        self.gas_unit_price = gas_unit_price
        self.expiration_timestamps_secs = expiration_timestamps_secs
        self.chain_id = chain_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RawTransaction):
            return NotImplemented
        return (
            self.sender == other.sender
            and self.sequence_number == other.sequence_number
            and self.payload == other.payload
            and self.max_gas_amount == other.max_gas_amount
            and self.gas_unit_price == other.gas_unit_price
            and self.expiration_timestamps_secs == other.expiration_timestamps_secs
            and self.chain_id == other.chain_id
        )

    def __str__(self):
        return f"""RawTransaction:
    sender: {self.sender}
    sequence_number: {self.sequence_number}
    payload: {self.payload}
    max_gas_amount: {self.max_gas_amount}
    gas_unit_price: {self.gas_unit_price}
    expiration_timestamps_secs: {self.expiration_timestamps_secs}
    chain_id: {self.chain_id}
"""

    def prehash(self) -> bytes:
        return RAW_TRANSACTION_SALT

    def replay_protection_nonce(self) -> Optional[int]:
        return self.payload.replay_protection_nonce()

    def is_orderless(self) -> bool:
        return self.replay_protection_nonce() is not None

    @staticmethod
    def deserialize(deserializer: Deserializer) -> RawTransaction:
        return RawTransaction(
            AccountAddress.deserialize(deserializer),
            deserializer.u64(),
            TransactionPayload.deserialize(deserializer),
            deserializer.u64(),
            deserializer.u64(),
            deserializer.u64(),
            deserializer.u8(),
        )

    def serialize(self, serializer: Serializer):
        self.sender.serialize(serializer)
        serializer.u64(self.sequence_number)
        self.payload.serialize(serializer)
        serializer.u64(self.max_gas_amount)
        serializer.u64(self.gas_unit_price)
        serializer.u64(self.expiration_timestamps_secs)
        serializer.u8(self.chain_id)


class MultiAgentRawTransaction(RawTransactionWithData):
    VARIANT: int = 0

    secondary_signers: List[AccountAddress]

    def __init__(
        self, raw_transaction: RawTransaction, secondary_signers: List[AccountAddress]
    ):
        self.raw_transaction = raw_transaction
        self.secondary_signers = secondary_signers

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiAgentRawTransaction):
            return NotImplemented
        return (
            self.raw_transaction == other.raw_transaction
            and self.secondary_signers == other.secondary_signers
        )

    def serialize(self, serializer: Serializer):
        serializer.u8(self.VARIANT)
        serializer.struct(self.raw_transaction)
        serializer.sequence(self.secondary_signers, Serializer.struct)


class FeePayerRawTransaction(RawTransactionWithData):
    """A transaction whose gas is paid by ``fee_payer``.

    While the fee payer is unknown it is encoded as ``0x0``.
    """

    VARIANT: int = 1

    secondary_signers: List[AccountAddress]
    fee_payer: Optional[AccountAddress]

    def __init__(
        self,
        raw_transaction: RawTransaction,
        secondary_signers: List[AccountAddress],
        fee_payer: Optional[AccountAddress],
    ):
        self.raw_transaction = raw_transaction
        self.secondary_signers = secondary_signers
        self.fee_payer = fee_payer

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeePayerRawTransaction):
            return NotImplemented
        return (
            self.raw_transaction == other.raw_transaction
            and self.secondary_signers == other.secondary_signers
            and self.fee_payer_address() == other.fee_payer_address()
        )

    def fee_payer_address(self) -> AccountAddress:
        if self.fee_payer is None:
            return AccountAddress.from_str("0x0")
        return self.fee_payer

    def serialize(self, serializer: Serializer):
        serializer.u8(self.VARIANT)
        serializer.struct(self.raw_transaction)
        serializer.sequence(self.secondary_signers, Serializer.struct)
        serializer.struct(self.fee_payer_address())


class TransactionPayload:
    SCRIPT: int = 0
    MODULE_BUNDLE: int = 1
    ENTRY_FUNCTION: int = 2
    MULTISIG: int = 3
    PAYLOAD: int = 4

    variant: int
    value: Any

    def __init__(self, payload: Any):
        if isinstance(payload, Script):
            self.variant = TransactionPayload.SCRIPT
        elif isinstance(payload, ModuleBundle):
            self.variant = TransactionPayload.MODULE_BUNDLE
        elif isinstance(payload, EntryFunction):
            self.variant = TransactionPayload.ENTRY_FUNCTION
        elif isinstance(payload, Multisig):
            self.variant = TransactionPayload.MULTISIG
        elif isinstance(payload, TransactionInnerPayload):
            self.variant = TransactionPayload.PAYLOAD
        else:
            raise TypeError(f"Invalid payload type: {type(payload).__name__}")
        self.value = payload

    @staticmethod
    def orderless(
        payload: Union[Script, EntryFunction, None],
        nonce: int,
        multisig_address: Optional[AccountAddress] = None,
    ) -> TransactionPayload:
        """Wrap an executable into the versioned payload with a replay nonce."""
        return TransactionPayload(
            TransactionInnerPayload(
                TransactionExecutable(payload),
                TransactionExtraConfig(multisig_address, nonce),
            )
        )

    def replay_protection_nonce(self) -> Optional[int]:
        if self.variant == TransactionPayload.PAYLOAD:
            return self.value.extra_config.replay_protection_nonce
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionPayload):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self) -> str:
        return self.value.__str__()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionPayload:
        variant = deserializer.uleb128()

        if variant == TransactionPayload.SCRIPT:
            payload: Any = Script.deserialize(deserializer)
        elif variant == TransactionPayload.MODULE_BUNDLE:
            payload = ModuleBundle.deserialize(deserializer)
        elif variant == TransactionPayload.ENTRY_FUNCTION:
            payload = EntryFunction.deserialize(deserializer)
        elif variant == TransactionPayload.MULTISIG:
            payload = Multisig.deserialize(deserializer)
        elif variant == TransactionPayload.PAYLOAD:
            payload = TransactionInnerPayload.deserialize(deserializer)
        else:
            raise CodecError(f"Invalid transaction payload variant: {variant}")

        return TransactionPayload(payload)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        self.value.serialize(serializer)


class ModuleBundle:
    """Deprecated module-publishing payload; publish through ``0x1::code`` instead."""

    def __init__(self):
        raise UnsupportedError("ModuleBundle payloads are deprecated")

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ModuleBundle:
        raise UnsupportedError("ModuleBundle payloads are deprecated")

    def serialize(self, serializer: Serializer):
        raise UnsupportedError("ModuleBundle payloads are deprecated")


class Script:
    code: bytes
    ty_args: List[TypeTag]
    args: List[ScriptArgument]

    def __init__(self, code: bytes, ty_args: List[TypeTag], args: List[ScriptArgument]):
        self.code = code
        self.ty_args = ty_args
        self.args = args

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Script:
        code = deserializer.to_bytes()
        ty_args = deserializer.sequence(TypeTag.deserialize)
        args = deserializer.sequence(ScriptArgument.deserialize)
        return Script(code, ty_args, args)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.code)
        serializer.sequence(self.ty_args, Serializer.struct)
        serializer.sequence(self.args, Serializer.struct)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Script):
            return NotImplemented
        return (
            self.code == other.code
            and self.ty_args == other.ty_args
            and self.args == other.args
        )

    def __str__(self):
        return f"<{self.ty_args}>({self.args})"


class ScriptArgument:
    """A tagged script argument.

    ``SERIALIZED`` carries an already BCS-encoded value of any other type.
    """

    U8: int = 0
    U64: int = 1
    U128: int = 2
    ADDRESS: int = 3
    U8_VECTOR: int = 4
    BOOL: int = 5
    U16: int = 6
    U32: int = 7
    U256: int = 8
    SERIALIZED: int = 9

    _ENCODERS: Dict[int, Callable[[Serializer, Any], None]] = {
        U8: Serializer.u8,
        U64: Serializer.u64,
        U128: Serializer.u128,
        ADDRESS: Serializer.struct,
        U8_VECTOR: Serializer.to_bytes,
        BOOL: Serializer.bool,
        U16: Serializer.u16,
        U32: Serializer.u32,
        U256: Serializer.u256,
        SERIALIZED: Serializer.to_bytes,
    }

    _DECODERS: Dict[int, Callable[[Deserializer], Any]] = {
        U8: Deserializer.u8,
        U64: Deserializer.u64,
        U128: Deserializer.u128,
        ADDRESS: AccountAddress.deserialize,
        U8_VECTOR: Deserializer.to_bytes,
        BOOL: Deserializer.bool,
        U16: Deserializer.u16,
        U32: Deserializer.u32,
        U256: Deserializer.u256,
        SERIALIZED: Deserializer.to_bytes,
    }

    variant: int
    value: Any

    def __init__(self, variant: int, value: Any):
        if variant not in ScriptArgument._ENCODERS:
            raise CodecError(f"Invalid ScriptArgument variant {variant}")

        self.variant = variant
        self.value = value

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ScriptArgument:
        variant = deserializer.u8()
        decoder = ScriptArgument._DECODERS.get(variant)
        if decoder is None:
            raise CodecError(f"Invalid ScriptArgument variant {variant}")
        return ScriptArgument(variant, decoder(deserializer))

    def serialize(self, serializer: Serializer):
        serializer.u8(self.variant)
        ScriptArgument._ENCODERS[self.variant](serializer, self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScriptArgument):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self):
        return f"[{self.variant}] {self.value}"


class EntryFunction:
    module: ModuleId
    function: str
    ty_args: List[TypeTag]
    args: List[bytes]

    def __init__(
        self, module: ModuleId, function: str, ty_args: List[TypeTag], args: List[bytes]
    ):
        self.module = module
        self.function = function
        self.ty_args = ty_args
        self.args = args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntryFunction):
            return NotImplemented

        return (
            self.module == other.module
            and self.function == other.function
            and self.ty_args == other.ty_args
            and self.args == other.args
        )

    def __str__(self):
        return f"{self.module}::{self.function}::<{self.ty_args}>({self.args})"

    @staticmethod
    def natural(
        module: str,
        function: str,
        ty_args: List[TypeTag],
        args: List[TransactionArgument],
    ) -> EntryFunction:
        """Build from a ``"0x1::module"`` string and self-encoding arguments."""
        return EntryFunction(
            ModuleId.from_str(module), function, ty_args, [arg.encode() for arg in args]
        )

    @staticmethod
    def from_abi(
        module: str,
        function: str,
        ty_args: Sequence[Union[TypeTag, str]],
        args: Sequence[Any],
        abi: Dict[str, Any],
    ) -> EntryFunction:
        """Build from plain Python values using the function's ABI.

        Args:
            module: ``"<address>::<module>"``.
            function: Function name.
            ty_args: Type arguments as tags or type strings.
            args: One plain value per non-signer parameter.
            abi: Either a module ABI as returned by the node (with
                ``exposed_functions``) or a single function's ABI (with ``params``).

        Raises:
            ParseError: If the function is missing from the ABI or the number
                of type arguments or arguments does not match it.
            RangeError: If a value does not fit its parameter type.
        """
        if "exposed_functions" in abi:
            matches = [f for f in abi["exposed_functions"] if f["name"] == function]
            if not matches:
                raise ParseError(f"Function {function} not found in module ABI")
            abi = matches[0]

        generic_params = abi.get("generic_type_params", [])
        if len(generic_params) != len(ty_args):
            raise ParseError(
                f"{module}::{function} expects {len(generic_params)} type arguments, "
                f"got {len(ty_args)}"
            )

        type_params = [
            tag if isinstance(tag, TypeTag) else parse_type_tag(tag, False)
            for tag in ty_args
        ]
        params = [parse_type_tag(p) for p in abi["params"]]
        while params and params[0].is_signer():
            params = params[1:]

        if len(params) != len(args):
            raise ParseError(
                f"{module}::{function} expects {len(params)} arguments, got {len(args)}"
            )

        encoded = [
            marshal_argument(param, value, type_params)
            for param, value in zip(params, args)
        ]
        return EntryFunction(ModuleId.from_str(module), function, type_params, encoded)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> EntryFunction:
        module = ModuleId.deserialize(deserializer)
        function = deserializer.str()
        ty_args = deserializer.sequence(TypeTag.deserialize)
        args = deserializer.sequence(Deserializer.to_bytes)
        return EntryFunction(module, function, ty_args, args)

    def serialize(self, serializer: Serializer):
        self.module.serialize(serializer)
        serializer.str(self.function)
        serializer.sequence(self.ty_args, Serializer.struct)
        serializer.sequence(self.args, Serializer.to_bytes)


class Multisig:
    """Execute (or, with a payload, propose-and-execute) a multisig account transaction."""

    multisig_address: AccountAddress
    transaction_payload: Optional[MultisigTransactionPayload]

    def __init__(
        self,
        multisig_address: AccountAddress,
        transaction_payload: Optional[MultisigTransactionPayload] = None,
    ):
        self.multisig_address = multisig_address
        self.transaction_payload = transaction_payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Multisig):
            return NotImplemented
        return (
            self.multisig_address == other.multisig_address
            and self.transaction_payload == other.transaction_payload
        )

    def __str__(self) -> str:
        return f"Multisig({self.multisig_address}, {self.transaction_payload})"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Multisig:
        multisig_address = AccountAddress.deserialize(deserializer)
        transaction_payload = deserializer.option(MultisigTransactionPayload.deserialize)
        return Multisig(multisig_address, transaction_payload)

    def serialize(self, serializer: Serializer):
        self.multisig_address.serialize(serializer)
        serializer.option(self.transaction_payload, Serializer.struct)


class MultisigTransactionPayload(Serializable):
    """Only the ``EntryFunction`` variant exists on chain."""

    ENTRY_FUNCTION: int = 0

    payload_variant: int
    transaction_payload: EntryFunction

    def __init__(self, transaction_payload: Any):
        if not isinstance(transaction_payload, EntryFunction):
            raise TypeError("Multisig transactions only carry entry functions")
        self.payload_variant = self.ENTRY_FUNCTION
        self.transaction_payload = transaction_payload

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultisigTransactionPayload):
            return NotImplemented
        return self.transaction_payload == other.transaction_payload

    def __str__(self) -> str:
        return f"{self.transaction_payload}"

    def hash(self) -> bytes:
        """SHA3-256 of the payload, as stored by ``create_transaction_with_hash``."""
        ser = Serializer()
        self.serialize(ser)
        return hashlib.sha3_256(ser.output()).digest()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultisigTransactionPayload:
        payload_variant = deserializer.uleb128()
        if payload_variant != MultisigTransactionPayload.ENTRY_FUNCTION:
            raise CodecError(f"Invalid multisig payload variant: {payload_variant}")
        return MultisigTransactionPayload(EntryFunction.deserialize(deserializer))

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.payload_variant)
        self.transaction_payload.serialize(serializer)


class TransactionExecutable:
    SCRIPT: int = 0
    ENTRY_FUNCTION: int = 1
    EMPTY: int = 2

    variant: int
    value: Union[Script, EntryFunction, None]

    def __init__(self, value: Union[Script, EntryFunction, None]):
        if isinstance(value, Script):
            self.variant = TransactionExecutable.SCRIPT
        elif isinstance(value, EntryFunction):
            self.variant = TransactionExecutable.ENTRY_FUNCTION
        elif value is None:
            self.variant = TransactionExecutable.EMPTY
        else:
            raise TypeError(f"Invalid executable type: {type(value).__name__}")
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionExecutable):
            return NotImplemented
        return self.variant == other.variant and self.value == other.value

    def __str__(self) -> str:
        return "Empty" if self.value is None else f"{self.value}"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionExecutable:
        variant = deserializer.uleb128()
        if variant == TransactionExecutable.SCRIPT:
            return TransactionExecutable(Script.deserialize(deserializer))
        if variant == TransactionExecutable.ENTRY_FUNCTION:
            return TransactionExecutable(EntryFunction.deserialize(deserializer))
        if variant == TransactionExecutable.EMPTY:
            return TransactionExecutable(None)
        raise CodecError(f"Invalid transaction executable variant: {variant}")

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        if self.value is not None:
            self.value.serialize(serializer)


class TransactionExtraConfig:
    V1: int = 0

    multisig_address: Optional[AccountAddress]
    replay_protection_nonce: Optional[int]

    def __init__(
        self,
        multisig_address: Optional[AccountAddress] = None,
        replay_protection_nonce: Optional[int] = None,
    ):
        self.multisig_address = multisig_address
        self.replay_protection_nonce = replay_protection_nonce

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionExtraConfig):
            return NotImplemented
        return (
            self.multisig_address == other.multisig_address
            and self.replay_protection_nonce == other.replay_protection_nonce
        )

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionExtraConfig:
        variant = deserializer.uleb128()
        if variant != TransactionExtraConfig.V1:
            raise CodecError(f"Invalid transaction extra config variant: {variant}")
        multisig_address = deserializer.option(AccountAddress.deserialize)
        nonce = deserializer.option(Deserializer.u64)
        return TransactionExtraConfig(multisig_address, nonce)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.V1)
        serializer.option(self.multisig_address, Serializer.struct)
        serializer.option(self.replay_protection_nonce, Serializer.u64)


class TransactionInnerPayload:
    V1: int = 0

    executable: TransactionExecutable
    extra_config: TransactionExtraConfig

    def __init__(
        self, executable: TransactionExecutable, extra_config: TransactionExtraConfig
    ):
        self.executable = executable
        self.extra_config = extra_config

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionInnerPayload):
            return NotImplemented
        return (
            self.executable == other.executable
            and self.extra_config == other.extra_config
        )

    def __str__(self) -> str:
        return (
            f"{self.executable} (nonce: {self.extra_config.replay_protection_nonce})"
        )

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TransactionInnerPayload:
        variant = deserializer.uleb128()
        if variant != TransactionInnerPayload.V1:
            raise CodecError(f"Invalid transaction inner payload variant: {variant}")
        executable = TransactionExecutable.deserialize(deserializer)
        extra_config = TransactionExtraConfig.deserialize(deserializer)
        return TransactionInnerPayload(executable, extra_config)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.V1)
        self.executable.serialize(serializer)
        self.extra_config.serialize(serializer)


class ModuleId:
    address: AccountAddress
    name: str

    def __init__(self, address: AccountAddress, name: str):
        self.address = address
        self.name = name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModuleId):
            return NotImplemented
        return self.address == other.address and self.name == other.name

    def __str__(self) -> str:
        return f"{self.address}::{self.name}"

    @staticmethod
    def from_str(module_id: str) -> ModuleId:
        split = module_id.split("::")
        if len(split) != 2 or not split[1]:
            raise ParseError(f"Invalid module id: {module_id!r}")
        return ModuleId(AccountAddress.from_str_relaxed(split[0]), split[1])

    @staticmethod
    def deserialize(deserializer: Deserializer) -> ModuleId:
        addr = AccountAddress.deserialize(deserializer)
        name = deserializer.str()
        return ModuleId(addr, name)

    def serialize(self, serializer: Serializer):
        self.address.serialize(serializer)
        serializer.str(self.name)


class TransactionArgument:
    """A value paired with the BCS encoder for its Move type."""

    value: Any
    encoder: Callable[[Serializer, Any], None]

    def __init__(
        self,
        value: Any,
        encoder: Callable[[Serializer, Any], None],
    ):
        self.value = value
        self.encoder = encoder

    def encode(self) -> bytes:
        ser = Serializer()
        self.encoder(ser, self.value)
        return ser.output()


class SignedTransaction:
    transaction: RawTransaction
    authenticator: Authenticator

    def __init__(
        self,
        transaction: RawTransaction,
        authenticator: Union[AccountAuthenticator, Authenticator],
    ):
        self.transaction = transaction
        if isinstance(authenticator, AccountAuthenticator):
            authenticator = Authenticator.from_account_authenticator(authenticator)
        self.authenticator = authenticator

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignedTransaction):
            return NotImplemented
        return (
            self.transaction == other.transaction
            and self.authenticator == other.authenticator
        )

    def __str__(self) -> str:
        return f"Transaction: {self.transaction}Authenticator: {self.authenticator}"

    def bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def hash(self) -> str:
        """The transaction hash as ``0x`` plus 64 hex digits."""
        hasher = hashlib.sha3_256()
        hasher.update(TRANSACTION_SALT)
        # User transactions are variant 0 of the on-chain Transaction enum.
        hasher.update(b"\x00")
        hasher.update(self.bytes())
        return f"0x{hasher.hexdigest()}"

    def verify(self) -> bool:
        """Check every signature against the transcript its signers signed."""
        auth = self.authenticator.authenticator
        if isinstance(auth, MultiAgentAuthenticator):
            transaction: RawTransactionInternal = MultiAgentRawTransaction(
                self.transaction, auth.secondary_addresses()
            )
        elif isinstance(auth, FeePayerAuthenticator):
            transaction = FeePayerRawTransaction(
                self.transaction,
                auth.secondary_addresses(),
                auth.fee_payer_address(),
            )
        else:
            transaction = self.transaction
        return self.authenticator.verify(transaction.keyed())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SignedTransaction:
        transaction = RawTransaction.deserialize(deserializer)
        authenticator = Authenticator.deserialize(deserializer)
        return SignedTransaction(transaction, authenticator)

    def serialize(self, serializer: Serializer):
        self.transaction.serialize(serializer)
        self.authenticator.serialize(serializer)


class Test(unittest.TestCase):
    SENDER_KEY = "9bf49a6a0755f953811fce125f2683d50429c3bb49e074147e0089a52eae155f"
    RECEIVER_KEY = "0564f879d27ae3c02ce82834acfa8c793a629f2ca0de6919610be82f411326be"

    def _coin_transfer(self, sender: AccountAddress, receiver: AccountAddress) -> RawTransaction:
        payload = EntryFunction.natural(
            "0x1::coin",
            "transfer",
            [TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))],
            [
                TransactionArgument(receiver, Serializer.struct),
                TransactionArgument(5000, Serializer.u64),
            ],
        )
        return RawTransaction(sender, 11, TransactionPayload(payload), 2000, 1, 1234567890, 4)

    def test_entry_function_with_corpus(self):
        sender_private_key = ed25519.PrivateKey.from_str(self.SENDER_KEY, False)
        receiver_private_key = ed25519.PrivateKey.from_str(self.RECEIVER_KEY, False)
        sender = AccountAddress.from_key(sender_private_key.public_key())
        receiver = AccountAddress.from_key(receiver_private_key.public_key())

        raw_transaction_generated = self._coin_transfer(sender, receiver)
        signed_transaction_generated = SignedTransaction(
            raw_transaction_generated, raw_transaction_generated.sign(sender_private_key)
        )
        self.assertTrue(signed_transaction_generated.verify())

        raw_transaction_input = "7deeccb1080854f499ec8b4c1b213b82c5e34b925cf6875fec02d4b77adbd2d60b0000000000000002000000000000000000000000000000000000000000000000000000000000000104636f696e087472616e73666572010700000000000000000000000000000000000000000000000000000000000000010a6170746f735f636f696e094170746f73436f696e0002202d133ddd281bb6205558357cc6ac75661817e9aaeac3afebc32842759cbf7fa9088813000000000000d0070000000000000100000000000000d20296490000000004"
        signed_transaction_input = "7deeccb1080854f499ec8b4c1b213b82c5e34b925cf6875fec02d4b77adbd2d60b0000000000000002000000000000000000000000000000000000000000000000000000000000000104636f696e087472616e73666572010700000000000000000000000000000000000000000000000000000000000000010a6170746f735f636f696e094170746f73436f696e0002202d133ddd281bb6205558357cc6ac75661817e9aaeac3afebc32842759cbf7fa9088813000000000000d0070000000000000100000000000000d202964900000000040020b9c6ee1630ef3e711144a648db06bbb2284f7274cfbee53ffcee503cc1a4920040f25b74ec60a38a1ed780fd2bef6ddb6eb4356e3ab39276c9176cdf0fcae2ab37d79b626abb43d926e91595b66503a4a3c90acbae36a28d405e308f3537af720b"

        self.verify_transactions(
            raw_transaction_input,
            raw_transaction_generated,
            signed_transaction_input,
            signed_transaction_generated,
        )

    def test_entry_function_multi_agent_with_corpus(self):
        sender_private_key = ed25519.PrivateKey.from_str(self.SENDER_KEY, False)
        receiver_private_key = ed25519.PrivateKey.from_str(self.RECEIVER_KEY, False)
        sender = AccountAddress.from_key(sender_private_key.public_key())
        receiver = AccountAddress.from_key(receiver_private_key.public_key())

        payload = EntryFunction.natural(
            "0x3::token",
            "direct_transfer_script",
            [],
            [
                TransactionArgument(receiver, Serializer.struct),
                TransactionArgument("collection_name", Serializer.str),
                TransactionArgument("token_name", Serializer.str),
                TransactionArgument(1, Serializer.u64),
            ],
        )
        raw_transaction_generated = MultiAgentRawTransaction(
            RawTransaction(sender, 11, TransactionPayload(payload), 2000, 1, 1234567890, 4),
            [receiver],
        )

        authenticator = Authenticator(
            MultiAgentAuthenticator(
                raw_transaction_generated.sign(sender_private_key),
                [(receiver, raw_transaction_generated.sign(receiver_private_key))],
            )
        )
        signed_transaction_generated = SignedTransaction(
            raw_transaction_generated.inner(), authenticator
        )
        self.assertTrue(signed_transaction_generated.verify())

        raw_transaction_input = "7deeccb1080854f499ec8b4c1b213b82c5e34b925cf6875fec02d4b77adbd2d60b0000000000000002000000000000000000000000000000000000000000000000000000000000000305746f6b656e166469726563745f7472616e736665725f7363726970740004202d133ddd281bb6205558357cc6ac75661817e9aaeac3afebc32842759cbf7fa9100f636f6c6c656374696f6e5f6e616d650b0a746f6b656e5f6e616d65080100000000000000d0070000000000000100000000000000d20296490000000004"
        signed_transaction_input = "7deeccb1080854f499ec8b4c1b213b82c5e34b925cf6875fec02d4b77adbd2d60b0000000000000002000000000000000000000000000000000000000000000000000000000000000305746f6b656e166469726563745f7472616e736665725f7363726970740004202d133ddd281bb6205558357cc6ac75661817e9aaeac3afebc32842759cbf7fa9100f636f6c6c656374696f6e5f6e616d650b0a746f6b656e5f6e616d65080100000000000000d0070000000000000100000000000000d20296490000000004020020b9c6ee1630ef3e711144a648db06bbb2284f7274cfbee53ffcee503cc1a4920040343e7b10aa323c480391a5d7cd2d0cf708d51529b96b5a2be08cbb365e4f11dcc2cf0655766cf70d40853b9c395b62dad7a9f58ed998803d8bf1901ba7a7a401012d133ddd281bb6205558357cc6ac75661817e9aaeac3afebc32842759cbf7fa9010020aef3f4a4b8eca1dfc343361bf8e436bd42de9259c04b8314eb8e2054dd6e82ab408a7f06e404ae8d9535b0cbbeafb7c9e34e95fe1425e4529758150a4f7ce7a683354148ad5c313ec36549e3fb29e669d90010f97467c9074ff0aec3ed87f76608"

        self.verify_transactions(
            raw_transaction_input,
            raw_transaction_generated.inner(),
            signed_transaction_input,
            signed_transaction_generated,
        )

    def verify_transactions(
        self,
        raw_transaction_input: str,
        raw_transaction_generated: RawTransaction,
        signed_transaction_input: str,
        signed_transaction_generated: SignedTransaction,
    ):
        self.assertEqual(raw_transaction_input, raw_transaction_generated.to_bytes().hex())
        raw_transaction = RawTransaction.from_bytes(bytes.fromhex(raw_transaction_input))
        self.assertEqual(raw_transaction_generated, raw_transaction)

        self.assertEqual(signed_transaction_input, signed_transaction_generated.bytes().hex())
        signed_transaction = SignedTransaction.deserialize(
            Deserializer(bytes.fromhex(signed_transaction_input))
        )
        self.assertEqual(signed_transaction.transaction, raw_transaction)
        self.assertTrue(signed_transaction.verify())

    def test_fee_payer(self):
        sender_key = ed25519.PrivateKey.from_str(self.SENDER_KEY, False)
        payer_key = secp256k1_ecdsa.PrivateKey.random()
        sender = AccountAddress.from_key(sender_key.public_key())
        payer = AccountAddress.from_key(payer_key.public_key())

        raw = self._coin_transfer(sender, payer)
        fee_payer_txn = FeePayerRawTransaction(raw, [], payer)
        authenticator = Authenticator(
            FeePayerAuthenticator(
                fee_payer_txn.sign(sender_key), [], (payer, fee_payer_txn.sign(payer_key))
            )
        )
        signed = SignedTransaction(raw, authenticator)
        self.assertTrue(signed.verify())
        self.assertEqual(SignedTransaction.deserialize(Deserializer(signed.bytes())), signed)

        # Signing over the unknown fee payer placeholder is a different transcript.
        placeholder = FeePayerRawTransaction(raw, [], None)
        self.assertNotEqual(placeholder.keyed(), fee_payer_txn.keyed())
        self.assertTrue(placeholder.keyed().startswith(RAW_TRANSACTION_WITH_DATA_SALT))

    def test_hash(self):
        sender_key = ed25519.PrivateKey.from_str(self.SENDER_KEY, False)
        sender = AccountAddress.from_key(sender_key.public_key())
        raw = self._coin_transfer(sender, sender)
        signed = SignedTransaction(raw, raw.sign(sender_key))

        expected = hashlib.sha3_256(
            hashlib.sha3_256(b"APTOS::Transaction").digest() + b"\x00" + signed.bytes()
        ).hexdigest()
        self.assertEqual(signed.hash(), f"0x{expected}")
        self.assertEqual(len(signed.hash()), 66)
        self.assertEqual(signed.hash(), SignedTransaction(raw, raw.sign(sender_key)).hash())

    def test_orderless_transaction(self):
        sender_key = ed25519.PrivateKey.random()
        sender = AccountAddress.from_key(sender_key.public_key())
        entry_function = EntryFunction.natural(
            "0x1::aptos_account",
            "transfer",
            [],
            [
                TransactionArgument(sender, Serializer.struct),
                TransactionArgument(1, Serializer.u64),
            ],
        )
        orderless = RawTransaction(
            sender,
            ORDERLESS_SEQUENCE_NUMBER,
            TransactionPayload.orderless(entry_function, 12345),
            2000,
            100,
            1234567890,
            4,
        )
        ordered = RawTransaction(
            sender, 0, TransactionPayload(entry_function), 2000, 100, 1234567890, 4
        )

        self.assertTrue(orderless.is_orderless())
        self.assertEqual(orderless.replay_protection_nonce(), 12345)
        self.assertFalse(ordered.is_orderless())

        encoded = orderless.to_bytes()
        self.assertEqual(encoded[32:40], b"\xff" * 8)
        # Payload variant 4, inner V1, entry-function executable.
        self.assertEqual(encoded[40:43], b"\x04\x00\x01")
        self.assertNotEqual(encoded, ordered.to_bytes())
        self.assertEqual(RawTransaction.from_bytes(encoded), orderless)

        signed = SignedTransaction(orderless, orderless.sign(sender_key))
        self.assertTrue(signed.verify())
        self.assertNotEqual(
            signed.hash(), SignedTransaction(ordered, ordered.sign(sender_key)).hash()
        )

    def test_multisig_payload(self):
        entry_function = EntryFunction.natural(
            "0x1::aptos_account",
            "transfer",
            [],
            [
                TransactionArgument(AccountAddress.from_str("0x1"), Serializer.struct),
                TransactionArgument(7, Serializer.u64),
            ],
        )
        multisig_address = AccountAddress.from_str_relaxed("0xabc")
        payload = TransactionPayload(
            Multisig(multisig_address, MultisigTransactionPayload(entry_function))
        )
        encoded = _encode(payload)
        self.assertEqual(encoded[0], TransactionPayload.MULTISIG)
        self.assertEqual(encoded[33:35], b"\x01\x00")
        self.assertEqual(TransactionPayload.deserialize(Deserializer(encoded)), payload)

        bare = TransactionPayload(Multisig(multisig_address))
        self.assertEqual(_encode(bare)[33:], b"\x00")
        self.assertEqual(
            len(MultisigTransactionPayload(entry_function).hash()), 32
        )

    def test_script_arguments(self):
        script = Script(
            b"\xa1\x1c\xeb\x0b",
            [],
            [
                ScriptArgument(ScriptArgument.U8, 7),
                ScriptArgument(ScriptArgument.U16, 300),
                ScriptArgument(ScriptArgument.ADDRESS, AccountAddress.from_str("0x1")),
                ScriptArgument(ScriptArgument.SERIALIZED, b"\x01\x02"),
            ],
        )
        payload = TransactionPayload(script)
        decoded = TransactionPayload.deserialize(Deserializer(_encode(payload)))
        self.assertEqual(decoded, payload)
        self.assertTrue(_encode(payload).endswith(b"\x09\x02\x01\x02"))
        with self.assertRaises(CodecError):
            ScriptArgument(10, 0)

    def test_module_bundle_unsupported(self):
        with self.assertRaises(UnsupportedError):
            ModuleBundle()
        with self.assertRaises(UnsupportedError):
            TransactionPayload.deserialize(Deserializer(b"\x01"))

    def test_sign_simulated(self):
        ed_key = ed25519.PrivateKey.random().public_key()
        k1_key = secp256k1_ecdsa.PrivateKey.random().public_key()
        raw = self._coin_transfer(AccountAddress.from_key(ed_key), AccountAddress.from_str("0x1"))

        simulated = raw.sign_simulated(ed_key)
        self.assertEqual(simulated.variant, AccountAuthenticator.ED25519)
        self.assertEqual(simulated.authenticator.signature, ed25519.Signature.empty())
        self.assertFalse(simulated.verify(raw.keyed()))

        simulated = raw.sign_simulated(k1_key)
        self.assertEqual(simulated.variant, AccountAuthenticator.SINGLE_KEY)

        multi_key = asymmetric_crypto_wrapper.MultiPublicKey([ed_key, k1_key], 2)
        simulated = raw.sign_simulated(multi_key)
        self.assertEqual(simulated.variant, AccountAuthenticator.MULTI_KEY)
        self.assertEqual(len(simulated.authenticator.signature.signatures), 2)

    def test_entry_function_from_abi(self):
        abi = {
            "name": "aptos_account",
            "exposed_functions": [
                {
                    "name": "transfer_coins",
                    "visibility": "public",
                    "is_entry": True,
                    "generic_type_params": [{"constraints": []}],
                    "params": ["&signer", "address", "u64"],
                    "return": [],
                }
            ],
        }
        receiver = AccountAddress.from_str_relaxed("0xbeef")
        built = EntryFunction.from_abi(
            "0x1::aptos_account",
            "transfer_coins",
            ["0x1::aptos_coin::AptosCoin"],
            ["0xbeef", "5000"],
            abi,
        )
        expected = EntryFunction.natural(
            "0x1::aptos_account",
            "transfer_coins",
            [TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))],
            [
                TransactionArgument(receiver, Serializer.struct),
                TransactionArgument(5000, Serializer.u64),
            ],
        )
        self.assertEqual(built, expected)

        with self.assertRaises(ParseError):
            EntryFunction.from_abi(
                "0x1::aptos_account", "transfer_coins", ["0x1::aptos_coin::AptosCoin"], ["0x1"], abi
            )
        with self.assertRaises(ParseError):
            EntryFunction.from_abi("0x1::aptos_account", "transfer_coins", [], ["0x1", 1], abi)
        with self.assertRaises(ParseError):
            EntryFunction.from_abi("0x1::aptos_account", "missing", [], [], abi)

    def test_single_key_sender(self):
        sender_key = secp256k1_ecdsa.PrivateKey.random()
        sender = AccountAddress.from_key(sender_key.public_key())
        raw = self._coin_transfer(sender, AccountAddress.from_str("0x1"))
        signed = SignedTransaction(raw, raw.sign(sender_key))
        self.assertEqual(signed.authenticator.variant, Authenticator.SINGLE_SENDER)
        self.assertTrue(signed.verify())


def _encode(value: Any) -> bytes:
    ser = Serializer()
    value.serialize(ser)
    return ser.output()


if __name__ == "__main__":
    unittest.main()
