# Copyright (C) 2025 The bsv-wallet-utils developers
#
# This file is part of bsv-wallet-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of bsv-wallet-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

"""Declarative transaction building on top of a wallet

A TransactionBuilder goes through four phases, each run once and in order:

    CONFIGURE  add_* calls collect input and output specs
    DRAFT      locking scripts and unlocking templates are created; outputs
               without a key get a fresh one-time derivation
    SIGN       a draft transaction is assembled, the fee and change are
               computed and every input is signed
    PACKAGE    the createAction payload is produced and, unless previewing,
               submitted to the wallet

Every add_* call returns a handle (index + builder) to configure the item
further and to keep chaining.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from bsvutils.beef import Beef
from bsvutils.constants import (
    BOOLEAN_ACTION_OPTIONS,
    DEFAULT_CHANGE_DESCRIPTION,
    DEFAULT_INPUT_DESCRIPTION,
    DEFAULT_OUTPUT_DESCRIPTION,
    DEFAULT_TX_DESCRIPTION,
    SIGN_OUTPUTS,
    STRING_LIST_ACTION_OPTIONS,
    TRUST_SELF_VALUES,
)
from bsvutils.errors import (
    BsvUtilsError,
    BuilderStateError,
    ConfigurationError,
    InvalidTypeError,
    TransactionBuildError,
    UnlockingScriptError,
)
from bsvutils.inscriptions import Inscription
from bsvutils.keys import PublicKey, to_public_key
from bsvutils.opreturn import encode_op_return, op_return_field_to_bytes
from bsvutils.script import Script
from bsvutils.setup import get_sat_per_kb
from bsvutils.templates import WalletOrdP2PKH, WalletP2PKH
from bsvutils.transactions import Transaction, TxInput, TxOutput
from bsvutils.utils import is_hex
from bsvutils.wallet import (
    DEFAULT_P2PKH_PARAMS,
    DerivationParams,
    DerivationRecord,
    WalletInterface,
    get_derivation,
    split_key_id,
    to_derivation_params,
)

logger = logging.getLogger(__name__)


class BuilderPhase(enum.Enum):
    CONFIGURE = "configure"
    DRAFT = "draft"
    SIGN = "sign"
    PACKAGED = "packaged"
    SUBMITTED = "submitted"


#
# Input and output specs, one class per kind
#
@dataclass(kw_only=True)
class InputSpec:
    source_output_index: int
    source_transaction: Optional[Transaction] = None
    source_txid: Optional[str] = None
    source_satoshis: Optional[int] = None
    locking_script: Optional[Script] = None
    description: Optional[str] = None


@dataclass(kw_only=True)
class P2PKHInputSpec(InputSpec):
    wallet_params: Optional[DerivationParams] = None
    sign_outputs: str = "all"
    anyone_can_pay: bool = False


@dataclass(kw_only=True)
class OrdinalP2PKHInputSpec(P2PKHInputSpec):
    pass


@dataclass(kw_only=True)
class CustomInputSpec(InputSpec):
    unlocking_script_template: Any


@dataclass(kw_only=True)
class OutputSpec:
    description: Optional[str] = None
    op_return_fields: Optional[list] = None
    basket: Optional[str] = None
    custom_instructions: Optional[str] = None


@dataclass(kw_only=True)
class _KeyedOutputSpec(OutputSpec):
    # at most one of these; none means a one-time derived key
    public_key: Union[PublicKey, str, bytes, None] = None
    pubkeyhash: Union[bytes, str, None] = None
    wallet_params: Optional[DerivationParams] = None


@dataclass(kw_only=True)
class P2PKHOutputSpec(_KeyedOutputSpec):
    satoshis: int


@dataclass(kw_only=True)
class OrdinalP2PKHOutputSpec(_KeyedOutputSpec):
    satoshis: int
    inscription: Optional[Inscription] = None
    metadata: Optional[dict] = None


@dataclass(kw_only=True)
class CustomOutputSpec(OutputSpec):
    locking_script: Script
    satoshis: int


@dataclass(kw_only=True)
class ChangeOutputSpec(_KeyedOutputSpec):
    pass


#
# parameter checks shared by the add_* methods
#
def _check_satoshis(satoshis: Any, name: str = "satoshis") -> None:
    if isinstance(satoshis, bool) or not isinstance(satoshis, int) or satoshis < 0:
        raise ConfigurationError(f"{name} must be a non-negative integer")


def _check_description(description: Any) -> None:
    if description is not None and not isinstance(description, str):
        raise InvalidTypeError("description must be a string")


def _check_source(
    source_transaction: Optional[Transaction],
    source_txid: Optional[str],
    source_output_index: Any,
    source_satoshis: Optional[int],
    locking_script: Optional[Script],
    needs_locking_script: bool,
) -> None:
    if isinstance(source_output_index, bool) or not isinstance(source_output_index, int) or source_output_index < 0:
        raise ConfigurationError("source_output_index must be a non-negative integer")
    if (source_transaction is None) == (source_txid is None):
        raise ConfigurationError("Exactly one of source_transaction or source_txid is required")
    if source_transaction is not None:
        if not isinstance(source_transaction, Transaction):
            raise InvalidTypeError("source_transaction must be a Transaction")
        if source_output_index >= len(source_transaction.outputs):
            raise ConfigurationError(
                f"source_output_index {source_output_index} is out of range for "
                "the source transaction"
            )
    else:
        if not is_hex(source_txid) or len(source_txid) != 64:
            raise ConfigurationError("source_txid must be a 64 character hex string")
        if source_satoshis is None:
            raise ConfigurationError("source_satoshis is required when spending by source_txid")
        if needs_locking_script and locking_script is None:
            raise ConfigurationError("locking_script is required when spending by source_txid")
    if source_satoshis is not None:
        _check_satoshis(source_satoshis, "source_satoshis")
    if locking_script is not None and not isinstance(locking_script, Script):
        raise InvalidTypeError("locking_script must be a Script instance")


def _check_output_key(
    public_key: Any, pubkeyhash: Any, wallet_params: Any
) -> tuple[Optional[PublicKey], Optional[DerivationParams]]:
    """Parses the key source of an output; returns the public key and the
    wallet params, either or both None"""
    given = [v is not None for v in (public_key, pubkeyhash, wallet_params)]
    if sum(given) > 1:
        raise ConfigurationError("Give at most one of public_key, pubkeyhash or wallet_params")
    if pubkeyhash is not None:
        if not isinstance(pubkeyhash, (str, bytes)):
            raise InvalidTypeError("pubkeyhash must be a hex string or bytes")
        if len(pubkeyhash) != (40 if isinstance(pubkeyhash, str) else 20):
            raise ConfigurationError("pubkeyhash must be 20 bytes")
    if public_key is not None:
        if not isinstance(public_key, (PublicKey, str, bytes)):
            raise InvalidTypeError("public_key must be a PublicKey, hex string or bytes")
        public_key = to_public_key(public_key)
    if wallet_params is not None:
        wallet_params = to_derivation_params(wallet_params)
    return public_key, wallet_params


def validate_action_options(opts: Mapping[str, Any]) -> None:
    """Validates createAction options

    Raises
    ------
    InvalidTypeError
        if opts is not a mapping or an option has the wrong type
    ConfigurationError
        if trustSelf is not "known" or "all"
    """
    if not isinstance(opts, Mapping):
        raise InvalidTypeError("Options must be a mapping")

    for name in BOOLEAN_ACTION_OPTIONS:
        if name in opts and not isinstance(opts[name], bool):
            raise InvalidTypeError(f"{name} must be a boolean")

    if "trustSelf" in opts and opts["trustSelf"] not in TRUST_SELF_VALUES:
        raise ConfigurationError('trustSelf must be either "known" or "all"')

    for name in STRING_LIST_ACTION_OPTIONS:
        if name not in opts:
            continue
        values = opts[name]
        if not isinstance(values, (list, tuple)):
            raise InvalidTypeError(f"{name} must be a list")
        for i, value in enumerate(values):
            if not isinstance(value, str):
                raise InvalidTypeError(f"{name}[{i}] must be a string")


class _BuilderProxy:
    """Forwards the builder calls so that configuration can be chained
    from any handle"""

    def __init__(self, builder: "TransactionBuilder", index: int) -> None:
        self._builder = builder
        self.index = index

    @property
    def builder(self) -> "TransactionBuilder":
        return self._builder

    def add_p2pkh_input(self, *args, **kwargs) -> "InputHandle":
        return self._builder.add_p2pkh_input(*args, **kwargs)

    def add_ordinal_p2pkh_input(self, *args, **kwargs) -> "InputHandle":
        return self._builder.add_ordinal_p2pkh_input(*args, **kwargs)

    def add_custom_input(self, *args, **kwargs) -> "InputHandle":
        return self._builder.add_custom_input(*args, **kwargs)

    def add_p2pkh_output(self, *args, **kwargs) -> "OutputHandle":
        return self._builder.add_p2pkh_output(*args, **kwargs)

    def add_change_output(self, *args, **kwargs) -> "OutputHandle":
        return self._builder.add_change_output(*args, **kwargs)

    def add_ordinal_p2pkh_output(self, *args, **kwargs) -> "OutputHandle":
        return self._builder.add_ordinal_p2pkh_output(*args, **kwargs)

    def add_custom_output(self, *args, **kwargs) -> "OutputHandle":
        return self._builder.add_custom_output(*args, **kwargs)

    def options(self, opts: Mapping[str, Any]) -> "TransactionBuilder":
        return self._builder.options(opts)

    def build(self, preview: bool = False) -> dict:
        return self._builder.build(preview=preview)

    def preview(self) -> dict:
        return self._builder.preview()


class InputHandle(_BuilderProxy):
    """Configures one input of a TransactionBuilder"""

    def input_description(self, desc: str) -> "InputHandle":
        if not isinstance(desc, str):
            raise InvalidTypeError("Input description must be a string")
        self._builder._input_spec(self.index).description = desc
        return self


class OutputHandle(_BuilderProxy):
    """Configures one output of a TransactionBuilder"""

    def output_description(self, desc: str) -> "OutputHandle":
        if not isinstance(desc, str):
            raise InvalidTypeError("Output description must be a string")
        self._builder._output_spec(self.index).description = desc
        return self

    def add_op_return(self, fields: list) -> "OutputHandle":
        """Appends OP_RETURN with these data fields to the locking script"""
        if not isinstance(fields, (list, tuple)) or len(fields) == 0:
            raise ConfigurationError("add_op_return requires a non-empty list of fields")
        for i, value in enumerate(fields):
            op_return_field_to_bytes(value, i)
        self._builder._output_spec(self.index).op_return_fields = list(fields)
        return self

    def basket(self, value: str) -> "OutputHandle":
        if not isinstance(value, str) or not value:
            raise ConfigurationError("basket requires a non-empty string")
        self._builder._output_spec(self.index).basket = value
        return self

    def custom_instructions(self, value: str) -> "OutputHandle":
        if not isinstance(value, str) or not value:
            raise ConfigurationError("custom_instructions requires a non-empty string")
        self._builder._output_spec(self.index).custom_instructions = value
        return self


class TransactionBuilder:
    """Builds, signs and submits a transaction through a wallet

    Attributes
    ----------
    wallet : WalletInterface
        provides keys, signatures and createAction
    phase : BuilderPhase
        where the builder is in its pipeline
    sat_per_kb : int or None
        fee rate; the library setting (bsvutils.setup) when None
    derivations : list (DerivationRecord)
        one-time keys generated for outputs by the last build

    Methods
    -------
    transaction_description(desc)
        sets the action description
    options(opts)
        validates and merges createAction options
    add_p2pkh_input(...), add_ordinal_p2pkh_input(...), add_custom_input(...)
        adds an input; returns an InputHandle
    add_p2pkh_output(...), add_ordinal_p2pkh_output(...),
    add_custom_output(...), add_change_output(...)
        adds an output; returns an OutputHandle
    build(preview=False)
        runs the pipeline; submits unless preview
    preview()
        runs the pipeline and returns the payload without submitting
    """

    def __init__(
        self,
        wallet: WalletInterface,
        description: Optional[str] = None,
        sat_per_kb: Optional[int] = None,
    ) -> None:
        if wallet is None:
            raise ConfigurationError("Wallet is required for TransactionBuilder")
        _check_description(description)
        if sat_per_kb is not None:
            _check_satoshis(sat_per_kb, "sat_per_kb")

        self.wallet = wallet
        self.sat_per_kb = sat_per_kb
        self.phase = BuilderPhase.CONFIGURE
        self.derivations: list[DerivationRecord] = []
        self._description = description
        self._inputs: list[InputSpec] = []
        self._outputs: list[OutputSpec] = []
        self._options: dict = {}
        self._payload: Optional[dict] = None
        self._signed_tx: Optional[Transaction] = None

    @property
    def signed_transaction(self) -> Optional[Transaction]:
        """The transaction signed by the last build, if it had inputs"""
        return self._signed_tx

    def _ensure_configurable(self) -> None:
        if self.phase is not BuilderPhase.CONFIGURE:
            raise BuilderStateError(
                f"Cannot change the configuration in phase {self.phase.value}"
            )

    def _input_spec(self, index: int) -> InputSpec:
        self._ensure_configurable()
        return self._inputs[index]

    def _output_spec(self, index: int) -> OutputSpec:
        self._ensure_configurable()
        return self._outputs[index]

    def transaction_description(self, desc: str) -> "TransactionBuilder":
        if not isinstance(desc, str):
            raise InvalidTypeError("Description must be a string")
        self._ensure_configurable()
        self._description = desc
        return self

    def options(self, opts: Mapping[str, Any]) -> "TransactionBuilder":
        validate_action_options(opts)
        self._ensure_configurable()
        self._options.update(opts)
        return self

    #
    # CONFIGURE
    #
    def _add_input(self, spec: InputSpec) -> InputHandle:
        self._ensure_configurable()
        self._inputs.append(spec)
        return InputHandle(self, len(self._inputs) - 1)

    def _add_output(self, spec: OutputSpec) -> OutputHandle:
        self._ensure_configurable()
        self._outputs.append(spec)
        return OutputHandle(self, len(self._outputs) - 1)

    def _p2pkh_input_spec(
        self,
        spec_class,
        source_transaction,
        source_output_index,
        wallet_params,
        description,
        sign_outputs,
        anyone_can_pay,
        source_satoshis,
        locking_script,
        source_txid,
    ) -> P2PKHInputSpec:
        _check_source(
            source_transaction, source_txid, source_output_index,
            source_satoshis, locking_script, needs_locking_script=True,
        )
        _check_description(description)
        if sign_outputs not in SIGN_OUTPUTS:
            raise ConfigurationError('sign_outputs must be "all", "none" or "single"')
        if not isinstance(anyone_can_pay, bool):
            raise InvalidTypeError("anyone_can_pay must be a boolean")
        return spec_class(
            source_transaction=source_transaction,
            source_txid=source_txid,
            source_output_index=source_output_index,
            source_satoshis=source_satoshis,
            locking_script=locking_script,
            description=description,
            wallet_params=(
                None
                if wallet_params is None
                else to_derivation_params(wallet_params, DEFAULT_P2PKH_PARAMS)
            ),
            sign_outputs=sign_outputs,
            anyone_can_pay=anyone_can_pay,
        )

    def add_p2pkh_input(
        self,
        source_transaction: Optional[Transaction],
        source_output_index: int,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
        description: Optional[str] = None,
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None,
        source_txid: Optional[str] = None,
    ) -> InputHandle:
        """Spends a P2PKH output locked to a wallet key

        Give either the source transaction or, with source_satoshis and
        locking_script, its txid. wallet_params default to the wallet's
        P2PKH key (2, "p2pkh") / "0" / "self".
        """
        spec = self._p2pkh_input_spec(
            P2PKHInputSpec, source_transaction, source_output_index, wallet_params,
            description, sign_outputs, anyone_can_pay, source_satoshis,
            locking_script, source_txid,
        )
        return self._add_input(spec)

    def add_ordinal_p2pkh_input(
        self,
        source_transaction: Optional[Transaction],
        source_output_index: int,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
        description: Optional[str] = None,
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None,
        source_txid: Optional[str] = None,
    ) -> InputHandle:
        """Spends an inscribed P2PKH output; signed like a P2PKH input"""
        spec = self._p2pkh_input_spec(
            OrdinalP2PKHInputSpec, source_transaction, source_output_index,
            wallet_params, description, sign_outputs, anyone_can_pay,
            source_satoshis, locking_script, source_txid,
        )
        return self._add_input(spec)

    def add_custom_input(
        self,
        unlocking_script_template,
        source_transaction: Optional[Transaction],
        source_output_index: int,
        description: Optional[str] = None,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None,
        source_txid: Optional[str] = None,
    ) -> InputHandle:
        """Spends any output with a caller supplied template

        The template needs sign(tx, input_index) -> Script and
        estimate_length() -> int.
        """
        if unlocking_script_template is None:
            raise ConfigurationError("unlocking_script_template is required for custom input")
        if not callable(getattr(unlocking_script_template, "sign", None)) or not callable(
            getattr(unlocking_script_template, "estimate_length", None)
        ):
            raise InvalidTypeError(
                "unlocking_script_template must provide sign() and estimate_length()"
            )
        _check_source(
            source_transaction, source_txid, source_output_index,
            source_satoshis, locking_script, needs_locking_script=False,
        )
        _check_description(description)
        spec = CustomInputSpec(
            unlocking_script_template=unlocking_script_template,
            source_transaction=source_transaction,
            source_txid=source_txid,
            source_output_index=source_output_index,
            source_satoshis=source_satoshis,
            locking_script=locking_script,
            description=description,
        )
        return self._add_input(spec)

    def add_p2pkh_output(
        self,
        satoshis: int,
        public_key: Union[PublicKey, str, bytes, None] = None,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
        description: Optional[str] = None,
        pubkeyhash: Union[bytes, str, None] = None,
    ) -> OutputHandle:
        """Pays satoshis to a P2PKH lock

        Without public_key, pubkeyhash or wallet_params the output is
        locked to a fresh one-time wallet key (BRC-29) and the derivation is
        recorded in the output's custom instructions.
        """
        _check_satoshis(satoshis)
        _check_description(description)
        public_key, params = _check_output_key(public_key, pubkeyhash, wallet_params)
        return self._add_output(
            P2PKHOutputSpec(
                satoshis=satoshis,
                public_key=public_key,
                pubkeyhash=pubkeyhash,
                wallet_params=params,
                description=description,
            )
        )

    def add_change_output(
        self,
        public_key: Union[PublicKey, str, bytes, None] = None,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
        description: Optional[str] = None,
        pubkeyhash: Union[bytes, str, None] = None,
    ) -> OutputHandle:
        """Receives what is left of the inputs after the other outputs and
        the fee; needs at least one input at build time"""
        _check_description(description)
        public_key, params = _check_output_key(public_key, pubkeyhash, wallet_params)
        return self._add_output(
            ChangeOutputSpec(
                public_key=public_key,
                pubkeyhash=pubkeyhash,
                wallet_params=params,
                description=description,
            )
        )

    def add_ordinal_p2pkh_output(
        self,
        satoshis: int,
        public_key: Union[PublicKey, str, bytes, None] = None,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
        inscription: Optional[Inscription] = None,
        metadata: Optional[Mapping[str, str]] = None,
        description: Optional[str] = None,
        pubkeyhash: Union[bytes, str, None] = None,
    ) -> OutputHandle:
        """Pays satoshis to an inscribed P2PKH lock"""
        _check_satoshis(satoshis)
        _check_description(description)
        public_key, params = _check_output_key(public_key, pubkeyhash, wallet_params)
        if inscription is not None and not isinstance(inscription, Inscription):
            raise InvalidTypeError("inscription must be an Inscription")
        if metadata is not None and not isinstance(metadata, Mapping):
            raise InvalidTypeError("metadata must be a mapping")
        return self._add_output(
            OrdinalP2PKHOutputSpec(
                satoshis=satoshis,
                public_key=public_key,
                pubkeyhash=pubkeyhash,
                wallet_params=params,
                inscription=inscription,
                metadata=None if metadata is None else dict(metadata),
                description=description,
            )
        )

    def add_custom_output(
        self,
        locking_script: Script,
        satoshis: int,
        description: Optional[str] = None,
    ) -> OutputHandle:
        """Pays satoshis to a caller supplied locking script"""
        if not isinstance(locking_script, Script):
            raise InvalidTypeError("locking_script must be a Script instance")
        _check_satoshis(satoshis)
        _check_description(description)
        return self._add_output(
            CustomOutputSpec(locking_script=locking_script, satoshis=satoshis, description=description)
        )

    #
    # DRAFT
    #
    def _output_key(self, index: int, spec: _KeyedOutputSpec) -> dict:
        """lock() keyword arguments for an output; derives a one-time key
        when none was given"""
        if spec.public_key is not None:
            return {"public_key": spec.public_key}
        if spec.pubkeyhash is not None:
            return {"pubkeyhash": spec.pubkeyhash}
        if spec.wallet_params is not None:
            return {"wallet_params": spec.wallet_params}

        params = get_derivation()
        prefix, suffix = split_key_id(params)
        self.derivations.append(DerivationRecord(index, prefix, suffix))
        logger.debug("Output %d locked to a one-time derived key", index)
        return {"wallet_params": params}

    def _locking_script(self, index: int, spec: OutputSpec) -> Script:
        if isinstance(spec, OrdinalP2PKHOutputSpec):
            script = WalletOrdP2PKH(self.wallet).lock(
                inscription=spec.inscription,
                metadata=spec.metadata,
                **self._output_key(index, spec),
            )
        elif isinstance(spec, (P2PKHOutputSpec, ChangeOutputSpec)):
            script = WalletP2PKH(self.wallet).lock(**self._output_key(index, spec))
        elif isinstance(spec, CustomOutputSpec):
            script = spec.locking_script
        else:
            raise TransactionBuildError(f"Unsupported output kind: {type(spec).__name__}")

        if spec.op_return_fields:
            script = encode_op_return(script, spec.op_return_fields)
        return script

    def _unlocking_template(self, spec: InputSpec):
        if isinstance(spec, P2PKHInputSpec):
            # ordinal inputs are spent like any P2PKH
            return WalletP2PKH(self.wallet).unlock(
                spec.wallet_params,
                spec.sign_outputs,
                spec.anyone_can_pay,
                spec.source_satoshis,
                spec.locking_script,
            )
        if isinstance(spec, CustomInputSpec):
            return spec.unlocking_script_template
        raise TransactionBuildError(f"Unsupported input kind: {type(spec).__name__}")

    def _draft(self) -> tuple[list[Script], list]:
        self.phase = BuilderPhase.DRAFT
        logger.debug("Drafting %d inputs and %d outputs", len(self._inputs), len(self._outputs))
        self.derivations = []

        # keys are resolved one output at a time
        locking_scripts = []
        for index, spec in enumerate(self._outputs):
            try:
                locking_scripts.append(self._locking_script(index, spec))
            except TransactionBuildError:
                raise
            except BsvUtilsError as e:
                raise TransactionBuildError(
                    f"Failed to create the locking script of output {index}: {e}"
                ) from e

        templates = []
        for index, spec in enumerate(self._inputs):
            try:
                templates.append(self._unlocking_template(spec))
            except TransactionBuildError:
                raise
            except BsvUtilsError as e:
                raise TransactionBuildError(
                    f"Failed to create the unlocking template of input {index}: {e}"
                ) from e

        return locking_scripts, templates

    #
    # SIGN
    #
    def _sign(self, locking_scripts: list[Script], templates: list) -> Transaction:
        self.phase = BuilderPhase.SIGN

        tx = Transaction()
        for spec, template in zip(self._inputs, templates):
            tx.add_input(
                TxInput(
                    source_txid=spec.source_txid,
                    source_output_index=spec.source_output_index,
                    source_transaction=spec.source_transaction,
                    unlocking_script_template=template,
                    source_satoshis=spec.source_satoshis,
                )
            )
        for spec, script in zip(self._outputs, locking_scripts):
            if isinstance(spec, ChangeOutputSpec):
                tx.add_output(TxOutput(None, script, change=True))
            else:
                tx.add_output(TxOutput(spec.satoshis, script))

        sat_per_kb = self.sat_per_kb if self.sat_per_kb is not None else get_sat_per_kb()
        try:
            fee = tx.fee(sat_per_kb)
            tx.sign()
        except TransactionBuildError:
            raise
        except BsvUtilsError as e:
            raise TransactionBuildError(f"Failed to sign the transaction: {e}") from e

        for index, txin in enumerate(tx.inputs):
            if txin.unlocking_script is None:
                raise UnlockingScriptError(f"Failed to generate unlocking script for input {index}")

        logger.info(
            "Signed transaction with %d inputs and %d outputs, fee %d sat",
            len(tx.inputs), len(tx.outputs), fee,
        )
        return tx

    #
    # PACKAGE
    #
    def _input_beef(self) -> Optional[bytes]:
        sources = [spec.source_transaction for spec in self._inputs if spec.source_transaction is not None]
        if not sources:
            return None
        if len(sources) == 1:
            return sources[0].to_beef()
        merged = Beef()
        for source in sources:
            merged.merge_beef(source.to_beef())
        return merged.to_bytes()

    def _package(self, locking_scripts: list[Script], tx: Optional[Transaction]) -> dict:
        derived = {record.output_index: record for record in self.derivations}

        outputs = []
        for index, (spec, script) in enumerate(zip(self._outputs, locking_scripts)):
            if isinstance(spec, ChangeOutputSpec):
                satoshis = tx.outputs[index].satoshis
                default_description = DEFAULT_CHANGE_DESCRIPTION
            else:
                satoshis = spec.satoshis
                default_description = DEFAULT_OUTPUT_DESCRIPTION

            output = {
                "lockingScript": script.to_hex(),
                "satoshis": satoshis,
                "outputDescription": spec.description or default_description,
            }

            # caller instructions first, then the derivation
            instructions = spec.custom_instructions or ""
            if index in derived:
                instructions += derived[index].to_custom_instructions()
            if instructions:
                output["customInstructions"] = instructions
            if spec.basket:
                output["basket"] = spec.basket
            outputs.append(output)

        payload: dict = {"description": self._description or DEFAULT_TX_DESCRIPTION}

        if tx is not None:
            input_beef = self._input_beef()
            if input_beef is not None:
                payload["inputBEEF"] = input_beef
            payload["inputs"] = [
                {
                    "outpoint": f"{txin.source_txid}.{txin.source_output_index}",
                    "inputDescription": spec.description or DEFAULT_INPUT_DESCRIPTION,
                    "unlockingScript": txin.unlocking_script.to_hex(),
                }
                for spec, txin in zip(self._inputs, tx.inputs)
            ]

        payload["outputs"] = outputs
        payload["options"] = dict(self._options)
        logger.debug("Packaged action with %d outputs", len(outputs))
        return payload

    def _run_pipeline(self) -> dict:
        if not self._outputs:
            raise ConfigurationError("At least one output is required to build a transaction")
        if not self._inputs and any(isinstance(s, ChangeOutputSpec) for s in self._outputs):
            raise ConfigurationError("Change outputs require at least one input")

        try:
            locking_scripts, templates = self._draft()
            tx = self._sign(locking_scripts, templates) if self._inputs else None
        except BaseException:
            # nothing was published; the configuration can be fixed and built again
            self.phase = BuilderPhase.CONFIGURE
            raise

        self._signed_tx = tx
        self._payload = self._package(locking_scripts, tx)
        self.phase = BuilderPhase.PACKAGED
        return self._payload

    def build(self, preview: bool = False) -> dict:
        """Runs the pipeline

        With preview the createAction payload is returned and nothing is
        submitted. Otherwise the payload is submitted with
        wallet.create_action and {"txid", "tx"} is returned. A build after
        a preview submits the previewed payload as is.

        Raises
        ------
        ConfigurationError
            no outputs, or change outputs without inputs
        TransactionBuildError
            a script could not be created or signed, or change is
            undeterminable
        BuilderStateError
            the payload was already submitted
        """
        if self.phase is BuilderPhase.SUBMITTED:
            raise BuilderStateError("Transaction was already submitted")

        payload = self._payload if self.phase is BuilderPhase.PACKAGED else self._run_pipeline()
        if preview:
            return payload

        result = self.wallet.create_action(payload)
        self.phase = BuilderPhase.SUBMITTED
        logger.info("Submitted action %s", result.get("txid"))
        return {"txid": result.get("txid"), "tx": result.get("tx")}

    def preview(self) -> dict:
        """The createAction payload, without submitting it"""
        return self.build(preview=True)
