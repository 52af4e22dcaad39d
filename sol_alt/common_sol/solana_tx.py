from __future__ import annotations

import base64
import binascii
import logging

from typing import Sequence, Optional, Union, List, NamedTuple, Dict, Tuple

import solders.errors
import solders.transaction

from . import shortvec_encoding as shortvec
from .constants import RECENT_BLOCKHASHES_SYSVAR_ID, SIG_LENGTH
from .errors import ALTError, ALTResolveError, SolTxError, SolTxDecodeError, SolMsgDecodeError
from .layouts import ALTAccount
from .solana_alt_list_filter import build_loaded_key_list
from .solana_msg_compiler import SolMsgCompiler
from .solana_types import SolPubKey, SolBlockHash, SolTxIx, SolAccountMeta, SolAccount, SolSig, SolSigPair
from .solana_versioned_message import SolVersionedMsg, SolMsgVersion
from .utils.json_logger import logging_context
from .utils.utils import str_key_list


LOG = logging.getLogger(__name__)


_SoldersTx = solders.transaction.VersionedTransaction
_SoldersDecodeErrorList = (ValueError, solders.errors.BincodeError)


class SolNonceInfo(NamedTuple):
    """The durable nonce used as the recent block hash and the instruction that advances it."""

    nonce: SolBlockHash
    ix: SolTxIx


class SolTx:
    """Transaction with optional address lookup tables.

    The legacy and the v0 forms share this class; the message version tag selects how
    the message is compiled and serialized. The compiled message is cached until the
    content of the transaction is changed. Signatures are kept on changes, so the
    transaction should be signed again after a modification.

    A decoded transaction keeps its message. Instructions are rebuilt from the message
    on the first access, and the keys loaded from lookup tables need the lookup table
    accounts at that moment.
    """

    def __init__(self, name: str = '',
                 ix_list: Optional[Sequence[SolTxIx]] = None,
                 fee_payer: Optional[SolPubKey] = None,
                 recent_block_hash: Optional[SolBlockHash] = None,
                 alt_key_list: Optional[Sequence[SolPubKey]] = None,
                 version: SolMsgVersion = SolMsgVersion.V0,
                 nonce_info: Optional[SolNonceInfo] = None) -> None:
        if (version == SolMsgVersion.Legacy) and alt_key_list:
            raise ALTError('Legacy transaction cannot use address lookup tables')

        self._name = name
        self._version = version
        self._ix_list: List[SolTxIx] = list(ix_list) if ix_list is not None else list()
        self._fee_payer = fee_payer
        self._recent_block_hash = recent_block_hash
        self._nonce_info = nonce_info
        self._alt_key_list: List[SolPubKey] = list(alt_key_list) if alt_key_list is not None else list()
        self._sig_list: List[SolSigPair] = list()
        self._msg: Optional[SolVersionedMsg] = None
        self._undecoded_msg: Optional[SolVersionedMsg] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> SolMsgVersion:
        return self._version

    @property
    def fee_payer(self) -> Optional[SolPubKey]:
        return self._fee_payer

    @fee_payer.setter
    def fee_payer(self, value: Optional[SolPubKey]) -> None:
        self._fee_payer = value
        self._msg = None

    @property
    def recent_block_hash(self) -> Optional[SolBlockHash]:
        return self._recent_block_hash

    @recent_block_hash.setter
    def recent_block_hash(self, value: Optional[SolBlockHash]) -> None:
        self._recent_block_hash = value
        self._msg = None

    @property
    def nonce_info(self) -> Optional[SolNonceInfo]:
        self._decode_ix_list()
        return self._nonce_info

    @nonce_info.setter
    def nonce_info(self, value: Optional[SolNonceInfo]) -> None:
        self._decode_ix_list()
        self._nonce_info = value
        self._msg = None

    @property
    def ix_list(self) -> List[SolTxIx]:
        self._decode_ix_list()
        return list(self._ix_list)

    @property
    def alt_key_list(self) -> List[SolPubKey]:
        return list(self._alt_key_list)

    @alt_key_list.setter
    def alt_key_list(self, value: Sequence[SolPubKey]) -> None:
        if (self._version == SolMsgVersion.Legacy) and len(value):
            raise ALTError('Legacy transaction cannot use address lookup tables')
        self._alt_key_list = list(value)
        self._msg = None

    @property
    def sig_list(self) -> List[SolSigPair]:
        return list(self._sig_list)

    @sig_list.setter
    def sig_list(self, value: Sequence[SolSigPair]) -> None:
        self._sig_list = list(value)

    @property
    def sig(self) -> SolSig:
        assert self.is_signed(), 'Transaction has not been signed'
        return self._sig_list[0].sig

    def is_signed(self) -> bool:
        return len(self._sig_list) > 0

    def is_empty(self) -> bool:
        return len(self.ix_list) == 0

    def add(self, *args: Union[SolTx, SolTxIx]) -> SolTx:
        ix_list = self.ix_list
        for arg in args:
            if isinstance(arg, SolTxIx):
                ix_list.append(arg)
            elif isinstance(arg, SolTx):
                ix_list.extend(arg.ix_list)
            else:
                raise ValueError('invalid instruction:', arg)

        self._ix_list = ix_list
        self._msg = None
        return self

    def add_sig(self, pubkey: SolPubKey, sig: SolSig) -> None:
        self._sig_list.append(SolSigPair(pubkey, sig))

    def _select_alt_acct_list(self, alt_acct_list: Optional[Sequence[ALTAccount]]) -> List[ALTAccount]:
        alt_acct_list = list(alt_acct_list) if alt_acct_list is not None else list()
        if not self._alt_key_list:
            # without declared tables, the accounts are used in the passed order
            return alt_acct_list

        alt_acct_dict: Dict[SolPubKey, ALTAccount] = {alt_acct.table_account: alt_acct for alt_acct in alt_acct_list}
        if len(alt_acct_dict) != len(alt_acct_list):
            raise ALTError('Lookup table accounts have duplicates')

        selected_alt_acct_list: List[ALTAccount] = list()
        for alt_key in self._alt_key_list:
            alt_acct = alt_acct_dict.pop(alt_key, None)
            if alt_acct is None:
                raise ALTError(f'No account for the declared lookup table {str(alt_key)}')
            selected_alt_acct_list.append(alt_acct)

        if alt_acct_dict:
            LOG.debug(f'Skip not declared lookup tables: {str_key_list(alt_acct_dict.keys())}')
        return selected_alt_acct_list

    def _build_compiler(self, alt_acct_list: Optional[Sequence[ALTAccount]]) -> SolMsgCompiler:
        if self._fee_payer is None:
            raise SolTxError('Fee payer is not set')

        self._decode_ix_list(alt_acct_list)
        if self._nonce_info is not None:
            block_hash = self._nonce_info.nonce
            ix_list = [self._nonce_info.ix] + self._ix_list
        else:
            block_hash = self._recent_block_hash
            ix_list = self._ix_list

        if block_hash is None:
            raise SolTxError('Recent block hash or nonce information is required')

        return SolMsgCompiler(
            version=self._version,
            fee_payer=self._fee_payer,
            recent_block_hash=block_hash,
            ix_list=ix_list,
            alt_acct_list=self._select_alt_acct_list(alt_acct_list)
        )

    def compile_message(self, alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> SolVersionedMsg:
        if (alt_acct_list is None) and (self._msg is not None):
            return self._msg

        with logging_context(sol_tx=self._name):
            msg = self._build_compiler(alt_acct_list).compile()

        self._msg = msg
        return msg

    @staticmethod
    def _dedup_signer_list(signer_list: Sequence[SolAccount]) -> List[SolAccount]:
        key_set = set()
        uniq_signer_list: List[SolAccount] = list()
        for signer in signer_list:
            key = bytes(signer.pubkey())
            if key in key_set:
                continue
            key_set.add(key)
            uniq_signer_list.append(signer)
        return uniq_signer_list

    def sign(self, signer_list: Union[SolAccount, Sequence[SolAccount]],
             alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> bool:
        if isinstance(signer_list, SolAccount):
            signer_list = [signer_list]

        uniq_signer_list = self._dedup_signer_list(signer_list)
        if (self._fee_payer is None) and uniq_signer_list:
            self.fee_payer = uniq_signer_list[0].pubkey()

        msg = self.compile_message(alt_acct_list)
        msg_data = msg.serialize()

        with logging_context(sol_tx=self._name):
            signed_key_set = {sig_pair.pubkey for sig_pair in self._sig_list}
            signed_key_set.update(signer.pubkey() for signer in uniq_signer_list)
            required_key_list = msg.account_key_list[:msg.header.num_required_signatures]
            missed_key_list = [key for key in required_key_list if key not in signed_key_set]
            if missed_key_list:
                LOG.warning(f'Transaction is partially signed, no signatures for: {str_key_list(missed_key_list)}')

            for signer in uniq_signer_list:
                self._sig_list.append(SolSigPair(signer.pubkey(), signer.sign_message(msg_data)))

            return self.verify(msg_data=msg_data)

    def verify(self, alt_acct_list: Optional[Sequence[ALTAccount]] = None, msg_data: Optional[bytes] = None) -> bool:
        if msg_data is None:
            msg_data = self.compile_message(alt_acct_list).serialize()

        for sig_pair in self._sig_list:
            if not sig_pair.sig.verify(sig_pair.pubkey, msg_data):
                LOG.debug(f'Wrong signature {str(sig_pair.sig)} for {str(sig_pair.pubkey)}')
                return False
        return True

    def to_solders(self, alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> _SoldersTx:
        msg = self.compile_message(alt_acct_list)
        return _SoldersTx.populate(msg.solders_msg, [sig_pair.sig for sig_pair in self._sig_list])

    def serialize(self, alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> bytes:
        return bytes(self.to_solders(alt_acct_list))

    def to_base64(self, alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> str:
        return base64.b64encode(self.serialize(alt_acct_list)).decode('utf-8')

    def build(self, signer_list: Union[SolAccount, Sequence[SolAccount]],
              alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> bytes:
        self.sign(signer_list, alt_acct_list)
        return self.serialize()

    @staticmethod
    def deserialize(data: Union[bytes, bytearray, str],
                    alt_acct_list: Optional[Sequence[ALTAccount]] = None,
                    name: str = '') -> SolTx:
        if data is None:
            raise SolTxDecodeError('No transaction data to decode')

        if isinstance(data, str):
            try:
                data = base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise SolTxDecodeError('Could not decode transaction data from base64') from exc

        data = bytes(data)
        sig_cnt, size = shortvec.decode_length(data)
        msg_offset = size + sig_cnt * SIG_LENGTH
        if msg_offset > len(data):
            raise SolMsgDecodeError(f'Transaction is truncated: no data for {sig_cnt} signatures')
        SolVersionedMsg.check_version_prefix(data[msg_offset:])

        try:
            solders_tx = _SoldersTx.from_bytes(data)
        except _SoldersDecodeErrorList as exc:
            raise SolMsgDecodeError(f'Could not decode transaction: {str(exc)}') from exc

        if bytes(solders_tx) != data:
            raise SolMsgDecodeError(f'Transaction has {len(data)} bytes, but only {len(bytes(solders_tx))} are decoded')

        msg = SolVersionedMsg.from_solders(solders_tx.message)
        return SolTx.populate(msg, solders_tx.signatures, alt_acct_list, name)

    @staticmethod
    def _select_loaded_key_list(msg: SolVersionedMsg,
                                alt_acct_list: Optional[Sequence[ALTAccount]]
                                ) -> Optional[List[Tuple[SolPubKey, bool]]]:
        if not msg.alt_msg_list:
            return list()
        elif alt_acct_list is None:
            return None

        alt_acct_dict: Dict[SolPubKey, ALTAccount] = {alt_acct.table_account: alt_acct for alt_acct in alt_acct_list}
        selected_alt_acct_list: List[ALTAccount] = list()
        for alt_msg in msg.alt_msg_list:
            alt_acct = alt_acct_dict.get(alt_msg.account_key, None)
            if alt_acct is None:
                raise ALTResolveError(f'No account for the lookup table {str(alt_msg.account_key)}')
            selected_alt_acct_list.append(alt_acct)

        return build_loaded_key_list(msg.alt_msg_list, selected_alt_acct_list)

    def _decode_ix_list(self, alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> None:
        """Rebuild instructions of a decoded message.

        The signature with index `i` belongs to the static account key with index `i`,
        so a key is a signer by the message header or by a stored signature.
        """
        msg = self._undecoded_msg
        if msg is None:
            return

        static_key_list = msg.account_key_list
        signed_key_set = {sig_pair.pubkey for sig_pair in self._sig_list}
        loaded_key_list = self._select_loaded_key_list(msg, alt_acct_list)

        def _get_key(idx: int) -> Tuple[SolPubKey, bool]:
            if idx < len(static_key_list):
                return static_key_list[idx], msg.is_writable(idx)

            loaded_idx = idx - len(static_key_list)
            if loaded_key_list is None:
                raise ALTResolveError(f'Lookup table accounts are required to resolve the account index {idx}')
            elif loaded_idx >= len(loaded_key_list):
                raise ALTResolveError(f'Account index {idx} is out of range of the message account list')
            return loaded_key_list[loaded_idx]

        nonce_info: Optional[SolNonceInfo] = None
        ix_list: List[SolTxIx] = list()
        for ix_idx, compiled_ix in enumerate(msg.ix_list):
            acct_meta_list: List[SolAccountMeta] = list()
            for acct_idx in compiled_ix.accounts:
                key, is_writable = _get_key(acct_idx)
                is_signer = msg.is_signer(acct_idx) or (key in signed_key_set)
                acct_meta_list.append(SolAccountMeta(key, is_signer, is_writable))

            program_id, _ = _get_key(compiled_ix.program_id_index)
            ix = SolTxIx(program_id, bytes(compiled_ix.data), acct_meta_list)

            if (ix_idx == 0) and any(acct.pubkey == RECENT_BLOCKHASHES_SYSVAR_ID for acct in acct_meta_list):
                nonce_info = SolNonceInfo(nonce=msg.recent_block_hash, ix=ix)
                continue
            ix_list.append(ix)

        self._ix_list = ix_list
        self._nonce_info = nonce_info
        self._undecoded_msg = None

    @staticmethod
    def populate(msg: SolVersionedMsg,
                 sig_list: Optional[Sequence[SolSig]] = None,
                 alt_acct_list: Optional[Sequence[ALTAccount]] = None,
                 name: str = '') -> SolTx:
        """Rebuild a transaction from a decoded message.

        Without lookup table accounts, the instructions that use loaded keys are
        resolved on the first access to the instruction list; the message itself
        is kept, so the transaction can be verified and serialized back as is.
        """
        static_key_list = msg.account_key_list
        sig_list = list(sig_list) if sig_list is not None else list()
        if len(sig_list) > len(static_key_list):
            raise SolMsgDecodeError(f'Too many signatures {len(sig_list)} for {len(static_key_list)} account keys')

        tx = SolTx(
            name=name,
            fee_payer=static_key_list[0] if msg.header.num_required_signatures > 0 else None,
            recent_block_hash=msg.recent_block_hash,
            alt_key_list=[alt_msg.account_key for alt_msg in msg.alt_msg_list],
            version=msg.version
        )
        tx._sig_list = [SolSigPair(static_key_list[idx], sig) for idx, sig in enumerate(sig_list)]
        tx._msg = msg
        tx._undecoded_msg = msg

        if (alt_acct_list is not None) or (msg.loaded_account_cnt == 0):
            tx._decode_ix_list(alt_acct_list)
        return tx
