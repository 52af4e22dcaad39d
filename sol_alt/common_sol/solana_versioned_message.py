from __future__ import annotations

import base64
import binascii

from enum import Enum
from typing import List, Sequence, Tuple, Union

import solders.errors
import solders.instruction
import solders.message

from .constants import MSG_VERSION_PREFIX
from .errors import SolMsgDecodeError, ALTError
from .solana_types import SolPubKey, SolBlockHash
from .utils.utils import cached_method


SolMsgHdr = solders.message.MessageHeader
SolCompiledIx = solders.instruction.CompiledInstruction
SolMsgALT = solders.message.MessageAddressTableLookup

_SoldersLegacyMsg = solders.message.Message
_SoldersMsgV0 = solders.message.MessageV0
_SoldersMsg = Union[_SoldersLegacyMsg, _SoldersMsgV0]

_SoldersDecodeErrorList = (ValueError, solders.errors.BincodeError)


class SolMsgVersion(Enum):
    Legacy = 'legacy'
    V0 = 0


class SolVersionedMsg:
    """Legacy or v0 message, stored as the matching solders message.

    Account indexes of instructions point into the static `account_key_list`
    followed by the keys loaded through `alt_msg_list`: per lookup, the addresses
    of writable indexes, then the addresses of readonly indexes.
    """

    def __init__(self, version: SolMsgVersion,
                 header: SolMsgHdr,
                 account_key_list: Sequence[SolPubKey],
                 recent_block_hash: SolBlockHash,
                 ix_list: Sequence[SolCompiledIx],
                 alt_msg_list: Sequence[SolMsgALT] = tuple()) -> None:
        if (version == SolMsgVersion.Legacy) and len(alt_msg_list):
            raise ALTError('Legacy message cannot have address table lookups')

        self._version = version
        self._acct_key_list = list(account_key_list)
        self._ix_list = list(ix_list)
        self._alt_msg_list = list(alt_msg_list)

        if version == SolMsgVersion.Legacy:
            self._solders_msg: _SoldersMsg = _SoldersLegacyMsg.new_with_compiled_instructions(
                header.num_required_signatures,
                header.num_readonly_signed_accounts,
                header.num_readonly_unsigned_accounts,
                self._acct_key_list,
                recent_block_hash,
                self._ix_list
            )
        else:
            self._solders_msg = _SoldersMsgV0(
                header=header,
                account_keys=self._acct_key_list,
                recent_blockhash=recent_block_hash,
                instructions=self._ix_list,
                address_table_lookups=self._alt_msg_list
            )

    @staticmethod
    def from_solders(solders_msg: _SoldersMsg) -> SolVersionedMsg:
        if isinstance(solders_msg, _SoldersMsgV0):
            version = SolMsgVersion.V0
            alt_msg_list = solders_msg.address_table_lookups
        elif isinstance(solders_msg, _SoldersLegacyMsg):
            version = SolMsgVersion.Legacy
            alt_msg_list = list()
        else:
            raise SolMsgDecodeError(f'Unsupported message type {type(solders_msg).__name__}')

        header = solders_msg.header
        acct_key_cnt = len(solders_msg.account_keys)
        if (header.num_readonly_signed_accounts > header.num_required_signatures) or \
                (header.num_required_signatures + header.num_readonly_unsigned_accounts > acct_key_cnt):
            raise SolMsgDecodeError(f'Message header {header} does not match {acct_key_cnt} account keys')

        return SolVersionedMsg(
            version=version,
            header=header,
            account_key_list=solders_msg.account_keys,
            recent_block_hash=solders_msg.recent_blockhash,
            ix_list=solders_msg.instructions,
            alt_msg_list=alt_msg_list
        )

    @property
    def solders_msg(self) -> _SoldersMsg:
        return self._solders_msg

    @property
    def version(self) -> SolMsgVersion:
        return self._version

    @property
    def header(self) -> SolMsgHdr:
        return self._solders_msg.header

    @property
    def account_key_list(self) -> List[SolPubKey]:
        """Static account keys, without the keys loaded from lookup tables."""
        return self._acct_key_list

    @property
    def recent_block_hash(self) -> SolBlockHash:
        return self._solders_msg.recent_blockhash

    @property
    def ix_list(self) -> List[SolCompiledIx]:
        return self._ix_list

    @property
    def alt_msg_list(self) -> List[SolMsgALT]:
        return self._alt_msg_list

    @property
    def loaded_account_cnt(self) -> int:
        return sum(len(alt.writable_indexes) + len(alt.readonly_indexes) for alt in self._alt_msg_list)

    def is_signer(self, idx: int) -> bool:
        return idx < self.header.num_required_signatures

    def is_writable(self, idx: int) -> bool:
        hdr = self.header
        static_cnt = len(self._acct_key_list)
        if idx < static_cnt:
            if idx < hdr.num_required_signatures:
                return idx < hdr.num_required_signatures - hdr.num_readonly_signed_accounts
            return idx < static_cnt - hdr.num_readonly_unsigned_accounts

        return self.find_loaded_account(idx)[2]

    def find_loaded_account(self, idx: int) -> Tuple[SolMsgALT, int, bool]:
        """Return the lookup, the index inside the lookup table, and the writable flag for a loaded key."""
        loaded_idx = idx - len(self._acct_key_list)
        if loaded_idx < 0:
            raise IndexError(f'Account index {idx} is a static key')

        for alt_msg in self._alt_msg_list:
            if loaded_idx < len(alt_msg.writable_indexes):
                return alt_msg, alt_msg.writable_indexes[loaded_idx], True
            loaded_idx -= len(alt_msg.writable_indexes)

            if loaded_idx < len(alt_msg.readonly_indexes):
                return alt_msg, alt_msg.readonly_indexes[loaded_idx], False
            loaded_idx -= len(alt_msg.readonly_indexes)

        raise IndexError(f'Account index {idx} is out of range of the message account list')

    @cached_method
    def serialize(self) -> bytes:
        return solders.message.to_bytes_versioned(self._solders_msg)

    def to_base64(self) -> str:
        return base64.b64encode(self.serialize()).decode('utf-8')

    @staticmethod
    def from_base64(data: str) -> SolVersionedMsg:
        try:
            raw_data = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SolMsgDecodeError('Could not decode message data from base64') from exc
        return SolVersionedMsg.deserialize(raw_data)

    @staticmethod
    def check_version_prefix(data: bytes) -> None:
        if not len(data):
            raise SolMsgDecodeError('Message is empty')

        prefix = data[0]
        if prefix & MSG_VERSION_PREFIX:
            version_value = prefix & ~MSG_VERSION_PREFIX
            if version_value != SolMsgVersion.V0.value:
                raise SolMsgDecodeError(f'Unsupported message version {version_value}')

    @staticmethod
    def deserialize(data: bytes) -> SolVersionedMsg:
        data = bytes(data)
        SolVersionedMsg.check_version_prefix(data)

        try:
            solders_msg = solders.message.from_bytes_versioned(data)
        except _SoldersDecodeErrorList as exc:
            raise SolMsgDecodeError(f'Could not decode message: {str(exc)}') from exc

        msg = SolVersionedMsg.from_solders(solders_msg)
        # the decoder accepts trailing bytes
        if msg.serialize() != data:
            raise SolMsgDecodeError(
                f'Message has {len(data)} bytes, but only {len(msg.serialize())} bytes are decoded'
            )
        return msg

    def __eq__(self, other) -> bool:
        return isinstance(other, SolVersionedMsg) and (self.serialize() == other.serialize())

    def __hash__(self) -> int:
        return hash(self.serialize())

    def __repr__(self) -> str:
        return (
            f'SolVersionedMsg(version={self._version}, header={self.header}, '
            f'account_cnt={len(self._acct_key_list)}, ix_cnt={len(self._ix_list)}, '
            f'alt_cnt={len(self._alt_msg_list)})'
        )
