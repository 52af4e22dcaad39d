from __future__ import annotations

import logging

from dataclasses import dataclass, field
from typing import Optional, List, Dict

from construct import Bytes, Int8ul, Int32ul, Int64ul
from construct import If, Padded, Struct, this

from .constants import (
    ADDRESS_LOOKUP_TABLE_ID, LOOKUP_ACCOUNT_TAG, LOOKUP_TABLE_META_SIZE, U64_MAX
)
from .errors import ALTSizeError, ALTContentError
from .solana_types import SolPubKey
from .utils.utils import cached_property


LOG = logging.getLogger(__name__)


ACCOUNT_LOOKUP_TABLE_LAYOUT = Padded(
    LOOKUP_TABLE_META_SIZE,
    Struct(
        "type" / Int32ul,
        "deactivation_slot" / Int64ul,
        "last_extended_slot" / Int64ul,
        "last_extended_slot_start_index" / Int8ul,
        "has_authority" / Int8ul,
        "authority" / If(this.has_authority == 1, Bytes(SolPubKey.LENGTH)),
    )
)


@dataclass
class AccountInfo:
    address: SolPubKey
    lamports: int
    owner: SolPubKey
    data: bytes


@dataclass(frozen=True)
class ALTState:
    deactivation_slot: int = U64_MAX
    last_extended_slot: int = 0
    last_extended_slot_start_index: int = 0
    authority: Optional[SolPubKey] = None
    addr_list: List[SolPubKey] = field(default_factory=list)

    def is_active(self) -> bool:
        return self.deactivation_slot == U64_MAX

    @staticmethod
    def from_bytes(data: bytes) -> ALTState:
        if len(data) < LOOKUP_TABLE_META_SIZE:
            raise ALTSizeError(len(data), LOOKUP_TABLE_META_SIZE)

        # the tag value isn't validated here, it only keeps the offsets aligned
        has_authority = data[21]
        if has_authority not in (0, 1):
            raise ALTContentError(f'wrong authority option {has_authority}')

        meta = ACCOUNT_LOOKUP_TABLE_LAYOUT.parse(data[:LOOKUP_TABLE_META_SIZE])

        addr_data_len = len(data) - LOOKUP_TABLE_META_SIZE
        if addr_data_len % SolPubKey.LENGTH:
            raise ALTContentError(
                f'address list length {addr_data_len} is not a multiple of {SolPubKey.LENGTH}'
            )

        addr_list: List[SolPubKey] = list()
        for offset in range(LOOKUP_TABLE_META_SIZE, len(data), SolPubKey.LENGTH):
            addr_list.append(SolPubKey.from_bytes(data[offset:offset + SolPubKey.LENGTH]))

        return ALTState(
            deactivation_slot=meta.deactivation_slot,
            last_extended_slot=meta.last_extended_slot,
            last_extended_slot_start_index=meta.last_extended_slot_start_index,
            authority=SolPubKey.from_bytes(meta.authority) if meta.authority is not None else None,
            addr_list=addr_list
        )

    def to_bytes(self) -> bytes:
        meta = ACCOUNT_LOOKUP_TABLE_LAYOUT.build(dict(
            type=LOOKUP_ACCOUNT_TAG,
            deactivation_slot=self.deactivation_slot,
            last_extended_slot=self.last_extended_slot,
            last_extended_slot_start_index=self.last_extended_slot_start_index,
            has_authority=0 if self.authority is None else 1,
            authority=None if self.authority is None else bytes(self.authority)
        ))
        return meta + b''.join(bytes(addr) for addr in self.addr_list)


class ALTAccount:
    """Lookup table key together with its decoded on-chain content."""

    def __init__(self, table_account: SolPubKey, state: ALTState):
        self._table_acct = table_account
        self._state = state

    @staticmethod
    def from_account_info(info: AccountInfo, check_owner: bool = True) -> Optional[ALTAccount]:
        if check_owner and (info.owner != ADDRESS_LOOKUP_TABLE_ID):
            LOG.warning(f'Wrong owner {str(info.owner)} of account {str(info.address)}')
            return None

        return ALTAccount(info.address, ALTState.from_bytes(info.data))

    @property
    def table_account(self) -> SolPubKey:
        return self._table_acct

    @property
    def state(self) -> ALTState:
        return self._state

    @property
    def addr_list(self) -> List[SolPubKey]:
        return self._state.addr_list

    def is_active(self) -> bool:
        return self._state.is_active()

    @cached_property
    def addr_idx_dict(self) -> Dict[SolPubKey, int]:
        addr_idx_dict: Dict[SolPubKey, int] = dict()
        for idx, addr in enumerate(self._state.addr_list):
            addr_idx_dict.setdefault(addr, idx)
        return addr_idx_dict

    def __repr__(self) -> str:
        return f'ALTAccount({str(self._table_acct)}, {len(self._state.addr_list)} addresses)'
