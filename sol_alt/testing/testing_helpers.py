from __future__ import annotations

from typing import Optional, Sequence

from ..common_sol.constants import U64_MAX, ADDRESS_LOOKUP_TABLE_ID
from ..common_sol.layouts import ALTAccount, ALTState, AccountInfo
from ..common_sol.solana_types import SolPubKey, SolTxIx, SolAccountMeta


def new_key() -> SolPubKey:
    return SolPubKey.new_unique()


def signer(key: SolPubKey, is_writable: bool = True) -> SolAccountMeta:
    return SolAccountMeta(key, True, is_writable)


def rw(key: SolPubKey) -> SolAccountMeta:
    return SolAccountMeta(key, False, True)


def ro(key: SolPubKey) -> SolAccountMeta:
    return SolAccountMeta(key, False, False)


def make_ix(program_id: SolPubKey, acct_list: Sequence[SolAccountMeta], data: bytes = b'\x01\x02') -> SolTxIx:
    return SolTxIx(program_id, data, list(acct_list))


def make_alt_state(addr_list: Sequence[SolPubKey],
                   deactivation_slot: int = U64_MAX,
                   authority: Optional[SolPubKey] = None) -> ALTState:
    return ALTState(
        deactivation_slot=deactivation_slot,
        last_extended_slot=1000,
        last_extended_slot_start_index=0,
        authority=authority,
        addr_list=list(addr_list)
    )


def make_alt_acct(addr_list: Sequence[SolPubKey],
                  table_account: Optional[SolPubKey] = None,
                  deactivation_slot: int = U64_MAX) -> ALTAccount:
    if table_account is None:
        table_account = new_key()
    return ALTAccount(table_account, make_alt_state(addr_list, deactivation_slot))


def make_alt_acct_info(alt_acct: ALTAccount, owner: SolPubKey = ADDRESS_LOOKUP_TABLE_ID) -> AccountInfo:
    return AccountInfo(
        address=alt_acct.table_account,
        lamports=1_000_000,
        owner=owner,
        data=alt_acct.state.to_bytes()
    )
