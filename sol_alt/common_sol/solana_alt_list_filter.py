from __future__ import annotations

import logging

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .constants import LOOKUP_TABLE_MAX_ADDRESSES, MAX_TX_ACCOUNT_CNT
from .errors import ALTResolveError
from .layouts import ALTAccount
from .solana_types import SolPubKey, SolTxIx, SolAccountMeta
from .solana_versioned_message import SolMsgALT, SolCompiledIx


LOG = logging.getLogger(__name__)


class _KeyMeta:
    def __init__(self, key: SolPubKey) -> None:
        self.key = key
        self.is_signer = False
        self.is_writable = False
        self.is_program = False

    def is_static(self) -> bool:
        return self.is_signer or self.is_program

    def to_account_meta(self) -> SolAccountMeta:
        return SolAccountMeta(self.key, self.is_signer, self.is_writable)


@dataclass(frozen=True)
class ALTResolvedIx:
    compiled_ix: SolCompiledIx
    signer_acct_list: Tuple[SolAccountMeta, ...]


@dataclass(frozen=True)
class ALTResolveResult:
    static_acct_list: Tuple[SolAccountMeta, ...]
    alt_msg_list: Tuple[SolMsgALT, ...]
    account_key_list: Tuple[SolPubKey, ...]
    ix_list: Tuple[ALTResolvedIx, ...]

    @property
    def static_key_list(self) -> List[SolPubKey]:
        return [acct.pubkey for acct in self.static_acct_list]

    @property
    def compiled_ix_list(self) -> List[SolCompiledIx]:
        return [ix.compiled_ix for ix in self.ix_list]


def build_loaded_key_list(alt_msg_list: Sequence[SolMsgALT],
                          alt_acct_list: Sequence[ALTAccount]) -> List[Tuple[SolPubKey, bool]]:
    """Keys loaded from lookup tables: per table, writable addresses then readonly addresses."""
    if len(alt_msg_list) != len(alt_acct_list):
        raise ALTResolveError(f'Expected {len(alt_msg_list)} lookup table accounts, got {len(alt_acct_list)}')

    loaded_key_list: List[Tuple[SolPubKey, bool]] = list()
    for alt_msg, alt_acct in zip(alt_msg_list, alt_acct_list):
        if alt_msg.account_key != alt_acct.table_account:
            raise ALTResolveError(
                f'Lookup table account mismatch: {str(alt_msg.account_key)} != {str(alt_acct.table_account)}'
            )

        addr_list = alt_acct.addr_list
        for idx_list, is_writable in ((alt_msg.writable_indexes, True), (alt_msg.readonly_indexes, False)):
            for idx in idx_list:
                if idx >= len(addr_list):
                    raise ALTResolveError(
                        f'Index {idx} is out of range of the lookup table {str(alt_acct.table_account)} '
                        f'with {len(addr_list)} addresses'
                    )
                loaded_key_list.append((addr_list[idx], is_writable))
    return loaded_key_list


class ALTListFilter:
    """Splits instruction accounts into static keys and keys loaded from lookup tables.

    The filter is a pure transform: the instructions and lookup table accounts are
    only read, and every call of `resolve()` builds a new result.

    Account indexes of compiled instructions point into the concatenation of:
      1) static account keys: the fee payer, writable signers, readonly signers,
         writable non-signers, readonly non-signers (first-occurrence order inside each group)
      2) for each lookup table in declaration order: the addresses of writable indexes,
         then the addresses of readonly indexes

    The on-chain runtime loads the writable addresses of all lookup tables first and
    then the readonly addresses of all tables. Both orders are the same for one table,
    or when every table before the last one contributes only writable addresses;
    otherwise the runtime sees the loaded keys of an instruction in a different order.
    """

    def __init__(self, fee_payer: SolPubKey,
                 ix_list: Sequence[SolTxIx],
                 alt_acct_list: Sequence[ALTAccount] = tuple()) -> None:
        self._fee_payer = fee_payer
        self._ix_list = list(ix_list)
        self._alt_acct_list = list(alt_acct_list)

    def _collect_key_meta_dict(self) -> Dict[SolPubKey, _KeyMeta]:
        key_meta_dict: Dict[SolPubKey, _KeyMeta] = dict()

        def _get_key_meta(key: SolPubKey) -> _KeyMeta:
            key_meta = key_meta_dict.get(key, None)
            if key_meta is None:
                key_meta = _KeyMeta(key)
                key_meta_dict[key] = key_meta
            return key_meta

        fee_payer_meta = _get_key_meta(self._fee_payer)
        fee_payer_meta.is_signer = True
        fee_payer_meta.is_writable = True

        for ix in self._ix_list:
            for acct_meta in ix.accounts:
                key_meta = _get_key_meta(acct_meta.pubkey)
                key_meta.is_signer |= acct_meta.is_signer
                key_meta.is_writable |= acct_meta.is_writable

            _get_key_meta(ix.program_id).is_program = True

        return key_meta_dict

    def _filter_alt_msg_list(self, key_meta_dict: Dict[SolPubKey, _KeyMeta]
                             ) -> Tuple[List[SolMsgALT], Dict[SolPubKey, int]]:
        # signers and programs are always static keys, their signatures and ids are checked by key
        candidate_list = [key_meta for key_meta in key_meta_dict.values() if not key_meta.is_static()]

        alt_key_dict: Dict[SolPubKey, int] = dict()
        alt_msg_list: List[SolMsgALT] = list()
        for alt_acct in self._alt_acct_list:
            addr_idx_dict = alt_acct.addr_idx_dict

            rw_idx_list: List[int] = list()
            ro_idx_list: List[int] = list()
            for key_meta in candidate_list:
                if key_meta.key in alt_key_dict:
                    continue

                idx = addr_idx_dict.get(key_meta.key, None)
                if idx is None:
                    continue
                elif idx >= LOOKUP_TABLE_MAX_ADDRESSES:
                    raise ALTResolveError(
                        f'Account {str(key_meta.key)} has index {idx} in the lookup table '
                        f'{str(alt_acct.table_account)}, it cannot be encoded into one byte'
                    )

                alt_key_dict[key_meta.key] = idx
                if key_meta.is_writable:
                    rw_idx_list.append(idx)
                else:
                    ro_idx_list.append(idx)

            alt_msg_list.append(
                SolMsgALT(
                    account_key=alt_acct.table_account,
                    writable_indexes=bytes(sorted(rw_idx_list)),
                    readonly_indexes=bytes(sorted(ro_idx_list))
                )
            )

        return alt_msg_list, alt_key_dict

    def _filter_static_acct_list(self, key_meta_dict: Dict[SolPubKey, _KeyMeta],
                                 alt_key_dict: Dict[SolPubKey, int]) -> List[SolAccountMeta]:
        # the fee payer is the first collected key and is never loaded from tables
        fee_payer_meta = key_meta_dict[self._fee_payer]
        static_meta_list = [
            key_meta for key_meta in key_meta_dict.values()
            if (key_meta.key not in alt_key_dict) and (key_meta is not fee_payer_meta)
        ]

        def _filter(is_signer: bool, is_writable: bool) -> List[SolAccountMeta]:
            return [
                key_meta.to_account_meta()
                for key_meta in static_meta_list
                if (key_meta.is_signer == is_signer) and (key_meta.is_writable == is_writable)
            ]

        return (
            [fee_payer_meta.to_account_meta()] +
            _filter(is_signer=True, is_writable=True) +
            _filter(is_signer=True, is_writable=False) +
            _filter(is_signer=False, is_writable=True) +
            _filter(is_signer=False, is_writable=False)
        )

    @staticmethod
    def _find_key_idx(key_idx_dict: Dict[SolPubKey, int], key: SolPubKey) -> int:
        idx = key_idx_dict.get(key, None)
        if idx is None:
            raise ALTResolveError(f'Account {str(key)} is neither a static key nor found in lookup tables')
        return idx

    def resolve(self) -> ALTResolveResult:
        key_meta_dict = self._collect_key_meta_dict()
        alt_msg_list, alt_key_dict = self._filter_alt_msg_list(key_meta_dict)
        static_acct_list = self._filter_static_acct_list(key_meta_dict, alt_key_dict)

        account_key_list = [acct.pubkey for acct in static_acct_list]
        loaded_key_list = build_loaded_key_list(alt_msg_list, self._alt_acct_list)
        account_key_list.extend(key for key, _ in loaded_key_list)

        if len(account_key_list) > MAX_TX_ACCOUNT_CNT:
            raise ALTResolveError(
                f'Too big number of accounts in the transaction: {len(account_key_list)} > {MAX_TX_ACCOUNT_CNT}'
            )

        key_idx_dict: Dict[SolPubKey, int] = dict()
        for idx, key in enumerate(account_key_list):
            key_idx_dict.setdefault(key, idx)

        resolved_ix_list: List[ALTResolvedIx] = list()
        for ix in self._ix_list:
            acct_idx_list = [self._find_key_idx(key_idx_dict, acct.pubkey) for acct in ix.accounts]
            compiled_ix = SolCompiledIx(
                program_id_index=self._find_key_idx(key_idx_dict, ix.program_id),
                data=bytes(ix.data),
                accounts=bytes(acct_idx_list)
            )
            resolved_ix_list.append(
                ALTResolvedIx(
                    compiled_ix=compiled_ix,
                    signer_acct_list=tuple(acct for acct in ix.accounts if acct.is_signer)
                )
            )

        LOG.debug(
            f'Resolved {len(static_acct_list)} static accounts and '
            f'{len(loaded_key_list)} accounts from {len(alt_msg_list)} lookup tables'
        )

        return ALTResolveResult(
            static_acct_list=tuple(static_acct_list),
            alt_msg_list=tuple(alt_msg_list),
            account_key_list=tuple(account_key_list),
            ix_list=tuple(resolved_ix_list)
        )
