from __future__ import annotations

import logging

from typing import Optional, Sequence

from .errors import ALTError
from .layouts import ALTAccount
from .solana_alt_list_filter import ALTListFilter, ALTResolveResult
from .solana_types import SolPubKey, SolBlockHash, SolTxIx
from .solana_versioned_message import SolVersionedMsg, SolMsgVersion, SolMsgHdr


LOG = logging.getLogger(__name__)


class SolMsgCompiler:
    def __init__(self, version: SolMsgVersion,
                 fee_payer: SolPubKey,
                 recent_block_hash: SolBlockHash,
                 ix_list: Sequence[SolTxIx],
                 alt_acct_list: Sequence[ALTAccount] = tuple()) -> None:
        if (version == SolMsgVersion.Legacy) and len(alt_acct_list):
            raise ALTError('Legacy message cannot use address lookup tables')

        self._version = version
        self._recent_block_hash = recent_block_hash
        self._alt_filter = ALTListFilter(fee_payer, ix_list, alt_acct_list)

    def resolve(self) -> ALTResolveResult:
        return self._alt_filter.resolve()

    @staticmethod
    def _build_header(resolve_result: ALTResolveResult) -> SolMsgHdr:
        num_required_signatures = 0
        num_readonly_signed_accounts = 0
        num_readonly_unsigned_accounts = 0
        for acct in resolve_result.static_acct_list:
            if acct.is_signer:
                num_required_signatures += 1
                if not acct.is_writable:
                    num_readonly_signed_accounts += 1
            elif not acct.is_writable:
                num_readonly_unsigned_accounts += 1

        return SolMsgHdr(
            num_required_signatures=num_required_signatures,
            num_readonly_signed_accounts=num_readonly_signed_accounts,
            num_readonly_unsigned_accounts=num_readonly_unsigned_accounts
        )

    def compile(self, resolve_result: Optional[ALTResolveResult] = None) -> SolVersionedMsg:
        if resolve_result is None:
            resolve_result = self.resolve()
        hdr = self._build_header(resolve_result)

        msg = SolVersionedMsg(
            version=self._version,
            header=hdr,
            account_key_list=resolve_result.static_key_list,
            recent_block_hash=self._recent_block_hash,
            ix_list=resolve_result.compiled_ix_list,
            alt_msg_list=resolve_result.alt_msg_list
        )
        LOG.debug(f'Compiled {msg}')
        return msg
