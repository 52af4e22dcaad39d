from __future__ import annotations

import abc
import logging

from typing import Optional, List, Sequence

from .config import Config
from .errors import ALTError, MalformedDataError, SolTxError, SolTxSizeError
from .layouts import AccountInfo, ALTAccount
from .solana_tx import SolTx
from .solana_types import SolPubKey, SolBlockHash, SolTxIx, SolAccount
from .solana_versioned_message import SolMsgVersion
from .utils.json_logger import logging_context


LOG = logging.getLogger(__name__)


class SolAccountReader(abc.ABC):
    """Source of raw account data, usually an RPC client."""

    @abc.abstractmethod
    def get_account_info(self, pubkey: SolPubKey) -> Optional[AccountInfo]:
        pass


class SolTxBuilder:
    def __init__(self, config: Config, solana: SolAccountReader) -> None:
        self._config = config
        self._solana = solana

    def get_alt_acct(self, table_account: SolPubKey) -> ALTAccount:
        acct_info = self._solana.get_account_info(table_account)
        if acct_info is None:
            raise ALTError(f'Cannot read lookup table {str(table_account)}')

        try:
            alt_acct = ALTAccount.from_account_info(acct_info, self._config.check_alt_owner)
        except MalformedDataError as exc:
            raise ALTError(f'Cannot decode lookup table {str(table_account)}: {str(exc)}') from exc

        if alt_acct is None:
            raise ALTError(f'Account {str(table_account)} is not a lookup table')
        elif (not alt_acct.is_active()) and (not self._config.allow_deactivated_alt):
            raise ALTError(
                f'Lookup table {str(table_account)} is deactivated in the slot {alt_acct.state.deactivation_slot}'
            )

        LOG.debug(f'Read {alt_acct}')
        return alt_acct

    def get_alt_acct_list(self, table_account_list: Sequence[SolPubKey]) -> List[ALTAccount]:
        return [self.get_alt_acct(table_account) for table_account in table_account_list]

    @staticmethod
    def build_tx(name: str, fee_payer: SolPubKey, block_hash: SolBlockHash,
                 ix_list: Sequence[SolTxIx], alt_key_list: Sequence[SolPubKey] = tuple()) -> SolTx:
        return SolTx(
            name=name,
            ix_list=ix_list,
            fee_payer=fee_payer,
            recent_block_hash=block_hash,
            alt_key_list=alt_key_list,
            version=SolMsgVersion.V0
        )

    def sign_tx(self, tx: SolTx, signer_list: Sequence[SolAccount],
                alt_acct_list: Optional[Sequence[ALTAccount]] = None) -> bytes:
        if (alt_acct_list is None) and tx.alt_key_list:
            alt_acct_list = self.get_alt_acct_list(tx.alt_key_list)

        with logging_context(sol_tx=tx.name):
            if not tx.sign(signer_list, alt_acct_list):
                raise SolTxError(f'Transaction {tx.name} has wrong signatures')
            elif not tx.is_signed():
                raise SolTxError(f'Transaction {tx.name} has no signatures')

            tx_data = tx.serialize()
            if len(tx_data) > self._config.max_tx_size:
                raise SolTxSizeError(len(tx_data), self._config.max_tx_size)

            LOG.debug(f'Transaction {str(tx.sig)} has size {len(tx_data)}')
            return tx_data
