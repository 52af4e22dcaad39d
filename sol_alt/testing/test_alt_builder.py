import os
import unittest

from typing import Dict, Optional
from unittest.mock import patch

from ..common_sol.config import Config
from ..common_sol.constants import ADDRESS_LOOKUP_TABLE_ID
from ..common_sol.errors import ALTError, SolTxError, SolTxSizeError
from ..common_sol.layouts import AccountInfo
from ..common_sol.solana_alt_builder import SolAccountReader, SolTxBuilder
from ..common_sol.solana_tx import SolTx
from ..common_sol.solana_types import SolAccount, SolBlockHash, SolPubKey

from .testing_helpers import new_key, signer, rw, ro, make_ix, make_alt_acct, make_alt_acct_info


class FakeAccountReader(SolAccountReader):
    def __init__(self) -> None:
        self.acct_info_dict: Dict[SolPubKey, AccountInfo] = dict()
        self.request_cnt = 0

    def add(self, acct_info: AccountInfo) -> None:
        self.acct_info_dict[acct_info.address] = acct_info

    def get_account_info(self, pubkey: SolPubKey) -> Optional[AccountInfo]:
        self.request_cnt += 1
        return self.acct_info_dict.get(pubkey, None)


class TestSolTxBuilder(unittest.TestCase):
    def setUp(self) -> None:
        self.solana = FakeAccountReader()
        self.signer = SolAccount()
        self.addr_list = [new_key() for _ in range(8)]
        self.alt_acct = make_alt_acct(self.addr_list)
        self.solana.add(make_alt_acct_info(self.alt_acct))

        self.ix = make_ix(new_key(), [signer(self.signer.pubkey())] + [rw(addr) for addr in self.addr_list[:4]] +
                          [ro(addr) for addr in self.addr_list[4:]])

    def _build_tx(self) -> SolTx:
        return SolTxBuilder.build_tx(
            'TestTx', self.signer.pubkey(), SolBlockHash.new_unique(), [self.ix], [self.alt_acct.table_account]
        )

    def test_get_alt_acct(self):
        builder = SolTxBuilder(Config(), self.solana)
        alt_acct = builder.get_alt_acct(self.alt_acct.table_account)
        self.assertEqual(alt_acct.table_account, self.alt_acct.table_account)
        self.assertEqual(alt_acct.addr_list, self.addr_list)

    def test_missing_alt_acct(self):
        builder = SolTxBuilder(Config(), self.solana)
        with self.assertRaises(ALTError):
            builder.get_alt_acct(new_key())

    def test_wrong_alt_owner(self):
        alt_acct = make_alt_acct([new_key()])
        self.solana.add(make_alt_acct_info(alt_acct, owner=new_key()))

        builder = SolTxBuilder(Config(), self.solana)
        with self.assertRaises(ALTError):
            builder.get_alt_acct(alt_acct.table_account)

        with patch.dict(os.environ, {'CHECK_ALT_OWNER': 'NO'}):
            builder = SolTxBuilder(Config(), self.solana)
        self.assertEqual(builder.get_alt_acct(alt_acct.table_account).table_account, alt_acct.table_account)

    def test_bad_alt_data(self):
        table_account = new_key()
        self.solana.add(AccountInfo(table_account, 1, ADDRESS_LOOKUP_TABLE_ID, bytes(20)))

        builder = SolTxBuilder(Config(), self.solana)
        with self.assertRaises(ALTError) as ctx:
            builder.get_alt_acct(table_account)
        self.assertIsNotNone(ctx.exception.__cause__)

    def test_deactivated_alt(self):
        alt_acct = make_alt_acct([new_key()], deactivation_slot=12345)
        self.solana.add(make_alt_acct_info(alt_acct))

        with patch.dict(os.environ, {'ALLOW_DEACTIVATED_ALT': 'NO'}):
            builder = SolTxBuilder(Config(), self.solana)
        with self.assertRaises(ALTError):
            builder.get_alt_acct(alt_acct.table_account)

        with patch.dict(os.environ, {'ALLOW_DEACTIVATED_ALT': 'YES'}):
            builder = SolTxBuilder(Config(), self.solana)
        self.assertFalse(builder.get_alt_acct(alt_acct.table_account).is_active())

    def test_sign_tx(self):
        builder = SolTxBuilder(Config(), self.solana)
        tx = self._build_tx()

        tx_data = builder.sign_tx(tx, [self.signer])
        self.assertEqual(self.solana.request_cnt, 1)

        decoded_tx = SolTx.deserialize(tx_data, [self.alt_acct])
        self.assertTrue(decoded_tx.verify())
        self.assertEqual(decoded_tx.serialize(), tx_data)

        msg = decoded_tx.compile_message()
        self.assertEqual(msg.account_key_list[0], self.signer.pubkey())
        self.assertEqual(msg.alt_msg_list[0].writable_indexes, bytes([0, 1, 2, 3]))
        self.assertEqual(msg.alt_msg_list[0].readonly_indexes, bytes([4, 5, 6, 7]))

    def test_sign_tx_with_passed_tables(self):
        builder = SolTxBuilder(Config(), self.solana)
        builder.sign_tx(self._build_tx(), [self.signer], [self.alt_acct])
        self.assertEqual(self.solana.request_cnt, 0)

    def test_sign_tx_without_signers(self):
        builder = SolTxBuilder(Config(), self.solana)
        with self.assertRaises(SolTxError):
            builder.sign_tx(self._build_tx(), [], [self.alt_acct])

    def test_tx_size(self):
        with patch.dict(os.environ, {'MAX_TX_SIZE': '128'}):
            config = Config()
        self.assertEqual(config.max_tx_size, 128)

        builder = SolTxBuilder(config, self.solana)
        with self.assertRaises(SolTxSizeError) as ctx:
            builder.sign_tx(self._build_tx(), [self.signer])
        self.assertEqual(ctx.exception.max_len, 128)
        self.assertGreater(ctx.exception.current_len, 128)


if __name__ == '__main__':
    unittest.main()
