from .solana_types import SolPubKey


ADDRESS_LOOKUP_TABLE_ID = SolPubKey.from_string('AddressLookupTab1e1111111111111111111111111')
SYS_PROGRAM_ID = SolPubKey.from_string('11111111111111111111111111111111')
RECENT_BLOCKHASHES_SYSVAR_ID = SolPubKey.from_string('SysvarRecentB1ockHashes11111111111111111111')

LOOKUP_ACCOUNT_TAG = 1
LOOKUP_TABLE_META_SIZE = 56
LOOKUP_TABLE_MAX_ADDRESSES = 256

U64_MAX = 2 ** 64 - 1

SIG_LENGTH = 64
BLOCK_HASH_LENGTH = 32

MSG_VERSION_PREFIX = 0x80
MAX_TX_ACCOUNT_CNT = 256

PACKET_DATA_SIZE = 1280 - 40 - 8
