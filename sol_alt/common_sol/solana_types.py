from __future__ import annotations

from typing import NamedTuple

import solders.hash
import solders.instruction
import solders.keypair
import solders.pubkey
import solders.signature


SolTxIx = solders.instruction.Instruction
SolAccountMeta = solders.instruction.AccountMeta
SolBlockHash = solders.hash.Hash
SolAccount = solders.keypair.Keypair
SolSig = solders.signature.Signature
SolPubKey = solders.pubkey.Pubkey


class SolSigPair(NamedTuple):
    pubkey: SolPubKey
    sig: SolSig
