"""Fixtures for building real solders transactions without touching the network."""

import pytest
from solders.hash import Hash  # type: ignore[import-untyped]
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.message import MessageV0  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]
from solders.signature import Signature  # type: ignore[import-untyped]
from solders.system_program import TransferParams, transfer  # type: ignore[import-untyped]
from solders.transaction import VersionedTransaction  # type: ignore[import-untyped]


def build_message(payer: Keypair) -> MessageV0:
    ix = transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1_000))
    return MessageV0.try_compile(payer.pubkey(), [ix], [], Hash.default())


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def unsigned_tx(keypair: Keypair) -> VersionedTransaction:
    """What Jupiter's /swap returns: a compiled message with a blank signature slot."""
    return VersionedTransaction.populate(build_message(keypair), [Signature.default()])


@pytest.fixture
def signed_tx(keypair: Keypair) -> VersionedTransaction:
    return VersionedTransaction(build_message(keypair), [keypair])
