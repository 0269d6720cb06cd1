from festvote.voting.stores.base import PerformerDirectory, VotingStore
from festvote.voting.stores.in_memory import InMemoryPerformerDirectory, InMemoryVotingStore
from festvote.voting.stores.sql import SqlPerformerDirectory, SqlVotingStore

__all__ = [
    "VotingStore",
    "PerformerDirectory",
    "InMemoryVotingStore",
    "InMemoryPerformerDirectory",
    "SqlVotingStore",
    "SqlPerformerDirectory",
]
