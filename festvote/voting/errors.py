class VotingError(Exception):
    """Base exception for the voting core."""
    pass


class InvalidStateError(VotingError):
    """Raised when a transition is not allowed from the current round state."""
    pass


class NoActiveGroupError(VotingError):
    """Raised when closing while no group is open."""
    pass


class PrematureRevealError(VotingError):
    """Raised when revealing results while a group is still open."""
    pass


class PersistenceConflict(VotingError):
    """Raised when a config write loses the compare-and-swap on its version."""

    def __init__(self, show_slug: str, expected_version: int):
        super().__init__(f"config for {show_slug!r} changed since version {expected_version}")
        self.show_slug = show_slug
        self.expected_version = expected_version


class StorageUnavailable(VotingError):
    """Raised when the backing store cannot be reached."""
    pass


class DuplicateVoteError(VotingError):
    """Raised by a store when appended rows hit the identity/rank uniqueness constraint."""
    pass
