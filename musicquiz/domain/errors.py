from uuid import UUID


class CompositionError(Exception):
    """Base class for round-composition failures."""


class NoEligiblePlayers(CompositionError):
    """The lobby has no participating player to plan slots for."""


class OwnerExhausted(CompositionError):
    """The owner's catalog has no eligible game left for this slot."""

    def __init__(self, owner_id: UUID):
        super().__init__(f"No eligible game left for owner {owner_id}")
        self.owner_id = owner_id


class GameHadNoTrack(CompositionError):
    """The picked game has no eligible track under the current exclusions."""

    def __init__(self, game_id: UUID):
        super().__init__(f"No eligible track left in game {game_id}")
        self.game_id = game_id


class InsufficientHintPool(CompositionError):
    """Fewer hint games exist than a round entry needs."""

    def __init__(self, game_id: UUID, found: int):
        super().__init__(f"Only {found} hint games found for game {game_id}")
        self.game_id = game_id
        self.found = found
