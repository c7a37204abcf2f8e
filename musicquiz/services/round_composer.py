"""Compose the playlist of rounds for a lobby.

Planning -> Filling -> Finalizing -> Composed | Empty

Nothing is persisted before Finalizing, so a composition that fails or is
abandoned leaves no partial round behind.
"""

import logging
from collections import deque
from enum import Enum
from typing import Deque, List, Optional, Sequence, Set
from uuid import UUID

import numpy as np

from musicquiz.catalog import Catalog
from musicquiz.domain.difficulty import covers_all_bands
from musicquiz.domain.errors import (
    GameHadNoTrack,
    NoEligiblePlayers,
    OwnerExhausted,
)
from musicquiz.domain.quota import plan_slot_owners
from musicquiz.domain.round_rules import lineage_games, lobby_window, playback_window
from musicquiz.models.dc_models import (
    CompositionStatusModel,
    EmptyReasonModel,
    LobbyStatusModel,
)
from musicquiz.models.schema_models import LobbySchema, RoundEntrySchema
from musicquiz.services.candidate_selector import (
    Candidate,
    CandidateSelector,
    SelectionState,
)
from musicquiz.services.hint_resolver import HintResolver


class CompositionPhase(str, Enum):
    planning = "planning"
    filling = "filling"
    finalizing = "finalizing"
    composed = "composed"
    empty = "empty"


class PendingSlot:
    """A playlist slot waiting for a track, with the owners already tried for it."""

    def __init__(self, index: int, owner_id: UUID):
        self.index = index
        self.owner_id = owner_id
        self.tried_owner_ids: Set[UUID] = set()


class CompositionResult:
    def __init__(
        self,
        lobby_id: UUID,
        status: CompositionStatusModel,
        entries: Optional[List[RoundEntrySchema]] = None,
        reason: Optional[EmptyReasonModel] = None,
    ):
        self.lobby_id = lobby_id
        self.status = status
        self.entries = entries or []
        self.reason = reason


class RoundComposer:
    def __init__(self, catalog: Catalog, store, notifier, buffer_queue, rng: np.random.Generator = None):
        """
        Args:
            catalog (Catalog): Catalog query capability
            store: Persistence boundary (save_composed_round, mark_lobby_waiting, mark_lobby_playing)
            notifier: Fire-and-forget lobby notifications (on_progress, on_empty, on_status)
            buffer_queue: Downstream buffering trigger (enqueue_buffering)
            rng (np.random.Generator, optional): Source of randomness. Defaults to a fresh generator.
        """
        self.catalog = catalog
        self.store = store
        self.notifier = notifier
        self.buffer_queue = buffer_queue
        self.rng = rng if rng is not None else np.random.default_rng()
        self.hint_resolver = HintResolver(catalog)

    async def compose(self, lobby: LobbySchema, player_ids: Sequence[UUID]) -> CompositionResult:
        """Compose, persist and announce the round of a lobby.

        Any failure sends the lobby back to waiting before the error propagates,
        so the lobby can be composed again.

        Args:
            lobby (LobbySchema): Lobby configuration
            player_ids (Sequence[UUID]): Participating players (host and players, no spectators)

        Raises:
            InsufficientHintPool: The catalog cannot provide hints for a selected track

        Returns:
            CompositionResult: Composed entries, or an empty result with its reason
        """
        try:
            return await self._compose(lobby, list(dict.fromkeys(player_ids)))
        except Exception as e:
            logging.error(f"Round composition failed for lobby {lobby.lobby_id}: {e}")
            await self.store.mark_lobby_waiting(lobby.lobby_id)
            self.notifier.on_status(lobby.lobby_id, LobbyStatusModel.waiting)
            raise

    async def _compose(self, lobby: LobbySchema, player_ids: List[UUID]) -> CompositionResult:
        logging.info(f"Composing round for lobby {lobby.lobby_id}: {CompositionPhase.planning.value}")
        try:
            owners = plan_slot_owners(player_ids, lobby.track_count, self.rng)
        except NoEligiblePlayers:
            return await self._finish_empty(lobby, EmptyReasonModel.no_players)

        logging.info(f"Composing round for lobby {lobby.lobby_id}: {CompositionPhase.filling.value}")
        entries = await self._fill(lobby, player_ids, owners)

        logging.info(f"Composing round for lobby {lobby.lobby_id}: {CompositionPhase.finalizing.value}")
        if not entries:
            return await self._finish_empty(lobby, EmptyReasonModel.no_tracks)

        entries = finalize_entries(lobby, entries)
        await self.store.save_composed_round(lobby.lobby_id, entries)
        await self.store.mark_lobby_playing(lobby.lobby_id)
        await self.buffer_queue.enqueue_buffering(lobby.lobby_id)
        self.notifier.on_status(lobby.lobby_id, LobbyStatusModel.playing)
        logging.info(
            f"Composing round for lobby {lobby.lobby_id}: {CompositionPhase.composed.value} "
            f"({len(entries)}/{lobby.track_count} entries)"
        )
        return CompositionResult(lobby.lobby_id, CompositionStatusModel.composed, entries)

    async def _fill(
        self, lobby: LobbySchema, player_ids: List[UUID], owners: List[UUID]
    ) -> List[RoundEntrySchema]:
        exploration_ratio = await self.catalog.read_difficulty_coverage(player_ids)
        selector = CandidateSelector(self.catalog, lobby, exploration_ratio, self.rng)
        window = lobby_window(lobby.guess_window_seconds, lobby.reveal_extends_window)
        state = SelectionState()
        entries: List[RoundEntrySchema] = []
        pending: Deque[PendingSlot] = deque(
            PendingSlot(index, owner_id) for index, owner_id in enumerate(owners)
        )

        while pending:
            changed = False
            for _ in range(len(pending)):
                slot = pending.popleft()
                try:
                    candidate = await self._select_for_owner(selector, slot.owner_id, state)
                except OwnerExhausted:
                    changed = True
                    if self._borrow(slot, player_ids):
                        pending.append(slot)
                    else:
                        logging.debug(f"Dropped slot {slot.index} of lobby {lobby.lobby_id}")
                    continue

                entry = await self._build_entry(candidate, window, player_ids, len(entries) + 1)
                state.mark_used(candidate.track)
                await self.catalog.increment_play_count(candidate.track.track_id)
                entries.append(entry)
                changed = True
                self.notifier.on_progress(lobby.lobby_id, progress_percent(len(entries), lobby.track_count))
            if not changed:
                break
        return entries

    async def _select_for_owner(
        self, selector: CandidateSelector, owner_id: UUID, state: SelectionState
    ) -> Candidate:
        # Each miss blacklists a game, so the retries end once the owner runs out of games.
        while True:
            try:
                return await selector.select(owner_id, state)
            except GameHadNoTrack:
                continue

    def _borrow(self, slot: PendingSlot, player_ids: List[UUID]) -> bool:
        """Move an exhausted slot to a random player not tried yet."""
        slot.tried_owner_ids.add(slot.owner_id)
        untried = [player_id for player_id in player_ids if player_id not in slot.tried_owner_ids]
        if not untried:
            return False
        slot.owner_id = untried[int(self.rng.integers(len(untried)))]
        logging.debug(f"Slot {slot.index} borrowed by player {slot.owner_id}")
        return True

    async def _build_entry(
        self, candidate: Candidate, window: float, player_ids: List[UUID], position: int
    ) -> RoundEntrySchema:
        track = candidate.track
        start_offset, end_offset = playback_window(track.duration, window, self.rng)
        hint_games = await self.hint_resolver.resolve(track, player_ids)
        return RoundEntrySchema(
            position=position,
            track=track,
            start_offset=start_offset,
            end_offset=end_offset,
            accepted_answer_games=lineage_games(track),
            hint_games=hint_games,
            exploration_flag=candidate.exploring,
        )

    async def _finish_empty(self, lobby: LobbySchema, reason: EmptyReasonModel) -> CompositionResult:
        logging.info(f"Composing round for lobby {lobby.lobby_id}: {CompositionPhase.empty.value} ({reason.value})")
        await self.store.mark_lobby_waiting(lobby.lobby_id)
        self.notifier.on_empty(lobby.lobby_id, reason)
        self.notifier.on_status(lobby.lobby_id, LobbyStatusModel.waiting)
        return CompositionResult(lobby.lobby_id, CompositionStatusModel.empty, reason=reason)


def finalize_entries(lobby: LobbySchema, entries: List[RoundEntrySchema]) -> List[RoundEntrySchema]:
    """Number entries in fill order and drop exploration bookkeeping for all-band lobbies."""
    all_bands = covers_all_bands(lobby.difficulty_bands)
    return [
        entry.model_copy(
            update={
                "position": position,
                "exploration_flag": False if all_bands else entry.exploration_flag,
            }
        )
        for position, entry in enumerate(entries, start=1)
    ]


def progress_percent(filled: int, track_count: int) -> int:
    """Filled share of the playlist in percent, halves rounded up."""
    return int(filled * 100 / track_count + 0.5)
