"""Tests for the round composition state machine."""

from collections import Counter
from uuid import uuid4

import pytest

from musicquiz.domain.difficulty import Difficulty
from musicquiz.domain.errors import InsufficientHintPool
from musicquiz.models.dc_models import (
    CompositionStatusModel,
    EmptyReasonModel,
    LobbyStatusModel,
)
from musicquiz.services.round_composer import RoundComposer, progress_percent
from tests.doubles import make_lobby


@pytest.fixture
def composer(catalog, store, notifier, buffer_queue, rng):
    return RoundComposer(catalog, store, notifier, buffer_queue, rng)


def give_games(catalog, player_id, count, **track_kwargs):
    games = []
    for i in range(count):
        game = catalog.add_game(f"{player_id} game {i}", owners=[player_id])
        catalog.add_track(game, **track_kwargs)
        games.append(game)
    return games


def seed_hint_games(catalog, count=4):
    for i in range(count):
        game = catalog.add_game(f"Catalog game {i}")
        catalog.add_track(game)


class TestComposed:
    async def test_three_players_fill_every_slot(self, composer, catalog, store, buffer_queue):
        players = [uuid4() for _ in range(3)]
        for player_id in players:
            give_games(catalog, player_id, 3)
        lobby = make_lobby(track_count=6)

        result = await composer.compose(lobby, players)

        assert result.status == CompositionStatusModel.composed
        assert [entry.position for entry in result.entries] == [1, 2, 3, 4, 5, 6]
        assert len({entry.track.game_id for entry in result.entries}) == 6
        assert len({entry.track.track_id for entry in result.entries}) == 6
        assert store.saved == [(lobby.lobby_id, result.entries)]
        assert store.statuses == [(lobby.lobby_id, "playing")]
        assert buffer_queue.enqueued == [lobby.lobby_id]

    async def test_slots_follow_owner_quota(self, composer, catalog):
        players = [uuid4() for _ in range(3)]
        owner_of = {}
        for player_id in players:
            for game in give_games(catalog, player_id, 3):
                owner_of[game.game_id] = player_id

        result = await composer.compose(make_lobby(track_count=6), players)

        counts = Counter(owner_of[entry.track.game_id] for entry in result.entries)
        assert all(counts[player_id] == 2 for player_id in players)

    async def test_entries_carry_window_answers_and_hints(self, composer, catalog):
        player_id = uuid4()
        give_games(catalog, player_id, 3, duration=200.0)
        seed_hint_games(catalog)

        result = await composer.compose(make_lobby(track_count=3), [player_id])

        for entry in result.entries:
            assert entry.end_offset - entry.start_offset == pytest.approx(30)
            assert 30 <= entry.end_offset <= 200.0
            answer_ids = {game.game_id for game in entry.accepted_answer_games}
            hint_ids = {game.game_id for game in entry.hint_games}
            assert entry.track.game_id in answer_ids
            assert len(hint_ids) == 4
            assert not answer_ids & hint_ids

    async def test_play_counts_are_incremented(self, composer, catalog):
        player_id = uuid4()
        give_games(catalog, player_id, 2)
        seed_hint_games(catalog)

        result = await composer.compose(make_lobby(track_count=2), [player_id])

        for entry in result.entries:
            assert catalog.play_count(entry.track.track_id) == 1

    async def test_progress_and_status_are_announced(self, composer, catalog, notifier):
        players = [uuid4() for _ in range(3)]
        for player_id in players:
            give_games(catalog, player_id, 3)

        await composer.compose(make_lobby(track_count=6), players)

        assert notifier.progress == [17, 33, 50, 67, 83, 100]
        assert notifier.statuses == [LobbyStatusModel.playing]
        assert notifier.empties == []

    async def test_duplicate_player_ids_count_once(self, composer, catalog):
        player_id = uuid4()
        give_games(catalog, player_id, 2)
        seed_hint_games(catalog)

        result = await composer.compose(make_lobby(track_count=2), [player_id, player_id])

        assert len(result.entries) == 2


class TestShortfall:
    async def test_exhausted_slots_are_borrowed(self, composer, catalog):
        empty_handed, collector = uuid4(), uuid4()
        collection = give_games(catalog, collector, 4)
        seed_hint_games(catalog)

        result = await composer.compose(make_lobby(track_count=4), [empty_handed, collector])

        assert len(result.entries) == 4
        assert {entry.track.game_id for entry in result.entries} == {
            game.game_id for game in collection
        }

    async def test_unfillable_slots_are_dropped(self, composer, catalog, notifier):
        player_id = uuid4()
        give_games(catalog, player_id, 2)
        seed_hint_games(catalog)

        result = await composer.compose(make_lobby(track_count=5), [player_id])

        assert result.status == CompositionStatusModel.composed
        assert [entry.position for entry in result.entries] == [1, 2]
        assert notifier.progress == [20, 40]

    async def test_duplicate_games_reuse_one_game(self, composer, catalog):
        player_id = uuid4()
        game = catalog.add_game("Soundtrack", owners=[player_id])
        for _ in range(3):
            catalog.add_track(game)
        seed_hint_games(catalog)

        result = await composer.compose(
            make_lobby(track_count=3, allow_duplicate_games=True), [player_id]
        )

        assert [entry.track.game_id for entry in result.entries] == [game.game_id] * 3
        assert len({entry.track.track_id for entry in result.entries}) == 3

    async def test_short_track_plays_whole(self, composer, catalog):
        player_id = uuid4()
        give_games(catalog, player_id, 1, duration=35.0)
        seed_hint_games(catalog)

        result = await composer.compose(
            make_lobby(track_count=1, guess_window_seconds=30, reveal_extends_window=True),
            [player_id],
        )

        entry = result.entries[0]
        assert (entry.start_offset, entry.end_offset) == (0.0, 35.0)


class TestExplorationFlag:
    async def test_all_bands_clear_the_flag(self, composer, catalog):
        player_id = uuid4()
        give_games(catalog, player_id, 3)
        seed_hint_games(catalog)

        result = await composer.compose(
            make_lobby(track_count=3, allow_exploration=True), [player_id]
        )

        assert len(result.entries) == 3
        assert not any(entry.exploration_flag for entry in result.entries)

    async def test_unmeasured_catalog_explores_with_partial_bands(self, composer, catalog):
        player_id = uuid4()
        give_games(catalog, player_id, 3)
        seed_hint_games(catalog)

        result = await composer.compose(
            make_lobby(
                track_count=3, allow_exploration=True, difficulty_bands=[Difficulty.easy]
            ),
            [player_id],
        )

        assert len(result.entries) == 3
        assert all(entry.exploration_flag for entry in result.entries)


class TestEmpty:
    async def test_no_players(self, composer, store, notifier, buffer_queue):
        lobby = make_lobby()

        result = await composer.compose(lobby, [])

        assert result.status == CompositionStatusModel.empty
        assert result.reason == EmptyReasonModel.no_players
        assert result.entries == []
        assert store.saved == []
        assert store.statuses == [(lobby.lobby_id, "waiting")]
        assert notifier.empties == [EmptyReasonModel.no_players]
        assert notifier.statuses == [LobbyStatusModel.waiting]
        assert buffer_queue.enqueued == []

    async def test_no_tracks(self, composer, catalog, store, notifier):
        player_id = uuid4()
        disabled = catalog.add_game("Disabled", owners=[player_id], enabled=False)
        catalog.add_track(disabled)
        lobby = make_lobby(track_count=3)

        result = await composer.compose(lobby, [player_id])

        assert result.status == CompositionStatusModel.empty
        assert result.reason == EmptyReasonModel.no_tracks
        assert store.saved == []
        assert notifier.empties == [EmptyReasonModel.no_tracks]
        assert notifier.progress == []


class TestHintFailure:
    async def test_lobby_returns_to_waiting(self, composer, catalog, store, notifier, buffer_queue):
        player_id = uuid4()
        give_games(catalog, player_id, 1)
        lobby = make_lobby(track_count=1)

        with pytest.raises(InsufficientHintPool):
            await composer.compose(lobby, [player_id])

        assert store.saved == []
        assert store.statuses == [(lobby.lobby_id, "waiting")]
        assert notifier.statuses == [LobbyStatusModel.waiting]
        assert buffer_queue.enqueued == []


class FailingBufferQueue:
    async def enqueue_buffering(self, lobby_id):
        raise ConnectionError("redis is down")


class TestFailure:
    async def test_catalog_failure_returns_lobby_to_waiting(self, composer, catalog, store, notifier):
        player_id = uuid4()
        give_games(catalog, player_id, 1)
        seed_hint_games(catalog)
        lobby = make_lobby(track_count=1)

        async def broken_query(game_id, catalog_filter):
            raise ConnectionError("database is down")

        catalog.query_tracks_for_game = broken_query

        with pytest.raises(ConnectionError):
            await composer.compose(lobby, [player_id])

        assert store.saved == []
        assert store.statuses == [(lobby.lobby_id, "waiting")]
        assert notifier.statuses == [LobbyStatusModel.waiting]

    async def test_buffering_failure_returns_lobby_to_waiting(self, catalog, store, notifier, rng):
        player_id = uuid4()
        give_games(catalog, player_id, 1)
        seed_hint_games(catalog)
        lobby = make_lobby(track_count=1)
        composer = RoundComposer(catalog, store, notifier, FailingBufferQueue(), rng)

        with pytest.raises(ConnectionError):
            await composer.compose(lobby, [player_id])

        assert store.statuses[-1] == (lobby.lobby_id, "waiting")
        assert notifier.statuses == [LobbyStatusModel.waiting]


class TestProgress:
    @pytest.mark.parametrize(
        "filled,track_count,percent",
        [(1, 8, 13), (3, 8, 38), (1, 6, 17), (2, 6, 33), (1, 3, 33), (2, 3, 67), (4, 4, 100)],
    )
    def test_halves_round_up(self, filled, track_count, percent):
        assert progress_percent(filled, track_count) == percent

    async def test_progress_for_partial_round(self, composer, catalog, notifier):
        player_id = uuid4()
        give_games(catalog, player_id, 1)
        seed_hint_games(catalog)

        await composer.compose(make_lobby(track_count=8), [player_id])

        assert notifier.progress == [13]
