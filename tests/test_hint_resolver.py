"""Tests for hint game resolution."""

from uuid import uuid4

import pytest

from musicquiz.domain.errors import InsufficientHintPool
from musicquiz.services.hint_resolver import HintResolver

PLAYER = uuid4()


def owned_game_with_track(catalog, name):
    game = catalog.add_game(name, owners=[PLAYER])
    catalog.add_track(game)
    return game


class TestHintResolver:
    async def test_similar_games_come_first_and_are_capped(self, catalog):
        answer = catalog.add_game("Answer", owners=[PLAYER])
        track = catalog.add_track(answer)
        similar = [owned_game_with_track(catalog, f"Similar {i}") for i in range(4)]
        for game in similar:
            catalog.mark_similar(answer, game)
        for i in range(3):
            owned_game_with_track(catalog, f"Other {i}")

        hints = await HintResolver(catalog).resolve(track, [PLAYER])

        similar_ids = {game.game_id for game in similar}
        assert len(hints) == 4
        assert len({hint.game_id for hint in hints}) == 4
        assert all(hint.game_id in similar_ids for hint in hints[:3])

    async def test_lineage_games_are_never_hints(self, catalog):
        answer = catalog.add_game("Answer", owners=[PLAYER])
        remake = catalog.add_game("Answer Remake", owners=[PLAYER])
        original = catalog.add_track(answer)
        catalog.add_track(remake, original=original)
        catalog.mark_similar(answer, remake)
        for i in range(4):
            owned_game_with_track(catalog, f"Other {i}")

        hints = await HintResolver(catalog).resolve(catalog.track(original.track_id), [PLAYER])

        hint_ids = {hint.game_id for hint in hints}
        assert answer.game_id not in hint_ids
        assert remake.game_id not in hint_ids
        assert len(hint_ids) == 4

    async def test_games_with_music_come_before_bare_games(self, catalog):
        answer = catalog.add_game("Answer", owners=[PLAYER])
        track = catalog.add_track(answer)
        with_music = [owned_game_with_track(catalog, f"Music {i}") for i in range(2)]
        for i in range(3):
            catalog.add_game(f"Bare {i}", owners=[PLAYER])

        hints = await HintResolver(catalog).resolve(track, [PLAYER])

        assert {hint.game_id for hint in hints[:2]} == {game.game_id for game in with_music}
        assert len(hints) == 4

    async def test_falls_back_to_unowned_games_with_music(self, catalog):
        answer = catalog.add_game("Answer", owners=[PLAYER])
        track = catalog.add_track(answer)
        unowned = []
        for i in range(4):
            game = catalog.add_game(f"Unowned {i}")
            catalog.add_track(game)
            unowned.append(game)
        catalog.add_game("Unowned bare")
        disabled = catalog.add_game("Disabled", enabled=False)
        catalog.add_track(disabled)

        hints = await HintResolver(catalog).resolve(track, [PLAYER])

        assert {hint.game_id for hint in hints} == {game.game_id for game in unowned}

    async def test_not_enough_games_raises(self, catalog):
        answer = catalog.add_game("Answer", owners=[PLAYER])
        track = catalog.add_track(answer)
        for i in range(3):
            owned_game_with_track(catalog, f"Other {i}")

        with pytest.raises(InsufficientHintPool) as excinfo:
            await HintResolver(catalog).resolve(track, [PLAYER])

        assert excinfo.value.found == 3
        assert excinfo.value.game_id == answer.game_id
