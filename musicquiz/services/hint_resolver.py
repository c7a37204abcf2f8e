import logging
from typing import Dict, Iterable, List
from uuid import UUID

from musicquiz.catalog import Catalog, CatalogFilter
from musicquiz.domain.errors import InsufficientHintPool
from musicquiz.domain.round_rules import HINT_GAME_COUNT, SIMILAR_HINT_LIMIT, lineage_games
from musicquiz.models.schema_models import GameSchema, TrackSchema


class HintResolver:
    """Find the related games offered as hints for a round entry.

    The search widens in tiers: similar games the players own and that have
    music, then any owned game with music, then similar owned games, then any
    owned game, and finally any game with music in the catalog. Every tier
    excludes the answer games and the hints already found.
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    async def resolve(self, track: TrackSchema, player_ids: Iterable[UUID]) -> List[GameSchema]:
        """Resolve HINT_GAME_COUNT hint games for a track.

        Args:
            track (TrackSchema): Selected track, with its lineage loaded
            player_ids (Iterable[UUID]): Participating players

        Raises:
            InsufficientHintPool: The whole catalog has fewer candidates than needed

        Returns:
            List[GameSchema]: Distinct hint games, none of them an accepted answer
        """
        game_id = track.game_id
        owner_ids = frozenset(player_ids)
        hints: Dict[UUID, GameSchema] = {}
        excluded = {game.game_id for game in lineage_games(track)}

        tiers = [
            (True, CatalogFilter(owner_ids=owner_ids, require_track=True)),
            (False, CatalogFilter(owner_ids=owner_ids, require_track=True)),
            (True, CatalogFilter(owner_ids=owner_ids)),
            (False, CatalogFilter(owner_ids=owner_ids)),
            (False, CatalogFilter(require_track=True)),
        ]
        for tier, (similar_only, tier_filter) in enumerate(tiers, start=1):
            needed = HINT_GAME_COUNT - len(hints)
            limit = min(SIMILAR_HINT_LIMIT, needed) if tier == 1 else needed
            tier_filter = tier_filter.model_copy(
                update={"excluded_game_ids": frozenset(excluded), "limit": limit}
            )
            if similar_only:
                games = await self.catalog.query_similar_games(game_id, tier_filter)
            else:
                games = await self.catalog.query_games(tier_filter)

            for game in games[:limit]:
                if game.game_id in excluded:
                    continue
                hints[game.game_id] = game
                excluded.add(game.game_id)
            if len(hints) >= HINT_GAME_COUNT:
                return list(hints.values())
            logging.debug(f"Hint tier {tier} for game {game_id} left {len(hints)} hints")

        logging.error(f"Not enough hint games for game {game_id}: {len(hints)}")
        raise InsufficientHintPool(game_id, len(hints))
