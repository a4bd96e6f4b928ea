"""
Group standings.

The ranking is a pluggable strategy: the in-process calculator works from the
stored match results, while `DatabaseFunctionStandings` delegates to the
`calculate_group_standings` routine when the database provides one.
"""
import logging
from typing import Dict, Iterable, List

from sqlalchemy import text
from sqlalchemy.orm import Session

from academy.core.config import Settings
from academy.models import group as group_model
from academy.models import match as match_model
from academy.models import participant as participant_model
from academy.schemas.group_schemas import GroupStanding

logger = logging.getLogger(__name__)


class StandingsStrategy:

    def standings_for_group(self, db: Session, group: group_model.TournamentGroup) -> List[GroupStanding]:
        participants = db.query(participant_model.TournamentParticipant)\
            .filter(participant_model.TournamentParticipant.group_id == group.id)\
            .order_by(participant_model.TournamentParticipant.group_position, participant_model.TournamentParticipant.id)\
            .all()
        matches = db.query(match_model.TournamentMatch).filter(
            match_model.TournamentMatch.group_id == group.id,
            match_model.TournamentMatch.stage == match_model.STAGE_GROUPS,
            match_model.TournamentMatch.status == match_model.COMPLETED,
        ).all()
        return self.compute(participants, matches)

    def compute(
        self,
        participants: Iterable[participant_model.TournamentParticipant],
        matches: Iterable[match_model.TournamentMatch],
    ) -> List[GroupStanding]:
        raise NotImplementedError


class InProcessStandings(StandingsStrategy):
    """Points per win; ties broken by set difference, then game difference."""

    def __init__(self, points_per_win: int = 2):
        self.points_per_win = points_per_win

    @staticmethod
    def _sets(match: match_model.TournamentMatch) -> List[tuple]:
        if match.score_details:
            return [(s["player1_score"], s["player2_score"]) for s in match.score_details]
        return []

    def compute(self, participants, matches) -> List[GroupStanding]:
        rows: Dict[int, GroupStanding] = {
            p.id: GroupStanding(participant_id=p.id, user_id=p.user_id) for p in participants
        }

        for match in matches:
            if match.status != match_model.COMPLETED:
                continue
            sets = self._sets(match)
            for participant_id, is_player1 in ((match.player1_id, True), (match.player2_id, False)):
                row = rows.get(participant_id)
                if row is None:
                    continue

                if sets:
                    for p1_games, p2_games in sets:
                        mine, theirs = (p1_games, p2_games) if is_player1 else (p2_games, p1_games)
                        row.games_won += mine
                        row.games_lost += theirs
                        if mine > theirs:
                            row.sets_won += 1
                        elif theirs > mine:
                            row.sets_lost += 1
                elif match.player1_score is not None and match.player2_score is not None:
                    # Only the set count was recorded
                    mine, theirs = (match.player1_score, match.player2_score) if is_player1 \
                        else (match.player2_score, match.player1_score)
                    row.sets_won += mine
                    row.sets_lost += theirs

                if match.winner_id == participant_id:
                    row.wins += 1
                    row.points += self.points_per_win
                elif match.winner_id is not None:
                    row.losses += 1

        return sorted(
            rows.values(),
            key=lambda r: (-r.points, -r.sets_diff, -r.games_diff, r.participant_id),
        )


class DatabaseFunctionStandings(StandingsStrategy):
    """Reads standings from the database-side `calculate_group_standings` routine."""

    QUERY = text("SELECT * FROM calculate_group_standings(:group_uuid)")

    def standings_for_group(self, db: Session, group: group_model.TournamentGroup) -> List[GroupStanding]:
        rows = db.execute(self.QUERY, {"group_uuid": group.id}).mappings().all()
        return [
            GroupStanding(
                participant_id=row["participant_id"],
                user_id=row.get("user_id"),
                wins=row.get("wins") or 0,
                losses=row.get("losses") or 0,
                sets_won=row.get("sets_won") or 0,
                sets_lost=row.get("sets_lost") or 0,
                games_won=row.get("games_won") or 0,
                games_lost=row.get("games_lost") or 0,
                points=row.get("points") or 0,
            )
            for row in rows
        ]


def build_strategy(settings: Settings) -> StandingsStrategy:
    if settings.STANDINGS_BACKEND == "database":
        return DatabaseFunctionStandings()
    if settings.STANDINGS_BACKEND == "in_process":
        return InProcessStandings(points_per_win=settings.POINTS_PER_WIN)
    raise ValueError(f"Unknown standings backend: {settings.STANDINGS_BACKEND}")
