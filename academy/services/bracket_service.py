"""
Whole-tournament match generation.

`generate_bracket` lays out a single-elimination draw on a power-of-two
bracket: the first round is seeded, byes go to the top seeds and every later
round is created up front as empty slots. `generate_championship` builds the
round-robin calendar of a championship, one "Giornata" per round.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from academy.models import match as match_model
from academy.models import tournament as tournament_model
from academy.schemas import tournament_schemas
from academy.services import tournament_service

logger = logging.getLogger(__name__)

Match = match_model.TournamentMatch


def bracket_size(num_players: int) -> int:
    """Smallest power of two that fits every player."""
    return 2 ** math.ceil(math.log2(num_players))


def seeded_pairings(num_players: int) -> List[Tuple[int, Optional[int]]]:
    """
    First-round seed pairs: seed i meets seed size - i + 1.
    Seeds past the number of players are empty, so their opponent gets a bye (None).
    """
    size = bracket_size(num_players)
    pairings: List[Tuple[int, Optional[int]]] = []
    for seed in range(1, size // 2 + 1):
        opponent = size - seed + 1
        pairings.append((seed, opponent if opponent <= num_players else None))
    return pairings


def round_robin_rounds(player_ids: Sequence[int]) -> List[List[Tuple[int, int]]]:
    """
    Circle method: the first player stays put while the others rotate one place
    each round. With an odd field one player rests every round.
    """
    slots: List[Optional[int]] = list(player_ids)
    if len(slots) % 2 == 1:
        slots.append(None)

    rounds = []
    half = len(slots) // 2
    for _ in range(len(slots) - 1):
        pairs = [(slots[i], slots[-1 - i]) for i in range(half)]
        rounds.append([(home, away) for home, away in pairs if home is not None and away is not None])
        slots.insert(1, slots.pop())
    return rounds


def _ensure_no_matches(db: Session, tournament_id: int, detail: str) -> None:
    existing = db.query(Match).filter(Match.tournament_id == tournament_id).count()
    if existing > 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{detail} ({existing} existing matches)")


def generate_bracket(db: Session, tournament_id: int, now: Optional[datetime] = None) -> tournament_schemas.MatchGenerationResult:
    tournament = tournament_service.get_tournament_or_404(db, tournament_id)

    if tournament.tournament_type != tournament_model.ELIMINAZIONE_DIRETTA:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Brackets are only generated for single-elimination tournaments")
    if tournament.current_stage != tournament_model.KNOCKOUT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"The tournament must be in the knockout stage, current stage: '{tournament.current_stage}'",
        )
    _ensure_no_matches(db, tournament_id, "The bracket has already been generated, delete the existing matches to regenerate it")

    # Seeded players first, in seed order; unseeded ones after them in registration order
    participants = sorted(
        tournament_service.confirmed_participants(db, tournament_id),
        key=lambda p: (p.seed is None, p.seed or 0),
    )
    if len(participants) < 2:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not enough participants (minimum 2)")

    size = bracket_size(len(participants))
    total_rounds = int(math.log2(size))
    now = now or datetime.utcnow()

    matches = []
    first_round = tournament_service.knockout_round_name(size)
    for seed, opponent in seeded_pairings(len(participants)):
        player1_id = participants[seed - 1].id
        player2_id = participants[opponent - 1].id if opponent else None
        matches.append(tournament_service.new_knockout_match(
            tournament_id, first_round, 1, len(matches) + 1, player1_id, player2_id, now
        ))

    for round_order in range(2, total_rounds + 1):
        players_in_round = size // 2 ** (round_order - 1)
        round_name = tournament_service.knockout_round_name(players_in_round)
        for _ in range(players_in_round // 2):
            matches.append(tournament_service.new_knockout_match(
                tournament_id, round_name, round_order, len(matches) + 1, None, None, now
            ))

    db.add_all(matches)
    tournament.knockout_stage_config = {
        "starting_round": first_round,
        "num_participants": len(participants),
        "bracket_size": size,
    }
    db.commit()
    logger.info("Tournament %s: bracket of %d for %d participants, %d matches", tournament_id, size, len(participants), len(matches))

    return tournament_schemas.MatchGenerationResult(
        message="Bracket generated",
        tournament_id=tournament_id,
        matches_created=len(matches),
        rounds=total_rounds,
    )


def generate_championship(db: Session, tournament_id: int) -> tournament_schemas.MatchGenerationResult:
    tournament = tournament_service.get_tournament_or_404(db, tournament_id)

    if tournament.tournament_type != tournament_model.CAMPIONATO:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This tournament is not a championship")
    if tournament.current_stage not in (tournament_model.REGISTRATION, tournament_model.GROUPS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot generate the calendar in stage '{tournament.current_stage}'",
        )
    _ensure_no_matches(db, tournament_id, "The calendar has already been generated for this championship")

    participants = tournament_service.confirmed_participants(db, tournament_id)
    if len(participants) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At least 2 participants are needed to generate the calendar (found {len(participants)})",
        )

    rounds = round_robin_rounds([p.id for p in participants])
    matches = []
    for round_order, pairs in enumerate(rounds, start=1):
        for player1_id, player2_id in pairs:
            matches.append(Match(
                tournament_id=tournament_id,
                stage=match_model.STAGE_GROUPS,
                round_name=f"Giornata {round_order}",
                round_order=round_order,
                match_number=len(matches) + 1,
                player1_id=player1_id,
                player2_id=player2_id,
                status=match_model.SCHEDULED,
            ))

    db.add_all(matches)
    if tournament.current_stage == tournament_model.REGISTRATION:
        tournament_service.transition_stage(tournament, tournament_model.GROUPS)
    db.commit()
    logger.info("Tournament %s: championship calendar of %d rounds, %d matches", tournament_id, len(rounds), len(matches))

    return tournament_schemas.MatchGenerationResult(
        message="Championship calendar generated",
        tournament_id=tournament_id,
        matches_created=len(matches),
        rounds=len(rounds),
    )
