import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from academy.models import group as group_model
from academy.models import match as match_model
from academy.models import participant as participant_model
from academy.schemas import match_schemas
from academy.services import tournament_service

logger = logging.getLogger(__name__)

Match = match_model.TournamentMatch


def get_match(db: Session, match_id: int) -> Optional[match_model.TournamentMatch]:
    return db.query(Match).filter(Match.id == match_id).first()


def get_match_or_404(db: Session, match_id: int) -> match_model.TournamentMatch:
    match = get_match(db, match_id)
    if not match:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
    return match


def list_matches(
    db: Session,
    tournament_id: int,
    stage: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> List[match_model.TournamentMatch]:
    tournament_service.get_tournament_or_404(db, tournament_id)
    query = db.query(Match).filter(Match.tournament_id == tournament_id)
    if stage:
        query = query.filter(Match.stage == stage)
    if status_filter:
        query = query.filter(Match.status == status_filter)
    return query.order_by(Match.round_order, Match.scheduled_time, Match.match_number, Match.id).all()


def _check_player(db: Session, tournament_id: int, participant_id: Optional[int]) -> None:
    if participant_id is None:
        return
    participant = db.query(participant_model.TournamentParticipant).filter(
        participant_model.TournamentParticipant.id == participant_id,
        participant_model.TournamentParticipant.tournament_id == tournament_id,
    ).first()
    if not participant:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Participant {participant_id} is not registered in this tournament",
        )


def create_match(db: Session, tournament_id: int, match_in: match_schemas.MatchCreate) -> match_model.TournamentMatch:
    tournament_service.get_tournament_or_404(db, tournament_id)

    if match_in.player1_id is not None and match_in.player1_id == match_in.player2_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A player cannot play against themselves")
    _check_player(db, tournament_id, match_in.player1_id)
    _check_player(db, tournament_id, match_in.player2_id)

    if match_in.group_id is not None:
        group = db.query(group_model.TournamentGroup).filter(
            group_model.TournamentGroup.id == match_in.group_id,
            group_model.TournamentGroup.tournament_id == tournament_id,
        ).first()
        if not group:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Group does not belong to this tournament")

    db_match = Match(
        tournament_id=tournament_id,
        status=match_model.SCHEDULED,
        **match_in.model_dump(),
    )
    db.add(db_match)
    db.commit()
    db.refresh(db_match)
    return db_match


def organize_by_round(matches: Iterable[match_model.TournamentMatch]) -> Dict[str, List[match_model.TournamentMatch]]:
    """Groups matches by round name, rounds in round order and matches by number inside a round."""
    ordered = sorted(matches, key=lambda m: (m.round_order or 0, m.match_number or 0, m.id or 0))
    rounds: Dict[str, List[match_model.TournamentMatch]] = OrderedDict()
    for match in ordered:
        rounds.setdefault(match.round_name or f"Round {match.round_order}", []).append(match)
    return rounds


def knockout_bracket(db: Session, tournament_id: int) -> match_schemas.KnockoutBracketRead:
    matches = list_matches(db, tournament_id, stage=match_model.STAGE_KNOCKOUT)
    rounds = organize_by_round(matches)
    return match_schemas.KnockoutBracketRead(
        matches=[match_schemas.MatchRead.model_validate(m) for m in matches],
        rounds={
            name: [match_schemas.MatchRead.model_validate(m) for m in round_matches]
            for name, round_matches in rounds.items()
        },
    )


def apply_status_transition(match: match_model.TournamentMatch, new_status: str, now: datetime) -> None:
    """
    Moves a match forward along scheduled -> in_progress -> completed.
    Skipping ahead is allowed, going back is not. Timestamps are set once.
    """
    current = match.status or match_model.SCHEDULED
    if match_model.STATUS_ORDER.index(new_status) < match_model.STATUS_ORDER.index(current):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot move match from '{current}' back to '{new_status}'",
        )

    match.status = new_status
    if new_status == match_model.IN_PROGRESS and match.started_at is None:
        match.started_at = now
    if new_status == match_model.COMPLETED and match.completed_at is None:
        match.completed_at = now


def update_match(
    db: Session,
    match_id: int,
    match_update: match_schemas.MatchUpdate,
    now: Optional[datetime] = None,
) -> match_model.TournamentMatch:
    match = get_match_or_404(db, match_id)
    update_data = match_update.model_dump(exclude_unset=True)

    for field in ("player1_id", "player2_id"):
        if field in update_data:
            _check_player(db, match.tournament_id, update_data[field])
    player1_id = update_data.get("player1_id", match.player1_id)
    player2_id = update_data.get("player2_id", match.player2_id)
    if player1_id is not None and player1_id == player2_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A player cannot play against themselves")

    winner_id = update_data.get("winner_id")
    if winner_id is not None and winner_id not in (player1_id, player2_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Winner must be one of the two players")

    new_status = update_data.pop("status", None)
    if new_status is not None:
        apply_status_transition(match, new_status, now or datetime.utcnow())

    for key, value in update_data.items():
        setattr(match, key, value)

    db.commit()
    db.refresh(match)
    logger.info("Match %s updated: status=%s winner=%s", match.id, match.status, match.winner_id)
    return match


def delete_matches(db: Session, tournament_id: int) -> match_schemas.MatchDeletionResult:
    """Removes every match of a tournament so its bracket or calendar can be generated again."""
    tournament_service.get_tournament_or_404(db, tournament_id)
    deleted = db.query(Match).filter(Match.tournament_id == tournament_id).delete(synchronize_session="fetch")
    db.commit()
    logger.info("Tournament %s: %d matches deleted", tournament_id, deleted)

    if not deleted:
        return match_schemas.MatchDeletionResult(message="No matches to delete", deleted=0)
    return match_schemas.MatchDeletionResult(message=f"{deleted} matches deleted", deleted=deleted)
