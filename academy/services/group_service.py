import logging
import random
from itertools import combinations
from typing import List, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from academy.models import group as group_model
from academy.models import match as match_model
from academy.models import participant as participant_model
from academy.models import tournament as tournament_model
from academy.schemas import group_schemas, participant_schemas
from academy.services import notification_service, tournament_service
from academy.services.standings import StandingsStrategy

logger = logging.getLogger(__name__)

Group = group_model.TournamentGroup
Participant = participant_model.TournamentParticipant

GROUP_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def group_label(index: int) -> str:
    return f"Gruppo {GROUP_LETTERS[index]}"


def assign_round_robin(participants: Sequence, num_groups: int, rng: random.Random) -> List[Tuple[object, int, int]]:
    """
    Shuffles the participants and deals them into groups like cards:
    the i-th shuffled participant goes to group i % num_groups at position i // num_groups + 1.
    Group sizes therefore differ by at most one.
    """
    shuffled = list(participants)
    rng.shuffle(shuffled)
    return [(participant, i % num_groups, i // num_groups + 1) for i, participant in enumerate(shuffled)]


def _with_standings(db: Session, group: group_model.TournamentGroup, strategy: StandingsStrategy) -> group_schemas.GroupWithStandings:
    try:
        standings = strategy.standings_for_group(db, group)
    except Exception as e:
        # Standings are informational here, the listing still succeeds
        db.rollback()
        logger.warning("Could not compute standings for group %s: %s", group.id, e)
        standings = []

    participants = db.query(Participant)\
        .filter(Participant.group_id == group.id)\
        .order_by(Participant.group_position, Participant.id)\
        .all()
    return group_schemas.GroupWithStandings(
        id=group.id,
        tournament_id=group.tournament_id,
        group_name=group.group_name,
        group_order=group.group_order,
        max_participants=group.max_participants,
        advancement_count=group.advancement_count,
        participants=[participant_schemas.ParticipantRead.model_validate(p) for p in participants],
        standings=standings,
    )


def generate_groups(
    db: Session,
    tournament_id: int,
    config: group_schemas.GroupStageConfig,
    rng: random.Random,
    strategy: StandingsStrategy,
    default_advancement_count: int = 2,
) -> group_schemas.GroupGenerationResult:
    tournament = tournament_service.get_tournament_or_404(db, tournament_id)

    if tournament.tournament_type != tournament_model.GIRONE_ELIMINAZIONE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Groups are only available for group-stage tournaments")
    if tournament.current_stage not in (tournament_model.REGISTRATION, tournament_model.GROUPS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot generate groups in stage '{tournament.current_stage}'",
        )
    if db.query(Group).filter(Group.tournament_id == tournament_id).count() > 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Groups have already been generated for this tournament")

    participants = tournament_service.confirmed_participants(db, tournament_id)
    if not participants:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No confirmed participants")
    if config.num_groups > len(participants):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot create {config.num_groups} groups with {len(participants)} participants",
        )

    advancement_count = config.advancement_count or default_advancement_count
    groups = [
        Group(
            tournament_id=tournament_id,
            group_name=group_label(index),
            group_order=index + 1,
            max_participants=config.participants_per_group,
            advancement_count=advancement_count,
        )
        for index in range(config.num_groups)
    ]
    db.add_all(groups)
    db.flush()

    for participant, group_index, position in assign_round_robin(participants, config.num_groups, rng):
        participant.group_id = groups[group_index].id
        participant.group_position = position

    tournament.group_stage_config = {
        "num_groups": config.num_groups,
        "participants_per_group": config.participants_per_group,
        "advancement_count": advancement_count,
    }
    if tournament.current_stage == tournament_model.REGISTRATION:
        tournament_service.transition_stage(tournament, tournament_model.GROUPS)
    db.commit()
    logger.info("Tournament %s: %d participants split into %d groups", tournament_id, len(participants), config.num_groups)

    names = {g.id: g.group_name for g in groups}
    for participant in participants:
        notification_service.notify_users(
            db, [participant.user_id],
            title="Gironi generati",
            message=f'Sei stato inserito nel {names[participant.group_id]} del torneo "{tournament.title}".',
            type="tournament",
            link=f"/tournaments/{tournament_id}",
        )

    return group_schemas.GroupGenerationResult(
        message=f"{config.num_groups} groups generated",
        groups=[_with_standings(db, group, strategy) for group in groups],
    )


def list_groups_with_standings(db: Session, tournament_id: int, strategy: StandingsStrategy) -> List[group_schemas.GroupWithStandings]:
    tournament_service.get_tournament_or_404(db, tournament_id)
    groups = db.query(Group).filter(Group.tournament_id == tournament_id).order_by(Group.group_order).all()
    return [_with_standings(db, group, strategy) for group in groups]


def generate_group_matches(db: Session, tournament_id: int) -> List[match_model.TournamentMatch]:
    """Every participant of a group plays every other participant of the same group once."""
    tournament = tournament_service.get_tournament_or_404(db, tournament_id)
    if tournament.current_stage != tournament_model.GROUPS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Group matches can only be generated in the group stage, current stage: '{tournament.current_stage}'",
        )

    groups = db.query(Group).filter(Group.tournament_id == tournament_id).order_by(Group.group_order).all()
    if not groups:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No groups have been generated for this tournament")

    existing = db.query(match_model.TournamentMatch).filter(
        match_model.TournamentMatch.tournament_id == tournament_id,
        match_model.TournamentMatch.stage == match_model.STAGE_GROUPS,
    ).count()
    if existing > 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Group matches have already been generated")

    matches = []
    match_number = 1
    for group in groups:
        members = db.query(Participant)\
            .filter(Participant.group_id == group.id)\
            .order_by(Participant.group_position, Participant.id)\
            .all()
        for player1, player2 in combinations(members, 2):
            matches.append(match_model.TournamentMatch(
                tournament_id=tournament_id,
                group_id=group.id,
                stage=match_model.STAGE_GROUPS,
                round_name=group.group_name,
                round_order=0,
                match_number=match_number,
                player1_id=player1.id,
                player2_id=player2.id,
                status=match_model.SCHEDULED,
            ))
            match_number += 1

    db.add_all(matches)
    db.commit()
    for match in matches:
        db.refresh(match)
    logger.info("Tournament %s: %d group matches generated", tournament_id, len(matches))
    return matches
