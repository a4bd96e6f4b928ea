import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from academy.models import match as match_model
from academy.models import participant as participant_model
from academy.models import profile as profile_model
from academy.models import tournament as tournament_model
from academy.schemas import participant_schemas, tournament_schemas
from academy.services import notification_service
from academy.services.standings import StandingsStrategy

logger = logging.getLogger(__name__)

Tournament = tournament_model.Tournament
Participant = participant_model.TournamentParticipant

STAGE_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    tournament_model.REGISTRATION: (tournament_model.GROUPS, tournament_model.KNOCKOUT),
    tournament_model.GROUPS: (tournament_model.KNOCKOUT, tournament_model.COMPLETED),
    tournament_model.KNOCKOUT: (tournament_model.COMPLETED,),
    tournament_model.COMPLETED: (),
}

MIN_PARTICIPANTS = {
    tournament_model.ELIMINAZIONE_DIRETTA: 2,
    tournament_model.GIRONE_ELIMINAZIONE: 3,
    tournament_model.CAMPIONATO: 2,
}

KNOCKOUT_ROUND_NAMES = {
    2: "Finale",
    4: "Semifinali",
    8: "Quarti di Finale",
    16: "Ottavi di Finale",
    32: "Sedicesimi di Finale",
    64: "Trentaduesimi di Finale",
}


def transition_stage(tournament: tournament_model.Tournament, target: str) -> None:
    current = tournament.current_stage or tournament_model.REGISTRATION
    if target not in STAGE_TRANSITIONS.get(current, ()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot move tournament from '{current}' to '{target}'",
        )
    tournament.current_stage = target
    logger.info("Tournament %s moved from %s to %s", tournament.id, current, target)


def knockout_round_name(num_participants: int) -> str:
    return KNOCKOUT_ROUND_NAMES.get(num_participants, f"Round di {num_participants}")


def knockout_first_round(seeded_ids: Sequence[int]) -> List[Tuple[int, Optional[int]]]:
    """
    Pairs seeds 1 vs last, 2 vs second-last, ...
    With an odd count the top seed gets a bye (None opponent).
    """
    seeded_ids = list(seeded_ids)
    pairings: List[Tuple[int, Optional[int]]] = []
    if len(seeded_ids) % 2 == 1:
        pairings.append((seeded_ids[0], None))
        seeded_ids = seeded_ids[1:]
    count = len(seeded_ids)
    for i in range(count // 2):
        pairings.append((seeded_ids[i], seeded_ids[count - 1 - i]))
    return pairings


def new_knockout_match(
    tournament_id: int,
    round_name: str,
    round_order: int,
    match_number: int,
    player1_id: Optional[int],
    player2_id: Optional[int],
    now: datetime,
) -> match_model.TournamentMatch:
    """
    A match with exactly one player is a bye: it is completed on creation and won
    by that player. A match with no players is an empty slot of a later round.
    """
    match = match_model.TournamentMatch(
        tournament_id=tournament_id,
        stage=match_model.STAGE_KNOCKOUT,
        round_name=round_name,
        round_order=round_order,
        match_number=match_number,
        player1_id=player1_id,
        player2_id=player2_id,
        status=match_model.SCHEDULED,
    )
    if (player1_id is None) != (player2_id is None):
        match.status = match_model.COMPLETED
        match.winner_id = player1_id if player1_id is not None else player2_id
        match.completed_at = now
    return match


def create_tournament(db: Session, tournament_in: tournament_schemas.TournamentCreate, creator_id: str) -> tournament_model.Tournament:
    db_tournament = Tournament(
        **tournament_in.model_dump(),
        created_by=creator_id,
        current_stage=tournament_model.REGISTRATION,
    )
    db.add(db_tournament)
    db.commit()
    db.refresh(db_tournament)
    return db_tournament


def get_tournament(db: Session, tournament_id: int) -> Optional[tournament_model.Tournament]:
    return db.query(Tournament).filter(Tournament.id == tournament_id).first()


def get_tournament_or_404(db: Session, tournament_id: int) -> tournament_model.Tournament:
    tournament = get_tournament(db, tournament_id)
    if not tournament:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tournament not found")
    return tournament


def list_tournaments(db: Session, stage: Optional[str] = None) -> List[tournament_model.Tournament]:
    query = db.query(Tournament)
    if stage:
        query = query.filter(Tournament.current_stage == stage)
    return query.order_by(Tournament.start_date, Tournament.id).all()


def confirmed_participants(db: Session, tournament_id: int) -> List[participant_model.TournamentParticipant]:
    return db.query(Participant).filter(
        Participant.tournament_id == tournament_id,
        Participant.status == participant_model.CONFIRMED,
    ).order_by(Participant.created_at, Participant.id).all()


def register_participant(
    db: Session,
    tournament_id: int,
    participant_in: participant_schemas.ParticipantCreate,
    current_user: profile_model.Profile,
) -> participant_model.TournamentParticipant:
    tournament = get_tournament_or_404(db, tournament_id)

    user_id = participant_in.user_id or current_user.id
    if user_id != current_user.id and not current_user.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to register another user")

    if tournament.current_stage != tournament_model.REGISTRATION:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Registrations are closed for this tournament")

    if not db.query(profile_model.Profile).filter(profile_model.Profile.id == user_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    existing = db.query(Participant).filter(Participant.tournament_id == tournament_id, Participant.user_id == user_id).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Already a participant in this tournament")

    if tournament.max_participants:
        active_count = db.query(func.count(Participant.id)).filter(
            Participant.tournament_id == tournament_id,
            Participant.status != participant_model.WITHDRAWN,
        ).scalar()
        if active_count >= tournament.max_participants:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tournament is full")

    # Enrollment by staff is already confirmed; self-registration waits for approval
    db_participant = Participant(
        tournament_id=tournament_id,
        user_id=user_id,
        status=participant_model.CONFIRMED if current_user.is_staff else participant_model.PENDING,
        seed=participant_in.seed if current_user.is_staff else None,
    )
    db.add(db_participant)
    db.commit()
    db.refresh(db_participant)
    return db_participant


def list_participants(db: Session, tournament_id: int, status_filter: Optional[str] = None) -> List[participant_model.TournamentParticipant]:
    get_tournament_or_404(db, tournament_id)
    query = db.query(Participant).filter(Participant.tournament_id == tournament_id)
    if status_filter:
        query = query.filter(Participant.status == status_filter)
    return query.order_by(Participant.created_at, Participant.id).all()


def update_participant(
    db: Session,
    tournament_id: int,
    participant_id: int,
    participant_update: participant_schemas.ParticipantUpdate,
) -> participant_model.TournamentParticipant:
    get_tournament_or_404(db, tournament_id)
    participant = db.query(Participant).filter(
        Participant.tournament_id == tournament_id,
        Participant.id == participant_id,
    ).first()
    if not participant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")

    for key, value in participant_update.model_dump(exclude_unset=True).items():
        setattr(participant, key, value)
    db.commit()
    db.refresh(participant)
    return participant


def start_tournament(db: Session, tournament_id: int) -> tournament_schemas.StageChangeResult:
    tournament = get_tournament_or_404(db, tournament_id)
    if tournament.current_stage != tournament_model.REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Tournament already in stage '{tournament.current_stage}'",
        )

    participants = confirmed_participants(db, tournament_id)
    min_participants = MIN_PARTICIPANTS.get(tournament.tournament_type)
    if min_participants is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported tournament type: {tournament.tournament_type}")
    if len(participants) < min_participants:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Not enough confirmed participants (minimum {min_participants}, current {len(participants)})",
        )

    if tournament.tournament_type == tournament_model.ELIMINAZIONE_DIRETTA:
        # Unseeded players are seeded after the existing seeds, in registration order
        next_seed = max((p.seed for p in participants if p.seed), default=0) + 1
        for participant in participants:
            if not participant.seed:
                participant.seed = next_seed
                next_seed += 1
        transition_stage(tournament, tournament_model.KNOCKOUT)
        message = "Tournament started, the bracket can now be generated"
    elif tournament.tournament_type == tournament_model.CAMPIONATO:
        transition_stage(tournament, tournament_model.GROUPS)
        message = "Championship started, the calendar can now be generated"
    else:
        transition_stage(tournament, tournament_model.GROUPS)
        message = "Group stage started, groups can now be generated"

    db.commit()

    notification_service.notify_users(
        db, [p.user_id for p in participants],
        title="Il torneo è iniziato!",
        message=f'Il torneo "{tournament.title}" è ora in corso. Controlla il tabellone per vedere i tuoi match.',
        type="tournament",
        link=f"/tournaments/{tournament.id}",
    )
    return tournament_schemas.StageChangeResult(
        message=message, tournament_id=tournament.id, current_stage=tournament.current_stage
    )


def _advance_from_groups(db: Session, tournament: tournament_model.Tournament, strategy: StandingsStrategy) -> tournament_schemas.StageChangeResult:
    groups = tournament.groups
    if not groups:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No groups have been generated for this tournament")

    qualified_ids: List[int] = []
    for group in groups:
        group_standings = strategy.standings_for_group(db, group)
        qualified_ids.extend(row.participant_id for row in group_standings[:group.advancement_count])

    if len(qualified_ids) < 2:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not enough qualified participants")

    seeds = {participant_id: index + 1 for index, participant_id in enumerate(qualified_ids)}
    group_ids = [g.id for g in groups]
    for participant in db.query(Participant).filter(Participant.group_id.in_(group_ids)).all():
        if participant.id in seeds:
            participant.seed = seeds[participant.id]
        elif participant.status == participant_model.CONFIRMED:
            participant.status = participant_model.ELIMINATED

    round_name = knockout_round_name(len(qualified_ids))
    now = datetime.utcnow()
    for number, (player1_id, player2_id) in enumerate(knockout_first_round(qualified_ids), start=1):
        db.add(new_knockout_match(tournament.id, round_name, 1, number, player1_id, player2_id, now))

    tournament.knockout_stage_config = {"starting_round": round_name, "num_participants": len(qualified_ids)}
    transition_stage(tournament, tournament_model.KNOCKOUT)
    db.commit()
    logger.info("Tournament %s: %d participants qualified for the knockout stage", tournament.id, len(qualified_ids))

    return tournament_schemas.StageChangeResult(
        message="Group stage completed, knockout stage started",
        tournament_id=tournament.id,
        current_stage=tournament.current_stage,
        qualified_count=len(qualified_ids),
    )


def advance_stage(db: Session, tournament_id: int, strategy: StandingsStrategy) -> tournament_schemas.StageChangeResult:
    tournament = get_tournament_or_404(db, tournament_id)

    if tournament.current_stage == tournament_model.GROUPS and tournament.tournament_type != tournament_model.CAMPIONATO:
        return _advance_from_groups(db, tournament, strategy)

    # A championship ends with its round-robin calendar
    if tournament.current_stage in (tournament_model.GROUPS, tournament_model.KNOCKOUT):
        transition_stage(tournament, tournament_model.COMPLETED)
        db.commit()
        return tournament_schemas.StageChangeResult(
            message="Tournament completed", tournament_id=tournament.id, current_stage=tournament.current_stage
        )

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid tournament stage: {tournament.current_stage}")


def complete_tournament(db: Session, tournament_id: int) -> tournament_schemas.StageChangeResult:
    tournament = get_tournament_or_404(db, tournament_id)
    transition_stage(tournament, tournament_model.COMPLETED)
    db.commit()
    return tournament_schemas.StageChangeResult(
        message="Tournament completed", tournament_id=tournament.id, current_stage=tournament.current_stage
    )
