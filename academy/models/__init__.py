from academy.core.database import Base

# Import all models here to ensure they are registered with Base
from .profile import Profile
from .booking import Booking
from .court_block import CourtBlock
from .tournament import Tournament
from .participant import TournamentParticipant
from .group import TournamentGroup
from .match import TournamentMatch
from .notification import Notification
