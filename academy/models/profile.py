from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from academy.core.database import Base
import datetime

ADMIN = "admin"
GESTORE = "gestore"  # academy manager
MAESTRO = "maestro"  # coach
ATLETA = "atleta"  # athlete

STAFF_ROLES = (ADMIN, GESTORE)
MATCH_EDITOR_ROLES = (ADMIN, GESTORE, MAESTRO)


class Profile(Base):
    __tablename__ = "profiles"

    # Issued by the identity provider, mirrored here
    id = Column(String, primary_key=True, index=True)
    full_name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=True)
    role = Column(String, default=ATLETA)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    bookings = relationship("Booking", back_populates="user", foreign_keys="Booking.user_id")
    participations = relationship("TournamentParticipant", back_populates="user")
    notifications = relationship("Notification", back_populates="user")

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
