from pydantic import BaseModel
from typing import Optional


class TokenData(BaseModel):
    # Profile id issued by the identity provider
    profile_id: Optional[str] = None
