from pydantic import BaseModel
from typing import Optional


# =========================================================
# 🔑 TOKEN
# =========================================================

class TokenData(BaseModel):
    sub: str
    rol: str
    user_id: Optional[str] = None
