from fastapi import HTTPException, Depends, status
from jose import jwt, JWTError
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError

from app.auth.controllers import SECRET_KEY, ALGORITHM
from app.auth.models import TokenData
from app.database.mongo import collection_auth

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


# ==============================================================
# ✅ Obtener usuario autenticado
# ==============================================================
async def get_current_user(token: str = Depends(oauth2_scheme)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudieron validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        token_data = TokenData(**payload)
    except (JWTError, ValidationError):
        raise credentials_exception

    user = await collection_auth.find_one({"correo_electronico": token_data.sub})
    if not user:
        raise credentials_exception

    return {
        "email": token_data.sub,
        "rol": user.get("rol", token_data.rol),
        "nombre": user.get("nombre"),
        # ⭐ El id del médico sale de la sesión, nunca de un parámetro
        "user_id": str(user.get("user_id") or user.get("_id")),
    }


def requiere_rol(*roles: str):
    """Dependencia que exige uno de los roles indicados (403 si no)."""

    async def _verificar(current_user: dict = Depends(get_current_user)):
        if current_user.get("rol") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No autorizado para este recurso",
            )
        return current_user

    return _verificar
