from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from beanie import PydanticObjectId
from bson.errors import InvalidId
from app.core.config import settings
from app.models.user import User
from app.schemas.user import TokenData

# 1. SETUP OAUTH2
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# 2. GET CURRENT USER (Base Dependency)
async def get_current_user(token: str = Depends(oauth2_scheme)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        user_id: str = payload.get("sub")
        if user_id is None or payload.get("type") != "access":
            raise credentials_exception
        token_data = TokenData(user_id=user_id)
        object_id = PydanticObjectId(token_data.user_id)
    except (JWTError, InvalidId, TypeError):
        raise credentials_exception

    user = await User.get(object_id)
    if user is None:
        raise credentials_exception

    return user

# 3. GET ACTIVE USER
async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user
