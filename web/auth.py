"""
인증 (JWT Bearer)

토큰 발급/검증 정책은 외부 인증 제공자의 몫이며,
여기서는 서명 검증 후 sub 클레임을 Identity로 변환만 한다.
"""

from datetime import timedelta

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config.loader import WebConfig
from core.types import Identity
from core.utils.timezone import now_utc

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    config: WebConfig,
    user_id: str,
    expires_in: timedelta = timedelta(hours=1),
    display_name: str | None = None,
) -> str:
    """액세스 토큰 생성 (개발/테스트용)

    Args:
        config: Web 설정 (secret_key, jwt_algorithm)
        user_id: sub 클레임
        expires_in: 만료까지 시간
        display_name: name 클레임 (선택)

    Returns:
        서명된 JWT 문자열
    """
    now = now_utc()
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + expires_in,
    }
    if display_name:
        payload["name"] = display_name

    return jwt.encode(payload, config.secret_key, algorithm=config.jwt_algorithm)


def decode_identity(config: WebConfig, token: str) -> Identity:
    """토큰 검증 후 Identity 반환

    Raises:
        HTTPException: 401 (서명/만료/클레임 오류)
    """
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.jwt_algorithm])
    except jwt.PyJWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Identity(user_id=user_id, display_name=payload.get("name"))


async def get_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    """요청의 Bearer 토큰에서 Identity 추출"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return decode_identity(request.app.state.settings.web, credentials.credentials)
