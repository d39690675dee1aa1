import hashlib
import hmac
import json
import logging
import time
from typing import Optional
from urllib.parse import parse_qsl, urlencode
from fastapi import Depends, HTTPException, Header, status
from pydantic import ValidationError
from bookshare.config import settings
from bookshare.schemas.auth import InitData
from bookshare.services.telegram import TelegramClient, get_telegram_client

logger = logging.getLogger(__name__)

# Statuses of the admin group that grant admin rights
ADMIN_MEMBER_STATUSES = ("member", "administrator", "creator")


class InitDataError(Exception):
    """Signed init data failed signature, freshness or format checks."""


def _secret_key(bot_token: str) -> bytes:
    return hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()


def _data_check_string(pairs: dict) -> str:
    return "\n".join(f"{key}={pairs[key]}" for key in sorted(pairs))


def sign_init_data(fields: dict, bot_token: str, auth_date: Optional[int] = None) -> str:
    """Build a signed init data string the way Telegram does. Used by tests and tooling."""
    pairs = {key: value if isinstance(value, str) else json.dumps(value) for key, value in fields.items()}
    pairs["auth_date"] = str(int(time.time()) if auth_date is None else auth_date)
    signature = hmac.new(_secret_key(bot_token), _data_check_string(pairs).encode(), hashlib.sha256).hexdigest()
    pairs["hash"] = signature
    return urlencode(pairs)


def validate_init_data(raw: str, bot_token: str, expires_in: int = 3600, now: Optional[float] = None) -> InitData:
    """Verify the HMAC of Telegram Mini App init data and its age, then parse it."""
    try:
        pairs = dict(parse_qsl(raw, keep_blank_values=True, strict_parsing=True))
    except ValueError:
        raise InitDataError("init data is not a query string")

    received_hash = pairs.pop("hash", None)
    if not received_hash:
        raise InitDataError("hash is missing")

    expected_hash = hmac.new(_secret_key(bot_token), _data_check_string(pairs).encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected_hash, received_hash):
        raise InitDataError("signature mismatch")

    try:
        auth_date = int(pairs.get("auth_date", ""))
    except ValueError:
        raise InitDataError("auth_date is missing")

    current = time.time() if now is None else now
    if expires_in > 0 and current - auth_date > expires_in:
        raise InitDataError("init data expired")

    try:
        user = json.loads(pairs["user"]) if "user" in pairs else None
        return InitData(auth_date=auth_date, query_id=pairs.get("query_id"), user=user)
    except (ValueError, ValidationError) as e:
        raise InitDataError(f"user payload is invalid: {e}")


def get_init_data(authorization: Optional[str] = Header(None)) -> InitData:
    """Read ``Authorization: tma <initDataRaw>`` and verify it."""
    auth_type, _, auth_data = (authorization or "").partition(" ")
    if auth_type != "tma" or not auth_data:
        logger.warning("Authorization header missing or not in tma format")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    try:
        return validate_init_data(auth_data, settings.bot_token, expires_in=settings.init_data_expires_in)
    except InitDataError as e:
        logger.warning(f"Init data validation error: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid init data",
        )


def get_current_user(init_data: InitData = Depends(get_init_data)):
    """Telegram user the verified init data was issued for."""
    if init_data.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found in init data",
        )
    return init_data.user


def is_user_admin(client: TelegramClient, user_id: int, admin_group_id: Optional[str] = None) -> bool:
    """Membership of the admin group. Any failure of the check means not admin."""
    group_id = settings.admin_group_id if admin_group_id is None else admin_group_id
    if not group_id:
        return False

    try:
        member = client.get_chat_member(group_id, user_id)
        return member.get("status") in ADMIN_MEMBER_STATUSES
    except Exception as e:
        logger.warning(f"Admin check for user {user_id} failed: {e}")
        return False


def get_is_admin(
    user=Depends(get_current_user),
    client: TelegramClient = Depends(get_telegram_client),
) -> bool:
    return is_user_admin(client, user.id)


def require_admin(is_admin: bool = Depends(get_is_admin)) -> bool:
    if not is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Admin access required",
        )
    return True
