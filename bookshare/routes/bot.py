import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from bookshare.config import settings
from bookshare.database import get_db
from bookshare.services.bot import BotHandler, GENERIC_ERROR
from bookshare.services.telegram import TelegramClient, get_telegram_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bot", tags=["Bot"])

@router.post("")
def bot_webhook(
    update: dict,
    x_telegram_bot_api_secret_token: Optional[str] = Header(None),
    client: TelegramClient = Depends(get_telegram_client),
    db: Session = Depends(get_db)
):
    """Telegram webhook. Always answers 200 once the update is authenticated."""
    if settings.webhook_secret and x_telegram_bot_api_secret_token != settings.webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    handler = BotHandler(db, client)
    try:
        handler.handle_update(update)
    except Exception as e:
        # Telegram redelivers on non-2xx, so report the failure to the chat instead
        logger.exception(f"Error handling update {update.get('update_id')}: {e}")
        chat_id = ((update.get("message") or {}).get("chat") or {}).get("id")
        if chat_id is not None:
            try:
                client.send_message(chat_id, GENERIC_ERROR)
            except Exception as send_error:
                logger.error(f"Could not report error to chat {chat_id}: {send_error}")
    return {"ok": True}
