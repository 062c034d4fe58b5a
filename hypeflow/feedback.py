import logging
from typing import Optional

import requests
from hypeflow.config import settings
from hypeflow.types import Action

logger = logging.getLogger("hypeflow.feedback")


def compose_feedback(action: Action, amount: float, confidence: float) -> str:
    verb = "bought" if action.enters else "sold"
    strength = "strongly " if confidence > 0.7 else ""
    tone = "positive" if confidence > 0.5 else "negative"
    return (
        f"HypeFlow AI just {verb} {amount:g} ${settings.base_asset} because "
        f"sentiment is {strength}{tone}! #AptosHype #Web3 #HypeFlowAI"
    )


def post_feedback(message: str) -> Optional[dict]:
    """Post a status update. Never raises."""
    url = settings.feedback_webhook_url
    if not url:
        logger.info(f"[feedback] would have posted: {message}")
        return None
    try:
        r = requests.post(url, json={"text": message}, timeout=10)
    except requests.exceptions.RequestException as e:
        logger.error(f"[feedback] post failed: {e}")
        return None
    if r.status_code >= 300:
        logger.error(f"[feedback] post failed: HTTP {r.status_code} {r.text}")
        return None
    logger.info(f"[feedback] posted: {message}")
    try:
        return r.json()
    except ValueError:
        return {"status": r.status_code}
