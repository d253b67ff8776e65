"""BitGo transfer webhook.

Once the shared secret checks out the endpoint always acknowledges with
``{"ok": true}``: unprocessable events are logged, not bounced, so BitGo
does not retry them.
"""

import hmac
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from paydail.api.deps import get_reconciler
from paydail.config import Settings, get_settings
from paydail.webhook.reconciler import DepositReconciler

logger = logging.getLogger(__name__)

router = APIRouter()

WEBHOOK_PATH = "/api/bitgo/webhook"
SECRET_HEADER = "x-bitgo-webhook-secret"


def _provided_secret(request: Request, body: Any) -> Optional[str]:
    """Secret from header, then query string, then body."""
    body_secret = body.get("secret") if isinstance(body, dict) else None
    return (
        request.headers.get(SECRET_HEADER)
        or request.query_params.get("secret")
        or (body_secret if isinstance(body_secret, str) else None)
    )


def _secrets_match(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


@router.get("/bitgo/webhook")
async def webhook_probe():
    """Liveness probe for the webhook route."""
    return {"ok": True, "route": WEBHOOK_PATH}


@router.post("/bitgo/webhook")
async def handle_bitgo_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    reconciler: DepositReconciler = Depends(get_reconciler),
):
    """Handle a BitGo transfer notification.

    Responses:
    - 500 ``{"ok": false}`` when BITGO_WEBHOOK_SECRET is not configured
    - 400 ``{"ok": false, "error": ...}`` when the body is not JSON
    - 401 ``{"ok": false}`` when the secret is missing or wrong
    - 200 ``{"ok": true, "ignored": true}`` when nothing could be extracted
    - 200 ``{"ok": true, "processed": n}`` otherwise
    """
    logger.info(
        f"{WEBHOOK_PATH} received request: has_secret_header="
        f"{bool(request.headers.get(SECRET_HEADER))} "
        f"has_secret_query={bool(request.query_params.get('secret'))} "
        f"content_type={request.headers.get('content-type')}"
    )

    secret = settings.bitgo_webhook_secret
    if not secret:
        logger.error(f"{WEBHOOK_PATH} missing BITGO_WEBHOOK_SECRET")
        return JSONResponse({"ok": False}, status_code=500)

    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"{WEBHOOK_PATH} invalid JSON body: {e}")
        return JSONResponse({"ok": False, "error": "Invalid JSON"}, status_code=400)

    if not _secrets_match(_provided_secret(request, body), secret):
        logger.warning(f"{WEBHOOK_PATH} unauthorized request from {request.client}")
        return JSONResponse({"ok": False}, status_code=401)

    try:
        result = await reconciler.handle_payload(body if isinstance(body, dict) else {})
    except Exception:
        logger.exception(f"{WEBHOOK_PATH} unhandled error while reconciling")
        return {"ok": True, "ignored": True}

    if result.ignored:
        return {"ok": True, "ignored": True}
    return {"ok": True, "processed": result.processed}
