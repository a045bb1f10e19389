import os
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from telegram import Update

import schemas
from config import load_settings
from context import AppContext, open_context
from holders import fetch_all_top_holders
from ingestion import ingest_balance_changes, parse_chain_id
from webhooks import Scope, create_webhooks_for_top_holders, enumerate_all_webhooks, set_all_active

CHAIN_ID_HEADER = "dune-webhook-chain-id"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx


def error_response(message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def read_json(request: Request):
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Builds the FastAPI app. Without a context, one is created from the
    environment on startup (missing configuration aborts startup) and closed
    on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if context is not None:
            app.state.ctx = context
            yield
            return
        logger.info("FastAPI app starting up...")
        settings = load_settings()
        app.state.ctx = await open_context(settings)
        yield
        logger.info("FastAPI app shutting down...")
        await app.state.ctx.close()

    app = FastAPI(lifespan=lifespan, title="Top Holders Tracker")
    if context is not None:
        app.state.ctx = context

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(str(exc), status.HTTP_422_UNPROCESSABLE_ENTITY)

    @app.get("/health", response_model=schemas.OkResponse)
    async def health():
        return schemas.OkResponse()

    # --- Inbound events ---

    @app.post("/balances", response_model=schemas.BalancesResponse)
    async def balances(request: Request, ctx: AppContext = Depends(get_context)):
        body = await read_json(request)
        changes = body.get("balance_changes") if isinstance(body, dict) else None
        if not isinstance(changes, list):
            changes = []
        chain_id = parse_chain_id(request.headers.get(CHAIN_ID_HEADER))
        logger.info(f"Received /balances webhook call with {len(changes)} changes on chain {chain_id}")
        try:
            result = await ingest_balance_changes(changes, chain_id, ctx.broadcaster.broadcast)
        except Exception as e:
            logger.error(f"Failed to process balance changes: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.BalancesResponse(processed=result.processed)

    @app.post("/telegram/webhook", response_model=schemas.OkResponse)
    async def telegram_webhook(request: Request, ctx: AppContext = Depends(get_context)):
        body = await read_json(request)
        try:
            update = Update.de_json(body, ctx.telegram.bot)
            if update is not None:
                await ctx.telegram.process_update(update)
        except Exception as e:
            logger.error(f"Failed to handle Telegram update: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.OkResponse()

    # --- Setup and maintenance ---

    @app.post("/setup/fetch-holders", response_model=schemas.FetchHoldersResponse)
    async def fetch_holders(ctx: AppContext = Depends(get_context)):
        try:
            result = await fetch_all_top_holders(
                ctx.sim, ctx.session_factory, ctx.settings.tokens_csv_path, ctx.settings.holders_per_token
            )
        except Exception as e:
            logger.error(f"Error fetching holders: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.FetchHoldersResponse(
            total_holders=result.total_holders,
            tokens_processed=result.tokens_processed,
            tokens_skipped=result.tokens_skipped,
        )

    @app.post("/setup/create-webhooks", response_model=schemas.CreateWebhooksResponse)
    async def create_webhooks(ctx: AppContext = Depends(get_context)):
        try:
            result = await create_webhooks_for_top_holders(ctx.sim, ctx.session_factory, ctx.settings.webhook_base_url)
        except Exception as e:
            logger.error(f"Error creating webhooks: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.CreateWebhooksResponse(
            webhooks_created=result.webhooks_created,
            webhook_ids=result.webhook_ids,
            skipped=result.skipped,
            failed=result.failed,
        )

    @app.get("/setup/view-webhooks", response_model=schemas.ViewWebhooksResponse)
    async def view_webhooks(ctx: AppContext = Depends(get_context)):
        try:
            listing = await enumerate_all_webhooks(ctx.sim, ctx.listing_policy)
        except Exception as e:
            logger.error(f"Error listing webhooks: {e}", exc_info=True)
            return error_response(str(e))
        active = sum(1 for webhook in listing.webhooks if webhook.active)
        return schemas.ViewWebhooksResponse(
            total=len(listing.webhooks),
            active=active,
            inactive=len(listing.webhooks) - active,
            complete=listing.complete,
            stop_reason=listing.stop_reason.value,
            webhooks=listing.webhooks,
        )

    @app.post("/setup/pause-webhooks", response_model=schemas.PauseWebhooksResponse)
    async def pause_webhooks(ctx: AppContext = Depends(get_context)):
        try:
            result = await set_all_active(ctx.sim, ctx.session_factory, False, Scope.ALL_REMOTE, ctx.listing_policy)
        except Exception as e:
            logger.error(f"Error pausing webhooks: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.PauseWebhooksResponse(
            paused=result.changed, skipped=result.skipped, failed=result.failed,
            total=result.total, complete=result.complete,
        )

    @app.post("/setup/resume-webhooks", response_model=schemas.ResumeWebhooksResponse)
    async def resume_webhooks(ctx: AppContext = Depends(get_context)):
        try:
            result = await set_all_active(ctx.sim, ctx.session_factory, True, Scope.ALL_REMOTE, ctx.listing_policy)
        except Exception as e:
            logger.error(f"Error resuming webhooks: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.ResumeWebhooksResponse(
            resumed=result.changed, skipped=result.skipped, failed=result.failed,
            total=result.total, complete=result.complete,
        )

    @app.post("/setup/resume-local-webhooks", response_model=schemas.ResumeLocalWebhooksResponse)
    async def resume_local_webhooks(ctx: AppContext = Depends(get_context)):
        try:
            result = await set_all_active(ctx.sim, ctx.session_factory, True, Scope.LOCAL_ONLY)
        except Exception as e:
            logger.error(f"Error resuming local webhooks: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.ResumeLocalWebhooksResponse(resumed=result.changed, failed=result.failed, total=result.total)

    @app.post("/setup/pause-local-webhooks", response_model=schemas.PauseLocalWebhooksResponse)
    async def pause_local_webhooks(ctx: AppContext = Depends(get_context)):
        try:
            result = await set_all_active(ctx.sim, ctx.session_factory, False, Scope.LOCAL_ONLY)
        except Exception as e:
            logger.error(f"Error pausing local webhooks: {e}", exc_info=True)
            return error_response(str(e))
        return schemas.PauseLocalWebhooksResponse(paused=result.changed, failed=result.failed, total=result.total)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 3001)))
