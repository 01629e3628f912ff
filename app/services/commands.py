"""Command bus connecting the popup, page scripts and token relay to the pipeline."""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from pydantic import ValidationError

from app.schemas.commands import (
    AuthStatusResponse,
    AuthTokensMessage,
    ClaimDataInterceptedMessage,
    CommandResponse,
    CommandType,
    ErrorResponse,
    FetchResponse,
    InterceptResponse,
    SuccessResponse,
    VADataResponse,
)
from app.services.auth import AuthSessionManager
from app.services.insights import basic_insights
from app.services.pipeline import CycleResult, Pipeline
from app.services.store import (
    LAST_SYNC,
    VA_APPEALS,
    VA_CLAIMS,
    VA_LAST_FETCH,
    VA_LOGGED_IN,
    VA_RATINGS,
    SqlStore,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any]], Awaitable[CommandResponse]]


def fetch_response(result: CycleResult) -> FetchResponse:
    snapshot = result.snapshot
    return FetchResponse(
        success=snapshot.claims is not None or snapshot.from_cache,
        from_cache=snapshot.from_cache,
        claims_count=len(snapshot.claims or []),
        rating_available=snapshot.rating is not None,
        appeals_count=len(snapshot.appeals or []),
        synced=result.synced,
    )


class CommandBus:
    """Dispatches named commands to exactly one handler each."""

    def __init__(self, pipeline: Pipeline, auth: AuthSessionManager, store: SqlStore):
        """Initialize the bus and its handler registry."""
        self.pipeline = pipeline
        self.auth = auth
        self.store = store

        # Handler registry
        self.handlers: Dict[CommandType, Handler] = {
            CommandType.REQUEST_AUTH_STATUS: self.request_auth_status,
            CommandType.REQUEST_VA_DATA: self.request_va_data,
            CommandType.TRIGGER_VA_FETCH: self.trigger_va_fetch,
            CommandType.VA_PAGE_LOADED: self.va_page_loaded,
            CommandType.AUTH_TOKENS_RECEIVED: self.auth_tokens_received,
            CommandType.CLAIM_DATA_INTERCEPTED: self.claim_data_intercepted,
        }

    async def dispatch(self, message: Mapping[str, Any]) -> Optional[CommandResponse]:
        """
        Route a message to its handler.

        Args:
            message: Message dict with a `type` tag

        Returns:
            Handler response, or None for unrecognized commands
        """
        try:
            command = CommandType(message.get("type"))
        except ValueError:
            logger.debug(f"Ignoring unknown command: {message.get('type')!r}")
            return None

        logger.info(f"Command received: {command.value}")
        try:
            return await self.handlers[command](message)
        except ValidationError as e:
            logger.warning(f"Malformed {command.value} message: {e}")
            return ErrorResponse(error=f"Invalid {command.value} message")

    async def request_auth_status(self, message: Mapping[str, Any]) -> AuthStatusResponse:
        session = await self.auth.check_status()
        if not session.authenticated:
            return AuthStatusResponse(authenticated=False)
        return AuthStatusResponse(
            authenticated=True,
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            user_data=session.user_data,
        )

    async def request_va_data(self, message: Mapping[str, Any]) -> VADataResponse:
        stored = await self.store.get(
            [VA_CLAIMS, VA_RATINGS, VA_APPEALS, VA_LOGGED_IN, VA_LAST_FETCH, LAST_SYNC]
        )
        return VADataResponse(
            claims=[entry.get("structured") or {} for entry in stored.get(VA_CLAIMS) or []],
            rating=stored.get(VA_RATINGS),
            appeals=stored.get(VA_APPEALS) or [],
            logged_in=stored.get(VA_LOGGED_IN),
            last_fetch=stored.get(VA_LAST_FETCH),
            last_sync=stored.get(LAST_SYNC),
        )

    async def trigger_va_fetch(self, message: Mapping[str, Any]) -> FetchResponse:
        """Manual fetch; bypasses the cooldown."""
        return fetch_response(await self.pipeline.run_cycle(force=True))

    async def va_page_loaded(self, message: Mapping[str, Any]) -> FetchResponse:
        return fetch_response(await self.pipeline.run_cycle(force=False))

    async def auth_tokens_received(self, message: Mapping[str, Any]) -> SuccessResponse:
        tokens = AuthTokensMessage.model_validate(message)
        await self.auth.store_tokens(tokens.access_token, tokens.refresh_token, tokens.user_data)
        return SuccessResponse(success=True)

    async def claim_data_intercepted(self, message: Mapping[str, Any]) -> InterceptResponse:
        captured = ClaimDataInterceptedMessage.model_validate(message).data
        result = await self.pipeline.capture_claim(captured.raw, captured.data_type)
        insights = basic_insights(result.claim)

        if result.attempted and not result.synced:
            return InterceptResponse(
                success=False,
                error="Sync to VetClaim failed",
                ai_insights=insights,
            )
        return InterceptResponse(success=True, synced=result.synced, ai_insights=insights)
