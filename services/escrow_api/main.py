from __future__ import annotations

import logging
from typing import Any

from aiohttp import web
from redis.asyncio import Redis

from guardescrow import ledger
from guardescrow.db import create_engine, create_session_factory
from guardescrow.enums import Action
from guardescrow.errors import (
    AccountAlreadyInUse,
    AccountNotFound,
    AddressMismatch,
    EscrowAlreadyFunded,
    EscrowError,
    EscrowNotFound,
    EscrowNotFunded,
    InsufficientFunds,
    InvalidAmount,
    InvalidState,
    InvalidTimeout,
    UnauthorizedOperation,
)
from guardescrow.escrow import (
    EscrowRuntime,
    cancel_escrow,
    create_escrow,
    escrow_summary,
    fund_escrow,
    get_escrow,
    refund_to_buyer,
    release_to_seller,
)
from guardescrow.request_security import verify_nonce, verify_signature, verify_timestamp
from guardescrow.security import SignedRequest
from services.escrow_api.settings import load_settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("escrow_api")

ERROR_STATUS: dict[type[EscrowError], int] = {
    InvalidAmount: 400,
    InvalidTimeout: 400,
    AddressMismatch: 400,
    InsufficientFunds: 402,
    UnauthorizedOperation: 403,
    EscrowNotFound: 404,
    AccountNotFound: 404,
    InvalidState: 409,
    EscrowAlreadyFunded: 409,
    EscrowNotFunded: 409,
    AccountAlreadyInUse: 409,
}


def error_status(exc: EscrowError) -> int:
    return ERROR_STATUS.get(type(exc), 400)


@web.middleware
async def escrow_error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except EscrowError as exc:
        logger.warning("%s %s rejected: %s", request.method, request.path, exc)
        return web.json_response(exc.to_dict(), status=error_status(exc))


async def read_json(request: web.Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise web.HTTPBadRequest(text="Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise web.HTTPBadRequest(text="JSON body must be an object")
    return payload


async def authenticate(
    request: web.Request,
    action: Action,
    escrow: str = "",
    body_fields: tuple[str, ...] = (),
) -> SignedRequest:
    app = request.app
    settings = app["settings"]
    payload = await read_json(request)
    try:
        signed = SignedRequest(
            action=action.value,
            escrow=escrow,
            caller=str(payload.get("caller", "")),
            timestamp=int(payload.get("timestamp", 0)),
            nonce=str(payload.get("nonce", "")),
            signature=str(payload.get("signature", "")),
            body={name: payload.get(name) for name in body_fields},
        )
    except (TypeError, ValueError) as exc:
        raise web.HTTPBadRequest(text="Malformed request") from exc

    try:
        verify_timestamp(signed.timestamp, settings.signature_max_age_seconds, now=app["runtime"].clock.now())
        verify_signature(signed)
        await verify_nonce(app["redis"], signed.nonce, settings.nonce_ttl_seconds)
    except ValueError as exc:
        logger.warning("%s rejected for %s: %s", action.value, signed.caller, exc)
        raise web.HTTPUnauthorized(text=str(exc)) from exc
    return signed


async def handle_create(request: web.Request) -> web.Response:
    app = request.app
    signed = await authenticate(
        request, Action.CREATE, body_fields=("seller", "amount", "timeout_period", "arbiter")
    )
    body = signed.body
    if not isinstance(body.get("seller"), str) or not body["seller"]:
        raise web.HTTPBadRequest(text="Seller is required")

    async with app["session_factory"]() as session:
        async with session.begin():
            escrow = await create_escrow(
                session,
                app["runtime"],
                amount=body.get("amount"),
                timeout_period=body.get("timeout_period"),
                buyer=signed.caller,
                seller=body["seller"],
                arbiter=body.get("arbiter"),
            )
            summary = await escrow_summary(session, app["runtime"], escrow)
    return web.json_response(summary, status=201)


async def handle_fund(request: web.Request) -> web.Response:
    app = request.app
    address = request.match_info["address"]
    signed = await authenticate(request, Action.FUND, escrow=address)
    async with app["session_factory"]() as session:
        async with session.begin():
            await fund_escrow(session, app["runtime"], address, signed.caller)
            escrow = await get_escrow(session, app["runtime"], address)
            summary = await escrow_summary(session, app["runtime"], escrow)
    return web.json_response(summary)


async def handle_release(request: web.Request) -> web.Response:
    app = request.app
    address = request.match_info["address"]
    signed = await authenticate(request, Action.RELEASE, escrow=address)
    async with app["session_factory"]() as session:
        async with session.begin():
            transferred = await release_to_seller(session, app["runtime"], address, signed.caller)
    return web.json_response({"address": address, "state": "RELEASED", "transferred": transferred})


async def handle_refund(request: web.Request) -> web.Response:
    app = request.app
    address = request.match_info["address"]
    signed = await authenticate(request, Action.REFUND, escrow=address)
    async with app["session_factory"]() as session:
        async with session.begin():
            transferred = await refund_to_buyer(session, app["runtime"], address, signed.caller)
    return web.json_response({"address": address, "state": "REFUNDED", "transferred": transferred})


async def handle_cancel(request: web.Request) -> web.Response:
    app = request.app
    address = request.match_info["address"]
    signed = await authenticate(request, Action.CANCEL, escrow=address)
    async with app["session_factory"]() as session:
        async with session.begin():
            await cancel_escrow(session, app["runtime"], address, signed.caller)
    return web.json_response({"address": address, "state": "CANCELLED"})


async def handle_get_escrow(request: web.Request) -> web.Response:
    app = request.app
    async with app["session_factory"]() as session:
        escrow = await get_escrow(session, app["runtime"], request.match_info["address"])
        summary = await escrow_summary(session, app["runtime"], escrow)
    return web.json_response(summary)


async def handle_get_account(request: web.Request) -> web.Response:
    address = request.match_info["address"]
    async with request.app["session_factory"]() as session:
        balance = await ledger.get_balance(session, address)
    return web.json_response({"address": address, "balance": balance})


async def handle_airdrop(request: web.Request) -> web.Response:
    app = request.app
    if not app["settings"].is_development:
        raise web.HTTPForbidden(text="Airdrop is only available in development")
    address = request.match_info["address"]
    payload = await read_json(request)
    amount = payload.get("amount")
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise web.HTTPBadRequest(text="Amount must be an integer")
    async with app["session_factory"]() as session:
        async with session.begin():
            balance = await ledger.airdrop(session, address, amount)
    logger.info("Airdropped %s lamports to %s", amount, address)
    return web.json_response({"address": address, "balance": balance})


async def close_resources(app: web.Application) -> None:
    await app["redis"].aclose()
    await app["engine"].dispose()


def create_app(settings=None, redis=None, engine=None, clock=None) -> web.Application:
    settings = settings or load_settings()
    app = web.Application(middlewares=[escrow_error_middleware])
    app["settings"] = settings
    app["redis"] = redis or Redis.from_url(settings.redis_url, decode_responses=True)
    app["engine"] = engine or create_engine(settings.database_url)
    app["session_factory"] = create_session_factory(app["engine"])
    app["runtime"] = EscrowRuntime.from_settings(settings, clock=clock)
    app.on_cleanup.append(close_resources)

    app.router.add_post("/escrows", handle_create)
    app.router.add_get("/escrows/{address}", handle_get_escrow)
    app.router.add_post("/escrows/{address}/fund", handle_fund)
    app.router.add_post("/escrows/{address}/release", handle_release)
    app.router.add_post("/escrows/{address}/refund", handle_refund)
    app.router.add_post("/escrows/{address}/cancel", handle_cancel)
    app.router.add_get("/accounts/{address}", handle_get_account)
    app.router.add_post("/accounts/{address}/airdrop", handle_airdrop)
    return app


if __name__ == "__main__":
    settings = load_settings()
    web.run_app(create_app(settings), host=settings.api_host, port=settings.api_port)
