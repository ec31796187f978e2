import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Request, Query, status, APIRouter
from fastapi.responses import JSONResponse
from memberhub.api.v1.routes import (
    approvals as approvals_router,
    attendees as attendees_router,
    auth as auth_router,
    events as events_router,
    family_members as family_router,
    health as health_router,
    notifications as notifications_router,
    payments as payments_router,
    waitlist as waitlist_router,
)
from memberhub.cache.redis_client import cache
from memberhub.db.session import engine, Base
from memberhub.events import publisher
from memberhub.events.consumer import run_worker
from memberhub.websocket.manager import manager
from memberhub.core.config import settings
from memberhub.core.errors import DomainError
from memberhub.core.security import decode_token
from memberhub.core.logging import logger
from fastapi.middleware.cors import CORSMiddleware
from memberhub.middleware.security_headers import SecurityHeadersMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # create tables (migrations own the schema in deployed environments)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    worker = None
    if settings.ENVIRONMENT != "test":
        # docker-compose also runs the worker standalone; this covers local runs
        worker = asyncio.create_task(run_worker())
    yield
    if worker is not None:
        worker.cancel()
    await publisher.close_connection()
    await cache.close()


app = FastAPI(title="MemberHub", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.add_middleware(SecurityHeadersMiddleware, hsts=settings.ENVIRONMENT == "production")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_router = APIRouter(prefix="/api/v1")
for module in (
    auth_router,
    events_router,
    attendees_router,
    waitlist_router,
    approvals_router,
    family_router,
    payments_router,
    notifications_router,
    health_router,
):
    api_router.include_router(module.router)

app.include_router(api_router)


@app.websocket("/ws/notifications/{user_id}")
async def websocket_endpoint(websocket: WebSocket, user_id: str, token: str = Query(...)):
    """
    Live notification feed for one member.

    Clients pass a valid access token as a query parameter, e.g.
    ws://localhost:8000/ws/notifications/{user_id}?token=your_jwt_token
    """
    try:
        payload = decode_token(token)

        if payload.get("type") != "access":
            logger.warning(f"WebSocket connection attempt with invalid token type for user {user_id}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        token_user_id = str(payload.get("sub"))
        if token_user_id != user_id:
            logger.warning(f"WebSocket token user {token_user_id} does not match path user {user_id}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await manager.connect(user_id, websocket)
        logger.info(f"WebSocket connection established for user {user_id}")

        while True:
            # Server push only; client frames are read to notice disconnects
            await websocket.receive_text()

    except ValueError as e:
        logger.warning(f"WebSocket connection rejected for user {user_id}: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    except WebSocketDisconnect:
        await manager.disconnect(user_id, websocket)
        logger.info(f"WebSocket disconnected for user {user_id}")
    except Exception as e:
        logger.error(f"WebSocket error for user {user_id}: {e}")
        await manager.disconnect(user_id, websocket)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
