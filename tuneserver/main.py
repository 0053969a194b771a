# tuneserver/main.py
"""
uvicorn tuneserver.main:app --host 0.0.0.0 --port 5000
# or: tuneserver  (reads HOST / PORT from the environment)
"""
import logging
import os
from typing import Optional

import sentry_sdk
import uvicorn
from fastapi import FastAPI, Depends, APIRouter, Body, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tuneserver import auth, crud, models, schemas
from tuneserver.database import get_db, init_models
from tuneserver.errors import ServiceError, ServerError, ValidationError, NotFoundError
from tuneserver.logging_config import setup_logging
from tuneserver.relay import TokenRelay, get_token_relay

setup_logging()
logger = logging.getLogger(__name__)

SENTRY_DSN = os.getenv("SENTRY_DSN")
if SENTRY_DSN:
    # unexpected errors in request handlers are sent with full stack trace
    sentry_sdk.init(dsn=SENTRY_DSN)

router = APIRouter(prefix="/api")


# --- Play counts ---
@router.post("/update-stream")
async def update_stream(
    request: Optional[schemas.StreamUpdateRequest] = Body(None), db: AsyncSession = Depends(get_db)
):
    request = request or schemas.StreamUpdateRequest()
    try:
        stream = await crud.increment_stream(db, request.song_id)
    except ValidationError as exc:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})
    except Exception as exc:
        logger.exception("Stream update failed for %r", request.song_id)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
    return {
        "success": True,
        "message": "Stream updated",
        "stream": schemas.StreamOut.model_validate(stream).model_dump(),
    }


@router.get("/get-streams")
async def get_streams(db: AsyncSession = Depends(get_db)):
    try:
        streams = await crud.list_streams(db)
    except Exception as exc:
        logger.exception("Listing streams failed")
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
    return {
        "success": True,
        "streams": [schemas.StreamOut.model_validate(s).model_dump() for s in streams],
    }


app = FastAPI(title="Tune Server")
app.state.token_relay = TokenRelay()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error body for an unreadable request, in the shape each route answers with
INVALID_BODY_RESPONSES = {
    "/register": {"message": "All fields are required"},
    "/login": {"message": "Invalid request body"},
    "/api/update-stream": {"success": False, "error": "Invalid request body"},
    "/store-token": {"error": "Token is missing!"},
}


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    content = INVALID_BODY_RESPONSES.get(request.url.path)
    if content is None:
        content = {"detail": jsonable_encoder(exc.errors())}
    return JSONResponse(status_code=400, content=content)


# Create DB tables
@app.on_event("startup")
async def startup_event():
    await init_models()


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# --- Auth Routes ---
@app.post("/register", status_code=201)
async def register(
    request: Optional[schemas.RegisterRequest] = Body(None), db: AsyncSession = Depends(get_db)
):
    request = request or schemas.RegisterRequest()
    try:
        await crud.register_user(db, request.username, request.email, request.password)
    except ServerError as exc:
        logger.exception("Signup error")
        return JSONResponse(status_code=500, content={"message": "Error signing up", "error": exc.message})
    except ServiceError as exc:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})
    except Exception as exc:
        logger.exception("Signup error")
        return JSONResponse(status_code=500, content={"message": "Error signing up", "error": str(exc)})
    return {"message": "Account created successfully!"}


@app.post("/login")
async def login(
    request: Optional[schemas.LoginRequest] = Body(None), db: AsyncSession = Depends(get_db)
):
    request = request or schemas.LoginRequest()
    try:
        token = await crud.login_user(db, request.email, request.password)
    except ServerError as exc:
        logger.exception("Login error")
        return JSONResponse(status_code=500, content={"message": "Error logging in", "error": exc.message})
    except ServiceError as exc:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})
    except Exception as exc:
        logger.exception("Login error")
        return JSONResponse(status_code=500, content={"message": "Error logging in", "error": str(exc)})
    return {"message": "Login successful", "token": token}


@app.get("/me", response_model=schemas.UserOut)
async def read_me(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


# --- Token relay ---
@app.post("/store-token")
def store_token(
    request: Optional[schemas.StoreTokenRequest] = Body(None), relay: TokenRelay = Depends(get_token_relay)
):
    request = request or schemas.StoreTokenRequest()
    try:
        relay.store(request.token)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"error": exc.message})
    return {"message": "Token saved successfully!"}


@app.get("/get-token")
def get_token(relay: TokenRelay = Depends(get_token_relay)):
    try:
        token = relay.fetch()
    except NotFoundError as exc:
        return JSONResponse(status_code=404, content={"error": exc.message})
    return {"token": token}


app.include_router(router)


def serve():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5000"))
    logger.info("Server running on port %s", port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    serve()
