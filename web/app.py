from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

# allow importing the parser from repo root
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dbs_statement_parser import (  # noqa: E402
    DEFAULT_CURRENCY,
    ParseError,
    parse_statement_text,
    standardize_transactions,
    statement_to_json,
)
from statement_logging import configure_logging, get_logger  # noqa: E402


APP_DIR = Path(__file__).resolve().parent
CONFIG_PATH = APP_DIR / "config.json"
CONFIG_PATH_ENV = "DBS_STATEMENT_WEB_CONFIG"

logger = get_logger("dbs_statement.web")


@dataclass(frozen=True)
class User:
    username: str
    token: str
    role: str


class LoginRequest(BaseModel):
    token: str


def config_path() -> Path:
    override = os.getenv(CONFIG_PATH_ENV)
    return Path(override) if override else CONFIG_PATH


def load_config() -> dict:
    path = config_path()
    if not path.exists():
        raise RuntimeError(f"Missing config file: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def build_user_index(cfg: dict) -> Dict[str, User]:
    users: Dict[str, User] = {}
    for raw in cfg.get("users", []):
        token = str(raw.get("token", "")).strip()
        if not token:
            continue
        user = User(
            username=str(raw.get("username", "unknown")),
            token=token,
            role=str(raw.get("role", "user")).strip().lower(),
        )
        users[token] = user
    return users


def decode_upload(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="statement is not valid UTF-8 text")


def create_app(cfg: Optional[dict] = None) -> FastAPI:
    if cfg is None:
        cfg = load_config()

    configure_logging(cfg.get("logging", {}).get("level"))
    user_index = build_user_index(cfg)
    default_currency = str(cfg.get("parsing", {}).get("default_currency", DEFAULT_CURRENCY))

    app = FastAPI(title="Statement Parsing API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.get("server", {}).get("cors_origins", ["*"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    bearer = HTTPBearer(auto_error=False)

    def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(bearer),
    ) -> User:
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise HTTPException(status_code=401, detail="missing bearer token")
        token = credentials.credentials.strip()
        user = user_index.get(token)
        if user is None:
            raise HTTPException(status_code=401, detail="invalid token")
        return user

    @app.get("/api/health")
    def health() -> dict:
        return {"ok": True}

    @app.post("/api/login")
    def login(payload: LoginRequest) -> dict:
        token = payload.token.strip()
        user = user_index.get(token)
        if not user:
            raise HTTPException(status_code=401, detail="invalid token")
        return {
            "username": user.username,
            "role": user.role,
            "token": user.token,
        }

    @app.get("/api/me")
    def me(user: User = Depends(get_current_user)) -> dict:
        return {
            "username": user.username,
            "role": user.role,
        }

    @app.post("/api/statements/parse")
    async def parse_uploaded_statement(
        file: UploadFile = File(...),
        connection_id: Optional[str] = Query(default=None, min_length=1),
        currency: Optional[str] = Query(default=None, min_length=3, max_length=3),
        user: User = Depends(get_current_user),
    ) -> dict:
        if not (file.filename or "").lower().endswith(".csv"):
            raise HTTPException(status_code=400, detail="only CSV is supported")

        text = decode_upload(await file.read())
        try:
            statement = parse_statement_text(text)
        except ParseError as e:
            logger.info("Rejected %s uploaded by %s: %s", file.filename, user.username, e)
            raise HTTPException(status_code=400, detail=f"parse failed: {e}")

        logger.info(
            "Parsed %s for %s: %d transactions",
            file.filename,
            user.username,
            len(statement.transactions),
        )
        result = statement_to_json(statement)
        if connection_id:
            result["standardized_transactions"] = standardize_transactions(
                statement,
                connection_id,
                currency=(currency or default_currency).upper(),
            )
        return result

    return app
