# server.py
# FastAPI mobile API: order lifecycle for sellers, farmers and deliverymen.
# Tokens are issued by the auth service; this app only verifies them.
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.fastapi.orders_api import auth_identity, router as orders_router
from backend.services.errors import ValidationError

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Agri Marketplace Mobile API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- include routers ---
app.include_router(orders_router)


# malformed request bodies -> 400 in the same shape as ValidationError
@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        details.append({"field": ".".join(loc), "message": err.get("msg")})
    first = details[0] if details else {"field": "", "message": "invalid request"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return JSONResponse(status_code=400, content={"detail": ValidationError(message, details).to_dict()})


# --- diagnostics ---
@app.get("/_health")
def _health():
    return {"ok": True, "service": "fastapi-mobile", "ts": int(datetime.now(timezone.utc).timestamp())}


@app.get("/_whoami")
def _whoami(identity: Dict[str, Any] = Depends(auth_identity)):
    return {"ok": True, "identity": identity}
