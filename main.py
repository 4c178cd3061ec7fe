import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, EmailStr

from admin import AdminEditor
from auth import FirebaseAuthenticator
from config import settings
from database import ContentStore, db
from errors import AuthError, EditorStateError, NotFoundError, StoreUnavailableError, ValidationError
from renderer import PublicRenderer
from site_page import default_regions, render_page

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Club Site API",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Admin sessions keyed by the token handed out at sign in
app.state.sessions = {}


# Dependencies

def get_optional_store() -> Optional[ContentStore]:
    if db is None:
        return None
    return ContentStore(db)


def get_store(store: Optional[ContentStore] = Depends(get_optional_store)) -> ContentStore:
    if store is None:
        raise StoreUnavailableError("Content store is not configured")
    return store


def get_authenticator():
    return FirebaseAuthenticator()


def evict_stale_sessions(sessions: Dict[str, AdminEditor]) -> int:
    """Drop sessions idle for longer than SESSION_TTL; returns how many went."""
    stale = [token for token, session in list(sessions.items()) if session.expired(settings.SESSION_TTL)]
    for token in stale:
        session = sessions.pop(token, None)
        if session is not None:
            session.sign_out()
    if stale:
        logger.info(f"Evicted {len(stale)} idle admin session(s)")
    return len(stale)


def current_session(request: Request, x_admin_session: Optional[str] = Header(None)) -> AdminEditor:
    sessions = request.app.state.sessions
    evict_stale_sessions(sessions)
    session = sessions.get(x_admin_session) if x_admin_session else None
    if session is None or session.user is None:
        raise HTTPException(status_code=401, detail="Sign in required")
    session.touch()
    return session


# Error mapping

@app.exception_handler(AuthError)
def auth_error_handler(request: Request, exc: AuthError):
    status = 429 if exc.kind == AuthError.RATE_LIMITED else 401
    return JSONResponse(status_code=status, content={"detail": exc.message, "kind": exc.kind})


@app.exception_handler(StoreUnavailableError)
def store_error_handler(request: Request, exc: StoreUnavailableError):
    return JSONResponse(status_code=503, content={"detail": str(exc), "retryable": True})


@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "problems": exc.problems})


@app.exception_handler(EditorStateError)
def editor_state_handler(request: Request, exc: EditorStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# Request models
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class OpenFormRequest(BaseModel):
    id: Optional[str] = None


def session_summary(session: AdminEditor) -> dict:
    return {
        "email": session.user.email if session.user else None,
        "state": session.state.value,
        "toasts": [{"message": t.message, "kind": t.kind} for t in session.toasts],
    }


# Public site

@app.get("/", response_class=HTMLResponse)
async def home(store: Optional[ContentStore] = Depends(get_optional_store)):
    page = await PublicRenderer(store).render(default_regions())
    return HTMLResponse(render_page(page, title=settings.SITE_TITLE))


@app.get("/api/sections")
async def sections(store: Optional[ContentStore] = Depends(get_optional_store)):
    page = await PublicRenderer(store).render(default_regions())
    return page.to_dict()


# Admin: session

@app.post("/admin/login")
def login(body: LoginRequest, request: Request, store: ContentStore = Depends(get_store),
          authenticator=Depends(get_authenticator)):
    evict_stale_sessions(request.app.state.sessions)
    session = AdminEditor(store, authenticator)
    session.sign_in(body.email, body.password)
    token = secrets.token_urlsafe(32)
    request.app.state.sessions[token] = session
    out = session_summary(session)
    out["token"] = token
    return out


@app.post("/admin/logout")
def logout(request: Request, x_admin_session: Optional[str] = Header(None)):
    session = request.app.state.sessions.pop(x_admin_session, None) if x_admin_session else None
    if session is not None:
        session.sign_out()
    return {"signed_out": True}


@app.get("/admin/session")
def admin_session(session: AdminEditor = Depends(current_session)):
    return session_summary(session)


# Admin: collections

@app.get("/admin/{collection}")
def list_collection(collection: str, session: AdminEditor = Depends(current_session)):
    editor = session.editor(collection)
    with session.busy():
        view = editor.load()
    out = view.to_dict()
    out["state"] = editor.state.value
    return out


@app.post("/admin/{collection}/form")
def open_form(collection: str, body: OpenFormRequest, session: AdminEditor = Depends(current_session)):
    editor = session.editor(collection)
    with session.busy():
        form = editor.open_edit(body.id) if body.id else editor.open_add()
    return {"state": editor.state.value, "id": editor.editing_id, "form": form}


@app.post("/admin/{collection}/save")
def save_form(collection: str, values: Dict[str, Any], session: AdminEditor = Depends(current_session)):
    editor = session.editor(collection)
    with session.busy():
        doc_id = editor.submit(values)
    out = editor.view.to_dict()
    out.update({"id": doc_id, "state": editor.state.value, "toast": session.toasts[-1].message})
    return out


@app.post("/admin/{collection}/cancel")
def cancel_form(collection: str, session: AdminEditor = Depends(current_session)):
    editor = session.editor(collection)
    editor.cancel()
    return {"state": editor.state.value}


@app.delete("/admin/{collection}/{doc_id}")
def delete_record(collection: str, doc_id: str, confirm: bool = False,
                  session: AdminEditor = Depends(current_session)):
    editor = session.editor(collection)
    with session.busy():
        deleted = editor.delete(doc_id, confirm=lambda prompt: confirm)
    out = editor.view.to_dict()
    out.update({"deleted": deleted, "prompt": editor.delete_prompt})
    return out


# Service

@app.get("/health")
def health():
    return {"ok": True}


@app.get("/test")
def test_database(store: Optional[ContentStore] = Depends(get_optional_store)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.DATABASE_URL else "❌ Not Set",
        "database_name": settings.DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    if store is None:
        return response
    try:
        response["collections"] = store.collection_names()
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
    except StoreUnavailableError as e:
        response["database"] = f"❌ Error: {e}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
