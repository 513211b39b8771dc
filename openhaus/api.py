"""FastAPI application for OpenHaus."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path
import tomllib

from fastapi import APIRouter, Depends, FastAPI, Form, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from svix.webhooks import Webhook, WebhookVerificationError

from .auth import Auth, RequestAuthGate, get_auth
from .catalog import (
    ALL_CATEGORIES,
    Event,
    categories,
    filter_events,
    load_catalog,
    normalize_category,
)
from .config import settings
from .crud import (
    create_hosted_event,
    get_user,
    get_user_by_clerk_id,
    provision_user,
    update_profile,
)
from .database import SessionLocal
from .host_form import SUCCESS_MESSAGE, FormState, HostEventForm, NewEventDraft
from .models import HostedEvent, User
from .storage import init_db
from .theme import THEME_STORAGE_KEY, ThemeStore, prefers_dark_from_hint

# Use uvicorn's error logger so messages get the level prefix in the default log
# format.
logger = logging.getLogger("uvicorn.error")

THEME_COOKIE = "theme"
THEME_COOKIE_MAX_AGE = 60 * 60 * 24 * 365
COLOR_SCHEME_HINT = "Sec-CH-Prefers-Color-Scheme"
SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


class ApiError(Exception):
    """Raised by JSON handlers; rendered as ``{"error": message}``."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _no_cache(response: Response) -> Response:
    """Prevent clients from caching dynamic pages so fresh data is shown."""
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


def _load_app_version() -> str:
    """Return the current package version, falling back to pyproject for dev runs."""
    try:
        return pkg_version("openhaus")
    except PackageNotFoundError:
        pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            data = tomllib.loads(pyproject_path.read_text())
            project = data.get("project") or {}
            return str(project.get("version") or "dev")
    return "dev"


APP_VERSION = _load_app_version()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.catalog = load_catalog(settings.catalog_path)
    logger.info("Loaded %d catalog events", len(app.state.catalog))
    yield


app = FastAPI(title="OpenHaus", version=APP_VERSION, lifespan=lifespan)
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
templates.env.globals["app_version"] = APP_VERSION
templates.env.globals["toast_seconds"] = settings.toast_seconds

api_router = APIRouter(prefix="/api")


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _wants_json(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return request.url.path.startswith("/api/") or (
        "application/json" in accept and "text/html" not in accept
    )


def _render_error(request: Request, status_code: int, message: str | None):
    context = {
        "request": request,
        "status_code": status_code,
        "error_message": message or "Something went wrong.",
        "theme": _theme_store(request).theme.value,
    }
    return templates.TemplateResponse(
        request, "error.html", context, status_code=status_code
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as friendly pages unless JSON was requested."""
    headers = getattr(exc, "headers", None)
    if _wants_json(request):
        return JSONResponse(
            {"error": exc.detail}, status_code=exc.status_code, headers=headers
        )
    detail = exc.detail if isinstance(exc.detail, str) else "Something went wrong."
    response = _render_error(request, exc.status_code, detail)
    if headers:
        response.headers.update(headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    if _wants_json(request):
        return JSONResponse(
            {"error": "Invalid request", "detail": exc.errors()}, status_code=422
        )
    return _render_error(
        request,
        422,
        "Some of the fields were invalid. Please double-check and try again.",
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Gracefully handle unexpected errors."""
    logger.exception(
        "Unhandled error while processing %s %s", request.method, request.url.path
    )
    if _wants_json(request):
        return JSONResponse({"error": "Internal server error"}, status_code=500)
    return _render_error(
        request,
        500,
        "We hit a snag while processing that request. Please try again.",
    )


# --- Pages -----------------------------------------------------------------


def _catalog(request: Request) -> tuple[Event, ...]:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        catalog = load_catalog(settings.catalog_path)
        request.app.state.catalog = catalog
    return catalog


def _theme_store(request: Request) -> ThemeStore:
    storage: dict[str, str] = {}
    saved = request.cookies.get(THEME_COOKIE)
    if saved:
        storage[THEME_STORAGE_KEY] = saved
    store = ThemeStore(storage)
    store.initialize(prefers_dark_from_hint(request.headers.get(COLOR_SCHEME_HINT)))
    return store


def _safe_return_path(raw: str | None) -> str:
    target = (raw or "").strip()
    if not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


def _page(request: Request, template: str, context: dict, *, status_code: int = 200):
    context = {
        "request": request,
        "theme": _theme_store(request).theme.value,
        **context,
    }
    response = templates.TemplateResponse(
        request, template, context, status_code=status_code
    )
    response.headers["Accept-CH"] = COLOR_SCHEME_HINT
    return _no_cache(response)


@app.get("/", response_class=HTMLResponse)
def homepage(
    request: Request,
    q: str = Query(""),
    category: str = Query(ALL_CATEGORIES),
    created: bool = Query(False),
    auth: Auth = Depends(get_auth),
):
    catalog = _catalog(request)
    selected = normalize_category(catalog, category)
    events = filter_events(catalog, q, selected)
    return _page(
        request,
        "index.html",
        {
            "events": events,
            "categories": categories(catalog),
            "selected_category": selected,
            "query": q,
            "signed_in": auth.is_signed_in,
            "toast_message": SUCCESS_MESSAGE if created else None,
        },
    )


@app.post("/theme/toggle")
def toggle_theme(request: Request, next_path: str = Form("/", alias="next")):
    store = _theme_store(request)
    new_theme = store.toggle()
    response = RedirectResponse(_safe_return_path(next_path), status_code=303)
    response.set_cookie(
        THEME_COOKIE,
        new_theme.value,
        max_age=THEME_COOKIE_MAX_AGE,
        samesite="lax",
    )
    return response


def _host_form(auth: Auth, db: Session) -> tuple[HostEventForm, RequestAuthGate]:
    gate = RequestAuthGate(auth, return_to="/events/new")

    async def persist(draft: NewEventDraft) -> HostedEvent:
        host = get_user_by_clerk_id(db, auth.user_id or "")
        if host is None:
            raise LookupError(f"No local user for identity {auth.user_id}")
        event = create_hosted_event(
            db,
            host=host,
            title=draft.title,
            date=draft.date,
            time=draft.time,
            location=draft.location,
            tags=draft.tag_list,
            description=draft.description,
            image=draft.image,
        )
        logger.info("User %s created hosted event %s", host.id, event.id)
        return event

    return HostEventForm(gate, persist), gate


def _render_host_form(request: Request, form: HostEventForm, *, status_code: int = 200):
    return _page(
        request,
        "host_form.html",
        {"draft": form.draft, "error": form.error, "signed_in": True},
        status_code=status_code,
    )


@app.get("/events/new", response_class=HTMLResponse)
def host_event_page(
    request: Request,
    auth: Auth = Depends(get_auth),
    db: Session = Depends(get_db),
):
    form, gate = _host_form(auth, db)
    if not form.open():
        return RedirectResponse(gate.sign_in_redirect or "/", status_code=303)
    return _render_host_form(request, form)


@app.post("/events")
async def submit_event(
    request: Request,
    title: str = Form(""),
    date: str = Form(""),
    time: str = Form(""),
    location: str = Form(""),
    tags: str = Form(""),
    description: str = Form(""),
    image: str = Form(""),
    intent: str = Form("submit"),
    auth: Auth = Depends(get_auth),
    db: Session = Depends(get_db),
):
    form, gate = _host_form(auth, db)
    if not form.open():
        return RedirectResponse(gate.sign_in_redirect or "/", status_code=303)
    try:
        if intent == "cancel":
            form.cancel()
            return RedirectResponse("/", status_code=303)
        form.update_fields(
            {
                "title": title,
                "date": date,
                "time": time,
                "location": location,
                "tags": tags,
                "description": description,
                "image": image or form.draft.image,
            }
        )
        state = await form.submit()
        if state is FormState.CLOSED:
            return RedirectResponse("/?created=1", status_code=303)
        if state is FormState.FAILED:
            db.rollback()
            return _render_host_form(request, form, status_code=500)
        return _render_host_form(request, form, status_code=400)
    finally:
        form.dispose()


# --- Profile API -----------------------------------------------------------


class ProfileUpdatePayload(BaseModel):
    bio: str | None = None
    city: str | None = None
    interests: list[str] | None = None


def _serialize_hosted_event(event: HostedEvent):
    return {
        "id": event.id,
        "title": event.title,
        "date": event.date,
        "location": event.location,
    }


def _serialize_profile(user: User):
    return {
        "id": user.id,
        "name": user.name,
        "bio": user.bio,
        "avatarUrl": user.avatar_url,
        "city": user.city,
        "interests": list(user.interests or []),
        "hostedEvents": [_serialize_hosted_event(e) for e in user.hosted_events],
    }


def _serialize_self(user: User):
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatarUrl": user.avatar_url,
    }


def _serialize_user(user: User):
    return {
        "id": user.id,
        "clerkId": user.clerk_id,
        "email": user.email,
        "username": user.username,
        "name": user.name,
        "avatarUrl": user.avatar_url,
        "bio": user.bio,
        "city": user.city,
        "interests": list(user.interests or []),
    }


def require_clerk_id(auth: Auth = Depends(get_auth)) -> str:
    """Resolve the caller's identity before the request body is validated."""
    if not auth.is_signed_in:
        raise ApiError(401, "Unauthorized")
    return auth.user_id


@api_router.get("/users/me")
def api_current_user(
    clerk_id: str = Depends(require_clerk_id), db: Session = Depends(get_db)
):
    try:
        user = get_user_by_clerk_id(db, clerk_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch current user %s", clerk_id)
        raise ApiError(500, "Failed to fetch user") from exc
    if user is None:
        raise ApiError(404, "User not found")
    return _serialize_self(user)


@api_router.get("/users/update", include_in_schema=False)
def api_update_wrong_method():
    raise StarletteHTTPException(
        status_code=405, detail="Method Not Allowed", headers={"Allow": "PUT"}
    )


@api_router.put("/users/update")
def api_update_profile(
    payload: ProfileUpdatePayload,
    clerk_id: str = Depends(require_clerk_id),
    db: Session = Depends(get_db),
):
    try:
        user = get_user_by_clerk_id(db, clerk_id)
        if user is None:
            raise ApiError(404, "User not found")
        update_profile(db, user, **payload.model_dump(exclude_unset=True))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update profile for %s", clerk_id)
        raise ApiError(500, "Failed to update profile") from exc
    return _serialize_user(user)


@api_router.get("/users/{user_id}")
def api_get_user(user_id: str, db: Session = Depends(get_db)):
    try:
        user = get_user(db, user_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch user %s", user_id)
        raise ApiError(500, "Failed to fetch user") from exc
    if user is None:
        raise ApiError(404, "User not found")
    return _serialize_profile(user)


# --- Identity provider webhooks --------------------------------------------


def _first_email(data: dict) -> str | None:
    addresses = data.get("email_addresses") or []
    if not addresses:
        return None
    return (addresses[0] or {}).get("email_address")


@api_router.post("/webhooks/user-created")
async def user_created_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    headers = {name: request.headers.get(name, "") for name in SVIX_HEADERS}
    if not settings.clerk_webhook_secret:
        logger.error("Webhook received but clerk_webhook_secret is not configured")
        raise ApiError(400, "Invalid webhook")
    try:
        # Only the signature check; newer svix releases return nothing here.
        Webhook(settings.clerk_webhook_secret).verify(payload, headers)
        evt = json.loads(payload)
    except (WebhookVerificationError, ValueError) as exc:
        logger.warning("Webhook verification failed: %s", exc)
        raise ApiError(400, "Invalid webhook") from exc
    if not isinstance(evt, dict):
        logger.warning("Webhook body is not a JSON object")
        raise ApiError(400, "Invalid webhook")

    event_type = evt.get("type")
    if event_type == "user.created":
        data = evt.get("data")
        clerk_id = data.get("id") if isinstance(data, dict) else None
        if not clerk_id or not isinstance(clerk_id, str):
            logger.warning("user.created webhook without a user id")
            raise ApiError(400, "Invalid webhook")
        try:
            user, created = provision_user(
                db,
                clerk_id=clerk_id,
                email=_first_email(data),
                username=data.get("username"),
                first_name=data.get("first_name"),
                last_name=data.get("last_name"),
                avatar_url=data.get("image_url"),
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to provision user %s", clerk_id)
            raise ApiError(500, "Failed to provision user") from exc
        if created:
            logger.info("Provisioned user %s for identity %s", user.id, user.clerk_id)
        else:
            logger.info("Identity %s already provisioned; ignoring", user.clerk_id)
    else:
        logger.debug("Ignoring webhook event type %s", event_type)

    return {"success": True}


app.include_router(api_router)
