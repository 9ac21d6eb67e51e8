"""FastAPI proxy routes for the church portal.

Every data route forwards the browser's request to the external REST
backend through :class:`ChurchApiClient`, after checking the bearer header
and the obvious required fields.  The backend's status code and JSON body
are relayed unchanged except where a route says otherwise.

# ─── API ROUTE MAP ─────────────────────────────────────────────────────
#
# Endpoint                                   Methods              Backend path
# ──────────────────────────────────────────────────────────────────────────────
# /api/token                                 POST                 /token/
# /api/validate-token                        GET                  (header check only)
# /api/members                               POST                 /members/
# /api/departments                           GET POST             /departments/
# /api/admin/departments/{id}                GET PUT PATCH DELETE /admin-panel/departments/{id}/
# /api/admin/verify-pin                      POST                 (ADMIN_PIN_CODE)
# /api/admin/dashboard-stats                 GET                  six collections
# /api/contents/members                      GET POST             /admin-panel/members/
# /api/contents/departments                  GET POST             /admin-panel/departments/
# /api/contents/devotionals                  GET POST             /admin-panel/devotionals/
# /api/contents/devotionals/{id}             GET PUT PATCH DELETE /admin-panel/devotionals/{id}/
# /api/contents/testimonies                  GET POST             /admin-panel/testimonies/
# /api/contents/testimonies/{id}             GET PUT PATCH DELETE /admin-panel/testimonies/{id}/
# /api/contents/testimonies/{id}/moderate    POST                 .../{id}/approve|reject/
# /api/admin-panel/testimonies               GET                  /admin-panel/testimonies/
# /api/admin-panel/testimonies/{id}          DELETE               /admin-panel/testimonies/{id}/
# /api/admin-panel/testimonies/{id}/approve  POST                 .../{id}/approve/
# /api/feeds                                 GET                  (feed names)
# /api/feeds/{name}                          GET                  cached feed collection
# /api/health                                GET                  -
#
# Dependencies are resolved from ``app.state`` (populated in main.py's
# lifespan) through Annotated ``Depends`` aliases.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import hmac
import json
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from src.api.schemas import HealthResponse, PinVerificationResponse, TokenValidationResponse
from src.config.settings import Settings
from src.providers.backend.church_api_client import ChurchApiClient, UpstreamResponse
from src.services import payload_validation as checks
from src.services.content_feeds import ContentFeedService
from src.services.dashboard_service import DashboardService
from src.utils.errors import AuthorizationError, ConfigurationError, PayloadValidationError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")

_APP_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers - resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_api_client(request: Request) -> ChurchApiClient:
    return request.app.state.api_client


def _get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard_service


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_content_feeds(request: Request) -> ContentFeedService:
    return request.app.state.content_feeds


def require_bearer(authorization: Annotated[str | None, Header()] = None) -> str:
    """Return the ``Authorization`` header, which must carry a bearer token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthorizationError()
    return authorization


def optional_authorization(authorization: Annotated[str | None, Header()] = None) -> str | None:
    return authorization or None


ApiClientDep = Annotated[ChurchApiClient, Depends(_get_api_client)]
DashboardDep = Annotated[DashboardService, Depends(_get_dashboard_service)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]
FeedsDep = Annotated[ContentFeedService, Depends(_get_content_feeds)]
BearerDep = Annotated[str, Depends(require_bearer)]
OptionalAuthDep = Annotated[str | None, Depends(optional_authorization)]


# ---------------------------------------------------------------------------
# Relay helpers
# ---------------------------------------------------------------------------


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise PayloadValidationError("Request body must be valid JSON") from exc


def _relay(upstream: UpstreamResponse) -> Response:
    """Return the backend's status and body as this service's response."""
    if upstream.payload is None:
        return Response(status_code=upstream.status_code)
    return JSONResponse(content=upstream.payload, status_code=upstream.status_code)


def _relay_delete(upstream: UpstreamResponse) -> Response:
    """DELETE relay: a successful delete answers with an empty body."""
    if upstream.status_code in (200, 204):
        return Response(status_code=upstream.status_code)
    return _relay(upstream)


def _relay_testimony_delete(upstream: UpstreamResponse) -> Response:
    if upstream.status_code == 204:
        return JSONResponse(content={"success": True}, status_code=200)
    if upstream.status_code == 404:
        return JSONResponse(content={"error": "Testimony not found"}, status_code=404)
    if upstream.status_code >= 400:
        return JSONResponse(
            content=upstream.payload
            if upstream.payload is not None
            else {"error": f"Failed to delete testimony ({upstream.status_code})"},
            status_code=upstream.status_code,
        )
    return JSONResponse(
        content=upstream.payload if upstream.payload is not None else {"success": True},
        status_code=upstream.status_code,
    )


# ---------------------------------------------------------------------------
# Auth & registration
# ---------------------------------------------------------------------------


@router.post("/token")
async def obtain_token(request: Request, api: ApiClientDep) -> Response:
    """Exchange email + password for backend tokens."""
    email, password = checks.validate_credentials(await _read_json(request))
    _logger.info("login_attempt", email=email)
    return _relay(await api.obtain_token(email, password))


@router.get("/validate-token", response_model=TokenValidationResponse)
async def validate_token(_authorization: BearerDep) -> TokenValidationResponse:
    """Format check only; the backend validates the token itself on use."""
    return TokenValidationResponse(valid=True)


@router.post("/members")
async def register_member(request: Request, api: ApiClientDep) -> Response:
    """Public member registration."""
    member = checks.validate_member(await _read_json(request))
    return _relay(await api.register_member(member))


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------


@router.get("/departments")
async def list_departments(api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(await api.request("GET", "/departments/", authorization=authorization))


@router.post("/departments")
async def create_department(request: Request, api: ApiClientDep, authorization: BearerDep) -> Response:
    department = checks.validate_department(await _read_json(request))
    return _relay(
        await api.request("POST", "/departments/", authorization=authorization, json_body=department)
    )


@router.get("/admin/departments/{department_id}")
async def get_department(department_id: str, api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(
        await api.request(
            "GET", f"/admin-panel/departments/{department_id}/", authorization=authorization
        )
    )


@router.put("/admin/departments/{department_id}")
async def replace_department(
    department_id: str, request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    department = checks.validate_department(await _read_json(request))
    return _relay(
        await api.request(
            "PUT",
            f"/admin-panel/departments/{department_id}/",
            authorization=authorization,
            json_body=department,
        )
    )


@router.patch("/admin/departments/{department_id}")
async def update_department(
    department_id: str, request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    changes = checks.validate_department(await _read_json(request), partial=True)
    return _relay(
        await api.request(
            "PATCH",
            f"/admin-panel/departments/{department_id}/",
            authorization=authorization,
            json_body=changes,
        )
    )


@router.delete("/admin/departments/{department_id}")
async def delete_department(department_id: str, api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay_delete(
        await api.request(
            "DELETE", f"/admin-panel/departments/{department_id}/", authorization=authorization
        )
    )


# ---------------------------------------------------------------------------
# Admin utilities
# ---------------------------------------------------------------------------


@router.post("/admin/verify-pin", response_model=PinVerificationResponse)
async def verify_pin(request: Request, settings: SettingsDep) -> Response:
    """Second-factor PIN gate for the admin panel."""
    body = await _read_json(request)
    pin = body.get("pin") if isinstance(body, dict) else None
    if not pin:
        raise PayloadValidationError("PIN is required")
    if not settings.admin_pin_code:
        raise ConfigurationError("Admin PIN not configured")

    if hmac.compare_digest(str(pin).encode(), settings.admin_pin_code.encode()):
        return JSONResponse(
            content=PinVerificationResponse(
                success=True, message="PIN verified successfully"
            ).model_dump()
        )
    _logger.warning("admin_pin_rejected")
    raise AuthorizationError("Invalid PIN")


@router.get("/admin/dashboard-stats")
async def dashboard_stats(dashboard: DashboardDep, authorization: BearerDep) -> Response:
    stats = await dashboard.compute(authorization)
    return JSONResponse(content=stats.model_dump(by_alias=True))


# ---------------------------------------------------------------------------
# Admin content: members, departments, devotionals
# ---------------------------------------------------------------------------


@router.get("/contents/members")
async def list_members(api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(await api.request("GET", "/admin-panel/members/", authorization=authorization))


@router.post("/contents/members")
async def create_member(request: Request, api: ApiClientDep, authorization: BearerDep) -> Response:
    member = checks.validate_member(await _read_json(request))
    return _relay(
        await api.request(
            "POST", "/admin-panel/members/", authorization=authorization, json_body=member
        )
    )


@router.get("/contents/departments")
async def list_admin_departments(api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(
        await api.request("GET", "/admin-panel/departments/", authorization=authorization)
    )


@router.post("/contents/departments")
async def create_admin_department(
    request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    department = checks.validate_department(await _read_json(request))
    return _relay(
        await api.request(
            "POST", "/admin-panel/departments/", authorization=authorization, json_body=department
        )
    )


@router.get("/contents/devotionals")
async def list_devotionals(api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(
        await api.request("GET", "/admin-panel/devotionals/", authorization=authorization)
    )


@router.post("/contents/devotionals")
async def create_devotional(request: Request, api: ApiClientDep, authorization: BearerDep) -> Response:
    devotional = checks.validate_devotional(await _read_json(request))
    return _relay(
        await api.request(
            "POST", "/admin-panel/devotionals/", authorization=authorization, json_body=devotional
        )
    )


@router.get("/contents/devotionals/{devotional_id}")
async def get_devotional(devotional_id: str, api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(
        await api.request(
            "GET", f"/admin-panel/devotionals/{devotional_id}/", authorization=authorization
        )
    )


@router.put("/contents/devotionals/{devotional_id}")
async def replace_devotional(
    devotional_id: str, request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    return _relay(
        await api.request(
            "PUT",
            f"/admin-panel/devotionals/{devotional_id}/",
            authorization=authorization,
            json_body=checks.require_object(await _read_json(request)),
        )
    )


@router.patch("/contents/devotionals/{devotional_id}")
async def update_devotional(
    devotional_id: str, request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    return _relay(
        await api.request(
            "PATCH",
            f"/admin-panel/devotionals/{devotional_id}/",
            authorization=authorization,
            json_body=checks.require_object(await _read_json(request)),
        )
    )


@router.delete("/contents/devotionals/{devotional_id}")
async def delete_devotional(devotional_id: str, api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay_delete(
        await api.request(
            "DELETE", f"/admin-panel/devotionals/{devotional_id}/", authorization=authorization
        )
    )


# ---------------------------------------------------------------------------
# Testimonies
# ---------------------------------------------------------------------------


@router.get("/contents/testimonies")
async def list_testimonies(request: Request, api: ApiClientDep, authorization: BearerDep) -> Response:
    """Testimony listing reduced to the fields the moderation screen shows.

    The caller's query string (paging, status filter) is passed through.
    """
    upstream = await api.request(
        "GET",
        "/admin-panel/testimonies/",
        authorization=authorization,
        params=request.query_params.multi_items(),
    )
    if not upstream.ok:
        return JSONResponse(
            content={"error": "Failed to fetch testimonies from external API"},
            status_code=upstream.status_code,
        )
    return JSONResponse(content=checks.project_testimonies(upstream.payload))


@router.post("/contents/testimonies")
async def submit_testimony(request: Request, api: ApiClientDep, authorization: OptionalAuthDep) -> Response:
    """Multipart testimony submission: ``text`` plus an image and/or a video."""
    form = await request.form()
    text = form.get("text")
    image = form.get("image")
    video = form.get("video")
    text = checks.validate_testimony_submission(
        text if isinstance(text, str) else None,
        has_image=isinstance(image, UploadFile),
        has_video=isinstance(video, UploadFile),
    )

    files: list[tuple[str, tuple[str, bytes, str]]] = []
    for field, upload in (("image", image), ("video", video)):
        if isinstance(upload, UploadFile):
            files.append(
                (
                    field,
                    (
                        upload.filename or field,
                        await upload.read(),
                        upload.content_type or "application/octet-stream",
                    ),
                )
            )

    return _relay(
        await api.request(
            "POST",
            "/admin-panel/testimonies/",
            authorization=authorization,
            data={"text": text},
            files=files,
        )
    )


@router.get("/contents/testimonies/{testimony_id}")
async def get_testimony(testimony_id: str, api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(
        await api.request(
            "GET", f"/admin-panel/testimonies/{testimony_id}/", authorization=authorization
        )
    )


@router.put("/contents/testimonies/{testimony_id}")
async def replace_testimony(
    testimony_id: str, request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    return _relay(
        await api.request(
            "PUT",
            f"/admin-panel/testimonies/{testimony_id}/",
            authorization=authorization,
            json_body=checks.require_object(await _read_json(request)),
        )
    )


@router.patch("/contents/testimonies/{testimony_id}")
async def update_testimony(
    testimony_id: str, request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    return _relay(
        await api.request(
            "PATCH",
            f"/admin-panel/testimonies/{testimony_id}/",
            authorization=authorization,
            json_body=checks.require_object(await _read_json(request)),
        )
    )


@router.delete("/contents/testimonies/{testimony_id}")
async def delete_testimony(testimony_id: str, api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay_testimony_delete(
        await api.request(
            "DELETE", f"/admin-panel/testimonies/{testimony_id}/", authorization=authorization
        )
    )


@router.post("/contents/testimonies/{testimony_id}/moderate")
async def moderate_testimony(
    testimony_id: str, request: Request, api: ApiClientDep, authorization: BearerDep
) -> Response:
    action = checks.validate_moderation_action(await _read_json(request))
    _logger.info("testimony_moderated", testimony_id=testimony_id, action=action)
    return _relay(await api.moderate_testimony(testimony_id, action, authorization))


@router.get("/admin-panel/testimonies")
async def list_admin_testimonies(api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(
        await api.request("GET", "/admin-panel/testimonies/", authorization=authorization)
    )


@router.delete("/admin-panel/testimonies/{testimony_id}")
async def delete_admin_testimony(
    testimony_id: str, api: ApiClientDep, authorization: BearerDep
) -> Response:
    return _relay_testimony_delete(
        await api.request(
            "DELETE", f"/admin-panel/testimonies/{testimony_id}/", authorization=authorization
        )
    )


@router.post("/admin-panel/testimonies/{testimony_id}/approve")
async def approve_testimony(testimony_id: str, api: ApiClientDep, authorization: BearerDep) -> Response:
    return _relay(await api.moderate_testimony(testimony_id, "approve", authorization))


# ---------------------------------------------------------------------------
# Cached content feeds
# ---------------------------------------------------------------------------


@router.get("/feeds")
async def list_feeds(feeds: FeedsDep, _authorization: BearerDep) -> dict[str, list[str]]:
    return {"feeds": feeds.feed_names}


@router.get("/feeds/{name}")
async def read_feed(
    name: str, feeds: FeedsDep, authorization: BearerDep, refresh: bool = False
) -> Response:
    """One admin collection served cache first.

    A fresh cached entry is returned without a backend call; a stale or
    missing one is refetched.  ``?refresh=true`` always refetches.  The
    body is the accessor state; a fetch error with no data to show
    answers 502.
    """
    if name not in feeds.feed_names:
        return JSONResponse(content={"error": f"Unknown content feed: {name}"}, status_code=404)

    feed = feeds.get_feed(name)
    accessor = feeds.accessor(name, authorization.removeprefix("Bearer "))
    if refresh:
        await accessor.refresh()
    else:
        await accessor.start()
    state = accessor.state
    await accessor.stop()

    status_code = 502 if state.error and state.data is None else 200
    return JSONResponse(
        content={"feed": feed.name, "cache_key": feed.cache_key, **state.to_dict()},
        status_code=status_code,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    storage = getattr(request.app.state, "storage", None)
    return HealthResponse(
        status="ok",
        version=_APP_VERSION,
        cache_backend=storage.get_provider_name() if storage is not None else "none",
    )
