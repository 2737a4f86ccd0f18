"""Rutas de cuentas: listado paginado con estado por sesión, búsqueda, preferencias y CRUD.

Las respuestas por defecto son un sobre JSON con la vista a pintar
(``accounts/index``, ``accounts/show``...). Con ``Accept: application/xml`` o
``text/csv`` se devuelven los datos completos sin paginar.
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import RecordUnavailable, raise_api_error
from app.core.limiter import limiter
from app.core.session_store import SessionContext
from app.models.account import Account
from app.models.contact import Contact
from app.models.user import User
from app.schemas.account import Access, AccountCreate, AccountUpdate, AutoCompleteRequest, RedrawRequest
from app.schemas.preferences import ViewPreferencesResponse
from app.services.activity_service import log_activity, mark_viewed
from app.services.auth_service import get_current_user, get_session
from app.services.listing import OutputMode, auto_complete, build_listing, relist_after_delete
from app.services.navigation import resolve_previous
from app.services.pagination_state import PaginationState
from app.services.preference_service import resolve_preferences, save_preferences
from app.services.records import fetch_visible, load_record, replace_permissions, soft_delete
from app.services.renderers import (
    Representation,
    negotiate,
    render_export,
    render_listing,
    render_record_export,
    render_view,
)
from app.services.resources import ACCOUNTS
from app.services.visibility import can_view

router = APIRouter(prefix="/api/accounts", tags=["accounts"])

UNAVAILABLE_MESSAGE = "Esta cuenta ya no está disponible."
RELATED_MODELS = {"account": Account, "contact": Contact}
EDITABLE_FIELDS = ("name", "website", "phone", "email", "background_info")


def _mode(representation: Representation) -> OutputMode:
    return OutputMode.export if representation.is_export else OutputMode.page


def _other_users(db: Session, user: User) -> list[dict]:
    """Usuarios con los que se puede compartir una cuenta."""
    users = db.query(User).filter(
        User.is_active.is_(True), User.id != user.id
    ).order_by(User.full_name, User.id).all()
    return [u.to_dict() for u in users]


def _unavailable(db: Session, user: User, session: SessionContext, representation: Representation):
    """Cuenta eliminada o protegida: mismo mensaje en ambos casos."""
    if representation.is_export:
        raise_api_error(404, "not_found", UNAVAILABLE_MESSAGE)
    listing = build_listing(db, user, session, ACCOUNTS)
    return render_listing("accounts/index", listing, flash={"warning": UNAVAILABLE_MESSAGE})


def _resolve_related(db: Session, user: User, hint: str | None) -> dict | None:
    """'contact_42' -> contacto 42 si existe y es visible; si no, None sin error."""
    if not hint:
        return None
    kind, _, raw_id = hint.rpartition("_")
    model = RELATED_MODELS.get(kind)
    if model is None or not raw_id.isdigit():
        logger.debug(f"Pista de registro relacionado ignorada: {hint!r}")
        return None
    record = load_record(db, model, int(raw_id))
    if not can_view(user, record):
        return None
    return {"type": kind, "record": record.to_dict()}


@router.get("")
def list_accounts(
    request: Request,
    page: int | None = Query(None, ge=1),
    query: str | None = Query(None, max_length=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    representation = negotiate(request)
    listing = build_listing(db, user, session, ACCOUNTS, page=page, query=query, mode=_mode(representation))
    if representation.is_export:
        return render_export(listing.items, representation)
    return render_listing("accounts/index", listing)


@router.get("/search")
def search_accounts(
    request: Request,
    query: str = Query("", max_length=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    representation = negotiate(request)
    listing = build_listing(db, user, session, ACCOUNTS, page=1, query=query, mode=_mode(representation))
    if representation.is_export:
        return render_export(listing.items, representation)
    return render_listing("accounts/index", listing)


@router.post("/auto_complete")
def auto_complete_accounts(
    data: AutoCompleteRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    matches = auto_complete(db, user, ACCOUNTS, data.query, get_settings().auto_complete_limit)
    return render_view(
        "accounts/auto_complete",
        query=data.query,
        auto_complete=[{"id": a.id, "name": a.name} for a in matches],
    )


@router.get("/options")
def account_options(
    cancel: bool = Query(False),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if cancel:
        return render_view("accounts/options")
    prefs = resolve_preferences(db, user, ACCOUNTS)
    response = ViewPreferencesResponse(per_page=prefs.per_page, outline=prefs.outline, sort_by=prefs.sort_by)
    return render_view(
        "accounts/options",
        sort_fields=list(ACCOUNTS.sort_fields),
        **response.model_dump(mode="json"),
    )


@router.post("/redraw")
def redraw_accounts(
    data: RedrawRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    save_preferences(
        db,
        user,
        ACCOUNTS,
        per_page=data.per_page,
        outline=data.outline.value if data.outline else None,
        sort_by=data.sort_by,
    )
    # Cambiar tamaño u orden invalida el desplazamiento anterior
    PaginationState(session, ACCOUNTS.name).page = 1
    listing = build_listing(db, user, session, ACCOUNTS)
    return render_listing("accounts/index", listing)


@router.get("/new")
def new_account(
    related: str | None = Query(None, max_length=64),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    blank = Account(user_id=user.id, access=Access.public.value)
    return render_view(
        "accounts/new",
        account=blank.to_dict(),
        users=_other_users(db, user),
        related=_resolve_related(db, user, related),
    )


@router.get("/{account_id}")
def show_account(
    account_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    representation = negotiate(request)
    try:
        account = fetch_visible(db, user, Account, account_id)
    except RecordUnavailable:
        return _unavailable(db, user, session, representation)

    mark_viewed(db, user, account)
    if representation.is_export:
        return render_record_export(account, representation)
    return render_view("accounts/show", account=account.to_dict())


@router.get("/{account_id}/edit")
def edit_account(
    account_id: int,
    request: Request,
    previous: int | None = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    try:
        account = fetch_visible(db, user, Account, account_id)
    except RecordUnavailable:
        return _unavailable(db, user, session, negotiate(request))

    resolved = resolve_previous(db, user, Account, account_id, previous)
    return render_view(
        "accounts/edit",
        account=account.to_dict(),
        users=_other_users(db, user),
        previous=resolved.to_dict(),
    )


@router.post("", status_code=201)
@limiter.limit("30 per minute")
def create_account(
    request: Request,
    data: AccountCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    account = Account(
        user_id=user.id,
        name=data.name,
        website=data.website,
        phone=data.phone,
        email=data.email,
        background_info=data.background_info,
        access=data.access.value,
    )
    db.add(account)
    db.flush()
    if data.access is Access.shared:
        replace_permissions(db, account, data.share_with)
    log_activity(db, user, account, "created")
    db.commit()
    db.refresh(account)
    logger.info(f"Cuenta #{account.id} creada por usuario {user.id} ({account.access})")

    representation = negotiate(request)
    if representation.is_export:
        response = render_record_export(account, representation)
        response.status_code = 201
        return response
    # El listado se recarga para mantener la paginación al día
    listing = build_listing(db, user, session, ACCOUNTS)
    return render_listing(
        "accounts/create",
        listing,
        status_code=201,
        account=account.to_dict(),
        users=_other_users(db, user),
    )


@router.put("/{account_id}")
def update_account(
    account_id: int,
    data: AccountUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    representation = negotiate(request)
    try:
        account = fetch_visible(db, user, Account, account_id)
    except RecordUnavailable:
        return _unavailable(db, user, session, representation)

    upd = data.model_dump(exclude_unset=True)
    share_with = upd.pop("share_with", None)
    for field in EDITABLE_FIELDS:
        if field in upd and not (field == "name" and upd[field] is None):
            setattr(account, field, upd[field])
    if upd.get("access") is not None:
        account.access = Access(upd["access"]).value

    if account.access != Access.shared:
        if account.permissions:
            replace_permissions(db, account, [])
    elif share_with is not None:
        replace_permissions(db, account, share_with)

    log_activity(db, user, account, "updated")
    db.commit()
    db.refresh(account)
    logger.info(f"Cuenta #{account.id} actualizada por usuario {user.id}")

    if representation.is_export:
        return render_record_export(account, representation)
    listing = build_listing(db, user, session, ACCOUNTS)
    return render_listing("accounts/update", listing, account=account.to_dict())


@router.delete("/{account_id}")
def destroy_account(
    account_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
):
    representation = negotiate(request)
    try:
        account = fetch_visible(db, user, Account, account_id)
    except RecordUnavailable:
        return _unavailable(db, user, session, representation)

    name = account.name
    soft_delete(db, account)
    log_activity(db, user, account, "deleted")
    db.commit()
    logger.info(f"Cuenta #{account_id} eliminada por usuario {user.id}")

    if representation.is_export:
        return Response(status_code=204)
    listing, emptied = relist_after_delete(db, user, session, ACCOUNTS)
    return render_listing(
        "accounts/index" if emptied else "accounts/destroy",
        listing,
        flash={"notice": f"La cuenta {name} fue eliminada."},
        account_id=account_id,
    )
