# erp/routers/settings.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp.db import get_db
from erp.errors import NotFoundError, ValidationError
from erp.models import Permission, Role, User, WhatsAppConfig
from erp.schemas.settings import PasswordReset, RoleIn, RoleUpdate, UserCreate, UserUpdate, WhatsAppConfigIn
from erp.utils.security import hash_password
from erp.utils.serialize import apply_changes

router = APIRouter(prefix="/api/settings", tags=["settings"])


def user_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "is_active": u.is_active,
        "role": {"id": u.role.id, "name": u.role.name} if u.role else None,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


def role_to_dict(r: Role) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "description": r.description,
        "is_admin": r.is_admin,
        "is_system": r.is_system,
        "permissions": sorted(p.name for p in r.permissions),
        "user_count": len(r.users),
    }


def _user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    return role


def _permissions(db: Session, names: List[str]) -> List[Permission]:
    # unknown permission names are created on the fly
    result = []
    for name in sorted({n.strip() for n in names if n and n.strip()}):
        perm = db.query(Permission).filter(Permission.name == name).first()
        if perm is None:
            perm = Permission(name=name)
            db.add(perm)
        result.append(perm)
    return result


# ---------- USERS ----------
@router.get("/users")
def list_users(db: Session = Depends(get_db)):
    return [user_to_dict(u) for u in db.query(User).order_by(User.name).all()]


@router.post("/users", status_code=201)
def create_user(body: UserCreate, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    if db.query(User.id).filter(User.email == email).first():
        raise ValidationError(f"Email {email} is already registered")
    if body.role_id is not None:
        _role(db, body.role_id)
    user = User(
        name=body.name,
        email=email,
        password_hash=hash_password(body.password),
        role_id=body.role_id,
        is_active=body.is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user_to_dict(user)


@router.put("/users/{user_id}")
def update_user(user_id: int, body: UserUpdate, db: Session = Depends(get_db)):
    user = _user(db, user_id)
    data = body.model_dump(exclude_unset=True)
    if data.get("email"):
        data["email"] = data["email"].strip().lower()
        if db.query(User.id).filter(User.email == data["email"], User.id != user.id).first():
            raise ValidationError(f"Email {data['email']} is already registered")
    if data.get("role_id") is not None:
        _role(db, data["role_id"])
    apply_changes(user, data)
    db.commit()
    db.refresh(user)
    return user_to_dict(user)


@router.post("/users/{user_id}/reset-password")
def reset_password(user_id: int, body: PasswordReset, db: Session = Depends(get_db)):
    user = _user(db, user_id)
    user.password_hash = hash_password(body.password)
    db.commit()
    return {"message": "Password updated"}


@router.delete("/users/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    db.delete(_user(db, user_id))
    db.commit()
    return {"ok": True}


# ---------- ROLES ----------
@router.get("/roles")
def list_roles(db: Session = Depends(get_db)):
    return [role_to_dict(r) for r in db.query(Role).order_by(Role.name).all()]


@router.post("/roles", status_code=201)
def create_role(body: RoleIn, db: Session = Depends(get_db)):
    if db.query(Role.id).filter(Role.name == body.name).first():
        raise ValidationError(f"Role {body.name} already exists")
    role = Role(name=body.name, description=body.description, is_admin=body.is_admin)
    role.permissions = _permissions(db, body.permissions)
    db.add(role)
    db.commit()
    db.refresh(role)
    return role_to_dict(role)


@router.put("/roles/{role_id}")
def update_role(role_id: int, body: RoleUpdate, db: Session = Depends(get_db)):
    role = _role(db, role_id)
    data = body.model_dump(exclude_unset=True)
    if data.get("name") and data["name"] != role.name:
        if role.is_system:
            raise ValidationError("System roles cannot be renamed")
        if db.query(Role.id).filter(Role.name == data["name"], Role.id != role.id).first():
            raise ValidationError(f"Role {data['name']} already exists")
    names = data.pop("permissions", None)
    apply_changes(role, data)
    if names is not None:
        role.permissions = _permissions(db, names)
    db.commit()
    db.refresh(role)
    return role_to_dict(role)


@router.delete("/roles/{role_id}")
def delete_role(role_id: int, db: Session = Depends(get_db)):
    role = _role(db, role_id)
    if role.is_system:
        raise ValidationError("System roles cannot be deleted")
    if role.users:
        raise ValidationError("Role is assigned to users and cannot be deleted")
    db.delete(role)
    db.commit()
    return {"ok": True}


# ---------- WHATSAPP ----------
def _mask(token):
    if not token:
        return None
    return token[:4] + "..." + token[-4:] if len(token) > 8 else "***"


@router.get("/whatsapp")
def get_whatsapp_config(db: Session = Depends(get_db)):
    cfg = db.query(WhatsAppConfig).order_by(WhatsAppConfig.id).first()
    if cfg is None:
        return {"configured": False}
    return {
        "configured": bool(cfg.phone_number_id and cfg.access_token),
        "phone_number_id": cfg.phone_number_id,
        "business_account_id": cfg.business_account_id,
        "access_token": _mask(cfg.access_token),
        "updated_at": cfg.updated_at.isoformat() if cfg.updated_at else None,
    }


@router.put("/whatsapp")
def update_whatsapp_config(body: WhatsAppConfigIn, db: Session = Depends(get_db)):
    cfg = db.query(WhatsAppConfig).order_by(WhatsAppConfig.id).first()
    if cfg is None:
        cfg = WhatsAppConfig()
        db.add(cfg)
    apply_changes(cfg, body.model_dump(exclude_unset=True))
    db.commit()
    return get_whatsapp_config(db)
