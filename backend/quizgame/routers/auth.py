from datetime import datetime, timedelta, timezone
from typing import Optional
import json
import logging
import re
import secrets
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field, field_validator

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthSession, Profile, User
from ..ratelimit import auth_limiter

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]{3,20}$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*#?&])")
LANGS = ("th", "en")

SESSION_REFRESH = "refresh"
SESSION_QR = "qr"


class UserOut(BaseModel):
	id: str
	username: str
	display_name: Optional[str] = None
	role: str
	lang: str
	is_anonymous: bool = False


class TokenPair(BaseModel):
	access_token: str
	refresh_token: str
	token_type: str = "bearer"
	user: UserOut


class SignUpRequest(BaseModel):
	username: str
	password: str
	display_name: Optional[str] = None
	lang: str = "th"

	@field_validator("username")
	@classmethod
	def _check_username(cls, v: str) -> str:
		v = (v or "").strip()
		if not USERNAME_RE.match(v):
			raise ValueError("username must be 3-20 letters, numbers, underscores or hyphens")
		return v

	@field_validator("password")
	@classmethod
	def _check_password(cls, v: str) -> str:
		if len(v or "") < 8 or not PASSWORD_RE.match(v):
			raise ValueError("password must be at least 8 characters with upper and lower case letters, a number and a special character")
		return v

	@field_validator("lang")
	@classmethod
	def _check_lang(cls, v: str) -> str:
		if v not in LANGS:
			raise ValueError(f"lang must be one of {LANGS}")
		return v


class SignInRequest(BaseModel):
	username: str = Field(min_length=1)
	password: str = Field(min_length=1)


class AnonymousRequest(BaseModel):
	lang: str = "th"


class RefreshRequest(BaseModel):
	refresh_token: str


class QrLoginRequest(BaseModel):
	qr_data: str


def user_out(user: User) -> UserOut:
	display_name = user.profile.display_name if user.profile else None
	return UserOut(
		id=user.id,
		username=user.username,
		display_name=display_name or user.username,
		role=user.role,
		lang=user.lang,
		is_anonymous=bool(user.is_anonymous),
	)


def hash_password(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return pwd_context.hash(password_bytes.decode('utf-8', errors='ignore'))


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
	if not hashed_password:
		return False
	password_bytes = plain_password.encode('utf-8')[:72]
	return pwd_context.verify(password_bytes.decode('utf-8', errors='ignore'), hashed_password)


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _naive(dt: datetime) -> datetime:
	# Stored timestamps are naive UTC
	return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _resolve_expiry(expires_delta: timedelta) -> datetime:
	now = _now()
	try:
		return now + expires_delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
	to_encode.update({"exp": expire, "type": "access"})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta or timedelta(days=settings.refresh_token_expire_days))
	to_encode.update({"exp": expire, "type": "refresh"})
	return jwt.encode(to_encode, settings.jwt_refresh_secret_key, algorithm=settings.jwt_algorithm)


def issue_tokens(db: Session, user: User) -> TokenPair:
	"""Open a new refresh session for ``user`` and return a fresh token pair."""
	session_id = uuid.uuid4().hex
	expires_at = _now() + timedelta(days=settings.refresh_token_expire_days)
	db.add(AuthSession(
		session_id=session_id,
		user_id=user.id,
		kind=SESSION_REFRESH,
		expires_at=_naive(expires_at),
	))
	user.last_login_at = datetime.utcnow()
	db.commit()
	db.refresh(user)
	claims = {"sub": user.id, "sid": session_id, "role": user.role}
	return TokenPair(
		access_token=create_access_token(claims),
		refresh_token=create_refresh_token({"sub": user.id, "sid": session_id}),
		user=user_out(user),
	)


def _drop_refresh_sessions(db: Session, user_id: str) -> None:
	db.query(AuthSession).filter(
		AuthSession.user_id == user_id,
		AuthSession.kind == SESSION_REFRESH,
	).delete(synchronize_session=False)


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
	user = db.query(User).filter(User.username == username).first()
	if not user or not user.is_active or user.is_anonymous:
		return None
	if not verify_password(password, user.password_hash):
		return None
	return user


def ensure_seed_admin(db: Session) -> None:
	username = settings.seed_admin_username
	password = settings.seed_admin_password
	if not username or not password:
		return
	if db.query(User).filter(User.username == username).first():
		return
	admin = User(username=username, password_hash=hash_password(password), role="ADMIN")
	admin.profile = Profile(display_name=username)
	db.add(admin)
	db.commit()
	logger.info("Seed admin %s created", username)


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		user_id: str | None = payload.get("sub")
		session_id: str | None = payload.get("sid")
		if user_id is None or session_id is None or payload.get("type") != "access":
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# The refresh session must still exist, so logout and rotation revoke access tokens too
	row = db.get(AuthSession, session_id)
	if not row or row.user_id != user_id or row.kind != SESSION_REFRESH:
		raise credentials_exception
	user = db.get(User, user_id)
	if not user or not user.is_active:
		raise HTTPException(status_code=401, detail="User not found")
	row.last_activity_at = datetime.utcnow()
	db.commit()
	return user


def require_admin(user: User = Depends(get_current_user)) -> User:
	if user.role != "ADMIN":
		raise HTTPException(status_code=403, detail="Admin access required")
	return user


@router.post("/signup", response_model=TokenPair, status_code=201, dependencies=[Depends(auth_limiter)])
async def signup(req: SignUpRequest, db: Session = Depends(get_db)):
	existing = db.query(User).filter(User.username == req.username).first()
	if existing:
		raise HTTPException(status_code=409, detail="username already exists")
	user = User(username=req.username, password_hash=hash_password(req.password), lang=req.lang)
	user.profile = Profile(display_name=(req.display_name or "").strip() or req.username)
	db.add(user)
	db.commit()
	db.refresh(user)
	return issue_tokens(db, user)


@router.post("/signin", response_model=TokenPair, dependencies=[Depends(auth_limiter)])
async def signin(req: SignInRequest, db: Session = Depends(get_db)):
	user = authenticate_user(db, req.username.strip(), req.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	# One refresh session per login; QR tokens survive
	_drop_refresh_sessions(db, user.id)
	return issue_tokens(db, user)


@router.post("/token", dependencies=[Depends(auth_limiter)])
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username.strip(), form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	_drop_refresh_sessions(db, user.id)
	pair = issue_tokens(db, user)
	return {"access_token": pair.access_token, "token_type": "bearer"}


@router.post("/anonymous", response_model=TokenPair, dependencies=[Depends(auth_limiter)])
async def anonymous(req: AnonymousRequest, db: Session = Depends(get_db)):
	lang = req.lang if req.lang in LANGS else settings.default_lang
	user = User(username=f"anon_{secrets.token_hex(8)}", lang=lang, is_anonymous=True)
	user.profile = Profile(display_name="Anonymous")
	db.add(user)
	db.commit()
	db.refresh(user)
	return issue_tokens(db, user)


@router.post("/refresh", response_model=TokenPair)
async def refresh(req: RefreshRequest, db: Session = Depends(get_db)):
	invalid = HTTPException(status_code=401, detail="Invalid or expired refresh token")
	try:
		payload = jwt.decode(req.refresh_token, settings.jwt_refresh_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise invalid
	if payload.get("type") != "refresh":
		raise invalid
	row = db.get(AuthSession, payload.get("sid"))
	if not row or row.kind != SESSION_REFRESH or row.user_id != payload.get("sub"):
		raise invalid
	if row.expires_at < datetime.utcnow():
		db.delete(row)
		db.commit()
		raise invalid
	user = db.get(User, row.user_id)
	if not user or not user.is_active:
		raise invalid
	# Rotate: the old refresh token stops working
	db.delete(row)
	pair = issue_tokens(db, user)
	logger.info("Token refreshed for user %s", user.username)
	return pair


@router.post("/logout")
async def logout(req: RefreshRequest, db: Session = Depends(get_db)):
	try:
		payload = jwt.decode(req.refresh_token, settings.jwt_refresh_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		return {"ok": True}
	row = db.get(AuthSession, payload.get("sid"))
	if row and row.kind == SESSION_REFRESH:
		db.delete(row)
		db.commit()
	return {"ok": True}


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
	return user_out(user)


def _active_qr_session(db: Session, user_id: str) -> Optional[AuthSession]:
	return (
		db.query(AuthSession)
		.filter(
			AuthSession.user_id == user_id,
			AuthSession.kind == SESSION_QR,
			AuthSession.expires_at > datetime.utcnow(),
		)
		.order_by(AuthSession.created_at.desc())
		.first()
	)


@router.post("/qr/generate")
async def qr_generate(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if user.is_anonymous:
		raise HTTPException(status_code=400, detail="Anonymous players cannot create QR logins")
	row = _active_qr_session(db, user.id)
	if not row:
		row = AuthSession(
			session_id=secrets.token_urlsafe(24),
			user_id=user.id,
			kind=SESSION_QR,
			expires_at=_naive(_now() + timedelta(days=settings.qr_token_expire_days)),
		)
		db.add(row)
		db.commit()
		db.refresh(row)
	qr_data = json.dumps({"token": row.session_id, "username": user.username})
	return {
		"qr_data": qr_data,
		"qr_token": row.session_id,
		"username": user.username,
		"expires_at": row.expires_at,
	}


@router.post("/qr/login", response_model=TokenPair, dependencies=[Depends(auth_limiter)])
async def qr_login(req: QrLoginRequest, db: Session = Depends(get_db)):
	try:
		parsed = json.loads(req.qr_data)
		token = str(parsed["token"])
		username = str(parsed["username"])
	except (ValueError, KeyError, TypeError):
		raise HTTPException(status_code=400, detail="Invalid QR code")
	row = db.get(AuthSession, token)
	if not row or row.kind != SESSION_QR or row.expires_at <= datetime.utcnow():
		raise HTTPException(status_code=401, detail="Invalid or expired QR code")
	user = db.get(User, row.user_id)
	if not user or not user.is_active:
		raise HTTPException(status_code=401, detail="Invalid or expired QR code")
	if user.username != username:
		raise HTTPException(status_code=401, detail="QR code mismatch")
	_drop_refresh_sessions(db, user.id)
	return issue_tokens(db, user)


@router.post("/qr/revoke")
async def qr_revoke(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	removed = db.query(AuthSession).filter(
		AuthSession.user_id == user.id,
		AuthSession.kind == SESSION_QR,
	).delete(synchronize_session=False)
	db.commit()
	return {"ok": True, "revoked": removed}


@router.get("/qr/active")
async def qr_active(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = _active_qr_session(db, user.id)
	if not row:
		return {"has_active_token": False}
	return {"has_active_token": True, "created_at": row.created_at, "expires_at": row.expires_at}
