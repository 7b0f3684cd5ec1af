from __future__ import annotations
import math
import threading
import time
from typing import Dict, Optional, Tuple

from fastapi import HTTPException, Request
from jose import JWTError, jwt

from .settings import settings


def client_ip(request: Request) -> str:
	"""Address of the caller.

	``X-Forwarded-For`` is only read when ``TRUST_PROXY_HEADERS`` is set; the
	last entry is the one appended by our own proxy.
	"""
	if settings.trust_proxy_headers:
		forwarded = request.headers.get("x-forwarded-for")
		if forwarded:
			return forwarded.split(",")[-1].strip()
	return request.client.host if request.client else "anon"


def bearer_subject(request: Request) -> Optional[str]:
	scheme, _, token = request.headers.get("authorization", "").partition(" ")
	if scheme.lower() != "bearer" or not token:
		return None
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		return None
	return payload.get("sub")


class RateLimiter:
	"""Fixed-window request counter, usable as a FastAPI dependency.

	Requests are keyed by client address, or by the signed-in user when
	``per_user`` is set and the request carries a valid access token. Counters
	live in process memory, so limits apply per worker.
	"""

	def __init__(self, name: str, max_requests: int, window_seconds: int, per_user: bool = False) -> None:
		self.name = name
		self.max_requests = max_requests
		self.window_seconds = window_seconds
		self.per_user = per_user
		self._hits: Dict[str, Tuple[int, float]] = {}
		self._next_sweep = 0.0
		self._lock = threading.Lock()

	def __len__(self) -> int:
		return len(self._hits)

	def key(self, request: Request) -> str:
		if self.per_user:
			subject = bearer_subject(request)
			if subject:
				return f"user:{subject}"
		return f"ip:{client_ip(request)}"

	def hit(self, key: str, now: Optional[float] = None) -> float:
		"""Count one request for ``key``; return seconds to wait, 0 if allowed."""
		now = time.monotonic() if now is None else now
		with self._lock:
			if now >= self._next_sweep:
				self._hits = {k: v for k, v in self._hits.items() if v[1] > now}
				self._next_sweep = now + self.window_seconds
			count, reset_at = self._hits.get(key, (0, 0.0))
			if now >= reset_at:
				self._hits[key] = (1, now + self.window_seconds)
				return 0
			if count >= self.max_requests:
				return reset_at - now
			self._hits[key] = (count + 1, reset_at)
			return 0

	def reset(self) -> None:
		with self._lock:
			self._hits.clear()
			self._next_sweep = 0.0

	async def __call__(self, request: Request) -> None:
		retry_after = self.hit(self.key(request))
		if retry_after > 0:
			raise HTTPException(
				status_code=429,
				detail="Too many requests",
				headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
			)


auth_limiter = RateLimiter("auth", settings.rate_limit_auth_max, settings.rate_limit_auth_window_seconds)
game_limiter = RateLimiter("game", settings.rate_limit_game_max, settings.rate_limit_game_window_seconds, per_user=True)
