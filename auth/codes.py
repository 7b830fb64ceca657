"""
auth/codes.py -- One-time email code issuance and verification.

Flow:
  generate_code(email)          -> code id (the code value itself only goes out by email)
  verify_code(code_id, code)    -> (User, is_new_user)

Code lifecycle:
  created   attempts=0, expires_at=now+15m
  mismatch  attempts += 1, row kept                   -> PreconditionFailedError (412)
  overused  attempts > MAX_CODE_ATTEMPTS, row deleted -> GoneError (410)
  expired   expires_at < now, row deleted             -> GoneError (410)
  match     user fetched or created, row deleted

So a code takes two wrong submissions (412 each). The third mismatch pushes
attempts past MAX_CODE_ATTEMPTS, deletes the row and is answered with Gone.

Concurrency: the attempt increment is read-modify-write with no lock. Two
simultaneous wrong submissions can both read attempts=N and both write N+1.

Layer rule: no imports from api/. The sender is injected (notify/ shape).
"""

from __future__ import annotations

import logging
import re
import secrets
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from auth.models import User, VerificationCode
from auth.store import CodeStore, UserStore
from core.errors import GoneError, NotFoundError, PreconditionFailedError, ValidationError
from notify.sender import Sender

logger = logging.getLogger("vaultauth.codes")

EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,4}$")

CODE_TTL = timedelta(minutes=15)
MAX_CODE_ATTEMPTS = 2

_CODE_CEILING = 10000
_CODE_FLOOR = 1000

CODE_SUBJECT = "Sign in to your vault"
CODE_BODY = "Your vault sign-in code is {code}. It expires in 15 minutes."


def remap_code(draw: int) -> int:
    """Fold a raw draw below 1000 up into the four-digit range.

    10000 - n for n in [1, 1000) lands in (9000, 9999], so the emailed
    code never has a leading zero that a user could drop. 0 is outside the
    domain: draw_code() never produces it, and 10000 - 0 is five digits.
    """
    if draw < _CODE_FLOOR:
        return _CODE_CEILING - draw
    return draw


def draw_code() -> int:
    """Return a random four-digit code in [1000, 10000).

    The raw draw excludes 0, which remap_code() would turn into 10000.
    """
    return remap_code(secrets.randbelow(_CODE_CEILING - 1) + 1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CodeService:
    """Issues, checks and consumes one-time codes; creates users on first login."""

    def __init__(
        self,
        store: CodeStore | UserStore,
        sender: Sender,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.sender = sender
        self.clock = clock

    def generate_code(self, email: str) -> str:
        """Persist a new code for email, send it, and return the code id.

        Raises ValidationError (nothing persisted) if email fails the syntax
        check. Delivery is best-effort: a failing sender never fails the call.
        """
        if not isinstance(email, str) or not EMAIL_PATTERN.match(email):
            raise ValidationError("Email is not valid")

        code = VerificationCode(
            id=str(uuid.uuid4()),
            email=email,
            code=draw_code(),
            expires_at=self.clock() + CODE_TTL,
        )
        self.store.insert_code(code)
        logger.info("Issued one-time code %s", code.id)

        try:
            self.sender.send(CODE_SUBJECT, CODE_BODY.format(code=code.code), code.email)
        except Exception:
            logger.warning("Could not hand off code %s for delivery", code.id, exc_info=True)
        return code.id

    def verify_code(self, code_id: str, submitted: int) -> tuple[User, bool]:
        """Consume a code and return (user, is_new_user).

        Raises:
            NotFoundError:           no code with this id.
            GoneError:               expired, or a wrong value that used up the last
                                     attempt; the code is deleted.
            PreconditionFailedError: wrong value with attempts left; code kept.
        """
        code = self.store.get_code(code_id)
        if code is None:
            raise NotFoundError("Code not found")

        if code.expires_at < self.clock() or code.attempts > MAX_CODE_ATTEMPTS:
            self.store.delete_code(code.id)
            logger.info("One-time code %s is gone (attempts=%d)", code.id, code.attempts)
            raise GoneError()

        if submitted != code.code:
            code.attempts += 1
            if code.attempts > MAX_CODE_ATTEMPTS:
                self.store.delete_code(code.id)
                logger.info("One-time code %s used up its attempts", code.id)
                raise GoneError()
            self.store.update_code(code)
            raise PreconditionFailedError()

        user, is_new_user = self._get_or_create_user(code.email)
        self.store.delete_code(code.id)
        return user, is_new_user

    def purge_expired_codes(self) -> int:
        removed = self.store.purge_expired_codes(self.clock())
        if removed:
            logger.info("Purged %d expired one-time codes", removed)
        return removed

    def _get_or_create_user(self, email: str) -> tuple[User, bool]:
        user = self.store.get_user_by_email(email)
        if user is not None:
            return user, False

        user = User(id=str(uuid.uuid4()), email=email, created_at=self.clock())
        try:
            self.store.insert_user(user)
        except IntegrityError:
            # Another verification for the same email won the insert [M1].
            existing = self.store.get_user_by_email(email)
            if existing is None:
                raise
            return existing, False
        logger.info("Created user %s", user.id)
        return user, True
