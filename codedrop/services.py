import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from . import utils
from .database import ReferenceStore
from .errors import DuplicateKey, InvalidFormat, NotFound, RegistrationFailed
from .models import FileReference

logger = logging.getLogger(__name__)


class RegistrationService:
    """Binds an uploaded file to a freshly generated access code."""

    def __init__(
        self,
        store: ReferenceStore,
        code_length: int = 6,
        max_retries: int = 5,
        ttl: int = 0,
        generate_code: Callable[[int], str] = utils.generate_code,
    ):
        self.store = store
        self.CODE_LENGTH = code_length
        self.MAX_RETRIES = max_retries
        self.TTL = ttl
        self._generate_code = generate_code

    async def register(self, url: str, name: str) -> str:
        """Persist ``(url, name)`` under a unique code and return the code.

        Each colliding candidate is discarded and a new one drawn, up to
        ``MAX_RETRIES`` attempts. ``StoreUnavailable`` propagates as is.
        """
        created = datetime.now(timezone.utc)
        expires = created + timedelta(seconds=self.TTL) if self.TTL > 0 else None

        for attempt in range(1, self.MAX_RETRIES + 1):
            candidate = self._generate_code(self.CODE_LENGTH)
            try:
                reference = await self.store.put(
                    code=candidate,
                    url=url,
                    name=name,
                    created_at=created,
                    expires_at=expires,
                )
            except DuplicateKey:
                logger.debug("[Register] Code collision on attempt %d/%d", attempt, self.MAX_RETRIES)
                continue
            logger.info("[Register] Registered %r", name)
            return reference.code

        logger.warning("[Register] Failed to allocate a unique code after %d attempts", self.MAX_RETRIES)
        raise RegistrationFailed()


class ValidationService:
    """Resolves a submitted access code to its file reference."""

    def __init__(self, store: ReferenceStore, code_length: int = 6, burn_on_read: bool = False):
        self.store = store
        self.CODE_LENGTH = code_length
        self.BURN_ON_READ = burn_on_read
        self._pattern = utils.code_pattern(code_length)

    def check_format(self, code: str) -> str:
        """Return ``code`` unchanged or raise ``InvalidFormat``."""
        if len(code) != self.CODE_LENGTH:
            raise InvalidFormat(
                f"Code should {'be' if len(code) < self.CODE_LENGTH else 'not exceed'} {self.CODE_LENGTH} digits"
            )
        if not self._pattern.fullmatch(code):
            raise InvalidFormat("Only numbers allowed")
        return code

    async def validate(self, submitted_code: str) -> FileReference:
        code = self.check_format(submitted_code)

        if self.BURN_ON_READ:
            reference = await self.store.take(code)
        else:
            reference = await self.store.get(code)

        if reference is None:
            raise NotFound()
        return reference

    async def revoke(self, submitted_code: str) -> None:
        """Delete the reference held by ``submitted_code``."""
        code = self.check_format(submitted_code)
        if not await self.store.delete(code):
            raise NotFound()
        logger.info("[Revoke] Code revoked")
