from fastapi import APIRouter

from .. import utils
from ..database import ReferenceStore
from ..models import (
    FileInfo,
    RegisterRequest,
    RegisterResponse,
    ValidateRequest,
    ValidateResponse,
)
from ..services import RegistrationService, ValidationService


class CodeRouter:
    def __init__(self, version: str, store: ReferenceStore, registration: RegistrationService, validation: ValidationService, allow_revoke: bool = True):
        self.VERSION = version
        self.store = store
        self.registration = registration
        self.validation = validation

        self.router = APIRouter(tags=["Codes"])
        self.router.add_api_route("/", self.root, methods=["GET"])
        self.router.add_api_route("/storefile", self.store_file, methods=["POST"], response_model=RegisterResponse, response_model_exclude_none=True)
        self.router.add_api_route("/validate", self.validate, methods=["POST"], response_model=ValidateResponse)
        if allow_revoke:
            self.router.add_api_route("/codes/{code}", self.revoke, methods=["DELETE"])

    async def root(self):
        return {
            "status": "ok",
            "message": "codedrop API is running",
            "version": self.VERSION,
            "config": {
                "code_length": self.validation.CODE_LENGTH,
                "burn_on_read": self.validation.BURN_ON_READ,
                "ttl": self.registration.TTL,
            },
            "active_codes": await self.store.count(),
        }

    async def store_file(self, request: RegisterRequest):
        """Register an uploaded file and hand back its access code."""
        code = await self.registration.register(request.url, request.name)
        ttl = self.registration.TTL
        return RegisterResponse(
            code=code,
            expiration=utils.format_time(ttl) if ttl > 0 else None,
        )

    async def validate(self, request: ValidateRequest):
        """Resolve an access code to the file it was registered for."""
        reference = await self.validation.validate(request.code)
        return ValidateResponse(file=FileInfo(url=reference.url, name=reference.name))

    async def revoke(self, code: str):
        await self.validation.revoke(code)
        return {"error": False, "message": "Code revoked successfully"}
