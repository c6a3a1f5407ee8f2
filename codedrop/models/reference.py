from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


class FileReference(BaseModel):
    """A registered share: access code bound to a file in external storage."""
    code: str = Field(..., description="Fixed-width numeric access code")
    url: str = Field(..., description="Location pointer of the uploaded blob")
    name: str = Field(..., description="Original file name, used for download naming")
    created_at: datetime = Field(..., description="Registration time (UTC)")
    expires_at: datetime | None = Field(None, description="Expiration time (UTC), None if the code never expires")


class FileInfo(BaseModel):
    """File location returned to the downloader."""
    url: str
    name: str


class RegisterRequest(BaseModel):
    """Request model for registering an uploaded file."""
    url: str = Field(..., min_length=1, max_length=2048, validation_alias=AliasChoices("url", "fileData"), description="Location pointer returned by the object store")
    name: str = Field(..., min_length=1, max_length=255, validation_alias=AliasChoices("name", "fileName"), description="Original file name")


class RegisterResponse(BaseModel):
    """Response model after registering a file."""
    error: bool = False
    code: str = Field(..., description="Access code to hand to the downloader")
    expiration: str | None = Field(None, description="Time until the code expires, None if it never does")


class ValidateRequest(BaseModel):
    """Request model for redeeming an access code."""
    code: str = Field(..., validation_alias=AliasChoices("code", "enteredCode"), description="Submitted access code")


class ValidateResponse(BaseModel):
    """Response model for a successfully redeemed code."""
    error: bool = False
    file: FileInfo
