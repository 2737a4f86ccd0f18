from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Access(StrEnum):
    public = "Public"
    private = "Private"
    shared = "Shared"


class Outline(StrEnum):
    long = "long"
    brief = "brief"


class AccountCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=64)
    website: str | None = Field(None, max_length=128)
    phone: str | None = Field(None, max_length=32)
    email: str | None = Field(None, max_length=64)
    background_info: str | None = None
    access: Access = Access.public
    share_with: list[int] = Field(default_factory=list)


class AccountUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=64)
    website: str | None = Field(None, max_length=128)
    phone: str | None = Field(None, max_length=32)
    email: str | None = Field(None, max_length=64)
    background_info: str | None = None
    access: Access | None = None
    share_with: list[int] | None = None


class RedrawRequest(BaseModel):
    per_page: int | None = Field(None, ge=1)  # tope: settings.max_per_page
    outline: Outline | None = None
    sort_by: str | None = Field(None, max_length=32)


class AutoCompleteRequest(BaseModel):
    query: str = Field("", max_length=100)
