from pydantic import BaseModel

from app.schemas.account import Outline


class ViewPreferencesResponse(BaseModel):
    per_page: int
    outline: Outline
    sort_by: str
