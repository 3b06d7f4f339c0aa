from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class DocumentList(BaseModel):
    collection: str
    count: int
    documents: List[Dict[str, Any]]


class FilterQuery(BaseModel):
    filters: Dict[str, Any] = Field(default_factory=dict)
    refresh: bool = False


class DistinctValues(BaseModel):
    collection: str
    field: str
    values: List[str]


class CollectionCount(BaseModel):
    collection: str
    count: int


class Overview(BaseModel):
    collections: List[CollectionCount]
    total_documents: int = 0


class SignInRequest(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: str = "user"


class StoreProfile(BaseModel):
    id: Optional[str] = None
    business_name: str
    registered_name: Optional[str] = None
    registration_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class SessionStateOut(BaseModel):
    context_id: str
    current_user: Optional[Dict[str, Any]] = None
    store_profile: Optional[Dict[str, Any]] = None


class SignOutResult(BaseModel):
    status: str = "signed_out"
    cleared_keys: int
