# casegate/domains/permissions/models.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from casegate.shared.permissions.models import Permission, Scope


class PermissionCheckRequest(BaseModel):
    permissions: List[str] = Field(default_factory=list)
    modules: List[str] = Field(default_factory=list)
    fresh: bool = False  # Re-check stale entries upstream before answering


class PermissionCheckResponse(BaseModel):
    permissions: Dict[str, bool]
    modules: Dict[str, bool]


class ScopeCheckRequest(BaseModel):
    resource: str
    action: str
    target_user_id: Optional[str] = None


class ScopeCheckResponse(BaseModel):
    allowed: bool
    highest_scope: Optional[Scope] = None


class ScopeSummaryResponse(BaseModel):
    resource: str
    action: str
    highest_scope: Optional[Scope] = None
    can_perform: bool  # Any scope held, or the administrator role


class ModuleStructure(BaseModel):
    actions: List[str]
    scopes: List[str]
    total_permissions: int


class CatalogIssueResponse(BaseModel):
    source: str
    name: str
    problem: str


class CatalogResponse(BaseModel):
    permissions: List[Permission]
    structure: Dict[str, ModuleStructure]
    issues: List[CatalogIssueResponse]
