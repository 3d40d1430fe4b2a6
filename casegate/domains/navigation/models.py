# casegate/domains/navigation/models.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class NavigationItem(BaseModel):
    """
    One sidebar entry.

    An item is gated by a single permission or by module access, never both.
    Items with neither are shown only when their module is public.
    """

    name: str
    href: str
    icon: str
    module: Optional[str] = None
    required_permission: Optional[str] = None
    required_module: Optional[str] = None

    @model_validator(mode="after")
    def check_single_gate(self) -> "NavigationItem":
        if self.required_permission and self.required_module:
            raise ValueError(
                f"Navigation item '{self.name}' declares both a permission "
                "and a module requirement"
            )
        return self

    def permissions(self) -> list[str]:
        return [self.required_permission] if self.required_permission else []


class AdminSection(BaseModel):
    id: str
    title: str
    icon: str
    items: List[NavigationItem]


class RouteRule(BaseModel):
    """Access requirements of one client route."""

    path: str
    required_permission: Optional[str] = None
    required_permissions: List[str] = Field(default_factory=list)  # All must hold
    required_any_permissions: List[str] = Field(default_factory=list)
    required_module: Optional[str] = None
    admin_only: bool = False

    def permissions(self) -> list[str]:
        names = [self.required_permission] if self.required_permission else []
        return names + self.required_permissions + self.required_any_permissions


class GuardOutcome(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"


class GuardDecision(BaseModel):
    outcome: GuardOutcome
    redirect_to: Optional[str] = None
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is GuardOutcome.ALLOW

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(outcome=GuardOutcome.ALLOW)

    @classmethod
    def redirect(cls, target: str, reason: str) -> "GuardDecision":
        return cls(outcome=GuardOutcome.REDIRECT, redirect_to=target, reason=reason)


class NavigationResponse(BaseModel):
    items: List[NavigationItem]
    admin_sections: List[AdminSection]


class RedirectResponse(BaseModel):
    path: str


class ResolveRouteRequest(BaseModel):
    path: str


class ModuleAccessResponse(BaseModel):
    module: str
    has_access: bool
    is_public: bool
