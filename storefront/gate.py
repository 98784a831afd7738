"""
Access gate – decides what a page request renders from the visitor's
location, sign-in state and approval status.

The decision is a pure function returning an ``Outcome``; performing the
redirect or drawing the interstitial is left to the web layer
(``storefront.api.gate_views``).
"""

from dataclasses import dataclass
from typing import Optional

from storefront.config import LOCATION_INTERNATIONAL, LOGIN_PATH, SUPPORT_EMAIL, SUPPORT_PHONE
from storefront.models import AccessContext

# ── Protection levels ────────────────────────────────────────────────
PUBLIC = "public"
AUTHENTICATED_PORTUGAL_ONLY = "authenticated-portugal-only"
APPROVED_PORTUGAL_ONLY = "approved-portugal-only"
ADMIN_ONLY = "admin-only"
PROTECTION_LEVELS = {PUBLIC, AUTHENTICATED_PORTUGAL_ONLY, APPROVED_PORTUGAL_ONLY, ADMIN_ONLY}

# ── Outcome kinds ────────────────────────────────────────────────────
LOADING = "loading"
REDIRECT = "redirect"
INTERSTITIAL = "interstitial"
RENDER = "render"

PENDING = "pending"
REJECTED = "rejected"

LAYOUT_PUBLIC = "public"
LAYOUT_ADMIN = "admin"
LAYOUT_BARE = "bare"


@dataclass(frozen=True)
class Outcome:
    kind: str
    layout: str = LAYOUT_PUBLIC
    redirect_to: Optional[str] = None
    hard_navigation: bool = False
    interstitial: Optional[str] = None
    support_contact: Optional[dict] = None
    withhold_content: bool = False

    @property
    def renders_content(self) -> bool:
        return self.kind == RENDER and not self.withhold_content


def loading(layout: str = LAYOUT_PUBLIC) -> Outcome:
    return Outcome(kind=LOADING, layout=layout)


def redirect_to_login() -> Outcome:
    # Full page load so the session is picked up fresh after signing in.
    return Outcome(kind=REDIRECT, layout=LAYOUT_BARE, redirect_to=LOGIN_PATH, hard_navigation=True)


def interstitial(which: str) -> Outcome:
    contact = None
    if which == REJECTED:
        contact = {"email": SUPPORT_EMAIL, "phone": SUPPORT_PHONE}
    return Outcome(kind=INTERSTITIAL, interstitial=which, support_contact=contact)


def render(layout: str = LAYOUT_PUBLIC, withhold_content: bool = False) -> Outcome:
    return Outcome(kind=RENDER, layout=layout, withhold_content=withhold_content)


# ── Decision ─────────────────────────────────────────────────────────

def decide(ctx: AccessContext, protection: str) -> Outcome:
    """Evaluate the gate for one page render."""
    if protection not in PROTECTION_LEVELS:
        raise ValueError(f"Unknown protection level: {protection!r}")

    if protection == PUBLIC:
        return render()

    admin_page = protection == ADMIN_ONLY
    layout = LAYOUT_ADMIN if admin_page else LAYOUT_PUBLIC

    # 1) location still resolving
    if ctx.location is None:
        return loading(LAYOUT_BARE if admin_page else LAYOUT_PUBLIC)

    # 2) international visitors skip sign-in on storefront pages
    if ctx.location == LOCATION_INTERNATIONAL and not admin_page:
        return render()

    # 3) auth still resolving
    if ctx.authenticated is None:
        return loading(LAYOUT_BARE if admin_page else LAYOUT_PUBLIC)

    # 4) signed out (or the lookup failed)
    if not ctx.authenticated:
        return redirect_to_login()

    # 5) approval
    if protection == APPROVED_PORTUGAL_ONLY:
        if ctx.approval_status == REJECTED:
            return interstitial(REJECTED)
        if ctx.approval_status != "approved":
            return interstitial(PENDING)

    # 6) admin role
    if admin_page and not ctx.is_admin:
        return render(layout, withhold_content=True)

    return render(layout)
