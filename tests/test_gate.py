"""
Unit tests for the access gate decision function.
"""

import pytest

from storefront import gate
from storefront.config import LOGIN_PATH, SUPPORT_EMAIL
from storefront.models import AccessContext

PT = "portugal"
INTL = "international"
STOREFRONT_LEVELS = [gate.PUBLIC, gate.AUTHENTICATED_PORTUGAL_ONLY, gate.APPROVED_PORTUGAL_ONLY]
ALL_LEVELS = STOREFRONT_LEVELS + [gate.ADMIN_ONLY]


def ctx(location=PT, authenticated=True, status="approved", admin=False):
    return AccessContext(location=location, authenticated=authenticated,
                         approval_status=status, is_admin=admin)


# ── Tests: public pages ──────────────────────────────────────────────

@pytest.mark.parametrize("context", [
    AccessContext(),
    ctx(location=PT, authenticated=False, status=None),
    ctx(location=INTL, authenticated=None),
])
def test_public_always_renders(context):
    out = gate.decide(context, gate.PUBLIC)
    assert out.kind == gate.RENDER
    assert out.renders_content


# ── Tests: resolving ─────────────────────────────────────────────────

@pytest.mark.parametrize("level", [gate.AUTHENTICATED_PORTUGAL_ONLY, gate.APPROVED_PORTUGAL_ONLY, gate.ADMIN_ONLY])
def test_location_resolving_shows_loading(level):
    out = gate.decide(AccessContext(location=None, authenticated=True, approval_status="approved", is_admin=True), level)
    assert out.kind == gate.LOADING


def test_auth_resolving_on_portugal_path_shows_loading():
    out = gate.decide(ctx(authenticated=None, status=None), gate.APPROVED_PORTUGAL_ONLY)
    assert out.kind == gate.LOADING
    assert out.layout == gate.LAYOUT_PUBLIC


def test_auth_resolving_on_admin_page_uses_bare_layout():
    out = gate.decide(ctx(authenticated=None), gate.ADMIN_ONLY)
    assert out.kind == gate.LOADING
    assert out.layout == gate.LAYOUT_BARE


# ── Tests: international bypass ──────────────────────────────────────

@pytest.mark.parametrize("level", STOREFRONT_LEVELS)
@pytest.mark.parametrize("authenticated", [None, False, True])
def test_international_bypasses_auth_on_storefront_pages(level, authenticated):
    out = gate.decide(ctx(location=INTL, authenticated=authenticated, status="rejected"), level)
    assert out.kind == gate.RENDER
    assert out.renders_content


def test_international_does_not_bypass_admin():
    out = gate.decide(ctx(location=INTL, authenticated=False), gate.ADMIN_ONLY)
    assert out.kind == gate.REDIRECT


# ── Tests: signed out ────────────────────────────────────────────────

@pytest.mark.parametrize("status", ["pending", "approved", "rejected", None, "garbage"])
def test_signed_out_always_redirects_to_login(status):
    out = gate.decide(ctx(authenticated=False, status=status), gate.APPROVED_PORTUGAL_ONLY)
    assert out.kind == gate.REDIRECT
    assert out.redirect_to == LOGIN_PATH
    assert out.hard_navigation is True
    assert not out.renders_content


def test_signed_out_portugal_account_page_redirects():
    out = gate.decide(ctx(authenticated=False, status=None), gate.AUTHENTICATED_PORTUGAL_ONLY)
    assert out.kind == gate.REDIRECT
    assert out.redirect_to == "/login"


def test_signed_out_admin_redirects():
    out = gate.decide(ctx(authenticated=False), gate.ADMIN_ONLY)
    assert out.kind == gate.REDIRECT


# ── Tests: approval ──────────────────────────────────────────────────

def test_pending_account_sees_pending_notice():
    out = gate.decide(ctx(status="pending"), gate.APPROVED_PORTUGAL_ONLY)
    assert out.kind == gate.INTERSTITIAL
    assert out.interstitial == gate.PENDING
    assert out.redirect_to is None


def test_rejected_account_sees_support_contact():
    out = gate.decide(ctx(status="rejected"), gate.APPROVED_PORTUGAL_ONLY)
    assert out.kind == gate.INTERSTITIAL
    assert out.interstitial == gate.REJECTED
    assert out.support_contact["email"] == SUPPORT_EMAIL


@pytest.mark.parametrize("status", [None, "", "unknown"])
def test_unknown_status_defaults_to_pending_notice(status):
    out = gate.decide(ctx(status=status), gate.APPROVED_PORTUGAL_ONLY)
    assert out.interstitial == gate.PENDING


def test_approved_account_renders():
    out = gate.decide(ctx(status="approved"), gate.APPROVED_PORTUGAL_ONLY)
    assert out.kind == gate.RENDER
    assert out.renders_content


def test_sign_in_only_page_ignores_approval():
    out = gate.decide(ctx(status="pending"), gate.AUTHENTICATED_PORTUGAL_ONLY)
    assert out.kind == gate.RENDER


def test_unrecognised_location_takes_portugal_path():
    out = gate.decide(ctx(location="mars", authenticated=False), gate.APPROVED_PORTUGAL_ONLY)
    assert out.kind == gate.REDIRECT


# ── Tests: admin ─────────────────────────────────────────────────────

def test_non_admin_gets_admin_layout_without_content():
    out = gate.decide(ctx(admin=False), gate.ADMIN_ONLY)
    assert out.kind == gate.RENDER
    assert out.layout == gate.LAYOUT_ADMIN
    assert out.withhold_content is True
    assert not out.renders_content


@pytest.mark.parametrize("location", [PT, INTL])
def test_admin_renders_admin_page(location):
    out = gate.decide(ctx(location=location, admin=True, status="pending"), gate.ADMIN_ONLY)
    assert out.kind == gate.RENDER
    assert out.layout == gate.LAYOUT_ADMIN
    assert out.renders_content


# ── Tests: misuse ────────────────────────────────────────────────────

def test_unknown_protection_level_raises():
    with pytest.raises(ValueError, match="Unknown protection level"):
        gate.decide(ctx(), "vip-only")


def test_decide_is_pure():
    c = ctx(status="pending")
    assert gate.decide(c, gate.APPROVED_PORTUGAL_ONLY) == gate.decide(c, gate.APPROVED_PORTUGAL_ONLY)
