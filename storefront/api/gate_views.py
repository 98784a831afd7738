"""
Turns access-gate decisions into Flask responses.

``protected_page(level)`` wraps a page view: it assembles the visitor's
AccessContext, asks ``storefront.gate.decide`` what to do, and then
performs it (loading page, redirect to login, interstitial, or the page
inside its layout).
"""

from functools import wraps

from flask import current_app, make_response, redirect, render_template, request
from markupsafe import Markup

from storefront import gate
from storefront.access import build_access_context
from storefront.api.auth import current_user
from storefront.config import LOADING_REFRESH_SECONDS
from storefront.location import LocationPreference, apply_preference, read_preference
from storefront.models import AccessContext


def current_preference() -> LocationPreference:
    """Stored region preference, falling back to IP detection when enabled."""
    if hasattr(request, "location_preference"):
        return request.location_preference
    pref = read_preference(request.cookies)
    request.detected_location = False
    if pref.location is None:
        detector = current_app.config.get("LOCATION_DETECTOR")
        if detector is not None:
            pref = detector(request.remote_addr)
            request.detected_location = pref.location is not None
    request.location_preference = pref
    return pref


def access_context_for(protection: str, pref: LocationPreference) -> AccessContext:
    """Build gate input, only asking for auth status when the gate will read it."""
    if pref.location is None:
        return AccessContext()
    if pref.is_international and protection != gate.ADMIN_ONLY:
        return build_access_context(pref, None, auth_resolved=False)
    return build_access_context(pref, current_user())


def render_outcome(outcome: gate.Outcome, content, pref: LocationPreference):
    """Perform *outcome*; *content* is called only when the page may render."""
    if outcome.kind == gate.REDIRECT:
        return redirect(outcome.redirect_to, code=302)

    if outcome.kind == gate.LOADING:
        return render_template(
            "loading.html",
            layout=outcome.layout,
            refresh=LOADING_REFRESH_SECONDS,
            preference=pref,
            next_path=request.path,
        ), 200

    if outcome.kind == gate.INTERSTITIAL:
        if outcome.interstitial == gate.REJECTED:
            return render_template(
                "rejected.html", layout=outcome.layout, contact=outcome.support_contact,
            ), 403
        return render_template("pending.html", layout=outcome.layout), 200

    status = 200
    body = None
    if not outcome.withhold_content:
        result = content()
        if isinstance(result, tuple):
            body, status = result
        else:
            body = result
    return render_template(
        "page.html",
        layout=outcome.layout,
        body=Markup(body) if body is not None else None,
        user=current_user() if outcome.layout == gate.LAYOUT_ADMIN else None,
    ), status


def protected_page(protection: str):
    """Declare a page's protection level and run it through the gate."""
    if protection not in gate.PROTECTION_LEVELS:
        raise ValueError(f"Unknown protection level: {protection!r}")

    def wrapper(view):
        @wraps(view)
        def decorated(*args, **kwargs):
            pref = current_preference()
            outcome = gate.decide(access_context_for(protection, pref), protection)
            response = make_response(
                render_outcome(outcome, lambda: view(*args, **kwargs), pref)
            )
            if getattr(request, "detected_location", False):
                apply_preference(response, pref)
            return response

        decorated.protection = protection
        return decorated

    return wrapper
