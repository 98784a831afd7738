"""
Flask route handlers – storefront pages behind the access gate, plus the
JSON API used by the cart, checkout and back-office screens.
"""

import sys
import traceback
from datetime import timedelta

from flask import jsonify, make_response, redirect, render_template, request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from storefront import gate
from storefront.access import list_users, load_login_row, update_user_status
from storefront.analysis import compute_dashboard_stats, load_dashboard_frames
from storefront.api.auth import (
    admin_required,
    check_password,
    current_user,
    generate_token,
    token_required,
)
from storefront.api.gate_views import current_preference, protected_page
from storefront.cart import GuestCart, summarize_cart
from storefront.config import (
    GUEST_CART_COOKIE,
    LOCATIONS,
    PREFERENCE_MAX_AGE,
    REMEMBER_ME_DAYS,
    SESSION_COOKIE,
    TOKEN_EXPIRY_HOURS,
)
from storefront.database import (
    create_product,
    delete_product,
    get_product_by_slug,
    get_products_by_ids,
    list_active_products,
    list_products,
    set_product_active,
    update_product,
)
from storefront.location import LocationPreference, apply_preference, clear_preference
from storefront.models import AuthUser
from storefront.orders import list_orders, update_order_status
from storefront.pricing import (
    applicable_rule,
    compute_line_total,
    describe_tiers,
    format_money,
    parse_promotion_rules,
    to_decimal,
    unit_price_for,
)
from storefront.shipping import find_shipping_option, shipping_options_for


def _parse_quantity(raw, default=None) -> int:
    if raw is None or raw == "":
        if default is None:
            raise ValueError("quantity is required")
        return default
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise ValueError(f"Invalid quantity: {raw!r}")
    if isinstance(raw, str) and not raw.strip().isdigit():
        raise ValueError(f"Invalid quantity: {raw!r}")
    try:
        quantity = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid quantity: {raw!r}")
    if quantity < 1:
        raise ValueError(f"Invalid quantity: {raw!r}")
    return quantity


def _quote(quantity, base_price, rules) -> dict:
    rule = applicable_rule(quantity, rules)
    unit = unit_price_for(quantity, base_price, rules)
    total = compute_line_total(quantity, base_price, rules)
    return {
        "quantity": quantity,
        "unitPrice": str(unit),
        "lineTotal": str(total),
        "appliedRule": rule.to_dict() if rule else None,
        "display": {"unitPrice": format_money(unit), "lineTotal": format_money(total)},
    }


def _checkout_totals(subtotal, options, option_id):
    """Selected shipping option (if any) and the order total it implies."""
    selected = find_shipping_option(options, option_id)
    return selected, subtotal + to_decimal(selected.price if selected else "0")


def _server_error(what: str, e: Exception):
    print(f"[ERROR] {what}: {e}", file=sys.stderr)
    traceback.print_exc()
    return jsonify({"error": f"Failed to {what.lower()}"}), 500


def register_routes(app, engine):
    """Register all pages and API routes on the Flask *app*."""

    def load_cart() -> GuestCart:
        return GuestCart.from_json(request.cookies.get(GUEST_CART_COOKIE))

    def cart_response(cart: GuestCart, payload, status=200):
        resp = make_response(jsonify(payload), status)
        if cart.items:
            resp.set_cookie(GUEST_CART_COOKIE, cart.to_json(), max_age=PREFERENCE_MAX_AGE,
                            samesite="Lax")
        else:
            resp.delete_cookie(GUEST_CART_COOKIE)
        return resp

    def cart_payload(cart: GuestCart) -> dict:
        return {
            "items": [{"productId": pid, "quantity": q} for pid, q in cart.items.items()],
            "itemCount": cart.item_count,
        }

    # ── Public pages ─────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    @protected_page(gate.PUBLIC)
    def landing():
        return render_template(
            "landing.html",
            preference=current_preference(),
            preview=list_active_products(engine)[:4],
        )

    @app.route("/login", methods=["GET"])
    @protected_page(gate.PUBLIC)
    def login_page():
        return render_template("login.html", error=request.args.get("error"))

    @app.route("/sobre", methods=["GET"])
    @protected_page(gate.PUBLIC)
    def about():
        return render_template("about.html")

    @app.route("/contacto", methods=["GET"])
    @protected_page(gate.PUBLIC)
    def contact():
        return render_template("contact.html")

    @app.route("/localizacao", methods=["POST"])
    def choose_location():
        location = request.form.get("location", "").strip().lower()
        next_path = request.form.get("next") or "/"
        if not next_path.startswith("/") or next_path.startswith("//"):
            next_path = "/"
        resp = redirect(next_path)
        if location in LOCATIONS:
            pref = current_preference()
            apply_preference(resp, LocationPreference(
                location=location,
                country_code=pref.country_code,
                medical_professional_confirmed=request.form.get("medical") == "true",
            ))
        return resp

    # ── Storefront pages ─────────────────────────────────────────────

    @app.route("/inicio", methods=["GET"])
    @protected_page(gate.APPROVED_PORTUGAL_ONLY)
    def home():
        return render_template("home.html", user=current_user_if_checked())

    @app.route("/produtos", methods=["GET"])
    @protected_page(gate.APPROVED_PORTUGAL_ONLY)
    def products_page():
        products = list_active_products(engine)
        return render_template(
            "products.html",
            products=products,
            tiers={p.id: describe_tiers(p.price, p.promotion_rules) for p in products},
            format_money=format_money,
        )

    @app.route("/produto/<slug>", methods=["GET"])
    @protected_page(gate.APPROVED_PORTUGAL_ONLY)
    def product_page(slug):
        product = get_product_by_slug(engine, slug)
        if product is None:
            return render_template("not_found.html"), 404
        try:
            quantity = _parse_quantity(request.args.get("quantidade"), default=1)
        except ValueError:
            quantity = 1
        return render_template(
            "product.html",
            product=product,
            tiers=describe_tiers(product.price, product.promotion_rules),
            quote=_quote(quantity, product.price, product.promotion_rules),
            format_money=format_money,
        )

    @app.route("/carrinho", methods=["GET"])
    @protected_page(gate.APPROVED_PORTUGAL_ONLY)
    def cart_page():
        cart = load_cart()
        summary = summarize_cart(cart, get_products_by_ids(engine, cart.items.keys()))
        country = request.args.get("pais") or current_preference().country_code
        options = shipping_options_for(country, request.args.get("regiao"), summary["subtotal"])
        selected, total = _checkout_totals(summary["subtotal"], options, request.args.get("envio"))
        return render_template(
            "cart.html", summary=summary, shipping=options, selected=selected, total=total,
            format_money=format_money,
        )

    @app.route("/minha-conta", methods=["GET"])
    @protected_page(gate.AUTHENTICATED_PORTUGAL_ONLY)
    def account_page():
        return render_template(
            "account.html", user=current_user_if_checked(), preference=current_preference(),
        )

    @app.route("/admin", methods=["GET"])
    @protected_page(gate.ADMIN_ONLY)
    def admin_dashboard():
        users_df, orders_df = load_dashboard_frames(engine)
        return render_template("admin_dashboard.html", stats=compute_dashboard_stats(users_df, orders_df))

    def current_user_if_checked():
        # international visitors never hit the auth lookup on storefront pages
        pref = current_preference()
        if pref.is_international:
            return None
        return current_user()

    # ── Service info / health ────────────────────────────────────────

    @app.route("/api", methods=["GET"])
    def api_index():
        return jsonify({
            "service": "Cara Storefront API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "auth": "/api/auth/login",
                "user": "/api/auth/user",
                "location": "/api/location",
                "quote": "/api/pricing/quote",
                "products": "/api/products",
                "shipping": "/api/shipping-options",
                "cart": "/api/guest-cart",
                "adminProducts": "/api/admin/products",
                "adminOrders": "/api/admin/orders",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"database": False}
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check: database unreachable: {e}", file=sys.stderr)

        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }), 200 if all_healthy else 503

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        from_form = not request.is_json
        data = request.get_json(silent=True) if not from_form else request.form
        data = data or {}
        email = str(data.get("email", "")).strip()
        password = str(data.get("password", ""))
        remember = data.get("rememberMe") in (True, "true", "on", "1")

        def fail(message, status):
            if from_form:
                return redirect(f"/login?error={status}")
            return jsonify({"error": message}), status

        if not email or not password:
            return fail("email and password are required", 400)

        try:
            row = load_login_row(engine, email)
            if not row or not check_password(password, row["password_hash"]):
                return fail("Invalid email or password", 401)

            user = AuthUser(
                user_id=str(row["id"]),
                email=str(row["email"]),
                first_name=str(row["first_name"] or ""),
                last_name=str(row["last_name"] or ""),
                status=str(row["status"]).lower(),
                role=str(row["role"]).lower(),
            )
            lifetime = timedelta(days=REMEMBER_ME_DAYS) if remember else timedelta(hours=TOKEN_EXPIRY_HOURS)
            token = generate_token(user, expires_in=lifetime)
        except Exception as e:
            return _server_error("Log in", e)

        if from_form:
            resp = redirect("/admin" if user.is_admin else "/inicio")
        else:
            resp = make_response(jsonify({
                "success": True,
                "token": token,
                "user": user.to_dict(),
            }), 200)
        resp.set_cookie(
            SESSION_COOKIE, token, httponly=True, samesite="Lax",
            max_age=int(lifetime.total_seconds()) if remember else None,
        )
        return resp

    @app.route("/api/auth/logout", methods=["POST"])
    def logout():
        resp = make_response(jsonify({"success": True, "message": "Logged out successfully"}), 200)
        resp.delete_cookie(SESSION_COOKIE)
        return resp

    @app.route("/api/auth/user", methods=["GET"])
    @token_required
    def auth_user():
        return jsonify(current_user().to_dict()), 200

    # ── Location preference ──────────────────────────────────────────

    @app.route("/api/location", methods=["GET"])
    def get_location():
        return jsonify(current_preference().to_dict()), 200

    @app.route("/api/location", methods=["POST"])
    def set_location():
        data = request.get_json(silent=True) or {}
        location = data.get("location")
        if location not in LOCATIONS:
            return jsonify({"error": f"location must be one of {sorted(LOCATIONS)}"}), 400
        pref = LocationPreference(
            location=location,
            country_code=current_preference().country_code,
            medical_professional_confirmed=bool(data.get("medicalProfessionalConfirmed")),
        )
        resp = make_response(jsonify(pref.to_dict()), 200)
        apply_preference(resp, pref)
        return resp

    @app.route("/api/location", methods=["DELETE"])
    def reset_location():
        resp = make_response(jsonify(LocationPreference().to_dict()), 200)
        clear_preference(resp)
        return resp

    # ── Pricing / catalog ────────────────────────────────────────────

    @app.route("/api/pricing/quote", methods=["POST"])
    def pricing_quote():
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400
        data = request.get_json(silent=True) or {}
        try:
            quantity = _parse_quantity(data.get("quantity"))
            if data.get("basePrice") is None:
                raise ValueError("basePrice is required")
            rules = parse_promotion_rules(data.get("promotionRules"))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify(_quote(quantity, data["basePrice"], rules)), 200

    @app.route("/api/products", methods=["GET"])
    def api_products():
        try:
            products = list_active_products(engine)
        except Exception as e:
            return _server_error("Fetch products", e)
        return jsonify([p.to_dict() for p in products]), 200

    @app.route("/api/products/<slug>/price", methods=["GET"])
    def api_product_price(slug):
        try:
            quantity = _parse_quantity(request.args.get("quantity"), default=1)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        product = get_product_by_slug(engine, slug)
        if product is None:
            return jsonify({"error": "Product not found"}), 404
        payload = _quote(quantity, product.price, product.promotion_rules)
        payload["productId"] = product.id
        payload["tiers"] = describe_tiers(product.price, product.promotion_rules)
        return jsonify(payload), 200

    @app.route("/api/shipping-options", methods=["GET"])
    def api_shipping_options():
        options = shipping_options_for(
            request.args.get("countryCode"),
            request.args.get("region"),
            request.args.get("subtotal", "0"),
        )
        return jsonify([o.to_dict() for o in options]), 200

    # ── Guest cart ───────────────────────────────────────────────────

    @app.route("/api/guest-cart", methods=["GET"])
    def get_guest_cart():
        return jsonify(cart_payload(load_cart())), 200

    @app.route("/api/guest-cart", methods=["POST"])
    def add_to_guest_cart():
        data = request.get_json(silent=True) or {}
        product_id = str(data.get("productId") or "").strip()
        if not product_id:
            return jsonify({"error": "productId is required"}), 400
        cart = load_cart()
        try:
            cart.add_item(product_id, _parse_quantity(data.get("quantity"), default=1))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return cart_response(cart, cart_payload(cart))

    @app.route("/api/guest-cart/<product_id>", methods=["PATCH"])
    def update_guest_cart(product_id):
        data = request.get_json(silent=True) or {}
        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return jsonify({"error": "Valid quantity required"}), 400
        cart = load_cart()
        if product_id not in cart.items:
            return jsonify({"error": "Cart item not found"}), 404
        try:
            cart.update_quantity(product_id, quantity)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return cart_response(cart, cart_payload(cart))

    @app.route("/api/guest-cart/<product_id>", methods=["DELETE"])
    def remove_from_guest_cart(product_id):
        cart = load_cart()
        cart.remove_item(product_id)
        return cart_response(cart, cart_payload(cart))

    @app.route("/api/guest-cart", methods=["DELETE"])
    def clear_guest_cart():
        cart = load_cart()
        cart.clear()
        return cart_response(cart, {"success": True, "items": [], "itemCount": 0})

    @app.route("/api/guest-cart/summary", methods=["GET"])
    def guest_cart_summary():
        cart = load_cart()
        try:
            summary = summarize_cart(cart, get_products_by_ids(engine, cart.items.keys()))
        except Exception as e:
            return _server_error("Summarize cart", e)
        options = shipping_options_for(
            request.args.get("countryCode"), request.args.get("region"), summary["subtotal"],
        )
        selected, total = _checkout_totals(
            summary["subtotal"], options, request.args.get("shippingOptionId"),
        )
        summary["subtotal"] = str(summary["subtotal"])
        summary["shippingOptions"] = [o.to_dict() for o in options]
        summary["shippingOption"] = selected.to_dict() if selected else None
        summary["total"] = str(total)
        return jsonify(summary), 200

    # ── Admin ────────────────────────────────────────────────────────

    @app.route("/api/admin/users", methods=["GET"])
    @admin_required
    def admin_users():
        try:
            users = list_users(engine, request.args.get("status") or None)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            return _server_error("Fetch users", e)
        return jsonify([u.to_dict() for u in users]), 200

    @app.route("/api/admin/users/<user_id>/status", methods=["PATCH"])
    @admin_required
    def admin_user_status(user_id):
        data = request.get_json(silent=True) or {}
        try:
            user = update_user_status(engine, user_id, str(data.get("status", "")))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            return _server_error("Update user status", e)
        if user is None:
            return jsonify({"error": "User not found"}), 404
        return jsonify(user.to_dict()), 200

    @app.route("/api/admin/stats", methods=["GET"])
    @admin_required
    def admin_stats():
        try:
            users_df, orders_df = load_dashboard_frames(engine)
        except Exception as e:
            return _server_error("Load dashboard", e)
        return jsonify(compute_dashboard_stats(users_df, orders_df)), 200

    # ── Admin: catalog ───────────────────────────────────────────────

    @app.route("/api/admin/products", methods=["GET"])
    @admin_required
    def admin_products():
        archived = request.args.get("archived")
        if archived not in (None, "", "true", "false"):
            return jsonify({"error": "archived must be true or false"}), 400
        try:
            products = list_products(engine, None if not archived else archived == "true")
        except Exception as e:
            return _server_error("Fetch products", e)
        return jsonify([p.to_dict() for p in products]), 200

    @app.route("/api/admin/products", methods=["POST"])
    @admin_required
    def admin_create_product():
        try:
            product = create_product(engine, request.get_json(silent=True))
        except ValueError as e:
            return jsonify({"error": "Invalid product data", "message": str(e)}), 400
        except IntegrityError:
            return jsonify({"error": "A product with this slug already exists"}), 409
        except Exception as e:
            return _server_error("Create product", e)
        print(f"[admin] Product {product.slug} created by {current_user().email}")
        return jsonify(product.to_dict()), 201

    @app.route("/api/admin/products/<product_id>", methods=["PATCH"])
    @admin_required
    def admin_update_product(product_id):
        try:
            product = update_product(engine, product_id, request.get_json(silent=True))
        except ValueError as e:
            return jsonify({"error": "Invalid product data", "message": str(e)}), 400
        except IntegrityError:
            return jsonify({"error": "A product with this slug already exists"}), 409
        except Exception as e:
            return _server_error("Update product", e)
        if product is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify(product.to_dict()), 200

    @app.route("/api/admin/products/<product_id>", methods=["DELETE"])
    @admin_required
    def admin_archive_product(product_id):
        try:
            product = set_product_active(engine, product_id, False)
        except Exception as e:
            return _server_error("Archive product", e)
        if product is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify({"success": True, "message": "Produto arquivado com sucesso"}), 200

    @app.route("/api/admin/products/<product_id>/restore", methods=["POST"])
    @admin_required
    def admin_restore_product(product_id):
        try:
            product = set_product_active(engine, product_id, True)
        except Exception as e:
            return _server_error("Restore product", e)
        if product is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify(product.to_dict()), 200

    @app.route("/api/admin/products/<product_id>/permanent", methods=["DELETE"])
    @admin_required
    def admin_delete_product(product_id):
        try:
            deleted = delete_product(engine, product_id)
        except IntegrityError:
            return jsonify({"error": "Product is referenced by existing orders; keep it archived"}), 400
        except Exception as e:
            return _server_error("Delete product", e)
        if not deleted:
            return jsonify({"error": "Product not found"}), 404
        print(f"[admin] Product {product_id} deleted by {current_user().email}")
        return jsonify({"success": True, "message": "Produto eliminado permanentemente"}), 200

    # ── Admin: orders ────────────────────────────────────────────────

    @app.route("/api/admin/orders", methods=["GET"])
    @admin_required
    def admin_orders():
        try:
            orders = list_orders(engine, request.args.get("status") or None)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            return _server_error("Fetch orders", e)
        return jsonify([o.to_dict() for o in orders]), 200

    @app.route("/api/admin/orders/<order_id>/status", methods=["PATCH"])
    @admin_required
    def admin_order_status(order_id):
        data = request.get_json(silent=True) or {}
        try:
            order = update_order_status(engine, order_id, str(data.get("status", "")))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            return _server_error("Update order status", e)
        if order is None:
            return jsonify({"error": "Order not found"}), 404
        return jsonify(order.to_dict()), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
