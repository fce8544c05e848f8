# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/gebeyanet/routes/auth.py
"""
Authentication API routes

- Self-registration of shop owners
- Token-based sessions (only the SHA-256 of a token is stored)
- Explicit logout revokes the token
"""

from flask import Blueprint, g, jsonify, request

from ..errors import ValidationError
from ..time_utils import to_utc_z
from ..services import auth_service
from ..services import session_service
from ..decorators import bearer_token, require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create a shop owner account and log it in.

    Body: username, email, password, optional business_name.
    """
    data = request.get_json(silent=True) or {}
    password = data.get("password") or ""
    auth_service.validate_password_strength(password)

    user = auth_service.create_user(
        username=data.get("username"),
        email=data.get("email"),
        password=password,
        business_name=data.get("business_name"),
    )
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
        "message": "Registration successful",
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with username or email and create a session token.

    The token must be sent as 'Authorization: Bearer <token>' on protected routes.
    """
    data = request.get_json(silent=True) or {}
    identifier = data.get("username") or data.get("email") or data.get("identifier")
    password = data.get("password")

    if not all([identifier, password]):
        raise ValidationError("username/email and password required")

    user = auth_service.authenticate(identifier, password)
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
