"""Authentication routes for registration, login, and profile management."""
from functools import wraps

from flask import Blueprint, jsonify
from flask_login import LoginManager, current_user, login_required, login_user, logout_user

from eduforce.api.validation import parse_json_body
from eduforce.domain.errors import ForbiddenError
from eduforce.domain.models.api_models import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from eduforce.infrastructure.database import db
from eduforce.infrastructure.repositories import MongoUserRepository
from eduforce.services import auth_service
from eduforce.services.auth_service import AuthenticatedUser
from ef_utils.logger_utils import logger

auth_bp = Blueprint('auth', __name__)

# Initialize Login Manager
login_manager = LoginManager()


def _user_repository() -> MongoUserRepository:
    return MongoUserRepository(db)


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login session cookies."""
    user = _user_repository().get_by_id(user_id)
    if user:
        return AuthenticatedUser(user)
    return None


@login_manager.request_loader
def load_user_from_request(req):
    """Load user from an `Authorization: Bearer <token>` header."""
    header = req.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    user_id = auth_service.decode_access_token(header[len("Bearer "):].strip())
    if not user_id:
        return None
    return load_user(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    """Handle unauthorized access."""
    return jsonify({"error": "Not authorized, no valid token."}), 401


def roles_required(*roles):
    """Decorator to require an authenticated user with one of `roles`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            if current_user.user.role not in roles:
                raise ForbiddenError(
                    f"User role '{current_user.user.role.value}' is not authorized to access this route."
                )
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def _session_payload(user):
    return {"token": auth_service.create_access_token(user), "user": user.to_public_dict()}


@auth_bp.route('/register', methods=['POST'])
def register():
    body = parse_json_body(RegisterRequest)
    user = auth_service.register_user(_user_repository(), body)
    login_user(AuthenticatedUser(user))
    logger.info(f"User registered: {user.id}")
    return jsonify(_session_payload(user)), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    body = parse_json_body(LoginRequest)
    user = auth_service.authenticate_user(_user_repository(), body.email, body.password)
    login_user(AuthenticatedUser(user))
    return jsonify(_session_payload(user)), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Logout handler. Bearer tokens are dropped client-side."""
    if current_user.is_authenticated:
        logger.info(f"User logged out: {current_user.id}")
    logout_user()
    return jsonify({"message": "Logged out successfully."}), 200


@auth_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify(current_user.user.to_public_dict()), 200


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    body = parse_json_body(UpdateProfileRequest)
    user = auth_service.update_profile(_user_repository(), current_user.id, body)
    return jsonify(user.to_public_dict()), 200


@auth_bp.route('/profile/password', methods=['PUT'])
@login_required
def change_password():
    body = parse_json_body(ChangePasswordRequest)
    auth_service.change_password(_user_repository(), current_user.id, body)
    return jsonify({"message": "Password updated successfully."}), 200
