from flask_jwt_extended import JWTManager
from vidtube.models.TokenBlocklist import TokenBlocklist
from vidtube.models.User import User
from vidtube.extensions import db
from vidtube.security_utils import coerce_uuid
from vidtube.utils.api_helper import error


def init_jwt_callbacks(jwt: JWTManager):
    @jwt.token_in_blocklist_loader
    def is_revoked(jwt_header, jwt_payload):
        return TokenBlocklist.is_blocked(jwt_payload.get("jti"))

    @jwt.user_lookup_loader
    def load_user(jwt_header, jwt_payload):
        # Identities are str(uuid); coerce for the Uuid column
        user = db.session.get(User, coerce_uuid(jwt_payload.get("sub")))
        if user is None or not user.is_active:
            return None
        return user

    @jwt.user_lookup_error_loader
    def _user_missing(jwt_header, jwt_payload):
        return error("Invalid Access Token", 401)

    @jwt.unauthorized_loader
    def _missing_token(reason):
        return error("Unauthorized request", 401, errors=[reason])

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return error("Invalid Access Token", 401, errors=[reason])

    @jwt.expired_token_loader
    def _expired_token(jwt_header, jwt_payload):
        return error("Access Token expired", 401)

    @jwt.revoked_token_loader
    def _revoked_token(jwt_header, jwt_payload):
        return error("Access Token revoked", 401)
