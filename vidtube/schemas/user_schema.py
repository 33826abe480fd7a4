from marshmallow import (
    Schema, fields, validate, pre_load, validates_schema, ValidationError, EXCLUDE
)

from vidtube.extensions import ma
from vidtube.models.User import User
from vidtube.security_utils import password_strong

NOT_BLANK = validate.Length(min=1, error="Field must not be blank.")


class StrippedSchema(Schema):
    """Trims string inputs; form posts often carry stray whitespace."""

    class Meta:
        unknown = EXCLUDE  # Ignore extra fields on load

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not hasattr(data, "items"):
            return data
        return {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}


class RegisterSchema(StrippedSchema):
    username = fields.String(required=True, validate=[NOT_BLANK, validate.Length(max=50)])
    fullname = fields.String(required=True, validate=[NOT_BLANK, validate.Length(max=120)])
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=NOT_BLANK)

    @validates_schema
    def check_password(self, data, **kwargs):
        if data.get("password") and not password_strong(data["password"]):
            raise ValidationError(
                "Password must be 8-72 characters and contain a letter and a digit", "password")


class LoginSchema(StrippedSchema):
    username = fields.String(load_default=None)
    email = fields.String(load_default=None)
    password = fields.String(load_default=None, load_only=True)

    @validates_schema
    def validate_login(self, data, **kwargs):
        if not (data.get("username") or data.get("email")):
            raise ValidationError("username or email is required")
        if not data.get("password"):
            raise ValidationError("password is required", "password")


class ChangePasswordSchema(Schema):
    old_password = fields.String(required=True, data_key="oldPassword", validate=NOT_BLANK)
    new_password = fields.String(required=True, data_key="newPassword", validate=NOT_BLANK)
    confirm_password = fields.String(required=True, data_key="confirmPassword", validate=NOT_BLANK)

    class Meta:
        unknown = EXCLUDE

    @validates_schema
    def check_passwords(self, data, **kwargs):
        if data.get("new_password") != data.get("confirm_password"):
            raise ValidationError("New and confirm passwords do not match", "confirmPassword")
        if data.get("old_password") == data.get("new_password"):
            raise ValidationError("Current and new passwords should not be the same", "newPassword")
        if not password_strong(data.get("new_password")):
            raise ValidationError(
                "Password must be 8-72 characters and contain a letter and a digit", "newPassword")


class AccountUpdateSchema(StrippedSchema):
    fullname = fields.String(validate=[NOT_BLANK, validate.Length(max=120)])
    email = fields.Email()

    @validates_schema
    def require_one(self, data, **kwargs):
        if not (data.get("fullname") or data.get("email")):
            raise ValidationError("fullname or email is required")


class UserSchema(ma.SQLAlchemyAutoSchema):
    """Public user document; never includes password or tokens."""

    class Meta:
        model = User
        exclude = (
            "password_hash", "failed_login_attempts", "lock_until", "is_active",
            "avatar_public_id", "cover_image_public_id",
        )

    cover_image = ma.auto_field(data_key="coverImage", dump_only=True)
    last_login = ma.auto_field(data_key="lastLogin", dump_only=True)
    created_at = ma.auto_field(data_key="createdAt", dump_only=True)
    updated_at = ma.auto_field(data_key="updatedAt", dump_only=True)
