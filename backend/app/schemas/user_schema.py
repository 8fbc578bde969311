"""
schemas/user_schema.py — request schemas for profile and credential changes,
plus the response schema for user profiles.

Request schemas inherit from marshmallow.Schema (no app context needed).
UserProfileSchema is a dump-only ma.Schema used inside request handlers.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from backend.app.extensions import ma
from backend.app.models.user import Role
from backend.app.schemas.auth_schema import (
    password_field_validators,
    username_field_validators,
)


class EditProfileSchema(Schema):
    """PUT /users/profile"""

    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=100, error="Name must not be empty."),
    )


class ChangeEmailSchema(Schema):
    """PATCH /users/email — current password required."""

    password = fields.Str(required=True, load_only=True, validate=password_field_validators)
    email = fields.Email(required=True, validate=validate.Length(max=255))


class ChangeUsernameSchema(Schema):
    """PATCH /users/username — current password required."""

    password = fields.Str(required=True, load_only=True, validate=password_field_validators)
    username = fields.Str(required=True, validate=username_field_validators)


class ChangePasswordSchema(Schema):
    """PATCH /users/password"""

    old_password = fields.Str(required=True, load_only=True, validate=password_field_validators)
    new_password = fields.Str(required=True, load_only=True, validate=password_field_validators)

    @validates_schema
    def validate_passwords_differ(self, data, **kwargs) -> None:
        # user_service.change_password repeats this against the stored hash.
        if data.get("old_password") == data.get("new_password"):
            raise ValidationError(
                "new password cannot be the same as the old password",
                field_name="new_password",
            )


class UserProfileSchema(ma.Schema):
    """Serialised user. password_hash and token_version are never exposed."""

    id = fields.Str(dump_only=True)
    name = fields.Str(dump_only=True)
    username = fields.Str(dump_only=True)
    email = fields.Str(dump_only=True)
    role = fields.Enum(Role, dump_only=True)
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)
