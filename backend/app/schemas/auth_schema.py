"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field presence, lengths, formats, regex patterns.
  - services/user_service.py: duplicate username / email (storage constraint).
  - services/auth_service.py: credential correctness.

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

# Letters and digits only; shared with user_schema.ChangeUsernameSchema.
USERNAME_PATTERN = r"^[a-zA-Z0-9]+$"

username_field_validators = [
    validate.Length(
        min=3,
        max=50,
        error="Username must be between 3 and 50 characters.",
    ),
    validate.Regexp(
        USERNAME_PATTERN,
        error="username can only be letters and numbers.",
    ),
]

password_field_validators = [
    validate.Length(min=8, error="Password must be at least 8 characters long."),
]


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      name     : non-empty
      username : 3–50 chars, letters and digits only
      email    : valid email format
      password : min 8 chars
    """

    name = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=100, error="Name must not be empty."),
    )

    username = fields.Str(required=True, validate=username_field_validators)

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(
        required=True,
        load_only=True,
        validate=password_field_validators,
    )


class LoginSchema(Schema):
    """
    POST /auth/login

    Shape check only. A well-formed but unknown username is rejected later
    with the same INVALID_CREDENTIALS error as a wrong password.
    """

    username = fields.Str(required=True, validate=username_field_validators)
    password = fields.Str(
        required=True,
        load_only=True,
        validate=password_field_validators,
    )
