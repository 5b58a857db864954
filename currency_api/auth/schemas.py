"""Marshmallow schemas for the authentication endpoints."""

from __future__ import annotations

from marshmallow import Schema, fields, pre_load
from marshmallow.validate import Length


class LoginRequestSchema(Schema):
    """Credentials exchanged for a bearer token."""

    client_id = fields.String(required=True, data_key="clientId", validate=Length(min=1, max=50))
    api_key = fields.String(required=True, data_key="apiKey", validate=Length(min=10, max=100))

    @pre_load
    def strip_client_id(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("clientId"), str):
            data = {**data, "clientId": data["clientId"].strip()}
        return data


class TokenResponseSchema(Schema):
    access_token = fields.String(required=True, data_key="accessToken")
    token_type = fields.String(required=True, data_key="tokenType")
    expires_in = fields.Integer(required=True, data_key="expiresIn")
    issued_at = fields.DateTime(required=True, data_key="issuedAt")
    expires_at = fields.DateTime(required=True, data_key="expiresAt")


class IdentityResponseSchema(Schema):
    client_id = fields.String(required=True, data_key="clientId")
    roles = fields.List(fields.String(), required=True)
    is_authenticated = fields.Boolean(required=True, data_key="isAuthenticated")
    expires_at = fields.DateTime(allow_none=True, data_key="expiresAt")
