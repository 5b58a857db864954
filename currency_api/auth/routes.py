"""Route handlers for token issuance and identity lookup."""

from __future__ import annotations

from flask import g
from flask.views import MethodView

from . import blp
from .schemas import IdentityResponseSchema, LoginRequestSchema, TokenResponseSchema
from .tokens import Principal, current_token_service, require_policy


@blp.route("/token")
class TokenIssue(MethodView):
    @blp.arguments(LoginRequestSchema)
    @blp.response(200, TokenResponseSchema())
    def post(self, payload):
        token = current_token_service().authenticate(payload["client_id"], payload["api_key"])
        return {
            "access_token": token.access_token,
            "token_type": token.token_type,
            "expires_in": token.expires_in,
            "issued_at": token.issued_at,
            "expires_at": token.expires_at,
        }


@blp.route("/me")
class CurrentIdentity(MethodView):
    decorators = [require_policy()]

    @blp.doc(security=[{"bearerAuth": []}])
    @blp.response(200, IdentityResponseSchema())
    def get(self):
        principal: Principal = g.principal
        return {
            "client_id": principal.client_id,
            "roles": list(principal.roles),
            "is_authenticated": True,
            "expires_at": principal.expires_at,
        }
