"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- API Key security scheme (``X-API-Key``) applied to admin operations only
- A documented 429 response on every analytics operation

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

ADMIN_OPERATIONS = {("/analytics/clear", "delete")}

RATE_LIMITED_RESPONSE = {
    "description": "Rate limit exceeded",
    "content": {
        "application/json": {
            "example": {
                "success": False,
                "error": "Rate limit exceeded",
                "message": "Too many analytics events. Please slow down.",
                "retryAfter": 42,
            }
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security.

    - Injects components.securitySchemes for API Key auth (header ``X-API-Key``)
    - Marks admin operations as requiring the API key
    - Documents the 429 response on rate limited analytics operations
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Admin API key required for destructive operations.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Analytics",
                "description": "Visit, click and time tracking plus aggregated stats.",
            },
            {
                "name": "Health",
                "description": "Liveness checks and service information.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path, methods in paths.items():
            for method, method_obj in methods.items():
                if not isinstance(method_obj, dict):
                    continue
                if (path, method) in ADMIN_OPERATIONS:
                    method_obj["security"] = [{"ApiKeyAuth": []}]
                if path.startswith("/analytics/"):
                    method_obj.setdefault("responses", {}).setdefault(
                        "429", RATE_LIMITED_RESPONSE
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
