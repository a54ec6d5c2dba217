from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

PROBLEM_REF = {"$ref": "#/components/schemas/ProblemDetail"}


def _use_problem_detail(responses: dict) -> None:
    """Point default 422 responses at ProblemDetail instead of HTTPValidationError."""
    response = responses.get("422")
    if not response:
        return
    json_schema = response.get("content", {}).get("application/json", {}).get("schema", {})
    if "HTTPValidationError" in json_schema.get("$ref", ""):
        response["description"] = "Request validation failed"
        response["content"] = {"application/json": {"schema": PROBLEM_REF}}


def custom_openapi(app: FastAPI):
    """OpenAPI schema where every error response is an RFC 7807 ProblemDetail."""
    if app.openapi_schema:
        return app.openapi_schema

    servers = [{"url": app.root_path}] if app.root_path else None

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        servers=servers,
    )

    for path in openapi_schema.get("paths", {}).values():
        for operation in path.values():
            _use_problem_detail(operation.get("responses", {}))

    schemas = openapi_schema.setdefault("components", {}).setdefault("schemas", {})
    schemas.pop("HTTPValidationError", None)
    schemas.pop("ValidationError", None)

    app.openapi_schema = openapi_schema
    return app.openapi_schema
