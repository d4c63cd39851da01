"""Shared fixtures for MakeMCP tests."""

import json
from pathlib import Path

import pytest

from makemcp.models import OpenAPIParams


BASE_URL = "http://api.example/v1"


@pytest.fixture
def users_spec():
    """Three-operation OpenAPI document used across the suite."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Users API", "version": "1.2.0"},
        "paths": {
            "/users/{userId}": {
                "get": {
                    "operationId": "getUser",
                    "summary": "Fetch a user",
                    "parameters": [
                        {
                            "name": "userId",
                            "in": "path",
                            "required": True,
                            "description": "User identifier",
                            "schema": {"type": "string"},
                        },
                        {
                            "name": "limit",
                            "in": "query",
                            "required": False,
                            "schema": {"type": "integer"},
                        },
                    ],
                    "responses": {
                        "200": {
                            "description": "A user",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/User"}
                                }
                            },
                        }
                    },
                },
                "delete": {
                    "operationId": "delete-user",
                    "parameters": [
                        {
                            "name": "userId",
                            "in": "path",
                            "required": True,
                            "schema": {"type": "string"},
                        }
                    ],
                    "responses": {"204": {"description": "Deleted"}},
                },
            },
            "/users": {
                "post": {
                    "operationId": "createUser",
                    "description": "Create a user",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/NewUser"}
                            }
                        },
                    },
                    "responses": {
                        "201": {
                            "description": "Created",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/User"}
                                }
                            },
                        }
                    },
                }
            },
        },
        "components": {
            "schemas": {
                "NewUser": {
                    "type": "object",
                    "required": ["name", "email"],
                    "properties": {
                        "name": {"type": "string", "description": "Full name"},
                        "email": {"type": "string", "format": "email"},
                        "age": {"type": "integer"},
                    },
                },
                "User": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string", "format": "uuid"},
                        "name": {"type": "string"},
                        "email": {"type": "string", "format": "email"},
                    },
                },
            }
        },
    }


@pytest.fixture
def write_spec(tmp_path):
    """Write a document to ``tmp_path`` and return its path as a string."""

    def _write(spec, name="openapi.json"):
        path = Path(tmp_path) / name
        if isinstance(spec, str):
            path.write_text(spec, encoding="utf-8")
        else:
            path.write_text(json.dumps(spec), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def spec_file(write_spec, users_spec):
    return write_spec(users_spec)


@pytest.fixture
def openapi_params(spec_file):
    return OpenAPIParams(
        source_type="openapi",
        specs=spec_file,
        base_url=BASE_URL,
        timeout=5,
        dev_mode=True,
    )
