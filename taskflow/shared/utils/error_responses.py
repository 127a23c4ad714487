# taskflow/shared/utils/error_responses.py

# Respostas de erro genéricas
common_errors = {
    500: {
        "description": "Internal server error",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": "Internal server error",
                    "code": "INTERNAL_SERVER_ERROR"
                }
            }
        }
    },
    503: {
        "description": "Token store temporarily unavailable",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": "Revocation cache unavailable.",
                    "code": "CACHE_UNAVAILABLE"
                }
            }
        }
    }
}

# Erros para autenticação e sessões
auth_errors = {
    401: {
        "description": "Unauthorized (Invalid credentials or token)",
        "content": {
            "application/json": {
                "examples": {
                    "invalid_token": {
                        "summary": "Invalid Token",
                        "value": {"success": False, "error": "Invalid or expired token", "code": "INVALID_TOKEN"}
                    },
                    "invalid_credentials": {
                        "summary": "Invalid Credentials",
                        "value": {"success": False, "error": "Invalid email or password",
                                  "code": "INVALID_CREDENTIALS"}
                    },
                    "revoked_refresh": {
                        "summary": "Revoked or expired refresh token",
                        "value": {"success": False, "error": "Invalid or expired refresh token",
                                  "code": "INVALID_REFRESH_TOKEN"}
                    }
                }
            }
        }
    },
    403: {
        "description": "Forbidden (role not allowed)",
        "content": {
            "application/json": {
                "example": {"success": False, "error": "Insufficient permissions", "code": "FORBIDDEN"}
            }
        }
    },
    409: {
        "description": "Conflict (Email already in use)",
        "content": {
            "application/json": {
                "example": {"success": False, "error": "Email already registered", "code": "RESOURCE_ALREADY_EXISTS"}
            }
        }
    },
    422: {
        "description": "Validation Error",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": "Validation failed",
                    "code": "VALIDATION_ERROR",
                    "details": [{"field": "password", "message": "String should have at least 8 characters"}]
                }
            }
        }
    },
    429: {
        "description": "Too many failed signup/signin attempts from this client",
        "headers": {"Retry-After": {"description": "Seconds until the window resets", "schema": {"type": "integer"}}},
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": "Too many authentication attempts, please try again later",
                    "code": "TOO_MANY_ATTEMPTS"
                }
            }
        }
    },
    **common_errors
}
