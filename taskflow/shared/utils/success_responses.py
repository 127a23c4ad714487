# taskflow/shared/utils/success_responses.py

# Respostas de sucesso genéricas
common_success = {
    200: {
        "description": "Request processed successfully",
        "content": {
            "application/json": {
                "example": {"success": True, "message": "Operation completed successfully"}
            }
        }
    }
}

_auth_example = {
    "success": True,
    "data": {
        "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
        "token_type": "bearer",
        "user": {
            "id": "3fa85f64-5717-4562-b3fc-2c963f66afa6",
            "email": "user@example.com",
            "role": "standard",
            "email_verified": False,
            "created_at": "2025-01-01T00:00:00",
            "last_login_at": None
        }
    }
}

# Sucessos para autenticação (o refresh token vai no cookie, nunca no corpo)
auth_success = {
    201: {
        "description": "User created and signed in",
        "content": {"application/json": {"example": _auth_example}}
    },
    200: {
        "description": "User signed in",
        "content": {"application/json": {"example": _auth_example}}
    }
}
