_unauthorized = {
    "description": "Unauthorized - Dashboard Session Required",
    "content": {
        "application/json": {
            "examples": {
                "not_authenticated": {
                    "summary": "No Session Token",
                    "value": {"error": "Authentication required"},
                },
                "expired_session": {
                    "summary": "Expired Session Token",
                    "value": {"error": "Invalid or expired session token"},
                },
            }
        }
    },
}

_not_found = {
    "description": "Key Not Found Or Not Owned By The Caller",
    "content": {
        "application/json": {
            "examples": {
                "not_found": {
                    "summary": "Unknown Key",
                    "value": {"error": "API key not found"},
                }
            }
        }
    },
}

_key_info_example = {
    "id": "hk_3f9a0c4e8b2d4f6a9c1e7b5d3a2f8e6c",
    "name": "Zapier integration",
    "description": None,
    "scopes": ["read:bookmarks", "write:bookmarks"],
    "rate_limit_per_hour": 1000,
    "rate_limit_per_day": 10000,
    "expires_at": None,
    "allowed_origins": None,
    "ip_whitelist": None,
    "is_revoked": False,
    "last_used_at": None,
    "created_at": "2025-12-10T10:30:00Z",
}

create_api_key_responses = {
    201: {
        "description": "API Key Created Successfully",
        "content": {
            "application/json": {
                "examples": {
                    "success": {
                        "summary": "API Key Created",
                        "value": {
                            "message": "API key created successfully",
                            "data": {
                                **_key_info_example,
                                "secret": "<SECRET>",
                                "warning": "Store the secret securely. It will not be shown again.",
                            },
                        },
                    }
                }
            }
        },
    },
    400: {
        "description": "Bad Request - API Key Creation Error",
        "content": {
            "application/json": {
                "examples": {
                    "empty_scopes": {
                        "summary": "No Scopes",
                        "value": {"error": "At least one scope is required"},
                    },
                    "unknown_scope": {
                        "summary": "Unknown Scope",
                        "value": {"error": "Unknown scope(s): admin:everything"},
                    },
                    "max_keys_reached": {
                        "summary": "Maximum Active Keys Reached",
                        "value": {
                            "error": "Maximum of 10 active API keys allowed per user"
                        },
                    },
                }
            }
        },
    },
    401: _unauthorized,
}

list_api_keys_responses = {
    200: {
        "description": "API Keys Retrieved (secrets and hashes never included)",
        "content": {
            "application/json": {
                "examples": {
                    "success": {
                        "summary": "Key List",
                        "value": {
                            "message": "API keys retrieved successfully",
                            "data": {"api_keys": [_key_info_example], "count": 1},
                        },
                    }
                }
            }
        },
    },
    401: _unauthorized,
}

revoke_api_key_responses = {
    200: {
        "description": "API Key Revoked",
        "content": {
            "application/json": {
                "examples": {
                    "success": {
                        "summary": "Revoked",
                        "value": {
                            "message": "API key revoked successfully",
                            "data": {**_key_info_example, "is_revoked": True},
                        },
                    }
                }
            }
        },
    },
    401: _unauthorized,
    404: _not_found,
}

api_key_stats_responses = {
    200: {
        "description": "Usage Statistics",
        "content": {
            "application/json": {
                "examples": {
                    "success": {
                        "summary": "Stats",
                        "value": {
                            "message": "API key stats retrieved successfully",
                            "data": {
                                "api_key_id": _key_info_example["id"],
                                "name": _key_info_example["name"],
                                "stats": {
                                    "total_requests": 1520,
                                    "requests_today": 87,
                                    "requests_this_week": 640,
                                    "avg_response_time": 42,
                                    "error_rate": 1.25,
                                },
                                "recent_requests": [],
                            },
                        },
                    }
                }
            }
        },
    },
    401: _unauthorized,
    404: _not_found,
}
