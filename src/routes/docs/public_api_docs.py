_rate_limit_headers = {
    "X-RateLimit-Limit-Hour": {"description": "Hourly quota", "schema": {"type": "integer"}},
    "X-RateLimit-Remaining-Hour": {
        "description": "Requests left in the trailing hour",
        "schema": {"type": "integer"},
    },
    "X-RateLimit-Limit-Day": {"description": "Daily quota", "schema": {"type": "integer"}},
    "X-RateLimit-Remaining-Day": {
        "description": "Requests left in the trailing 24 hours",
        "schema": {"type": "integer"},
    },
}

guarded_responses = {
    401: {
        "description": "Missing, Invalid, Revoked Or Expired API Key",
        "content": {
            "application/json": {
                "examples": {
                    "missing": {
                        "summary": "No Credentials",
                        "value": {"error": "Missing API credentials"},
                    },
                    "invalid": {
                        "summary": "Rejected Credentials",
                        "value": {"error": "Invalid or expired API key"},
                    },
                }
            }
        },
    },
    403: {
        "description": "Missing Scope Or Allow-List Rejection",
        "headers": _rate_limit_headers,
        "content": {
            "application/json": {
                "examples": {
                    "missing_scope": {
                        "summary": "Missing Scope",
                        "value": {
                            "error": "This endpoint requires the 'write:bookmarks' scope",
                            "required_scope": "write:bookmarks",
                            "your_scopes": ["read:bookmarks"],
                        },
                    },
                    "ip": {
                        "summary": "IP Not Whitelisted",
                        "value": {"error": "IP address not whitelisted"},
                    },
                    "origin": {
                        "summary": "Origin Not Allowed",
                        "value": {"error": "Origin not allowed"},
                    },
                }
            }
        },
    },
    429: {
        "description": "Rate Limit Exceeded",
        "headers": {
            **_rate_limit_headers,
            "Retry-After": {
                "description": "Seconds until a request can be admitted again",
                "schema": {"type": "integer"},
            },
        },
        "content": {
            "application/json": {
                "examples": {
                    "throttled": {
                        "summary": "Hourly Quota Used Up",
                        "value": {
                            "error": "Rate limit exceeded",
                            "rate_limit": {
                                "hourly_limit": 2,
                                "hourly_remaining": 0,
                                "daily_limit": 10000,
                                "daily_remaining": 9998,
                                "retry_after": 3591,
                            },
                        },
                    }
                }
            }
        },
    },
}
