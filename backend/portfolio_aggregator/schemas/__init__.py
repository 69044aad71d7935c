# backend/portfolio_aggregator/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

- common: response envelope, error body, camelCase base model
- auth: signup/login/refresh bodies, user and token responses
- portfolio: summary, platforms, performance, allocation, rankings, connect
- market: quotes and indices
"""
