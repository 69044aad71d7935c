# backend/portfolio_aggregator/services/__init__.py
"""
Service layer.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise the domain exceptions in exceptions.py
- Receive database sessions as parameters

    services/
    ├── exceptions.py     domain exceptions
    ├── constants.py      business constants and rate limits
    ├── protocols.py      interfaces the portfolio services depend on
    ├── auth/             passwords, tokens, signup/login/refresh/logout
    ├── market_data/      providers, factory, MarketDataService
    └── portfolio/        valuation engine, platform connections
"""
