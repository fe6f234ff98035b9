"""Infrastructure layer - External dependencies and implementations.

This layer contains all external dependencies including:
- Remote document store client (httpx)
- Request cache and rate limiting
- API routes (FastAPI)
- Field encryption and access policy

The infrastructure layer implements the collaborators the domain
services are constructed with.
"""
