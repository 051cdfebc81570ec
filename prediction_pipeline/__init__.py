"""
Prediction Pipeline

Batch generation of AI market predictions with durable, recoverable sessions.

Layer Structure:
- Domain: Sessions, results, markets, errors and pure selection/validation rules
- Application: Use cases (selection, dispatch, session tracking, recovery) and DTOs
- Infrastructure: MongoDB repositories, HTTP gateways, Celery tasks
- Presentation: FastAPI routers for triggers and session status
- Shared: Cross-cutting concerns (logging, enums)
- Main: Composition root, settings, API and worker entry points
"""
