"""Application assembly: FastAPI factory, lifespan and background task registry."""
