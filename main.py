import logging

from dailydrop.analysis import routes as analysis_router
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dailydrop.core.config import CORS_ALLOW_ORIGINS
from dailydrop.core.database import Base, engine

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(
    title="Daily Drop API",
    version="1.0.0",
    description="Backend for Daily Drop: AI-generated analyses of journal entries and coach conversations.",
)

# CORS config
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(analysis_router.router)


# DB Tables
@app.on_event("startup")
def create_tables():
    Base.metadata.create_all(bind=engine)
