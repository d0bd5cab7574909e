from __future__ import annotations  # FastAPI server exposing the knowledge interview workflow

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router as interview_router
from api.runtime import reset_workflow


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:  # Drain background embedding jobs on shutdown
    yield
    logger.info("Shutting down interview workflow")
    reset_workflow()


app = FastAPI(title="Knowledge Interview API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.include_router(interview_router)


@app.get("/health")
def health() -> dict:  # Liveness probe
    return {"status": "ok"}
