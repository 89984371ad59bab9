"""
ReviewWeb Service - Main Application

A FastAPI service that reviews websites with AI: pages are scraped through a
ladder of fallback strategies (direct HTTP, pooled headless browsers, external
scraping providers) and their content, screenshot, images and links are
checked for harmful content.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config import settings
from core.context import ServiceContext

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    context = ServiceContext(settings)
    await context.init()
    app.state.context = context
    try:
        yield
    finally:
        await context.shutdown()


# Initialize FastAPI app
app = FastAPI(title="ReviewWeb Service", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, timeout_keep_alive=60)
