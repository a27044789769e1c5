import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Force load .env from the script's directory
env_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env")
load_dotenv(dotenv_path=env_path, override=True)

try:
    from .brightx_module import init_brightx_module, router as brightx_router
except ImportError:
    from brightx_module import init_brightx_module, router as brightx_router

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading BrightX state...")
    store = init_brightx_module(app)
    logger.info(f"BrightX state loaded ({len(store.state.students)} students).")
    yield
    logger.info("Shutting down...")


app = FastAPI(title="BrightX Learn Admin API", lifespan=lifespan)

origins = [
    origin.strip()
    for origin in os.getenv("BRIGHTX_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(brightx_router)


@app.get("/api/health")
def health():
    return {"status": "ok", "message": "BrightX Learn admin backend running"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
