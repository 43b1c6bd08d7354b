from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kamdon.app.api.v1.api import api_router
from kamdon.app.core.config import settings
from kamdon.app.middleware.language import LanguageMiddleware

app = FastAPI(title="Kamdon Fashion Billing & Analytics")

# ─── CORS: restrict to the configured store front-ends ──────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Accept-Language"],
)

# ─── Custom middleware ───────────────────────────────────────────────────────
app.add_middleware(LanguageMiddleware)

app.include_router(api_router)
