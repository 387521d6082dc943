from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from formhub.core.config import settings
from formhub.core.errors import install_error_handlers
from formhub.core.http_hardening import install_http_hardening
from formhub.api.router import health, router as api_router

app = FastAPI(title=settings.APP_NAME, version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_http_hardening(app)
install_error_handlers(app)

app.include_router(api_router, prefix="/api")

app.add_api_route("/health", health, methods=["GET"], tags=["Health"])
