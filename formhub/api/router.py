from fastapi import APIRouter
from formhub.api import auth, forms, responses

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(forms.router, prefix="/forms", tags=["Forms"])
router.include_router(responses.router, tags=["Responses"])


@router.get("/health")
def health():
    return {"status": "ok", "message": "API is running"}
