from fastapi import APIRouter

from app.services.llm_client import openai_configured

router = APIRouter()

@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    return {
        "status": "OK",
        "message": "Server is running",
        "openaiConfigured": openai_configured(),
    }
