"""
API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from promptmart.api.v1.endpoints import auth, health, prompts, users

api_router = APIRouter()

# Registration, OTP, login, password reset
api_router.include_router(auth.router)

# Profile and profile picture
api_router.include_router(users.router)

# Prompt listings and ratings
api_router.include_router(prompts.router)

api_router.include_router(health.router)
